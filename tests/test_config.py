"""
Tests for environment settings and client construction.
"""
import httpx
import pytest
from pydantic import ValidationError

from whd_client.integrations.whd_client import WHDClient
from whd_client.models.auth import AuthType
from whd_client.models.config import Settings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    """Isolate from any .env file or WHD_* variables of the developer."""
    monkeypatch.chdir(tmp_path)
    for name in ("WHD_URL", "WHD_USERNAME", "WHD_PASSWORD", "WHD_API_KEY", "WHD_AUTH_TYPE",
                 "WHD_SSL_VERIFY", "WHD_RETRY_MAX", "WHD_RETRY_WAIT_MIN", "WHD_RETRY_WAIT_MAX"):
        monkeypatch.delenv(name, raising=False)


class TestSettings:

    def test_defaults(self, monkeypatch):
        monkeypatch.setenv("WHD_URL", "https://whd.example.com/")
        monkeypatch.setenv("WHD_API_KEY", "k3y")

        settings = Settings()

        assert settings.whd_url == "https://whd.example.com"
        assert settings.whd_auth_type == AuthType.API_KEY
        assert settings.whd_ssl_verify is True
        assert settings.whd_retry_max == 10
        assert settings.user.password == "k3y"

    def test_password_auth(self, monkeypatch):
        monkeypatch.setenv("WHD_URL", "https://whd.example.com")
        monkeypatch.setenv("WHD_AUTH_TYPE", "password")
        monkeypatch.setenv("WHD_USERNAME", "tech")
        monkeypatch.setenv("WHD_PASSWORD", "pw")
        monkeypatch.setenv("WHD_API_KEY", "unused")

        user = Settings().user

        assert user.type == AuthType.PASSWORD
        assert user.name == "tech"
        assert user.password == "pw"

    def test_numeric_auth_type(self, monkeypatch):
        monkeypatch.setenv("WHD_URL", "https://whd.example.com")
        monkeypatch.setenv("WHD_AUTH_TYPE", "1")

        assert Settings().whd_auth_type == AuthType.SESSION_KEY

    def test_reads_env_file(self, tmp_path):
        (tmp_path / ".env").write_text(
            "WHD_URL=https://env.example.com\nWHD_SSL_VERIFY=false\nUNRELATED=1\n"
        )

        settings = Settings()

        assert settings.whd_url == "https://env.example.com"
        assert settings.whd_ssl_verify is False

    def test_url_required(self):
        with pytest.raises(ValidationError):
            Settings()

    def test_negative_retry_rejected(self, monkeypatch):
        monkeypatch.setenv("WHD_URL", "https://whd.example.com")
        monkeypatch.setenv("WHD_RETRY_MAX", "-1")

        with pytest.raises(ValidationError):
            Settings()


class TestClientFromSettings:

    @pytest.mark.asyncio
    async def test_from_settings(self, monkeypatch):
        monkeypatch.setenv("WHD_URL", "https://whd.example.com")
        monkeypatch.setenv("WHD_API_KEY", "k3y")
        monkeypatch.setenv("WHD_RETRY_MAX", "3")

        transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"sessionKey": "s"}))
        async with WHDClient.from_settings(Settings(), transport=transport) as client:
            assert client.api_base == "https://whd.example.com/helpdesk/WebObjects/Helpdesk.woa/ra/"
            assert client.retry_max == 3
            assert await client.get_session_key() == "s"
