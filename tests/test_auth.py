"""
Tests for authentication parameters and WHD sessions.
"""
import pytest

from whd_client.integrations.exceptions import WHDAPIError, WHDResponseError
from whd_client.models.auth import AuthType, User, wrap_auth


class TestWrapAuth:
    """Test query parameters added per auth type."""

    def test_api_key(self):
        params = wrap_auth({}, User(name="ignored", password="k3y", type=AuthType.API_KEY))

        assert params == {"apiKey": "k3y"}

    def test_password(self):
        params = wrap_auth({"limit": 5}, User(name="tech", password="pw", type=AuthType.PASSWORD))

        assert params == {"limit": 5, "username": "tech", "password": "pw"}

    def test_session_key(self):
        params = wrap_auth({}, User(name="tech", password="sess", type=AuthType.SESSION_KEY))

        assert params == {"username": "tech", "sessionKey": "sess"}

    def test_does_not_modify_input(self):
        original = {"page": 1}
        wrap_auth(original, User(password="k"))

        assert original == {"page": 1}

    def test_with_session_key(self):
        user = User(name="tech", password="pw", type=AuthType.PASSWORD).with_session_key("abc")

        assert user.type == AuthType.SESSION_KEY
        assert user.password == "abc"
        assert user.name == "tech"


class TestAuthType:

    def test_values(self):
        assert AuthType.API_KEY == 0
        assert AuthType.SESSION_KEY == 1
        assert AuthType.PASSWORD == 2

    def test_from_name(self):
        assert AuthType.from_name("session-key") is AuthType.SESSION_KEY
        assert AuthType.from_name(" Password ") is AuthType.PASSWORD

    def test_from_name_unknown(self):
        with pytest.raises(ValueError, match="Unknown WHD auth type"):
            AuthType.from_name("oauth")


class TestSessions:
    """Test opening and closing sessions."""

    @pytest.mark.asyncio
    async def test_get_session_key(self, client, whd):
        whd.add("GET", "Session", json_body={"sessionKey": "S3SS10N"})

        assert await client.get_session_key() == "S3SS10N"
        assert whd.last().url.params["apiKey"] == "secret-key"

    @pytest.mark.asyncio
    async def test_get_session_key_missing(self, client, whd):
        whd.add("GET", "Session", json_body={"something": "else"})

        with pytest.raises(WHDResponseError, match="sessionKey"):
            await client.get_session_key()

    @pytest.mark.asyncio
    async def test_get_session_key_unauthorized(self, client, whd):
        whd.add("GET", "Session", status=401, json_body={"reason": "Bad credentials"})

        with pytest.raises(WHDAPIError) as exc_info:
            await client.get_session_key()

        assert exc_info.value.status_code == 401
        assert exc_info.value.reason == "Bad credentials"

    @pytest.mark.asyncio
    async def test_terminate_session(self, client, whd):
        whd.add("DELETE", "Session", text="OK")

        await client.terminate_session("S3SS10N")

        request = whd.last("DELETE")
        assert dict(request.url.params) == {"sessionKey": "S3SS10N"}

    @pytest.mark.asyncio
    async def test_terminate_session_invalid_response(self, client, whd):
        whd.add("DELETE", "Session", text="Session not found")

        with pytest.raises(WHDAPIError, match="Invalid response: Session not found"):
            await client.terminate_session("S3SS10N")


class TestHealthCheck:

    @pytest.mark.asyncio
    async def test_healthy(self, client, whd):
        whd.add("GET", "Session", json_body={"sessionKey": "abc"})
        whd.add("DELETE", "Session", text="OK")

        result = await client.health_check()

        assert result["status"] == "healthy"
        assert result["response_time_ms"] >= 0

    @pytest.mark.asyncio
    async def test_authentication_required(self, client, whd):
        whd.add("GET", "Session", status=401, json_body={"reason": "Login failed"})

        result = await client.health_check()

        assert result["status"] == "authentication_required"

    @pytest.mark.asyncio
    async def test_unhealthy_on_server_error(self, client, whd):
        whd.add("GET", "Session", status=500, text="boom")

        result = await client.health_check()

        assert result["status"] == "unhealthy"
        assert "giving up" in result["error"]
