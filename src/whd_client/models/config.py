"""Configuration models for the WHD client."""

from pydantic_settings import BaseSettings
from pydantic import Field, field_validator
from typing import Optional
from .auth import AuthType, User


class Settings(BaseSettings):
    """Client settings loaded from environment variables."""

    # Web Help Desk connection
    whd_url: str = Field(..., description="Base URL, e.g. https://helpdesk.example.com")
    whd_username: str = Field(default="")
    whd_password: Optional[str] = Field(default=None)
    whd_api_key: Optional[str] = Field(default=None)
    whd_auth_type: AuthType = Field(default=AuthType.API_KEY)
    whd_ssl_verify: bool = Field(default=True)

    # Retry policy
    whd_retry_max: int = Field(default=10, ge=0)
    whd_retry_wait_min: float = Field(default=1.0, ge=0)
    whd_retry_wait_max: float = Field(default=30.0, ge=0)

    # Application Configuration
    log_level: str = Field(default="INFO")

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"

    @field_validator("whd_auth_type", mode="before")
    @classmethod
    def _parse_auth_type(cls, value):
        if isinstance(value, str):
            return int(value) if value.isdigit() else AuthType.from_name(value)
        return value

    @field_validator("whd_url")
    @classmethod
    def _strip_url(cls, value: str) -> str:
        return value.rstrip('/')

    @property
    def user(self) -> User:
        """Build WHD credentials for the configured auth type."""
        if self.whd_auth_type == AuthType.API_KEY:
            secret = self.whd_api_key or ""
        else:
            secret = self.whd_password or ""
        return User(name=self.whd_username, password=secret, type=self.whd_auth_type)
