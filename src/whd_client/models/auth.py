"""Authentication models for the Web Help Desk API."""

from enum import IntEnum
from typing import Dict, Any
from pydantic import BaseModel, Field


class AuthType(IntEnum):
    """How a user's secret is sent to WHD."""
    API_KEY = 0
    SESSION_KEY = 1
    PASSWORD = 2

    @classmethod
    def from_name(cls, name: str) -> "AuthType":
        """Resolve names such as 'api_key' or 'session-key'."""
        normalized = name.strip().upper().replace('-', '_')
        try:
            return cls[normalized]
        except KeyError:
            raise ValueError(f"Unknown WHD auth type: {name}")


class User(BaseModel):
    """Credentials used to authenticate WHD requests.

    For API_KEY auth, ``password`` holds the API key. For SESSION_KEY auth
    it holds the session key returned by ``WHDClient.get_session_key``.
    """

    name: str = Field(default="", description="WHD username")
    password: str = Field(default="", description="Password, session key or API key")
    type: AuthType = Field(default=AuthType.API_KEY, description="Authentication type")

    def with_session_key(self, session_key: str) -> "User":
        """Return a copy of this user authenticating with a session key."""
        return User(name=self.name, password=session_key, type=AuthType.SESSION_KEY)


def wrap_auth(params: Dict[str, Any], user: User) -> Dict[str, Any]:
    """
    Add authentication query parameters for a user.

    Args:
        params: Existing query parameters (not modified)
        user: User credentials

    Returns:
        New parameter dict including the auth parameters
    """
    wrapped = dict(params)

    if user.type == AuthType.PASSWORD:
        wrapped["username"] = user.name
        wrapped["password"] = user.password
    elif user.type == AuthType.SESSION_KEY:
        wrapped["username"] = user.name
        wrapped["sessionKey"] = user.password
    elif user.type == AuthType.API_KEY:
        wrapped["apiKey"] = user.password

    return wrapped
