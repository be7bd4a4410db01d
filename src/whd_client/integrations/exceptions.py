"""Errors raised by the WHD client."""

from typing import Optional


class WHDError(Exception):
    """Base class for all WHD client errors."""


class WHDRequestError(WHDError):
    """The HTTP request could not be completed, even after retrying."""


class WHDResponseError(WHDError):
    """WHD answered with a body that is not what the operation expects."""


class WHDAPIError(WHDError):
    """WHD answered with an error status or rejected the request."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        reason: Optional[str] = None
    ):
        super().__init__(message)
        self.status_code = status_code
        self.reason = reason
