"""Web Help Desk API integration."""

from .exceptions import WHDError, WHDAPIError, WHDRequestError, WHDResponseError
from .whd_client import WHDClient

__all__ = ["WHDClient", "WHDError", "WHDAPIError", "WHDRequestError", "WHDResponseError"]
