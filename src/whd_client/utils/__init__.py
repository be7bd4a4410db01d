"""Utility modules for the WHD client."""

from .logger import setup_logging, get_logger
from .health import HealthChecker

__all__ = ["setup_logging", "get_logger", "HealthChecker"]
