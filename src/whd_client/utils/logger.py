"""Logging configuration and utilities."""

import logging
import logging.config
import yaml
import os
from pathlib import Path
from typing import Any, Dict, Optional

DEFAULT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging(
    config_path: Optional[str] = None,
    log_level: Optional[str] = None,
    logs_dir: Optional[str] = None
) -> None:
    """
    Setup logging configuration for applications using the WHD client.

    The library itself never calls this; scripts such as check_auth.py do.

    Args:
        config_path: Path to logging configuration file
        log_level: Override log level
        logs_dir: Directory for log files, None to log to the console only
    """
    if logs_dir:
        Path(logs_dir).mkdir(exist_ok=True)

    if config_path is None:
        config_path = "config/logging.yaml"

    level = getattr(logging, log_level.upper() if log_level else 'INFO')
    handlers = [logging.StreamHandler()]
    if logs_dir:
        handlers.append(logging.FileHandler(f'{logs_dir}/whd_client.log'))

    if os.path.exists(config_path):
        try:
            with open(config_path, 'r') as f:
                config = yaml.safe_load(f)

            # Override log level if provided
            if log_level:
                config['root']['level'] = log_level.upper()
                for logger_name in config.get('loggers', {}):
                    config['loggers'][logger_name]['level'] = log_level.upper()

            logging.config.dictConfig(config)
        except Exception as e:
            logging.basicConfig(level=level, format=DEFAULT_FORMAT, handlers=handlers)
            logging.warning(f"Failed to load logging config from {config_path}: {e}")
    else:
        logging.basicConfig(level=level, format=DEFAULT_FORMAT, handlers=handlers)
        logging.debug(f"Logging config file not found at {config_path}, using basic configuration")


# Query parameters and cookies that carry WHD credentials
SECRET_KEYS = frozenset({"apiKey", "password", "sessionKey", "wosid", "api_key", "session_key"})


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def mask_secret(value: Any) -> str:
    """Keep only enough of a credential to tell two of them apart."""
    text = str(value)
    if len(text) <= 4:
        return "****"
    return f"****{text[-4:]}"


def redact(values: Dict[str, Any]) -> Dict[str, Any]:
    """Copy of ``values`` with WHD credentials masked, for logging query parameters."""
    return {k: mask_secret(v) if k in SECRET_KEYS else v for k, v in values.items()}


class StructuredLogger:
    """Logger that appends ``key=value`` context, masking WHD credentials.

    Used where one operation spans several requests, such as the
    session + upload pair of an attachment upload.
    """

    def __init__(self, logger: logging.Logger, context: Optional[Dict[str, Any]] = None):
        self.logger = logger
        self._context = dict(context or {})

    def with_context(self, **kwargs) -> "StructuredLogger":
        return StructuredLogger(self.logger, {**self._context, **kwargs})

    def _format_message(self, message: str) -> str:
        if not self._context:
            return message
        context_str = " | ".join(f"{k}={v}" for k, v in redact(self._context).items())
        return f"{message} | {context_str}"

    def log(self, level: int, message: str) -> None:
        if self.logger.isEnabledFor(level):
            self.logger.log(level, self._format_message(message))

    def debug(self, message: str):
        self.log(logging.DEBUG, message)

    def info(self, message: str):
        self.log(logging.INFO, message)

    def warning(self, message: str):
        self.log(logging.WARNING, message)

    def error(self, message: str):
        self.log(logging.ERROR, message)


def get_structured_logger(name: str, **context) -> StructuredLogger:
    return StructuredLogger(get_logger(name), context)
