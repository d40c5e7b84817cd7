#!/usr/bin/env python3
"""
Structured Logging Module

Provides centralized logging with:
- Log levels (DEBUG, INFO, WARNING, ERROR, CRITICAL)
- File rotation (daily logs, keep 30 days) plus a separate error log
- Structured JSON logging for files, human-readable console output
- Redaction of credential fields passed through ``extra``
"""
import os
import sys
import json
import logging
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from datetime import datetime
from typing import Any, Dict, Optional

# =============================================================================
# CONFIGURATION
# =============================================================================

LOG_DIR = Path(os.environ.get("LOG_DIR", "logs"))
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
LOG_FORMAT = os.environ.get("LOG_FORMAT", "structured")  # "structured" or "simple"
LOG_TO_FILE = os.environ.get("LOG_TO_FILE", "true").lower() == "true"
LOG_TO_CONSOLE = os.environ.get("LOG_TO_CONSOLE", "true").lower() == "true"
LOG_ROTATE_WHEN = os.environ.get("LOG_ROTATE_WHEN", "midnight")  # midnight, D, H
LOG_INTERVAL = int(os.environ.get("LOG_INTERVAL", "1"))  # days

ROOT_LOGGER_NAME = "uex_bot"

# Attributes every LogRecord carries; anything else came in through ``extra``.
_RESERVED_ATTRS = set(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}

SENSITIVE_KEYS = ("api_token", "apitoken", "secret_key", "secretkey", "password", "credentials")
REDACTED = "***"

# =============================================================================
# LOGGER SETUP
# =============================================================================

def setup_logger(name: str = ROOT_LOGGER_NAME, level: str = None) -> logging.Logger:
    """
    Set up a logger with file rotation and console output.

    Child loggers (``uex_bot.users`` etc.) get no handlers of their own and
    propagate to the ``uex_bot`` logger configured here.

    Args:
        name: Logger name
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)

    Returns:
        Configured logger
    """
    logger = logging.getLogger(name)

    # Don't add handlers if already configured
    if logger.handlers:
        return logger

    log_level = getattr(logging, (level or LOG_LEVEL).upper(), logging.INFO)
    logger.setLevel(log_level)

    if LOG_FORMAT == "structured":
        formatter = StructuredFormatter()
    else:
        formatter = SimpleFormatter()
    console_formatter = SimpleFormatter()

    redactor = RedactingFilter()

    if LOG_TO_FILE:
        LOG_DIR.mkdir(parents=True, exist_ok=True)

        file_handler = TimedRotatingFileHandler(
            filename=LOG_DIR / f"{name}.log",
            when=LOG_ROTATE_WHEN,
            interval=LOG_INTERVAL,
            backupCount=30,
            encoding='utf-8',
        )
        file_handler.setLevel(log_level)
        file_handler.setFormatter(formatter)
        file_handler.addFilter(redactor)
        logger.addHandler(file_handler)

        error_handler = TimedRotatingFileHandler(
            filename=LOG_DIR / f"{name}_errors.log",
            when=LOG_ROTATE_WHEN,
            interval=LOG_INTERVAL,
            backupCount=30,
            encoding='utf-8',
        )
        error_handler.setLevel(logging.ERROR)
        error_handler.set_name("errors")
        error_handler.setFormatter(formatter)
        error_handler.addFilter(redactor)
        logger.addHandler(error_handler)

    if LOG_TO_CONSOLE:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(log_level)
        console_handler.setFormatter(console_formatter)
        console_handler.addFilter(redactor)
        logger.addHandler(console_handler)

    logger.propagate = False

    return logger


# =============================================================================
# FILTERS & FORMATTERS
# =============================================================================

def _extra_fields(record: logging.LogRecord) -> Dict[str, Any]:
    return {k: v for k, v in vars(record).items() if k not in _RESERVED_ATTRS}


def _is_sensitive(key: str) -> bool:
    lowered = key.lower()
    return any(marker in lowered for marker in SENSITIVE_KEYS)


class RedactingFilter(logging.Filter):
    """Mask credential-looking fields passed via ``extra``."""

    def filter(self, record: logging.LogRecord) -> bool:
        for key in _extra_fields(record):
            if _is_sensitive(key):
                setattr(record, key, REDACTED)
        return True


class StructuredFormatter(logging.Formatter):
    """JSON-structured log formatter for better parsing."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        log_data.update(_extra_fields(record))

        return json.dumps(log_data, default=str)


class SimpleFormatter(logging.Formatter):
    """Simple human-readable log formatter."""

    def __init__(self):
        super().__init__(
            fmt='[%(asctime)s] %(levelname)-8s %(name)s: %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        extra = _extra_fields(record)
        if extra:
            context = " ".join(f"{k}={v}" for k, v in sorted(extra.items()))
            line = f"{line} [{context}]"
        return line


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Get a logger under the ``uex_bot`` hierarchy.

    ``get_logger("users")`` returns ``uex_bot.users``; the root bot logger is
    configured on first use.
    """
    root = setup_logger(ROOT_LOGGER_NAME)
    if not name or name == ROOT_LOGGER_NAME:
        return root
    if name.startswith(ROOT_LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def set_level(level: str) -> None:
    """Apply the configured level to the bot logger. The error log stays at ERROR."""
    log_level = getattr(logging, level.upper(), logging.INFO)
    root = setup_logger(ROOT_LOGGER_NAME)
    root.setLevel(log_level)
    for handler in root.handlers:
        if handler.get_name() != "errors":
            handler.setLevel(log_level)
