"""
Error types shared across the bot.

Manager operations turn most of these into typed results; they only cross
module boundaries inside the credential subsystem.
"""
from enum import Enum


class UEXBotError(Exception):
    """Base class for all bot errors."""


class ConfigError(UEXBotError):
    """Required configuration is missing or invalid."""


class DecryptionError(UEXBotError):
    """A stored credential token could not be decrypted."""


class StoreCorruptError(UEXBotError):
    """The user store file exists but is not a readable JSON object."""


class WebhookError(UEXBotError):
    """An inbound UEX webhook payload is malformed."""


class FailureReason(str, Enum):
    INVALID_FORMAT = "invalid_format"
    INVALID_CREDENTIALS = "invalid_credentials"
    VALIDATION_TIMEOUT = "validation_timeout"
    NETWORK_ERROR = "network_error"
    NOT_FOUND = "not_found"
    DECRYPTION_FAILED = "decryption_failed"
    STORE_ERROR = "store_error"
