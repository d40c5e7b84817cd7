#!/usr/bin/env python3
"""
Configuration Loading & Validation

Reads the bot configuration from the environment (``.env.local`` wins over
``.env``), validates it against ``CONFIG_SCHEMA`` and returns an immutable
``BotConfig``. The encryption key is mandatory: without it nothing that
touches stored credentials can start.
"""
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

from dotenv import load_dotenv

from uex_bot.errors import ConfigError
from uex_bot.utils.logger import get_logger

logger = get_logger("config")

APP_NAME = "UEX Discord Bot"
APP_VERSION = "2.0.0"
USER_AGENT = "UEX-Discord-Bot/2.0-MultiUser"

# =============================================================================
# CONFIGURATION SCHEMA
# =============================================================================

CONFIG_SCHEMA = {
    # Required
    "USER_ENCRYPTION_KEY": {"type": str, "required": True, "min_length": 16},

    # Optional - with defaults
    "USERS_FILE": {"type": str, "default": "data/users.json"},
    "UEX_API_BASE_URL": {"type": str, "default": "https://api.uexcorp.space/2.0"},
    "UEX_VALIDATION_TIMEOUT": {"type": float, "default": 5.0, "min": 0.1, "max": 60},
    "UEX_REQUEST_TIMEOUT": {"type": float, "default": 15.0, "min": 0.1, "max": 120},
    "PORT": {"type": int, "default": 3000, "min": 1, "max": 65535},
    "WEBHOOK_HOST": {"type": str, "default": "0.0.0.0"},
    "RUN_WEBHOOK_SERVER": {"type": bool, "default": True},
    "LOG_LEVEL": {"type": str, "default": "INFO", "valid": ["DEBUG", "INFO", "WARNING", "ERROR"]},

    # Optional - no defaults (empty string if not set)
    "UEX_WEBHOOK_SECRET": {"type": str, "optional": True, "warn_if_unset": "webhook signatures will not be verified"},
    "DISCORD_BOT_TOKEN": {"type": str, "optional": True, "warn_if_unset": "DM notifications are disabled"},
    "DISCORD_GUILD_ID": {"type": str, "optional": True},
    "DISCORD_WEBHOOK_URL": {"type": str, "optional": True},
}


@dataclass(frozen=True)
class BotConfig:
    encryption_key: str
    users_file: Path = Path("data/users.json")
    uex_api_base_url: str = "https://api.uexcorp.space/2.0"
    validation_timeout: float = 5.0
    request_timeout: float = 15.0
    uex_webhook_secret: str = ""
    discord_bot_token: str = ""
    discord_guild_id: str = ""
    discord_webhook_url: str = ""
    port: int = 3000
    webhook_host: str = "0.0.0.0"
    run_webhook_server: bool = True
    log_level: str = "INFO"

    def __repr__(self) -> str:
        # Never let the key or tokens end up in a log line or traceback.
        return (
            f"BotConfig(users_file={str(self.users_file)!r}, "
            f"uex_api_base_url={self.uex_api_base_url!r}, port={self.port}, "
            f"webhook_secret={'set' if self.uex_webhook_secret else 'unset'}, "
            f"bot_token={'set' if self.discord_bot_token else 'unset'})"
        )


# =============================================================================
# VALIDATION
# =============================================================================

class ConfigValidator:
    """Validates configuration values against ``CONFIG_SCHEMA``."""

    def __init__(self, env: Mapping[str, str]):
        self.env = env
        self.errors: List[str] = []
        self.warnings: List[str] = []
        self.validated_config: Dict[str, Any] = {}

    def validate(self) -> Tuple[bool, Dict[str, Any]]:
        """
        Validate all configuration.

        Returns:
            (is_valid, validated_config)
        """
        for key, schema in CONFIG_SCHEMA.items():
            value = self.env.get(key)
            if isinstance(value, str):
                value = value.strip()

            if not value:
                if schema.get("required"):
                    self.errors.append(f"{key} is required")
                elif "default" in schema:
                    self.validated_config[key] = schema["default"]
                else:
                    self.validated_config[key] = ""
                    if "warn_if_unset" in schema:
                        self.warnings.append(f"{key} not set, {schema['warn_if_unset']}")
                continue

            try:
                value = self._coerce(value, schema["type"])
            except (ValueError, TypeError):
                self.errors.append(
                    f"{key}: Invalid value {value!r}, expected {schema['type'].__name__}"
                )
                continue

            if schema["type"] in (int, float):
                if "min" in schema and value < schema["min"]:
                    self.errors.append(f"{key}: Value {value} is below minimum {schema['min']}")
                    continue
                if "max" in schema and value > schema["max"]:
                    self.errors.append(f"{key}: Value {value} is above maximum {schema['max']}")
                    continue

            if schema["type"] == str and "min_length" in schema:
                if len(value) < schema["min_length"]:
                    # The value itself is a secret, only report its length.
                    self.errors.append(
                        f"{key}: Length {len(value)} is below minimum {schema['min_length']}"
                    )
                    continue

            if "valid" in schema:
                value = value.upper()
                if value not in schema["valid"]:
                    self.errors.append(f"{key}: Value '{value}' not in valid values: {schema['valid']}")
                    continue

            self.validated_config[key] = value

        for error in self.errors:
            logger.error(f"Config validation error: {error}")
        for warning in self.warnings:
            logger.warning(f"Config validation warning: {warning}")

        return len(self.errors) == 0, self.validated_config

    @staticmethod
    def _coerce(value: str, expected: type) -> Any:
        if expected == bool:
            lowered = value.lower()
            if lowered in ("true", "1", "yes", "on"):
                return True
            if lowered in ("false", "0", "no", "off"):
                return False
            raise ValueError(value)
        return expected(value)


def load_environment(base_dir: Optional[Path] = None) -> Optional[Path]:
    """Load ``.env.local`` if present, otherwise ``.env``. Returns the file used."""
    base_dir = base_dir or Path.cwd()
    for filename in (".env.local", ".env"):
        env_path = base_dir / filename
        if env_path.exists():
            load_dotenv(env_path)
            logger.info(f"Loaded environment from {env_path}")
            return env_path
    return None


def load_config(env: Optional[Mapping[str, str]] = None) -> BotConfig:
    """
    Build a ``BotConfig`` from ``env`` (defaults to ``os.environ`` after
    loading dotenv files).

    Raises:
        ConfigError: if any value is missing or invalid. All problems are
            reported at once.
    """
    if env is None:
        load_environment()
        env = os.environ

    validator = ConfigValidator(env)
    ok, values = validator.validate()
    if not ok:
        raise ConfigError("; ".join(validator.errors))

    config = BotConfig(
        encryption_key=values["USER_ENCRYPTION_KEY"],
        users_file=Path(values["USERS_FILE"]),
        uex_api_base_url=values["UEX_API_BASE_URL"].rstrip("/"),
        validation_timeout=values["UEX_VALIDATION_TIMEOUT"],
        request_timeout=values["UEX_REQUEST_TIMEOUT"],
        uex_webhook_secret=values["UEX_WEBHOOK_SECRET"],
        discord_bot_token=values["DISCORD_BOT_TOKEN"],
        discord_guild_id=values["DISCORD_GUILD_ID"],
        discord_webhook_url=values["DISCORD_WEBHOOK_URL"],
        port=values["PORT"],
        webhook_host=values["WEBHOOK_HOST"],
        run_webhook_server=values["RUN_WEBHOOK_SERVER"],
        log_level=values["LOG_LEVEL"],
    )
    logger.info("Configuration validated successfully", extra={"config": repr(config)})
    return config
