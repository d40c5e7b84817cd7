import os
from pathlib import Path

import pytest

from uex_bot.config import ConfigValidator, load_config, load_environment
from uex_bot.errors import ConfigError

KEY = "a-sufficiently-long-key"


def test_defaults_apply_when_only_key_is_set() -> None:
    config = load_config({"USER_ENCRYPTION_KEY": KEY})

    assert config.encryption_key == KEY
    assert config.users_file == Path("data/users.json")
    assert config.uex_api_base_url == "https://api.uexcorp.space/2.0"
    assert config.validation_timeout == 5.0
    assert config.port == 3000
    assert config.webhook_host == "0.0.0.0"
    assert config.run_webhook_server is True
    assert config.log_level == "INFO"
    assert config.uex_webhook_secret == ""
    assert config.discord_bot_token == ""


def test_missing_encryption_key_is_fatal() -> None:
    with pytest.raises(ConfigError, match="USER_ENCRYPTION_KEY is required"):
        load_config({})


def test_short_key_error_does_not_leak_the_key() -> None:
    with pytest.raises(ConfigError) as excinfo:
        load_config({"USER_ENCRYPTION_KEY": "tooshort"})
    assert "tooshort" not in str(excinfo.value)
    assert "Length 8" in str(excinfo.value)


def test_values_are_coerced_and_normalized() -> None:
    config = load_config({
        "USER_ENCRYPTION_KEY": KEY,
        "USERS_FILE": "/var/lib/uex/users.json",
        "UEX_API_BASE_URL": "https://uex.example/2.0/",
        "UEX_VALIDATION_TIMEOUT": "2.5",
        "PORT": "8080",
        "RUN_WEBHOOK_SERVER": "no",
        "LOG_LEVEL": "debug",
        "DISCORD_BOT_TOKEN": " token ",
    })
    assert config.users_file == Path("/var/lib/uex/users.json")
    assert config.uex_api_base_url == "https://uex.example/2.0"
    assert config.validation_timeout == 2.5
    assert config.port == 8080
    assert config.run_webhook_server is False
    assert config.log_level == "DEBUG"
    assert config.discord_bot_token == "token"


def test_all_errors_are_reported_together() -> None:
    validator = ConfigValidator({"PORT": "99999", "RUN_WEBHOOK_SERVER": "maybe", "LOG_LEVEL": "LOUD"})
    ok, _ = validator.validate()
    assert not ok
    assert len(validator.errors) == 4


def test_repr_never_shows_secrets() -> None:
    config = load_config({"USER_ENCRYPTION_KEY": KEY, "DISCORD_BOT_TOKEN": "bot-token-value"})
    text = repr(config)
    assert KEY not in text
    assert "bot-token-value" not in text
    assert "bot_token='set'" not in text
    assert "bot_token=set" in text


def test_load_environment_prefers_local_file(tmp_path: Path) -> None:
    (tmp_path / ".env").write_text("UEX_TEST_MARKER=from-env\n", encoding="utf-8")
    (tmp_path / ".env.local").write_text("UEX_TEST_MARKER=from-local\n", encoding="utf-8")

    try:
        used = load_environment(tmp_path)
        assert used == tmp_path / ".env.local"
        assert os.environ["UEX_TEST_MARKER"] == "from-local"
    finally:
        os.environ.pop("UEX_TEST_MARKER", None)


def test_load_environment_without_files(tmp_path: Path) -> None:
    assert load_environment(tmp_path) is None


def test_unset_optional_features_are_warned_about() -> None:
    validator = ConfigValidator({"USER_ENCRYPTION_KEY": KEY})
    ok, _ = validator.validate()
    assert ok
    assert any(w.startswith("UEX_WEBHOOK_SECRET not set") for w in validator.warnings)
    assert any(w.startswith("DISCORD_BOT_TOKEN not set") for w in validator.warnings)

    configured = ConfigValidator({"USER_ENCRYPTION_KEY": KEY, "UEX_WEBHOOK_SECRET": "s", "DISCORD_BOT_TOKEN": "t"})
    configured.validate()
    assert configured.warnings == []
