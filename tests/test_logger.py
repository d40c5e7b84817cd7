import json
import logging

from uex_bot.utils.logger import (
    REDACTED,
    RedactingFilter,
    SimpleFormatter,
    StructuredFormatter,
    get_logger,
    set_level,
)


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord("uex_bot.test", logging.INFO, __file__, 1, "hello %s", ("world",), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_redacting_filter_masks_credential_fields() -> None:
    record = _record(api_token="abcdefghij", secretKey="klmnopqrst", user_id="123")
    assert RedactingFilter().filter(record)
    assert record.api_token == REDACTED
    assert record.secretKey == REDACTED
    assert record.user_id == "123"


def test_structured_formatter_emits_json_with_extras() -> None:
    data = json.loads(StructuredFormatter().format(_record(user_id="123")))
    assert data["message"] == "hello world"
    assert data["level"] == "INFO"
    assert data["user_id"] == "123"


def test_simple_formatter_appends_context() -> None:
    line = SimpleFormatter().format(_record(user_id="123"))
    assert line.endswith("hello world [user_id=123]")


def test_get_logger_namespaces_children() -> None:
    assert get_logger("users").name == "uex_bot.users"
    assert get_logger("uex_bot.webhook").name == "uex_bot.webhook"
    assert get_logger().name == "uex_bot"


def test_set_level_keeps_error_log_at_error() -> None:
    root = get_logger()
    previous = root.level
    errors = logging.Handler()
    errors.set_name("errors")
    errors.setLevel(logging.ERROR)
    console = logging.Handler()
    root.addHandler(errors)
    root.addHandler(console)
    try:
        set_level("debug")
        assert root.level == logging.DEBUG
        assert console.level == logging.DEBUG
        assert errors.level == logging.ERROR
    finally:
        root.removeHandler(errors)
        root.removeHandler(console)
        root.setLevel(previous)
