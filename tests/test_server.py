import hashlib
import hmac
import json
from pathlib import Path

import pytest

from tests.conftest import TEST_PASSPHRASE, RecordingNotifier
from uex_bot.config import APP_VERSION, BotConfig
from uex_bot.server import create_app
from uex_bot.users.manager import UserManager

SECRET = "server-secret"


@pytest.fixture()
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture()
def client(manager: UserManager, notifier: RecordingNotifier, users_path: Path):
    config = BotConfig(encryption_key=TEST_PASSPHRASE, users_file=users_path, uex_webhook_secret=SECRET)
    app = create_app(config, user_manager=manager, notifier=notifier)
    app.testing = True
    return app.test_client()


def _signed_post(client, payload: dict):
    body = json.dumps(payload).encode("utf-8")
    signature = "sha256=" + hmac.new(SECRET.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return client.post(
        "/webhook/uex",
        data=body,
        headers={"X-UEX-Signature": signature, "Content-Type": "application/json"},
    )


def test_health_reports_user_stats(client, manager: UserManager) -> None:
    manager.register("1", "abcdefghij", "klmnopqrst", "alice")
    response = client.get("/health")

    assert response.status_code == 200
    data = response.get_json()
    assert data["status"] == "ok"
    assert data["version"] == APP_VERSION
    assert data["users"]["totalUsers"] == 1
    assert data["users"]["activeUsers"] == 1
    assert data["dm_enabled"] is True


def test_webhook_delivers_dm(client, manager: UserManager, notifier: RecordingNotifier) -> None:
    manager.register("111", "abcdefghij", "klmnopqrst", "alice")
    response = _signed_post(client, {
        "negotiation_hash": "abc123def456",
        "message": "Still available?",
        "recipient_username": "alice",
    })

    assert response.status_code == 200
    assert response.get_json() == {"success": True, "message": "Notification sent via DM"}
    assert notifier.dms[0]["user_id"] == "111"


def test_webhook_rejects_unsigned_requests(client, notifier: RecordingNotifier) -> None:
    response = client.post("/webhook/uex", json={"negotiation_hash": "abc123def456", "message": "hi"})
    assert response.status_code == 401
    assert response.get_json()["success"] is False
    assert notifier.dms == []


def test_webhook_rejects_malformed_payload(client) -> None:
    response = _signed_post(client, {"message": "no hash"})
    assert response.status_code == 400
    assert "negotiation_hash" in response.get_json()["error"]


def test_webhook_without_matching_user(client) -> None:
    response = _signed_post(client, {
        "negotiation_hash": "abc123def456",
        "message": "hello",
        "recipient_username": "nobody",
    })
    assert response.status_code == 404


def test_test_dm_requires_registration(client, notifier: RecordingNotifier) -> None:
    response = client.post("/test/dm/999")
    assert response.status_code == 404
    assert notifier.dms == []


def test_test_dm_sends_to_registered_user(client, manager: UserManager, notifier: RecordingNotifier) -> None:
    manager.register("111", "abcdefghij", "klmnopqrst", "alice")
    response = client.post("/test/dm/111")
    assert response.status_code == 200
    assert response.get_json()["success"] is True
    assert notifier.dms[0]["embed"]["title"].endswith("UEX Discord Bot Test")


def test_test_dm_reports_delivery_failure(client, manager: UserManager, notifier: RecordingNotifier) -> None:
    manager.register("111", "abcdefghij", "klmnopqrst", "alice")
    notifier.dm_ok = False
    response = client.post("/test/dm/111")
    assert response.status_code == 400
    assert response.get_json()["success"] is False


def test_unknown_routes_return_json(client) -> None:
    response = client.get("/nope")
    assert response.status_code == 404
    assert response.get_json() == {"success": False, "error": "Endpoint not found"}

    response = client.get("/webhook/uex")
    assert response.status_code == 405
    assert response.get_json()["success"] is False


def test_webhook_with_numeric_username_answers_not_found(client) -> None:
    response = _signed_post(client, {"negotiation_hash": "abc12345", "message": "hi", "username": 12345})
    assert response.status_code == 404
    assert response.get_json()["success"] is False


def test_webhook_with_non_ascii_signature_is_unauthorized(client) -> None:
    response = client.post(
        "/webhook/uex",
        data=json.dumps({"negotiation_hash": "abc12345", "message": "hi"}),
        headers={"X-UEX-Signature": "sha256=é"},
    )
    assert response.status_code == 401
