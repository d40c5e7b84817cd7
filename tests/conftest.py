"""Shared fixtures.

Logging is configured on import of ``uex_bot``; keep test runs from writing
log files or spamming the console.
"""

import os

os.environ.setdefault("LOG_TO_FILE", "false")
os.environ.setdefault("LOG_TO_CONSOLE", "false")

from pathlib import Path  # noqa: E402
from typing import Any, Dict, List, Optional  # noqa: E402

import pytest  # noqa: E402

from uex_bot.users.crypto import CredentialCipher  # noqa: E402
from uex_bot.users.manager import UserManager, reset_user_manager  # noqa: E402
from uex_bot.users.store import UserStore  # noqa: E402
from uex_bot.users.validator import CredentialValidator  # noqa: E402

TEST_PASSPHRASE = "test-encryption-key-0123456789"
TEST_BASE_URL = "https://uex.test/2.0"


class FakeResponse:
    def __init__(self, status_code: int = 200, text: str = "", json_data: Any = None, reason: str = "OK"):
        self.status_code = status_code
        self.text = text
        self._json = json_data
        self.reason = reason

    @property
    def ok(self) -> bool:
        return self.status_code < 400  # same rule as requests.Response.ok

    def json(self) -> Any:
        if self._json is None:
            raise ValueError("No JSON body")
        return self._json


class FakeSession:
    """Stands in for ``requests.Session``; replays queued responses or errors."""

    def __init__(self, responses: Optional[List[Any]] = None):
        self.responses: List[Any] = list(responses or [])
        self.calls: List[Dict[str, Any]] = []

    def queue(self, *responses: Any) -> None:
        self.responses.extend(responses)

    def _next(self, method: str, url: str, **kwargs: Any) -> FakeResponse:
        self.calls.append({"method": method, "url": url, **kwargs})
        if not self.responses:
            return FakeResponse(200, text="ok")
        item = self.responses.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item

    def get(self, url: str, **kwargs: Any) -> FakeResponse:
        return self._next("GET", url, **kwargs)

    def post(self, url: str, **kwargs: Any) -> FakeResponse:
        return self._next("POST", url, **kwargs)


@pytest.fixture(autouse=True)
def _reset_process_manager():
    reset_user_manager()
    yield
    reset_user_manager()


@pytest.fixture()
def cipher() -> CredentialCipher:
    return CredentialCipher(TEST_PASSPHRASE)


@pytest.fixture()
def users_path(tmp_path: Path) -> Path:
    return tmp_path / "data" / "users.json"


@pytest.fixture()
def store(users_path: Path) -> UserStore:
    return UserStore(users_path)


@pytest.fixture()
def uex_session() -> FakeSession:
    return FakeSession()


@pytest.fixture()
def validator(uex_session: FakeSession) -> CredentialValidator:
    return CredentialValidator(TEST_BASE_URL, timeout=5, session=uex_session)


@pytest.fixture()
def manager(store: UserStore, cipher: CredentialCipher, validator: CredentialValidator) -> UserManager:
    return UserManager(store, cipher, validator)


class RecordingNotifier:
    """Stands in for ``DiscordNotifier``; records what would have been sent."""

    def __init__(self, dm_ok: bool = True, channel_ok: bool = True, webhook_url: str = ""):
        self.dm_ok = dm_ok
        self.channel_ok = channel_ok
        self.webhook_url = webhook_url
        self.dms: List[Dict[str, Any]] = []
        self.channel_posts: List[Dict[str, Any]] = []

    def dm_available(self) -> bool:
        return True

    def channel_available(self) -> bool:
        return bool(self.webhook_url)

    def send_dm(self, user_id, embed=None, content=None):
        self.dms.append({"user_id": user_id, "embed": embed})
        return {"success": True} if self.dm_ok else {"success": False, "error": "Cannot send messages to this user"}

    def send_channel(self, embed=None, content=None):
        self.channel_posts.append({"embed": embed})
        return {"success": True} if self.channel_ok else {"success": False, "error": "Discord API error 500"}


