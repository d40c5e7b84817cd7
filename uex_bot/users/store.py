"""
JSON-file user store.

The whole store is one JSON object keyed by Discord user id. Every mutation
is load -> modify -> save of the entire file, so mutations must go through
``transaction()``, which serializes them behind a process-wide lock. There is
no cross-process locking; run a single bot process per store file.
"""
import json
import os
import tempfile
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, Union

from uex_bot.errors import StoreCorruptError
from uex_bot.utils.logger import get_logger

logger = get_logger("users.store")

UserMapping = Dict[str, Dict[str, Any]]


class UserStore:
    """Load/save the ``user id -> record`` mapping backing the user manager."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._lock = threading.RLock()

    def load(self) -> UserMapping:
        """
        Read the backing file.

        A missing file is an empty store. A file that exists but does not hold
        a JSON object of objects raises ``StoreCorruptError``; the file is left
        untouched.
        """
        with self._lock:
            try:
                raw = self.path.read_text(encoding="utf-8")
            except FileNotFoundError:
                return {}

            try:
                data = json.loads(raw)
            except json.JSONDecodeError as e:
                logger.critical(
                    "User store is not valid JSON",
                    extra={"path": str(self.path), "error": str(e)},
                )
                raise StoreCorruptError(f"{self.path}: invalid JSON ({e})") from e

            if not isinstance(data, dict):
                logger.critical(
                    "User store top level is not an object",
                    extra={"path": str(self.path), "found_type": type(data).__name__},
                )
                raise StoreCorruptError(f"{self.path}: expected a JSON object, got {type(data).__name__}")

            for user_id, record in data.items():
                if not isinstance(record, dict):
                    logger.critical(
                        "User store record is not an object",
                        extra={"path": str(self.path), "user_id": user_id, "found_type": type(record).__name__},
                    )
                    raise StoreCorruptError(
                        f"{self.path}: record {user_id!r} is a {type(record).__name__}, expected an object"
                    )

            return data

    def save(self, users: UserMapping) -> None:
        """Overwrite the backing file with ``users``, creating its directory if needed."""
        with self._lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            payload = json.dumps(users, indent=2)

            fd, tmp_name = tempfile.mkstemp(
                dir=str(self.path.parent), prefix=f".{self.path.name}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(payload)
                os.replace(tmp_name, self.path)
            except BaseException:
                try:
                    os.unlink(tmp_name)
                except FileNotFoundError:
                    pass
                raise

    @contextmanager
    def transaction(self) -> Iterator[UserMapping]:
        """
        Hold the store lock across load, mutate and save.

        The mapping is saved only if the block finishes without raising and
        actually changed it; a lookup that finds nothing never creates the file.

        Usage:
            with store.transaction() as users:
                users[user_id]["active"] = False
        """
        with self._lock:
            users = self.load()
            before = json.dumps(users, sort_keys=True)
            yield users
            if json.dumps(users, sort_keys=True) != before:
                self.save(users)
