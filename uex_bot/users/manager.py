#!/usr/bin/env python3
"""
User Manager

Securely manages multiple users' UEX API credentials for a shared bot
deployment. Credentials are validated against UEX, encrypted, and kept in a
JSON store keyed by Discord user ID. Unregistering only deactivates a record;
records are kept for audit and are never deleted.

Every public method returns a typed result instead of raising, so command
and webhook handlers can turn failures into user-facing messages.
"""
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from uex_bot.config import BotConfig, load_config
from uex_bot.errors import DecryptionError, FailureReason, StoreCorruptError
from uex_bot.users.crypto import CredentialCipher
from uex_bot.users.store import UserStore
from uex_bot.users.validator import CredentialValidator
from uex_bot.utils.logger import get_logger

logger = get_logger("users")

RECENT_ACTIVITY_WINDOW = timedelta(hours=24)


# =============================================================================
# RESULT TYPES
# =============================================================================

@dataclass(frozen=True)
class UEXCredentials:
    api_token: str
    secret_key: str

    def __repr__(self) -> str:
        return "UEXCredentials(api_token=***, secret_key=***)"


@dataclass
class OperationResult:
    success: bool
    error: Optional[str] = None
    reason: Optional[FailureReason] = None


@dataclass
class CredentialLookup:
    found: bool
    credentials: Optional[UEXCredentials] = None
    error: Optional[str] = None


@dataclass
class ExternalUserMatch:
    found: bool
    user_id: Optional[str] = None
    discord_username: Optional[str] = None


@dataclass
class UserStats:
    total: int = 0
    active: int = 0
    inactive: int = 0
    recently_active: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            "totalUsers": self.total,
            "activeUsers": self.active,
            "inactiveUsers": self.inactive,
            "recentlyActive": self.recently_active,
        }


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value or not isinstance(value, str):
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    # Naive timestamps were written as UTC.
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _normalize_username(value: Optional[str]) -> str:
    return str(value or "").strip().lower()


# =============================================================================
# USER MANAGER
# =============================================================================

class UserManager:
    """Register, look up, and unregister users' UEX credentials."""

    def __init__(self, store: UserStore, cipher: CredentialCipher, validator: CredentialValidator, clock=utc_now):
        self.store = store
        self.cipher = cipher
        self.validator = validator
        self._clock = clock

    @classmethod
    def from_config(cls, config: BotConfig) -> "UserManager":
        return cls(
            store=UserStore(config.users_file),
            cipher=CredentialCipher(config.encryption_key),
            validator=CredentialValidator(config.uex_api_base_url, timeout=config.validation_timeout),
        )

    def _now(self) -> str:
        return self._clock().isoformat()

    def register(
        self,
        user_id: str,
        api_token: str,
        secret_key: str,
        username: str,
        uex_username: Optional[str] = None,
    ) -> OperationResult:
        """
        Validate and store a user's credentials.

        Re-registering replaces the credentials and ``encryptedAt`` but keeps
        the original ``registeredAt``.
        """
        user_id = str(user_id)
        logger.info("Registering user", extra={"user_id": user_id, "username": username})

        validation = self.validator.validate(api_token, secret_key)
        if not validation.valid:
            logger.warning(
                "Registration rejected",
                extra={"user_id": user_id, "reason": validation.reason.value if validation.reason else None},
            )
            return OperationResult(
                success=False,
                error=validation.error or "Invalid credentials",
                reason=validation.reason or FailureReason.INVALID_CREDENTIALS,
            )

        encrypted_token = self.cipher.encrypt(api_token)
        encrypted_secret = self.cipher.encrypt(secret_key)

        try:
            with self.store.transaction() as users:
                now = self._now()
                existing = users.get(user_id) or {}
                record: Dict[str, Any] = {
                    "username": username,
                    "uexUsername": uex_username.strip() if uex_username else existing.get("uexUsername"),
                    "registeredAt": existing.get("registeredAt") or now,
                    "encryptedAt": now,
                    "credentials": {
                        "apiToken": encrypted_token,
                        "secretKey": encrypted_secret,
                    },
                    "lastUsed": existing.get("lastUsed"),
                    "active": True,
                }
                users[user_id] = record
        except (StoreCorruptError, OSError) as e:
            logger.error("Failed to register user", extra={"user_id": user_id, "error": str(e)})
            return OperationResult(success=False, error=str(e), reason=FailureReason.STORE_ERROR)

        logger.info("User registered successfully", extra={"user_id": user_id, "username": username})
        return OperationResult(success=True)

    def get_credentials(self, user_id: str) -> CredentialLookup:
        """Decrypt an active user's credentials and stamp ``lastUsed``."""
        user_id = str(user_id)
        try:
            with self.store.transaction() as users:
                record = users.get(user_id)
                if not record or not record.get("active"):
                    return CredentialLookup(found=False)

                stored = record.get("credentials") or {}
                credentials = UEXCredentials(
                    api_token=self.cipher.decrypt(stored.get("apiToken")),
                    secret_key=self.cipher.decrypt(stored.get("secretKey")),
                )
                record["lastUsed"] = self._now()
        except DecryptionError as e:
            logger.error(
                "Failed to decrypt user credentials",
                extra={"user_id": user_id, "operation": "get_credentials", "error": str(e)},
            )
            return CredentialLookup(found=False, error="Stored credentials are unavailable")
        except (StoreCorruptError, OSError) as e:
            logger.error(
                "Failed to get user credentials",
                extra={"user_id": user_id, "operation": "get_credentials", "error": str(e)},
            )
            return CredentialLookup(found=False, error=str(e))

        return CredentialLookup(found=True, credentials=credentials)

    def is_registered(self, user_id: str) -> bool:
        try:
            record = self.store.load().get(str(user_id))
        except (StoreCorruptError, OSError) as e:
            logger.error("Failed to check user registration", extra={"user_id": str(user_id), "error": str(e)})
            return False
        return bool(record and record.get("active"))

    def unregister(self, user_id: str) -> OperationResult:
        """Deactivate a user's record; the record itself is kept for audit."""
        user_id = str(user_id)
        logger.info("Unregistering user", extra={"user_id": user_id})
        try:
            with self.store.transaction() as users:
                record = users.get(user_id)
                if record is None:
                    return OperationResult(success=False, error="User not found", reason=FailureReason.NOT_FOUND)
                record["active"] = False
                record["unregisteredAt"] = self._now()
        except (StoreCorruptError, OSError) as e:
            logger.error("Failed to unregister user", extra={"user_id": user_id, "error": str(e)})
            return OperationResult(success=False, error=str(e), reason=FailureReason.STORE_ERROR)

        logger.info("User unregistered successfully", extra={"user_id": user_id})
        return OperationResult(success=True)

    def find_by_external_username(self, uex_username: str) -> ExternalUserMatch:
        """
        Map a UEX username from a webhook to the Discord user that owns it.

        Only active records are considered. A record matches on its stored UEX
        username, or on its Discord username when no UEX username was given at
        registration. Comparison ignores case and surrounding whitespace; the
        first match in store order wins.
        """
        wanted = _normalize_username(uex_username)
        if not wanted:
            return ExternalUserMatch(found=False)

        try:
            users = self.store.load()
        except (StoreCorruptError, OSError) as e:
            logger.error("Failed to search users", extra={"uex_username": uex_username, "error": str(e)})
            return ExternalUserMatch(found=False)

        for user_id, record in users.items():
            if not record.get("active"):
                continue
            candidate = record.get("uexUsername") or record.get("username")
            if _normalize_username(candidate) == wanted:
                return ExternalUserMatch(found=True, user_id=user_id, discord_username=record.get("username"))

        return ExternalUserMatch(found=False)

    def stats(self) -> UserStats:
        try:
            users = self.store.load()
        except (StoreCorruptError, OSError) as e:
            logger.error("Failed to get user stats", extra={"error": str(e)})
            return UserStats()

        cutoff = self._clock() - RECENT_ACTIVITY_WINDOW
        stats = UserStats(total=len(users))
        for record in users.values():
            if record.get("active"):
                stats.active += 1
            else:
                stats.inactive += 1
            last_used = _parse_timestamp(record.get("lastUsed"))
            if last_used and last_used > cutoff:
                stats.recently_active += 1
        return stats

    def get_record(self, user_id: str) -> Optional[Dict[str, Any]]:
        """Raw stored record, including inactive ones. Credentials stay encrypted."""
        return self.store.load().get(str(user_id))


# =============================================================================
# PROCESS-WIDE INSTANCE
# =============================================================================

_manager: Optional[UserManager] = None
_manager_lock = threading.Lock()


def get_user_manager(config: Optional[BotConfig] = None) -> UserManager:
    """Get or create the process-wide user manager."""
    global _manager
    with _manager_lock:
        if _manager is None:
            _manager = UserManager.from_config(config or load_config())
        return _manager


def reset_user_manager() -> None:
    global _manager
    with _manager_lock:
        _manager = None
