"""
UEX API Client

All calls made on a user's behalf go through ``UEXClient``, built from the
credentials the user manager decrypted for that user.
"""
import json
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import requests

from uex_bot.users.manager import UEXCredentials
from uex_bot.users.validator import uex_auth_headers
from uex_bot.utils.logger import get_logger

logger = get_logger("uex")

DEFAULT_REQUEST_TIMEOUT = 15.0


@dataclass
class ReplyResult:
    success: bool
    message_id: Optional[Any] = None
    error: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)


class UEXClient:
    """Authenticated client for the UEX Corp REST API."""

    def __init__(
        self,
        credentials: UEXCredentials,
        base_url: str,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        self.credentials = credentials
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def _headers(self) -> Dict[str, str]:
        headers = uex_auth_headers(self.credentials.api_token, self.credentials.secret_key)
        headers["Content-Type"] = "application/json"
        return headers

    def send_reply(self, negotiation_hash: str, message: str) -> ReplyResult:
        """Post ``message`` to the negotiation identified by ``negotiation_hash``."""
        logger.info("Sending reply to negotiation", extra={"negotiation_hash": negotiation_hash})
        try:
            response = self.session.post(
                f"{self.base_url}/marketplace_negotiations_messages/",
                headers=self._headers(),
                json={"hash": negotiation_hash, "message": message, "is_production": 1},
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            logger.error("Failed to send reply to UEX", extra={"negotiation_hash": negotiation_hash, "error": str(e)})
            return ReplyResult(success=False, error=str(e))

        body = response.text or ""
        logger.debug(
            "UEX API response received",
            extra={"status": response.status_code, "negotiation_hash": negotiation_hash},
        )

        if not response.ok:
            error = f"HTTP {response.status_code}: {body.strip()[:200] or response.reason}"
            logger.error("Failed to send reply to UEX", extra={"negotiation_hash": negotiation_hash, "error": error})
            return ReplyResult(success=False, error=error)

        # UEX answers either with a JSON envelope or a bare status word.
        try:
            payload = json.loads(body)
        except ValueError:
            if body.strip() == "ok":
                logger.info("Reply sent successfully", extra={"negotiation_hash": negotiation_hash})
                return ReplyResult(success=True)
            return ReplyResult(success=False, error=f"UEX API error: {body.strip()[:200]}")

        if isinstance(payload, dict) and payload.get("status") == "ok":
            data = payload.get("data") or {}
            message_id = data.get("id_message") if isinstance(data, dict) else None
            logger.info(
                "Reply sent successfully",
                extra={"negotiation_hash": negotiation_hash, "message_id": message_id},
            )
            return ReplyResult(success=True, message_id=message_id, data=data if isinstance(data, dict) else {})

        error = None
        if isinstance(payload, dict):
            error = payload.get("message") or payload.get("error") or payload.get("status")
        return ReplyResult(success=False, error=f"UEX API error: {error or 'Unknown error'}")

    def test_connection(self) -> ReplyResult:
        """Hit the API root with the user's credentials."""
        try:
            response = self.session.get(f"{self.base_url}/", headers=self._headers(), timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            logger.error("UEX API connection test failed", extra={"error": str(e)})
            return ReplyResult(success=False, error=str(e))

        if response.ok:
            return ReplyResult(success=True)
        return ReplyResult(success=False, error=f"HTTP {response.status_code}")
