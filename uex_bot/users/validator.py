"""
UEX credential validation.

A candidate credential pair is first checked for length, then tried against
the UEX API root. Timeouts and connection failures are treated as success so
that UEX outages do not block registration; bad credentials that slip through
surface on the first real API call instead.
"""
from dataclasses import dataclass
from typing import Optional

import requests

from uex_bot.config import USER_AGENT
from uex_bot.errors import FailureReason
from uex_bot.utils.logger import get_logger

logger = get_logger("users.validator")

MIN_CREDENTIAL_LENGTH = 10
DEFAULT_VALIDATION_TIMEOUT = 5.0


@dataclass
class ValidationResult:
    valid: bool
    error: Optional[str] = None
    reason: Optional[FailureReason] = None


def uex_auth_headers(api_token: str, secret_key: str) -> dict:
    """Headers UEX expects on every authenticated call."""
    return {
        "Authorization": f"Bearer {api_token}",
        "secret_key": secret_key,
        "User-Agent": USER_AGENT,
    }


class CredentialValidator:
    """Checks a UEX ``(api_token, secret_key)`` pair before it is stored."""

    def __init__(
        self,
        base_url: str,
        timeout: float = DEFAULT_VALIDATION_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def validate(self, api_token: str, secret_key: str) -> ValidationResult:
        if (
            not api_token
            or not secret_key
            or len(api_token) < MIN_CREDENTIAL_LENGTH
            or len(secret_key) < MIN_CREDENTIAL_LENGTH
        ):
            return ValidationResult(
                valid=False,
                error=f"API token and secret key must be at least {MIN_CREDENTIAL_LENGTH} characters",
                reason=FailureReason.INVALID_FORMAT,
            )

        logger.info("Validating UEX credentials")
        try:
            response = self.session.get(
                f"{self.base_url}/",
                headers=uex_auth_headers(api_token, secret_key),
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout:
            logger.warning("UEX API validation timeout - allowing registration anyway")
            return ValidationResult(valid=True, reason=FailureReason.VALIDATION_TIMEOUT)
        except requests.exceptions.ConnectionError as e:
            logger.warning(
                "Network error during validation - allowing registration",
                extra={"error": str(e)},
            )
            return ValidationResult(valid=True, reason=FailureReason.NETWORK_ERROR)
        except requests.exceptions.RequestException as e:
            logger.error("UEX credentials validation error", extra={"error": str(e)})
            return ValidationResult(valid=False, error=str(e), reason=FailureReason.INVALID_CREDENTIALS)

        if 200 <= response.status_code < 300:
            logger.info("UEX credentials validation successful")
            return ValidationResult(valid=True)

        error = f"HTTP {response.status_code}: {response.reason}"
        logger.warning("UEX credentials validation failed", extra={"error": error})
        return ValidationResult(valid=False, error=error, reason=FailureReason.INVALID_CREDENTIALS)
