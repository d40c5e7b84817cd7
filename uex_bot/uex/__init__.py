"""UEX Corp API client and webhook routing."""
from .client import UEXClient, ReplyResult
from .webhook import (
    WebhookRouter,
    WebhookPayload,
    RouteResult,
    verify_signature,
    parse_payload,
    build_notification_embed,
)

__all__ = [
    "UEXClient",
    "ReplyResult",
    "WebhookRouter",
    "WebhookPayload",
    "RouteResult",
    "verify_signature",
    "parse_payload",
    "build_notification_embed",
]
