"""
UEX Webhook Routing

Incoming UEX notifications are signature-checked, parsed, matched to the
Discord user who owns the UEX account, and delivered as a DM embed. When no
registered user matches, the notification goes to the channel webhook if one
is configured.
"""
import hashlib
import hmac
import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union

from uex_bot.errors import WebhookError
from uex_bot.notifications.discord_rest import DiscordNotifier
from uex_bot.users.manager import UserManager
from uex_bot.utils.logger import get_logger

logger = get_logger("webhook")

SIGNATURE_HEADER = "X-UEX-Signature"
SIGNATURE_PREFIX = "sha256="

EVENT_COLORS = {
    "negotiation_started": 0x00FF00,
    "negotiation_message": 0x0099FF,
    "negotiation_completed": 0xFFD700,
}
DEFAULT_COLOR = 0x0099FF

MESSAGE_FIELDS = ("message", "last_message")
SENDER_FIELDS = ("client_username", "sender_username")
RECIPIENT_FIELDS = ("recipient_username", "owner_username", "username")


# =============================================================================
# SIGNATURE & PAYLOAD
# =============================================================================

def verify_signature(body: bytes, signature: Optional[str], secret: Optional[str]) -> bool:
    """Check ``X-UEX-Signature`` (``sha256=<hex hmac>``) against ``body``."""
    if not secret:
        logger.warning("UEX_WEBHOOK_SECRET not configured - skipping signature verification")
        return True

    if not signature:
        logger.warning("No signature provided but UEX_WEBHOOK_SECRET is configured")
        return False

    expected = SIGNATURE_PREFIX + hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    if not hmac.compare_digest(signature.strip().encode("utf-8"), expected.encode("utf-8")):
        logger.error("UEX webhook signature mismatch")
        return False
    return True


def _first(data: Dict[str, Any], keys, default=None):
    for key in keys:
        value = data.get(key)
        if value not in (None, ""):
            return value
    return default


@dataclass
class WebhookPayload:
    negotiation_hash: str
    message: str
    sender: str = "Unknown sender"
    recipient: Optional[str] = None
    listing_title: str = "Unknown listing"
    event_type: str = "negotiation"
    listing_price: Optional[Any] = None
    listing_location: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict)


def parse_payload(body: Union[bytes, str]) -> WebhookPayload:
    """
    Parse a UEX webhook body.

    Raises:
        WebhookError: invalid JSON, a non-object body, or a missing
            ``negotiation_hash`` / message.
    """
    try:
        data = json.loads(body)
    except (ValueError, TypeError) as e:
        raise WebhookError(f"Invalid JSON: {e}") from e

    if not isinstance(data, dict):
        raise WebhookError("Webhook body must be a JSON object")

    negotiation_hash = data.get("negotiation_hash")
    message = _first(data, MESSAGE_FIELDS)
    recipient = _first(data, RECIPIENT_FIELDS)
    if not negotiation_hash or not message:
        raise WebhookError("Missing required fields: negotiation_hash, message")

    return WebhookPayload(
        negotiation_hash=str(negotiation_hash),
        message=str(message),
        sender=str(_first(data, SENDER_FIELDS, "Unknown sender")),
        recipient=str(recipient) if recipient is not None else None,
        listing_title=str(data.get("listing_title") or "Unknown listing"),
        event_type=str(data.get("event_type") or "negotiation"),
        listing_price=data.get("listing_price"),
        listing_location=data.get("listing_location"),
        raw=data,
    )


def build_notification_embed(payload: WebhookPayload) -> Dict[str, Any]:
    """Build a Discord embed for a UEX notification."""
    embed = {
        "title": "🔔 New UEX Message",
        "description": f"**{payload.listing_title}**",
        "color": EVENT_COLORS.get(payload.event_type, DEFAULT_COLOR),
        "fields": [
            {"name": "👤 From", "value": payload.sender, "inline": True},
            {"name": "📝 Message", "value": f'"{payload.message[:1000]}"', "inline": False},
            {
                "name": "💬 Reply Command",
                "value": f"`/reply {payload.negotiation_hash} your message here`",
                "inline": False,
            },
        ],
        "footer": {"text": f"Negotiation: {payload.negotiation_hash}"},
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

    if payload.listing_price:
        embed["fields"].append({"name": "💰 Price", "value": f"{payload.listing_price} aUEC", "inline": True})

    if payload.listing_location:
        embed["fields"].append({"name": "📍 Location", "value": str(payload.listing_location), "inline": True})

    return embed


# =============================================================================
# ROUTER
# =============================================================================

@dataclass
class RouteResult:
    success: bool
    status_code: int = 200
    error: Optional[str] = None
    user_id: Optional[str] = None
    delivered_to: Optional[str] = None  # "dm" or "channel"


class WebhookRouter:
    """Route a UEX webhook to the owning Discord user."""

    def __init__(self, user_manager: UserManager, notifier: DiscordNotifier, webhook_secret: str = ""):
        self.user_manager = user_manager
        self.notifier = notifier
        self.webhook_secret = webhook_secret

    def process(self, body: bytes, signature: Optional[str] = None) -> RouteResult:
        logger.info("Processing UEX webhook")

        if not verify_signature(body, signature, self.webhook_secret):
            return RouteResult(success=False, status_code=401, error="Invalid webhook signature")

        try:
            payload = parse_payload(body)
        except WebhookError as e:
            logger.warning("Rejected UEX webhook", extra={"error": str(e)})
            return RouteResult(success=False, status_code=400, error=str(e))

        embed = build_notification_embed(payload)

        match = self.user_manager.find_by_external_username(payload.recipient) if payload.recipient else None
        if match and match.found:
            sent = self.notifier.send_dm(match.user_id, embed=embed)
            if sent.get("success"):
                logger.info(
                    "UEX notification sent via DM",
                    extra={"negotiation_hash": payload.negotiation_hash, "user_id": match.user_id},
                )
                return RouteResult(success=True, user_id=match.user_id, delivered_to="dm")
            return RouteResult(success=False, status_code=502, error=sent.get("error"), user_id=match.user_id)

        if self.notifier.channel_available():
            sent = self.notifier.send_channel(embed=embed)
            if sent.get("success"):
                return RouteResult(success=True, delivered_to="channel")
            return RouteResult(success=False, status_code=502, error=sent.get("error"))

        logger.warning(
            "No registered user for UEX webhook",
            extra={"negotiation_hash": payload.negotiation_hash, "uex_username": payload.recipient},
        )
        return RouteResult(success=False, status_code=404, error="No registered user for this notification")
