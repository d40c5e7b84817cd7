#!/usr/bin/env python3
"""
Discord Notifications

Delivers UEX notifications to Discord over plain REST, so the webhook server
does not need a gateway connection of its own:
- Direct messages through the bot account (Discord API v10)
- Channel messages through an incoming webhook URL
"""
from typing import Any, Dict, Optional

import requests

from uex_bot.utils.logger import get_logger

logger = get_logger("notifications")

DISCORD_API_BASE = "https://discord.com/api/v10"
DEFAULT_TIMEOUT = 10


class DiscordNotifier:
    """Send embeds to Discord users (DM) or to a channel webhook."""

    def __init__(
        self,
        bot_token: str = "",
        webhook_url: str = "",
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self.bot_token = bot_token
        self.webhook_url = webhook_url
        self.session = session or requests.Session()
        self.timeout = timeout

    def dm_available(self) -> bool:
        """Check if the bot token is configured."""
        return bool(self.bot_token)

    def channel_available(self) -> bool:
        """Check if a channel webhook is configured."""
        return bool(self.webhook_url)

    def _bot_headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bot {self.bot_token}",
            "Content-Type": "application/json",
        }

    def send_dm(self, user_id: str, embed: Dict[str, Any] = None, content: str = None) -> Dict[str, Any]:
        """
        Send a Discord DM.

        Note: The user must share a server with the bot.
        """
        if not self.dm_available():
            return {"success": False, "error": "Discord bot not configured"}

        try:
            response = self.session.post(
                f"{DISCORD_API_BASE}/users/@me/channels",
                headers=self._bot_headers(),
                json={"recipient_id": str(user_id)},
                timeout=self.timeout,
            )
            if response.status_code not in (200, 201):
                logger.warning(
                    "Could not open DM channel",
                    extra={"user_id": str(user_id), "status": response.status_code},
                )
                return {"success": False, "error": f"Could not create DM: {response.text}"}

            channel_id = response.json()["id"]

            payload: Dict[str, Any] = {}
            if content:
                payload["content"] = content
            if embed:
                payload["embeds"] = [embed]

            response = self.session.post(
                f"{DISCORD_API_BASE}/channels/{channel_id}/messages",
                headers=self._bot_headers(),
                json=payload,
                timeout=self.timeout,
            )
        except (requests.exceptions.RequestException, KeyError, ValueError) as e:
            logger.error("Failed to DM user", extra={"user_id": str(user_id), "error": str(e)})
            return {"success": False, "error": str(e)}

        if response.status_code in (200, 201):
            logger.info("Notification sent via DM", extra={"user_id": str(user_id)})
            return {"success": True}

        logger.warning("Discord rejected DM", extra={"user_id": str(user_id), "status": response.status_code})
        return {"success": False, "error": response.text}

    def send_channel(self, embed: Dict[str, Any] = None, content: str = None) -> Dict[str, Any]:
        """Post to the configured channel webhook."""
        if not self.channel_available():
            return {"success": False, "error": "Discord webhook not configured"}

        payload: Dict[str, Any] = {}
        if content:
            payload["content"] = content
        if embed:
            payload["embeds"] = [embed]

        try:
            response = self.session.post(self.webhook_url, json=payload, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            logger.error("Discord webhook failed", extra={"error": str(e)})
            return {"success": False, "error": str(e)}

        # Webhooks answer 204 unless ?wait=true is set.
        if response.status_code in (200, 204):
            logger.info("Notification sent to Discord channel")
            return {"success": True}

        return {"success": False, "error": f"Discord API error {response.status_code}: {response.text}"}
