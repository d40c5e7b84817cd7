"""Outbound Discord notifications."""
from .discord_rest import DiscordNotifier

__all__ = ["DiscordNotifier"]
