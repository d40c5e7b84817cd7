"""Utility modules for the UEX Discord bot."""
from uex_bot.utils.logger import get_logger, set_level, setup_logger

__all__ = [
    "get_logger",
    "set_level",
    "setup_logger",
]
