"""Embeds shared by the slash commands."""
from datetime import datetime, timezone
from typing import Optional

import discord

from uex_bot.users.manager import UserStats

FOOTER = "UEX Discord Bot"
COLOR_SUCCESS = 0x00FF00
COLOR_ERROR = 0xFF0000
COLOR_INFO = 0x0099FF


def _embed(title: str, description: str = None, color: int = COLOR_INFO) -> discord.Embed:
    embed = discord.Embed(
        title=title,
        description=description,
        color=color,
        timestamp=datetime.now(timezone.utc),
    )
    embed.set_footer(text=FOOTER)
    return embed


def registration_success() -> discord.Embed:
    embed = _embed(
        "✅ Registration Successful",
        "Your UEX API credentials have been securely stored!",
        COLOR_SUCCESS,
    )
    embed.add_field(name="🔐 Security", value="Your credentials are encrypted and stored securely", inline=False)
    embed.add_field(name="📱 Ready to Use", value="You can now use `/reply` for your negotiations", inline=False)
    embed.add_field(name="🔔 Notifications", value="You'll receive DMs when your listings get messages", inline=False)
    embed.add_field(name="🗑️ Remove Access", value="Use `/unregister` to remove your credentials anytime", inline=False)
    return embed


def registration_failed(error: Optional[str]) -> discord.Embed:
    embed = _embed("❌ Registration Failed", "The provided UEX API credentials were not accepted.", COLOR_ERROR)
    embed.add_field(name="⚠️ Error", value=error or "Invalid credentials", inline=False)
    embed.add_field(
        name="🔗 Get Your API Keys",
        value="Bearer Token from UEX **My Apps**, Secret Key from **Account Settings**. See `/help`.",
        inline=False,
    )
    return embed


def unregistered() -> discord.Embed:
    embed = _embed("🗑️ Unregistered", "Your UEX credentials are no longer used by this bot.", COLOR_SUCCESS)
    embed.add_field(name="↩️ Come Back", value="Use `/register` again at any time", inline=False)
    return embed


def not_registered(description: str = "You need to register your UEX API credentials first.") -> discord.Embed:
    embed = _embed("❌ Not Registered", description, COLOR_ERROR)
    embed.add_field(name="📝 How to Register", value="Use `/register` with your UEX API credentials", inline=False)
    return embed


def reply_result(negotiation_hash: str, message: str, success: bool, error: str = None, message_id=None) -> discord.Embed:
    if success:
        embed = _embed("✅ Reply Sent Successfully", color=COLOR_SUCCESS)
    else:
        embed = _embed("❌ Reply Failed", color=COLOR_ERROR)
    embed.add_field(name="📝 Negotiation", value=f"`{negotiation_hash}`", inline=True)
    if success:
        preview = message if len(message) <= 100 else message[:100] + "..."
        embed.add_field(name="💬 Message", value=f'"{preview}"', inline=False)
        if message_id:
            embed.add_field(name="🆔 Message ID", value=str(message_id), inline=True)
    else:
        embed.add_field(name="⚠️ Error", value=(error or "Unknown error occurred")[:1024], inline=False)
    return embed


def status(registered: bool, stats: UserStats) -> discord.Embed:
    embed = _embed("📊 UEX Bot Status")
    embed.add_field(name="🔑 Your Credentials", value="✅ Registered" if registered else "❌ Not registered", inline=False)
    embed.add_field(name="👥 Active Users", value=str(stats.active), inline=True)
    embed.add_field(name="🕒 Active Today", value=str(stats.recently_active), inline=True)
    return embed


def error(description: str = "An unexpected error occurred. Please try again.") -> discord.Embed:
    return _embed("❌ Command Error", description, COLOR_ERROR)


HELP_TOPICS = {
    "credentials": (
        "🔑 How to Get Your UEX API Credentials",
        [
            ("📱 Step 1: API Token (Bearer Token)",
             "Login to UEX Corp, open **My Apps**, create or select an application and copy its **Bearer Token**."),
            ("🔐 Step 2: Secret Key",
             "Open **Account Settings** in your UEX profile and copy (or generate) your **Secret Key**."),
            ("✅ Step 3: Register",
             "```\n/register api_token:YOUR_BEARER_TOKEN secret_key:YOUR_SECRET_KEY uex_username:YOUR_UEX_NAME\n```\n"
             "⚠️ Use this command in DMs or private channels only!"),
        ],
    ),
    "commands": (
        "🤖 Bot Commands",
        [
            ("/register", "Store your UEX credentials (encrypted)"),
            ("/unregister", "Stop using your credentials"),
            ("/reply", "Reply to a UEX negotiation"),
            ("/status", "Check your registration"),
            ("/help", "This help"),
        ],
    ),
    "privacy": (
        "🛡️ Privacy & Security",
        [
            ("Encryption", "Credentials are encrypted before they are written to disk and are never logged."),
            ("Replies", "Registration replies are only visible to you."),
            ("Removal", "`/unregister` deactivates your credentials immediately."),
        ],
    ),
}


def help_topic(topic: str) -> discord.Embed:
    title, fields = HELP_TOPICS.get(topic, HELP_TOPICS["credentials"])
    embed = _embed(title)
    for name, value in fields:
        embed.add_field(name=name, value=value, inline=False)
    return embed
