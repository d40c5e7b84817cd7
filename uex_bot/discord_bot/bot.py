#!/usr/bin/env python3
"""
UEX Discord Bot

Multi-user Discord bot for UEX Corp's marketplace:
- /register stores a user's UEX API credentials (validated, encrypted)
- /unregister deactivates them
- /reply answers a UEX negotiation with the caller's own credentials
- UEX webhooks are relayed as DMs by the webhook server, started in a
  background thread unless RUN_WEBHOOK_SERVER=false

Run with: python -m uex_bot.discord_bot.bot
Requires: DISCORD_BOT_TOKEN and USER_ENCRYPTION_KEY environment variables
"""
import asyncio
import sys
import threading
from typing import Optional

import discord
from discord import app_commands
from discord.ext import commands

from uex_bot.config import BotConfig, load_config
from uex_bot.discord_bot import embeds
from uex_bot.errors import ConfigError
from uex_bot.uex.client import UEXClient
from uex_bot.users.manager import UserManager, get_user_manager
from uex_bot.utils.logger import get_logger, set_level

logger = get_logger("discord")


class BotContext:
    """Lazily loaded configuration and user manager shared by all commands."""

    def __init__(self):
        self._config: Optional[BotConfig] = None
        self._user_manager: Optional[UserManager] = None

    @property
    def config(self) -> BotConfig:
        if self._config is None:
            self._config = load_config()
        return self._config

    @config.setter
    def config(self, value: BotConfig):
        self._config = value

    @property
    def user_manager(self) -> UserManager:
        if self._user_manager is None:
            self._user_manager = get_user_manager(self.config)
        return self._user_manager

    @user_manager.setter
    def user_manager(self, value: UserManager):
        self._user_manager = value


context = BotContext()

# Bot setup - slash commands only, no message content needed
intents = discord.Intents.default()
intents.message_content = False

bot = commands.Bot(command_prefix="!", intents=intents)


# =============================================================================
# BOT EVENTS
# =============================================================================

@bot.event
async def on_ready():
    """Called when bot is ready."""
    logger.info(f"Discord bot logged in as {bot.user}", extra={"bot_id": bot.user.id, "guilds": len(bot.guilds)})

    try:
        guild_id = context.config.discord_guild_id
        if guild_id:
            guild = discord.Object(id=int(guild_id))
            bot.tree.copy_global_to(guild=guild)
            synced = await bot.tree.sync(guild=guild)
        else:
            synced = await bot.tree.sync()
        logger.info(f"Synced {len(synced)} slash command(s)")
    except (discord.HTTPException, ValueError) as e:
        logger.error("Failed to sync slash commands", extra={"error": str(e)})

    logger.info("Multi-user bot ready - users can register with /register")


@bot.tree.error
async def on_app_command_error(interaction: discord.Interaction, error: app_commands.AppCommandError):
    command_name = interaction.command.name if interaction.command else "unknown"
    logger.error(
        f"Error executing command {command_name}",
        extra={"user_id": str(interaction.user.id), "error": str(error)},
        exc_info=error,
    )
    try:
        if interaction.response.is_done():
            await interaction.followup.send(embed=embeds.error(), ephemeral=True)
        else:
            await interaction.response.send_message(embed=embeds.error(), ephemeral=True)
    except discord.HTTPException as e:
        logger.error("Failed to send error reply", extra={"error": str(e)})


# =============================================================================
# SLASH COMMANDS - REGISTRATION
# =============================================================================

@bot.tree.command(name="register", description="Register your UEX API credentials (private, encrypted)")
@app_commands.describe(
    api_token="Your UEX API token (Bearer Token from My Apps)",
    secret_key="Your UEX secret key (Account Settings)",
    uex_username="Your UEX username, used to route notifications to you",
)
async def register(
    interaction: discord.Interaction,
    api_token: str,
    secret_key: str,
    uex_username: Optional[str] = None,
):
    """Validate and store the caller's UEX credentials."""
    user_id = str(interaction.user.id)
    username = interaction.user.name
    logger.info("User registration attempt", extra={"user_id": user_id, "username": username})

    # Validation talks to UEX, which can take a few seconds
    await interaction.response.defer(ephemeral=True, thinking=True)

    result = await asyncio.to_thread(
        context.user_manager.register,
        user_id,
        api_token,
        secret_key,
        username,
        uex_username,
    )

    if result.success:
        await interaction.followup.send(embed=embeds.registration_success(), ephemeral=True)
    else:
        await interaction.followup.send(embed=embeds.registration_failed(result.error), ephemeral=True)


@bot.tree.command(name="unregister", description="Remove your UEX API credentials from the bot")
async def unregister(interaction: discord.Interaction):
    """Deactivate the caller's stored credentials."""
    user_id = str(interaction.user.id)
    await interaction.response.defer(ephemeral=True)

    result = await asyncio.to_thread(context.user_manager.unregister, user_id)

    if result.success:
        await interaction.followup.send(embed=embeds.unregistered(), ephemeral=True)
    else:
        await interaction.followup.send(
            embed=embeds.not_registered("You don't have any registered credentials."),
            ephemeral=True,
        )


# =============================================================================
# SLASH COMMANDS - UEX
# =============================================================================

@bot.tree.command(name="reply", description="Send a reply to a UEX negotiation")
@app_commands.rename(negotiation_hash="hash")
@app_commands.describe(negotiation_hash="The negotiation hash from UEX", message="Your reply message")
async def reply(
    interaction: discord.Interaction,
    negotiation_hash: app_commands.Range[str, 8, 64],
    message: app_commands.Range[str, 1, 2000],
):
    """Reply to a negotiation using the caller's own credentials."""
    user_id = str(interaction.user.id)
    logger.info("Processing reply command", extra={"user_id": user_id, "negotiation_hash": negotiation_hash})

    await interaction.response.defer(ephemeral=True, thinking=True)

    lookup = await asyncio.to_thread(context.user_manager.get_credentials, user_id)
    if not lookup.found:
        description = "You need to register your UEX API credentials first."
        if lookup.error:
            description = "Your stored UEX credentials are unavailable. Please `/register` again."
        await interaction.followup.send(embed=embeds.not_registered(description), ephemeral=True)
        return

    client = UEXClient(
        lookup.credentials,
        context.config.uex_api_base_url,
        timeout=context.config.request_timeout,
    )
    result = await asyncio.to_thread(client.send_reply, negotiation_hash, message)

    await interaction.followup.send(
        embed=embeds.reply_result(negotiation_hash, message, result.success, result.error, result.message_id),
        ephemeral=True,
    )


@bot.tree.command(name="status", description="Check your registration and bot status")
async def status(interaction: discord.Interaction):
    user_id = str(interaction.user.id)
    manager = context.user_manager
    registered = await asyncio.to_thread(manager.is_registered, user_id)
    stats = await asyncio.to_thread(manager.stats)
    await interaction.response.send_message(embed=embeds.status(registered, stats), ephemeral=True)


@bot.tree.command(name="help", description="Get help with UEX API credentials and bot usage")
@app_commands.describe(topic="Specific help topic")
@app_commands.choices(topic=[
    app_commands.Choice(name="Getting UEX Credentials", value="credentials"),
    app_commands.Choice(name="Bot Commands", value="commands"),
    app_commands.Choice(name="Privacy & Security", value="privacy"),
])
async def help_command(interaction: discord.Interaction, topic: Optional[app_commands.Choice[str]] = None):
    selected = topic.value if topic else "credentials"
    await interaction.response.send_message(embed=embeds.help_topic(selected), ephemeral=True)


# =============================================================================
# MAIN
# =============================================================================

def start_webhook_server(config: BotConfig, user_manager: UserManager) -> threading.Thread:
    """Run the webhook server in a daemon thread next to the gateway client."""
    from uex_bot.server import run_server

    thread = threading.Thread(
        target=run_server,
        args=(config, user_manager),
        name="uex-webhook-server",
        daemon=True,
    )
    thread.start()
    return thread


def main():
    try:
        config = context.config
    except ConfigError as e:
        logger.critical(f"Invalid configuration: {e}")
        sys.exit(1)

    set_level(config.log_level)

    if not config.discord_bot_token:
        logger.critical("DISCORD_BOT_TOKEN not set!")
        sys.exit(1)

    if config.run_webhook_server:
        start_webhook_server(config, context.user_manager)

    bot.run(config.discord_bot_token, log_handler=None)


if __name__ == "__main__":
    main()
