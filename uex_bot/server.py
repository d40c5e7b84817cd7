#!/usr/bin/env python3
"""
UEX Webhook HTTP Server

Receives UEX Corp webhooks and relays them to Discord. Runs standalone
(``python -m uex_bot.server``) or in a background thread next to the bot.
"""
import time
from datetime import datetime, timezone
from typing import Optional

from flask import Flask, jsonify, request

from uex_bot.config import APP_VERSION, BotConfig, load_config
from uex_bot.notifications.discord_rest import DiscordNotifier
from uex_bot.uex.webhook import SIGNATURE_HEADER, WebhookRouter
from uex_bot.users.manager import UserManager
from uex_bot.utils.logger import get_logger, set_level

logger = get_logger("server")

TEST_DM_EMBED = {
    "title": "🤖 UEX Discord Bot Test",
    "description": "Your UEX Discord bot is working correctly!",
    "color": 0x00FF00,
    "fields": [
        {"name": "✅ Bot Status", "value": "Online and ready to receive UEX notifications", "inline": False},
        {"name": "📨 DM Delivery", "value": "This message confirms that DM notifications are working", "inline": False},
    ],
    "footer": {"text": f"UEX Discord Bot v{APP_VERSION}"},
}


def create_app(
    config: Optional[BotConfig] = None,
    user_manager: Optional[UserManager] = None,
    notifier: Optional[DiscordNotifier] = None,
) -> Flask:
    """
    Build the webhook Flask app.

    Collaborators default to ones built from ``config`` (or the environment),
    tests pass their own.
    """
    if config is None:
        config = load_config()
    if user_manager is None:
        user_manager = UserManager.from_config(config)
    if notifier is None:
        notifier = DiscordNotifier(config.discord_bot_token, config.discord_webhook_url)

    router = WebhookRouter(user_manager, notifier, webhook_secret=config.uex_webhook_secret)

    app = Flask(__name__)
    app.config["USER_MANAGER"] = user_manager
    app.config["WEBHOOK_ROUTER"] = router
    started_at = time.monotonic()

    @app.get("/health")
    def health():
        stats = user_manager.stats()
        logger.debug("Health check requested")
        return jsonify({
            "status": "ok",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "version": APP_VERSION,
            "uptime": round(time.monotonic() - started_at, 3),
            "users": stats.to_dict(),
            "dm_enabled": notifier.dm_available(),
            "channel_enabled": notifier.channel_available(),
        })

    @app.post("/webhook/uex")
    def uex_webhook():
        logger.info("UEX webhook received")
        result = router.process(request.get_data(), request.headers.get(SIGNATURE_HEADER))

        if result.success:
            message = "Notification sent via DM" if result.delivered_to == "dm" else "Notification sent to Discord"
            return jsonify({"success": True, "message": message})

        logger.error("Webhook processing failed", extra={"error": result.error, "status": result.status_code})
        return jsonify({"success": False, "error": result.error}), result.status_code

    @app.post("/test/dm/<user_id>")
    def test_dm(user_id: str):
        if not user_manager.is_registered(user_id):
            return jsonify({"success": False, "error": "User is not registered"}), 404

        sent = notifier.send_dm(user_id, embed=TEST_DM_EMBED)
        if sent.get("success"):
            return jsonify({"success": True, "message": "Test DM sent successfully"})
        return jsonify({"success": False, "error": sent.get("error")}), 400

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({"success": False, "error": "Endpoint not found"}), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify({"success": False, "error": "Method not allowed"}), 405

    @app.errorhandler(500)
    def internal_error(error):
        logger.error("Unhandled server error", extra={"error": str(error)})
        return jsonify({"success": False, "error": "Internal server error"}), 500

    return app


def run_server(config: BotConfig, user_manager: Optional[UserManager] = None) -> None:
    """Serve the webhook app; blocks."""
    app = create_app(config, user_manager=user_manager)
    logger.info(f"Webhook server listening on {config.webhook_host}:{config.port}")
    app.run(host=config.webhook_host, port=config.port, debug=False, use_reloader=False)


def main():
    config = load_config()
    set_level(config.log_level)
    run_server(config)


if __name__ == "__main__":
    main()
