#!/usr/bin/env python3
"""
WhatsApp Keyword Bot - Entry point

Starts the dashboard HTTP server, connects to the WhatsApp bridge with
the stored credentials, and answers keyword commands until stopped.

Commands:
    ping, salut, aide/help, channel, uptime, weather, quote, joke, fact,
    broadcast (admin), info, stats, calc, echo, roll, coin, time

Environment: see wabot/config.py
"""

from __future__ import annotations

import asyncio
import logging
import logging.handlers
import sys
import threading

from api.dashboard import make_server
from wabot.commands import CommandRegistry
from wabot.config import BotConfig
from wabot.events import EventHub
from wabot.message_builder import MessageBuilder
from wabot.session import BotSession
from wabot.transport import BridgeTransport

logger = logging.getLogger(__name__)


def configure_logging(log_file: str) -> None:
    """Console logging plus a rotating file as the durable log sink."""
    logging.basicConfig(
        format="%(asctime)s - %(levelname)s - %(message)s",
        level=logging.INFO,
        handlers=[
            logging.StreamHandler(),
            logging.handlers.RotatingFileHandler(
                log_file, maxBytes=5_000_000, backupCount=3, encoding="utf-8"
            ),
        ],
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


def build_session(config: BotConfig, hub: EventHub) -> BotSession:
    registry = CommandRegistry(
        admin_jid=config.admin_jid,
        channel_link=config.channel_link,
        version=config.version,
        on_log=hub.log,
    )
    transport = BridgeTransport(config.bridge_url, config.webhook_url)
    return BotSession(transport, registry, hub, auth_dir=config.auth_dir)


async def run(config: BotConfig) -> None:
    hub = EventHub()
    session = build_session(config, hub)
    server = make_server(session, hub, port=config.port)

    runner = asyncio.create_task(session.run())
    thread = threading.Thread(target=server.serve_forever, name="dashboard", daemon=True)
    thread.start()
    hub.log(f"Server lancé sur port {config.port}", "success")
    logger.info(f"Commands: {MessageBuilder.command_list(session.registry.keywords)}")

    try:
        # Initial connection without a number (works once already paired)
        await session.start()
        await runner
    finally:
        server.shutdown()
        runner.cancel()
        await session.stop()


def main() -> int:
    """Start the bot."""
    try:
        config = BotConfig.from_env()
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    configure_logging(config.log_file)
    logger.info("Starting WhatsApp Keyword Bot...")

    try:
        asyncio.run(run(config))
    except KeyboardInterrupt:
        logger.info("Stopped")
    return 0


if __name__ == "__main__":
    sys.exit(main())
