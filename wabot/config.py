"""
Bot configuration from environment variables.

    ADMIN_JID     sender allowed to run admin commands
    CHANNEL_LINK  link returned by the channel command
    BRIDGE_URL    base URL of the WhatsApp bridge
    WEBHOOK_URL   URL the bridge posts events to (default: dashboard /webhook)
    AUTH_DIR      credentials directory handed to the bridge
    PORT          dashboard port
    LOG_FILE      durable log file
    BOT_VERSION   version shown by the info command
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional

DEFAULT_ADMIN_JID = "TON_NUMERO@s.whatsapp.net"
DEFAULT_CHANNEL_LINK = "https://whatsapp.com/channel/TON_LIEN_CHANNEL"
DEFAULT_BRIDGE_URL = "http://localhost:8080"
DEFAULT_PORT = 3000


@dataclass
class BotConfig:
    admin_jid: str = DEFAULT_ADMIN_JID
    channel_link: str = DEFAULT_CHANNEL_LINK
    bridge_url: str = DEFAULT_BRIDGE_URL
    webhook_url: str = ""
    auth_dir: str = "./auth_info"
    port: int = DEFAULT_PORT
    log_file: str = "bot.log"
    version: str = "1.0.0"

    def __post_init__(self):
        if not self.webhook_url:
            self.webhook_url = f"http://localhost:{self.port}/webhook"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "BotConfig":
        """
        Build the configuration from the environment.

        Raises:
            ValueError: If PORT is not a valid port number
        """
        env = os.environ if environ is None else environ

        port_value = env.get("PORT", str(DEFAULT_PORT))
        if not port_value.isdigit() or not 0 < int(port_value) < 65536:
            raise ValueError(f"PORT must be a port number, got {port_value!r}")

        return cls(
            admin_jid=env.get("ADMIN_JID", DEFAULT_ADMIN_JID),
            channel_link=env.get("CHANNEL_LINK", DEFAULT_CHANNEL_LINK),
            bridge_url=env.get("BRIDGE_URL", DEFAULT_BRIDGE_URL),
            webhook_url=env.get("WEBHOOK_URL", ""),
            auth_dir=env.get("AUTH_DIR", "./auth_info"),
            port=int(port_value),
            log_file=env.get("LOG_FILE", "bot.log"),
            version=env.get("BOT_VERSION", "1.0.0"),
        )
