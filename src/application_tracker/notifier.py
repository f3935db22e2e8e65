from typing import Optional

import requests
from loguru import logger

from .errors import ConfigurationError, NotifierError

DISCORD_LIMIT = 2000
WEBHOOK_PREFIXES = ("https://discord.com/api/webhooks/", "https://discordapp.com/api/webhooks/")


class DiscordNotifier:
    """Posts plain-text messages to a Discord channel webhook."""

    def __init__(self, webhook_url: str, session: Optional[requests.Session] = None, timeout: int = 10):
        if not webhook_url or not webhook_url.strip():
            raise ConfigurationError(
                "DISCORD_WEBHOOK_URL is not set in environment variables. "
                "Please add it to your .env file to enable Discord notifications."
            )
        self.webhook_url = webhook_url.strip()
        if not self.webhook_url.startswith(WEBHOOK_PREFIXES):
            logger.warning(
                "DISCORD_WEBHOOK_URL does not look like a Discord webhook "
                "(expected https://discord.com/api/webhooks/{id}/{token})"
            )
        self.session = session or requests.Session()
        self.timeout = timeout

    @classmethod
    def from_settings(cls, cfg) -> "DiscordNotifier":
        return cls(cfg.discord_webhook_url)

    def send(self, text: str) -> None:
        if len(text) > DISCORD_LIMIT:
            logger.warning("Message is {} characters; clipping to {}", len(text), DISCORD_LIMIT)
            text = text[:DISCORD_LIMIT]
        try:
            resp = self.session.post(self.webhook_url, json={"content": text}, timeout=self.timeout)
        except requests.RequestException as exc:
            raise NotifierError(f"Discord webhook request failed: {exc}") from exc
        if not resp.ok:
            raise NotifierError(f"Discord webhook failed with status {resp.status_code}: {resp.text}")
        logger.info("Discord notification sent")
