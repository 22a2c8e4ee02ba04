"""Launcher for the map request bot.

    python -m mapdesk

Configuration comes from MAPDESK_* environment variables (see config.py).
"""

from __future__ import annotations

import logging
import sys

from .config import get_config


def configure_logging() -> None:
    config = get_config().observability
    logging.basicConfig(level=config.level.upper(), format=config.format)
    logging.getLogger("discord").setLevel(config.discord_level.upper())


def main() -> None:
    configure_logging()
    config = get_config()
    token = config.discord.token.get_secret_value()
    if not token:
        print("MAPDESK_DISCORD_TOKEN is not set.")
        sys.exit(1)
    if config.discord.request_channel_id is None:
        print("MAPDESK_DISCORD_REQUEST_CHANNEL_ID is not set.")
        sys.exit(1)

    from .bot import create_bot

    bot = create_bot()
    bot.run(token, log_handler=None)


if __name__ == "__main__":
    main()
