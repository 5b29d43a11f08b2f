"""
boarbot.bot.__main__ — Entry point for ``python -m boarbot.bot``
==================================================================

Wiring:
1. Load .env (secrets: ``DISCORD_TOKEN``, ``GITHUB_TOKEN``).
2. Configure logging.
3. Create the BoarBot and run its boot sequence (blocking).

Run with::

    python -m boarbot.bot
"""

from __future__ import annotations

import asyncio
import logging
import os

from dotenv import load_dotenv

from boarbot.bot.core import BoarBot
from boarbot.config import DEFAULT_CONFIG_PATH

logger = logging.getLogger("boarbot")


def configure_logging() -> None:
    logging.basicConfig(
        level=os.getenv("BOARBOT_LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s",
        datefmt="%H:%M:%S",
    )


def main() -> None:
    """Bootstrap and run BoarBot."""
    load_dotenv()
    configure_logging()

    bot = BoarBot(
        config_path=os.getenv("BOARBOT_CONFIG", DEFAULT_CONFIG_PATH),
        github_token=os.getenv("GITHUB_TOKEN") or None,
    )

    logger.info("Starting BoarBot…")
    try:
        asyncio.run(bot.create(os.getenv("DISCORD_TOKEN")))
    except KeyboardInterrupt:
        logger.info("Shutting down gracefully…")


if __name__ == "__main__":
    main()
