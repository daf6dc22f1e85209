#!/usr/bin/env python3
"""Startup script for the auction bot."""

import logging
import sys
from pathlib import Path

# Allow running from a plain checkout without installing the package
sys.path.insert(0, str(Path(__file__).resolve().parent / "src"))

from auction_bot.config import settings  # noqa: E402

# Configure logging before the bot modules are imported
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    handlers=[
        logging.StreamHandler(sys.stdout),
        logging.FileHandler("auction-bot.log", encoding="utf-8"),
    ],
)
logger = logging.getLogger("auction_bot")


def main() -> int:
    """Main entry point."""
    logger.info("Starting auction bot...")

    errors = settings.config_errors()
    if errors:
        for error in errors:
            logger.error(f"Config error: {error}")
        logger.error("Please check your .env file")
        return 1

    logger.info("Configuration validated")
    logger.info(f"API: {settings.api_base_url}")
    logger.info(f"Guilds: {settings.guild_ids or 'global'}")
    logger.info(f"Session file: {settings.sessions_path}")

    from auction_bot.bot import run_bot

    try:
        run_bot()
    except KeyboardInterrupt:
        logger.info("Shutting down...")
    except Exception as e:
        logger.exception(f"Fatal error: {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
