"""Relaybot entrypoint. Loads config, validates networks, runs the bot."""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import os
import signal
import sys
from pathlib import Path

from loguru import logger

from relaybot import __version__
from relaybot.bot import Bot
from relaybot.config import Config, load_config_with_env
from relaybot.core.errors import RelayConfigurationError


def setup_logging(verbose: bool = False) -> None:
    """Configure loguru. Replace default logging."""
    logger.remove()
    logger.add(
        sys.stderr,
        level="DEBUG" if verbose else "INFO",
        format=(
            "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | "
            "<cyan>{name}</cyan> | {message}"
        ),
    )


def build_bot(config_path: Path) -> Bot:
    """Load config and construct the bot. Raises RelayConfigurationError on bad config."""
    data = load_config_with_env(config_path)
    return Bot(Config(data))


def _default_config_path() -> Path:
    return Path(os.environ.get("RELAYBOT_CONFIG", "config.yml"))


def main() -> None:
    """Main entrypoint."""
    parser = argparse.ArgumentParser(description="relaybot: multi-network IRC relay bot")
    parser.add_argument(
        "--config",
        "-c",
        type=Path,
        default=None,
        help="Path to config file (default: $RELAYBOT_CONFIG or config.yml)",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    args = parser.parse_args()

    setup_logging(args.verbose)

    config_path = args.config or _default_config_path()
    try:
        bot = build_bot(config_path)
    except RelayConfigurationError as exc:
        logger.error("Could not get configuration: {}. Exiting.", exc)
        sys.exit(1)
    logger.info("Config loaded from {}", config_path)

    asyncio.run(_run(bot))


async def _run(bot: Bot) -> None:
    """Run the bot; SIGINT/SIGTERM cancel it and trigger shutdown."""
    loop = asyncio.get_running_loop()
    main_task = asyncio.current_task()
    for sig in (signal.SIGINT, signal.SIGTERM):
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, main_task.cancel)
    try:
        await bot.run()
    except asyncio.CancelledError:
        logger.info("Signal received")
    finally:
        await bot.stop()


if __name__ == "__main__":
    main()
