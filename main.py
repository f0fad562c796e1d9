#!/usr/bin/env python3
"""
OAF - Kingdom of Loathing Discord Bot Entry Point
=================================================

Features:
- Player lookups, claiming and clan whitelisting through a game account
- Game announcements relayed into Discord
- Familiar and stat calculators
- Single instance enforcement
- Graceful error handling

Bot: OAF
Game: kingdomofloathing.com
"""

import asyncio
import fcntl
import os
import sys
from typing import IO, Optional

from dotenv import load_dotenv

# .env must be loaded before the logger reads OAF_LOGS_DIR / DEBUG
load_dotenv()

from oaf.core.config import ConfigValidationError, get_config, validate_and_log_config  # noqa: E402
from oaf.core.database import DATA_DIR  # noqa: E402
from oaf.core.logger import logger  # noqa: E402
from oaf.utils.error_handler import ErrorHandler  # noqa: E402


PID_FILE = DATA_DIR / "oaf.pid"

_lock_handle: Optional[IO[str]] = None


def check_running_instance() -> bool:
    """
    Take an exclusive lock on the PID file.

    Two bots logged into the same game account would keep invalidating
    each other's session, so a second instance refuses to start.

    Returns:
        True if lock acquired successfully, False if another instance holds it.
    """
    global _lock_handle

    DATA_DIR.mkdir(parents=True, exist_ok=True)
    handle = open(PID_FILE, "a+")
    try:
        fcntl.flock(handle.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
    except OSError:
        handle.seek(0)
        other = handle.read().strip() or "unknown"
        handle.close()
        logger.error(f"❌ Another OAF instance is already running! (PID: {other})")
        return False

    handle.seek(0)
    handle.truncate()
    handle.write(str(os.getpid()))
    handle.flush()
    _lock_handle = handle

    logger.info(f"✅ Instance lock acquired - PID: {os.getpid()}, Lock file: {PID_FILE}")
    return True


async def main() -> None:
    """
    Main entry point for the OAF Discord bot.

    1. Validates configuration
    2. Creates the bot (which creates the game client)
    3. Connects to Discord; the game session starts on ready
    """
    logger.tree("OAF STARTING", [
        ("Game", "kingdomofloathing.com"),
        ("Commands", "/whois, /whitelist, /claim, /orb, calculators"),
    ], "🦉")

    try:
        validate_and_log_config()
    except ConfigValidationError as e:
        logger.error(f"❌ {e}")
        logger.error("   Please add the missing values to the .env file")
        sys.exit(1)

    from oaf.bot import OafBot

    bot = OafBot()
    logger.info("🤖 Bot instance created successfully")

    async with bot:
        await bot.start(get_config().discord_token)


if __name__ == "__main__":
    if not check_running_instance():
        logger.error("⛔ Startup aborted - another instance is already running")
        sys.exit(1)

    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("🛑 Bot stopped by user (Ctrl+C)")
    except Exception as e:
        ErrorHandler.handle(
            e,
            location="main.__main__",
            critical=True,
        )
        sys.exit(1)
