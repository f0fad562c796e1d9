"""
OAF Discord Bot - Error Handler
===============================

Classifies unexpected exceptions and logs them with a hint for the operator.

DESIGN:
    OAF fails in three recognisable ways: Discord refuses something, the
    game cannot be reached, or the player database misbehaves. Each gets a
    hint saying what to look at. Anything else is reported as unexpected.

    Critical errors (the ones that end the process) are also written to
    logs/errors/ as JSON with the full traceback and, when a slash command
    was running, who ran which command where.

Bot: OAF
Game: kingdomofloathing.com
"""

import json
import sqlite3
import sys
import traceback
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Type

import discord

from oaf.core.logger import logger, LOGS_DIR, KOL_TZ
from oaf.kol.transport import TRANSPORT_ERRORS


ERRORS_DIR = LOGS_DIR / "errors"

GENERIC_HINT = "Unexpected error, see the traceback in the error log"

# Checked in order; the first matching type supplies the hint.
HINTS: Dict[str, Tuple[Tuple[Type[BaseException], str], ...]] = {
    "discord": (
        (discord.Forbidden, "OAF lacks a permission in this channel or guild"),
        (discord.NotFound, "A configured channel or role id no longer exists"),
        (discord.DiscordException, "Discord API trouble, usually gone on retry"),
    ),
    "kol": (
        (TRANSPORT_ERRORS, "The game did not answer, often rollover; the next poll recovers"),
    ),
    "database": (
        (sqlite3.OperationalError, "data/oaf.db is locked or unreadable"),
        (sqlite3.IntegrityError, "A players row broke a uniqueness rule"),
        (sqlite3.Error, "Player database error"),
    ),
}


def describe_interaction(interaction: Any) -> Optional[Dict[str, Any]]:
    """Who ran which slash command where, or None outside a command."""
    if not isinstance(interaction, discord.Interaction):
        return None
    command = interaction.command
    return {
        "guild": interaction.guild.name if interaction.guild else "DM",
        "user": str(interaction.user),
        "user_id": interaction.user.id,
        "command": command.qualified_name if command else None,
    }


class ErrorContext:
    """Serialisable snapshot of an exception."""

    @staticmethod
    def get_full_context(e: BaseException, location: str, **extra: Any) -> Dict[str, Any]:
        report: Dict[str, Any] = {
            "timestamp": datetime.now(KOL_TZ).isoformat(),
            "location": location,
            "error_type": type(e).__name__,
            "error_message": str(e),
            "traceback": "".join(traceback.format_exception(type(e), e, e.__traceback__)),
            "python_version": sys.version,
            "extra": {key: value for key, value in extra.items() if key != "interaction"},
        }
        command = describe_interaction(extra.get("interaction"))
        if command is not None:
            report["discord_context"] = command
        return report


class ErrorHandler:
    """Entry point for logging exceptions nobody else handled."""

    @staticmethod
    def categorize_error(e: BaseException) -> str:
        """One of 'discord', 'kol', 'database' or 'general'."""
        for category, hints in HINTS.items():
            if any(isinstance(e, error_types) for error_types, _ in hints):
                return category
        return "general"

    @staticmethod
    def get_recovery_suggestion(e: BaseException, category: str) -> str:
        for error_types, hint in HINTS.get(category, ()):
            if isinstance(e, error_types):
                return hint
        return GENERIC_HINT

    @classmethod
    def handle(cls, e: BaseException, location: str, critical: bool = False, **extra: Any) -> Optional[Path]:
        """
        Log an exception with its category and hint.

        Args:
            e: The exception.
            location: Where it was caught, e.g. "OafBot.on_app_command_error".
            critical: The process is about to exit; also dump it to disk.
            **extra: Context stored with a critical dump. An `interaction`
                is summarised rather than stored.

        Returns:
            The JSON dump for a critical error that could be written.
        """
        category = cls.categorize_error(e)
        report = ErrorContext.get_full_context(e, location, **extra)

        details = [
            ("Location", location),
            ("Category", category),
            ("Error", f"{report['error_type']}: {str(e)[:200]}"),
            ("Hint", cls.get_recovery_suggestion(e, category)),
        ]
        command = report.get("discord_context")
        if command is not None:
            details.append(("Command", f"/{command['command']} by {command['user']} in {command['guild']}"))

        if not critical:
            logger.warning("Unhandled Error", details)
            return None

        logger.error("Critical Error", details)
        logger.info(f"Traceback:\n{report['traceback']}")
        return cls._dump(report)

    @staticmethod
    def _dump(report: Dict[str, Any]) -> Optional[Path]:
        path = ERRORS_DIR / f"error_{datetime.now(KOL_TZ):%Y%m%d_%H%M%S}.json"
        try:
            ERRORS_DIR.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps(report, indent=2, default=str), encoding="utf-8")
        except OSError as e:
            logger.warning(f"Could not write error dump {path}: {e}")
            return None
        logger.info(f"Error dump written to {path}")
        return path


__all__ = ["ErrorContext", "ErrorHandler", "describe_interaction"]
