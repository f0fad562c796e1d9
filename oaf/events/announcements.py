"""
OAF Discord Bot - Announcement Events
=====================================

Relays game-wide system announcements into Discord.

Rollover countdowns and the "Rollover is over." notice arrive as system
messages every night; everything else is a real announcement and gets
posted with a discussion thread.

Bot: OAF
Game: kingdomofloathing.com
"""

import re
from typing import TYPE_CHECKING

import discord
from discord.ext import commands

from oaf.core.config import get_config
from oaf.core.logger import logger
from oaf.kol.events import SYSTEM
from oaf.kol.models import KoLMessage
from oaf.utils.retry import safe_fetch_channel, safe_send

if TYPE_CHECKING:
    from oaf.bot import OafBot


_ROUTINE_NOTICE = re.compile(
    r"^(The system will go down for nightly maintenance in \d+ minutes?|Rollover is over).$"
)

THREAD_NAME = "Discussion for announcement"
THREAD_ARCHIVE_MINUTES = 10080  # One week


def is_announcement(message: KoLMessage) -> bool:
    return not _ROUTINE_NOTICE.search(message.msg)


def format_announcement(text: str) -> str:
    quoted = "\n".join(f"> {line}" for line in text.split("\n"))
    return f"New announcement posted to KoL chat!\n{quoted}"


class AnnouncementEvents(commands.Cog):
    """Announcement relay."""

    def __init__(self, bot: "OafBot") -> None:
        self.bot = bot
        self.config = get_config()

    async def cog_load(self) -> None:
        self.bot.kol.events.on(SYSTEM, self.on_kol_system)

    async def cog_unload(self) -> None:
        self.bot.kol.events.off(SYSTEM, self.on_kol_system)

    async def on_kol_system(self, message: KoLMessage) -> None:
        if not is_announcement(message):
            logger.debug(f"Routine system message: {message.msg}")
            return

        channel = await safe_fetch_channel(self.bot, self.config.announcements_channel_id)
        if not isinstance(channel, discord.TextChannel):
            await self.bot.alert("No valid announcement channel")
            return

        posted = await safe_send(channel, format_announcement(message.msg))
        if posted is None:
            return

        try:
            await posted.create_thread(
                name=THREAD_NAME,
                auto_archive_duration=THREAD_ARCHIVE_MINUTES,
            )
        except discord.HTTPException as e:
            logger.warning(f"Could not open announcement thread: {e}")

        logger.tree("Announcement Relayed", [
            ("Message", message.msg[:100]),
            ("Channel", channel.name),
        ], emoji="📣")


async def setup(bot: "OafBot") -> None:
    """Load the AnnouncementEvents cog."""
    await bot.add_cog(AnnouncementEvents(bot))


__all__ = ["AnnouncementEvents", "is_announcement", "format_announcement", "setup"]
