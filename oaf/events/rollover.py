"""
OAF Discord Bot - Rollover Events
=================================

Reacts to the first successful game login after nightly maintenance.

The chat poller keeps running through rollover (every request falls back
to an empty page), but the bot leaves chat channels when the game goes
down, so it rejoins the configured channel here.

Bot: OAF
Game: kingdomofloathing.com
"""

from typing import TYPE_CHECKING

from discord.ext import commands

from oaf.core.logger import logger
from oaf.kol.events import ROLLOVER

if TYPE_CHECKING:
    from oaf.bot import OafBot


class RolloverEvents(commands.Cog):
    """Post-rollover housekeeping."""

    def __init__(self, bot: "OafBot") -> None:
        self.bot = bot

    async def cog_load(self) -> None:
        self.bot.kol.events.on(ROLLOVER, self.on_kol_rollover)

    async def cog_unload(self) -> None:
        self.bot.kol.events.off(ROLLOVER, self.on_kol_rollover)

    async def on_kol_rollover(self) -> None:
        await self.bot.kol.use_chat_macro(f"/join {self.bot.kol.chat_channel}")
        logger.tree("Rollover Complete", [
            ("KoL User", self.bot.kol.username),
            ("Rejoined", self.bot.kol.chat_channel),
        ], emoji="🌅")


async def setup(bot: "OafBot") -> None:
    """Load the RolloverEvents cog."""
    await bot.add_cog(RolloverEvents(bot))


__all__ = ["RolloverEvents", "setup"]
