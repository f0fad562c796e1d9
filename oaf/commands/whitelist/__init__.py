"""
OAF - Whitelist Command Package
===============================

Adds players to the managed clan whitelists.

Bot: OAF
Game: kingdomofloathing.com
"""

from typing import TYPE_CHECKING

from oaf.core.logger import logger

from .cog import WhitelistCog

if TYPE_CHECKING:
    from oaf.bot import OafBot


async def setup(bot: "OafBot") -> None:
    """Load the Whitelist cog."""
    await bot.add_cog(WhitelistCog(bot))
    logger.tree("Whitelist Cog Loaded", [
        ("Commands", "/whitelist"),
        ("Clans", str(len(bot.config.whitelist_clan_ids))),
    ], emoji="📜")


__all__ = ["WhitelistCog", "setup"]
