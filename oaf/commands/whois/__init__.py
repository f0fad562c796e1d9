"""
OAF - Whois Command Package
===========================

Player lookup by name, id or claimed Discord account.

Bot: OAF
Game: kingdomofloathing.com
"""

from typing import TYPE_CHECKING

from oaf.core.logger import logger

from .cog import WhoisCog, valid_player_identifier

if TYPE_CHECKING:
    from oaf.bot import OafBot


async def setup(bot: "OafBot") -> None:
    """Load the Whois cog."""
    await bot.add_cog(WhoisCog(bot))
    logger.tree("Whois Cog Loaded", [
        ("Commands", "/whois"),
    ], emoji="🔎")


__all__ = ["WhoisCog", "valid_player_identifier", "setup"]
