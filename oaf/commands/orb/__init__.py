"""
OAF - Orb Command Package
=========================

Magic 8-ball.

Bot: OAF
Game: kingdomofloathing.com
"""

from typing import TYPE_CHECKING

from oaf.core.logger import logger

from .cog import OrbCog, ORB_RESPONSES

if TYPE_CHECKING:
    from oaf.bot import OafBot


async def setup(bot: "OafBot") -> None:
    """Load the Orb cog."""
    await bot.add_cog(OrbCog(bot))
    logger.tree("Orb Cog Loaded", [
        ("Commands", "/orb"),
        ("Responses", str(len(ORB_RESPONSES))),
    ], emoji="🔮")


__all__ = ["OrbCog", "ORB_RESPONSES", "setup"]
