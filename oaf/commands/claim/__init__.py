"""
OAF - Claim Command Package
===========================

Links Discord accounts to game accounts and keeps the verified role in sync.

Bot: OAF
Game: kingdomofloathing.com
"""

from typing import TYPE_CHECKING

from oaf.core.logger import logger

from .cog import ClaimCog

if TYPE_CHECKING:
    from oaf.bot import OafBot


async def setup(bot: "OafBot") -> None:
    """Load the Claim cog."""
    await bot.add_cog(ClaimCog(bot))
    logger.tree("Claim Cog Loaded", [
        ("Commands", "/claim"),
        ("Features", "in-game token whisper, verified role sync"),
    ], emoji="🔗")


__all__ = ["ClaimCog", "setup"]
