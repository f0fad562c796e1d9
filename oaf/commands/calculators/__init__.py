"""
OAF - Calculator Commands Package
=================================

Familiar and stat calculators.

Bot: OAF
Game: kingdomofloathing.com
"""

from typing import TYPE_CHECKING

from oaf.core.logger import logger

from .cog import CalculatorsCog

if TYPE_CHECKING:
    from oaf.bot import OafBot


async def setup(bot: "OafBot") -> None:
    """Load the Calculators cog."""
    await bot.add_cog(CalculatorsCog(bot))
    logger.tree("Calculators Cog Loaded", [
        ("Commands", "/volleyball, /reversefairy, /substat"),
    ], emoji="🧮")


__all__ = ["CalculatorsCog", "setup"]
