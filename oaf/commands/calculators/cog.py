"""
OAF - Calculators Cog
=====================

/volleyball, /reversefairy and /substat.

Each reply is built by a plain function returning (text, ephemeral) so
the formulas and wording can be checked without Discord.

Bot: OAF
Game: kingdomofloathing.com
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Tuple

import discord
from discord import app_commands
from discord.ext import commands

from oaf.utils.stats import (
    HOUNDDOG_MULTIPLIER,
    MAX_LEVEL,
    fairy_weight,
    format_number,
    from_level,
    from_substat,
    volleyball_substats,
)

if TYPE_CHECKING:
    from oaf.bot import OafBot


Reply = Tuple[str, bool]


# =============================================================================
# Replies
# =============================================================================

def volleyball_reply(weight: int) -> Reply:
    if weight <= 0:
        return "Please supply a positive volleyball weight.", True
    return f"A {weight}lb volleyball provides +{format_number(volleyball_substats(weight))} substats per combat.", False


def reversefairy_reply(item_drop: float) -> Reply:
    if item_drop <= 0:
        return "Please supply a positive item drop value.", True
    return (
        f"To get {item_drop:g}% item drop from a fairy, "
        f"it should weigh at least {fairy_weight(item_drop):.1f} lbs, "
        f"or be a Jumpsuited Hounddog that weighs at least "
        f"{fairy_weight(item_drop, HOUNDDOG_MULTIPLIER):.1f} lbs.",
        False,
    )


def substat_reply(substat: int) -> Reply:
    reached = from_substat(substat)
    maximum = "maximum " if reached.level >= MAX_LEVEL else ""
    reply = (
        f"Substat total {substat:,} reaches mainstat {reached.mainstat:,} "
        f"and {maximum}level {reached.level}."
    )

    if reached.level < MAX_LEVEL:
        following = from_level(reached.level + 1)
        needed = following.substat - substat
        plural = "s are" if needed > 1 else " is"
        reply += f" An additional {needed:,} total substat{plural} required to reach level {following.level}."

    return reply, False


# =============================================================================
# Cog
# =============================================================================

class CalculatorsCog(commands.Cog):
    """Stateless calculators."""

    def __init__(self, bot: "OafBot") -> None:
        self.bot = bot

    @staticmethod
    async def _send(interaction: discord.Interaction, reply: Reply) -> None:
        content, ephemeral = reply
        await interaction.response.send_message(content, ephemeral=ephemeral)

    @app_commands.command(
        name="volleyball",
        description="Find the +stat gain supplied by a volleyball of a given weight.",
    )
    @app_commands.describe(weight="The weight of the volleyball.")
    async def volleyball(self, interaction: discord.Interaction, weight: int) -> None:
        await self._send(interaction, volleyball_reply(weight))

    @app_commands.command(
        name="reversefairy",
        description="Find the weight necessary to supply a given item drop % from a fairy.",
    )
    @app_commands.describe(itemdrop="The item drop % you are looking to get from your fairy.")
    async def reversefairy(self, interaction: discord.Interaction, itemdrop: float) -> None:
        await self._send(interaction, reversefairy_reply(itemdrop))

    @app_commands.command(
        name="substat",
        description="Find the mainstat and level for a given substat total",
    )
    @app_commands.describe(substat="The amount of substat you are reaching.")
    async def substat(
        self,
        interaction: discord.Interaction,
        substat: app_commands.Range[int, 1, None],
    ) -> None:
        await self._send(interaction, substat_reply(substat))


__all__ = ["CalculatorsCog", "volleyball_reply", "reversefairy_reply", "substat_reply"]
