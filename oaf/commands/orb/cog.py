"""
OAF - Orb Cog
=============

/orb implementation.

Bot: OAF
Game: kingdomofloathing.com
"""

from __future__ import annotations

import random
from typing import TYPE_CHECKING, Optional

import discord
from discord import app_commands
from discord.ext import commands

if TYPE_CHECKING:
    from oaf.bot import OafBot


ORB_RESPONSES = [
    "It is certain.",
    "It is decidedly so.",
    "Without a doubt.",
    "Yes - definitely.",
    "You may rely on it.",
    "As I see it, yes.",
    "Most likely.",
    "Outlook good.",
    "Yes.",
    "Signs point to yes.",
    "Reply hazy, try again.",
    "Ask again later.",
    "Better not tell you now.",
    "Cannot predict now.",
    "Concentrate and ask again.",
    "Don't count on it.",
    "My reply is no.",
    "My sources say no.",
    "Outlook not so good.",
    "Very doubtful.",
    "If CDM has a free moment, sure.",
    "Why not?",
    "How am I meant to know?",
    "I guess???",
    "...you realise that this is just a random choice from a list of strings, right?",
    "I have literally no way to tell.",
    "Ping Bobson, he probably knows",
    "Check the wiki, answer's probably in there somewhere.",
    "The wiki has the answer.",
    "The wiki has the answer, but it's wrong.",
    "I've not finished spading the answer to that question yet.",
    "The devs know, go pester them instead of me.",
    "INSUFFICIENT DATA FOR MEANINGFUL ANSWER",
    "THERE IS AS YET INSUFFICIENT DATA FOR A MEANINGFUL ANSWER",
]


def orb_reply(question: Optional[str], rng=random) -> str:
    asked = f'"{question}", you ask.\n' if question else ""
    return f'{asked}`oaf` gazes into the mini crystal ball. "{rng.choice(ORB_RESPONSES)}", they report.'


class OrbCog(commands.Cog):
    """The miniature crystal ball."""

    def __init__(self, bot: "OafBot") -> None:
        self.bot = bot

    @app_commands.command(name="orb", description="Consult my miniature crystal ball.")
    @app_commands.describe(asktheorb="THE ORB KNOWS ALL")
    async def orb(self, interaction: discord.Interaction, asktheorb: Optional[str] = None) -> None:
        await interaction.response.send_message(
            orb_reply(asktheorb),
            allowed_mentions=discord.AllowedMentions.none(),
        )


__all__ = ["OrbCog", "ORB_RESPONSES", "orb_reply"]
