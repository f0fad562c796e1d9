"""
OAF - Whois Cog
===============

/whois implementation.

Bot: OAF
Game: kingdomofloathing.com
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import TYPE_CHECKING, Optional, Union
from urllib.parse import quote

import discord
from discord import app_commands
from discord.ext import commands

from oaf.core.config import get_config, EmbedColors
from oaf.core.database import get_db
from oaf.core.logger import logger, KOL_TZ
from oaf.kol.models import FullPlayer
from oaf.utils.footer import create_embed

if TYPE_CHECKING:
    from oaf.bot import OafBot


# A player id: digits. A name: 3 to 30 letters, digits, underscores or
# spaces, starting with a letter.
_PLAYER_IDENTIFIER = re.compile(r"^(?:[a-zA-Z][a-zA-Z0-9_ ]{2,29}|[0-9]+)$")
_MENTION = re.compile(r"^<@!?(\d+)>$")


def valid_player_identifier(identifier: str) -> bool:
    return bool(_PLAYER_IDENTIFIER.search(identifier))


def to_koldb_link(name: str) -> str:
    return f"https://www.koldb.com/player.php?name={quote(name)}"


def to_museum_link(player_id: int) -> str:
    return f"https://museum.loathers.net/player/{player_id}"


def describe_last_login(last_login: Optional[datetime], is_online: bool, now: Optional[datetime] = None) -> Optional[str]:
    """
    Last-login text for the embed.

    Days are as precise as the profile gets, so anything recent is "Today"
    or "Yesterday" rather than a misleading relative hour count.
    """
    if is_online:
        return "Currently online"
    if last_login is None:
        return None
    now = (now or datetime.now(KOL_TZ)).astimezone(KOL_TZ)
    login = last_login if last_login.tzinfo else last_login.replace(tzinfo=KOL_TZ)
    days_ago = (now.date() - login.astimezone(KOL_TZ).date()).days
    if days_ago <= 0:
        return "Today"
    if days_ago == 1:
        return "Yesterday"
    return discord.utils.format_dt(login, "R")


class WhoisCog(commands.Cog):
    """Player lookups against the game and the player store."""

    def __init__(self, bot: "OafBot") -> None:
        self.bot = bot
        self.config = get_config()
        self.db = get_db()

    @app_commands.command(name="whois", description="Look up information on a given player.")
    @app_commands.describe(
        player="The name or id of the KoL player you're looking up, or a mention of a Discord user.",
    )
    async def whois(
        self,
        interaction: discord.Interaction,
        player: app_commands.Range[str, 1, 30],
    ) -> None:
        await self.execute_whois(interaction, player)

    # =========================================================================
    # Lookup
    # =========================================================================

    async def execute_whois(self, interaction: discord.Interaction, query: str) -> None:
        await interaction.response.defer()

        identifier: Union[str, int] = query.strip()
        known_player = None

        mention = _MENTION.match(identifier)
        if mention:
            known_player = self.db.get_player_by_discord_id(int(mention.group(1)))
            if known_player is None:
                await interaction.edit_original_response(content="That user hasn't claimed a KoL account.")
                return
            identifier = known_player["player_id"]

        if isinstance(identifier, str) and not valid_player_identifier(identifier):
            await interaction.edit_original_response(
                content="Come now, you know that isn't a player. Can't believe you'd try and trick me like this. After all we've been through? 😔",
            )
            return

        partial = await self.bot.kol.get_partial_player(identifier)
        if partial is None:
            prefix = "#" if isinstance(identifier, int) else ""
            await interaction.edit_original_response(
                content=f"According to KoL, player {prefix}{identifier} does not exist.",
            )
            return

        player = await self.bot.kol.get_player_information(partial)
        if player is None:
            await interaction.edit_original_response(
                content=f"While player **{partial.name}** exists, this command didn't work. Weird.",
            )
            return

        is_online = await self.bot.kol.is_online(player.id)

        if known_player is None:
            known_player = self.db.get_player(player.id)

        # Learn new players and pick up renames / capitalisation changes
        self.db.upsert_player(player.id, player.name, player.created_date)

        discord_id = known_player["discord_id"] if known_player else None
        embed = self.build_embed(player, is_online, discord_id)

        logger.tree("Whois", [
            ("Query", query),
            ("Player", f"{player.name} (#{player.id})"),
            ("Requested By", str(interaction.user)),
        ], emoji="🔎")

        try:
            await interaction.edit_original_response(
                content=None,
                embed=embed,
                allowed_mentions=discord.AllowedMentions(users=False),
            )
        except discord.HTTPException as e:
            await self.bot.alert("Unknown error", interaction, e)
            await interaction.edit_original_response(
                content="I was unable to fetch this user, sorry. I might be unable to log in!",
                embed=None,
            )

    def build_embed(self, player: FullPlayer, is_online: bool, discord_id: Optional[int]) -> discord.Embed:
        embed = create_embed(
            title=f"**{player.name}** (#{player.id}){' 📶' if is_online else ''}",
            color=EmbedColors.INFO,
        )
        embed.set_thumbnail(url=player.avatar)

        embed.add_field(name="Class", value=player.player_class or "Unlisted", inline=False)
        embed.add_field(name="Level", value=str(player.level), inline=False)
        embed.add_field(
            name="Ascensions",
            value=f"[{player.ascensions:,}]({to_koldb_link(player.name)})",
            inline=False,
        )

        if player.favorite_food:
            embed.add_field(name="Favorite Food", value=player.favorite_food, inline=False)
        if player.favorite_booze:
            embed.add_field(name="Favorite Booze", value=player.favorite_booze, inline=False)

        last_login = describe_last_login(player.last_login, is_online)
        if last_login:
            embed.add_field(name="Last Login", value=last_login, inline=False)

        if player.created_date:
            created = player.created_date.replace(tzinfo=KOL_TZ)
            embed.add_field(name="Account Created", value=discord.utils.format_dt(created, "R"), inline=False)

        embed.add_field(
            name="Display Case",
            value=f"[Browse]({to_museum_link(player.id)})" if player.has_display_case else "*none*",
            inline=False,
        )

        if discord_id:
            embed.add_field(name="Discord", value=f"<@{discord_id}>", inline=False)

        return embed


__all__ = ["WhoisCog", "valid_player_identifier", "describe_last_login"]
