"""
OAF - Whitelist Cog
===================

/whitelist implementation.

Bot: OAF
Game: kingdomofloathing.com
"""

from __future__ import annotations

from typing import TYPE_CHECKING, List

import discord
from discord import app_commands
from discord.ext import commands

from oaf.core.config import get_config, can_edit_whitelists
from oaf.core.logger import logger

if TYPE_CHECKING:
    from oaf.bot import OafBot


class WhitelistCog(commands.Cog):
    """Clan whitelist management for whitelist-editing roles."""

    def __init__(self, bot: "OafBot") -> None:
        self.bot = bot
        self.config = get_config()

    @app_commands.command(name="whitelist", description="Adds a player to the managed clan whitelists.")
    @app_commands.describe(player="The name of the player to add to the whitelists.")
    async def whitelist(self, interaction: discord.Interaction, player: str) -> None:
        await self.execute_whitelist(interaction, player)

    async def execute_whitelist(self, interaction: discord.Interaction, player_name_or_id: str) -> None:
        """
        Whitelist a player in every configured clan, one clan at a time.

        Each clan is its own exclusive game action (join, then add), so
        another command can run between clans but never inside one.
        """
        if interaction.guild is None:
            await interaction.response.send_message(
                "You have to perform this action from within a Guild.",
                ephemeral=True,
            )
            return

        if not can_edit_whitelists(interaction.user):
            await interaction.response.send_message(
                "You are not permitted to edit clan whitelists.",
                ephemeral=True,
            )
            return

        await interaction.response.defer()

        player = await self.bot.kol.get_partial_player(player_name_or_id)
        if player is None:
            await interaction.edit_original_response(content="Player not found.")
            return

        failed: List[int] = []
        for clan_id in self.config.whitelist_clan_ids:
            if not await self.bot.kol.add_to_whitelist(player.id, clan_id):
                failed.append(clan_id)

        logger.tree("Player Whitelisted", [
            ("Player", f"{player.name} (#{player.id})"),
            ("Clans", str(len(self.config.whitelist_clan_ids) - len(failed))),
            ("Failed", ", ".join(str(c) for c in failed) or "None"),
            ("Requested By", str(interaction.user)),
        ], emoji="📜")

        content = f"Added player {player.name} (#{player.id}) to all managed clan whitelists."
        if failed:
            content = (
                f"Added player {player.name} (#{player.id}) to the managed clan whitelists, "
                f"except clan{'s' if len(failed) > 1 else ''} {', '.join(str(c) for c in failed)}, "
                "which I could not join."
            )
        await interaction.edit_original_response(content=content)


__all__ = ["WhitelistCog"]
