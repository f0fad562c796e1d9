"""
OAF - Claim Cog
===============

/claim implementation, the in-game "claim" whisper responder, and the
verified-role synchronisation run on startup.

Bot: OAF
Game: kingdomofloathing.com
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

import discord
from discord import app_commands
from discord.ext import commands

from oaf.core.config import get_config
from oaf.core.database import get_db
from oaf.core.logger import logger
from oaf.kol.events import WHISPER
from oaf.kol.models import KoLMessage
from oaf.utils.tokens import check_player_token, generate_player_token, time_remaining

if TYPE_CHECKING:
    from oaf.bot import OafBot


class ClaimCog(commands.Cog):
    """Account claiming through short-lived in-game tokens."""

    def __init__(self, bot: "OafBot") -> None:
        self.bot = bot
        self.config = get_config()
        self.db = get_db()
        self._roles_synced = False

    @property
    def oaf_user(self) -> str:
        """Bot account name as typed in a /msg command."""
        return self.config.kol_user.replace(" ", "_")

    async def cog_load(self) -> None:
        self.bot.kol.events.on(WHISPER, self.on_kol_whisper)

    async def cog_unload(self) -> None:
        self.bot.kol.events.off(WHISPER, self.on_kol_whisper)

    # =========================================================================
    # In-Game Token Requests
    # =========================================================================

    async def on_kol_whisper(self, whisper: KoLMessage) -> None:
        """Answer a "claim" whisper with a fresh token."""
        if whisper.msg.strip() != "claim":
            return

        token = generate_player_token(whisper.who.id, self.config.salt)
        await self.bot.kol.whisper(
            whisper.who.id,
            f"Your token is {token} (expires in {time_remaining()} seconds)",
        )
        logger.tree("Claim Token Sent", [
            ("Player", f"{whisper.who.name} (#{whisper.who.id})"),
        ], emoji="🎟️")

    # =========================================================================
    # /claim
    # =========================================================================

    @app_commands.command(name="claim", description="Claim a KoL player account.")
    @app_commands.describe(token="The token that I sent you")
    async def claim(self, interaction: discord.Interaction, token: Optional[str] = None) -> None:
        await self.execute_claim(interaction, token)

    async def execute_claim(self, interaction: discord.Interaction, token: Optional[str]) -> None:
        if not token:
            await interaction.response.send_message(
                f"Get a verification token by sending `/msg {self.oaf_user} claim` in chat",
                ephemeral=True,
            )
            return

        player_id, valid = check_player_token(token, self.config.salt)
        if not valid:
            await interaction.response.send_message(
                "That code is invalid. Hopefully it timed out and you're not being "
                f"a naughty little {interaction.user.name}",
                ephemeral=True,
            )
            return

        await interaction.response.defer(ephemeral=True)

        partial = await self.bot.kol.get_partial_player_from_id(player_id)
        player = await self.bot.kol.get_player_information(partial) if partial else None
        if player is None:
            await interaction.edit_original_response(
                content="Hmm we can't see that user. But it's a valid token, so this is our fault or something very bad has happened",
            )
            return

        previously_claimed = self.db.claim_player(
            player.id,
            player.name,
            interaction.user.id,
            player.created_date,
        )

        await self._grant_verified_role(interaction)

        previous = " Any previous link will have been removed." if previously_claimed else ""
        await interaction.edit_original_response(
            content=f"Your Discord account has been successfully linked with `{player.name} (#{player.id})`.{previous}",
        )

    async def _grant_verified_role(self, interaction: discord.Interaction) -> None:
        if not self.config.verified_role_id:
            return

        guild = interaction.guild or self.bot.get_guild(self.config.guild_id)
        role = guild.get_role(self.config.verified_role_id) if guild else None
        if role is None:
            return

        try:
            member = guild.get_member(interaction.user.id) or await guild.fetch_member(interaction.user.id)
            await member.add_roles(role, reason="Claimed KoL account")
        except discord.HTTPException as e:
            logger.warning("Verified Role Grant Failed", [
                ("User", str(interaction.user)),
                ("Error", str(e)[:100]),
            ])

    # =========================================================================
    # Role Synchronisation
    # =========================================================================

    @commands.Cog.listener()
    async def on_ready(self) -> None:
        if self._roles_synced or not self.config.verified_role_id:
            return
        self._roles_synced = True
        await self.synchronise_roles()

    async def synchronise_roles(self) -> None:
        """Make the verified role's members exactly the claimed Discord users."""
        guild = self.bot.get_guild(self.config.guild_id)
        role = guild.get_role(self.config.verified_role_id) if guild else None

        if role is None:
            await self.bot.alert(f"Verified role ({self.config.verified_role_id}) cannot be found")
            return

        expected = self.db.get_claimed_discord_ids()
        removed = added = 0

        for member in list(role.members):
            if member.id in expected:
                expected.discard(member.id)
                continue
            try:
                await member.remove_roles(role, reason="No claimed KoL account")
                removed += 1
            except discord.HTTPException as e:
                logger.warning(f"Could not remove verified role from {member}: {e}")

        for discord_id in expected:
            member = guild.get_member(discord_id)
            try:
                if member is None:
                    member = await guild.fetch_member(discord_id)
                await member.add_roles(role, reason="Claimed KoL account")
                added += 1
            except discord.NotFound:
                # Left the guild
                continue
            except discord.HTTPException as e:
                logger.warning(f"Could not add verified role to {discord_id}: {e}")

        logger.tree("Verified Roles Synchronised", [
            ("Added", str(added)),
            ("Removed", str(removed)),
        ], emoji="🔄")


__all__ = ["ClaimCog"]
