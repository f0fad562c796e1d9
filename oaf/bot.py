"""
OAF Discord Bot - Main Bot Class
================================

Discord client for the Ascension Speed Society server, bridging Discord
and Kingdom of Loathing through a logged-in game account.

Features:
- Player lookups, claiming and clan whitelisting through the game
- Familiar and stat calculators
- Game announcements relayed into Discord
- Alerts channel for crashes and misconfiguration
- Health check HTTP endpoint

Bot: OAF
Game: kingdomofloathing.com
"""

import traceback
from datetime import datetime
from typing import List, Optional

import discord
from discord import app_commands
from discord.ext import commands

from oaf.core.config import get_config, EmbedColors
from oaf.core.database import get_db
from oaf.core.health import HealthCheckServer
from oaf.core.logger import logger
from oaf.kol.client import KoLClient
from oaf.utils.async_utils import create_safe_task
from oaf.utils.error_handler import ErrorHandler
from oaf.utils.retry import safe_fetch_channel, safe_send


CRASH_MESSAGE = (
    "OAF recovered from a crash trying to process that command. "
    "This has been logged, but poke in #mafia-and-scripting if it keeps happening."
)


# =============================================================================
# OafBot Class
# =============================================================================

class OafBot(commands.Bot):
    """
    Discord side of OAF.

    DESIGN: Holds the one KoLClient every cog talks to the game through,
    so there is only ever one game session. Slash-command crashes are
    reported to the alerts channel and to the user who hit them.

    Startup:
    1. setup_hook, before the gateway connects: load command and event
       cogs, then sync the command tree.
    2. on_ready, once per process: resolve the alerts channel (posting
       anything queued before it), start the game poller, start the
       health server.
    """

    # =========================================================================
    # Initialization
    # =========================================================================

    def __init__(self, kol: Optional[KoLClient] = None) -> None:
        self.config = get_config()

        intents = discord.Intents.default()
        intents.members = True

        super().__init__(command_prefix="!", intents=intents, help_command=None)

        self.db = get_db()
        self.start_time: datetime = datetime.now()
        self.kol: KoLClient = kol if kol is not None else KoLClient(
            self.config.kol_user,
            self.config.kol_pass,
            chat_channel=self.config.chat_channel,
            poll_interval=self.config.chat_poll_interval,
            rollover_interval=self.config.rollover_check_interval,
        )

        self.health_server: Optional[HealthCheckServer] = None
        self.alerts_channel: Optional[discord.abc.Messageable] = None
        self._alerts_queue: List[dict] = []
        self._ready_initialized: bool = False

        self.tree.on_error = self.on_app_command_error

    # =========================================================================
    # Setup Hook
    # =========================================================================

    async def _load_cogs(self, kind: str, extensions: List[str]) -> int:
        loaded = 0
        for extension in extensions:
            try:
                await self.load_extension(extension)
                loaded += 1
            except commands.ExtensionError as e:
                logger.error(f"{kind} Cog Failed to Load", [
                    ("Extension", extension),
                    ("Error", str(e)),
                ])
        return loaded

    async def setup_hook(self) -> None:
        from oaf.commands import COMMAND_COGS
        from oaf.events import EVENT_COGS

        commands_loaded = await self._load_cogs("Command", COMMAND_COGS)
        events_loaded = await self._load_cogs("Event", EVENT_COGS)

        try:
            synced = await self.tree.sync()
        except discord.HTTPException as e:
            logger.error("Command Sync Failed", [("Error", str(e))])
            synced = []

        logger.tree("Cogs Loaded", [
            ("Commands", f"{commands_loaded}/{len(COMMAND_COGS)}"),
            ("Events", f"{events_loaded}/{len(EVENT_COGS)}"),
            ("Synced", str(len(synced))),
        ], emoji="🧩")

    # =========================================================================
    # On Ready
    # =========================================================================

    async def on_ready(self) -> None:
        """Start the game side once Discord is connected."""
        if self._ready_initialized:
            logger.info("Bot Reconnected (skipping re-initialization)")
            return

        self._ready_initialized = True

        if not self.user:
            return

        logger.tree("BOT ONLINE", [
            ("Name", self.user.name),
            ("ID", str(self.user.id)),
            ("Guilds", str(len(self.guilds))),
        ], emoji="🚀")

        if self.config.error_webhook_url:
            logger.set_webhook(self.config.error_webhook_url)

        channel = await safe_fetch_channel(self, self.config.alerts_channel_id)
        if channel is not None:
            await self.init_alerts_channel(channel)

        create_safe_task(self.kol.start_chat_bot(), name="KoL Chat Bot Startup")

        self.health_server = HealthCheckServer(self, port=self.config.port)
        await self.health_server.start()

        logger.tree("OAF READY", [
            ("KoL User", self.kol.username),
            ("Alerts Channel", "Set" if self.alerts_channel else "Missing"),
            ("Health Server", "Running" if self.health_server.runner else "Stopped"),
        ], emoji="🦉")

    # =========================================================================
    # Alerts
    # =========================================================================

    async def init_alerts_channel(self, channel: discord.abc.Messageable) -> None:
        """Set the alerts channel and post anything queued before it was known."""
        self.alerts_channel = channel
        while self._alerts_queue:
            await safe_send(channel, **self._alerts_queue.pop(0))

    def _build_alert(
        self,
        description: str,
        interaction: Optional[discord.Interaction] = None,
        error: Optional[BaseException] = None,
    ) -> dict:
        embeds = []

        if interaction is not None:
            command = interaction.command
            circumstances = discord.Embed(title="Circumstances", color=EmbedColors.INFO)
            circumstances.add_field(
                name="Command run",
                value=f"/{command.qualified_name}" if command else "unknown",
                inline=False,
            )
            circumstances.add_field(name="User", value=interaction.user.mention, inline=False)
            embeds.append(circumstances)

        if error is not None:
            trace = "".join(traceback.format_exception(type(error), error, error.__traceback__))
            details = discord.Embed(title="Error", color=EmbedColors.ERROR)
            details.add_field(name="Type", value=type(error).__name__, inline=False)
            details.add_field(name="Message", value=f"```{str(error)[:1000] or '-'}```", inline=False)
            details.add_field(name="Traceback", value=f"```{trace[-1000:]}```", inline=False)
            embeds.append(details)

        return {
            "content": description,
            "embeds": embeds,
            "allowed_mentions": discord.AllowedMentions(users=False),
        }

    async def alert(
        self,
        description: str,
        interaction: Optional[discord.Interaction] = None,
        error: Optional[BaseException] = None,
    ) -> None:
        """
        Post an alert to the alerts channel.

        Alerts raised before the channel is known are queued; in debug
        mode they are only logged.
        """
        if error is not None:
            logger.error("Alert", [
                ("Description", description),
                ("Error Type", type(error).__name__),
                ("Error", str(error)[:200]),
            ])
        else:
            logger.warning(f"Alert: {description}")

        if self.config.debug:
            logger.warning("(Suppressing alerts due to debug mode)")
            return

        alert = self._build_alert(description, interaction, error)

        if self.alerts_channel is None:
            logger.warning("Queuing alert as no channel initialised yet")
            self._alerts_queue.append(alert)
            return

        await safe_send(self.alerts_channel, **alert)

    # =========================================================================
    # Command Errors
    # =========================================================================

    async def on_app_command_error(
        self,
        interaction: discord.Interaction,
        error: app_commands.AppCommandError,
    ) -> None:
        """Alert on an uncaught slash-command error and tell the user."""
        original = getattr(error, "original", error)
        ErrorHandler.handle(original, location="OafBot.on_app_command_error", interaction=interaction)
        await self.alert("Recovered from a crash", interaction, original)

        try:
            if not interaction.response.is_done():
                await interaction.response.send_message(CRASH_MESSAGE)
            elif interaction.response.type == discord.InteractionResponseType.deferred_channel_message:
                await interaction.edit_original_response(content=CRASH_MESSAGE)
            else:
                await interaction.followup.send(CRASH_MESSAGE)
        except discord.HTTPException as e:
            logger.warning(f"Could not send crash message: {e}")

    # =========================================================================
    # Shutdown
    # =========================================================================

    async def shutdown(self) -> None:
        """Log out of the game, stop serving health checks, then disconnect."""
        logger.info("Shutting Down")

        await self.kol.close()

        if self.health_server:
            await self.health_server.stop()

        self.db.close()
        await super().close()

        logger.tree("SHUTDOWN COMPLETE", [
            ("Uptime", str(datetime.now() - self.start_time)),
        ], emoji="🛑")

    async def close(self) -> None:
        """Route discord.py's close through shutdown."""
        await self.shutdown()


__all__ = ["OafBot", "CRASH_MESSAGE"]
