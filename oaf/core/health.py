"""
OAF Discord Bot - Health Check Server
=====================================

/health endpoint for uptime monitors.

DESIGN:
    Monitors want to know two things: is the bot connected to Discord,
    and can it reach the game. The nightly rollover gets its own state so
    a monitor can tell "the game is down for maintenance" apart from "the
    bot is broken". No credentials or ids are ever included.

    States, in precedence order:
    - starting: Discord is not ready yet
    - maintenance: the game is in its rollover window
    - healthy: Discord ready and a game session is held
    - degraded: Discord ready but no game session

Bot: OAF
Game: kingdomofloathing.com
"""

from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, Optional

from aiohttp import web

from oaf.core.logger import logger, KOL_TZ

if TYPE_CHECKING:
    from oaf.bot import OafBot


class HealthCheckServer:
    """
    aiohttp server answering GET / and GET /health with a JSON status.

    Attributes:
        bot: Bot whose Discord and game state is reported.
        port: Listening port, from PORT.
        runner: AppRunner while serving, None otherwise.
    """

    def __init__(self, bot: "OafBot", port: int = 8080) -> None:
        self.bot = bot
        self.port = port
        self.runner: Optional[web.AppRunner] = None

        self.app = web.Application()
        self.app.add_routes([
            web.get("/", self.health_handler),
            web.get("/health", self.health_handler),
        ])

    # =========================================================================
    # Status
    # =========================================================================

    def status(self) -> Dict[str, Any]:
        """Snapshot of Discord and game state."""
        connected = self.bot.is_ready()
        in_maintenance = self.bot.kol.in_maintenance
        has_session = self.bot.kol.has_session

        if not connected:
            state = "starting"
        elif in_maintenance:
            state = "maintenance"
        elif has_session:
            state = "healthy"
        else:
            state = "degraded"

        return {
            "status": state,
            "bot": "OAF",
            "connected": connected,
            "guilds": len(self.bot.guilds),
            "kol_logged_in": has_session,
            "kol_maintenance": in_maintenance,
            "timestamp": datetime.now(KOL_TZ).isoformat(),
        }

    async def health_handler(self, request: web.Request) -> web.Response:
        report = self.status()
        logger.debug(f"Health probe from {request.remote}: {report['status']}")
        return web.json_response(report)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def start(self) -> None:
        """Serve on every interface. A busy port is logged, not raised."""
        runner = web.AppRunner(self.app)
        await runner.setup()
        try:
            await web.TCPSite(runner, "0.0.0.0", self.port).start()
        except OSError as e:
            await runner.cleanup()
            logger.error("Health Server Could Not Bind", [
                ("Port", str(self.port)),
                ("Error", str(e)[:100]),
            ])
            return

        self.runner = runner
        logger.tree("Health Server Listening", [
            ("Port", str(self.port)),
            ("Path", "/health"),
        ], emoji="🏥")

    async def stop(self) -> None:
        if self.runner is None:
            return
        await self.runner.cleanup()
        self.runner = None
        logger.info("Health Server Stopped")


__all__ = ["HealthCheckServer"]
