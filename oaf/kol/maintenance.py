"""
OAF Discord Bot - Rollover Detector
===================================

Notices the nightly maintenance window and its end.

DESIGN:
    Kingdom of Loathing goes down every night for rollover. While it is
    down, logging in is pointless, so the session asks this detector
    first. A probe is an anonymous GET of the front page; the maintenance
    notice in the body means Down.

    While Down the detector re-probes on its own every `interval` seconds,
    with at most one re-check pending. While Up nothing is scheduled;
    the session probes after a failed login. The first Up after a Down
    leaves a one-shot "resume" signal, which the session consumes on its
    next successful login and turns into a `rollover` event.

Bot: OAF
Game: kingdomofloathing.com
"""

import asyncio
import re
from typing import Optional

from oaf.core.logger import logger
from oaf.kol.transport import TRANSPORT_ERRORS


MAINTENANCE_PATTERN = re.compile(r"The system is currently down for nightly maintenance")
DEFAULT_RECHECK_INTERVAL = 60


class RolloverDetector:
    """Tracks whether the game is in its maintenance window."""

    def __init__(self, transport, interval: float = DEFAULT_RECHECK_INTERVAL) -> None:
        self._transport = transport
        self.interval = interval
        self._down = False
        self._pending_resume = False
        self._recheck_task: Optional[asyncio.Task] = None
        self._stopped = False

    @property
    def in_maintenance(self) -> bool:
        return self._down

    @property
    def pending_resume(self) -> bool:
        return self._pending_resume

    # =========================================================================
    # Probing
    # =========================================================================

    async def check(self) -> bool:
        """
        Probe the front page and update state.

        Returns:
            True if the game is in maintenance after the probe.
        """
        try:
            response = await self._transport.send("GET", "/")
        except TRANSPORT_ERRORS as e:
            logger.debug(f"Rollover probe failed, keeping state: {type(e).__name__}")
            if self._down:
                self._schedule_recheck()
            return self._down

        was_down = self._down
        self._down = bool(MAINTENANCE_PATTERN.search(response.text))

        if self._down:
            if not was_down:
                logger.tree("KoL Maintenance Started", [
                    ("Recheck", f"every {self.interval}s"),
                ], emoji="🌙")
            self._schedule_recheck()
        elif was_down:
            self._pending_resume = True
            logger.tree("KoL Maintenance Over", [
                ("Next", "rollover event after login"),
            ], emoji="🌅")

        return self._down

    def _schedule_recheck(self) -> None:
        """Schedule one re-probe unless one is already pending."""
        if self._stopped:
            return
        task = self._recheck_task
        # The running re-check counts as finished once it reaches check()
        if task is not None and not task.done() and task is not asyncio.current_task():
            return
        self._recheck_task = asyncio.create_task(self._recheck(), name="Rollover Recheck")

    async def _recheck(self) -> None:
        try:
            await asyncio.sleep(self.interval)
            await self.check()
        finally:
            if self._recheck_task is asyncio.current_task():
                self._recheck_task = None

    # =========================================================================
    # Resume Signal
    # =========================================================================

    def consume_resume_signal(self) -> bool:
        """Return and clear the resume signal."""
        pending = self._pending_resume
        self._pending_resume = False
        return pending

    async def stop(self) -> None:
        """Cancel any scheduled re-check."""
        self._stopped = True
        task = self._recheck_task
        self._recheck_task = None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass


__all__ = ["RolloverDetector", "MAINTENANCE_PATTERN", "DEFAULT_RECHECK_INTERVAL"]
