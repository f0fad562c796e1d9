"""
OAF Discord Bot - Logger Module
===============================

Tree-style logging stamped with the game's clock.

DESIGN:
    Everything OAF does against the game happens in bursts: a login, a
    whois lookup, a relayed announcement. Each burst is logged as one
    titled block with its details hung underneath, so a log reads like a
    list of game actions rather than a stream of unrelated lines.

    Timestamps are Arizona time (America/Phoenix), the clock rollover
    runs on, so the nightly maintenance window lines up with the logs.

    Output:
    - stdout, for the process supervisor
    - logs/<date>/OAF-<date>.log, everything
    - logs/<date>/OAF-Errors-<date>.log, errors only
    - the error webhook, for errors that carry details

    Dated folders older than LOG_RETENTION_DAYS are removed on startup.
    OAF_LOGS_DIR moves the whole tree (tests point it at a temp dir).

Bot: OAF
Game: kingdomofloathing.com
"""

import asyncio
import os
import shutil
import uuid
from datetime import datetime, timedelta
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple

import aiohttp
from zoneinfo import ZoneInfo


# =============================================================================
# Constants
# =============================================================================

LOGS_DIR = Path(os.getenv("OAF_LOGS_DIR", "logs"))
"""Root of the dated log folders."""

LOG_RETENTION_DAYS = 7

KOL_TZ = ZoneInfo("America/Phoenix")
"""Rollover clock. Arizona has no DST, so rollover is always at the same local time."""

WEBHOOK_COLOR = 0xDC3545

Details = Sequence[Tuple[str, str]]


def format_tree(title: str, items: Details, emoji: str = "", stamp: str = "") -> List[str]:
    """
    Render a titled block of (key, value) branches.

    Example:
        [02:30:45 PM MST] 🔑 KoL Login Succeeded
          ├─ User: OAF
          └─ Session: fresh
    """
    head = " ".join(part for part in (stamp, emoji, title) if part)
    lines = [head]
    for index, (key, value) in enumerate(items):
        branch = "└─" if index == len(items) - 1 else "├─"
        lines.append(f"  {branch} {key}: {value}")
    return lines


# =============================================================================
# Tree Logger
# =============================================================================

class TreeLogger:
    """
    Process-wide logger.

    Attributes:
        run_id: Short id printed in the session header and webhook footer.
        log_file: Today's main log.
        error_file: Today's error log.
    """

    def __init__(self, root: Path = LOGS_DIR) -> None:
        self.run_id: str = uuid.uuid4().hex[:8]
        self._webhook_url: Optional[str] = None
        self._root = root

        today = datetime.now(KOL_TZ).strftime("%Y-%m-%d")
        folder = root / today
        folder.mkdir(parents=True, exist_ok=True)

        self.log_file = folder / f"OAF-{today}.log"
        self.error_file = folder / f"OAF-Errors-{today}.log"

        self._remove_expired_folders()
        self._append(self.log_file, [
            "",
            "=" * 60,
            f"OAF SESSION {self.run_id} - {datetime.now(KOL_TZ):%Y-%m-%d %I:%M:%S %p %Z}",
            "=" * 60,
        ])

    def set_webhook(self, url: Optional[str]) -> None:
        """Send errors with details to this Discord webhook from now on."""
        self._webhook_url = url

    # =========================================================================
    # Files
    # =========================================================================

    def _remove_expired_folders(self) -> None:
        cutoff = datetime.now(KOL_TZ).date() - timedelta(days=LOG_RETENTION_DAYS)
        removed = 0

        for folder in self._root.iterdir():
            if not folder.is_dir():
                continue
            try:
                day = datetime.strptime(folder.name, "%Y-%m-%d").date()
            except ValueError:
                continue
            if day < cutoff:
                shutil.rmtree(folder, ignore_errors=True)
                removed += 1

        if removed:
            print(f"[LOG CLEANUP] Removed {removed} expired log folders")

    @staticmethod
    def _append(path: Path, lines: Iterable[str]) -> None:
        with open(path, "a", encoding="utf-8") as f:
            for line in lines:
                f.write(f"{line}\n")

    def _emit(self, lines: List[str], error: bool = False) -> None:
        """Print lines and append them to the log (and error log)."""
        for line in lines:
            print(line)
        self._append(self.log_file, lines)
        if error:
            self._append(self.error_file, lines)

    @staticmethod
    def _stamp() -> str:
        return datetime.now(KOL_TZ).strftime("[%I:%M:%S %p %Z]")

    def _log(self, emoji: str, msg: str, details: Optional[Details] = None, error: bool = False) -> None:
        self._emit(format_tree(msg, details or (), emoji, self._stamp()), error=error)

    # =========================================================================
    # Public API
    # =========================================================================

    def tree(self, title: str, items: Details, emoji: str = "📦") -> None:
        """Log a titled block with one branch per item, padded by blank lines."""
        self._emit(["", *format_tree(title, items, emoji, self._stamp()), ""])

    def debug(self, msg: str) -> None:
        """Only logged when the DEBUG environment variable is set."""
        if os.getenv("DEBUG"):
            self._log("🔍", msg)

    def info(self, msg: str, details: Optional[Details] = None) -> None:
        self._log("ℹ️", msg, details)

    def success(self, msg: str) -> None:
        self._log("✅", msg)

    def warning(self, msg: str, details: Optional[Details] = None) -> None:
        self._log("⚠️", msg, details)

    def error(self, msg: str, details: Optional[Details] = None) -> None:
        """
        Log an error to both files.

        Errors with details are also posted to the webhook, when one is
        set and an event loop is running to post from.
        """
        self._log("❌", msg, details, error=True)
        if not details or not self._webhook_url:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        loop.create_task(self._post_webhook(msg, list(details)))

    def critical(self, msg: str) -> None:
        self._log("🚨", msg, error=True)

    # =========================================================================
    # Webhook
    # =========================================================================

    async def _post_webhook(self, title: str, details: List[Tuple[str, str]]) -> None:
        payload = {
            "embeds": [{
                "title": f"❌ {title}",
                "description": "\n".join(f"**{key}:** {value}" for key, value in details),
                "color": WEBHOOK_COLOR,
                "timestamp": datetime.now(KOL_TZ).isoformat(),
                "footer": {"text": f"OAF run {self.run_id}"},
            }]
        }
        try:
            async with aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=10)) as session:
                async with session.post(self._webhook_url, json=payload) as resp:
                    if resp.status >= 300:
                        print(f"[WEBHOOK] Discord answered {resp.status}")
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            print(f"[WEBHOOK] Could not post error: {e}")


# =============================================================================
# Global Instance
# =============================================================================

logger = TreeLogger()


__all__ = [
    "logger",
    "TreeLogger",
    "format_tree",
    "KOL_TZ",
    "LOGS_DIR",
]
