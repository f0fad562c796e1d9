"""
OAF Discord Bot - Test Fixtures
===============================

Shared fixtures for all tests.

The game site is replaced by FakeKoL, an in-memory transport that speaks
just enough of kingdomofloathing.com (login.php, api.php status, the
front page, scripted pages) to drive the session and client.
"""

import asyncio
import json
import os
import sys
import tempfile
from pathlib import Path
from typing import Any, Callable, Dict, List, NamedTuple, Optional, Union
from unittest.mock import AsyncMock, MagicMock

import aiohttp
import pytest

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

# Set up test environment before importing modules
os.environ["TESTING"] = "1"
os.environ["OAF_LOGS_DIR"] = tempfile.mkdtemp(prefix="oaf-logs-")
os.environ.pop("DEBUG", None)

TEST_ENV = {
    "DISCORD_TOKEN": "test-token",
    "KOL_USER": "OAF Bot",
    "KOL_PASS": "hunter2",
    "GUILD_ID": "987654321",
    "SALT": "pepper",
    "WHITELIST_ROLE_IDS": "555,556",
    "WHITELIST_CLAN_IDS": "11,22",
}

from oaf.kol.transport import HttpResponse  # noqa: E402


# =============================================================================
# Fake Game Site
# =============================================================================

MAINTENANCE_PAGE = (
    "<html><body><center>The system is currently down for nightly maintenance."
    "</center></body></html>"
)
FRONT_PAGE = "<html><body><form action=login.php>Welcome</form></body></html>"
LOGIN_PAGE = (
    '<html><body><form action="login.php" method="post">'
    '<input type="text" name="loginname"></form></body></html>'
)


class Call(NamedTuple):
    method: str
    path: str
    params: Dict[str, Any]
    data: Optional[Dict[str, Any]]
    cookie: Optional[str]


Page = Union[str, HttpResponse, Callable[[Call], Union[str, HttpResponse]]]


class FakeKoL:
    """
    In-memory stand-in for the game site.

    Attributes:
        maintenance: Every page shows the maintenance notice while True.
        pages: Path -> body, HttpResponse, callable, or a list of those
            served in order (the last one repeats).
        fail_paths: Paths that raise a connection error.
        calls: Every request received, in order.
    """

    def __init__(self) -> None:
        self.maintenance = False
        self.pwd = "abc123"
        self.pages: Dict[str, Union[Page, List[Page]]] = {}
        self.fail_paths = set()
        self.calls: List[Call] = []
        self.logins = 0
        self.valid_cookie: Optional[str] = None
        self.closed = False

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def calls_to(self, path: str) -> List[Call]:
        return [c for c in self.calls if c.path == path]

    def expire_session(self) -> None:
        self.valid_cookie = None

    def _serve(self, call: Call) -> HttpResponse:
        page = self.pages.get(call.path)
        if isinstance(page, list):
            page = page.pop(0) if len(page) > 1 else page[0]
        if page is None:
            return HttpResponse(200, "")
        if callable(page):
            page = page(call)
        if isinstance(page, HttpResponse):
            return page
        return HttpResponse(200, page)

    # -------------------------------------------------------------------------
    # Transport Interface
    # -------------------------------------------------------------------------

    async def send(
        self,
        method: str,
        path: str,
        *,
        params=None,
        data=None,
        cookie=None,
        allow_redirects: bool = True,
    ) -> HttpResponse:
        call = Call(
            method,
            path.lstrip("/"),
            dict(params or {}),
            dict(data) if data is not None else None,
            cookie,
        )
        self.calls.append(call)

        # Let other coroutines run, as a real round trip would
        await asyncio.sleep(0)

        if call.path in self.fail_paths:
            raise aiohttp.ClientConnectionError(f"cannot reach {call.path}")

        if self.maintenance:
            return HttpResponse(200, MAINTENANCE_PAGE)

        if call.path == "":
            return HttpResponse(200, FRONT_PAGE)

        if call.path == "login.php":
            self.logins += 1
            session_id = f"s{self.logins}"
            self.valid_cookie = f"PHPSESSID={session_id}; AWSALB=www1"
            return HttpResponse(
                302,
                "",
                headers={"Location": "/game.php"},
                set_cookies=(
                    f"PHPSESSID={session_id}; path=/; secure; HttpOnly",
                    "AWSALB=www1; Path=/",
                ),
            )

        if cookie is None or cookie != self.valid_cookie:
            return HttpResponse(
                302,
                "",
                url=f"https://www.kingdomofloathing.com/{call.path}",
                headers={"Location": "login.php?notloggedin=1"},
            )

        if call.path == "api.php" and call.params.get("what") == "status":
            return HttpResponse(200, json.dumps({"pwd": self.pwd, "name": "OAF Bot"}))

        return self._serve(call)

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_kol():
    """A fresh fake game site."""
    return FakeKoL()


@pytest.fixture
def session(fake_kol):
    """A KoLSession talking to the fake site, with a fast rollover recheck."""
    from oaf.kol.session import KoLSession

    return KoLSession("OAF Bot", "hunter2", transport=fake_kol, rollover_interval=0.01)


@pytest.fixture
def kol_client(fake_kol):
    """A KoLClient talking to the fake site."""
    from oaf.kol.client import KoLClient

    return KoLClient("OAF Bot", "hunter2", transport=fake_kol, poll_interval=0.01, rollover_interval=0.01)


# =============================================================================
# Configuration
# =============================================================================

@pytest.fixture(autouse=True)
def test_config(monkeypatch):
    """Known environment and a fresh global config for every test."""
    from oaf.core import config as config_module

    for key, value in TEST_ENV.items():
        monkeypatch.setenv(key, value)
    for key in ("ALERTS_CHANNEL_ID", "ANNOUNCEMENTS_CHANNEL_ID", "VERIFIED_ROLE_ID", "ERROR_WEBHOOK_URL"):
        monkeypatch.delenv(key, raising=False)

    config_module._config = None
    yield
    config_module._config = None


# =============================================================================
# Database
# =============================================================================

@pytest.fixture
def temp_db_path(tmp_path):
    """Create a temporary database path for testing."""
    return tmp_path / "test_oaf.db"


@pytest.fixture
def test_db(temp_db_path, monkeypatch):
    """Create a fresh test database instance."""
    from oaf.core import database as db_module

    # Reset singleton
    db_module.DatabaseManager._instance = None

    # Patch the DB path
    monkeypatch.setattr(db_module, "DB_PATH", temp_db_path)
    monkeypatch.setattr(db_module, "DATA_DIR", temp_db_path.parent)

    db = db_module.DatabaseManager()

    yield db

    # Cleanup
    db.close()
    db_module.DatabaseManager._instance = None


# =============================================================================
# Discord
# =============================================================================

@pytest.fixture
def mock_discord_member():
    """Create a mock Discord member."""
    member = MagicMock()
    member.id = 123456789
    member.name = "testuser"
    member.display_name = "Test User"
    member.roles = []
    member.mention = "<@123456789>"
    member.add_roles = AsyncMock()
    member.remove_roles = AsyncMock()
    return member


@pytest.fixture
def mock_interaction(mock_discord_member):
    """Create a mock slash command interaction from a guild member."""
    interaction = MagicMock()
    interaction.user = mock_discord_member
    interaction.guild = MagicMock()
    interaction.guild.id = 987654321
    interaction.guild.get_role = MagicMock(return_value=None)
    interaction.response.send_message = AsyncMock()
    interaction.response.defer = AsyncMock()
    interaction.edit_original_response = AsyncMock()
    interaction.followup.send = AsyncMock()
    return interaction


@pytest.fixture
def mock_bot():
    """Create a mock bot with a mocked game client."""
    from oaf.kol.events import EventEmitter

    bot = MagicMock()
    bot.kol = MagicMock()
    bot.kol.events = EventEmitter()
    bot.kol.get_partial_player = AsyncMock(return_value=None)
    bot.kol.get_partial_player_from_id = AsyncMock(return_value=None)
    bot.kol.get_player_information = AsyncMock(return_value=None)
    bot.kol.is_online = AsyncMock(return_value=False)
    bot.kol.add_to_whitelist = AsyncMock(return_value=True)
    bot.kol.whisper = AsyncMock()
    bot.kol.use_chat_macro = AsyncMock()
    bot.alert = AsyncMock()
    bot.get_guild = MagicMock(return_value=None)
    return bot
