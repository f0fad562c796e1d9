"""
OAF Discord Bot - Player Database
=================================

SQLite store of known game players and their linked Discord accounts.

Consolidates:
- Players seen through /whois (name and id, kept current on every lookup)
- Discord links created through /claim

Single database file: data/oaf.db

Bot: OAF
Game: kingdomofloathing.com
"""

import sqlite3
import threading
import time
from datetime import datetime
from pathlib import Path
from typing import Optional, List, Tuple, Set, TypedDict

from oaf.core.logger import logger


# =============================================================================
# Type Definitions
# =============================================================================

class PlayerRecord(TypedDict, total=False):
    """A players row as a dict."""
    player_id: int
    player_name: str
    discord_id: Optional[int]
    account_creation_date: Optional[float]
    updated_at: float


# =============================================================================
# Constants
# =============================================================================

DATA_DIR: Path = Path(__file__).parent.parent.parent / "data"
DB_PATH: Path = DATA_DIR / "oaf.db"


def _to_timestamp(value: Optional[datetime]) -> Optional[float]:
    """Convert an optional datetime to a POSIX timestamp."""
    return value.timestamp() if value is not None else None


def _row_to_player(row: Optional[sqlite3.Row]) -> Optional[PlayerRecord]:
    if row is None:
        return None
    return PlayerRecord(
        player_id=row["player_id"],
        player_name=row["player_name"],
        discord_id=row["discord_id"],
        account_creation_date=row["account_creation_date"],
        updated_at=row["updated_at"],
    )


# =============================================================================
# Database Manager (Singleton)
# =============================================================================

class DatabaseManager:
    """
    The one connection to data/oaf.db.

    DESIGN: Command handlers and the chat poller share this instance. WAL
    journaling lets lookups read while a claim is being written, and a
    single lock keeps statements on the shared connection from interleaving.
    """

    _instance: Optional["DatabaseManager"] = None
    _lock: threading.Lock = threading.Lock()

    def __new__(cls) -> "DatabaseManager":
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
                    cls._instance._initialized = False
        return cls._instance

    def __init__(self) -> None:
        if self._initialized:
            return

        self._db_lock: threading.Lock = threading.Lock()
        self._conn: Optional[sqlite3.Connection] = None

        DATA_DIR.mkdir(parents=True, exist_ok=True)
        self._open()
        self._create_schema()
        self._initialized = True

        logger.tree("Player Database Ready", [
            ("File", str(DB_PATH)),
            ("Players", str(self._count_players())),
        ], emoji="🗄️")

    # =========================================================================
    # Connection
    # =========================================================================

    def _open(self) -> None:
        try:
            conn = sqlite3.connect(str(DB_PATH), check_same_thread=False, timeout=30.0)
        except sqlite3.Error as e:
            logger.error("Could Not Open Player Database", [
                ("File", str(DB_PATH)),
                ("Error", str(e)),
            ])
            raise
        conn.row_factory = sqlite3.Row
        for pragma in ("journal_mode=WAL", "synchronous=NORMAL"):
            conn.execute(f"PRAGMA {pragma}")
        self._conn = conn

    def _connection(self) -> sqlite3.Connection:
        """The live connection, reopened if it was closed or went bad."""
        if self._conn is not None:
            try:
                self._conn.execute("SELECT 1")
                return self._conn
            except sqlite3.Error:
                logger.warning("Player database connection lost, reopening")
        self._open()
        return self._conn

    def execute(self, query: str, params: Tuple = (), commit: bool = True) -> sqlite3.Cursor:
        with self._db_lock:
            conn = self._connection()
            cursor = conn.execute(query, params)
            if commit:
                conn.commit()
            return cursor

    def fetchone(self, query: str, params: Tuple = ()) -> Optional[sqlite3.Row]:
        return self.execute(query, params, commit=False).fetchone()

    def fetchall(self, query: str, params: Tuple = ()) -> List[sqlite3.Row]:
        return self.execute(query, params, commit=False).fetchall()

    def close(self) -> None:
        with self._db_lock:
            if self._conn is None:
                return
            self._conn.close()
            self._conn = None
        logger.info("Player Database Closed")

    # =========================================================================
    # Schema
    # =========================================================================

    def _create_schema(self) -> None:
        """One row per game account; discord_id is set once it is claimed."""
        conn = self._connection()
        conn.execute("""
            CREATE TABLE IF NOT EXISTS players (
                player_id INTEGER PRIMARY KEY,
                player_name TEXT NOT NULL,
                discord_id INTEGER UNIQUE,
                account_creation_date REAL,
                updated_at REAL NOT NULL
            )
        """)
        conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_players_name ON players(player_name COLLATE NOCASE)"
        )
        conn.commit()

    def _count_players(self) -> int:
        return self.fetchone("SELECT COUNT(*) AS n FROM players")["n"]

    # =========================================================================
    # Player Operations
    # =========================================================================

    def upsert_player(
        self,
        player_id: int,
        player_name: str,
        account_creation_date: Optional[datetime] = None,
    ) -> None:
        """
        Record a player, refreshing the name for renames and capitalisation.

        An existing creation date is kept when the new one is unknown.
        """
        self.execute(
            """
            INSERT INTO players (player_id, player_name, account_creation_date, updated_at)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(player_id) DO UPDATE SET
                player_name = excluded.player_name,
                account_creation_date = COALESCE(excluded.account_creation_date, players.account_creation_date),
                updated_at = excluded.updated_at
            """,
            (player_id, player_name, _to_timestamp(account_creation_date), time.time()),
        )

    def get_player(self, player_id: int) -> Optional[PlayerRecord]:
        """Get a player by game id."""
        row = self.fetchone("SELECT * FROM players WHERE player_id = ?", (player_id,))
        return _row_to_player(row)

    def get_player_by_discord_id(self, discord_id: int) -> Optional[PlayerRecord]:
        """Get the player claimed by a Discord user."""
        row = self.fetchone("SELECT * FROM players WHERE discord_id = ?", (discord_id,))
        return _row_to_player(row)

    def claim_player(
        self,
        player_id: int,
        player_name: str,
        discord_id: int,
        account_creation_date: Optional[datetime] = None,
    ) -> bool:
        """
        Link a Discord user to a player.

        Any player previously linked to the same Discord user is unlinked
        first, so a user owns at most one player.

        Returns:
            True if a previous link was removed.
        """
        with self._db_lock:
            conn = self._connection()
            # Unlink and link commit together or not at all
            with conn:
                unlinked = conn.execute(
                    "UPDATE players SET discord_id = NULL WHERE discord_id = ? AND player_id != ?",
                    (discord_id, player_id),
                )
                previously_claimed = unlinked.rowcount > 0
                conn.execute(
                    """
                    INSERT INTO players (player_id, player_name, discord_id, account_creation_date, updated_at)
                    VALUES (?, ?, ?, ?, ?)
                    ON CONFLICT(player_id) DO UPDATE SET
                        player_name = excluded.player_name,
                        discord_id = excluded.discord_id,
                        account_creation_date = COALESCE(excluded.account_creation_date, players.account_creation_date),
                        updated_at = excluded.updated_at
                    """,
                    (player_id, player_name, discord_id, _to_timestamp(account_creation_date), time.time()),
                )

        logger.tree("Player Claimed", [
            ("Player", f"{player_name} (#{player_id})"),
            ("Discord ID", str(discord_id)),
            ("Replaced Link", str(previously_claimed)),
        ], emoji="🔗")
        return previously_claimed

    def get_claimed_discord_ids(self) -> Set[int]:
        """Get every Discord user id that has claimed a player."""
        rows = self.fetchall("SELECT discord_id FROM players WHERE discord_id IS NOT NULL")
        return {row["discord_id"] for row in rows}


# =============================================================================
# Global Instance
# =============================================================================

def get_db() -> DatabaseManager:
    """Get the global database instance."""
    return DatabaseManager()


__all__ = [
    "DatabaseManager",
    "PlayerRecord",
    "get_db",
    "DB_PATH",
    "DATA_DIR",
]
