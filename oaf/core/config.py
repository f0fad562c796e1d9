"""
OAF Discord Bot - Configuration Module
======================================

Settings read from the environment once, at startup.

DESIGN:
    main.py loads .env before anything imports this module. load_config()
    turns the environment into a typed Config; get_config() caches it so
    every cog sees the same values.

    Rules:
    - Game credentials and the guild are required; all of them are
      checked before failing so one restart fixes a broken .env
    - Ids are stored as ints so role and clan checks never compare strings
    - Poll intervals are clamped so a typo cannot hammer the game servers

Bot: OAF
Game: kingdomofloathing.com
"""

import os
from dataclasses import dataclass, field
from typing import Optional, Set, Tuple


REQUIRED_VARS = ("DISCORD_TOKEN", "KOL_USER", "KOL_PASS", "GUILD_ID")

TRUTHY = frozenset({"1", "true", "yes", "on"})


# =============================================================================
# Configuration Dataclass
# =============================================================================

@dataclass
class Config:
    """
    Everything OAF reads from its environment.

    Attributes:
        discord_token: Bot token for the Discord gateway.
        kol_user: Game account OAF plays as.
        kol_pass: Password for that account.
        guild_id: The one Discord guild OAF serves.
    """

    # -------------------------------------------------------------------------
    # Required
    # -------------------------------------------------------------------------

    discord_token: str
    kol_user: str
    kol_pass: str
    guild_id: int

    # -------------------------------------------------------------------------
    # Discord Wiring
    # -------------------------------------------------------------------------

    alerts_channel_id: Optional[int] = None
    announcements_channel_id: Optional[int] = None
    verified_role_id: Optional[int] = None
    whitelist_role_ids: Set[int] = field(default_factory=set)

    # -------------------------------------------------------------------------
    # Clans and Claiming
    # -------------------------------------------------------------------------

    whitelist_clan_ids: Tuple[int, ...] = ()  # /whitelist walks these in order
    salt: str = ""

    # -------------------------------------------------------------------------
    # Game Session
    # -------------------------------------------------------------------------

    chat_channel: str = "talkie"
    chat_poll_interval: int = 3          # seconds
    rollover_check_interval: int = 60    # seconds, only while the game is down

    # -------------------------------------------------------------------------
    # Process
    # -------------------------------------------------------------------------

    debug: bool = False
    port: int = 8080
    error_webhook_url: Optional[str] = None


# =============================================================================
# Embed Colors
# =============================================================================

class EmbedColors:
    """Embed palette, by what the embed is for."""

    BLUE = 0x3498DB
    GREEN = 0x1F5E2E
    GOLD = 0xE6B84A
    RED = 0xDC3545

    INFO = BLUE
    SUCCESS = GREEN
    ANNOUNCEMENT = GOLD
    ERROR = RED


# =============================================================================
# Environment Readers
# =============================================================================

class ConfigValidationError(Exception):
    """A required variable is absent or unusable."""


def _env_id(name: str) -> Optional[int]:
    """Optional Discord id. Anything non-numeric counts as unset."""
    raw = os.getenv(name, "").strip()
    return int(raw) if raw.isdigit() else None


def _env_ids(name: str) -> Tuple[int, ...]:
    """Comma-separated ids, first occurrence wins, junk entries skipped."""
    seen = []
    for chunk in os.getenv(name, "").split(","):
        chunk = chunk.strip()
        if chunk.isdigit() and int(chunk) not in seen:
            seen.append(int(chunk))
    return tuple(seen)


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in TRUTHY


def _env_bounded(name: str, default: int, low: int, high: int) -> int:
    """
    Integer setting kept within [low, high].

    Unparseable values fall back to the default and out-of-range ones are
    pulled to the nearest bound. Both cases are logged.
    """
    raw = os.getenv(name)
    if not raw:
        return default

    from oaf.core.logger import logger

    try:
        value = int(raw)
    except ValueError:
        logger.warning("Config Value Ignored", [
            ("Variable", name),
            ("Value", raw),
            ("Using", str(default)),
        ])
        return default

    bounded = max(low, min(high, value))
    if bounded != value:
        logger.warning("Config Value Clamped", [
            ("Variable", name),
            ("Value", str(value)),
            ("Using", str(bounded)),
        ])
    return bounded


def _env_url(name: str) -> Optional[str]:
    raw = os.getenv(name)
    if not raw:
        return None
    if raw.startswith(("https://", "http://")):
        return raw

    from oaf.core.logger import logger
    logger.warning(f"Config {name} is not an http(s) URL, ignoring it")
    return None


# =============================================================================
# Loading
# =============================================================================

def load_config() -> Config:
    """
    Build a Config from the current environment.

    Raises:
        ConfigValidationError: Naming every required variable that is
            missing, or the guild id when it is not a number.
    """
    missing = [name for name in REQUIRED_VARS if not os.getenv(name)]
    if missing:
        raise ConfigValidationError(
            f"Missing required environment variables: {', '.join(missing)}"
        )

    guild_raw = os.environ["GUILD_ID"].strip()
    if not guild_raw.isdigit():
        raise ConfigValidationError(f"GUILD_ID must be a number, got {guild_raw!r}")

    return Config(
        discord_token=os.environ["DISCORD_TOKEN"],
        kol_user=os.environ["KOL_USER"],
        kol_pass=os.environ["KOL_PASS"],
        guild_id=int(guild_raw),
        alerts_channel_id=_env_id("ALERTS_CHANNEL_ID"),
        announcements_channel_id=_env_id("ANNOUNCEMENTS_CHANNEL_ID"),
        verified_role_id=_env_id("VERIFIED_ROLE_ID"),
        whitelist_role_ids=set(_env_ids("WHITELIST_ROLE_IDS")),
        whitelist_clan_ids=_env_ids("WHITELIST_CLAN_IDS"),
        salt=os.getenv("SALT", ""),
        chat_channel=os.getenv("CHAT_CHANNEL", "talkie"),
        chat_poll_interval=_env_bounded("CHAT_POLL_INTERVAL", 3, 1, 60),
        rollover_check_interval=_env_bounded("ROLLOVER_CHECK_INTERVAL", 60, 10, 600),
        debug=_env_flag("DEBUG"),
        port=_env_bounded("PORT", 8080, 1, 65535),
        error_webhook_url=_env_url("ERROR_WEBHOOK_URL"),
    )


_config: Optional[Config] = None


def get_config() -> Config:
    """The shared Config, loaded on first use."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def validate_and_log_config() -> None:
    """
    Load the config (raising ConfigValidationError if it is broken) and
    log which optional features are switched on.
    """
    from oaf.core.logger import logger

    config = get_config()

    features = [
        label
        for label, enabled in (
            ("Alerts", config.alerts_channel_id),
            ("Announcements", config.announcements_channel_id),
            ("Claiming", config.verified_role_id),
            ("Whitelisting", config.whitelist_clan_ids),
        )
        if enabled
    ]

    if config.verified_role_id and not config.salt:
        logger.warning("Config SALT not set, claim tokens use an empty salt")

    logger.tree("Configuration Loaded", [
        ("KoL User", config.kol_user),
        ("Guild", str(config.guild_id)),
        ("Features", ", ".join(features) or "None"),
        ("Managed Clans", str(len(config.whitelist_clan_ids))),
        ("Debug", str(config.debug)),
    ], emoji="⚙️")


# =============================================================================
# Permission Helpers
# =============================================================================

def can_edit_whitelists(member) -> bool:
    """True if the member holds a whitelist role. Users outside a guild have no roles."""
    permitted = get_config().whitelist_role_ids
    return any(role.id in permitted for role in getattr(member, "roles", None) or ())


__all__ = [
    "Config",
    "ConfigValidationError",
    "EmbedColors",
    "get_config",
    "load_config",
    "validate_and_log_config",
    "can_edit_whitelists",
]
