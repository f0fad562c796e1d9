"""
OAF Discord Bot - Core Package
==============================

Core components: configuration, logging, the player database and the
health endpoint.

DESIGN:
    Core modules are singletons or global instances so every cog sees
    the same state:
    - get_config() returns the same Config instance
    - get_db() returns the same DatabaseManager instance
    - logger is a global TreeLogger instance

Bot: OAF
Game: kingdomofloathing.com
"""

# =============================================================================
# Core Imports
# =============================================================================

from .config import (
    Config,
    ConfigValidationError,
    EmbedColors,
    get_config,
    can_edit_whitelists,
)

from .database import DatabaseManager, get_db

from .logger import logger, TreeLogger, KOL_TZ

from .health import HealthCheckServer


# =============================================================================
# Module Export
# =============================================================================

__all__ = [
    # Config
    "Config",
    "ConfigValidationError",
    "EmbedColors",
    "get_config",
    "can_edit_whitelists",
    # Database
    "DatabaseManager",
    "get_db",
    # Logging
    "logger",
    "TreeLogger",
    "KOL_TZ",
    # Health
    "HealthCheckServer",
]
