"""
OAF Discord Bot - Events Package
================================

Cogs reacting to game events published by the KoL client.

DESIGN:
    Each event file contains a Cog that subscribes to the game event bus
    in cog_load and unsubscribes in cog_unload.

    Event routing:
    - announcements.py: system messages relayed to the announcements channel
    - rollover.py: first login after nightly maintenance

Bot: OAF
Game: kingdomofloathing.com
"""

# =============================================================================
# Event Cog Registry
# =============================================================================

EVENT_COGS = [
    "oaf.events.announcements",
    "oaf.events.rollover",
]
"""List of event cog module paths, loaded in order by OafBot.setup_hook."""


__all__ = [
    "EVENT_COGS",
]
