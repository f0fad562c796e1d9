"""
OAF Discord Bot - Source Package
================================

Discord bot for the Kingdom of Loathing community, acting in game
through its own logged-in account.

Package Structure:
- bot.py: Main Discord bot class, alerts and lifecycle
- commands/: Slash command cogs (/whois, /whitelist, /claim, calculators, /orb)
- events/: Cogs reacting to game events (announcements, rollover)
- core/: Configuration, logging, player database, health endpoint
- kol/: Game session, rollover detection, page scrapers and client
- utils/: Helper functions and utilities

Bot: OAF
Game: kingdomofloathing.com
Version: v1.0.0
"""

__version__ = "1.0.0"
