"""
OAF Discord Bot - Commands Package
==================================

Slash command implementations for the OAF Discord bot.
Commands are implemented as discord.py Cogs for modularity.

DESIGN:
    Each command package contains a Cog class with related commands.
    Cogs are loaded dynamically by the bot using load_extension().
    The work behind each command lives in an execute_* method so the
    slash-command callback stays a one-line delegation.

Available Commands:
    /whois: Look up a player by name, id or claimed Discord account
    /whitelist: Add a player to every managed clan whitelist (role-gated)
    /claim: Link a Discord account to a game account
    /volleyball, /reversefairy, /substat: Familiar and stat calculators
    /orb: Consult the miniature crystal ball

Bot: OAF
Game: kingdomofloathing.com
"""

# =============================================================================
# Command Cog Registry
# =============================================================================

COMMAND_COGS = [
    "oaf.commands.whois",
    "oaf.commands.whitelist",
    "oaf.commands.claim",
    "oaf.commands.calculators",
    "oaf.commands.orb",
]
"""List of command cog module paths, loaded in order by OafBot.setup_hook."""


__all__ = [
    "COMMAND_COGS",
]
