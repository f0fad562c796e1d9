"""
OAF Discord Bot - Utils Package
===============================

Utility modules for the OAF Discord bot.

DESIGN:
    Utils are helpers with no bot state of their own. Import them from
    their modules directly; this package does not re-export so that the
    game client can use async_utils without pulling in Discord helpers.

Available Utilities:
    async_utils: gather_with_logging, create_safe_task
    error_handler: Categorised error logging with recovery hints
    footer: Standard embed footer and create_embed
    retry: Discord sends with exponential backoff
    stats: Familiar and stat formulas
    tokens: Claim token generation and verification

Bot: OAF
Game: kingdomofloathing.com
"""
