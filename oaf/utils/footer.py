"""
OAF Discord Bot - Embed Footer Utility
======================================

Centralized footer for all user-facing embeds.

The footer icon is the OAF item image served from the game's image CDN,
so unlike a member avatar it never needs refreshing.

Bot: OAF
Game: kingdomofloathing.com
"""

from typing import Optional

import discord

from oaf.kol.parsing import resolve_kol_image


# =============================================================================
# Constants
# =============================================================================

FOOTER_TEXT = "Problems? Poke in #mafia-and-scripting."
"""Footer text displayed on all user-facing embeds."""

OAF_ICON = resolve_kol_image("/itemimages/oaf.gif")
"""Footer icon."""


# =============================================================================
# Footer Setter
# =============================================================================

def set_footer(embed: discord.Embed, icon_url: Optional[str] = None) -> discord.Embed:
    """
    Set the standard footer on an embed.

    Args:
        embed: The embed to add footer to.
        icon_url: Optional override icon URL.

    Returns:
        The embed with footer set.
    """
    embed.set_footer(text=FOOTER_TEXT, icon_url=icon_url or OAF_ICON)
    return embed


def create_embed(**kwargs) -> discord.Embed:
    """New embed with the standard footer already set."""
    return set_footer(discord.Embed(**kwargs))


# =============================================================================
# Module Export
# =============================================================================

__all__ = [
    "FOOTER_TEXT",
    "OAF_ICON",
    "set_footer",
    "create_embed",
]
