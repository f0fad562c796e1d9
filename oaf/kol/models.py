"""
OAF Discord Bot - Game Data Models
==================================

Plain records scraped from or sent by the game.

Bot: OAF
Game: kingdomofloathing.com
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class KoLUser:
    id: int
    name: str


@dataclass(frozen=True)
class KoLMessage:
    """A chat line, whisper, system announcement or kmail."""

    type: str  # "public", "private", "system" or "kmail"
    who: KoLUser
    msg: str
    time: datetime
    channel: Optional[str] = None


@dataclass
class PartialPlayer:
    """Search-result view of a player."""

    id: int
    name: str
    level: int
    player_class: str


@dataclass
class FullPlayer(PartialPlayer):
    """Profile-page view of a player."""

    avatar: str = ""
    ascensions: int = 0
    trophies: int = 0
    tattoos: int = 0
    favorite_food: Optional[str] = None
    favorite_booze: Optional[str] = None
    created_date: Optional[datetime] = None
    last_login: Optional[datetime] = None
    has_display_case: bool = False


@dataclass(frozen=True)
class MallPrice:
    """
    Mall prices for one item.

    Prices are 0 when absent; min_price is None when neither exists.
    Formatted variants keep the site's thousands separators.
    """

    mall_price: int = 0
    limited_mall_price: int = 0
    min_price: Optional[int] = None
    formatted_mall_price: str = ""
    formatted_limited_mall_price: str = ""
    formatted_min_price: str = ""


__all__ = ["KoLUser", "KoLMessage", "PartialPlayer", "FullPlayer", "MallPrice"]
