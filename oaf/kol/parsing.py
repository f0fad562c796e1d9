"""
OAF Discord Bot - Game Page Scrapers
====================================

Pure functions that pull records out of game pages and API payloads.

DESIGN:
    The game serves hand-written HTML with no stable structure, so these
    are targeted regular expressions rather than a DOM parser. Each one
    takes a body and returns a record or None; none of them touch the
    network or hold state, so they are tested against saved fragments.

Bot: OAF
Game: kingdomofloathing.com
"""

import html
import re
from datetime import datetime, timezone
from typing import Any, List, NamedTuple, Optional, Tuple
from urllib.parse import quote

from oaf.kol.models import FullPlayer, KoLMessage, KoLUser, MallPrice, PartialPlayer


# =============================================================================
# Constants
# =============================================================================

IMAGE_CDN = "https://s3.amazonaws.com/images.kingdomofloathing.com"
WIKI_URL = "https://wiki.kingdomofloathing.com"

_PLAYER_SEARCH = re.compile(
    r'href="showplayer.php\?who=(?P<player_id>\d+)">(?P<player_name>.*?)</a>\D+'
    r"(clan=\d+[^<]+\D+)?\d+\D*(?P<level>(\d+)|(inf_large\.gif))\D+valign=top>"
    r"(?P<player_class>[^<]*)</td>",
    re.IGNORECASE,
)
_PLAYER_NAME = re.compile(r"<b>([^>]*?)</b> \(#(\d+)\)<br>")
_PROFILE_HEADER = re.compile(
    r'<center><table><tr><td><center>.*?<img.*?src="(.*?)".*?<b>([^>]*?)</b> \(#(\d+)\)<br>'
)


def _profile_field(label: str) -> "re.Pattern[str]":
    return re.compile(rf">{label}:</b></td><td>(.*?)</td>")


_ASCENSIONS = re.compile(r">Ascensions</a>:</b></td><td>(.*?)</td>")
_TROPHIES = _profile_field("Trophies Collected")
_TATTOOS = _profile_field("Tattoos Collected")
_FAVORITE_FOOD = _profile_field("Favorite Food")
_FAVORITE_BOOZE = _profile_field("Favorite Booze")
_ACCOUNT_CREATED = _profile_field("Account Created")
_LAST_LOGIN = _profile_field("Last Login")
_DISPLAY_CASE = re.compile(r"Display Case</b></a> in the Museum</td>")

_UNLIMITED_PRICE = re.compile(r"<td>unlimited:</td><td><b>(?P<price>[\d,]+)")
_LIMITED_PRICE = re.compile(r"<td>limited:</td><td><b>(?P<price>[\d,]+)")

_ITEM_BLUE_TEXT = re.compile(
    r'<center>\s*<b>\s*<font color="?[\w]+"?>(?P<description>[\s\S]+)</center>',
    re.IGNORECASE,
)
_ITEM_EFFECT = re.compile(
    r'Effect: \s?<b>\s?<a[^>]+href="desc_effect\.php\?whicheffect=(?P<descid>[^"]+)[^>]+>'
    r"(?P<effect>[\s\S]+)</a>[^(]+\((?P<duration>[\d]+)"
)
_ITEM_MELTING = re.compile(r"This item will disappear at the end of the day\.")
_ITEM_SINGLE_EQUIP = re.compile(r" You may not equip more than one of these at a time\.")
_EFFECT_BLUE_TEXT = re.compile(r'<center><font color="?[\w]+"?>(?P<description>[\s\S]+)</div>', re.MULTILINE)
_SKILL_BLUE_TEXT = re.compile(r"<blockquote[\s\S]+<[Cc]enter>(?P<description>[\s\S]+)</[Cc]enter>")

_EQUIPMENT_FAMILIAR = re.compile(r"Only a specific familiar type \(([^)]*)\) can equip this item")

_LINE_BREAKS = re.compile(r"(<p></p>)|(<br>)|(<Br>)|(<br />)|(<Br />)")
_TAGS = re.compile(r"<[^<>]+>")


class ItemEffect(NamedTuple):
    """Effect granted by using an item."""

    name: str
    desc_id: str
    duration: int


# =============================================================================
# Text Helpers
# =============================================================================

def clean_string(value: Optional[str]) -> str:
    """Strip tags and decode entities from a short HTML fragment."""
    if not value:
        return ""
    return html.unescape(_TAGS.sub("", value)).strip()


def indent(text: str, prefix: str = "\u2003") -> str:
    """Indent every non-empty line with an em space, which Discord keeps."""
    return "\n".join(f"{prefix}{line}" if line else line for line in text.split("\n"))


def to_wiki_link(name: str) -> str:
    return f"{WIKI_URL}/{quote(name.replace(' ', '_'))}"


def resolve_kol_image(path: str) -> str:
    """Map a game-relative image path onto the image CDN."""
    if re.match(r"^https?://", path, re.IGNORECASE):
        return path
    return IMAGE_CDN + re.sub(r"^/(iii|images)", "", path)


def sanitise_blue_text(blue_text: Optional[str]) -> str:
    """Turn an item/effect/skill description fragment into plain lines."""
    if not blue_text:
        return ""
    text = blue_text.replace("\r", "")
    text = _LINE_BREAKS.sub("\n", text)
    text = _TAGS.sub("", text)
    text = re.sub(r"\n+", "\n", text)
    text = re.sub(r"\n+$", "", text)
    return html.unescape(text).strip()


def parse_player_date(value: Optional[str]) -> Optional[datetime]:
    """Parse profile dates like "March 05, 2009"."""
    if not value:
        return None
    try:
        return datetime.strptime(value.strip(), "%B %d, %Y")
    except ValueError:
        return None


def _to_int(value: Optional[str]) -> int:
    if not value:
        return 0
    try:
        return int(value.replace(",", ""))
    except ValueError:
        return 0


# =============================================================================
# Players
# =============================================================================

def parse_player_search(body: str) -> Optional[PartialPlayer]:
    """First result of a searchplayer.php page."""
    match = _PLAYER_SEARCH.search(body)
    if not match:
        return None
    level = match.group("level")
    return PartialPlayer(
        id=int(match.group("player_id")),
        name=match.group("player_name"),
        # inf_large.gif marks a level too high to display
        level=int(level) if level.isdigit() else 0,
        player_class=match.group("player_class"),
    )


def parse_player_name(profile: str) -> Optional[str]:
    match = _PLAYER_NAME.search(profile)
    return match.group(1) if match and match.group(1) else None


def parse_profile(profile: str, partial: PartialPlayer) -> Optional[FullPlayer]:
    """
    Read a showplayer.php page into a FullPlayer.

    Args:
        profile: Page body.
        partial: Search result the profile belongs to.

    Returns:
        None if the page is not a player profile.
    """
    header = _PROFILE_HEADER.search(profile)
    if not header:
        return None

    def field(pattern: "re.Pattern[str]") -> Optional[str]:
        match = pattern.search(profile)
        return match.group(1) if match else None

    return FullPlayer(
        id=partial.id,
        name=partial.name,
        level=partial.level,
        player_class=partial.player_class,
        avatar=resolve_kol_image(header.group(1)),
        ascensions=_to_int(field(_ASCENSIONS)),
        trophies=_to_int(field(_TROPHIES)),
        tattoos=_to_int(field(_TATTOOS)),
        favorite_food=field(_FAVORITE_FOOD),
        favorite_booze=field(_FAVORITE_BOOZE),
        created_date=parse_player_date(field(_ACCOUNT_CREATED)),
        last_login=parse_player_date(field(_LAST_LOGIN)),
        has_display_case=_DISPLAY_CASE.search(profile) is not None,
    )


# =============================================================================
# Items, Effects, Skills
# =============================================================================

def parse_mall_price(body: str) -> MallPrice:
    """Read the backoffice.php price summary for one item."""
    unlimited = _UNLIMITED_PRICE.search(body)
    limited = _LIMITED_PRICE.search(body)

    unlimited_price = _to_int(unlimited.group("price")) if unlimited else 0
    limited_price = _to_int(limited.group("price")) if limited else 0

    min_price = limited_price if limited else None
    if unlimited and (not min_price or unlimited_price < min_price):
        min_price = unlimited_price

    formatted_min = ""
    if min_price:
        source = unlimited if unlimited and min_price == unlimited_price else limited
        formatted_min = source.group("price") if source else ""

    return MallPrice(
        mall_price=unlimited_price,
        limited_mall_price=limited_price,
        min_price=min_price,
        formatted_mall_price=unlimited.group("price") if unlimited else "",
        formatted_limited_mall_price=limited.group("price") if limited else "",
        formatted_min_price=formatted_min,
    )


def parse_item_blue_text(description: str) -> List[str]:
    """Notes and enchantment text of a desc_item.php page, in display order."""
    lines = []
    if _ITEM_MELTING.search(description):
        lines.append("Disappears at rollover")
    if _ITEM_SINGLE_EQUIP.search(description):
        lines.append("Single equip only.")
    blue_text = _ITEM_BLUE_TEXT.search(description)
    if blue_text:
        lines.append(sanitise_blue_text(blue_text.group("description")))
    return lines


def parse_item_effect(description: str) -> Optional[ItemEffect]:
    match = _ITEM_EFFECT.search(description)
    if not match:
        return None
    return ItemEffect(
        name=clean_string(match.group("effect")),
        desc_id=match.group("descid"),
        duration=int(match.group("duration")),
    )


def parse_effect_blue_text(description: str) -> str:
    match = _EFFECT_BLUE_TEXT.search(description)
    return sanitise_blue_text(match.group("description") if match else None)


def parse_skill_blue_text(description: str) -> Optional[str]:
    match = _SKILL_BLUE_TEXT.search(description)
    return sanitise_blue_text(match.group("description")) if match else None


def parse_equipment_familiar(body: str) -> Optional[str]:
    """Familiar named by the "only a specific familiar" refusal, if any."""
    match = _EQUIPMENT_FAMILIAR.search(body)
    return match.group(1) if match else None


# =============================================================================
# Clan and Chat
# =============================================================================

def joined_clan(body: str) -> bool:
    return "clanhalltop.gif" in body or "a clan you're already in" in body


def whois_online(output: Optional[str]) -> bool:
    return bool(output) and "This player is currently online" in output


def _message_time(value: Any) -> datetime:
    try:
        return datetime.fromtimestamp(int(value), tz=timezone.utc)
    except (TypeError, ValueError):
        return datetime.now(timezone.utc)


def parse_chat_messages(payload: Any) -> Tuple[Optional[str], List[KoLMessage]]:
    """
    Read a newchatmessages.php payload.

    Returns:
        (cursor for the next poll or None, messages that have a sender and text)
    """
    if not isinstance(payload, dict):
        return None, []

    last = payload.get("last")
    messages = []
    for raw in payload.get("msgs") or []:
        who = raw.get("who")
        text = raw.get("msg")
        if not who or text is None:
            continue
        messages.append(KoLMessage(
            type=raw.get("type", ""),
            who=KoLUser(id=_to_int(str(who.get("id", 0))), name=who.get("name", "")),
            msg=text,
            time=_message_time(raw.get("time")),
            channel=raw.get("channel"),
        ))
    return (str(last) if last is not None else None), messages


def parse_kmails(payload: Any) -> List[KoLMessage]:
    """Read an api.php?what=kmail payload."""
    if not isinstance(payload, list):
        return []
    return [
        KoLMessage(
            type="kmail",
            who=KoLUser(id=_to_int(str(raw.get("fromid", 0))), name=raw.get("fromname", "")),
            msg=raw.get("message", ""),
            time=_message_time(raw.get("azunixtime")),
        )
        for raw in payload
        if isinstance(raw, dict)
    ]


__all__ = [
    "ItemEffect",
    "clean_string",
    "indent",
    "to_wiki_link",
    "resolve_kol_image",
    "sanitise_blue_text",
    "parse_player_date",
    "parse_player_search",
    "parse_player_name",
    "parse_profile",
    "parse_mall_price",
    "parse_item_blue_text",
    "parse_item_effect",
    "parse_effect_blue_text",
    "parse_skill_blue_text",
    "parse_equipment_familiar",
    "joined_clan",
    "whois_online",
    "parse_chat_messages",
    "parse_kmails",
]
