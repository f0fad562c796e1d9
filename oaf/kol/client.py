"""
OAF Discord Bot - Game Client
=============================

Everything the bot does in Kingdom of Loathing, built on KoLSession.

DESIGN:
    The client turns game pages into records and chat into events. All
    network traffic goes through KoLSession.request(), so every call here
    degrades to an empty page (and then to None / False / "") during
    rollover or while the game is unreachable. Nothing here raises for
    a network problem.

    The chat poller runs as one background task: every `poll_interval`
    seconds it fetches new chat lines and new kmails concurrently and
    publishes them on the event bus.

Bot: OAF
Game: kingdomofloathing.com
"""

import asyncio
import json
from typing import Any, Dict, Mapping, Optional, Union

from oaf.core.logger import logger
from oaf.kol import events as topics
from oaf.kol.events import EventEmitter
from oaf.kol.models import FullPlayer, KoLMessage, MallPrice, PartialPlayer
from oaf.kol.parsing import (
    clean_string,
    indent,
    joined_clan,
    parse_chat_messages,
    parse_effect_blue_text,
    parse_equipment_familiar,
    parse_item_blue_text,
    parse_item_effect,
    parse_kmails,
    parse_mall_price,
    parse_player_name,
    parse_player_search,
    parse_profile,
    parse_skill_blue_text,
    to_wiki_link,
    whois_online,
)
from oaf.kol.session import KoLSession
from oaf.kol.transport import KoLRequest
from oaf.utils.async_utils import create_safe_task, gather_with_logging


# =============================================================================
# Known Descriptions
# =============================================================================

# Pages whose description text does not scrape cleanly
KNOWN_ITEM_DESCRIPTIONS: Dict[int, str] = {
    539406330: "+1, 11, and 111 to a wide array of stats\n",  # Complicated Device
}

KNOWN_EFFECT_DESCRIPTIONS: Dict[str, str] = {
    # Video... Games?
    "3d5280f646ac2a6b70e64eae72daa263": "+5 to basically everything",
    # Spoon Boon
    "fa4374dcb3f6a5d3ff129b0be374fa1f": (
        "Muscle +10%\nMysticality +10%\nMoxie +10%\n+5 Prismatic Damage\n"
        "+10 Prismatic Spell Damage\nSo-So Resistance to All Elements (+2)"
    ),
}


class KoLClient:
    """
    Game-side half of the bot.

    Attributes:
        session: Authenticated session (login, retries, rollover).
        events: Bus for public / whisper / system / kmail / rollover.
    """

    def __init__(
        self,
        username: str,
        password: str,
        transport=None,
        chat_channel: str = "talkie",
        poll_interval: float = 3,
        rollover_interval: float = 60,
    ) -> None:
        self.events = EventEmitter()
        self.session = KoLSession(
            username,
            password,
            transport=transport,
            events=self.events,
            rollover_interval=rollover_interval,
        )
        self.username = username
        self.chat_channel = chat_channel
        self.poll_interval = poll_interval

        self._last_fetched_messages = "0"
        self._chat_task: Optional[asyncio.Task] = None
        self._chat_bot_started = False

        self.events.on(topics.WHISPER, self._log_whisper)
        self.events.on(topics.KMAIL, self._log_kmail)

    @property
    def in_maintenance(self) -> bool:
        return self.session.rollover.in_maintenance

    @property
    def has_session(self) -> bool:
        return not self.session.credentials.get().is_empty

    # =========================================================================
    # Page Access
    # =========================================================================

    async def visit_url(
        self,
        path: str,
        params: Optional[Mapping[str, Any]] = None,
        data: Optional[Mapping[str, Any]] = None,
        *,
        pwd: bool = True,
        fallback: str = "",
    ) -> str:
        """Fetch an authenticated page. Returns `fallback` when unavailable."""
        return await self.session.request(
            KoLRequest(path=path, params=dict(params or {}), data=data, requires_token=pwd),
            fallback=fallback,
        )

    async def visit_api(
        self,
        path: str,
        params: Optional[Mapping[str, Any]] = None,
        data: Optional[Mapping[str, Any]] = None,
        *,
        pwd: bool = True,
    ) -> Any:
        """Fetch an authenticated JSON endpoint. None when unavailable or not JSON."""
        body = await self.visit_url(path, params, data, pwd=pwd)
        if not body:
            return None
        try:
            return json.loads(body)
        except ValueError:
            logger.debug(f"{path} did not return JSON")
            return None

    # =========================================================================
    # Chat Poller
    # =========================================================================

    async def start_chat_bot(self) -> None:
        """Join the chat channel and start polling. Idempotent."""
        if self._chat_bot_started:
            return
        self._chat_bot_started = True
        await self.use_chat_macro(f"/join {self.chat_channel}")
        self._chat_task = create_safe_task(self._loop_chat_bot(), name="KoL Chat Poller")
        logger.tree("KoL Chat Bot Started", [
            ("Channel", self.chat_channel),
            ("Interval", f"{self.poll_interval}s"),
        ], emoji="💬")

    async def _loop_chat_bot(self) -> None:
        while True:
            await gather_with_logging(
                ("Check Messages", self.check_messages()),
                ("Check Kmails", self.check_kmails()),
                context="KoL Chat Poll",
            )
            await asyncio.sleep(self.poll_interval)

    async def stop_chat_bot(self) -> None:
        task = self._chat_task
        self._chat_task = None
        self._chat_bot_started = False
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def check_messages(self) -> int:
        """
        Fetch chat lines since the last poll and publish them.

        Returns:
            Number of messages published.
        """
        payload = await self.visit_api("newchatmessages.php", {
            "j": 1,
            "lasttime": self._last_fetched_messages,
        })
        if not isinstance(payload, dict):
            return 0

        last, messages = parse_chat_messages(payload)
        if last is not None:
            self._last_fetched_messages = last

        published = 0
        for message in messages:
            topic = {
                "public": topics.PUBLIC,
                "private": topics.WHISPER,
                "system": topics.SYSTEM,
            }.get(message.type)
            if topic is None:
                continue
            await self.events.emit(topic, message)
            published += 1
        return published

    async def check_kmails(self) -> int:
        """
        Fetch new kmails, delete them from the inbox, then publish them.

        Returns:
            Number of kmails published.
        """
        payload = await self.visit_api("api.php", {
            "what": "kmail",
            "for": f"{self.username} Chatbot",
        })
        if not isinstance(payload, list) or not payload:
            return 0

        kmails = parse_kmails(payload)

        data = {
            "the_action": "delete",
            "pwd": self.session.credentials.get().pwd_hash,
            "box": "Inbox",
        }
        for raw in payload:
            if isinstance(raw, dict) and raw.get("id") is not None:
                data[f"sel{raw['id']}"] = "on"
        await self.visit_url("messages.php", {}, data)

        for kmail in kmails:
            await self.events.emit(topics.KMAIL, kmail)
        return len(kmails)

    async def _log_whisper(self, message: KoLMessage) -> None:
        logger.info(f'{message.who.name} said "{message.msg}" in KoL chat')

    async def _log_kmail(self, message: KoLMessage) -> None:
        logger.info(f'{message.who.name} said "{message.msg}" in a kmail')

    # =========================================================================
    # Chat
    # =========================================================================

    async def send_chat(self, message: str) -> Any:
        return await self.visit_api("submitnewchat.php", {"graf": message, "j": 1})

    async def use_chat_macro(self, macro: str) -> Any:
        return await self.send_chat(f"/clan {macro}")

    async def is_online(self, player: Union[str, int]) -> bool:
        response = await self.use_chat_macro(f"/whois {player}")
        output = response.get("output") if isinstance(response, dict) else None
        return whois_online(output)

    async def whisper(self, recipient_id: int, message: str) -> None:
        await self.use_chat_macro(f"/w {recipient_id} {message}")

    async def kmail(self, recipient_id: int, message: str) -> None:
        await self.visit_url("sendmessage.php", {
            "action": "send",
            "j": 1,
            "towho": recipient_id,
            "contact": 0,
            "message": message,
            "howmany1": 1,
            "whichitem1": 0,
            "sendmeat": 0,
        })

    # =========================================================================
    # Players
    # =========================================================================

    async def get_partial_player(self, name_or_id: Union[str, int]) -> Optional[PartialPlayer]:
        """Look a player up by id (int or digit string) or by name."""
        if isinstance(name_or_id, int) or str(name_or_id).strip().isdigit():
            return await self.get_partial_player_from_id(int(name_or_id))
        return await self.get_partial_player_from_name(str(name_or_id))

    async def get_player_name_from_id(self, player_id: int) -> Optional[str]:
        profile = await self.visit_url("showplayer.php", {"who": player_id})
        return parse_player_name(profile)

    async def get_partial_player_from_id(self, player_id: int) -> Optional[PartialPlayer]:
        name = await self.get_player_name_from_id(player_id)
        if not name:
            return None
        return await self.get_partial_player_from_name(name)

    async def get_partial_player_from_name(self, name: str) -> Optional[PartialPlayer]:
        search = await self.visit_url("searchplayer.php", {
            # Underscore is a wildcard in player search
            "searchstring": name.replace("_", "\\_"),
            "searching": "Yep.",
            "for": "",
            "startswith": 1,
            "hardcoreonly": 0,
        })
        return parse_player_search(search)

    async def get_player_information(self, partial: PartialPlayer) -> Optional[FullPlayer]:
        profile = await self.visit_url("showplayer.php", {"who": partial.id})
        return parse_profile(profile, partial)

    # =========================================================================
    # Items, Effects, Skills
    # =========================================================================

    async def get_mall_price(self, item_id: int) -> MallPrice:
        prices = await self.visit_url("backoffice.php", {
            "action": "prices",
            "ajax": 1,
            "iid": item_id,
        })
        return parse_mall_price(prices)

    async def get_item_description(self, desc_id: int) -> str:
        if desc_id in KNOWN_ITEM_DESCRIPTIONS:
            return KNOWN_ITEM_DESCRIPTIONS[desc_id]

        description = await self.visit_url("desc_item.php", {"whichitem": desc_id})
        output = parse_item_blue_text(description)

        effect = parse_item_effect(description)
        if effect:
            name = clean_string(effect.name)
            output.append(f"Gives {effect.duration} adventures of **[{name}]({to_wiki_link(name)})**")
            output.append(indent(await self.get_effect_description(effect.desc_id)))

        return "\n".join(output)

    async def get_effect_description(self, desc_id: Optional[str]) -> str:
        if not desc_id:
            return ""
        if desc_id in KNOWN_EFFECT_DESCRIPTIONS:
            return KNOWN_EFFECT_DESCRIPTIONS[desc_id]

        description = await self.visit_url("desc_effect.php", {"whicheffect": desc_id})
        return parse_effect_blue_text(description)

    async def get_skill_description(self, skill_id: int) -> Optional[str]:
        description = await self.visit_url("desc_skill.php", {"whichskill": str(skill_id)})
        return parse_skill_blue_text(description)

    async def get_equipment_familiar(self, item_id: int) -> Optional[str]:
        response = await self.visit_url("inv_equip.php", {
            "action": "equip",
            "which": 2,
            "whichitem": item_id,
        })
        return parse_equipment_familiar(response)

    # =========================================================================
    # Clan
    # =========================================================================

    async def join_clan(self, clan_id: int) -> bool:
        result = await self.visit_url("showclan.php", {
            "whichclan": clan_id,
            "action": "joinclan",
            "confirm": "on",
        })
        return joined_clan(result)

    async def add_to_whitelist(self, player_id: int, clan_id: int) -> bool:
        """
        Join a clan and whitelist a player in it, as one uninterrupted action.

        Returns:
            False if the bot could not join the clan.
        """
        async def action() -> bool:
            if not await self.join_clan(clan_id):
                return False
            await self.visit_url("clan_whitelist.php", {
                "addwho": player_id,
                "level": 2,
                "title": "",
                "action": "add",
            })
            return True

        return await self.session.run_exclusive(action)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def close(self) -> None:
        """Stop polling, cancel rollover checks and close the HTTP session."""
        await self.stop_chat_bot()
        await self.session.close()


__all__ = ["KoLClient", "KNOWN_ITEM_DESCRIPTIONS", "KNOWN_EFFECT_DESCRIPTIONS"]
