"""
OAF Discord Bot - Game Client Tests
===================================

Tests for the chat poller, kmail handling, player lookups and clan
actions, against the fake game site.
"""

import asyncio
import json

import pytest

from oaf.kol import events as topics
from oaf.kol.client import KNOWN_ITEM_DESCRIPTIONS
from oaf.kol.models import PartialPlayer


PROFILE_PAGE = (
    '<center><table><tr><td><center><img src="/otherimages/classav1_f.gif" width=60>'
    "<b>Butts McGruff</b> (#3137318)<br>"
)

SEARCH_PAGE = (
    '<tr><td class=small><a href="showplayer.php?who=3137318">Butts McGruff</a>&nbsp;&nbsp;</td>'
    "<td class=small><a href=showclan.php?whichclan=90485>Ascension Speed Society</a></td>"
    "<td valign=top class=small>15</td><td valign=top>Sauceror</td></tr>"
)


class TestChat:
    """Tests for chat polling."""

    @pytest.mark.asyncio
    async def test_check_messages_publishes_by_type(self, kol_client, fake_kol):
        """Test public, private and system lines go to their own topics."""
        fake_kol.pages["newchatmessages.php"] = json.dumps({
            "last": "1700000100",
            "msgs": [
                {"type": "public", "who": {"id": "1", "name": "a"}, "msg": "hi", "time": "1700000000", "channel": "talkie"},
                {"type": "private", "who": {"id": "2", "name": "b"}, "msg": "claim", "time": "1700000001"},
                {"type": "system", "who": {"id": "-1", "name": "System Message"}, "msg": "Rollover is over.", "time": "1700000002"},
                {"type": "event", "msg": "You have a new kmail"},
            ],
        })
        received = {topics.PUBLIC: [], topics.WHISPER: [], topics.SYSTEM: []}
        for topic, bucket in received.items():
            async def handler(message, bucket=bucket):
                bucket.append(message)
            kol_client.events.on(topic, handler)

        assert await kol_client.check_messages() == 3

        assert [m.msg for m in received[topics.PUBLIC]] == ["hi"]
        assert received[topics.PUBLIC][0].channel == "talkie"
        assert received[topics.WHISPER][0].who.id == 2
        assert received[topics.SYSTEM][0].msg == "Rollover is over."

    @pytest.mark.asyncio
    async def test_check_messages_advances_cursor(self, kol_client, fake_kol):
        """Test the next poll asks only for lines after the last one seen."""
        fake_kol.pages["newchatmessages.php"] = json.dumps({"last": "1700000100", "msgs": []})

        await kol_client.check_messages()
        await kol_client.check_messages()

        polls = fake_kol.calls_to("newchatmessages.php")
        assert polls[0].params["lasttime"] == "0"
        assert polls[1].params["lasttime"] == "1700000100"

    @pytest.mark.asyncio
    async def test_check_messages_during_maintenance(self, kol_client, fake_kol):
        """Test polling during maintenance publishes nothing."""
        fake_kol.maintenance = True
        try:
            await kol_client.session.rollover.check()
            assert await kol_client.check_messages() == 0
        finally:
            await kol_client.close()

    @pytest.mark.asyncio
    async def test_whisper_uses_chat_macro(self, kol_client, fake_kol):
        """Test whispers are sent as a /w macro through clan chat."""
        await kol_client.whisper(3137318, "Your token is abc")

        [sent] = fake_kol.calls_to("submitnewchat.php")
        assert sent.params["graf"] == "/clan /w 3137318 Your token is abc"
        assert sent.params["j"] == 1

    @pytest.mark.asyncio
    async def test_is_online(self, kol_client, fake_kol):
        """Test the /whois macro output decides online status."""
        fake_kol.pages["submitnewchat.php"] = [
            json.dumps({"output": "<b>Butts McGruff</b> (#3137318): This player is currently online in channel talkie."}),
            json.dumps({"output": "<b>Butts McGruff</b> (#3137318): This player is currently away."}),
        ]

        assert await kol_client.is_online(3137318) is True
        assert await kol_client.is_online(3137318) is False

    @pytest.mark.asyncio
    async def test_start_chat_bot_joins_channel_once(self, kol_client, fake_kol):
        """Test starting the poller joins the chat channel, and only once."""
        try:
            await kol_client.start_chat_bot()
            await kol_client.start_chat_bot()
            await asyncio.sleep(0.05)

            joins = [c for c in fake_kol.calls_to("submitnewchat.php") if c.params["graf"] == "/clan /join talkie"]
            assert len(joins) == 1
            assert len(fake_kol.calls_to("newchatmessages.php")) >= 1
        finally:
            await kol_client.close()

        assert kol_client._chat_task is None


class TestKmail:
    """Tests for kmail polling."""

    KMAILS = [
        {"id": "101", "fromid": "3137318", "fromname": "Butts McGruff", "message": "hello", "azunixtime": "1700000000"},
        {"id": "102", "fromid": "1", "fromname": "Jick", "message": "hi", "azunixtime": "1700000001"},
    ]

    @pytest.mark.asyncio
    async def test_kmails_deleted_then_published(self, kol_client, fake_kol):
        """Test new kmails are deleted from the inbox and published."""
        fake_kol.pages["api.php"] = json.dumps(self.KMAILS)
        received = []
        deletes_seen = []

        async def on_kmail(message):
            received.append(message)
            deletes_seen.append(len(fake_kol.calls_to("messages.php")))

        kol_client.events.on(topics.KMAIL, on_kmail)

        assert await kol_client.check_kmails() == 2

        [delete] = fake_kol.calls_to("messages.php")
        assert delete.data["the_action"] == "delete"
        assert delete.data["box"] == "Inbox"
        assert delete.data["pwd"] == "abc123"
        assert delete.data["sel101"] == "on"
        assert delete.data["sel102"] == "on"
        assert [m.who.name for m in received] == ["Butts McGruff", "Jick"]
        assert received[0].type == "kmail"
        assert deletes_seen == [1, 1]

    @pytest.mark.asyncio
    async def test_no_kmails_no_delete(self, kol_client, fake_kol):
        """Test an empty inbox sends no delete request."""
        fake_kol.pages["api.php"] = "[]"

        assert await kol_client.check_kmails() == 0
        assert fake_kol.calls_to("messages.php") == []

    @pytest.mark.asyncio
    async def test_send_kmail(self, kol_client, fake_kol):
        """Test a kmail is sent with no items or meat attached."""
        await kol_client.kmail(3137318, "Your token is 2fd6f0b3")

        [sent] = fake_kol.calls_to("sendmessage.php")
        assert sent.params["action"] == "send"
        assert sent.params["towho"] == 3137318
        assert sent.params["message"] == "Your token is 2fd6f0b3"
        assert sent.params["sendmeat"] == 0
        assert sent.params["pwd"] == "abc123"

    @pytest.mark.asyncio
    async def test_send_kmail_unreachable(self, kol_client, fake_kol):
        """Test a send that cannot reach the site returns quietly."""
        fake_kol.fail_paths.add("sendmessage.php")

        assert await kol_client.kmail(3137318, "hello") is None
        assert len(fake_kol.calls_to("sendmessage.php")) == 1


class TestPlayers:
    """Tests for player lookups."""

    @pytest.mark.asyncio
    async def test_partial_player_by_name(self, kol_client, fake_kol):
        """Test a name lookup uses player search."""
        fake_kol.pages["searchplayer.php"] = SEARCH_PAGE

        player = await kol_client.get_partial_player("Butts McGruff")

        assert player == PartialPlayer(id=3137318, name="Butts McGruff", level=15, player_class="Sauceror")
        [search] = fake_kol.calls_to("searchplayer.php")
        assert search.params["searchstring"] == "Butts McGruff"

    @pytest.mark.asyncio
    async def test_partial_player_by_id(self, kol_client, fake_kol):
        """Test an id lookup reads the profile for the name, then searches."""
        fake_kol.pages["showplayer.php"] = PROFILE_PAGE
        fake_kol.pages["searchplayer.php"] = SEARCH_PAGE

        player = await kol_client.get_partial_player("3137318")

        assert player.id == 3137318
        assert fake_kol.calls_to("showplayer.php")[0].params["who"] == 3137318

    @pytest.mark.asyncio
    async def test_search_escapes_underscore(self, kol_client, fake_kol):
        """Test underscores are escaped so they are not wildcards."""
        await kol_client.get_partial_player_from_name("the_bot")

        [search] = fake_kol.calls_to("searchplayer.php")
        assert search.params["searchstring"] == "the\\_bot"

    @pytest.mark.asyncio
    async def test_unknown_player(self, kol_client, fake_kol):
        """Test a search with no results returns None."""
        fake_kol.pages["searchplayer.php"] = "<p>No players found.</p>"

        assert await kol_client.get_partial_player("nobody at all") is None


class TestDescriptions:
    """Tests for item and effect descriptions."""

    @pytest.mark.asyncio
    async def test_known_item_description_skips_network(self, kol_client, fake_kol):
        """Test hard-coded descriptions are returned without a request."""
        description = await kol_client.get_item_description(539406330)

        assert description == KNOWN_ITEM_DESCRIPTIONS[539406330]
        assert fake_kol.calls == []

    @pytest.mark.asyncio
    async def test_item_with_effect(self, kol_client, fake_kol):
        """Test an item that grants an effect includes the effect text."""
        fake_kol.pages["desc_item.php"] = (
            "<blockquote>A tasty snack.</blockquote>"
            'Effect: <b><a class=nounder href="desc_effect.php?whicheffect=abc123def" target=x>Snacky</a></b>'
            "<br>Duration: (5 Adventures)"
        )
        fake_kol.pages["desc_effect.php"] = '<center><font color=blue>+5 Moxie<br></font></center></div>'

        description = await kol_client.get_item_description(1234)

        assert "Gives 5 adventures of **[Snacky](https://wiki.kingdomofloathing.com/Snacky)**" in description
        assert "\u2003+5 Moxie" in description

    @pytest.mark.asyncio
    async def test_known_effect_description(self, kol_client, fake_kol):
        """Test hard-coded effect descriptions skip the network."""
        description = await kol_client.get_effect_description("3d5280f646ac2a6b70e64eae72daa263")

        assert description == "+5 to basically everything"
        assert fake_kol.calls == []


class TestItemLookups:
    """Tests for mall prices, skills and familiar equipment."""

    @pytest.mark.asyncio
    async def test_mall_price(self, kol_client, fake_kol):
        """Test prices are read from the backoffice summary."""
        fake_kol.pages["backoffice.php"] = (
            "<td>unlimited:</td><td><b>1,500</b> x 10</td><td>limited:</td><td><b>1,200</b> x 1</td>"
        )

        price = await kol_client.get_mall_price(641)

        [lookup] = fake_kol.calls_to("backoffice.php")
        assert lookup.params["action"] == "prices"
        assert lookup.params["iid"] == 641
        assert price.min_price == 1200
        assert price.formatted_mall_price == "1,500"

    @pytest.mark.asyncio
    async def test_mall_price_empty_page(self, kol_client, fake_kol):
        """Test an empty answer means nobody is selling."""
        price = await kol_client.get_mall_price(641)

        assert price.min_price is None
        assert price.mall_price == 0

    @pytest.mark.asyncio
    async def test_mall_price_during_maintenance(self, kol_client, fake_kol):
        """Test maintenance gives an empty price without asking the mall."""
        fake_kol.maintenance = True
        try:
            await kol_client.session.rollover.check()
            price = await kol_client.get_mall_price(641)
        finally:
            await kol_client.close()

        assert price.min_price is None
        assert fake_kol.calls_to("backoffice.php") == []

    @pytest.mark.asyncio
    async def test_skill_description(self, kol_client, fake_kol):
        """Test the skill id is sent as text and the blue text returned."""
        fake_kol.pages["desc_skill.php"] = "<blockquote>Hit things.<Center>Damage +5<br></Center></blockquote>"

        assert await kol_client.get_skill_description(7005) == "Damage +5"

        [lookup] = fake_kol.calls_to("desc_skill.php")
        assert lookup.params["whichskill"] == "7005"

    @pytest.mark.asyncio
    async def test_skill_description_missing(self, kol_client, fake_kol):
        """Test an unknown skill has no description."""
        assert await kol_client.get_skill_description(99999) is None

    @pytest.mark.asyncio
    async def test_equipment_familiar(self, kol_client, fake_kol):
        """Test the familiar named when the bot tries to equip the item."""
        fake_kol.pages["inv_equip.php"] = "Only a specific familiar type (Mosquito) can equip this item."

        assert await kol_client.get_equipment_familiar(5065) == "Mosquito"

        [equip] = fake_kol.calls_to("inv_equip.php")
        assert equip.params["action"] == "equip"
        assert equip.params["which"] == 2
        assert equip.params["whichitem"] == 5065

    @pytest.mark.asyncio
    async def test_equipment_familiar_unreachable(self, kol_client, fake_kol):
        """Test a failed request names no familiar."""
        fake_kol.fail_paths.add("inv_equip.php")

        assert await kol_client.get_equipment_familiar(5065) is None


class TestClan:
    """Tests for clan actions."""

    @pytest.mark.asyncio
    async def test_add_to_whitelist(self, kol_client, fake_kol):
        """Test whitelisting joins the clan, then adds the player."""
        fake_kol.pages["showclan.php"] = '<img src="clanhalltop.gif">'

        assert await kol_client.add_to_whitelist(3137318, 90485) is True

        [join] = fake_kol.calls_to("showclan.php")
        assert join.params["whichclan"] == 90485
        [add] = fake_kol.calls_to("clan_whitelist.php")
        assert add.params["addwho"] == 3137318
        assert add.params["level"] == 2
        assert add.params["action"] == "add"

    @pytest.mark.asyncio
    async def test_whitelist_fails_if_join_fails(self, kol_client, fake_kol):
        """Test no whitelist change is attempted in a clan the bot could not join."""
        fake_kol.pages["showclan.php"] = "You can't join that clan."

        assert await kol_client.add_to_whitelist(3137318, 90485) is False
        assert fake_kol.calls_to("clan_whitelist.php") == []

    @pytest.mark.asyncio
    async def test_whitelists_do_not_interleave(self, kol_client, fake_kol):
        """Test concurrent whitelists join and add one clan at a time."""
        fake_kol.pages["showclan.php"] = '<img src="clanhalltop.gif">'

        await asyncio.gather(
            kol_client.add_to_whitelist(1, 11),
            kol_client.add_to_whitelist(2, 22),
        )

        order = [
            (c.path, c.params.get("whichclan") or c.params.get("addwho"))
            for c in fake_kol.calls
            if c.path in ("showclan.php", "clan_whitelist.php")
        ]
        assert order == [
            ("showclan.php", 11),
            ("clan_whitelist.php", 1),
            ("showclan.php", 22),
            ("clan_whitelist.php", 2),
        ]


class TestApi:
    """Tests for JSON endpoint access."""

    @pytest.mark.asyncio
    async def test_visit_api_non_json(self, kol_client, fake_kol):
        """Test a non-JSON body is reported as None."""
        fake_kol.pages["submitnewchat.php"] = "<html>oops</html>"

        assert await kol_client.visit_api("submitnewchat.php", {"graf": "/who"}) is None

    @pytest.mark.asyncio
    async def test_has_session(self, kol_client):
        """Test has_session reflects the credential store."""
        assert kol_client.has_session is False
        await kol_client.session.ensure_logged_in()
        assert kol_client.has_session is True
