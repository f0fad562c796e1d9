"""
OAF Discord Bot - Configuration Tests
=====================================

Tests for environment parsing and the permission helper.
"""

from unittest.mock import MagicMock

import pytest

from oaf.core.config import (
    ConfigValidationError,
    can_edit_whitelists,
    get_config,
    load_config,
)


class TestLoadConfig:
    """Tests for load_config."""

    def test_required_values(self):
        """Test the required values are read."""
        config = load_config()

        assert config.discord_token == "test-token"
        assert config.kol_user == "OAF Bot"
        assert config.kol_pass == "hunter2"
        assert config.guild_id == 987654321

    def test_missing_values_reported_together(self, monkeypatch):
        """Test every missing variable is named at once."""
        monkeypatch.delenv("KOL_USER")
        monkeypatch.delenv("KOL_PASS")

        with pytest.raises(ConfigValidationError) as exc_info:
            load_config()

        assert "KOL_USER" in str(exc_info.value)
        assert "KOL_PASS" in str(exc_info.value)

    def test_bad_guild_id(self, monkeypatch):
        """Test a non-numeric guild id is rejected."""
        monkeypatch.setenv("GUILD_ID", "general")

        with pytest.raises(ConfigValidationError):
            load_config()

    def test_id_lists(self, monkeypatch):
        """Test comma-separated ids keep order and drop junk and duplicates."""
        monkeypatch.setenv("WHITELIST_CLAN_IDS", "22, 11,abc,22,,33")

        config = load_config()

        assert config.whitelist_clan_ids == (22, 11, 33)
        assert config.whitelist_role_ids == {555, 556}

    def test_defaults(self):
        """Test optional values fall back to their defaults."""
        config = load_config()

        assert config.chat_channel == "talkie"
        assert config.chat_poll_interval == 3
        assert config.rollover_check_interval == 60
        assert config.alerts_channel_id is None
        assert config.debug is False

    def test_intervals_are_clamped(self, monkeypatch):
        """Test out-of-range intervals are clamped, junk uses the default."""
        monkeypatch.setenv("ROLLOVER_CHECK_INTERVAL", "1")
        monkeypatch.setenv("CHAT_POLL_INTERVAL", "soon")

        config = load_config()

        assert config.rollover_check_interval == 10
        assert config.chat_poll_interval == 3

    def test_webhook_must_be_url(self, monkeypatch):
        """Test a malformed webhook URL is ignored."""
        monkeypatch.setenv("ERROR_WEBHOOK_URL", "discord.com/api/webhooks/1")

        assert load_config().error_webhook_url is None

    def test_get_config_is_shared(self):
        """Test get_config hands out one instance."""
        assert get_config() is get_config()


class TestPermissions:
    """Tests for can_edit_whitelists."""

    def test_member_with_role(self, mock_discord_member):
        """Test a whitelist role grants permission."""
        role = MagicMock()
        role.id = 556
        mock_discord_member.roles = [role]

        assert can_edit_whitelists(mock_discord_member) is True

    def test_member_without_role(self, mock_discord_member):
        """Test other roles do not."""
        role = MagicMock()
        role.id = 1
        mock_discord_member.roles = [role]

        assert can_edit_whitelists(mock_discord_member) is False

    def test_user_outside_guild(self):
        """Test a plain user has no roles at all."""
        user = MagicMock(spec=["id", "name"])

        assert can_edit_whitelists(user) is False
