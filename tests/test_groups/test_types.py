"""Tests for group types."""

from gemclaw.groups.types import RegisteredGroup, group_timezone
from gemclaw.infrastructure.config import TIMEZONE


def _group(timezone=None) -> RegisteredGroup:
    return RegisteredGroup(name="Team", folder="team", trigger="@bot", added_at="2026-01-01T00:00:00Z", timezone=timezone)


class TestGroupTimezone:
    def test_uses_group_timezone(self):
        assert group_timezone(_group("Asia/Tokyo")) == "Asia/Tokyo"

    def test_unset_falls_back_to_default(self):
        assert group_timezone(_group()) == TIMEZONE

    def test_unknown_falls_back_to_default(self):
        assert group_timezone(_group("Mars/Olympus")) == TIMEZONE

    def test_missing_group_falls_back_to_default(self):
        assert group_timezone(None) == TIMEZONE
