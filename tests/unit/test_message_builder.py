"""
Unit tests for message_builder module.

Tests cover:
- Static reply texts
- Duration formatting
- Builders for dynamic replies
"""

import sys
import os
from datetime import datetime

import pytest

# Add project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", ".."))

from wabot.message_builder import MessageBuilder


class TestStaticMessages:
    """Tests for the fixed reply texts."""

    def test_help_message_not_empty(self):
        assert len(MessageBuilder.HELP_MESSAGE) > 0

    def test_help_mentions_admin_only_broadcast(self):
        assert "broadcast" in MessageBuilder.HELP_MESSAGE
        assert "Admin only" in MessageBuilder.HELP_MESSAGE

    def test_unknown_command_points_to_help(self):
        assert '"aide"' in MessageBuilder.UNKNOWN_COMMAND_MESSAGE

    def test_rate_limited_message_not_empty(self):
        assert MessageBuilder.RATE_LIMITED_MESSAGE.strip()

    def test_coin_has_two_sides(self):
        assert len(set(MessageBuilder.COIN_SIDES)) == 2


class TestFormatDuration:
    """Tests for format_duration."""

    @pytest.mark.parametrize(
        "seconds, expected",
        [
            (0, "0d 0h 0m 0s"),
            (59, "0d 0h 0m 59s"),
            (3600, "0d 1h 0m 0s"),
            (90061, "1d 1h 1m 1s"),
            (12.9, "0d 0h 0m 12s"),
            (-5, "0d 0h 0m 0s"),
        ],
    )
    def test_format_duration(self, seconds, expected):
        assert MessageBuilder.format_duration(seconds) == expected


class TestBuilders:
    """Tests for dynamic reply builders."""

    def test_ping(self):
        assert MessageBuilder.ping(42) == "Pong ! 🏓 Latence: 42ms"

    def test_greeting_fallback(self):
        assert MessageBuilder.greeting(None) == MessageBuilder.greeting("")
        assert "utilisateur" in MessageBuilder.greeting(None)

    def test_info_contains_all_fields(self):
        msg = MessageBuilder.info("1.2.3", "admin@s.whatsapp.net", datetime(2024, 5, 1, 8, 30, 0))
        assert "1.2.3" in msg
        assert "admin@s.whatsapp.net" in msg
        assert "01/05/2024 08:30:00" in msg

    def test_stats(self):
        msg = MessageBuilder.stats(7, 61)
        assert "7" in msg
        assert "0d 0h 1m 1s" in msg

    def test_calc_result(self):
        assert MessageBuilder.calc_result("1+1", "2") == "🧮 1+1 = 2"

    def test_roll(self):
        assert "(1-6)" in MessageBuilder.roll(3, 6)

    def test_current_time(self):
        assert "31/12/2023 23:59:58" in MessageBuilder.current_time(datetime(2023, 12, 31, 23, 59, 58))

    def test_command_list_sorted(self):
        assert MessageBuilder.command_list(["ping", "aide", "calc"]) == "aide, calc, ping"
