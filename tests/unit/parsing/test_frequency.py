"""Tests for natural-language frequency parsing."""

from __future__ import annotations

import pytest

from canonforge.models.enums import FrequencyInterval
from canonforge.parsing.frequency import Frequency, format_frequency, parse_frequency


class TestParseFrequency:
    """Tests for parse_frequency."""

    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("twice per day", Frequency(max=2, per=FrequencyInterval.DAY)),
            ("once every 10 minutes", Frequency(max=1, per=FrequencyInterval.TEN_MINUTES)),
            ("3/round", Frequency(max=3, per=FrequencyInterval.ROUND)),
            ("2 times per turn", Frequency(max=2, per=FrequencyInterval.TURN)),
            ("once per hour", Frequency(max=1, per=FrequencyInterval.HOUR)),
            ("once per 60 minutes", Frequency(max=1, per=FrequencyInterval.HOUR)),
            ("Once a minute", Frequency(max=1, per=FrequencyInterval.MINUTE)),
            ("Frequency: three per day", Frequency(max=3, per=FrequencyInterval.DAY)),
        ],
    )
    def test_recognised_phrases(self, text: str, expected: Frequency) -> None:
        """Test phrases with a count and a supported interval."""
        assert parse_frequency(text) == expected

    @pytest.mark.parametrize(
        "text",
        [None, "", "sometimes", "once per week", "0 per day", "when the moon is full"],
    )
    def test_absence(self, text: str | None) -> None:
        """Test that unrecognised text yields None instead of raising."""
        assert parse_frequency(text) is None


class TestFormatFrequency:
    """Tests for format_frequency."""

    @pytest.mark.parametrize(
        ("frequency", "text"),
        [
            (Frequency(max=1, per=FrequencyInterval.TEN_MINUTES), "once per 10 minutes"),
            (Frequency(max=2, per=FrequencyInterval.DAY), "twice per day"),
            (Frequency(max=3, per=FrequencyInterval.ROUND), "3 times per round"),
        ],
    )
    def test_format_and_parse_back(self, frequency: Frequency, text: str) -> None:
        """Test that formatted text parses back to the same frequency."""
        assert format_frequency(frequency) == text
        assert parse_frequency(text) == frequency
