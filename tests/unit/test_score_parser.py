"""
Unit tests for score parser.

Tests the score formats typed in by players and staff:
- Regular sets: "6-4 6-3"
- Slashes and commas: "6/4, 3/6"
- Tiebreak detail: "7-6(5)" or "7-6(7-5)"
- Super tiebreaks, bare or bracketed: "10-8", "[10-8]"
"""

import pytest

from courtside.exceptions import ScoreParseError
from courtside.scoring.parser import format_sets, parse_sets
from courtside.scoring.sets import SetScore


class TestParseSets:
    """Tests for parse_sets function."""

    def test_simple_straight_sets(self):
        """Test parsing a simple straight sets match."""
        result = parse_sets("6-4 6-3")

        assert result == [SetScore(6, 4), SetScore(6, 3)]

    def test_three_sets(self):
        """Test parsing a three-set match."""
        result = parse_sets("6-4 4-6 7-5")

        assert len(result) == 3
        assert result[2] == SetScore(7, 5)

    def test_tiebreak_detail_dropped(self):
        """Tiebreak points are not games; only 7-6 is kept."""
        assert parse_sets("7-6(5) 6-4") == [SetScore(7, 6), SetScore(6, 4)]
        assert parse_sets("7-6(7-5) 6-4") == [SetScore(7, 6), SetScore(6, 4)]

    def test_bracketed_super_tiebreak(self):
        result = parse_sets("6-4 4-6 [10-8]")

        assert result == [SetScore(6, 4), SetScore(4, 6), SetScore(10, 8)]

    def test_slashes_and_commas(self):
        assert parse_sets("6/4, 3/6; 10/7") == [SetScore(6, 4), SetScore(3, 6), SetScore(10, 7)]

    def test_extra_whitespace(self):
        assert parse_sets("  6-4    6-3  ") == [SetScore(6, 4), SetScore(6, 3)]

    @pytest.mark.parametrize("score", ["", "   ", None])
    def test_empty_string_raises(self, score):
        with pytest.raises(ScoreParseError):
            parse_sets(score)

    @pytest.mark.parametrize("score", ["6-4 abc", "W/O", "6-4 RET", "6:4"])
    def test_garbage_raises(self, score):
        with pytest.raises(ScoreParseError) as exc_info:
            parse_sets(score)

        assert exc_info.value.reason


class TestFormatSets:
    """Tests for format_sets function."""

    def test_round_trip_display(self):
        sets = [SetScore(6, 4), SetScore(4, 6), SetScore(10, 8)]

        assert format_sets(sets) == "6-4 4-6 [10-8]"

    def test_empty_slots_skipped(self):
        assert format_sets([SetScore(6, 4), SetScore(0, 0)]) == "6-4"
