"""Unit tests for the range normalizer."""
import math
import pytest

from sitter_availability.services.slots.domain import TimeRange
from sitter_availability.services.slots.errors import InvalidRanges
from sitter_availability.services.slots.ranges import (
    clamp_minute,
    covers_whole_day,
    normalize_ranges,
    parse_ranges,
)


@pytest.mark.unit
class TestNormalizeRanges:
    """Validation and canonical ordering of raw ranges."""

    def test_sorted_input_unchanged(self):
        result = normalize_ranges([{"start_min": 60, "end_min": 120}, {"start_min": 180, "end_min": 240}])

        assert result.ok
        assert result.ranges == (TimeRange(60, 120), TimeRange(180, 240))

    def test_unsorted_input_is_sorted(self):
        result = normalize_ranges([[600, 660], [60, 120]])

        assert result.ranges == (TimeRange(60, 120), TimeRange(600, 660))

    def test_overlap_rejected(self):
        result = normalize_ranges([{"start_min": 60, "end_min": 200}, {"start_min": 180, "end_min": 240}])

        assert not result.ok
        assert result.error == "INVALID_RANGES"
        assert result.ranges is None

    def test_zero_length_rejected(self):
        assert not normalize_ranges([{"start_min": 120, "end_min": 120}]).ok

    def test_reversed_range_rejected(self):
        assert not normalize_ranges([[300, 200]]).ok

    def test_touching_ranges_kept_separate(self):
        result = normalize_ranges([[720, 1440], [0, 720]])

        assert result.ranges == (TimeRange(0, 720), TimeRange(720, 1440))

    def test_empty_list_is_ok(self):
        result = normalize_ranges([])

        assert result.ok
        assert result.ranges == ()

    def test_one_bad_item_fails_everything(self):
        result = normalize_ranges([[60, 120], [180, 2000]])

        assert not result.ok

    def test_camel_case_and_strings_accepted(self):
        result = normalize_ranges([{"startMin": "540", "endMin": "12:00"}])

        assert result.ranges == (TimeRange(540, 720),)

    def test_time_strings_accepted(self):
        result = normalize_ranges([["09:00", "24:00"]])

        assert result.ranges == (TimeRange(540, 1440),)

    @pytest.mark.parametrize("raw", [None, "09:00-12:00", 42, {"start_min": 1, "end_min": 2}])
    def test_non_list_input_rejected(self, raw):
        assert not normalize_ranges(raw).ok

    @pytest.mark.parametrize("item", [[1], [1, 2, 3], "abc", {"start_min": 10}])
    def test_malformed_item_rejected(self, item):
        assert not normalize_ranges([item]).ok

    def test_parse_ranges_raises(self):
        with pytest.raises(InvalidRanges):
            parse_ranges([[60, 200], [100, 240]])

    def test_parse_ranges_returns_tuple(self):
        assert parse_ranges([[0, 30]]) == (TimeRange(0, 30),)


@pytest.mark.unit
class TestClampMinute:
    """Parsing of a single minute-of-day value."""

    def test_rounds_half_up(self):
        assert clamp_minute(59.5) == 60
        assert clamp_minute(59.4) == 59

    def test_bounds_inclusive(self):
        assert clamp_minute(0) == 0
        assert clamp_minute(1440) == 1440
        assert clamp_minute(-1) is None
        assert clamp_minute(1441) is None

    @pytest.mark.parametrize("value", [True, False, None, "", "abc", math.nan, math.inf, [1]])
    def test_invalid_values(self, value):
        assert clamp_minute(value) is None

    def test_bad_time_string(self):
        assert clamp_minute("12:75") is None
        assert clamp_minute("25:00") is None


@pytest.mark.unit
class TestCoversWholeDay:
    def test_single_full_range(self):
        assert covers_whole_day([TimeRange(0, 1440)])

    def test_touching_ranges_chain(self):
        assert covers_whole_day([TimeRange(720, 1440), TimeRange(0, 720)])

    def test_gap_fails(self):
        assert not covers_whole_day([TimeRange(0, 600), TimeRange(660, 1440)])

    def test_partial_day_fails(self):
        assert not covers_whole_day([TimeRange(480, 1200)])

    def test_empty_fails(self):
        assert not covers_whole_day([])
