from datetime import date, datetime

import pytest

from sigo_core.dates import (
    add_days,
    build_period,
    compare_dates,
    format_date_br,
    format_range_br,
    inclusive_day_count,
    is_within_inclusive,
    parse_date,
    ranges_overlap,
    today,
)
from sigo_core.errors import InvalidDate, InvalidDateRange, ValidationError


class TestParseDate:
    def test_iso_string(self):
        assert parse_date("2026-01-15") == date(2026, 1, 15)

    def test_date_passthrough(self):
        value = date(2026, 1, 15)
        assert parse_date(value) is value

    @pytest.mark.parametrize("raw", ["2026-1-5", "15/01/2026", "2026-02-30", "", "2026-01-15T00:00:00Z"])
    def test_rejects_malformed(self, raw):
        with pytest.raises(InvalidDate):
            parse_date(raw, "start_date")

    def test_rejects_datetime(self):
        with pytest.raises(InvalidDate):
            parse_date(datetime(2026, 1, 15, 23, 30))

    def test_error_carries_field(self):
        with pytest.raises(InvalidDate) as info:
            parse_date("ontem", "end_date")
        assert info.value.field == "end_date"
        assert info.value.errors == {"end_date": info.value.message}


def test_compare_dates():
    assert compare_dates("2026-01-01", "2026-01-02") == -1
    assert compare_dates("2026-01-02", "2026-01-02") == 0
    assert compare_dates(date(2026, 2, 1), "2026-01-31") == 1


@pytest.mark.parametrize(
    "day, expected",
    [
        ("2025-12-31", False),
        ("2026-01-01", True),
        ("2026-01-15", True),
        ("2026-01-31", True),
        ("2026-02-01", False),
    ],
)
def test_is_within_inclusive(day, expected):
    assert is_within_inclusive(day, "2026-01-01", "2026-01-31") is expected


@pytest.mark.parametrize(
    "a, b, expected",
    [
        (("2026-01-01", "2026-01-10"), ("2026-01-10", "2026-01-20"), True),
        (("2026-01-01", "2026-01-10"), ("2026-01-11", "2026-01-20"), False),
        (("2026-01-05", "2026-01-05"), ("2026-01-05", "2026-01-05"), True),
        (("2026-01-01", "2026-12-31"), ("2026-06-01", "2026-06-02"), True),
        (("2026-03-01", "2026-03-02"), ("2026-01-01", "2026-02-28"), False),
    ],
)
def test_ranges_overlap_is_symmetric(a, b, expected):
    assert ranges_overlap(*a, *b) is expected
    assert ranges_overlap(*b, *a) is expected


class TestInclusiveDayCount:
    def test_same_day_is_one(self):
        assert inclusive_day_count("2026-01-01", "2026-01-01") == 1

    def test_ten_days(self):
        assert inclusive_day_count("2026-01-01", "2026-01-10") == 10

    def test_leap_year(self):
        assert inclusive_day_count("2024-02-28", "2024-03-01") == 3

    def test_across_dst_transition(self):
        # inicio do horario de verao nos EUA em 2026-03-08
        assert inclusive_day_count("2026-03-07", "2026-03-09") == 3

    @pytest.mark.parametrize("shift", [-1000, -31, -1, 0, 1, 59, 365, 4000])
    def test_shift_invariance(self, shift):
        start, end = "2026-02-20", "2026-03-10"
        assert inclusive_day_count(start, end) == inclusive_day_count(add_days(start, shift), add_days(end, shift))


@pytest.mark.parametrize(
    "day, offset, expected",
    [
        ("2026-12-31", 1, date(2027, 1, 1)),
        ("2024-02-28", 1, date(2024, 2, 29)),
        ("2026-03-01", -1, date(2026, 2, 28)),
        ("2026-01-15", 0, date(2026, 1, 15)),
    ],
)
def test_add_days(day, offset, expected):
    assert add_days(day, offset) == expected


def test_format_helpers():
    assert format_date_br("2026-01-05") == "05/01/2026"
    assert format_range_br("2026-01-01", "2026-01-10") == "01/01/2026 a 10/01/2026"


def test_today_uses_timezone():
    assert isinstance(today("America/Sao_Paulo"), date)
    with pytest.raises(ValidationError):
        today("Mars/Olympus")


class TestBuildPeriod:
    def test_none_when_open(self):
        assert build_period(None, None) is None

    def test_open_end(self):
        period = build_period("2026-01-01", None)
        assert period.contains(date(2030, 1, 1))
        assert not period.contains(date(2025, 12, 31))

    def test_closed(self):
        period = build_period("2026-01-01", "2026-01-10")
        assert period.days == 10

    def test_overlaps_touching_periods(self):
        first = build_period("2026-01-01", "2026-01-10")
        assert first.overlaps(build_period("2026-01-10", "2026-01-20"))
        assert not first.overlaps(build_period("2026-01-11", None))

    def test_inverted(self):
        with pytest.raises(InvalidDateRange):
            build_period("2026-02-01", "2026-01-01")
