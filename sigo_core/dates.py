"""Datas de calendario puras (sem fuso horario).

Todas as funcoes operam sobre ``datetime.date``. Strings so sao aceitas no
formato ``YYYY-MM-DD`` e nunca passam por um timestamp com fuso, o que
deslocaria o dia aparente perto da meia-noite.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .errors import InvalidDate, InvalidDateRange, ValidationError

DateLike = date | str

_ISO_DATE = re.compile(r"\d{4}-\d{2}-\d{2}")


def detect_timezone(tz_name: str) -> ZoneInfo:
    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValidationError(f"Fuso horario invalido: {tz_name}") from exc


def parse_date(value: DateLike, field: str | None = None) -> date:
    if isinstance(value, datetime):
        raise InvalidDate(field, value)
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not _ISO_DATE.fullmatch(text):
        raise InvalidDate(field, value)
    try:
        return date.fromisoformat(text)
    except ValueError as exc:
        raise InvalidDate(field, value) from exc


def compare_dates(a: DateLike, b: DateLike) -> int:
    left, right = parse_date(a), parse_date(b)
    if left < right:
        return -1
    if left > right:
        return 1
    return 0


def is_within_inclusive(day: DateLike, start: DateLike, end: DateLike) -> bool:
    return parse_date(start) <= parse_date(day) <= parse_date(end)


def ranges_overlap(start_a: DateLike, end_a: DateLike, start_b: DateLike, end_b: DateLike) -> bool:
    # limites inclusivos: intervalos que se tocam em um dia se sobrepoem
    return parse_date(start_a) <= parse_date(end_b) and parse_date(end_a) >= parse_date(start_b)


def inclusive_day_count(start: DateLike, end: DateLike) -> int:
    return parse_date(end).toordinal() - parse_date(start).toordinal() + 1


def add_days(day: DateLike, n: int) -> date:
    return parse_date(day) + timedelta(days=n)


def today(tz_name: str | None = None) -> date:
    if tz_name:
        return datetime.now(detect_timezone(tz_name)).date()
    return date.today()


def format_date_br(day: DateLike) -> str:
    value = parse_date(day)
    return f"{value.day:02d}/{value.month:02d}/{value.year}"


def format_range_br(start: DateLike, end: DateLike) -> str:
    return f"{format_date_br(start)} a {format_date_br(end)}"


@dataclass(slots=True)
class Period:
    start: date
    end: date

    def contains(self, target: date) -> bool:
        return is_within_inclusive(target, self.start, self.end)

    def overlaps(self, other: "Period") -> bool:
        return ranges_overlap(self.start, self.end, other.start, other.end)

    @property
    def days(self) -> int:
        return inclusive_day_count(self.start, self.end)


def build_period(de: str | None, ate: str | None) -> Period | None:
    """Periodo inclusivo para filtros; extremos ausentes ficam abertos."""
    if not de and not ate:
        return None
    start = parse_date(de, "de") if de else date.min
    end = parse_date(ate, "ate") if ate else date.max
    if end < start:
        raise InvalidDateRange()
    return Period(start, end)
