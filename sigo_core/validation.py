"""Regras de validacao e conflito aplicadas antes de qualquer mutacao."""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Iterable, List, Mapping, Optional

from .dates import Period, format_range_br, parse_date
from .errors import (
    DuplicateRegistrationNumber,
    EmptyCodeSet,
    InvalidChoice,
    InvalidCode,
    InvalidDateRange,
    OverlapConflict,
    RequiredFieldMissing,
)
from .models import (
    ENTITY_ABSENCE,
    ENTITY_PERSON,
    ENTITY_RESTRICTION,
    RESTRICTION_CODES,
    Absence,
    Restriction,
    normalize_absence_type,
    normalize_rank,
    parse_restriction_codes,
)
from .repository import RecordStore

logger = logging.getLogger(__name__)

REQUIRED_MESSAGE = "Este campo e obrigatorio"

PERSON_REQUIRED = ("registration_number", "full_name", "short_name", "rank")
ABSENCE_REQUIRED = ("person_id", "type", "start_date", "end_date")
RESTRICTION_REQUIRED = ("person_id", "start_date", "end_date")


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


def missing_fields(data: Mapping[str, Any], required: Iterable[str]) -> dict[str, str]:
    return {name: REQUIRED_MESSAGE for name in required if _is_blank(data.get(name))}


def require(data: Mapping[str, Any], required: Iterable[str]) -> None:
    errors = missing_fields(data, required)
    if errors:
        raise RequiredFieldMissing(errors)


# policiais ------------------------------------------------------------
def check_rank(value: str) -> str:
    try:
        return normalize_rank(value)
    except ValueError as exc:
        raise InvalidChoice("rank", value) from exc


def check_registration_unique(store: RecordStore, registration_number: str, exclude_id: Optional[int] = None) -> None:
    target = registration_number.strip()
    for person in store.list(ENTITY_PERSON):
        if exclude_id is not None and person.id == exclude_id:
            continue
        if person.registration_number == target:
            raise DuplicateRegistrationNumber(target)


def check_person(store: RecordStore, data: Mapping[str, Any], exclude_id: Optional[int] = None) -> None:
    require(data, PERSON_REQUIRED)
    check_rank(str(data["rank"]))
    check_registration_unique(store, str(data["registration_number"]), exclude_id)


# intervalos -----------------------------------------------------------
def check_date_range(start: date, end: date) -> None:
    if end < start:
        raise InvalidDateRange()


def dates_from(data: Mapping[str, Any]) -> tuple[date, date]:
    start = parse_date(data["start_date"], "start_date")
    end = parse_date(data["end_date"], "end_date")
    check_date_range(start, end)
    return start, end


# afastamentos ---------------------------------------------------------
def absences_for(store: RecordStore, person_id: int) -> List[Absence]:
    """Afastamentos do policial, do inicio mais recente para o mais antigo."""
    items = [absence for absence in store.list(ENTITY_ABSENCE) if absence.person_id == person_id]
    items.sort(key=lambda absence: (absence.start_date, absence.id), reverse=True)
    return items


def check_absence_type(value: str) -> str:
    try:
        return normalize_absence_type(value)
    except ValueError as exc:
        raise InvalidChoice("type", value) from exc


def find_absence_overlap(
    store: RecordStore,
    person_id: int,
    start: date,
    end: date,
    exclude_id: Optional[int] = None,
) -> Optional[Absence]:
    wanted = Period(start, end)
    for absence in absences_for(store, person_id):
        if exclude_id is not None and absence.id == exclude_id:
            continue
        if wanted.overlaps(Period(absence.start_date, absence.end_date)):
            return absence
    return None


def check_absence_overlap(
    store: RecordStore,
    person_id: int,
    start: date,
    end: date,
    exclude_id: Optional[int] = None,
) -> None:
    conflict = find_absence_overlap(store, person_id, start, end, exclude_id)
    if conflict is None:
        return
    message = (
        f"Ja existe afastamento {conflict.type} de "
        f"{format_range_br(conflict.start_date, conflict.end_date)} para este policial"
    )
    logger.info("Afastamento rejeitado para policial %s: conflito com %s", person_id, conflict.id)
    raise OverlapConflict(message, conflict)


# restricoes -----------------------------------------------------------
def check_codes(raw: Any) -> list[str]:
    codes = parse_restriction_codes(raw)
    if not codes:
        raise EmptyCodeSet()
    for code in codes:
        if code not in RESTRICTION_CODES:
            raise InvalidCode(code)
    return codes


def restrictions_for(store: RecordStore, person_id: int) -> List[Restriction]:
    items = [item for item in store.list(ENTITY_RESTRICTION) if item.person_id == person_id]
    items.sort(key=lambda item: (item.start_date, item.id), reverse=True)
    return items
