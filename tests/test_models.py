from datetime import date

import pytest

from sigo_core.models import (
    AuditEntry,
    Person,
    Restriction,
    StatusResult,
    normalize_absence_type,
    normalize_rank,
)


@pytest.mark.parametrize("raw, expected", [("sgt", "SGT"), (" Cap ", "CAP"), ("sd", "SD")])
def test_normalize_rank(raw, expected):
    assert normalize_rank(raw) == expected


def test_absence_type_ignores_accents():
    assert normalize_absence_type("médico") == "MEDICO"
    with pytest.raises(ValueError):
        normalize_absence_type("PASSEIO")


def test_person_normalize_keeps_short_name_case():
    person = Person(id=1, registration_number=" 1 ", full_name=" Ana ", short_name=" Ana Paula ", rank="ten")
    person.normalize()
    assert (person.registration_number, person.full_name, person.short_name) == ("1", "Ana", "Ana Paula")
    assert person.label == "TEN Ana Paula"


def test_restriction_total_days_is_derived():
    restriction = Restriction(
        id=1, person_id=1, codes=["AA"], start_date=date(2024, 2, 28), end_date=date(2024, 3, 1), total_days=99
    )
    assert restriction.total_days == 3
    loaded = Restriction.from_dict({**restriction.to_dict(), "total_days": 500})
    assert loaded.total_days == 3


def test_audit_entry_rejects_unknown_action():
    with pytest.raises(ValueError):
        AuditEntry(id=1, entity="person", entity_id=1, action="MERGE", actor="a", timestamp="t", description="")


def test_status_result_to_dict():
    assert StatusResult(status="APTO").to_dict() == {"status": "APTO", "active_absence": None, "active_restriction": None}
