import pytest

from sigo_core.models import AFASTADO, APTO, APTO_COM_RESTRICAO
from sigo_core.status import STATUS_RULES, StatusRule, derive_status


@pytest.fixture
def covered(service, person):
    """Policial com afastamento medico em janeiro e restricao ate junho."""
    absence = service.create_absence(
        {"person_id": person.id, "type": "MEDICO", "start_date": "2026-01-01", "end_date": "2026-01-31"}
    )
    restriction = service.create_restriction(
        {"person_id": person.id, "codes": ["AA"], "start_date": "2026-01-01", "end_date": "2026-06-30"}
    )
    return person, absence, restriction


def test_absence_wins_over_restriction(repo, covered):
    person, absence, _ = covered
    result = derive_status(repo, person.id, "2026-01-15")
    assert result.status == AFASTADO
    assert result.active_absence.id == absence.id
    assert result.active_restriction is None


def test_restriction_after_absence_ends(repo, covered):
    person, _, restriction = covered
    result = derive_status(repo, person.id, "2026-03-01")
    assert result.status == APTO_COM_RESTRICAO
    assert result.active_restriction.id == restriction.id
    assert result.active_absence is None


def test_fit_outside_every_interval(repo, covered):
    person, _, _ = covered
    result = derive_status(repo, person.id, "2027-01-01")
    assert result.status == APTO
    assert result.active_absence is None
    assert result.active_restriction is None


@pytest.mark.parametrize("day, expected", [("2026-01-31", AFASTADO), ("2026-02-01", APTO_COM_RESTRICAO), ("2026-06-30", APTO_COM_RESTRICAO), ("2026-07-01", APTO)])
def test_boundaries_are_inclusive(repo, covered, day, expected):
    person, _, _ = covered
    assert derive_status(repo, person.id, day).status == expected


def test_precedence_ignores_recency(service, repo, person):
    service.create_absence({"person_id": person.id, "type": "LICENCA", "start_date": "2026-01-01", "end_date": "2026-12-31"})
    service.create_restriction({"person_id": person.id, "codes": "CF", "start_date": "2026-05-01", "end_date": "2026-05-02"})
    assert derive_status(repo, person.id, "2026-05-01").status == AFASTADO


def test_latest_started_restriction_is_reported(service, repo, person):
    service.create_restriction({"person_id": person.id, "codes": "AA", "start_date": "2026-01-01", "end_date": "2026-12-31"})
    newer = service.create_restriction({"person_id": person.id, "codes": "CF", "start_date": "2026-04-01", "end_date": "2026-04-30"})
    result = derive_status(repo, person.id, "2026-04-10")
    assert result.active_restriction.id == newer.id


def test_unknown_person_has_no_records(repo):
    assert derive_status(repo, 999, "2026-01-01").status == APTO


def test_custom_rule_list(repo, covered):
    person, _, _ = covered
    restriction_first = (STATUS_RULES[1], STATUS_RULES[0], StatusRule(APTO, STATUS_RULES[2].match))
    assert derive_status(repo, person.id, "2026-01-15", rules=restriction_first).status == APTO_COM_RESTRICAO
