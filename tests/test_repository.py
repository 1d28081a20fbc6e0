from datetime import date

import pytest

from sigo_core.errors import InternalError, IOErrorWithCode
from sigo_core.models import Absence, Person, Restriction
from sigo_core.repository import StateRepository


def _person(pid, re_number="1"):
    return Person(id=pid, registration_number=re_number, full_name="A", short_name="A", rank="SD")


def test_counters_are_independent():
    repo = StateRepository()
    assert [repo.next_id("person"), repo.next_id("person"), repo.next_id("absence")] == [1, 2, 1]


def test_insert_rejects_duplicate_id():
    repo = StateRepository()
    repo.insert("person", _person(1))
    with pytest.raises(InternalError):
        repo.insert("person", _person(1, "2"))


def test_replace_keeps_id():
    repo = StateRepository()
    repo.insert("person", _person(1))
    repo.replace("person", 1, _person(5, "9"))
    stored = repo.get("person", 1)
    assert stored.id == 1
    assert stored.registration_number == "9"
    with pytest.raises(InternalError):
        repo.replace("person", 3, _person(3))


def test_remove_where_returns_count():
    repo = StateRepository()
    for pid in (1, 2, 3):
        repo.insert(
            "absence",
            Absence(id=pid, person_id=pid % 2, type="CURSO", start_date=date(2026, 1, pid), end_date=date(2026, 1, pid)),
        )
    assert repo.remove_where("absence", lambda item: item.person_id == 1) == 2
    assert [item.id for item in repo.list("absence")] == [2]


def test_unknown_collection():
    with pytest.raises(KeyError):
        StateRepository().list("viatura")


def test_save_and_load(tmp_path):
    path = tmp_path / "state.json"
    repo = StateRepository(path)
    repo.insert("person", _person(repo.next_id("person")))
    repo.insert(
        "restriction",
        Restriction(id=1, person_id=1, codes=["AA"], start_date=date(2026, 1, 1), end_date=date(2026, 1, 3)),
    )
    repo.save()

    loaded = StateRepository(path)
    assert loaded.get("person", 1).registration_number == "1"
    assert loaded.get("restriction", 1).total_days == 3
    assert loaded.next_id("person") == 2


def test_save_without_path():
    with pytest.raises(IOErrorWithCode):
        StateRepository().save()


def test_invalid_json(tmp_path):
    path = tmp_path / "state.json"
    path.write_text("{nao e json", encoding="utf-8")
    with pytest.raises(IOErrorWithCode) as info:
        StateRepository(path)
    assert info.value.code == 5


def test_audit_log_is_a_copy(service, repo, person):
    log = repo.audit_log()
    log.clear()
    assert len(repo.audit_log()) == 1


def test_reads_return_detached_copies():
    repo = StateRepository()
    repo.insert(
        "restriction",
        Restriction(id=1, person_id=1, codes=["AA"], start_date=date(2026, 1, 1), end_date=date(2026, 1, 3)),
    )
    fetched = repo.get("restriction", 1)
    fetched.start_date = date(2025, 1, 1)
    fetched.codes.append("CF")
    repo.list("restriction")[0].codes.clear()
    stored = repo.get("restriction", 1)
    assert stored.start_date == date(2026, 1, 1)
    assert stored.codes == ["AA"]


def test_insert_keeps_its_own_copy():
    repo = StateRepository()
    person = _person(1)
    repo.insert("person", person)
    person.registration_number = "outro"
    assert repo.get("person", 1).registration_number == "1"
