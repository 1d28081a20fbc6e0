from __future__ import annotations

import json
import logging
from collections import Counter
from dataclasses import replace
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from . import status as status_engine
from .config import Config
from .dates import (
    DateLike,
    add_days,
    build_period,
    detect_timezone,
    format_range_br,
    parse_date,
    today,
)
from .errors import InvalidChoice, IOErrorWithCode, NotFound, UsageError
from .localization import Localizer
from .models import (
    ABSENCE_TYPES,
    ENTITIES,
    ENTITY_ABSENCE,
    ENTITY_PERSON,
    ENTITY_RESTRICTION,
    STATUSES,
    Absence,
    AuditEntry,
    Person,
    Restriction,
    StatusResult,
)
from .repository import RecordStore
from .utils import fold, strip_diacritics, utc_now_iso
from .validation import (
    ABSENCE_REQUIRED,
    RESTRICTION_REQUIRED,
    absences_for,
    check_absence_overlap,
    check_absence_type,
    check_codes,
    check_person,
    dates_from,
    require,
    restrictions_for,
)

logger = logging.getLogger(__name__)

PERSON_FIELDS = ("registration_number", "full_name", "short_name", "rank", "active")
ABSENCE_FIELDS = ("person_id", "type", "start_date", "end_date", "document", "note")
RESTRICTION_FIELDS = ("person_id", "codes", "start_date", "end_date", "note")
# calculados pelo nucleo; valores vindos do chamador sao descartados
SERVER_MANAGED = frozenset({"id", "created_at", "created_by", "total_days"})

DEMO_PEOPLE: Tuple[Dict[str, Any], ...] = (
    {"registration_number": "123456", "full_name": "João Pedro Silva Santos", "short_name": "SILVA", "rank": "SGT"},
    {"registration_number": "234567", "full_name": "Maria Fernanda Oliveira", "short_name": "OLIVEIRA", "rank": "CB"},
    {"registration_number": "345678", "full_name": "Carlos Eduardo Costa", "short_name": "COSTA", "rank": "SD"},
    {"registration_number": "456789", "full_name": "Ana Paula Rodrigues", "short_name": "RODRIGUES", "rank": "TEN"},
    {"registration_number": "567890", "full_name": "Pedro Henrique Almeida", "short_name": "ALMEIDA", "rank": "SD"},
    {"registration_number": "678901", "full_name": "Luciana Beatriz Souza", "short_name": "SOUZA", "rank": "CB"},
)


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "sim", "s"}
    return bool(value)


def _optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _check_keys(data: Mapping[str, Any], allowed: Iterable[str]) -> None:
    allowed = tuple(allowed)
    for key in data:
        if key not in allowed and key not in SERVER_MANAGED:
            raise UsageError(f"Campo desconhecido: {key}")


def _pick_changes(data: Mapping[str, Any], allowed: Iterable[str]) -> Dict[str, Any]:
    _check_keys(data, allowed)
    return {
        key: value for key, value in data.items() if key not in SERVER_MANAGED and value is not None
    }


class CoreService:
    def __init__(
        self,
        repository: RecordStore,
        config: Config | None = None,
        *,
        localizer: Localizer | None = None,
    ) -> None:
        self.repository = repository
        self.config = config or Config()
        self.localizer = localizer or Localizer(self.config.general.default_locale)

    @property
    def current_user(self) -> str:
        return self.config.general.current_user

    def today(self) -> date:
        return today(self.config.general.timezone)

    def _reference(self, reference_date: DateLike | None) -> date:
        if reference_date is None:
            return self.today()
        return parse_date(reference_date, "reference_date")

    # auditoria --------------------------------------------------------
    def _audit(
        self,
        entity: str,
        entity_id: int,
        action: str,
        description: str,
        *,
        before: Optional[Dict[str, Any]] = None,
        after: Optional[Dict[str, Any]] = None,
    ) -> AuditEntry:
        entry = AuditEntry(
            id=self.repository.next_id("audit"),
            entity=entity,
            entity_id=entity_id,
            action=action,
            actor=self.current_user,
            timestamp=utc_now_iso(),
            description=description,
            before=before,
            after=after,
        )
        self.repository.append_audit(entry)
        return entry

    def list_audit(
        self,
        *,
        entity: str | None = None,
        start: DateLike | None = None,
        end: DateLike | None = None,
        actor: str | None = None,
    ) -> List[AuditEntry]:
        if entity in (None, "", "todos"):
            entity = None
        elif entity not in ENTITIES:
            raise InvalidChoice("entity", entity)
        period = build_period(
            parse_date(start, "start").isoformat() if start else None,
            parse_date(end, "end").isoformat() if end else None,
        )
        tz = detect_timezone(self.config.general.timezone)
        needle = actor.casefold() if actor else None
        rows: List[AuditEntry] = []
        for entry in self.repository.audit_log():
            if entity and entry.entity != entity:
                continue
            if period:
                stamp = datetime.fromisoformat(entry.timestamp.replace("Z", "+00:00"))
                if not period.contains(stamp.astimezone(tz).date()):
                    continue
            if needle and needle not in entry.actor.casefold():
                continue
            rows.append(entry)
        return rows

    # policiais --------------------------------------------------------
    def list_people(self, *, active_only: bool = False) -> List[Person]:
        people = self.repository.list(ENTITY_PERSON)
        if active_only:
            people = [person for person in people if person.active]
        return sorted(people, key=lambda person: (strip_diacritics(person.short_name).upper(), person.id))

    def get_person(self, person_id: int) -> Person:
        person = self.repository.get(ENTITY_PERSON, person_id)
        if person is None:
            raise NotFound(ENTITY_PERSON, person_id)
        return person

    def find_person_by_registration(self, registration_number: str) -> Optional[Person]:
        target = registration_number.strip()
        for person in self.repository.list(ENTITY_PERSON):
            if person.registration_number == target:
                return person
        return None

    def _person_label(self, person_id: int) -> str:
        person = self.repository.get(ENTITY_PERSON, person_id)
        if person is None:
            return self.localizer.text("person.fallback")
        return person.short_name

    def _resolve_person_id(self, value: Any) -> int:
        try:
            person_id = int(value)
        except (TypeError, ValueError) as exc:
            raise InvalidChoice("person_id", value) from exc
        return self.get_person(person_id).id

    def create_person(self, data: Mapping[str, Any]) -> Person:
        _check_keys(data, PERSON_FIELDS)
        check_person(self.repository, data)
        person = Person(
            id=self.repository.next_id(ENTITY_PERSON),
            registration_number=str(data["registration_number"]),
            full_name=str(data["full_name"]),
            short_name=str(data["short_name"]),
            rank=str(data["rank"]),
            active=True if data.get("active") is None else _as_bool(data["active"]),
            created_at=utc_now_iso(),
            created_by=self.current_user,
        )
        person.normalize()
        self.repository.insert(ENTITY_PERSON, person)
        self._audit(
            ENTITY_PERSON,
            person.id,
            "CREATE",
            self.localizer.text("audit.person.create", **person.to_dict()),
            after=person.to_dict(),
        )
        logger.info("Policial %s criado (RE %s)", person.id, person.registration_number)
        return person

    def update_person(self, person_id: int, data: Mapping[str, Any]) -> Person:
        current = self.get_person(person_id)
        changes = _pick_changes(data, PERSON_FIELDS)
        merged = {**current.to_dict(), **changes}
        check_person(self.repository, merged, exclude_id=current.id)
        updated = replace(
            current,
            registration_number=str(merged["registration_number"]),
            full_name=str(merged["full_name"]),
            short_name=str(merged["short_name"]),
            rank=str(merged["rank"]),
            active=_as_bool(merged["active"]),
        )
        updated.normalize()
        before = current.to_dict()
        self.repository.replace(ENTITY_PERSON, current.id, updated)
        self._audit(
            ENTITY_PERSON,
            current.id,
            "UPDATE",
            self.localizer.text("audit.person.update", **updated.to_dict()),
            before=before,
            after=updated.to_dict(),
        )
        logger.info("Policial %s atualizado", current.id)
        return updated

    def delete_person(self, person_id: int) -> None:
        person = self.get_person(person_id)
        removed_absences = self.repository.remove_where(ENTITY_ABSENCE, lambda item: item.person_id == person.id)
        removed_restrictions = self.repository.remove_where(
            ENTITY_RESTRICTION, lambda item: item.person_id == person.id
        )
        self.repository.remove_where(ENTITY_PERSON, lambda item: item.id == person.id)
        self._audit(
            ENTITY_PERSON,
            person.id,
            "DELETE",
            self.localizer.text("audit.person.delete", **person.to_dict()),
            before=person.to_dict(),
        )
        logger.info(
            "Policial %s removido com %d afastamentos e %d restricoes",
            person.id,
            removed_absences,
            removed_restrictions,
        )

    # afastamentos -----------------------------------------------------
    def list_absences(self, person_id: int | None = None) -> List[Absence]:
        if person_id is not None:
            return absences_for(self.repository, person_id)
        items = self.repository.list(ENTITY_ABSENCE)
        return sorted(items, key=lambda item: (item.start_date, item.id), reverse=True)

    def get_absence(self, absence_id: int) -> Absence:
        absence = self.repository.get(ENTITY_ABSENCE, absence_id)
        if absence is None:
            raise NotFound(ENTITY_ABSENCE, absence_id)
        return absence

    def _validated_absence(self, data: Mapping[str, Any], exclude_id: int | None = None) -> Dict[str, Any]:
        require(data, ABSENCE_REQUIRED)
        person_id = self._resolve_person_id(data["person_id"])
        kind = check_absence_type(str(data["type"]))
        start, end = dates_from(data)
        check_absence_overlap(self.repository, person_id, start, end, exclude_id)
        return {
            "person_id": person_id,
            "type": kind,
            "start_date": start,
            "end_date": end,
            "document": _optional_text(data.get("document")),
            "note": _optional_text(data.get("note")),
        }

    def create_absence(self, data: Mapping[str, Any]) -> Absence:
        _check_keys(data, ABSENCE_FIELDS)
        values = self._validated_absence(data)
        absence = Absence(
            id=self.repository.next_id(ENTITY_ABSENCE),
            created_at=utc_now_iso(),
            created_by=self.current_user,
            **values,
        )
        self.repository.insert(ENTITY_ABSENCE, absence)
        self._audit(
            ENTITY_ABSENCE,
            absence.id,
            "CREATE",
            self.localizer.text(
                "audit.absence.create",
                type=absence.type,
                period=format_range_br(absence.start_date, absence.end_date),
                person=self._person_label(absence.person_id),
            ),
            after=absence.to_dict(),
        )
        logger.info(
            "Afastamento %s (%s) registrado para policial %s", absence.id, absence.type, absence.person_id
        )
        return absence

    def update_absence(self, absence_id: int, data: Mapping[str, Any]) -> Absence:
        current = self.get_absence(absence_id)
        changes = _pick_changes(data, ABSENCE_FIELDS)
        merged = {**current.to_dict(), **changes}
        values = self._validated_absence(merged, exclude_id=current.id)
        updated = replace(current, **values)
        before = current.to_dict()
        self.repository.replace(ENTITY_ABSENCE, current.id, updated)
        self._audit(
            ENTITY_ABSENCE,
            current.id,
            "UPDATE",
            self.localizer.text("audit.absence.update", before_type=current.type, type=updated.type),
            before=before,
            after=updated.to_dict(),
        )
        logger.info("Afastamento %s atualizado", current.id)
        return updated

    def delete_absence(self, absence_id: int) -> None:
        absence = self.get_absence(absence_id)
        self.repository.remove_where(ENTITY_ABSENCE, lambda item: item.id == absence.id)
        self._audit(
            ENTITY_ABSENCE,
            absence.id,
            "DELETE",
            self.localizer.text(
                "audit.absence.delete", type=absence.type, person=self._person_label(absence.person_id)
            ),
            before=absence.to_dict(),
        )
        logger.info("Afastamento %s removido", absence.id)

    # restricoes -------------------------------------------------------
    def list_restrictions(self, person_id: int | None = None) -> List[Restriction]:
        if person_id is not None:
            return restrictions_for(self.repository, person_id)
        items = self.repository.list(ENTITY_RESTRICTION)
        return sorted(items, key=lambda item: (item.start_date, item.id), reverse=True)

    def get_restriction(self, restriction_id: int) -> Restriction:
        restriction = self.repository.get(ENTITY_RESTRICTION, restriction_id)
        if restriction is None:
            raise NotFound(ENTITY_RESTRICTION, restriction_id)
        return restriction

    def _validated_restriction(self, data: Mapping[str, Any]) -> Dict[str, Any]:
        require(data, RESTRICTION_REQUIRED)
        person_id = self._resolve_person_id(data["person_id"])
        codes = check_codes(data.get("codes"))
        start, end = dates_from(data)
        # restricoes podem se sobrepor; nao ha verificacao de conflito
        return {
            "person_id": person_id,
            "codes": codes,
            "start_date": start,
            "end_date": end,
            "note": _optional_text(data.get("note")),
        }

    def _restriction_text(self, key: str, restriction: Restriction) -> str:
        return self.localizer.text(
            key,
            codes=", ".join(restriction.codes),
            period=format_range_br(restriction.start_date, restriction.end_date),
            days=restriction.total_days,
            person=self._person_label(restriction.person_id),
        )

    def create_restriction(self, data: Mapping[str, Any]) -> Restriction:
        _check_keys(data, RESTRICTION_FIELDS)
        values = self._validated_restriction(data)
        restriction = Restriction(
            id=self.repository.next_id(ENTITY_RESTRICTION),
            created_at=utc_now_iso(),
            created_by=self.current_user,
            **values,
        )
        self.repository.insert(ENTITY_RESTRICTION, restriction)
        self._audit(
            ENTITY_RESTRICTION,
            restriction.id,
            "CREATE",
            self._restriction_text("audit.restriction.create", restriction),
            after=restriction.to_dict(),
        )
        logger.info(
            "Restricao %s (%s, %d dias) registrada para policial %s",
            restriction.id,
            ",".join(restriction.codes),
            restriction.total_days,
            restriction.person_id,
        )
        return restriction

    def update_restriction(self, restriction_id: int, data: Mapping[str, Any]) -> Restriction:
        current = self.get_restriction(restriction_id)
        changes = _pick_changes(data, RESTRICTION_FIELDS)
        merged = {**current.to_dict(), **changes}
        values = self._validated_restriction(merged)
        # replace() dispara __post_init__, que recalcula total_days
        updated = replace(current, **values)
        before = current.to_dict()
        self.repository.replace(ENTITY_RESTRICTION, current.id, updated)
        self._audit(
            ENTITY_RESTRICTION,
            current.id,
            "UPDATE",
            self._restriction_text("audit.restriction.update", updated),
            before=before,
            after=updated.to_dict(),
        )
        logger.info("Restricao %s atualizada (%d dias)", current.id, updated.total_days)
        return updated

    def delete_restriction(self, restriction_id: int) -> None:
        restriction = self.get_restriction(restriction_id)
        self.repository.remove_where(ENTITY_RESTRICTION, lambda item: item.id == restriction.id)
        self._audit(
            ENTITY_RESTRICTION,
            restriction.id,
            "DELETE",
            self._restriction_text("audit.restriction.delete", restriction),
            before=restriction.to_dict(),
        )
        logger.info("Restricao %s removida", restriction.id)

    # status -----------------------------------------------------------
    def derive_status(self, person_id: int, reference_date: DateLike | None = None) -> StatusResult:
        person = self.get_person(person_id)
        return status_engine.derive_status(self.repository, person.id, self._reference(reference_date))

    def people_with_status(
        self,
        reference_date: DateLike | None = None,
        *,
        query: str | None = None,
    ) -> List[Tuple[Person, StatusResult]]:
        reference = self._reference(reference_date)
        people = self.list_people(active_only=True)
        if query and query.strip():
            needle = fold(query.strip())
            people = [
                person
                for person in people
                if needle in fold(person.registration_number)
                or needle in fold(person.short_name)
                or needle in fold(person.full_name)
            ]
        return [
            (person, status_engine.derive_status(self.repository, person.id, reference))
            for person in people
        ]

    def status_summary(self, reference_date: DateLike | None = None) -> Dict[str, Any]:
        rows = self.people_with_status(reference_date)
        by_status: Counter[str] = Counter(result.status for _, result in rows)
        by_type: Counter[str] = Counter(
            result.active_absence.type for _, result in rows if result.active_absence is not None
        )
        return {
            "reference_date": self._reference(reference_date).isoformat(),
            "total": len(rows),
            "by_status": {status: by_status.get(status, 0) for status in STATUSES},
            "absences_by_type": {kind: by_type[kind] for kind in ABSENCE_TYPES if by_type[kind] > 0},
        }

    # exportacao -------------------------------------------------------
    def export_data(self) -> Dict[str, Any]:
        limit = self.config.audit.export_limit
        return {
            "exported_at": utc_now_iso(),
            "people": [person.to_dict() for person in self.list_people()],
            "absences": [absence.to_dict() for absence in self.list_absences()],
            "restrictions": [restriction.to_dict() for restriction in self.list_restrictions()],
            "audit": [entry.to_dict() for entry in self.repository.audit_log()[:limit]],
        }

    def export_json(self, path: Path) -> Path:
        payload = json.dumps(self.export_data(), indent=2, ensure_ascii=False)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(payload, encoding="utf-8")
        except OSError as exc:
            raise IOErrorWithCode(f"Falha ao gravar {path}: {exc}") from exc
        return path

    # demonstracao -----------------------------------------------------
    def seed_demo_data(self, reference_date: DateLike | None = None) -> bool:
        if self.repository.list(ENTITY_PERSON):
            return False
        reference = self._reference(reference_date)
        created = {item["registration_number"]: self.create_person({**item, "active": True}) for item in DEMO_PEOPLE}
        self.create_absence(
            {
                "person_id": created["234567"].id,
                "type": "MEDICO",
                "start_date": reference,
                "end_date": add_days(reference, 10),
                "document": "Atestado 2024/001",
                "note": "Tratamento médico programado",
            }
        )
        self.create_absence(
            {
                "person_id": created["456789"].id,
                "type": "FERIAS",
                "start_date": add_days(reference, -5),
                "end_date": add_days(reference, 5),
                "document": "Portaria 123/2026",
            }
        )
        logger.info("Dados de demonstracao inseridos (%d policiais)", len(created))
        return True
