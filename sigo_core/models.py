from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, Mapping, Optional

from .dates import inclusive_day_count, parse_date
from .utils import strip_diacritics, to_nfc

# Terminologia conforme BG PM 166/2006 e BG PM 232/2008
RANKS: Dict[str, str] = {
    "SD": "Soldado",
    "CB": "Cabo",
    "SGT": "Sargento",
    "ST": "Subtenente",
    "TEN": "Tenente",
    "CAP": "Capitão",
}

ABSENCE_TYPES: Dict[str, str] = {
    "FERIAS": "Férias",
    "MEDICO": "Médico",
    "LICENCA": "Licença",
    "CURSO": "Curso",
    "OUTROS": "Outros",
}

RESTRICTION_CODES: Dict[str, str] = {
    "AA": "Afastamento de armas de fogo",
    "AB": "Afastamento de atividades de busca",
    "AC": "Afastamento de condução de veículos",
    "AD": "Afastamento de digitação",
    "AE": "Afastamento de esforço físico",
    "AF": "Afastamento de atividades físicas",
    "AG": "Afastamento de atividades gerais",
    "AH": "Afastamento de atividades em altura",
    "AI": "Afastamento de atividades insalubres",
    "AJ": "Afastamento de jornada noturna",
    "CF": "Comparecimento para fisioterapia",
    "CM": "Comparecimento médico",
    "CP": "Comparecimento para psicoterapia",
    "DC": "Dispensa de corrida",
    "DI": "Dispensa de instrução",
    "EC": "Evitar condução",
    "EF": "Educação Física",
    "EM": "Evitar marcha",
    "ES": "Evitar sol",
    "FA": "Flexibilização de atividades",
    "FF": "Flexibilização de função",
    "FV": "Fardamento voluntário",
    "LP": "Limitação de permanência em pé",
    "ME": "Medicação em uso",
    "MO": "Movimentação reduzida",
    "PC": "Proibido carregar peso",
    "PE": "Proibido esforço",
    "PI": "Proibido instrução",
    "PO": "Policiamento",
    "PV": "Proibido viagem",
    "RC": "Restrição de carga",
    "RD": "Repouso domiciliar",
    "RP": "Restrição parcial",
    "SE": "Serviço externo",
    "SP": "Serviço de permanência",
    "SV": "Serviço voluntário",
    "TF": "Tratamento fisioterápico",
    "TP": "Tratamento psicológico",
    "TR": "Treinamento restrito",
    "UA": "Uso de aparelho ortopédico",
    "UU": "Uso de uniforme",
    "VB": "Vedado atividade burocrática",
    "VP": "Vedado policiamento",
}

# Status operacional, em ordem de precedencia
AFASTADO = "AFASTADO"
APTO_COM_RESTRICAO = "APTO_COM_RESTRICAO"
APTO = "APTO"
STATUSES: tuple[str, ...] = (AFASTADO, APTO_COM_RESTRICAO, APTO)

ENTITY_PERSON = "person"
ENTITY_ABSENCE = "absence"
ENTITY_RESTRICTION = "restriction"
ENTITIES: tuple[str, ...] = (ENTITY_PERSON, ENTITY_ABSENCE, ENTITY_RESTRICTION)

AUDIT_ACTIONS: tuple[str, ...] = ("CREATE", "UPDATE", "DELETE")

_CODE_SEPARATORS = re.compile(r"[\s,;]+")


def _normalize_token(value: str) -> str:
    return strip_diacritics(str(value).strip().upper())


def normalize_rank(value: str) -> str:
    token = _normalize_token(value)
    if token not in RANKS:
        raise ValueError(f"Posto desconhecido: {value}")
    return token


def normalize_absence_type(value: str) -> str:
    token = _normalize_token(value)
    if token not in ABSENCE_TYPES:
        raise ValueError(f"Tipo de afastamento desconhecido: {value}")
    return token


def parse_restriction_codes(raw: str | list[str] | tuple[str, ...] | None) -> list[str]:
    """Separa codigos digitados livremente ("AA, ab; CF") preservando a ordem.

    Nao valida contra o catalogo; isso e feito em ``validation``.
    """
    if raw is None:
        return []
    if isinstance(raw, str):
        tokens = _CODE_SEPARATORS.split(raw)
    else:
        tokens = [str(item) for item in raw]
    return [token.strip().upper() for token in tokens if token and token.strip()]


@dataclass(slots=True)
class Person:
    id: int
    registration_number: str
    full_name: str
    short_name: str
    rank: str
    active: bool = True
    created_at: str = ""
    created_by: str = ""

    def normalize(self) -> None:
        self.registration_number = self.registration_number.strip()
        self.full_name = to_nfc(self.full_name.strip())
        self.short_name = to_nfc(self.short_name.strip())
        self.rank = normalize_rank(self.rank)

    @property
    def label(self) -> str:
        return f"{self.rank} {self.short_name}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "registration_number": self.registration_number,
            "full_name": self.full_name,
            "short_name": self.short_name,
            "rank": self.rank,
            "active": self.active,
            "created_at": self.created_at,
            "created_by": self.created_by,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Person":
        return cls(
            id=int(data["id"]),
            registration_number=str(data["registration_number"]),
            full_name=str(data["full_name"]),
            short_name=str(data["short_name"]),
            rank=str(data["rank"]),
            active=bool(data.get("active", True)),
            created_at=str(data.get("created_at", "")),
            created_by=str(data.get("created_by", "")),
        )


@dataclass(slots=True)
class Absence:
    id: int
    person_id: int
    type: str
    start_date: date
    end_date: date
    document: Optional[str] = None
    note: Optional[str] = None
    created_at: str = ""
    created_by: str = ""

    @property
    def days(self) -> int:
        return inclusive_day_count(self.start_date, self.end_date)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "person_id": self.person_id,
            "type": self.type,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "document": self.document,
            "note": self.note,
            "created_at": self.created_at,
            "created_by": self.created_by,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Absence":
        return cls(
            id=int(data["id"]),
            person_id=int(data["person_id"]),
            type=normalize_absence_type(str(data["type"])),
            start_date=parse_date(data["start_date"]),
            end_date=parse_date(data["end_date"]),
            document=data.get("document"),
            note=data.get("note"),
            created_at=str(data.get("created_at", "")),
            created_by=str(data.get("created_by", "")),
        )


@dataclass(slots=True)
class Restriction:
    id: int
    person_id: int
    codes: list[str]
    start_date: date
    end_date: date
    total_days: int = 0
    note: Optional[str] = None
    created_at: str = ""
    created_by: str = ""

    def __post_init__(self) -> None:
        self.total_days = inclusive_day_count(self.start_date, self.end_date)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "person_id": self.person_id,
            "codes": list(self.codes),
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "total_days": self.total_days,
            "note": self.note,
            "created_at": self.created_at,
            "created_by": self.created_by,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Restriction":
        # total_days e sempre recalculado em __post_init__
        return cls(
            id=int(data["id"]),
            person_id=int(data["person_id"]),
            codes=parse_restriction_codes(data.get("codes")),
            start_date=parse_date(data["start_date"]),
            end_date=parse_date(data["end_date"]),
            note=data.get("note"),
            created_at=str(data.get("created_at", "")),
            created_by=str(data.get("created_by", "")),
        )


@dataclass(slots=True, frozen=True)
class AuditEntry:
    id: int
    entity: str
    entity_id: int
    action: str
    actor: str
    timestamp: str
    description: str
    before: Optional[Dict[str, Any]] = None
    after: Optional[Dict[str, Any]] = None

    def __post_init__(self) -> None:
        if self.entity not in ENTITIES:
            raise ValueError(f"Entidade de auditoria invalida: {self.entity}")
        if self.action not in AUDIT_ACTIONS:
            raise ValueError(f"Acao de auditoria invalida: {self.action}")

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "entity": self.entity,
            "entity_id": self.entity_id,
            "action": self.action,
            "actor": self.actor,
            "timestamp": self.timestamp,
            "description": self.description,
            "before": self.before,
            "after": self.after,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AuditEntry":
        return cls(
            id=int(data["id"]),
            entity=str(data["entity"]),
            entity_id=int(data["entity_id"]),
            action=str(data["action"]),
            actor=str(data.get("actor", "")),
            timestamp=str(data["timestamp"]),
            description=str(data.get("description", "")),
            before=data.get("before"),
            after=data.get("after"),
        )


@dataclass(slots=True, frozen=True)
class StatusResult:
    status: str
    active_absence: Optional[Absence] = None
    active_restriction: Optional[Restriction] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "active_absence": self.active_absence.to_dict() if self.active_absence else None,
            "active_restriction": self.active_restriction.to_dict() if self.active_restriction else None,
        }


@dataclass(slots=True)
class State:
    people: Dict[int, Person] = field(default_factory=dict)
    absences: Dict[int, Absence] = field(default_factory=dict)
    restrictions: Dict[int, Restriction] = field(default_factory=dict)
    audit: list[AuditEntry] = field(default_factory=list)
    counters: Dict[str, int] = field(default_factory=dict)

    def collection(self, kind: str) -> Dict[int, Any]:
        if kind == ENTITY_PERSON:
            return self.people
        if kind == ENTITY_ABSENCE:
            return self.absences
        if kind == ENTITY_RESTRICTION:
            return self.restrictions
        raise KeyError(kind)

    def to_dict(self) -> dict[str, Any]:
        return {
            "people": [person.to_dict() for person in self.people.values()],
            "absences": [absence.to_dict() for absence in self.absences.values()],
            "restrictions": [restriction.to_dict() for restriction in self.restrictions.values()],
            "audit": [entry.to_dict() for entry in self.audit],
            "counters": dict(self.counters),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "State":
        people = {person.id: person for person in (Person.from_dict(item) for item in data.get("people", []))}
        absences = {item.id: item for item in (Absence.from_dict(raw) for raw in data.get("absences", []))}
        restrictions = {
            item.id: item for item in (Restriction.from_dict(raw) for raw in data.get("restrictions", []))
        }
        audit = [AuditEntry.from_dict(item) for item in data.get("audit", [])]
        counters = {str(key): int(value) for key, value in (data.get("counters") or {}).items()}
        return cls(
            people=people,
            absences=absences,
            restrictions=restrictions,
            audit=audit,
            counters=counters,
        )
