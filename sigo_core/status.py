"""Derivacao do status operacional.

As regras sao avaliadas em ordem fixa e a primeira que casar define o status:
AFASTADO > APTO_COM_RESTRICAO > APTO. Nao e "o registro mais recente vence";
um afastamento ativo sempre prevalece sobre qualquer restricao.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from .dates import DateLike, is_within_inclusive, parse_date
from .models import AFASTADO, APTO, APTO_COM_RESTRICAO, StatusResult
from .repository import RecordStore
from .validation import absences_for, restrictions_for


@dataclass(slots=True, frozen=True)
class StatusRule:
    status: str
    match: Callable[[RecordStore, int, DateLike], Optional[StatusResult]]


def _active_absence(store: RecordStore, person_id: int, reference: DateLike) -> Optional[StatusResult]:
    for absence in absences_for(store, person_id):
        if is_within_inclusive(reference, absence.start_date, absence.end_date):
            return StatusResult(status=AFASTADO, active_absence=absence)
    return None


def _active_restriction(store: RecordStore, person_id: int, reference: DateLike) -> Optional[StatusResult]:
    # varias restricoes podem coexistir; so a primeira na ordem de varredura e exposta
    for restriction in restrictions_for(store, person_id):
        if is_within_inclusive(reference, restriction.start_date, restriction.end_date):
            return StatusResult(status=APTO_COM_RESTRICAO, active_restriction=restriction)
    return None


def _fit(store: RecordStore, person_id: int, reference: DateLike) -> Optional[StatusResult]:
    return StatusResult(status=APTO)


STATUS_RULES: tuple[StatusRule, ...] = (
    StatusRule(AFASTADO, _active_absence),
    StatusRule(APTO_COM_RESTRICAO, _active_restriction),
    StatusRule(APTO, _fit),
)


def derive_status(
    store: RecordStore,
    person_id: int,
    reference_date: DateLike,
    rules: Sequence[StatusRule] = STATUS_RULES,
) -> StatusResult:
    reference = parse_date(reference_date, "reference_date")
    for rule in rules:
        result = rule.match(store, person_id, reference)
        if result is not None:
            return result
    return StatusResult(status=APTO)

