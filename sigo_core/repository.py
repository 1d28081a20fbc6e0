from __future__ import annotations

import json
import logging
from dataclasses import replace
from pathlib import Path
from typing import Any, Callable, List, Optional, Protocol

from .errors import InternalError, IOErrorWithCode
from .models import AuditEntry, State

STATE_FILE_DEFAULT = Path("sigo_state.json")

logger = logging.getLogger(__name__)


def detached(record: Any) -> Any:
    """Copia rasa do registro; a lista de codigos tambem e copiada."""
    clone = replace(record)
    if hasattr(clone, "codes"):
        clone.codes = list(clone.codes)
    return clone


class RecordStore(Protocol):
    """Contrato minimo que o nucleo usa para ler e gravar registros."""

    def next_id(self, counter: str) -> int: ...

    def list(self, kind: str) -> List[Any]: ...

    def get(self, kind: str, record_id: int) -> Optional[Any]: ...

    def insert(self, kind: str, record: Any) -> None: ...

    def replace(self, kind: str, record_id: int, record: Any) -> None: ...

    def remove_where(self, kind: str, predicate: Callable[[Any], bool]) -> int: ...

    def append_audit(self, entry: AuditEntry) -> None: ...

    def audit_log(self) -> List[AuditEntry]: ...


class StateRepository:
    """Colecoes em memoria com persistencia opcional em um arquivo JSON.

    Sem ``path`` o repositorio vive apenas em memoria; ``save`` exige um destino.
    """

    def __init__(self, path: Path | None = None) -> None:
        self.path = path
        self.state: State = State()
        if self.path is not None and self.path.exists():
            self.load()

    # record store ----------------------------------------------------
    def next_id(self, counter: str) -> int:
        value = self.state.counters.get(counter, 1)
        self.state.counters[counter] = value + 1
        return value

    def list(self, kind: str) -> List[Any]:
        return [detached(record) for record in self.state.collection(kind).values()]

    def get(self, kind: str, record_id: int) -> Optional[Any]:
        record = self.state.collection(kind).get(record_id)
        return detached(record) if record is not None else None

    def insert(self, kind: str, record: Any) -> None:
        collection = self.state.collection(kind)
        if record.id in collection:
            raise InternalError(f"Registro duplicado: {kind} {record.id}")
        collection[record.id] = detached(record)

    def replace(self, kind: str, record_id: int, record: Any) -> None:
        collection = self.state.collection(kind)
        if record_id not in collection:
            raise InternalError(f"Registro inexistente: {kind} {record_id}")
        collection[record_id] = detached(replace(record, id=record_id))

    def remove_where(self, kind: str, predicate: Callable[[Any], bool]) -> int:
        collection = self.state.collection(kind)
        doomed = [record_id for record_id, record in collection.items() if predicate(record)]
        for record_id in doomed:
            del collection[record_id]
        return len(doomed)

    def append_audit(self, entry: AuditEntry) -> None:
        self.state.audit.insert(0, entry)

    def audit_log(self) -> List[AuditEntry]:
        return list(self.state.audit)

    # persistence -----------------------------------------------------
    def load(self, path: Path | None = None) -> None:
        target = path or self.path
        if target is None:
            raise IOErrorWithCode("Nenhum arquivo de estado informado.")
        try:
            payload = json.loads(target.read_text(encoding="utf-8"))
        except FileNotFoundError as exc:
            raise IOErrorWithCode(f"Arquivo nao encontrado: {target}") from exc
        except json.JSONDecodeError as exc:
            raise IOErrorWithCode(f"JSON invalido em {target}: {exc}") from exc
        self.state = State.from_dict(payload)
        self.path = target
        logger.debug("Estado carregado de %s (%d policiais)", target, len(self.state.people))

    def save(self, path: Path | None = None) -> Path:
        target = path or self.path
        if target is None:
            raise IOErrorWithCode("Nenhum arquivo de estado informado.")
        target.parent.mkdir(parents=True, exist_ok=True)
        data = json.dumps(self.state.to_dict(), indent=2, ensure_ascii=False)
        target.write_text(data, encoding="utf-8")
        self.path = target
        logger.debug("Estado salvo em %s", target)
        return target
