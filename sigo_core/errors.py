from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping


@dataclass(slots=True)
class SigoError(Exception):
    message: str
    code: int

    kind = "ERROR"

    def __str__(self) -> str:  # pragma: no cover
        return self.message


class UsageError(SigoError):
    kind = "USAGE"

    def __init__(self, message: str) -> None:
        super().__init__(message, 2)


class ValidationError(SigoError):
    """Erro local e recuperavel, associado a um campo do formulario."""

    kind = "VALIDATION"

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message, 3)
        self.field = field

    @property
    def errors(self) -> dict[str, str]:
        if self.field is None:
            return {}
        return {self.field: self.message}


class RequiredFieldMissing(ValidationError):
    kind = "REQUIRED_FIELD_MISSING"

    def __init__(self, errors: Mapping[str, str]) -> None:
        self.field_errors = dict(errors)
        fields_text = ", ".join(self.field_errors)
        super().__init__(f"Campos obrigatorios nao preenchidos: {fields_text}")

    @property
    def errors(self) -> dict[str, str]:
        return dict(self.field_errors)


class InvalidChoice(ValidationError):
    kind = "INVALID_CHOICE"

    def __init__(self, field: str, value: Any) -> None:
        super().__init__(f"Valor invalido para {field}: {value}", field)
        self.value = value


class InvalidDate(ValidationError):
    kind = "INVALID_DATE"

    def __init__(self, field: str | None, value: Any) -> None:
        super().__init__(f"Data invalida (use YYYY-MM-DD): {value}", field)
        self.value = value


class DuplicateRegistrationNumber(ValidationError):
    kind = "DUPLICATE_REGISTRATION_NUMBER"

    def __init__(self, registration_number: str) -> None:
        super().__init__("Este RE ja esta cadastrado", "registration_number")
        self.registration_number = registration_number


class InvalidDateRange(ValidationError):
    kind = "INVALID_DATE_RANGE"

    def __init__(self) -> None:
        super().__init__("Data fim deve ser igual ou posterior a data inicio", "end_date")


class EmptyCodeSet(ValidationError):
    kind = "EMPTY_CODE_SET"

    def __init__(self) -> None:
        super().__init__("Informe pelo menos um codigo de restricao", "codes")


class InvalidCode(ValidationError):
    kind = "INVALID_CODE"

    def __init__(self, code: str) -> None:
        super().__init__(f"Codigo de restricao invalido: {code}", "codes")
        self.invalid_code = code


class ConflictError(SigoError):
    kind = "CONFLICT"

    def __init__(self, message: str) -> None:
        super().__init__(message, 4)


class OverlapConflict(ConflictError):
    kind = "OVERLAP_CONFLICT"

    def __init__(self, message: str, conflict: Any) -> None:
        super().__init__(message)
        self.conflict = conflict


class IOErrorWithCode(SigoError):
    kind = "IO"

    def __init__(self, message: str) -> None:
        super().__init__(message, 5)


class InternalError(SigoError):
    kind = "INTERNAL"

    def __init__(self, message: str) -> None:
        super().__init__(message, 6)


class NotFound(SigoError):
    kind = "NOT_FOUND"

    def __init__(self, entity: str, entity_id: Any) -> None:
        super().__init__(f"Registro nao encontrado: {entity} {entity_id}", 7)
        self.entity = entity
        self.entity_id = entity_id
