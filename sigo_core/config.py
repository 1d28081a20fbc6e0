from __future__ import annotations

import logging
import tomllib
from copy import deepcopy
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Mapping

from .dates import detect_timezone
from .errors import ValidationError

CONFIG_ENV_PREFIX = "SIGO_"
DEFAULT_CONFIG_PATH = Path("sigo.toml")
DEFAULT_USER = "capitao@4cia.pm"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(slots=True)
class GeneralConfig:
    timezone: str = "America/Sao_Paulo"
    default_locale: str = "pt-BR"
    name_width: int = 18
    current_user: str = DEFAULT_USER


@dataclass(slots=True)
class AuditConfig:
    export_limit: int = 1000


@dataclass(slots=True)
class LoggingConfig:
    level: str = "WARNING"


SECTIONS = ("general", "audit", "logging")


@dataclass(slots=True)
class Config:
    general: GeneralConfig = field(default_factory=GeneralConfig)
    audit: AuditConfig = field(default_factory=AuditConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def load(
        cls,
        path: Path | None = None,
        *,
        env: Mapping[str, str] | None = None,
        overrides: Mapping[str, Any] | None = None,
    ) -> "Config":
        cfg = cls()
        cfg_path = path or DEFAULT_CONFIG_PATH
        if cfg_path.exists():
            try:
                data = tomllib.loads(cfg_path.read_text(encoding="utf-8"))
            except tomllib.TOMLDecodeError as exc:
                raise ValidationError(f"TOML invalido em {cfg_path}: {exc}") from exc
            cfg = cfg.merge_dict(data)
        if env:
            cfg = cfg.apply_env(env)
        if overrides:
            cfg = cfg.apply_overrides(overrides)
        cfg.validate()
        return cfg

    def merge_dict(self, data: Mapping[str, Any]) -> "Config":
        cfg = deepcopy(self)
        for section in SECTIONS:
            if section in data:
                cfg._assign_dataclass(getattr(cfg, section), data[section])
        return cfg

    def apply_env(self, env: Mapping[str, str]) -> "Config":
        payload: Dict[str, Dict[str, str]] = {}
        for key, value in env.items():
            if not key.startswith(CONFIG_ENV_PREFIX):
                continue
            remainder = key[len(CONFIG_ENV_PREFIX) :]
            pieces = [part for part in remainder.split("__") if part]
            if len(pieces) != 2:
                continue
            section, field_name = pieces
            payload.setdefault(section.lower(), {})[field_name.lower()] = value
        return self.merge_dict(payload)

    def apply_overrides(self, overrides: Mapping[str, Any]) -> "Config":
        cfg = deepcopy(self)
        for key, value in overrides.items():
            section, _, _ = key.partition(".")
            if section not in SECTIONS:
                raise ValidationError(f"Override desconhecido: {key}")
            cfg._set_with_prefix(getattr(cfg, section), key, value)
        return cfg

    def _assign_dataclass(self, instance: Any, data: Mapping[str, Any]) -> None:
        for field_obj in fields(instance):
            name = field_obj.name
            if name not in data:
                continue
            value = self._convert_value(field_obj.type, data[name])
            setattr(instance, name, value)

    def _set_with_prefix(self, instance: Any, dotted_key: str, value: Any) -> None:
        _, field_name = dotted_key.split(".", 1)
        if not hasattr(instance, field_name):
            raise ValidationError(f"Campo desconhecido: {dotted_key}")
        field_obj = next(f for f in fields(instance) if f.name == field_name)
        setattr(instance, field_name, self._convert_value(field_obj.type, value))

    @staticmethod
    def _convert_value(expected_type: Any, value: Any) -> Any:
        # com "from __future__ import annotations" os tipos chegam como strings
        if expected_type in (bool, "bool"):
            if isinstance(value, str):
                return value.strip().lower() in {"1", "true", "yes", "sim"}
            return bool(value)
        if expected_type in (int, "int"):
            try:
                return int(value)
            except (TypeError, ValueError) as exc:
                raise ValidationError(f"Valor inteiro invalido: {value}") from exc
        if expected_type in (str, "str"):
            return str(value)
        return value

    def validate(self) -> None:
        detect_timezone(self.general.timezone)
        if self.general.name_width < 8:
            raise ValidationError("name_width minimo e 8")
        if not self.general.current_user.strip():
            raise ValidationError("current_user nao pode ser vazio")
        if self.audit.export_limit < 0:
            raise ValidationError("export_limit nao pode ser negativo")
        if self.logging.level.upper() not in LOG_LEVELS:
            raise ValidationError(f"Nivel de log invalido: {self.logging.level}")

    @property
    def log_level(self) -> int:
        return logging.getLevelName(self.logging.level.upper())

    def to_toml(self) -> str:
        lines: list[str] = []
        lines.append("[general]")
        lines.append(f"timezone = \"{self.general.timezone}\"")
        lines.append(f"default_locale = \"{self.general.default_locale}\"")
        lines.append(f"name_width = {self.general.name_width}")
        lines.append(f"current_user = \"{self.general.current_user}\"")
        lines.append("")
        lines.append("[audit]")
        lines.append(f"export_limit = {self.audit.export_limit}")
        lines.append("")
        lines.append("[logging]")
        lines.append(f"level = \"{self.logging.level}\"")
        lines.append("")
        return "\n".join(lines)
