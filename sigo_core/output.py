from __future__ import annotations

import csv
import io
import json
from datetime import date
from typing import Any, Callable, Dict, List, Mapping, Sequence

import yaml

from .dates import format_date_br
from .errors import UsageError

ELLIPSIS = "..."
EMPTY_CELL = "-"
EMPTY_TABLE = "(sem registros)"

Rows = Sequence[Mapping[str, Any]]


def truncate(value: str, width: int) -> str:
    if width <= 0 or len(value) <= width:
        return value
    if width <= len(ELLIPSIS):
        return value[:width]
    return value[: width - len(ELLIPSIS)] + ELLIPSIS


def format_cell(value: Any) -> str:
    if value is None:
        return EMPTY_CELL
    if isinstance(value, bool):
        return "sim" if value else "nao"
    if isinstance(value, date):
        return format_date_br(value)
    if isinstance(value, (list, tuple)):
        return ",".join(str(item) for item in value) or EMPTY_CELL
    return str(value)


def plain(value: Any) -> Any:
    """Converte valores para tipos serializaveis em JSON/YAML."""
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, Mapping):
        return {key: plain(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [plain(item) for item in value]
    return value


def _project(rows: Rows, columns: Sequence[str]) -> List[Dict[str, Any]]:
    return [{column: row.get(column) for column in columns} for row in rows]


def _is_count(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def render_table(rows: Rows, columns: Sequence[str], widths: Mapping[str, int] | None = None) -> str:
    limits = widths or {}
    body = [[truncate(format_cell(row.get(column)), limits.get(column, 0)) for column in columns] for row in rows]
    sizes = [max([len(column), *(len(line[idx]) for line in body)]) for idx, column in enumerate(columns)]
    # numeros alinhados a direita, texto a esquerda
    numeric = [bool(rows) and all(_is_count(row.get(column)) for row in rows) for column in columns]

    def _line(cells: Sequence[str]) -> str:
        parts = [cell.rjust(sizes[idx]) if numeric[idx] else cell.ljust(sizes[idx]) for idx, cell in enumerate(cells)]
        return " | ".join(parts).rstrip()

    lines = [_line(columns), "-+-".join("-" * size for size in sizes)]
    lines.extend(_line(cells) for cells in body)
    if not body:
        lines.append(EMPTY_TABLE)
    return "\n".join(lines)


def render_json(rows: Rows, columns: Sequence[str]) -> str:
    return json.dumps(plain(_project(rows, columns)), ensure_ascii=False, indent=2)


def render_yaml(rows: Rows, columns: Sequence[str]) -> str:
    return yaml.safe_dump(plain(_project(rows, columns)), allow_unicode=True, sort_keys=False)


def render_csv(rows: Rows, columns: Sequence[str]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(columns)
    writer.writerows([format_cell(row.get(column)) for column in columns] for row in rows)
    return buffer.getvalue()


RENDERERS: Dict[str, Callable[[Rows, Sequence[str]], str]] = {
    "table": render_table,
    "json": render_json,
    "csv": render_csv,
    "yaml": render_yaml,
}
SUPPORTED_FORMATS = tuple(RENDERERS)


def render_output(rows: Rows, columns: Sequence[str], fmt: str, *, width_overrides: Mapping[str, int] | None = None) -> str:
    key = fmt.lower()
    if key not in RENDERERS:
        raise UsageError(f"Formato nao suportado: {fmt}")
    if key == "table":
        return render_table(rows, columns, widths=width_overrides)
    return RENDERERS[key](rows, columns)
