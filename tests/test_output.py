import json
from datetime import date

import pytest
import yaml

from sigo_core.errors import UsageError
from sigo_core.output import format_cell, render_output, truncate

ROWS = [
    {"id": 1, "nome": "Joao Pedro Silva Santos", "inicio": date(2026, 1, 5), "codigos": ["AA", "CF"], "ativo": True},
    {"id": 12, "nome": "Ana", "inicio": None, "codigos": [], "ativo": False},
]
COLUMNS = ["id", "nome", "inicio", "codigos", "ativo"]


@pytest.mark.parametrize(
    "value, width, expected",
    [("SILVA", 0, "SILVA"), ("SILVA", 5, "SILVA"), ("RODRIGUES", 7, "RODR..."), ("RODRIGUES", 2, "RO")],
)
def test_truncate(value, width, expected):
    assert truncate(value, width) == expected


@pytest.mark.parametrize(
    "value, expected",
    [(None, "-"), (True, "sim"), (False, "nao"), (date(2026, 1, 5), "05/01/2026"), (["AA", "CF"], "AA,CF"), ([], "-"), (7, "7")],
)
def test_format_cell(value, expected):
    assert format_cell(value) == expected


def test_table_truncates_and_aligns_numbers():
    lines = render_output(ROWS, COLUMNS, "table", width_overrides={"nome": 10}).splitlines()
    assert lines[0].startswith("id | nome")
    assert lines[2].startswith(" 1 | Joao Pe...")
    assert lines[3].startswith("12 | Ana")
    assert "05/01/2026" in lines[2]


def test_empty_table():
    assert render_output([], ["id"], "table").splitlines()[-1] == "(sem registros)"


def test_json_keeps_iso_dates():
    data = json.loads(render_output(ROWS, ["id", "inicio"], "JSON"))
    assert data == [{"id": 1, "inicio": "2026-01-05"}, {"id": 12, "inicio": None}]


def test_yaml():
    data = yaml.safe_load(render_output(ROWS, ["codigos"], "yaml"))
    assert data == [{"codigos": ["AA", "CF"]}, {"codigos": []}]


def test_csv():
    assert render_output(ROWS[:1], ["id", "inicio", "codigos"], "csv") == 'id,inicio,codigos\n1,05/01/2026,"AA,CF"\n'


def test_unknown_format():
    with pytest.raises(UsageError):
        render_output(ROWS, COLUMNS, "xml")
