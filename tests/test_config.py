import logging

import pytest

from sigo_core.config import Config, DEFAULT_USER
from sigo_core.errors import ValidationError


def test_defaults():
    cfg = Config()
    assert cfg.general.timezone == "America/Sao_Paulo"
    assert cfg.general.current_user == DEFAULT_USER
    assert cfg.audit.export_limit == 1000
    assert cfg.log_level == logging.WARNING


def test_load_from_toml(tmp_path):
    path = tmp_path / "sigo.toml"
    path.write_text('[general]\nname_width = 24\n\n[audit]\nexport_limit = 50\n', encoding="utf-8")
    cfg = Config.load(path)
    assert cfg.general.name_width == 24
    assert cfg.audit.export_limit == 50
    assert cfg.general.timezone == "America/Sao_Paulo"


def test_invalid_toml(tmp_path):
    path = tmp_path / "sigo.toml"
    path.write_text("[general\n", encoding="utf-8")
    with pytest.raises(ValidationError):
        Config.load(path)


def test_env_overrides_file(tmp_path):
    path = tmp_path / "sigo.toml"
    path.write_text('[logging]\nlevel = "ERROR"\n', encoding="utf-8")
    env = {"SIGO_LOGGING__LEVEL": "debug", "SIGO_GENERAL__NAME_WIDTH": "30", "OUTRA": "x"}
    cfg = Config.load(path, env=env)
    assert cfg.log_level == logging.DEBUG
    assert cfg.general.name_width == 30


def test_dotted_overrides(tmp_path):
    cfg = Config.load(tmp_path / "ausente.toml", overrides={"general.current_user": "ten@4cia.pm"})
    assert cfg.general.current_user == "ten@4cia.pm"


@pytest.mark.parametrize(
    "overrides",
    [
        {"viatura.placa": "x"},
        {"general.cor": "azul"},
        {"general.timezone": "Mars/Olympus"},
        {"general.name_width": 3},
        {"general.current_user": "  "},
        {"audit.export_limit": -1},
        {"audit.export_limit": "muitos"},
        {"logging.level": "LOUD"},
    ],
)
def test_rejected_values(tmp_path, overrides):
    with pytest.raises(ValidationError):
        Config.load(tmp_path / "ausente.toml", overrides=overrides)


def test_to_toml_round_trip(tmp_path):
    cfg = Config.load(tmp_path / "ausente.toml", overrides={"audit.export_limit": 10, "logging.level": "INFO"})
    path = tmp_path / "sigo.toml"
    path.write_text(cfg.to_toml(), encoding="utf-8")
    assert Config.load(path) == cfg
