"""Fixtures compartilhadas: repositorio em memoria e servico com usuario fixo."""

import pytest

from sigo_core.config import Config
from sigo_core.repository import StateRepository
from sigo_core.service import CoreService


@pytest.fixture
def repo():
    return StateRepository()


@pytest.fixture
def config():
    return Config()


@pytest.fixture
def service(repo, config):
    return CoreService(repo, config)


@pytest.fixture
def make_person(service):
    counter = {"value": 0}

    def _make(**overrides):
        counter["value"] += 1
        data = {
            "registration_number": f"RE{counter['value']:04d}",
            "full_name": f"Policial Numero {counter['value']}",
            "short_name": f"P{counter['value']}",
            "rank": "SD",
            "active": True,
        }
        data.update(overrides)
        return service.create_person(data)

    return _make


@pytest.fixture
def person(make_person):
    return make_person(registration_number="123456", full_name="João Pedro Silva Santos", short_name="SILVA", rank="SGT")
