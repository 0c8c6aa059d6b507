"""
Pytest fixtures for the menu ledger tests.

Provides a service over in-memory storage seeded with the general and team
menus, and an API test client bound to that service.
"""

import os

os.environ.setdefault("MENU_LEDGER_STORAGE", "memory")
os.environ.setdefault("MENU_LEDGER_LOG_FILE", "")

import pytest
from decimal import Decimal
from fastapi.testclient import TestClient

from menu_ledger.api import create_app
from menu_ledger.service import LedgerService
from menu_ledger.storage import InMemoryStorage


SEED = {
    "balances:general": {"alice": 10, "bob": Decimal("25.50")},
    "catalog:general": {
        "soda": {"price": 2, "sold": 0},
        "chips": {"price": Decimal("1.25"), "sold": 4, "image": "chips.png"},
    },
    "balances:team": {"alice": 3},
    "catalog:team": {"soda": {"price": 1, "sold": 0}},
}


@pytest.fixture
def storage():
    """Fresh in-memory store seeded with both menus."""
    return InMemoryStorage(seed=SEED)


@pytest.fixture
def service(storage):
    return LedgerService(storage)


@pytest.fixture
def client(service):
    """API client wired to the seeded service."""
    return TestClient(create_app(service))
