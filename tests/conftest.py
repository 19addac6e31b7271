"""
Shared fixtures for the bank ledger test suite
"""

import random

import pytest

from bank_ledger.bank import BankSystem
from bank_ledger.config import LedgerConfig
from bank_ledger.storage import InMemoryStorage


@pytest.fixture
def config():
    """In-memory configuration that never touches the working directory"""
    return LedgerConfig(storage_backend="memory", database_path=":memory:", password_min_length=8)


@pytest.fixture
def storage():
    """Create in-memory storage for tests"""
    return InMemoryStorage()


@pytest.fixture
def bank(storage, config):
    """Bank system over in-memory storage with a seeded number generator"""
    system = BankSystem(storage=storage, config=config, rng=random.Random(42))
    yield system
    system.close()
