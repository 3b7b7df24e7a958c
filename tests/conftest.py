"""Shared fixtures for GCC store tests."""

import pytest

from gccmem.config.schema import GccConfig
from gccmem.memory.sqlite import SqliteLedger
from gccmem.memory.store import GccStore


@pytest.fixture
def db_path(tmp_path):
    """Path of a fresh SQLite database."""
    return tmp_path / "gcc.db"


@pytest.fixture
def config(db_path):
    return GccConfig(db_path=str(db_path))


@pytest.fixture
def store(config):
    """A GCC store over a temporary SQLite database."""
    with GccStore.open(config) as gcc:
        yield gcc


@pytest.fixture
def memory_store():
    """A GCC store over an in-memory SQLite database."""
    with GccStore(SqliteLedger(":memory:")) as gcc:
        yield gcc
