"""Pytest configuration and fixtures for NonprofitSuite tests.

Unit tests run against an in-memory SQLite PyDAL database with every table
defined, or against MagicMock stand-ins where only call shapes matter.
"""

import datetime
import os

import pytest

# Set testing environment before any app imports
os.environ.setdefault("LOG_FORMAT", "text")
os.environ.setdefault("CACHE_BACKEND", "memory")


class FrozenClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime.datetime):
        self.now = now

    def __call__(self) -> datetime.datetime:
        return self.now

    def advance(self, **kwargs) -> datetime.datetime:
        self.now = self.now + datetime.timedelta(**kwargs)
        return self.now


@pytest.fixture
def now():
    return datetime.datetime(2025, 6, 15, 12, 0, 0)


@pytest.fixture
def clock(now):
    return FrozenClock(now)


@pytest.fixture
def db(tmp_path):
    """
    Provide an in-memory PyDAL database with all tables defined.

    Yields:
        PyDAL DAL instance
    """
    from pydal import DAL

    from shared.models.pydal_models import define_all_tables

    database = DAL("sqlite:memory", folder=str(tmp_path), migrate=True)
    define_all_tables(database, migrate=True)
    yield database
    database.close()


@pytest.fixture
def cache():
    from shared.cache import CacheManager, MemoryCacheBackend

    return CacheManager(MemoryCacheBackend())


@pytest.fixture
def options(db):
    from shared.options import OptionStore

    return OptionStore(db)


@pytest.fixture
def mock_pydal_db(mocker):
    """
    Create a mock PyDAL database for unit tests.

    Use this fixture for unit tests that shouldn't touch the real database.

    Args:
        mocker: pytest-mock fixture

    Returns:
        MagicMock configured as a PyDAL db
    """
    from unittest.mock import MagicMock

    mock_db = MagicMock()
    mock_db.tables = []
    mock_db.commit = MagicMock()
    mock_db.rollback = MagicMock()

    return mock_db


# Markers for test categories
def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "unit: Unit tests (no external dependencies)"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests (requires database)"
    )
    config.addinivalue_line(
        "markers", "slow: Tests that take a long time to run"
    )
