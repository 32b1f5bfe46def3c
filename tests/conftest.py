"""Global pytest configuration and fixtures."""

from __future__ import annotations

import pytest

from dscache.config import CacheSettings
from dscache.datastore import Entity, Key, Query


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "integration: tests that need Docker")


@pytest.fixture
def memory_settings() -> CacheSettings:
    """Settings with only the memory store."""
    return CacheSettings(stores=["memory"])


@pytest.fixture
def user_query() -> Query:
    return Query("User").filter("age", ">", 18).order("name").with_limit(10)


@pytest.fixture
def company_key() -> Key:
    return Key(("Company", 1))


@pytest.fixture
def entities() -> list[Entity]:
    return [
        Entity({"name": "John"}, key=Key(("User", 1))),
        Entity({"name": "Mick"}, key=Key(("User", 2))),
        Entity({"name": "Carol"}, key=Key(("User", 3))),
    ]
