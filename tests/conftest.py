"""Root conftest - shared test configuration."""

import os

import pytest

from tests.fakes import FakeBackend, FakeRouter

# Ensure tests never reach a real search service or write a palette.db file
os.environ.setdefault("PALETTE_SEARCH_API_URL", "http://search.test")
os.environ.setdefault("PALETTE_DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("PALETTE_KV_BACKEND", "memory")


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def router():
    return FakeRouter()
