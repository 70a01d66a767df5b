"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
Environment defaults are set before any import that builds settings.
"""

import os

# CRITICAL: Set these before any imports that might load settings
os.environ["APP_ENV"] = "testing"
os.environ.setdefault("COMMUNITY_BASE_URL", "http://community.test")
os.environ.setdefault("STORAGE_BACKEND", "memory")
os.environ.setdefault("LOG_FORMAT", "plain")

import pytest

from recipe_market.adapters.storage.in_memory import InMemoryKeyValueStore
from tests.fakes import FakeClock, FakeCommunityClient, TruncatingCompactor


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def compactor() -> TruncatingCompactor:
    return TruncatingCompactor()


@pytest.fixture
def community() -> FakeCommunityClient:
    return FakeCommunityClient([{"id": "item1", "name": "Banana Portrait"}])
