"""Persistent key-value store adapters."""

from recipe_market.adapters.storage.base import AbstractKeyValueStore
from recipe_market.adapters.storage.in_memory import InMemoryKeyValueStore
from recipe_market.adapters.storage.json_file import JsonFileKeyValueStore

__all__ = ["AbstractKeyValueStore", "InMemoryKeyValueStore", "JsonFileKeyValueStore"]
