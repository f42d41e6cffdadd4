"""Embedded engine backends for built stores."""

from dbseed.backends.base import StoreBackend, StoreConnection
from dbseed.backends.memory import InMemoryBackend
from dbseed.backends.sqlite import SqliteBackend

__all__ = ["InMemoryBackend", "SqliteBackend", "StoreBackend", "StoreConnection"]
