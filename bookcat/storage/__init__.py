"""
Storage backends for bookcat.

- DatabaseBackend: SQLAlchemy rows scoped by user id (signed-in users)
- LocalBackend: JSON blobs in a device-local key/value store (guest mode)
"""

from .base import StorageBackend
from .database import DatabaseBackend
from .local import LocalBackend, KeyValueStore, JsonFileStore, MemoryStore

__all__ = [
    'StorageBackend',
    'DatabaseBackend',
    'LocalBackend',
    'KeyValueStore',
    'JsonFileStore',
    'MemoryStore',
]
