"""
Storage Services Package

Provides the abstract audit storage interface and the in-memory backend
used for session-lifetime state.
"""

from zenith.services.storage.interface import (
    AuditStorageInterface,
    StorageError,
)
from zenith.services.storage.memory import InMemoryAuditStorage

__all__ = [
    "AuditStorageInterface",
    "InMemoryAuditStorage",
    "StorageError",
]
