"""
In-memory audit storage.

Keeps the audit trail for the lifetime of one session. Used by default
when no durable backend is configured, and by the tests.
"""

from typing import Optional
from uuid import UUID

from zenith.models.audit import AuditEvent
from zenith.services.storage.interface import AuditStorageInterface, StorageError


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of audit events, optionally bounded."""

    def __init__(self, max_events: Optional[int] = None):
        if max_events is not None and max_events < 1:
            raise StorageError("max_events must be positive")
        self._events: list[AuditEvent] = []
        self._max_events = max_events

    @property
    def events(self) -> list[AuditEvent]:
        """All retained events, oldest first."""
        return list(self._events)

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        if self._max_events is not None and len(self._events) > self._max_events:
            # Oldest events fall off the front
            del self._events[: len(self._events) - self._max_events]
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        return [e for e in self._events if e.correlation_id == correlation_id]

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        return [
            e for e in self._events
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        return list(reversed(self._events))[:limit]
