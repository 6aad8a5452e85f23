"""Abstract stores for manager operation records and edit sessions."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date

from mediastore.domain.model.operation import EditSession, OperationRecord


class OperationLogRepository(ABC):
    """Append-only log partitioned by (manager_id, day)."""

    @abstractmethod
    def append(self, records: list[OperationRecord]) -> None:
        """Append records atomically with respect to readers."""

    @abstractmethod
    def list_for_manager(self, manager_id: str, day: date) -> list[OperationRecord]:
        """Return one manager's records for one calendar day."""


class EditSessionRepository(ABC):
    """At most one session per manager id."""

    @abstractmethod
    def get(self, manager_id: str) -> EditSession | None:
        """Return the manager's stored session, open or timed out, or None."""

    @abstractmethod
    def save(self, session: EditSession) -> None:
        """Store the manager's session, replacing any previous one."""

    @abstractmethod
    def delete(self, manager_id: str) -> None:
        """Forget the manager's session. No-op when there is none."""
