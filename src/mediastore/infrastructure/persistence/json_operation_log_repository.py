"""JSON-file-backed operation log and edit session store."""

from __future__ import annotations

from datetime import date, datetime
from pathlib import Path

from mediastore.domain.model.operation import EditSession, OperationRecord, OperationType
from mediastore.domain.repository.operation_log_repository import (
    EditSessionRepository,
    OperationLogRepository,
)
from mediastore.infrastructure.persistence.json_store import JsonFileStore


class JsonOperationLogRepository(JsonFileStore, OperationLogRepository):

    def __init__(self, file_path: Path) -> None:
        super().__init__(file_path, empty=[])

    def append(self, records: list[OperationRecord]) -> None:
        raws = [self._to_raw(r) for r in records]
        self._update_raw(lambda log: log.extend(raws))

    def list_for_manager(self, manager_id: str, day: date) -> list[OperationRecord]:
        wanted = day.isoformat()
        return [
            self._to_domain(raw)
            for raw in self._load_raw()
            if raw["manager_id"] == manager_id and raw["day"] == wanted
        ]

    @staticmethod
    def _to_raw(record: OperationRecord) -> dict:
        return {
            "manager_id": record.manager_id,
            "operation_type": record.operation_type.value,
            "product_id": record.product_id,
            "occurred_at": record.occurred_at.isoformat(),
            "day": record.day.isoformat(),
        }

    @staticmethod
    def _to_domain(raw: dict) -> OperationRecord:
        return OperationRecord(
            manager_id=raw["manager_id"],
            operation_type=OperationType(raw["operation_type"]),
            product_id=raw["product_id"],
            occurred_at=datetime.fromisoformat(raw["occurred_at"]),
            day=date.fromisoformat(raw["day"]),
        )


class JsonEditSessionRepository(JsonFileStore, EditSessionRepository):

    def __init__(self, file_path: Path) -> None:
        super().__init__(file_path, empty={})

    def get(self, manager_id: str) -> EditSession | None:
        raw = self._load_raw().get(manager_id)
        if raw is None:
            return None
        return EditSession(
            manager_id=raw["manager_id"],
            product_id=raw["product_id"],
            started_at=datetime.fromisoformat(raw["started_at"]),
            expires_at=datetime.fromisoformat(raw["expires_at"]),
        )

    def save(self, session: EditSession) -> None:
        raw = {
            "manager_id": session.manager_id,
            "product_id": session.product_id,
            "started_at": session.started_at.isoformat(),
            "expires_at": session.expires_at.isoformat(),
        }

        def change(sessions: dict) -> None:
            sessions[session.manager_id] = raw

        self._update_raw(change)

    def delete(self, manager_id: str) -> None:
        self._update_raw(lambda sessions: sessions.pop(manager_id, None))
