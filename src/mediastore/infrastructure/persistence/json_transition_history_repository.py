"""JSON-file-backed implementation of TransitionHistoryRepository."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

from mediastore.domain.model.order import OrderStatus, StateTransitionRecord
from mediastore.domain.repository.transition_history_repository import (
    TransitionHistoryRepository,
)
from mediastore.infrastructure.persistence.json_store import JsonFileStore


class JsonTransitionHistoryRepository(JsonFileStore, TransitionHistoryRepository):

    def __init__(self, file_path: Path) -> None:
        super().__init__(file_path, empty=[])

    def append(self, record: StateTransitionRecord) -> None:
        self._update_raw(lambda records: records.append(self._to_raw(record)))

    def list_for_order(self, order_id: int) -> list[StateTransitionRecord]:
        return [
            self._to_domain(raw) for raw in self._load_raw() if raw["order_id"] == order_id
        ]

    def list_between(self, start: datetime, end: datetime) -> list[StateTransitionRecord]:
        records = (self._to_domain(raw) for raw in self._load_raw())
        return [r for r in records if start <= r.timestamp < end]

    # --- Serialization --------------------------------------------------------

    @staticmethod
    def _to_raw(record: StateTransitionRecord) -> dict:
        return {
            "transition_id": record.transition_id,
            "order_id": record.order_id,
            "from_status": record.from_status.value if record.from_status else None,
            "to_status": record.to_status.value,
            "performed_by": record.performed_by,
            "timestamp": record.timestamp.isoformat(),
            "reason": record.reason,
            "notes": record.notes,
            "success": record.success,
        }

    @staticmethod
    def _to_domain(raw: dict) -> StateTransitionRecord:
        from_status = raw.get("from_status")
        return StateTransitionRecord(
            transition_id=raw["transition_id"],
            order_id=raw["order_id"],
            from_status=OrderStatus(from_status) if from_status else None,
            to_status=OrderStatus(raw["to_status"]),
            performed_by=raw["performed_by"],
            timestamp=datetime.fromisoformat(raw["timestamp"]),
            reason=raw["reason"],
            notes=raw["notes"],
            success=raw["success"],
        )
