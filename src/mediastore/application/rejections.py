"""Report refused manager operations to the notifier without failing the caller."""

from __future__ import annotations

import structlog

from mediastore.domain.service.notifications import Notifier

logger = structlog.get_logger(__name__)


def report_rejection(
    notifier: Notifier | None, manager_id: str, operation: str, message: str
) -> None:
    logger.info("operation.rejected", manager_id=manager_id, operation=operation, reason=message)
    if notifier is None:
        return
    try:
        notifier.operation_rejected(manager_id, operation, message)
    except Exception:
        logger.warning(
            "notification.failed", manager_id=manager_id, operation=operation, exc_info=True
        )
