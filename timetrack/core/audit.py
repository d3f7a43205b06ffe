"""Audit trail for mutating operations."""

import logging
from typing import Any

from sqlalchemy.orm import Session

from timetrack.database.database import AuditLog

logger = logging.getLogger(__name__)


def record_audit(
    session: Session,
    actor_id: int | None,
    action: str,
    resource_type: str,
    resource_id: int | str,
    details: dict[str, Any] | None = None,
) -> AuditLog:
    """
    Add an audit row to the session. The caller commits it together with the change it describes.
    """
    entry = AuditLog(
        actor_id=actor_id,
        action=action,
        resource_type=resource_type,
        resource_id=str(resource_id),
        details=details or {},
    )
    session.add(entry)

    logger.info(
        "Audit: %s %s/%s by %s",
        action,
        resource_type,
        resource_id,
        actor_id,
        extra={"extra_fields": {"action": action, "resource_type": resource_type, "resource_id": str(resource_id)}},
    )
    return entry
