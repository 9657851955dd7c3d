import logging
from dataclasses import dataclass

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.errors import AuditLogError
from app.models.admin_log import AdminLog
from app.models.user import User

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RequestMeta:
    ip_address: str | None = None
    user_agent: str | None = None


def record_admin_action(
    db: Session,
    admin: User,
    action: str,
    resource: str,
    resource_id: str | None,
    details: dict | None = None,
    meta: RequestMeta | None = None,
) -> AdminLog:
    """Append an audit entry for a mutation that has already been committed."""
    meta = meta or RequestMeta()
    entry = AdminLog(
        admin_id=admin.id,
        action=action,
        resource=resource,
        resource_id=resource_id,
        details=details or {},
        ip_address=meta.ip_address,
        user_agent=meta.user_agent,
    )
    try:
        db.add(entry)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error(
            "admin_action_log_failed",
            extra={"admin_id": admin.id, "action": action, "resource": resource, "resource_id": resource_id},
        )
        raise AuditLogError() from exc
    logger.info(
        "admin_action_recorded",
        extra={"admin_id": admin.id, "action": action, "resource": resource, "resource_id": resource_id},
    )
    return entry
