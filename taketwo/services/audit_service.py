from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from taketwo.models import AuditLog, AuthEvent

logger = logging.getLogger(__name__)


def log_auth_event(
    db: Session,
    *,
    attempted_email: str,
    success: bool,
    ip: str | None,
    user_agent: str | None,
    principal_id: int | None = None,
    failure_reason: str | None = None,
) -> None:
    if not success:
        logger.warning('Login failed for %s from %s: %s', attempted_email, ip or 'unknown', failure_reason)
    db.add(
        AuthEvent(
            attempted_email=attempted_email,
            success=success,
            failure_reason=failure_reason,
            principal_id=principal_id,
            ip=ip,
            user_agent=user_agent,
        )
    )


def log_audit(
    db: Session,
    *,
    actor_principal_id: int | None,
    action: str,
    entry_id: str | None,
    ip: str | None,
    metadata: dict | None = None,
) -> None:
    logger.info('%s by principal %s on entry %s', action, actor_principal_id, entry_id or '-')
    db.add(
        AuditLog(
            actor_principal_id=actor_principal_id,
            action=action,
            entry_id=entry_id,
            ip=ip,
            meta=metadata or {},
        )
    )


def entry_history(db: Session, entry_id: str) -> list[AuditLog]:
    """Audit rows for one entry, oldest first. Survives permanent deletion."""
    return list(
        db.execute(
            select(AuditLog).where(AuditLog.entry_id == entry_id).order_by(AuditLog.created_at.asc(), AuditLog.id.asc())
        ).scalars()
    )
