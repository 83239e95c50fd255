"""Audit trail helpers.

Entries are written in the same transaction as the change they describe:
``audit_entry`` builds a row for a write plan, ``record_audit`` adds one
to a session. Either way the caller commits.
"""
import logging

from sqlmodel import Session, select

from planner.models import AuditAction, AuditLog

logger = logging.getLogger(__name__)


def audit_entry(
    action: AuditAction,
    entity_type: str,
    entity_id,
    details: dict | None = None,
    user_id: int = 1,
) -> AuditLog:
    entry = AuditLog(
        user_id=user_id,
        action=action,
        entity_type=entity_type,
        entity_id=str(entity_id),
        details=details,
    )
    logger.info(f"Audit: {action.value} {entity_type} {entity_id} by user {user_id}")
    return entry


def record_audit(
    session: Session,
    action: AuditAction,
    entity_type: str,
    entity_id,
    details: dict | None = None,
    user_id: int = 1,
) -> AuditLog:
    entry = audit_entry(action, entity_type, entity_id, details, user_id)
    session.add(entry)
    return entry


def list_audit_logs(
    session: Session,
    entity_id: str | None = None,
    action: AuditAction | None = None,
    limit: int = 100,
) -> list[AuditLog]:
    """Most recent entries first, optionally for one entity or action."""
    statement = select(AuditLog)
    if entity_id is not None:
        statement = statement.where(AuditLog.entity_id == entity_id)
    if action is not None:
        statement = statement.where(AuditLog.action == action)
    statement = statement.order_by(AuditLog.created_at.desc()).limit(limit)
    return list(session.exec(statement).all())
