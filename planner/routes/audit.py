"""Audit trail routes."""
from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from planner.calendar.audit import list_audit_logs
from planner.calendar.schemas import AuditLogRead
from planner.core.database import get_session
from planner.models import AuditAction

router = APIRouter(prefix="/audit-logs", tags=["audit"])


@router.get("", response_model=list[AuditLogRead])
async def audit_logs(
    entity_id: str | None = None,
    action: AuditAction | None = None,
    limit: int = Query(100, ge=1, le=1000),
    session: Session = Depends(get_session),
):
    """Recent calendar changes, newest first."""
    return list_audit_logs(session, entity_id, action, limit)
