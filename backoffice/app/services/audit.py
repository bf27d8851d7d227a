"""
Audit logging service for tracking ledger and workflow events.

Provides centralized history for compliance. Writes happen after the
business unit of work has committed and never fail the caller.
"""

import enum
import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, Dict, Any, Iterable
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy import select, desc
from backoffice.app.models.audit_log import AuditLog

logger = logging.getLogger(__name__)


# Audit event constants
class AuditAction:
    """Standardized audit action constants."""
    # Master data
    CURRENCY_CREATED = "CURRENCY_CREATED"
    ACCOUNT_CREATED = "ACCOUNT_CREATED"
    ACCOUNT_UPDATED = "ACCOUNT_UPDATED"
    ACCOUNT_DEACTIVATED = "ACCOUNT_DEACTIVATED"
    ACCOUNT_DELETED = "ACCOUNT_DELETED"
    EMPLOYEE_CREATED = "EMPLOYEE_CREATED"
    EMPLOYEE_SALARY_SET = "EMPLOYEE_SALARY_SET"

    # Ledger
    POSTING_CREATED = "POSTING_CREATED"
    POSTING_REVERSED = "POSTING_REVERSED"
    VOUCHERS_ATTACHED = "VOUCHERS_ATTACHED"
    TRANSFER_CREATED = "TRANSFER_CREATED"

    # AR/AP
    DOCUMENT_CREATED = "DOCUMENT_CREATED"
    DOCUMENT_SETTLED = "DOCUMENT_SETTLED"
    DOCUMENT_CONFIRMED = "DOCUMENT_CONFIRMED"
    DOCUMENT_DELETED = "DOCUMENT_DELETED"

    # Payroll
    SALARY_GENERATED = "SALARY_GENERATED"
    SALARY_STATUS_CHANGED = "SALARY_STATUS_CHANGED"
    SALARY_ROLLED_BACK = "SALARY_ROLLED_BACK"
    SALARY_DELETED = "SALARY_DELETED"
    ALLOCATION_REQUESTED = "ALLOCATION_REQUESTED"
    ALLOCATION_APPROVED = "ALLOCATION_APPROVED"
    ALLOCATION_REJECTED = "ALLOCATION_REJECTED"

    # Borrowing
    BORROWING_CREATED = "BORROWING_CREATED"
    BORROWING_STATUS_CHANGED = "BORROWING_STATUS_CHANGED"
    BORROWING_DELETED = "BORROWING_DELETED"
    REPAYMENT_RECORDED = "REPAYMENT_RECORDED"

    # Reimbursement
    REIMBURSEMENT_CREATED = "REIMBURSEMENT_CREATED"
    REIMBURSEMENT_STATUS_CHANGED = "REIMBURSEMENT_STATUS_CHANGED"
    REIMBURSEMENT_DELETED = "REIMBURSEMENT_DELETED"

    # Leave
    LEAVE_CREATED = "LEAVE_CREATED"
    LEAVE_STATUS_CHANGED = "LEAVE_STATUS_CHANGED"
    LEAVE_DELETED = "LEAVE_DELETED"


def _jsonable(value: Any) -> Any:
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    return value


def snapshot(entity: Any, fields: Iterable[str]) -> Dict[str, Any]:
    """
    Capture selected attributes of an entity as a JSON-safe dict.

    Args:
        entity: ORM instance (or any object with the attributes)
        fields: Attribute names to capture

    Returns:
        Dict of field -> JSON-serializable value
    """
    return {field: _jsonable(getattr(entity, field, None)) for field in fields}


async def log_event(
    db: AsyncSession,
    action: str,
    actor_id: Optional[str] = None,
    entity_type: Optional[str] = None,
    entity_id: Optional[int] = None,
    before: Optional[Dict[str, Any]] = None,
    after: Optional[Dict[str, Any]] = None,
    metadata: Optional[Dict[str, Any]] = None
) -> Optional[AuditLog]:
    """
    Log a ledger or workflow event to the audit log.

    Must be called after the business change has been committed. The row is
    written through its own session on the same engine, so a failure to
    write it is logged and swallowed without touching the caller's session
    or the objects loaded in it.

    Args:
        db: Database session of the business operation
        action: Action being performed (use AuditAction constants)
        actor_id: Opaque id of whoever performed the action
        entity_type: Kind of entity touched (e.g. "salary_payment")
        entity_id: Primary key of the entity touched
        before: Field values before the change
        after: Field values after the change
        metadata: Additional context as JSON

    Returns:
        Created AuditLog instance, or None if the write failed
    """
    audit_log = AuditLog(
        actor_id=actor_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        before_data=before,
        after_data=after,
        meta_data=metadata
    )

    try:
        async with AsyncSession(bind=db.bind, expire_on_commit=False) as audit_db:
            audit_db.add(audit_log)
            await audit_db.commit()
            await audit_db.refresh(audit_log)
    except SQLAlchemyError:
        logger.exception("Failed to write audit event %s for %s:%s", action, entity_type, entity_id)
        return None

    return audit_log


async def get_audit_trail(
    db: AsyncSession,
    entity_type: Optional[str] = None,
    entity_id: Optional[int] = None,
    action: Optional[str] = None,
    limit: int = 100
) -> list[AuditLog]:
    """
    Retrieve audit trail with optional filtering.

    Args:
        db: Database session
        entity_type: Filter by entity type
        entity_id: Filter by entity ID
        action: Filter by action type
        limit: Maximum number of records to return

    Returns:
        List of AuditLog instances, most recent first
    """
    query = select(AuditLog).order_by(desc(AuditLog.timestamp), desc(AuditLog.id))

    if entity_type:
        query = query.where(AuditLog.entity_type == entity_type)

    if entity_id is not None:
        query = query.where(AuditLog.entity_id == entity_id)

    if action:
        query = query.where(AuditLog.action == action)

    query = query.limit(limit)

    result = await db.execute(query)
    return result.scalars().all()
