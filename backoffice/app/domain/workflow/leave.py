"""
Leave Workflow (Domain Logic).

    pending -> approved | rejected

Approved non-annual leave is deducted by payroll generation.
"""

from datetime import date
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.app.core.clock import utcnow
from backoffice.app.core.exceptions import (
    ResourceNotFoundError,
    BusinessRuleViolation,
    ValidationError,
)
from backoffice.app.core.state_machine import LEAVE_STATE_MACHINE
from backoffice.app.db.session import unit_of_work
from backoffice.app.domain.workflow.transitions import apply_transition, compare_and_delete
from backoffice.app.models.employee import Employee
from backoffice.app.models.leave import Leave
from backoffice.app.models.workflow_enums import LeaveStatus, LeaveType
from backoffice.app.services.audit import log_event, AuditAction, snapshot

ENTITY = "leave"
LEAVE_AUDIT_FIELDS = ("status", "leave_type", "start_date", "end_date", "days", "version")


class LeaveWorkflow:

    @staticmethod
    async def get_leave(db: AsyncSession, leave_id: int) -> Leave:
        leave = await db.get(Leave, leave_id)
        if not leave:
            raise ResourceNotFoundError("Leave", leave_id)
        return leave

    @staticmethod
    async def list_leaves(
        db: AsyncSession,
        employee_id: Optional[int] = None,
        status: Optional[LeaveStatus] = None,
    ) -> List[Leave]:
        query = select(Leave).order_by(Leave.start_date.desc(), Leave.id.desc())
        if employee_id:
            query = query.where(Leave.employee_id == employee_id)
        if status:
            query = query.where(Leave.status == LeaveStatus(status))
        result = await db.execute(query)
        return result.scalars().all()

    @staticmethod
    async def request(
        db: AsyncSession,
        employee_id: int,
        leave_type: LeaveType,
        start_date: date,
        end_date: date,
        actor_id: str,
        days: Optional[Decimal] = None,
        reason: Optional[str] = None,
        memo: Optional[str] = None,
    ) -> Leave:
        """
        Submit a leave request.

        `days` defaults to the inclusive calendar day count of the range.
        """
        if end_date < start_date:
            raise ValidationError("End date is before start date")
        try:
            leave_type = LeaveType(leave_type)
        except ValueError:
            raise ValidationError(f"Unknown leave type: {leave_type}")
        if days is None:
            days = Decimal((end_date - start_date).days + 1)
        elif Decimal(days) <= 0:
            raise ValidationError("Leave days must be positive")

        async with unit_of_work(db):
            if not await db.get(Employee, employee_id):
                raise ResourceNotFoundError("Employee", employee_id)
            leave = Leave(
                employee_id=employee_id,
                leave_type=leave_type,
                start_date=start_date,
                end_date=end_date,
                days=days,
                reason=reason,
                memo=memo,
                status=LeaveStatus.PENDING,
                version=0,
                requested_by=actor_id,
            )
            db.add(leave)
            await db.flush()
            await db.refresh(leave)

        await log_event(
            db, AuditAction.LEAVE_CREATED, actor_id=actor_id, entity_type=ENTITY,
            entity_id=leave.id, after=snapshot(leave, LEAVE_AUDIT_FIELDS),
        )
        return leave

    @staticmethod
    async def _decide(
        db: AsyncSession,
        leave_id: int,
        to_status: LeaveStatus,
        actor_id: str,
        expected_version: Optional[int],
        values: dict,
    ) -> Leave:
        async with unit_of_work(db):
            leave = await LeaveWorkflow.get_leave(db, leave_id)
            before = snapshot(leave, LEAVE_AUDIT_FIELDS)
            await apply_transition(db, LEAVE_STATE_MACHINE, Leave, leave, to_status, values, expected_version)

        await log_event(
            db, AuditAction.LEAVE_STATUS_CHANGED, actor_id=actor_id, entity_type=ENTITY,
            entity_id=leave.id, before=before, after=snapshot(leave, LEAVE_AUDIT_FIELDS),
        )
        return leave

    @staticmethod
    async def approve(
        db: AsyncSession, leave_id: int, actor_id: str, expected_version: Optional[int] = None
    ) -> Leave:
        return await LeaveWorkflow._decide(
            db, leave_id, LeaveStatus.APPROVED, actor_id, expected_version,
            {"approved_by": actor_id, "approved_at": utcnow()},
        )

    @staticmethod
    async def reject(
        db: AsyncSession, leave_id: int, actor_id: str, expected_version: Optional[int] = None
    ) -> Leave:
        return await LeaveWorkflow._decide(
            db, leave_id, LeaveStatus.REJECTED, actor_id, expected_version,
            {"rejected_by": actor_id, "rejected_at": utcnow()},
        )

    @staticmethod
    async def delete(
        db: AsyncSession, leave_id: int, actor_id: str, expected_version: Optional[int] = None
    ) -> None:
        """Delete a leave request that is still pending."""
        async with unit_of_work(db):
            leave = await LeaveWorkflow.get_leave(db, leave_id)
            if leave.status != LeaveStatus.PENDING:
                raise BusinessRuleViolation("Only pending leave requests can be deleted")
            before = snapshot(leave, LEAVE_AUDIT_FIELDS)
            await compare_and_delete(db, Leave, leave, LeaveStatus.PENDING, expected_version)

        await log_event(
            db, AuditAction.LEAVE_DELETED, actor_id=actor_id, entity_type=ENTITY,
            entity_id=leave_id, before=before,
        )
