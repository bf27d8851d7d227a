"""
Reimbursement Workflow (Domain Logic).

    pending -> approved -> paid
    pending -> rejected

Payment posts an expense from a company account.
"""

import logging
from datetime import date
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.app.core.clock import utcnow, get_business_date
from backoffice.app.core.exceptions import (
    ResourceNotFoundError,
    BusinessRuleViolation,
    ValidationError,
)
from backoffice.app.core.optimistic_lock import validate_version
from backoffice.app.core.state_machine import REIMBURSEMENT_STATE_MACHINE
from backoffice.app.db.session import unit_of_work
from backoffice.app.domain.ledger.ledger_engine import LedgerEngine
from backoffice.app.domain.workflow.transitions import apply_transition, compare_and_delete
from backoffice.app.models.account import Account
from backoffice.app.models.currency import Currency
from backoffice.app.models.employee import Employee
from backoffice.app.models.ledger_enums import PostingKind
from backoffice.app.models.reimbursement import Reimbursement
from backoffice.app.models.workflow_enums import ReimbursementStatus
from backoffice.app.services.audit import log_event, AuditAction, snapshot

logger = logging.getLogger(__name__)

ENTITY = "reimbursement"
REIMBURSEMENT_AUDIT_FIELDS = ("status", "expense_type", "amount_cents", "currency", "posting_id", "version")


class ReimbursementWorkflow:

    @staticmethod
    async def get_reimbursement(db: AsyncSession, reimbursement_id: int) -> Reimbursement:
        reimbursement = await db.get(Reimbursement, reimbursement_id)
        if not reimbursement:
            raise ResourceNotFoundError("Reimbursement", reimbursement_id)
        return reimbursement

    @staticmethod
    async def list_reimbursements(
        db: AsyncSession,
        employee_id: Optional[int] = None,
        status: Optional[ReimbursementStatus] = None,
    ) -> List[Reimbursement]:
        query = select(Reimbursement).order_by(Reimbursement.expense_date.desc(), Reimbursement.id.desc())
        if employee_id:
            query = query.where(Reimbursement.employee_id == employee_id)
        if status:
            query = query.where(Reimbursement.status == ReimbursementStatus(status))
        result = await db.execute(query)
        return result.scalars().all()

    @staticmethod
    async def create(
        db: AsyncSession,
        employee_id: int,
        expense_type: str,
        amount_cents: int,
        currency: str,
        actor_id: str,
        expense_date: Optional[date] = None,
        description: Optional[str] = None,
        voucher_url: Optional[str] = None,
    ) -> Reimbursement:
        """Submit a pending expense claim."""
        if amount_cents is None or amount_cents <= 0:
            raise ValidationError("Amount must be positive", details={"amount_cents": amount_cents})
        if not expense_type:
            raise ValidationError("Expense type is required")

        async with unit_of_work(db):
            if not await db.get(Employee, employee_id):
                raise ResourceNotFoundError("Employee", employee_id)
            if not await db.get(Currency, currency):
                raise ResourceNotFoundError("Currency", currency)
            reimbursement = Reimbursement(
                employee_id=employee_id,
                expense_type=expense_type,
                amount_cents=amount_cents,
                currency=currency,
                expense_date=expense_date or get_business_date(),
                description=description,
                voucher_url=voucher_url,
                status=ReimbursementStatus.PENDING,
                version=0,
                created_by=actor_id,
            )
            db.add(reimbursement)
            await db.flush()
            await db.refresh(reimbursement)

        await log_event(
            db, AuditAction.REIMBURSEMENT_CREATED, actor_id=actor_id, entity_type=ENTITY,
            entity_id=reimbursement.id, after=snapshot(reimbursement, REIMBURSEMENT_AUDIT_FIELDS),
        )
        return reimbursement

    @staticmethod
    async def _transition(
        db: AsyncSession,
        reimbursement_id: int,
        to_status: ReimbursementStatus,
        actor_id: str,
        expected_version: Optional[int],
        values: dict,
    ) -> Reimbursement:
        async with unit_of_work(db):
            reimbursement = await ReimbursementWorkflow.get_reimbursement(db, reimbursement_id)
            before = snapshot(reimbursement, REIMBURSEMENT_AUDIT_FIELDS)
            await apply_transition(
                db, REIMBURSEMENT_STATE_MACHINE, Reimbursement, reimbursement, to_status, values, expected_version
            )

        await log_event(
            db, AuditAction.REIMBURSEMENT_STATUS_CHANGED, actor_id=actor_id, entity_type=ENTITY,
            entity_id=reimbursement.id, before=before,
            after=snapshot(reimbursement, REIMBURSEMENT_AUDIT_FIELDS),
        )
        return reimbursement

    @staticmethod
    async def approve(
        db: AsyncSession, reimbursement_id: int, actor_id: str, expected_version: Optional[int] = None
    ) -> Reimbursement:
        return await ReimbursementWorkflow._transition(
            db, reimbursement_id, ReimbursementStatus.APPROVED, actor_id, expected_version,
            {"approved_by": actor_id, "approved_at": utcnow()},
        )

    @staticmethod
    async def reject(
        db: AsyncSession,
        reimbursement_id: int,
        actor_id: str,
        reason: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> Reimbursement:
        return await ReimbursementWorkflow._transition(
            db, reimbursement_id, ReimbursementStatus.REJECTED, actor_id, expected_version,
            {"rejected_by": actor_id, "rejected_at": utcnow(), "reject_reason": reason},
        )

    @staticmethod
    async def pay(
        db: AsyncSession,
        reimbursement_id: int,
        account_id: int,
        actor_id: str,
        biz_date: Optional[date] = None,
        expected_version: Optional[int] = None,
    ) -> Reimbursement:
        """Pay an approved claim: post the expense and mark it paid."""
        biz_date = biz_date or get_business_date()

        async with unit_of_work(db):
            reimbursement = await ReimbursementWorkflow.get_reimbursement(db, reimbursement_id)
            before = snapshot(reimbursement, REIMBURSEMENT_AUDIT_FIELDS)
            REIMBURSEMENT_STATE_MACHINE.validate_transition(reimbursement.status, ReimbursementStatus.PAID)
            validate_version(reimbursement.version, expected_version)

            account = await db.get(Account, account_id)
            if not account:
                raise ResourceNotFoundError("Account", account_id)
            if account.currency != reimbursement.currency:
                raise BusinessRuleViolation(
                    f"Account {account.name} holds {account.currency}, not {reimbursement.currency}"
                )

            posting = await LedgerEngine.record_single_entry(
                db, account_id, biz_date, PostingKind.EXPENSE, reimbursement.amount_cents,
                created_by=actor_id, category=reimbursement.expense_type,
                memo=f"Reimbursement {reimbursement.id} employee {reimbursement.employee_id}",
                voucher_urls=[reimbursement.voucher_url] if reimbursement.voucher_url else None,
            )
            await apply_transition(
                db, REIMBURSEMENT_STATE_MACHINE, Reimbursement, reimbursement, ReimbursementStatus.PAID,
                {"account_id": account_id, "posting_id": posting.id, "paid_by": actor_id, "paid_at": utcnow()},
                expected_version,
            )

        logger.info("Reimbursement %s paid with %s", reimbursement.id, posting.voucher_no)
        await log_event(
            db, AuditAction.REIMBURSEMENT_STATUS_CHANGED, actor_id=actor_id, entity_type=ENTITY,
            entity_id=reimbursement.id, before=before,
            after=snapshot(reimbursement, REIMBURSEMENT_AUDIT_FIELDS),
            metadata={"voucher_no": posting.voucher_no},
        )
        return reimbursement

    @staticmethod
    async def delete(
        db: AsyncSession, reimbursement_id: int, actor_id: str, expected_version: Optional[int] = None
    ) -> None:
        """Delete a claim that is still pending."""
        async with unit_of_work(db):
            reimbursement = await ReimbursementWorkflow.get_reimbursement(db, reimbursement_id)
            if reimbursement.status != ReimbursementStatus.PENDING:
                raise BusinessRuleViolation("Only pending reimbursements can be deleted")
            before = snapshot(reimbursement, REIMBURSEMENT_AUDIT_FIELDS)
            await compare_and_delete(
                db, Reimbursement, reimbursement, ReimbursementStatus.PENDING, expected_version
            )

        await log_event(
            db, AuditAction.REIMBURSEMENT_DELETED, actor_id=actor_id, entity_type=ENTITY,
            entity_id=reimbursement_id, before=before,
        )
