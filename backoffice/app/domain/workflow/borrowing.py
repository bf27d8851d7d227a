"""
Borrowing Workflow (Domain Logic).

Employee borrowing and repayment:

    pending -> approved -> outstanding -> partial -> repaid
    pending -> rejected

Disbursement posts an expense from the company account; each repayment
posts an income and moves the borrowing to partial or repaid.
"""

import logging
from datetime import date
from typing import List, Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.app.core.clock import utcnow, get_business_date
from backoffice.app.core.exceptions import (
    ResourceNotFoundError,
    BusinessRuleViolation,
    ValidationError,
)
from backoffice.app.core.optimistic_lock import validate_version
from backoffice.app.core.state_machine import BORROWING_STATE_MACHINE
from backoffice.app.db.session import unit_of_work
from backoffice.app.domain.ledger.ledger_engine import LedgerEngine
from backoffice.app.domain.workflow.transitions import apply_transition, compare_and_set, compare_and_delete
from backoffice.app.models.account import Account
from backoffice.app.models.borrowing import Borrowing, Repayment
from backoffice.app.models.currency import Currency
from backoffice.app.models.employee import Employee
from backoffice.app.models.ledger_enums import PostingKind
from backoffice.app.models.workflow_enums import BorrowingStatus
from backoffice.app.services.audit import log_event, AuditAction, snapshot

logger = logging.getLogger(__name__)

ENTITY = "borrowing"
BORROWING_AUDIT_FIELDS = ("status", "amount_cents", "currency", "account_id", "posting_id", "version")


async def _currency_account(db: AsyncSession, account_id: int, currency: str) -> Account:
    account = await db.get(Account, account_id)
    if not account:
        raise ResourceNotFoundError("Account", account_id)
    if account.currency != currency:
        raise BusinessRuleViolation(
            f"Account {account.name} holds {account.currency}, not {currency}",
            details={"account_id": account_id},
        )
    return account


class BorrowingWorkflow:

    @staticmethod
    async def get_borrowing(db: AsyncSession, borrowing_id: int) -> Borrowing:
        borrowing = await db.get(Borrowing, borrowing_id)
        if not borrowing:
            raise ResourceNotFoundError("Borrowing", borrowing_id)
        return borrowing

    @staticmethod
    async def list_borrowings(
        db: AsyncSession,
        employee_id: Optional[int] = None,
        status: Optional[BorrowingStatus] = None,
    ) -> List[Borrowing]:
        query = select(Borrowing).order_by(Borrowing.borrow_date.desc(), Borrowing.id.desc())
        if employee_id:
            query = query.where(Borrowing.employee_id == employee_id)
        if status:
            query = query.where(Borrowing.status == BorrowingStatus(status))
        result = await db.execute(query)
        return result.scalars().all()

    @staticmethod
    async def get_repaid_total(db: AsyncSession, borrowing_id: int) -> int:
        total = await db.scalar(
            select(func.coalesce(func.sum(Repayment.amount_cents), 0)).where(
                Repayment.borrowing_id == borrowing_id
            )
        )
        return int(total or 0)

    @staticmethod
    async def get_repayments(db: AsyncSession, borrowing_id: int) -> List[Repayment]:
        await BorrowingWorkflow.get_borrowing(db, borrowing_id)
        result = await db.execute(
            select(Repayment).where(Repayment.borrowing_id == borrowing_id).order_by(Repayment.id)
        )
        return result.scalars().all()

    @staticmethod
    async def request(
        db: AsyncSession,
        employee_id: int,
        amount_cents: int,
        currency: str,
        actor_id: str,
        borrow_date: Optional[date] = None,
        memo: Optional[str] = None,
    ) -> Borrowing:
        """Create a pending borrowing request."""
        if amount_cents is None or amount_cents <= 0:
            raise ValidationError("Amount must be positive", details={"amount_cents": amount_cents})

        async with unit_of_work(db):
            if not await db.get(Employee, employee_id):
                raise ResourceNotFoundError("Employee", employee_id)
            if not await db.get(Currency, currency):
                raise ResourceNotFoundError("Currency", currency)
            borrowing = Borrowing(
                employee_id=employee_id,
                amount_cents=amount_cents,
                currency=currency,
                borrow_date=borrow_date or get_business_date(),
                memo=memo,
                status=BorrowingStatus.PENDING,
                version=0,
                requested_by=actor_id,
            )
            db.add(borrowing)
            await db.flush()
            await db.refresh(borrowing)

        await log_event(
            db, AuditAction.BORROWING_CREATED, actor_id=actor_id, entity_type=ENTITY,
            entity_id=borrowing.id, after=snapshot(borrowing, BORROWING_AUDIT_FIELDS),
        )
        return borrowing

    @staticmethod
    async def _transition(
        db: AsyncSession,
        borrowing_id: int,
        to_status: BorrowingStatus,
        actor_id: str,
        expected_version: Optional[int],
        values: dict,
    ) -> Borrowing:
        async with unit_of_work(db):
            borrowing = await BorrowingWorkflow.get_borrowing(db, borrowing_id)
            before = snapshot(borrowing, BORROWING_AUDIT_FIELDS)
            await apply_transition(
                db, BORROWING_STATE_MACHINE, Borrowing, borrowing, to_status, values, expected_version
            )

        await log_event(
            db, AuditAction.BORROWING_STATUS_CHANGED, actor_id=actor_id, entity_type=ENTITY,
            entity_id=borrowing.id, before=before, after=snapshot(borrowing, BORROWING_AUDIT_FIELDS),
        )
        return borrowing

    @staticmethod
    async def approve(
        db: AsyncSession, borrowing_id: int, actor_id: str, expected_version: Optional[int] = None
    ) -> Borrowing:
        return await BorrowingWorkflow._transition(
            db, borrowing_id, BorrowingStatus.APPROVED, actor_id, expected_version,
            {"approved_by": actor_id, "approved_at": utcnow()},
        )

    @staticmethod
    async def reject(
        db: AsyncSession,
        borrowing_id: int,
        actor_id: str,
        reason: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> Borrowing:
        return await BorrowingWorkflow._transition(
            db, borrowing_id, BorrowingStatus.REJECTED, actor_id, expected_version,
            {"rejected_by": actor_id, "rejected_at": utcnow(), "reject_reason": reason},
        )

    @staticmethod
    async def disburse(
        db: AsyncSession,
        borrowing_id: int,
        account_id: int,
        actor_id: str,
        biz_date: Optional[date] = None,
        expected_version: Optional[int] = None,
    ) -> Borrowing:
        """
        Pay out an approved borrowing.

        Posts an expense of the full amount from `account_id` (same
        currency as the borrowing) and moves the borrowing to outstanding.
        """
        biz_date = biz_date or get_business_date()

        async with unit_of_work(db):
            borrowing = await BorrowingWorkflow.get_borrowing(db, borrowing_id)
            before = snapshot(borrowing, BORROWING_AUDIT_FIELDS)
            BORROWING_STATE_MACHINE.validate_transition(borrowing.status, BorrowingStatus.OUTSTANDING)
            validate_version(borrowing.version, expected_version)
            await _currency_account(db, account_id, borrowing.currency)

            posting = await LedgerEngine.record_single_entry(
                db, account_id, biz_date, PostingKind.EXPENSE, borrowing.amount_cents,
                created_by=actor_id, category="borrowing",
                memo=f"Borrowing {borrowing.id} employee {borrowing.employee_id}",
            )
            await apply_transition(
                db, BORROWING_STATE_MACHINE, Borrowing, borrowing, BorrowingStatus.OUTSTANDING,
                {
                    "account_id": account_id,
                    "posting_id": posting.id,
                    "disbursed_by": actor_id,
                    "disbursed_at": utcnow(),
                },
                expected_version,
            )

        logger.info("Borrowing %s disbursed with %s", borrowing.id, posting.voucher_no)
        await log_event(
            db, AuditAction.BORROWING_STATUS_CHANGED, actor_id=actor_id, entity_type=ENTITY,
            entity_id=borrowing.id, before=before, after=snapshot(borrowing, BORROWING_AUDIT_FIELDS),
            metadata={"voucher_no": posting.voucher_no},
        )
        return borrowing

    @staticmethod
    async def record_repayment(
        db: AsyncSession,
        borrowing_id: int,
        amount_cents: int,
        account_id: int,
        actor_id: str,
        repay_date: Optional[date] = None,
        memo: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> Repayment:
        """
        Record a repayment.

        Posts an income into `account_id` and moves the borrowing to
        partial, or to repaid once the repaid total reaches the amount.
        Repaying more than the outstanding balance is rejected.
        """
        if amount_cents is None or amount_cents <= 0:
            raise ValidationError("Amount must be positive", details={"amount_cents": amount_cents})
        repay_date = repay_date or get_business_date()

        async with unit_of_work(db):
            borrowing = await BorrowingWorkflow.get_borrowing(db, borrowing_id)
            if borrowing.status not in (BorrowingStatus.OUTSTANDING, BorrowingStatus.PARTIAL):
                raise BusinessRuleViolation(
                    f"Borrowing in status {borrowing.status.value} does not accept repayments"
                )
            validate_version(borrowing.version, expected_version)
            before = snapshot(borrowing, BORROWING_AUDIT_FIELDS)

            repaid = await BorrowingWorkflow.get_repaid_total(db, borrowing_id)
            remaining = borrowing.amount_cents - repaid
            if amount_cents > remaining:
                raise BusinessRuleViolation(
                    "Repayment exceeds the outstanding balance",
                    details={"remaining_cents": remaining, "amount_cents": amount_cents},
                )
            await _currency_account(db, account_id, borrowing.currency)

            posting = await LedgerEngine.record_single_entry(
                db, account_id, repay_date, PostingKind.INCOME, amount_cents,
                created_by=actor_id, category="borrowing_repayment",
                memo=memo or f"Repayment of borrowing {borrowing.id}",
            )
            repayment = Repayment(
                borrowing_id=borrowing.id,
                account_id=account_id,
                amount_cents=amount_cents,
                currency=borrowing.currency,
                repay_date=repay_date,
                posting_id=posting.id,
                memo=memo,
                created_by=actor_id,
            )
            db.add(repayment)
            await db.flush()

            new_status = (
                BorrowingStatus.REPAID if repaid + amount_cents >= borrowing.amount_cents
                else BorrowingStatus.PARTIAL
            )
            if new_status != borrowing.status:
                await apply_transition(
                    db, BORROWING_STATE_MACHINE, Borrowing, borrowing, new_status, {}, expected_version
                )
            else:
                await compare_and_set(db, Borrowing, borrowing, {}, expected_version)

        await log_event(
            db, AuditAction.REPAYMENT_RECORDED, actor_id=actor_id, entity_type=ENTITY,
            entity_id=borrowing.id, before=before, after=snapshot(borrowing, BORROWING_AUDIT_FIELDS),
            metadata={"repayment_id": repayment.id, "amount_cents": amount_cents, "voucher_no": posting.voucher_no},
        )
        return repayment

    @staticmethod
    async def delete(
        db: AsyncSession, borrowing_id: int, actor_id: str, expected_version: Optional[int] = None
    ) -> None:
        """Delete a borrowing request that is still pending."""
        async with unit_of_work(db):
            borrowing = await BorrowingWorkflow.get_borrowing(db, borrowing_id)
            if borrowing.status != BorrowingStatus.PENDING:
                raise BusinessRuleViolation("Only pending borrowings can be deleted")
            before = snapshot(borrowing, BORROWING_AUDIT_FIELDS)
            await compare_and_delete(db, Borrowing, borrowing, BorrowingStatus.PENDING, expected_version)

        await log_event(
            db, AuditAction.BORROWING_DELETED, actor_id=actor_id, entity_type=ENTITY,
            entity_id=borrowing_id, before=before,
        )
