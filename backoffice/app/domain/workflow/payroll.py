"""
Salary Payment Workflow (Domain Logic).

Monthly salary generation, currency allocation and the approval chain:

    pending_employee_confirmation -> pending_finance_approval
    -> pending_payment -> pending_payment_confirmation -> completed

Allocation splits a salary across currencies/accounts. A request replaces
every allocation row and must reconcile to the salary within the
configured tolerance; finance approval waits until every row is approved.
Payment confirmation posts the disbursement to the ledger.
"""

import calendar
import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional, Sequence

from sqlalchemy import select, delete, func
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.app.core.clock import utcnow, get_business_date
from backoffice.app.core.config import settings
from backoffice.app.core.exceptions import (
    ResourceNotFoundError,
    BusinessRuleViolation,
    ValidationError,
)
from backoffice.app.core.state_machine import SALARY_PAYMENT_STATE_MACHINE
from backoffice.app.db.session import unit_of_work
from backoffice.app.domain.ledger.ledger_engine import LedgerEngine
from backoffice.app.domain.workflow.transitions import apply_transition, compare_and_set
from backoffice.app.models.account import Account
from backoffice.app.models.currency import Currency
from backoffice.app.models.employee import Employee, EmployeeSalary
from backoffice.app.models.leave import Leave
from backoffice.app.models.ledger_enums import PostingKind
from backoffice.app.models.salary_payment import SalaryPayment, SalaryPaymentAllocation
from backoffice.app.models.workflow_enums import (
    SalaryPaymentStatus,
    AllocationStatus,
    AllocationRowStatus,
    EmployeeStatus,
    SalaryType,
    LeaveStatus,
    LeaveType,
)
from backoffice.app.services.audit import log_event, AuditAction, snapshot

logger = logging.getLogger(__name__)

ENTITY = "salary_payment"
PAYMENT_AUDIT_FIELDS = ("status", "allocation_status", "salary_cents", "currency", "account_id", "version")

# One step back for each rollback-able status
ROLLBACK_TARGETS = {
    SalaryPaymentStatus.PENDING_FINANCE_APPROVAL: SalaryPaymentStatus.PENDING_EMPLOYEE_CONFIRMATION,
    SalaryPaymentStatus.PENDING_PAYMENT: SalaryPaymentStatus.PENDING_FINANCE_APPROVAL,
    SalaryPaymentStatus.PENDING_PAYMENT_CONFIRMATION: SalaryPaymentStatus.PENDING_PAYMENT,
}


@dataclass
class AllocationItem:
    currency: str
    amount_cents: int
    account_id: Optional[int] = None
    # Converts amount_cents into the payment currency
    exchange_rate: Optional[Decimal] = None


@dataclass
class GenerationResult:
    created: int = 0
    ids: List[int] = field(default_factory=list)


def overlap_days(start_a: date, end_a: date, start_b: date, end_b: date) -> int:
    """Inclusive day count shared by two date ranges (0 if disjoint)."""
    start = max(start_a, start_b)
    end = min(end_a, end_b)
    if end < start:
        return 0
    return (end - start).days + 1


def prorate(base_cents: int, work_days: int, days_in_month: int) -> int:
    """base * work_days / days_in_month, rounded half up."""
    value = Decimal(base_cents) * Decimal(work_days) / Decimal(days_in_month)
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class SalaryPaymentWorkflow:

    @staticmethod
    async def get_payment(db: AsyncSession, payment_id: int) -> SalaryPayment:
        payment = await db.get(SalaryPayment, payment_id)
        if not payment:
            raise ResourceNotFoundError("Salary payment", payment_id)
        return payment

    @staticmethod
    async def list_payments(
        db: AsyncSession,
        year: Optional[int] = None,
        month: Optional[int] = None,
        status: Optional[SalaryPaymentStatus] = None,
    ) -> List[SalaryPayment]:
        query = select(SalaryPayment).order_by(SalaryPayment.year.desc(), SalaryPayment.month.desc(), SalaryPayment.id)
        if year:
            query = query.where(SalaryPayment.year == year)
        if month:
            query = query.where(SalaryPayment.month == month)
        if status:
            query = query.where(SalaryPayment.status == SalaryPaymentStatus(status))
        result = await db.execute(query)
        return result.scalars().all()

    @staticmethod
    async def get_allocations(db: AsyncSession, payment_id: int) -> List[SalaryPaymentAllocation]:
        result = await db.execute(
            select(SalaryPaymentAllocation)
            .where(SalaryPaymentAllocation.salary_payment_id == payment_id)
            .order_by(SalaryPaymentAllocation.id)
        )
        return result.scalars().all()

    @staticmethod
    async def _deducted_leave_days(
        db: AsyncSession, employee_id: int, period_start: date, period_end: date
    ) -> int:
        result = await db.execute(
            select(Leave).where(
                Leave.employee_id == employee_id,
                Leave.status == LeaveStatus.APPROVED,
                Leave.leave_type != LeaveType.ANNUAL,
                Leave.start_date <= period_end,
                Leave.end_date >= period_start,
            )
        )
        return sum(
            overlap_days(leave.start_date, leave.end_date, period_start, period_end)
            for leave in result.scalars().all()
        )

    @staticmethod
    async def _base_salary(db: AsyncSession, employee: Employee) -> Optional[EmployeeSalary]:
        salary_type = SalaryType.REGULAR if employee.status == EmployeeStatus.REGULAR else SalaryType.PROBATION
        result = await db.execute(
            select(EmployeeSalary)
            .where(EmployeeSalary.employee_id == employee.id, EmployeeSalary.salary_type == salary_type)
            .order_by(EmployeeSalary.currency)
        )
        salaries = result.scalars().all()
        for salary in salaries:
            if salary.currency == settings.payroll_base_currency:
                return salary
        return salaries[0] if salaries else None

    @staticmethod
    async def generate(db: AsyncSession, year: int, month: int, actor_id: Optional[str] = None) -> GenerationResult:
        """
        Generate the month's salary payments.

        For every active employee who joined on or before the end of the
        month and has no payment for the period yet:

            work_days = days worked in the month (from the join day if
                        the employee joined this month)
                        - days of approved non-annual leave in that range
            salary    = base * work_days / days_in_month (half up)

        Employees with no salary base or a zero result are skipped.

        Args:
            db: Database session
            year: Target year
            month: Target month (1-12)
            actor_id: Actor id

        Returns:
            GenerationResult with the number and ids of created payments
        """
        if not 1 <= month <= 12:
            raise ValidationError("Month must be between 1 and 12", details={"month": month})
        if year < 1970:
            raise ValidationError("Year out of range", details={"year": year})

        days_in_month = calendar.monthrange(year, month)[1]
        month_start = date(year, month, 1)
        month_end = date(year, month, days_in_month)
        generated = GenerationResult()

        async with unit_of_work(db):
            existing = set(
                (
                    await db.execute(
                        select(SalaryPayment.employee_id).where(
                            SalaryPayment.year == year, SalaryPayment.month == month
                        )
                    )
                ).scalars().all()
            )
            employees = (
                await db.execute(
                    select(Employee)
                    .where(Employee.active.is_(True), Employee.join_date <= month_end)
                    .order_by(Employee.id)
                )
            ).scalars().all()

            for employee in employees:
                if employee.id in existing:
                    continue

                base = await SalaryPaymentWorkflow._base_salary(db, employee)
                if base is None:
                    logger.warning("Employee %s has no salary base, skipped", employee.id)
                    continue

                work_start = max(employee.join_date, month_start)
                work_days = (month_end - work_start).days + 1
                work_days -= await SalaryPaymentWorkflow._deducted_leave_days(
                    db, employee.id, work_start, month_end
                )
                work_days = max(work_days, 0)

                salary_cents = prorate(base.amount_cents, work_days, days_in_month)
                if salary_cents <= 0:
                    continue

                payment = SalaryPayment(
                    employee_id=employee.id,
                    year=year,
                    month=month,
                    salary_cents=salary_cents,
                    currency=base.currency,
                    work_days=work_days,
                    days_in_month=days_in_month,
                    status=SalaryPaymentStatus.PENDING_EMPLOYEE_CONFIRMATION,
                    allocation_status=AllocationStatus.NONE,
                    version=0,
                    generated_by=actor_id,
                )
                db.add(payment)
                await db.flush()
                generated.ids.append(payment.id)

            generated.created = len(generated.ids)

        logger.info("Generated %s salary payments for %04d-%02d", generated.created, year, month)
        if generated.created:
            await log_event(
                db, AuditAction.SALARY_GENERATED, actor_id=actor_id, entity_type=ENTITY,
                metadata={"year": year, "month": month, "ids": generated.ids},
            )
        return generated

    @staticmethod
    async def _transition(
        db: AsyncSession,
        payment_id: int,
        to_status: SalaryPaymentStatus,
        actor_id: Optional[str],
        expected_version: Optional[int],
        values: dict,
        action: str = AuditAction.SALARY_STATUS_CHANGED,
    ) -> SalaryPayment:
        async with unit_of_work(db):
            payment = await SalaryPaymentWorkflow.get_payment(db, payment_id)
            before = snapshot(payment, PAYMENT_AUDIT_FIELDS)
            await apply_transition(
                db, SALARY_PAYMENT_STATE_MACHINE, SalaryPayment, payment, to_status, values, expected_version
            )

        await log_event(
            db, action, actor_id=actor_id, entity_type=ENTITY, entity_id=payment.id,
            before=before, after=snapshot(payment, PAYMENT_AUDIT_FIELDS),
        )
        return payment

    @staticmethod
    async def employee_confirm(
        db: AsyncSession, payment_id: int, actor_id: str, expected_version: Optional[int] = None
    ) -> SalaryPayment:
        """Employee accepts the generated amount."""
        return await SalaryPaymentWorkflow._transition(
            db,
            payment_id,
            SalaryPaymentStatus.PENDING_FINANCE_APPROVAL,
            actor_id,
            expected_version,
            {"employee_confirmed_by": actor_id, "employee_confirmed_at": utcnow()},
        )

    @staticmethod
    async def request_allocation(
        db: AsyncSession,
        payment_id: int,
        items: Sequence[AllocationItem],
        actor_id: str,
        expected_version: Optional[int] = None,
    ) -> List[SalaryPaymentAllocation]:
        """
        Replace a payment's allocation rows.

        Each amount is converted into the payment currency with its
        exchange rate (default 1). The converted total must lie within
        payroll_allocation_tolerance of the salary, otherwise nothing is
        written.

        Returns:
            The new allocation rows, all pending

        Raises:
            BusinessRuleViolation: reconciliation fails, payment already
                finance-approved, or account/currency mismatch
            ResourceNotFoundError: unknown currency or account
        """
        if not items:
            raise ValidationError("At least one allocation is required")
        for item in items:
            if item.amount_cents is None or item.amount_cents <= 0:
                raise ValidationError("Allocation amounts must be positive")
            if item.exchange_rate is not None and Decimal(item.exchange_rate) <= 0:
                raise ValidationError("Exchange rate must be positive")

        async with unit_of_work(db):
            payment = await SalaryPaymentWorkflow.get_payment(db, payment_id)
            if payment.status not in (
                SalaryPaymentStatus.PENDING_EMPLOYEE_CONFIRMATION,
                SalaryPaymentStatus.PENDING_FINANCE_APPROVAL,
            ):
                raise BusinessRuleViolation(
                    "Allocation can only be requested before finance approval",
                    details={"status": payment.status.value},
                )
            before = snapshot(payment, PAYMENT_AUDIT_FIELDS)

            converted_total = Decimal(0)
            rates = []
            for item in items:
                if not await db.get(Currency, item.currency):
                    raise ResourceNotFoundError("Currency", item.currency)
                if item.account_id is not None:
                    account = await db.get(Account, item.account_id)
                    if not account:
                        raise ResourceNotFoundError("Account", item.account_id)
                    if account.currency != item.currency:
                        raise BusinessRuleViolation(
                            f"Account {account.name} holds {account.currency}, not {item.currency}",
                            details={"account_id": account.id},
                        )
                if item.currency == payment.currency:
                    if item.exchange_rate is not None and Decimal(str(item.exchange_rate)) != 1:
                        raise BusinessRuleViolation(
                            f"{item.currency} is the payment currency and takes no exchange rate",
                            details={"currency": item.currency, "exchange_rate": str(item.exchange_rate)},
                        )
                    rate = Decimal(1)
                elif item.exchange_rate is not None:
                    rate = Decimal(str(item.exchange_rate))
                else:
                    rate = Decimal(1)
                    logger.warning(
                        "No exchange rate for %s -> %s on payment %s, assuming 1",
                        item.currency, payment.currency, payment.id,
                    )
                rates.append(rate)
                converted_total += Decimal(item.amount_cents) * rate

            tolerance = Decimal(payment.salary_cents) * Decimal(str(settings.payroll_allocation_tolerance))
            difference = abs(converted_total - Decimal(payment.salary_cents))
            if difference > tolerance:
                raise BusinessRuleViolation(
                    "Allocations do not reconcile to the salary amount",
                    details={
                        "salary_cents": payment.salary_cents,
                        "allocated_cents": str(converted_total),
                        "tolerance_cents": str(tolerance),
                    },
                )

            await db.execute(
                delete(SalaryPaymentAllocation)
                .where(SalaryPaymentAllocation.salary_payment_id == payment.id)
                .execution_options(synchronize_session=False)
            )
            now = utcnow()
            allocations = []
            for item, rate in zip(items, rates):
                allocation = SalaryPaymentAllocation(
                    salary_payment_id=payment.id,
                    currency=item.currency,
                    amount_cents=item.amount_cents,
                    exchange_rate=rate,
                    account_id=item.account_id,
                    status=AllocationRowStatus.PENDING,
                    requested_by=actor_id,
                    requested_at=now,
                )
                db.add(allocation)
                allocations.append(allocation)
            await db.flush()

            await compare_and_set(
                db, SalaryPayment, payment, {"allocation_status": AllocationStatus.REQUESTED}, expected_version
            )

        await log_event(
            db, AuditAction.ALLOCATION_REQUESTED, actor_id=actor_id, entity_type=ENTITY,
            entity_id=payment.id, before=before, after=snapshot(payment, PAYMENT_AUDIT_FIELDS),
            metadata={"allocations": [
                {"currency": a.currency, "amount_cents": a.amount_cents, "account_id": a.account_id}
                for a in allocations
            ]},
        )
        return allocations

    @staticmethod
    async def _decide_allocations(
        db: AsyncSession,
        payment: SalaryPayment,
        new_status: AllocationRowStatus,
        actor_id: str,
        allocation_ids: Optional[Sequence[int]],
        select_all: bool,
    ) -> int:
        if payment.allocation_status != AllocationStatus.REQUESTED:
            raise BusinessRuleViolation(
                "No allocation request is awaiting a decision",
                details={"allocation_status": payment.allocation_status.value},
            )
        if not select_all and not allocation_ids:
            raise ValidationError("Specify allocation ids or select all")

        query = select(SalaryPaymentAllocation).where(
            SalaryPaymentAllocation.salary_payment_id == payment.id,
            SalaryPaymentAllocation.status == AllocationRowStatus.PENDING,
        )
        if not select_all:
            query = query.where(SalaryPaymentAllocation.id.in_(list(allocation_ids)))
        rows = (await db.execute(query)).scalars().all()
        if not select_all and len(rows) != len(set(allocation_ids)):
            raise ValidationError(
                "Some allocations do not exist, belong to another payment or are already decided",
                details={"allocation_ids": list(allocation_ids)},
            )

        now = utcnow()
        for row in rows:
            row.status = new_status
            row.approved_by = actor_id
            row.approved_at = now
        await db.flush()
        return len(rows)

    @staticmethod
    async def approve_allocation(
        db: AsyncSession,
        payment_id: int,
        actor_id: str,
        allocation_ids: Optional[Sequence[int]] = None,
        approve_all: bool = False,
        expected_version: Optional[int] = None,
    ) -> SalaryPayment:
        """
        Approve pending allocation rows.

        When no row of the payment is left pending, the payment's
        allocation_status becomes approved.
        """
        async with unit_of_work(db):
            payment = await SalaryPaymentWorkflow.get_payment(db, payment_id)
            before = snapshot(payment, PAYMENT_AUDIT_FIELDS)
            approved = await SalaryPaymentWorkflow._decide_allocations(
                db, payment, AllocationRowStatus.APPROVED, actor_id, allocation_ids, approve_all
            )

            pending = await db.scalar(
                select(func.count(SalaryPaymentAllocation.id)).where(
                    SalaryPaymentAllocation.salary_payment_id == payment.id,
                    SalaryPaymentAllocation.status == AllocationRowStatus.PENDING,
                )
            )
            values = {"allocation_status": AllocationStatus.APPROVED} if not pending else {}
            await compare_and_set(db, SalaryPayment, payment, values, expected_version)

        await log_event(
            db, AuditAction.ALLOCATION_APPROVED, actor_id=actor_id, entity_type=ENTITY,
            entity_id=payment.id, before=before, after=snapshot(payment, PAYMENT_AUDIT_FIELDS),
            metadata={"approved_rows": approved, "remaining_pending": pending},
        )
        return payment

    @staticmethod
    async def reject_allocation(
        db: AsyncSession,
        payment_id: int,
        allocation_ids: Sequence[int],
        actor_id: str,
        expected_version: Optional[int] = None,
    ) -> SalaryPayment:
        """
        Reject pending allocation rows.

        A rejected row blocks finance approval until a new allocation
        request replaces the set.
        """
        async with unit_of_work(db):
            payment = await SalaryPaymentWorkflow.get_payment(db, payment_id)
            before = snapshot(payment, PAYMENT_AUDIT_FIELDS)
            rejected = await SalaryPaymentWorkflow._decide_allocations(
                db, payment, AllocationRowStatus.REJECTED, actor_id, allocation_ids, False
            )
            await compare_and_set(db, SalaryPayment, payment, {}, expected_version)

        await log_event(
            db, AuditAction.ALLOCATION_REJECTED, actor_id=actor_id, entity_type=ENTITY,
            entity_id=payment.id, before=before, after=snapshot(payment, PAYMENT_AUDIT_FIELDS),
            metadata={"rejected_rows": rejected},
        )
        return payment

    @staticmethod
    async def finance_approve(
        db: AsyncSession, payment_id: int, actor_id: str, expected_version: Optional[int] = None
    ) -> SalaryPayment:
        """
        Finance approves the payment for disbursement.

        Blocked while an allocation request is undecided, and while any
        row of an approved allocation is not approved.
        """
        async with unit_of_work(db):
            payment = await SalaryPaymentWorkflow.get_payment(db, payment_id)
            if payment.allocation_status == AllocationStatus.REQUESTED:
                raise BusinessRuleViolation("Allocation request is still awaiting approval")
            if payment.allocation_status == AllocationStatus.APPROVED:
                not_approved = await db.scalar(
                    select(func.count(SalaryPaymentAllocation.id)).where(
                        SalaryPaymentAllocation.salary_payment_id == payment.id,
                        SalaryPaymentAllocation.status != AllocationRowStatus.APPROVED,
                    )
                )
                if not_approved:
                    raise BusinessRuleViolation(
                        "Not every allocation is approved", details={"not_approved": not_approved}
                    )
            before = snapshot(payment, PAYMENT_AUDIT_FIELDS)
            await apply_transition(
                db,
                SALARY_PAYMENT_STATE_MACHINE,
                SalaryPayment,
                payment,
                SalaryPaymentStatus.PENDING_PAYMENT,
                {"finance_approved_by": actor_id, "finance_approved_at": utcnow()},
                expected_version,
            )

        await log_event(
            db, AuditAction.SALARY_STATUS_CHANGED, actor_id=actor_id, entity_type=ENTITY,
            entity_id=payment.id, before=before, after=snapshot(payment, PAYMENT_AUDIT_FIELDS),
        )
        return payment

    @staticmethod
    async def payment_transfer(
        db: AsyncSession,
        payment_id: int,
        account_id: int,
        actor_id: str,
        expected_version: Optional[int] = None,
    ) -> SalaryPayment:
        """Record which account the salary is paid from."""
        async with unit_of_work(db):
            account = await db.get(Account, account_id)
            if not account:
                raise ResourceNotFoundError("Account", account_id)
            if not account.active:
                raise BusinessRuleViolation(f"Account {account.name} is inactive")

            payment = await SalaryPaymentWorkflow.get_payment(db, payment_id)
            before = snapshot(payment, PAYMENT_AUDIT_FIELDS)
            await apply_transition(
                db,
                SALARY_PAYMENT_STATE_MACHINE,
                SalaryPayment,
                payment,
                SalaryPaymentStatus.PENDING_PAYMENT_CONFIRMATION,
                {
                    "account_id": account_id,
                    "payment_transferred_by": actor_id,
                    "payment_transferred_at": utcnow(),
                },
                expected_version,
            )

        await log_event(
            db, AuditAction.SALARY_STATUS_CHANGED, actor_id=actor_id, entity_type=ENTITY,
            entity_id=payment.id, before=before, after=snapshot(payment, PAYMENT_AUDIT_FIELDS),
        )
        return payment

    @staticmethod
    async def payment_confirm(
        db: AsyncSession,
        payment_id: int,
        actor_id: str,
        voucher_path: Optional[str] = None,
        biz_date: Optional[date] = None,
        expected_version: Optional[int] = None,
    ) -> SalaryPayment:
        """
        Confirm receipt and post the disbursement.

        With an approved allocation, one expense is posted per approved row,
        from the row's account or else the payment account (currencies must
        match). Without allocation, one expense of the full salary is posted
        from the payment account. Posting and completion commit together.
        """
        biz_date = biz_date or get_business_date()

        async with unit_of_work(db):
            payment = await SalaryPaymentWorkflow.get_payment(db, payment_id)
            before = snapshot(payment, PAYMENT_AUDIT_FIELDS)
            await apply_transition(
                db,
                SALARY_PAYMENT_STATE_MACHINE,
                SalaryPayment,
                payment,
                SalaryPaymentStatus.COMPLETED,
                {
                    "payment_voucher_path": voucher_path,
                    "payment_confirmed_by": actor_id,
                    "payment_confirmed_at": utcnow(),
                },
                expected_version,
            )

            memo = f"Salary {payment.year:04d}-{payment.month:02d} employee {payment.employee_id}"
            vouchers = [voucher_path] if voucher_path else None
            postings = []
            if payment.allocation_status == AllocationStatus.APPROVED:
                allocations = (
                    await db.execute(
                        select(SalaryPaymentAllocation).where(
                            SalaryPaymentAllocation.salary_payment_id == payment.id,
                            SalaryPaymentAllocation.status == AllocationRowStatus.APPROVED,
                        ).order_by(SalaryPaymentAllocation.id)
                    )
                ).scalars().all()
                for allocation in allocations:
                    account_id = allocation.account_id or payment.account_id
                    account = await db.get(Account, account_id) if account_id else None
                    if account is None:
                        raise BusinessRuleViolation(
                            "No account to pay the allocation from",
                            details={"allocation_id": allocation.id},
                        )
                    if account.currency != allocation.currency:
                        raise BusinessRuleViolation(
                            f"Account {account.name} holds {account.currency}, not {allocation.currency}",
                            details={"allocation_id": allocation.id},
                        )
                    posting = await LedgerEngine.record_single_entry(
                        db, account.id, biz_date, PostingKind.EXPENSE, allocation.amount_cents,
                        created_by=actor_id, category="salary", memo=memo, voucher_urls=vouchers,
                    )
                    allocation.posting_id = posting.id
                    postings.append(posting)
            else:
                account = await db.get(Account, payment.account_id) if payment.account_id else None
                if account is None:
                    raise BusinessRuleViolation("Payment has no disbursement account")
                if account.currency != payment.currency:
                    raise BusinessRuleViolation(
                        f"Account {account.name} holds {account.currency}, not {payment.currency}"
                    )
                postings.append(
                    await LedgerEngine.record_single_entry(
                        db, account.id, biz_date, PostingKind.EXPENSE, payment.salary_cents,
                        created_by=actor_id, category="salary", memo=memo, voucher_urls=vouchers,
                    )
                )
            await db.flush()

        logger.info("Salary payment %s completed with %s postings", payment.id, len(postings))
        await log_event(
            db, AuditAction.SALARY_STATUS_CHANGED, actor_id=actor_id, entity_type=ENTITY,
            entity_id=payment.id, before=before, after=snapshot(payment, PAYMENT_AUDIT_FIELDS),
            metadata={"vouchers": [p.voucher_no for p in postings]},
        )
        return payment

    @staticmethod
    async def rollback(
        db: AsyncSession,
        payment_id: int,
        reason: str,
        actor_id: str,
        expected_version: Optional[int] = None,
    ) -> SalaryPayment:
        """Send a payment one step back. Completed and deleted payments cannot roll back."""
        if not reason:
            raise ValidationError("A rollback reason is required")

        async with unit_of_work(db):
            payment = await SalaryPaymentWorkflow.get_payment(db, payment_id)
            target = ROLLBACK_TARGETS.get(payment.status)
            if target is None:
                raise BusinessRuleViolation(
                    f"Payments in status {payment.status.value} cannot be rolled back"
                )
            before = snapshot(payment, PAYMENT_AUDIT_FIELDS)
            await apply_transition(
                db,
                SALARY_PAYMENT_STATE_MACHINE,
                SalaryPayment,
                payment,
                target,
                {"rollback_reason": reason, "rollback_by": actor_id, "rollback_at": utcnow()},
                expected_version,
            )

        await log_event(
            db, AuditAction.SALARY_ROLLED_BACK, actor_id=actor_id, entity_type=ENTITY,
            entity_id=payment.id, before=before, after=snapshot(payment, PAYMENT_AUDIT_FIELDS),
            metadata={"reason": reason},
        )
        return payment

    @staticmethod
    async def delete(
        db: AsyncSession, payment_id: int, actor_id: str, expected_version: Optional[int] = None
    ) -> SalaryPayment:
        """
        Delete a payment that the employee has not confirmed yet.

        The row is kept in status deleted so the period stays reserved and
        the history is auditable. Its allocation rows are removed.
        """
        async with unit_of_work(db):
            payment = await SalaryPaymentWorkflow.get_payment(db, payment_id)
            before = snapshot(payment, PAYMENT_AUDIT_FIELDS)
            await apply_transition(
                db,
                SALARY_PAYMENT_STATE_MACHINE,
                SalaryPayment,
                payment,
                SalaryPaymentStatus.DELETED,
                {"allocation_status": AllocationStatus.NONE},
                expected_version,
            )
            await db.execute(
                delete(SalaryPaymentAllocation)
                .where(SalaryPaymentAllocation.salary_payment_id == payment.id)
                .execution_options(synchronize_session=False)
            )

        await log_event(
            db, AuditAction.SALARY_DELETED, actor_id=actor_id, entity_type=ENTITY,
            entity_id=payment.id, before=before, after=snapshot(payment, PAYMENT_AUDIT_FIELDS),
        )
        return payment
