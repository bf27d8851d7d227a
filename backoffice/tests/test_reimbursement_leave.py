"""
Reimbursement and leave workflow tests.
"""

import pytest
from datetime import date
from decimal import Decimal

from backoffice.app.core.exceptions import (
    BusinessRuleViolation,
    ConcurrentModificationError,
    InvalidTransitionError,
    ValidationError,
)
from backoffice.app.domain.ledger.ledger_engine import LedgerEngine
from backoffice.app.domain.workflow.employees import EmployeeService
from backoffice.app.domain.workflow.leave import LeaveWorkflow
from backoffice.app.domain.workflow.reimbursement import ReimbursementWorkflow
from backoffice.app.models.workflow_enums import ReimbursementStatus, LeaveStatus, LeaveType

ACTOR = "finance.tester"


@pytest.fixture
async def employee(db_session):
    return await EmployeeService.create_employee(db_session, "Carol", date(2022, 1, 1))


@pytest.mark.asyncio
async def test_reimbursement_paid_posts_expense(db_session, employee, funded_account):
    claim = await ReimbursementWorkflow.create(
        db_session, employee.id, "travel", 12_345, "USDT", ACTOR,
        expense_date=date(2023, 4, 2), voucher_url="s3://receipts/taxi.jpg",
    )
    await ReimbursementWorkflow.approve(db_session, claim.id, ACTOR, expected_version=0)

    paid = await ReimbursementWorkflow.pay(
        db_session, claim.id, funded_account.id, ACTOR, biz_date=date(2023, 4, 5), expected_version=1
    )

    assert paid.status == ReimbursementStatus.PAID
    assert paid.version == 2
    snapshot = await LedgerEngine.get_snapshot(db_session, paid.posting_id)
    assert snapshot.amount_cents == -12_345
    assert await LedgerEngine.get_current_balance(db_session, funded_account.id) == 100_000_000 - 12_345


@pytest.mark.asyncio
async def test_reimbursement_cannot_be_paid_twice_or_unapproved(db_session, employee, funded_account):
    claim = await ReimbursementWorkflow.create(db_session, employee.id, "meals", 1_000, "USDT", ACTOR)
    claim_id, account_id = claim.id, funded_account.id

    with pytest.raises(InvalidTransitionError):
        await ReimbursementWorkflow.pay(db_session, claim_id, account_id, ACTOR)

    await ReimbursementWorkflow.approve(db_session, claim_id, ACTOR)
    await ReimbursementWorkflow.pay(db_session, claim_id, account_id, ACTOR)
    with pytest.raises(InvalidTransitionError):
        await ReimbursementWorkflow.pay(db_session, claim_id, account_id, ACTOR)

    assert await LedgerEngine.get_current_balance(db_session, account_id) == 100_000_000 - 1_000


@pytest.mark.asyncio
async def test_approved_reimbursement_cannot_be_rejected_or_deleted(db_session, employee, usdt):
    claim = await ReimbursementWorkflow.create(db_session, employee.id, "meals", 1_000, "USDT", ACTOR)
    claim_id = claim.id
    await ReimbursementWorkflow.approve(db_session, claim_id, ACTOR)

    with pytest.raises(InvalidTransitionError):
        await ReimbursementWorkflow.reject(db_session, claim_id, ACTOR, expected_version=0)

    with pytest.raises(BusinessRuleViolation):
        await ReimbursementWorkflow.delete(db_session, claim_id, ACTOR)


@pytest.mark.asyncio
async def test_leave_days_default_to_calendar_range(db_session, employee):
    leave = await LeaveWorkflow.request(
        db_session, employee.id, LeaveType.SICK, date(2023, 1, 30), date(2023, 2, 2), ACTOR
    )

    assert leave.days == Decimal(4)
    assert leave.status == LeaveStatus.PENDING


@pytest.mark.asyncio
async def test_leave_validation(db_session, employee):
    with pytest.raises(ValidationError):
        await LeaveWorkflow.request(db_session, employee.id, LeaveType.SICK, date(2023, 1, 5), date(2023, 1, 4), ACTOR)
    with pytest.raises(ValidationError):
        await LeaveWorkflow.request(
            db_session, employee.id, LeaveType.SICK, date(2023, 1, 5), date(2023, 1, 5), ACTOR, days=Decimal(0)
        )


@pytest.mark.asyncio
async def test_leave_decisions_are_final(db_session, employee):
    leave = await LeaveWorkflow.request(
        db_session, employee.id, LeaveType.PERSONAL, date(2023, 1, 5), date(2023, 1, 5), ACTOR,
        days=Decimal("0.5"),
    )
    leave_id = leave.id
    approved = await LeaveWorkflow.approve(db_session, leave_id, ACTOR, expected_version=0)
    assert approved.status == LeaveStatus.APPROVED
    assert approved.version == 1

    with pytest.raises(InvalidTransitionError):
        await LeaveWorkflow.reject(db_session, leave_id, ACTOR)
    with pytest.raises(BusinessRuleViolation):
        await LeaveWorkflow.delete(db_session, leave_id, ACTOR)


@pytest.mark.asyncio
async def test_leave_stale_version_rejected(db_session, employee):
    leave = await LeaveWorkflow.request(
        db_session, employee.id, LeaveType.SICK, date(2023, 1, 5), date(2023, 1, 6), ACTOR
    )
    leave_id = leave.id

    with pytest.raises(ConcurrentModificationError):
        await LeaveWorkflow.approve(db_session, leave_id, ACTOR, expected_version=5)

    leave = await LeaveWorkflow.get_leave(db_session, leave_id)
    assert leave.status == LeaveStatus.PENDING
    assert leave.version == 0
