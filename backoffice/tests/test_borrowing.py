"""
Employee borrowing workflow tests.
"""

import pytest
from datetime import date

from backoffice.app.core.exceptions import (
    BusinessRuleViolation,
    InvalidTransitionError,
    ResourceNotFoundError,
)
from backoffice.app.domain.ledger.accounts import AccountService
from backoffice.app.domain.ledger.ledger_engine import LedgerEngine
from backoffice.app.domain.workflow.borrowing import BorrowingWorkflow
from backoffice.app.domain.workflow.employees import EmployeeService
from backoffice.app.models.ledger_enums import PostingKind
from backoffice.app.models.workflow_enums import BorrowingStatus

ACTOR = "finance.tester"
DAY = date(2023, 3, 1)


@pytest.fixture
async def employee(db_session):
    return await EmployeeService.create_employee(db_session, "Bob", date(2022, 1, 1))


@pytest.fixture
async def disbursed(db_session, employee, funded_account):
    borrowing = await BorrowingWorkflow.request(db_session, employee.id, 10_000, "USDT", ACTOR, borrow_date=DAY)
    await BorrowingWorkflow.approve(db_session, borrowing.id, ACTOR)
    return await BorrowingWorkflow.disburse(db_session, borrowing.id, funded_account.id, ACTOR, biz_date=DAY)


@pytest.mark.asyncio
async def test_disburse_posts_expense(db_session, disbursed, funded_account):
    assert disbursed.status == BorrowingStatus.OUTSTANDING
    assert disbursed.version == 2
    assert disbursed.account_id == funded_account.id

    snapshot = await LedgerEngine.get_snapshot(db_session, disbursed.posting_id)
    assert snapshot.kind == PostingKind.EXPENSE
    assert snapshot.amount_cents == -10_000


@pytest.mark.asyncio
async def test_repayments_move_to_partial_then_repaid(db_session, disbursed, funded_account):
    borrowing_id = disbursed.id
    await BorrowingWorkflow.record_repayment(db_session, borrowing_id, 4_000, funded_account.id, ACTOR, repay_date=DAY)
    borrowing = await BorrowingWorkflow.get_borrowing(db_session, borrowing_id)
    assert borrowing.status == BorrowingStatus.PARTIAL

    await BorrowingWorkflow.record_repayment(db_session, borrowing_id, 3_000, funded_account.id, ACTOR, repay_date=DAY)
    borrowing = await BorrowingWorkflow.get_borrowing(db_session, borrowing_id)
    assert borrowing.status == BorrowingStatus.PARTIAL
    assert borrowing.version == 4

    await BorrowingWorkflow.record_repayment(db_session, borrowing_id, 3_000, funded_account.id, ACTOR, repay_date=DAY)
    borrowing = await BorrowingWorkflow.get_borrowing(db_session, borrowing_id)
    assert borrowing.status == BorrowingStatus.REPAID
    assert await BorrowingWorkflow.get_repaid_total(db_session, borrowing_id) == 10_000

    repayments = await BorrowingWorkflow.get_repayments(db_session, borrowing_id)
    assert [r.amount_cents for r in repayments] == [4_000, 3_000, 3_000]
    # Net effect on the account is zero
    assert await LedgerEngine.get_current_balance(db_session, funded_account.id) == 100_000_000


@pytest.mark.asyncio
async def test_over_repayment_rejected(db_session, disbursed, funded_account):
    borrowing_id, account_id = disbursed.id, funded_account.id

    with pytest.raises(BusinessRuleViolation):
        await BorrowingWorkflow.record_repayment(db_session, borrowing_id, 10_001, account_id, ACTOR, repay_date=DAY)

    assert await BorrowingWorkflow.get_repaid_total(db_session, borrowing_id) == 0


@pytest.mark.asyncio
async def test_repayment_account_must_match_currency(db_session, disbursed, cny):
    cny_account = await AccountService.create_account(db_session, "CNY cash", "CNY")

    with pytest.raises(BusinessRuleViolation):
        await BorrowingWorkflow.record_repayment(db_session, disbursed.id, 1_000, cny_account.id, ACTOR)


@pytest.mark.asyncio
async def test_disburse_requires_approval(db_session, employee, funded_account):
    borrowing = await BorrowingWorkflow.request(db_session, employee.id, 10_000, "USDT", ACTOR)
    borrowing_id = borrowing.id
    account_id = funded_account.id

    with pytest.raises(InvalidTransitionError):
        await BorrowingWorkflow.disburse(db_session, borrowing_id, account_id, ACTOR)

    assert await LedgerEngine.get_current_balance(db_session, account_id) == 100_000_000


@pytest.mark.asyncio
async def test_reject_and_delete(db_session, employee, usdt):
    employee_id = employee.id
    rejected = await BorrowingWorkflow.request(db_session, employee_id, 500, "USDT", ACTOR)
    rejected = await BorrowingWorkflow.reject(db_session, rejected.id, ACTOR, reason="Policy")
    assert rejected.status == BorrowingStatus.REJECTED
    rejected_id = rejected.id

    with pytest.raises(BusinessRuleViolation):
        await BorrowingWorkflow.delete(db_session, rejected_id, ACTOR)

    pending = await BorrowingWorkflow.request(db_session, employee_id, 500, "USDT", ACTOR)
    pending_id = pending.id
    await BorrowingWorkflow.delete(db_session, pending_id, ACTOR)
    with pytest.raises(ResourceNotFoundError):
        await BorrowingWorkflow.get_borrowing(db_session, pending_id)
