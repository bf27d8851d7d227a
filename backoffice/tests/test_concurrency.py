"""
Concurrency Tests.

Validates that stale writers are rejected instead of overwriting each
other, and that numbering races surface as conflicts.
"""

import pytest
from datetime import date
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.app.core.exceptions import ConcurrentModificationError, DuplicateResourceError
from backoffice.app.db.session import unit_of_work
from backoffice.app.domain.ledger.accounts import AccountService
from backoffice.app.domain.ledger.ledger_engine import LedgerEngine
from backoffice.app.domain.workflow.employees import EmployeeService
from backoffice.app.domain.workflow.leave import LeaveWorkflow
from backoffice.app.domain.workflow.payroll import SalaryPaymentWorkflow, AllocationItem
from backoffice.app.domain.workflow.reimbursement import ReimbursementWorkflow
from backoffice.app.domain.workflow.transitions import compare_and_set
from backoffice.app.models.ledger_enums import PostingKind
from backoffice.app.models.leave import Leave
from backoffice.app.models.reimbursement import Reimbursement
from backoffice.app.models.workflow_enums import (
    SalaryPaymentStatus,
    SalaryType,
    LeaveType,
    LeaveStatus,
    ReimbursementStatus,
)

ACTOR = "finance.tester"


async def _payment_at_version_3(db_session):
    employee = await EmployeeService.create_employee(db_session, "Dana", date(2022, 1, 1))
    await EmployeeService.set_salary(db_session, employee.id, SalaryType.PROBATION, "USDT", 100_000)
    result = await SalaryPaymentWorkflow.generate(db_session, 2023, 1)
    payment_id = result.ids[0]
    await SalaryPaymentWorkflow.employee_confirm(db_session, payment_id, "dana", expected_version=0)
    await SalaryPaymentWorkflow.request_allocation(
        db_session, payment_id, [AllocationItem("USDT", 100_000)], ACTOR, expected_version=1
    )
    await SalaryPaymentWorkflow.approve_allocation(
        db_session, payment_id, ACTOR, approve_all=True, expected_version=2
    )
    return payment_id


@pytest.mark.asyncio
async def test_current_version_advances(db_session, usdt):
    payment_id = await _payment_at_version_3(db_session)

    payment = await SalaryPaymentWorkflow.finance_approve(db_session, payment_id, ACTOR, expected_version=3)

    assert payment.version == 4
    assert payment.status == SalaryPaymentStatus.PENDING_PAYMENT


@pytest.mark.asyncio
async def test_stale_version_changes_nothing(db_session, usdt):
    payment_id = await _payment_at_version_3(db_session)

    with pytest.raises(ConcurrentModificationError) as exc_info:
        await SalaryPaymentWorkflow.finance_approve(db_session, payment_id, ACTOR, expected_version=2)

    assert exc_info.value.status_code == 409
    assert exc_info.value.details == {"current_version": 3, "expected_version": 2}

    payment = await SalaryPaymentWorkflow.get_payment(db_session, payment_id)
    assert payment.version == 3
    assert payment.status == SalaryPaymentStatus.PENDING_FINANCE_APPROVAL
    assert payment.finance_approved_by is None


@pytest.mark.asyncio
async def test_compare_and_set_detects_concurrent_writer(db_session):
    """A writer that read before another writer committed loses."""
    employee = await EmployeeService.create_employee(db_session, "Eve", date(2022, 1, 1))
    leave = await LeaveWorkflow.request(
        db_session, employee.id, LeaveType.SICK, date(2023, 1, 2), date(2023, 1, 2), ACTOR
    )
    leave_id = leave.id
    assert leave.version == 0

    # Someone else bumps the row; our loaded instance still says version 0
    async with unit_of_work(db_session):
        await db_session.execute(
            update(Leave)
            .where(Leave.id == leave_id)
            .values(version=1, memo="edited elsewhere")
            .execution_options(synchronize_session=False)
        )
    assert leave.version == 0

    with pytest.raises(ConcurrentModificationError) as exc_info:
        async with unit_of_work(db_session):
            await compare_and_set(db_session, Leave, leave, {"memo": "ours"})

    assert exc_info.value.current_version == 1
    stored = await db_session.get(Leave, leave_id, populate_existing=True)
    assert stored.memo == "edited elsewhere"


@pytest.mark.asyncio
async def test_account_edit_conflicts_with_posting(db_session, account):
    """Postings bump the account version, so an edit based on an older read is refused."""
    account_id = account.id
    assert account.version == 1
    await LedgerEngine.post_single_entry(db_session, account_id, PostingKind.INCOME, 100, biz_date=date(2023, 1, 1))

    with pytest.raises(ConcurrentModificationError):
        await AccountService.update_account(db_session, account_id, {"alias": "ops"}, expected_version=1)

    updated = await AccountService.update_account(db_session, account_id, {"alias": "ops"}, expected_version=2)
    assert updated.alias == "ops"
    assert updated.version == 3


@pytest.mark.asyncio
async def test_duplicate_voucher_number_surfaces_as_conflict(db_session, account, mocker):
    """Two writers that computed the same voucher number cannot both commit."""
    day = date(2023, 1, 1)
    account_id = account.id
    await LedgerEngine.post_single_entry(db_session, account_id, PostingKind.INCOME, 100, biz_date=day)

    mocker.patch.object(
        LedgerEngine, "next_voucher_no", new=mocker.AsyncMock(return_value="JZ20230101-001")
    )

    with pytest.raises(DuplicateResourceError):
        await LedgerEngine.post_single_entry(db_session, account_id, PostingKind.INCOME, 100, biz_date=day)

    assert await LedgerEngine.get_current_balance(db_session, account_id) == 100


@pytest.mark.asyncio
async def test_duplicate_currency_rejected(db_session, usdt):
    with pytest.raises(DuplicateResourceError):
        await AccountService.create_currency(db_session, "usdt", "Tether again")


@pytest.mark.asyncio
async def test_stale_delete_leaves_approved_leave_in_place(db_session):
    """A delete based on a pending read cannot remove a leave approved meanwhile."""
    employee = await EmployeeService.create_employee(db_session, "Finn", date(2022, 1, 1))
    leave = await LeaveWorkflow.request(
        db_session, employee.id, LeaveType.SICK, date(2023, 1, 2), date(2023, 1, 3), ACTOR
    )
    leave_id = leave.id

    async with AsyncSession(bind=db_session.bind, expire_on_commit=False) as other:
        approved = await LeaveWorkflow.approve(other, leave_id, "manager", expected_version=0)
        assert approved.version == 1

    # Our session still holds the pending copy at version 0
    assert leave.status == LeaveStatus.PENDING
    with pytest.raises(ConcurrentModificationError) as exc_info:
        await LeaveWorkflow.delete(db_session, leave_id, ACTOR, expected_version=0)

    assert exc_info.value.current_version == 1
    stored = await db_session.get(Leave, leave_id, populate_existing=True)
    assert stored is not None
    assert stored.status == LeaveStatus.APPROVED


@pytest.mark.asyncio
async def test_stale_delete_leaves_approved_claim_in_place(db_session, usdt):
    employee = await EmployeeService.create_employee(db_session, "Gus", date(2022, 1, 1))
    claim = await ReimbursementWorkflow.create(db_session, employee.id, "travel", 5_000, "USDT", ACTOR)
    claim_id = claim.id

    async with AsyncSession(bind=db_session.bind, expire_on_commit=False) as other:
        await ReimbursementWorkflow.approve(other, claim_id, "manager", expected_version=0)

    with pytest.raises(ConcurrentModificationError):
        await ReimbursementWorkflow.delete(db_session, claim_id, ACTOR)

    stored = await db_session.get(Reimbursement, claim_id, populate_existing=True)
    assert stored.status == ReimbursementStatus.APPROVED


@pytest.mark.asyncio
async def test_pending_delete_removes_row(db_session):
    employee = await EmployeeService.create_employee(db_session, "Hal", date(2022, 1, 1))
    leave = await LeaveWorkflow.request(
        db_session, employee.id, LeaveType.PERSONAL, date(2023, 1, 5), date(2023, 1, 5), ACTOR
    )
    leave_id = leave.id

    await LeaveWorkflow.delete(db_session, leave_id, ACTOR, expected_version=0)

    assert await db_session.get(Leave, leave_id) is None
