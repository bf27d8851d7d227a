"""
Ledger engine tests.

Covers voucher numbering, snapshot computation (including backdating),
transfers, reversals and the balance guard.
"""

import pytest
from datetime import date
from decimal import Decimal
from sqlalchemy import select, func

from backoffice.app.core.config import settings
from backoffice.app.core.exceptions import BusinessRuleViolation, ValidationError, ResourceNotFoundError
from backoffice.app.domain.ledger.accounts import AccountService
from backoffice.app.domain.ledger.ledger_engine import LedgerEngine
from backoffice.app.models.ledger_enums import PostingKind
from backoffice.app.models.ledger_posting import LedgerPosting
from backoffice.app.models.account_transaction import AccountTransaction
from backoffice.app.services.audit import get_audit_trail, AuditAction

D1 = date(2023, 1, 1)
D2 = date(2023, 1, 2)
D3 = date(2023, 1, 3)


async def _count_postings(db_session):
    return await db_session.scalar(select(func.count(LedgerPosting.id)))


@pytest.mark.asyncio
async def test_voucher_numbers_are_sequential_per_day(db_session, account):
    first = await LedgerEngine.post_single_entry(db_session, account.id, PostingKind.INCOME, 1000, biz_date=D1)
    second = await LedgerEngine.post_single_entry(db_session, account.id, PostingKind.INCOME, 1000, biz_date=D1)
    other_day = await LedgerEngine.post_single_entry(db_session, account.id, PostingKind.INCOME, 1000, biz_date=D2)

    assert first.voucher_no == "JZ20230101-001"
    assert second.voucher_no == "JZ20230101-002"
    assert other_day.voucher_no == "JZ20230102-001"


@pytest.mark.asyncio
async def test_snapshot_chains_balance(db_session, usdt):
    account = await AccountService.create_account(db_session, "Cash", "USDT", opening_cents=500)

    income = await LedgerEngine.post_single_entry(db_session, account.id, PostingKind.INCOME, 1000, biz_date=D1)
    expense = await LedgerEngine.post_single_entry(db_session, account.id, PostingKind.EXPENSE, 300, biz_date=D1)

    assert income.amount_cents == 1000
    assert expense.amount_cents == -300

    snap_income = await LedgerEngine.get_snapshot(db_session, income.id)
    snap_expense = await LedgerEngine.get_snapshot(db_session, expense.id)
    assert (snap_income.balance_before_cents, snap_income.balance_after_cents) == (500, 1500)
    assert (snap_expense.balance_before_cents, snap_expense.balance_after_cents) == (1500, 1200)
    assert await LedgerEngine.get_current_balance(db_session, account.id) == 1200


@pytest.mark.asyncio
async def test_backdated_posting_does_not_rewrite_later_snapshots(db_session, account):
    p1 = await LedgerEngine.post_single_entry(db_session, account.id, PostingKind.INCOME, 1000, biz_date=D1)
    p2 = await LedgerEngine.post_single_entry(db_session, account.id, PostingKind.EXPENSE, 300, biz_date=D3)
    p3 = await LedgerEngine.post_single_entry(db_session, account.id, PostingKind.INCOME, 500, biz_date=D2)

    snap_p2 = await LedgerEngine.get_snapshot(db_session, p2.id)
    snap_p3 = await LedgerEngine.get_snapshot(db_session, p3.id)

    # P3 sees P1 only
    assert (snap_p3.balance_before_cents, snap_p3.balance_after_cents) == (1000, 1500)
    # P2 keeps what it computed when it was written
    assert (snap_p2.balance_before_cents, snap_p2.balance_after_cents) == (1000, 700)
    assert p1.voucher_no == "JZ20230101-001"

    # Newest first by (date, created_at)
    history = await LedgerEngine.get_account_transactions(db_session, account.id)
    assert [t.posting_id for t in history] == [p2.id, p3.id, p1.id]


@pytest.mark.asyncio
async def test_insufficient_balance_writes_nothing(db_session, usdt):
    account = await AccountService.create_account(db_session, "Petty cash", "USDT", opening_cents=100)
    account_id = account.id

    with pytest.raises(BusinessRuleViolation) as exc_info:
        await LedgerEngine.post_single_entry(db_session, account_id, PostingKind.EXPENSE, 200, biz_date=D1)

    assert exc_info.value.message == "Insufficient balance"
    assert await _count_postings(db_session) == 0

    # The voucher sequence was not consumed
    posting = await LedgerEngine.post_single_entry(db_session, account_id, PostingKind.EXPENSE, 100, biz_date=D1)
    assert posting.voucher_no == "JZ20230101-001"
    assert await LedgerEngine.get_current_balance(db_session, account_id) == 0


@pytest.mark.asyncio
async def test_negative_balance_allowed_by_config(db_session, account, mocker):
    mocker.patch.object(settings, "ledger_allow_negative_balance", True)

    posting = await LedgerEngine.post_single_entry(db_session, account.id, PostingKind.EXPENSE, 250, biz_date=D1)

    snap = await LedgerEngine.get_snapshot(db_session, posting.id)
    assert snap.balance_after_cents == -250


@pytest.mark.asyncio
async def test_single_entry_validation(db_session, account):
    account_id = account.id
    with pytest.raises(ValidationError):
        await LedgerEngine.post_single_entry(db_session, account_id, PostingKind.INCOME, 0, biz_date=D1)
    with pytest.raises(ValidationError):
        await LedgerEngine.post_single_entry(db_session, account_id, PostingKind.TRANSFER_IN, 100, biz_date=D1)
    with pytest.raises(ValidationError):
        await LedgerEngine.post_single_entry(
            db_session, account_id, PostingKind.INCOME, 100, biz_date=D1, colour="red"
        )
    with pytest.raises(ResourceNotFoundError):
        await LedgerEngine.post_single_entry(db_session, 999, PostingKind.INCOME, 100, biz_date=D1)


@pytest.mark.asyncio
async def test_inactive_account_rejects_postings(db_session, account):
    await AccountService.deactivate_account(db_session, account.id)

    with pytest.raises(BusinessRuleViolation):
        await LedgerEngine.post_single_entry(db_session, account.id, PostingKind.INCOME, 100, biz_date=D1)
    assert await _count_postings(db_session) == 0


@pytest.mark.asyncio
async def test_cross_currency_transfer(db_session, account, cny):
    target = await AccountService.create_account(db_session, "CNY bank", "CNY")
    await LedgerEngine.post_single_entry(db_session, account.id, PostingKind.INCOME, 10_000, biz_date=D1)

    transfer = await LedgerEngine.post_transfer(
        db_session,
        from_account_id=account.id,
        to_account_id=target.id,
        from_amount_cents=1_000,
        to_amount_cents=7_100,
        exchange_rate=Decimal("7.1"),
        transfer_date=D2,
        memo="Convert",
    )

    assert transfer.from_currency == "USDT"
    assert transfer.to_currency == "CNY"

    legs = await LedgerEngine.get_transfer_legs(db_session, transfer.id)
    assert [(leg.kind, leg.amount_cents) for leg in legs] == [
        (PostingKind.TRANSFER_OUT, -1_000),
        (PostingKind.TRANSFER_IN, 7_100),
    ]
    assert all(leg.voucher_no is None for leg in legs)

    assert await LedgerEngine.get_current_balance(db_session, account.id) == 9_000
    assert await LedgerEngine.get_current_balance(db_session, target.id) == 7_100

    # Transfer legs do not consume voucher numbers
    posting = await LedgerEngine.post_single_entry(db_session, account.id, PostingKind.INCOME, 1, biz_date=D2)
    assert posting.voucher_no == "JZ20230102-001"


@pytest.mark.asyncio
async def test_transfer_to_same_account_rejected(db_session, account):
    with pytest.raises(ValidationError):
        await LedgerEngine.post_transfer(db_session, account.id, account.id, 100, 100, transfer_date=D1)


@pytest.mark.asyncio
async def test_reversal_cancels_original_once(db_session, account):
    original = await LedgerEngine.post_single_entry(
        db_session, account.id, PostingKind.INCOME, 1_000, biz_date=D1, category="sales"
    )

    reversal = await LedgerEngine.reverse_posting(db_session, original.id, biz_date=D2, created_by="auditor")
    original_id, reversal_id = original.id, reversal.id

    assert reversal.kind == PostingKind.INCOME
    assert reversal.amount_cents == -1_000
    assert reversal.is_reversal is True
    assert reversal.reversal_of_posting_id == original.id
    assert reversal.voucher_no == "JZ20230102-001"
    assert reversal.category == "sales"
    assert await LedgerEngine.get_current_balance(db_session, account.id) == 0

    with pytest.raises(BusinessRuleViolation):
        await LedgerEngine.reverse_posting(db_session, original_id, biz_date=D2)
    with pytest.raises(BusinessRuleViolation):
        await LedgerEngine.reverse_posting(db_session, reversal_id, biz_date=D2)

    trail = await get_audit_trail(db_session, entity_type="ledger_posting", entity_id=original_id)
    assert [entry.action for entry in trail][0] == AuditAction.POSTING_REVERSED


@pytest.mark.asyncio
async def test_transfer_legs_cannot_be_reversed(db_session, account, funded_account):
    transfer = await LedgerEngine.post_transfer(
        db_session, funded_account.id, account.id, 500, 500, transfer_date=D1
    )
    legs = await LedgerEngine.get_transfer_legs(db_session, transfer.id)

    with pytest.raises(BusinessRuleViolation):
        await LedgerEngine.reverse_posting(db_session, legs[0].id, biz_date=D1)


@pytest.mark.asyncio
async def test_attach_vouchers_appends_without_duplicates(db_session, account):
    posting = await LedgerEngine.post_single_entry(
        db_session, account.id, PostingKind.INCOME, 100, biz_date=D1, voucher_urls=["s3://a.pdf"]
    )

    updated = await LedgerEngine.attach_vouchers(db_session, posting.id, ["s3://a.pdf", "s3://b.pdf"])

    assert updated.voucher_urls == ["s3://a.pdf", "s3://b.pdf"]
    snap = await LedgerEngine.get_snapshot(db_session, posting.id)
    assert snap.amount_cents == 100


@pytest.mark.asyncio
async def test_every_posting_has_exactly_one_snapshot(db_session, account, funded_account):
    await LedgerEngine.post_single_entry(db_session, account.id, PostingKind.INCOME, 100, biz_date=D1)
    await LedgerEngine.post_transfer(db_session, funded_account.id, account.id, 50, 50, transfer_date=D1)

    postings = await _count_postings(db_session)
    snapshots = await db_session.scalar(select(func.count(AccountTransaction.id)))
    assert postings == snapshots == 3
