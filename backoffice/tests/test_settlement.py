"""
AR/AP settlement tests.
"""

import pytest
from datetime import date
from sqlalchemy import select, func

from backoffice.app.core.exceptions import BusinessRuleViolation, ValidationError
from backoffice.app.domain.ledger.accounts import AccountService
from backoffice.app.domain.ledger.ledger_engine import LedgerEngine
from backoffice.app.domain.settlement.settlement_engine import SettlementEngine, derive_status
from backoffice.app.models.document import ArApDocument
from backoffice.app.models.ledger_enums import DocumentKind, DocumentStatus, PostingKind
from backoffice.app.models.ledger_posting import LedgerPosting
from backoffice.app.models.settlement import Settlement

ISSUE = date(2023, 1, 3)


def test_derive_status():
    assert derive_status(2000, 0) == DocumentStatus.OPEN
    assert derive_status(2000, 1999) == DocumentStatus.PARTIALLY_SETTLED
    assert derive_status(2000, 2000) == DocumentStatus.SETTLED
    assert derive_status(2000, 2500) == DocumentStatus.SETTLED


@pytest.mark.asyncio
async def test_document_numbers_per_kind_and_day(db_session):
    ar1 = await SettlementEngine.create_document(db_session, DocumentKind.AR, 2000, issue_date=ISSUE)
    ar2 = await SettlementEngine.create_document(db_session, DocumentKind.AR, 3000, issue_date=ISSUE)
    ap1 = await SettlementEngine.create_document(db_session, DocumentKind.AP, 3000, issue_date=ISSUE)

    assert ar1.doc_no == "AR20230103-001"
    assert ar2.doc_no == "AR20230103-002"
    assert ap1.doc_no == "AP20230103-001"
    assert ar1.status == DocumentStatus.OPEN
    assert ar1.confirmed is False


@pytest.mark.asyncio
async def test_document_number_not_reused_after_delete(db_session):
    first = await SettlementEngine.create_document(db_session, DocumentKind.AR, 2000, issue_date=ISSUE)
    second = await SettlementEngine.create_document(db_session, DocumentKind.AR, 3000, issue_date=ISSUE)
    assert second.doc_no == "AR20230103-002"

    await SettlementEngine.delete_document(db_session, first.id)
    third = await SettlementEngine.create_document(db_session, DocumentKind.AR, 4000, issue_date=ISSUE)

    assert third.doc_no == "AR20230103-003"
    numbers = (await db_session.execute(select(ArApDocument.doc_no).order_by(ArApDocument.doc_no))).scalars().all()
    assert numbers == ["AR20230103-002", "AR20230103-003"]


@pytest.mark.asyncio
async def test_document_validation(db_session):
    with pytest.raises(ValidationError):
        await SettlementEngine.create_document(db_session, DocumentKind.AR, 0, issue_date=ISSUE)
    with pytest.raises(ValidationError):
        await SettlementEngine.create_document(
            db_session, DocumentKind.AR, 100, issue_date=ISSUE, due_date=date(2023, 1, 1)
        )


@pytest.mark.asyncio
async def test_partial_then_full_settlement(db_session, account):
    document = await SettlementEngine.create_document(db_session, DocumentKind.AR, 2000, issue_date=ISSUE)
    posting = await LedgerEngine.post_single_entry(db_session, account.id, PostingKind.INCOME, 2000, biz_date=ISSUE)

    await SettlementEngine.settle(db_session, document.id, posting.id, 800, settle_date=ISSUE)
    assert (await SettlementEngine.get_document(db_session, document.id)).status == DocumentStatus.PARTIALLY_SETTLED

    await SettlementEngine.settle(db_session, document.id, posting.id, 800, settle_date=ISSUE)
    assert (await SettlementEngine.get_document(db_session, document.id)).status == DocumentStatus.PARTIALLY_SETTLED

    await SettlementEngine.settle(db_session, document.id, posting.id, 400, settle_date=ISSUE)
    assert (await SettlementEngine.get_document(db_session, document.id)).status == DocumentStatus.SETTLED

    settlements = await SettlementEngine.get_settlements(db_session, document.id)
    assert [s.amount_cents for s in settlements] == [800, 800, 400]


@pytest.mark.asyncio
async def test_confirm_posts_and_settles(db_session, funded_account):
    document = await SettlementEngine.create_document(
        db_session, DocumentKind.AP, 5000, issue_date=ISSUE, party="Supplier Ltd", department="Ops"
    )

    posting = await SettlementEngine.confirm(
        db_session, document.id, funded_account.id, biz_date=ISSUE, actor_id="finance.bob"
    )

    assert posting.kind == PostingKind.EXPENSE
    assert posting.amount_cents == -5000
    assert posting.counterparty == "Supplier Ltd"
    assert posting.voucher_no == "JZ20230103-001"

    document = await db_session.get(ArApDocument, document.id, populate_existing=True)
    assert document.confirmed is True
    assert document.confirmed_by == "finance.bob"
    assert document.posting_id == posting.id
    assert document.status == DocumentStatus.SETTLED


@pytest.mark.asyncio
async def test_reconfirm_is_rejected_without_new_posting(db_session, account):
    document = await SettlementEngine.create_document(db_session, DocumentKind.AR, 2000, issue_date=ISSUE)
    await SettlementEngine.confirm(db_session, document.id, account.id, biz_date=ISSUE)

    with pytest.raises(BusinessRuleViolation):
        await SettlementEngine.confirm(db_session, document.id, account.id, biz_date=ISSUE)

    assert await db_session.scalar(select(func.count(LedgerPosting.id))) == 1
    assert await db_session.scalar(select(func.count(Settlement.id))) == 1


@pytest.mark.asyncio
async def test_confirm_is_atomic_when_posting_fails(db_session, account):
    document = await SettlementEngine.create_document(db_session, DocumentKind.AR, 2000, issue_date=ISSUE)
    await AccountService.deactivate_account(db_session, account.id)
    document_id, account_id = document.id, account.id

    with pytest.raises(BusinessRuleViolation):
        await SettlementEngine.confirm(db_session, document_id, account_id, biz_date=ISSUE)

    document = await db_session.get(ArApDocument, document_id, populate_existing=True)
    assert document.confirmed is False
    assert document.posting_id is None
    assert document.status == DocumentStatus.OPEN
    assert await db_session.scalar(select(func.count(Settlement.id))) == 0
    assert await db_session.scalar(select(func.count(LedgerPosting.id))) == 0


@pytest.mark.asyncio
async def test_confirm_expense_respects_balance(db_session, account):
    document = await SettlementEngine.create_document(db_session, DocumentKind.AP, 2000, issue_date=ISSUE)
    document_id = document.id

    with pytest.raises(BusinessRuleViolation):
        await SettlementEngine.confirm(db_session, document_id, account.id, biz_date=ISSUE)

    document = await db_session.get(ArApDocument, document_id, populate_existing=True)
    assert document.confirmed is False


@pytest.mark.asyncio
async def test_delete_rules(db_session, account):
    unused = await SettlementEngine.create_document(db_session, DocumentKind.AR, 100, issue_date=ISSUE)
    confirmed = await SettlementEngine.create_document(db_session, DocumentKind.AR, 100, issue_date=ISSUE)
    await SettlementEngine.confirm(db_session, confirmed.id, account.id, biz_date=ISSUE)
    confirmed_id = confirmed.id

    await SettlementEngine.delete_document(db_session, unused.id)
    with pytest.raises(BusinessRuleViolation):
        await SettlementEngine.delete_document(db_session, confirmed_id)

    remaining = await SettlementEngine.list_documents(db_session)
    assert [d.id for d in remaining] == [confirmed_id]
