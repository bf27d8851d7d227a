"""
Settlement Engine (Domain Logic).

AR/AP documents, their settlements against ledger postings, and the
confirm operation that posts a document's money movement.

Document status is always derived from the settlements:
    settled sum == 0            -> open
    0 < settled sum < amount    -> partially_settled
    settled sum >= amount       -> settled
Over-settlement is accepted; the status saturates at settled.
"""

import logging
from datetime import date
from typing import List, Optional

from sqlalchemy import select, update, func
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.app.core.clock import utcnow, get_business_date
from backoffice.app.core.exceptions import (
    ResourceNotFoundError,
    BusinessRuleViolation,
    ValidationError,
)
from backoffice.app.db.session import unit_of_work
from backoffice.app.domain.ledger.ledger_engine import LedgerEngine
from backoffice.app.models.document import ArApDocument
from backoffice.app.models.ledger_enums import DocumentKind, DocumentStatus, PostingKind
from backoffice.app.models.ledger_posting import LedgerPosting
from backoffice.app.models.settlement import Settlement
from backoffice.app.services.audit import log_event, AuditAction, snapshot

logger = logging.getLogger(__name__)

DOCUMENT_AUDIT_FIELDS = ("doc_no", "kind", "amount_cents", "status", "confirmed", "posting_id")


def derive_status(amount_cents: int, settled_cents: int) -> DocumentStatus:
    if settled_cents >= amount_cents:
        return DocumentStatus.SETTLED
    if settled_cents > 0:
        return DocumentStatus.PARTIALLY_SETTLED
    return DocumentStatus.OPEN


class SettlementEngine:

    @staticmethod
    async def next_doc_no(db: AsyncSession, kind: DocumentKind, issue_date: date) -> str:
        """
        {KIND}{YYYYMMDD}-{seq:3}, one past the highest number issued for the
        kind and day. Numbers freed by deleted documents below the highest
        are not reused.
        """
        prefix = f"{kind.value}{issue_date:%Y%m%d}-"
        result = await db.execute(
            select(ArApDocument.doc_no).where(ArApDocument.doc_no.like(f"{prefix}%"))
        )
        last = max((int(doc_no[len(prefix):]) for doc_no in result.scalars()), default=0)
        return f"{prefix}{last + 1:03d}"

    @staticmethod
    async def get_document(db: AsyncSession, document_id: int) -> ArApDocument:
        document = await db.get(ArApDocument, document_id)
        if not document:
            raise ResourceNotFoundError("Document", document_id)
        return document

    @staticmethod
    async def list_documents(
        db: AsyncSession,
        kind: Optional[DocumentKind] = None,
        status: Optional[DocumentStatus] = None,
    ) -> List[ArApDocument]:
        query = select(ArApDocument).order_by(ArApDocument.issue_date.desc(), ArApDocument.id.desc())
        if kind:
            query = query.where(ArApDocument.kind == DocumentKind(kind))
        if status:
            query = query.where(ArApDocument.status == DocumentStatus(status))
        result = await db.execute(query)
        return result.scalars().all()

    @staticmethod
    async def create_document(
        db: AsyncSession,
        kind: DocumentKind,
        amount_cents: int,
        issue_date: Optional[date] = None,
        due_date: Optional[date] = None,
        party: Optional[str] = None,
        site: Optional[str] = None,
        department: Optional[str] = None,
        memo: Optional[str] = None,
        created_by: Optional[str] = None,
    ) -> ArApDocument:
        """
        Create an open AR/AP document.

        Returns:
            Created ArApDocument (id, doc_no)
        """
        try:
            kind = DocumentKind(kind)
        except ValueError:
            raise ValidationError(f"Unknown document kind: {kind}")
        if amount_cents is None or amount_cents <= 0:
            raise ValidationError("Amount must be positive", details={"amount_cents": amount_cents})
        issue_date = issue_date or get_business_date()
        if due_date and due_date < issue_date:
            raise ValidationError("Due date is before issue date")

        async with unit_of_work(db):
            document = ArApDocument(
                doc_no=await SettlementEngine.next_doc_no(db, kind, issue_date),
                kind=kind,
                amount_cents=amount_cents,
                issue_date=issue_date,
                due_date=due_date,
                party=party,
                site=site,
                department=department,
                memo=memo,
                status=DocumentStatus.OPEN,
                confirmed=False,
                created_by=created_by,
            )
            db.add(document)
            await db.flush()
            await db.refresh(document)

        logger.info("Created document %s for %s", document.doc_no, amount_cents)
        await log_event(
            db, AuditAction.DOCUMENT_CREATED, actor_id=created_by, entity_type="ar_ap_document",
            entity_id=document.id, after=snapshot(document, DOCUMENT_AUDIT_FIELDS),
        )
        return document

    @staticmethod
    async def refresh_status(db: AsyncSession, document_id: int) -> DocumentStatus:
        """Recompute and store a document's status from its settlements. No commit."""
        document = await SettlementEngine.get_document(db, document_id)
        settled = await db.scalar(
            select(func.coalesce(func.sum(Settlement.amount_cents), 0)).where(
                Settlement.document_id == document_id
            )
        )
        status = derive_status(document.amount_cents, int(settled or 0))
        if status != document.status:
            document.status = status
            await db.flush()
        return status

    @staticmethod
    async def record_settlement(
        db: AsyncSession,
        document_id: int,
        posting_id: int,
        amount_cents: int,
        settle_date: Optional[date] = None,
    ) -> Settlement:
        """Append a settlement row and refresh the document status. No commit."""
        if amount_cents is None or amount_cents <= 0:
            raise ValidationError("Settlement amount must be positive", details={"amount_cents": amount_cents})
        await SettlementEngine.get_document(db, document_id)
        if not await db.get(LedgerPosting, posting_id):
            raise ResourceNotFoundError("Ledger posting", posting_id)

        settlement = Settlement(
            document_id=document_id,
            posting_id=posting_id,
            amount_cents=amount_cents,
            settle_date=settle_date or get_business_date(),
        )
        db.add(settlement)
        await db.flush()
        await SettlementEngine.refresh_status(db, document_id)
        return settlement

    @staticmethod
    async def settle(
        db: AsyncSession,
        document_id: int,
        posting_id: int,
        amount_cents: int,
        settle_date: Optional[date] = None,
        actor_id: Optional[str] = None,
    ) -> Settlement:
        """
        Apply an amount of a document against a ledger posting.

        Args:
            db: Database session
            document_id: Document being settled
            posting_id: Posting the money moved with
            amount_cents: Settled amount (not capped at the open balance)
            settle_date: Defaults to today in the business timezone
            actor_id: Actor id

        Returns:
            Created Settlement
        """
        async with unit_of_work(db):
            document = await SettlementEngine.get_document(db, document_id)
            before = snapshot(document, DOCUMENT_AUDIT_FIELDS)
            settlement = await SettlementEngine.record_settlement(
                db, document_id, posting_id, amount_cents, settle_date
            )

        await log_event(
            db, AuditAction.DOCUMENT_SETTLED, actor_id=actor_id, entity_type="ar_ap_document",
            entity_id=document_id, before=before, after=snapshot(document, DOCUMENT_AUDIT_FIELDS),
            metadata={"settlement_id": settlement.id, "posting_id": posting_id, "amount_cents": amount_cents},
        )
        return settlement

    @staticmethod
    async def confirm(
        db: AsyncSession,
        document_id: int,
        account_id: int,
        biz_date: Optional[date] = None,
        actor_id: Optional[str] = None,
        category: Optional[str] = None,
        memo: Optional[str] = None,
        voucher_urls: Optional[List[str]] = None,
    ) -> LedgerPosting:
        """
        Confirm a document: post its full amount and settle it.

        Flow (one unit of work):
        1. Claim the document with a conditional update on confirmed = false
        2. Post income (AR) or expense (AP) for the full amount
        3. Record posting reference and confirmation audit fields
        4. Settle the full amount against the new posting

        Returns:
            Created LedgerPosting (id, voucher_no)

        Raises:
            BusinessRuleViolation: already confirmed, inactive account,
                insufficient balance; nothing is written
        """
        biz_date = biz_date or get_business_date()

        async with unit_of_work(db):
            document = await SettlementEngine.get_document(db, document_id)
            before = snapshot(document, DOCUMENT_AUDIT_FIELDS)

            claimed = await db.execute(
                update(ArApDocument)
                .where(ArApDocument.id == document_id, ArApDocument.confirmed.is_(False))
                .values(confirmed=True, confirmed_by=actor_id, confirmed_at=utcnow())
                .execution_options(synchronize_session=False)
            )
            if claimed.rowcount != 1:
                raise BusinessRuleViolation(
                    f"Document {document.doc_no} is already confirmed",
                    details={"document_id": document_id},
                )

            kind = PostingKind.INCOME if document.kind == DocumentKind.AR else PostingKind.EXPENSE
            posting = await LedgerEngine.record_single_entry(
                db,
                account_id,
                biz_date,
                kind,
                document.amount_cents,
                created_by=actor_id,
                category=category,
                site=document.site,
                department=document.department,
                counterparty=document.party,
                memo=memo or f"{document.doc_no} confirmed",
                voucher_urls=voucher_urls,
            )

            await db.execute(
                update(ArApDocument)
                .where(ArApDocument.id == document_id)
                .values(posting_id=posting.id)
                .execution_options(synchronize_session=False)
            )
            await db.refresh(document)

            await SettlementEngine.record_settlement(
                db, document_id, posting.id, document.amount_cents, biz_date
            )

        logger.info("Confirmed document %s with posting %s", document.doc_no, posting.voucher_no)
        await log_event(
            db, AuditAction.DOCUMENT_CONFIRMED, actor_id=actor_id, entity_type="ar_ap_document",
            entity_id=document_id, before=before, after=snapshot(document, DOCUMENT_AUDIT_FIELDS),
            metadata={"account_id": account_id, "voucher_no": posting.voucher_no},
        )
        return posting

    @staticmethod
    async def get_settlements(db: AsyncSession, document_id: int) -> List[Settlement]:
        await SettlementEngine.get_document(db, document_id)
        result = await db.execute(
            select(Settlement).where(Settlement.document_id == document_id).order_by(Settlement.id)
        )
        return result.scalars().all()

    @staticmethod
    async def delete_document(db: AsyncSession, document_id: int, actor_id: Optional[str] = None) -> None:
        """Delete a document that is unconfirmed and has no settlements."""
        async with unit_of_work(db):
            document = await SettlementEngine.get_document(db, document_id)
            if document.confirmed:
                raise BusinessRuleViolation("Confirmed documents cannot be deleted")
            has_settlements = await db.scalar(
                select(func.count(Settlement.id)).where(Settlement.document_id == document_id)
            )
            if has_settlements:
                raise BusinessRuleViolation("Documents with settlements cannot be deleted")
            before = snapshot(document, DOCUMENT_AUDIT_FIELDS)
            await db.delete(document)

        await log_event(
            db, AuditAction.DOCUMENT_DELETED, actor_id=actor_id, entity_type="ar_ap_document",
            entity_id=document_id, before=before,
        )
