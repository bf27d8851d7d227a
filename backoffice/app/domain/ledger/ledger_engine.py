"""
Ledger Engine (Domain Logic).

Posts money movements and their balance snapshots.

The ledger is append-only and compute-once: each snapshot's balance_before
is taken from the latest earlier (date, created_at) snapshot of the same
account at the moment the posting is written. Backdated postings do not
rewrite the snapshots of later-dated postings that already exist.
"""

import logging
from datetime import date
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import select, update, func, or_, and_, desc
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.app.core.clock import utcnow, get_business_date
from backoffice.app.core.config import settings
from backoffice.app.core.exceptions import (
    ResourceNotFoundError,
    BusinessRuleViolation,
    ValidationError,
)
from backoffice.app.db.session import unit_of_work
from backoffice.app.models.account import Account
from backoffice.app.models.account_transaction import AccountTransaction
from backoffice.app.models.account_transfer import AccountTransfer
from backoffice.app.models.ledger_posting import LedgerPosting
from backoffice.app.models.ledger_enums import PostingKind
from backoffice.app.services.audit import log_event, AuditAction, snapshot

logger = logging.getLogger(__name__)

POSTING_AUDIT_FIELDS = ("voucher_no", "biz_date", "kind", "account_id", "amount_cents", "voucher_urls")

# Tags accepted on single entries
POSTING_TAGS = ("category", "method", "site", "department", "counterparty", "memo", "voucher_urls")


class LedgerEngine:

    @staticmethod
    async def next_voucher_no(db: AsyncSession, biz_date: date) -> str:
        """
        Format the next voucher number for a business date.

        The sequence counts voucher-numbered postings already issued for the
        date across all accounts. Concurrent issuance is caught by the unique
        constraint on voucher_no.
        """
        count = await db.scalar(
            select(func.count(LedgerPosting.id)).where(
                LedgerPosting.biz_date == biz_date,
                LedgerPosting.voucher_no.is_not(None),
            )
        )
        return f"{settings.voucher_prefix}{biz_date:%Y%m%d}-{(count or 0) + 1:03d}"

    @staticmethod
    async def get_balance_before(db: AsyncSession, account: Account, transaction_date: date, created_at) -> int:
        """
        Balance of an account just before (transaction_date, created_at).

        Args:
            db: Database session
            account: Account the posting is made against
            transaction_date: Business date of the new posting
            created_at: Creation timestamp of the new posting

        Returns:
            balance_after of the latest earlier snapshot, or the opening balance
        """
        result = await db.execute(
            select(AccountTransaction.balance_after_cents)
            .where(
                AccountTransaction.account_id == account.id,
                or_(
                    AccountTransaction.transaction_date < transaction_date,
                    and_(
                        AccountTransaction.transaction_date == transaction_date,
                        AccountTransaction.created_at < created_at,
                    ),
                ),
            )
            .order_by(
                desc(AccountTransaction.transaction_date),
                desc(AccountTransaction.created_at),
                desc(AccountTransaction.id),
            )
            .limit(1)
        )
        balance = result.scalar_one_or_none()
        return account.opening_cents if balance is None else balance

    @staticmethod
    async def get_current_balance(db: AsyncSession, account_id: int) -> int:
        account = await LedgerEngine._get_account(db, account_id)
        result = await db.execute(
            select(AccountTransaction.balance_after_cents)
            .where(AccountTransaction.account_id == account_id)
            .order_by(
                desc(AccountTransaction.transaction_date),
                desc(AccountTransaction.created_at),
                desc(AccountTransaction.id),
            )
            .limit(1)
        )
        balance = result.scalar_one_or_none()
        return account.opening_cents if balance is None else balance

    @staticmethod
    async def _get_account(db: AsyncSession, account_id: int) -> Account:
        account = await db.get(Account, account_id)
        if not account:
            raise ResourceNotFoundError("Account", account_id)
        return account

    @staticmethod
    async def lock_account(db: AsyncSession, account_id: int) -> Account:
        """
        Bump the account version and return the refreshed, active account.

        The UPDATE comes first so that, on row-locking databases, concurrent
        postings against one account queue behind each other before they
        read the previous balance.

        Raises:
            ResourceNotFoundError: unknown account
            BusinessRuleViolation: account is inactive
        """
        result = await db.execute(
            update(Account)
            .where(Account.id == account_id)
            .values(version=Account.version + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise ResourceNotFoundError("Account", account_id)

        account = await db.get(Account, account_id, populate_existing=True)
        if not account.active:
            raise BusinessRuleViolation(
                f"Account {account.name} is inactive", details={"account_id": account_id}
            )
        return account

    @staticmethod
    async def _write_leg(
        db: AsyncSession,
        account: Account,
        biz_date: date,
        kind: PostingKind,
        signed_amount: int,
        voucher_no: Optional[str] = None,
        check_balance: bool = False,
        **fields,
    ) -> LedgerPosting:
        created_at = utcnow()
        balance_before = await LedgerEngine.get_balance_before(db, account, biz_date, created_at)
        balance_after = balance_before + signed_amount

        if check_balance and signed_amount < 0 and balance_after < 0 and not settings.ledger_allow_negative_balance:
            raise BusinessRuleViolation(
                "Insufficient balance",
                details={
                    "account_id": account.id,
                    "balance_cents": balance_before,
                    "amount_cents": -signed_amount,
                },
            )

        posting = LedgerPosting(
            voucher_no=voucher_no,
            biz_date=biz_date,
            kind=kind,
            account_id=account.id,
            amount_cents=signed_amount,
            created_at=created_at,
            **fields,
        )
        db.add(posting)
        await db.flush()

        db.add(
            AccountTransaction(
                account_id=account.id,
                posting_id=posting.id,
                transaction_date=biz_date,
                kind=kind,
                amount_cents=signed_amount,
                balance_before_cents=balance_before,
                balance_after_cents=balance_after,
                created_at=created_at,
            )
        )
        await db.flush()
        return posting

    @staticmethod
    async def record_single_entry(
        db: AsyncSession,
        account_id: int,
        biz_date: date,
        kind: PostingKind,
        amount_cents: int,
        created_by: Optional[str] = None,
        **tags,
    ) -> LedgerPosting:
        """
        Write an income/expense posting and its snapshot without committing.

        Building block for compound operations that own the unit of work
        (document confirmation, payroll and borrowing disbursement).
        """
        try:
            kind = PostingKind(kind)
        except ValueError:
            raise ValidationError(f"Unknown posting kind: {kind}")
        if kind not in (PostingKind.INCOME, PostingKind.EXPENSE):
            raise ValidationError(f"Single entries must be income or expense, got {kind.value}")
        if amount_cents is None or amount_cents <= 0:
            raise ValidationError("Amount must be positive", details={"amount_cents": amount_cents})
        unknown = set(tags) - set(POSTING_TAGS)
        if unknown:
            raise ValidationError(f"Unknown posting fields: {sorted(unknown)}")

        account = await LedgerEngine.lock_account(db, account_id)
        voucher_no = await LedgerEngine.next_voucher_no(db, biz_date)
        signed_amount = amount_cents if kind == PostingKind.INCOME else -amount_cents

        posting = await LedgerEngine._write_leg(
            db,
            account,
            biz_date,
            kind,
            signed_amount,
            voucher_no=voucher_no,
            check_balance=True,
            created_by=created_by,
            **tags,
        )
        logger.info(
            "Posted %s %s on account %s: %s", kind.value, voucher_no, account_id, signed_amount
        )
        return posting

    @staticmethod
    async def post_single_entry(
        db: AsyncSession,
        account_id: int,
        kind: PostingKind,
        amount_cents: int,
        biz_date: Optional[date] = None,
        created_by: Optional[str] = None,
        **tags,
    ) -> LedgerPosting:
        """
        Post an income or expense against one account.

        Args:
            db: Database session
            account_id: Account to post against
            kind: PostingKind.INCOME or PostingKind.EXPENSE
            amount_cents: Positive amount in minor units (sign derived from kind)
            biz_date: Business date (defaults to today in the business timezone)
            created_by: Actor id
            **tags: category, method, site, department, counterparty, memo, voucher_urls

        Returns:
            Created LedgerPosting (id, voucher_no)

        Raises:
            ResourceNotFoundError: unknown account
            BusinessRuleViolation: inactive account or insufficient balance
            ValidationError: bad kind or amount
        """
        biz_date = biz_date or get_business_date()
        async with unit_of_work(db):
            posting = await LedgerEngine.record_single_entry(
                db, account_id, biz_date, kind, amount_cents, created_by=created_by, **tags
            )

        await log_event(
            db,
            AuditAction.POSTING_CREATED,
            actor_id=created_by,
            entity_type="ledger_posting",
            entity_id=posting.id,
            after=snapshot(posting, POSTING_AUDIT_FIELDS),
        )
        return posting

    @staticmethod
    async def post_transfer(
        db: AsyncSession,
        from_account_id: int,
        to_account_id: int,
        from_amount_cents: int,
        to_amount_cents: int,
        exchange_rate: Optional[Decimal] = None,
        transfer_date: Optional[date] = None,
        memo: Optional[str] = None,
        voucher_urls: Optional[List[str]] = None,
        created_by: Optional[str] = None,
    ) -> AccountTransfer:
        """
        Move money between two accounts, possibly across currencies.

        Writes a transfer header plus two legs: transfer_out (-from amount)
        on the source and transfer_in (+to amount) on the target, each with
        its own snapshot. The exchange rate is stored as given and is not
        checked against the two amounts.

        Returns:
            Created AccountTransfer; its id is the shared transfer id
        """
        if from_account_id == to_account_id:
            raise ValidationError("Cannot transfer to the same account")
        if not from_amount_cents or from_amount_cents <= 0 or not to_amount_cents or to_amount_cents <= 0:
            raise ValidationError(
                "Transfer amounts must be positive",
                details={"from_amount_cents": from_amount_cents, "to_amount_cents": to_amount_cents},
            )
        transfer_date = transfer_date or get_business_date()

        async with unit_of_work(db):
            # Lock in id order so opposite transfers cannot deadlock
            locked = {}
            for account_id in sorted((from_account_id, to_account_id)):
                locked[account_id] = await LedgerEngine.lock_account(db, account_id)
            from_account = locked[from_account_id]
            to_account = locked[to_account_id]

            transfer = AccountTransfer(
                transfer_date=transfer_date,
                from_account_id=from_account.id,
                to_account_id=to_account.id,
                from_currency=from_account.currency,
                to_currency=to_account.currency,
                from_amount_cents=from_amount_cents,
                to_amount_cents=to_amount_cents,
                exchange_rate=exchange_rate,
                memo=memo,
                voucher_urls=voucher_urls,
                created_by=created_by,
            )
            db.add(transfer)
            await db.flush()

            await LedgerEngine._write_leg(
                db, from_account, transfer_date, PostingKind.TRANSFER_OUT, -from_amount_cents,
                transfer_id=transfer.id, memo=memo, voucher_urls=voucher_urls, created_by=created_by,
            )
            await LedgerEngine._write_leg(
                db, to_account, transfer_date, PostingKind.TRANSFER_IN, to_amount_cents,
                transfer_id=transfer.id, memo=memo, voucher_urls=voucher_urls, created_by=created_by,
            )

        logger.info(
            "Transfer %s: account %s -%s %s -> account %s +%s %s",
            transfer.id, from_account_id, from_amount_cents, transfer.from_currency,
            to_account_id, to_amount_cents, transfer.to_currency,
        )
        await log_event(
            db,
            AuditAction.TRANSFER_CREATED,
            actor_id=created_by,
            entity_type="account_transfer",
            entity_id=transfer.id,
            after=snapshot(transfer, (
                "transfer_date", "from_account_id", "to_account_id",
                "from_amount_cents", "to_amount_cents", "exchange_rate",
            )),
        )
        return transfer

    @staticmethod
    async def get_transfer_legs(db: AsyncSession, transfer_id: int) -> List[LedgerPosting]:
        result = await db.execute(
            select(LedgerPosting)
            .where(LedgerPosting.transfer_id == transfer_id)
            .order_by(LedgerPosting.id)
        )
        return result.scalars().all()

    @staticmethod
    async def attach_vouchers(
        db: AsyncSession,
        posting_id: int,
        voucher_urls: List[str],
        actor_id: Optional[str] = None,
    ) -> LedgerPosting:
        """
        Append voucher references to a posting.

        The only mutation a posting allows. References are opaque strings.
        """
        if not voucher_urls:
            raise ValidationError("No voucher references given")

        async with unit_of_work(db):
            posting = await db.get(LedgerPosting, posting_id)
            if not posting:
                raise ResourceNotFoundError("Ledger posting", posting_id)
            before = list(posting.voucher_urls or [])
            # Assign a new list: in-place JSON mutation is not tracked
            posting.voucher_urls = before + [url for url in voucher_urls if url not in before]

        await log_event(
            db,
            AuditAction.VOUCHERS_ATTACHED,
            actor_id=actor_id,
            entity_type="ledger_posting",
            entity_id=posting.id,
            before={"voucher_urls": before},
            after={"voucher_urls": posting.voucher_urls},
        )
        return posting

    @staticmethod
    async def reverse_posting(
        db: AsyncSession,
        posting_id: int,
        biz_date: Optional[date] = None,
        memo: Optional[str] = None,
        created_by: Optional[str] = None,
    ) -> LedgerPosting:
        """
        Cancel a single entry by posting its red-ink counterpart.

        The reversal has the same kind, the negated amount and a fresh
        voucher number. The original stays untouched. A posting can be
        reversed once; transfer legs and reversals cannot be reversed.
        """
        biz_date = biz_date or get_business_date()

        async with unit_of_work(db):
            original = await db.get(LedgerPosting, posting_id)
            if not original:
                raise ResourceNotFoundError("Ledger posting", posting_id)
            if original.transfer_id is not None:
                raise BusinessRuleViolation("Transfer legs cannot be reversed")
            if original.is_reversal:
                raise BusinessRuleViolation("A reversal cannot itself be reversed")
            existing = await db.scalar(
                select(LedgerPosting.id).where(LedgerPosting.reversal_of_posting_id == posting_id)
            )
            if existing:
                raise BusinessRuleViolation(
                    "Posting already reversed", details={"reversal_posting_id": existing}
                )

            account = await LedgerEngine.lock_account(db, original.account_id)
            voucher_no = await LedgerEngine.next_voucher_no(db, biz_date)
            reversal = await LedgerEngine._write_leg(
                db,
                account,
                biz_date,
                original.kind,
                -original.amount_cents,
                voucher_no=voucher_no,
                check_balance=True,
                category=original.category,
                site=original.site,
                department=original.department,
                counterparty=original.counterparty,
                memo=memo or f"Reversal of {original.voucher_no}",
                is_reversal=True,
                reversal_of_posting_id=original.id,
                created_by=created_by,
            )

        logger.info("Reversed posting %s with %s", original.voucher_no, reversal.voucher_no)
        await log_event(
            db,
            AuditAction.POSTING_REVERSED,
            actor_id=created_by,
            entity_type="ledger_posting",
            entity_id=original.id,
            after=snapshot(reversal, POSTING_AUDIT_FIELDS),
        )
        return reversal

    @staticmethod
    async def get_snapshot(db: AsyncSession, posting_id: int) -> AccountTransaction:
        result = await db.execute(
            select(AccountTransaction).where(AccountTransaction.posting_id == posting_id)
        )
        txn = result.scalar_one_or_none()
        if not txn:
            raise ResourceNotFoundError("Account transaction", posting_id)
        return txn

    @staticmethod
    async def get_account_transactions(
        db: AsyncSession,
        account_id: int,
        limit: int = 100,
        offset: int = 0,
    ) -> List[AccountTransaction]:
        """Snapshots for an account, newest (date, created_at) first."""
        await LedgerEngine._get_account(db, account_id)
        result = await db.execute(
            select(AccountTransaction)
            .where(AccountTransaction.account_id == account_id)
            .order_by(
                desc(AccountTransaction.transaction_date),
                desc(AccountTransaction.created_at),
                desc(AccountTransaction.id),
            )
            .limit(limit)
            .offset(offset)
        )
        return result.scalars().all()
