"""
Account Service (Domain Logic).

Currency and account master data used by the ledger.
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.app.core.exceptions import (
    ResourceNotFoundError,
    DuplicateResourceError,
    BusinessRuleViolation,
    ValidationError,
)
from backoffice.app.db.session import unit_of_work
from backoffice.app.domain.workflow.transitions import compare_and_set
from backoffice.app.models.account import Account
from backoffice.app.models.currency import Currency
from backoffice.app.models.ledger_enums import AccountType
from backoffice.app.models.ledger_posting import LedgerPosting
from backoffice.app.services.audit import log_event, AuditAction, snapshot

logger = logging.getLogger(__name__)

ACCOUNT_AUDIT_FIELDS = ("name", "type", "currency", "alias", "account_number", "opening_cents", "active", "version")
UPDATABLE_FIELDS = {"name", "type", "alias", "account_number", "opening_cents", "active"}


class AccountService:

    @staticmethod
    async def create_currency(
        db: AsyncSession,
        code: str,
        name: str,
        symbol: Optional[str] = None,
        actor_id: Optional[str] = None,
    ) -> Currency:
        code = (code or "").strip().upper()
        if not code:
            raise ValidationError("Currency code is required")

        async with unit_of_work(db):
            if await db.get(Currency, code):
                raise DuplicateResourceError(f"Currency {code} already exists", details={"code": code})
            currency = Currency(code=code, name=name, symbol=symbol, active=True)
            db.add(currency)

        await log_event(
            db, AuditAction.CURRENCY_CREATED, actor_id=actor_id,
            entity_type="currency", metadata={"code": code, "name": name},
        )
        return currency

    @staticmethod
    async def list_currencies(db: AsyncSession) -> List[Currency]:
        result = await db.execute(select(Currency).order_by(Currency.code))
        return result.scalars().all()

    @staticmethod
    async def create_account(
        db: AsyncSession,
        name: str,
        currency: str,
        type: AccountType = AccountType.BANK,
        opening_cents: int = 0,
        alias: Optional[str] = None,
        account_number: Optional[str] = None,
        actor_id: Optional[str] = None,
    ) -> Account:
        """
        Create an account.

        Args:
            db: Database session
            name: Display name
            currency: Currency code (must exist)
            type: Account type
            opening_cents: Opening balance in minor units
            alias: Optional short name
            account_number: Optional bank/wallet number
            actor_id: Actor id

        Returns:
            Created Account (version 1)
        """
        if not name:
            raise ValidationError("Account name is required")

        async with unit_of_work(db):
            if not await db.get(Currency, currency):
                raise ResourceNotFoundError("Currency", currency)
            account = Account(
                name=name,
                type=AccountType(type),
                currency=currency,
                opening_cents=opening_cents or 0,
                alias=alias,
                account_number=account_number,
                active=True,
                version=1,
            )
            db.add(account)
            await db.flush()
            await db.refresh(account)

        logger.info("Created account %s (%s)", account.id, account.currency)
        await log_event(
            db, AuditAction.ACCOUNT_CREATED, actor_id=actor_id, entity_type="account",
            entity_id=account.id, after=snapshot(account, ACCOUNT_AUDIT_FIELDS),
        )
        return account

    @staticmethod
    async def get_account(db: AsyncSession, account_id: int) -> Account:
        account = await db.get(Account, account_id)
        if not account:
            raise ResourceNotFoundError("Account", account_id)
        return account

    @staticmethod
    async def list_accounts(db: AsyncSession, active_only: bool = False) -> List[Account]:
        query = select(Account).order_by(Account.id)
        if active_only:
            query = query.where(Account.active.is_(True))
        result = await db.execute(query)
        return result.scalars().all()

    @staticmethod
    async def _has_postings(db: AsyncSession, account_id: int) -> bool:
        count = await db.scalar(
            select(func.count(LedgerPosting.id)).where(LedgerPosting.account_id == account_id)
        )
        return bool(count)

    @staticmethod
    async def update_account(
        db: AsyncSession,
        account_id: int,
        changes: Dict[str, Any],
        expected_version: Optional[int] = None,
        actor_id: Optional[str] = None,
    ) -> Account:
        """
        Edit account master data under the optimistic lock.

        The opening balance is frozen once the account has postings, since
        existing snapshots were computed from it.

        Raises:
            ConcurrentModificationError: stale expected_version
        """
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(f"Fields cannot be updated: {sorted(unknown)}")

        async with unit_of_work(db):
            account = await AccountService.get_account(db, account_id)
            before = snapshot(account, ACCOUNT_AUDIT_FIELDS)

            if "opening_cents" in changes and changes["opening_cents"] != account.opening_cents:
                if await AccountService._has_postings(db, account_id):
                    raise BusinessRuleViolation(
                        "Opening balance cannot change once the account has postings"
                    )
            if "type" in changes:
                changes = {**changes, "type": AccountType(changes["type"])}

            await compare_and_set(db, Account, account, changes, expected_version)

        action = AuditAction.ACCOUNT_DEACTIVATED if changes.get("active") is False else AuditAction.ACCOUNT_UPDATED
        await log_event(
            db, action, actor_id=actor_id, entity_type="account", entity_id=account.id,
            before=before, after=snapshot(account, ACCOUNT_AUDIT_FIELDS),
        )
        return account

    @staticmethod
    async def deactivate_account(
        db: AsyncSession,
        account_id: int,
        expected_version: Optional[int] = None,
        actor_id: Optional[str] = None,
    ) -> Account:
        return await AccountService.update_account(
            db, account_id, {"active": False}, expected_version=expected_version, actor_id=actor_id
        )

    @staticmethod
    async def delete_account(db: AsyncSession, account_id: int, actor_id: Optional[str] = None) -> None:
        """Physically delete an account. Only allowed while it has no postings."""
        async with unit_of_work(db):
            account = await AccountService.get_account(db, account_id)
            if await AccountService._has_postings(db, account_id):
                raise BusinessRuleViolation(
                    "Account has postings; deactivate it instead", details={"account_id": account_id}
                )
            before = snapshot(account, ACCOUNT_AUDIT_FIELDS)
            await db.delete(account)

        await log_event(
            db, AuditAction.ACCOUNT_DELETED, actor_id=actor_id, entity_type="account",
            entity_id=account_id, before=before,
        )
