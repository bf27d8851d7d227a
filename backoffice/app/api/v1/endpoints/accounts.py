"""
Account and Currency API Endpoints.

Master data for the ledger.
"""

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from backoffice.app.db.session import get_db
from backoffice.app.core.dependencies import get_actor_id
from backoffice.app.domain.ledger.accounts import AccountService
from backoffice.app.domain.ledger.ledger_engine import LedgerEngine
from backoffice.app.schemas.payroll import VersionedAction
from backoffice.app.schemas.ledger import (
    CurrencyCreate, CurrencyResponse,
    AccountCreate, AccountUpdate, AccountResponse, AccountBalanceResponse,
    AccountTransactionResponse,
)

router = APIRouter(tags=["Accounts"])


@router.post("/currencies", response_model=CurrencyResponse, status_code=status.HTTP_201_CREATED)
async def create_currency(
    payload: CurrencyCreate,
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db)
):
    return await AccountService.create_currency(
        db, payload.code, payload.name, payload.symbol, actor_id=actor_id
    )


@router.get("/currencies", response_model=List[CurrencyResponse])
async def list_currencies(
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db)
):
    return await AccountService.list_currencies(db)


@router.post("/accounts", response_model=AccountResponse, status_code=status.HTTP_201_CREATED)
async def create_account(
    payload: AccountCreate,
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db)
):
    """Create an account with an opening balance."""
    return await AccountService.create_account(db, actor_id=actor_id, **payload.model_dump())


@router.get("/accounts", response_model=List[AccountResponse])
async def list_accounts(
    active_only: bool = Query(False),
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db)
):
    return await AccountService.list_accounts(db, active_only=active_only)


@router.get("/accounts/{account_id}", response_model=AccountResponse)
async def get_account(
    account_id: int = Path(..., description="Account ID"),
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db)
):
    return await AccountService.get_account(db, account_id)


@router.patch("/accounts/{account_id}", response_model=AccountResponse)
async def update_account(
    payload: AccountUpdate,
    account_id: int = Path(..., description="Account ID"),
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db)
):
    """Edit an account. Send expected_version to guard against concurrent edits."""
    changes = payload.model_dump(exclude_unset=True)
    expected_version = changes.pop("expected_version", None)
    return await AccountService.update_account(
        db, account_id, changes, expected_version=expected_version, actor_id=actor_id
    )


@router.delete("/accounts/{account_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_account(
    account_id: int = Path(..., description="Account ID"),
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db)
):
    """Delete an account without postings."""
    await AccountService.delete_account(db, account_id, actor_id=actor_id)


@router.get("/accounts/{account_id}/balance", response_model=AccountBalanceResponse)
async def get_balance(
    account_id: int = Path(..., description="Account ID"),
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db)
):
    account = await AccountService.get_account(db, account_id)
    balance = await LedgerEngine.get_current_balance(db, account_id)
    return AccountBalanceResponse(account_id=account.id, currency=account.currency, balance_cents=balance)


@router.get("/accounts/{account_id}/transactions", response_model=List[AccountTransactionResponse])
async def list_account_transactions(
    account_id: int = Path(..., description="Account ID"),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db)
):
    """Balance snapshots, newest first."""
    return await LedgerEngine.get_account_transactions(db, account_id, limit=limit, offset=offset)


@router.post("/accounts/{account_id}/deactivate", response_model=AccountResponse)
async def deactivate_account(
    payload: VersionedAction,
    account_id: int = Path(..., description="Account ID"),
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db)
):
    """Close an account for new postings. History stays readable."""
    return await AccountService.deactivate_account(
        db, account_id, expected_version=payload.expected_version, actor_id=actor_id
    )
