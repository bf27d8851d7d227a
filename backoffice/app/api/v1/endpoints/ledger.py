"""
Ledger API Endpoints.

Postings, transfers, reversals and voucher attachment.
"""

from fastapi import APIRouter, Depends, Path, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from backoffice.app.db.session import get_db
from backoffice.app.core.dependencies import get_actor_id
from backoffice.app.domain.ledger.ledger_engine import LedgerEngine
from backoffice.app.schemas.ledger import (
    PostingCreate, PostingResponse, ReversalCreate, VoucherAttach,
    TransferCreate, TransferResponse, AccountTransactionResponse,
)

router = APIRouter(prefix="/ledger", tags=["Ledger"])


@router.post("/postings", response_model=PostingResponse, status_code=status.HTTP_201_CREATED)
async def create_posting(
    payload: PostingCreate,
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db)
):
    """Post an income or expense."""
    data = payload.model_dump()
    return await LedgerEngine.post_single_entry(
        db,
        data.pop("account_id"),
        data.pop("kind"),
        data.pop("amount_cents"),
        biz_date=data.pop("biz_date"),
        created_by=actor_id,
        **data,
    )


@router.get("/postings/{posting_id}/snapshot", response_model=AccountTransactionResponse)
async def get_posting_snapshot(
    posting_id: int = Path(..., description="Posting ID"),
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db)
):
    return await LedgerEngine.get_snapshot(db, posting_id)


@router.post("/postings/{posting_id}/reverse", response_model=PostingResponse, status_code=status.HTTP_201_CREATED)
async def reverse_posting(
    payload: ReversalCreate,
    posting_id: int = Path(..., description="Posting ID"),
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db)
):
    return await LedgerEngine.reverse_posting(
        db, posting_id, biz_date=payload.biz_date, memo=payload.memo, created_by=actor_id
    )


@router.post("/postings/{posting_id}/vouchers", response_model=PostingResponse)
async def attach_vouchers(
    payload: VoucherAttach,
    posting_id: int = Path(..., description="Posting ID"),
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db)
):
    return await LedgerEngine.attach_vouchers(db, posting_id, payload.voucher_urls, actor_id=actor_id)


@router.post("/transfers", response_model=TransferResponse, status_code=status.HTTP_201_CREATED)
async def create_transfer(
    payload: TransferCreate,
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db)
):
    """Transfer between accounts. Legs may differ in currency and amount."""
    return await LedgerEngine.post_transfer(db, created_by=actor_id, **payload.model_dump())


@router.get("/transfers/{transfer_id}/legs", response_model=List[PostingResponse])
async def list_transfer_legs(
    transfer_id: int = Path(..., description="Transfer ID"),
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db)
):
    return await LedgerEngine.get_transfer_legs(db, transfer_id)
