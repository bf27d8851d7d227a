"""
AR/AP Document API Endpoints.
"""

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from backoffice.app.db.session import get_db
from backoffice.app.core.dependencies import get_actor_id
from backoffice.app.domain.settlement.settlement_engine import SettlementEngine
from backoffice.app.models.ledger_enums import DocumentKind, DocumentStatus
from backoffice.app.schemas.ledger import PostingResponse
from backoffice.app.schemas.settlement import (
    DocumentCreate, DocumentResponse, DocumentConfirm, SettlementCreate, SettlementResponse,
)

router = APIRouter(prefix="/documents", tags=["AR/AP"])


@router.post("", response_model=DocumentResponse, status_code=status.HTTP_201_CREATED)
async def create_document(
    payload: DocumentCreate,
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db)
):
    return await SettlementEngine.create_document(db, created_by=actor_id, **payload.model_dump())


@router.get("", response_model=List[DocumentResponse])
async def list_documents(
    kind: Optional[DocumentKind] = Query(None),
    status: Optional[DocumentStatus] = Query(None),
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db)
):
    return await SettlementEngine.list_documents(db, kind=kind, status=status)


@router.get("/{document_id}", response_model=DocumentResponse)
async def get_document(
    document_id: int = Path(..., description="Document ID"),
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db)
):
    return await SettlementEngine.get_document(db, document_id)


@router.post("/{document_id}/settlements", response_model=SettlementResponse, status_code=status.HTTP_201_CREATED)
async def settle_document(
    payload: SettlementCreate,
    document_id: int = Path(..., description="Document ID"),
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db)
):
    return await SettlementEngine.settle(
        db, document_id, payload.posting_id, payload.amount_cents, payload.settle_date, actor_id=actor_id
    )


@router.get("/{document_id}/settlements", response_model=List[SettlementResponse])
async def list_settlements(
    document_id: int = Path(..., description="Document ID"),
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db)
):
    return await SettlementEngine.get_settlements(db, document_id)


@router.post("/{document_id}/confirm", response_model=PostingResponse)
async def confirm_document(
    payload: DocumentConfirm,
    document_id: int = Path(..., description="Document ID"),
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db)
):
    """Post the document's full amount and settle it. Rejected if already confirmed."""
    return await SettlementEngine.confirm(
        db,
        document_id,
        payload.account_id,
        biz_date=payload.biz_date,
        actor_id=actor_id,
        category=payload.category,
        memo=payload.memo,
        voucher_urls=payload.voucher_urls,
    )


@router.delete("/{document_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_document(
    document_id: int = Path(..., description="Document ID"),
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db)
):
    await SettlementEngine.delete_document(db, document_id, actor_id=actor_id)
