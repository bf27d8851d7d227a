"""
Employee Borrowing API Endpoints.
"""

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from backoffice.app.db.session import get_db
from backoffice.app.core.dependencies import get_actor_id
from backoffice.app.domain.workflow.borrowing import BorrowingWorkflow
from backoffice.app.models.workflow_enums import BorrowingStatus
from backoffice.app.schemas.payroll import VersionedAction
from backoffice.app.schemas.workflow import (
    BorrowingCreate, BorrowingResponse, RejectRequest, DisburseRequest,
    RepaymentCreate, RepaymentResponse,
)

router = APIRouter(prefix="/borrowings", tags=["Borrowings"])


@router.post("", response_model=BorrowingResponse, status_code=status.HTTP_201_CREATED)
async def request_borrowing(
    payload: BorrowingCreate,
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db)
):
    return await BorrowingWorkflow.request(db, actor_id=actor_id, **payload.model_dump())


@router.get("", response_model=List[BorrowingResponse])
async def list_borrowings(
    employee_id: Optional[int] = Query(None),
    status: Optional[BorrowingStatus] = Query(None),
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db)
):
    return await BorrowingWorkflow.list_borrowings(db, employee_id=employee_id, status=status)


@router.get("/{borrowing_id}", response_model=BorrowingResponse)
async def get_borrowing(
    borrowing_id: int = Path(..., description="Borrowing ID"),
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db)
):
    return await BorrowingWorkflow.get_borrowing(db, borrowing_id)


@router.post("/{borrowing_id}/approve", response_model=BorrowingResponse)
async def approve_borrowing(
    payload: VersionedAction,
    borrowing_id: int = Path(..., description="Borrowing ID"),
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db)
):
    return await BorrowingWorkflow.approve(db, borrowing_id, actor_id, expected_version=payload.expected_version)


@router.post("/{borrowing_id}/reject", response_model=BorrowingResponse)
async def reject_borrowing(
    payload: RejectRequest,
    borrowing_id: int = Path(..., description="Borrowing ID"),
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db)
):
    return await BorrowingWorkflow.reject(
        db, borrowing_id, actor_id, reason=payload.reason, expected_version=payload.expected_version
    )


@router.post("/{borrowing_id}/disburse", response_model=BorrowingResponse)
async def disburse_borrowing(
    payload: DisburseRequest,
    borrowing_id: int = Path(..., description="Borrowing ID"),
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db)
):
    """Pay the borrowed amount out of an account."""
    return await BorrowingWorkflow.disburse(
        db,
        borrowing_id,
        payload.account_id,
        actor_id,
        biz_date=payload.biz_date,
        expected_version=payload.expected_version,
    )


@router.post("/{borrowing_id}/repayments", response_model=RepaymentResponse, status_code=status.HTTP_201_CREATED)
async def record_repayment(
    payload: RepaymentCreate,
    borrowing_id: int = Path(..., description="Borrowing ID"),
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db)
):
    return await BorrowingWorkflow.record_repayment(
        db,
        borrowing_id,
        payload.amount_cents,
        payload.account_id,
        actor_id,
        repay_date=payload.repay_date,
        memo=payload.memo,
        expected_version=payload.expected_version,
    )


@router.get("/{borrowing_id}/repayments", response_model=List[RepaymentResponse])
async def list_repayments(
    borrowing_id: int = Path(..., description="Borrowing ID"),
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db)
):
    return await BorrowingWorkflow.get_repayments(db, borrowing_id)


@router.delete("/{borrowing_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_borrowing(
    borrowing_id: int = Path(..., description="Borrowing ID"),
    expected_version: Optional[int] = Query(None),
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db)
):
    await BorrowingWorkflow.delete(db, borrowing_id, actor_id, expected_version=expected_version)
