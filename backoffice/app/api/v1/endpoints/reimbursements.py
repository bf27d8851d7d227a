"""
Expense Reimbursement API Endpoints.
"""

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from backoffice.app.db.session import get_db
from backoffice.app.core.dependencies import get_actor_id
from backoffice.app.domain.workflow.reimbursement import ReimbursementWorkflow
from backoffice.app.models.workflow_enums import ReimbursementStatus
from backoffice.app.schemas.payroll import VersionedAction
from backoffice.app.schemas.workflow import (
    ReimbursementCreate, ReimbursementResponse, RejectRequest, DisburseRequest,
)

router = APIRouter(prefix="/reimbursements", tags=["Reimbursements"])


@router.post("", response_model=ReimbursementResponse, status_code=status.HTTP_201_CREATED)
async def create_reimbursement(
    payload: ReimbursementCreate,
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db)
):
    return await ReimbursementWorkflow.create(db, actor_id=actor_id, **payload.model_dump())


@router.get("", response_model=List[ReimbursementResponse])
async def list_reimbursements(
    employee_id: Optional[int] = Query(None),
    status: Optional[ReimbursementStatus] = Query(None),
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db)
):
    return await ReimbursementWorkflow.list_reimbursements(db, employee_id=employee_id, status=status)


@router.get("/{reimbursement_id}", response_model=ReimbursementResponse)
async def get_reimbursement(
    reimbursement_id: int = Path(..., description="Reimbursement ID"),
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db)
):
    return await ReimbursementWorkflow.get_reimbursement(db, reimbursement_id)


@router.post("/{reimbursement_id}/approve", response_model=ReimbursementResponse)
async def approve_reimbursement(
    payload: VersionedAction,
    reimbursement_id: int = Path(..., description="Reimbursement ID"),
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db)
):
    return await ReimbursementWorkflow.approve(
        db, reimbursement_id, actor_id, expected_version=payload.expected_version
    )


@router.post("/{reimbursement_id}/reject", response_model=ReimbursementResponse)
async def reject_reimbursement(
    payload: RejectRequest,
    reimbursement_id: int = Path(..., description="Reimbursement ID"),
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db)
):
    return await ReimbursementWorkflow.reject(
        db, reimbursement_id, actor_id, reason=payload.reason, expected_version=payload.expected_version
    )


@router.post("/{reimbursement_id}/pay", response_model=ReimbursementResponse)
async def pay_reimbursement(
    payload: DisburseRequest,
    reimbursement_id: int = Path(..., description="Reimbursement ID"),
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db)
):
    """Pay an approved reimbursement and post the expense."""
    return await ReimbursementWorkflow.pay(
        db,
        reimbursement_id,
        payload.account_id,
        actor_id,
        biz_date=payload.biz_date,
        expected_version=payload.expected_version,
    )


@router.delete("/{reimbursement_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_reimbursement(
    reimbursement_id: int = Path(..., description="Reimbursement ID"),
    expected_version: Optional[int] = Query(None),
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db)
):
    await ReimbursementWorkflow.delete(db, reimbursement_id, actor_id, expected_version=expected_version)
