"""
Leave API Endpoints.
"""

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from backoffice.app.db.session import get_db
from backoffice.app.core.dependencies import get_actor_id
from backoffice.app.domain.workflow.leave import LeaveWorkflow
from backoffice.app.models.workflow_enums import LeaveStatus
from backoffice.app.schemas.payroll import VersionedAction
from backoffice.app.schemas.workflow import LeaveCreate, LeaveResponse

router = APIRouter(prefix="/leaves", tags=["Leaves"])


@router.post("", response_model=LeaveResponse, status_code=status.HTTP_201_CREATED)
async def request_leave(
    payload: LeaveCreate,
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db)
):
    return await LeaveWorkflow.request(db, actor_id=actor_id, **payload.model_dump())


@router.get("", response_model=List[LeaveResponse])
async def list_leaves(
    employee_id: Optional[int] = Query(None),
    status: Optional[LeaveStatus] = Query(None),
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db)
):
    return await LeaveWorkflow.list_leaves(db, employee_id=employee_id, status=status)


@router.get("/{leave_id}", response_model=LeaveResponse)
async def get_leave(
    leave_id: int = Path(..., description="Leave ID"),
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db)
):
    return await LeaveWorkflow.get_leave(db, leave_id)


@router.post("/{leave_id}/approve", response_model=LeaveResponse)
async def approve_leave(
    payload: VersionedAction,
    leave_id: int = Path(..., description="Leave ID"),
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db)
):
    return await LeaveWorkflow.approve(db, leave_id, actor_id, expected_version=payload.expected_version)


@router.post("/{leave_id}/reject", response_model=LeaveResponse)
async def reject_leave(
    payload: VersionedAction,
    leave_id: int = Path(..., description="Leave ID"),
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db)
):
    return await LeaveWorkflow.reject(db, leave_id, actor_id, expected_version=payload.expected_version)


@router.delete("/{leave_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_leave(
    leave_id: int = Path(..., description="Leave ID"),
    expected_version: Optional[int] = Query(None),
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db)
):
    await LeaveWorkflow.delete(db, leave_id, actor_id, expected_version=expected_version)
