"""
Salary Payment API Endpoints.

Monthly generation, allocation and the approval chain. Every mutating call
accepts expected_version; a stale value returns 409.
"""

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from backoffice.app.db.session import get_db
from backoffice.app.core.dependencies import get_actor_id
from backoffice.app.domain.workflow.payroll import SalaryPaymentWorkflow, AllocationItem
from backoffice.app.models.workflow_enums import SalaryPaymentStatus
from backoffice.app.schemas.payroll import (
    GenerateRequest, GenerateResponse, VersionedAction,
    PaymentTransferRequest, PaymentConfirmRequest, RollbackRequest,
    AllocationRequest, AllocationDecision,
    SalaryPaymentResponse, AllocationResponse,
)

router = APIRouter(prefix="/salary-payments", tags=["Payroll"])


@router.post("/generate", response_model=GenerateResponse, status_code=status.HTTP_201_CREATED)
async def generate_salary_payments(
    payload: GenerateRequest,
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db)
):
    """Generate the month's payments for eligible employees. Existing periods are skipped."""
    result = await SalaryPaymentWorkflow.generate(db, payload.year, payload.month, actor_id=actor_id)
    return GenerateResponse(created=result.created, ids=result.ids)


@router.get("", response_model=List[SalaryPaymentResponse])
async def list_salary_payments(
    year: Optional[int] = Query(None),
    month: Optional[int] = Query(None, ge=1, le=12),
    status: Optional[SalaryPaymentStatus] = Query(None),
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db)
):
    return await SalaryPaymentWorkflow.list_payments(db, year=year, month=month, status=status)


@router.get("/{payment_id}", response_model=SalaryPaymentResponse)
async def get_salary_payment(
    payment_id: int = Path(..., description="Salary payment ID"),
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db)
):
    return await SalaryPaymentWorkflow.get_payment(db, payment_id)


@router.get("/{payment_id}/allocations", response_model=List[AllocationResponse])
async def list_allocations(
    payment_id: int = Path(..., description="Salary payment ID"),
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db)
):
    await SalaryPaymentWorkflow.get_payment(db, payment_id)
    return await SalaryPaymentWorkflow.get_allocations(db, payment_id)


@router.post("/{payment_id}/employee-confirm", response_model=SalaryPaymentResponse)
async def employee_confirm(
    payload: VersionedAction,
    payment_id: int = Path(..., description="Salary payment ID"),
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db)
):
    return await SalaryPaymentWorkflow.employee_confirm(
        db, payment_id, actor_id, expected_version=payload.expected_version
    )


@router.post("/{payment_id}/allocations", response_model=List[AllocationResponse])
async def request_allocation(
    payload: AllocationRequest,
    payment_id: int = Path(..., description="Salary payment ID"),
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db)
):
    """Replace the allocation rows. The converted total must match the salary."""
    items = [AllocationItem(**item.model_dump()) for item in payload.allocations]
    return await SalaryPaymentWorkflow.request_allocation(
        db, payment_id, items, actor_id, expected_version=payload.expected_version
    )


@router.post("/{payment_id}/allocations/approve", response_model=SalaryPaymentResponse)
async def approve_allocation(
    payload: AllocationDecision,
    payment_id: int = Path(..., description="Salary payment ID"),
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db)
):
    return await SalaryPaymentWorkflow.approve_allocation(
        db,
        payment_id,
        actor_id,
        allocation_ids=payload.allocation_ids,
        approve_all=payload.approve_all,
        expected_version=payload.expected_version,
    )


@router.post("/{payment_id}/allocations/reject", response_model=SalaryPaymentResponse)
async def reject_allocation(
    payload: AllocationDecision,
    payment_id: int = Path(..., description="Salary payment ID"),
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db)
):
    return await SalaryPaymentWorkflow.reject_allocation(
        db, payment_id, payload.allocation_ids or [], actor_id, expected_version=payload.expected_version
    )


@router.post("/{payment_id}/finance-approve", response_model=SalaryPaymentResponse)
async def finance_approve(
    payload: VersionedAction,
    payment_id: int = Path(..., description="Salary payment ID"),
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db)
):
    return await SalaryPaymentWorkflow.finance_approve(
        db, payment_id, actor_id, expected_version=payload.expected_version
    )


@router.post("/{payment_id}/payment-transfer", response_model=SalaryPaymentResponse)
async def payment_transfer(
    payload: PaymentTransferRequest,
    payment_id: int = Path(..., description="Salary payment ID"),
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db)
):
    return await SalaryPaymentWorkflow.payment_transfer(
        db, payment_id, payload.account_id, actor_id, expected_version=payload.expected_version
    )


@router.post("/{payment_id}/payment-confirm", response_model=SalaryPaymentResponse)
async def payment_confirm(
    payload: PaymentConfirmRequest,
    payment_id: int = Path(..., description="Salary payment ID"),
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db)
):
    """Complete the payment and post the disbursement to the ledger."""
    return await SalaryPaymentWorkflow.payment_confirm(
        db,
        payment_id,
        actor_id,
        voucher_path=payload.voucher_path,
        biz_date=payload.biz_date,
        expected_version=payload.expected_version,
    )


@router.post("/{payment_id}/rollback", response_model=SalaryPaymentResponse)
async def rollback(
    payload: RollbackRequest,
    payment_id: int = Path(..., description="Salary payment ID"),
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db)
):
    return await SalaryPaymentWorkflow.rollback(
        db, payment_id, payload.reason, actor_id, expected_version=payload.expected_version
    )


@router.delete("/{payment_id}", response_model=SalaryPaymentResponse)
async def delete_salary_payment(
    payment_id: int = Path(..., description="Salary payment ID"),
    expected_version: Optional[int] = Query(None),
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db)
):
    return await SalaryPaymentWorkflow.delete(db, payment_id, actor_id, expected_version=expected_version)
