"""
Employee API Endpoints.
"""

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from backoffice.app.db.session import get_db
from backoffice.app.core.dependencies import get_actor_id
from backoffice.app.domain.workflow.employees import EmployeeService
from backoffice.app.schemas.payroll import (
    EmployeeCreate, EmployeeResponse, EmployeeSalarySet, EmployeeSalaryResponse,
)

router = APIRouter(prefix="/employees", tags=["Employees"])


@router.post("", response_model=EmployeeResponse, status_code=status.HTTP_201_CREATED)
async def create_employee(
    payload: EmployeeCreate,
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db)
):
    return await EmployeeService.create_employee(db, actor_id=actor_id, **payload.model_dump())


@router.get("", response_model=List[EmployeeResponse])
async def list_employees(
    active_only: bool = Query(True),
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db)
):
    return await EmployeeService.list_employees(db, active_only=active_only)


@router.get("/{employee_id}", response_model=EmployeeResponse)
async def get_employee(
    employee_id: int = Path(..., description="Employee ID"),
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db)
):
    return await EmployeeService.get_employee(db, employee_id)


@router.put("/{employee_id}/salary", response_model=EmployeeSalaryResponse)
async def set_salary(
    payload: EmployeeSalarySet,
    employee_id: int = Path(..., description="Employee ID"),
    actor_id: str = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db)
):
    """Set the full-month base salary for one salary type and currency."""
    return await EmployeeService.set_salary(
        db, employee_id, payload.salary_type, payload.currency, payload.amount_cents, actor_id=actor_id
    )
