"""
Payroll Schemas.

Employees, salary bases, salary payments and allocations.
"""

from pydantic import BaseModel, Field
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, List
from backoffice.app.models.workflow_enums import (
    EmployeeStatus, SalaryType, SalaryPaymentStatus, AllocationStatus, AllocationRowStatus
)


class EmployeeCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    join_date: date
    status: EmployeeStatus = EmployeeStatus.PROBATION
    email: Optional[str] = Field(None, max_length=255)


class EmployeeResponse(BaseModel):
    id: int
    name: str
    email: Optional[str]
    join_date: date
    status: EmployeeStatus
    active: bool

    class Config:
        from_attributes = True


class EmployeeSalarySet(BaseModel):
    salary_type: SalaryType
    currency: str
    amount_cents: int = Field(..., ge=0)


class EmployeeSalaryResponse(BaseModel):
    id: int
    employee_id: int
    salary_type: SalaryType
    currency: str
    amount_cents: int

    class Config:
        from_attributes = True


class GenerateRequest(BaseModel):
    year: int = Field(..., ge=1970)
    month: int = Field(..., ge=1, le=12)


class GenerateResponse(BaseModel):
    created: int
    ids: List[int]


class VersionedAction(BaseModel):
    """Body for transitions that only carry the caller's version."""
    expected_version: Optional[int] = None


class PaymentTransferRequest(VersionedAction):
    account_id: int


class PaymentConfirmRequest(VersionedAction):
    voucher_path: Optional[str] = None
    biz_date: Optional[date] = None


class RollbackRequest(VersionedAction):
    reason: str = Field(..., min_length=1)


class AllocationItemIn(BaseModel):
    currency: str
    amount_cents: int = Field(..., gt=0)
    account_id: Optional[int] = None
    exchange_rate: Optional[Decimal] = Field(None, gt=0)


class AllocationRequest(VersionedAction):
    allocations: List[AllocationItemIn] = Field(..., min_length=1)


class AllocationDecision(VersionedAction):
    allocation_ids: Optional[List[int]] = None
    approve_all: bool = False


class SalaryPaymentResponse(BaseModel):
    id: int
    employee_id: int
    year: int
    month: int
    salary_cents: int
    currency: str
    work_days: int
    days_in_month: int
    status: SalaryPaymentStatus
    allocation_status: AllocationStatus
    account_id: Optional[int]
    version: int
    employee_confirmed_by: Optional[str]
    finance_approved_by: Optional[str]
    payment_transferred_by: Optional[str]
    payment_confirmed_by: Optional[str]
    payment_voucher_path: Optional[str]
    rollback_reason: Optional[str]

    class Config:
        from_attributes = True


class AllocationResponse(BaseModel):
    id: int
    salary_payment_id: int
    currency: str
    amount_cents: int
    exchange_rate: Decimal
    account_id: Optional[int]
    status: AllocationRowStatus
    posting_id: Optional[int]
    requested_by: Optional[str]
    requested_at: Optional[datetime]
    approved_by: Optional[str]

    class Config:
        from_attributes = True
