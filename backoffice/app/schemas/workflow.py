"""
Borrowing, Reimbursement and Leave Schemas.
"""

from pydantic import BaseModel, Field
from datetime import date
from decimal import Decimal
from typing import Optional
from backoffice.app.models.workflow_enums import BorrowingStatus, ReimbursementStatus, LeaveStatus, LeaveType
from backoffice.app.schemas.payroll import VersionedAction


class RejectRequest(VersionedAction):
    reason: Optional[str] = None


class DisburseRequest(VersionedAction):
    account_id: int
    biz_date: Optional[date] = None


class BorrowingCreate(BaseModel):
    employee_id: int
    amount_cents: int = Field(..., gt=0)
    currency: str
    borrow_date: Optional[date] = None
    memo: Optional[str] = None


class BorrowingResponse(BaseModel):
    id: int
    employee_id: int
    amount_cents: int
    currency: str
    borrow_date: date
    status: BorrowingStatus
    account_id: Optional[int]
    posting_id: Optional[int]
    memo: Optional[str]
    version: int

    class Config:
        from_attributes = True


class RepaymentCreate(VersionedAction):
    amount_cents: int = Field(..., gt=0)
    account_id: int
    repay_date: Optional[date] = None
    memo: Optional[str] = None


class RepaymentResponse(BaseModel):
    id: int
    borrowing_id: int
    account_id: int
    amount_cents: int
    currency: str
    repay_date: date
    posting_id: int
    memo: Optional[str]

    class Config:
        from_attributes = True


class ReimbursementCreate(BaseModel):
    employee_id: int
    expense_type: str = Field(..., min_length=1, max_length=100)
    amount_cents: int = Field(..., gt=0)
    currency: str
    expense_date: Optional[date] = None
    description: Optional[str] = None
    voucher_url: Optional[str] = None


class ReimbursementResponse(BaseModel):
    id: int
    employee_id: int
    expense_type: str
    amount_cents: int
    currency: str
    expense_date: date
    description: Optional[str]
    voucher_url: Optional[str]
    status: ReimbursementStatus
    account_id: Optional[int]
    posting_id: Optional[int]
    version: int

    class Config:
        from_attributes = True


class LeaveCreate(BaseModel):
    employee_id: int
    leave_type: LeaveType
    start_date: date
    end_date: date
    days: Optional[Decimal] = Field(None, gt=0)
    reason: Optional[str] = None
    memo: Optional[str] = None


class LeaveResponse(BaseModel):
    id: int
    employee_id: int
    leave_type: LeaveType
    start_date: date
    end_date: date
    days: Decimal
    status: LeaveStatus
    reason: Optional[str]
    version: int

    class Config:
        from_attributes = True
