"""
AR/AP Document and Settlement Schemas.
"""

from pydantic import BaseModel, Field
from datetime import date, datetime
from typing import Optional, List
from backoffice.app.models.ledger_enums import DocumentKind, DocumentStatus


class DocumentCreate(BaseModel):
    """Schema for creating a receivable or payable document."""
    kind: DocumentKind
    amount_cents: int = Field(..., gt=0)
    issue_date: Optional[date] = None
    due_date: Optional[date] = None
    party: Optional[str] = Field(None, max_length=200)
    site: Optional[str] = Field(None, max_length=100)
    department: Optional[str] = Field(None, max_length=100)
    memo: Optional[str] = None


class DocumentResponse(BaseModel):
    id: int
    doc_no: str
    kind: DocumentKind
    party: Optional[str]
    amount_cents: int
    issue_date: date
    due_date: Optional[date]
    status: DocumentStatus
    confirmed: bool
    confirmed_by: Optional[str]
    posting_id: Optional[int]
    memo: Optional[str]

    class Config:
        from_attributes = True


class SettlementCreate(BaseModel):
    posting_id: int
    amount_cents: int = Field(..., gt=0)
    settle_date: Optional[date] = None


class SettlementResponse(BaseModel):
    id: int
    document_id: int
    posting_id: int
    amount_cents: int
    settle_date: date
    created_at: datetime

    class Config:
        from_attributes = True


class DocumentConfirm(BaseModel):
    account_id: int
    biz_date: Optional[date] = None
    category: Optional[str] = Field(None, max_length=100)
    memo: Optional[str] = None
    voucher_urls: Optional[List[str]] = None
