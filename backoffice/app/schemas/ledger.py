"""
Ledger Schemas.

Currencies, accounts, postings, transfers and balance snapshots.
"""

from pydantic import BaseModel, Field
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, List
from backoffice.app.models.ledger_enums import AccountType, PostingKind


class CurrencyCreate(BaseModel):
    """Schema for creating a currency."""
    code: str = Field(..., min_length=1, max_length=16)
    name: str = Field(..., min_length=1, max_length=100)
    symbol: Optional[str] = Field(None, max_length=16)


class CurrencyResponse(BaseModel):
    code: str
    name: str
    symbol: Optional[str]
    active: bool

    class Config:
        from_attributes = True


class AccountCreate(BaseModel):
    """Schema for creating an account."""
    name: str = Field(..., min_length=1, max_length=100)
    currency: str = Field(..., min_length=1, max_length=16)
    type: AccountType = AccountType.BANK
    opening_cents: int = 0
    alias: Optional[str] = Field(None, max_length=100)
    account_number: Optional[str] = Field(None, max_length=100)


class AccountUpdate(BaseModel):
    """Partial update; only fields that are set are written."""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    type: Optional[AccountType] = None
    alias: Optional[str] = Field(None, max_length=100)
    account_number: Optional[str] = Field(None, max_length=100)
    opening_cents: Optional[int] = None
    active: Optional[bool] = None
    expected_version: Optional[int] = None


class AccountResponse(BaseModel):
    id: int
    name: str
    type: AccountType
    currency: str
    alias: Optional[str]
    account_number: Optional[str]
    opening_cents: int
    active: bool
    version: int

    class Config:
        from_attributes = True


class AccountBalanceResponse(BaseModel):
    account_id: int
    currency: str
    balance_cents: int


class PostingCreate(BaseModel):
    """Schema for an income or expense posting. Amount is positive; kind gives the sign."""
    account_id: int
    kind: PostingKind
    amount_cents: int = Field(..., gt=0)
    biz_date: Optional[date] = None
    category: Optional[str] = Field(None, max_length=100)
    method: Optional[str] = Field(None, max_length=50)
    site: Optional[str] = Field(None, max_length=100)
    department: Optional[str] = Field(None, max_length=100)
    counterparty: Optional[str] = Field(None, max_length=200)
    memo: Optional[str] = None
    voucher_urls: Optional[List[str]] = None


class PostingResponse(BaseModel):
    id: int
    voucher_no: Optional[str]
    biz_date: date
    kind: PostingKind
    account_id: int
    amount_cents: int
    category: Optional[str]
    site: Optional[str]
    department: Optional[str]
    counterparty: Optional[str]
    memo: Optional[str]
    voucher_urls: Optional[List[str]]
    transfer_id: Optional[int]
    is_reversal: bool
    reversal_of_posting_id: Optional[int]
    created_by: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True


class ReversalCreate(BaseModel):
    biz_date: Optional[date] = None
    memo: Optional[str] = None


class VoucherAttach(BaseModel):
    voucher_urls: List[str] = Field(..., min_length=1)


class TransferCreate(BaseModel):
    """Schema for a transfer. to_amount_cents is taken as given; exchange_rate is informational."""
    from_account_id: int
    to_account_id: int
    from_amount_cents: int = Field(..., gt=0)
    to_amount_cents: int = Field(..., gt=0)
    exchange_rate: Optional[Decimal] = Field(None, gt=0)
    transfer_date: Optional[date] = None
    memo: Optional[str] = None
    voucher_urls: Optional[List[str]] = None


class TransferResponse(BaseModel):
    id: int
    transfer_date: date
    from_account_id: int
    to_account_id: int
    from_currency: str
    to_currency: str
    from_amount_cents: int
    to_amount_cents: int
    exchange_rate: Optional[Decimal]
    memo: Optional[str]
    created_by: Optional[str]

    class Config:
        from_attributes = True


class AccountTransactionResponse(BaseModel):
    id: int
    account_id: int
    posting_id: int
    transaction_date: date
    kind: PostingKind
    amount_cents: int
    balance_before_cents: int
    balance_after_cents: int
    created_at: datetime

    class Config:
        from_attributes = True
