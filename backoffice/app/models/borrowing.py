"""
Borrowing and Repayment database models.

Employee borrowing from the company and its repayments.
"""

from sqlalchemy import Column, Integer, BigInteger, String, Date, DateTime, Enum, ForeignKey, Text
from sqlalchemy.sql import func
from backoffice.app.db.session import Base
from backoffice.app.models.workflow_enums import BorrowingStatus


class Borrowing(Base):
    """
    Borrowing model.

    pending -> approved -> outstanding -> partial -> repaid,
    or pending -> rejected.
    """
    __tablename__ = "borrowings"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    employee_id = Column(Integer, ForeignKey('employees.id'), nullable=False, index=True)
    amount_cents = Column(BigInteger, nullable=False)
    currency = Column(String(16), ForeignKey('currencies.code'), nullable=False)
    borrow_date = Column(Date, nullable=False)
    memo = Column(Text, nullable=True)

    status = Column(Enum(BorrowingStatus), default=BorrowingStatus.PENDING, nullable=False, index=True)
    version = Column(Integer, default=0, nullable=False)

    # Disbursement
    account_id = Column(Integer, ForeignKey('accounts.id'), nullable=True)
    posting_id = Column(Integer, ForeignKey('ledger_postings.id'), nullable=True)

    requested_by = Column(String(100), nullable=True)
    approved_by = Column(String(100), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    rejected_by = Column(String(100), nullable=True)
    rejected_at = Column(DateTime(timezone=True), nullable=True)
    reject_reason = Column(Text, nullable=True)
    disbursed_by = Column(String(100), nullable=True)
    disbursed_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<Borrowing(id={self.id}, employee={self.employee_id}, amount={self.amount_cents}, status='{self.status.value}')>"


class Repayment(Base):
    """Repayment against a borrowing. Immutable."""
    __tablename__ = "repayments"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    borrowing_id = Column(Integer, ForeignKey('borrowings.id'), nullable=False, index=True)
    account_id = Column(Integer, ForeignKey('accounts.id'), nullable=False)
    amount_cents = Column(BigInteger, nullable=False)
    currency = Column(String(16), nullable=False)
    repay_date = Column(Date, nullable=False)
    posting_id = Column(Integer, ForeignKey('ledger_postings.id'), nullable=False)
    memo = Column(Text, nullable=True)

    created_by = Column(String(100), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<Repayment(id={self.id}, borrowing={self.borrowing_id}, amount={self.amount_cents})>"
