"""
Reimbursement database model.

Employee expense claims paid out from a company account.
"""

from sqlalchemy import Column, Integer, BigInteger, String, Date, DateTime, Enum, ForeignKey, Text
from sqlalchemy.sql import func
from backoffice.app.db.session import Base
from backoffice.app.models.workflow_enums import ReimbursementStatus


class Reimbursement(Base):
    """
    Reimbursement model.

    pending -> approved -> paid, or pending -> rejected.
    """
    __tablename__ = "reimbursements"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    employee_id = Column(Integer, ForeignKey('employees.id'), nullable=False, index=True)
    expense_type = Column(String(100), nullable=False)
    amount_cents = Column(BigInteger, nullable=False)
    currency = Column(String(16), ForeignKey('currencies.code'), nullable=False)
    expense_date = Column(Date, nullable=False)
    description = Column(Text, nullable=True)
    voucher_url = Column(String(500), nullable=True)

    status = Column(Enum(ReimbursementStatus), default=ReimbursementStatus.PENDING, nullable=False, index=True)
    version = Column(Integer, default=0, nullable=False)

    account_id = Column(Integer, ForeignKey('accounts.id'), nullable=True)
    posting_id = Column(Integer, ForeignKey('ledger_postings.id'), nullable=True)

    created_by = Column(String(100), nullable=True)
    approved_by = Column(String(100), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    rejected_by = Column(String(100), nullable=True)
    rejected_at = Column(DateTime(timezone=True), nullable=True)
    reject_reason = Column(Text, nullable=True)
    paid_by = Column(String(100), nullable=True)
    paid_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<Reimbursement(id={self.id}, employee={self.employee_id}, amount={self.amount_cents}, status='{self.status.value}')>"
