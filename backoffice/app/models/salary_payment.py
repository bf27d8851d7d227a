"""
Salary Payment database models.

One payment per employee per month, plus its currency allocation rows.
"""

from sqlalchemy import (
    Column, Integer, BigInteger, String, Numeric, DateTime, Enum, ForeignKey, Text, UniqueConstraint
)
from sqlalchemy.sql import func
from backoffice.app.db.session import Base
from backoffice.app.models.workflow_enums import SalaryPaymentStatus, AllocationStatus, AllocationRowStatus


class SalaryPayment(Base):
    """
    Salary payment model.

    Workflow: pending_employee_confirmation -> pending_finance_approval
    -> pending_payment -> pending_payment_confirmation -> completed.
    Each step records who moved it and when.
    """
    __tablename__ = "salary_payments"
    __table_args__ = (
        UniqueConstraint("employee_id", "year", "month", name="uq_salary_payment_period"),
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    employee_id = Column(Integer, ForeignKey('employees.id'), nullable=False, index=True)
    year = Column(Integer, nullable=False)
    month = Column(Integer, nullable=False)

    salary_cents = Column(BigInteger, nullable=False)
    currency = Column(String(16), ForeignKey('currencies.code'), nullable=False)
    work_days = Column(Integer, nullable=False)
    days_in_month = Column(Integer, nullable=False)

    status = Column(
        Enum(SalaryPaymentStatus),
        default=SalaryPaymentStatus.PENDING_EMPLOYEE_CONFIRMATION,
        nullable=False,
        index=True,
    )
    allocation_status = Column(Enum(AllocationStatus), default=AllocationStatus.NONE, nullable=False)
    version = Column(Integer, default=0, nullable=False)

    # Disbursement
    account_id = Column(Integer, ForeignKey('accounts.id'), nullable=True)
    payment_voucher_path = Column(String(500), nullable=True)

    # Audit trail per step
    generated_by = Column(String(100), nullable=True)
    employee_confirmed_by = Column(String(100), nullable=True)
    employee_confirmed_at = Column(DateTime(timezone=True), nullable=True)
    finance_approved_by = Column(String(100), nullable=True)
    finance_approved_at = Column(DateTime(timezone=True), nullable=True)
    payment_transferred_by = Column(String(100), nullable=True)
    payment_transferred_at = Column(DateTime(timezone=True), nullable=True)
    payment_confirmed_by = Column(String(100), nullable=True)
    payment_confirmed_at = Column(DateTime(timezone=True), nullable=True)
    rollback_reason = Column(Text, nullable=True)
    rollback_by = Column(String(100), nullable=True)
    rollback_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return (
            f"<SalaryPayment(id={self.id}, employee={self.employee_id}, "
            f"period={self.year}-{self.month:02d}, status='{self.status.value}', v={self.version})>"
        )


class SalaryPaymentAllocation(Base):
    """
    Allocation row: the part of a salary paid in one currency.

    `exchange_rate` converts amount_cents into the payroll base currency
    for reconciliation against the payment total.
    """
    __tablename__ = "salary_payment_allocations"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    salary_payment_id = Column(Integer, ForeignKey('salary_payments.id'), nullable=False, index=True)
    currency = Column(String(16), ForeignKey('currencies.code'), nullable=False)
    amount_cents = Column(BigInteger, nullable=False)
    exchange_rate = Column(Numeric(20, 8), nullable=False, default=1)
    account_id = Column(Integer, ForeignKey('accounts.id'), nullable=True)

    status = Column(Enum(AllocationRowStatus), default=AllocationRowStatus.PENDING, nullable=False)
    posting_id = Column(Integer, ForeignKey('ledger_postings.id'), nullable=True)

    requested_by = Column(String(100), nullable=True)
    requested_at = Column(DateTime(timezone=True), nullable=True)
    approved_by = Column(String(100), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<SalaryPaymentAllocation(id={self.id}, payment={self.salary_payment_id}, {self.amount_cents} {self.currency}, '{self.status.value}')>"
