"""
Leave database model.
"""

from sqlalchemy import Column, Integer, Numeric, String, Date, DateTime, Enum, ForeignKey, Text
from sqlalchemy.sql import func
from backoffice.app.db.session import Base
from backoffice.app.models.workflow_enums import LeaveStatus, LeaveType


class Leave(Base):
    """
    Leave request model.

    Approved non-annual leave is deducted from the monthly salary.
    """
    __tablename__ = "leaves"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    employee_id = Column(Integer, ForeignKey('employees.id'), nullable=False, index=True)
    leave_type = Column(Enum(LeaveType), nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    days = Column(Numeric(5, 1), nullable=False)
    reason = Column(Text, nullable=True)
    memo = Column(Text, nullable=True)

    status = Column(Enum(LeaveStatus), default=LeaveStatus.PENDING, nullable=False, index=True)
    version = Column(Integer, default=0, nullable=False)

    requested_by = Column(String(100), nullable=True)
    approved_by = Column(String(100), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    rejected_by = Column(String(100), nullable=True)
    rejected_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<Leave(id={self.id}, employee={self.employee_id}, {self.start_date}..{self.end_date}, status='{self.status.value}')>"
