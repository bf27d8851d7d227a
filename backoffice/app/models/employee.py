"""
Employee database models.

Employees and their full-month salary bases, read by payroll generation.
"""

from sqlalchemy import Column, Integer, BigInteger, String, Boolean, Date, DateTime, Enum, ForeignKey, UniqueConstraint
from sqlalchemy.sql import func
from backoffice.app.db.session import Base
from backoffice.app.models.workflow_enums import EmployeeStatus, SalaryType


class Employee(Base):
    """Employee model."""
    __tablename__ = "employees"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    name = Column(String(100), nullable=False)
    email = Column(String(255), unique=True, nullable=True)
    join_date = Column(Date, nullable=False)
    status = Column(Enum(EmployeeStatus), default=EmployeeStatus.PROBATION, nullable=False)
    active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<Employee(id={self.id}, name='{self.name}', status='{self.status.value}')>"


class EmployeeSalary(Base):
    """
    Full-month salary base for an employee, per salary type and currency.
    """
    __tablename__ = "employee_salaries"
    __table_args__ = (
        UniqueConstraint("employee_id", "salary_type", "currency", name="uq_employee_salary"),
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    employee_id = Column(Integer, ForeignKey('employees.id'), nullable=False, index=True)
    salary_type = Column(Enum(SalaryType), nullable=False)
    currency = Column(String(16), ForeignKey('currencies.code'), nullable=False)
    amount_cents = Column(BigInteger, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<EmployeeSalary(employee={self.employee_id}, type='{self.salary_type.value}', {self.amount_cents} {self.currency})>"
