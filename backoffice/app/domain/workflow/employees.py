"""
Employee master data used by payroll generation.
"""

from datetime import date
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.app.core.exceptions import ResourceNotFoundError, ValidationError
from backoffice.app.db.session import unit_of_work
from backoffice.app.models.currency import Currency
from backoffice.app.models.employee import Employee, EmployeeSalary
from backoffice.app.models.workflow_enums import EmployeeStatus, SalaryType
from backoffice.app.services.audit import log_event, AuditAction, snapshot

EMPLOYEE_AUDIT_FIELDS = ("name", "email", "join_date", "status", "active")


class EmployeeService:

    @staticmethod
    async def create_employee(
        db: AsyncSession,
        name: str,
        join_date: date,
        status: EmployeeStatus = EmployeeStatus.PROBATION,
        email: Optional[str] = None,
        actor_id: Optional[str] = None,
    ) -> Employee:
        if not name:
            raise ValidationError("Employee name is required")

        async with unit_of_work(db):
            employee = Employee(
                name=name,
                email=email,
                join_date=join_date,
                status=EmployeeStatus(status),
                active=True,
            )
            db.add(employee)
            await db.flush()
            await db.refresh(employee)

        await log_event(
            db, AuditAction.EMPLOYEE_CREATED, actor_id=actor_id, entity_type="employee",
            entity_id=employee.id, after=snapshot(employee, EMPLOYEE_AUDIT_FIELDS),
        )
        return employee

    @staticmethod
    async def get_employee(db: AsyncSession, employee_id: int) -> Employee:
        employee = await db.get(Employee, employee_id)
        if not employee:
            raise ResourceNotFoundError("Employee", employee_id)
        return employee

    @staticmethod
    async def list_employees(db: AsyncSession, active_only: bool = True) -> List[Employee]:
        query = select(Employee).order_by(Employee.id)
        if active_only:
            query = query.where(Employee.active.is_(True))
        result = await db.execute(query)
        return result.scalars().all()

    @staticmethod
    async def set_salary(
        db: AsyncSession,
        employee_id: int,
        salary_type: SalaryType,
        currency: str,
        amount_cents: int,
        actor_id: Optional[str] = None,
    ) -> EmployeeSalary:
        """Create or replace the full-month base for (employee, type, currency)."""
        if amount_cents is None or amount_cents < 0:
            raise ValidationError("Salary must not be negative")
        salary_type = SalaryType(salary_type)

        async with unit_of_work(db):
            await EmployeeService.get_employee(db, employee_id)
            if not await db.get(Currency, currency):
                raise ResourceNotFoundError("Currency", currency)

            result = await db.execute(
                select(EmployeeSalary).where(
                    EmployeeSalary.employee_id == employee_id,
                    EmployeeSalary.salary_type == salary_type,
                    EmployeeSalary.currency == currency,
                )
            )
            salary = result.scalar_one_or_none()
            before = {"amount_cents": salary.amount_cents} if salary else None
            if salary:
                salary.amount_cents = amount_cents
            else:
                salary = EmployeeSalary(
                    employee_id=employee_id,
                    salary_type=salary_type,
                    currency=currency,
                    amount_cents=amount_cents,
                )
                db.add(salary)
            await db.flush()

        await log_event(
            db, AuditAction.EMPLOYEE_SALARY_SET, actor_id=actor_id, entity_type="employee",
            entity_id=employee_id, before=before,
            after={"salary_type": salary_type.value, "currency": currency, "amount_cents": amount_cents},
        )
        return salary
