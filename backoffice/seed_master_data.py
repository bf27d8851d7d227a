"""
Database seeding script for ledger master data.

Creates the base currencies, one account per currency and a pair of
employees with salaries so payroll can be generated in development.
Run this script after the database is set up but before first use.
"""

import asyncio
import sys
from datetime import date
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import select

from backoffice.app.db.session import AsyncSessionLocal, engine, Base
from backoffice.app.domain.ledger.accounts import AccountService
from backoffice.app.domain.workflow.employees import EmployeeService
from backoffice.app.models.currency import Currency
# Register every table on Base before create_all
from backoffice.app.models import (  # noqa: F401
    account, account_transfer, ledger_posting, account_transaction, document, settlement,
    employee, salary_payment, borrowing, reimbursement, leave, audit_log,
)
from backoffice.app.models.ledger_enums import AccountType
from backoffice.app.models.workflow_enums import EmployeeStatus, SalaryType

SEED_ACTOR = "seed"

CURRENCIES = [
    ("USDT", "Tether", "₮"),
    ("CNY", "Renminbi", "¥"),
]

ACCOUNTS = [
    # name, currency, type, opening balance in cents
    ("Operating USDT", "USDT", AccountType.WALLET, 10_000_000),
    ("Operating CNY", "CNY", AccountType.BANK, 50_000_000),
    ("Petty cash", "CNY", AccountType.CASH, 500_000),
]

EMPLOYEES = [
    # name, join date, status, salary type, currency, monthly base in cents
    ("Alice", date(2022, 6, 1), EmployeeStatus.REGULAR, SalaryType.REGULAR, "USDT", 300_000),
    ("Bob", date(2023, 1, 10), EmployeeStatus.PROBATION, SalaryType.PROBATION, "CNY", 1_200_000),
]


async def seed_master_data():
    """
    Seed currencies, accounts and employees.

    Skips everything when currencies already exist.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as db:
        print("🌱 Starting master data seeding...")

        existing = (await db.execute(select(Currency))).scalars().first()
        if existing:
            print("ℹ️  Currencies already exist, skipping seeding")
            return

        for code, name, symbol in CURRENCIES:
            await AccountService.create_currency(db, code, name, symbol, actor_id=SEED_ACTOR)
            print(f"✅ Created currency {code}")

        for name, currency, account_type, opening_cents in ACCOUNTS:
            account = await AccountService.create_account(
                db, name, currency, type=account_type, opening_cents=opening_cents, actor_id=SEED_ACTOR
            )
            print(f"✅ Created account {account.name} (id {account.id}, {currency})")

        for name, join_date, status, salary_type, currency, base_cents in EMPLOYEES:
            employee = await EmployeeService.create_employee(
                db, name, join_date, status=status, actor_id=SEED_ACTOR
            )
            await EmployeeService.set_salary(
                db, employee.id, salary_type, currency, base_cents, actor_id=SEED_ACTOR
            )
            print(f"✅ Created employee {name} ({salary_type.value}, {base_cents} {currency} cents)")

    await engine.dispose()
    print("\n🎉 Master data seeding completed successfully!")
    print("\nNext: POST /v1/salary-payments/generate to create a month of payroll")


if __name__ == "__main__":
    asyncio.run(seed_master_data())
