"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from backoffice.app.api.v1.endpoints import (
    accounts, ledger, documents,
    employees, salary_payments,
    borrowings, reimbursements, leaves,
    audit,
)

router = APIRouter()

# Master data and ledger
router.include_router(accounts.router)
router.include_router(ledger.router)

# Receivables / payables
router.include_router(documents.router)

# Payroll
router.include_router(employees.router)
router.include_router(salary_payments.router)

# Employee workflows
router.include_router(borrowings.router)
router.include_router(reimbursements.router)
router.include_router(leaves.router)

router.include_router(audit.router)
