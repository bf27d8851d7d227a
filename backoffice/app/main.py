"""
FastAPI Application Entry Point.

This is the main application file for the Back-Office Ledger Backend.
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI, Depends
from fastapi.exceptions import RequestValidationError
from backoffice.app.core.config import settings
from backoffice.app.api.v1.router import router as api_v1_router
from backoffice.app.core.dependencies import get_current_user
from backoffice.app.core.jwt import issue_actor_token
from backoffice.app.core.observability import ObservabilityMiddleware, setup_logging
from backoffice.app.db.session import engine, Base
from backoffice.app.core.exceptions import (
    AppException,
    app_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler
)
from fastapi import HTTPException

# Import models to ensure they are registered with Base
from backoffice.app.models.currency import Currency
from backoffice.app.models.account import Account
from backoffice.app.models.account_transfer import AccountTransfer  # before postings for FK
from backoffice.app.models.ledger_posting import LedgerPosting
from backoffice.app.models.account_transaction import AccountTransaction
from backoffice.app.models.document import ArApDocument
from backoffice.app.models.settlement import Settlement
from backoffice.app.models.employee import Employee, EmployeeSalary
from backoffice.app.models.salary_payment import SalaryPayment, SalaryPaymentAllocation
from backoffice.app.models.borrowing import Borrowing, Repayment
from backoffice.app.models.reimbursement import Reimbursement
from backoffice.app.models.leave import Leave
from backoffice.app.models.audit_log import AuditLog

setup_logging(settings.log_level)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for application startup/shutdown.

    1. Creates database tables on startup.
    2. Disposes the connection pool on shutdown.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    await engine.dispose()

# Initialize FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.api_version,
    debug=settings.debug,
    description="Back-office ledger, AR/AP settlement and payroll workflows",
    lifespan=lifespan,
)

app.add_middleware(ObservabilityMiddleware)

# Register global exception handlers
app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check endpoint.

    Returns:
        dict: Status and application information
    """
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.api_version,
    }


# Include API v1 router
app.include_router(api_v1_router, prefix=f"/{settings.api_version}")


@app.get("/", tags=["Root"])
async def root():
    """
    Root endpoint.

    Returns:
        dict: Welcome message and API documentation links
    """
    return {
        "message": "Welcome to Back-Office Ledger API",
        "docs": "/docs",
        "health": "/health",
    }


if settings.debug:
    # Local tokens; production tokens come from the identity provider
    @app.post("/auth/test-token", tags=["Authentication"])
    async def generate_test_token(actor: str = "finance.dev"):
        token = issue_actor_token(actor)
        return {"access_token": token, "token_type": "bearer", "actor_id": actor}


@app.get("/auth/whoami", tags=["Authentication"])
async def whoami(current_user: dict = Depends(get_current_user)):
    """Echo the authenticated token payload. Returns 401 if the token is missing or invalid."""
    return {"actor_id": str(current_user["sub"]), "claims": current_user}
