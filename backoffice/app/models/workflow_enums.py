"""
Workflow enumerations.

Statuses for salary payments, allocations, borrowings, reimbursements
and leave requests.
"""

import enum


class SalaryPaymentStatus(str, enum.Enum):
    """Salary payment lifecycle."""
    PENDING_EMPLOYEE_CONFIRMATION = "pending_employee_confirmation"  # Generated, waiting for employee
    PENDING_FINANCE_APPROVAL = "pending_finance_approval"
    PENDING_PAYMENT = "pending_payment"  # Approved, waiting for transfer
    PENDING_PAYMENT_CONFIRMATION = "pending_payment_confirmation"  # Transferred, waiting for receipt
    COMPLETED = "completed"
    DELETED = "deleted"


class AllocationStatus(str, enum.Enum):
    """Allocation status of a salary payment as a whole."""
    NONE = "none"
    REQUESTED = "requested"
    APPROVED = "approved"


class AllocationRowStatus(str, enum.Enum):
    """Status of a single allocation row."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class BorrowingStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    OUTSTANDING = "outstanding"  # Disbursed, nothing repaid yet
    PARTIAL = "partial"
    REPAID = "repaid"
    REJECTED = "rejected"


class ReimbursementStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    PAID = "paid"
    REJECTED = "rejected"


class LeaveStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class LeaveType(str, enum.Enum):
    """Leave types. Only ANNUAL leave is paid."""
    ANNUAL = "annual"
    SICK = "sick"
    PERSONAL = "personal"
    UNPAID = "unpaid"
    OTHER = "other"


class EmployeeStatus(str, enum.Enum):
    PROBATION = "probation"
    REGULAR = "regular"


class SalaryType(str, enum.Enum):
    PROBATION = "probation"
    REGULAR = "regular"
