"""
State machine and optimistic lock unit tests.
"""

import pytest
from backoffice.app.core.exceptions import InvalidTransitionError, ConcurrentModificationError
from backoffice.app.core.optimistic_lock import validate_version, increment_version
from backoffice.app.core.state_machine import (
    StateMachine,
    SALARY_PAYMENT_STATE_MACHINE,
    BORROWING_STATE_MACHINE,
    LEAVE_STATE_MACHINE,
)
from backoffice.app.models.workflow_enums import SalaryPaymentStatus, BorrowingStatus, LeaveStatus


def test_salary_forward_chain_is_legal():
    chain = [
        SalaryPaymentStatus.PENDING_EMPLOYEE_CONFIRMATION,
        SalaryPaymentStatus.PENDING_FINANCE_APPROVAL,
        SalaryPaymentStatus.PENDING_PAYMENT,
        SalaryPaymentStatus.PENDING_PAYMENT_CONFIRMATION,
        SalaryPaymentStatus.COMPLETED,
    ]
    for current, nxt in zip(chain, chain[1:]):
        assert SALARY_PAYMENT_STATE_MACHINE.can_transition(current, nxt)


def test_salary_cannot_skip_steps():
    with pytest.raises(InvalidTransitionError) as exc_info:
        SALARY_PAYMENT_STATE_MACHINE.validate_transition(
            SalaryPaymentStatus.PENDING_EMPLOYEE_CONFIRMATION, SalaryPaymentStatus.PENDING_PAYMENT
        )
    assert exc_info.value.status_code == 409
    assert exc_info.value.details == {
        "from": "pending_employee_confirmation",
        "to": "pending_payment",
    }


def test_terminal_states_reject_everything():
    assert SALARY_PAYMENT_STATE_MACHINE.terminal_states() == {"completed", "deleted"}
    for target in SalaryPaymentStatus:
        assert not SALARY_PAYMENT_STATE_MACHINE.can_transition(SalaryPaymentStatus.COMPLETED, target)
    assert BORROWING_STATE_MACHINE.is_terminal(BorrowingStatus.REPAID)
    assert LEAVE_STATE_MACHINE.is_terminal(LeaveStatus.REJECTED)


def test_raw_values_and_members_are_interchangeable():
    assert BORROWING_STATE_MACHINE.can_transition("outstanding", BorrowingStatus.PARTIAL)
    assert BORROWING_STATE_MACHINE.possible_transitions(BorrowingStatus.PENDING) == {"approved", "rejected"}


def test_unknown_source_state_is_rejected():
    with pytest.raises(InvalidTransitionError):
        LEAVE_STATE_MACHINE.validate_transition("archived", LeaveStatus.APPROVED)


def test_undeclared_target_fails_at_construction():
    with pytest.raises(ValueError):
        StateMachine("broken", {"a": ["b"]})


def test_validate_version():
    validate_version(3, 3)
    validate_version(3, None)
    validate_version(None, 7)
    with pytest.raises(ConcurrentModificationError) as exc_info:
        validate_version(3, 2)
    assert exc_info.value.details == {"current_version": 3, "expected_version": 2}


def test_increment_version():
    assert increment_version(None) == 1
    assert increment_version(0) == 1
    assert increment_version(3) == 4
