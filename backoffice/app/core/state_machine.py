"""
Status transition tables for workflow entities.

Each workflow entity type owns one StateMachine constant declared at the
bottom of this module. Machines are pure: they hold no persistence and no
per-entity state, they only answer whether a status change is legal.
"""

import logging
from typing import Any, Dict, FrozenSet, Iterable, Mapping

from backoffice.app.core.exceptions import InvalidTransitionError
from backoffice.app.models.workflow_enums import (
    SalaryPaymentStatus,
    BorrowingStatus,
    ReimbursementStatus,
    LeaveStatus,
)

logger = logging.getLogger(__name__)


def _key(state: Any) -> str:
    # str-Enum members and their raw values must address the same table row
    return getattr(state, "value", state)


class StateMachine:
    """
    Transition table validator.

    Args:
        name: Entity type the table belongs to (used in logs)
        transitions: Mapping of state -> iterable of reachable states.
            Every reachable state must itself be declared as a key.
    """

    def __init__(self, name: str, transitions: Mapping[Any, Iterable[Any]]):
        self.name = name
        self._table: Dict[str, FrozenSet[str]] = {
            _key(state): frozenset(_key(target) for target in targets)
            for state, targets in transitions.items()
        }
        undeclared = {
            target
            for targets in self._table.values()
            for target in targets
            if target not in self._table
        }
        if undeclared:
            raise ValueError(f"{name}: undeclared target states {sorted(undeclared)}")

    @property
    def states(self) -> FrozenSet[str]:
        return frozenset(self._table)

    def can_transition(self, from_state: Any, to_state: Any) -> bool:
        """Return True when `from_state -> to_state` is a declared edge."""
        return _key(to_state) in self._table.get(_key(from_state), frozenset())

    def validate_transition(self, from_state: Any, to_state: Any) -> None:
        """
        Raise InvalidTransitionError unless the transition is legal.

        Raises:
            InvalidTransitionError: edge is not in the table (including
                unknown source states)
        """
        if not self.can_transition(from_state, to_state):
            logger.info(
                "Rejected %s transition %s -> %s", self.name, _key(from_state), _key(to_state)
            )
            raise InvalidTransitionError(from_state, to_state)

    def possible_transitions(self, from_state: Any) -> FrozenSet[str]:
        return self._table.get(_key(from_state), frozenset())

    def terminal_states(self) -> FrozenSet[str]:
        return frozenset(state for state, targets in self._table.items() if not targets)

    def is_terminal(self, state: Any) -> bool:
        return not self.possible_transitions(state)

    def __repr__(self):
        return f"<StateMachine(name='{self.name}', states={len(self._table)})>"


SALARY_PAYMENT_STATE_MACHINE = StateMachine(
    "salary_payment",
    {
        SalaryPaymentStatus.PENDING_EMPLOYEE_CONFIRMATION: [
            SalaryPaymentStatus.PENDING_FINANCE_APPROVAL,
            SalaryPaymentStatus.DELETED,
        ],
        SalaryPaymentStatus.PENDING_FINANCE_APPROVAL: [
            SalaryPaymentStatus.PENDING_PAYMENT,
            SalaryPaymentStatus.PENDING_EMPLOYEE_CONFIRMATION,
        ],
        # Backward edges are one-step rollbacks
        SalaryPaymentStatus.PENDING_PAYMENT: [
            SalaryPaymentStatus.PENDING_PAYMENT_CONFIRMATION,
            SalaryPaymentStatus.PENDING_FINANCE_APPROVAL,
        ],
        SalaryPaymentStatus.PENDING_PAYMENT_CONFIRMATION: [
            SalaryPaymentStatus.COMPLETED,
            SalaryPaymentStatus.PENDING_PAYMENT,
        ],
        SalaryPaymentStatus.COMPLETED: [],
        SalaryPaymentStatus.DELETED: [],
    },
)

BORROWING_STATE_MACHINE = StateMachine(
    "borrowing",
    {
        BorrowingStatus.PENDING: [BorrowingStatus.APPROVED, BorrowingStatus.REJECTED],
        BorrowingStatus.APPROVED: [BorrowingStatus.OUTSTANDING],
        BorrowingStatus.OUTSTANDING: [BorrowingStatus.PARTIAL, BorrowingStatus.REPAID],
        BorrowingStatus.PARTIAL: [BorrowingStatus.REPAID],
        BorrowingStatus.REPAID: [],
        BorrowingStatus.REJECTED: [],
    },
)

REIMBURSEMENT_STATE_MACHINE = StateMachine(
    "reimbursement",
    {
        ReimbursementStatus.PENDING: [ReimbursementStatus.APPROVED, ReimbursementStatus.REJECTED],
        ReimbursementStatus.APPROVED: [ReimbursementStatus.PAID],
        ReimbursementStatus.PAID: [],
        ReimbursementStatus.REJECTED: [],
    },
)

LEAVE_STATE_MACHINE = StateMachine(
    "leave",
    {
        LeaveStatus.PENDING: [LeaveStatus.APPROVED, LeaveStatus.REJECTED],
        LeaveStatus.APPROVED: [],
        LeaveStatus.REJECTED: [],
    },
)
