"""
Ledger and settlement enumerations.
"""

import enum


class PostingKind(str, enum.Enum):
    """Ledger posting kind."""
    INCOME = "income"  # Money entering the account
    EXPENSE = "expense"  # Money leaving the account
    TRANSFER_IN = "transfer_in"
    TRANSFER_OUT = "transfer_out"


class AccountType(str, enum.Enum):
    CASH = "cash"
    BANK = "bank"
    WALLET = "wallet"
    OTHER = "other"


class DocumentKind(str, enum.Enum):
    """Document kind. The value doubles as the document number prefix."""
    AR = "AR"  # Receivable
    AP = "AP"  # Payable


class DocumentStatus(str, enum.Enum):
    """Derived from the sum of settlements against the document amount."""
    OPEN = "open"
    PARTIALLY_SETTLED = "partially_settled"
    SETTLED = "settled"
