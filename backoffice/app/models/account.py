"""
Account database model.

A named money container in one currency with an opening balance.
"""

from sqlalchemy import Column, Integer, BigInteger, String, Boolean, DateTime, Enum, ForeignKey
from sqlalchemy.sql import func
from backoffice.app.db.session import Base
from backoffice.app.models.ledger_enums import AccountType


class Account(Base):
    """
    Account model.

    Balances are never stored here: they live in account transaction
    snapshots. `version` is bumped on every edit and on every posting
    against the account. Accounts with postings are deactivated, not deleted.
    """
    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    name = Column(String(100), nullable=False)
    type = Column(Enum(AccountType), default=AccountType.BANK, nullable=False)
    currency = Column(String(16), ForeignKey('currencies.code'), nullable=False, index=True)
    alias = Column(String(100), nullable=True)
    account_number = Column(String(100), nullable=True)

    # Minor units (cents)
    opening_cents = Column(BigInteger, default=0, nullable=False)

    active = Column(Boolean, default=True, nullable=False)
    version = Column(Integer, default=1, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<Account(id={self.id}, name='{self.name}', currency='{self.currency}', active={self.active})>"
