"""
Account Transaction snapshot database model.

Balance before/after recorded once per posting leg.
"""

from sqlalchemy import Column, Integer, BigInteger, Date, DateTime, Enum, ForeignKey, Index
from backoffice.app.db.session import Base
from backoffice.app.models.ledger_enums import PostingKind


class AccountTransaction(Base):
    """
    Account transaction snapshot.

    Invariant: balance_after_cents = balance_before_cents + amount_cents.
    balance_before_cents is taken from the account's latest earlier
    (transaction_date, created_at) snapshot when the row is written and
    is never recomputed, even if an earlier-dated posting arrives later.
    """
    __tablename__ = "account_transactions"
    __table_args__ = (
        Index("ix_account_transactions_order", "account_id", "transaction_date", "created_at"),
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    account_id = Column(Integer, ForeignKey('accounts.id'), nullable=False, index=True)
    posting_id = Column(Integer, ForeignKey('ledger_postings.id'), nullable=False, unique=True)

    transaction_date = Column(Date, nullable=False)
    kind = Column(Enum(PostingKind), nullable=False)

    amount_cents = Column(BigInteger, nullable=False)
    balance_before_cents = Column(BigInteger, nullable=False)
    balance_after_cents = Column(BigInteger, nullable=False)

    created_at = Column(DateTime(timezone=True), nullable=False)

    def __repr__(self):
        return (
            f"<AccountTransaction(id={self.id}, account={self.account_id}, "
            f"before={self.balance_before_cents}, after={self.balance_after_cents})>"
        )
