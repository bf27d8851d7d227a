"""
Account Transfer database model.

Header row shared by the two legs of a transfer.
"""

from sqlalchemy import Column, Integer, BigInteger, String, Numeric, Date, DateTime, ForeignKey, JSON, Text
from sqlalchemy.sql import func
from backoffice.app.db.session import Base


class AccountTransfer(Base):
    """
    Account transfer model.

    Legs may be in different currencies. `exchange_rate` is recorded for
    audit only; to_amount_cents is taken as supplied.
    """
    __tablename__ = "account_transfers"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    transfer_date = Column(Date, nullable=False, index=True)

    from_account_id = Column(Integer, ForeignKey('accounts.id'), nullable=False, index=True)
    to_account_id = Column(Integer, ForeignKey('accounts.id'), nullable=False, index=True)
    from_currency = Column(String(16), nullable=False)
    to_currency = Column(String(16), nullable=False)
    from_amount_cents = Column(BigInteger, nullable=False)
    to_amount_cents = Column(BigInteger, nullable=False)
    exchange_rate = Column(Numeric(20, 8), nullable=True)

    memo = Column(Text, nullable=True)
    voucher_urls = Column(JSON, nullable=True)

    created_by = Column(String(100), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return (
            f"<AccountTransfer(id={self.id}, from={self.from_account_id}, to={self.to_account_id}, "
            f"amount={self.from_amount_cents}->{self.to_amount_cents})>"
        )
