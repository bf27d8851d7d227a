"""
Ledger Posting database model.

One immutable money movement against exactly one account.
"""

from sqlalchemy import Column, Integer, BigInteger, String, Boolean, Date, DateTime, Enum, ForeignKey, JSON, Text
from backoffice.app.db.session import Base
from backoffice.app.models.ledger_enums import PostingKind


class LedgerPosting(Base):
    """
    Ledger posting model.

    Single entries (income/expense) carry a voucher number. Transfer legs
    (transfer_in/transfer_out) carry the shared transfer id instead.
    Only `voucher_urls` may change after creation; corrections are made
    by posting a reversal that points back at the original.
    """
    __tablename__ = "ledger_postings"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # JZ{YYYYMMDD}-{seq:3}; unique so concurrent issuance cannot duplicate
    voucher_no = Column(String(32), unique=True, nullable=True)

    biz_date = Column(Date, nullable=False, index=True)
    kind = Column(Enum(PostingKind), nullable=False)
    account_id = Column(Integer, ForeignKey('accounts.id'), nullable=False, index=True)

    # Signed minor units: negative for expense/transfer_out
    amount_cents = Column(BigInteger, nullable=False)

    # Tags
    category = Column(String(100), nullable=True)
    method = Column(String(50), nullable=True)
    site = Column(String(100), nullable=True)
    department = Column(String(100), nullable=True)
    counterparty = Column(String(200), nullable=True)
    memo = Column(Text, nullable=True)
    voucher_urls = Column(JSON, nullable=True)

    transfer_id = Column(Integer, ForeignKey('account_transfers.id'), nullable=True, index=True)

    # Red-ink reversal
    is_reversal = Column(Boolean, default=False, nullable=False)
    reversal_of_posting_id = Column(Integer, ForeignKey('ledger_postings.id'), unique=True, nullable=True)

    created_by = Column(String(100), nullable=True)
    # Set by the ledger engine from the monotonic clock (snapshot ordering key)
    created_at = Column(DateTime(timezone=True), nullable=False)

    def __repr__(self):
        return f"<LedgerPosting(id={self.id}, voucher='{self.voucher_no}', kind='{self.kind.value}', amount={self.amount_cents})>"
