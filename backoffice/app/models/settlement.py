"""
Settlement database model.

Applies part or all of a document's amount against a ledger posting.
"""

from sqlalchemy import Column, Integer, BigInteger, Date, DateTime, ForeignKey
from sqlalchemy.sql import func
from backoffice.app.db.session import Base


class Settlement(Base):
    """
    Settlement model.

    Several settlements may target one document (partial payments).
    Amounts are not capped against the open balance.
    """
    __tablename__ = "settlements"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    document_id = Column(Integer, ForeignKey('ar_ap_documents.id'), nullable=False, index=True)
    posting_id = Column(Integer, ForeignKey('ledger_postings.id'), nullable=False, index=True)

    amount_cents = Column(BigInteger, nullable=False)
    settle_date = Column(Date, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<Settlement(id={self.id}, document={self.document_id}, amount={self.amount_cents})>"
