"""
AR/AP Document database model.

Receivable or payable obligation, settled against ledger postings.
"""

from sqlalchemy import Column, Integer, BigInteger, String, Boolean, Date, DateTime, Enum, ForeignKey, Text
from sqlalchemy.sql import func
from backoffice.app.db.session import Base
from backoffice.app.models.ledger_enums import DocumentKind, DocumentStatus


class ArApDocument(Base):
    """
    AR/AP document model.

    `status` is derived from the sum of settlements and is only written by
    the settlement engine. `confirmed` guards against posting the
    underlying ledger entry twice.
    """
    __tablename__ = "ar_ap_documents"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # {KIND}{YYYYMMDD}-{seq:3}
    doc_no = Column(String(32), unique=True, nullable=False)
    kind = Column(Enum(DocumentKind), nullable=False, index=True)

    party = Column(String(200), nullable=True)
    site = Column(String(100), nullable=True)
    department = Column(String(100), nullable=True)
    memo = Column(Text, nullable=True)

    amount_cents = Column(BigInteger, nullable=False)
    issue_date = Column(Date, nullable=False, index=True)
    due_date = Column(Date, nullable=True)

    status = Column(Enum(DocumentStatus), default=DocumentStatus.OPEN, nullable=False, index=True)

    # Confirmation
    confirmed = Column(Boolean, default=False, nullable=False)
    confirmed_by = Column(String(100), nullable=True)
    confirmed_at = Column(DateTime(timezone=True), nullable=True)
    posting_id = Column(Integer, ForeignKey('ledger_postings.id'), nullable=True)

    created_by = Column(String(100), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<ArApDocument(id={self.id}, doc_no='{self.doc_no}', status='{self.status.value}', amount={self.amount_cents})>"
