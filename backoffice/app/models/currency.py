"""
Currency database model.

Master data referenced by accounts, salaries and allocations.
"""

from sqlalchemy import Column, String, Boolean, DateTime
from sqlalchemy.sql import func
from backoffice.app.db.session import Base


class Currency(Base):
    """
    Currency model.

    Keyed by its code (e.g. USDT, CNY). Codes are never renamed.
    """
    __tablename__ = "currencies"

    code = Column(String(16), primary_key=True)
    name = Column(String(100), nullable=False)
    symbol = Column(String(16), nullable=True)
    active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<Currency(code='{self.code}', active={self.active})>"
