"""
JournalTransaction model - booked money movements for a PIREP.

The journal owns these rows. A PIREP is referenced by id only, so
recomputing finances replaces a PIREP's rows without touching the PIREP.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import String, Integer, Numeric, DateTime, Index
from sqlalchemy.orm import Mapped, mapped_column

from vaops.models.base import Base, utcnow


class JournalTransaction(Base):
    """One credit or debit line booked against a PIREP."""

    __tablename__ = 'journal_transactions'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    pirep_id: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        comment='Back-reference to the PIREP, not a foreign key'
    )

    transaction_group: Mapped[str] = mapped_column(String(50), nullable=False)
    memo: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    credit: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=Decimal('0'))
    debit: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=Decimal('0'))

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    __table_args__ = (
        Index('ix_journal_transactions_pirep', 'pirep_id', 'transaction_group'),
    )

    def __repr__(self) -> str:
        return f'<JournalTransaction {self.pirep_id} {self.transaction_group} +{self.credit} -{self.debit}>'

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'pirep_id': self.pirep_id,
            'transaction_group': self.transaction_group,
            'memo': self.memo,
            'credit': str(self.credit),
            'debit': str(self.debit),
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
