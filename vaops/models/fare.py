"""
Fare, PirepFare and PirepFieldValue models.

Fares are priced passenger/cargo units; a PIREP records how many of each
it carried. Custom field values are free-form key/value pairs posted by
the ACARS client or entered manually.
"""

from datetime import datetime
from decimal import Decimal
from enum import IntEnum
from typing import Optional

from sqlalchemy import String, Integer, Numeric, DateTime, Text, Index, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from vaops.models.base import Base, utcnow


class PirepFieldSource(IntEnum):
    MANUAL = 0
    ACARS = 1


class Fare(Base):
    """A fare class with its ticket price and per-unit cost."""

    __tablename__ = 'fares'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    code: Mapped[str] = mapped_column(String(10), nullable=False, unique=True)
    name: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal('0'))
    cost: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal('0'))
    capacity: Mapped[int] = mapped_column(Integer, default=0)

    def __repr__(self) -> str:
        return f'<Fare {self.code} {self.price}>'


class PirepFare(Base):
    """How many units of a fare a PIREP carried."""

    __tablename__ = 'pirep_fares'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    pirep_id: Mapped[str] = mapped_column(
        String(16),
        ForeignKey('pireps.id', ondelete='CASCADE'),
        nullable=False,
        index=True,
    )

    fare_id: Mapped[int] = mapped_column(Integer, ForeignKey('fares.id'), nullable=False)

    count: Mapped[int] = mapped_column(Integer, default=0)

    __table_args__ = (
        Index('ux_pirep_fares_pirep_fare', 'pirep_id', 'fare_id', unique=True),
    )


class PirepFieldValue(Base):
    """A custom field value on a PIREP, unique per slug."""

    __tablename__ = 'pirep_field_values'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    pirep_id: Mapped[str] = mapped_column(
        String(16),
        ForeignKey('pireps.id', ondelete='CASCADE'),
        nullable=False,
        index=True,
    )

    name: Mapped[str] = mapped_column(String(50), nullable=False)
    slug: Mapped[str] = mapped_column(String(50), nullable=False)
    value: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    source: Mapped[int] = mapped_column(Integer, default=PirepFieldSource.ACARS.value)

    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index('ux_pirep_field_values_slug', 'pirep_id', 'slug', unique=True),
    )

    def to_dict(self) -> dict:
        return {
            'name': self.name,
            'slug': self.slug,
            'value': self.value,
            'source': self.source,
        }
