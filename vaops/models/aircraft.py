"""
Aircraft and Pilot models - reference data behind the eligibility checks.

These rows are owned by the fleet/roster side of the airline. The PIREP
core only reads them: where an aircraft is parked, which rank may fly
it, where a pilot currently is, and what the pilot is paid.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import String, Integer, Numeric, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from vaops.models.base import Base, utcnow


class Aircraft(Base):
    """
    A fleet aircraft.

    Fields:
        registration: Tail number (e.g., 'N12345')
        icao: ICAO type designator (e.g., 'B738', 'A320')
        airport_id: ICAO code of the airport the aircraft is parked at
        min_rank_level: Lowest pilot rank level allowed to fly it
        cost_block_hour: Operating cost per block hour
        ground_handling_multiplier: Percentage applied to the base
            ground handling cost (100 = base cost)
    """

    __tablename__ = 'aircraft'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    registration: Mapped[Optional[str]] = mapped_column(
        String(10),
        nullable=True,
        index=True,
        comment='Aircraft registration (tail number)'
    )

    icao: Mapped[Optional[str]] = mapped_column(
        String(4),
        nullable=True,
        comment='ICAO type designator (e.g., B738)'
    )

    airport_id: Mapped[Optional[str]] = mapped_column(
        String(5),
        nullable=True,
        index=True,
        comment='Current location (ICAO)'
    )

    min_rank_level: Mapped[int] = mapped_column(Integer, default=0)

    cost_block_hour: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal('0'))

    ground_handling_multiplier: Mapped[Decimal] = mapped_column(Numeric(6, 2), default=Decimal('100'))

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    def __repr__(self) -> str:
        return f'<Aircraft {self.id} {self.registration or "?"} {self.icao or "?"}>'


class Pilot(Base):
    """
    A pilot on the roster.

    `rank_level` is compared against Aircraft.min_rank_level when aircraft
    are restricted by rank. `pay_rate` is paid per block hour.
    """

    __tablename__ = 'pilots'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    pilot_id: Mapped[Optional[str]] = mapped_column(String(10), nullable=True, comment='Public pilot code')

    name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    rank_level: Mapped[int] = mapped_column(Integer, default=0)

    curr_airport_id: Mapped[Optional[str]] = mapped_column(
        String(5),
        nullable=True,
        comment='Airport the pilot is currently at (ICAO)'
    )

    pay_rate: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal('0'))

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    def __repr__(self) -> str:
        return f'<Pilot {self.id} {self.pilot_id or "?"}>'
