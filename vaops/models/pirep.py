"""
Pirep model - the pilot flight report and its lifecycle fields.

A PIREP moves IN_PROGRESS -> PENDING -> ACCEPTED/REJECTED, and can be
CANCELLED from anywhere. `state` is the coarse phase; `status` tracks
the flight itself (boarding, airborne, arrived...).

Design notes:
- Never physically deleted by the core; cancellation is a state
- `cancelled` is derived from `state` only
- `submitted_at` is written once, on the first transition into PENDING
"""

import uuid
from datetime import datetime
from enum import Enum, IntEnum
from typing import List, Optional

from sqlalchemy import String, Float, Integer, DateTime, Text, Index, select
from sqlalchemy.orm import Mapped, Session, mapped_column, relationship

from vaops.exceptions import NotFound, PirepCancelled
from vaops.models.base import Base, utcnow


class PirepState(IntEnum):
    """Coarse lifecycle phase. Values match the phpVMS wire format."""
    IN_PROGRESS = 0
    PENDING = 1
    ACCEPTED = 2
    CANCELLED = 3
    REJECTED = 6


# Filed with the airline; finances are booked in these
FILED_STATES = (PirepState.PENDING, PirepState.ACCEPTED, PirepState.REJECTED)


class PirepStatus(str, Enum):
    """
    Fine-grained flight phase reported by ACARS clients.

    ARRIVED is only reachable by filing and CANCELLED only by cancelling.
    """
    INITIATED = 'INI'
    SCHEDULED = 'SCH'
    BOARDING = 'BST'
    RDY_START = 'RDT'
    PUSHBACK_TOW = 'PBT'
    DEPARTED = 'OFB'
    RDY_DEICE = 'DIR'
    STRT_DEICE = 'DIC'
    GRND_RTRN = 'GRT'
    TAXI = 'TXI'
    TAKEOFF = 'TOF'
    INIT_CLIM = 'ICL'
    AIRBORNE = 'TKO'
    ENROUTE = 'ENR'
    DIVERTED = 'DV'
    APPROACH = 'TEN'
    APPROACH_ICAO = 'APR'
    ON_FINAL = 'FIN'
    LANDING = 'LDG'
    LANDED = 'LAN'
    ON_BLOCK = 'ONB'
    ARRIVED = 'ARR'
    CANCELLED = 'DX'
    EMERG_DESCENT = 'EMG'
    PAUSED = 'PSD'


class PirepSource(IntEnum):
    """Where the PIREP came from."""
    MANUAL = 0
    ACARS = 1
    IMPORTED = 2


def _new_pirep_id() -> str:
    return uuid.uuid4().hex[:16]


class Pirep(Base):
    """
    A single flight report.

    Owns its ACARS telemetry (cascade). Fare selections and custom field
    values hang off it too; journal transactions only point back at it.
    """

    __tablename__ = 'pireps'

    id: Mapped[str] = mapped_column(
        String(16),
        primary_key=True,
        default=_new_pirep_id,
        comment='Opaque PIREP id'
    )

    # References to external collaborators (not enforced as FKs)
    user_id: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        index=True,
        comment='Pilot who flew the flight'
    )

    aircraft_id: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment='Aircraft flown'
    )

    # Flight identification
    flight_number: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    route_code: Mapped[Optional[str]] = mapped_column(String(5), nullable=True)
    route_leg: Mapped[Optional[str]] = mapped_column(String(5), nullable=True)
    flight_type: Mapped[str] = mapped_column(String(1), default='J', comment='phpVMS flight type code')

    # Airports (ICAO)
    dpt_airport_id: Mapped[str] = mapped_column(String(5), nullable=False)
    arr_airport_id: Mapped[str] = mapped_column(String(5), nullable=False)
    alt_airport_id: Mapped[Optional[str]] = mapped_column(String(5), nullable=True)

    # Flight data
    level: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, comment='Cruise altitude in feet')
    distance: Mapped[Optional[float]] = mapped_column(Float, nullable=True, comment='Flown distance in nm')
    planned_distance: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    flight_time: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, comment='Block time in minutes')
    planned_flight_time: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    zfw: Mapped[Optional[float]] = mapped_column(Float, nullable=True, comment='Zero fuel weight in lbs')
    block_fuel: Mapped[Optional[float]] = mapped_column(Float, nullable=True, comment='Block fuel in lbs')
    fuel_used: Mapped[Optional[float]] = mapped_column(Float, nullable=True, comment='Fuel used in lbs')
    landing_rate: Mapped[Optional[float]] = mapped_column(Float, nullable=True, comment='Touchdown rate in fpm')
    score: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    route: Mapped[Optional[str]] = mapped_column(Text, nullable=True, comment='Planned route string')
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    source: Mapped[int] = mapped_column(Integer, default=PirepSource.ACARS.value)
    source_name: Mapped[Optional[str]] = mapped_column(String(50), nullable=True, comment='ACARS client name')

    # Lifecycle
    state: Mapped[int] = mapped_column(
        Integer,
        default=PirepState.IN_PROGRESS.value,
        comment='PirepState value'
    )

    status: Mapped[str] = mapped_column(
        String(3),
        default=PirepStatus.INITIATED.value,
        comment='PirepStatus code'
    )

    submitted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime,
        nullable=True,
        comment='First time the PIREP was filed'
    )

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=utcnow,
        onupdate=utcnow,
        index=True,
        comment='Last update, drives the live map window'
    )

    acars: Mapped[List['Acars']] = relationship(
        back_populates='pirep',
        cascade='all, delete-orphan',
        passive_deletes=True,
    )

    __table_args__ = (
        # Duplicate detection query
        Index('ix_pireps_duplicate', 'user_id', 'aircraft_id', 'dpt_airport_id', 'arr_airport_id', 'created_at'),
        # Live flights query
        Index('ix_pireps_state_updated', 'state', 'updated_at'),
    )

    def __repr__(self) -> str:
        return f'<Pirep {self.id} {self.dpt_airport_id}-{self.arr_airport_id} state={self.state} status={self.status}>'

    @property
    def cancelled(self) -> bool:
        return self.state == PirepState.CANCELLED

    @property
    def filed(self) -> bool:
        """True once the PIREP has left IN_PROGRESS for good."""
        return self.state in FILED_STATES

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dict for API responses."""
        return {
            'id': self.id,
            'user_id': self.user_id,
            'aircraft_id': self.aircraft_id,
            'flight_number': self.flight_number,
            'route_code': self.route_code,
            'route_leg': self.route_leg,
            'flight_type': self.flight_type,
            'dpt_airport_id': self.dpt_airport_id,
            'arr_airport_id': self.arr_airport_id,
            'alt_airport_id': self.alt_airport_id,
            'level': self.level,
            'distance': self.distance,
            'planned_distance': self.planned_distance,
            'flight_time': self.flight_time,
            'planned_flight_time': self.planned_flight_time,
            'zfw': self.zfw,
            'block_fuel': self.block_fuel,
            'fuel_used': self.fuel_used,
            'landing_rate': self.landing_rate,
            'score': self.score,
            'route': self.route,
            'notes': self.notes,
            'source': self.source,
            'source_name': self.source_name,
            'state': self.state,
            'status': self.status,
            'cancelled': self.cancelled,
            'submitted_at': self.submitted_at.isoformat() if self.submitted_at else None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }


def load_pirep(session: Session, pirep_id: str, lock: bool = False) -> Pirep:
    """Fetch a PIREP fresh from the database, raising NotFound."""
    query = select(Pirep).where(Pirep.id == pirep_id).execution_options(populate_existing=True)
    if lock:
        query = query.with_for_update()
    pirep = session.scalars(query).first()
    if pirep is None:
        raise NotFound(f'PIREP {pirep_id} not found')
    return pirep


def check_cancelled(pirep: Pirep) -> None:
    if pirep.cancelled:
        raise PirepCancelled()
