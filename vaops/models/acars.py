"""
Acars model - telemetry records attached to a PIREP.

Every ACARS post lands here, tagged with a type:
- FLIGHT_PATH: position reports, ordered by simulator time
- ROUTE: planned waypoints, ordered by an explicit `order` sequence
- LOG / EVENT: free-text messages for the flight log

Schema optimized for:
- Fast batch inserts (append-only pattern)
- Per-PIREP range queries ordered by sim time
- Wholesale replacement of the ROUTE set
"""

from datetime import datetime
from enum import IntEnum
from typing import Optional

from sqlalchemy import String, Float, Integer, DateTime, Boolean, Text, Index, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from vaops.models.base import Base, utcnow


class AcarsType(IntEnum):
    """Telemetry record type."""
    FLIGHT_PATH = 0
    ROUTE = 1
    LOG = 2
    EVENT = 3


class Acars(Base):
    """
    One timestamped ACARS observation.

    Records are never updated after insert. Route records are the one
    exception to append-only: a new route deletes the old set first.
    """

    __tablename__ = 'acars'

    # Surrogate key, doubles as the insertion-order tie breaker
    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )

    pirep_id: Mapped[str] = mapped_column(
        String(16),
        ForeignKey('pireps.id', ondelete='CASCADE'),
        nullable=False,
        index=True,
    )

    type: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment='AcarsType value'
    )

    # Route sequence; NULL for everything but ROUTE
    order: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    name: Mapped[Optional[str]] = mapped_column(String(20), nullable=True, comment='Waypoint name')
    nav_type: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    status: Mapped[Optional[str]] = mapped_column(String(3), nullable=True, comment='PirepStatus at observation')
    log: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Position (WGS84)
    lat: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    lon: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    distance: Mapped[Optional[float]] = mapped_column(Float, nullable=True, comment='Distance flown in nm')
    heading: Mapped[Optional[float]] = mapped_column(Float, nullable=True, comment='Heading in degrees')
    altitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True, comment='Altitude in feet')
    vs: Mapped[Optional[float]] = mapped_column(Float, nullable=True, comment='Vertical speed in fpm')
    gs: Mapped[Optional[float]] = mapped_column(Float, nullable=True, comment='Ground speed in knots')
    transponder: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    autopilot: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    fuel: Mapped[Optional[float]] = mapped_column(Float, nullable=True, comment='Fuel on board in lbs')
    fuel_flow: Mapped[Optional[float]] = mapped_column(Float, nullable=True, comment='Fuel flow in lbs/hr')

    sim_time: Mapped[Optional[datetime]] = mapped_column(
        DateTime,
        nullable=True,
        comment='Simulator time of the observation (UTC)'
    )

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    pirep: Mapped['Pirep'] = relationship(back_populates='acars')

    __table_args__ = (
        # Per-PIREP reads by type, in time order
        Index('ix_acars_pirep_type_time', 'pirep_id', 'type', 'sim_time'),
        # One route point per sequence slot
        Index('ux_acars_pirep_type_order', 'pirep_id', 'type', 'order', unique=True),
    )

    def __repr__(self) -> str:
        return f'<Acars {self.pirep_id} {AcarsType(self.type).name} #{self.id}>'

    @property
    def has_position(self) -> bool:
        return self.lat is not None and self.lon is not None

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dict for API responses."""
        return {
            'id': self.id,
            'pirep_id': self.pirep_id,
            'type': self.type,
            'order': self.order,
            'name': self.name,
            'nav_type': self.nav_type,
            'status': self.status,
            'log': self.log,
            'lat': self.lat,
            'lon': self.lon,
            'distance': self.distance,
            'heading': self.heading,
            'altitude': self.altitude,
            'vs': self.vs,
            'gs': self.gs,
            'transponder': self.transponder,
            'autopilot': self.autopilot,
            'fuel': self.fuel,
            'fuel_flow': self.fuel_flow,
            'sim_time': self.sim_time.isoformat() if self.sim_time else None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
