"""
Database models for vaops.

Schema designed around the PIREP lifecycle with these priorities:
1. Consistent state/status pairs under concurrent writers
2. Fast append of ACARS telemetry (batch inserts)
3. Efficient per-PIREP time-ordered reads for the live map
"""

from vaops.models.base import (
    Base,
    engine,
    SessionLocal,
    init_db,
    get_session,
    make_engine,
    make_session_factory,
    utcnow,
)
from vaops.models.pirep import (
    Pirep,
    PirepState,
    PirepStatus,
    PirepSource,
    FILED_STATES,
    check_cancelled,
    load_pirep,
)
from vaops.models.acars import Acars, AcarsType
from vaops.models.aircraft import Aircraft, Pilot
from vaops.models.fare import Fare, PirepFare, PirepFieldValue, PirepFieldSource
from vaops.models.journal import JournalTransaction

__all__ = [
    'Base',
    'engine',
    'SessionLocal',
    'init_db',
    'get_session',
    'make_engine',
    'make_session_factory',
    'utcnow',
    'Pirep',
    'PirepState',
    'PirepStatus',
    'PirepSource',
    'FILED_STATES',
    'check_cancelled',
    'load_pirep',
    'Acars',
    'AcarsType',
    'Aircraft',
    'Pilot',
    'Fare',
    'PirepFare',
    'PirepFieldValue',
    'PirepFieldSource',
    'JournalTransaction',
]
