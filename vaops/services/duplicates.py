"""
Duplicate PIREP detection for idempotent prefile.

ACARS clients retry prefile when a response is lost. A retry must land
on the PIREP created by the first attempt instead of opening a second
one, so prefile looks for an equivalent, non-cancelled PIREP first.
"""

from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from vaops.models import Pirep, PirepState, utcnow
from vaops.schemas import PirepDraft


class DuplicateDetector:
    """Finds an existing PIREP equivalent to a prefile draft."""

    def __init__(self, window_minutes: int = 1440):
        self.window = timedelta(minutes=window_minutes)

    def find_duplicate(
        self,
        session: Session,
        user_id: int,
        draft: PirepDraft,
        reference_time: Optional[datetime] = None,
    ) -> Optional[Pirep]:
        """
        Most recent matching PIREP, or None.

        A match has the same pilot, aircraft, flight number and airports,
        was created inside the lookback window, and is not cancelled.
        Read-only: nothing is written.
        """
        reference_time = reference_time or draft.created_at or utcnow()
        cutoff = reference_time - self.window

        query = select(Pirep).where(
            Pirep.user_id == user_id,
            Pirep.aircraft_id == draft.aircraft_id,
            Pirep.dpt_airport_id == draft.dpt_airport_id,
            Pirep.arr_airport_id == draft.arr_airport_id,
            Pirep.state != PirepState.CANCELLED.value,
            Pirep.created_at >= cutoff,
        )

        if draft.flight_number is None:
            query = query.where(Pirep.flight_number.is_(None))
        else:
            query = query.where(Pirep.flight_number == draft.flight_number)

        query = query.order_by(Pirep.created_at.desc(), Pirep.id.desc()).limit(1)
        return session.scalars(query).first()
