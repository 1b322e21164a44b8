"""
Telemetry store - append-only ACARS records per PIREP.

FLIGHT_PATH, LOG and EVENT records are only ever appended. ROUTE records
are replaced as a set: the delete and the insert run in the caller's
transaction, so readers see either the old route or the new one.

All methods take an open session; transaction boundaries belong to the
caller (the ingestion pipeline or the PIREP service).
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional, Sequence

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from vaops.models import Acars, AcarsType, Pirep, PirepState, utcnow

logger = logging.getLogger(__name__)


@dataclass
class LiveFlight:
    """An in-progress PIREP with its most recent position report."""
    pirep: Pirep
    position: Optional[Acars]


class TelemetryStore:
    """Reads and writes ACARS records."""

    def append(
        self,
        session: Session,
        pirep_id: str,
        acars_type: AcarsType,
        rows: Sequence[Dict],
    ) -> int:
        """
        Batch insert telemetry rows for one PIREP.

        Rows carry column values only; the PIREP id and type tag are
        stamped here. Returns the count of rows written.
        """
        if not rows:
            return 0

        now = utcnow()
        records = []
        for row in rows:
            record = dict(row)
            record['pirep_id'] = pirep_id
            record['type'] = acars_type.value
            record.setdefault('created_at', now)
            records.append(record)

        session.execute(Acars.__table__.insert(), _uniform(records))
        return len(records)

    def clear_route(self, session: Session, pirep_id: str) -> int:
        """Delete every ROUTE record of a PIREP. Returns the count removed."""
        result = session.execute(
            delete(Acars).where(
                Acars.pirep_id == pirep_id,
                Acars.type == AcarsType.ROUTE.value,
            )
        )
        return result.rowcount or 0

    def replace_route(self, session: Session, pirep_id: str, points: Sequence[Dict]) -> int:
        """
        Swap the ROUTE set of a PIREP for `points`.

        Each point gets its position in the list as `order`, 0..N-1.
        """
        removed = self.clear_route(session, pirep_id)
        rows = [dict(point, order=i) for i, point in enumerate(points)]
        added = self.append(session, pirep_id, AcarsType.ROUTE, rows)
        logger.debug(f'Route for {pirep_id}: removed {removed}, added {added}')
        return added

    def count(self, session: Session, pirep_id: str, acars_type: AcarsType) -> int:
        return session.scalar(
            select(func.count(Acars.id)).where(
                Acars.pirep_id == pirep_id,
                Acars.type == acars_type.value,
            )
        ) or 0

    def route(self, session: Session, pirep_id: str) -> List[Acars]:
        """ROUTE records in sequence order."""
        return list(session.scalars(
            select(Acars).where(
                Acars.pirep_id == pirep_id,
                Acars.type == AcarsType.ROUTE.value,
            ).order_by(Acars.order.asc())
        ))

    def records(
        self,
        session: Session,
        pirep_id: str,
        types: Iterable[AcarsType],
    ) -> List[Acars]:
        """
        Records of the given types in time order.

        Ordered by sim time, falling back to receive time when the client
        sent none, then by insertion order for ties.
        """
        return list(session.scalars(
            select(Acars).where(
                Acars.pirep_id == pirep_id,
                Acars.type.in_([t.value for t in types]),
            ).order_by(
                func.coalesce(Acars.sim_time, Acars.created_at).asc(),
                Acars.id.asc(),
            )
        ))

    def flight_path(self, session: Session, pirep_id: str) -> List[Acars]:
        return self.records(session, pirep_id, (AcarsType.FLIGHT_PATH,))

    def logs(self, session: Session, pirep_id: str) -> List[Acars]:
        """LOG and EVENT records, interleaved in time order."""
        return self.records(session, pirep_id, (AcarsType.LOG, AcarsType.EVENT))

    def last_position(self, session: Session, pirep_id: str) -> Optional[Acars]:
        return session.scalars(
            select(Acars).where(
                Acars.pirep_id == pirep_id,
                Acars.type == AcarsType.FLIGHT_PATH.value,
            ).order_by(
                func.coalesce(Acars.sim_time, Acars.created_at).desc(),
                Acars.id.desc(),
            ).limit(1)
        ).first()

    def live_flights(self, session: Session, live_hours: int = 0) -> List[LiveFlight]:
        """
        In-progress PIREPs with their last position.

        `live_hours` limits the list to PIREPs updated within that many
        hours; 0 disables the window.
        """
        query = select(Pirep).where(Pirep.state == PirepState.IN_PROGRESS.value)
        if live_hours > 0:
            cutoff: datetime = utcnow() - timedelta(hours=live_hours)
            query = query.where(Pirep.updated_at >= cutoff)
        query = query.order_by(Pirep.updated_at.desc())

        return [
            LiveFlight(pirep=pirep, position=self.last_position(session, pirep.id))
            for pirep in session.scalars(query)
        ]


def _uniform(records: List[Dict]) -> List[Dict]:
    """
    Give every row the same keys.

    executemany needs one parameter shape; missing columns become NULL.
    """
    keys = set()
    for record in records:
        keys.update(record)
    return [{key: record.get(key) for key in keys} for record in records]


# Singleton instance
telemetry_store = TelemetryStore()
