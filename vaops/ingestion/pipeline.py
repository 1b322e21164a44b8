"""
ACARS ingestion pipeline - telemetry posts for a PIREP.

Clients stream batches of one type at a time:
1. Guard: the PIREP exists and is not cancelled
2. Parse: validate entries, normalize time fields to UTC
3. Append: stamp PIREP id and type, batch insert
4. Nudge: the first position batch moves INITIATED -> AIRBORNE
5. Notify: registered callbacks (live map cache) hear about new positions

Appends of different types run side by side. Route replacement holds the
PIREP's ROUTE lock and runs delete + insert in a single transaction.
Status nudges hold the PIREP's STATE lock, the same one file() takes.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, List, Optional

from sqlalchemy.orm import sessionmaker

from vaops.exceptions import ValidationFailed
from vaops.ingestion.telemetry_store import TelemetryStore, telemetry_store
from vaops.locks import ROUTE, PirepLocks, pirep_locks
from vaops.models import (
    Acars,
    AcarsType,
    PirepState,
    PirepStatus,
    SessionLocal,
    check_cancelled,
    get_session,
    load_pirep,
    utcnow,
)
from vaops.schemas import parse_entries
from vaops.services.geo import GeoService, geo_service

logger = logging.getLogger(__name__)


@dataclass
class IngestResult:
    """Outcome of a telemetry post."""
    count: int
    message: str

    def to_dict(self) -> dict:
        return {'message': self.message, 'count': self.count}


class AcarsPipeline:
    """Applies ACARS batches to the telemetry store."""

    def __init__(
        self,
        session_factory: Optional[sessionmaker] = None,
        store: Optional[TelemetryStore] = None,
        locks: Optional[PirepLocks] = None,
        geo: Optional[GeoService] = None,
    ):
        self.session_factory = session_factory or SessionLocal
        self.store = store or telemetry_store
        self.locks = locks or pirep_locks
        self.geo = geo or geo_service

        # Stats, read by the status endpoint
        self._stats_lock = threading.Lock()
        self._batch_count = 0
        self._record_count = 0
        self._error_count = 0

        # Callbacks for external integration
        self._on_update_callbacks: List[Callable[[str, int], None]] = []

    def add_update_callback(self, callback: Callable[[str, int], None]) -> None:
        """
        Register callback to be invoked after each position batch.

        Callback receives the PIREP id and the count of positions added.
        """
        self._on_update_callbacks.append(callback)

    # -------------------------------------------------------------------------
    # Posts
    # -------------------------------------------------------------------------

    def post_positions(self, pirep_id: str, entries: Any) -> IngestResult:
        count = self._append(pirep_id, AcarsType.FLIGHT_PATH, entries)

        # First position seen: the flight is airborne
        with self.locks.hold(pirep_id):
            with get_session(self.session_factory) as session:
                pirep = load_pirep(session, pirep_id, lock=True)
                if pirep.state == PirepState.IN_PROGRESS:
                    if pirep.status == PirepStatus.INITIATED:
                        pirep.status = PirepStatus.AIRBORNE.value
                        logger.info(f'PIREP {pirep_id} is airborne')
                    pirep.updated_at = utcnow()  # Keeps the flight inside the live window

        self._notify(pirep_id, count)
        return IngestResult(count, f'{count} positions added')

    def post_logs(self, pirep_id: str, entries: Any) -> IngestResult:
        count = self._append(pirep_id, AcarsType.LOG, entries)
        return IngestResult(count, f'{count} logs added')

    def post_events(self, pirep_id: str, entries: Any) -> IngestResult:
        count = self._append(pirep_id, AcarsType.EVENT, entries)
        return IngestResult(count, f'{count} events added')

    def post_route(self, pirep_id: str, entries: Any) -> IngestResult:
        """
        Replace the PIREP's route with `entries`, ordered as given.

        An empty list clears the route and reports zero points added.
        """
        rows = parse_entries(AcarsType.ROUTE, entries)
        logger.info(f'Posting route for PIREP {pirep_id}: {len(rows)} points')

        with self.locks.hold(pirep_id, ROUTE):
            with get_session(self.session_factory) as session:
                check_cancelled(load_pirep(session, pirep_id))
                count = self.store.replace_route(session, pirep_id, rows)

        self._count(count)
        if count == 0:
            return IngestResult(0, 'No points to add')
        return IngestResult(count, f'{count} points added')

    def delete_route(self, pirep_id: str) -> IngestResult:
        with self.locks.hold(pirep_id, ROUTE):
            with get_session(self.session_factory) as session:
                check_cancelled(load_pirep(session, pirep_id))
                removed = self.store.clear_route(session, pirep_id)
        return IngestResult(removed, 'Route deleted')

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def get_route(self, pirep_id: str) -> List[Acars]:
        with get_session(self.session_factory) as session:
            load_pirep(session, pirep_id)
            return self.store.route(session, pirep_id)

    def get_flight_path(self, pirep_id: str) -> List[Acars]:
        with get_session(self.session_factory) as session:
            load_pirep(session, pirep_id)
            return self.store.flight_path(session, pirep_id)

    def get_logs(self, pirep_id: str) -> List[Acars]:
        with get_session(self.session_factory) as session:
            load_pirep(session, pirep_id)
            return self.store.logs(session, pirep_id)

    def get_flight_geojson(self, pirep_id: str) -> dict:
        """Flown track of one PIREP as a FeatureCollection."""
        with get_session(self.session_factory) as session:
            pirep = load_pirep(session, pirep_id)
            positions = self.store.flight_path(session, pirep_id)
            return self.geo.features_for_flight(pirep, positions)

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _append(self, pirep_id: str, acars_type: AcarsType, entries: Any) -> int:
        label = acars_type.name.lower()
        try:
            rows = parse_entries(acars_type, entries)
            if not rows:
                raise ValidationFailed(f'No {label} entries to add')

            with get_session(self.session_factory) as session:
                check_cancelled(load_pirep(session, pirep_id))
                count = self.store.append(session, pirep_id, acars_type, rows)
        except Exception:
            with self._stats_lock:
                self._error_count += 1
            raise

        logger.debug(f'Posted {count} {label} records to PIREP {pirep_id}')
        self._count(count)
        return count

    def _count(self, records: int) -> None:
        with self._stats_lock:
            self._batch_count += 1
            self._record_count += records

    def _notify(self, pirep_id: str, count: int) -> None:
        for callback in self._on_update_callbacks:
            try:
                callback(pirep_id, count)
            except Exception as e:
                logger.error(f'Update callback error: {e}')

    @property
    def stats(self) -> dict:
        """Get ingestion statistics."""
        with self._stats_lock:
            return {
                'batch_count': self._batch_count,
                'record_count': self._record_count,
                'error_count': self._error_count,
            }
