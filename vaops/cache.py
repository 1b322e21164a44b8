"""
In-memory cache for the live map.

Live map clients poll every few seconds. The cache keeps the current
set of in-progress flights (and their FeatureCollection) in memory for
a short TTL so polling does not hit the database on every request.

The ACARS pipeline invalidates the cache after each position batch, so
a new position shows up on the next poll rather than after the TTL.
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import List, Optional

from sqlalchemy.orm import sessionmaker

from vaops.config import PirepConfig, config
from vaops.ingestion.telemetry_store import TelemetryStore, telemetry_store
from vaops.models import SessionLocal, get_session
from vaops.services.geo import GeoService, geo_service

logger = logging.getLogger(__name__)


@dataclass
class LiveSnapshot:
    """Live flights and their map features, as of `cached_at`."""
    flights: List[dict]
    features: dict
    cached_at: float = field(default_factory=time.time)


class LiveFlightCache:
    """
    Thread-safe TTL cache of live flights.

    One snapshot covers every live flight; it is rebuilt from the
    database when it expires or is invalidated.
    """

    def __init__(
        self,
        ttl_seconds: Optional[int] = None,
        settings: Optional[PirepConfig] = None,
        session_factory: Optional[sessionmaker] = None,
        store: Optional[TelemetryStore] = None,
        geo: Optional[GeoService] = None,
    ):
        self.ttl_seconds = config.cache.ttl_seconds if ttl_seconds is None else ttl_seconds
        self.settings = settings or config.pireps
        self.session_factory = session_factory or SessionLocal
        self.store = store or telemetry_store
        self.geo = geo or geo_service

        self._snapshot: Optional[LiveSnapshot] = None
        self._lock = threading.RLock()
        self._last_refresh: float = 0

        # Statistics
        self._hits = 0
        self._misses = 0

    def get_live_flights(self) -> List[dict]:
        """In-progress PIREPs that have a last known position."""
        return self._current().flights

    def get_live_features(self) -> dict:
        """FeatureCollection with one point per live flight."""
        return self._current().features

    def _current(self) -> LiveSnapshot:
        with self._lock:
            snapshot = self._snapshot
            if snapshot is not None and time.time() - snapshot.cached_at < self.ttl_seconds:
                self._hits += 1
                return snapshot

            self._misses += 1
            snapshot = self.refresh_from_database()
            return snapshot

    def refresh_from_database(self) -> LiveSnapshot:
        """Rebuild the snapshot from the telemetry store."""
        with get_session(self.session_factory) as session:
            live = self.store.live_flights(session, self.settings.live_tracking_hours)
            live = [f for f in live if f.position is not None and f.position.has_position]

            flights = []
            for flight in live:
                entry = flight.pirep.to_dict()
                entry['position'] = flight.position.to_dict()
                flights.append(entry)
            features = self.geo.features_for_live_flights(live)

        snapshot = LiveSnapshot(flights=flights, features=features)
        with self._lock:
            self._snapshot = snapshot
            self._last_refresh = snapshot.cached_at

        logger.debug(f'Live cache refreshed with {len(flights)} flights')
        return snapshot

    def invalidate(self, *args) -> None:
        """
        Drop the snapshot.

        Accepts and ignores callback arguments so it can be registered
        directly as a pipeline update callback.
        """
        with self._lock:
            self._snapshot = None

    @property
    def stats(self) -> dict:
        """Get cache statistics."""
        with self._lock:
            return {
                'entries': len(self._snapshot.flights) if self._snapshot else 0,
                'hits': self._hits,
                'misses': self._misses,
                'hit_rate': self._hits / (self._hits + self._misses) if (self._hits + self._misses) > 0 else 0,
                'last_refresh': self._last_refresh,
            }
