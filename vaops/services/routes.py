"""
Route synthesis from a PIREP's planned route string.

Used when a PIREP is filed without the ACARS client ever posting a
route: the flight plan (e.g. 'MERIT J60 PSB DCT ARD') becomes ROUTE
records bracketed by the departure and arrival airports.
"""

import logging
import re
from typing import Dict, List

from sqlalchemy.orm import Session

from vaops.ingestion.telemetry_store import TelemetryStore, telemetry_store
from vaops.models import Pirep

logger = logging.getLogger(__name__)

# Not waypoints: direct-to markers and speed/level groups like N0450F350
_SKIP_TOKEN = re.compile(r'^(DCT|[NKM]\d{3,4}[FAMS]\d{3,4})$')


class NavaidType:
    AIRPORT = 1
    FIX = 2


def route_waypoints(pirep: Pirep) -> List[Dict]:
    """Split the planned route into ordered waypoint rows."""
    if not pirep.route or not pirep.route.strip():
        return []

    names = [pirep.dpt_airport_id]
    for token in pirep.route.upper().split():
        token = token.split('/')[0]  # 'KJFK/04L' -> 'KJFK'
        if not token or _SKIP_TOKEN.match(token):
            continue
        names.append(token[:20])
    names.append(pirep.arr_airport_id)

    waypoints = []
    for name in names:
        if waypoints and waypoints[-1]['name'] == name:
            continue
        is_airport = name in (pirep.dpt_airport_id, pirep.arr_airport_id)
        waypoints.append({
            'name': name,
            'nav_type': NavaidType.AIRPORT if is_airport else NavaidType.FIX,
        })
    return waypoints


class RouteService:

    def __init__(self, store: TelemetryStore = None):
        self.store = store or telemetry_store

    def save_route(self, session: Session, pirep: Pirep) -> int:
        """Write the planned route as the PIREP's ROUTE set. Returns points written."""
        waypoints = route_waypoints(pirep)
        if not waypoints:
            logger.debug(f'PIREP {pirep.id} has no planned route to save')
            return 0

        count = self.store.replace_route(session, pirep.id, waypoints)
        logger.info(f'Synthesized {count} route points for PIREP {pirep.id}')
        return count
