"""
GeoJSON projection of ACARS telemetry for the live map.

Pure transforms: records in, FeatureCollections out. Coordinates follow
GeoJSON order, [longitude, latitude].
"""

from typing import Iterable, List, Optional, Sequence

import numpy as np

from vaops.ingestion.telemetry_store import LiveFlight
from vaops.models import Acars, Pirep

EARTH_RADIUS_NM = 3440.065


def track_distance_nm(lats: Sequence[float], lons: Sequence[float]) -> float:
    """
    Great-circle length of a track in nautical miles.

    Vectorized haversine over consecutive point pairs.
    """
    if len(lats) < 2:
        return 0.0

    lat = np.radians(np.asarray(lats, dtype=float))
    lon = np.radians(np.asarray(lons, dtype=float))

    dlat = np.diff(lat)
    dlon = np.diff(lon)

    a = np.sin(dlat / 2) ** 2 + np.cos(lat[:-1]) * np.cos(lat[1:]) * np.sin(dlon / 2) ** 2
    c = 2 * np.arctan2(np.sqrt(a), np.sqrt(1 - a))

    return float(np.sum(c) * EARTH_RADIUS_NM)


def feature_collection(features: List[dict]) -> dict:
    return {'type': 'FeatureCollection', 'features': features}


def _point(position: Acars, properties: dict) -> dict:
    return {
        'type': 'Feature',
        'geometry': {'type': 'Point', 'coordinates': [position.lon, position.lat]},
        'properties': properties,
    }


def _position_properties(position: Acars) -> dict:
    return {
        'heading': position.heading,
        'altitude': position.altitude,
        'gs': position.gs,
        'vs': position.vs,
        'status': position.status,
        'sim_time': position.sim_time.isoformat() if position.sim_time else None,
    }


class GeoService:

    def features_for_live_flights(self, flights: Iterable[LiveFlight]) -> dict:
        """One point per flight at its last known position."""
        features = []
        for flight in flights:
            position: Optional[Acars] = flight.position
            if position is None or not position.has_position:
                continue

            pirep = flight.pirep
            properties = {
                'pirep_id': pirep.id,
                'user_id': pirep.user_id,
                'aircraft_id': pirep.aircraft_id,
                'flight_number': pirep.flight_number,
                'dpt_airport_id': pirep.dpt_airport_id,
                'arr_airport_id': pirep.arr_airport_id,
                'pirep_status': pirep.status,
            }
            properties.update(_position_properties(position))
            features.append(_point(position, properties))

        return feature_collection(features)

    def features_for_flight(self, pirep: Pirep, positions: Sequence[Acars]) -> dict:
        """
        The flown track of one PIREP.

        A LineString over every position (when there are at least two)
        followed by a Point per position.
        """
        points = [p for p in positions if p.has_position]
        features = []

        if len(points) >= 2:
            lats = [p.lat for p in points]
            lons = [p.lon for p in points]
            features.append({
                'type': 'Feature',
                'geometry': {
                    'type': 'LineString',
                    'coordinates': [[lon, lat] for lat, lon in zip(lats, lons)],
                },
                'properties': {
                    'pirep_id': pirep.id,
                    'distance_nm': round(track_distance_nm(lats, lons), 1),
                    'points': len(points),
                },
            })

        for position in points:
            properties = {'pirep_id': pirep.id}
            properties.update(_position_properties(position))
            features.append(_point(position, properties))

        return feature_collection(features)


# Singleton instance
geo_service = GeoService()
