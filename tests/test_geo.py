from datetime import datetime

import pytest

from vaops.ingestion import LiveFlight
from vaops.models import Acars, Pirep
from vaops.services.geo import EARTH_RADIUS_NM, geo_service, track_distance_nm


def _pirep(pirep_id="abc123"):
    return Pirep(id=pirep_id, user_id=42, aircraft_id=7, flight_number="100",
                 dpt_airport_id="KJFK", arr_airport_id="KLAX", status="TKO")


def test_track_distance():
    assert track_distance_nm([], []) == 0.0
    assert track_distance_nm([40.0], [-73.0]) == 0.0

    # One degree of latitude along a meridian
    assert track_distance_nm([0.0, 1.0], [0.0, 0.0]) == pytest.approx(EARTH_RADIUS_NM * 3.141592653589793 / 180)

    # Out and back doubles the leg
    leg = track_distance_nm([40.64, 33.94], [-73.78, -118.41])
    assert leg == pytest.approx(2150, rel=0.01)
    assert track_distance_nm([40.64, 33.94, 40.64], [-73.78, -118.41, -73.78]) == pytest.approx(2 * leg)


def test_flight_features():
    positions = [
        Acars(lat=40.64, lon=-73.78, altitude=0.0, sim_time=datetime(2026, 3, 1, 12)),
        Acars(lat=None, lon=None, log="no fix"),
        Acars(lat=40.70, lon=-74.20, altitude=3000.0),
    ]
    collection = geo_service.features_for_flight(_pirep(), positions)

    line, first, second = collection["features"]
    assert line["geometry"]["coordinates"] == [[-73.78, 40.64], [-74.20, 40.70]]
    assert line["properties"]["points"] == 2
    assert first["geometry"] == {"type": "Point", "coordinates": [-73.78, 40.64]}
    assert first["properties"]["sim_time"] == "2026-03-01T12:00:00"
    assert second["properties"]["altitude"] == 3000.0


def test_single_position_has_no_line():
    collection = geo_service.features_for_flight(_pirep(), [Acars(lat=1.0, lon=2.0)])
    assert [f["geometry"]["type"] for f in collection["features"]] == ["Point"]


def test_empty_flight_is_valid():
    assert geo_service.features_for_flight(_pirep(), []) == {"type": "FeatureCollection", "features": []}


def test_live_flights_without_position_are_skipped():
    flights = [
        LiveFlight(pirep=_pirep("a"), position=Acars(lat=10.0, lon=20.0, heading=90.0)),
        LiveFlight(pirep=_pirep("b"), position=None),
    ]
    collection = geo_service.features_for_live_flights(flights)

    assert len(collection["features"]) == 1
    feature = collection["features"][0]
    assert feature["geometry"]["coordinates"] == [20.0, 10.0]
    assert feature["properties"]["pirep_id"] == "a"
    assert feature["properties"]["pirep_status"] == "TKO"
    assert feature["properties"]["heading"] == 90.0
