from datetime import datetime, timedelta

from conftest import make_draft

from vaops.models import Pirep, PirepState, get_session
from vaops.services.duplicates import DuplicateDetector

NOW = datetime(2026, 3, 1, 12, 0, 0)


def _add_pirep(session_factory, **overrides) -> str:
    values = dict(
        user_id=42, aircraft_id=7, flight_number="100",
        dpt_airport_id="KJFK", arr_airport_id="KLAX",
        created_at=NOW - timedelta(minutes=30),
    )
    values.update(overrides)
    with get_session(session_factory) as session:
        pirep = Pirep(**values)
        session.add(pirep)
        session.flush()
        return pirep.id


def _find(session_factory, draft=None, window=1440, user_id=42):
    with get_session(session_factory) as session:
        found = DuplicateDetector(window).find_duplicate(
            session, user_id, draft or make_draft(), reference_time=NOW,
        )
        return found.id if found else None


def test_matching_pirep_is_found(session_factory):
    pirep_id = _add_pirep(session_factory)
    assert _find(session_factory) == pirep_id


def test_most_recent_match_wins(session_factory):
    _add_pirep(session_factory, created_at=NOW - timedelta(hours=5))
    newest = _add_pirep(session_factory, created_at=NOW - timedelta(minutes=1))
    assert _find(session_factory) == newest


def test_other_pilot_aircraft_or_route_do_not_match(session_factory):
    _add_pirep(session_factory, user_id=43)
    _add_pirep(session_factory, aircraft_id=8)
    _add_pirep(session_factory, arr_airport_id="KSFO")
    _add_pirep(session_factory, flight_number="200")
    assert _find(session_factory) is None


def test_missing_flight_number_matches_missing(session_factory):
    pirep_id = _add_pirep(session_factory, flight_number=None)
    draft = make_draft(flight_number=None)
    assert _find(session_factory, draft) == pirep_id
    assert _find(session_factory) is None


def test_cancelled_pireps_are_ignored(session_factory):
    _add_pirep(session_factory, state=PirepState.CANCELLED.value)
    assert _find(session_factory) is None


def test_filed_pireps_still_match(session_factory):
    pirep_id = _add_pirep(session_factory, state=PirepState.PENDING.value)
    assert _find(session_factory) == pirep_id


def test_window_limits_lookback(session_factory):
    _add_pirep(session_factory, created_at=NOW - timedelta(minutes=90))
    assert _find(session_factory, window=60) is None
    assert _find(session_factory, window=120) is not None
