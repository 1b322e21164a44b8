from dataclasses import replace
from decimal import Decimal

import pytest

from vaops.app import create_app
from vaops.config import AppConfig, CacheConfig, DatabaseConfig, FinanceConfig, PirepConfig
from vaops.ingestion import AcarsPipeline
from vaops.locks import PirepLocks
from vaops.models import Aircraft, Fare, Pilot, get_session, init_db, make_engine, make_session_factory
from vaops.schemas import PirepDraft
from vaops.services import PirepFinanceService, PirepService


@pytest.fixture
def engine(tmp_path):
    # File database: every thread's connection sees the same data
    eng = make_engine(f"sqlite:///{tmp_path / 'vaops.db'}")
    init_db(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    """Sessions over a database seeded with two pilots, two aircraft and two fares."""
    factory = make_session_factory(engine)
    with get_session(factory) as session:
        session.add_all([
            Pilot(id=42, pilot_id="VA042", name="Ada Lovelace", rank_level=2,
                  curr_airport_id="KJFK", pay_rate=Decimal("60.00")),
            Pilot(id=43, pilot_id="VA043", name="Grace Hopper", rank_level=0,
                  curr_airport_id="KBOS", pay_rate=Decimal("40.00")),
            Aircraft(id=7, registration="N737VA", icao="B738", airport_id="KJFK",
                     min_rank_level=1, cost_block_hour=Decimal("1000.00"),
                     ground_handling_multiplier=Decimal("100")),
            Aircraft(id=8, registration="N380VA", icao="A388", airport_id="KLAX",
                     min_rank_level=3, cost_block_hour=Decimal("4000.00"),
                     ground_handling_multiplier=Decimal("200")),
            Fare(id=1, code="Y", name="Economy", price=Decimal("100.00"),
                 cost=Decimal("20.00"), capacity=150),
            Fare(id=2, code="F", name="First", price=Decimal("500.00"),
                 cost=Decimal("80.00"), capacity=12),
        ])
    return factory


@pytest.fixture
def pirep_settings():
    return PirepConfig(
        restrict_aircraft_to_rank=False,
        only_flights_from_current=False,
        only_aircraft_at_dpt_airport=False,
        live_tracking_hours=0,
        duplicate_window_minutes=1440,
        refresh_duplicate_fields=False,
    )


@pytest.fixture
def finance_settings():
    return FinanceConfig(fuel_price_per_lb=Decimal("0.50"), ground_handling_cost=Decimal("150.00"))


@pytest.fixture
def locks():
    return PirepLocks()


@pytest.fixture
def make_service(session_factory, locks, pirep_settings, finance_settings):
    def _make(**overrides) -> PirepService:
        return PirepService(
            settings=replace(pirep_settings, **overrides),
            session_factory=session_factory,
            locks=locks,
            finance=PirepFinanceService(finance_settings),
        )
    return _make


@pytest.fixture
def service(make_service):
    return make_service()


@pytest.fixture
def pipeline(session_factory, locks):
    return AcarsPipeline(session_factory=session_factory, locks=locks)


@pytest.fixture
def app(engine, session_factory, pirep_settings, finance_settings):
    settings = AppConfig(
        database=DatabaseConfig(url=str(engine.url)),
        pireps=pirep_settings,
        finance=finance_settings,
        cache=CacheConfig(ttl_seconds=60),
        secret_key="test",
        debug=False,
    )
    app = create_app(settings=settings, engine=engine)
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()


def make_draft(**overrides) -> PirepDraft:
    payload = {
        "aircraft_id": 7,
        "dpt_airport_id": "KJFK",
        "arr_airport_id": "KLAX",
        "flight_number": "100",
    }
    payload.update(overrides)
    return PirepDraft.from_payload(payload)


def positions(count: int = 3, start_lat: float = 40.64, start_lon: float = -73.78):
    return [
        {
            "lat": start_lat - i * 0.1,
            "lon": start_lon - i * 0.5,
            "altitude": 1000.0 * (i + 1),
            "gs": 250.0,
            "heading": 260.0,
            "sim_time": f"2026-03-01T12:{i:02d}:00Z",
        }
        for i in range(count)
    ]
