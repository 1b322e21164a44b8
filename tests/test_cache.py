from conftest import make_draft, positions

from vaops.cache import LiveFlightCache


def _cache(session_factory, pirep_settings, ttl=60):
    return LiveFlightCache(ttl_seconds=ttl, settings=pirep_settings, session_factory=session_factory)


def test_live_flights_need_a_position(service, pipeline, session_factory, pirep_settings):
    flying = service.prefile(42, make_draft()).pirep
    service.prefile(42, make_draft(flight_number="200"))
    pipeline.post_positions(flying.id, positions(2))

    cache = _cache(session_factory, pirep_settings)
    flights = cache.get_live_flights()

    assert [f["id"] for f in flights] == [flying.id]
    assert flights[0]["position"]["lat"] == positions(2)[-1]["lat"]
    assert [f["properties"]["pirep_id"] for f in cache.get_live_features()["features"]] == [flying.id]


def test_filed_flights_leave_the_map(service, pipeline, session_factory, pirep_settings):
    pirep = service.prefile(42, make_draft()).pirep
    pipeline.post_positions(pirep.id, positions(1))
    service.file(pirep.id)

    assert _cache(session_factory, pirep_settings).get_live_flights() == []


def test_snapshot_is_reused_until_invalidated(service, pipeline, session_factory, pirep_settings):
    cache = _cache(session_factory, pirep_settings)
    pipeline.add_update_callback(cache.invalidate)

    assert cache.get_live_features()["features"] == []
    assert cache.get_live_features()["features"] == []
    assert cache.stats["hits"] == 1
    assert cache.stats["misses"] == 1

    pirep = service.prefile(42, make_draft()).pirep
    pipeline.post_positions(pirep.id, positions(1))

    assert len(cache.get_live_features()["features"]) == 1
    assert cache.stats["misses"] == 2


def test_zero_ttl_always_refreshes(session_factory, pirep_settings):
    cache = _cache(session_factory, pirep_settings, ttl=0)
    cache.get_live_flights()
    cache.get_live_flights()
    assert cache.stats["misses"] == 2
