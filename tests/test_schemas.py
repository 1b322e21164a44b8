from datetime import datetime, timedelta, timezone

import pytest

from vaops.exceptions import ValidationFailed
from vaops.models import AcarsType, PirepStatus
from vaops.schemas import PirepChanges, PirepDraft, parse_entries, parse_time, slugify


def test_parse_time_normalizes_to_naive_utc():
    assert parse_time("2026-03-01T12:00:00Z") == datetime(2026, 3, 1, 12, 0, 0)
    assert parse_time("2026-03-01T14:30:00+02:00") == datetime(2026, 3, 1, 12, 30, 0)
    assert parse_time("2026-03-01 12:00:00") == datetime(2026, 3, 1, 12, 0, 0)
    assert parse_time(0) == datetime(1970, 1, 1)
    assert parse_time(datetime(2026, 3, 1, 12)) == datetime(2026, 3, 1, 12)

    aware = datetime(2026, 3, 1, 7, tzinfo=timezone(timedelta(hours=-5)))
    assert parse_time(aware) == datetime(2026, 3, 1, 12)


@pytest.mark.parametrize("value", ["yesterday", "", None, True, float("nan"), [2026], 1e20, -1e20])
def test_parse_time_rejects_garbage(value):
    with pytest.raises(ValidationFailed):
        parse_time(value, "sim_time")


def test_draft_requires_aircraft_and_airports():
    with pytest.raises(ValidationFailed) as exc:
        PirepDraft.from_payload({"aircraft_id": 7})
    assert "dpt_airport_id" in exc.value.message
    assert "arr_airport_id" in exc.value.message


def test_draft_rejects_unknown_keys():
    with pytest.raises(ValidationFailed) as exc:
        PirepDraft.from_payload({
            "aircraft_id": 7, "dpt_airport_id": "KJFK", "arr_airport_id": "KLAX",
            "state": 2, "bogus": 1,
        })
    assert "bogus" in exc.value.message
    assert "state" in exc.value.message


def test_draft_coerces_known_fields():
    draft = PirepDraft.from_payload({
        "aircraft_id": "7",
        "dpt_airport_id": "kjfk",
        "arr_airport_id": " klax ",
        "level": 35000,
        "status": "BST",
        "created_at": "2026-03-01T10:00:00Z",
        "fields": {"Departure Gate": "B22", "Cost Index": 35},
        "fares": [{"id": 1, "count": 120}, {"id": "2", "count": "8"}],
    })

    assert draft.aircraft_id == 7
    assert draft.dpt_airport_id == "KJFK"
    assert draft.arr_airport_id == "KLAX"
    assert draft.status is PirepStatus.BOARDING
    assert draft.created_at == datetime(2026, 3, 1, 10)
    assert draft.fields == {"Departure Gate": "B22", "Cost Index": "35"}
    assert [(f.fare_id, f.count) for f in draft.fares] == [(1, 120), (2, 8)]

    attrs = draft.model_attrs()
    assert attrs["status"] == "BST"
    assert attrs["level"] == 35000


@pytest.mark.parametrize("status", ["ARR", "DX"])
def test_filing_statuses_cannot_be_set_directly(status):
    with pytest.raises(ValidationFailed):
        PirepChanges.from_payload({"status": status})


def test_changes_keep_only_sent_keys():
    changes = PirepChanges.from_payload({"notes": "smooth", "flight_time": 95})
    assert changes.attrs == {"notes": "smooth", "flight_time": 95}
    assert changes.aircraft_id is None


def test_changes_cannot_clear_required_columns():
    with pytest.raises(ValidationFailed):
        PirepChanges.from_payload({"aircraft_id": None})


@pytest.mark.parametrize("fares", [{"id": 1}, [{"id": 1}], [{"id": 1, "count": -1}], [{"id": "x", "count": 1}]])
def test_bad_fares_are_rejected(fares):
    with pytest.raises(ValidationFailed):
        PirepChanges.from_payload({"fares": fares})


def test_position_entries():
    rows = parse_entries(AcarsType.FLIGHT_PATH, [
        {"id": 99, "type": 1, "lat": "40.6", "lon": -73.7, "sim_time": 1772366400, "autopilot": 1},
    ])
    assert rows == [{"lat": 40.6, "lon": -73.7, "sim_time": datetime(2026, 3, 1, 12), "autopilot": True}]


@pytest.mark.parametrize("entry", [
    {"lat": 91, "lon": 0},
    {"lat": 0, "lon": -181},
    {"lat": 10},
    {"lat": 10, "lon": 10, "altitude_ft": 100},
    {"lat": 10, "lon": 10, "status": "XYZ"},
])
def test_bad_position_entries(entry):
    with pytest.raises(ValidationFailed):
        parse_entries(AcarsType.FLIGHT_PATH, [entry])


def test_bad_entry_names_its_position():
    with pytest.raises(ValidationFailed) as exc:
        parse_entries(AcarsType.FLIGHT_PATH, [{"lat": 1, "lon": 1}, {"lat": "north", "lon": 1}])
    assert "flight_path[1].lat" in exc.value.message


def test_event_text_is_stored_as_log():
    assert parse_entries(AcarsType.EVENT, [{"event": "Gear down"}]) == [{"log": "Gear down"}]


def test_route_order_comes_from_list_position():
    rows = parse_entries(AcarsType.ROUTE, [{"name": "MERIT", "order": 5, "nav_type": 2}])
    assert rows == [{"name": "MERIT", "nav_type": 2}]


def test_entries_must_be_a_list_of_objects():
    with pytest.raises(ValidationFailed):
        parse_entries(AcarsType.LOG, {"log": "x"})
    with pytest.raises(ValidationFailed):
        parse_entries(AcarsType.LOG, ["x"])
    assert parse_entries(AcarsType.LOG, None) == []


def test_slugify():
    assert slugify("Landing Rate!") == "landing_rate"
    assert slugify("  Cost-Index ") == "cost_index"


def test_out_of_range_sim_time_is_a_validation_error():
    with pytest.raises(ValidationFailed) as exc:
        parse_entries(AcarsType.FLIGHT_PATH, [{"lat": 1, "lon": 1, "sim_time": 1e20}])
    assert "flight_path[0].sim_time" in exc.value.message


@pytest.mark.parametrize("payload", [
    {"level": 2 ** 70},
    {"flight_time": -2 ** 40},
    {"fares": [{"id": 2 ** 40, "count": 1}]},
    {"fares": [{"id": 1, "count": 2 ** 31}]},
])
def test_integers_are_bounded(payload):
    with pytest.raises(ValidationFailed):
        PirepChanges.from_payload(payload)


def test_non_finite_numbers_are_rejected():
    with pytest.raises(ValidationFailed):
        PirepChanges.from_payload({"fuel_used": float("inf")})
    with pytest.raises(ValidationFailed):
        parse_entries(AcarsType.FLIGHT_PATH, [{"lat": 1, "lon": 1, "altitude": float("nan")}])


def test_transponder_is_bounded():
    with pytest.raises(ValidationFailed):
        parse_entries(AcarsType.FLIGHT_PATH, [{"lat": 1, "lon": 1, "transponder": 2 ** 63}])
