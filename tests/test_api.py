from dataclasses import replace

from conftest import positions

from vaops.app import create_app
from vaops.config import AppConfig, CacheConfig, DatabaseConfig

USER = {"X-User-Id": "42"}

PREFILE = {
    "aircraft_id": 7,
    "dpt_airport_id": "KJFK",
    "arr_airport_id": "KLAX",
    "flight_number": "100",
    "route": "MERIT J60 PSB",
    "fields": {"Departure Gate": "B22"},
}


def _prefile(client, payload=None):
    response = client.post("/api/pireps/prefile", json=payload or PREFILE, headers=USER)
    assert response.status_code == 201, response.get_json()
    return response.get_json()["data"]["id"]


def test_health(client):
    assert client.get("/health").get_json() == {"status": "ok"}


def test_full_flight(client):
    response = client.post("/api/pireps/prefile", json=PREFILE, headers=USER)
    assert response.status_code == 201
    body = response.get_json()
    pirep_id = body["data"]["id"]
    assert (body["data"]["state"], body["data"]["status"]) == (0, "INI")
    assert body["transitioned"] is True

    # A retried prefile lands on the same PIREP
    retry = client.post("/api/pireps/prefile", json=PREFILE, headers=USER)
    assert retry.status_code == 200
    assert retry.get_json()["data"]["id"] == pirep_id
    assert retry.get_json()["transitioned"] is False

    response = client.post(f"/api/pireps/{pirep_id}/acars/position", json={"positions": positions(3)})
    assert response.get_json() == {"message": "3 positions added", "count": 3}
    assert client.get(f"/api/pireps/{pirep_id}").get_json()["data"]["status"] == "TKO"

    live = client.get("/api/acars").get_json()
    assert [f["properties"]["pirep_id"] for f in live["features"]] == [pirep_id]
    assert [p["id"] for p in client.get("/api/pireps").get_json()["data"]] == [pirep_id]

    client.post(f"/api/pireps/{pirep_id}/acars/logs", json={"logs": [{"log": "Cruise FL350"}]})
    client.post(f"/api/pireps/{pirep_id}/acars/events", json={"events": [{"event": "Gear up"}]})
    logs = client.get(f"/api/pireps/{pirep_id}/acars/logs").get_json()["data"]
    assert sorted(entry["log"] for entry in logs) == ["Cruise FL350", "Gear up"]

    response = client.post(f"/api/pireps/{pirep_id}/file", json={
        "flight_time": 330,
        "fuel_used": 12000,
        "fares": [{"id": 1, "count": 140}],
    })
    assert response.status_code == 200
    body = response.get_json()
    assert (body["data"]["state"], body["data"]["status"]) == (1, "ARR")
    assert body["data"]["submitted_at"] is not None
    assert body["warnings"] == []

    route = client.get(f"/api/pireps/{pirep_id}/route").get_json()["data"]
    assert [p["name"] for p in route] == ["KJFK", "MERIT", "J60", "PSB", "KLAX"]

    finances = client.get(f"/api/pireps/{pirep_id}/finances").get_json()
    assert finances["data"]
    assert finances["summary"]["credit"] == "14000.00"

    fields = client.get(f"/api/pireps/{pirep_id}/fields").get_json()["data"]
    assert fields == [{"name": "Departure Gate", "slug": "departure_gate", "value": "B22", "source": 1}]

    track = client.get(f"/api/pireps/{pirep_id}/acars/geojson").get_json()
    assert track["features"][0]["geometry"]["type"] == "LineString"

    response = client.post(f"/api/pireps/{pirep_id}/accept")
    assert response.get_json()["data"]["state"] == 2


def test_position_posts_refresh_the_app_cache(client):
    pirep_id = _prefile(client)
    assert client.get("/api/acars").get_json()["features"] == []

    client.post(f"/api/pireps/{pirep_id}/acars/position", json={"positions": positions(2)})

    # Well inside the 60 second TTL
    live = client.get("/api/acars").get_json()
    assert [f["properties"]["pirep_id"] for f in live["features"]] == [pirep_id]
    assert client.application.config["LIVE_CACHE"].stats["entries"] == 1


def test_cancel_then_post_positions(client):
    pirep_id = _prefile(client)
    client.post(f"/api/pireps/{pirep_id}/file")

    response = client.delete(f"/api/pireps/{pirep_id}/cancel")
    body = response.get_json()
    assert response.status_code == 200
    assert (body["data"]["state"], body["data"]["status"]) == (3, "DX")
    assert body["data"]["cancelled"] is True

    response = client.post(f"/api/pireps/{pirep_id}/acars/position", json={"positions": positions(1)})
    assert response.status_code == 400
    assert response.get_json()["error"] == "pirep-cancelled"

    response = client.put(f"/api/pireps/{pirep_id}/cancel")
    assert response.status_code == 200
    assert response.get_json()["transitioned"] is False


def test_route_endpoints(client):
    pirep_id = _prefile(client)
    points = [{"name": n} for n in ("KJFK", "A", "B", "C", "KLAX")]

    response = client.post(f"/api/pireps/{pirep_id}/route", json={"route": points})
    assert response.get_json() == {"message": "5 points added", "count": 5}

    response = client.post(f"/api/pireps/{pirep_id}/route", json={"route": []})
    assert response.status_code == 200
    assert response.get_json() == {"message": "No points to add", "count": 0}
    assert client.get(f"/api/pireps/{pirep_id}/route").get_json()["data"] == []

    client.post(f"/api/pireps/{pirep_id}/route", json={"route": points[:2]})
    response = client.delete(f"/api/pireps/{pirep_id}/route")
    assert response.get_json() == {"message": "Route deleted", "count": 2}


def test_update_endpoint(client):
    pirep_id = _prefile(client)

    response = client.post(f"/api/pireps/{pirep_id}/update", json={"level": 35000, "status": "ENR"})
    assert response.status_code == 200
    assert response.get_json()["data"]["level"] == 35000

    response = client.put(f"/api/pireps/{pirep_id}", json={"status": "ARR"})
    assert response.status_code == 400
    assert response.get_json()["error"] == "validation-failed"


def test_fields_endpoint(client):
    pirep_id = _prefile(client)
    response = client.post(f"/api/pireps/{pirep_id}/fields", json={"fields": {"Cost Index": 35}})
    slugs = {f["slug"]: f["value"] for f in response.get_json()["data"]}
    assert slugs == {"departure_gate": "B22", "cost_index": "35"}


def test_recalculate_endpoint(client):
    pirep_id = _prefile(client)

    response = client.post(f"/api/pireps/{pirep_id}/finances/recalculate")
    assert response.status_code == 422
    assert response.get_json()["error"] == "finance-error"

    client.post(f"/api/pireps/{pirep_id}/file", json={"flight_time": 60})
    response = client.post(f"/api/pireps/{pirep_id}/finances/recalculate")
    assert response.status_code == 200
    assert response.get_json()["summary"]["count"] > 0


def test_errors(client):
    response = client.post("/api/pireps/prefile", json=PREFILE)
    assert response.status_code == 400
    assert response.get_json()["error"] == "validation-failed"

    response = client.post("/api/pireps/prefile", json=dict(PREFILE, state=2), headers=USER)
    assert response.status_code == 400
    assert "state" in response.get_json()["message"]

    response = client.post("/api/pireps/prefile", data="not json", headers=USER,
                           content_type="application/json")
    assert response.status_code == 400

    response = client.get("/api/pireps/does-not-exist")
    assert response.status_code == 404
    assert response.get_json()["error"] == "not-found"

    response = client.post("/api/pireps/does-not-exist/acars/logs", json={"logs": [{"log": "x"}]})
    assert response.status_code == 404

    pirep_id = _prefile(client)
    response = client.post(f"/api/pireps/{pirep_id}/acars/position", json={"positions": []})
    assert response.status_code == 400

    response = client.post(f"/api/pireps/{pirep_id}/accept")
    assert response.status_code == 400
    assert response.get_json()["error"] == "invalid-transition"


def test_out_of_range_numbers_are_bad_requests(client):
    response = client.post("/api/pireps/prefile", json=dict(PREFILE, level=2 ** 70), headers=USER)
    assert response.status_code == 400
    assert "level" in response.get_json()["message"]

    pirep_id = _prefile(client)
    response = client.post(f"/api/pireps/{pirep_id}/acars/position", json={
        "positions": [{"lat": 1, "lon": 1, "sim_time": 1e20}],
    })
    assert response.status_code == 400
    assert response.get_json()["error"] == "validation-failed"

    path = client.get(f"/api/pireps/{pirep_id}/acars/position").get_json()["data"]
    assert path == []


def test_eligibility_errors(engine, session_factory, pirep_settings, finance_settings):
    settings = AppConfig(
        database=DatabaseConfig(url=str(engine.url)),
        pireps=replace(pirep_settings, only_flights_from_current=True),
        finance=finance_settings,
        cache=CacheConfig(ttl_seconds=60),
        secret_key="test",
        debug=False,
    )
    client = create_app(settings=settings, engine=engine).test_client()

    response = client.post("/api/pireps/prefile", json=dict(PREFILE, dpt_airport_id="KBOS"), headers=USER)
    assert response.status_code == 400
    assert response.get_json()["error"] == "user-not-at-airport"


def test_status(client):
    body = client.get("/api/acars/status").get_json()
    assert body["status"] == "healthy"
    assert body["database"]["connected"] is True
    assert set(body["ingestion"]) == {"batch_count", "record_count", "error_count"}
