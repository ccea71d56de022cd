import threading
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from itinerary.datastore import DataStore
from itinerary.main import create_app
from itinerary.schemas import TripOverview, TripPlan

DATA_DIR = Path(__file__).resolve().parent.parent / "data"


def _sample_payload() -> dict:
    return {
        "start_date": "2024-04-01",
        "end_date": "2024-04-03",
        "location": {"latitude": 30.2587, "longitude": 120.1315},
        "budget": {"hotel_per_night": 800, "food_per_day": 300, "activity_per_day": 200},
        "preferences": {"activities": ["natural", "cultural"], "cuisine": ["hangzhou"]},
        "party_size": 2,
    }


def test_api_plan_endpoint(store):
    client = TestClient(create_app(store))

    response = client.post("/api/plan", json=_sample_payload())

    assert response.status_code == 200
    body = response.json()
    assert body["overview"]["duration_days"] == 2
    assert [d["date"] for d in body["daily_plans"]] == ["2024-04-01", "2024-04-02"]
    assert body["accommodation"]["poi"]["name"] == "West Lake Boutique Inn"
    assert body["daily_plans"][0]["dining"][0]["time"] == "12:00:00"


def test_api_plan_passes_enrich_flag(store, monkeypatch):
    orchestrator = AsyncMock(side_effect=lambda req, st, enrich=None: _plan_stub(req))
    monkeypatch.setattr("itinerary.main.orchestrate_trip", orchestrator)
    client = TestClient(create_app(store))

    response = client.post("/api/plan", json={**_sample_payload(), "enrich": True})

    assert response.status_code == 200
    orchestrator.assert_awaited_once()
    assert orchestrator.await_args.kwargs["enrich"] is True
    assert response.json()["overview"]["duration_days"] == 2


def _plan_stub(req):
    return TripPlan(overview=TripOverview(duration_days=(req.end_date - req.start_date).days))


def test_api_plan_rejects_malformed_payload(store):
    client = TestClient(create_app(store))
    payload = _sample_payload()
    payload.pop("location")

    response = client.post("/api/plan", json=payload)

    assert response.status_code == 422


def test_api_plan_rejects_invalid_dates(store):
    client = TestClient(create_app(store))

    response = client.post("/api/plan", json={**_sample_payload(), "end_date": "2024-03-31"})

    assert response.status_code == 422
    assert response.json()["detail"]["field"] == "end_date"


def test_api_plan_without_data_returns_503(tmp_path):
    client = TestClient(create_app(data_path=str(tmp_path / "missing")))

    response = client.post("/api/plan", json=_sample_payload())

    assert response.status_code == 503


def test_api_lazily_loads_data_path():
    client = TestClient(create_app(data_path=str(DATA_DIR)))

    response = client.post(
        "/api/recommend/attractions",
        json={"location": {"latitude": 30.2587, "longitude": 120.1315}, "indoor": True},
    )

    assert response.status_code == 200
    assert {c["poi"]["id"] for c in response.json()} == {"a-provincial-museum", "a-tea-museum"}


def test_api_recommend_hotels(store):
    client = TestClient(create_app(store))

    response = client.post(
        "/api/recommend/hotels",
        json={"location": {"latitude": 30.2587, "longitude": 120.1315}, "budget_per_night": 800},
    )

    assert response.status_code == 200
    body = response.json()
    assert body[0]["poi"]["id"] == "h-westlake-boutique"
    assert all(choice["price"] <= 800 for cand in body for choice in cand["room_choices"])


def test_api_recommend_validation_and_unknown_domain(store):
    client = TestClient(create_app(store))
    location = {"latitude": 30.2587, "longitude": 120.1315}

    bad_budget = client.post("/api/recommend/restaurants", json={"location": location, "budget_per_person": 0})
    unknown = client.post("/api/recommend/spas", json={"location": location})

    assert bad_budget.status_code == 422
    assert bad_budget.json()["detail"]["field"] == "budget_per_person"
    assert unknown.status_code == 404


def test_api_reload_bumps_version(store):
    client = TestClient(create_app(store, data_path=str(DATA_DIR)))

    response = client.post("/api/datasets/reload")

    assert response.status_code == 200
    assert response.json() == {"version": 2, "attractions": 7, "restaurants": 5, "hotels": 5}


def test_api_reload_failure_keeps_snapshot(store, tmp_path):
    client = TestClient(create_app(store, data_path=str(tmp_path)))

    response = client.post("/api/datasets/reload")

    assert response.status_code == 503
    assert store.snapshot().version == 1


@pytest.mark.parametrize("flag, expected_calls", [("false", 0), ("no", 0), (False, 0), ("true", 1), (True, 1)])
def test_api_plan_enrich_flag_is_parsed(store, monkeypatch, flag, expected_calls):
    monkeypatch.delenv("TRIP_PLANNER_ENRICH", raising=False)
    narrate = MagicMock(return_value="A calm lakeside break.")
    monkeypatch.setattr("itinerary.orchestrator.narrate_plan", narrate)
    client = TestClient(create_app(store))

    response = client.post("/api/plan", json={**_sample_payload(), "enrich": flag})

    assert response.status_code == 200
    assert narrate.call_count == expected_calls
    assert response.json()["narrative"] == ("A calm lakeside break." if expected_calls else None)


def test_api_plan_enrich_defaults_to_environment(store, monkeypatch):
    monkeypatch.setenv("TRIP_PLANNER_ENRICH", "yes")
    narrate = MagicMock(return_value="From the env flag.")
    monkeypatch.setattr("itinerary.orchestrator.narrate_plan", narrate)
    client = TestClient(create_app(store))

    response = client.post("/api/plan", json=_sample_payload())

    assert response.status_code == 200
    narrate.assert_called_once()
    assert response.json()["narrative"] == "From the env flag."


def test_api_dataset_loads_run_off_the_event_loop(monkeypatch):
    threads = []
    real_load_all = DataStore.load_all

    def recording_load_all(self, provider):
        threads.append(threading.current_thread().name)
        return real_load_all(self, provider)

    monkeypatch.setattr(DataStore, "load_all", recording_load_all)
    client = TestClient(create_app(data_path=str(DATA_DIR)))
    location = {"latitude": 30.2587, "longitude": 120.1315}

    assert client.post("/api/recommend/hotels", json={"location": location}).status_code == 200
    assert client.post("/api/datasets/reload").status_code == 200

    assert len(threads) == 2
    # asyncio's default executor names its worker threads "asyncio_N"
    assert all(name.startswith("asyncio") for name in threads)
