"""DataStore loading and copy-on-read behaviour."""
import json
import threading
from pathlib import Path
from datetime import date

import pytest

from itinerary.datastore import DataStore, JsonDatasetProvider
from itinerary.errors import DataUnavailableError

DATA_DIR = Path(__file__).resolve().parent.parent / "data"


class FlakyProvider(JsonDatasetProvider):
    """Serves the sample data but breaks on one dataset."""

    def __init__(self, base_path, broken: str):
        super().__init__(base_path)
        self.broken = broken

    def load_hotels(self):
        if self.broken == "hotels":
            raise DataUnavailableError("hotels", "disk on fire")
        return super().load_hotels()

    def load_weather(self):
        if self.broken == "weather":
            raise RuntimeError("socket closed")
        return super().load_weather()


def test_unloaded_store_raises():
    store = DataStore()

    assert not store.loaded
    with pytest.raises(DataUnavailableError):
        store.snapshot()
    with pytest.raises(DataUnavailableError):
        store.restaurants_by_cuisine("hangzhou")


def test_load_all_populates_every_dataset(store):
    snap = store.snapshot()

    assert snap.version == 1
    assert len(snap.districts) == 2
    assert len(snap.attractions) == 7
    assert len(snap.restaurants) == 5
    assert len(snap.hotels) == 5
    assert len(snap.weather.daily_forecasts) == 5


def test_failed_load_keeps_previous_snapshot(store):
    before = store.snapshot()

    with pytest.raises(DataUnavailableError) as excinfo:
        store.load_all(FlakyProvider(DATA_DIR, broken="hotels"))

    assert excinfo.value.dataset == "hotels"
    assert store.snapshot() is before


def test_unexpected_provider_error_is_wrapped():
    store = DataStore()

    with pytest.raises(DataUnavailableError) as excinfo:
        store.load_all(FlakyProvider(DATA_DIR, broken="weather"))

    assert excinfo.value.dataset == "weather"
    assert "socket closed" in str(excinfo.value)
    assert not store.loaded


def test_reload_is_idempotent(store):
    first = store.snapshot()
    second = store.load_all(JsonDatasetProvider(DATA_DIR))

    assert second.version == first.version + 1
    assert [h.id for h in second.hotels] == [h.id for h in first.hotels]
    assert second.weather == first.weather


def test_queries_return_copies(store):
    hotel = store.by_district("hotels", "xihu")[0]
    hotel.name = "Renamed"
    hotel.amenities.append("helipad")

    fresh = store.by_district("hotels", "xihu")[0]
    assert fresh.name != "Renamed"
    assert "helipad" not in fresh.amenities


def test_within_radius_query(store, west_lake):
    nearby = store.within_radius("hotels", west_lake, 2.0)

    ids = {h.id for h in nearby}
    assert "h-westlake-boutique" in ids
    assert "h-hubin-business" not in ids


def test_price_and_cuisine_queries(store):
    affordable = store.by_price_range(0, 900)
    assert {h.id for h in affordable} == {"h-westlake-boutique", "h-hubin-business", "h-qiantang-budget"}

    hangzhou = store.restaurants_by_cuisine("hangzhou")
    assert {r.id for r in hangzhou} == {"r-louwailou", "r-grandma", "r-green-tea"}


def test_district_and_forecast_lookup(store):
    assert store.district("xihu").name == "Xihu District"
    assert store.district("nowhere") is None

    forecast = store.forecast_for(date(2024, 4, 2))
    assert forecast.weather.day == "moderate_rain"
    assert store.forecast_for(date(2030, 1, 1)) is None


def test_unknown_poi_kind_rejected(store, west_lake):
    with pytest.raises(ValueError):
        store.within_radius("spas", west_lake, 1.0)


def test_json_provider_accepts_bare_lists(tmp_path):
    for name in JsonDatasetProvider.FILES.values():
        (tmp_path / name).write_text((DATA_DIR / name).read_text(encoding="utf-8"), encoding="utf-8")
    wrapped = json.loads((DATA_DIR / "hotels.json").read_text(encoding="utf-8"))
    (tmp_path / "hotels.json").write_text(json.dumps(wrapped["hotels"]), encoding="utf-8")

    snap = DataStore().load_all(JsonDatasetProvider(tmp_path))

    assert len(snap.hotels) == 5


def test_json_provider_reports_malformed_file(tmp_path):
    for name in JsonDatasetProvider.FILES.values():
        (tmp_path / name).write_text((DATA_DIR / name).read_text(encoding="utf-8"), encoding="utf-8")
    (tmp_path / "restaurants.json").write_text("{not json", encoding="utf-8")

    with pytest.raises(DataUnavailableError) as excinfo:
        DataStore().load_all(JsonDatasetProvider(tmp_path))

    assert excinfo.value.dataset == "restaurants"


def test_json_provider_reports_missing_directory(tmp_path):
    with pytest.raises(DataUnavailableError) as excinfo:
        DataStore().load_all(JsonDatasetProvider(tmp_path / "missing"))

    assert excinfo.value.dataset == "districts"


class SlowProvider(JsonDatasetProvider):
    """Blocks inside the first dataset read until released."""

    def __init__(self, base_path):
        super().__init__(base_path)
        self.started = threading.Event()
        self.release = threading.Event()

    def load_districts(self):
        self.started.set()
        assert self.release.wait(timeout=5)
        return super().load_districts()


def test_concurrent_load_waits_for_inflight_load(store):
    start_version = store.snapshot().version
    slow = SlowProvider(DATA_DIR)
    results = {}

    first = threading.Thread(target=lambda: results.setdefault("first", store.load_all(slow)))
    second = threading.Thread(
        target=lambda: results.setdefault("second", store.load_all(JsonDatasetProvider(DATA_DIR)))
    )
    first.start()
    assert slow.started.wait(timeout=5)
    second.start()
    second.join(timeout=0.3)

    assert second.is_alive()
    assert "second" not in results
    assert store.snapshot().version == start_version

    slow.release.set()
    first.join(timeout=5)
    second.join(timeout=5)

    assert results["first"].version == start_version + 1
    assert results["second"].version == start_version + 2
    assert store.snapshot() is results["second"]
