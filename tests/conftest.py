import os
from pathlib import Path

import pytest

os.environ.setdefault("TRIP_PLANNER_LOG_LEVEL", "WARNING")
os.environ.pop("OPENAI_API_KEY", None)

from itinerary.datastore import DataStore, JsonDatasetProvider
from itinerary.schemas import Location

DATA_DIR = Path(__file__).resolve().parent.parent / "data"

# Centre of the sample dataset, on the east shore of West Lake.
WEST_LAKE = Location(latitude=30.2587, longitude=120.1315)


@pytest.fixture()
def store() -> DataStore:
    data_store = DataStore()
    data_store.load_all(JsonDatasetProvider(DATA_DIR))
    return data_store


@pytest.fixture()
def snapshot(store):
    return store.snapshot()


@pytest.fixture()
def west_lake() -> Location:
    return WEST_LAKE
