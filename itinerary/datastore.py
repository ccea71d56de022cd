"""In-memory dataset holder shared by every planning component."""
from __future__ import annotations

import json
import logging
import os
import threading
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple, TypeVar

from pydantic import TypeAdapter, ValidationError

from itinerary.errors import DataUnavailableError
from itinerary.schemas import (
    Attraction,
    DailyForecast,
    District,
    Hotel,
    Location,
    Restaurant,
    WeatherForecast,
)
from itinerary.tools.geo import within_radius

logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("[%(levelname)s] %(name)s: %(message)s"))
    logger.addHandler(handler)
_level = os.getenv("TRIP_PLANNER_LOG_LEVEL", "INFO").upper()
logger.setLevel(getattr(logging, _level, logging.INFO))
logger.propagate = False

T = TypeVar("T")

POI_KINDS = ("attractions", "restaurants", "hotels")


class DatasetProvider(Protocol):
    """Anything able to hand over fully-typed datasets on demand."""

    def load_districts(self) -> Sequence[District]: ...
    def load_attractions(self) -> Sequence[Attraction]: ...
    def load_restaurants(self) -> Sequence[Restaurant]: ...
    def load_hotels(self) -> Sequence[Hotel]: ...
    def load_weather(self) -> WeatherForecast: ...


class JsonDatasetProvider:
    """Reads the dataset directory produced by the data team.

    Each file either holds a bare list or wraps it under its dataset key
    (``{"hotels": [...]}``); ``weather.json`` holds a single forecast object.
    """

    FILES = {
        "districts": "districts.json",
        "attractions": "attractions.json",
        "restaurants": "restaurants.json",
        "hotels": "hotels.json",
        "weather": "weather.json",
    }

    def __init__(self, base_path: str | os.PathLike[str]):
        self.base_path = Path(base_path)

    def load_districts(self) -> List[District]:
        return self._load_list("districts", District)

    def load_attractions(self) -> List[Attraction]:
        return self._load_list("attractions", Attraction)

    def load_restaurants(self) -> List[Restaurant]:
        return self._load_list("restaurants", Restaurant)

    def load_hotels(self) -> List[Hotel]:
        return self._load_list("hotels", Hotel)

    def load_weather(self) -> WeatherForecast:
        raw = self._read("weather")
        try:
            return WeatherForecast.model_validate(raw)
        except ValidationError as exc:
            raise DataUnavailableError("weather", f"invalid records in {self.FILES['weather']}") from exc

    def _load_list(self, dataset: str, model: type[T]) -> List[T]:
        raw = self._read(dataset)
        if isinstance(raw, dict):
            raw = raw.get(dataset, [])
        try:
            return TypeAdapter(List[model]).validate_python(raw)  # type: ignore[valid-type]
        except ValidationError as exc:
            raise DataUnavailableError(dataset, f"invalid records in {self.FILES[dataset]}") from exc

    def _read(self, dataset: str) -> Any:
        path = self.base_path / self.FILES[dataset]
        try:
            with path.open(encoding="utf-8") as fh:
                return json.load(fh)
        except OSError as exc:
            raise DataUnavailableError(dataset, f"cannot read {path}") from exc
        except json.JSONDecodeError as exc:
            raise DataUnavailableError(dataset, f"malformed JSON in {path}") from exc


@dataclass(frozen=True)
class DataSnapshot:
    """One immutable version of every dataset."""

    districts: Tuple[District, ...] = ()
    attractions: Tuple[Attraction, ...] = ()
    restaurants: Tuple[Restaurant, ...] = ()
    hotels: Tuple[Hotel, ...] = ()
    weather: Optional[WeatherForecast] = None
    version: int = 0

    def pois(self, kind: str) -> Tuple[Any, ...]:
        if kind not in POI_KINDS:
            raise ValueError(f"unknown POI kind: {kind}")
        return getattr(self, kind)

    def forecast_for(self, day: date) -> Optional[DailyForecast]:
        if self.weather is None:
            return None
        for forecast in self.weather.daily_forecasts:
            if forecast.date == day:
                return forecast
        return None


class DataStore:
    """Holds the current snapshot and serves copy-on-read queries.

    ``load_all`` swaps in a fully built snapshot under a load lock, so readers
    never observe a half-loaded state and concurrent loads queue up.
    """

    def __init__(self) -> None:
        self._snapshot: Optional[DataSnapshot] = None
        self._load_lock = threading.Lock()

    @property
    def loaded(self) -> bool:
        return self._snapshot is not None

    def load_all(self, provider: DatasetProvider) -> DataSnapshot:
        with self._load_lock:
            previous = self._snapshot
            steps = (
                ("districts", provider.load_districts),
                ("attractions", provider.load_attractions),
                ("restaurants", provider.load_restaurants),
                ("hotels", provider.load_hotels),
                ("weather", provider.load_weather),
            )
            loaded: Dict[str, Any] = {}
            for dataset, loader in steps:
                try:
                    loaded[dataset] = loader()
                except DataUnavailableError:
                    logger.warning("Dataset load failed at %s; keeping previous snapshot", dataset)
                    raise
                except Exception as exc:
                    logger.warning("Dataset load failed at %s; keeping previous snapshot", dataset, exc_info=True)
                    raise DataUnavailableError(dataset, str(exc) or exc.__class__.__name__) from exc

            snapshot = DataSnapshot(
                districts=tuple(d.model_copy(deep=True) for d in loaded["districts"]),
                attractions=tuple(a.model_copy(deep=True) for a in loaded["attractions"]),
                restaurants=tuple(r.model_copy(deep=True) for r in loaded["restaurants"]),
                hotels=tuple(h.model_copy(deep=True) for h in loaded["hotels"]),
                weather=loaded["weather"].model_copy(deep=True) if loaded["weather"] is not None else None,
                version=(previous.version + 1) if previous else 1,
            )
            self._snapshot = snapshot
            logger.info(
                "Loaded snapshot v%d: %d districts, %d attractions, %d restaurants, %d hotels, %d forecast days",
                snapshot.version,
                len(snapshot.districts),
                len(snapshot.attractions),
                len(snapshot.restaurants),
                len(snapshot.hotels),
                len(snapshot.weather.daily_forecasts) if snapshot.weather else 0,
            )
            return snapshot

    def snapshot(self) -> DataSnapshot:
        snapshot = self._snapshot
        if snapshot is None:
            raise DataUnavailableError("all", "no snapshot loaded")
        return snapshot

    # ---------- queries (always return copies) ----------
    def district(self, district_id: str) -> Optional[District]:
        for d in self.snapshot().districts:
            if d.id == district_id:
                return d.model_copy(deep=True)
        return None

    def by_district(self, kind: str, district_id: str) -> List[Any]:
        return _copies(p for p in self.snapshot().pois(kind) if p.district_id == district_id)

    def within_radius(self, kind: str, center: Location, radius_km: float) -> List[Any]:
        return _copies(within_radius(self.snapshot().pois(kind), center, radius_km))

    def by_price_range(self, min_price: float, max_price: float) -> List[Hotel]:
        """Hotels whose advertised price range lies inside [min_price, max_price]."""
        return _copies(
            h for h in self.snapshot().hotels
            if h.price_range.min >= min_price and h.price_range.max <= max_price
        )

    def restaurants_by_cuisine(self, cuisine: str) -> List[Restaurant]:
        return _copies(r for r in self.snapshot().restaurants if r.cuisine_type == cuisine)

    def forecast_for(self, day: date) -> Optional[DailyForecast]:
        forecast = self.snapshot().forecast_for(day)
        return forecast.model_copy(deep=True) if forecast else None


def _copies(items) -> List[Any]:
    return [item.model_copy(deep=True) for item in items]
