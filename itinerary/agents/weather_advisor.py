"""Weather advisory: maps one day's forecast to activity guidance.

Rules are evaluated in a fixed order and none of them short-circuits the
others: a hot, windy day collects the heat and the wind advice together.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Tuple

from itinerary.schemas import DailyForecast, WeatherAdvice

PROLONGED_OUTDOOR = "prolonged outdoor activities"

RAIN_CONDITIONS = frozenset({
    "drizzle",
    "light_rain",
    "moderate_rain",
    "heavy_rain",
    "rainstorm",
    "showers",
    "thunderstorm",
    "sleet",
})
CLEAR_CONDITIONS = frozenset({"sunny", "clear", "partly_cloudy", "cloudy"})

MILD_RANGE_C = (10.0, 30.0)
HEAT_THRESHOLD_C = 35.0
COLD_THRESHOLD_C = 5.0
WIND_THRESHOLD_KMH = 30.0
AQI_SENSITIVE = 100
AQI_UNHEALTHY = 150

BASELINE_INDOOR = ("museums and galleries", "tea houses", "shopping arcades")
BASELINE_OUTDOOR = ("city walking tour", "park visit", "scenic viewpoints")


@dataclass
class _Effect:
    suitable: Tuple[str, ...] = ()
    unsuitable: Tuple[str, ...] = ()
    precautions: Tuple[str, ...] = ()
    indoor: Tuple[str, ...] = ()
    outdoor: Tuple[str, ...] = ()
    restrictive: bool = False


@dataclass
class _Rule:
    name: str
    applies: Callable[[DailyForecast], bool]
    effect: _Effect = field(default_factory=_Effect)


def _is_rainy(f: DailyForecast) -> bool:
    return f.weather.day in RAIN_CONDITIONS or f.weather.night in RAIN_CONDITIONS


def _is_clear_and_mild(f: DailyForecast) -> bool:
    low, high = MILD_RANGE_C
    return (
        f.weather.day in CLEAR_CONDITIONS
        and f.temperature.min >= low
        and f.temperature.max <= high
    )


RULES: Tuple[_Rule, ...] = (
    _Rule(
        "rain",
        _is_rainy,
        _Effect(
            unsuitable=(PROLONGED_OUTDOOR, "hiking"),
            precautions=("Carry an umbrella or rain jacket", "Wear non-slip shoes"),
            indoor=("museums and galleries", "tea houses", "covered markets"),
            restrictive=True,
        ),
    ),
    _Rule(
        "clear",
        _is_clear_and_mild,
        _Effect(
            suitable=("lakeside walks", "cycling", "outdoor sightseeing"),
            outdoor=("lakeside walks", "boat rides", "gardens and parks"),
        ),
    ),
    _Rule(
        "heat",
        lambda f: f.temperature.max >= HEAT_THRESHOLD_C,
        _Effect(
            unsuitable=(PROLONGED_OUTDOOR, "midday sightseeing"),
            precautions=("Use sunscreen and wear a hat", "Stay hydrated", "Avoid the sun between 11:00 and 15:00"),
            indoor=("air-conditioned museums", "shopping arcades"),
            restrictive=True,
        ),
    ),
    _Rule(
        "cold",
        lambda f: f.temperature.min <= COLD_THRESHOLD_C,
        _Effect(
            unsuitable=(PROLONGED_OUTDOOR,),
            precautions=("Dress in warm layers", "Keep outdoor visits short"),
            indoor=("tea houses", "hot spring or spa"),
            restrictive=True,
        ),
    ),
    _Rule(
        "wind",
        lambda f: f.wind.speed.max >= WIND_THRESHOLD_KMH,
        _Effect(
            unsuitable=("boat rides", "cycling"),
            precautions=("Strong wind expected: secure hats and loose items",),
            restrictive=True,
        ),
    ),
    _Rule(
        "poor_air",
        lambda f: f.air_quality.aqi > AQI_UNHEALTHY,
        _Effect(
            unsuitable=(PROLONGED_OUTDOOR, "strenuous exercise outdoors"),
            precautions=("Wear a mask outdoors",),
            indoor=("museums and galleries",),
            restrictive=True,
        ),
    ),
    _Rule(
        "sensitive_air",
        lambda f: AQI_SENSITIVE < f.air_quality.aqi <= AQI_UNHEALTHY,
        _Effect(
            precautions=("Air quality is moderate: sensitive travellers should limit exertion outdoors",),
        ),
    ),
)


class WeatherAdvisor:
    def __init__(self, rules: Iterable[_Rule] = RULES):
        self.rules = tuple(rules)

    def get_advice(self, forecast: DailyForecast) -> WeatherAdvice:
        suitable: List[str] = []
        unsuitable: List[str] = []
        precautions: List[str] = []
        indoor: List[str] = []
        outdoor: List[str] = []
        restricted = False
        for rule in self.rules:
            if not rule.applies(forecast):
                continue
            e = rule.effect
            _extend_unique(suitable, e.suitable)
            _extend_unique(unsuitable, e.unsuitable)
            _extend_unique(precautions, e.precautions)
            _extend_unique(indoor, e.indoor)
            _extend_unique(outdoor, e.outdoor)
            restricted = restricted or e.restrictive

        # An activity flagged unsuitable by any rule is never also recommended.
        suitable = [item for item in suitable if item not in unsuitable]
        outdoor = [item for item in outdoor if item not in unsuitable]

        if not indoor:
            indoor = list(BASELINE_INDOOR)
        if not outdoor and not restricted:
            outdoor = list(BASELINE_OUTDOOR)

        return WeatherAdvice(
            date=forecast.date,
            forecast=forecast.model_copy(deep=True),
            suitable=suitable,
            unsuitable=unsuitable,
            precautions=precautions,
            indoor_options=indoor,
            outdoor_options=outdoor,
            outdoor_restricted=PROLONGED_OUTDOOR in unsuitable,
        )


def _extend_unique(target: List[str], items: Iterable[str]) -> None:
    for item in items:
        if item not in target:
            target.append(item)
