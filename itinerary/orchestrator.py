# itinerary/orchestrator.py
from __future__ import annotations

import asyncio
import logging
import os
import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import date, time, timedelta
from typing import Any, Callable, Dict, List, Optional, Tuple

from pydantic import BaseModel, ValidationError

from itinerary.agents.accommodation import HotelScorer, cheapest_room_price
from itinerary.agents.attractions import AttractionScorer
from itinerary.agents.dining import RestaurantScorer
from itinerary.agents.ranking import Scorer
from itinerary.agents.weather_advisor import WeatherAdvisor
from itinerary.config import ComposerDefaults, enrichment_enabled, get_day_workers, get_llm_model
from itinerary.datastore import DataSnapshot, DataStore
from itinerary.errors import DataUnavailableError, EnrichmentError, PlanCancelledError, PlanValidationError
from itinerary.llm import narrate_plan
from itinerary.schemas import (
    AccommodationRequest,
    ActivityBlock,
    AttractionCandidate,
    AttractionRequest,
    DailyPlan,
    DiningRequest,
    DiningSlot,
    HotelCandidate,
    TripOverview,
    TripPlan,
    TripRequest,
    WeatherAdvice,
)

logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("[%(levelname)s] %(name)s: %(message)s"))
    logger.addHandler(handler)
_level = os.getenv("TRIP_PLANNER_LOG_LEVEL", "INFO").upper()
logger.setLevel(getattr(logging, _level, logging.INFO))
logger.propagate = False

# (slot, start, duration minutes)
ACTIVITY_TEMPLATE: Tuple[Tuple[str, time, int], ...] = (
    ("morning", time(9, 0), 180),
    ("afternoon", time(14, 0), 180),
    ("evening", time(19, 0), 90),
)
DINING_TEMPLATE: Tuple[Tuple[str, time], ...] = (
    ("midday", time(12, 0)),
    ("evening", time(18, 30)),
)
_EVENING_TIMES = {"evening", "night"}
_BUDGET_FIELDS = ("total", "hotel_per_night", "food_per_day", "activity_per_day")


def validate_request(req: TripRequest) -> None:
    """Raise ``PlanValidationError`` for the first invalid field found."""
    if req.end_date <= req.start_date:
        raise PlanValidationError("end_date", "end date must be after start date")
    loc = req.location
    if loc.latitude == 0 and loc.longitude == 0:
        raise PlanValidationError("location", "coordinates must be non-zero")
    if not -90 <= loc.latitude <= 90 or not -180 <= loc.longitude <= 180:
        raise PlanValidationError("location", "coordinates out of range")
    for name in _BUDGET_FIELDS:
        value = getattr(req.budget, name)
        if value is not None and value <= 0:
            raise PlanValidationError(f"budget.{name}", "budget must be positive (omit it for no limit)")
    if req.party_size <= 0:
        raise PlanValidationError("party_size", "party size must be positive")


class ItineraryComposer:
    """Builds a multi-day TripPlan from one request and one data snapshot."""

    def __init__(
        self,
        store: DataStore,
        *,
        hotel_scorer: Optional[HotelScorer] = None,
        restaurant_scorer: Optional[RestaurantScorer] = None,
        attraction_scorer: Optional[AttractionScorer] = None,
        advisor: Optional[WeatherAdvisor] = None,
        defaults: Optional[ComposerDefaults] = None,
        max_workers: int = 1,
    ):
        self.store = store
        self.hotel_scorer = hotel_scorer or HotelScorer()
        self.restaurant_scorer = restaurant_scorer or RestaurantScorer()
        self.attraction_scorer = attraction_scorer or AttractionScorer()
        self.advisor = advisor or WeatherAdvisor()
        self.defaults = defaults or ComposerDefaults()
        self.max_workers = max(1, max_workers)

    def plan(self, req: TripRequest, *, cancel_event: Optional[threading.Event] = None) -> TripPlan:
        validate_request(req)
        days = (req.end_date - req.start_date).days
        logger.info(
            "Planning %d-day trip for %d traveller(s) around (%.4f, %.4f) from %s",
            days,
            req.party_size,
            req.location.latitude,
            req.location.longitude,
            req.start_date.isoformat(),
        )

        # One snapshot for the whole request; a missing store is fatal here.
        snapshot = self.store.snapshot()
        plan = TripPlan(overview=TripOverview(duration_days=days))
        plan.accommodation = self._select_accommodation(req, snapshot)
        if plan.accommodation is not None:
            plan.accommodation_cost = round(cheapest_room_price(plan.accommodation) * days, 2)
        else:
            logger.info("No hotel within %.1f km matched the request", self.defaults.hotel_radius_km)

        dates = [req.start_date + timedelta(days=i) for i in range(days)]
        results = self._plan_days(req, snapshot, dates, cancel_event)
        completed = [day for day in results if day is not None]
        plan.daily_plans = completed

        if len(completed) < days:
            plan.partial = True
            self._finalize(plan, req)
            logger.warning("Planning cancelled after %d of %d day(s)", len(completed), days)
            raise PlanCancelledError(plan)

        self._finalize(plan, req)
        logger.info(
            "Plan ready: %d day(s), total cost %.2f, hotel %s",
            days,
            plan.overview.total_cost,
            plan.accommodation.poi.name if plan.accommodation else "unset",
        )
        return plan

    # ---------- steps ----------
    def _select_accommodation(self, req: TripRequest, snapshot: DataSnapshot) -> Optional[HotelCandidate]:
        hotel_req = AccommodationRequest(
            location=req.location,
            radius_km=self.defaults.hotel_radius_km,
            budget_per_night=req.budget.hotel_per_night,
            guest_count=req.party_size,
            preferences=req.preferences.hotel,
            requirements=req.requirements,
        )
        hotels = self.hotel_scorer.recommend(hotel_req, snapshot)
        return hotels[0] if hotels else None

    def _plan_days(
        self,
        req: TripRequest,
        snapshot: DataSnapshot,
        dates: List[date],
        cancel_event: Optional[threading.Event],
    ) -> List[Optional[DailyPlan]]:
        def run(index: int) -> Optional[DailyPlan]:
            if cancel_event is not None and cancel_event.is_set():
                return None
            return self._plan_day(index, dates[index], req, snapshot)

        if self.max_workers == 1 or len(dates) <= 1:
            results: List[Optional[DailyPlan]] = []
            for index in range(len(dates)):
                day = run(index)
                if day is None:
                    break
                results.append(day)
            return results

        # map() yields in submission order, so days come back in date order.
        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            return list(pool.map(run, range(len(dates))))

    def _plan_day(self, index: int, day: date, req: TripRequest, snapshot: DataSnapshot) -> DailyPlan:
        plan = DailyPlan(date=day)

        forecast = snapshot.forecast_for(day)
        if forecast is None:
            plan.notes.append(f"No forecast available for {day.isoformat()}; plan without weather guidance.")
            logger.warning("No forecast for %s; continuing without weather advice", day.isoformat())
        else:
            plan.weather = self.advisor.get_advice(forecast)

        plan.dining = self._plan_dining(req, snapshot, plan)
        plan.activities = self._plan_activities(index, req, snapshot, plan.weather, plan)
        plan.cost = round(
            sum(slot.cost for slot in plan.dining) + sum(block.cost for block in plan.activities), 2
        )
        return plan

    def _plan_dining(self, req: TripRequest, snapshot: DataSnapshot, plan: DailyPlan) -> List[DiningSlot]:
        food = req.budget.food_per_day
        per_slot = food / len(DINING_TEMPLATE) if food is not None else None
        used: set[str] = set()
        slots: List[DiningSlot] = []
        for slot, at in DINING_TEMPLATE:
            dining = DiningSlot(slot=slot, time=at, budget_per_person=per_slot)
            dining_req = DiningRequest(
                location=req.location,
                radius_km=self.defaults.dining_radius_km,
                budget_per_person=per_slot,
                cuisine=req.preferences.cuisine,
                preferences=req.requirements,
                party_size=req.party_size,
                dining_time=at,
            )
            try:
                options = self.restaurant_scorer.recommend(dining_req, snapshot)
            except DataUnavailableError as exc:
                logger.warning("Dining lookup failed for %s %s: %s", plan.date.isoformat(), slot, exc)
                plan.notes.append(f"Dining suggestions unavailable for the {slot} meal.")
                slots.append(dining)
                continue

            fresh = [o for o in options if o.poi.id not in used]
            if fresh:
                dining.pick = fresh[0]
                used.add(fresh[0].poi.id)
                dining.alternatives = [o.poi.name for o in fresh[1:3]]
                dining.cost = round(dining.pick.poi.price_range.average * req.party_size, 2)
            else:
                plan.notes.append(f"No restaurant matched the {slot} budget nearby.")
            slots.append(dining)
        return slots

    def _plan_activities(
        self,
        index: int,
        req: TripRequest,
        snapshot: DataSnapshot,
        advice: Optional[WeatherAdvice],
        plan: DailyPlan,
    ) -> List[ActivityBlock]:
        indoor = bool(advice and advice.outdoor_restricted)
        day_type = "indoor" if indoor else "outdoor"
        precautions = list(advice.precautions) if advice else []
        budget = req.budget.activity_per_day
        spent = 0.0
        used: set[str] = set()

        try:
            daytime = self.attraction_scorer.recommend(self._attraction_request(req, indoor=indoor), snapshot)
            anytime = self.attraction_scorer.recommend(self._attraction_request(req, indoor=None), snapshot)
        except DataUnavailableError as exc:
            logger.warning("Attraction lookup failed for %s: %s", plan.date.isoformat(), exc)
            plan.notes.append("Attraction suggestions unavailable today.")
            daytime, anytime = [], []

        evening_pool = [c for c in anytime if _EVENING_TIMES & set(c.poi.recommended_time.best_times)]

        blocks: List[ActivityBlock] = []
        for offset, (slot, start, minutes) in enumerate(ACTIVITY_TEMPLATE):
            block_type = day_type if slot != "evening" else "evening"
            block = ActivityBlock(slot=slot, start=start, type=block_type, duration_minutes=minutes)
            pool = daytime if slot != "evening" else evening_pool
            pick = _rotate_pick(pool, index * 2 + offset, used, budget, spent)
            if pick is not None:
                block.attraction = pick
                used.add(pick.poi.id)
                spent += pick.poi.price.amount
                block.cost = round(pick.poi.price.amount * req.party_size, 2)
            elif slot == "evening":
                block.notes.append("Free evening: stroll or rest near the hotel.")
            else:
                block.notes.append(f"No {block_type} attraction matched; keep this slot flexible.")
            if indoor and slot != "evening":
                block.notes.append("Outdoor activity not advised today; indoor option planned.")
            block.notes.extend(precautions)
            blocks.append(block)
        return blocks

    def _attraction_request(self, req: TripRequest, *, indoor: Optional[bool]) -> AttractionRequest:
        return AttractionRequest(
            location=req.location,
            radius_km=self.defaults.activity_radius_km,
            budget=req.budget.activity_per_day,
            categories=req.preferences.activities,
            preferences=req.preferences.activities,
            party_size=req.party_size,
            indoor=indoor,
        )

    def _finalize(self, plan: TripPlan, req: TripRequest) -> None:
        plan.overview.total_cost = round(
            plan.accommodation_cost + sum(day.cost for day in plan.daily_plans), 2
        )
        tips = list(self.defaults.base_tips)
        for zone in self.defaults.hot_zones:
            if zone.contains(req.location.latitude, req.location.longitude):
                tips.extend(zone.tips)
        plan.tips = tips
        plan.overview.highlights = [
            f"{day.date.isoformat()}: good for {', '.join(day.weather.suitable)}"
            for day in plan.daily_plans
            if day.weather is not None and day.weather.suitable
        ]


def _rotate_pick(
    pool: List[AttractionCandidate],
    start: int,
    used: set[str],
    budget: Optional[float],
    spent: float,
) -> Optional[AttractionCandidate]:
    """First unused, affordable candidate, starting at a day-dependent offset."""
    if not pool:
        return None
    for step in range(len(pool)):
        cand = pool[(start + step) % len(pool)]
        if cand.poi.id in used:
            continue
        if budget is not None and spent + cand.poi.price.amount > budget:
            continue
        return cand
    return None


# ---------- entry points ----------
def plan_trip(req: TripRequest, store: DataStore, **kwargs: Any) -> TripPlan:
    return ItineraryComposer(store, max_workers=get_day_workers()).plan(req, **kwargs)


async def orchestrate_trip(
    req: TripRequest,
    store: DataStore,
    *,
    enrich: Optional[bool] = None,
    model: Optional[str] = None,
    cancel_event: Optional[threading.Event] = None,
) -> TripPlan:
    """Compose the plan off the event loop, then optionally add a narrative."""
    composer = ItineraryComposer(store, max_workers=get_day_workers())
    plan = await asyncio.to_thread(composer.plan, req, cancel_event=cancel_event)

    if enrich is None:
        enrich = enrichment_enabled()
    if not enrich:
        return plan

    model = model or get_llm_model()
    try:
        plan.narrative = await asyncio.to_thread(narrate_plan, plan, req.preferences, model=model)
    except EnrichmentError as exc:
        logger.warning("Narrative enrichment skipped: %s", exc)
    return plan


RECOMMENDERS: Dict[str, Tuple[type[BaseModel], Callable[[], Scorer]]] = {
    "hotels": (AccommodationRequest, HotelScorer),
    "restaurants": (DiningRequest, RestaurantScorer),
    "attractions": (AttractionRequest, AttractionScorer),
}


def recommend(domain: str, payload: Dict[str, Any] | BaseModel, store: DataStore) -> List[Any]:
    """Per-domain entry point: validate ``payload`` and rank against the current snapshot."""
    if domain not in RECOMMENDERS:
        raise PlanValidationError("domain", f"unknown domain '{domain}'")
    request_model, scorer_cls = RECOMMENDERS[domain]
    try:
        if isinstance(payload, request_model):
            request = payload
        elif isinstance(payload, BaseModel):
            request = request_model.model_validate(payload.model_dump())
        else:
            request = request_model.model_validate(payload)
    except ValidationError as exc:
        first = exc.errors()[0]
        field = ".".join(str(part) for part in first.get("loc", ())) or "request"
        raise PlanValidationError(field, first.get("msg", "invalid value")) from exc

    results = scorer_cls().recommend(request, store.snapshot())
    logger.info("Recommend %s returned %d candidate(s)", domain, len(results))
    return results
