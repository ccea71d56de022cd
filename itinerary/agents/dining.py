"""Restaurant scorer."""
from __future__ import annotations

from datetime import time
from typing import List, Optional

from itinerary.agents.ranking import (
    check_budget,
    check_radius,
    distance_score,
    matching,
    rank,
    summarise,
    within_budget,
)
from itinerary.config import ScoringWeights
from itinerary.schemas import DiningRequest, Restaurant, RestaurantCandidate
from itinerary.tools.geo import haversine_km

_VALUE_LEVELS = {"economy", "mid_range"}
_LARGE_PARTY = 6


class RestaurantScorer:
    def __init__(self, weights: Optional[ScoringWeights] = None):
        self.weights = weights or ScoringWeights()

    def recommend(self, request: DiningRequest, snapshot) -> List[RestaurantCandidate]:
        check_budget("budget_per_person", request.budget_per_person)
        check_radius(request.radius_km)

        candidates: List[RestaurantCandidate] = []
        for restaurant in snapshot.restaurants:
            if not within_budget(restaurant.price_range.average, request.budget_per_person):
                continue
            distance = haversine_km(request.location, restaurant.coordinates)
            if distance > request.radius_km:
                continue
            score = self.score(restaurant, distance, request)
            if score <= 0:
                continue
            candidates.append(RestaurantCandidate(poi=restaurant, distance_km=distance, score=score))

        ranked = rank(candidates, self.weights.max_results)
        for cand in ranked:
            cand.poi = cand.poi.model_copy(deep=True)
            cand.reasons = self._reasons(cand.poi, request)
            cand.notes = self._notes(cand.poi)
            cand.reservation_tip = reservation_tip(cand.poi, request.dining_time, request.party_size)
        return ranked

    def score(self, restaurant: Restaurant, distance_km: float, request: DiningRequest) -> float:
        w = self.weights
        score = distance_score(distance_km, request.radius_km, w)
        if restaurant.cuisine_type in request.cuisine:
            score += w.category_match
        score += w.tag_match * len(matching(request.preferences, restaurant.features))
        return score

    @staticmethod
    def _reasons(restaurant: Restaurant, request: DiningRequest) -> List[str]:
        reasons: List[str] = []
        if restaurant.signature_dishes:
            reasons.append(f"Signature dishes: {summarise(restaurant.signature_dishes)}")
        if restaurant.cuisine_type in request.cuisine:
            reasons.append(f"Serves your preferred cuisine: {restaurant.cuisine_type}")
        features = matching(restaurant.features, request.preferences)
        if features:
            reasons.append(f"Matches your preferences: {summarise(features)}")
        if restaurant.price_range.level in _VALUE_LEVELS:
            reasons.append("Good value for money")
        return reasons

    @staticmethod
    def _notes(restaurant: Restaurant) -> List[str]:
        notes: List[str] = []
        if restaurant.reservations_required:
            notes.append("Reservation recommended")
        brk = restaurant.opening_hours.break_time
        if brk is not None:
            notes.append(f"Closed for a break {brk.start}-{brk.end}")
        if restaurant.price_range.notes:
            notes.append(f"Price note: {restaurant.price_range.notes}")
        return notes


def reservation_tip(restaurant: Restaurant, dining_time: Optional[time], party_size: int) -> str:
    if not restaurant.reservations_required:
        return "No reservation needed"
    if party_size > _LARGE_PARTY:
        return "Reserve at least one day ahead for a large party"
    if dining_time is not None and (11 <= dining_time.hour <= 13 or 17 <= dining_time.hour <= 19):
        return "Peak dining hours: reserve at least 2 hours ahead"
    return "Reservation recommended"
