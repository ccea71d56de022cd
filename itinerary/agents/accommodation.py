"""Hotel scorer: budget/radius filtering, ranking and booking notes."""
from __future__ import annotations

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
from itinerary.schemas import AccommodationRequest, Hotel, HotelCandidate, RoomChoice
from itinerary.tools.geo import haversine_km

_VALUE_LEVELS = {"economy", "mid_range"}
_SINGLE_BED_FEATURES = ["king_bed", "single_bed"]


class HotelScorer:
    def __init__(self, weights: Optional[ScoringWeights] = None):
        self.weights = weights or ScoringWeights()

    def recommend(self, request: AccommodationRequest, snapshot) -> List[HotelCandidate]:
        check_budget("budget_per_night", request.budget_per_night)
        check_radius(request.radius_km)

        candidates: List[HotelCandidate] = []
        for hotel in snapshot.hotels:
            if request.budget_per_night is not None and not self._affordable_rooms(hotel, request.budget_per_night):
                continue
            distance = haversine_km(request.location, hotel.coordinates)
            if distance > request.radius_km:
                continue
            score = self.score(hotel, distance, request)
            if score <= 0:
                continue
            candidates.append(
                HotelCandidate(
                    poi=hotel,
                    distance_km=distance,
                    score=score,
                )
            )

        ranked = rank(candidates, self.weights.max_results)
        # Only the survivors get a private copy and their explanation text.
        for cand in ranked:
            cand.poi = cand.poi.model_copy(deep=True)
            cand.reasons = self._reasons(cand.poi, request)
            cand.notes = self._notes(cand.poi)
            cand.room_choices = self._room_choices(cand.poi, request)
        return ranked

    def score(self, hotel: Hotel, distance_km: float, request: AccommodationRequest) -> float:
        w = self.weights
        score = distance_score(distance_km, request.radius_km, w)
        if hotel.category and hotel.category in request.categories:
            score += w.category_match
        score += w.tag_match * len(matching(request.preferences, hotel.amenities))
        score += w.tier(hotel.category)
        return score

    @staticmethod
    def _affordable_rooms(hotel: Hotel, budget: Optional[float]):
        return [room for room in hotel.rooms if within_budget(room.price, budget)]

    def _room_choices(self, hotel: Hotel, request: AccommodationRequest) -> List[RoomChoice]:
        choices: List[RoomChoice] = []
        for room in self._affordable_rooms(hotel, request.budget_per_night):
            note = ""
            if request.guest_count > 2 and matching(room.features, _SINGLE_BED_FEATURES):
                note = "May not suit the party size"
            elif matching(room.features, request.requirements):
                note = "Meets your requirements"
            choices.append(
                RoomChoice(
                    type=room.type,
                    price=room.price,
                    size_sqm=room.size_sqm,
                    features=list(room.features),
                    notes=note,
                )
            )
        return choices

    @staticmethod
    def _reasons(hotel: Hotel, request: AccommodationRequest) -> List[str]:
        reasons: List[str] = []
        stations = hotel.transportation.nearby_stations
        if stations:
            reasons.append(f"Convenient transit: near {summarise(stations)}")
        amenities = matching(hotel.amenities, request.preferences)
        if amenities:
            reasons.append(f"Matching amenities: {summarise(amenities)}")
        if hotel.price_range.level in _VALUE_LEVELS:
            reasons.append("Good value for money")
        return reasons

    @staticmethod
    def _notes(hotel: Hotel) -> List[str]:
        notes: List[str] = []
        taxi_time = hotel.transportation.from_airport.taxi_time
        if taxi_time:
            notes.append(f"Airport transfer: {taxi_time}")
        if hotel.price_range.notes:
            notes.append(f"Price note: {hotel.price_range.notes}")
        return notes


def cheapest_room_price(candidate: HotelCandidate) -> float:
    """Nightly price of the cheapest in-budget room of a ranked hotel."""
    if not candidate.room_choices:
        return 0.0
    return min(choice.price for choice in candidate.room_choices)
