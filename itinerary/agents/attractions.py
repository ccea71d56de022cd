"""Attraction scorer."""
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
from itinerary.schemas import Attraction, AttractionCandidate, AttractionRequest
from itinerary.tools.geo import haversine_km


class AttractionScorer:
    def __init__(self, weights: Optional[ScoringWeights] = None):
        self.weights = weights or ScoringWeights()

    def recommend(self, request: AttractionRequest, snapshot) -> List[AttractionCandidate]:
        check_budget("budget", request.budget)
        check_radius(request.radius_km)

        candidates: List[AttractionCandidate] = []
        for attraction in snapshot.attractions:
            if request.indoor is not None and attraction.indoor != request.indoor:
                continue
            if not within_budget(attraction.price.amount, request.budget):
                continue
            distance = haversine_km(request.location, attraction.coordinates)
            if distance > request.radius_km:
                continue
            score = self.score(attraction, distance, request)
            if score <= 0:
                continue
            candidates.append(AttractionCandidate(poi=attraction, distance_km=distance, score=score))

        ranked = rank(candidates, self.weights.max_results)
        for cand in ranked:
            cand.poi = cand.poi.model_copy(deep=True)
            cand.reasons = self._reasons(cand.poi, request)
            cand.notes = self._notes(cand.poi)
        return ranked

    def score(self, attraction: Attraction, distance_km: float, request: AttractionRequest) -> float:
        w = self.weights
        score = distance_score(distance_km, request.radius_km, w)
        if attraction.category and attraction.category in request.categories:
            score += w.category_match
        score += w.tag_match * len(matching(request.preferences, attraction.tags))
        return score

    @staticmethod
    def _reasons(attraction: Attraction, request: AttractionRequest) -> List[str]:
        reasons: List[str] = []
        if attraction.highlights:
            reasons.append(f"Highlights: {summarise(attraction.highlights)}")
        tags = matching(attraction.tags, request.preferences)
        if tags:
            reasons.append(f"Matches your interests: {summarise(tags)}")
        if attraction.price.amount == 0:
            reasons.append("Free entry")
        best = attraction.recommended_time.best_times
        if best:
            reasons.append(f"Best visited: {summarise(best)}")
        return reasons

    @staticmethod
    def _notes(attraction: Attraction) -> List[str]:
        notes: List[str] = []
        hours = attraction.opening_hours
        if hours.start and hours.end:
            notes.append(f"Open {hours.start}-{hours.end}")
        if hours.break_time is not None:
            notes.append(f"Closed for a break {hours.break_time.start}-{hours.break_time.end}")
        busy = [period for period, level in attraction.crowd_level.items() if level == "high"]
        if busy:
            notes.append(f"Crowded at {summarise(busy)}")
        if attraction.price.notes:
            notes.append(f"Ticket note: {attraction.price.notes}")
        return notes
