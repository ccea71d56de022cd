"""Shared scoring plumbing used by every domain scorer."""
from __future__ import annotations

from typing import Iterable, List, Optional, Protocol, Sequence, TypeVar

from itinerary.config import ScoringWeights
from itinerary.errors import PlanValidationError
from itinerary.schemas import Candidate

C = TypeVar("C", bound=Candidate)


class Scorer(Protocol):
    """Produces a ranked candidate list for one domain."""

    def recommend(self, request, snapshot) -> List[Candidate]: ...


def rank_key(candidate: Candidate):
    """The single ordering every scorer uses: score desc, distance asc, id asc."""
    return (-candidate.score, candidate.distance_km, candidate.poi.id)  # type: ignore[attr-defined]


def rank(candidates: Iterable[C], limit: int) -> List[C]:
    kept = [c for c in candidates if c.score > 0]
    kept.sort(key=rank_key)
    return kept[:limit]


def distance_score(distance_km: float, radius_km: float, weights: ScoringWeights) -> float:
    return (1.0 - distance_km / radius_km) * weights.distance


def matching(values: Iterable[str], wanted: Iterable[str]) -> List[str]:
    """Values that appear in ``wanted``, in ``values`` order."""
    wanted_set = set(wanted)
    return [v for v in values if v in wanted_set]


def check_budget(field: str, budget: Optional[float]) -> None:
    """``None`` means unconstrained; anything else must be strictly positive."""
    if budget is not None and budget <= 0:
        raise PlanValidationError(field, "budget must be positive (omit it for no limit)")


def check_radius(radius_km: float) -> None:
    if radius_km <= 0:
        raise PlanValidationError("radius_km", "search radius must be positive")


def within_budget(price: float, budget: Optional[float]) -> bool:
    return budget is None or price <= budget


def summarise(items: Sequence[str], sep: str = ", ") -> str:
    """Join up to two items, hinting at the rest."""
    if len(items) <= 2:
        return sep.join(items)
    return sep.join(items[:2]) + " and more"
