"""Runtime configuration and tuning constants for the planner."""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from dotenv import load_dotenv

load_dotenv()


def get_data_path() -> str:
    """Directory holding the JSON datasets."""
    return os.getenv("DATA_PATH", "./data")


def get_llm_model() -> str:
    return os.getenv("TRIP_PLANNER_LLM_MODEL", "gpt-4o-mini")


_TRUTHY = {"1", "true", "yes"}


def parse_flag(value: Any) -> Optional[bool]:
    """Boolean from a JSON or env value; ``None`` stays ``None`` (use the default)."""
    if value is None or isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUTHY


def enrichment_enabled() -> bool:
    return bool(parse_flag(os.getenv("TRIP_PLANNER_ENRICH", "false")))


def get_day_workers() -> int:
    """Thread pool size for per-day planning; 1 keeps planning sequential."""
    try:
        return max(1, int(os.getenv("TRIP_PLANNER_DAY_WORKERS", "1")))
    except ValueError:
        return 1


def get_allowed_origins() -> List[str]:
    raw_origins = os.getenv("TRIP_PLANNER_ALLOWED_ORIGINS") or "*"
    origins = [origin.strip() for origin in raw_origins.split(",") if origin.strip()]
    return origins or ["*"]


@dataclass(frozen=True)
class ScoringWeights:
    """Relative weights for candidate scoring.

    Only the ordering they induce matters; absolute values carry no meaning.
    """
    distance: float = 3.0           # multiplied by (1 - distance / radius)
    category_match: float = 5.0     # exact category / cuisine match
    tag_match: float = 2.0          # per matching amenity / feature / tag
    tier_bonus: Dict[str, float] = field(
        default_factory=lambda: {"five_star": 5.0, "four_star": 4.0}
    )
    default_tier_bonus: float = 3.0  # boutique and everything else
    max_results: int = 5

    def tier(self, category: str) -> float:
        return self.tier_bonus.get(category, self.default_tier_bonus)


@dataclass(frozen=True)
class HotZone:
    """Bounding box with tips specific to that area."""
    name: str
    lat_range: Tuple[float, float]
    lon_range: Tuple[float, float]
    tips: Tuple[str, ...]

    def contains(self, latitude: float, longitude: float) -> bool:
        return (
            self.lat_range[0] <= latitude <= self.lat_range[1]
            and self.lon_range[0] <= longitude <= self.lon_range[1]
        )


@dataclass(frozen=True)
class ComposerDefaults:
    hotel_radius_km: float = 2.0
    dining_radius_km: float = 3.0
    activity_radius_km: float = 5.0
    base_tips: Tuple[str, ...] = (
        "Book tickets for popular attractions in advance.",
        "Pack rain gear just in case.",
        "Watch the forecast and adjust the schedule as needed.",
        "Keep valuables with you at all times.",
    )
    hot_zones: Tuple[HotZone, ...] = (
        HotZone(
            name="West Lake",
            lat_range=(30.2, 30.3),
            lon_range=(120.1, 120.2),
            tips=(
                "West Lake scenic area gets crowded on weekends.",
                "Prefer the metro and other public transport.",
                "Consider a combined ticket for the scenic area.",
            ),
        ),
    )
