"""Error taxonomy shared by the store, the scorers and the composer."""
from __future__ import annotations

from typing import Any, Optional


class ItineraryError(Exception):
    """Base class for planner failures surfaced to callers."""


class PlanValidationError(ItineraryError):
    """A request field is missing, malformed or out of range."""

    def __init__(self, field: str, message: str):
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message


class DataUnavailableError(ItineraryError):
    """The dataset provider failed or no snapshot has been loaded yet."""

    def __init__(self, dataset: str, message: str):
        super().__init__(f"{dataset} dataset unavailable: {message}")
        self.dataset = dataset


class EnrichmentError(ItineraryError):
    """Narrative generation failed. Always recovered by the orchestrator."""


class PlanCancelledError(ItineraryError):
    """Planning stopped on caller request.

    ``partial_plan`` holds the days finished before cancellation and is
    flagged ``partial=True`` so it can never be mistaken for a complete plan.
    """

    def __init__(self, partial_plan: Optional[Any] = None):
        super().__init__("trip planning cancelled")
        self.partial_plan = partial_plan
