# itinerary/llm.py
import os
import logging
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv

from itinerary.errors import EnrichmentError
from itinerary.schemas import TripPlan, TripPreferences

try:
    from openai import OpenAI
except Exception:  # pragma: no cover - enrichment is optional
    OpenAI = None  # type: ignore[assignment]

logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("[%(levelname)s] %(name)s: %(message)s"))
    logger.addHandler(handler)
_level = os.getenv("TRIP_PLANNER_LOG_LEVEL", "INFO").upper()
logger.setLevel(getattr(logging, _level, logging.INFO))
logger.propagate = False

# Load .env file if present
load_dotenv()

api_key = os.getenv("OPENAI_API_KEY")
if api_key and OpenAI is not None:
    _client = OpenAI(api_key=api_key)
else:  # pragma: no cover - exercised indirectly in tests without API key
    _client = None
    if not api_key:
        logger.info("OPENAI_API_KEY not set; narrative enrichment disabled")
    else:
        logger.warning("openai package unavailable; narrative enrichment disabled")

SYSTEM_PROMPT = """You are a friendly travel writer.
Turn the structured itinerary you are given into a short narrative (<= 200 words).
Use ONLY the hotels, restaurants and attractions listed; never invent places,
prices or opening hours. Mention weather precautions where present.
"""

USER_TEMPLATE = """Traveller preferences:
activities: {activities}
cuisine: {cuisine}
hotel: {hotel}

Stay: {stay}

Days:
{days}

Tips: {tips}
"""


def _describe_days(plan: TripPlan) -> str:
    lines: List[str] = []
    for day in plan.daily_plans:
        stops = [
            f"{block.slot}: {block.attraction.poi.name}"
            for block in day.activities
            if block.attraction is not None
        ]
        meals = [f"{slot.slot}: {slot.pick.poi.name}" for slot in day.dining if slot.pick is not None]
        weather = ""
        if day.weather is not None:
            weather = f" weather={day.weather.forecast.weather.day}; precautions={'; '.join(day.weather.precautions) or 'none'}"
        lines.append(f"- {day.date.isoformat()}: {', '.join(stops + meals) or 'free day'}.{weather}")
    return "\n".join(lines)


def build_prompt(plan: TripPlan, preferences: TripPreferences) -> str:
    stay = plan.accommodation.poi.name if plan.accommodation else "not selected"
    return USER_TEMPLATE.format(
        activities=", ".join(preferences.activities) or "none stated",
        cuisine=", ".join(preferences.cuisine) or "none stated",
        hotel=", ".join(preferences.hotel) or "none stated",
        stay=stay,
        days=_describe_days(plan),
        tips="; ".join(plan.tips),
    )


def narrate_plan(
    plan: TripPlan,
    preferences: TripPreferences,
    *,
    model: str = "gpt-4o-mini",
    client: Optional[Any] = None,
) -> str:
    """Ask the hosted model for narrative text describing ``plan``.

    Raises ``EnrichmentError`` for every failure mode; callers treat the
    narrative as optional.
    """
    client = client if client is not None else _client
    if client is None:
        raise EnrichmentError("no LLM client configured")

    logger.info("Invoking LLM model %s for narrative of %d day(s)", model, len(plan.daily_plans))
    messages: List[Dict[str, str]] = [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": build_prompt(plan, preferences)},
    ]
    try:
        resp = client.chat.completions.create(
            model=model,
            messages=messages,
            temperature=0.4,
        )
        text = resp.choices[0].message.content
    except Exception as exc:
        raise EnrichmentError(f"narrative generation failed: {exc}") from exc

    if not isinstance(text, str) or not text.strip():
        raise EnrichmentError("model returned an empty narrative")
    return text.strip()
