from __future__ import annotations

import asyncio
import threading
from typing import Any, Dict, List, Optional

from fastapi import Body, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError

from itinerary.config import get_allowed_origins, get_data_path, parse_flag
from itinerary.datastore import DataSnapshot, DataStore, JsonDatasetProvider
from itinerary.errors import DataUnavailableError, PlanValidationError
from itinerary.orchestrator import RECOMMENDERS, orchestrate_trip, recommend
from itinerary.schemas import TripRequest


def create_app(store: Optional[DataStore] = None, data_path: Optional[str] = None) -> FastAPI:
    """Build the API around one explicitly owned DataStore.

    When the store is empty the datasets under ``data_path`` (``DATA_PATH``)
    are loaded on first use.
    """
    app = FastAPI(title="Itinerary Planner API")
    app.state.store = store if store is not None else DataStore()
    app.state.data_path = data_path or get_data_path()
    app.state.load_lock = threading.Lock()

    # Operators can scope this via TRIP_PLANNER_ALLOWED_ORIGINS.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=get_allowed_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    def _ensure_loaded() -> DataStore:
        store: DataStore = app.state.store
        if not store.loaded:
            with app.state.load_lock:
                if not store.loaded:
                    store.load_all(JsonDatasetProvider(app.state.data_path))
        return store

    def _reload() -> DataSnapshot:
        return app.state.store.load_all(JsonDatasetProvider(app.state.data_path))

    async def _store() -> DataStore:
        # File I/O and the load lock stay off the event loop.
        try:
            return await asyncio.to_thread(_ensure_loaded)
        except DataUnavailableError as exc:
            raise HTTPException(status_code=503, detail=str(exc)) from exc

    @app.post("/api/plan")
    async def api_plan(payload: Dict[str, Any] = Body(...)) -> Dict[str, Any]:
        """Validate the payload and compose a full trip plan."""
        try:
            trip_req = TripRequest.model_validate(payload)
        except ValidationError as exc:
            raise HTTPException(status_code=422, detail=exc.errors(include_url=False)) from exc
        store = await _store()
        try:
            plan = await orchestrate_trip(trip_req, store, enrich=parse_flag(payload.get("enrich")))
        except PlanValidationError as exc:
            raise HTTPException(status_code=422, detail={"field": exc.field, "message": exc.message}) from exc
        except DataUnavailableError as exc:
            raise HTTPException(status_code=503, detail=str(exc)) from exc
        return plan.model_dump(mode="json")

    @app.post("/api/recommend/{domain}")
    async def api_recommend(domain: str, payload: Dict[str, Any] = Body(...)) -> List[Dict[str, Any]]:
        if domain not in RECOMMENDERS:
            raise HTTPException(status_code=404, detail=f"unknown domain '{domain}'")
        store = await _store()
        try:
            results = recommend(domain, payload, store)
        except PlanValidationError as exc:
            raise HTTPException(status_code=422, detail={"field": exc.field, "message": exc.message}) from exc
        except DataUnavailableError as exc:
            raise HTTPException(status_code=503, detail=str(exc)) from exc
        return [candidate.model_dump(mode="json") for candidate in results]

    @app.post("/api/datasets/reload")
    async def api_reload() -> Dict[str, Any]:
        try:
            snapshot = await asyncio.to_thread(_reload)
        except DataUnavailableError as exc:
            raise HTTPException(status_code=503, detail=str(exc)) from exc
        return {
            "version": snapshot.version,
            "attractions": len(snapshot.attractions),
            "restaurants": len(snapshot.restaurants),
            "hotels": len(snapshot.hotels),
        }

    return app


app = create_app()
