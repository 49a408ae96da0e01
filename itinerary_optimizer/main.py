from __future__ import annotations

import time
from typing import Any, Dict, List, Optional

from fastapi import Body, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from itinerary_optimizer import config
from itinerary_optimizer.errors import OptimizationError
from itinerary_optimizer.log import get_logger
from itinerary_optimizer.orchestrator import optimize_trip
from itinerary_optimizer.schemas import OptimizeRequest, OptimizeResponse

logger = get_logger(__name__)

app = FastAPI(title="Group Itinerary Optimizer API")

# Operators can scope this via ITINERARY_OPTIMIZER_ALLOWED_ORIGINS.
allowed_origins = [origin.strip() for origin in config.ALLOWED_ORIGINS.split(",") if origin.strip()]
if not allowed_origins:
    allowed_origins = ["*"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _failure(
    status_code: int,
    error: str,
    started: float,
    details: Optional[List[Dict[str, Any]]] = None,
) -> JSONResponse:
    body = OptimizeResponse(
        success=False,
        error=error,
        details=details,
        execution_time_ms=int((time.perf_counter() - started) * 1000),
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json", exclude_none=True))


@app.get("/health")
async def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.post("/api/optimize")
async def api_optimize(payload: Dict[str, Any] = Body(...)) -> JSONResponse:
    """Optimize the route and daily schedule for one trip."""
    started = time.perf_counter()
    try:
        request = OptimizeRequest.model_validate(payload)
    except ValidationError as exc:
        return _failure(
            400,
            "Invalid request body",
            started,
            details=exc.errors(include_url=False, include_context=False),
        )

    try:
        response = await optimize_trip(request)
    except OptimizationError as exc:
        logger.warning("Optimization rejected for trip %s: %s", request.trip_id, exc)
        return _failure(400, str(exc), started)
    except Exception as exc:
        logger.exception("Optimization error for trip %s", request.trip_id)
        return _failure(500, str(exc) or exc.__class__.__name__, started)

    return JSONResponse(status_code=200, content=response.model_dump(mode="json", exclude_none=True))
