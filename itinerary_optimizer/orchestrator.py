# itinerary_optimizer/orchestrator.py
from __future__ import annotations

import time
from typing import List, Optional

from itinerary_optimizer import config
from itinerary_optimizer.log import get_logger
from itinerary_optimizer.planning.dedup import remove_duplicate_places
from itinerary_optimizer.planning.foundation import extract_foundation
from itinerary_optimizer.planning.iterative import IterativeOptimizer, TrimPolicy
from itinerary_optimizer.planning.preferences import normalize_preferences
from itinerary_optimizer.planning.scoring import score_itinerary
from itinerary_optimizer.schemas import (
    CandidatePlace,
    OptimizationPayload,
    OptimizationResult,
    OptimizeRequest,
    OptimizeResponse,
)
from itinerary_optimizer.tools.airports import AirportDirectory, build_airport_directory

logger = get_logger(__name__)


def prepare_candidates(places: List[CandidatePlace]) -> List[CandidatePlace]:
    """Dedup, then normalize desirability per submitter."""
    unique = remove_duplicate_places(places)
    logger.info("%d unique places after deduplication", len(unique))
    return normalize_preferences(unique)


async def optimize_trip(
    request: OptimizeRequest,
    *,
    airport_directory: Optional[AirportDirectory] = None,
    trim_policy: Optional[TrimPolicy] = None,
) -> OptimizeResponse:
    """Run the full pipeline for one trip and build the response envelope.

    Raises ``OptimizationError`` subclasses for input the pipeline cannot
    work with; every other outcome, including best-effort and system-only
    schedules, is a successful response carrying an optional warning.
    """
    started = time.perf_counter()
    foundation = extract_foundation(request)
    candidates = prepare_candidates(foundation.places)

    optimizer = IterativeOptimizer(
        airport_directory if airport_directory is not None else build_airport_directory(),
        trim_policy=trim_policy,
        time_budget_seconds=config.TIME_BUDGET_SECONDS,
    )
    result = await optimizer.run(candidates, foundation.available_days, foundation.start, foundation.max_places)
    result.score = score_itinerary(result.ordered_route, result.daily_schedules, result.selection_fairness)

    elapsed_ms = int((time.perf_counter() - started) * 1000)
    message = summarize(result)
    logger.info(message)
    if result.warning:
        logger.warning("Warning: %s", result.warning)

    return OptimizeResponse(
        success=True,
        optimization=OptimizationPayload(
            status=result.status,
            daily_schedules=result.daily_schedules,
            optimization_score=result.score,
            places=result.ordered_route,
            total_duration_minutes=sum(day.total_minutes for day in result.daily_schedules),
            execution_time_ms=elapsed_ms,
            iterations=result.iterations_used,
            removed_places_count=result.removed_places_count,
            warning=result.warning,
        ),
        message=message,
    )


def summarize(result: OptimizationResult) -> str:
    score = result.score.total if result.score else 0
    return (
        f"Route optimized: {len(result.ordered_route)} places in {len(result.daily_schedules)} days "
        f"({result.iterations_used} iterations, {result.removed_places_count} removed). Score: {score}%"
    )
