"""Retry loop that trims wishes until the itinerary fits the trip length.

The loop is a small state machine: it starts in ``SEARCHING`` and ends in
``CONVERGED`` (fits), ``BEST_EFFORT`` (latest over-long attempt, or budget
ran out) or ``INFEASIBLE`` (even the anchors alone do not fit). Which
wishes to drop between attempts is delegated to a ``TrimPolicy``.
"""
from __future__ import annotations

import math
import time
from datetime import date
from typing import Callable, Dict, List, Optional, Protocol, Sequence, Tuple

from itinerary_optimizer.log import get_logger
from itinerary_optimizer.planning.fair_selection import select_fair_places
from itinerary_optimizer.planning.route_sequencer import compute_leg_details, insert_airports, sequence_route
from itinerary_optimizer.planning.schedule_builder import build_daily_schedule
from itinerary_optimizer.schemas import CandidatePlace, DaySchedule, OptimizationResult, ScheduledPlace, SearchStatus
from itinerary_optimizer.tools.airports import AirportDirectory

logger = get_logger(__name__)

MAX_ITERATIONS = 10
PLACES_PER_ITERATION = 5

BEST_EFFORT_WARNING = (
    "Could not fit all places in user-defined days - system places protected, "
    "some places removed to fit time constraint"
)
BUDGET_WARNING = "Optimization time budget exceeded - returning best effort result"
SYSTEM_ONLY_WARNING = "Only system places (departure/destination) could be included due to time constraints"


def _rank(place: CandidatePlace) -> float:
    return place.normalized_desirability if place.normalized_desirability is not None else 1.0


class TrimPolicy(Protocol):
    def trim(self, wishes: Sequence[CandidatePlace]) -> Tuple[List[CandidatePlace], List[CandidatePlace]]:
        """Return ``(kept, removed)``; ``removed`` is empty only when ``wishes`` is."""
        ...


class LowestDesirabilityTrim:
    """Drop a fixed share of the least desired wishes (at least one)."""

    def __init__(self, fraction: float = 0.3):
        self.fraction = fraction

    def trim(self, wishes: Sequence[CandidatePlace]) -> Tuple[List[CandidatePlace], List[CandidatePlace]]:
        if not wishes:
            return [], []
        ordered = sorted(wishes, key=_rank)
        count = max(1, math.ceil(len(ordered) * self.fraction))
        removed = ordered[:count]
        removed_ids = {p.id for p in removed}
        return [p for p in wishes if p.id not in removed_ids], removed


class RoundRobinTrim:
    """Drop each submitter's least desired wish.

    Submitters down to their last wish keep it until everyone is down to
    one; then the single least desired of those goes.
    """

    def trim(self, wishes: Sequence[CandidatePlace]) -> Tuple[List[CandidatePlace], List[CandidatePlace]]:
        if not wishes:
            return [], []
        groups: Dict[Optional[str], List[CandidatePlace]] = {}
        for place in wishes:
            groups.setdefault(place.submitted_by, []).append(place)

        removed: List[CandidatePlace] = []
        if all(len(group) <= 1 for group in groups.values()):
            removed.append(min(wishes, key=_rank))
        else:
            for group in groups.values():
                if len(group) > 1:
                    removed.append(min(group, key=_rank))

        removed_ids = {p.id for p in removed}
        return [p for p in wishes if p.id not in removed_ids], removed


class IterativeOptimizer:
    def __init__(
        self,
        airport_directory: AirportDirectory,
        *,
        trim_policy: Optional[TrimPolicy] = None,
        time_budget_seconds: float = 50.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.airport_directory = airport_directory
        self.trim_policy = trim_policy or LowestDesirabilityTrim()
        self.time_budget_seconds = time_budget_seconds
        self.clock = clock

    async def run(
        self,
        places: Sequence[CandidatePlace],
        available_days: int,
        trip_start: date,
        max_places: int,
    ) -> OptimizationResult:
        started = self.clock()
        system = [p for p in places if p.is_system]
        wishes = [p for p in places if not p.is_system]
        wish_total = len(wishes)
        max_iterations = max(1, min(MAX_ITERATIONS, math.ceil(wish_total / PLACES_PER_ITERATION)))
        logger.info(
            "Starting optimization: %d wishes + %d system places, %d day(s), up to %d iterations",
            wish_total,
            len(system),
            available_days,
            max_iterations,
        )

        status = SearchStatus.SEARCHING
        best: Optional[OptimizationResult] = None
        warning: Optional[str] = None
        iteration = 0

        while status == SearchStatus.SEARCHING:
            if iteration >= max_iterations:
                status = SearchStatus.BEST_EFFORT
                break
            elapsed = self.clock() - started
            if elapsed > self.time_budget_seconds:
                logger.warning("Execution time limit reached (%.1fs), stopping optimization", elapsed)
                warning = BUDGET_WARNING
                status = SearchStatus.BEST_EFFORT
                break

            iteration += 1
            logger.info("Iteration %d: testing %d wishes", iteration, len(wishes))
            try:
                attempt = await self._attempt(system + wishes, trip_start, max_places)
            except Exception:
                logger.warning("Iteration %d failed; discarding more candidates", iteration, exc_info=True)
                attempt = None
            else:
                attempt.iterations_used = iteration
                attempt.removed_places_count = wish_total - sum(1 for p in attempt.ordered_route if not p.is_system)
                if len(attempt.daily_schedules) <= available_days:
                    attempt.status = SearchStatus.CONVERGED
                    logger.info(
                        "Schedule fits in %d day(s) (limit %d) after %d iteration(s)",
                        len(attempt.daily_schedules),
                        available_days,
                        iteration,
                    )
                    return attempt
                logger.info(
                    "Schedule requires %d day(s) (limit %d); trimming wishes",
                    len(attempt.daily_schedules),
                    available_days,
                )
                best = attempt
                # Trim what was scheduled; wishes the selector left out never reach the route.
                scheduled_ids = {p.id for p in attempt.ordered_route}
                wishes = [p for p in wishes if p.id in scheduled_ids]

            if not wishes:
                status = SearchStatus.BEST_EFFORT
                break
            wishes, removed = self.trim_policy.trim(wishes)
            logger.info("Removed %d wishes: %s", len(removed), ", ".join(p.name for p in removed))
            if not wishes:
                logger.warning("No wishes left to remove; schedule still exceeds %d day(s)", available_days)
                status = SearchStatus.BEST_EFFORT

        if best is not None:
            best.status = status
            best.iterations_used = iteration
            best.warning = warning or BEST_EFFORT_WARNING
            logger.warning("Returning best effort result after %d iteration(s)", iteration)
            return best

        return await self._system_only(system, available_days, trip_start, iteration, wish_total)

    async def _attempt(
        self, places: Sequence[CandidatePlace], trip_start: date, max_places: int
    ) -> OptimizationResult:
        selection = select_fair_places(places, max_places)
        route = sequence_route(selection.places)
        route = await insert_airports(route, self.airport_directory)
        stops = compute_leg_details(route)
        schedules = build_daily_schedule(stops, trip_start)
        return OptimizationResult(
            status=SearchStatus.SEARCHING,
            ordered_route=_scheduled_route(schedules),
            daily_schedules=schedules,
            selection_fairness=selection.fairness_score,
        )

    async def _system_only(
        self,
        system: Sequence[CandidatePlace],
        available_days: int,
        trip_start: date,
        iteration: int,
        wish_total: int,
    ) -> OptimizationResult:
        logger.warning("Using system places only as last resort")
        route = sequence_route(system)
        try:
            route = await insert_airports(route, self.airport_directory)
        except Exception:
            logger.warning("Airport insertion failed for system-only route", exc_info=True)
        stops = compute_leg_details(route)
        schedules = build_daily_schedule(stops, trip_start)
        status = SearchStatus.INFEASIBLE if len(schedules) > available_days else SearchStatus.BEST_EFFORT
        return OptimizationResult(
            status=status,
            ordered_route=_scheduled_route(schedules),
            daily_schedules=schedules,
            iterations_used=iteration,
            removed_places_count=wish_total,
            warning=SYSTEM_ONLY_WARNING,
        )


def _scheduled_route(schedules: Sequence[DaySchedule]) -> List[ScheduledPlace]:
    """Route in visiting order, with the times assigned by the day buckets."""
    return [place for day in schedules for place in day.scheduled_places]
