"""Structural validation and composite quality score of an itinerary."""
from __future__ import annotations

from typing import Dict, List, Optional, Sequence

from itinerary_optimizer.schemas import DaySchedule, OptimizationScore, ScheduledPlace

MAX_LEG_MINUTES = 12 * 60
MAX_DAY_TRAVEL_MINUTES = 12 * 60
MAX_FLIGHT_DAY_SHARE = 0.5
_DEFAULT_WISH = 0.8


def validate_itinerary(route: Sequence[ScheduledPlace], schedules: Sequence[DaySchedule]) -> List[str]:
    issues: List[str] = []

    names = [p.name for p in route]
    if len(names) != len(set(names)):
        issues.append("Duplicate places found in route")

    long_legs = sum(1 for p in route if p.travel_minutes > MAX_LEG_MINUTES)
    if long_legs:
        issues.append(f"{long_legs} unrealistic travel times (>12h) found")

    for schedule in schedules:
        if schedule.total_visit_minutes == 0:
            issues.append(f"Day {schedule.day} has no visit time")
        if schedule.total_travel_minutes > MAX_DAY_TRAVEL_MINUTES:
            issues.append(
                f"Day {schedule.day} has excessive travel time ({round(schedule.total_travel_minutes / 60)}h)"
            )

    flight_days = sum(1 for s in schedules if s.has_flight)
    if flight_days > len(schedules) * MAX_FLIGHT_DAY_SHARE:
        issues.append("Too many flight days - schedule may be unrealistic")

    return issues


def score_itinerary(
    route: Sequence[ScheduledPlace],
    schedules: Sequence[DaySchedule],
    selection_fairness: Optional[float] = None,
) -> OptimizationScore:
    total_travel = sum(s.total_travel_minutes for s in schedules)
    total_visit = sum(s.total_visit_minutes for s in schedules)
    efficiency = total_visit / (total_visit + total_travel) if total_visit > 0 and total_travel > 0 else 0.5

    wishes = [p for p in route if not p.is_system]
    if wishes:
        mean_wish = sum(
            p.normalized_desirability if p.normalized_desirability is not None else _DEFAULT_WISH for p in wishes
        ) / len(wishes)
    else:
        mean_wish = _DEFAULT_WISH

    fairness = _count_balance(wishes)

    issues = validate_itinerary(route, schedules)
    feasibility = 1.0 if not issues else max(0.1, 1.0 - 0.2 * len(issues))

    total = (0.3 * efficiency + 0.2 * mean_wish + 0.2 * fairness + 0.3 * feasibility) * 100
    return OptimizationScore(
        total=_pct(total / 100),
        fairness=_pct(fairness),
        efficiency=_pct(efficiency),
        feasibility=_pct(feasibility),
        desirability=_pct(mean_wish),
        validation_issues=issues,
        details={
            "user_adoption_balance": round(fairness, 4),
            "wish_satisfaction_balance": round(mean_wish, 4),
            "travel_efficiency": round(efficiency, 4),
            "time_constraint_compliance": round(feasibility, 4),
            "is_feasible": not issues,
        },
        fairness_selection=round(selection_fairness, 4) if selection_fairness is not None else None,
    )


def _count_balance(wishes: Sequence[ScheduledPlace]) -> float:
    """1 - variance/mean of per-submitter place counts, floored at 0."""
    counts: Dict[Optional[str], int] = {}
    for place in wishes:
        counts[place.submitted_by] = counts.get(place.submitted_by, 0) + 1
    if len(counts) <= 1:
        return 1.0
    values = list(counts.values())
    mean = sum(values) / len(values)
    variance = sum((c - mean) ** 2 for c in values) / len(values)
    return max(0.0, 1.0 - variance / mean) if mean > 0 else 1.0


def _pct(value: float) -> int:
    return int(round(max(0.0, min(100.0, value * 100))))
