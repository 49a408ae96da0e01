"""Fairness-constrained trimming of the candidate set."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from itinerary_optimizer.log import get_logger
from itinerary_optimizer.schemas import CandidatePlace

logger = get_logger(__name__)

MAX_ROUNDS = 100


@dataclass
class FairSelection:
    places: List[CandidatePlace]
    fairness_score: float = 1.0
    rounds: int = 0
    per_submitter: Dict[Optional[str], int] = field(default_factory=dict)


def fairness_weight(submitter_count: int) -> float:
    # More members means a stricter balance between them.
    return max(0.5, 1.0 - 0.1 * submitter_count)


def select_fair_places(places: Sequence[CandidatePlace], max_places: int) -> FairSelection:
    """Pick at most ``max_places`` places, round-robin across submitters.

    System places are always kept and count against the budget. Each round
    snapshots how many places every submitter already has; a submitter gets
    its next best place when its count is at least ``fairness_weight`` of
    the leading submitter's count. A round that selects nothing lifts the
    ratio check for the following round so the budget can still fill.
    """
    system = [p for p in places if p.is_system]
    wishes = [p for p in places if not p.is_system]
    budget = max(0, max_places - len(system))

    if len(wishes) <= budget:
        counts = _count_by_submitter(wishes)
        return FairSelection(places=list(places), fairness_score=_min_max_ratio(counts), per_submitter=counts)

    queues: Dict[Optional[str], List[CandidatePlace]] = {}
    for place in wishes:
        queues.setdefault(place.submitted_by, []).append(place)
    for queue in queues.values():
        queue.sort(key=_rank, reverse=True)

    weight = fairness_weight(len(queues))
    selected: List[CandidatePlace] = []
    rounds = 0
    relaxed = False

    while len(selected) < budget and any(queues.values()):
        snapshot = _count_by_submitter(selected)
        leading = max(snapshot.values(), default=0)
        picked_this_round = 0

        for submitter, queue in queues.items():
            if not queue or len(selected) >= budget:
                continue
            current = snapshot.get(submitter, 0)
            ratio = current / leading if leading > 0 else 1.0
            if relaxed or ratio >= weight or not selected:
                chosen = queue.pop(0)
                selected.append(chosen.model_copy(update={"selection_round": rounds + 1}))
                picked_this_round += 1

        rounds += 1
        relaxed = picked_this_round == 0
        if rounds >= MAX_ROUNDS:
            logger.warning("Round limit reached in place selection")
            break

    counts = _count_by_submitter(selected)
    score = _min_max_ratio(counts)
    logger.info(
        "Fair selection completed: %d/%d places selected in %d rounds (fairness %.2f, weight %.2f)",
        len(selected),
        budget,
        rounds,
        score,
        weight,
    )
    return FairSelection(places=system + selected, fairness_score=score, rounds=rounds, per_submitter=counts)


def _rank(place: CandidatePlace) -> float:
    return place.normalized_desirability if place.normalized_desirability is not None else 1.0


def _count_by_submitter(places: Sequence[CandidatePlace]) -> Dict[Optional[str], int]:
    counts: Dict[Optional[str], int] = {}
    for place in places:
        counts[place.submitted_by] = counts.get(place.submitted_by, 0) + 1
    return counts


def _min_max_ratio(counts: Dict[Optional[str], int]) -> float:
    if not counts:
        return 1.0
    return min(counts.values()) / max(counts.values())
