"""Per-submitter desirability normalization."""
from __future__ import annotations

from typing import Dict, List, Optional

from itinerary_optimizer.log import get_logger
from itinerary_optimizer.schemas import CandidatePlace

logger = get_logger(__name__)


def normalize_preferences(places: List[CandidatePlace]) -> List[CandidatePlace]:
    """Return copies whose ``normalized_desirability`` is raw / submitter mean.

    Only ``user_wish`` places are grouped; system places pass through
    untouched.
    """
    groups: Dict[Optional[str], List[CandidatePlace]] = {}
    for place in places:
        if place.is_system:
            continue
        groups.setdefault(place.submitted_by, []).append(place)

    means: Dict[Optional[str], float] = {}
    for submitter, own in groups.items():
        mean = sum(p.raw_desirability for p in own) / len(own)
        means[submitter] = mean if mean > 0 else 1.0
        logger.debug("Submitter %s: %d places, mean desirability %.2f", submitter, len(own), mean)

    normalized: List[CandidatePlace] = []
    for place in places:
        if place.is_system:
            normalized.append(place)
            continue
        value = place.raw_desirability / means[place.submitted_by]
        normalized.append(place.model_copy(update={"normalized_desirability": value}))

    logger.info("Normalized preferences for %d submitters", len(groups))
    return normalized
