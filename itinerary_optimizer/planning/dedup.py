"""Merge places submitted more than once at the same location."""
from __future__ import annotations

from typing import Dict, List, Sequence, Tuple

from itinerary_optimizer.log import get_logger
from itinerary_optimizer.schemas import CandidatePlace, Contributor, DEFAULT_DESIRABILITY

logger = get_logger(__name__)

DEFAULT_COLOR = "#0077BE"
POPULAR_COLOR = "#FFD700"
_GRADIENT_MAX_CONTRIBUTORS = 4


def dedup_key(place: CandidatePlace) -> Tuple[str, str, str]:
    # ~11m at 4 decimals
    return (f"{place.latitude:.4f}", f"{place.longitude:.4f}", place.name)


def remove_duplicate_places(places: Sequence[CandidatePlace]) -> List[CandidatePlace]:
    groups: Dict[Tuple[str, str, str], List[CandidatePlace]] = {}
    for place in places:
        groups.setdefault(dedup_key(place), []).append(place)

    unique: List[CandidatePlace] = []
    for group in groups.values():
        if len(group) == 1:
            unique.append(group[0])
            continue
        merged = merge_group(group)
        logger.info(
            "Merged %d entries for %s (%s, %d min stay)",
            len(group),
            merged.name,
            merged.color_type,
            merged.desired_stay_minutes,
        )
        unique.append(merged)

    if len(unique) != len(places):
        logger.info("Deduplicated %d places into %d", len(places), len(unique))
    return unique


def merge_group(group: Sequence[CandidatePlace]) -> CandidatePlace:
    """Collapse one duplicate group into a single place.

    The merged record keeps the longest stay, the highest desirability and
    every submitter as a contributor. An anchor in the group keeps its role.
    """
    longest = group[0]
    for place in group[1:]:
        if place.desired_stay_minutes > longest.desired_stay_minutes:
            longest = place
    base = next((p for p in group if p.is_system), longest)

    contributors = [
        Contributor(
            submitted_by=p.submitted_by,
            color=p.color or DEFAULT_COLOR,
            desirability=p.raw_desirability or DEFAULT_DESIRABILITY,
        )
        for p in group
    ]
    color_type, color = contributor_color(contributors)

    return base.model_copy(
        update={
            "desired_stay_minutes": longest.desired_stay_minutes,
            "raw_desirability": max(p.raw_desirability for p in group),
            "contributors": contributors,
            "color_type": color_type,
            "color": color,
        }
    )


def contributor_color(contributors: Sequence[Contributor]) -> Tuple[str, str]:
    count = len(contributors)
    if count <= 1:
        return "single", contributors[0].color if contributors else DEFAULT_COLOR
    if count <= _GRADIENT_MAX_CONTRIBUTORS:
        return "gradient", blend_colors([c.color for c in contributors])
    return "popular", POPULAR_COLOR


def blend_colors(hex_colors: Sequence[str]) -> str:
    """Average ``#RRGGBB`` colours channel by channel."""
    if not hex_colors:
        return DEFAULT_COLOR
    if len(hex_colors) == 1:
        return hex_colors[0]

    channels = [_parse_hex(c) for c in hex_colors]
    averaged = [
        int(sum(rgb[i] for rgb in channels) / len(channels) + 0.5)
        for i in range(3)
    ]
    return "#{:02x}{:02x}{:02x}".format(*averaged)


def _parse_hex(value: str) -> Tuple[int, int, int]:
    raw = (value or "").lstrip("#")
    if len(raw) != 6:
        raw = DEFAULT_COLOR.lstrip("#")
    try:
        return int(raw[0:2], 16), int(raw[2:4], 16), int(raw[4:6], 16)
    except ValueError:
        fallback = DEFAULT_COLOR.lstrip("#")
        return int(fallback[0:2], 16), int(fallback[2:4], 16), int(fallback[4:6], 16)
