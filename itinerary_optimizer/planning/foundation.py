"""Turn a validated request into the per-run candidate snapshot."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import List, Optional, Tuple

from itinerary_optimizer import config
from itinerary_optimizer.errors import MalformedInputError, UnrecoverableTripError
from itinerary_optimizer.log import get_logger
from itinerary_optimizer.schemas import (
    DEFAULT_DESIRABILITY,
    MAX_DESIRABILITY,
    CandidatePlace,
    OptimizeRequest,
    PlaceRecord,
    PlaceRole,
    TripLocation,
)

logger = get_logger(__name__)

_CATEGORY_ROLES = {
    "departure_point": "departure_anchor",
    "final_destination": "destination_anchor",
}
_DEFAULT_STAY = {"airport": 90, "attraction": 180}
_GENERAL_STAY = 120


@dataclass
class TripFoundation:
    trip_id: str
    start: date
    end: date
    available_days: int
    max_places: int
    places: List[CandidatePlace]


def extract_foundation(request: OptimizeRequest) -> TripFoundation:
    """Derive the trip window, place budget and candidate snapshot."""
    start, end = request.dates.start, request.dates.end
    if end < start:
        # swap to avoid negative durations
        start, end = end, start
    available_days = _duration_days(start, end)

    places = [to_candidate(record) for record in request.places if assign_role(record) != "generated_airport"]
    skipped = len(request.places) - len(places)
    if skipped:
        logger.info("Ignoring %d stored airport place(s); airports are regenerated per run", skipped)

    roles = {p.role for p in places}
    if request.departure is not None and "departure_anchor" not in roles:
        places.insert(0, _anchor(request.trip_id, request.departure, "departure_anchor"))
    if request.destination is not None and "destination_anchor" not in roles:
        places.append(_anchor(request.trip_id, request.destination, "destination_anchor"))

    if not places:
        raise UnrecoverableTripError("No places or trip locations found for optimization")

    system_count = sum(1 for p in places if p.is_system)
    if request.max_places is not None:
        max_places = request.max_places
    else:
        per_day = request.max_places_per_day or config.MAX_PLACES_PER_DAY
        max_places = min(available_days * per_day + system_count, len(places))
    max_places = max(1, max_places)

    logger.info(
        "Trip %s: %d day(s) (%s to %s), %d places (%d system), place budget %d",
        request.trip_id,
        available_days,
        start.isoformat(),
        end.isoformat(),
        len(places),
        system_count,
        max_places,
    )
    return TripFoundation(
        trip_id=request.trip_id,
        start=start,
        end=end,
        available_days=available_days,
        max_places=max_places,
        places=places,
    )


def assign_role(record: PlaceRecord) -> PlaceRole:
    if record.role is not None:
        return record.role
    if record.category in _CATEGORY_ROLES:
        return _CATEGORY_ROLES[record.category]  # type: ignore[return-value]
    if record.place_type == "system_airport":
        return "generated_airport"
    return "user_wish"


def to_candidate(record: PlaceRecord) -> CandidatePlace:
    role = assign_role(record)
    latitude, longitude = _coordinates(record.name, record.latitude, record.longitude, role)
    is_anchor = role in ("departure_anchor", "destination_anchor")
    return CandidatePlace(
        id=record.id,
        name=record.name,
        latitude=latitude,
        longitude=longitude,
        category=record.category,
        submitted_by=record.submitted_by,
        desired_stay_minutes=default_stay_minutes(record.desired_stay_minutes, role, record.category),
        raw_desirability=MAX_DESIRABILITY if is_anchor else (record.raw_desirability or DEFAULT_DESIRABILITY),
        role=role,
        color=record.color,
    )


def default_stay_minutes(requested: Optional[int], role: str, category: Optional[str]) -> int:
    if requested is not None and requested > 0:
        return requested
    if role in ("departure_anchor", "destination_anchor"):
        return 0
    return _DEFAULT_STAY.get(category or "", _GENERAL_STAY)


def _anchor(trip_id: str, location: TripLocation, role: PlaceRole) -> CandidatePlace:
    prefix = "departure" if role == "departure_anchor" else "destination"
    latitude, longitude = _coordinates(location.name, location.latitude, location.longitude, role)
    return CandidatePlace(
        id=f"{prefix}_{trip_id}",
        name=location.name,
        latitude=latitude,
        longitude=longitude,
        category="departure_point" if role == "departure_anchor" else "final_destination",
        desired_stay_minutes=0,
        raw_desirability=MAX_DESIRABILITY,
        role=role,
    )


def _coordinates(
    name: str, latitude: Optional[float], longitude: Optional[float], role: str
) -> Tuple[float, float]:
    if latitude is not None and longitude is not None:
        return latitude, longitude
    if role == "destination_anchor":
        # The route sequencer treats (0, 0) as "return to departure".
        return 0.0, 0.0
    raise MalformedInputError(f"Invalid place data: missing coordinates for {name!r}")


def _duration_days(start: date, end: date) -> int:
    return max(1, (end - start).days + 1)
