"""Anchored greedy route ordering and airport insertion."""
from __future__ import annotations

from typing import List, Optional, Sequence

from itinerary_optimizer.log import get_logger
from itinerary_optimizer.schemas import CandidatePlace, MAX_DESIRABILITY, ScheduledPlace
from itinerary_optimizer.tools.airports import Airport, AirportDirectory
from itinerary_optimizer.tools.distance import build_segment, distance_between, transport_mode

logger = get_logger(__name__)

AIRPORT_STAY_MINUTES = 90
ROUND_TRIP_MARKER = "same as departure"
_NEAR_ZERO = 0.001


def has_usable_coordinates(place: CandidatePlace) -> bool:
    # (0, 0) is how a destination without coordinates arrives.
    return abs(place.latitude) > _NEAR_ZERO and abs(place.longitude) > _NEAR_ZERO


def return_to_departure(departure: CandidatePlace, destination: Optional[CandidatePlace] = None) -> CandidatePlace:
    name = f"Return to {departure.name}"
    if destination is not None:
        name = f"{name} (fallback for {destination.name})"
    return departure.model_copy(
        update={
            "id": f"return_{departure.id}",
            "name": name,
            "role": "destination_anchor",
            "is_generated": True,
        }
    )


def sequence_route(places: Sequence[CandidatePlace]) -> List[CandidatePlace]:
    """Order places: departure, greedy nearest neighbours, then destination.

    Generated airports are ignored here; they are re-inserted for every
    route by :func:`insert_airports`.
    """
    departures = [p for p in places if p.role == "departure_anchor"]
    destinations = [p for p in places if p.role == "destination_anchor"]
    others = [p for p in places if p.role == "user_wish"]
    if len(departures) > 1 or len(destinations) > 1:
        logger.warning(
            "Multiple anchors supplied (%d departures, %d destinations); using the first of each",
            len(departures),
            len(destinations),
        )
    departure = departures[0] if departures else None
    destination = destinations[0] if destinations else None

    route: List[CandidatePlace] = []
    remaining = list(others)
    if departure is not None:
        route.append(departure)
    elif remaining:
        route.append(remaining.pop(0))

    while remaining and route:
        current = route[-1]
        nearest_idx = 0
        nearest_km = distance_between(current, remaining[0])
        for idx in range(1, len(remaining)):
            km = distance_between(current, remaining[idx])
            if km < nearest_km:
                nearest_idx, nearest_km = idx, km
        route.append(remaining.pop(nearest_idx))

    if destination is not None:
        final = _resolve_destination(destination, departure)
        if final is not None:
            route.append(final)

    logger.info("Route sequenced: %s", " -> ".join(p.name for p in route))
    return route


def _resolve_destination(destination: CandidatePlace, departure: Optional[CandidatePlace]) -> Optional[CandidatePlace]:
    round_trip = ROUND_TRIP_MARKER in destination.name.lower()
    if departure is not None:
        if round_trip:
            return return_to_departure(departure)
        if not has_usable_coordinates(destination):
            logger.warning(
                "Destination %r has no valid coordinates; treating as round trip to departure",
                destination.name,
            )
            return return_to_departure(departure, destination)
        return destination
    if not has_usable_coordinates(destination):
        logger.warning("Destination %r has no coordinates and no departure to return to; skipping", destination.name)
        return None
    return destination


def airport_place(airport: Airport, direction: str, leg_index: int) -> CandidatePlace:
    return CandidatePlace(
        id=f"airport_{airport.iata_code}_{direction}_{leg_index}",
        name=f"{airport.name} ({airport.iata_code})",
        latitude=airport.latitude,
        longitude=airport.longitude,
        category="airport",
        desired_stay_minutes=AIRPORT_STAY_MINUTES,
        raw_desirability=MAX_DESIRABILITY,
        role="generated_airport",
        is_airport=True,
        airport_code=airport.iata_code,
        is_generated=True,
    )


async def insert_airports(route: Sequence[CandidatePlace], directory: AirportDirectory) -> List[CandidatePlace]:
    """Add departure/arrival airports around every flight-length leg."""
    with_airports: List[CandidatePlace] = []
    for idx, current in enumerate(route):
        with_airports.append(current)
        if idx == len(route) - 1:
            break
        nxt = route[idx + 1]
        km = distance_between(current, nxt)
        if transport_mode(km) != "flight":
            continue

        logger.info("Flight needed: %s -> %s (%.1f km)", current.name, nxt.name, km)
        if not current.is_airport:
            dep = await directory.nearest(current.latitude, current.longitude)
            if dep is not None:
                with_airports.append(airport_place(dep, "dep", idx))
        if not nxt.is_airport:
            arr = await directory.nearest(nxt.latitude, nxt.longitude)
            if arr is not None:
                with_airports.append(airport_place(arr, "arr", idx))
    return with_airports


def compute_leg_details(route: Sequence[CandidatePlace]) -> List[ScheduledPlace]:
    """Attach the incoming travel segment to each stop."""
    stops: List[ScheduledPlace] = []
    previous: Optional[CandidatePlace] = None
    for place in route:
        segment = build_segment(previous, place) if previous is not None else None
        stops.append(ScheduledPlace.model_validate({**place.model_dump(), "incoming_segment": segment}))
        previous = place
    return stops
