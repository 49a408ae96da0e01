"""Great-circle distances and transport estimates between places."""
from __future__ import annotations

import math

from itinerary_optimizer.schemas import CandidatePlace, TravelSegment

EARTH_RADIUS_KM = 6371.0

WALKING_MAX_KM = 2.0
CAR_MAX_KM = 500.0

_SPEED_KMH = {"walking": 5.0, "car": 60.0, "flight": 700.0}
_OVERHEAD_MIN = {"walking": 5, "car": 10}
_AIRPORT_OVERHEAD_MIN = 60
_LONG_HAUL_AIRPORT_OVERHEAD_MIN = 90
_LONG_HAUL_KM = 3000.0


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two points in km."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lam = math.radians(lon2 - lon1)
    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lam / 2) ** 2
    a = min(1.0, max(0.0, a))
    return 2 * EARTH_RADIUS_KM * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def distance_between(a: CandidatePlace, b: CandidatePlace) -> float:
    return haversine_km(a.latitude, a.longitude, b.latitude, b.longitude)


def transport_mode(distance_km: float) -> str:
    if distance_km <= WALKING_MAX_KM:
        return "walking"
    if distance_km <= CAR_MAX_KM:
        return "car"
    return "flight"


def travel_minutes(distance_km: float, mode: str) -> int:
    """Door-to-door minutes for a leg, including fixed overheads."""
    if mode == "flight":
        airborne = round(distance_km / _SPEED_KMH["flight"] * 60)
        overhead = _LONG_HAUL_AIRPORT_OVERHEAD_MIN if distance_km > _LONG_HAUL_KM else _AIRPORT_OVERHEAD_MIN
        return int(airborne + overhead)
    return int(round(distance_km / _SPEED_KMH[mode] * 60 + _OVERHEAD_MIN[mode]))


def build_segment(frm: CandidatePlace, to: CandidatePlace) -> TravelSegment:
    km = distance_between(frm, to)
    mode = transport_mode(km)
    return TravelSegment(
        from_id=frm.id,
        to_id=to.id,
        transport_mode=mode,
        distance_km=round(km, 3),
        travel_minutes=travel_minutes(km, mode),
    )
