from datetime import date

import pytest

from itinerary_optimizer import config
from itinerary_optimizer.errors import MalformedInputError, UnrecoverableTripError
from itinerary_optimizer.planning.foundation import default_stay_minutes, extract_foundation
from itinerary_optimizer.schemas import OptimizeRequest


def _request(places, start="2025-05-01", end="2025-05-03", **extra) -> OptimizeRequest:
    return OptimizeRequest.model_validate(
        {"trip_id": "trip1", "dates": {"start": start, "end": end}, "places": places, **extra}
    )


def _record(pid: str, **fields) -> dict:
    record = {"id": pid, "name": pid.title(), "latitude": 35.68, "longitude": 139.76}
    record.update(fields)
    return record


def test_trip_days_are_inclusive():
    foundation = extract_foundation(_request([_record("a")]))

    assert foundation.available_days == 3
    assert foundation.start == date(2025, 5, 1)


def test_reversed_dates_are_swapped():
    foundation = extract_foundation(_request([_record("a")], start="2025-05-03", end="2025-05-01"))

    assert (foundation.start, foundation.end) == (date(2025, 5, 1), date(2025, 5, 3))
    assert foundation.available_days == 3


def test_roles_come_from_role_category_or_place_type():
    foundation = extract_foundation(_request([
        _record("home", category="departure_point"),
        _record("hotel", role="destination_anchor"),
        _record("old_airport", place_type="system_airport"),
        _record("museum", category="attraction"),
    ]))

    roles = {p.id: p.role for p in foundation.places}
    assert roles == {"home": "departure_anchor", "hotel": "destination_anchor", "museum": "user_wish"}


def test_desirability_defaults():
    foundation = extract_foundation(_request([
        _record("home", category="departure_point", raw_desirability=1),
        _record("museum"),
        _record("park", raw_desirability=4),
    ]))

    raw = {p.id: p.raw_desirability for p in foundation.places}
    assert raw == {"home": 5.0, "museum": 3.0, "park": 4.0}


def test_default_stay_minutes():
    assert default_stay_minutes(45, "user_wish", "attraction") == 45
    assert default_stay_minutes(None, "departure_anchor", None) == 0
    assert default_stay_minutes(0, "user_wish", "airport") == 90
    assert default_stay_minutes(None, "user_wish", "attraction") == 180
    assert default_stay_minutes(None, "user_wish", "restaurant") == 120


def test_missing_coordinates_are_rejected():
    with pytest.raises(MalformedInputError):
        extract_foundation(_request([_record("a", latitude=None)]))


def test_destination_without_coordinates_becomes_origin_point():
    foundation = extract_foundation(_request([
        {"id": "hotel", "name": "Hotel", "role": "destination_anchor"},
        _record("a"),
    ]))

    hotel = foundation.places[0]
    assert (hotel.latitude, hotel.longitude) == (0.0, 0.0)


def test_trip_locations_become_anchors():
    foundation = extract_foundation(_request(
        [_record("a")],
        departure={"name": "Tokyo Station", "latitude": 35.681, "longitude": 139.767},
        destination={"name": "Same as departure"},
    ))

    ids = [p.id for p in foundation.places]
    assert ids == ["departure_trip1", "a", "destination_trip1"]
    assert foundation.places[0].role == "departure_anchor"
    assert foundation.places[-1].role == "destination_anchor"


def test_stored_anchor_wins_over_trip_location():
    foundation = extract_foundation(_request(
        [_record("home", role="departure_anchor"), _record("a")],
        departure={"name": "Tokyo Station", "latitude": 35.681, "longitude": 139.767},
    ))

    assert [p.id for p in foundation.places] == ["home", "a"]


def test_nothing_to_plan_is_unrecoverable():
    with pytest.raises(UnrecoverableTripError):
        extract_foundation(_request([_record("old", place_type="system_airport")]))


def test_place_budget(monkeypatch):
    monkeypatch.setattr(config, "MAX_PLACES_PER_DAY", 4)
    many = [_record("home", category="departure_point")] + [_record(f"p{i}") for i in range(20)]

    assert extract_foundation(_request(many, end="2025-05-02")).max_places == 9
    assert extract_foundation(_request(many[:5], end="2025-05-02")).max_places == 5
    assert extract_foundation(_request(many, max_places=3)).max_places == 3
    assert extract_foundation(_request(many, end="2025-05-01", max_places_per_day=2)).max_places == 3
