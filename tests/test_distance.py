import pytest

from itinerary_optimizer.schemas import CandidatePlace
from itinerary_optimizer.tools.distance import build_segment, haversine_km, transport_mode, travel_minutes

POINTS = [
    (35.681, 139.767),   # Tokyo Station
    (48.8584, 2.2945),   # Eiffel Tower
    (-33.8568, 151.2153),  # Sydney Opera House
    (40.6892, -74.0445),  # Statue of Liberty
    (0.0, 0.0),
    (0.0, 180.0),
    (89.9, -45.0),
]


def test_distance_is_symmetric_and_bounded():
    for a in POINTS:
        for b in POINTS:
            forward = haversine_km(*a, *b)
            backward = haversine_km(*b, *a)
            assert forward == pytest.approx(backward)
            assert 0.0 <= forward <= 20016.0


def test_antipodal_points_are_half_the_circumference():
    assert haversine_km(0.0, 0.0, 0.0, 180.0) == pytest.approx(20015.09, abs=0.1)


def test_transport_mode_thresholds():
    assert transport_mode(0.0) == "walking"
    assert transport_mode(2.0) == "walking"
    assert transport_mode(2.01) == "car"
    assert transport_mode(500.0) == "car"
    assert transport_mode(500.1) == "flight"


def test_travel_minutes_include_overheads():
    assert travel_minutes(1.0, "walking") == 17
    assert travel_minutes(120.0, "car") == 130
    assert travel_minutes(1400.0, "flight") == 180
    # long haul gets the longer airport allowance
    assert travel_minutes(3500.0, "flight") == 390


def test_build_segment_between_places():
    station = CandidatePlace(id="a", name="Tokyo Station", latitude=35.681, longitude=139.767)
    palace = CandidatePlace(id="b", name="Imperial Palace", latitude=35.6852, longitude=139.7528)

    segment = build_segment(station, palace)

    assert segment.from_id == "a"
    assert segment.to_id == "b"
    assert segment.transport_mode == "walking"
    assert 1.0 < segment.distance_km < 2.0
    assert segment.travel_minutes == travel_minutes(segment.distance_km, "walking")
