import asyncio

from itinerary_optimizer.orchestrator import optimize_trip
from itinerary_optimizer.schemas import OptimizeRequest, SearchStatus
from itinerary_optimizer.tools.airports import Airport, StaticAirportDirectory

TOKYO_STATION = {"name": "Tokyo Station", "latitude": 35.681, "longitude": 139.767}


class EchoAirports:
    def __init__(self):
        self.calls = []

    async def nearest(self, lat, lng):
        self.calls.append((lat, lng))
        code = f"A{len(self.calls):02d}"
        return Airport(code, f"Airport {code}", "Nowhere", lat, lng)


def _tokyo_request(**overrides) -> OptimizeRequest:
    payload = {
        "trip_id": "tokyo",
        "dates": {"start": "2025-10-10", "end": "2025-10-11"},
        "departure": TOKYO_STATION,
        "destination": {"name": "Shinjuku", "latitude": 35.6896, "longitude": 139.7006},
        "max_places": 10,
        "places": [
            {"id": "p1", "name": "Imperial Palace", "latitude": 35.6852, "longitude": 139.7528,
             "submitted_by": "alice", "raw_desirability": 5},
            {"id": "p2", "name": "Senso-ji", "latitude": 35.7148, "longitude": 139.7967,
             "submitted_by": "alice", "raw_desirability": 3},
            {"id": "p3", "name": "Meiji Shrine", "latitude": 35.6764, "longitude": 139.6993,
             "submitted_by": "bob", "raw_desirability": 4},
        ],
    }
    payload.update(overrides)
    return OptimizeRequest.model_validate(payload)


def test_city_day_trip_fits_without_flights():
    response = asyncio.run(optimize_trip(_tokyo_request(), airport_directory=StaticAirportDirectory()))

    assert response.success
    optimization = response.optimization
    assert optimization.status == SearchStatus.CONVERGED
    assert optimization.warning is None
    assert optimization.removed_places_count == 0
    assert len(optimization.daily_schedules) <= 2
    names = [p.name for p in optimization.places]
    assert names[0] == "Tokyo Station"
    assert names[-1] == "Shinjuku"
    assert {"Imperial Palace", "Senso-ji", "Meiji Shrine"} <= set(names)
    assert not any(p.transport_mode == "flight" for p in optimization.places)
    assert not any(p.is_airport for p in optimization.places)
    assert optimization.total_duration_minutes == sum(d.total_minutes for d in optimization.daily_schedules)
    assert 0 <= optimization.optimization_score.total <= 100
    assert response.message.startswith("Route optimized: 5 places in")


def test_long_haul_leg_inserts_airports():
    airports = EchoAirports()
    request = _tokyo_request(
        destination=None,
        places=[{"id": "clock", "name": "Sapporo Clock Tower", "latitude": 43.0625, "longitude": 141.3536,
                 "submitted_by": "alice"}],
    )

    response = asyncio.run(optimize_trip(request, airport_directory=airports))

    places = response.optimization.places
    assert [p.id for p in places] == ["departure_tokyo", "airport_A01_dep_0", "airport_A02_arr_0", "clock"]
    assert places[2].transport_mode == "flight"
    assert all(p.is_generated for p in places[1:3])
    assert response.optimization.daily_schedules[0].has_flight
    assert len(airports.calls) == 2


def test_duplicate_wishes_from_two_submitters_are_merged():
    request = _tokyo_request(places=[
        {"id": "p1", "name": "Imperial Palace", "latitude": 35.6852, "longitude": 139.7528,
         "submitted_by": "alice", "color": "#ff0000", "desired_stay_minutes": 60},
        {"id": "p2", "name": "Imperial Palace", "latitude": 35.68524, "longitude": 139.75281,
         "submitted_by": "bob", "color": "#0000ff", "desired_stay_minutes": 150},
    ])

    response = asyncio.run(optimize_trip(request, airport_directory=StaticAirportDirectory()))

    palace = [p for p in response.optimization.places if p.name == "Imperial Palace"]
    assert len(palace) == 1
    assert palace[0].desired_stay_minutes == 150
    assert palace[0].color_type == "gradient"
    assert len(palace[0].contributors) == 2


def test_same_input_gives_same_itinerary():
    first = asyncio.run(optimize_trip(_tokyo_request(), airport_directory=StaticAirportDirectory()))
    second = asyncio.run(optimize_trip(_tokyo_request(), airport_directory=StaticAirportDirectory()))

    def shape(response):
        return [(p.id, p.arrival_time, p.departure_time) for p in response.optimization.places]

    assert shape(first) == shape(second)
    assert first.optimization.optimization_score == second.optimization.optimization_score


def test_legacy_field_names_are_accepted():
    request = OptimizeRequest.model_validate({
        "trip_id": "legacy",
        "dates": {"start": "2025-10-10", "end": "2025-10-10"},
        "user_places": [
            {"id": "home", "name": "Tokyo Station", "latitude": 35.681, "longitude": 139.767,
             "category": "departure_point"},
            {"id": "p1", "name": "Imperial Palace", "latitude": 35.6852, "longitude": 139.7528,
             "user_id": "alice", "wish_level": 4, "stay_duration_minutes": 45, "display_color_hex": "#112233"},
        ],
    })

    response = asyncio.run(optimize_trip(request, airport_directory=StaticAirportDirectory()))

    places = response.optimization.places
    assert [p.id for p in places] == ["home", "p1"]
    palace = places[1]
    assert palace.submitted_by == "alice"
    assert palace.raw_desirability == 4
    assert palace.desired_stay_minutes == 45
    assert palace.color == "#112233"


def test_round_trip_destination_returns_to_departure():
    request = _tokyo_request(destination={"name": "Same as departure"})

    response = asyncio.run(optimize_trip(request, airport_directory=StaticAirportDirectory()))

    last = response.optimization.places[-1]
    assert last.id == "return_departure_tokyo"
    assert last.name == "Return to Tokyo Station"
