"""Split a timed route into day buckets."""
from __future__ import annotations

from datetime import date, timedelta
from typing import List, Sequence

from itinerary_optimizer.log import get_logger
from itinerary_optimizer.schemas import DaySchedule, ScheduledPlace

logger = get_logger(__name__)

DAY_START_MIN = 8 * 60
DAY_END_MIN = 20 * 60
LATEST_MIN = 23 * 60 + 59
DAILY_CAP_MIN = 10 * 60


def format_clock(minutes: float) -> str:
    """Render minutes after midnight as ``HH:MM:SS`` within 08:00-23:59."""
    clamped = int(min(max(minutes, DAY_START_MIN), LATEST_MIN))
    return f"{clamped // 60:02d}:{clamped % 60:02d}:00"


class _OpenDay:
    def __init__(self) -> None:
        self.stops: List[ScheduledPlace] = []
        self.used = 0
        self.clock = DAY_START_MIN
        self.has_flight = False

    def add(self, stop: ScheduledPlace) -> None:
        arrival = self.clock + stop.travel_minutes
        departure = arrival + stop.desired_stay_minutes
        self.stops.append(
            stop.model_copy(
                update={
                    "arrival_time": format_clock(arrival),
                    "departure_time": format_clock(departure),
                    "order_in_day": len(self.stops) + 1,
                }
            )
        )
        self.clock = departure
        self.used += stop.travel_minutes + stop.desired_stay_minutes
        if stop.transport_mode == "flight":
            self.has_flight = True

    def fits(self, stop: ScheduledPlace) -> bool:
        cost = stop.travel_minutes + stop.desired_stay_minutes
        within_cap = self.used + cost <= DAILY_CAP_MIN
        if stop.role == "destination_anchor":
            # Only arrival has to happen before the cutoff.
            reachable = self.clock + stop.travel_minutes <= DAY_END_MIN
            return reachable and (within_cap or self.has_flight)
        return within_cap and self.clock + cost <= DAY_END_MIN


def build_daily_schedule(stops: Sequence[ScheduledPlace], trip_start: date) -> List[DaySchedule]:
    """Walk the leg-timed route and emit one ``DaySchedule`` per touring day.

    Each day starts at 08:00. A stop joins the open day while the day's
    travel+visit total stays within 10 hours and the stop ends by 20:00.
    A flight leg always stays on the day it departs; the day only closes
    behind it when the flight lands at or after 20:00. The destination
    anchor joins the open day whenever it can be reached by 20:00 without
    breaking the cap (a flight day is exempt from the cap).

    The cap check on the destination is deliberate and stricter than a
    plain "reachable by 20:00" rule: it keeps every day without a flight
    within 10 hours, at the cost of occasionally moving the destination
    to a day of its own.
    """
    days: List[DaySchedule] = []
    day = _OpenDay()

    def close() -> None:
        nonlocal day
        days.append(_make_day(len(days) + 1, day.stops, trip_start))
        day = _OpenDay()

    for stop in stops:
        if stop.transport_mode == "flight" and day.stops:
            day.add(stop)
            if day.clock >= DAY_END_MIN:
                close()
            continue

        if day.stops and not day.fits(stop):
            close()
        day.add(stop)

    if day.stops:
        close()

    logger.info("Created %d daily schedules for %d stops", len(days), len(stops))
    return days


def _make_day(index: int, stops: Sequence[ScheduledPlace], trip_start: date) -> DaySchedule:
    return DaySchedule(
        day=index,
        date=(trip_start + timedelta(days=index - 1)).isoformat(),
        scheduled_places=list(stops),
        total_travel_minutes=sum(s.travel_minutes for s in stops),
        total_visit_minutes=sum(s.desired_stay_minutes for s in stops),
    )
