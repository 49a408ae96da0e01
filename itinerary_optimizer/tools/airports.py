"""Nearest-airport lookup for long-haul legs.

Two interchangeable directories implement ``async nearest(lat, lng)``:
``OpenFlightsDirectory`` reads the public OpenFlights dataset and
``StaticAirportDirectory`` searches a small table of major hubs.
``FallbackAirportDirectory`` composes them so a fetch or parse failure
degrades to the table for the rest of the run.
"""
from __future__ import annotations

import csv
import io
import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Protocol, Sequence

import httpx

from itinerary_optimizer import config
from itinerary_optimizer.errors import AirportLookupError
from itinerary_optimizer.log import get_logger
from itinerary_optimizer.tools.distance import haversine_km

logger = get_logger(__name__)

_NULL = "\\N"

EXCLUDE_TERMS = (
    "heliport", "helipad", "helicopter", "naval", "air force", "military", "army", "navy", "base",
    "station", "field", "private", "restricted", "closed", "abandoned", "seaplane", "balloonport",
)
# Whole words only, so "Hartsfield" is not a "field".
_EXCLUDE_PATTERN = re.compile(r"\b(?:" + "|".join(re.escape(term) for term in EXCLUDE_TERMS) + r")\b")

MAJOR_AIRPORTS = frozenset({
    "NRT", "HND", "KIX", "CTS", "FUK", "OKA",
    "JFK", "LAX", "ORD", "DFW", "DEN", "SFO", "SEA", "LAS", "PHX", "IAH", "CLT", "MIA", "BOS", "MSP", "DTW",
    "LHR", "CDG", "AMS", "FRA", "MAD", "FCO", "MUC", "ZRH", "VIE", "CPH", "ARN", "OSL", "HEL",
    "ICN", "PVG", "PEK", "CAN", "HKG", "TPE", "SIN", "BKK", "KUL", "CGK", "MNL",
    "DEL", "BOM", "SYD", "MEL", "BNE", "PER", "AKL", "CHC",
    "DXB", "DOH", "AUH", "KWI", "JNB", "CAI", "ADD", "LOS",
    "GRU", "GIG", "EZE", "SCL", "LIM", "BOG", "UIO",
    "YYZ", "YVR", "YUL", "YYC",
})


@dataclass(frozen=True)
class Airport:
    iata_code: str
    name: str
    city: str
    latitude: float
    longitude: float
    kind: Optional[str] = None


FALLBACK_AIRPORTS: Sequence[Airport] = (
    Airport("NRT", "Narita International Airport", "Tokyo", 35.7647, 140.3864),
    Airport("HND", "Tokyo Haneda International Airport", "Tokyo", 35.5523, 139.7800),
    Airport("KIX", "Kansai International Airport", "Osaka", 34.4273, 135.2444),
    Airport("JFK", "John F Kennedy International Airport", "New York", 40.6398, -73.7789),
    Airport("LAX", "Los Angeles International Airport", "Los Angeles", 33.9425, -118.4081),
    Airport("LHR", "London Heathrow Airport", "London", 51.4706, -0.461941),
    Airport("CDG", "Charles de Gaulle International Airport", "Paris", 49.0128, 2.55),
    Airport("ICN", "Incheon International Airport", "Seoul", 37.4691, 126.451),
)


class AirportDirectory(Protocol):
    async def nearest(self, lat: float, lng: float) -> Optional[Airport]:
        ...


def nearest_of(airports: Iterable[Airport], lat: float, lng: float) -> Optional[Airport]:
    best: Optional[Airport] = None
    best_km = float("inf")
    for airport in airports:
        km = haversine_km(lat, lng, airport.latitude, airport.longitude)
        if km < best_km:
            best, best_km = airport, km
    return best


def is_international_airport(airport: Airport) -> bool:
    name = airport.name.lower()
    if _EXCLUDE_PATTERN.search(name):
        return False
    kind = (airport.kind or "").lower()
    if kind and "airport" not in kind:
        return False
    if airport.iata_code in MAJOR_AIRPORTS:
        return True
    return "international" in name or "intl" in name


def parse_openflights(text: str) -> List[Airport]:
    """Parse ``airports.dat`` rows, keeping commercial international airports."""
    airports: List[Airport] = []
    for row in csv.reader(io.StringIO(text)):
        if len(row) < 8:
            continue
        iata = row[4].strip()
        if not iata or iata == _NULL or len(iata) != 3:
            continue
        try:
            lat, lng = float(row[6]), float(row[7])
        except ValueError:
            continue
        if lat == 0 or lng == 0:
            continue
        kind = row[12].strip() if len(row) > 12 and row[12] != _NULL else None
        airport = Airport(iata, row[1].strip(), row[2].strip(), lat, lng, kind)
        if is_international_airport(airport):
            airports.append(airport)
    return airports


class StaticAirportDirectory:
    def __init__(self, airports: Sequence[Airport] = FALLBACK_AIRPORTS):
        self.airports = list(airports)

    async def nearest(self, lat: float, lng: float) -> Optional[Airport]:
        return nearest_of(self.airports, lat, lng)


class OpenFlightsDirectory:
    """Remote dataset directory; the dataset is fetched once per instance."""

    def __init__(self, url: Optional[str] = None, *, timeout: Optional[float] = None):
        self.url = url or config.AIRPORT_DATASET_URL
        self.timeout = timeout if timeout is not None else config.AIRPORT_FETCH_TIMEOUT
        self._airports: Optional[List[Airport]] = None

    async def load(self) -> List[Airport]:
        if self._airports is not None:
            return self._airports
        try:
            async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as client:
                response = await client.get(self.url, headers={"User-Agent": "itinerary-optimizer/1.0"})
                response.raise_for_status()
                text = response.text
        except httpx.HTTPError as exc:
            raise AirportLookupError(f"Failed to fetch airport dataset from {self.url}") from exc

        try:
            airports = parse_openflights(text)
        except csv.Error as exc:
            raise AirportLookupError("Airport dataset could not be parsed") from exc
        if not airports:
            raise AirportLookupError("Airport dataset contained no qualifying airports")
        logger.info("Loaded %d qualifying airports from %s", len(airports), self.url)
        self._airports = airports
        return airports

    async def nearest(self, lat: float, lng: float) -> Optional[Airport]:
        return nearest_of(await self.load(), lat, lng)


class FallbackAirportDirectory:
    """Try ``primary``; after its first failure use ``fallback`` only."""

    def __init__(self, primary: AirportDirectory, fallback: AirportDirectory):
        self.primary = primary
        self.fallback = fallback
        self.primary_failed = False

    async def nearest(self, lat: float, lng: float) -> Optional[Airport]:
        if not self.primary_failed:
            try:
                found = await self.primary.nearest(lat, lng)
            except AirportLookupError:
                logger.warning("Airport dataset unavailable; using fixed airport table", exc_info=True)
                self.primary_failed = True
            else:
                if found is not None:
                    return found
        return await self.fallback.nearest(lat, lng)


def build_airport_directory() -> AirportDirectory:
    """Fresh directory for one optimization run."""
    static = StaticAirportDirectory()
    if not config.USE_REMOTE_AIRPORTS:
        return static
    return FallbackAirportDirectory(OpenFlightsDirectory(), static)
