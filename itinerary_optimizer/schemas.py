from datetime import date
from enum import Enum
from typing import Dict, List, Literal, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

PlaceRole = Literal["user_wish", "departure_anchor", "destination_anchor", "generated_airport"]
TransportMode = Literal["walking", "car", "flight"]
ColorType = Literal["single", "gradient", "popular"]

SYSTEM_ROLES = ("departure_anchor", "destination_anchor", "generated_airport")
MAX_DESIRABILITY = 5.0
DEFAULT_DESIRABILITY = 3.0


# ------- Request models -------
class PlaceRecord(BaseModel):
    """A candidate place as stored by the persistence layer."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str
    name: str = Field(..., min_length=1)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    category: Optional[str] = None
    role: Optional[PlaceRole] = None
    # legacy role-indicating fields
    source: Optional[str] = None
    place_type: Optional[str] = None
    submitted_by: Optional[str] = Field(None, validation_alias=AliasChoices("submitted_by", "user_id"))
    desired_stay_minutes: Optional[int] = Field(
        None, validation_alias=AliasChoices("desired_stay_minutes", "stay_duration_minutes")
    )
    raw_desirability: Optional[float] = Field(
        None, ge=1, le=5, validation_alias=AliasChoices("raw_desirability", "wish_level")
    )
    color: Optional[str] = Field(None, validation_alias=AliasChoices("color", "display_color_hex"))


class TripLocation(BaseModel):
    name: str = Field(..., min_length=1)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)


class Dates(BaseModel):
    start: date
    end: date


class OptimizeRequest(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    trip_id: str = Field(..., min_length=1)
    dates: Dates
    places: List[PlaceRecord] = Field(
        default_factory=list, validation_alias=AliasChoices("places", "user_places")
    )
    departure: Optional[TripLocation] = None
    destination: Optional[TripLocation] = None
    max_places: Optional[int] = Field(None, ge=1)
    max_places_per_day: Optional[int] = Field(None, ge=1)


# ------- Pipeline models -------
class Contributor(BaseModel):
    submitted_by: Optional[str] = None
    color: str
    desirability: float


class CandidatePlace(BaseModel):
    """Immutable per-run snapshot of a place; stages derive copies."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    latitude: float
    longitude: float
    category: Optional[str] = None
    submitted_by: Optional[str] = None
    desired_stay_minutes: int = 120
    raw_desirability: float = DEFAULT_DESIRABILITY
    normalized_desirability: Optional[float] = None
    role: PlaceRole = "user_wish"
    contributors: List[Contributor] = Field(default_factory=list)
    color: Optional[str] = None
    color_type: ColorType = "single"
    selection_round: Optional[int] = None
    is_airport: bool = False
    airport_code: Optional[str] = None
    is_generated: bool = False  # never written back to storage

    @property
    def is_system(self) -> bool:
        return self.role in SYSTEM_ROLES


class TravelSegment(BaseModel):
    from_id: str
    to_id: str
    transport_mode: TransportMode
    distance_km: float
    travel_minutes: int


class ScheduledPlace(CandidatePlace):
    arrival_time: Optional[str] = None
    departure_time: Optional[str] = None
    order_in_day: Optional[int] = None
    incoming_segment: Optional[TravelSegment] = None

    @property
    def travel_minutes(self) -> int:
        return self.incoming_segment.travel_minutes if self.incoming_segment else 0

    @property
    def transport_mode(self) -> Optional[str]:
        return self.incoming_segment.transport_mode if self.incoming_segment else None


class DaySchedule(BaseModel):
    day: int
    date: str
    scheduled_places: List[ScheduledPlace] = Field(default_factory=list)
    total_travel_minutes: int = 0
    total_visit_minutes: int = 0

    @property
    def total_minutes(self) -> int:
        return self.total_travel_minutes + self.total_visit_minutes

    @property
    def has_flight(self) -> bool:
        return any(p.transport_mode == "flight" for p in self.scheduled_places)


class SearchStatus(str, Enum):
    SEARCHING = "searching"
    CONVERGED = "converged"
    BEST_EFFORT = "best_effort"
    INFEASIBLE = "infeasible"


class OptimizationScore(BaseModel):
    total: int
    fairness: int
    efficiency: int
    feasibility: int
    desirability: int
    validation_issues: List[str] = Field(default_factory=list)
    details: Dict[str, Union[bool, float]] = Field(default_factory=dict)
    fairness_selection: Optional[float] = None


class OptimizationResult(BaseModel):
    status: SearchStatus
    ordered_route: List[ScheduledPlace] = Field(default_factory=list)
    daily_schedules: List[DaySchedule] = Field(default_factory=list)
    iterations_used: int = 0
    removed_places_count: int = 0
    warning: Optional[str] = None
    selection_fairness: Optional[float] = None
    score: Optional[OptimizationScore] = None

    @property
    def success(self) -> bool:
        return self.status == SearchStatus.CONVERGED


# ------- Response models -------
class OptimizationPayload(BaseModel):
    status: SearchStatus
    daily_schedules: List[DaySchedule]
    optimization_score: OptimizationScore
    places: List[ScheduledPlace]
    total_duration_minutes: int
    execution_time_ms: int
    iterations: int
    removed_places_count: int
    warning: Optional[str] = None


class OptimizeResponse(BaseModel):
    success: bool
    optimization: Optional[OptimizationPayload] = None
    message: Optional[str] = None
    error: Optional[str] = None
    details: Optional[List[Dict[str, object]]] = None
    execution_time_ms: Optional[int] = None
