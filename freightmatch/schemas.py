from pydantic import BaseModel, Field, field_validator
from typing import Optional, List
from datetime import datetime

from .domain import MatchResult, PostedRoute, SearchResult, TripStatus, TruckType


# ============================================================================
# Trip Schemas
# ============================================================================

class PlaceIn(BaseModel):
    """Address with [longitude, latitude] coordinates"""
    address: str = Field(..., min_length=1)
    city: Optional[str] = None
    state: Optional[str] = None
    pincode: Optional[str] = Field(None, max_length=10)
    coordinates: List[float] = Field(..., min_length=2, max_length=2)

    @field_validator("coordinates")
    @classmethod
    def check_range(cls, v):
        lng, lat = v
        if not -180 <= lng <= 180 or not -90 <= lat <= 90:
            raise ValueError("coordinates must be [lng, lat] within valid ranges")
        return v


class CreateTrip(BaseModel):
    origin: PlaceIn
    destination: PlaceIn
    available_date: datetime
    available_until: Optional[datetime] = None
    price_per_km: float = Field(..., ge=0)
    minimum_charge: float = Field(0.0, ge=0)
    truck_type: TruckType
    capacity: float = Field(..., ge=0)
    notes: Optional[str] = Field(None, max_length=500)


class UpdateTrip(BaseModel):
    """Fields a driver may change on an active trip"""
    price_per_km: Optional[float] = Field(None, ge=0)
    available_date: Optional[datetime] = None
    available_until: Optional[datetime] = None
    notes: Optional[str] = Field(None, max_length=500)
    capacity: Optional[float] = Field(None, ge=0)
    minimum_charge: Optional[float] = Field(None, ge=0)


class PlaceOut(BaseModel):
    address: str
    city: Optional[str]
    state: Optional[str]
    pincode: Optional[str]
    coordinates: List[float]


class DriverOut(BaseModel):
    id: int
    name: str
    average_rating: Optional[float]
    total_ratings: int
    truck_number: Optional[str]
    truck_capacity: Optional[float]
    total_trips: int


class TripOut(BaseModel):
    id: int
    origin: PlaceOut
    destination: PlaceOut
    available_date: datetime
    available_until: Optional[datetime]
    price_per_km: float
    minimum_charge: float
    truck_type: str
    capacity: Optional[float]
    status: TripStatus
    notes: Optional[str]
    driver: DriverOut


class MatchMetricsOut(BaseModel):
    originDeviation: float
    destDeviation: float
    totalDeviation: float
    bookingDistance: float
    estimatedCost: float
    score: float


class TripMatchOut(TripOut):
    matchMetrics: MatchMetricsOut


class TripSearchResponse(BaseModel):
    success: bool = True
    count: int
    total: int
    page: int
    pages: int
    deviationKm: float
    trips: List[TripMatchOut]


class TripResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None
    trip: TripOut


class TripListResponse(BaseModel):
    success: bool = True
    count: int
    total: int
    page: int
    pages: int
    trips: List[TripOut]


class MessageResponse(BaseModel):
    success: bool = True
    message: str


# ============================================================================
# Mapping from domain values
# ============================================================================

def place_out(place) -> PlaceOut:
    return PlaceOut(
        address=place.address,
        city=place.city,
        state=place.state,
        pincode=place.pincode,
        coordinates=[place.location.lng, place.location.lat],
    )


def route_fields(route: PostedRoute) -> dict:
    driver = route.driver
    return dict(
        id=route.id,
        origin=place_out(route.origin),
        destination=place_out(route.destination),
        available_date=route.available_date,
        available_until=route.available_until,
        price_per_km=route.price_per_km,
        minimum_charge=route.minimum_charge,
        truck_type=route.truck_type,
        capacity=route.capacity_tons,
        status=route.status,
        notes=route.notes,
        driver=DriverOut(
            id=driver.id,
            name=driver.name,
            average_rating=driver.average_rating,
            total_ratings=driver.total_ratings,
            truck_number=driver.truck_number,
            truck_capacity=driver.truck_capacity,
            total_trips=driver.total_trips,
        ),
    )


def trip_out(route: PostedRoute) -> TripOut:
    return TripOut(**route_fields(route))


def match_out(match: MatchResult) -> TripMatchOut:
    # Distances rounded to 0.1 km and cost to whole rupees for display only
    return TripMatchOut(
        **route_fields(match.route),
        matchMetrics=MatchMetricsOut(
            originDeviation=round(match.origin_deviation_km, 1),
            destDeviation=round(match.dest_deviation_km, 1),
            totalDeviation=round(match.total_deviation_km, 1),
            bookingDistance=round(match.booking_distance_km, 1),
            estimatedCost=round(match.estimated_cost_rupees),
            score=match.score,
        ),
    )


def search_response(result: SearchResult) -> TripSearchResponse:
    return TripSearchResponse(
        count=len(result.matches),
        total=result.total,
        page=result.page,
        pages=result.pages,
        deviationKm=result.deviation_km_used,
        trips=[match_out(m) for m in result.matches],
    )
