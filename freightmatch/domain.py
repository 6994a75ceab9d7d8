"""
Domain value types for trip search.

Rows loaded from storage are mapped into these immutable types at the
storage boundary, so the matching pipeline never touches ORM objects.
"""

from __future__ import annotations

import enum
import math
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import List, Optional


class TripStatus(str, enum.Enum):
    ACTIVE = "active"  # Open for booking, the only status eligible for search
    BOOKED = "booked"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    EXPIRED = "expired"  # Availability window passed


class TruckType(str, enum.Enum):
    MINI_TRUCK = "mini_truck"
    PICKUP = "pickup"
    LORRY = "lorry"
    TRAILER = "trailer"
    CONTAINER = "container"
    TANKER = "tanker"
    REFRIGERATED = "refrigerated"
    FLATBED = "flatbed"
    TIPPER = "tipper"


class SortKey(str, enum.Enum):
    SCORE = "score"
    RECOMMENDED = "recommended"
    PRICE_LOW = "price_low"
    PRICE_HIGH = "price_high"
    RATING = "rating"
    NEAREST = "nearest"
    DEVIATION = "deviation"

    @classmethod
    def parse(cls, value: Optional[str]) -> "SortKey":
        """Unknown or empty keys fall back to score ordering"""
        if not value:
            return cls.SCORE
        try:
            return cls(value)
        except ValueError:
            return cls.SCORE


@dataclass(frozen=True)
class Coordinate:
    """A (longitude, latitude) pair in decimal degrees."""

    lng: float
    lat: float

    def __post_init__(self):
        for name in ("lng", "lat"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValueError(f"{name} must be a number, got {value!r}")
            if not math.isfinite(value):
                raise ValueError(f"{name} must be finite, got {value!r}")
        if not -180.0 <= self.lng <= 180.0:
            raise ValueError(f"longitude out of range: {self.lng}")
        if not -90.0 <= self.lat <= 90.0:
            raise ValueError(f"latitude out of range: {self.lat}")


@dataclass(frozen=True)
class Place:
    address: str
    location: Coordinate
    city: Optional[str] = None
    state: Optional[str] = None
    pincode: Optional[str] = None


@dataclass(frozen=True)
class DriverSummary:
    """Driver and truck details shown next to a search result."""

    id: int
    name: str
    average_rating: Optional[float] = None
    total_ratings: int = 0
    truck_number: Optional[str] = None
    truck_capacity: Optional[float] = None
    total_trips: int = 0

    def __post_init__(self):
        if self.average_rating is not None and not 0.0 <= self.average_rating <= 5.0:
            raise ValueError(f"average_rating must be within 0-5, got {self.average_rating}")

    @property
    def rating(self) -> Optional[float]:
        # Users start at 0 with no ratings, which means unrated rather than a 0-star driver
        if self.average_rating is None:
            return None
        if self.total_ratings == 0 and self.average_rating == 0:
            return None
        return self.average_rating


@dataclass(frozen=True)
class PostedRoute:
    """A driver's advertised trip, read-only to the search pipeline."""

    id: int
    origin: Place
    destination: Place
    available_date: datetime
    price_per_km: float
    truck_type: str
    driver: DriverSummary
    status: TripStatus = TripStatus.ACTIVE
    available_until: Optional[datetime] = None
    minimum_charge: float = 0.0
    capacity_tons: Optional[float] = None
    notes: Optional[str] = None

    def __post_init__(self):
        if self.price_per_km < 0:
            raise ValueError(f"price_per_km cannot be negative, got {self.price_per_km}")

    @property
    def driver_rating(self) -> Optional[float]:
        return self.driver.rating


@dataclass(frozen=True)
class MatchResult:
    """A posted route enriched with per-search distance metrics and score."""

    route: PostedRoute
    origin_deviation_km: float
    dest_deviation_km: float
    total_deviation_km: float
    booking_distance_km: float
    estimated_cost_rupees: float
    score: Optional[float] = None

    @property
    def price_per_km(self) -> float:
        return self.route.price_per_km

    @property
    def driver_rating(self) -> Optional[float]:
        return self.route.driver_rating

    def with_score(self, score: float) -> "MatchResult":
        return replace(self, score=score)


@dataclass(frozen=True)
class DateWindow:
    """Half-open window [start, end)."""

    start: datetime
    end: datetime

    @classmethod
    def for_day(cls, start: datetime) -> "DateWindow":
        return cls(start=start, end=start + timedelta(days=1))

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment < self.end


@dataclass(frozen=True)
class SearchQuery:
    pickup: Optional[Coordinate]
    drop: Optional[Coordinate]
    date: Optional[datetime] = None
    truck_type: Optional[str] = None
    deviation_km: Optional[float] = None
    sort_by: SortKey = SortKey.SCORE
    page: int = 1
    page_size: Optional[int] = None


@dataclass(frozen=True)
class SearchResult:
    matches: List[MatchResult]
    total: int
    deviation_km_used: float
    page: int = 1
    page_size: int = 20

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.page_size) if self.page_size else 0


@dataclass(frozen=True)
class SearchConfig:
    """Search policy knobs injected into the orchestrator."""

    max_deviation_km: float = 100.0
    default_deviation_km: float = 50.0
    coarse_buffer_km: float = 50.0
    candidate_limit: int = 200
    default_page_size: int = 20
    max_page_size: int = 100

    def __post_init__(self):
        if self.max_deviation_km <= 0:
            raise ValueError("max_deviation_km must be positive")
        if not 0 <= self.default_deviation_km <= self.max_deviation_km:
            raise ValueError("default_deviation_km must be within [0, max_deviation_km]")
        if self.coarse_buffer_km < 0:
            raise ValueError("coarse_buffer_km cannot be negative")
        if self.candidate_limit < 1:
            raise ValueError("candidate_limit must be at least 1")
        if not 1 <= self.default_page_size <= self.max_page_size:
            raise ValueError("default_page_size must be within [1, max_page_size]")
