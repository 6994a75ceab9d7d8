"""
Storage boundary for trip search.

The coarse phase of the search lives here: routes are narrowed with indexed
column filters (status, date window, truck type and an origin bounding box),
refined to the buffered radius, ordered nearest-origin first and capped.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional, Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from . import models
from .domain import (
    Coordinate, DateWindow, DriverSummary, Place, PostedRoute, SearchConfig, TripStatus,
)
from .errors import SearchUnavailable
from .utils import bounding_box, distance_km

logger = logging.getLogger(__name__)

DEFAULT_CANDIDATE_LIMIT = 200


class RouteStore(Protocol):
    def find_active_routes_near(
        self,
        point: Coordinate,
        radius_km: float,
        window: DateWindow,
        truck_type: Optional[str] = None,
        limit: int = DEFAULT_CANDIDATE_LIMIT,
    ) -> List[PostedRoute]:
        """Active routes in the window whose origin lies within radius_km of point.

        Implementations raise SearchUnavailable when the backing store fails.
        """
        ...


def trip_to_route(trip: models.Trip, driver: models.User, profile: Optional[models.DriverProfile]) -> PostedRoute:
    """Map a trip row and its joined driver rows into a PostedRoute"""
    summary = DriverSummary(
        id=driver.id,
        name=driver.name,
        average_rating=driver.average_rating,
        total_ratings=driver.total_ratings or 0,
        truck_number=profile.truck_number if profile else None,
        truck_capacity=profile.truck_capacity if profile else None,
        total_trips=(profile.total_trips or 0) if profile else 0,
    )
    return PostedRoute(
        id=trip.id,
        origin=Place(
            address=trip.origin_address,
            location=Coordinate(lng=trip.origin_lng, lat=trip.origin_lat),
            city=trip.origin_city,
            state=trip.origin_state,
            pincode=trip.origin_pincode,
        ),
        destination=Place(
            address=trip.destination_address,
            location=Coordinate(lng=trip.destination_lng, lat=trip.destination_lat),
            city=trip.destination_city,
            state=trip.destination_state,
            pincode=trip.destination_pincode,
        ),
        available_date=trip.available_date,
        available_until=trip.available_until,
        price_per_km=trip.price_per_km,
        truck_type=trip.truck_type,
        status=TripStatus(trip.status),
        driver=summary,
        minimum_charge=trip.minimum_charge or 0.0,
        capacity_tons=trip.capacity,
        notes=trip.notes,
    )


class SqlRouteStore:
    """RouteStore backed by the trips table"""

    def __init__(self, db: Session):
        self.db = db

    def find_active_routes_near(
        self,
        point: Coordinate,
        radius_km: float,
        window: DateWindow,
        truck_type: Optional[str] = None,
        limit: int = DEFAULT_CANDIDATE_LIMIT,
    ) -> List[PostedRoute]:
        box = bounding_box(point, radius_km)

        query = (
            self.db.query(models.Trip, models.User, models.DriverProfile)
            .join(models.User, models.Trip.driver_id == models.User.id)
            .outerjoin(models.DriverProfile, models.Trip.driver_profile_id == models.DriverProfile.id)
            .filter(
                models.Trip.status == TripStatus.ACTIVE,
                models.Trip.available_date >= window.start,
                models.Trip.available_date < window.end,
                models.Trip.origin_lng.between(box.min_lng, box.max_lng),
                models.Trip.origin_lat.between(box.min_lat, box.max_lat),
            )
        )

        if truck_type:
            query = query.filter(models.Trip.truck_type == truck_type)

        try:
            rows = query.all()
        except SQLAlchemyError as e:
            raise SearchUnavailable("Route store query failed") from e

        nearby = []
        for trip, driver, profile in rows:
            origin = Coordinate(lng=trip.origin_lng, lat=trip.origin_lat)
            distance = distance_km(origin, point)
            if distance <= radius_km:
                nearby.append((distance, trip, driver, profile))

        # Nearest origin first, then cap
        nearby.sort(key=lambda row: row[0])
        return [trip_to_route(trip, driver, profile) for _, trip, driver, profile in nearby[:limit]]


def to_naive_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment
    return moment.astimezone(timezone.utc).replace(tzinfo=None)


class CandidateRetriever:
    """Coarse phase: fetch a bounded set of routes that may match a pickup point"""

    def __init__(self, store: RouteStore, config: SearchConfig):
        self.store = store
        self.config = config

    def retrieve(
        self,
        pickup: Coordinate,
        deviation_km: float,
        target_date: Optional[datetime] = None,
        truck_type: Optional[str] = None,
    ) -> List[PostedRoute]:
        start = to_naive_utc(target_date) if target_date else datetime.utcnow()
        window = DateWindow.for_day(start)
        radius_km = deviation_km + self.config.coarse_buffer_km

        candidates = self.store.find_active_routes_near(
            pickup,
            radius_km,
            window,
            truck_type=truck_type,
            limit=self.config.candidate_limit,
        )
        logger.debug(
            "Retrieved %d candidates within %.1f km of (%.5f, %.5f)",
            len(candidates), radius_km, pickup.lng, pickup.lat,
        )
        return candidates
