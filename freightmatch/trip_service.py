"""
Trip lifecycle operations for drivers and admins.
"""

import logging
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.orm import Session

from . import models
from .domain import Coordinate, TripStatus
from .schemas import CreateTrip, UpdateTrip
from .utils import distance_km

logger = logging.getLogger(__name__)

CLEARABLE_FIELDS = {"available_until", "notes"}


class TripError(Exception):
    """Trip operation refused; status_code is the HTTP status to report"""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def get_trip(db: Session, trip_id: int) -> models.Trip:
    trip = db.query(models.Trip).filter(models.Trip.id == trip_id).first()
    if not trip:
        raise TripError("Trip not found", status_code=404)
    return trip


def create_trip(db: Session, driver_id: int, payload: CreateTrip) -> models.Trip:
    """
    Post a new trip for an approved driver.

    Stores the origin-to-destination distance and the full-route price
    estimate alongside the trip.
    """
    profile = db.query(models.DriverProfile).filter(models.DriverProfile.user_id == driver_id).first()
    if not profile:
        raise TripError("Driver profile not found. Complete your profile first.")
    if profile.approval_status != models.ApprovalStatus.APPROVED:
        raise TripError(
            f"Your account is {profile.approval_status.value}. You need approval before posting trips.",
            status_code=403,
        )

    origin_lng, origin_lat = payload.origin.coordinates
    dest_lng, dest_lat = payload.destination.coordinates
    total_distance = distance_km(
        Coordinate(lng=origin_lng, lat=origin_lat),
        Coordinate(lng=dest_lng, lat=dest_lat),
    )

    trip = models.Trip(
        driver_id=driver_id,
        driver_profile_id=profile.id,
        origin_address=payload.origin.address,
        origin_city=payload.origin.city,
        origin_state=payload.origin.state,
        origin_pincode=payload.origin.pincode,
        origin_lng=origin_lng,
        origin_lat=origin_lat,
        destination_address=payload.destination.address,
        destination_city=payload.destination.city,
        destination_state=payload.destination.state,
        destination_pincode=payload.destination.pincode,
        destination_lng=dest_lng,
        destination_lat=dest_lat,
        available_date=payload.available_date,
        available_until=payload.available_until,
        price_per_km=payload.price_per_km,
        minimum_charge=payload.minimum_charge,
        truck_type=payload.truck_type.value,
        capacity=payload.capacity,
        total_distance_km=round(total_distance),
        estimated_price=round(total_distance * payload.price_per_km),
        notes=payload.notes,
        status=TripStatus.ACTIVE,
    )
    db.add(trip)
    db.commit()
    db.refresh(trip)

    logger.info("Driver %s posted trip %s (%.0f km)", driver_id, trip.id, total_distance)
    return trip


def list_driver_trips(
    db: Session,
    driver_id: Optional[int],
    status: Optional[TripStatus] = None,
    page: int = 1,
    limit: int = 10,
) -> Tuple[List[models.Trip], int]:
    """
    A driver's own trips, newest first.

    Returns: (trips on the requested page, total matching trips)
    """
    if page < 1 or limit < 1:
        raise TripError("Page and limit must be at least 1")

    query = db.query(models.Trip).filter(models.Trip.driver_id == driver_id)
    if status is not None:
        query = query.filter(models.Trip.status == status)

    total = query.count()
    trips = (
        query.order_by(models.Trip.created_at.desc(), models.Trip.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return trips, total


def record_view(db: Session, trip: models.Trip) -> models.Trip:
    trip.views = (trip.views or 0) + 1
    db.commit()
    return trip


def _check_owner(trip: models.Trip, driver_id: Optional[int]) -> None:
    if trip.driver_id != driver_id:
        raise TripError("Not authorized to update this trip", status_code=403)


def update_trip(db: Session, trip_id: int, driver_id: Optional[int], payload: UpdateTrip) -> models.Trip:
    trip = get_trip(db, trip_id)
    _check_owner(trip, driver_id)

    if trip.status in (TripStatus.BOOKED, TripStatus.IN_PROGRESS):
        raise TripError("Cannot edit a booked or in-progress trip")

    for field, value in payload.model_dump(exclude_unset=True).items():
        # an explicit null only clears columns that may be empty
        if value is None and field not in CLEARABLE_FIELDS:
            continue
        setattr(trip, field, value)

    db.commit()
    db.refresh(trip)
    return trip


def cancel_trip(db: Session, trip_id: int, driver_id: Optional[int]) -> models.Trip:
    """Soft delete: the trip stays on record as cancelled"""
    trip = get_trip(db, trip_id)
    _check_owner(trip, driver_id)

    if trip.status == TripStatus.IN_PROGRESS:
        raise TripError("Cannot delete an in-progress trip")

    trip.status = TripStatus.CANCELLED
    db.commit()
    return trip


def expire_stale_trips(db: Session, now: Optional[datetime] = None, auto_commit: bool = True) -> int:
    """
    Mark active trips as expired once their availability has passed.

    A trip with available_until expires after that moment; otherwise it
    expires once its available_date falls before today.

    Returns: Number of trips marked as expired
    """
    now = now or datetime.utcnow()
    day_start = datetime(now.year, now.month, now.day)

    stale = db.query(models.Trip).filter(
        models.Trip.status == TripStatus.ACTIVE,
        or_(
            models.Trip.available_until < now,
            (models.Trip.available_until.is_(None)) & (models.Trip.available_date < day_start),
        ),
    ).all()

    count = 0
    for trip in stale:
        trip.status = TripStatus.EXPIRED
        count += 1

    if auto_commit:
        db.commit()

    if count:
        logger.info("Expired %d stale trips", count)
    return count
