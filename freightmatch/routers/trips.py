from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from datetime import datetime
import math
from typing import Optional

from ..core.settings import settings
from ..db import get_db
from ..deps import Caller, require_role
from ..domain import SearchQuery, SortKey, TripStatus
from ..errors import InvalidQuery, SearchUnavailable
from ..models import UserRole
from ..repository import SqlRouteStore, trip_to_route
from ..search_service import TripSearchService, parse_coordinate
from .. import schemas
from .. import trip_service


router = APIRouter()


def get_search_service(db: Session = Depends(get_db)) -> TripSearchService:
    return TripSearchService(SqlRouteStore(db), settings.search_config())


def _parse_date(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError as e:
        raise InvalidQuery(f"Invalid date: {value}") from e


def _trip_response(trip, message: Optional[str] = None) -> schemas.TripResponse:
    route = trip_to_route(trip, trip.driver, trip.driver_profile)
    return schemas.TripResponse(message=message, trip=schemas.trip_out(route))


def _raise_trip_error(e: trip_service.TripError):
    raise HTTPException(status_code=e.status_code, detail=e.message)


# ============================================================================
# Search
# ============================================================================

@router.get("/search", response_model=schemas.TripSearchResponse)
def search_trips(
    pickup_lat: Optional[str] = Query(None, alias="pickupLat"),
    pickup_lng: Optional[str] = Query(None, alias="pickupLng"),
    drop_lat: Optional[str] = Query(None, alias="dropLat"),
    drop_lng: Optional[str] = Query(None, alias="dropLng"),
    date: Optional[str] = None,
    truck_type: Optional[str] = Query(None, alias="truckType"),
    deviation: Optional[float] = None,
    sort_by: Optional[str] = Query(None, alias="sortBy"),
    page: int = 1,
    limit: Optional[int] = None,
    caller: Caller = Depends(require_role(UserRole.CUSTOMER, UserRole.ADMIN)),
    service: TripSearchService = Depends(get_search_service),
):
    """Search posted trips matching a pickup and drop point"""
    try:
        query = SearchQuery(
            pickup=parse_coordinate(pickup_lng, pickup_lat, "pickup"),
            drop=parse_coordinate(drop_lng, drop_lat, "drop"),
            date=_parse_date(date),
            truck_type=truck_type or None,
            deviation_km=deviation,
            sort_by=SortKey.parse(sort_by),
            page=page,
            page_size=limit,
        )
        result = service.search(query)
    except InvalidQuery as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    except SearchUnavailable:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Search failed"
        )

    return schemas.search_response(result)


# ============================================================================
# Trip Management
# ============================================================================

@router.post("", response_model=schemas.TripResponse, status_code=status.HTTP_201_CREATED)
def create_trip(
    payload: schemas.CreateTrip,
    caller: Caller = Depends(require_role(UserRole.DRIVER)),
    db: Session = Depends(get_db)
):
    """Post a new trip (driver)"""
    try:
        trip = trip_service.create_trip(db, caller.user_id, payload)
    except trip_service.TripError as e:
        _raise_trip_error(e)
    return _trip_response(trip, "Trip posted successfully")


@router.get("/my-trips", response_model=schemas.TripListResponse)
def my_trips(
    trip_status: Optional[str] = Query(None, alias="status"),
    page: int = 1,
    limit: int = 10,
    caller: Caller = Depends(require_role(UserRole.DRIVER)),
    db: Session = Depends(get_db)
):
    """List the calling driver's trips, newest first"""
    status_filter = None
    if trip_status:
        try:
            status_filter = TripStatus(trip_status)
        except ValueError as e:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Invalid status: {trip_status}"
            ) from e

    try:
        trips, total = trip_service.list_driver_trips(db, caller.user_id, status_filter, page, limit)
    except trip_service.TripError as e:
        _raise_trip_error(e)

    return schemas.TripListResponse(
        count=len(trips),
        total=total,
        page=page,
        pages=math.ceil(total / limit),
        trips=[schemas.trip_out(trip_to_route(t, t.driver, t.driver_profile)) for t in trips],
    )


@router.post("/expire", response_model=schemas.MessageResponse)
def expire_trips(
    caller: Caller = Depends(require_role(UserRole.ADMIN)),
    db: Session = Depends(get_db)
):
    """Admin endpoint to expire trips whose availability has passed"""
    count = trip_service.expire_stale_trips(db)
    return schemas.MessageResponse(message=f"Marked {count} trips as expired")


@router.get("/{trip_id}", response_model=schemas.TripResponse)
def get_trip(
    trip_id: int,
    caller: Caller = Depends(require_role(UserRole.CUSTOMER, UserRole.DRIVER, UserRole.ADMIN)),
    db: Session = Depends(get_db)
):
    """Get a single trip and count the view"""
    try:
        trip = trip_service.get_trip(db, trip_id)
    except trip_service.TripError as e:
        _raise_trip_error(e)
    trip_service.record_view(db, trip)
    return _trip_response(trip)


@router.put("/{trip_id}", response_model=schemas.TripResponse)
def update_trip(
    trip_id: int,
    payload: schemas.UpdateTrip,
    caller: Caller = Depends(require_role(UserRole.DRIVER)),
    db: Session = Depends(get_db)
):
    """Update own trip (driver)"""
    try:
        trip = trip_service.update_trip(db, trip_id, caller.user_id, payload)
    except trip_service.TripError as e:
        _raise_trip_error(e)
    return _trip_response(trip, "Trip updated")


@router.delete("/{trip_id}", response_model=schemas.MessageResponse)
def cancel_trip(
    trip_id: int,
    caller: Caller = Depends(require_role(UserRole.DRIVER)),
    db: Session = Depends(get_db)
):
    """Cancel own trip (driver)"""
    try:
        trip_service.cancel_trip(db, trip_id, caller.user_id)
    except trip_service.TripError as e:
        _raise_trip_error(e)
    return schemas.MessageResponse(message="Trip cancelled successfully")
