import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import datetime
from typing import List, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from freightmatch import models
from freightmatch.db import Base, get_db
from freightmatch.domain import (
    Coordinate, DateWindow, DriverSummary, Place, PostedRoute, TripStatus,
)
from freightmatch.errors import SearchUnavailable
from freightmatch.main import app
from freightmatch.utils import distance_km

SEARCH_DAY = datetime(2026, 10, 20)

# Delhi -> Mumbai
PICKUP = Coordinate(lng=77.10, lat=28.70)
DROP = Coordinate(lng=72.88, lat=19.08)


def make_route(
    route_id: int = 1,
    origin=(77.20, 28.75),
    destination=(72.90, 19.10),
    price_per_km: float = 20.0,
    rating: Optional[float] = 4.0,
    total_ratings: int = 10,
    truck_type: str = "lorry",
    available_date: datetime = SEARCH_DAY,
    status: TripStatus = TripStatus.ACTIVE,
) -> PostedRoute:
    return PostedRoute(
        id=route_id,
        origin=Place(address=f"origin {route_id}", location=Coordinate(*origin)),
        destination=Place(address=f"destination {route_id}", location=Coordinate(*destination)),
        available_date=available_date,
        price_per_km=price_per_km,
        truck_type=truck_type,
        status=status,
        driver=DriverSummary(
            id=100 + route_id,
            name=f"driver {route_id}",
            average_rating=rating,
            total_ratings=total_ratings if rating is not None else 0,
        ),
    )


class InMemoryRouteStore:
    """RouteStore over a list, recording every call"""

    def __init__(self, routes: List[PostedRoute]):
        self.routes = routes
        self.calls = []

    def find_active_routes_near(self, point, radius_km, window: DateWindow, truck_type=None, limit=200):
        self.calls.append(dict(point=point, radius_km=radius_km, window=window, truck_type=truck_type, limit=limit))
        found = [
            r for r in self.routes
            if r.status == TripStatus.ACTIVE
            and window.contains(r.available_date)
            and (truck_type is None or r.truck_type == truck_type)
            and distance_km(r.origin.location, point) <= radius_km
        ]
        found.sort(key=lambda r: distance_km(r.origin.location, point))
        return found[:limit]


class FailingRouteStore:
    def __init__(self):
        self.calls = 0

    def find_active_routes_near(self, *args, **kwargs):
        self.calls += 1
        raise SearchUnavailable("connection refused")


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db(engine):
    Session = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    session = Session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def add_driver(db, name="Ravi", rating=4.5, total_ratings=12, approval=models.ApprovalStatus.APPROVED, truck_number=None):
    user = models.User(
        role=models.UserRole.DRIVER,
        name=name,
        average_rating=rating,
        total_ratings=total_ratings,
    )
    db.add(user)
    db.flush()
    profile = models.DriverProfile(
        user_id=user.id,
        truck_type="lorry",
        truck_number=truck_number or f"DL01AB{user.id:04d}",
        truck_capacity=10.0,
        approval_status=approval,
    )
    db.add(profile)
    db.commit()
    return user, profile


def add_trip(db, user, profile, origin=(77.20, 28.75), destination=(72.90, 19.10), price_per_km=20.0,
             available_date=SEARCH_DAY, truck_type="lorry", status=TripStatus.ACTIVE, available_until=None):
    trip = models.Trip(
        driver_id=user.id,
        driver_profile_id=profile.id,
        origin_address="Origin",
        origin_lng=origin[0],
        origin_lat=origin[1],
        destination_address="Destination",
        destination_lng=destination[0],
        destination_lat=destination[1],
        available_date=available_date,
        available_until=available_until,
        price_per_km=price_per_km,
        truck_type=truck_type,
        capacity=10.0,
        status=status,
    )
    db.add(trip)
    db.commit()
    return trip


def headers(role: str, user_id: Optional[int] = None) -> dict:
    h = {"X-User-Role": role}
    if user_id is not None:
        h["X-User-Id"] = str(user_id)
    return h
