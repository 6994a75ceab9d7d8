import math
from typing import NamedTuple

from .domain import Coordinate

EARTH_RADIUS_KM = 6371.0
KM_PER_DEGREE_LAT = 111.0


def distance_km(a: Coordinate, b: Coordinate) -> float:
    """Great-circle distance between two points in kilometers (haversine)"""
    phi1 = math.radians(a.lat); phi2 = math.radians(b.lat)
    dphi = math.radians(b.lat - a.lat); dlambda = math.radians(b.lng - a.lng)
    h = math.sin(dphi/2)**2 + math.cos(phi1)*math.cos(phi2)*math.sin(dlambda/2)**2
    c = 2*math.atan2(math.sqrt(h), math.sqrt(1-h))
    return EARTH_RADIUS_KM * c


class BoundingBox(NamedTuple):
    min_lng: float
    min_lat: float
    max_lng: float
    max_lat: float


def bounding_box(center: Coordinate, radius_km: float) -> BoundingBox:
    """
    Conservative lat/lng box enclosing a circle around center.
    Used as the index-friendly coarse test before exact haversine checks.
    """
    d_lat = radius_km / KM_PER_DEGREE_LAT
    # avoid division by zero near poles
    c = math.cos(math.radians(center.lat))
    if abs(c) < 0.01:
        c = 0.01
    d_lng = radius_km / (KM_PER_DEGREE_LAT * c)

    return BoundingBox(
        min_lng=max(-180.0, center.lng - d_lng),
        min_lat=max(-90.0, center.lat - d_lat),
        max_lng=min(180.0, center.lng + d_lng),
        max_lat=min(90.0, center.lat + d_lat),
    )
