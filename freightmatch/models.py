from sqlalchemy import Column, Integer, Float, String, Boolean, DateTime, ForeignKey, Text, Enum as SQLEnum
from sqlalchemy.orm import relationship
from datetime import datetime
import enum

from .db import Base
from .domain import TripStatus


# Enums
class UserRole(str, enum.Enum):
    CUSTOMER = "customer"
    DRIVER = "driver"
    ADMIN = "admin"


class ApprovalStatus(str, enum.Enum):
    PENDING = "pending"  # Documents submitted, awaiting review
    APPROVED = "approved"  # Can post trips
    REJECTED = "rejected"
    SUSPENDED = "suspended"  # Admin action


# Models
class User(Base):
    """All marketplace users; drivers carry their rating aggregate here"""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    role = Column(SQLEnum(UserRole), nullable=False)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, nullable=True, index=True)
    phone = Column(String(20), unique=True, nullable=True)
    average_rating = Column(Float, default=0.0)  # 0-5 scale
    total_ratings = Column(Integer, default=0)
    is_online = Column(Boolean, default=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    driver_profile = relationship("DriverProfile", back_populates="user", uselist=False)
    trips = relationship("Trip", back_populates="driver")


class DriverProfile(Base):
    """Truck and verification details for a driver"""
    __tablename__ = "driver_profiles"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)
    truck_type = Column(String(50), nullable=False)
    truck_number = Column(String(20), unique=True, nullable=False)
    truck_capacity = Column(Float, nullable=False)  # tons
    approval_status = Column(SQLEnum(ApprovalStatus), default=ApprovalStatus.PENDING, index=True)
    total_trips = Column(Integer, default=0)
    created_at = Column(DateTime, default=datetime.utcnow)

    user = relationship("User", back_populates="driver_profile")


class Trip(Base):
    """A return-leg route posted by a driver"""
    __tablename__ = "trips"

    id = Column(Integer, primary_key=True, index=True)
    driver_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    driver_profile_id = Column(Integer, ForeignKey("driver_profiles.id"), nullable=False)

    # Origin
    origin_address = Column(String(500), nullable=False)
    origin_city = Column(String(100), nullable=True)
    origin_state = Column(String(100), nullable=True)
    origin_pincode = Column(String(10), nullable=True)
    origin_lng = Column(Float, nullable=False, index=True)
    origin_lat = Column(Float, nullable=False, index=True)

    # Destination
    destination_address = Column(String(500), nullable=False)
    destination_city = Column(String(100), nullable=True)
    destination_state = Column(String(100), nullable=True)
    destination_pincode = Column(String(10), nullable=True)
    destination_lng = Column(Float, nullable=False)
    destination_lat = Column(Float, nullable=False)

    # Availability and pricing
    available_date = Column(DateTime, nullable=False, index=True)
    available_until = Column(DateTime, nullable=True)
    price_per_km = Column(Float, nullable=False, index=True)
    minimum_charge = Column(Float, default=0.0)
    truck_type = Column(String(50), nullable=False, index=True)
    capacity = Column(Float, nullable=False)  # tons
    total_distance_km = Column(Float, nullable=True)
    estimated_price = Column(Float, nullable=True)

    status = Column(SQLEnum(TripStatus), default=TripStatus.ACTIVE, index=True)
    notes = Column(Text, nullable=True)
    views = Column(Integer, default=0)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    driver = relationship("User", back_populates="trips")
    driver_profile = relationship("DriverProfile")
