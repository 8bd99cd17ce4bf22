# backend/dealer_scheduling/models/catalog.py
"""
Records the scheduler reads but does not manage.

Vehicles, service types and customers are owned by other parts of the
dealership system. Admission only looks them up, except that a customer row
is created on first booking when no customer with that email exists.
"""

from enum import Enum

from sqlalchemy import Boolean, Column, DateTime, Integer, Numeric, String
from sqlalchemy.sql import func
import ulid

from ..database import Base


class VehicleStatus(str, Enum):
    AVAILABLE = "AVAILABLE"
    RESERVED = "RESERVED"
    SOLD = "SOLD"
    MAINTENANCE = "MAINTENANCE"


class Vehicle(Base):
    __tablename__ = "vehicles"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    make = Column(String(100), nullable=False)
    model = Column(String(100), nullable=False)
    year = Column(Integer, nullable=False)
    status = Column(String(20), nullable=False, default=VehicleStatus.AVAILABLE.value)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    @property
    def display_name(self) -> str:
        return f"{self.year} {self.make} {self.model}"


class ServiceType(Base):
    __tablename__ = "service_types"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    name = Column(String(255), nullable=False)
    category = Column(String(100), nullable=True)
    duration_minutes = Column(Integer, nullable=False, default=60)
    price = Column(Numeric(10, 2), nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)


class Customer(Base):
    __tablename__ = "customers"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    phone = Column(String(50), nullable=False)
    license_number = Column(String(100), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
