# backend/booking_core/models/catalog.py
"""
Reference catalog models consumed by the booking engine.

Providers, packages, patients and service types are maintained elsewhere;
the engine only reads them to resolve references and prices.
"""

from sqlalchemy import Boolean, Column, DateTime, Integer, Numeric, String
from sqlalchemy.sql import func

from ..core.ulid_helper import generate_ulid
from ..database import Base


class Provider(Base):
    """A bookable provider (therapist, technician)."""

    __tablename__ = "providers"

    id = Column(String(26), primary_key=True, default=generate_ulid)
    name = Column(String(200), nullable=False)
    # External reference code used as the key in availability snapshots
    ref_code = Column(String(64), nullable=True, unique=True, index=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self) -> str:
        return f"<Provider {self.id} ref={self.ref_code}>"


class Package(Base):
    __tablename__ = "packages"

    id = Column(String(26), primary_key=True, default=generate_ulid)
    name = Column(String(200), nullable=False)
    session_count = Column(Integer, nullable=False, default=1)
    total_cost = Column(Numeric(10, 2), nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<Package {self.id} {self.name} total={self.total_cost}>"


class Patient(Base):
    __tablename__ = "patients"

    id = Column(String(26), primary_key=True, default=generate_ulid)
    patient_code = Column(String(20), nullable=True, unique=True)
    name = Column(String(200), nullable=False)
    phone = Column(String(32), nullable=True)

    def __repr__(self) -> str:
        return f"<Patient {self.id} {self.patient_code}>"


class ServiceType(Base):
    """Therapy or service type a booking or session is for."""

    __tablename__ = "service_types"

    id = Column(String(26), primary_key=True, default=generate_ulid)
    name = Column(String(200), nullable=False)

    def __repr__(self) -> str:
        return f"<ServiceType {self.id} {self.name}>"
