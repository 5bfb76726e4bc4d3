import datetime
from enum import Enum as PyEnum

from sqlalchemy import Column, Integer, String, Text, Float, Date, TIMESTAMP, ForeignKey, Index

from .database import Base


class BookingKind(str, PyEnum):
    TOUR = "tour"
    AIRPORT = "airport"


class BookingStatus(str, PyEnum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class AirportServiceType(str, PyEnum):
    PICKUP = "pickup"
    DROPOFF = "dropoff"
    BOTH = "both"


class DriverStatus(str, PyEnum):
    AVAILABLE = "available"
    ACTIVE = "active"
    BUSY = "busy"
    INACTIVE = "inactive"


class AssignmentStatus(str, PyEnum):
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Booking(Base):
    """
    A tour or an airport transfer. Both kinds share one table; `kind` says
    which detail columns are populated.
    """
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    kind = Column(String(20), nullable=False, index=True)

    customer_name = Column(String(200), nullable=False)
    customer_email = Column(String(320), nullable=False)
    customer_phone = Column(String(50), nullable=True)

    # Resolved at write time from the kind-specific dates and pricing
    service_date = Column(Date, nullable=True, index=True)
    total_amount = Column(Float, nullable=False, default=0)

    status = Column(String(20), nullable=False, default=BookingStatus.PENDING.value, index=True)
    notes = Column(Text, nullable=True)

    # Tour details
    tour_id = Column(Integer, nullable=True)
    tour_name = Column(String(200), nullable=True)
    booking_date = Column(Date, nullable=True)
    number_of_people = Column(Integer, nullable=True)

    # Airport transfer details
    service_type = Column(String(20), nullable=True)
    flight_number = Column(String(30), nullable=True)
    arrival_date = Column(Date, nullable=True)
    arrival_time = Column(String(5), nullable=True)
    dropoff_location = Column(String(255), nullable=True)
    departure_flight_number = Column(String(30), nullable=True)
    departure_date = Column(Date, nullable=True)
    departure_time = Column(String(5), nullable=True)
    pickup_location = Column(String(255), nullable=True)
    passengers = Column(Integer, nullable=True)

    created_at = Column(TIMESTAMP, default=datetime.datetime.utcnow)


class Driver(Base):
    __tablename__ = "drivers"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(200), nullable=False, index=True)
    phone = Column(String(50), nullable=False)
    email = Column(String(320), nullable=True)
    vehicle = Column(String(200), nullable=False)
    status = Column(String(20), nullable=False, default=DriverStatus.AVAILABLE.value)

    created_at = Column(TIMESTAMP, default=datetime.datetime.utcnow)


class DriverAssignment(Base):
    __tablename__ = "driver_assignments"

    id = Column(Integer, primary_key=True, index=True)
    driver_id = Column(Integer, ForeignKey("drivers.id", ondelete="CASCADE"), nullable=False, index=True)

    # Not a foreign key: deleting a booking leaves its assignments behind.
    booking_id = Column(Integer, nullable=False, index=True)

    assignment_status = Column(String(20), nullable=False, default=AssignmentStatus.ASSIGNED.value)

    created_at = Column(TIMESTAMP, default=datetime.datetime.utcnow)
    updated_at = Column(TIMESTAMP, default=datetime.datetime.utcnow, onupdate=datetime.datetime.utcnow)


class OutboxEvent(Base):
    __tablename__ = "outbox_events"

    id = Column(Integer, primary_key=True, index=True)
    status = Column(String(20), default="PENDING", nullable=False)
    topic = Column(String(255), nullable=False)
    payload = Column(Text, nullable=False)
    created_at = Column(TIMESTAMP, default=datetime.datetime.utcnow)

    # The poller only ever selects PENDING rows
    __table_args__ = (
        Index('ix_outbox_events_status', 'status'),
    )
