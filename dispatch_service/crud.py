import json
import logging

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from . import models, schemas
from .config import settings
from .exceptions import NotFound, StoreError

logger = logging.getLogger("dispatch_service")

# Flat airport transfer prices, one leg or both legs
AIRPORT_LEG_PRICE = 75.00
AIRPORT_ROUND_TRIP_PRICE = 140.00


def _commit(db: Session, action: str):
    """
    Commits the session. On failure the session is rolled back and a StoreError
    with a generic message is raised; the underlying error only goes to the log.
    """
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception(f"Database error while trying to {action}")
        raise StoreError(f"Failed to {action}.")


def _flush(db: Session, action: str):
    try:
        db.flush()
    except SQLAlchemyError:
        db.rollback()
        logger.exception(f"Database error while trying to {action}")
        raise StoreError(f"Failed to {action}.")


def add_outbox_event(db: Session, payload: dict):
    """
    Adds an event to the outbox.
    Note: Does NOT commit. It rides along with the caller's transaction.
    """
    db_outbox_event = models.OutboxEvent(
        topic=settings.KAFKA_DISPATCH_TOPIC,
        payload=json.dumps(payload, default=str),
        status="PENDING"
    )
    db.add(db_outbox_event)


def _assignment_payload(event: str, assignment: models.DriverAssignment) -> dict:
    return {
        "event": event,
        "assignment_id": assignment.id,
        "driver_id": assignment.driver_id,
        "booking_id": assignment.booking_id,
        "assignment_status": assignment.assignment_status,
    }


# --- Drivers ---

def get_driver(db: Session, driver_id: int):
    return db.query(models.Driver).filter(models.Driver.id == driver_id).first()


def get_drivers(db: Session):
    return db.query(models.Driver).order_by(models.Driver.name.asc(), models.Driver.id.asc()).all()


def create_driver(db: Session, driver: schemas.DriverCreate):
    db_driver = models.Driver(**driver.model_dump(mode="json"))
    db.add(db_driver)
    _commit(db, "create driver")
    db.refresh(db_driver)
    return db_driver


def update_driver(db: Session, driver_id: int, changes: dict):
    """
    Applies `changes` to a driver. Returns None when the driver does not exist.
    """
    db_driver = get_driver(db, driver_id)
    if db_driver is None:
        return None
    for field, value in changes.items():
        setattr(db_driver, field, value)
    _commit(db, "update driver")
    db.refresh(db_driver)
    return db_driver


def delete_driver(db: Session, driver_id: int) -> bool:
    """
    Hard-deletes a driver together with their assignments, in one transaction.
    """
    db_driver = get_driver(db, driver_id)
    if db_driver is None:
        return False
    db.query(models.DriverAssignment).filter(
        models.DriverAssignment.driver_id == driver_id
    ).delete(synchronize_session=False)
    db.delete(db_driver)
    _commit(db, "delete driver")
    return True


# --- Bookings ---

def airport_transfer_price(service_type: models.AirportServiceType) -> float:
    if service_type == models.AirportServiceType.BOTH:
        return AIRPORT_ROUND_TRIP_PRICE
    return AIRPORT_LEG_PRICE


def get_booking(db: Session, booking_id: int):
    return db.query(models.Booking).filter(models.Booking.id == booking_id).first()


def get_bookings(db: Session, kind: str | None = None, status: str | None = None, skip: int = 0, limit: int = 100):
    query = db.query(models.Booking)
    if kind:
        query = query.filter(models.Booking.kind == kind)
    if status:
        query = query.filter(models.Booking.status == status)
    return query.order_by(models.Booking.created_at.desc(), models.Booking.id.desc()).offset(skip).limit(limit).all()


def get_booking_stats(db: Session) -> dict:
    """
    Booking counts per kind and revenue across both kinds, in one grouped query.
    """
    rows = db.query(
        models.Booking.kind,
        func.count(models.Booking.id),
        func.coalesce(func.sum(models.Booking.total_amount), 0),
    ).group_by(models.Booking.kind).all()

    counts = {kind: count for kind, count, _ in rows}
    revenue = sum(float(total) for _, _, total in rows)
    return {
        "tour_count": counts.get(models.BookingKind.TOUR.value, 0),
        "airport_count": counts.get(models.BookingKind.AIRPORT.value, 0),
        "total_revenue": round(revenue, 2),
    }


def create_booking(db: Session, booking: schemas.TourDetails | schemas.AirportDetails):
    """
    Creates a tour or airport booking and its outbox event atomically.

    The unified `service_date` and `total_amount` are resolved here, once,
    so readers never have to look at the kind-specific columns.
    """
    data = booking.model_dump(mode="json")
    if isinstance(booking, schemas.TourDetails):
        service_date = booking.booking_date
        total_amount = booking.total_amount
    else:
        service_date = booking.arrival_date or booking.departure_date
        total_amount = airport_transfer_price(booking.service_type)

    data.update(
        # Public bookings always start pending; only an assignment confirms them
        status=models.BookingStatus.PENDING.value,
        service_date=service_date,
        total_amount=total_amount,
        booking_date=getattr(booking, "booking_date", None),
        arrival_date=getattr(booking, "arrival_date", None),
        departure_date=getattr(booking, "departure_date", None),
    )
    db_booking = models.Booking(**data)
    db.add(db_booking)
    # Flush to get the id for the event payload
    _flush(db, "create booking")

    add_outbox_event(db, {
        "event": "booking.created",
        "booking_id": db_booking.id,
        "kind": db_booking.kind,
        "customer_name": db_booking.customer_name,
        "service_date": db_booking.service_date,
        "total_amount": db_booking.total_amount,
    })
    _commit(db, "create booking")
    db.refresh(db_booking)
    return db_booking


def update_booking(db: Session, booking_id: int, changes: dict):
    db_booking = get_booking(db, booking_id)
    if db_booking is None:
        return None
    for field, value in changes.items():
        setattr(db_booking, field, value)
    _commit(db, "update booking")
    db.refresh(db_booking)
    return db_booking


def delete_booking(db: Session, booking_id: int) -> bool:
    """
    Deletes a booking. Its assignments are left in place and show up as orphans.
    """
    db_booking = get_booking(db, booking_id)
    if db_booking is None:
        return False
    db.delete(db_booking)
    _commit(db, "delete booking")
    return True


# --- Driver assignments ---

def get_assignment(db: Session, assignment_id: int):
    return db.query(models.DriverAssignment).filter(models.DriverAssignment.id == assignment_id).first()


def get_assignments(db: Session) -> list[models.DriverAssignment]:
    """
    All assignments, newest first. Not paginated.
    """
    return db.query(models.DriverAssignment).order_by(
        models.DriverAssignment.created_at.desc(),
        models.DriverAssignment.id.desc()
    ).all()


def get_assignments_for_driver(db: Session, driver_id: int) -> list[models.DriverAssignment]:
    return db.query(models.DriverAssignment).filter(
        models.DriverAssignment.driver_id == driver_id
    ).order_by(
        models.DriverAssignment.created_at.desc(),
        models.DriverAssignment.id.desc()
    ).all()


def _check_references(db: Session, driver_id: int, booking_id: int) -> models.Booking:
    if get_driver(db, driver_id) is None:
        raise NotFound(f"Driver {driver_id} not found")
    db_booking = get_booking(db, booking_id)
    if db_booking is None:
        raise NotFound(f"Booking {booking_id} not found")
    return db_booking


def create_assignment(db: Session, assignment: schemas.AssignmentCreate):
    """
    Assigns a driver to a booking.

    The assignment row, the pending -> confirmed flip on the booking and the
    outbox event are committed together, so a failure leaves none of them behind.
    Duplicate assignments for the same driver and booking are allowed.
    """
    db_booking = _check_references(db, assignment.driver_id, assignment.booking_id)

    db_assignment = models.DriverAssignment(
        driver_id=assignment.driver_id,
        booking_id=assignment.booking_id,
        assignment_status=assignment.assignment_status.value,
    )
    db.add(db_assignment)

    if db_booking.status == models.BookingStatus.PENDING.value:
        db_booking.status = models.BookingStatus.CONFIRMED.value

    _flush(db, "create driver assignment")

    add_outbox_event(db, _assignment_payload("assignment.created", db_assignment))
    _commit(db, "create driver assignment")

    db.refresh(db_assignment)
    db.refresh(db_booking)
    logger.info(
        f"Driver {db_assignment.driver_id} assigned to booking {db_booking.id} "
        f"(assignment {db_assignment.id}, booking status {db_booking.status})"
    )
    return db_assignment, db_booking


def update_assignment(db: Session, assignment: schemas.AssignmentUpdate):
    """
    Replaces every field of an existing assignment. Any status may follow any other.
    Raises NotFound instead of creating a row when the id does not exist.
    """
    db_assignment = get_assignment(db, assignment.id)
    if db_assignment is None:
        raise NotFound(f"Driver assignment {assignment.id} not found")
    _check_references(db, assignment.driver_id, assignment.booking_id)

    db_assignment.driver_id = assignment.driver_id
    db_assignment.booking_id = assignment.booking_id
    db_assignment.assignment_status = assignment.assignment_status.value

    add_outbox_event(db, _assignment_payload("assignment.updated", db_assignment))
    _commit(db, "update driver assignment")
    db.refresh(db_assignment)
    return db_assignment


def delete_assignment(db: Session, assignment_id: int) -> bool:
    """
    Deletes an assignment. Returns False, without raising, when it was already gone.
    """
    db_assignment = get_assignment(db, assignment_id)
    if db_assignment is None:
        return False
    add_outbox_event(db, _assignment_payload("assignment.deleted", db_assignment))
    db.delete(db_assignment)
    _commit(db, "delete driver assignment")
    return True
