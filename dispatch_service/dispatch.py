import datetime
import logging
from collections import defaultdict

from sqlalchemy.orm import Session

from . import crud, models, schemas

logger = logging.getLogger("dispatch_service")

# Everything except cancelled counts against a driver or a booking
LIVE_ASSIGNMENT_STATUSES = (
    models.AssignmentStatus.ASSIGNED.value,
    models.AssignmentStatus.IN_PROGRESS.value,
    models.AssignmentStatus.COMPLETED.value,
)


def _bookings_by_id(db: Session, booking_ids) -> dict[int, models.Booking]:
    ids = set(booking_ids)
    if not ids:
        return {}
    rows = db.query(models.Booking).filter(models.Booking.id.in_(ids)).all()
    return {b.id: b for b in rows}


def _date_sort_key(value: datetime.date | None) -> int:
    # Undated entries sort as the oldest
    return value.toordinal() if value else 0


def driver_jobs(db: Session, driver_id: int) -> tuple[list[schemas.Job], list[int]]:
    """
    Builds a driver's job list from their assignments.

    Returns the jobs, newest service date first, and the booking ids that are
    referenced by an assignment but no longer exist. Those assignments are
    left out of the jobs and logged.
    """
    assignments = crud.get_assignments_for_driver(db, driver_id)
    bookings = _bookings_by_id(db, (a.booking_id for a in assignments))

    jobs = []
    missing = []
    for a in assignments:
        booking = bookings.get(a.booking_id)
        if booking is None:
            missing.append(a.booking_id)
            continue
        jobs.append(schemas.Job(
            id=booking.id,
            type=booking.kind,
            customer_name=booking.customer_name,
            date=booking.service_date,
            status=booking.status,
            amount=booking.total_amount,
            assignment_id=a.id,
            assignment_status=a.assignment_status,
        ))

    if missing:
        logger.warning(
            f"Driver {driver_id} has {len(missing)} assignment(s) pointing at missing bookings: {missing}"
        )

    jobs.sort(key=lambda j: _date_sort_key(j.date), reverse=True)
    return jobs, missing


def calendar_events(
        db: Session,
        start: datetime.date | None = None,
        end: datetime.date | None = None,
        driver_id: int | None = None,
) -> tuple[list[schemas.CalendarEvent], list[int]]:
    """
    Joins every assignment with its driver and booking into a calendar event.

    `start` and `end` are inclusive bounds on the booking's service date.
    Returns the events ordered by date, undated last, and the ids of orphaned assignments.
    """
    query = db.query(models.DriverAssignment)
    if driver_id is not None:
        query = query.filter(models.DriverAssignment.driver_id == driver_id)
    assignments = query.order_by(models.DriverAssignment.id.asc()).all()

    bookings = _bookings_by_id(db, (a.booking_id for a in assignments))
    driver_names = {d.id: d.name for d in db.query(models.Driver).all()}

    events = []
    orphaned = []
    for a in assignments:
        booking = bookings.get(a.booking_id)
        if booking is None:
            orphaned.append(a.id)
            continue
        if start and (booking.service_date is None or booking.service_date < start):
            continue
        if end and (booking.service_date is None or booking.service_date > end):
            continue
        events.append(schemas.CalendarEvent(
            id=a.id,
            driver_id=a.driver_id,
            driver_name=driver_names.get(a.driver_id, "Unknown"),
            booking_id=booking.id,
            booking_type=booking.kind,
            customer_name=booking.customer_name or "Unknown",
            date=booking.service_date,
            assignment_status=a.assignment_status,
        ))

    if orphaned:
        logger.warning(f"Calendar skipped {len(orphaned)} orphaned assignment(s): {orphaned}")

    # Dated events ascending, undated ones last
    events.sort(key=lambda e: (e.date is None, _date_sort_key(e.date), e.id))
    return events, orphaned


def integrity_report(db: Session) -> dict:
    """
    Looks for data the store does not prevent but operators should know about:
    assignments whose booking is gone, bookings with more than one live
    assignment, and drivers with more than one live assignment on the same day.
    Nothing is changed.
    """
    assignments = crud.get_assignments(db)
    bookings = _bookings_by_id(db, (a.booking_id for a in assignments))

    orphaned = []
    per_booking = defaultdict(list)
    per_driver_day = defaultdict(list)
    for a in assignments:
        booking = bookings.get(a.booking_id)
        if booking is None:
            orphaned.append({"assignment_id": a.id, "driver_id": a.driver_id, "booking_id": a.booking_id})
            continue
        if a.assignment_status not in LIVE_ASSIGNMENT_STATUSES:
            continue
        per_booking[a.booking_id].append(a.id)
        if booking.service_date is not None:
            per_driver_day[(a.driver_id, booking.service_date)].append(a.id)

    duplicates = [
        {"booking_id": booking_id, "assignment_ids": sorted(ids)}
        for booking_id, ids in sorted(per_booking.items())
        if len(ids) > 1
    ]
    overlaps = [
        {"driver_id": driver_id, "date": day.isoformat(), "assignment_ids": sorted(ids)}
        for (driver_id, day), ids in sorted(per_driver_day.items())
        if len(ids) > 1
    ]
    return {
        "orphaned_assignments": orphaned,
        "duplicate_bookings": duplicates,
        "driver_date_overlaps": overlaps,
    }
