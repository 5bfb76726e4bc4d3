from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from redis import Redis
from sqlalchemy.orm import Session

from .. import schemas, crud, cache
from ..database import get_db, get_redis_client
from ..exceptions import NotFound
from ..models import BookingKind, BookingStatus
from ..security import get_current_operator

router = APIRouter(prefix="/bookings", tags=["Bookings"])


def _booking_not_found(booking_id: int) -> NotFound:
    return NotFound(f"Booking {booking_id} not found")


@router.post("", status_code=status.HTTP_201_CREATED)
def create_booking(
        booking: schemas.BookingCreate,
        db: Session = Depends(get_db),
        redis_client: Redis | None = Depends(get_redis_client),
):
    """
    Create a tour or airport transfer booking. Public: this backs the customer booking forms.
    New bookings start out pending; airport transfers are priced by service type.
    """
    db_booking = crud.create_booking(db, booking)
    cache.invalidate_calendar(redis_client)
    return {"success": True, "data": schemas.BookingRead.model_validate(db_booking)}


@router.get("", dependencies=[Depends(get_current_operator)])
def list_bookings(
        kind: Optional[BookingKind] = None,
        status: Optional[BookingStatus] = None,
        skip: int = Query(0, ge=0),
        limit: int = Query(100, ge=1, le=500),
        db: Session = Depends(get_db),
):
    bookings = crud.get_bookings(
        db,
        kind=kind.value if kind else None,
        status=status.value if status else None,
        skip=skip,
        limit=limit,
    )
    return {"success": True, "data": [schemas.BookingRead.model_validate(b) for b in bookings]}


@router.get("/stats", dependencies=[Depends(get_current_operator)])
def read_booking_stats(db: Session = Depends(get_db)):
    """
    Back-office totals: bookings per kind and revenue across tours and airport transfers.
    """
    return {"success": True, "data": crud.get_booking_stats(db)}


@router.get("/{booking_id}", dependencies=[Depends(get_current_operator)])
def read_booking(booking_id: int, db: Session = Depends(get_db)):
    db_booking = crud.get_booking(db, booking_id)
    if db_booking is None:
        raise _booking_not_found(booking_id)
    return {"success": True, "data": schemas.BookingRead.model_validate(db_booking)}


@router.patch("/{booking_id}", dependencies=[Depends(get_current_operator)])
def patch_booking(
        booking_id: int,
        changes: schemas.BookingPatch,
        db: Session = Depends(get_db),
        redis_client: Redis | None = Depends(get_redis_client),
):
    db_booking = crud.update_booking(db, booking_id, changes.model_dump(mode="json", exclude_unset=True))
    if db_booking is None:
        raise _booking_not_found(booking_id)
    cache.invalidate_calendar(redis_client)
    return {"success": True, "data": schemas.BookingRead.model_validate(db_booking)}


@router.delete("/{booking_id}", dependencies=[Depends(get_current_operator)])
def delete_booking(
        booking_id: int,
        db: Session = Depends(get_db),
        redis_client: Redis | None = Depends(get_redis_client),
):
    """
    Delete a booking. Assignments pointing at it are kept and reported as orphaned.
    """
    if not crud.delete_booking(db, booking_id):
        raise _booking_not_found(booking_id)
    cache.invalidate_calendar(redis_client)
    return {"success": True}
