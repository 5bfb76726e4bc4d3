import datetime
from typing import Optional

from fastapi import APIRouter, Depends
from redis import Redis
from sqlalchemy.orm import Session

from .. import cache, dispatch
from ..database import get_db, get_redis_client
from ..security import get_current_operator

router = APIRouter(tags=["Dispatch"], dependencies=[Depends(get_current_operator)])


@router.get("/calendar/events")
def read_calendar_events(
        start: Optional[datetime.date] = None,
        end: Optional[datetime.date] = None,
        driver_id: Optional[int] = None,
        db: Session = Depends(get_db),
        redis_client: Redis | None = Depends(get_redis_client),
):
    """
    Assignment events for the operations calendar, which polls this every 10 seconds.
    Only the unfiltered view is cached.
    """
    unfiltered = start is None and end is None and driver_id is None
    if unfiltered:
        cached = cache.get_cached_calendar(redis_client)
        if cached is not None:
            return cached

    events, orphaned = dispatch.calendar_events(db, start=start, end=end, driver_id=driver_id)
    payload = {
        "success": True,
        "events": [e.model_dump(mode="json") for e in events],
        "orphaned_assignment_ids": orphaned,
    }
    if unfiltered:
        cache.store_calendar(redis_client, payload)
    return payload


@router.get("/dispatch/integrity")
def read_integrity_report(db: Session = Depends(get_db)):
    """
    Orphaned assignments, doubly-assigned bookings and same-day driver overlaps.
    Reported only; none of these are rejected on write.
    """
    return {"success": True, "data": dispatch.integrity_report(db)}
