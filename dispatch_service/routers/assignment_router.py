from typing import Optional

from fastapi import APIRouter, Depends, status
from redis import Redis
from sqlalchemy.orm import Session

from .. import schemas, crud, cache
from ..database import get_db, get_redis_client
from ..exceptions import NotFound, ValidationError
from ..security import get_current_operator

router = APIRouter(
    prefix="/driver-assignments",
    tags=["Driver Assignments"],
    dependencies=[Depends(get_current_operator)],
)


@router.get("")
def list_assignments(db: Session = Depends(get_db)):
    """
    All assignments, newest first.
    """
    assignments = crud.get_assignments(db)
    return {"success": True, "data": [schemas.AssignmentRead.model_validate(a) for a in assignments]}


@router.get("/{assignment_id}")
def read_assignment(assignment_id: int, db: Session = Depends(get_db)):
    db_assignment = crud.get_assignment(db, assignment_id)
    if db_assignment is None:
        raise NotFound(f"Driver assignment {assignment_id} not found")
    return {"success": True, "data": schemas.AssignmentRead.model_validate(db_assignment)}


@router.post("", status_code=status.HTTP_201_CREATED)
def create_assignment(
        assignment: schemas.AssignmentCreate,
        db: Session = Depends(get_db),
        redis_client: Redis | None = Depends(get_redis_client),
):
    """
    Assign a driver to a booking. A pending booking is confirmed in the same transaction.
    """
    db_assignment, db_booking = crud.create_assignment(db, assignment)
    cache.invalidate_calendar(redis_client)
    return {
        "success": True,
        "data": schemas.AssignmentRead.model_validate(db_assignment),
        "booking": schemas.BookingRead.model_validate(db_booking),
    }


@router.put("")
def replace_assignment(
        assignment: schemas.AssignmentUpdate,
        db: Session = Depends(get_db),
        redis_client: Redis | None = Depends(get_redis_client),
):
    db_assignment = crud.update_assignment(db, assignment)
    cache.invalidate_calendar(redis_client)
    return {"success": True, "data": schemas.AssignmentRead.model_validate(db_assignment)}


@router.delete("")
def delete_assignment(
        id: Optional[int] = None,
        db: Session = Depends(get_db),
        redis_client: Redis | None = Depends(get_redis_client),
):
    """
    Delete an assignment by id. Deleting one that is already gone still succeeds.
    """
    if id is None:
        raise ValidationError("Missing assignment id.", {"id": ["Field required"]})
    deleted = crud.delete_assignment(db, id)
    if deleted:
        cache.invalidate_calendar(redis_client)
    return {"success": True, "deleted": deleted}
