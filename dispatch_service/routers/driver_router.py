from fastapi import APIRouter, Depends, status
from redis import Redis
from sqlalchemy.orm import Session

from .. import schemas, crud, cache, dispatch
from ..database import get_db, get_redis_client
from ..exceptions import NotFound
from ..security import get_current_operator

router = APIRouter(
    prefix="/drivers",
    tags=["Drivers"],
    dependencies=[Depends(get_current_operator)],
)


def _driver_not_found(driver_id: int) -> NotFound:
    return NotFound(f"Driver {driver_id} not found")


@router.get("")
def list_drivers(db: Session = Depends(get_db)):
    drivers = crud.get_drivers(db)
    return {"success": True, "data": [schemas.DriverRead.model_validate(d) for d in drivers]}


@router.post("", status_code=status.HTTP_201_CREATED)
def create_driver(
        driver: schemas.DriverCreate,
        db: Session = Depends(get_db),
):
    db_driver = crud.create_driver(db, driver)
    return {"success": True, "data": schemas.DriverRead.model_validate(db_driver)}


@router.get("/{driver_id}")
def read_driver(driver_id: int, db: Session = Depends(get_db)):
    db_driver = crud.get_driver(db, driver_id)
    if db_driver is None:
        raise _driver_not_found(driver_id)
    return {"success": True, "data": schemas.DriverRead.model_validate(db_driver)}


@router.put("/{driver_id}")
def replace_driver(
        driver_id: int,
        driver: schemas.DriverCreate,
        db: Session = Depends(get_db),
        redis_client: Redis | None = Depends(get_redis_client),
):
    db_driver = crud.update_driver(db, driver_id, driver.model_dump(mode="json"))
    if db_driver is None:
        raise _driver_not_found(driver_id)
    cache.invalidate_calendar(redis_client)
    return {"success": True, "data": schemas.DriverRead.model_validate(db_driver)}


@router.patch("/{driver_id}")
def patch_driver(
        driver_id: int,
        driver: schemas.DriverPatch,
        db: Session = Depends(get_db),
        redis_client: Redis | None = Depends(get_redis_client),
):
    db_driver = crud.update_driver(db, driver_id, driver.model_dump(mode="json", exclude_unset=True))
    if db_driver is None:
        raise _driver_not_found(driver_id)
    cache.invalidate_calendar(redis_client)
    return {"success": True, "data": schemas.DriverRead.model_validate(db_driver)}


@router.delete("/{driver_id}")
def delete_driver(
        driver_id: int,
        db: Session = Depends(get_db),
        redis_client: Redis | None = Depends(get_redis_client),
):
    """
    Hard delete. The driver's assignments go with them.
    """
    if not crud.delete_driver(db, driver_id):
        raise _driver_not_found(driver_id)
    cache.invalidate_calendar(redis_client)
    return {"success": True}


@router.get("/{driver_id}/jobs")
def read_driver_jobs(driver_id: int, db: Session = Depends(get_db)):
    """
    Every booking the driver is assigned to, newest service date first.

    Assignments whose booking no longer exists are not listed as jobs; their
    booking ids are reported in `missing_booking_ids` instead.
    """
    jobs, missing = dispatch.driver_jobs(db, driver_id)
    return {"jobs": jobs, "missing_booking_ids": missing}
