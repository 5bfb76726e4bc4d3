import asyncio
import logging
from sqlalchemy.orm import Session

from .database import SessionLocal
from .config import settings
from . import dispatch

logger = logging.getLogger("integrity_monitor")


async def check_dispatch_integrity(db: Session) -> dict:
    """
    Builds the integrity report and logs every finding. Read-only.
    """
    logger.info("Checking driver assignments for integrity problems...")
    report = dispatch.integrity_report(db)

    for orphan in report["orphaned_assignments"]:
        logger.warning(
            f"Assignment {orphan['assignment_id']} (driver {orphan['driver_id']}) "
            f"references missing booking {orphan['booking_id']}."
        )
    for dup in report["duplicate_bookings"]:
        logger.warning(f"Booking {dup['booking_id']} has multiple live assignments: {dup['assignment_ids']}.")
    for overlap in report["driver_date_overlaps"]:
        logger.warning(
            f"Driver {overlap['driver_id']} has multiple live assignments on {overlap['date']}: "
            f"{overlap['assignment_ids']}."
        )

    if not any(report.values()):
        logger.info("No integrity problems found.")
    return report


async def run_integrity_monitor():
    """
    Main background loop for the integrity monitor.
    """
    while True:
        db: Session = SessionLocal()
        try:
            await check_dispatch_integrity(db)
        except Exception as e:
            logger.error(f"Error in integrity monitor loop: {e}")
        finally:
            db.close()

        await asyncio.sleep(settings.INTEGRITY_CHECK_INTERVAL_SECONDS)
