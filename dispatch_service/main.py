import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import models
from .config import settings
from .database import engine
from .exceptions import DispatchError, ValidationError
from .routers import assignment_router, auth_router, booking_router, calendar_router, driver_router
from .outbox_poller import run_outbox_poller
from .integrity_monitor import run_integrity_monitor

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger("dispatch_service")

# Development convenience; production schemas come from Alembic
models.Base.metadata.create_all(bind=engine)


async def _stop_task(task: asyncio.Task, name: str):
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        logger.info(f"{name} task successfully cancelled.")
    except Exception as e:
        logger.error(f"Error during {name} shutdown: {e}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Starts the outbox poller and the integrity monitor, and stops them on shutdown.
    """
    tasks = []
    if settings.ENABLE_BACKGROUND_TASKS:
        logger.info("Starting background tasks...")
        tasks.append((asyncio.create_task(run_outbox_poller()), "Outbox poller"))
        tasks.append((asyncio.create_task(run_integrity_monitor()), "Integrity monitor"))

    yield

    logger.info("Shutting down background tasks...")
    for task, name in tasks:
        await _stop_task(task, name)


app = FastAPI(
    title="Tour Dispatch API",
    description="Driver dispatch and booking management for tour operations.",
    version="1.0.0",
    lifespan=lifespan
)


def _error_response(status_code: int, message: str, details: dict | None = None, headers: dict | None = None):
    body = {"success": False, "error": message}
    if details:
        body["details"] = details
    return JSONResponse(status_code=status_code, content=body, headers=headers)


@app.exception_handler(DispatchError)
async def dispatch_error_handler(request: Request, exc: DispatchError):
    details = exc.details if isinstance(exc, ValidationError) else None
    return _error_response(exc.status_code, exc.message, details)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """
    Reports schema failures as 400 with the messages grouped by field name.
    """
    details: dict[str, list[str]] = {}
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ())]
        if loc and loc[0] in ("body", "query", "path"):
            loc = loc[1:]
        field = loc[-1] if loc else "body"
        details.setdefault(field, []).append(error.get("msg", "Invalid value"))
    return _error_response(status.HTTP_400_BAD_REQUEST, "Invalid request data", details)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return _error_response(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))


@app.exception_handler(SQLAlchemyError)
async def store_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error(f"Database error on {request.method} {request.url.path}", exc_info=exc)
    return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "A database error occurred.")


app.include_router(auth_router.router)
app.include_router(assignment_router.router)
app.include_router(driver_router.router)
app.include_router(booking_router.router)
app.include_router(calendar_router.router)


@app.get("/")
def read_root():
    return {"message": "Welcome to the Tour Dispatch API"}


@app.get("/health")
def health():
    return {"status": "ok"}
