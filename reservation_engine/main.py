import asyncio
import logging
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from reservation_engine.api.dependencies import use_case_scope
from reservation_engine.api.deps import engine
from reservation_engine.api.routers.bookings import router as bookings_router
from reservation_engine.api.routers.health import router as health_router
from reservation_engine.api.routers.payment_events import router as payment_events_router
from reservation_engine.api.routers.payouts import router as payouts_router
from reservation_engine.api.routers.resources import router as resources_router
from reservation_engine.api.routers.worker import router as worker_router
from reservation_engine.config import get_settings
from reservation_engine.domain.errors import DomainError
from reservation_engine.infrastructure.db.tables import metadata
from reservation_engine.infrastructure.messaging.settlement_worker import SettlementWorker

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    # Create tables for dev/demo; production schemas are managed outside the app
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)

    if not settings.stripe_webhook_secret:
        logger.warning("STRIPE_WEBHOOK_SECRET is not set, every payment event will be rejected")

    worker = None
    worker_task = None
    if settings.run_background_worker:
        worker = SettlementWorker(
            use_case_scope=lambda: use_case_scope(settings),
            poll_interval_seconds=settings.worker_poll_interval_seconds,
        )
        worker_task = asyncio.create_task(worker.start())

    yield

    if worker is not None:
        await worker.stop()
        worker_task.cancel()
        try:
            await worker_task
        except asyncio.CancelledError:
            pass
    await engine.dispose()


app = FastAPI(
    title="Reservation Engine",
    version="0.1.0",
    lifespan=lifespan,
)


@app.exception_handler(DomainError)
async def domain_error_handler(request: Request, exc: DomainError):
    if exc.http_status >= 500:
        logger.error(
            "Domain error",
            extra={"code": exc.code, "path": request.url.path, "details": exc.details},
        )
    return JSONResponse(
        status_code=exc.http_status,
        content={"code": exc.code, "message": exc.message, "details": exc.details},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """
    Unhandled exceptions are logged with an error_id and answered with a
    generic message, so no stack trace reaches the client.
    """
    error_id = str(uuid.uuid4())

    logger.error(
        "Unhandled exception occurred",
        exc_info=exc,
        extra={
            "error_id": error_id,
            "path": request.url.path,
            "method": request.method,
            "client_host": request.client.host if request.client else None,
        },
    )

    return JSONResponse(
        status_code=500,
        content={
            "detail": "Internal server error",
            "error_id": error_id,
            "message": "An unexpected error occurred. Please contact support with the error_id if the issue persists.",
        },
    )


app.include_router(health_router, tags=["Health"])
app.include_router(resources_router, tags=["Availability"])
app.include_router(bookings_router, tags=["Bookings"])
app.include_router(payment_events_router, tags=["Payment events"])
app.include_router(payouts_router, tags=["Payouts"])
app.include_router(worker_router, prefix="/api/v1", tags=["Worker"])
