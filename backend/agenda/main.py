import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from redis import Redis
from sqlalchemy import text
from sqlalchemy.engine import Engine

from .config import Settings, settings as default_settings
from .database import build_engine, build_session_factory, init_db
from .errors import (
    GENERIC_FAILURE_MESSAGE,
    BookingError,
    GenerationInProgressError,
    NotFoundError,
    PersistenceError,
    SlotUnavailableError,
    ValidationError,
)
from .redis_client import build_redis
from .routers import availability_rules, reservations, slots
from .services.generation_scheduler import slot_generation_loop
from .services.notification_consumer import notification_consumer_loop
from .services.notifications import Notifier, WebhookNotifier, build_notifier
from .services.slots import BookingConfig, GenerationLocker

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Error → (HTTP status, expose message to client)
ERROR_STATUS: list[tuple[type[BookingError], int, bool]] = [
    (ValidationError, 422, True),
    (NotFoundError, status.HTTP_404_NOT_FOUND, True),
    (SlotUnavailableError, status.HTTP_409_CONFLICT, True),
    (GenerationInProgressError, status.HTTP_409_CONFLICT, True),
    (PersistenceError, status.HTTP_503_SERVICE_UNAVAILABLE, False),
]


def create_app(
    settings: Settings | None = None,
    engine: Engine | None = None,
    redis: Redis | None = None,
    notifier: Notifier | None = None,
    booking_config: BookingConfig | None = None,
) -> FastAPI:
    """
    Build the API with explicit dependencies.

    Anything not passed in is built from settings (DATABASE_URL, REDIS_URL,
    NOTIFY_WEBHOOK_URL, ...).
    """
    settings = settings or default_settings
    engine = engine or build_engine(settings.resolved_database_url)
    if redis is None:
        redis = build_redis(settings.redis_url)
    if notifier is None:
        notifier = build_notifier(settings, redis)
    booking_config = booking_config or BookingConfig(
        utc_offset_minutes=settings.utc_offset_minutes,
        lock_timeout_seconds=settings.generation_lock_timeout_seconds,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        init_db(engine)
        tasks = []

        if redis is not None and settings.notify_webhook_url:
            webhook = WebhookNotifier(settings.notify_webhook_url, timeout=settings.notify_timeout_seconds)
            tasks.append(asyncio.create_task(notification_consumer_loop(redis, webhook)))

        if settings.auto_generate_days > 0:
            tasks.append(asyncio.create_task(slot_generation_loop(
                app.state.session_factory,
                settings.auto_generate_days,
                settings.auto_generate_interval_seconds,
                config=booking_config,
                locker=app.state.generation_locker,
            )))

        yield

        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    app = FastAPI(title="Agenda API", lifespan=lifespan)

    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)
    app.state.redis = redis
    app.state.notifier = notifier
    app.state.booking_config = booking_config
    app.state.generation_locker = GenerationLocker(redis, booking_config)

    app.include_router(availability_rules.router)
    app.include_router(slots.router)
    app.include_router(reservations.router)

    @app.exception_handler(BookingError)
    async def booking_error_handler(request: Request, exc: BookingError):
        for error_type, status_code, expose in ERROR_STATUS:
            if isinstance(exc, error_type):
                if not expose:
                    logger.error(f"{request.method} {request.url.path} failed: {exc}")
                detail = str(exc) if expose else GENERIC_FAILURE_MESSAGE
                return JSONResponse(status_code=status_code, content={"detail": detail})

        logger.error(f"Unhandled booking error on {request.url.path}: {exc}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": GENERIC_FAILURE_MESSAGE},
        )

    @app.get("/health")
    def health():
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return {
            "db": True,
            "redis": redis.ping() if redis is not None else None,
        }

    return app
