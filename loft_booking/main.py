from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from loft_booking.config import get_settings
from loft_booking.routes.appointments import router as appointments_router
from loft_booking.routes.auth import router as auth_router
from loft_booking.routes.booking import router as booking_router
from loft_booking.routes.customer import router as customer_router
from loft_booking.routes.health import router as health_router
from loft_booking.services.registry import get_registry


def configure_logging() -> None:
    """Use the configured level, INFO unless overridden."""
    level = getattr(logging, get_settings().log_level.upper(), logging.INFO)
    root_logger = logging.getLogger()
    if not root_logger.handlers:
        logging.basicConfig(
            level=level,
            format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        )
    else:
        root_logger.setLevel(level)


configure_logging()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    settings_snapshot = settings.model_dump(exclude={"uschedule_app_key"})
    logger.info("Application settings on startup: %s", settings_snapshot)
    if not settings.uschedule_app_key:
        logger.warning("LOFT_USCHEDULE_APP_KEY is not set; vendor calls will be rejected")
    logger.info("Application startup complete.")

    try:
        yield
    finally:
        logger.info("Closing booking service connections.")
        await get_registry().close()
        logger.info("Application shutdown complete.")


settings = get_settings()
app = FastAPI(
    title=settings.app_name,
    lifespan=lifespan,
    redirect_slashes=False,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth_router, prefix="/auth")
app.include_router(booking_router, prefix="/booking/sessions")
app.include_router(appointments_router, prefix="/appointments")
app.include_router(customer_router, prefix="/customer")
app.include_router(health_router)
