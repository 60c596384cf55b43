# attendance_hub/main.py
import logging

from fastapi import FastAPI

from attendance_hub.api.routes import health, meetings
from attendance_hub.core.config import get_settings
from attendance_hub.core.logging_config import configure_logging
from attendance_hub.db.session import init_db

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    """
    Application factory for the Attendance Hub backend.
    """
    settings = get_settings()
    configure_logging(settings.LOG_LEVEL)

    app = FastAPI(
        title=settings.APP_NAME,
        description=(
            "Backend for church meeting attendance: recurring meeting creation,\n"
            "live QR check-in windows and idempotent member check-in."
        ),
        version="0.1.0",
    )

    # Routers
    app.include_router(health.router)
    app.include_router(meetings.router)

    @app.on_event("startup")
    async def on_startup() -> None:  # pragma: no cover
        await init_db()
        logger.info("%s started (env=%s)", settings.APP_NAME, settings.APP_ENV)

    return app


app = create_app()
