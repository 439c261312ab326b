import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import sentry_sdk

from gaptrack.api.v1.health import router as health_router
from gaptrack.api.v1.ai import router as ai_router
from gaptrack.api.v1.storage import router as storage_router
from gaptrack.api.v1.tracker import router as tracker_router
from gaptrack.core.config import Settings, settings
from gaptrack.core.cors import cors_allowed_origins
from dotenv import load_dotenv
from gaptrack.core.lifespan import lifespan

load_dotenv()
logging.basicConfig(level=settings.log_level, format="%(message)s")
if settings.sentry_dsn:
    sentry_sdk.init(dsn=settings.sentry_dsn)


def create_app(config: Settings | None = None) -> FastAPI:
    app = FastAPI(title="GapTrack API", version="0.1.0", lifespan=lifespan)
    app.state.config = config or settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_allowed_origins(app.state.config),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health_router, prefix="/v1", tags=["Health"])
    app.include_router(storage_router, prefix="/v1", tags=["Storage"])
    app.include_router(tracker_router, prefix="/v1", tags=["Tracker"])
    app.include_router(ai_router, prefix="/v1", tags=["AI"])
    return app


app = create_app()
