from contextlib import asynccontextmanager
import logging

from gaptrack.services.ai_service import AIService
from gaptrack.storage import StorageSession

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app):
    session = StorageSession(app.state.config)
    await session.start()
    app.state.storage = session
    app.state.ai = AIService()

    yield

    await app.state.ai.aclose()
    try:
        await session.close()
    except Exception as exc:  # pragma: no cover
        logger.warning("storage_close_failed: %s", exc)
