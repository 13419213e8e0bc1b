import logging
from contextlib import asynccontextmanager
from pathlib import Path

import uvicorn
from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from sqlconsole.core.config import settings
from sqlconsole.core.database import engine
from sqlconsole.api.router import api_router

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


# Close the engine once everything is done and every session has let go of its connection
@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"SQL console listening on {settings.HOST}:{settings.PORT}")
    yield
    await engine.dispose()


app = FastAPI(title="SQL Console", lifespan=lifespan)

# Include the master router containing the websocket and health endpoints
app.include_router(api_router)

# Mounted last so /ws and /health are matched before the static catch-all
if Path(settings.STATIC_DIR).is_dir():
    app.mount("/", StaticFiles(directory=settings.STATIC_DIR, html=True), name="static")
else:
    logger.warning(f"Static directory '{settings.STATIC_DIR}' not found, serving API only")


def run():
    uvicorn.run(
        app,
        host=settings.HOST,
        port=settings.PORT,
        ws_max_size=settings.WS_MAX_MESSAGE_SIZE,
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    run()
