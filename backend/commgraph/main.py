"""FastAPI application entrypoint."""

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI

from commgraph.config import get_settings
from commgraph.db.base import Base
from commgraph.db.session import engine
from commgraph.routers import entities, extraction, merges

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    Base.metadata.create_all(bind=engine)
    logger.info("app.started database_url=%s", engine.url.render_as_string(hide_password=True))
    yield


app = FastAPI(title=get_settings().app_name, version="0.1.0", lifespan=lifespan)

app.include_router(extraction.router, tags=["extraction"])
app.include_router(entities.router, tags=["entities"])
app.include_router(merges.router, tags=["merges"])


@app.get("/health")
def health() -> dict[str, str]:
    """Simple health check endpoint."""

    return {"status": "ok"}
