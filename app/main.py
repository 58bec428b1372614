from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core.db import Base, engine
from core.environment import should_create_schema
from core.logging import setup_logging
from exceptions import register_exception_handlers
from routers import export, health, metrics, result, trips
import models  # noqa: F401  registers every table on Base.metadata

setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if should_create_schema():
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database schema ensured")
    try:
        yield
    finally:
        # teardown on shutdown
        await engine.dispose()


app = FastAPI(title="EV Trip Service", lifespan=lifespan)

register_exception_handlers(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],   # Allows POST, GET, OPTIONS, etc
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(trips.router)
app.include_router(result.router)
app.include_router(export.router)
app.include_router(metrics.router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8000)
