"""
Prices service — FastAPI application entry‑point.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import settings
from app.database import create_tables, engine
from app.errors import setup_error_handlers

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s  %(name)-30s  %(levelname)-5s  %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: ensure the prices table exists
    if settings.CREATE_TABLES:
        create_tables(engine)
        logger.info("Table 'prices' ensured (%s)", engine.url.render_as_string(hide_password=True))
    yield
    engine.dispose()
    logger.info("Shutting down")


app = FastAPI(
    title="Prices",
    description="ZIP/CSV price import → summary, and export back to ZIP/CSV",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

setup_error_handlers(app)


@app.get("/")
async def root():
    return {"service": "Prices", "version": "0.1.0", "status": "running"}


@app.get("/health")
async def health_check():
    return {"status": "healthy"}


# ── Register API router ──────────────────────────────────────────────────
from app.routers.prices import router as prices_router  # noqa: E402

app.include_router(prices_router, prefix="/api", tags=["Prices"])


if __name__ == "__main__":
    import uvicorn

    logger.info("Listening on %s:%d", settings.HOST, settings.PORT)
    uvicorn.run(app, host=settings.HOST, port=settings.PORT)
