import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from weatherbird.config import settings
from weatherbird.database import SessionLocal, init_db
from weatherbird.errors import register_error_handlers

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    _seed()
    from weatherbird.tasks.scheduler import start_scheduler, stop_scheduler
    from weatherbird.tasks.background import drain
    start_scheduler()
    yield
    stop_scheduler()
    await drain()


def _seed():
    """Load the static district records into an empty database."""
    from weatherbird.services.district_resolver import seed_districts
    db = SessionLocal()
    try:
        added = seed_districts(db)
        if added:
            logger.info("Seeded %d school districts", added)
    except Exception as e:
        db.rollback()
        logger.error("District seeding failed: %s", e)
    finally:
        db.close()


app = FastAPI(
    title="WEATHERbird",
    description="Weather, alerts, snow-day and plow coverage for Vermont school districts",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)

from weatherbird.routers import districts, plows, roads, snow_day, weather  # noqa: E402

app.include_router(weather.router, prefix="/api/v1")
app.include_router(snow_day.router, prefix="/api/v1")
app.include_router(districts.router, prefix="/api/v1")
app.include_router(plows.router, prefix="/api/v1")
app.include_router(roads.router, prefix="/api/v1")


@app.get("/health")
async def health():
    return {"status": "ok"}
