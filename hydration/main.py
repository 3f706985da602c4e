"""hydration - water reminder backend for a WeChat mini program."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from hydration.core.logging import configure_logfire, instrument_fastapi
from hydration.core.scheduler import job_names, start_scheduler, stop_scheduler
from hydration.core.scheduler_tracker import job_tracker
from hydration.core.schema import init_db
from hydration.interface.error_handlers import register_exception_handlers
from hydration.interface.water_task_router import router as water_task_router
from hydration.interface.wechat_router import login_router, router as wechat_router


logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan context manager."""
    # Startup
    configure_logfire()

    await init_db()
    logger.info("Database initialized")

    start_scheduler()
    yield
    # Shutdown
    stop_scheduler()


app = FastAPI(
    title="hydration",
    description="Water reminder backend for a WeChat mini program",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

# Instrument FastAPI with Logfire
instrument_fastapi(app)

register_exception_handlers(app)

# Register routers
app.include_router(water_task_router)
app.include_router(wechat_router)
app.include_router(login_router)


@app.get("/", response_class=PlainTextResponse)
async def index() -> str:
    return "Water Reminder Backend is running!"


@app.get("/health")
async def health_check() -> JSONResponse:
    """Health check endpoint."""
    return JSONResponse(content={"status": "healthy"}, status_code=200)


@app.get("/health/scheduler")
async def scheduler_health_check() -> JSONResponse:
    """Scheduler health check endpoint with job statuses."""
    job_statuses = {}
    for job_name in job_names():
        job_statuses[job_name] = await job_tracker.get_job_status(job_name)

    has_failures = any(status["consecutive_failures"] > 0 for status in job_statuses.values())
    overall_status = "degraded" if has_failures else "healthy"

    return JSONResponse(
        content={"status": overall_status, "jobs": job_statuses},
        status_code=200 if overall_status == "healthy" else 503,
    )
