from __future__ import annotations
import uuid
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from app.config import settings
from app.logging_setup import configure_logging
from app.routes.system import router as system_router
from app.routes.auth import router as auth_router
from app.routes.campaigns import router as campaigns_router
from app.routes.submissions import router as submissions_router
from app.routes.reviews import router as reviews_router
from app.routes.admin import router as admin_router
from app.routes.promos import router as promos_router
from app.services.realtime import build_change_feed, set_change_feed
from app.services.scorecards import build_scorecard_refresher, scorecard_change_handler
from app.services.status_refresh import build_status_scheduler
import structlog

configure_logging()
log = structlog.get_logger()

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    log.info("startup", env=settings.environment, version=settings.app_version, git_sha=settings.git_sha)
    feed = build_change_feed(settings.realtime_backend)
    set_change_feed(feed)
    refresher = build_scorecard_refresher(settings.refresh_debounce_ms / 1000)
    feed.subscribe(scorecard_change_handler(refresher))
    await feed.start()

    scheduler = None
    if settings.status_refresh_seconds > 0:
        scheduler = build_status_scheduler(settings.status_refresh_seconds)
        scheduler.start()

    app.state.change_feed = feed
    app.state.scorecard_refresher = refresher
    yield
    # Shutdown
    if scheduler is not None:
        scheduler.shutdown(wait=False)
    await refresher.close()
    await feed.close()
    set_change_feed(None)
    log.info("shutdown")

app = FastAPI(
    title=f"{settings.app_display_name} API",
    version=settings.app_version,
    lifespan=lifespan,
    description=f"{settings.app_display_name} API for daily trade journaling campaigns"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.environment == "dev" else settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(system_router)
app.include_router(auth_router)
app.include_router(campaigns_router)
app.include_router(submissions_router)
app.include_router(reviews_router)
app.include_router(admin_router)
app.include_router(promos_router)

@app.middleware("http")
async def add_request_id(request: Request, call_next):
    rid = request.headers.get("x-request-id") or str(uuid.uuid4())
    request.state.request_id = rid
    structlog.contextvars.bind_contextvars(request_id=rid)
    response: Response = await call_next(request)
    response.headers["X-Request-ID"] = rid
    structlog.contextvars.clear_contextvars()
    return response
