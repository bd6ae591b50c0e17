# file: HIVE/main.py

# Standard library
import logging

# FastAPI core + responses
from fastapi import FastAPI, Request, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# Third‑party
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from slowapi.errors import RateLimitExceeded

# ------------------------------
# Routers and core
# ------------------------------
from HIVE.core import config
from HIVE.core.errors import LifecycleError
from HIVE.core.firebase import get_db
from HIVE.core.logger import setup_logging
from HIVE.core.rate_limit import limiter, rate_limit_handler
from HIVE.EVENTS.lifecycle import update_event_states
from HIVE.EVENTS.listener import start_creation_listener
from HIVE.EVENTS.routes import router as event_router

logger = logging.getLogger("main")

# App initialization
app = FastAPI(title="HIVE Event Lifecycle API")

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # tighten in prod if needed
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Rate limiter
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_handler)


@app.exception_handler(LifecycleError)
async def lifecycle_error_handler(request: Request, exc: LifecycleError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


app.include_router(event_router)


# Ping endpoint
@app.get("/ping")
@limiter.limit("5/minute")
async def ping(request: Request):
    return {"message": "pong"}


@app.get("/firebase/health")
async def firebase_health():
    try:
        project = getattr(get_db(), "project", None)
        return {"ok": True, "firestore_project": project}
    except Exception as e:
        logger.exception("Firebase health check failed: %s", e)
        raise HTTPException(status_code=500, detail="Firebase health check failed")


# Startup scheduled job
@app.on_event("startup")
async def startup_event():
    """
    Start the 15-minute state advancer and the new-event listener.
    """
    setup_logging()

    if config.ENABLE_LIFECYCLE_SCHEDULER:
        scheduler = AsyncIOScheduler()
        scheduler.add_job(
            update_event_states,
            "interval",
            minutes=config.EVENT_STATE_INTERVAL_MINUTES,
            id="update_event_states",
            max_instances=1,
            coalesce=True,
        )
        scheduler.start()
        app.state.scheduler = scheduler
        logger.info(
            "[SCHEDULER] Event state advancer scheduled every %d minutes.",
            config.EVENT_STATE_INTERVAL_MINUTES,
        )

    if config.ENABLE_CREATION_LISTENER:
        app.state.creation_watch = start_creation_listener()


@app.on_event("shutdown")
async def shutdown_event():
    scheduler = getattr(app.state, "scheduler", None)
    if scheduler is not None:
        scheduler.shutdown(wait=False)

    watch = getattr(app.state, "creation_watch", None)
    if watch is not None:
        watch.unsubscribe()
