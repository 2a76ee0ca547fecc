"""
CheapAlarms Admin Gateway

Same-origin /api/* surface in front of the WordPress REST API, plus a
scheduled WordPress health poll.
"""

import logging
from contextlib import asynccontextmanager

import uvicorn
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from fastapi import FastAPI

from cheapalarms import __version__
from cheapalarms.api import auth_router, dashboard_router, ghl_router, proxy_router
from cheapalarms.config import settings
from cheapalarms.error_handler import (
    CheapAlarmsError,
    ErrorSeverity,
    safe_scheduled_job,
    setup_logging,
    slack_notifier,
)
from cheapalarms.services import wp_client
from cheapalarms.utils import state_manager

# ============================================================================
# Health Poll
# ============================================================================


@safe_scheduled_job
async def check_wordpress_health():
    """Poll WordPress /ca/v1/health and record the result"""

    try:
        payload = await wp_client.health()
    except CheapAlarmsError as e:
        # Recorded, then handed to the decorator for logging and Slack
        entry = state_manager.record_health_check(False, details=e.message)
        logging.warning(f"WordPress health check failed at {entry['checked_at']}: {e.message}")
        raise

    ok = isinstance(payload, dict) and payload.get("ok", True) is not False
    entry = state_manager.record_health_check(ok, details=payload)

    if not ok:
        await slack_notifier.send_error(
            error=Exception("WordPress reported unhealthy"),
            function_name="check_wordpress_health",
            severity=ErrorSeverity.HIGH,
            context={"details": payload, "checked_at": entry["checked_at"]},
        )

    logging.info(f"WordPress health: {'ok' if ok else 'degraded'}")
    return entry


# ============================================================================
# FastAPI App
# ============================================================================

# Scheduler instance
scheduler = AsyncIOScheduler()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup/shutdown"""
    setup_logging()

    scheduler.add_job(
        check_wordpress_health,
        "interval",
        minutes=settings.health_check_interval_minutes,
        id="check_wordpress_health",
        replace_existing=True,
    )
    scheduler.start()
    logging.info("Scheduler started")

    # Run immediately on startup
    await check_wordpress_health()

    yield

    scheduler.shutdown()
    await slack_notifier.close()
    logging.info("Scheduler stopped")


app = FastAPI(
    title="CheapAlarms Admin Gateway",
    description="Proxies the admin back-office API to WordPress and GoHighLevel",
    version=__version__,
    lifespan=lifespan,
)

app.include_router(auth_router)
app.include_router(ghl_router)
app.include_router(dashboard_router)
app.include_router(proxy_router)


# ============================================================================
# API Endpoints
# ============================================================================


@app.get("/")
async def root():
    """Root endpoint with status"""
    stats = state_manager.get_stats()

    return {
        "status": "running",
        "environment": settings.app_env,
        "interval_minutes": settings.health_check_interval_minutes,
        "stats": stats,
    }


@app.get("/health")
async def health():
    """Health check endpoint"""
    return {"status": "ok"}


@app.get("/stats")
async def get_stats():
    """Get gateway statistics"""
    return {
        "state_file": str(state_manager.file_path),
        "last_health_check": state_manager.get_last_health_check(),
        "stats": state_manager.get_stats(),
    }


def main():
    uvicorn.run("cheapalarms.main:app", host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    main()
