"""
Creator Brand Matcher - Main Application
FastAPI Entry Point with APScheduler for the shortlist event outbox
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
import structlog

from matcher.config import settings
from matcher.database import init_db
from matcher.errors import MatchingError
from matcher.middleware import CorrelationIdMiddleware
from matcher.routers import matches_router
from matcher.scheduler import run_outbox_drain, start_scheduler
from matcher.services.monitoring import setup_logging

# Structured Logging Setup
structlog.configure(
    processors=[
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.add_log_level,
        structlog.processors.JSONRenderer()
    ]
)
setup_logging()
logger = structlog.get_logger()

# FastAPI App
app = FastAPI(
    title="Creator Brand Matcher",
    description="Discovery, scoring and match lifecycle for creators and brands",
    version="0.1.0",
    docs_url="/docs" if settings.environment == "development" else None,
    redoc_url="/redoc" if settings.environment == "development" else None,
)

app.add_middleware(CorrelationIdMiddleware)

# Set on startup
scheduler = None

# Register routers
app.include_router(matches_router)


@app.exception_handler(MatchingError)
async def matching_error_handler(request: Request, exc: MatchingError):
    """Render engine errors as {"error": ..., "code": ...}."""
    log = logger.warning if exc.status_code < 500 else logger.error
    log("request_failed",
        path=request.url.path,
        code=exc.code,
        error=exc.message,
        status_code=exc.status_code)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.on_event("startup")
async def startup_event():
    """Application Startup"""
    global scheduler
    logger.info("startup", environment=settings.environment)

    init_db()
    logger.info("database_initialized")

    scheduler = start_scheduler(settings.environment)


@app.on_event("shutdown")
async def shutdown_event():
    """Application Shutdown"""
    logger.info("shutdown")

    if scheduler is not None and scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("scheduler_stopped")


@app.get("/")
async def root():
    """Root Endpoint"""
    return {
        "message": "Creator Brand Matcher API",
        "version": "0.1.0",
        "status": "running"
    }


@app.get("/health")
async def health_check():
    """
    Health Check Endpoint
    Reports whether the API, scheduler and stores are up
    """
    health_status = {
        "status": "healthy",
        "environment": settings.environment,
        "services": {
            "api": "running",
            "scheduler": "running" if scheduler is not None and scheduler.running else "stopped"
        }
    }

    if settings.database_url:
        health_status["services"]["database"] = "configured"

    health_status["services"]["conversations"] = (
        "remote" if settings.conversation_service_url else "local"
    )

    return JSONResponse(
        content=health_status,
        status_code=200
    )


@app.post("/api/v1/admin/outbox/drain")
def trigger_outbox_drain():
    """
    Manually trigger the shortlist event drain.

    For testing and operational purposes. Retries undelivered conversation
    creations immediately instead of waiting for the next interval.

    Returns:
        dict: Drain counts and status
    """
    result = run_outbox_drain()
    if result is None:
        return {
            "status": "error",
            "message": "Drain skipped or failed, see logs"
        }

    return {
        "status": "completed",
        "result": result
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "matcher.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.environment == "development"
    )
