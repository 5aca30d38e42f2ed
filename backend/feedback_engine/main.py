"""
Main FastAPI application entry point.
This module sets up the FastAPI application, middleware, the document store
connection, and includes the feedback and admin API routes.
"""

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from contextlib import asynccontextmanager
import logging
import asyncio
from typing import AsyncGenerator
from datetime import datetime, timezone

from .config import settings
from .core.db_mongo import mongodb_client
from .services.llm_handler import llm_handler
from .api import feedback, admin
from .middleware.rate_limiter import RateLimitMiddleware
from .utils.metrics import metrics_collector, PerformanceTimer

# Configure logging
logging.basicConfig(
    level=logging.INFO if settings.debug_mode else logging.WARNING,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

logger = logging.getLogger(__name__)

SERVICE_VERSION = "1.0.0"


def _log_configuration():
    """Log application configuration."""
    logger.info("\nPhase 1: Configuration Check")
    logger.info("-" * 80)
    logger.info(f"  APP_ENV: {settings.app_env}")
    logger.info(f"  DEBUG_MODE: {settings.debug_mode}")
    logger.info(f"  MONGODB_URI configured: {bool(settings.mongodb_uri)}")
    logger.info(f"  LLM_API_URL: {settings.llm_api_url} (model: {settings.llm_model_name})")
    logger.info(f"  ANALYTICS_TIMEZONE: {settings.analytics_timezone}, WEEK_START_DAY: {settings.week_start_day}")


async def _safe_connect(client_connect_coro, name: str, timeout_seconds: float = 5.0) -> bool:
    """Safely connect to a service with timeout."""
    try:
        connected = await asyncio.wait_for(client_connect_coro, timeout=timeout_seconds)
        if connected:
            logger.info(f"  ✓ Connected: {name}")
        else:
            logger.warning(f"  ⚠️ {name} not connected")
        return bool(connected)
    except asyncio.TimeoutError:
        logger.warning(f"  ⚠️ {name} connection timeout")
        return False
    except Exception as e:
        logger.warning(f"  ⚠️ {name} connection error: {type(e).__name__}")
        return False


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """Application lifespan manager - orchestrates startup and shutdown."""
    logger.info("=" * 80)
    logger.info("🚀 APPLICATION STARTUP - Feedback Intelligence Service")
    logger.info("=" * 80)

    try:
        _log_configuration()
        settings.validate_runtime_settings()

        logger.info("\nPhase 2: Connecting to Services")
        logger.info("-" * 80)
        timeout = 30.0 if settings.debug_mode else 10.0
        mongo_ok = await _safe_connect(mongodb_client.connect(), "MongoDB", timeout_seconds=timeout)
        if not mongo_ok and not settings.debug_mode:
            raise RuntimeError("MongoDB failed to connect")

        logger.info("\n" + "=" * 80)
        logger.info("✅ APPLICATION STARTUP COMPLETED SUCCESSFULLY")
        logger.info("=" * 80)

    except Exception as e:
        logger.error(f"❌ Application startup failed: {e}", exc_info=True)
        raise

    yield

    logger.info("=" * 80)
    logger.info("🛑 SHUTDOWN: Disconnecting from all services...")
    logger.info("=" * 80)
    try:
        mongodb_client.disconnect()
        await llm_handler.close()
        logger.info("✅ All services disconnected successfully")
    except Exception as e:
        logger.error(f"Error during shutdown: {e}", exc_info=True)


# Create FastAPI application
app = FastAPI(
    title="Feedback Intelligence API",
    description="Star-rating feedback collection with AI-assisted analysis and analytics",
    version=SERVICE_VERSION,
    docs_url="/docs" if settings.debug_mode else None,
    redoc_url="/redoc" if settings.debug_mode else None,
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
    max_age=3600,
)

app.add_middleware(GZipMiddleware, minimum_size=1000)

# Add rate limiting middleware
if settings.rate_limit_enabled:
    app.add_middleware(RateLimitMiddleware)
    logger.info("✅ Rate limiting enabled")


@app.middleware("http")
async def record_request_metrics(request: Request, call_next):
    """Record latency and status of every request."""
    with PerformanceTimer(f"{request.method} {request.url.path}", log_threshold=5.0) as timer:
        response = await call_next(request)
    if settings.enable_metrics:
        metrics_collector.record_request(request.url.path, timer.duration, response.status_code)
    return response


# Include API routes
app.include_router(
    feedback.router,
    prefix="/api/feedback",
    tags=["Feedback"]
)

app.include_router(
    admin.router,
    prefix="/api/admin",
    tags=["Administration"]
)


@app.get("/health")
async def health_check():
    """Health check endpoint - liveness probe with active connection testing."""
    mongo_healthy = False
    try:
        mongo_healthy = await asyncio.wait_for(mongodb_client.ping(), timeout=2.0)
    except asyncio.TimeoutError:
        logger.debug("Health check: MongoDB ping timed out")

    response = {
        "status": "alive" if mongo_healthy else "degraded",
        "environment": settings.app_env,
        "version": SERVICE_VERSION,
        "databases": {"mongodb": "connected" if mongo_healthy else "disconnected"},
        "llm": {"configured": bool(settings.llm_api_key), "model": settings.llm_model_name},
        "timestamp": datetime.now(timezone.utc).isoformat()
    }
    if not mongo_healthy:
        response["message"] = "Feedback store unavailable; submissions will fail"
    return response


@app.get("/ready")
async def readiness_check():
    """Readiness probe - returns 200 only if the store is available."""
    if not mongodb_client.is_connected():
        logger.warning("Not ready - MongoDB down")
        raise HTTPException(status_code=503, detail="Critical services unavailable")

    return {
        "status": "ready",
        "databases": {"mongodb": "ok"},
        "timestamp": datetime.now(timezone.utc).isoformat()
    }


@app.get("/metrics")
async def get_metrics():
    """Get application performance metrics."""
    if not settings.enable_metrics:
        raise HTTPException(status_code=404, detail="Metrics disabled")

    return {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "metrics": metrics_collector.get_summary()
    }


@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "message": "Feedback Intelligence API",
        "version": SERVICE_VERSION,
        "docs_url": "/docs" if settings.debug_mode else None,
        "endpoints": {
            "health": "/health",
            "submit_feedback": "/api/feedback",
            "list_feedbacks": "/api/admin/feedbacks",
            "analytics": "/api/admin/analytics"
        }
    }


# Error handlers
@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Report request validation failures as 400 with the first message."""
    errors = exc.errors()
    message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
    field = ".".join(str(part) for part in errors[0].get("loc", ()) if part != "body") if errors else ""
    return JSONResponse(
        status_code=400,
        content={
            "success": False,
            "message": "Validation failed",
            "error": f"{field}: {message}" if field else message
        }
    )


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    """Wrap HTTP errors in the API's response envelope."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.detail, "status_code": exc.status_code},
        headers=getattr(exc, "headers", None)
    )


@app.exception_handler(Exception)
async def internal_server_error_handler(request: Request, exc: Exception):
    """Custom 500 handler with production error masking."""
    logger.error(f"Internal server error: {exc}", exc_info=True)

    if settings.app_env == "production":
        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "error": "An unexpected error occurred. Please try again later.",
                "status_code": 500
            }
        )
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": str(exc),
            "type": type(exc).__name__,
            "status_code": 500
        }
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "feedback_engine.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=settings.debug_mode,
        log_level="info" if settings.debug_mode else "warning"
    )
