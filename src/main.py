"""
Codepool Execution Service - bounded, time-limited code execution
"""
import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import make_asgi_app
import uvicorn

from core.config import get_settings
from core.executor import ExecutionScheduler
from core.executor_setup import start_scheduler, cleanup_scheduler, get_scheduler
from core.posthog_client import PostHogClient, report_unhandled_error
from api import execute

# Get settings
settings = get_settings()

# Configure logging
logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""

    # Startup
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")

    PostHogClient.initialize(settings)

    # Probes interpreter availability once for the process lifetime
    await start_scheduler(settings)

    yield

    # Shutdown
    logger.info("Shutting down execution service")

    # Wait for in-flight executions before exiting
    await cleanup_scheduler()

    PostHogClient.shutdown()

# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

# Add middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(GZipMiddleware, minimum_size=1000)

# Mount Prometheus metrics
if settings.enable_metrics:
    metrics_app = make_asgi_app()
    app.mount("/metrics", metrics_app)

# Include routers
app.include_router(execute.router, prefix="/api/v1")

# Exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler"""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    report_unhandled_error(exc, path=request.url.path)

    return JSONResponse(
        status_code=500,
        content={
            "detail": "Internal server error",
            "type": type(exc).__name__,
        }
    )

# Root endpoint
@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "service": settings.app_name,
        "version": settings.app_version,
        "status": "running",
        "endpoints": {
            "execute": "/api/v1/execute",
            "batch": "/api/v1/execute/batch",
            "languages": "/api/v1/execute/languages",
            "health": "/health",
            "metrics": "/metrics" if settings.enable_metrics else None,
            "docs": "/docs" if settings.debug else None,
        }
    }

# Health check
@app.get("/health")
async def health(scheduler: ExecutionScheduler = Depends(get_scheduler)):
    """Health check endpoint"""
    status = await scheduler.health_check()

    return {
        "status": "healthy" if status.healthy else "degraded",
        "service": "codepool",
        "version": settings.app_version,
        "checks": {
            "scheduler": status.healthy,
            "runtimes": status.runtimes,
        },
        "pool": {
            "max_workers": status.max_workers,
            "in_flight": status.in_flight,
            "available": status.available_slots,
        },
    }

def main():
    """Main entry point"""
    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        workers=settings.workers if not settings.debug else 1,
        log_level="info" if not settings.debug else "debug",
    )

if __name__ == "__main__":
    main()
