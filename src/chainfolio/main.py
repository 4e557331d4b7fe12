"""FastAPI application entry point."""

from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse

from chainfolio.api.deps import get_context
from chainfolio.api.routers import chains_router, portfolio_router
from chainfolio.app_context import AppContext, get_app_context
from chainfolio.config.logging_config import setup_logging
from chainfolio.config.settings import get_settings
from chainfolio.core.exceptions import AppError


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    setup_logging()
    context = get_app_context()
    context.start()
    yield
    # Shutdown
    context.close()


settings = get_settings()

app = FastAPI(
    title=settings.app_name,
    description="Rate-limited multichain portfolio fetching and aggregation",
    version=settings.app_version,
    lifespan=lifespan,
)

# Include routers
app.include_router(portfolio_router)
app.include_router(chains_router)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Global handler for application errors."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.code, "message": exc.message},
    )


@app.get("/health")
def health_check(context: AppContext = Depends(get_context)) -> dict:
    """Health check endpoint."""
    return {
        "status": "healthy",
        "worker_running": context.worker.is_running,
        "queue_depth": len(context.job_queue),
    }


@app.get("/")
def root() -> dict[str, str]:
    """Root endpoint with API info."""
    return {
        "app": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs",
    }
