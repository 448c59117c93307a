"""
BugSage - Log Analysis Service Main Application
===============================================

FastAPI application for AI-assisted log analysis.

Responsibilities:
- Classify pasted error logs (error type, stack frames, technology,
  environment, timestamp)
- Ask a language model for a root-cause analysis
- Keep each user's analysis history (save, edit, delete, search, export)
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator
import time
import uuid

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.config import get_settings
from src.api.routes import router as api_router
from src.core.errors import BugSageError
from src.core.history_store import get_history_store
from src.core.llm_analyzer import get_llm_analyzer
from shared.utils.logging import setup_logging, get_logger, set_correlation_id, set_user_id


settings = get_settings()

setup_logging(
    service_name=settings.service_name,
    log_level=settings.log_level,
    json_output=settings.log_json
)

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Build the configured provider and history backend on startup and
    release their connections on shutdown.
    """
    logger.info(
        f"Starting {settings.service_name} v{settings.service_version}",
        extra={
            "version": settings.service_version,
            "llm_provider": settings.llm_provider.value,
            "history_backend": settings.history_backend.value
        }
    )

    analyzer = get_llm_analyzer()
    await analyzer.initialize()
    store = get_history_store()

    logger.info(
        f"Ready: provider={analyzer.provider.value} store={type(store).__name__}",
        extra={"llm_ready": analyzer.is_ready()}
    )

    yield

    await analyzer.shutdown()
    await store.close()
    logger.info(f"{settings.service_name} stopped")


app = FastAPI(
    title="BugSage - Log Analysis Service",
    description="Log classification and AI root-cause analysis with per-user history",
    version=settings.service_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "DELETE"],
    allow_headers=["Authorization", "Content-Type", "X-Correlation-ID"],
    expose_headers=["X-Correlation-ID", "Content-Disposition"],
)


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    """
    Bind the correlation ID for the request and log its outcome.

    The user ID is cleared here and bound again by the auth dependency.
    """
    correlation_id = request.headers.get("X-Correlation-ID") or str(uuid.uuid4())
    set_correlation_id(correlation_id)
    set_user_id(None)

    started = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = round((time.perf_counter() - started) * 1000, 1)

    response.headers["X-Correlation-ID"] = correlation_id

    if request.url.path not in ("/health", "/ready"):
        logger.info(
            f"{request.method} {request.url.path} -> {response.status_code}",
            extra={"status": response.status_code, "duration_ms": elapsed_ms}
        )

    return response


@app.exception_handler(BugSageError)
async def bugsage_exception_handler(request: Request, exc: BugSageError):
    """Render service errors as {"error": code, "message": text}."""
    logger.warning(
        f"{exc.error_code}: {exc.message}",
        extra={"path": request.url.path, "status": exc.status_code}
    )

    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None

    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.error_code, "message": exc.message},
        headers=headers
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler."""
    logger.error(
        f"Unhandled exception: {exc}",
        extra={"path": request.url.path},
        exc_info=True
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_server_error",
            "message": "An unexpected error occurred",
            "detail": str(exc) if settings.debug else None
        }
    )


@app.get("/health", tags=["health"])
async def health_check():
    return {
        "status": "healthy",
        "service": settings.service_name,
        "version": settings.service_version
    }


@app.get("/ready", tags=["health"])
async def readiness_check():
    """Report whether the text-generation provider can take requests."""
    analyzer = get_llm_analyzer()
    llm_ready = analyzer.is_ready()

    return {
        "status": "ready" if llm_ready else "degraded",
        "service": settings.service_name,
        "llm_provider": analyzer.provider.value,
        "llm_ready": llm_ready,
        "history_backend": settings.history_backend.value
    }


app.include_router(api_router, prefix="/api/v1")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "src.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )
