"""
Main FastAPI application for the Whitepaper Studio backend.
Handles CORS, request logging middleware, lifespan events, error handlers and router registration.
"""
import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request, status
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.config import settings
from app.database import close_db, init_db
from app.errors import ServiceError
from app.routers import frameworks, health, media, whitepapers

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Startup / shutdown helpers
# ---------------------------------------------------------------------------

async def _check_database() -> bool:
    """Initialise DB tables and verify the connection.  Returns True on success."""
    try:
        await init_db()
        logger.info("✓ Database connection OK")
        return True
    except Exception as exc:
        logger.error("✗ Database connection failed: %s", exc)
        raise


def _check_api_keys() -> dict:
    """
    Report which external services have credentials.
    Never raises; missing keys only disable the features that need them.
    """
    result = {
        "openai": settings.openai_configured(),
        "pinecone": settings.pinecone_configured(),
        "google": settings.google_configured(),
    }

    if result["openai"]:
        logger.info("✓ OpenAI configured (model: %s)", settings.OPENAI_MODEL)
    else:
        logger.warning("⚠ OPENAI_API_KEY not set: whitepaper generation will fail")

    if result["pinecone"]:
        logger.info("✓ Pinecone configured (%s)", settings.PINECONE_INDEX_HOST)
    else:
        logger.warning("⚠ Pinecone not configured: whitepapers will not use the knowledge base")

    if result["google"]:
        logger.info("✓ Google AI configured (image model: %s)", settings.GEMINI_IMAGE_MODEL)
    else:
        logger.warning("⚠ GOOGLE_AI_API_KEY not set: whitepapers will have no illustrations")

    return result


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown event handler."""
    logger.info("=" * 60)
    logger.info("  Starting Whitepaper Studio backend …")
    logger.info("=" * 60)

    # 1. Database (required; raises on failure)
    await _check_database()

    # 2. External API keys (optional; logs warnings but continues)
    _check_api_keys()

    logger.info("=" * 60)
    logger.info("  Whitepaper Studio ready on http://%s:%d", settings.HOST, settings.PORT)
    logger.info("  Swagger UI : http://%s:%d/docs", settings.HOST, settings.PORT)
    logger.info("  Health     : http://%s:%d/api/health", settings.HOST, settings.PORT)
    logger.info("=" * 60)

    yield  # ← server is running

    logger.info("Shutting down Whitepaper Studio backend …")
    await close_db()
    logger.info("✓ Shutdown complete.")


# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Whitepaper Studio API",
    description=(
        "**Whitepaper Studio**: AI-written whitepapers grounded in a "
        "Pinecone knowledge base, exported as PDF, DOCX, PPTX or text.\n\n"
        "Key endpoints:\n"
        "- `POST /api/whitepaper/generate`: generate and store a whitepaper\n"
        "- `GET  /api/whitepapers`: generation history\n"
        "- `GET  /api/whitepapers/{id}/download`: download a stored document\n"
        "- `GET  /api/frameworks`: analysis framework catalog\n"
        "- `POST /api/frameworks/discover`: find frameworks in the knowledge base\n"
        "- `POST /api/media/generate`: standalone image / video description\n"
    ),
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)


# ---------------------------------------------------------------------------
# CORS
# ---------------------------------------------------------------------------

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_allowed_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Request / response logging middleware
# ---------------------------------------------------------------------------

@app.middleware("http")
async def log_requests(request: Request, call_next):
    """
    Log every request with method, path, status code, and elapsed time.
    Attaches an ``X-Process-Time`` header (milliseconds) to every response.
    """
    t0 = time.monotonic()
    response = await call_next(request)
    elapsed_ms = round((time.monotonic() - t0) * 1000, 2)

    # Skip noisy health-check polling from the frontend
    if request.url.path not in ("/api/health", "/api/health/", "/"):
        logger.info(
            "%s %s → %d  (%.2f ms)",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
        )

    response.headers["X-Process-Time"] = f"{elapsed_ms}ms"
    return response


# ---------------------------------------------------------------------------
# Exception handlers
# ---------------------------------------------------------------------------

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Unparseable JSON bodies are a 400; schema violations keep FastAPI's 422."""
    if any(err.get("type") == "json_invalid" for err in exc.errors()):
        logger.warning("Invalid JSON body on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Invalid JSON in request body"},
        )
    return await request_validation_exception_handler(request, exc)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Route-level errors carry the message under both ``detail`` and ``error``."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(ServiceError)
async def service_exception_handler(request: Request, exc: ServiceError):
    """Structured JSON for failures raised by the service layer."""
    logger.error(
        "%s on %s %s: %s",
        exc.__class__.__name__,
        request.method,
        request.url.path,
        exc.message,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": exc.message,
            "message": exc.message,
            "details": exc.details,
            "hint": exc.hint,
        },
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Return a structured JSON error for any unhandled exception."""
    logger.error(
        "Unhandled exception on %s %s: %s",
        request.method,
        request.url.path,
        exc,
        exc_info=True,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "detail": "Internal server error",
            "error": str(exc),
            "path": str(request.url.path),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    )


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------

app.include_router(health.router,                  prefix="/api/health",      tags=["Health"])
app.include_router(whitepapers.router,             prefix="/api/whitepaper",  tags=["Whitepapers"])
app.include_router(whitepapers.history_router,     prefix="/api/whitepapers", tags=["Whitepapers"])
app.include_router(frameworks.router,              prefix="/api/frameworks",  tags=["Frameworks"])
app.include_router(media.router,                   prefix="/api/media",       tags=["Media"])


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------

@app.get("/", tags=["Root"], include_in_schema=False)
async def root():
    """API root: basic service info."""
    return {
        "name": "Whitepaper Studio API",
        "version": "0.1.0",
        "description": "AI whitepaper generation backend",
        "docs": "/docs",
        "health": "/api/health",
        "endpoints": {
            "generate": "/api/whitepaper/generate",
            "whitepapers": "/api/whitepapers",
            "frameworks": "/api/frameworks",
            "media": "/api/media/generate",
        },
    }


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=True,
        log_level="info",
    )
