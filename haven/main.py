import logging
import os
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import models  # noqa: F401
from .database import Base, engine
from .domain.circles import router as circles_router
from .domain.events import router as events_router
from .routes.admin import router as admin_router
from .routes.blocks import router as blocks_router
from .routes.board import router as board_router
from .routes.calendar import router as calendar_router
from .routes.connections import router as connections_router
from .routes.discover import router as discover_router
from .routes.email import router as email_router
from .routes.feedback import router as feedback_router
from .routes.geocoding import router as geocoding_router
from .routes.messages import router as messages_router
from .routes.notifications import router as notifications_router
from .routes.profiles import router as profiles_router
from .routes.push import router as push_router
from .routes.reports import router as reports_router
from .routes.search import router as search_router
from .security_headers import SecurityHeadersMiddleware

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Reduce verbosity of third-party libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)

SECURITY_HEADERS_ENABLED = os.getenv("SECURITY_HEADERS_ENABLED", "true").lower() == "true"


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Haven API starting up...")
    try:
        Base.metadata.create_all(bind=engine, checkfirst=True)
        logger.info("Database tables created successfully")
    except Exception as e:
        # Another worker may have created them first
        error_msg = str(e)
        if "already exists" in error_msg or "duplicate key" in error_msg:
            logger.info("Database tables already exist (created by another worker)")
        else:
            logger.error(f"Failed to create database tables: {e}")

    try:
        from .rate_limiter import get_redis_client

        get_redis_client().ping()
        logger.info("Redis connection established")
    except Exception as e:
        logger.warning(
            f"Redis connection failed - rate limited routes will return 503 and caching is disabled until it recovers: {e}"
        )

    yield
    logger.info("Haven API shutting down...")


app = FastAPI(title="Haven API", version="1.0.0", lifespan=lifespan)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    A missing or malformed Authorization header is a 401, not a 422.
    Every other validation error keeps its 422.
    """
    for error in exc.errors():
        if error.get("loc") and "authorization" in str(error.get("loc")).lower():
            logger.warning(f"Authentication failed for {request.url.path}: missing Authorization header")
            return JSONResponse(
                status_code=401,
                content={"detail": "Not authenticated. Please provide a valid Bearer token."},
            )

    logger.warning(f"Validation error for {request.url.path}: {exc.errors()}")
    return JSONResponse(status_code=422, content={"detail": exc.errors()})


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.time()
    try:
        response = await call_next(request)
    except Exception as e:
        logger.error(f"{request.method} {request.url.path} - Error: {str(e)}")
        raise
    elapsed_ms = (time.time() - start) * 1000
    if response.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} - {response.status_code} ({elapsed_ms:.0f}ms)")
    return response


if SECURITY_HEADERS_ENABLED:
    app.add_middleware(
        SecurityHeadersMiddleware, exclude_paths=["/health", "/docs", "/openapi.json"]
    )
    logger.info("Security headers enabled")
else:
    logger.warning("Security headers DISABLED - only use in development!")


ALLOWED_ORIGINS = os.getenv(
    "ALLOWED_ORIGINS",
    "https://familyhaven.app,https://www.familyhaven.app,http://localhost:3000",
).split(",")

logger.info(f"CORS allowed origins: {ALLOWED_ORIGINS}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
)

# Routes
app.include_router(profiles_router)
app.include_router(discover_router)
app.include_router(search_router)
app.include_router(connections_router)
app.include_router(messages_router)
app.include_router(circles_router)
app.include_router(events_router)
app.include_router(notifications_router)
app.include_router(push_router)
app.include_router(email_router)
app.include_router(reports_router)
app.include_router(blocks_router)
app.include_router(feedback_router)
app.include_router(board_router)
app.include_router(geocoding_router)
app.include_router(calendar_router)
app.include_router(admin_router)


@app.get("/")
def root():
    return {"message": "Haven API is running"}


@app.get("/health")
def health():
    return {"status": "healthy"}


@app.get("/health/redis")
async def redis_health_check():
    """Check Redis connectivity for monitoring"""
    try:
        from .rate_limiter import get_redis_client

        redis_client = get_redis_client()
        start_time = time.time()
        redis_client.ping()
        response_time = (time.time() - start_time) * 1000

        return {
            "status": "healthy",
            "redis": {"connected": True, "response_time_ms": round(response_time, 2)},
        }
    except Exception as e:
        return {"status": "unhealthy", "redis": {"connected": False, "error": str(e)}}
