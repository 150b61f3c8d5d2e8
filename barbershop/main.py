import logging
import time
import uuid
from contextlib import asynccontextmanager

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import models  # noqa: F401 - registers tables on Base.metadata
from .config import (
    ALLOWED_ORIGINS,
    ENVIRONMENT,
    RATE_LIMIT_REQUESTS,
    RATE_LIMIT_WINDOW,
    SECURITY_HEADERS_ENABLED,
)
from .database import Base, engine
from .domain.auth.router import router as auth_router
from .domain.barbers.router import router as barbers_router
from .domain.bookings.router import router as bookings_router
from .domain.catalog.router import barber_services_router, categories_router
from .domain.catalog.router import router as services_router
from .domain.notifications.router import router as notifications_router
from .domain.reviews.router import router as reviews_router
from .errors import (
    http_exception_handler,
    integrity_error_handler,
    unhandled_exception_handler,
    validation_exception_handler,
)
from .rate_limiter import create_rate_limiter, get_redis_client
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

API_PREFIX = "/api/v1"
API_VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Application starting up ({ENVIRONMENT})...")
    try:
        Base.metadata.create_all(bind=engine, checkfirst=True)
        logger.info("Database tables created successfully")
    except Exception as e:
        # Ignore "already exists" errors from race conditions between workers
        error_msg = str(e)
        if "already exists" in error_msg or "duplicate key" in error_msg:
            logger.info("Database tables already exist (created by another worker)")
        else:
            logger.error(f"Failed to create database tables: {e}")

    try:
        get_redis_client()  # Connection test
        logger.info("Redis connection established")
    except Exception as e:
        logger.warning(
            f"Redis connection failed - cache disabled and rate limiting in memory only: {e}"
        )

    yield
    logger.info("Application shutting down...")


app = FastAPI(title="Barbershop Booking API", version=API_VERSION, lifespan=lifespan)

app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(IntegrityError, integrity_error_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    request.state.request_id = request_id
    start_time = time.time()
    try:
        response = await call_next(request)
    except Exception as e:
        logger.error(f"[{request_id}] {request.method} {request.url.path} - Error: {str(e)}")
        raise

    duration_ms = (time.time() - start_time) * 1000
    logger.info(
        f"[{request_id}] {request.method} {request.url.path} -> {response.status_code} ({duration_ms:.1f}ms)"
    )
    response.headers["X-Request-ID"] = request_id
    return response


if SECURITY_HEADERS_ENABLED:
    app.add_middleware(
        SecurityHeadersMiddleware, exclude_paths=["/health", "/docs", "/openapi.json"]
    )
    logger.info("Security headers enabled")
else:
    logger.warning("Security headers DISABLED - only use in development!")

logger.info(f"CORS allowed origins: {ALLOWED_ORIGINS}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID", "Retry-After"],
)

# Routes
default_rate_limit = create_rate_limiter(
    limit=RATE_LIMIT_REQUESTS, window_seconds=RATE_LIMIT_WINDOW, key_prefix="rate_limit:api"
)

api_router = APIRouter(prefix=API_PREFIX, dependencies=[Depends(default_rate_limit)])
api_router.include_router(auth_router)
api_router.include_router(barbers_router)
api_router.include_router(services_router)
api_router.include_router(categories_router)
api_router.include_router(barber_services_router)
api_router.include_router(bookings_router)
api_router.include_router(reviews_router)
api_router.include_router(notifications_router)

app.include_router(api_router)


@app.get("/")
def root():
    return {"message": "Barbershop Booking API is running", "version": API_VERSION, "api": API_PREFIX}


@app.get("/health")
def health():
    return {"status": "healthy"}


@app.get("/health/redis")
async def redis_health_check():
    """Check Redis connectivity for monitoring"""
    try:
        redis_client = get_redis_client()

        # Test basic connectivity
        start_time = time.time()
        redis_client.ping()
        response_time = (time.time() - start_time) * 1000  # Convert to milliseconds

        # Get Redis info
        info = redis_client.info()

        return {
            "status": "healthy",
            "redis": {
                "connected": True,
                "response_time_ms": round(response_time, 2),
                "version": info.get("redis_version", "unknown"),
                "used_memory_human": info.get("used_memory_human", "unknown"),
                "connected_clients": info.get("connected_clients", 0),
            },
        }
    except Exception as e:
        return {"status": "unhealthy", "redis": {"connected": False, "error": str(e)}}
