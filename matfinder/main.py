import logging
import os
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from . import config
from . import models  # noqa: F401 - registers tables with Base
from .database import Base, SessionLocal, engine
from .domain.accounts.router import router as accounts_router
from .domain.admin.router import router as admin_router
from .domain.reviews.router import router as reviews_router
from .domain.schedules.router import router as schedules_router
from .domain.search.router import router as search_router
from .domain.sync.router import router as sync_router
from .domain.venues.router import router as venues_router

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Quiet per-request logs from the Firestore, Nominatim and cloud function clients
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)

SLOW_REQUEST_MS = float(os.getenv("SLOW_REQUEST_MS", "1000"))


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("🚀 Mat Finder API starting up...")
    try:
        Base.metadata.create_all(bind=engine, checkfirst=True)
        logger.info("✅ Schedule store tables ready")
    except Exception as e:
        # Another uvicorn worker may have created them first
        if "already exists" in str(e):
            logger.info("Schedule store tables already exist")
        else:
            logger.error(f"❌ Failed to create schedule store tables: {e}")

    if config.FIRESTORE_PROJECT_ID:
        logger.info(
            f"🔄 Syncing with Firestore project {config.FIRESTORE_PROJECT_ID} "
            f"(venues in '{config.VENUE_COLLECTION}')"
        )
    else:
        logger.warning("⚠️ FIRESTORE_PROJECT_ID not set - sync and profile mirroring disabled")

    if config.CACHE_ENABLED or config.RATE_LIMIT_ENABLED:
        try:
            from .rate_limiter import get_redis_client

            get_redis_client()
            logger.info("✅ Redis connection established")
        except Exception as e:
            logger.warning(f"⚠️ Redis unavailable - search cache off, rate limited routes return 503: {e}")

    yield
    logger.info("👋 Mat Finder API shutting down")


app = FastAPI(title="Mat Finder API", version="1.0.0", lifespan=lifespan)


def jsonable_errors(exc: RequestValidationError) -> list:
    """Validation errors with non-serialisable ctx values (raised exceptions) stringified"""
    errors = []
    for error in exc.errors():
        error = dict(error)
        if "ctx" in error:
            error["ctx"] = {k: str(v) for k, v in error["ctx"].items()}
        errors.append(error)
    return errors


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """A missing or malformed Authorization header is an auth failure, not a 422"""
    if any("authorization" in str(error.get("loc", "")).lower() for error in exc.errors()):
        logger.warning(f"⚠️ {request.method} {request.url.path}: missing bearer token")
        return JSONResponse(
            status_code=401,
            content={"detail": "Sign in required. Send a Bearer token in the Authorization header."},
        )

    logger.info(f"Rejected {request.method} {request.url.path}: {len(exc.errors())} validation error(s)")
    return JSONResponse(status_code=422, content={"detail": jsonable_errors(exc)})


@app.middleware("http")
async def log_requests(request: Request, call_next):
    started = time.perf_counter()
    try:
        response = await call_next(request)
    except Exception as e:
        logger.error(f"❌ {request.method} {request.url.path} crashed: {e}")
        raise

    elapsed_ms = (time.perf_counter() - started) * 1000
    if elapsed_ms > SLOW_REQUEST_MS:
        logger.warning(
            f"🐌 Slow request: {request.method} {request.url.path} took {elapsed_ms:.0f}ms "
            f"({response.status_code})"
        )
    return response


ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.getenv("ALLOWED_ORIGINS", "http://localhost:5173,http://localhost:3000").split(",")
    if origin.strip()
]
logger.info(f"CORS allowed origins: {ALLOWED_ORIGINS}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["X-Token-Expired", "X-Verification-Required", "Retry-After"],
)

app.include_router(venues_router)
app.include_router(schedules_router)
app.include_router(reviews_router)
app.include_router(search_router)
app.include_router(accounts_router)
app.include_router(admin_router)
app.include_router(sync_router)


@app.get("/")
def root():
    return {"message": "Mat Finder API is running"}


@app.get("/health")
def health():
    """Database reachability plus which remote integrations are configured"""
    db = SessionLocal()
    try:
        db.execute(text("SELECT 1"))
        database_ok = True
    except Exception as e:
        logger.error(f"❌ Health check database query failed: {e}")
        database_ok = False
    finally:
        db.close()

    return {
        "status": "healthy" if database_ok else "degraded",
        "database": database_ok,
        "firestore": bool(config.FIRESTORE_PROJECT_ID),
        "cloudFunctions": bool(config.CLOUD_FUNCTIONS_BASE_URL),
    }


@app.get("/health/redis")
async def redis_health_check():
    """Redis backs the search cache and the rate limiter"""
    try:
        from .rate_limiter import get_redis_client

        redis_client = get_redis_client()
        started = time.perf_counter()
        redis_client.ping()
        latency_ms = (time.perf_counter() - started) * 1000
    except Exception as e:
        return {"status": "unhealthy", "redis": {"connected": False, "error": str(e)}}

    return {
        "status": "healthy",
        "redis": {
            "connected": True,
            "latency_ms": round(latency_ms, 2),
            "cacheEnabled": config.CACHE_ENABLED,
            "rateLimitEnabled": config.RATE_LIMIT_ENABLED,
        },
    }
