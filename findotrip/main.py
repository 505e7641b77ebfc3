import logging
import os
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# Every model module must be imported before create_all
from . import (
    models,  # noqa: F401
    models_booking,  # noqa: F401
    models_chat,  # noqa: F401
    models_listing,  # noqa: F401
    models_review,  # noqa: F401
    models_support,  # noqa: F401
)
from .config import CORS_ORIGINS
from .database import Base, engine
from .domain.availability.router import router as availability_router
from .domain.bookings.router import router as bookings_router
from .domain.commissions.router import router as commissions_router
from .domain.conversations.router import router as conversations_router
from .domain.listings.router import router as listings_router
from .domain.pricing.router import router as pricing_router
from .domain.reviews.router import router as reviews_router
from .domain.support.router import router as support_router
from .domain.wishlist.router import router as wishlist_router
from .rate_limiter import RATE_LIMIT_ENABLED, get_counter
from .routes.audit import router as audit_router
from .routes.auth import router as auth_router
from .routes.dashboard import router as dashboard_router
from .routes.notifications import router as notifications_router
from .routes.status_automation import router as status_router
from .routes.users import router as users_router
from .security_headers import SecurityHeadersMiddleware

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)

SECURITY_HEADERS_ENABLED = os.getenv("SECURITY_HEADERS_ENABLED", "true").lower() == "true"
AUTO_CREATE_TABLES = os.getenv("AUTO_CREATE_TABLES", "true").lower() == "true"
SLOW_REQUEST_MS = float(os.getenv("SLOW_REQUEST_MS", "1000"))


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("🚀 FindoTrip API starting up")
    if AUTO_CREATE_TABLES:
        Base.metadata.create_all(bind=engine, checkfirst=True)
        logger.info("Database tables ready")

    if RATE_LIMIT_ENABLED:
        backend = "redis" if get_counter().client is not None else "memory"
        logger.info(f"Rate limiting enabled ({backend} counters)")

    yield
    logger.info("👋 FindoTrip API shutting down")


app = FastAPI(title="FindoTrip API", version="1.0.0", lifespan=lifespan)


def jsonable_errors(exc: RequestValidationError) -> list:
    # pydantic puts the raw exception object in ctx for custom validators
    errors = []
    for error in exc.errors():
        error = dict(error)
        if "ctx" in error:
            error["ctx"] = {k: str(v) for k, v in error["ctx"].items()}
        errors.append(error)
    return errors


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = jsonable_errors(exc)
    fields = ", ".join(".".join(str(p) for p in e.get("loc", ())) for e in errors)
    logger.warning(f"⚠️ Invalid request to {request.url.path}: {fields}")
    return JSONResponse(status_code=422, content={"detail": errors})


@app.middleware("http")
async def log_requests(request: Request, call_next):
    started = time.perf_counter()
    try:
        response = await call_next(request)
    except Exception as e:
        logger.error(f"❌ {request.method} {request.url.path} failed: {e}")
        raise
    elapsed_ms = (time.perf_counter() - started) * 1000
    response.headers["X-Process-Time"] = f"{elapsed_ms:.1f}ms"
    if elapsed_ms > SLOW_REQUEST_MS:
        logger.warning(f"🐢 Slow request {request.method} {request.url.path} took {elapsed_ms:.0f}ms")
    return response


if SECURITY_HEADERS_ENABLED:
    app.add_middleware(
        SecurityHeadersMiddleware, exclude_paths=["/health", "/docs", "/openapi.json"]
    )
else:
    logger.warning("⚠️ Security headers are disabled")


app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["Authorization", "Content-Type"],
)
logger.info(f"🌐 CORS origins: {', '.join(CORS_ORIGINS)}")

app.include_router(auth_router)
app.include_router(users_router)
app.include_router(listings_router)
app.include_router(availability_router)
app.include_router(pricing_router)
app.include_router(bookings_router)
app.include_router(reviews_router)
app.include_router(support_router)
app.include_router(conversations_router)
app.include_router(wishlist_router)
app.include_router(commissions_router)
app.include_router(notifications_router)
app.include_router(dashboard_router)
app.include_router(status_router)
app.include_router(audit_router)


@app.get("/health")
async def health_check():
    return {"status": "healthy", "service": "findotrip-api"}
