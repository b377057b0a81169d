import logging
import os
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.routes import appointments, availability, contact
from app.core.config import _ENV_FILE, settings
from app.core.errors import BookingError, FetchFailed

if os.getenv("ENV") != "production":
    logging.basicConfig(level=logging.DEBUG)
else:
    logging.basicConfig(
        level=logging.INFO,
        format='{"time": "%(asctime)s", "level": "%(levelname)s", "message": "%(message)s"}',
    )
logger = logging.getLogger(__name__)

CORS_METHODS = ["GET", "POST", "OPTIONS"]
CORS_HEADERS = ["*"]


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Loading .env from: %s (exists: %s)", _ENV_FILE, _ENV_FILE.exists())
    logger.info(
        "Slots: %s (%d min) in %s",
        ", ".join(settings.slot_times_list),
        settings.slot_duration_minutes,
        settings.calendar_timezone,
    )
    if settings.calendar_configured:
        logger.info("Google Calendar: configured (calendar %s)", settings.google_calendar_id)
    else:
        logger.warning(
            "Google Calendar: NOT configured. Set GOOGLE_CLIENT_ID, GOOGLE_CLIENT_SECRET and "
            "GOOGLE_REFRESH_TOKEN in %s (run python -m app.setup_google_auth)",
            _ENV_FILE,
        )
    if not settings.email_enabled:
        logger.warning("SMTP: NOT configured, notification emails will be skipped")
    yield


app = FastAPI(
    title="VSS Global Booking API",
    description="Consultation booking, contact form and newsletter backed by Google Calendar and Gmail",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials="*" not in settings.cors_origins_list,
    allow_methods=CORS_METHODS,
    allow_headers=CORS_HEADERS,
)

app.include_router(availability.router, prefix="/api")
app.include_router(appointments.router, prefix="/api")
app.include_router(contact.router, prefix="/api")


def _cors_headers(origin: str | None) -> dict[str, str]:
    """Add CORS headers to error responses so the browser doesn't block them."""
    headers = {
        "Access-Control-Allow-Methods": ", ".join(CORS_METHODS),
        "Access-Control-Allow-Headers": ", ".join(CORS_HEADERS),
    }
    allowed = settings.cors_origins_list
    if "*" in allowed:
        headers["Access-Control-Allow-Origin"] = "*"
    elif origin and origin in allowed:
        headers["Access-Control-Allow-Origin"] = origin
    elif allowed:
        headers["Access-Control-Allow-Origin"] = allowed[0]
    return headers


def _error_body(message: str, fields: list[str] | None = None, error: str | None = None) -> dict:
    body: dict = {"success": False, "message": message}
    if fields:
        body["fields"] = fields
    # Upstream detail only outside production
    if error and not settings.is_production:
        body["error"] = error
    return body


@app.exception_handler(BookingError)
async def booking_error_handler(request: Request, exc: BookingError) -> JSONResponse:
    fields = getattr(exc, "fields", None)
    if exc.status_code >= 500:
        logger.error("%s: %s (%s)", type(exc).__name__, exc.message, exc.detail)
    content = _error_body(exc.message, fields, exc.detail)
    if isinstance(exc, FetchFailed):
        # Unknown availability, not an empty calendar
        content.update(bookedSlots=[], availabilityKnown=False)
    return JSONResponse(
        status_code=exc.status_code,
        content=content,
        headers=_cors_headers(request.headers.get("origin")),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    fields: list[str] = []
    all_missing = True
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if not isinstance(part, int)]
        name = loc[-1] if len(loc) > 1 else (loc[0] if loc else "body")
        if name not in fields:
            fields.append(name)
        all_missing = all_missing and err.get("type") == "missing"
    prefix = "Missing required fields" if all_missing else "Missing or invalid fields"
    return JSONResponse(
        status_code=400,
        content=_error_body(f"{prefix}: {', '.join(fields)}", fields),
        headers=_cors_headers(request.headers.get("origin")),
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    headers = _cors_headers(request.headers.get("origin"))
    if exc.headers:
        headers.update(exc.headers)
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(str(exc.detail)),
        headers=headers,
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Return JSON; include CORS so 500 responses are not blocked by browser."""
    logger.exception("Unhandled exception: %s", exc)
    return JSONResponse(
        status_code=500,
        content=_error_body("Internal server error", error=f"{type(exc).__name__}: {exc}"),
        headers=_cors_headers(request.headers.get("origin")),
    )


@app.middleware("http")
async def bare_options(request: Request, call_next):
    """Answer OPTIONS without a preflight header on any path; real preflights go to CORSMiddleware."""
    if request.method == "OPTIONS" and "access-control-request-method" not in request.headers:
        return Response(status_code=200, headers=_cors_headers(request.headers.get("origin")))
    return await call_next(request)


@app.get("/api/health")
async def health() -> dict:
    return {
        "status": "healthy",
        "timestamp": datetime.now(UTC).isoformat(),
        "environment": settings.env,
    }
