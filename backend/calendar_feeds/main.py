import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from calendar_feeds.core.config import get_settings
from calendar_feeds.core.constants import CORS_ALLOWED_HEADERS, CORS_ALLOWED_METHODS
from calendar_feeds.core.database import Base, engine
from calendar_feeds.core.exceptions import CalendarIntegrationError, UpstreamStoreError
from calendar_feeds.models import assignment, course, feed_token, integration_settings, profile  # noqa: F401  (register tables)
from calendar_feeds.routers import calendar_feed, calendar_integrations, health
from calendar_feeds.services.identity_client import IdentityClient

# --- Load settings ---
settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("ila.app")

# --- Create DB tables ---
Base.metadata.create_all(bind=engine)

# --- Create FastAPI app ---
app = FastAPI(title=settings.app_name)

# --- CORS: calendar clients and the dashboard may live anywhere ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=CORS_ALLOWED_METHODS,
    allow_headers=CORS_ALLOWED_HEADERS,
)


# --- Identity client: one per process, closed on shutdown ---
@app.on_event("startup")
async def open_identity_client():
    if getattr(app.state, "identity_client", None) is None:
        app.state.identity_client = IdentityClient(
            settings.identity_url,
            api_key=settings.identity_api_key,
            timeout=settings.identity_timeout_seconds,
        )
        logger.info("identity client ready (%s)", settings.identity_url)


@app.on_event("shutdown")
async def close_identity_client():
    client = getattr(app.state, "identity_client", None)
    if client is not None:
        await client.aclose()
        app.state.identity_client = None


# --- Error responses: {"error": "..."} without internal detail ---
@app.exception_handler(CalendarIntegrationError)
async def calendar_integration_error_handler(request: Request, exc: CalendarIntegrationError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse({"error": exc.public_message}, status_code=exc.status_code)


@app.exception_handler(SQLAlchemyError)
async def store_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error("%s %s store error", request.method, request.url.path, exc_info=exc)
    error = UpstreamStoreError()
    return JSONResponse({"error": error.public_message}, status_code=error.status_code)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse({"error": exc.detail}, status_code=exc.status_code, headers=exc.headers)


# --- Routers ---
app.include_router(health.router)
app.include_router(calendar_feed.router)
app.include_router(calendar_integrations.router)


# --- Root endpoint ---
@app.get("/")
def root():
    return {"message": "ILA Companion calendar feeds are running"}
