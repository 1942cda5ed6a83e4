import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import models  # noqa: F401 - registers tables on Base.metadata
from .config import ALLOWED_ORIGINS, BUSINESS_NAME
from .database import Base, engine
from .domain.scheduling.router import router as booking_router
from .email_service import EmailClient
from .routes.google_oauth import router as google_oauth_router
from .services.google_calendar_service import GoogleCalendarClient
from .shared.exceptions import BookingError

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Reduce verbosity of third-party libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application starting up...")
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
            raise

    app.state.email_client = EmailClient.from_config()
    app.state.calendar_client = GoogleCalendarClient.from_config()
    if not app.state.email_client.configured:
        logger.warning("⚠️ RESEND_API_KEY not set - notifications will be recorded as failed")

    yield
    logger.info("Application shutting down...")


app = FastAPI(title=f"{BUSINESS_NAME} Booking API", version="1.0.0", lifespan=lifespan)


def _error_body(code: str, detail) -> dict:
    return {"ok": False, "error": code, "detail": detail}


@app.exception_handler(BookingError)
async def booking_error_handler(request: Request, exc: BookingError):
    if exc.status_code >= 500:
        logger.error(f"❌ {request.method} {request.url.path} failed: {exc.code} - {exc.message}")
    else:
        logger.info(f"ℹ️ {request.method} {request.url.path} rejected: {exc.code} - {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=_error_body(exc.code, exc.message))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed or missing request fields are client errors (400), not 422"""
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        messages.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    return JSONResponse(status_code=400, content=_error_body("validation_error", "; ".join(messages)))


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"❌ Unhandled error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content=_error_body("internal_error", "Internal server error"))


# Log CORS configuration for debugging
logger.info(f"CORS allowed origins: {ALLOWED_ORIGINS}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)

# Routes
app.include_router(booking_router)
app.include_router(google_oauth_router)


@app.get("/")
def root():
    return {"message": f"{BUSINESS_NAME} Booking API is running"}


@app.get("/health")
def health():
    return {"status": "healthy"}
