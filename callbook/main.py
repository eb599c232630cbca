import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import models  # noqa: F401 - registers tables on Base
from .cache import TTLCache
from .config import ALLOWED_ORIGINS, CREDENTIAL_CACHE_TTL_SECONDS
from .database import Base, SessionLocal, engine
from .domain.calls.router import router as calls_router
from .domain.calls.router import webhook_router as voice_webhook_router
from .domain.feedback.router import router as feedback_router
from .domain.messaging.gateway import TwilioSmsGateway
from .domain.messaging.router import router as sms_router
from .domain.messaging.router import webhook_router as sms_webhook_router
from .domain.scheduling.router import hours_router as business_hours_router
from .domain.scheduling.router import public_router as public_booking_router
from .domain.scheduling.router import router as appointments_router
from .domain.tenants.router import admin_router
from .domain.tenants.router import ivr_router
from .domain.tenants.router import public_router as public_shop_router
from .domain.verification.router import router as verification_router
from .errors import ErrorKind, ServiceError
from .services.ivr_audio import AudioJobRunner, generate_shared_audios
from .services.twilio_credentials import TwilioCredentialStore

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Reduce verbosity of third-party libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)
logging.getLogger("twilio.http_client").setLevel(logging.WARNING)


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

    try:
        from .rate_limiter import get_redis_client

        get_redis_client()  # Connection test
        logger.info("Redis connection established")
    except Exception as e:
        logger.warning(f"Redis connection failed - Rate limiting will operate in fail-open mode: {e}")

    # Shared prompts (no input, thank-you, invalid, error) are generated once per deployment
    app.state.audio_runner.submit(
        "shared-prompts", lambda: generate_shared_audios(app.state.session_factory)
    )

    yield

    logger.info("Application shutting down...")
    await app.state.audio_runner.drain()


app = FastAPI(title="Callbook API", version="1.0.0", lifespan=lifespan)

# Process-wide collaborators; tests replace these on app.state
app.state.credential_store = TwilioCredentialStore(TTLCache(CREDENTIAL_CACHE_TTL_SECONDS))
app.state.sms_gateway = TwilioSmsGateway()
app.state.audio_runner = AudioJobRunner()
app.state.session_factory = SessionLocal


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    # Expected rejections: never logged as errors
    if exc.kind == ErrorKind.INTERNAL:
        logger.error(f"{request.method} {request.url.path} - {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected: {exc.kind.value} - {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Render request-shape errors as the VALIDATION envelope with one message per field"""
    field_errors: dict[str, str] = {}
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path", "form")]
        field = ".".join(loc) or "request"
        message = error.get("msg", "Invalid value")
        field_errors.setdefault(field, message.removeprefix("Value error, "))

    logger.info(f"Validation error for {request.url.path}: {field_errors}")
    return JSONResponse(
        status_code=ErrorKind.VALIDATION.status_code,
        content={
            "success": False,
            "error": ErrorKind.VALIDATION.value,
            "message": "Invalid request",
            "fieldErrors": field_errors,
        },
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"{request.method} {request.url.path} - Unhandled error: {exc}")
    return JSONResponse(
        status_code=ErrorKind.INTERNAL.status_code,
        content={"success": False, "error": ErrorKind.INTERNAL.value, "message": "Internal server error"},
    )


logger.info(f"CORS allowed origins: {ALLOWED_ORIGINS}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
)

# Routes
app.include_router(voice_webhook_router)
app.include_router(sms_webhook_router)
app.include_router(public_shop_router)
app.include_router(public_booking_router)
app.include_router(verification_router)
app.include_router(feedback_router)
app.include_router(appointments_router)
app.include_router(business_hours_router)
app.include_router(calls_router)
app.include_router(sms_router)
app.include_router(ivr_router)
app.include_router(admin_router)


@app.get("/")
def root():
    return {"message": "Callbook API is running"}


@app.get("/health")
def health():
    return {"status": "healthy"}
