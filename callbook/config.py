import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./callbook.db")

# Security - CRITICAL: No default secret key in production
SECRET_KEY = os.getenv("SECRET_KEY")
if not SECRET_KEY:
    import warnings

    warnings.warn(
        "SECRET_KEY not set! Using insecure default - DO NOT USE IN PRODUCTION", RuntimeWarning, stacklevel=2
    )
    SECRET_KEY = "INSECURE-DEV-KEY-CHANGE-IN-PRODUCTION"  # noqa: S105 - Dev fallback only

# Platform admin key for /admin endpoints
ADMIN_API_KEY = os.getenv("ADMIN_API_KEY")

# Public base URL - used for booking links and gateway callbacks
APP_URL = os.getenv("APP_URL", "http://localhost:8000").rstrip("/")

# Twilio platform fallback (used only when no platform settings row exists)
TWILIO_ACCOUNT_SID = os.getenv("TWILIO_ACCOUNT_SID")
TWILIO_AUTH_TOKEN = os.getenv("TWILIO_AUTH_TOKEN")
TWILIO_PHONE_NUMBER = os.getenv("TWILIO_PHONE_NUMBER")
TWILIO_API_BASE = os.getenv("TWILIO_API_BASE", "https://api.twilio.com/2010-04-01")
TWILIO_VALIDATE_SIGNATURES = os.getenv("TWILIO_VALIDATE_SIGNATURES", "true").lower() == "true"

# Scheduling
SLOT_INTERVAL_MINUTES = int(os.getenv("SLOT_INTERVAL_MINUTES", "30"))

# Phone verification (OTP)
OTP_TTL_MINUTES = int(os.getenv("OTP_TTL_MINUTES", "10"))
OTP_MAX_PER_WINDOW = int(os.getenv("OTP_MAX_PER_WINDOW", "3"))
OTP_WINDOW_MINUTES = int(os.getenv("OTP_WINDOW_MINUTES", "10"))

# Voice
GATHER_TIMEOUT_SECONDS = int(os.getenv("GATHER_TIMEOUT_SECONDS", "10"))
DIAL_TIMEOUT_SECONDS = int(os.getenv("DIAL_TIMEOUT_SECONDS", "20"))
CREDENTIAL_CACHE_TTL_SECONDS = float(os.getenv("CREDENTIAL_CACHE_TTL_SECONDS", "60"))

# Text-to-speech (ElevenLabs) - API key itself lives in platform settings
ELEVENLABS_API_BASE = os.getenv("ELEVENLABS_API_BASE", "https://api.elevenlabs.io/v1")
ELEVENLABS_DEFAULT_VOICE_ID = os.getenv("ELEVENLABS_DEFAULT_VOICE_ID", "21m00Tcm4TlvDq8ikWAM")
IVR_AUDIO_DIR = os.getenv(
    "IVR_AUDIO_DIR", str(Path(__file__).resolve().parent.parent / "public" / "uploads" / "ivr")
)
IVR_AUDIO_URL_PREFIX = os.getenv("IVR_AUDIO_URL_PREFIX", "/uploads/ivr")

ALLOWED_ORIGINS = os.getenv("ALLOWED_ORIGINS", "http://localhost:3000").split(",")
