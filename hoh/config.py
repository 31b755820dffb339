import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./hoh.db")

# "development" exposes error messages on 500 responses
ENVIRONMENT = os.getenv("ENVIRONMENT", "production")

# Security - CRITICAL: No default secret key in production
SECRET_KEY = os.getenv("SECRET_KEY")
if not SECRET_KEY:
    import warnings

    warnings.warn(
        "SECRET_KEY not set! Using insecure default - DO NOT USE IN PRODUCTION", RuntimeWarning, stacklevel=2
    )
    SECRET_KEY = "INSECURE-DEV-KEY-CHANGE-IN-PRODUCTION"  # noqa: S105 - Dev fallback only

JWT_ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(60 * 24 * 7)))

# Frontend base URL for links in emails
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173")

ALLOWED_ORIGINS = os.getenv(
    "ALLOWED_ORIGINS",
    "http://localhost:5173,http://localhost:3000,http://localhost:8081",
).split(",")

# Email delivery: "smtp", "resend" or "console" (log only)
EMAIL_SERVICE = os.getenv("EMAIL_SERVICE", "console").lower()
EMAIL_FROM_ADDRESS = os.getenv("EMAIL_FROM_ADDRESS", "HOH108 <noreply@hoh108.com>")
RESEND_API_KEY = os.getenv("RESEND_API_KEY")
SMTP_HOST = os.getenv("SMTP_HOST")
SMTP_PORT = int(os.getenv("SMTP_PORT", "587"))
SMTP_USERNAME = os.getenv("SMTP_USERNAME")
SMTP_PASSWORD = os.getenv("SMTP_PASSWORD")
SMTP_USE_TLS = os.getenv("SMTP_USE_TLS", "true").lower() == "true"

# Notification dispatch: "arq" (Redis queue), "inline" (send in-process) or "log"
NOTIFICATIONS_BACKEND = os.getenv("NOTIFICATIONS_BACKEND", "inline").lower()

# Rate limiting for public booking endpoints (requires Redis)
RATE_LIMIT_ENABLED = os.getenv("RATE_LIMIT_ENABLED", "true").lower() == "true"

# Completion OTP lifetime
COMPLETION_OTP_TTL_MINUTES = int(os.getenv("COMPLETION_OTP_TTL_MINUTES", "10"))
