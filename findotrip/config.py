import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./findotrip.db")

# Security - CRITICAL: No default secret key in production
SECRET_KEY = os.getenv("SECRET_KEY")
if not SECRET_KEY:
    import warnings

    warnings.warn(
        "SECRET_KEY not set! Using insecure default - DO NOT USE IN PRODUCTION", RuntimeWarning, stacklevel=2
    )
    SECRET_KEY = "INSECURE-DEV-KEY-CHANGE-IN-PRODUCTION"  # noqa: S105 - Dev fallback only

JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
# Matches the 30 day session lifetime of the web client
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(60 * 24 * 30)))

# Frontend base URL for links in emails and notifications
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3000")
APP_URL = os.getenv("APP_URL", FRONTEND_URL)

CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", f"{FRONTEND_URL},https://findotrip.com").split(",")
    if origin.strip()
]

# Resend Email Configuration
RESEND_API_KEY = os.getenv("RESEND_API_KEY")
EMAIL_FROM_ADDRESS = os.getenv("EMAIL_FROM_ADDRESS", "FindoTrip <noreply@findotrip.com>")

# Marketplace economics
DEFAULT_CURRENCY = os.getenv("DEFAULT_CURRENCY", "PKR")
DEFAULT_COMMISSION_RATE = float(os.getenv("DEFAULT_COMMISSION_RATE", "0.10"))
DEFAULT_TAX_RATE_PERCENT = float(os.getenv("DEFAULT_TAX_RATE_PERCENT", "8"))
DEFAULT_SERVICE_FEE_RATE = float(os.getenv("DEFAULT_SERVICE_FEE_RATE", "0.10"))

# Reviews
REVIEW_REQUEST_TTL_DAYS = int(os.getenv("REVIEW_REQUEST_TTL_DAYS", "30"))
RATING_ALERT_THRESHOLD = float(os.getenv("RATING_ALERT_THRESHOLD", "3.0"))
