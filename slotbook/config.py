import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)


def _env_bool(name: str, default: bool) -> bool:
    return os.getenv(name, "true" if default else "false").strip().lower() in ("1", "true", "yes")


DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./slotbook.db")

# Business identity
BUSINESS_NAME = os.getenv("BUSINESS_NAME", "Luca")
BUSINESS_TIMEZONE = os.getenv("BUSINESS_TIMEZONE", "Asia/Tokyo")
# Shown as a map link in customer emails (optional)
SHOP_ADDRESS = os.getenv("SHOP_ADDRESS", "")

# Booking grid (HH:MM, minutes)
OPEN_TIME = os.getenv("OPEN_TIME", "10:00")
CLOSE_TIME = os.getenv("CLOSE_TIME", "23:00")
SLOT_STEP_MINUTES = int(os.getenv("SLOT_STEP_MINUTES", "15"))
PRE_BUFFER_MINUTES = int(os.getenv("PRE_BUFFER_MINUTES", "30"))
POST_BUFFER_MINUTES = int(os.getenv("POST_BUFFER_MINUTES", "30"))
# Same-day bookings must start at least this far from now
MIN_LEAD_MINUTES = int(os.getenv("MIN_LEAD_MINUTES", "60"))

# Returning-customer detection also matches on the free-text name
FIRST_TIME_MATCH_NAME = _env_bool("FIRST_TIME_MATCH_NAME", True)
# Reject a confirm whose buffered window overlaps an already confirmed booking
CONFIRM_CONFLICT_CHECK = _env_bool("CONFIRM_CONFLICT_CHECK", False)
# Send the "new request" notice to the operator and an auto-reply to the customer
NOTIFY_ON_CREATE = _env_bool("NOTIFY_ON_CREATE", True)

# Absolute base for confirm/deny links in operator emails
PUBLIC_BASE_URL = os.getenv("PUBLIC_BASE_URL", "http://localhost:8000").rstrip("/")

# Resend Email Configuration
RESEND_API_KEY = os.getenv("RESEND_API_KEY")
EMAIL_FROM_ADDRESS = os.getenv("EMAIL_FROM_ADDRESS", f"{BUSINESS_NAME} <onboarding@resend.dev>")
ADMIN_EMAIL = os.getenv("ADMIN_EMAIL")

# Google Calendar (service account preferred, OAuth refresh token as fallback)
GOOGLE_CALENDAR_ID = os.getenv("GOOGLE_CALENDAR_ID")
GOOGLE_SERVICE_ACCOUNT_EMAIL = os.getenv("GOOGLE_SERVICE_ACCOUNT_EMAIL")
GOOGLE_SERVICE_ACCOUNT_PRIVATE_KEY = os.getenv("GOOGLE_SERVICE_ACCOUNT_PRIVATE_KEY")
GOOGLE_CLIENT_ID = os.getenv("GOOGLE_CLIENT_ID")
GOOGLE_CLIENT_SECRET = os.getenv("GOOGLE_CLIENT_SECRET")
GOOGLE_REFRESH_TOKEN = os.getenv("GOOGLE_REFRESH_TOKEN")
# Must match the redirect URI registered in the Google Cloud console exactly
GOOGLE_REDIRECT_URI = os.getenv("GOOGLE_REDIRECT_URI", f"{PUBLIC_BASE_URL}/api/oauth2callback")

ALLOWED_ORIGINS = os.getenv("ALLOWED_ORIGINS", "http://localhost:3000,http://localhost:3001").split(",")
