import json
import os

from dotenv import load_dotenv

load_dotenv()

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
DEBUG = LOG_LEVEL == "DEBUG"

DRY_RUN = os.getenv("DRY_RUN", "false").lower() == "true"

DATABASE_URL = os.getenv("DATABASE_URL")
if not DATABASE_URL:
    raise ValueError("DATABASE_URL must be set in the environment")

# Unset means the database's default schema (public on PostgreSQL)
SCHEMA = os.getenv("DB_SCHEMA") or None

DB_POOL_TIMEOUT_SECONDS = int(os.getenv("DB_POOL_TIMEOUT_SECONDS", "10"))

ALLOWED_ORIGINS_RAW = os.getenv("ALLOWED_ORIGINS")
if not ALLOWED_ORIGINS_RAW:
    raise ValueError("ALLOWED_ORIGINS must be set in the environment")

ALLOWED_ORIGINS: list[str] = [
    origin.strip() for origin in ALLOWED_ORIGINS_RAW.split(",")
]

PROVIDER = "beds24"

BEDS24_API_URL = os.getenv("BEDS24_API_URL", "https://api.beds24.com/v2").rstrip("/")
BEDS24_TIMEOUT_SECONDS = float(os.getenv("BEDS24_TIMEOUT_SECONDS", "15"))

TOKEN_SAFETY_MARGIN_SECONDS = int(os.getenv("TOKEN_SAFETY_MARGIN_SECONDS", "60"))
TOKEN_CACHE_MAX_ENTRIES = int(os.getenv("TOKEN_CACHE_MAX_ENTRIES", "1024"))

CALENDAR_DAYS_AHEAD = int(os.getenv("CALENDAR_DAYS_AHEAD", "365"))
DEFAULT_BOOKINGS_LOOKBACK_DAYS = int(os.getenv("DEFAULT_BOOKINGS_LOOKBACK_DAYS", "7"))

# Fernet key (urlsafe base64, 32 bytes) used to encrypt refresh tokens at rest
SECRET_ENCRYPTION_KEY = os.getenv("SECRET_ENCRYPTION_KEY")

# HS256 secret used to verify administrative bearer tokens
JWT_SECRET = os.getenv("JWT_SECRET")

# Shared secret for scheduled jobs (X-Cron-Secret header)
CRON_SECRET = os.getenv("CRON_SECRET")

# Shared secret Beds24 sends in the X-Webhook-Secret header of booking pushes
WEBHOOK_SECRET = os.getenv("WEBHOOK_SECRET")

LOG_REDACT_KEYS: list[str] | None = (
    json.loads(os.environ["LOG_REDACT_KEYS"]) if os.getenv("LOG_REDACT_KEYS") else None
)
