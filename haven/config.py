import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./haven.db")

# Hosted auth (Supabase-compatible HS256 access tokens)
SUPABASE_JWT_SECRET = os.getenv("SUPABASE_JWT_SECRET")
if not SUPABASE_JWT_SECRET:
    import warnings

    warnings.warn(
        "SUPABASE_JWT_SECRET not set! Using insecure default - DO NOT USE IN PRODUCTION",
        RuntimeWarning,
        stacklevel=2,
    )
    SUPABASE_JWT_SECRET = "INSECURE-DEV-SECRET-CHANGE-IN-PRODUCTION"  # noqa: S105 - Dev fallback only
JWT_ALGORITHM = "HS256"
JWT_AUDIENCE = os.getenv("JWT_AUDIENCE", "authenticated")

ENVIRONMENT = os.getenv("ENVIRONMENT", "development").lower()

# Frontend base URL used in email links and push click targets
FRONTEND_URL = os.getenv("FRONTEND_URL", "https://familyhaven.app").rstrip("/")

# Resend Email Configuration
RESEND_API_KEY = os.getenv("RESEND_API_KEY")
EMAIL_FROM_ADDRESS = os.getenv("EMAIL_FROM_ADDRESS", "Haven <hello@familyhaven.app>")

# Web Push (VAPID) Configuration
# Generate a key pair with: vapid --gen (py-vapid) or web-push generate-vapid-keys
VAPID_PUBLIC_KEY = os.getenv("VAPID_PUBLIC_KEY")
VAPID_PRIVATE_KEY = os.getenv("VAPID_PRIVATE_KEY")
VAPID_EMAIL = os.getenv("VAPID_EMAIL", "mailto:hello@familyhaven.app")

# Nominatim geocoding
NOMINATIM_BASE_URL = os.getenv("NOMINATIM_BASE_URL", "https://nominatim.openstreetmap.org").rstrip(
    "/"
)
NOMINATIM_USER_AGENT = os.getenv("NOMINATIM_USER_AGENT", "HavenApp/1.0 (hello@familyhaven.app)")
GEOCODE_COUNTRY_CODES = os.getenv("GEOCODE_COUNTRY_CODES", "au")
GEOCODE_COUNTRY_SUFFIX = os.getenv("GEOCODE_COUNTRY_SUFFIX", "Australia")
GEOCODE_CACHE_SECONDS = int(os.getenv("GEOCODE_CACHE_SECONDS", "86400"))

# Discovery defaults
MAP_FUZZ_METERS = int(os.getenv("MAP_FUZZ_METERS", "3000"))

# Rate limits (requests per minute)
RATE_LIMIT_MESSAGES_PER_MINUTE = int(os.getenv("RATE_LIMIT_MESSAGES_PER_MINUTE", "30"))
RATE_LIMIT_REPORTS_PER_HOUR = int(os.getenv("RATE_LIMIT_REPORTS_PER_HOUR", "10"))
RATE_LIMIT_SEARCH_PER_MINUTE = int(os.getenv("RATE_LIMIT_SEARCH_PER_MINUTE", "60"))
RATE_LIMIT_EMAIL_PER_MINUTE = int(os.getenv("RATE_LIMIT_EMAIL_PER_MINUTE", "10"))
