import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./matfinder.db")

# Firebase Configuration
FIREBASE_PROJECT_ID = os.getenv("FIREBASE_PROJECT_ID")
# Service account JSON for the Firebase Admin SDK; Application Default Credentials when unset
FIREBASE_CREDENTIALS_PATH = os.getenv("FIREBASE_CREDENTIALS_PATH")

# Firestore access (project defaults to the Firebase project)
FIRESTORE_PROJECT_ID = os.getenv("FIRESTORE_PROJECT_ID", FIREBASE_PROJECT_ID)
FIRESTORE_DATABASE = os.getenv("FIRESTORE_DATABASE", "(default)")
# e.g. "localhost:8080" when running against the Firebase emulator suite.
# google-cloud-firestore reads this variable itself.
FIRESTORE_EMULATOR_HOST = os.getenv("FIRESTORE_EMULATOR_HOST")
FIRESTORE_PAGE_SIZE = int(os.getenv("FIRESTORE_PAGE_SIZE", "300"))
FIRESTORE_TIMEOUT = float(os.getenv("FIRESTORE_TIMEOUT", "15.0"))

# Remote collection names. TravelBallRating deployments store venues in "teams".
VENUE_COLLECTION = os.getenv("VENUE_COLLECTION", "pirateIslands")
SCHEDULE_ENTRY_COLLECTION = os.getenv("SCHEDULE_ENTRY_COLLECTION", "appDayOfWeeks")
TIME_SLOT_COLLECTION = os.getenv("TIME_SLOT_COLLECTION", "matTimes")
REVIEW_COLLECTION = os.getenv("REVIEW_COLLECTION", "reviews")
USER_COLLECTION = os.getenv("USER_COLLECTION", "users")

# Firebase HTTPS callable functions, e.g. https://us-central1-<project>.cloudfunctions.net
CLOUD_FUNCTIONS_BASE_URL = os.getenv("CLOUD_FUNCTIONS_BASE_URL")
CLOUD_FUNCTIONS_TIMEOUT = float(os.getenv("CLOUD_FUNCTIONS_TIMEOUT", "20.0"))

# Security - CRITICAL: No default secret key in production
SECRET_KEY = os.getenv("SECRET_KEY")
if not SECRET_KEY:
    import warnings

    warnings.warn(
        "SECRET_KEY not set! Using insecure default - DO NOT USE IN PRODUCTION", RuntimeWarning, stacklevel=2
    )
    SECRET_KEY = "INSECURE-DEV-KEY-CHANGE-IN-PRODUCTION"  # noqa: S105 - Dev fallback only

ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "1440"))
VERIFICATION_TOKEN_MAX_AGE = int(os.getenv("VERIFICATION_TOKEN_MAX_AGE", str(60 * 60 * 48)))

# log2 of the scrypt work factor N
SCRYPT_ROUNDS = int(os.getenv("SCRYPT_ROUNDS", "14"))

# Comma separated; accounts registered with these emails become admins
ADMIN_EMAILS = {
    e.strip().lower() for e in os.getenv("ADMIN_EMAILS", "").split(",") if e.strip()
}

# Frontend base URL for verification links
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173")

# Search
DEFAULT_SEARCH_RADIUS_MILES = float(os.getenv("DEFAULT_SEARCH_RADIUS_MILES", "5.0"))
MAX_SEARCH_RADIUS_MILES = float(os.getenv("MAX_SEARCH_RADIUS_MILES", "250.0"))
SEARCH_CACHE_TTL = int(os.getenv("SEARCH_CACHE_TTL", "300"))

# Nominatim (OpenStreetMap) geocoding
NOMINATIM_BASE_URL = os.getenv("NOMINATIM_BASE_URL", "https://nominatim.openstreetmap.org")
NOMINATIM_USER_AGENT = os.getenv("NOMINATIM_USER_AGENT", "MatFinder/1.0 (support@matfinder.app)")
GEOCODE_CACHE_TTL = int(os.getenv("GEOCODE_CACHE_TTL", str(60 * 60 * 24 * 7)))

# Sync
SYNC_INTERVAL_MINUTES = int(os.getenv("SYNC_INTERVAL_MINUTES", "15"))
TOMBSTONE_RETENTION_DAYS = int(os.getenv("TOMBSTONE_RETENTION_DAYS", "30"))

# Redis backed features can be switched off for local development and tests
RATE_LIMIT_ENABLED = os.getenv("RATE_LIMIT_ENABLED", "true").lower() == "true"
CACHE_ENABLED = os.getenv("CACHE_ENABLED", "true").lower() == "true"
