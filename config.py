# config.py - Service configuration loaded from environment variables
import os

from dotenv import load_dotenv

load_dotenv()


def _csv(value: str) -> list:
    return [item.strip().lower() for item in value.split(",") if item.strip()]


# Persistence backend: "firestore" in production, "memory" for local development
STORE_BACKEND = os.getenv("STORE_BACKEND", "firestore").lower()
STORE_MAX_ATTEMPTS = int(os.getenv("STORE_MAX_ATTEMPTS", 5))

# Firebase service account credentials
FIREBASE_CREDENTIALS = {
    "type": os.getenv("FIREBASE_TYPE"),
    "project_id": os.getenv("FIREBASE_PROJECT_ID"),
    "private_key_id": os.getenv("FIREBASE_PRIVATE_KEY_ID"),
    "private_key": (os.getenv("FIREBASE_PRIVATE_KEY") or "").replace("\\n", "\n"),
    "client_email": os.getenv("FIREBASE_CLIENT_EMAIL"),
    "client_id": os.getenv("FIREBASE_CLIENT_ID"),
    "auth_uri": os.getenv("FIREBASE_AUTH_URI"),
    "token_uri": os.getenv("FIREBASE_TOKEN_URI"),
    "auth_provider_x509_cert_url": os.getenv("FIREBASE_AUTH_PROVIDER_X509_CERT_URL"),
    "client_x509_cert_url": os.getenv("FIREBASE_CLIENT_X509_CERT_URL"),
    "universe_domain": os.getenv("FIREBASE_UNIVERSE_DOMAIN"),
}

# Cloudinary (complaint photo storage)
CLOUDINARY_CLOUD_NAME = os.getenv("CLOUDINARY_CLOUD_NAME")
CLOUDINARY_API_KEY = os.getenv("CLOUDINARY_API_KEY")
CLOUDINARY_API_SECRET = os.getenv("CLOUDINARY_API_SECRET")

# Sessions
JWT_SECRET = os.getenv("JWT_SECRET", "supersecretkey")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRATION_MINUTES = int(os.getenv("JWT_EXPIRATION_MINUTES", 60 * 24))  # 1 day

# Emails that receive the admin role when their account is created
ADMIN_EMAILS = _csv(os.getenv("ADMIN_EMAILS", ""))

# Geocoding (Nominatim allows 1 request per second)
GEOCODER_USER_AGENT = os.getenv("GEOCODER_USER_AGENT", "civicpulse-backend")
GEOCODER_MIN_DELAY_SECONDS = float(os.getenv("GEOCODER_MIN_DELAY_SECONDS", 1.0))

# Business rules
DUPLICATE_RADIUS_METERS = float(os.getenv("DUPLICATE_RADIUS_METERS", 150))
LEADERBOARD_SIZE = int(os.getenv("LEADERBOARD_SIZE", 20))
STATS_CACHE_TTL = int(os.getenv("STATS_CACHE_TTL", 15))
STATS_TIMEZONE = os.getenv("STATS_TIMEZONE", "Asia/Kolkata")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
