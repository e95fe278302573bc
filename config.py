import os

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# Environment configuration
ENV = os.getenv("CC_ENV", "p").lower()
if ENV not in ["d", "p"]:
    raise ValueError("CC_ENV must be either 'd' (development) or 'p' (production)")

# Firestore database name; credentials are resolved by the Firebase Admin SDK
FIRESTORE_DATABASE = os.getenv("CC_FIRESTORE_DATABASE", "(default)")

# CORS origins allowed to call the API
ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.getenv(
        "CC_ALLOWED_ORIGINS", "http://localhost:3000,http://localhost:5173"
    ).split(",")
    if origin.strip()
]

# When enabled, failed rating submissions are answered with 202 instead of 503
RATING_FAILURES_AS_SUCCESS = os.getenv(
    "CC_RATING_FAILURES_AS_SUCCESS", "false"
).lower() in ["1", "true", "yes"]

# Seconds between keep-alive comments on idle SSE streams
STREAM_KEEPALIVE_SECONDS = float(os.getenv("CC_STREAM_KEEPALIVE_SECONDS", "15"))

# Maximum notifications returned by a single listing or stream
NOTIFICATIONS_LIMIT = int(os.getenv("CC_NOTIFICATIONS_LIMIT", "20"))

# Generic avatar used for portfolio entries when the partner has no photo
FALLBACK_AVATAR_URL = "https://cdn-icons-png.flaticon.com/512/847/847969.png"
