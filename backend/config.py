import os
from dotenv import load_dotenv

load_dotenv()


def _float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}")


def _int(name: str, default: int) -> int:
    return int(_float(name, default))


API_VERSION = os.environ.get("API_VERSION", "1.0.4")
SERVICE_NAME = "Track My Home API"

# Checked in the app lifespan rather than here so the app imports without a key.
ANTHROPIC_API_KEY = os.environ.get("ANTHROPIC_API_KEY")
VISION_MODEL = os.environ.get("VISION_MODEL", "claude-sonnet-4-20250514")
VISION_MAX_TOKENS = _int("VISION_MAX_TOKENS", 8000)

FRONTEND_ORIGIN = os.environ.get("FRONTEND_ORIGIN", "http://localhost:5173")

DISCOGS_API_KEY = os.environ.get("DISCOGS_API_KEY")
DISCOGS_API_SECRET = os.environ.get("DISCOGS_API_SECRET")

ENRICHMENT_TIMEOUT_SECONDS = _float("ENRICHMENT_TIMEOUT_SECONDS", 5.0)
# Ceiling for the whole enrichment fan-out of one request; 0 disables it.
ENRICHMENT_DEADLINE_SECONDS = _float("ENRICHMENT_DEADLINE_SECONDS", 20.0)
IMAGE_DOWNLOAD_TIMEOUT_SECONDS = _float("IMAGE_DOWNLOAD_TIMEOUT_SECONDS", 30.0)

TOKEN_WARNING_THRESHOLD = _int("TOKEN_WARNING_THRESHOLD", 15000)

FIREBASE_PROJECT_ID = os.environ.get("FIREBASE_PROJECT_ID")
FIREBASE_CLIENT_EMAIL = os.environ.get("FIREBASE_CLIENT_EMAIL")
FIREBASE_PRIVATE_KEY = os.environ.get("FIREBASE_PRIVATE_KEY")
FIREBASE_STORAGE_BUCKET = os.environ.get("FIREBASE_STORAGE_BUCKET")
