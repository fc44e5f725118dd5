import os
from typing import List, Optional, Tuple

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


STRIPE_API_BASE = "https://api.stripe.com/v1"
DEFAULT_SITE_URL = "http://localhost:8000"


# ===============================================================
# Environment helpers
# ===============================================================
def get_env() -> str:
    return (os.environ.get("ENV") or os.environ.get("APP_ENV") or "development").lower()


def supabase_get_credentials() -> Tuple[str, str]:
    """Service-role credentials used for table, storage and function calls."""
    url = os.environ.get("SUPABASE_URL")
    key = os.environ.get("SUPABASE_SERVICE_KEY")

    if not url or not key:
        raise ValueError(
            "SUPABASE_URL and SUPABASE_SERVICE_KEY environment variables are required"
        )
    return url, key


def supabase_get_anon_key() -> str:
    """Public key used for end-user auth flows; falls back to the service key."""
    key = os.environ.get("SUPABASE_ANON_KEY")
    if key:
        return key
    return supabase_get_credentials()[1]


def stripe_get_secret_key() -> Optional[str]:
    return os.getenv("STRIPE_SECRET_KEY")


def stripe_get_api_base() -> str:
    return (os.getenv("STRIPE_API_BASE") or STRIPE_API_BASE).rstrip("/")


def get_site_url() -> str:
    """Public base URL of the static site, used in auth email redirects."""
    return (os.getenv("SITE_URL") or DEFAULT_SITE_URL).rstrip("/")


def get_cors_origins() -> List[str]:
    raw = os.getenv("CORS_ORIGINS")
    if not raw:
        return ["*"]
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


def stats_scheduler_enabled() -> bool:
    return (os.getenv("STATS_SCHEDULER_ENABLED") or "true").lower() not in ("0", "false", "no")
