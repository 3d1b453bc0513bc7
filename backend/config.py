import os
from datetime import timedelta
from typing import Dict, List

from dotenv import load_dotenv

load_dotenv()

BACKEND_ROOT = os.path.dirname(os.path.abspath(__file__))

AUTH_COOKIE_NAME = "auth-token"

DEFAULT_ADMIN_EMAIL = (
    os.getenv("DEFAULT_ADMIN_EMAIL", "admin@example.com") or "admin@example.com"
).strip().lower()
DEFAULT_ADMIN_NAME = (
    os.getenv("DEFAULT_ADMIN_NAME", "Admin User") or "Admin User"
).strip()
DEFAULT_ADMIN_PASSWORD = os.getenv("DEFAULT_ADMIN_PASSWORD", "")


def env_flag(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except (TypeError, ValueError):
        return default


def allowed_origins() -> List[str]:
    origins = [
        "http://localhost:3000",
        "http://localhost:5173",
        os.getenv("FRONTEND_URL", "").strip(),
        os.getenv("NEXT_PUBLIC_BASE_URL", "").strip(),
    ]
    cors_extra = os.getenv("CORS_ALLOWED_ORIGINS", "")
    if cors_extra:
        for origin in cors_extra.split(","):
            trimmed = origin.strip()
            if trimmed:
                origins.append(trimmed)
    return [origin for origin in origins if origin]


def load_settings() -> Dict[str, object]:
    """Read the environment into a Flask config mapping."""
    max_upload_mb = env_int("MAX_UPLOAD_SIZE_MB", 16)
    return {
        "MONGO_URI": os.getenv("MONGO_URI", "mongodb://localhost:27017/gadgetshub"),
        "JWT_SECRET_KEY": os.getenv("JWT_SECRET_KEY", "change-me-in-production"),
        "JWT_ACCESS_TOKEN_EXPIRES": timedelta(
            hours=env_int("JWT_ACCESS_TOKEN_HOURS", 24)
        ),
        "JWT_TOKEN_LOCATION": ["cookies", "headers"],
        "JWT_ACCESS_COOKIE_NAME": AUTH_COOKIE_NAME,
        "JWT_COOKIE_CSRF_PROTECT": False,
        "JWT_COOKIE_SECURE": env_flag("JWT_COOKIE_SECURE"),
        "JWT_COOKIE_SAMESITE": "Lax",
        "MAX_CONTENT_LENGTH": max_upload_mb * 1024 * 1024,
        "UPLOAD_FOLDER": os.getenv(
            "UPLOAD_FOLDER", os.path.join(BACKEND_ROOT, "uploads")
        ),
        "ALLOWED_IMAGE_EXTENSIONS": {"png", "jpg", "jpeg", "gif", "webp"},
        "RATING_REFRESH_MODE": os.getenv("RATING_REFRESH_MODE", "inline")
        .strip()
        .lower(),
        "TRUSTED_PROXY_HOPS": env_int("TRUSTED_PROXY_HOPS", 1),
        "CORS_ORIGINS": allowed_origins(),
    }
