import os

from dotenv import load_dotenv

load_dotenv()


def _get_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_float(value: str | None, default: float) -> float:
    if value is None or not value.strip():
        return default
    return float(value)


APP_ENV = os.getenv("APP_ENV", "development")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./analytics.db")
DB_CONNECT_INITIAL_DELAY_SECONDS = _get_float(os.getenv("DB_CONNECT_INITIAL_DELAY_SECONDS"), 0.5)
DB_CONNECT_MAX_DELAY_SECONDS = _get_float(os.getenv("DB_CONNECT_MAX_DELAY_SECONDS"), 30.0)

JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
TOKEN_EXPIRES_IN = os.getenv("TOKEN_EXPIRES_IN", "1d")

PASSWORD_HASH_ROUNDS = 10

FRONTEND_ORIGIN = os.getenv("FRONTEND_ORIGIN", "http://localhost:3000")

# auto | native | formatted
METRICS_BUCKET_STRATEGY = os.getenv("METRICS_BUCKET_STRATEGY", "auto").strip().lower()

ADMIN_SIGNUP_ENABLED = _get_bool(os.getenv("ADMIN_SIGNUP_ENABLED"), default=True)
ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "")
ADMIN_USERNAME = os.getenv("ADMIN_USERNAME", "")
MAINTENANCE_TOKEN = os.getenv("MAINTENANCE_TOKEN", "")


def validate_runtime_config() -> None:
    if APP_ENV.lower() == "production" and not JWT_SECRET_KEY:
        raise RuntimeError("JWT_SECRET_KEY must be set in production.")
    if METRICS_BUCKET_STRATEGY not in {"auto", "native", "formatted"}:
        raise RuntimeError("METRICS_BUCKET_STRATEGY must be one of: auto, native, formatted.")
