import os
from datetime import timedelta
from pathlib import Path

from dotenv import load_dotenv


_BACKEND_DIR = Path(__file__).resolve().parent
_PROJECT_ROOT = _BACKEND_DIR.parent

# Root .env is canonical; backend/.env remains a fallback.
load_dotenv(_PROJECT_ROOT / ".env")
load_dotenv(_BACKEND_DIR / ".env")

_DEFAULT_DB_PATH = _BACKEND_DIR / "database" / "pulse.db"


def _first_non_empty_env(*names: str, default: str) -> str:
    """Returns the first non-empty env var value from `names`, else `default`."""
    for name in names:
        value = os.getenv(name)
        if value is not None and value != "":
            return value
    return default


def _parse_int_env(*names: str, default: int) -> int:
    """Parses the first non-empty env var in `names` as int, else returns `default`."""
    raw = _first_non_empty_env(*names, default=str(default))
    try:
        return int(raw)
    except (TypeError, ValueError):
        return default


def _access_ttl_seconds() -> int:
    """
    Resolves bearer-token TTL in seconds.

    Preferred var:
      JWT_ACCESS_TOKEN_EXPIRES (seconds)

    Alias:
      JWT_ACCESS_TOKEN_EXPIRES_HOURS (hours)

    Default is a fixed 24-hour window from issuance.
    """
    if os.getenv("JWT_ACCESS_TOKEN_EXPIRES"):
        return _parse_int_env("JWT_ACCESS_TOKEN_EXPIRES", default=86400)

    if os.getenv("JWT_ACCESS_TOKEN_EXPIRES_HOURS"):
        hours = _parse_int_env("JWT_ACCESS_TOKEN_EXPIRES_HOURS", default=24)
        return hours * 3600

    return 86400


def _cors_origins() -> tuple[str, ...]:
    raw = _first_non_empty_env(
        "CORS_ORIGINS",
        default="http://localhost:3000,http://localhost:5173",
    )
    return tuple(origin.strip() for origin in raw.split(",") if origin.strip())


def _sqlite_url(path: Path) -> str:
    return f"sqlite:///{path}"


class BaseConfig:

    # Flask/session secret. Falls back to JWT_SECRET_KEY for compatibility.
    SECRET_KEY: str = _first_non_empty_env(
        "SECRET_KEY",
        "JWT_SECRET_KEY",
        default="change-me-in-production",
    )

    # Signing secret shared by every token issuer and verifier.
    # JWT_SECRET is the name the first deployments used.
    JWT_SECRET_KEY: str = _first_non_empty_env(
        "JWT_SECRET_KEY",
        "JWT_SECRET",
        "SECRET_KEY",
        default="change-me-in-production",
    )

    SQLALCHEMY_TRACK_MODIFICATIONS: bool = False

    # Milliseconds a writer waits for the SQLite lock before failing.
    SQLITE_BUSY_TIMEOUT_MS: int = _parse_int_env("SQLITE_BUSY_TIMEOUT_MS", default=10000)

    JSON_SORT_KEYS: bool = False
    JWT_ACCESS_TOKEN_EXPIRES: timedelta = timedelta(
        seconds=_access_ttl_seconds()  # default: 24 h
    )
    JWT_ALGORITHM: str = "HS256"
    BCRYPT_LOG_ROUNDS: int = _parse_int_env("BCRYPT_LOG_ROUNDS", default=12)

    LOG_LEVEL: str = _first_non_empty_env("LOG_LEVEL", default="INFO")

    # Capacity used when an activity is created without max_members.
    DEFAULT_MAX_MEMBERS: int = _parse_int_env("DEFAULT_MAX_MEMBERS", default=10)

    CORS_ORIGINS: tuple[str, ...] = _cors_origins()


class DevelopmentConfig(BaseConfig):
    DEBUG:   bool = True
    TESTING: bool = False

    SQLALCHEMY_DATABASE_URI: str = os.getenv(
        "DATABASE_URL",
        _sqlite_url(_DEFAULT_DB_PATH),
    )
    SQLALCHEMY_ECHO: bool = False
    LOG_LEVEL: str = _first_non_empty_env("LOG_LEVEL", default="DEBUG")


class TestingConfig(BaseConfig):

    DEBUG:   bool = True
    TESTING: bool = True

    # The integration suite overrides this with a per-session temp file.
    SQLALCHEMY_DATABASE_URI: str = os.getenv(
        "TEST_DATABASE_URL",
        _sqlite_url(_BACKEND_DIR / "database" / "pulse_test.db"),
    )
    SQLALCHEMY_ECHO: bool = False
    JWT_ACCESS_TOKEN_EXPIRES: timedelta = timedelta(minutes=5)

    BCRYPT_LOG_ROUNDS: int = 4


class ProductionConfig(BaseConfig):

    DEBUG:   bool = False
    TESTING: bool = False
    SQLALCHEMY_ECHO: bool = False

    # Resolve at class definition time (import time).
    SQLALCHEMY_DATABASE_URI: str = os.getenv("DATABASE_URL", "")


def validate_production_config(app) -> None:
    """
    Fail-fast guard for production configuration.

    Must be called in the app factory immediately after
    app.config.from_object(ProductionConfig):

        app.config.from_object(ProductionConfig)
        validate_production_config(app)   # raises ValueError if misconfigured

    Raises ValueError if any required production value is missing or insecure.
    """
    if not app.config.get("SQLALCHEMY_DATABASE_URI"):
        raise ValueError(
            "DATABASE_URL environment variable is required in production. "
            "Set it to the SQLite file URL, e.g. sqlite:////var/lib/pulse/pulse.db."
        )
    if app.config.get("SECRET_KEY") == "change-me-in-production":
        raise ValueError(
            "SECRET_KEY must be set to a strong random value in production. "
            "Do not use the default placeholder."
        )
    if app.config.get("JWT_SECRET_KEY") == "change-me-in-production":
        raise ValueError(
            "JWT_SECRET_KEY must be set to a strong random value in production. "
            "Do not use the default placeholder."
        )


# ── Config selector ────────────────────────────────────────────────────────
#
# Used by the app factory:
#   from backend.config import config_by_name
#   app.config.from_object(config_by_name[flask_env])
# ──────────────────────────────────────────────────────────────────────────

config_by_name: dict[str, type[BaseConfig]] = {
    "development": DevelopmentConfig,
    "testing":     TestingConfig,
    "production":  ProductionConfig,
}
