"""Configuración del servicio, resuelta una sola vez al arrancar a partir del entorno."""

import os
import logging
from dataclasses import dataclass, field
from typing import Optional, Tuple

from dotenv import load_dotenv
from sqlalchemy.engine import URL

logger = logging.getLogger(__name__)

INSECURE_DEFAULT_SECRET = "clave_secreta_insegura_por_defecto_cambiar_urgentemente"

DEFAULT_BCRYPT_ROUNDS = 10
MIN_BCRYPT_ROUNDS = 4
MAX_BCRYPT_ROUNDS = 31


@dataclass(frozen=True)
class Settings:
    """Immutable process-wide settings. Built by `load_settings()` or directly in tests."""

    database_url: str
    jwt_secret_key: str = INSECURE_DEFAULT_SECRET
    bcrypt_rounds: int = DEFAULT_BCRYPT_ROUNDS
    db_timeout_seconds: float = 5.0
    cors_origins: Tuple[str, ...] = field(default=("http://localhost:3000",))
    # Compatible mode reproduces the 500/400/403 statuses the frontend expects.
    distinct_error_status: bool = False
    unify_login_errors: bool = False
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 5001

    def __post_init__(self):
        if not self.database_url:
            raise ValueError("database_url must not be empty")
        if not MIN_BCRYPT_ROUNDS <= self.bcrypt_rounds <= MAX_BCRYPT_ROUNDS:
            raise ValueError(
                f"bcrypt_rounds must be between {MIN_BCRYPT_ROUNDS} and {MAX_BCRYPT_ROUNDS}, got {self.bcrypt_rounds}"
            )
        if self.db_timeout_seconds <= 0:
            raise ValueError("db_timeout_seconds must be positive")


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _database_url_from_env() -> str:
    url = os.getenv("DATABASE_URL")
    if url:
        return url

    # Mismo esquema que el resto de servicios: MariaDB vía PyMySQL
    required_vars = ["DB_USER", "DB_PASS", "DB_HOST", "DB_NAME"]
    missing = [var for var in required_vars if not os.getenv(var)]
    if missing:
        msg = f"Missing database environment variables: {', '.join(missing)} (or set DATABASE_URL)"
        logger.critical(msg)
        raise EnvironmentError(msg)

    port: Optional[str] = os.getenv("DB_PORT")
    return URL.create(
        "mysql+pymysql",
        username=os.getenv("DB_USER"),
        password=os.getenv("DB_PASS"),
        host=os.getenv("DB_HOST"),
        port=int(port) if port else None,
        database=os.getenv("DB_NAME"),
    ).render_as_string(hide_password=False)


def load_settings() -> Settings:
    """
    Loads `.env`, reads the environment and returns the frozen settings.

    Raises:
        EnvironmentError: if no database configuration is present.
        ValueError: if a numeric value is out of range.
    """
    load_dotenv()

    secret_key = os.getenv("JWT_SECRET_KEY")
    if not secret_key:
        logger.warning("JWT_SECRET_KEY is not set. Using an insecure default key, do not run like this in production.")
        secret_key = INSECURE_DEFAULT_SECRET

    origins = tuple(
        origin.strip()
        for origin in os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",")
        if origin.strip()
    )

    return Settings(
        database_url=_database_url_from_env(),
        jwt_secret_key=secret_key,
        bcrypt_rounds=int(os.getenv("BCRYPT_ROUNDS", DEFAULT_BCRYPT_ROUNDS)),
        db_timeout_seconds=float(os.getenv("DB_TIMEOUT_SECONDS", 5)),
        cors_origins=origins,
        distinct_error_status=_env_bool("DISTINCT_ERROR_STATUS"),
        unify_login_errors=_env_bool("UNIFY_LOGIN_ERRORS"),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", 5001)),
    )
