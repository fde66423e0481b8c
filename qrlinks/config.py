import base64
import binascii
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

from dotenv import load_dotenv

from qrlinks.errors import ConfigurationError

# Explicitly load .env from project root (parent of qrlinks/)
ENV_PATH = Path(__file__).parent.parent / ".env"
load_dotenv(ENV_PATH)

MAX_CODE_LENGTH = 20
MIN_SECRET_BITS = 256


@dataclass(frozen=True)
class Settings:
    environment: str
    database_url: str
    secret_key: bytes
    algorithm: str
    access_token_expire_minutes: int
    public_base_url: str | None
    qr_storage_dir: Path
    cors_origins: list[str]
    code_length: int
    code_max_attempts: int
    log_level: str


def decode_secret(value: str) -> bytes:
    """Secrets may be given as base64 or as plain text."""
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError):
        return value.encode("utf-8")


def _int(environ: Mapping[str, str], name: str, default: int, low: int, high: int) -> int:
    raw = environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}")
    if not low <= value <= high:
        raise ConfigurationError(f"{name} must be between {low} and {high}, got {value}")
    return value


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    environ = os.environ if environ is None else environ
    environment = environ.get("ENVIRONMENT", "dev")

    # Dev: SQLite (zero config), Prod: DATABASE_URL is mandatory
    database_url = environ.get("DATABASE_URL")
    if not database_url:
        if environment == "prod":
            raise ConfigurationError("DATABASE_URL must be set in production")
        database_url = f"sqlite:///{Path(__file__).parent.parent / 'qrlinks_dev.db'}"

    secret = (environ.get("SECRET_KEY") or "").strip()
    if not secret:
        raise ConfigurationError("SECRET_KEY is not set")
    secret_key = decode_secret(secret)
    if len(secret_key) * 8 <= MIN_SECRET_BITS:
        raise ConfigurationError(
            f"SECRET_KEY too short: {len(secret_key) * 8} bits, must be greater than {MIN_SECRET_BITS} bits"
        )

    public_base_url = (environ.get("PUBLIC_BASE_URL") or "").strip().rstrip("/") or None

    storage = environ.get("QR_STORAGE_DIR") or str(Path(__file__).parent.parent / "qr_codes")

    raw_origins = environ.get("CORS_ORIGINS", "")
    origins = [o.strip() for o in raw_origins.split(",") if o.strip()]
    if not origins:
        if environment == "prod":
            origins = [public_base_url] if public_base_url else []
        else:
            origins = ["*"]

    return Settings(
        environment=environment,
        database_url=database_url,
        secret_key=secret_key,
        algorithm=environ.get("ALGORITHM", "HS256"),
        access_token_expire_minutes=_int(environ, "ACCESS_TOKEN_EXPIRE_MINUTES", 120, 1, 60 * 24 * 30),
        public_base_url=public_base_url,
        qr_storage_dir=Path(storage),
        cors_origins=origins,
        code_length=_int(environ, "CODE_LENGTH", 7, 1, MAX_CODE_LENGTH),
        code_max_attempts=_int(environ, "CODE_MAX_ATTEMPTS", 5, 1, 50),
        log_level=environ.get("LOG_LEVEL", "INFO").upper(),
    )


settings = load_settings()
