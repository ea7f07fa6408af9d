import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path


def _load_env_file() -> None:
    env_path = Path.cwd() / ".env"
    if not env_path.exists():
        return

    for raw_line in env_path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        if key and key not in os.environ:
            os.environ[key] = value


def _as_bool(value: str, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    app_name: str
    environment: str
    session_secret_key: str
    session_https_only: bool
    session_same_site: str
    docs_enabled: bool
    log_level: str
    request_id_header: str


@lru_cache
def get_settings() -> Settings:
    _load_env_file()
    environment = os.getenv("ENVIRONMENT", "development")
    session_same_site_default = "strict" if environment == "production" else "lax"

    return Settings(
        app_name=os.getenv("APP_NAME", "Anti-Forgery Demo"),
        environment=environment,
        session_secret_key=os.getenv("SESSION_SECRET_KEY", "anti-forgery-dev-secret"),
        session_https_only=_as_bool(
            os.getenv("SESSION_HTTPS_ONLY"),
            default=environment == "production",
        ),
        session_same_site=os.getenv("SESSION_SAMESITE", session_same_site_default).strip().lower(),
        docs_enabled=_as_bool(os.getenv("DOCS_ENABLED"), default=environment != "production"),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        request_id_header=os.getenv("REQUEST_ID_HEADER", "X-Request-ID"),
    )
