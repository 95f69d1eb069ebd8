import os
import secrets
import logging
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, field_validator

logger = logging.getLogger("pastebox.config")

DEFAULT_MAX_CONTENT_BYTES = 512 * 1024
DEFAULT_SWEEP_INTERVAL = 600


def _int_env(name: str, default: int) -> int:
    v = os.getenv(name)
    if not v:
        return default
    try:
        n = int(v)
    except ValueError:
        logger.warning("Ignoring invalid %s=%r, using %d", name, v, default)
        return default
    if n < 1:
        return default
    return n


def default_db_path() -> str:
    return os.path.abspath(os.path.join(os.getcwd(), "data", "pastes.db"))


class Settings(BaseModel):
    secret: str
    db_path: str
    db_url: Optional[str] = None
    max_content_bytes: int = DEFAULT_MAX_CONTENT_BYTES
    max_body_bytes: int = 4 * DEFAULT_MAX_CONTENT_BYTES
    sweep_interval: int = DEFAULT_SWEEP_INTERVAL
    ui_dir: str = "web/dist"
    log_level: str = "INFO"

    @field_validator("db_url")
    @classmethod
    def sqlite_only(cls, v: Optional[str]) -> Optional[str]:
        # storage errors and id-collision retries are mapped from sqlite3
        if v and not v.startswith("sqlite"):
            raise ValueError("DB_URL must be a sqlite URL")
        return v

    @property
    def database_url(self) -> str:
        return self.db_url or f"sqlite+aiosqlite:///{self.db_path}"

    @classmethod
    def from_env(cls) -> "Settings":
        load_dotenv()

        secret = os.getenv("APP_SECRET")
        if not secret:
            # auth cookies will not survive a restart
            logger.warning("APP_SECRET not set, generating a per-process secret")
            secret = secrets.token_urlsafe(32)

        max_content = _int_env("MAX_CONTENT_BYTES", DEFAULT_MAX_CONTENT_BYTES)
        return cls(
            secret=secret,
            db_path=os.getenv("DATABASE_PATH") or default_db_path(),
            db_url=os.getenv("DB_URL") or None,
            max_content_bytes=max_content,
            max_body_bytes=_int_env("MAX_BODY_BYTES", 4 * max_content),
            sweep_interval=_int_env("SWEEP_INTERVAL", DEFAULT_SWEEP_INTERVAL),
            ui_dir=os.getenv("UI_DIR") or "web/dist",
            log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
        )
