"""Application settings and validation."""

import os
from pathlib import Path

BASE = Path(__file__).resolve().parent.parent
DEFAULT_DB_URL = f"sqlite:///{BASE / 'app.db'}"


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes")


class Settings:
    ENV: str
    DATABASE_URL: str
    SQL_ECHO: bool
    LOG_LEVEL: str
    ALLOW_DEV_CORS: bool
    ALLOW_SQLITE_IN_PROD: bool
    DEFAULT_PAGE_SIZE: int
    MAX_PAGE_SIZE: int
    EMPTY_PAGE_STATUS: int

    def __init__(self):
        self.ENV = os.getenv("ENV", "dev").lower()
        self.DATABASE_URL = os.getenv("DATABASE_URL", DEFAULT_DB_URL)
        self.SQL_ECHO = _env_bool("SQL_ECHO", "false")
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
        self.ALLOW_DEV_CORS = _env_bool("ALLOW_DEV_CORS", "true")
        self.ALLOW_SQLITE_IN_PROD = _env_bool("ALLOW_SQLITE_IN_PROD", "false")
        try:
            self.DEFAULT_PAGE_SIZE = int(os.getenv("DEFAULT_PAGE_SIZE", "20"))
            self.MAX_PAGE_SIZE = int(os.getenv("MAX_PAGE_SIZE", "100"))
            # 200 -> empty page body, 204 -> no content when nothing matches
            self.EMPTY_PAGE_STATUS = int(os.getenv("EMPTY_PAGE_STATUS", "200"))
        except ValueError as exc:
            raise RuntimeError(f"invalid numeric setting: {exc}") from exc
        self._validate()

    @property
    def is_sqlite(self) -> bool:
        return self.DATABASE_URL.startswith("sqlite")

    def _validate(self):
        if self.DEFAULT_PAGE_SIZE <= 0 or self.MAX_PAGE_SIZE <= 0:
            raise RuntimeError("DEFAULT_PAGE_SIZE and MAX_PAGE_SIZE must be positive")
        if self.DEFAULT_PAGE_SIZE > self.MAX_PAGE_SIZE:
            raise RuntimeError("DEFAULT_PAGE_SIZE must not exceed MAX_PAGE_SIZE")
        if self.EMPTY_PAGE_STATUS not in (200, 204):
            raise RuntimeError("EMPTY_PAGE_STATUS must be 200 or 204")
        if self.ENV != "dev" and not self.ALLOW_SQLITE_IN_PROD and self.DATABASE_URL == DEFAULT_DB_URL:
            raise RuntimeError("DATABASE_URL must be set to a non-default value in non-dev environments")


settings = Settings()
