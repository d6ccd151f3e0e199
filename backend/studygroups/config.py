"""Application settings and validation."""

import os
from pathlib import Path

BASE = Path(__file__).resolve().parent.parent


class Settings:
    ENV: str
    DATABASE_URL: str
    LOG_LEVEL: str
    ALLOW_DEV_CORS: bool
    CREATE_DATE_WINDOW_HOURS: float

    def __init__(self):
        self.ENV = os.getenv("ENV", "dev").lower()
        self.DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{BASE / 'studygroups.db'}")
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
        self.ALLOW_DEV_CORS = os.getenv("ALLOW_DEV_CORS", "true").lower() == "true"
        self.CREATE_DATE_WINDOW_HOURS = float(os.getenv("CREATE_DATE_WINDOW_HOURS", "12"))
        self._validate()

    def _validate(self):
        if self.CREATE_DATE_WINDOW_HOURS <= 0:
            raise RuntimeError("CREATE_DATE_WINDOW_HOURS must be positive")
        if self.ENV != "dev" and self.DATABASE_URL == "sqlite://":
            raise RuntimeError("DATABASE_URL must point to a persistent database in non-dev environments")


settings = Settings()
