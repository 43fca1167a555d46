import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Settings:
    """Runtime configuration, read from the environment (and `.env`)."""

    mongo_url: str = "mongodb://localhost:27017"
    mongo_db: str = "bluezone"
    mongo_transactions: bool = False
    jwt_secret: str = "change-me"
    jwt_algorithm: str = "HS256"
    jwt_expires_minutes: int = 60 * 24 * 7
    log_level: str = "INFO"
    frontend_url: str = "http://localhost:5173"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            mongo_url=os.getenv("MONGO_URL", cls.mongo_url),
            mongo_db=os.getenv("MONGO_DB", cls.mongo_db),
            mongo_transactions=_env_bool("MONGO_TRANSACTIONS", cls.mongo_transactions),
            jwt_secret=os.getenv("JWT_SECRET", cls.jwt_secret),
            jwt_algorithm=os.getenv("JWT_ALGORITHM", cls.jwt_algorithm),
            jwt_expires_minutes=int(os.getenv("JWT_EXPIRES_MINUTES", cls.jwt_expires_minutes)),
            log_level=os.getenv("LOG_LEVEL", cls.log_level),
            frontend_url=os.getenv("FRONTEND_URL", cls.frontend_url),
        )


@lru_cache
def get_settings() -> Settings:
    return Settings.from_env()
