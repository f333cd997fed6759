"""
gate_portal/config/settings.py
Application settings

All configuration is read from the environment exactly once, when the
application starts, and handed to the components that need it. Request
handlers receive the Settings instance through app.state; nothing below
this module calls os.getenv.
"""
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Tuple

from dotenv import load_dotenv


PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
ENV_FILE = PROJECT_ROOT / ".env"

DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///./gate_portal.db"
DEFAULT_JWT_SECRET = "dev-secret-key-change-in-production"


def get_bool_env(key: str, default: bool = False) -> bool:
    """Get a boolean value from environment variable."""
    value = os.getenv(key, str(default)).lower()
    return value in ('true', '1', 'yes', 'on', 'enabled')


def _split_origins(raw: str) -> Tuple[str, ...]:
    return tuple(origin.strip() for origin in raw.split(",") if origin.strip())


@dataclass(frozen=True)
class Settings:
    """
    Immutable configuration for one running application.

    To add a new setting:
    1. Add it here as a field with a default
    2. Read it from the environment in load_settings()
    3. Take it from app.state.settings where it is used
    """

    database_url: str = DEFAULT_DATABASE_URL
    jwt_secret_key: str = DEFAULT_JWT_SECRET
    jwt_algorithm: str = "HS256"
    environment: str = "development"
    debug: bool = False
    log_level: str = "INFO"
    rate_limit_enabled: bool = True
    allowed_origins: Tuple[str, ...] = field(default_factory=lambda: (
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ))

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    @property
    def is_sqlite(self) -> bool:
        return "sqlite" in self.database_url.lower()


def load_settings(env_file: Optional[Path] = ENV_FILE) -> Settings:
    """
    Build Settings from the process environment.

    The .env file (if present) is loaded first; variables already exported
    in the environment take precedence over it.
    """
    if env_file is not None and env_file.exists():
        load_dotenv(dotenv_path=env_file, override=False)

    defaults = Settings()
    origins = defaults.allowed_origins + _split_origins(os.getenv("ALLOWED_ORIGINS", ""))

    return Settings(
        database_url=os.getenv("DATABASE_URL") or DEFAULT_DATABASE_URL,
        jwt_secret_key=os.getenv("JWT_SECRET_KEY") or DEFAULT_JWT_SECRET,
        jwt_algorithm=os.getenv("JWT_ALGORITHM", defaults.jwt_algorithm),
        environment=os.getenv("ENVIRONMENT", defaults.environment),
        debug=get_bool_env("DEBUG", False),
        log_level=os.getenv("LOG_LEVEL", defaults.log_level).upper(),
        rate_limit_enabled=get_bool_env("RATE_LIMIT_ENABLED", True),
        allowed_origins=origins,
    )
