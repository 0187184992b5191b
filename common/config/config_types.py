# common/config/config_types.py
"""Closed value sets read from the environment."""

from enum import Enum
import logging


class EnvBool(str, Enum):
    TRUE = "true"
    FALSE = "false"

    @classmethod
    def parse(cls, raw: str) -> bool:
        """Parse a case-insensitive 'true'/'false' env value."""
        return cls(raw.strip().lower()) == cls.TRUE

    def __str__(self) -> str:
        return self.value


class EnvLogLevel(str, Enum):
    """LOG_LEVEL values. `level` maps to the stdlib numeric level."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"

    @property
    def level(self) -> int:
        return getattr(logging, self.value)

    def __str__(self) -> str:
        return self.value


class EnvLogBackends(str, Enum):
    FILE = "file"

    def __str__(self) -> str:
        return self.value


class Environment(str, Enum):
    """ENVIRONMENT values. Production makes DB credentials and SSL mode mandatory."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"

    @property
    def is_production(self) -> bool:
        return self == Environment.PRODUCTION

    def __str__(self) -> str:
        return self.value


class DbDriver(str, Enum):
    """Async drivers DbManager can build a URL for."""

    ASYNCPG = "asyncpg"
    PSYCOPG = "psycopg"
    AIOSQLITE = "aiosqlite"


class SslMode(str, Enum):
    """PostgreSQL sslmode values."""

    DISABLE = "disable"
    ALLOW = "allow"
    PREFER = "prefer"
    REQUIRE = "require"
    VERIFY_CA = "verify-ca"
    VERIFY_FULL = "verify-full"


__all__ = [
    "EnvBool",
    "EnvLogLevel",
    "Environment",
    "EnvLogBackends",
    "DbDriver",
    "SslMode",
]
