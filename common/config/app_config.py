# common/config/app_config.py
"""
Application configuration: database, security, visibility scope, search
and file storage, each read from the environment into a frozen model.
"""

from typing import Any, Optional, Type, TypeVar
from enum import Enum
from pydantic import BaseModel, Field, field_validator, model_validator, SecretStr
from .config_types import EnvBool, EnvLogLevel, DbDriver, SslMode, Environment
from .env_config import require_env, get_env
from .logging_config import LoggingConfig
from pathlib import Path

E = TypeVar("E", bound=Enum)

_DEV_SECRET_KEY = "dev-secret-change-me"


class DatabaseConfig(BaseModel):
    """
    Where the document store lives and how connections are pooled.

    PostgreSQL (asyncpg or psycopg) in deployed environments; aiosqlite for
    local runs, where `name` is the database file path and host/port/SSL
    are ignored.
    """

    driver: DbDriver
    host: str = Field(..., min_length=1)
    port: int = Field(default=5432, gt=0, le=65535)
    name: str = Field(..., min_length=1, description="Database name or SQLite file")
    username: Optional[str] = Field(default=None, min_length=1)
    password: Optional[SecretStr] = Field(default=None)

    pool_size: int = Field(default=10, ge=1, le=100)
    max_overflow: int = Field(default=20, ge=0, le=100)
    pool_timeout: int = Field(default=30, ge=1, le=300)
    pool_recycle: int = Field(default=1800, ge=300)
    # ms; slower statements are logged as warnings by the request middleware
    slow_query_threshold: float = Field(default=500.0, gt=0)

    ssl_mode: Optional[SslMode] = None
    ssl_cert_path: Optional[Path] = None
    ssl_key_path: Optional[Path] = None
    ssl_ca_path: Optional[Path] = None

    model_config = {"frozen": True}

    @field_validator("ssl_cert_path", "ssl_key_path", "ssl_ca_path")
    @classmethod
    def validate_ssl_paths(cls, v: Optional[Path]) -> Optional[Path]:
        if v is not None and not v.exists():
            raise ValueError(f"SSL file not found: {v}")
        return v

    @property
    def is_sqlite(self) -> bool:
        return self.driver == DbDriver.AIOSQLITE

    def get_connection_url(self, include_password: bool = False) -> str:
        """
        SQLAlchemy URL. The password is masked unless `include_password`
        is set, so the default form is safe to log.
        """
        if self.is_sqlite:
            return f"sqlite+aiosqlite:///{self.name}"

        auth = ""
        if self.username:
            secret = "****"
            if include_password and self.password:
                secret = self.password.get_secret_value()
            auth = f"{self.username}:{secret}@"
        return f"postgresql+{self.driver.value}://{auth}{self.host}:{self.port}/{self.name}"

    def requires_ssl(self) -> bool:
        return not self.is_sqlite and self.ssl_mode in (
            SslMode.REQUIRE,
            SslMode.VERIFY_CA,
            SslMode.VERIFY_FULL,
        )

    def to_dict_safe(self) -> dict[str, Any]:
        data = self.model_dump(mode="json")
        if data.get("password"):
            data["password"] = "****"
        return data


class SecurityConfig(BaseModel):
    """Bearer-token and password policy settings."""

    secret_key: SecretStr
    jwt_algorithm: str = Field(default="HS512", pattern=r"^HS(256|384|512)$")
    access_token_expire_hours: int = Field(default=24, ge=1, le=24 * 30)
    password_min_length: int = Field(default=6, ge=1, le=128)

    model_config = {"frozen": True}

    @property
    def uses_dev_secret(self) -> bool:
        return self.secret_key.get_secret_value() == _DEV_SECRET_KEY


class AccessConfig(BaseModel):
    """
    Visibility scope policy.

    include_umg_services: services under a user's granted UMGs count as
    visible in addition to directly granted services.
    """

    include_umg_services: bool = False

    model_config = {"frozen": True}


class SearchConfig(BaseModel):
    """Full-text search tuning."""

    language: str = Field(default="russian", pattern=r"^[a-z_]+$")
    similarity_threshold: float = Field(default=0.3, gt=0, lt=1)
    max_query_length: int = Field(default=100, ge=2, le=1000)
    default_limit: int = Field(default=20, ge=1, le=500)

    model_config = {"frozen": True}


class StorageConfig(BaseModel):
    """Where stored document files live; downloads never leave this directory."""

    upload_dir: Path = Field(default=Path("uploads"))

    model_config = {"frozen": True}


class AppConfig(BaseModel):
    """Everything the service reads from the environment, validated once at startup."""

    app_title: str = Field(..., min_length=1)
    app_version: str = Field(..., pattern=r"^\d+\.\d+\.\d+$")
    environment: str = Field(..., pattern="^(development|staging|production)$")

    logging: LoggingConfig
    database: Optional[DatabaseConfig] = None
    security: SecurityConfig
    access: AccessConfig = Field(default_factory=AccessConfig)
    search: SearchConfig = Field(default_factory=SearchConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def validate_production_settings(self) -> "AppConfig":
        if self.environment != Environment.PRODUCTION.value:
            return self
        if self.database is None:
            raise ValueError("Database config required in production")
        if self.logging.log_level == EnvLogLevel.DEBUG:
            raise ValueError("DEBUG log level not allowed in production")
        if self.security.uses_dev_secret:
            raise ValueError("SECRET_KEY must be set in production")
        return self


def _parse_enum(env_name: str, raw: str, enum_cls: Type[E]) -> E:
    try:
        return enum_cls(raw)
    except ValueError:
        valid = [member.value for member in enum_cls]
        raise ValueError(f"Invalid {env_name}: {raw}. Must be one of: {valid}")


def _optional_path(env_name: str) -> Optional[Path]:
    raw = get_env(env_name)
    return Path(raw) if raw else None


def load_database_config(environment: Environment) -> Optional[DatabaseConfig]:
    """
    Database settings, or None when DB_HOST is unset (the app then refuses
    to start, while seeding scripts and tests supply their own manager).

    Always required once DB_HOST is set: DB_NAME, DB_DRIVER.
    Required in production: DB_USER, DB_PASSWORD, DB_SSL_MODE.
    Optional: DB_PORT, DB_POOL_SIZE, DB_MAX_OVERFLOW, DB_POOL_TIMEOUT,
    DB_POOL_RECYCLE, SLOW_QUERY_THRESHOLD, DB_SSL_CERT, DB_SSL_KEY, DB_SSL_CA.
    """
    host = get_env("DB_HOST")
    if not host:
        return None

    driver = _parse_enum("DB_DRIVER", require_env("DB_DRIVER"), DbDriver)

    # SQLite has no credentials to require
    needs_credentials = environment.is_production and driver != DbDriver.AIOSQLITE
    read = require_env if needs_credentials else get_env
    username = read("DB_USER")
    password = read("DB_PASSWORD")
    ssl_mode = read("DB_SSL_MODE")

    return DatabaseConfig(
        driver=driver,
        host=host,
        port=int(get_env("DB_PORT", "5432")),
        name=require_env("DB_NAME"),
        username=username,
        password=SecretStr(password) if password else None,
        pool_size=int(get_env("DB_POOL_SIZE", "10")),
        max_overflow=int(get_env("DB_MAX_OVERFLOW", "20")),
        pool_timeout=int(get_env("DB_POOL_TIMEOUT", "30")),
        pool_recycle=int(get_env("DB_POOL_RECYCLE", "1800")),
        slow_query_threshold=float(get_env("SLOW_QUERY_THRESHOLD", "500")),
        ssl_mode=_parse_enum("DB_SSL_MODE", ssl_mode, SslMode) if ssl_mode else None,
        ssl_cert_path=_optional_path("DB_SSL_CERT"),
        ssl_key_path=_optional_path("DB_SSL_KEY"),
        ssl_ca_path=_optional_path("DB_SSL_CA"),
    )


def load_security_config() -> SecurityConfig:
    """
    Environment variables (all optional outside production):
    - SECRET_KEY: JWT signing secret
    - JWT_ALGORITHM: HS256 / HS384 / HS512
    - ACCESS_TOKEN_EXPIRE_HOURS: token lifetime
    - PASSWORD_MIN_LENGTH: minimum length for new passwords
    """
    return SecurityConfig(
        secret_key=SecretStr(get_env("SECRET_KEY") or _DEV_SECRET_KEY),
        jwt_algorithm=get_env("JWT_ALGORITHM", "HS512"),
        access_token_expire_hours=int(get_env("ACCESS_TOKEN_EXPIRE_HOURS", "24")),
        password_min_length=int(get_env("PASSWORD_MIN_LENGTH", "6")),
    )


def load_access_config() -> AccessConfig:
    raw = get_env("ACCESS_INCLUDE_UMG_SERVICES", "false")
    try:
        include_umg_services = EnvBool.parse(raw)
    except ValueError:
        raise ValueError(
            f"Invalid ACCESS_INCLUDE_UMG_SERVICES: {raw}. Must be 'true' or 'false'"
        )
    return AccessConfig(include_umg_services=include_umg_services)


def load_search_config() -> SearchConfig:
    return SearchConfig(
        language=get_env("SEARCH_LANGUAGE", "russian"),
        similarity_threshold=float(get_env("SEARCH_SIMILARITY_THRESHOLD", "0.3")),
        max_query_length=int(get_env("SEARCH_MAX_QUERY_LENGTH", "100")),
        default_limit=int(get_env("SEARCH_DEFAULT_LIMIT", "20")),
    )


def load_storage_config() -> StorageConfig:
    return StorageConfig(upload_dir=Path(get_env("UPLOAD_DIR", "uploads")))


def load_app_config() -> AppConfig:
    """
    Raises:
        ValidationError: a value is out of range or malformed
        ConfigurationError: a required env var is missing
    """
    from .logging_config import load_logging_config

    environment = _parse_enum("ENVIRONMENT", require_env("ENVIRONMENT"), Environment)

    return AppConfig(
        app_title=require_env("APP_TITLE"),
        app_version=require_env("APP_VERSION"),
        environment=environment.value,
        logging=load_logging_config(),
        database=load_database_config(environment),
        security=load_security_config(),
        access=load_access_config(),
        search=load_search_config(),
        storage=load_storage_config(),
    )


__all__ = [
    "AppConfig",
    "DatabaseConfig",
    "SecurityConfig",
    "AccessConfig",
    "SearchConfig",
    "StorageConfig",
    "load_app_config",
]
