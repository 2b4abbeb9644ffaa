from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings

SUPPORTED_DB_TYPES = ("sqlite", "mysql", "postgresql")


class Settings(BaseSettings):
    # Application
    APP_NAME: str = "PingWatch"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    ALLOWED_ORIGINS: str = "*"
    HOST: str = "0.0.0.0"
    PORT: int = 8080

    # Database
    DB_TYPE: str = "sqlite"
    DATABASE_URL: str = ""          # overrides everything below when set
    SQLITE_PATH: str = "pingwatch.db"
    DB_HOST: str = "localhost"
    DB_PORT: int = 0                # 0 = backend default (3306 / 5432)
    DB_USER: str = "pingwatch"
    DB_PASS: str = "pass"
    DB_NAME: str = "pingwatch"

    # Seed a localhost target on an empty database
    SEED_DEFAULT_TARGET: bool = True

    # Probing
    PROBE_INTERVAL_SECONDS: int = 15
    PROBE_TIMEOUT_SECONDS: float = 10.0

    # Smoothed latency averages
    AVG_SHORT_HORIZON_SECONDS: int = 15 * 60
    AVG_MEDIUM_HORIZON_SECONDS: int = 6 * 60 * 60
    AVG_LONG_HORIZON_SECONDS: int = 24 * 60 * 60

    # Retention
    RETENTION_HORIZON_SECONDS: int = 3 * 24 * 60 * 60
    RETENTION_SWEEP_INTERVAL_SECONDS: int = 15 * 60

    # Grace period for in-flight probes on shutdown
    SHUTDOWN_DRAIN_SECONDS: float = 5.0

    class Config:
        env_file = ".env"
        case_sensitive = True

    @field_validator("DB_TYPE")
    @classmethod
    def validate_db_type(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in SUPPORTED_DB_TYPES:
            raise ValueError(
                f"Unsupported DB_TYPE {v!r}, expected one of {', '.join(SUPPORTED_DB_TYPES)}"
            )
        return v

    @field_validator(
        "PROBE_INTERVAL_SECONDS", "PROBE_TIMEOUT_SECONDS",
        "AVG_SHORT_HORIZON_SECONDS", "AVG_MEDIUM_HORIZON_SECONDS", "AVG_LONG_HORIZON_SECONDS",
        "RETENTION_HORIZON_SECONDS", "RETENTION_SWEEP_INTERVAL_SECONDS",
    )
    @classmethod
    def validate_positive(cls, v):
        if v <= 0:
            raise ValueError("must be greater than zero")
        return v

    @field_validator("SHUTDOWN_DRAIN_SECONDS")
    @classmethod
    def validate_drain(cls, v: float) -> float:
        if v < 0:
            raise ValueError("must not be negative")
        return v

    @model_validator(mode="after")
    def validate_timeout_below_interval(self):
        if self.PROBE_TIMEOUT_SECONDS >= self.PROBE_INTERVAL_SECONDS:
            raise ValueError("PROBE_TIMEOUT_SECONDS must be shorter than PROBE_INTERVAL_SECONDS")
        return self

    @property
    def database_url(self) -> str:
        """SQLAlchemy async URL for the configured backend."""
        if self.DATABASE_URL:
            return self.DATABASE_URL
        if self.DB_TYPE == "sqlite":
            return f"sqlite+aiosqlite:///{self.SQLITE_PATH}"
        if self.DB_TYPE == "mysql":
            port = self.DB_PORT or 3306
            return f"mysql+aiomysql://{self.DB_USER}:{self.DB_PASS}@{self.DB_HOST}:{port}/{self.DB_NAME}"
        port = self.DB_PORT or 5432
        return f"postgresql+asyncpg://{self.DB_USER}:{self.DB_PASS}@{self.DB_HOST}:{port}/{self.DB_NAME}"


settings = Settings()
