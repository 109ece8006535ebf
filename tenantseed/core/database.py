"""Database connection and credential loading."""

import logging
import os
from typing import Dict, Any, Mapping, Optional
from sqlalchemy import create_engine, Engine, text
from sqlalchemy.exc import SQLAlchemyError
from pydantic import BaseModel, Field, field_validator, ValidationInfo


logger = logging.getLogger(__name__)

ENV_PREFIX = "TENANTSEED_"


class DatabaseConfig(BaseModel):
    """Configuration model for database connections."""

    driver: str = Field(default="postgresql", description="Database driver")
    host: str = Field(default="localhost", description="Database host")
    port: int = Field(default=5432, description="Database port")
    database: str = Field(default="", description="Database name, or file path for SQLite")
    username: str = Field(default="", description="Database username")
    password: str = Field(default="", description="Database password")
    url: Optional[str] = Field(default=None, description="Full SQLAlchemy URL; overrides the other fields")
    ssl_mode: Optional[str] = Field(default=None, description="SSL mode")

    @field_validator("driver")
    @classmethod
    def validate_driver(cls, v):
        supported_drivers = ["postgresql", "mysql", "sqlite"]
        if v not in supported_drivers:
            raise ValueError(f"Unsupported driver: {v}. Supported: {supported_drivers}")
        return v

    @field_validator("port")
    @classmethod
    def validate_port(cls, v, info: ValidationInfo):
        # SQLite ignores the port
        if info.data.get("driver") == "sqlite":
            return v
        if not 1 <= v <= 65535:
            raise ValueError("Port must be between 1 and 65535")
        return v

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "DatabaseConfig":
        """Build a configuration from ``TENANTSEED_*`` environment variables.

        ``TENANTSEED_DATABASE_URL`` wins when set. Otherwise
        ``TENANTSEED_DB_DRIVER``, ``_HOST``, ``_PORT``, ``_NAME``, ``_USER``
        and ``_PASSWORD`` are read; a database name is always required.
        """
        env = os.environ if environ is None else environ

        url = env.get(f"{ENV_PREFIX}DATABASE_URL")
        if url:
            return cls(url=url)

        name = env.get(f"{ENV_PREFIX}DB_NAME")
        if not name:
            raise ValueError(
                f"Missing {ENV_PREFIX}DATABASE_URL or {ENV_PREFIX}DB_NAME for the database connection"
            )
        driver = env.get(f"{ENV_PREFIX}DB_DRIVER", "postgresql")
        values: Dict[str, Any] = {"driver": driver, "database": name}
        if driver != "sqlite":
            user = env.get(f"{ENV_PREFIX}DB_USER")
            if not user:
                raise ValueError(f"Missing {ENV_PREFIX}DB_USER for the {driver} connection")
            values.update(
                host=env.get(f"{ENV_PREFIX}DB_HOST", "localhost"),
                username=user,
                password=env.get(f"{ENV_PREFIX}DB_PASSWORD", ""),
            )
            if env.get(f"{ENV_PREFIX}DB_PORT"):
                values["port"] = int(env[f"{ENV_PREFIX}DB_PORT"])
            elif driver == "mysql":
                values["port"] = 3306
        return cls(**values)


class DatabaseConnection:
    """Manages the SQLAlchemy engine used to persist and delete tenant rows."""

    def __init__(self, config: DatabaseConfig):
        """Initialize database connection with configuration."""
        self.config = config
        self._engine: Optional[Engine] = None

    def connect(self) -> None:
        """Establish connection to the database."""
        try:
            connection_url = self._build_connection_url()

            engine_kwargs = {
                "echo": False,
                "pool_pre_ping": True,
                "connect_args": self._get_connect_args(),
            }
            self._engine = create_engine(connection_url, **engine_kwargs)
            logger.info(f"Connecting to {self._engine.dialect.name} database")

            with self._engine.connect() as conn:
                conn.execute(text("SELECT 1"))
                logger.info("Database connection established successfully")

        except SQLAlchemyError as e:
            logger.error(f"Failed to connect to database: {e}")
            raise ConnectionError(f"Database connection failed: {e}")

    def _build_connection_url(self) -> str:
        """Build SQLAlchemy connection URL from config."""
        if self.config.url:
            return self.config.url
        if self.config.driver == "postgresql":
            driver_name = "postgresql+psycopg2"
        elif self.config.driver == "mysql":
            driver_name = "mysql+pymysql"
        elif self.config.driver == "sqlite":
            return f"sqlite:///{self.config.database}"
        else:
            raise ValueError(f"Unsupported driver: {self.config.driver}")

        return (f"{driver_name}://{self.config.username}:{self.config.password}"
                f"@{self.config.host}:{self.config.port}/{self.config.database}")

    def _get_connect_args(self) -> Dict[str, Any]:
        """Get driver-specific connection arguments."""
        args = {}
        if self.config.ssl_mode:
            if self.config.driver == "mysql":
                args["ssl_mode"] = self.config.ssl_mode
            elif self.config.driver == "postgresql":
                args["sslmode"] = self.config.ssl_mode
        return args

    @property
    def engine(self) -> Engine:
        """Get the SQLAlchemy engine."""
        if self._engine is None:
            raise RuntimeError("Database not connected. Call connect() first.")
        return self._engine

    def close(self) -> None:
        """Close database connection and cleanup resources."""
        if self._engine:
            self._engine.dispose()
            self._engine = None
            logger.info("Database connection closed")

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
