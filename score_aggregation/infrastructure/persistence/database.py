"""Database configuration and session management."""

import logging

from sqlalchemy import MetaData
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool

logger = logging.getLogger(__name__)

DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///./score_aggregation.db"

# Create base class for all models
Base = declarative_base()

# Metadata with naming convention for constraints
naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}
Base.metadata = MetaData(naming_convention=naming_convention)


class DatabaseConfig:
    """Database configuration settings."""

    def __init__(
        self,
        database_url: str = DEFAULT_DATABASE_URL,
        echo: bool = False,
        pool_size: int = 5,
        max_overflow: int = 10,
        pool_pre_ping: bool = True,
    ):
        self.database_url = database_url
        self.echo = echo
        self.pool_size = pool_size
        self.max_overflow = max_overflow
        self.pool_pre_ping = pool_pre_ping

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")


class DatabaseManager:
    """Database connection and session manager."""

    def __init__(self, config: DatabaseConfig):
        self.config = config
        self._async_engine = None
        self._async_session_factory = None

    def get_async_engine(self):
        """Get or create async database engine."""
        if self._async_engine is None:
            engine_kwargs = {
                "echo": self.config.echo,
                "pool_pre_ping": self.config.pool_pre_ping,
            }

            # SQLite connections are opened per checkout
            if self.config.is_sqlite:
                engine_kwargs["poolclass"] = NullPool
                engine_kwargs["connect_args"] = {"check_same_thread": False}
            else:
                engine_kwargs["pool_size"] = self.config.pool_size
                engine_kwargs["max_overflow"] = self.config.max_overflow

            self._async_engine = create_async_engine(self.config.database_url, **engine_kwargs)
        return self._async_engine

    def get_async_session_factory(self) -> async_sessionmaker[AsyncSession]:
        """Get or create async session factory."""
        if self._async_session_factory is None:
            self._async_session_factory = async_sessionmaker(
                bind=self.get_async_engine(),
                class_=AsyncSession,
                expire_on_commit=False,
                autoflush=True,
            )
        return self._async_session_factory

    async def create_tables(self) -> None:
        """Create every mapped table that does not exist yet."""
        # Register the models on Base.metadata
        from . import models  # noqa: F401

        async with self.get_async_engine().begin() as connection:
            await connection.run_sync(Base.metadata.create_all)
        logger.debug(f"Ensured tables on {self._mask_credentials(self.config.database_url)}")

    def _mask_credentials(self, url: str) -> str:
        """Mask credentials in database URL for logging."""
        if "@" in url and "://" in url:
            protocol, rest = url.split("://", 1)
            if "@" in rest:
                _, server = rest.split("@", 1)
                return f"{protocol}://***:***@{server}"
        return url

    async def close(self) -> None:
        """Close all database connections."""
        if self._async_engine:
            await self._async_engine.dispose()
            self._async_engine = None
            self._async_session_factory = None


# Session factory type for dependency injection
SessionFactory = async_sessionmaker[AsyncSession]
