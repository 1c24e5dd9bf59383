"""Engine settings loaded from the environment."""

import os
from dataclasses import dataclass
from typing import Optional

from .persistence.database import DEFAULT_DATABASE_URL, DatabaseConfig


@dataclass
class EngineSettings:
    """Runtime settings of the aggregation engine."""

    database_url: str = DEFAULT_DATABASE_URL
    database_echo: bool = False
    debounce_seconds: float = 2.0
    max_workers: Optional[int] = None  # None uses the event loop's default executor
    log_level: str = "INFO"

    def __post_init__(self):
        if self.debounce_seconds < 0:
            raise ValueError("AGGREGATION_DEBOUNCE_SECONDS cannot be negative")
        if self.max_workers is not None and self.max_workers < 1:
            raise ValueError("AGGREGATION_MAX_WORKERS must be at least 1")

    @classmethod
    def from_env(cls) -> "EngineSettings":
        """Create settings from environment variables."""
        max_workers = os.getenv("AGGREGATION_MAX_WORKERS")

        return cls(
            database_url=os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL),
            database_echo=os.getenv("DATABASE_ECHO", "false").lower() == "true",
            debounce_seconds=float(os.getenv("AGGREGATION_DEBOUNCE_SECONDS", "2.0")),
            max_workers=int(max_workers) if max_workers else None,
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )

    def database_config(self) -> DatabaseConfig:
        return DatabaseConfig(database_url=self.database_url, echo=self.database_echo)
