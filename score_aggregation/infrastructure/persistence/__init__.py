"""Persistence layer for aggregated scores and judge submissions."""

from .database import Base, DatabaseConfig, DatabaseManager, SessionFactory

__all__ = ["Base", "DatabaseConfig", "DatabaseManager", "SessionFactory"]
