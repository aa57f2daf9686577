"""Core app configuration, database, security and error types."""

from app.core.config import Settings, get_settings

__all__ = ["Settings", "get_settings"]
