"""Infrastructure package exports."""

from . import database, redis, repositories

__all__ = ["database", "redis", "repositories"]
