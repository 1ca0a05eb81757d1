"""
Persistence слой: SQLAlchemy модели, mapper и репозитории.
"""

from .database import Database, init_database, to_async_url

__all__ = ["Database", "init_database", "to_async_url"]
