"""Database layer for gstrecon."""

from gstrecon.database.base import Database
from gstrecon.database.factories import create_sqlite_database

__all__ = ["Database", "create_sqlite_database"]
