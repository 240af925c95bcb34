"""Database module."""

from cs_automation.db.base import Base
from cs_automation.db.session import async_session_maker, get_db, init_db

__all__ = ["Base", "async_session_maker", "get_db", "init_db"]
