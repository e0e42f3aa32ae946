"""
Utility modules
"""

from .database import (
    SessionFactory,
    get_db,
    get_db_context,
    init_db,
    close_db,
)

__all__ = [
    # Database
    "SessionFactory",
    "get_db",
    "get_db_context",
    "init_db",
    "close_db",
]
