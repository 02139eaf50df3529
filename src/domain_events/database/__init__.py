"""Database package for the audit store.

This package provides lazy engine creation and session utilities.
"""

from .connection import borrow_db_session, create_tables, dispose_db, get_engine

__all__ = [
    "borrow_db_session",
    "create_tables",
    "dispose_db",
    "get_engine",
]
