"""Database utilities for NonprofitSuite.

PyDAL handles schema definition and all runtime queries.
"""

# flake8: noqa: E501

from shared.database.connection import (
    create_db_connection,
    normalize_database_url,
)
from shared.database.manager import DatabaseManager

__all__ = [
    "DatabaseManager",
    "create_db_connection",
    "normalize_database_url",
]
