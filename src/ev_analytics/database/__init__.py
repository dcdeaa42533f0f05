"""
Database package for EV Fleet Analytics.
Runs the report catalogue as SQL on an embedded or external database.
"""
from .database_manager import DatabaseManager, QueryResult
from .sql_queries import AnalyticalQueries

__all__ = [
    'DatabaseManager',
    'QueryResult',
    'AnalyticalQueries'
]
