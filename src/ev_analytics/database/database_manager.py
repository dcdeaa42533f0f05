"""
Database Manager for the EV Fleet Analytics package.
Loads the vehicle table into a SQL engine and runs the report catalogue as SQL.
"""
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import pandas as pd
from sqlalchemy import create_engine, inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool

from ..data_processing.schema import TABLE_NAME
from ..utils.config import DatabaseConfig, ReportConfig
from .sql_queries import AnalyticalQueries

logger = logging.getLogger(__name__)

IN_MEMORY_URLS = ('sqlite://', 'sqlite:///:memory:')


@dataclass
class QueryResult:
    """Standardized query result container."""
    success: bool
    data: Optional[List[Dict]] = None
    columns: Optional[List[str]] = None
    row_count: int = 0
    execution_time: float = 0.0
    error: Optional[str] = None
    query: Optional[str] = None

    def to_dataframe(self) -> pd.DataFrame:
        """Convert result to pandas DataFrame."""
        if not self.success or not self.data:
            return pd.DataFrame(columns=self.columns or [])
        return pd.DataFrame(self.data, columns=self.columns)

    def to_dict(self) -> Dict:
        """Convert to dictionary."""
        return {
            'success': self.success,
            'row_count': self.row_count,
            'execution_time': self.execution_time,
            'error': self.error,
            'data': self.data if self.data else [],
            'query': self.query
        }


class DatabaseManager:
    """
    Runs the fleet reports as SQL on a SQLAlchemy engine.

    The default engine is an in-memory SQLite database shared by every
    connection of this manager.
    """

    def __init__(self, config: Optional[DatabaseConfig] = None,
                 table_name: str = TABLE_NAME,
                 report_config: Optional[ReportConfig] = None):
        """
        Initialize database manager.

        Args:
            config: Database configuration
            table_name: Name of the vehicle fact table
            report_config: Default thresholds and limits for reports
        """
        self.config = config or DatabaseConfig()
        self.report_config = report_config or ReportConfig()
        self.queries = AnalyticalQueries(table_name)
        self.table_name = table_name
        self.engine = self._create_engine()

    def _create_engine(self) -> Engine:
        kwargs: Dict[str, Any] = {'echo': self.config.echo_sql}
        if self.config.url in IN_MEMORY_URLS:
            kwargs['poolclass'] = StaticPool
            kwargs['connect_args'] = {'check_same_thread': False}
        return create_engine(self.config.url, **kwargs)

    def load_vehicles(self, df: pd.DataFrame, if_exists: str = 'replace') -> bool:
        """
        Write the vehicle table to the database.

        Args:
            df: Cleaned vehicle table
            if_exists: Behavior when table exists ('fail', 'replace', 'append')

        Returns:
            True if successful
        """
        try:
            df.to_sql(
                self.table_name,
                self.engine,
                if_exists=if_exists,
                index=False,
                chunksize=1000
            )
            logger.info(f"Inserted {len(df)} rows into {self.table_name}")
        except (SQLAlchemyError, ValueError) as e:
            logger.error(f"Failed to insert DataFrame into {self.table_name}: {e}")
            return False

        if self.config.create_indexes:
            self.create_indexes()
        return True

    def create_indexes(self):
        """Create the indexes used by the make/model, region and year slices."""
        for statement in self.queries.indexes():
            result = self.execute_query(statement)
            if not result.success:
                logger.warning(f"Failed to create index: {result.error}")
        logger.info("Database indexes created/verified successfully")

    def execute_query(self, query: str, params: Optional[Dict[str, Any]] = None) -> QueryResult:
        """
        Execute a SQL query.

        Errors are logged and reported in the result instead of raised.

        Args:
            query: SQL query string with :named parameters
            params: Query parameters

        Returns:
            QueryResult object
        """
        start_time = time.perf_counter()
        result = QueryResult(success=False, query=query)

        try:
            with self.engine.begin() as conn:
                cursor = conn.execute(text(query), params or {})
                if cursor.returns_rows:
                    result.columns = list(cursor.keys())
                    result.data = [dict(row._mapping) for row in cursor]
                    result.row_count = len(result.data)
                else:
                    result.row_count = cursor.rowcount
                result.success = True
        except SQLAlchemyError as e:
            result.error = str(e)
            logger.error(f"Query execution failed: {e}\nQuery: {query}")

        result.execution_time = time.perf_counter() - start_time

        # Log slow queries
        if result.execution_time > 1.0:
            logger.warning(f"Slow query detected: {result.execution_time:.2f}s\n{query}")

        return result

    def query_to_dataframe(self, query: str, params: Optional[Dict[str, Any]] = None) -> pd.DataFrame:
        """
        Execute query and return results as DataFrame.

        Args:
            query: SQL query string
            params: Query parameters

        Returns:
            pandas DataFrame (empty on failure)
        """
        return self.execute_query(query, params).to_dataframe()

    def _report_params(self, name: str, overrides: Dict[str, Any]) -> Dict[str, Any]:
        cfg = self.report_config
        defaults = {
            'peek': {'limit': cfg.peek_limit},
            'long_range_healthy': {
                'min_range_km': cfg.long_range_km,
                'min_health_pct': cfg.min_battery_health_pct,
                'limit': cfg.long_range_limit,
            },
            'highest_consumption': {'limit': cfg.consumption_limit},
            'lowest_consumption': {'limit': cfg.consumption_limit},
            'efficiency_leaderboard': {
                'min_samples': cfg.leaderboard_min_samples,
                'limit': cfg.leaderboard_limit,
            },
            'with_as_of_date': {'limit': cfg.as_of_limit},
            'top_models_by_region': {'top_n': cfg.top_models_per_region},
        }.get(name, {})
        params = dict(defaults)
        params.update({k: v for k, v in overrides.items() if v is not None})
        return params

    def run_report(self, name: str, **params) -> QueryResult:
        """
        Run one report of the catalogue as SQL.

        Args:
            name: Report name (same names as FleetReports)
            **params: Overrides of the report's thresholds and limits

        Returns:
            QueryResult object
        """
        if name == 'type_mix_by_region':
            types = self.execute_query(self.queries.vehicle_types())
            if not types.success:
                return types
            query = self.queries.type_mix_by_region(row['vehicle_type'] for row in types.data)
            result = self.execute_query(query)
        else:
            query = self.queries.get(name)
            result = self.execute_query(query, self._report_params(name, params))

        logger.info(f"SQL report '{name}' returned {result.row_count} row(s) "
                    f"in {result.execution_time:.4f}s")
        return result

    def get_table_info(self) -> pd.DataFrame:
        """Column names and types of the vehicle table."""
        inspector = inspect(self.engine)
        if not inspector.has_table(self.table_name):
            return pd.DataFrame(columns=['column_name', 'data_type', 'nullable'])
        columns = inspector.get_columns(self.table_name)
        return pd.DataFrame([
            {'column_name': c['name'], 'data_type': str(c['type']), 'nullable': c['nullable']}
            for c in columns
        ])

    def close(self):
        """Dispose of the engine and its connections."""
        self.engine.dispose()
        logger.info("Database connections closed")
