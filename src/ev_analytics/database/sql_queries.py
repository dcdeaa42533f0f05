"""
SQL text of the fleet report catalogue (SQLite dialect, window functions
require SQLite 3.25+).

Results match the pandas implementation in ``analysis.fleet_reports``:
null sort keys go last and ties keep load order (``rowid``).
"""
from typing import Dict, Iterable

from ..data_processing.schema import TABLE_NAME, normalize_column_name


def _quote_identifier(name: str) -> str:
    return '"' + str(name).replace('"', '""') + '"'


def _quote_literal(value: str) -> str:
    return "'" + str(value).replace("'", "''") + "'"


class AnalyticalQueries:
    """Collection of analytical SQL queries over the vehicle fact table"""

    # 1. Data peeks and counts
    QUERY_PEEK = """
        SELECT * FROM {table}
        ORDER BY rowid
        LIMIT :limit
    """

    QUERY_VEHICLE_COUNT = """
        SELECT COUNT(*) AS vehicle_count FROM {table}
    """

    QUERY_DISTINCT_COUNTS = """
        SELECT COUNT(DISTINCT make) AS make_count,
               COUNT(DISTINCT model) AS model_count
        FROM {table}
    """

    QUERY_BASIC_AVERAGES = """
        SELECT AVG(range_km) AS avg_range_km,
               AVG(battery_capacity_kwh) AS avg_battery_kwh,
               AVG(energy_consumption_kwh_per_100km) AS avg_kwh_per_100km
        FROM {table}
    """

    # 2. Filters
    QUERY_LONG_RANGE_HEALTHY = """
        SELECT vehicle_id, make, model, year, range_km, battery_health_pct
        FROM {table}
        WHERE range_km >= :min_range_km AND battery_health_pct >= :min_health_pct
        ORDER BY range_km DESC, rowid
        LIMIT :limit
    """

    QUERY_HIGHEST_CONSUMPTION = """
        SELECT *
        FROM {table}
        ORDER BY energy_consumption_kwh_per_100km IS NULL,
                 energy_consumption_kwh_per_100km DESC, rowid
        LIMIT :limit
    """

    QUERY_LOWEST_CONSUMPTION = """
        SELECT *
        FROM {table}
        ORDER BY energy_consumption_kwh_per_100km IS NULL,
                 energy_consumption_kwh_per_100km ASC, rowid
        LIMIT :limit
    """

    # 3. Per-group KPIs
    QUERY_CONSUMPTION_BY_TYPE = """
        SELECT vehicle_type,
               COUNT(*) AS n,
               MIN(energy_consumption_kwh_per_100km) AS min_cons,
               AVG(energy_consumption_kwh_per_100km) AS avg_cons,
               MAX(energy_consumption_kwh_per_100km) AS max_cons
        FROM {table}
        GROUP BY vehicle_type
        ORDER BY avg_cons IS NULL, avg_cons, vehicle_type IS NULL, vehicle_type
    """

    QUERY_KPI_BY_MAKE = """
        SELECT make,
               COUNT(*) AS vehicles,
               AVG(range_km) AS avg_range_km,
               AVG(battery_capacity_kwh) AS avg_batt_kwh,
               AVG(resale_value_usd) AS avg_resale_usd
        FROM {table}
        GROUP BY make
        ORDER BY vehicles DESC, make IS NULL, make
    """

    QUERY_COST_PER_KM_BY_REGION = """
        SELECT region,
               AVG((energy_consumption_kwh_per_100km / 100.0) * electricity_cost_usd_per_kwh)
                   AS avg_cost_per_km_usd
        FROM {table}
        GROUP BY region
        ORDER BY avg_cost_per_km_usd IS NULL, avg_cost_per_km_usd, region IS NULL, region
    """

    QUERY_VEHICLE_TYPES = """
        SELECT DISTINCT COALESCE(vehicle_type, 'Unknown') AS vehicle_type
        FROM {table}
        ORDER BY 1
    """

    QUERY_EFFICIENCY_LEADERBOARD = """
        SELECT make, model,
               AVG(CASE WHEN battery_capacity_kwh > 0
                        THEN CAST(range_km AS REAL) / battery_capacity_kwh END) AS range_per_kwh_km,
               COUNT(*) AS samples
        FROM {table}
        GROUP BY make, model
        HAVING COUNT(*) >= :min_samples
        ORDER BY range_per_kwh_km IS NULL, range_per_kwh_km DESC,
                 make IS NULL, make, model IS NULL, model
        LIMIT :limit
    """

    QUERY_WITH_AS_OF_DATE = """
        SELECT *,
               CASE WHEN year IS NULL THEN NULL
                    ELSE DATE(printf('%04d-01-01', year)) END AS as_of_date
        FROM {table}
        ORDER BY rowid
        LIMIT :limit
    """

    # 4. Trends and windowed reports
    QUERY_YOY_RANGE_BY_MAKE = """
        SELECT make, year, avg_range_km,
               avg_range_km - LAG(avg_range_km) OVER (PARTITION BY make
                                                        ORDER BY year IS NULL, year) AS yoy_change_km
        FROM (
            SELECT make, year, AVG(range_km) AS avg_range_km
            FROM {table}
            GROUP BY make, year
        ) t
        ORDER BY make IS NULL, make, year IS NULL, year
    """

    QUERY_TOP_MODELS_BY_REGION = """
        WITH model_avg AS (
            SELECT region, make, model, AVG(range_km) AS avg_range_km
            FROM {table}
            GROUP BY region, make, model
        )
        SELECT *
        FROM (
            SELECT region, make, model, avg_range_km,
                   RANK() OVER (PARTITION BY region
                                ORDER BY avg_range_km IS NULL, avg_range_km DESC) AS rnk
            FROM model_avg
        ) x
        WHERE rnk <= :top_n
        ORDER BY region IS NULL, region, rnk, make, model
    """

    QUERY_CUMULATIVE_CO2_BY_REGION = """
        WITH yearly AS (
            SELECT region, year, SUM(co2_saved_tons) AS total_co2_tons
            FROM {table}
            GROUP BY region, year
        )
        SELECT region, year, total_co2_tons,
               SUM(total_co2_tons) OVER (PARTITION BY region ORDER BY year IS NULL, year
                   ROWS BETWEEN UNBOUNDED PRECEDING AND CURRENT ROW) AS cum_co2_tons
        FROM yearly
        ORDER BY region IS NULL, region, year IS NULL, year
    """

    QUERY_RESALE_QUARTILES_BY_MAKE = """
        SELECT vehicle_id, make, model, resale_value_usd,
               NTILE(4) OVER (PARTITION BY make
                              ORDER BY resale_value_usd IS NULL, resale_value_usd, rowid)
                   AS resale_quartile
        FROM {table}
        ORDER BY rowid
    """

    # 5. Indexes for common filters
    INDEXES = [
        "CREATE INDEX IF NOT EXISTS idx_eva_make_model ON {table} (make, model)",
        "CREATE INDEX IF NOT EXISTS idx_eva_region ON {table} (region)",
        "CREATE INDEX IF NOT EXISTS idx_eva_year ON {table} (year)",
    ]

    REPORT_QUERIES: Dict[str, str] = {
        'peek': QUERY_PEEK,
        'vehicle_count': QUERY_VEHICLE_COUNT,
        'distinct_counts': QUERY_DISTINCT_COUNTS,
        'basic_averages': QUERY_BASIC_AVERAGES,
        'long_range_healthy': QUERY_LONG_RANGE_HEALTHY,
        'highest_consumption': QUERY_HIGHEST_CONSUMPTION,
        'lowest_consumption': QUERY_LOWEST_CONSUMPTION,
        'consumption_by_type': QUERY_CONSUMPTION_BY_TYPE,
        'kpi_by_make': QUERY_KPI_BY_MAKE,
        'cost_per_km_by_region': QUERY_COST_PER_KM_BY_REGION,
        'efficiency_leaderboard': QUERY_EFFICIENCY_LEADERBOARD,
        'with_as_of_date': QUERY_WITH_AS_OF_DATE,
        'yoy_range_by_make': QUERY_YOY_RANGE_BY_MAKE,
        'top_models_by_region': QUERY_TOP_MODELS_BY_REGION,
        'cumulative_co2_by_region': QUERY_CUMULATIVE_CO2_BY_REGION,
        'resale_quartiles_by_make': QUERY_RESALE_QUARTILES_BY_MAKE,
    }

    def __init__(self, table_name: str = TABLE_NAME):
        if not table_name.isidentifier():
            raise ValueError(f"Invalid table name: {table_name!r}")
        self.table_name = table_name

    def get(self, name: str) -> str:
        """SQL of a report with the table name filled in"""
        if name not in self.REPORT_QUERIES:
            raise ValueError(f"No SQL for report: {name!r}")
        return self.REPORT_QUERIES[name].format(table=self.table_name)

    def vehicle_types(self) -> str:
        return self.QUERY_VEHICLE_TYPES.format(table=self.table_name)

    def type_mix_by_region(self, vehicle_types: Iterable[str]) -> str:
        """
        Pivot of vehicle counts per type and region.

        Types are mapped to column names first (nulls to 'unknown', then
        lower-cased), so spellings such as 'SUV' and 'suv' share one column.
        One SUM(CASE ...) column per name in alphabetical order, so no
        category is dropped.
        """
        spellings: Dict[str, set] = {}
        for vehicle_type in vehicle_types:
            spellings.setdefault(normalize_column_name(vehicle_type), set()).add(vehicle_type)

        columns = []
        for name in sorted(spellings):
            literals = ", ".join(_quote_literal(v) for v in sorted(spellings[name]))
            columns.append(
                f"SUM(CASE WHEN COALESCE(vehicle_type, 'Unknown') IN ({literals}) "
                f"THEN 1 ELSE 0 END) AS {_quote_identifier(name)}"
            )
        columns.append("COUNT(*) AS total")

        return (
            "SELECT region,\n       "
            + ",\n       ".join(columns)
            + f"\nFROM {self.table_name}\nGROUP BY region\nORDER BY region IS NULL, region"
        )

    def indexes(self) -> list:
        return [statement.format(table=self.table_name) for statement in self.INDEXES]
