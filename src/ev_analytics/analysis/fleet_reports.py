"""
Report catalogue of the EV fleet.

One method per BI query: data peeks and counts, filters, per-group KPIs,
the efficiency leaderboard and the windowed trend reports. Every method
returns a new DataFrame in presentation order; the underlying table is
never modified.
"""
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd

from ..data_processing.data_enricher import AS_OF_DATE, as_of_dates
from ..data_processing.schema import (
    BATTERY_CAPACITY,
    BATTERY_HEALTH,
    CO2_SAVED,
    ENERGY_CONSUMPTION,
    MAKE,
    MODEL,
    RANGE_KM,
    REGION,
    RESALE_VALUE,
    VEHICLE_ID,
    VEHICLE_TYPE,
    YEAR,
    normalize_column_name,
    require_columns,
)
from ..utils.config import EXPORT_FORMATS, ReportConfig
from ..utils.helpers import Timer, frame_to_records, sanitize_filename
from .aggregations import at_least, filter_top_n, fleet_summary, group_by, rollup
from .efficiency_calculator import EfficiencyCalculator
from .window_functions import cumulative_sum, lag_delta, quartile, rank_within_partition

logger = logging.getLogger(__name__)

REPORTS = [
    'peek',
    'vehicle_count',
    'distinct_counts',
    'basic_averages',
    'long_range_healthy',
    'highest_consumption',
    'lowest_consumption',
    'consumption_by_type',
    'kpi_by_make',
    'cost_per_km_by_region',
    'type_mix_by_region',
    'efficiency_leaderboard',
    'with_as_of_date',
    'yoy_range_by_make',
    'top_models_by_region',
    'cumulative_co2_by_region',
    'resale_quartiles_by_make',
]


def _sum_or_null(values: pd.Series) -> float:
    # SUM over only nulls is null, not zero
    return values.sum(min_count=1)


class FleetReports:
    """BI reports over the vehicle fact table"""

    def __init__(self, vehicle_data: pd.DataFrame, config: Optional[ReportConfig] = None):
        self.vehicles = vehicle_data
        self.config = config or ReportConfig()
        self.efficiency = EfficiencyCalculator(vehicle_data)

    # Data peeks and counts

    def peek(self, limit: Optional[int] = None) -> pd.DataFrame:
        limit = self.config.peek_limit if limit is None else limit
        return self.vehicles.head(limit).reset_index(drop=True)

    def vehicle_count(self) -> pd.DataFrame:
        return pd.DataFrame({'vehicle_count': [len(self.vehicles)]})

    def distinct_counts(self) -> pd.DataFrame:
        summary = fleet_summary(self.vehicles)
        return pd.DataFrame({
            'make_count': [summary['make_count']],
            'model_count': [summary['model_count']],
        })

    def basic_averages(self) -> pd.DataFrame:
        summary = fleet_summary(self.vehicles)
        return pd.DataFrame({
            'avg_range_km': [summary['avg_range_km']],
            'avg_battery_kwh': [summary['avg_battery_kwh']],
            'avg_kwh_per_100km': [summary['avg_kwh_per_100km']],
        })

    # Filters

    def long_range_healthy(self, min_range_km: Optional[float] = None,
                           min_health_pct: Optional[float] = None,
                           limit: Optional[int] = None) -> pd.DataFrame:
        """
        Long-range vehicles with healthy batteries, longest range first

        Args:
            min_range_km: Minimum range (inclusive)
            min_health_pct: Minimum battery health (inclusive)
            limit: Maximum number of rows
        """
        min_range_km = self.config.long_range_km if min_range_km is None else min_range_km
        min_health_pct = self.config.min_battery_health_pct if min_health_pct is None else min_health_pct
        limit = self.config.long_range_limit if limit is None else limit

        columns = [VEHICLE_ID, MAKE, MODEL, YEAR, RANGE_KM, BATTERY_HEALTH]
        require_columns(self.vehicles, columns)

        predicate = at_least(**{RANGE_KM: min_range_km, BATTERY_HEALTH: min_health_pct})
        return filter_top_n(self.vehicles, predicate, RANGE_KM, 'desc', limit)[columns]

    def highest_consumption(self, limit: Optional[int] = None) -> pd.DataFrame:
        limit = self.config.consumption_limit if limit is None else limit
        return filter_top_n(self.vehicles, None, ENERGY_CONSUMPTION, 'desc', limit)

    def lowest_consumption(self, limit: Optional[int] = None) -> pd.DataFrame:
        limit = self.config.consumption_limit if limit is None else limit
        return filter_top_n(self.vehicles, None, ENERGY_CONSUMPTION, 'asc', limit)

    # Per-group KPIs

    def consumption_by_type(self) -> pd.DataFrame:
        """Energy consumption spread per vehicle type, most frugal type first"""
        summary = group_by(self.vehicles, VEHICLE_TYPE, ENERGY_CONSUMPTION,
                           order_by=f'avg_{ENERGY_CONSUMPTION}')
        return summary.rename(columns={
            'count': 'n',
            f'min_{ENERGY_CONSUMPTION}': 'min_cons',
            f'avg_{ENERGY_CONSUMPTION}': 'avg_cons',
            f'max_{ENERGY_CONSUMPTION}': 'max_cons',
        })

    def kpi_by_make(self) -> pd.DataFrame:
        """Fleet size, range, battery and resale averages per make, largest fleet first"""
        return rollup(
            self.vehicles,
            MAKE,
            {
                'vehicles': (VEHICLE_ID, 'size'),
                'avg_range_km': (RANGE_KM, 'mean'),
                'avg_batt_kwh': (BATTERY_CAPACITY, 'mean'),
                'avg_resale_usd': (RESALE_VALUE, 'mean'),
            },
            order_by='vehicles',
            ascending=False,
        )

    def cost_per_km_by_region(self) -> pd.DataFrame:
        return self.efficiency.cost_per_km_by_region()

    def type_mix_by_region(self) -> pd.DataFrame:
        """
        Vehicle count per type in each region, plus the regional total

        One column per vehicle type present in the data (lower-cased, in
        alphabetical order); types differing only in case share a column
        and vehicles without a type are counted under ``unknown``. Rows are
        ordered by region.
        """
        require_columns(self.vehicles, REGION, VEHICLE_TYPE)
        if self.vehicles.empty:
            return pd.DataFrame(columns=[REGION, 'total'])

        types = self.vehicles[VEHICLE_TYPE].fillna('Unknown').map(normalize_column_name)
        data = pd.DataFrame({
            REGION: self.vehicles[REGION].to_numpy(),
            '_type': types.to_numpy(),
        })
        mix = data.groupby([REGION, '_type'], dropna=False).size().unstack('_type', fill_value=0)
        mix = mix[sorted(mix.columns)]
        mix['total'] = mix.sum(axis=1)
        mix = mix.reset_index()
        mix.columns.name = None
        return mix.sort_values(REGION, kind='mergesort', na_position='last').reset_index(drop=True)

    def efficiency_leaderboard(self, min_samples: Optional[int] = None,
                               limit: Optional[int] = None) -> pd.DataFrame:
        min_samples = self.config.leaderboard_min_samples if min_samples is None else min_samples
        limit = self.config.leaderboard_limit if limit is None else limit
        return self.efficiency.efficiency_leaderboard(min_samples=min_samples, limit=limit)

    def with_as_of_date(self, limit: Optional[int] = None) -> pd.DataFrame:
        """First rows of the table with a January 1st date for each model year"""
        limit = self.config.as_of_limit if limit is None else limit
        require_columns(self.vehicles, YEAR)
        rows = self.vehicles.head(limit).reset_index(drop=True)
        rows[AS_OF_DATE] = as_of_dates(rows[YEAR])
        return rows

    # Trends and windowed reports

    def yoy_range_by_make(self) -> pd.DataFrame:
        """Average range per make and year, with the change from the make's previous year"""
        yearly = rollup(self.vehicles, [MAKE, YEAR], {'avg_range_km': (RANGE_KM, 'mean')})
        trend = lag_delta(yearly, MAKE, YEAR, 'avg_range_km', column='yoy_change_km')
        return trend.sort_values([MAKE, YEAR], kind='mergesort').reset_index(drop=True)

    def top_models_by_region(self, top_n: Optional[int] = None) -> pd.DataFrame:
        """
        Best models by average range in each region

        Uses RANK semantics, so ties at the cut-off can return more than
        top_n models for a region.
        """
        top_n = self.config.top_models_per_region if top_n is None else top_n
        model_avg = rollup(self.vehicles, [REGION, MAKE, MODEL], {'avg_range_km': (RANGE_KM, 'mean')})
        ranked = rank_within_partition(model_avg, REGION, 'avg_range_km', 'desc', rank_column='rnk')
        top = ranked[ranked['rnk'] <= top_n]
        return top.sort_values([REGION, 'rnk', MAKE, MODEL], kind='mergesort').reset_index(drop=True)

    def cumulative_co2_by_region(self) -> pd.DataFrame:
        """Yearly CO2 saved per region with its running total across years"""
        yearly = rollup(self.vehicles, [REGION, YEAR], {'total_co2_tons': (CO2_SAVED, _sum_or_null)})
        running = cumulative_sum(yearly, REGION, YEAR, 'total_co2_tons', column='cum_co2_tons')
        return running.sort_values([REGION, YEAR], kind='mergesort').reset_index(drop=True)

    def resale_quartiles_by_make(self) -> pd.DataFrame:
        """Resale value quartile (1 = cheapest) of every vehicle within its make"""
        columns = [VEHICLE_ID, MAKE, MODEL, RESALE_VALUE]
        require_columns(self.vehicles, columns)
        binned = quartile(self.vehicles[columns], MAKE, RESALE_VALUE, column='resale_quartile')
        return binned.reset_index(drop=True)

    # Catalogue

    @staticmethod
    def available_reports() -> List[str]:
        return list(REPORTS)

    def run(self, name: str) -> pd.DataFrame:
        """Run one report by name"""
        if name not in REPORTS:
            raise ValueError(f"Unknown report: {name!r}. Available: {', '.join(REPORTS)}")

        with Timer(f"Report '{name}'", logger):
            result = getattr(self, name)()
        logger.info(f"Report '{name}' returned {len(result)} row(s)")
        return result

    def generate_report(self, names: Optional[List[str]] = None) -> Dict[str, Any]:
        """
        Run several reports and collect their rows

        Args:
            names: Reports to run (default: all)

        Returns:
            Dictionary with a timestamp, the fleet summary and the rows of
            each report (nulls as None)
        """
        names = names or REPORTS
        return {
            'timestamp': datetime.now().isoformat(),
            'summary': fleet_summary(self.vehicles),
            'reports': {name: frame_to_records(self.run(name)) for name in names},
        }

    def export(self, output_dir: Optional[str] = None, fmt: Optional[str] = None,
               names: Optional[List[str]] = None) -> List[Path]:
        """
        Write report rows to files for a BI tool

        Args:
            output_dir: Target directory (created if needed)
            fmt: 'csv' or 'json'
            names: Reports to export (default: all)

        Returns:
            Paths of the written files
        """
        output_dir = Path(output_dir or self.config.output_dir)
        fmt = (fmt or self.config.export_format).lower()
        if fmt not in EXPORT_FORMATS:
            raise ValueError(f"Unsupported export format: {fmt}")

        output_dir.mkdir(parents=True, exist_ok=True)
        written = []
        for name in names or REPORTS:
            result = self.run(name)
            path = output_dir / sanitize_filename(f"{name}.{fmt}")
            if fmt == 'csv':
                result.to_csv(path, index=False)
            else:
                with open(path, 'w') as f:
                    json.dump(frame_to_records(result), f, indent=2, default=str)
            written.append(path)

        logger.info(f"Exported {len(written)} report(s) to {output_dir}")
        return written
