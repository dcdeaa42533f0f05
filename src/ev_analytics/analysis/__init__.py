# src/ev_analytics/analysis/__init__.py
"""
EV Fleet Analytics - Analysis Module
This package contains the aggregation, ranking and window functions over the
vehicle table, efficiency rollups and the BI report catalogue.
"""

from .aggregations import fleet_summary, group_by, rollup, filter_top_n, at_least
from .window_functions import rank_within_partition, cumulative_sum, lag_delta, ntile, quartile
from .efficiency_calculator import EfficiencyCalculator
from .fleet_reports import FleetReports, REPORTS

__all__ = [
    'fleet_summary',
    'group_by',
    'rollup',
    'filter_top_n',
    'at_least',
    'rank_within_partition',
    'cumulative_sum',
    'lag_delta',
    'ntile',
    'quartile',
    'EfficiencyCalculator',
    'FleetReports',
    'REPORTS',
]
