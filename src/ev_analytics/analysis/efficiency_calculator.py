"""
Efficiency Calculator Module
Efficiency leaderboard and running-cost rollups of the EV fleet
"""
import logging
from typing import Dict, Optional

import pandas as pd

from ..data_processing.data_enricher import COST_PER_KM, EFFICIENCY, with_cost_per_km, with_efficiency
from ..data_processing.schema import (
    BATTERY_CAPACITY,
    ELECTRICITY_COST,
    ENERGY_CONSUMPTION,
    MAKE,
    MODEL,
    RANGE_KM,
    REGION,
    require_columns,
)
from ..utils.helpers import to_python
from .aggregations import rollup

logger = logging.getLogger(__name__)


class EfficiencyCalculator:
    """Efficiency and running-cost analysis of the EV fleet"""

    def __init__(self, vehicle_data: pd.DataFrame):
        """
        Initialize efficiency calculator

        Args:
            vehicle_data: Vehicle fact table
        """
        self.vehicles = vehicle_data

    def efficiency_leaderboard(self, min_samples: int = 5, limit: Optional[int] = 25) -> pd.DataFrame:
        """
        Make/model leaderboard of average km per kWh

        Args:
            min_samples: Minimum number of vehicles for a model to qualify
            limit: Maximum number of models returned

        Returns:
            DataFrame with make, model, range_per_kwh_km and samples,
            best first
        """
        require_columns(self.vehicles, MAKE, MODEL, RANGE_KM, BATTERY_CAPACITY)
        data = with_efficiency(self.vehicles)

        leaderboard = rollup(
            data,
            [MAKE, MODEL],
            {
                EFFICIENCY: (EFFICIENCY, 'mean'),
                'samples': (EFFICIENCY, 'size'),
            },
        )
        leaderboard = leaderboard[leaderboard['samples'] >= min_samples]
        leaderboard = leaderboard.sort_values(EFFICIENCY, ascending=False,
                                              kind='mergesort', na_position='last')
        if limit is not None:
            leaderboard = leaderboard.head(limit)

        logger.debug(f"Efficiency leaderboard: {len(leaderboard)} models with >= {min_samples} samples")
        return leaderboard.reset_index(drop=True)

    def cost_per_km_by_region(self) -> pd.DataFrame:
        """
        Average energy cost per km in each region, cheapest first

        Returns:
            DataFrame with region and avg_cost_per_km_usd
        """
        require_columns(self.vehicles, REGION, ENERGY_CONSUMPTION, ELECTRICITY_COST)
        data = with_cost_per_km(self.vehicles)

        return rollup(
            data,
            REGION,
            {'avg_cost_per_km_usd': (COST_PER_KM, 'mean')},
            order_by='avg_cost_per_km_usd',
        )

    def efficiency_summary(self) -> Dict:
        """Fleet-wide efficiency and cost statistics"""
        data = with_cost_per_km(with_efficiency(self.vehicles))
        efficiency = data[EFFICIENCY]
        cost = data[COST_PER_KM]

        return {
            'vehicles': len(data),
            'vehicles_without_efficiency': int(efficiency.isna().sum()),
            'avg_range_per_kwh_km': to_python(efficiency.mean()),
            'median_range_per_kwh_km': to_python(efficiency.median()),
            'min_range_per_kwh_km': to_python(efficiency.min()),
            'max_range_per_kwh_km': to_python(efficiency.max()),
            'avg_cost_per_km_usd': to_python(cost.mean()),
            'min_cost_per_km_usd': to_python(cost.min()),
            'max_cost_per_km_usd': to_python(cost.max()),
        }
