"""
Derived per-vehicle metrics and the enrichment step that adds them as
columns: efficiency (km per kWh of battery capacity), energy cost per km
and a BI-friendly as-of date.
"""
import logging
from typing import Union

import numpy as np
import pandas as pd

from ..utils.helpers import is_null, safe_divide
from .schema import (
    BATTERY_CAPACITY,
    ELECTRICITY_COST,
    ENERGY_CONSUMPTION,
    RANGE_KM,
    YEAR,
    require_columns,
)

logger = logging.getLogger(__name__)

EFFICIENCY = 'range_per_kwh_km'
COST_PER_KM = 'cost_per_km_usd'
AS_OF_DATE = 'as_of_date'


def efficiency_km_per_kwh(range_km: Union[float, pd.Series],
                          battery_capacity_kwh: Union[float, pd.Series]):
    """
    Range per unit of battery capacity (km/kWh).

    A zero, negative or null capacity yields null (None for scalars, NaN
    in a Series) instead of raising or producing infinity, so the value
    drops out of downstream averages.
    """
    if not isinstance(range_km, pd.Series) and not isinstance(battery_capacity_kwh, pd.Series):
        if is_null(battery_capacity_kwh) or float(battery_capacity_kwh) <= 0:
            return None
        return safe_divide(range_km, battery_capacity_kwh)

    capacity = pd.to_numeric(battery_capacity_kwh, errors='coerce').astype('float64')
    distance = pd.to_numeric(range_km, errors='coerce').astype('float64')
    result = distance / capacity.where(capacity > 0)
    return result.replace([np.inf, -np.inf], np.nan)


def cost_per_km(energy_consumption_kwh_per_100km: Union[float, pd.Series],
                electricity_cost_usd_per_kwh: Union[float, pd.Series]):
    """Energy cost of one kilometre in USD."""
    if not isinstance(energy_consumption_kwh_per_100km, pd.Series) and \
            not isinstance(electricity_cost_usd_per_kwh, pd.Series):
        per_km = safe_divide(energy_consumption_kwh_per_100km, 100.0)
        if per_km is None or electricity_cost_usd_per_kwh is None or \
                pd.isna(electricity_cost_usd_per_kwh):
            return None
        return per_km * float(electricity_cost_usd_per_kwh)

    consumption = pd.to_numeric(energy_consumption_kwh_per_100km, errors='coerce').astype('float64')
    price = pd.to_numeric(electricity_cost_usd_per_kwh, errors='coerce').astype('float64')
    return (consumption / 100.0) * price


def as_of_dates(years: pd.Series) -> pd.Series:
    """January 1st of each model year, null for unknown years."""
    year = pd.to_numeric(years, errors='coerce').round().astype('Int64')
    return pd.to_datetime(year.astype('string') + '-01-01', format='%Y-%m-%d', errors='coerce')


def with_efficiency(df: pd.DataFrame, column: str = EFFICIENCY) -> pd.DataFrame:
    """Copy of df with the km/kWh column added."""
    require_columns(df, RANGE_KM, BATTERY_CAPACITY)
    result = df.copy()
    result[column] = efficiency_km_per_kwh(df[RANGE_KM], df[BATTERY_CAPACITY])
    return result


def with_cost_per_km(df: pd.DataFrame, column: str = COST_PER_KM) -> pd.DataFrame:
    """Copy of df with the cost-per-km column added."""
    require_columns(df, ENERGY_CONSUMPTION, ELECTRICITY_COST)
    result = df.copy()
    result[column] = cost_per_km(df[ENERGY_CONSUMPTION], df[ELECTRICITY_COST])
    return result


class DataEnricher:
    """Adds derived columns to a cleaned vehicle table."""

    def __init__(self, vehicle_data: pd.DataFrame):
        self.vehicles = vehicle_data

    def enrich(self) -> pd.DataFrame:
        """Return a copy with efficiency, cost per km and as-of date columns."""
        require_columns(self.vehicles, YEAR)

        enriched = with_cost_per_km(with_efficiency(self.vehicles))
        enriched[AS_OF_DATE] = as_of_dates(enriched[YEAR])

        missing_efficiency = int(enriched[EFFICIENCY].isna().sum())
        if missing_efficiency:
            logger.info(f"{missing_efficiency} vehicle(s) without a computable efficiency")

        logger.info(f"Enriched {len(enriched)} rows with {EFFICIENCY}, {COST_PER_KM}, {AS_OF_DATE}")
        return enriched
