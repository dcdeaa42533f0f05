"""
Schema of the electric vehicle fact table.
Canonical column names, the VehicleRecord row type and column validation.
"""
import logging
from dataclasses import dataclass, asdict, fields
from typing import Dict, Iterable, List, Optional, Any

import pandas as pd

logger = logging.getLogger(__name__)

TABLE_NAME = "electric_vehicle_analytics"

# Identifier columns
VEHICLE_ID = "vehicle_id"
MAKE = "make"
MODEL = "model"
YEAR = "year"
REGION = "region"
VEHICLE_TYPE = "vehicle_type"

# Performance columns
BATTERY_CAPACITY = "battery_capacity_kwh"
BATTERY_HEALTH = "battery_health_pct"
RANGE_KM = "range_km"
ENERGY_CONSUMPTION = "energy_consumption_kwh_per_100km"

# Economics / environment columns
ELECTRICITY_COST = "electricity_cost_usd_per_kwh"
RESALE_VALUE = "resale_value_usd"
MONTHLY_CHARGING_COST = "monthly_charging_cost_usd"
CO2_SAVED = "co2_saved_tons"

CATEGORICAL_COLUMNS = [VEHICLE_ID, MAKE, MODEL, REGION, VEHICLE_TYPE]

NUMERIC_COLUMNS = [
    YEAR,
    BATTERY_CAPACITY,
    BATTERY_HEALTH,
    RANGE_KM,
    ENERGY_CONSUMPTION,
    ELECTRICITY_COST,
    RESALE_VALUE,
    MONTHLY_CHARGING_COST,
    CO2_SAVED,
]

REQUIRED_COLUMNS = [
    VEHICLE_ID, MAKE, MODEL, YEAR, REGION, VEHICLE_TYPE,
    BATTERY_CAPACITY, BATTERY_HEALTH, RANGE_KM, ENERGY_CONSUMPTION,
    ELECTRICITY_COST, RESALE_VALUE, CO2_SAVED,
]

OPTIONAL_COLUMNS = [MONTHLY_CHARGING_COST]

ALL_COLUMNS = REQUIRED_COLUMNS + OPTIONAL_COLUMNS


class MissingFieldError(ValueError):
    """A referenced column is absent from the input table."""

    def __init__(self, missing: List[str], available: Optional[Iterable[str]] = None):
        self.missing = list(missing)
        self.available = list(available) if available is not None else []
        message = f"Missing field(s): {', '.join(self.missing)}"
        if self.available:
            message += f" (available: {', '.join(map(str, self.available))})"
        super().__init__(message)


def normalize_column_name(name: Any) -> str:
    """Lower-case a header and replace spaces/dashes with underscores."""
    return str(name).strip().lower().replace(' ', '_').replace('-', '_')


def require_columns(df: pd.DataFrame, *columns: Optional[str]) -> None:
    """
    Check that every referenced column exists in the frame.

    Accepts single names, lists of names, or None (ignored), so callers can
    pass optional partition keys straight through.

    Raises:
        MissingFieldError: If one or more columns are absent
    """
    wanted: List[str] = []
    for column in columns:
        if column is None:
            continue
        if isinstance(column, (list, tuple)):
            wanted.extend(column)
        else:
            wanted.append(column)

    missing = [c for c in wanted if c not in df.columns]
    if missing:
        raise MissingFieldError(missing, df.columns)


@dataclass(frozen=True)
class VehicleRecord:
    """One vehicle observation of the fact table."""
    vehicle_id: str
    make: str
    model: str
    year: int
    region: str
    vehicle_type: str
    battery_capacity_kwh: float
    battery_health_pct: float
    range_km: float
    energy_consumption_kwh_per_100km: float
    electricity_cost_usd_per_kwh: float
    resale_value_usd: float
    co2_saved_tons: float
    monthly_charging_cost_usd: Optional[float] = None

    @classmethod
    def from_dict(cls, row: Dict[str, Any]) -> 'VehicleRecord':
        """Build a record from a mapping with case-insensitive keys."""
        normalized = {normalize_column_name(k): v for k, v in row.items()}
        names = [f.name for f in fields(cls)]
        missing = [n for n in REQUIRED_COLUMNS if n not in normalized]
        if missing:
            raise MissingFieldError(missing, normalized.keys())
        return cls(**{n: normalized.get(n) for n in names})

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def records_to_frame(records: Iterable[VehicleRecord]) -> pd.DataFrame:
    """Build the fact table from VehicleRecord objects."""
    rows = [record.to_dict() for record in records]
    if not rows:
        return empty_frame()
    return pd.DataFrame(rows, columns=ALL_COLUMNS)


def empty_frame() -> pd.DataFrame:
    """Empty fact table with the canonical columns."""
    return pd.DataFrame({column: pd.Series(dtype='float64' if column in NUMERIC_COLUMNS else 'object')
                         for column in ALL_COLUMNS})
