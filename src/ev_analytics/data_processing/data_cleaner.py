import logging
from pathlib import Path
from typing import List, Union

import numpy as np
import pandas as pd

from .schema import (
    CATEGORICAL_COLUMNS,
    NUMERIC_COLUMNS,
    OPTIONAL_COLUMNS,
    REQUIRED_COLUMNS,
    VEHICLE_ID,
    YEAR,
    MissingFieldError,
    normalize_column_name,
)

logger = logging.getLogger(__name__)

MISSING_MARKERS = ['NO DATA', 'N/A', 'NA', 'null', 'NULL', '']


class VehicleDataCleaner:
    """Load and normalise the electric vehicle fact table."""

    def __init__(self, source: Union[str, Path, pd.DataFrame], drop_duplicates: bool = True):
        if isinstance(source, pd.DataFrame):
            self.df = source.copy()
        else:
            logger.info(f"Reading vehicle data from {source}")
            self.df = pd.read_csv(source)
        self.drop_duplicates = drop_duplicates
        self.cleaned_df = None

    def clean_data(self) -> pd.DataFrame:
        """Main cleaning pipeline"""
        self._standardize_columns()
        self._check_required_columns()
        self._handle_missing_values()
        self._coerce_types()
        self._validate_data()

        self.cleaned_df = self.df.copy()
        logger.info(f"Cleaned vehicle table: {len(self.cleaned_df)} rows, "
                    f"{len(self.cleaned_df.columns)} columns")
        return self.cleaned_df

    def _standardize_columns(self):
        """Standardize column names (headers are case-insensitive)"""
        self.df.columns = [normalize_column_name(col) for col in self.df.columns]

    def _check_required_columns(self):
        missing = [c for c in REQUIRED_COLUMNS if c not in self.df.columns]
        if missing:
            raise MissingFieldError(missing, self.df.columns)

        for column in OPTIONAL_COLUMNS:
            if column not in self.df.columns:
                self.df[column] = np.nan

    def _handle_missing_values(self):
        """Handle NO DATA entries"""
        self.df = self.df.replace(MISSING_MARKERS, np.nan)

        for column in CATEGORICAL_COLUMNS:
            self.df[column] = self.df[column].map(
                lambda value: value.strip() if isinstance(value, str) else value
            )

    def _coerce_types(self):
        """Coerce numeric columns, unparseable cells become null"""
        for column in NUMERIC_COLUMNS:
            before = self.df[column].notna().sum()
            self.df[column] = pd.to_numeric(self.df[column], errors='coerce')
            coerced = before - self.df[column].notna().sum()
            if coerced:
                logger.warning(f"{coerced} non-numeric value(s) in '{column}' set to null")

        # Year stays integral but nullable
        self.df[YEAR] = self.df[YEAR].round().astype('Int64')
        self.df[VEHICLE_ID] = self.df[VEHICLE_ID].astype('object')

    def _validate_data(self):
        """Validate cleaned data"""
        if self.drop_duplicates:
            duplicated = self.df[VEHICLE_ID].duplicated(keep='first')
            if duplicated.any():
                logger.warning(f"Dropping {int(duplicated.sum())} duplicate vehicle_id row(s)")
                self.df = self.df[~duplicated].reset_index(drop=True)

        for issue in self.find_range_issues(self.df):
            logger.warning(issue)

    @staticmethod
    def find_range_issues(df: pd.DataFrame) -> List[str]:
        """Report values outside the documented domain without altering them"""
        issues = []
        checks = {
            'range_km': (0, None),
            'energy_consumption_kwh_per_100km': (0, None),
            'co2_saved_tons': (0, None),
            'battery_health_pct': (0, 100),
        }
        for column, (low, high) in checks.items():
            if column not in df.columns:
                continue
            values = df[column]
            bad = values < low
            if high is not None:
                bad = bad | (values > high)
            if bad.any():
                issues.append(f"{int(bad.sum())} row(s) with '{column}' outside "
                              f"[{low}, {high if high is not None else 'inf'}]")

        if 'battery_capacity_kwh' in df.columns:
            zero_capacity = (df['battery_capacity_kwh'] <= 0).sum()
            if zero_capacity:
                issues.append(f"{int(zero_capacity)} row(s) with non-positive battery capacity; "
                              f"efficiency will be null for them")
        return issues

    def save_cleaned_data(self, output_path: str):
        """Save cleaned data to CSV"""
        if self.cleaned_df is not None:
            self.cleaned_df.to_csv(output_path, index=False)
            logger.info(f"Cleaned data saved to {output_path}")


def load_vehicle_data(source: Union[str, Path, pd.DataFrame],
                      drop_duplicates: bool = True) -> pd.DataFrame:
    """Read and clean a vehicle dataset in one call."""
    return VehicleDataCleaner(source, drop_duplicates=drop_duplicates).clean_data()

