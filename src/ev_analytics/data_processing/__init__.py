# src/ev_analytics/data_processing/__init__.py
"""
EV Fleet Analytics - Data Processing Module
This package contains the vehicle table schema, loading and cleaning,
derived-metric enrichment and a synthetic fleet generator.
"""

from .schema import VehicleRecord, MissingFieldError, records_to_frame, require_columns
from .data_cleaner import VehicleDataCleaner, load_vehicle_data
from .data_enricher import DataEnricher, efficiency_km_per_kwh, cost_per_km
from .fleet_simulator import FleetSimulator, simulate_fleet

__all__ = [
    'VehicleRecord',
    'MissingFieldError',
    'records_to_frame',
    'require_columns',
    'VehicleDataCleaner',
    'load_vehicle_data',
    'DataEnricher',
    'efficiency_km_per_kwh',
    'cost_per_km',
    'FleetSimulator',
    'simulate_fleet',
]
