"""
Small hand-checked vehicle table shared by the test modules.
"""
import pandas as pd


def sample_fleet() -> pd.DataFrame:
    """Eight vehicles over three makes, two regions and three model years."""
    return pd.DataFrame({
        'vehicle_id': ['V1', 'V2', 'V3', 'V4', 'V5', 'V6', 'V7', 'V8'],
        'make': ['Acme', 'Acme', 'Acme', 'Bolt', 'Bolt', 'Bolt', 'Cell', 'Cell'],
        'model': ['X', 'X', 'Y', 'Z', 'Z', 'Z', 'Q', 'Q'],
        'year': [2020, 2021, 2021, 2020, 2021, 2022, 2022, 2022],
        'region': ['Europe', 'Europe', 'North America', 'Europe',
                   'North America', 'North America', 'Europe', 'Europe'],
        'vehicle_type': ['SUV', 'SUV', 'Sedan', 'Hatchback', 'Hatchback', 'Truck', 'Van', 'Van'],
        'battery_capacity_kwh': [50.0, 0.0, 75.0, 40.0, 40.0, 100.0, 60.0, 60.0],
        'battery_health_pct': [95.0, 80.0, 92.0, 99.0, 91.0, 85.0, 90.0, 88.0],
        'range_km': [400.0, 100.0, 450.0, 250.0, 260.0, 420.0, 480.0, 300.0],
        'energy_consumption_kwh_per_100km': [15.0, 20.0, 16.0, 14.0, 14.0, 25.0, 13.0, 18.0],
        'electricity_cost_usd_per_kwh': [0.3, 0.3, 0.2, 0.3, 0.2, 0.2, 0.3, 0.3],
        'resale_value_usd': [30000.0, 20000.0, 40000.0, 15000.0, 16000.0, 50000.0, 35000.0, 25000.0],
        'co2_saved_tons': [10.0, 20.0, 5.0, 3.0, 4.0, 6.0, 7.0, 8.0],
    })
