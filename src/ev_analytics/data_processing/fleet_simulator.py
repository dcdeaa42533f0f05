import logging
from typing import Dict, Optional

import numpy as np
import pandas as pd
from faker import Faker

from .schema import ALL_COLUMNS

logger = logging.getLogger(__name__)

# make -> model -> (vehicle type, battery kWh, efficiency km/kWh)
CATALOG: Dict[str, Dict[str, tuple]] = {
    'Tesla': {
        'Model 3': ('Sedan', 60.0, 7.2),
        'Model Y': ('SUV', 75.0, 6.6),
        'Cybertruck': ('Truck', 123.0, 4.4),
    },
    'Nissan': {
        'Leaf': ('Hatchback', 40.0, 6.4),
        'Ariya': ('SUV', 87.0, 5.8),
    },
    'Hyundai': {
        'Kona Electric': ('SUV', 64.0, 7.0),
        'Ioniq 5': ('SUV', 77.4, 6.1),
        'Ioniq 6': ('Sedan', 77.4, 7.4),
    },
    'BMW': {
        'i4': ('Sedan', 81.5, 6.2),
        'iX': ('SUV', 105.2, 5.4),
    },
    'Ford': {
        'Mustang Mach-E': ('SUV', 88.0, 5.6),
        'F-150 Lightning': ('Truck', 131.0, 3.9),
    },
    'Volkswagen': {
        'ID.3': ('Hatchback', 58.0, 6.8),
        'ID.4': ('SUV', 77.0, 6.0),
    },
}

# region -> electricity price USD/kWh (mean)
REGIONS: Dict[str, float] = {
    'Asia': 0.14,
    'Australia': 0.24,
    'Europe': 0.30,
    'North America': 0.16,
}


class FleetSimulator:
    """Generates a synthetic electric vehicle fact table."""

    def __init__(self, seed: Optional[int] = 42, start_year: int = 2015, end_year: int = 2024):
        if start_year > end_year:
            raise ValueError(f"start_year {start_year} is after end_year {end_year}")
        self.seed = seed
        self.start_year = start_year
        self.end_year = end_year
        self.rng = np.random.default_rng(seed)
        self.fake = Faker()
        if seed is not None:
            self.fake.seed_instance(seed)

    def generate_vehicle_data(self, n_vehicles: int = 1000) -> pd.DataFrame:
        """Generate simulated vehicle observations"""
        if n_vehicles < 0:
            raise ValueError(f"n_vehicles must be non-negative, got {n_vehicles}")

        records = [self._generate_vehicle(i) for i in range(n_vehicles)]
        df = pd.DataFrame(records, columns=ALL_COLUMNS)
        logger.info(f"Simulated {len(df)} vehicles across {df['region'].nunique()} regions")
        return df

    def _generate_vehicle(self, index: int) -> Dict:
        make = str(self.rng.choice(sorted(CATALOG)))
        model = str(self.rng.choice(sorted(CATALOG[make])))
        vehicle_type, battery_kwh, km_per_kwh = CATALOG[make][model]
        region = str(self.rng.choice(sorted(REGIONS)))
        year = int(self.rng.integers(self.start_year, self.end_year + 1))
        age = self.end_year - year

        # Batteries lose roughly 2% health per year
        battery_health = float(np.clip(self.rng.normal(100 - 2.0 * age, 3.0), 60, 100))
        range_km = battery_kwh * km_per_kwh * battery_health / 100 * self.rng.normal(1.0, 0.05)
        consumption = 100.0 / km_per_kwh * self.rng.normal(1.0, 0.08)
        price = max(0.05, self.rng.normal(REGIONS[region], 0.03))
        monthly_km = self.rng.uniform(600, 2500)

        list_price = battery_kwh * self.rng.uniform(450, 650)
        resale = list_price * (0.88 ** age) * battery_health / 100

        return {
            'vehicle_id': f"EV-{index + 1:06d}-{self.fake.bothify('??##').upper()}",
            'make': make,
            'model': model,
            'year': year,
            'region': region,
            'vehicle_type': vehicle_type,
            'battery_capacity_kwh': battery_kwh,
            'battery_health_pct': round(battery_health, 1),
            'range_km': round(max(range_km, 0.0), 1),
            'energy_consumption_kwh_per_100km': round(max(consumption, 0.0), 2),
            'electricity_cost_usd_per_kwh': round(price, 3),
            'resale_value_usd': round(resale, 2),
            'monthly_charging_cost_usd': round(monthly_km / 100 * consumption * price, 2),
            'co2_saved_tons': round(max(self.rng.normal(1.8, 0.5) * (age + 1), 0.0), 2),
        }


def simulate_fleet(n_vehicles: int = 1000, seed: Optional[int] = 42) -> pd.DataFrame:
    return FleetSimulator(seed=seed).generate_vehicle_data(n_vehicles)
