"""
Unit tests for data processing modules in EV Fleet Analytics.
"""
import unittest
import pandas as pd
import numpy as np
import sys
import os
import tempfile

# Add src to path
sys.path.append(os.path.join(os.path.dirname(__file__), '..', 'src'))

from ev_analytics.data_processing.schema import (
    ALL_COLUMNS,
    MissingFieldError,
    VehicleRecord,
    normalize_column_name,
    records_to_frame,
    require_columns,
)
from ev_analytics.data_processing.data_cleaner import VehicleDataCleaner, load_vehicle_data
from ev_analytics.data_processing.data_enricher import (
    DataEnricher,
    as_of_dates,
    cost_per_km,
    efficiency_km_per_kwh,
)
from ev_analytics.data_processing.fleet_simulator import CATALOG, FleetSimulator

from fleet_fixtures import sample_fleet


class TestSchema(unittest.TestCase):
    """Test cases for the vehicle schema helpers."""

    def test_normalize_column_name(self):
        self.assertEqual(normalize_column_name('Vehicle_ID'), 'vehicle_id')
        self.assertEqual(normalize_column_name(' Battery Capacity-kWh '), 'battery_capacity_kwh')

    def test_require_columns(self):
        df = sample_fleet()

        require_columns(df, 'make', ['model', 'year'], None)

        with self.assertRaises(MissingFieldError) as ctx:
            require_columns(df, 'make', ['nope', 'other'])
        self.assertEqual(ctx.exception.missing, ['nope', 'other'])
        self.assertIsInstance(ctx.exception, ValueError)

    def test_vehicle_record_from_dict(self):
        row = {k.upper(): v for k, v in sample_fleet().iloc[0].to_dict().items()}

        record = VehicleRecord.from_dict(row)

        self.assertEqual(record.vehicle_id, 'V1')
        self.assertEqual(record.range_km, 400.0)
        self.assertIsNone(record.monthly_charging_cost_usd)

    def test_vehicle_record_missing_field(self):
        row = sample_fleet().iloc[0].to_dict()
        del row['range_km']

        with self.assertRaises(MissingFieldError):
            VehicleRecord.from_dict(row)

    def test_records_to_frame(self):
        records = [VehicleRecord.from_dict(row) for row in sample_fleet().to_dict('records')]

        df = records_to_frame(records)

        self.assertEqual(list(df.columns), ALL_COLUMNS)
        self.assertEqual(len(df), 8)
        self.assertTrue(records_to_frame([]).empty)


class TestVehicleDataCleaner(unittest.TestCase):
    """Test cases for VehicleDataCleaner."""

    def setUp(self):
        self.raw = sample_fleet()
        self.raw.columns = [c.upper() for c in self.raw.columns]

    def test_clean_data(self):
        cleaned = VehicleDataCleaner(self.raw).clean_data()

        self.assertEqual(len(cleaned), 8)
        self.assertIn('vehicle_id', cleaned.columns)
        # Optional columns are added as nulls
        self.assertTrue(cleaned['monthly_charging_cost_usd'].isna().all())
        self.assertEqual(str(cleaned['year'].dtype), 'Int64')

    def test_missing_markers_become_null(self):
        self.raw['RANGE_KM'] = self.raw['RANGE_KM'].astype(object)
        self.raw.loc[0, 'RANGE_KM'] = 'NO DATA'
        self.raw.loc[1, 'RANGE_KM'] = 'abc'
        self.raw.loc[2, 'MAKE'] = '  Acme  '

        cleaned = VehicleDataCleaner(self.raw).clean_data()

        self.assertTrue(pd.isna(cleaned['range_km'].iloc[0]))
        self.assertTrue(pd.isna(cleaned['range_km'].iloc[1]))
        self.assertEqual(cleaned['range_km'].iloc[2], 450.0)
        self.assertEqual(cleaned['make'].iloc[2], 'Acme')

    def test_missing_required_column(self):
        with self.assertRaises(MissingFieldError) as ctx:
            VehicleDataCleaner(self.raw.drop(columns=['REGION'])).clean_data()
        self.assertEqual(ctx.exception.missing, ['region'])

    def test_duplicate_vehicle_ids(self):
        raw = pd.concat([self.raw, self.raw.iloc[[0]]], ignore_index=True)

        self.assertEqual(len(VehicleDataCleaner(raw).clean_data()), 8)
        self.assertEqual(len(VehicleDataCleaner(raw, drop_duplicates=False).clean_data()), 9)

    def test_input_not_modified(self):
        original = self.raw.copy()
        VehicleDataCleaner(self.raw).clean_data()
        pd.testing.assert_frame_equal(self.raw, original)

    def test_find_range_issues(self):
        issues = VehicleDataCleaner.find_range_issues(sample_fleet())

        # V2 has a zero battery capacity
        self.assertEqual(len(issues), 1)
        self.assertIn('battery capacity', issues[0])

    def test_load_from_csv(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, 'ev.csv')
            self.raw.to_csv(path, index=False)

            cleaned = load_vehicle_data(path)

            cleaner = VehicleDataCleaner(path)
            cleaner.clean_data()
            output_path = os.path.join(tmpdir, 'ev_clean.csv')
            cleaner.save_cleaned_data(output_path)
            self.assertEqual(list(pd.read_csv(output_path).columns), ALL_COLUMNS)

        self.assertEqual(len(cleaned), 8)
        self.assertEqual(cleaned['make'].nunique(), 3)


class TestDataEnricher(unittest.TestCase):
    """Test cases for derived metrics."""

    def test_efficiency_series(self):
        result = efficiency_km_per_kwh(pd.Series([400.0, 100.0, 300.0]),
                                       pd.Series([50.0, 0.0, np.nan]))

        self.assertEqual(result.iloc[0], 8.0)
        self.assertTrue(np.isnan(result.iloc[1]))
        self.assertTrue(np.isnan(result.iloc[2]))
        self.assertFalse(np.isinf(result).any())

    def test_efficiency_scalar(self):
        self.assertEqual(efficiency_km_per_kwh(400, 50), 8.0)
        self.assertIsNone(efficiency_km_per_kwh(400, 0))
        self.assertIsNone(efficiency_km_per_kwh(None, 50))

    def test_efficiency_negative_capacity_is_null(self):
        result = efficiency_km_per_kwh(pd.Series([400.0, 250.0]), pd.Series([50.0, -40.0]))

        self.assertEqual(result.iloc[0], 8.0)
        self.assertTrue(np.isnan(result.iloc[1]))
        self.assertIsNone(efficiency_km_per_kwh(250, -40))

    def test_cost_per_km(self):
        self.assertAlmostEqual(cost_per_km(15, 0.3), 0.045)
        self.assertIsNone(cost_per_km(15, None))

        series = cost_per_km(pd.Series([15.0, 20.0]), pd.Series([0.3, 0.2]))
        self.assertAlmostEqual(series.iloc[1], 0.04)

    def test_as_of_dates(self):
        result = as_of_dates(pd.Series([2020, None, 2022], dtype='Int64'))

        self.assertEqual(result.iloc[0], pd.Timestamp('2020-01-01'))
        self.assertTrue(pd.isna(result.iloc[1]))
        self.assertEqual(result.iloc[2], pd.Timestamp('2022-01-01'))

    def test_enrich(self):
        fleet = sample_fleet()

        enriched = DataEnricher(fleet).enrich()

        self.assertIn('range_per_kwh_km', enriched.columns)
        self.assertIn('cost_per_km_usd', enriched.columns)
        self.assertIn('as_of_date', enriched.columns)
        self.assertTrue(np.isnan(enriched['range_per_kwh_km'].iloc[1]))
        self.assertNotIn('range_per_kwh_km', fleet.columns)


class TestFleetSimulator(unittest.TestCase):
    """Test cases for FleetSimulator."""

    def test_generate_vehicle_data(self):
        df = FleetSimulator(seed=7).generate_vehicle_data(200)

        self.assertEqual(len(df), 200)
        self.assertEqual(list(df.columns), ALL_COLUMNS)
        self.assertTrue(df['vehicle_id'].is_unique)
        self.assertTrue(set(df['make']).issubset(CATALOG))
        self.assertTrue(df['battery_health_pct'].between(60, 100).all())
        self.assertTrue((df['year'] >= 2015).all() and (df['year'] <= 2024).all())

    def test_seed_is_reproducible(self):
        first = FleetSimulator(seed=3).generate_vehicle_data(50)
        second = FleetSimulator(seed=3).generate_vehicle_data(50)

        pd.testing.assert_frame_equal(first, second)

    def test_simulated_data_cleans(self):
        cleaned = load_vehicle_data(FleetSimulator(seed=1).generate_vehicle_data(100))
        self.assertEqual(len(cleaned), 100)

    def test_invalid_arguments(self):
        with self.assertRaises(ValueError):
            FleetSimulator(start_year=2025, end_year=2020)
        with self.assertRaises(ValueError):
            FleetSimulator().generate_vehicle_data(-1)


if __name__ == '__main__':
    unittest.main()
