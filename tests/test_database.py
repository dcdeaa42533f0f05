"""
Unit tests for database modules in EV Fleet Analytics.
"""
import unittest
import pandas as pd
import numpy as np
import sys
import os

# Add src to path
sys.path.append(os.path.join(os.path.dirname(__file__), '..', 'src'))

from ev_analytics.analysis.fleet_reports import REPORTS, FleetReports
from ev_analytics.database.database_manager import DatabaseManager, QueryResult
from ev_analytics.database.sql_queries import AnalyticalQueries
from ev_analytics.utils.config import DatabaseConfig

from fleet_fixtures import sample_fleet


class TestQueryResult(unittest.TestCase):
    """Test cases for QueryResult."""

    def test_initialization(self):
        result = QueryResult(
            success=True,
            data=[{'make': 'Acme', 'vehicles': 3}],
            columns=['make', 'vehicles'],
            row_count=1,
            execution_time=0.5
        )

        self.assertTrue(result.success)
        self.assertEqual(result.row_count, 1)
        self.assertEqual(result.execution_time, 0.5)
        self.assertIsNone(result.error)

    def test_to_dataframe(self):
        result = QueryResult(
            success=True,
            data=[{'id': 1, 'value': 100}, {'id': 2, 'value': 200}],
            columns=['id', 'value'],
            row_count=2
        )

        df = result.to_dataframe()

        self.assertEqual(list(df.columns), ['id', 'value'])
        self.assertEqual(df['value'].iloc[1], 200)

    def test_empty_result_keeps_columns(self):
        result = QueryResult(success=True, data=[], columns=['id', 'value'])

        df = result.to_dataframe()

        self.assertEqual(len(df), 0)
        self.assertEqual(list(df.columns), ['id', 'value'])

    def test_to_dict(self):
        result = QueryResult(success=False, error='boom', query='SELECT 1')

        result_dict = result.to_dict()

        self.assertFalse(result_dict['success'])
        self.assertEqual(result_dict['error'], 'boom')
        self.assertEqual(result_dict['data'], [])
        self.assertEqual(result_dict['query'], 'SELECT 1')


class TestAnalyticalQueries(unittest.TestCase):
    """Test cases for the SQL catalogue."""

    def setUp(self):
        self.queries = AnalyticalQueries('vehicles')

    def test_every_report_has_sql(self):
        for name in REPORTS:
            if name == 'type_mix_by_region':
                continue
            self.assertIn('vehicles', self.queries.get(name))

    def test_unknown_report(self):
        with self.assertRaises(ValueError):
            self.queries.get('nope')

    def test_invalid_table_name(self):
        with self.assertRaises(ValueError):
            AnalyticalQueries('vehicles; DROP TABLE x')

    def test_type_mix_columns(self):
        sql = self.queries.type_mix_by_region(['Van', 'SUV', 'Van'])

        self.assertEqual(sql.count('SUM(CASE'), 2)
        self.assertIn('AS "suv"', sql)
        self.assertIn('AS "van"', sql)
        self.assertIn('COUNT(*) AS total', sql)

    def test_type_mix_merges_spellings(self):
        sql = self.queries.type_mix_by_region(['SUV', 'suv', 'Unknown', 'unknown'])

        self.assertEqual(sql.count('SUM(CASE'), 2)
        self.assertEqual(sql.count('AS "suv"'), 1)
        self.assertIn("IN ('SUV', 'suv')", sql)


class TestDatabaseManager(unittest.TestCase):
    """Test cases for DatabaseManager on in-memory SQLite."""

    def setUp(self):
        self.fleet = sample_fleet()
        self.manager = DatabaseManager(DatabaseConfig(url='sqlite://'))
        self.assertTrue(self.manager.load_vehicles(self.fleet))
        self.reports = FleetReports(self.fleet)

    def tearDown(self):
        self.manager.close()

    def assert_matches_pandas(self, name, **params):
        result = self.manager.run_report(name, **params)
        self.assertTrue(result.success, result.error)

        expected = getattr(self.reports, name)(**params)
        pd.testing.assert_frame_equal(
            result.to_dataframe(),
            expected.reset_index(drop=True),
            check_dtype=False,
            check_exact=False,
        )

    def test_execute_query(self):
        result = self.manager.execute_query(
            "SELECT COUNT(*) AS n FROM electric_vehicle_analytics WHERE make = :make",
            {'make': 'Acme'}
        )

        self.assertTrue(result.success)
        self.assertEqual(result.data, [{'n': 3}])
        self.assertEqual(result.columns, ['n'])

    def test_execute_query_error(self):
        result = self.manager.execute_query("SELECT * FROM missing_table")

        self.assertFalse(result.success)
        self.assertIsNotNone(result.error)
        self.assertTrue(result.to_dataframe().empty)

    def test_get_table_info(self):
        info = self.manager.get_table_info()

        self.assertIn('range_km', list(info['column_name']))

    def test_counts(self):
        self.assertEqual(self.manager.run_report('vehicle_count').data, [{'vehicle_count': 8}])
        self.assertEqual(self.manager.run_report('distinct_counts').data,
                         [{'make_count': 3, 'model_count': 4}])

    def test_basic_averages(self):
        row = self.manager.run_report('basic_averages').data[0]

        self.assertAlmostEqual(row['avg_range_km'], 332.5)
        self.assertAlmostEqual(row['avg_battery_kwh'], 53.125)

    def test_long_range_healthy(self):
        result = self.manager.run_report('long_range_healthy')

        self.assertEqual([row['vehicle_id'] for row in result.data], ['V7', 'V3', 'V1'])

    def test_report_parameter_override(self):
        result = self.manager.run_report('highest_consumption', limit=2)

        self.assertEqual([row['vehicle_id'] for row in result.data], ['V6', 'V2'])

    def test_with_as_of_date(self):
        result = self.manager.run_report('with_as_of_date', limit=1)

        self.assertEqual(result.data[0]['as_of_date'], '2020-01-01')

    def test_grouped_reports_match_pandas(self):
        for name in ('consumption_by_type', 'kpi_by_make', 'cost_per_km_by_region',
                     'type_mix_by_region', 'yoy_range_by_make', 'cumulative_co2_by_region',
                     'resale_quartiles_by_make'):
            with self.subTest(report=name):
                self.assert_matches_pandas(name)

    def test_parameterized_reports_match_pandas(self):
        self.assert_matches_pandas('efficiency_leaderboard', min_samples=1)
        self.assert_matches_pandas('top_models_by_region', top_n=2)
        self.assert_matches_pandas('lowest_consumption', limit=3)

    def reload(self, fleet):
        self.assertTrue(self.manager.load_vehicles(fleet))
        self.reports = FleetReports(fleet)

    def test_null_year_sorts_last_in_both_backends(self):
        fleet = sample_fleet()
        fleet['year'] = fleet['year'].astype('float64')
        fleet.loc[0, 'year'] = np.nan
        self.reload(fleet)

        for name in ('yoy_range_by_make', 'cumulative_co2_by_region'):
            with self.subTest(report=name):
                self.assert_matches_pandas(name)

        europe = self.manager.run_report('cumulative_co2_by_region').to_dataframe()
        europe = europe[europe['region'] == 'Europe']
        self.assertEqual(list(europe['cum_co2_tons']), [3.0, 23.0, 38.0, 48.0])
        self.assertTrue(np.isnan(europe['year'].iloc[-1]))

        acme = self.manager.run_report('yoy_range_by_make').to_dataframe()
        acme = acme[acme['make'] == 'Acme']
        self.assertTrue(np.isnan(acme['yoy_change_km'].iloc[0]))
        self.assertEqual(acme['yoy_change_km'].iloc[1], 125.0)

    def test_null_year_has_null_as_of_date(self):
        fleet = sample_fleet()
        fleet['year'] = fleet['year'].astype('float64')
        fleet.loc[0, 'year'] = np.nan
        self.reload(fleet)

        result = self.manager.run_report('with_as_of_date', limit=2)

        self.assertIsNone(result.data[0]['as_of_date'])
        self.assertEqual(result.data[1]['as_of_date'], '2021-01-01')
        self.assertTrue(pd.isna(self.reports.with_as_of_date(limit=1)['as_of_date'].iloc[0]))

    def test_type_mix_spellings_match_pandas(self):
        fleet = sample_fleet()
        fleet.loc[1, 'vehicle_type'] = 'suv'
        fleet.loc[3, 'vehicle_type'] = None
        fleet.loc[4, 'vehicle_type'] = 'unknown'
        self.reload(fleet)

        self.assert_matches_pandas('type_mix_by_region')

        result = self.manager.run_report('type_mix_by_region').to_dataframe()
        self.assertTrue(result.columns.is_unique)
        self.assertEqual(list(result.columns),
                         ['region', 'sedan', 'suv', 'truck', 'unknown', 'van', 'total'])
        europe = result.set_index('region').loc['Europe']
        self.assertEqual(europe['suv'], 2)
        self.assertEqual(europe['unknown'], 1)

    def test_negative_capacity_leaderboard_matches_pandas(self):
        fleet = sample_fleet()
        fleet.loc[3, 'battery_capacity_kwh'] = -40.0
        self.reload(fleet)

        self.assert_matches_pandas('efficiency_leaderboard', min_samples=1)

        bolt = [row for row in self.manager.run_report('efficiency_leaderboard', min_samples=1).data
                if row['make'] == 'Bolt'][0]
        self.assertAlmostEqual(bolt['range_per_kwh_km'], 5.35)


if __name__ == '__main__':
    unittest.main()
