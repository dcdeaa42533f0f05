#!/usr/bin/env python3
"""
Main Entry Point for EV Fleet Analytics
Loads the vehicle dataset, computes the BI reports and exports their rows
"""

import argparse
import json
import logging
import sys
from pathlib import Path

# Add src to path
sys.path.append(str(Path(__file__).parent / "src"))

from ev_analytics.analysis.fleet_reports import REPORTS, FleetReports
from ev_analytics.data_processing.data_cleaner import load_vehicle_data
from ev_analytics.data_processing.fleet_simulator import simulate_fleet
from ev_analytics.database.database_manager import DatabaseManager
from ev_analytics.utils.config import (
    EXPORT_FORMATS,
    AppConfig,
    ConfigSource,
    load_config,
    source_for_path,
)
from ev_analytics.utils.helpers import setup_logging, sanitize_filename

logger = logging.getLogger(__name__)


class FleetAnalyticsPipeline:
    """Pipeline orchestrator for the EV fleet reports"""

    def __init__(self, config: AppConfig):
        self.config = config
        self.vehicles = None

    def load(self, input_path=None, simulate=None):
        """Load the vehicle table from CSV or generate a synthetic one"""
        if simulate:
            logger.info(f"Generating {simulate} synthetic vehicles")
            raw = simulate_fleet(simulate)
        else:
            input_path = input_path or self.config.data.csv_path
            if not input_path:
                raise ValueError("No input dataset: pass --input, --simulate or set EV_DATA_PATH")
            raw = input_path

        self.vehicles = load_vehicle_data(raw, drop_duplicates=self.config.data.drop_duplicates)
        return self.vehicles

    def run_reports(self, names, output_dir, fmt):
        """Compute reports with pandas and export them"""
        reports = FleetReports(self.vehicles, self.config.reports)
        return reports.export(output_dir, fmt, names)

    def run_sql_reports(self, names, output_dir, fmt):
        """Compute reports as SQL on the configured database and export them"""
        db_manager = DatabaseManager(self.config.database, self.config.data.table_name,
                                     self.config.reports)
        written = []
        try:
            if not db_manager.load_vehicles(self.vehicles):
                raise RuntimeError("Failed to load vehicles into the database")

            output_dir = Path(output_dir)
            output_dir.mkdir(parents=True, exist_ok=True)
            for name in names:
                result = db_manager.run_report(name)
                if not result.success:
                    logger.error(f"SQL report '{name}' failed: {result.error}")
                    continue
                path = output_dir / sanitize_filename(f"{name}.{fmt}")
                if fmt == 'csv':
                    result.to_dataframe().to_csv(path, index=False)
                else:
                    with open(path, 'w') as f:
                        json.dump(result.data, f, indent=2, default=str)
                written.append(path)
        finally:
            db_manager.close()

        logger.info(f"Exported {len(written)} SQL report(s) to {output_dir}")
        return written


def main():
    parser = argparse.ArgumentParser(
        description='EV Fleet Analytics reports',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog='''
Examples:
  python main.py --input data/ev.csv                     # All reports as CSV
  python main.py --input data/ev.csv --report kpi_by_make --format json
  python main.py --simulate 5000 --sql                   # Synthetic data, SQL backend
  python main.py --list                                  # Available reports
        '''
    )

    parser.add_argument('--input', help='Vehicle dataset CSV path')
    parser.add_argument('--simulate', type=int, metavar='N', help='Use N synthetic vehicles')
    parser.add_argument('--report', action='append', choices=REPORTS,
                        help='Report to run (repeatable, default: all)')
    parser.add_argument('--output', help='Output directory')
    parser.add_argument('--format', choices=EXPORT_FORMATS, help='Export format')
    parser.add_argument('--sql', action='store_true', help='Compute reports as SQL')
    parser.add_argument('--config', help='Configuration file path (YAML or JSON)')
    parser.add_argument('--list', action='store_true', help='List available reports')

    args = parser.parse_args()

    if args.list:
        print('\n'.join(REPORTS))
        return 0

    if args.config:
        config = load_config(source_for_path(args.config), args.config)
    else:
        config = load_config(ConfigSource.ENV)

    monitoring = config.monitoring
    setup_logging(monitoring.log_level, monitoring.log_format, monitoring.log_file,
                  monitoring.max_log_size_mb * 1024 * 1024, monitoring.backup_count)

    pipeline = FleetAnalyticsPipeline(config)
    try:
        pipeline.load(args.input, args.simulate)
    except (OSError, ValueError) as e:
        logger.error(f"Failed to load vehicle data: {e}")
        return 1

    names = args.report or REPORTS
    output_dir = args.output or config.reports.output_dir
    fmt = args.format or config.reports.export_format

    if args.sql:
        pipeline.run_sql_reports(names, output_dir, fmt)
    else:
        pipeline.run_reports(names, output_dir, fmt)

    logger.info("EV Fleet Analytics completed")
    return 0


if __name__ == "__main__":
    sys.exit(main())
