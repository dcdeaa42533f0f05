"""
Configuration management for the EV Fleet Analytics package.
Supports YAML, JSON and environment variables.
"""
import os
import json
import yaml
import logging
from typing import Dict, List, Optional, Any
from dataclasses import dataclass, field, asdict, fields, is_dataclass
from enum import Enum
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# Load environment variables from .env file
load_dotenv()

EXPORT_FORMATS = ('csv', 'json')


class ConfigSource(Enum):
    """Configuration source types."""
    ENV = "environment"
    YAML = "yaml"
    JSON = "json"


@dataclass
class DataConfig:
    """Input dataset configuration."""
    csv_path: Optional[str] = None
    table_name: str = "electric_vehicle_analytics"
    drop_duplicates: bool = True


@dataclass
class ReportConfig:
    """Thresholds and limits of the report catalogue."""
    peek_limit: int = 20
    long_range_km: float = 400.0
    min_battery_health_pct: float = 90.0
    long_range_limit: int = 50
    consumption_limit: int = 20
    leaderboard_min_samples: int = 5
    leaderboard_limit: int = 25
    as_of_limit: int = 10
    top_models_per_region: int = 5
    export_format: str = "csv"
    output_dir: str = "reports"


@dataclass
class DatabaseConfig:
    """SQL backend configuration."""
    url: str = "sqlite://"
    echo_sql: bool = False
    create_indexes: bool = True


@dataclass
class MonitoringConfig:
    """Logging configuration."""
    log_level: str = "INFO"
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    log_file: Optional[str] = None
    max_log_size_mb: int = 10
    backup_count: int = 5


@dataclass
class AppConfig:
    """Main application configuration."""
    app_name: str = "EV Fleet Analytics"
    version: str = "1.0.0"
    environment: str = "development"
    debug: bool = False

    # Component configurations
    data: DataConfig = field(default_factory=DataConfig)
    reports: ReportConfig = field(default_factory=ReportConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    monitoring: MonitoringConfig = field(default_factory=MonitoringConfig)

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return asdict(self)

    def validate(self) -> List[str]:
        """Validate configuration and return list of errors."""
        errors = []

        if self.environment not in ['development', 'staging', 'production']:
            errors.append(f"Invalid environment: {self.environment}")

        if self.reports.export_format not in EXPORT_FORMATS:
            errors.append(f"Invalid export format: {self.reports.export_format}")

        for name in ('peek_limit', 'long_range_limit', 'consumption_limit',
                     'leaderboard_limit', 'as_of_limit', 'top_models_per_region'):
            value = getattr(self.reports, name)
            if not isinstance(value, int) or value < 0:
                errors.append(f"'{name}' must be a non-negative integer, got {value!r}")

        if self.reports.leaderboard_min_samples < 1:
            errors.append("'leaderboard_min_samples' must be at least 1")

        if not (0 <= self.reports.min_battery_health_pct <= 100):
            errors.append(f"Invalid battery health threshold: {self.reports.min_battery_health_pct}")

        if getattr(logging, str(self.monitoring.log_level).upper(), None) is None:
            errors.append(f"Invalid log level: {self.monitoring.log_level}")

        if not self.data.table_name.isidentifier():
            errors.append(f"Invalid table name: {self.data.table_name}")

        return errors


class ConfigManager:
    """
    Configuration manager with support for multiple sources.
    """

    def __init__(self, config_source: ConfigSource = ConfigSource.ENV,
                 config_path: Optional[str] = None):
        """
        Initialize configuration manager.

        Args:
            config_source: Source of configuration
            config_path: Path to configuration file (if using file source)
        """
        self.config_source = config_source
        self.config_path = config_path
        self.config = AppConfig()
        self._load_configuration()

    def _load_configuration(self):
        """Load configuration from specified source."""
        try:
            if self.config_source == ConfigSource.ENV:
                self._load_from_env()
            elif self.config_source == ConfigSource.YAML:
                self._load_from_yaml()
            elif self.config_source == ConfigSource.JSON:
                self._load_from_json()
            else:
                raise ValueError(f"Unsupported config source: {self.config_source}")

            errors = self.config.validate()
            if errors:
                logger.warning(f"Configuration validation errors: {errors}")

            logger.info(f"Configuration loaded from {self.config_source.value}")

        except Exception as e:
            logger.error(f"Failed to load configuration: {e}")
            raise

    def _load_from_env(self):
        """Load configuration from environment variables."""
        self.config.environment = os.getenv('ENVIRONMENT', self.config.environment)
        self.config.debug = os.getenv('DEBUG', 'False').lower() == 'true'

        self.config.data.csv_path = os.getenv('EV_DATA_PATH', self.config.data.csv_path)
        self.config.data.table_name = os.getenv('EV_TABLE_NAME', self.config.data.table_name)

        self.config.database.url = os.getenv('EV_DATABASE_URL', self.config.database.url)

        self.config.monitoring.log_level = os.getenv('EV_LOG_LEVEL', self.config.monitoring.log_level)
        self.config.monitoring.log_file = os.getenv('EV_LOG_FILE', self.config.monitoring.log_file)

        self.config.reports.output_dir = os.getenv('EV_OUTPUT_DIR', self.config.reports.output_dir)
        self.config.reports.export_format = os.getenv('EV_EXPORT_FORMAT',
                                                      self.config.reports.export_format)

    def _load_from_yaml(self):
        """Load configuration from YAML file."""
        if not self.config_path:
            raise ValueError("Config path is required for YAML source")

        with open(self.config_path, 'r') as f:
            config_data = yaml.safe_load(f) or {}

        self._update_config_from_dict(config_data)

    def _load_from_json(self):
        """Load configuration from JSON file."""
        if not self.config_path:
            raise ValueError("Config path is required for JSON source")

        with open(self.config_path, 'r') as f:
            config_data = json.load(f)

        self._update_config_from_dict(config_data)

    def _update_config_from_dict(self, config_dict: Dict[str, Any]):
        """Update configuration from dictionary, ignoring unknown keys."""
        for key, value in config_dict.items():
            if not hasattr(self.config, key):
                logger.warning(f"Ignoring unknown configuration key: {key}")
                continue

            current = getattr(self.config, key)
            if is_dataclass(current) and isinstance(value, dict):
                known = {f.name for f in fields(current)}
                for nested_key, nested_value in value.items():
                    if nested_key in known:
                        setattr(current, nested_key, nested_value)
                    else:
                        logger.warning(f"Ignoring unknown configuration key: {key}.{nested_key}")
            else:
                setattr(self.config, key, value)

    def save_config(self, output_path: str, format: str = 'yaml'):
        """
        Save current configuration to file.

        Args:
            output_path: Output file path
            format: Output format ('yaml' or 'json')
        """
        config_dict = self.config.to_dict()

        if format.lower() == 'yaml':
            with open(output_path, 'w') as f:
                yaml.dump(config_dict, f, default_flow_style=False)
        elif format.lower() == 'json':
            with open(output_path, 'w') as f:
                json.dump(config_dict, f, indent=2)
        else:
            raise ValueError(f"Unsupported format: {format}")

        logger.info(f"Configuration saved to {output_path}")

    def reload(self):
        """Reload configuration from source."""
        self.config = AppConfig()
        self._load_configuration()


# Global configuration instance
_config_instance: Optional[ConfigManager] = None


def get_config() -> AppConfig:
    """
    Get the global application configuration.

    Returns:
        AppConfig instance
    """
    global _config_instance
    if _config_instance is None:
        # Default to environment variables
        _config_instance = ConfigManager(ConfigSource.ENV)
    return _config_instance.config


def load_config(config_source: ConfigSource = ConfigSource.ENV,
                config_path: Optional[str] = None) -> AppConfig:
    """
    Load configuration and return AppConfig.

    Args:
        config_source: Configuration source
        config_path: Path to configuration file

    Returns:
        AppConfig instance
    """
    global _config_instance
    _config_instance = ConfigManager(config_source, config_path)
    return _config_instance.config


def source_for_path(config_path: str) -> ConfigSource:
    """Pick the file source from a configuration file extension."""
    if config_path.lower().endswith(('.yaml', '.yml')):
        return ConfigSource.YAML
    if config_path.lower().endswith('.json'):
        return ConfigSource.JSON
    raise ValueError(f"Unsupported configuration file: {config_path}")


def validate_config(config: AppConfig) -> bool:
    """
    Validate configuration.

    Args:
        config: Configuration to validate

    Returns:
        True if configuration is valid
    """
    errors = config.validate()
    if errors:
        logger.error(f"Configuration validation failed: {errors}")
        return False
    return True
