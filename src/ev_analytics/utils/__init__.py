"""
Utilities package for EV Fleet Analytics.
Common utilities, helpers, and configuration management.
"""
from .config import (
    ConfigManager,
    ConfigSource,
    load_config,
    get_config,
    validate_config,
    AppConfig,
    DataConfig,
    ReportConfig,
    DatabaseConfig,
    MonitoringConfig
)
from .helpers import (
    setup_logging,
    Timer,
    safe_divide,
    frame_to_records,
    sanitize_filename
)

__all__ = [
    # Config
    'ConfigManager',
    'ConfigSource',
    'load_config',
    'get_config',
    'validate_config',
    'AppConfig',
    'DataConfig',
    'ReportConfig',
    'DatabaseConfig',
    'MonitoringConfig',

    # Helpers
    'setup_logging',
    'Timer',
    'safe_divide',
    'frame_to_records',
    'sanitize_filename'
]
