"""
Utility functions and helpers for the EV Fleet Analytics package.
"""
import logging
import logging.handlers
import math
import re
import time
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)


class Timer:
    """Context manager for timing code execution."""

    def __init__(self, name: str = None, logger: logging.Logger = None):
        self.name = name
        self.logger = logger or logging.getLogger(__name__)
        self.start_time = None
        self.elapsed = None

    def __enter__(self):
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.elapsed = time.perf_counter() - self.start_time

        if self.name:
            self.logger.info(f"{self.name} took {self.elapsed:.4f} seconds")
        else:
            self.logger.info(f"Execution took {self.elapsed:.4f} seconds")

    def get_elapsed(self) -> float:
        """Get elapsed time in seconds."""
        if self.elapsed is None:
            return time.perf_counter() - self.start_time
        return self.elapsed


def setup_logging(
    log_level: str = "INFO",
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    log_file: Optional[str] = None,
    max_bytes: int = 10 * 1024 * 1024,  # 10 MB
    backup_count: int = 5
) -> logging.Logger:
    """
    Setup logging configuration.

    Args:
        log_level: Logging level
        log_format: Log format string
        log_file: Optional log file path
        max_bytes: Maximum log file size
        backup_count: Number of backup files to keep

    Returns:
        Configured logger
    """
    numeric_level = getattr(logging, log_level.upper(), None)
    if not isinstance(numeric_level, int):
        raise ValueError(f"Invalid log level: {log_level}")

    formatter = logging.Formatter(log_format)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=max_bytes,
            backupCount=backup_count
        )
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    # Suppress noisy libraries
    logging.getLogger('sqlalchemy.engine').setLevel(logging.WARNING)

    logger.info(f"Logging configured with level: {log_level}")
    return root_logger


def is_null(value: Any) -> bool:
    """True for None, NaN and pandas NA."""
    if value is None:
        return True
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def safe_divide(numerator: Any, denominator: Any) -> Optional[float]:
    """
    Divide two scalars, returning None instead of raising or producing inf.

    Null operands, a zero denominator and non-finite results all yield None.
    """
    if is_null(numerator) or is_null(denominator):
        return None
    denominator = float(denominator)
    if denominator == 0:
        return None
    result = float(numerator) / denominator
    if not math.isfinite(result):
        return None
    return result


def to_python(value: Any) -> Any:
    """Convert numpy/pandas scalars to plain Python, nulls to None."""
    if is_null(value):
        return None
    if isinstance(value, np.integer):
        return int(value)
    if isinstance(value, np.floating):
        return float(value)
    if isinstance(value, np.bool_):
        return bool(value)
    if isinstance(value, pd.Timestamp):
        return value.date().isoformat()
    return value


def frame_to_records(df: pd.DataFrame) -> List[Dict[str, Any]]:
    """Ordered result rows (field name -> value) with nulls as None."""
    return [
        {column: to_python(value) for column, value in zip(df.columns, row)}
        for row in df.itertuples(index=False, name=None)
    ]


def sanitize_filename(filename: str) -> str:
    """Sanitize filename by removing invalid characters."""
    sanitized = re.sub(r'[<>:"/\\|?*]', '_', filename)
    sanitized = sanitized.strip('. ')
    return sanitized[:255]
