"""
Aggregation and rollup functions over the vehicle fact table.

Every function takes the table as an explicit argument and returns a new
object; the input frame is never modified. Referenced columns are checked
before any computation so a bad column name fails fast with
MissingFieldError instead of half-way through an aggregation.
"""
import logging
from typing import Callable, Dict, List, Optional, Sequence, Tuple, Union

import pandas as pd

from ..data_processing.schema import (
    BATTERY_CAPACITY,
    ENERGY_CONSUMPTION,
    MAKE,
    MODEL,
    RANGE_KM,
    MissingFieldError,
    require_columns,
)
from ..utils.helpers import to_python

logger = logging.getLogger(__name__)

Keys = Union[str, Sequence[str]]
Predicate = Callable[[pd.DataFrame], pd.Series]


def as_key_list(keys: Optional[Keys]) -> List[str]:
    """Normalise a key argument (None, one name or several) to a list."""
    if keys is None:
        return []
    if isinstance(keys, str):
        return [keys]
    return list(keys)


def is_ascending(direction: Union[str, bool]) -> bool:
    """
    Interpret a sort direction.

    Args:
        direction: 'asc'/'ascending', 'desc'/'descending' or a bool
            (True meaning ascending)

    Returns:
        True for ascending order
    """
    if isinstance(direction, bool):
        return direction
    normalized = str(direction).strip().lower()
    if normalized in ('asc', 'ascending'):
        return True
    if normalized in ('desc', 'descending'):
        return False
    raise ValueError(f"Invalid sort direction: {direction!r} (use 'asc' or 'desc')")


def fleet_summary(df: pd.DataFrame) -> Dict[str, Optional[float]]:
    """
    Headline statistics of the fleet.

    Args:
        df: Vehicle fact table

    Returns:
        Dictionary with count, distinct make/model counts and the average
        range, battery capacity and energy consumption. Averages are None
        when there is nothing to average.
    """
    require_columns(df, MAKE, MODEL, RANGE_KM, BATTERY_CAPACITY, ENERGY_CONSUMPTION)

    return {
        'count': len(df),
        'make_count': int(df[MAKE].nunique()),
        'model_count': int(df[MODEL].nunique()),
        'avg_range_km': to_python(df[RANGE_KM].mean()),
        'avg_battery_kwh': to_python(df[BATTERY_CAPACITY].mean()),
        'avg_kwh_per_100km': to_python(df[ENERGY_CONSUMPTION].mean()),
    }


def rollup(df: pd.DataFrame,
           keys: Keys,
           aggregations: Dict[str, Tuple[str, Union[str, Callable]]],
           order_by: Optional[Union[str, List[str]]] = None,
           ascending: Union[bool, List[bool]] = True) -> pd.DataFrame:
    """
    Group the table and compute named aggregates per group.

    Null keys form their own group, so every input row lands in exactly one
    output row.

    Args:
        df: Vehicle fact table
        keys: Grouping column(s)
        aggregations: Output column -> (source column, pandas aggregation)
        order_by: Output column(s) to sort by; defaults to the keys
        ascending: Sort direction(s) for order_by

    Returns:
        DataFrame with the key columns followed by the aggregate columns
    """
    keys = as_key_list(keys)
    require_columns(df, keys, [column for column, _ in aggregations.values()])

    output_columns = keys + list(aggregations.keys())
    if order_by is not None:
        unknown = [c for c in as_key_list(order_by) if c not in output_columns]
        if unknown:
            raise MissingFieldError(unknown, output_columns)

    if df.empty:
        return pd.DataFrame(columns=output_columns)

    named = {name: pd.NamedAgg(column=column, aggfunc=func)
             for name, (column, func) in aggregations.items()}
    result = df.groupby(keys, dropna=False, sort=True).agg(**named).reset_index()

    if order_by is not None:
        result = result.sort_values(order_by, ascending=ascending,
                                    kind='mergesort', na_position='last')

    return result[output_columns].reset_index(drop=True)


def group_by(df: pd.DataFrame,
             keys: Keys,
             value_field: str,
             order_by: Optional[str] = None,
             ascending: bool = True) -> pd.DataFrame:
    """
    Count and min/avg/max of one numeric field per group.

    Output columns are the keys, ``count``, ``min_<field>``, ``avg_<field>``
    and ``max_<field>``. ``count`` counts rows (nulls in value_field
    included) so the counts always add up to the input length.
    """
    aggregations = {
        'count': (value_field, 'size'),
        f'min_{value_field}': (value_field, 'min'),
        f'avg_{value_field}': (value_field, 'mean'),
        f'max_{value_field}': (value_field, 'max'),
    }
    return rollup(df, keys, aggregations, order_by=order_by, ascending=ascending)


def _evaluate(df: pd.DataFrame, predicate: Optional[Predicate]) -> pd.Series:
    if predicate is None:
        return pd.Series(True, index=df.index)

    columns = getattr(predicate, 'columns', None)
    if columns:
        require_columns(df, list(columns))

    try:
        mask = predicate(df)
    except KeyError as e:
        raise MissingFieldError([str(e.args[0]) if e.args else str(e)], df.columns) from e

    # Null comparisons count as "no match", like SQL WHERE
    return mask.fillna(False).astype(bool)


def filter_top_n(df: pd.DataFrame,
                 predicate: Optional[Predicate],
                 sort_key: str,
                 direction: Union[str, bool] = 'desc',
                 limit: Optional[int] = None) -> pd.DataFrame:
    """
    Rows satisfying a predicate, sorted by one column, truncated to a limit.

    The sort is stable: rows with equal sort keys keep their input order,
    so results are reproducible. Null sort keys go last.

    Args:
        df: Vehicle fact table
        predicate: Callable returning a boolean mask, or None for all rows
        sort_key: Column to sort by
        direction: 'asc' or 'desc'
        limit: Maximum number of rows (None for no limit)
    """
    require_columns(df, sort_key)
    ascending = is_ascending(direction)
    if limit is not None and limit < 0:
        raise ValueError(f"limit must be non-negative, got {limit}")

    subset = df[_evaluate(df, predicate)]
    ordered = subset.sort_values(sort_key, ascending=ascending,
                                 kind='mergesort', na_position='last')
    if limit is not None:
        ordered = ordered.head(limit)
    return ordered.reset_index(drop=True)


def at_least(**thresholds: float) -> Predicate:
    """
    Predicate matching rows where every named column is >= its threshold.

    >>> long_range = at_least(range_km=400, battery_health_pct=90)
    """
    def predicate(df: pd.DataFrame) -> pd.Series:
        mask = pd.Series(True, index=df.index)
        for column, threshold in thresholds.items():
            mask &= df[column] >= threshold
        return mask

    predicate.columns = list(thresholds.keys())
    return predicate
