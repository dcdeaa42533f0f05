"""
Ranking and window functions (RANK, running SUM, LAG, NTILE) over the
vehicle fact table.

Each function works in two phases: rows are first assigned to partitions and
put in (partition, order key, input position) order, then a single ordered
pass computes the annotation. The annotated copy is returned in the original
row order; the input frame is never modified.

Null handling follows SQL: null order keys sort after all other values,
null values are skipped by running sums and make LAG deltas null.
"""
import logging
from typing import Optional, Union

import numpy as np
import pandas as pd

from ..data_processing.schema import require_columns
from .aggregations import Keys, as_key_list, is_ascending

logger = logging.getLogger(__name__)

TIE_POLICIES = ('rows', 'peers')


def partition_ids(df: pd.DataFrame, keys: Keys) -> np.ndarray:
    """
    Integer partition id per row.

    Rows with equal key values (nulls equal to each other) share an id.
    """
    keys = as_key_list(keys)
    if not keys:
        return np.zeros(len(df), dtype=np.int64)

    codes = [pd.factorize(df[key], use_na_sentinel=False)[0] for key in keys]
    if len(codes) == 1:
        return codes[0].astype(np.int64)
    combined = pd.Series(list(zip(*codes)), dtype=object)
    return pd.factorize(combined)[0].astype(np.int64)


def _window_frame(df: pd.DataFrame, partition_key: Optional[Keys], order_key: str,
                  ascending: bool = True) -> pd.DataFrame:
    """Rows sorted by partition, order key and input position.

    The index of the returned frame is the row's input position.
    """
    work = pd.DataFrame({
        '_part': partition_ids(df, partition_key),
        '_order': df[order_key].reset_index(drop=True),
        '_pos': np.arange(len(df)),
    })
    return work.sort_values(['_part', '_order', '_pos'],
                            ascending=[True, ascending, True],
                            na_position='last')


def _annotate(df: pd.DataFrame, column: str, values: pd.Series) -> pd.DataFrame:
    result = df.copy()
    result[column] = values.sort_index().to_numpy()
    return result


def _numeric(df: pd.DataFrame, column: str) -> pd.Series:
    return pd.to_numeric(df[column], errors='coerce').astype('float64').reset_index(drop=True)


def rank_within_partition(df: pd.DataFrame,
                          partition_key: Optional[Keys],
                          order_key: str,
                          direction: Union[str, bool] = 'desc',
                          rank_column: str = 'rank') -> pd.DataFrame:
    """
    Annotate each row with its SQL RANK() inside its partition.

    Ranks are 1-based; equal order values share a rank and the next distinct
    value skips accordingly (1, 2, 2, 4). Null order values rank last.

    Args:
        df: Input table
        partition_key: Partition column(s), or None for one partition
        order_key: Column to rank by
        direction: 'asc' or 'desc'
        rank_column: Name of the added column

    Returns:
        Copy of df with the rank column added
    """
    require_columns(df, partition_key, order_key)
    ascending = is_ascending(direction)

    if df.empty:
        result = df.copy()
        result[rank_column] = pd.Series(dtype='int64')
        return result

    work = _window_frame(df, partition_key, order_key, ascending)
    ranks = work.groupby('_part', sort=False)['_order'].rank(
        method='min', ascending=ascending, na_option='bottom'
    )
    return _annotate(df, rank_column, ranks.astype('int64'))


def cumulative_sum(df: pd.DataFrame,
                   partition_key: Optional[Keys],
                   order_key: str,
                   value_key: str,
                   ties: str = 'rows',
                   column: Optional[str] = None) -> pd.DataFrame:
    """
    Annotate each row with the running total of value_key in its partition.

    Tie policy for rows sharing an order value:

    - ``'rows'``: the total grows row by row, tied rows in input order
      (``ROWS BETWEEN UNBOUNDED PRECEDING AND CURRENT ROW``).
    - ``'peers'``: every tied row gets the total including all its peers
      (SQL's default ``RANGE`` frame).

    Null values contribute nothing; the running total is null until the
    first non-null value of the partition.

    Args:
        df: Input table
        partition_key: Partition column(s), or None for one partition
        order_key: Column defining the accumulation order
        value_key: Column to accumulate
        ties: 'rows' or 'peers'
        column: Name of the added column (default ``cumulative_<value_key>``)
    """
    if ties not in TIE_POLICIES:
        raise ValueError(f"Invalid tie policy: {ties!r} (use one of {TIE_POLICIES})")
    require_columns(df, partition_key, order_key, value_key)
    column = column or f'cumulative_{value_key}'

    if df.empty:
        result = df.copy()
        result[column] = pd.Series(dtype='float64')
        return result

    work = _window_frame(df, partition_key, order_key)
    values = _numeric(df, value_key).loc[work.index]

    by_part = work['_part']
    running = values.fillna(0.0).groupby(by_part, sort=False).cumsum()
    seen = values.notna().astype('int64').groupby(by_part, sort=False).cumsum()
    running = running.where(seen > 0)

    if ties == 'peers':
        peers = pd.factorize(work['_order'], use_na_sentinel=False)[0]
        running = running.groupby([by_part, pd.Series(peers, index=work.index)],
                                  sort=False).transform('last')

    return _annotate(df, column, running)


def lag_delta(df: pd.DataFrame,
              partition_key: Optional[Keys],
              order_key: str,
              value_key: str,
              column: Optional[str] = None) -> pd.DataFrame:
    """
    Annotate each row with value minus the previous row's value.

    "Previous" is the preceding row of the same partition in order_key
    order. The first row of each partition has no prior value and gets a
    null delta, never zero.
    """
    require_columns(df, partition_key, order_key, value_key)
    column = column or f'{value_key}_delta'

    if df.empty:
        result = df.copy()
        result[column] = pd.Series(dtype='float64')
        return result

    work = _window_frame(df, partition_key, order_key)
    values = _numeric(df, value_key).loc[work.index]
    previous = values.groupby(work['_part'], sort=False).shift(1)
    return _annotate(df, column, values - previous)


def ntile(df: pd.DataFrame,
          partition_key: Optional[Keys],
          order_key: str,
          buckets: int,
          direction: Union[str, bool] = 'asc',
          column: str = 'ntile') -> pd.DataFrame:
    """
    Annotate each row with an equal-count bucket number (SQL NTILE).

    With n rows and k buckets every bucket holds n // k rows and the first
    n % k buckets hold one extra. Partitions smaller than k fill buckets
    1..n with one row each.
    """
    if not isinstance(buckets, (int, np.integer)) or buckets < 1:
        raise ValueError(f"buckets must be a positive integer, got {buckets!r}")
    require_columns(df, partition_key, order_key)

    if df.empty:
        result = df.copy()
        result[column] = pd.Series(dtype='int64')
        return result

    work = _window_frame(df, partition_key, order_key, is_ascending(direction))
    grouped = work.groupby('_part', sort=False)['_pos']
    position = grouped.cumcount().to_numpy()
    size = grouped.transform('size').to_numpy()

    per_bucket = size // buckets
    remainder = size % buckets
    large_rows = remainder * (per_bucket + 1)
    bucket = np.where(
        position < large_rows,
        position // (per_bucket + 1) + 1,
        remainder + (position - large_rows) // np.maximum(per_bucket, 1) + 1,
    )
    return _annotate(df, column, pd.Series(bucket.astype('int64'), index=work.index))


def quartile(df: pd.DataFrame,
             partition_key: Optional[Keys],
             order_key: str,
             direction: Union[str, bool] = 'asc',
             column: str = 'quartile') -> pd.DataFrame:
    """Annotate each row with its quartile (1-4) inside its partition."""
    return ntile(df, partition_key, order_key, 4, direction=direction, column=column)
