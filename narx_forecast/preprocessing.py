"""
Data Preprocessing Module
=========================

Turns the imported (y, X) pair into a supervised learning problem.

Functions:
    - build_lagged_dataset: Lagged y and X features with one-step-ahead targets
    - get_feature_names: Column names of the lagged feature matrix
    - split_indices: Chronological train/validation/test partition
"""

import logging
import math
from typing import List, NamedTuple, Tuple

import numpy as np
import pandas as pd

from .exceptions import InvalidParameterError

logger = logging.getLogger(__name__)

# Guards the floor against products like 0.7 * 10 == 6.999999999999999
_FLOOR_TOLERANCE = 1e-9


class Partition(NamedTuple):
    """Row indices of the three contiguous partitions, earliest first."""
    train: np.ndarray
    val: np.ndarray
    test: np.ndarray


def _check_positive_int(value, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, np.integer)) or value <= 0:
        raise InvalidParameterError(f"{name} must be a positive integer.")
    return int(value)


class LagFeaturizer:
    """
    Builds NARX inputs from a series and its exogenous regressors.

    A row for time step t holds y[t-1] ... y[t-L] followed by the blocks
    X[t-1, :] ... X[t-L, :]; its target is y[t]. Rows without a complete
    history, or touching a missing value, are dropped.
    """

    def __init__(self, lag_order: int = 1):
        self.lag_order = _check_positive_int(lag_order, "Lag Order")

    def build(self, y: np.ndarray, X: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """
        Create the lagged feature matrix and aligned targets.

        Args:
            y: Series of shape (n_samples,)
            X: Regressors of shape (n_samples, n_exog); n_exog may be 0

        Returns:
            Tuple of (features, targets) where:
                features: (n_rows, lag_order * (1 + n_exog))
                targets: (n_rows,)
        """
        y = np.asarray(y, dtype=float).ravel()
        X = np.asarray(X, dtype=float)
        if X.ndim == 1:
            X = X.reshape(-1, 1)

        if X.shape[0] != len(y):
            raise InvalidParameterError(
                f"X has {X.shape[0]} rows but y has {len(y)} observations"
            )

        y_series = pd.Series(y)
        X_frame = pd.DataFrame(X)
        lags = range(1, self.lag_order + 1)

        # shift() pads the first `lag` rows with NaN
        y_columns = [y_series.shift(lag).to_numpy().reshape(-1, 1) for lag in lags]
        X_blocks = [X_frame.shift(lag).to_numpy(dtype=float) for lag in lags]
        lagged = np.hstack(y_columns + X_blocks)

        valid = ~(np.isnan(lagged).any(axis=1) | np.isnan(y))
        features = lagged[valid]
        targets = y[valid]

        logger.info(
            f"Created lagged dataset: features shape {features.shape}, "
            f"{len(y) - len(targets)} rows dropped"
        )

        return features, targets

    def get_feature_names(self, n_exog: int) -> List[str]:
        """
        Generate feature names in column order.

        Returns:
            List like ['y_lag_1', 'y_lag_2', 'x1_lag_1', 'x2_lag_1', 'x1_lag_2', ...]
        """
        names = [f"y_lag_{lag}" for lag in range(1, self.lag_order + 1)]
        for lag in range(1, self.lag_order + 1):
            for col in range(1, n_exog + 1):
                names.append(f"x{col}_lag_{lag}")
        return names


def build_lagged_dataset(
    y: np.ndarray,
    X: np.ndarray,
    lag_order: int
) -> Tuple[np.ndarray, np.ndarray]:
    """Shortcut for LagFeaturizer(lag_order).build(y, X)."""
    return LagFeaturizer(lag_order).build(y, X)


def get_feature_names(lag_order: int, n_exog: int) -> List[str]:
    return LagFeaturizer(lag_order).get_feature_names(n_exog)


def split_indices(
    row_count: int,
    train_fraction: float = 0.8,
    val_fraction: float = 0.1
) -> Partition:
    """
    Split row indices chronologically into train, validation and test.

    IMPORTANT: Never shuffle time series data!

    The train set is the first floor(train_fraction * n) rows, validation
    runs up to floor((train_fraction + val_fraction) * n) and the test set
    takes the remainder. Partitions may be empty for small n.

    Args:
        row_count: Number of rows in the lagged dataset
        train_fraction: Share of rows for training
        val_fraction: Share of rows for validation

    Returns:
        Partition of 0..row_count-1
    """
    if isinstance(row_count, bool) or not isinstance(row_count, (int, np.integer)) or row_count < 0:
        raise InvalidParameterError(f"Row count must be a non-negative integer, got {row_count!r}")
    if not (0 < train_fraction <= 1) or not (0 <= val_fraction) or train_fraction + val_fraction > 1:
        raise InvalidParameterError(
            f"Invalid split fractions: train={train_fraction}, val={val_fraction}"
        )

    train_end = math.floor(train_fraction * row_count + _FLOOR_TOLERANCE)
    val_end = math.floor((train_fraction + val_fraction) * row_count + _FLOOR_TOLERANCE)
    val_end = min(max(val_end, train_end), row_count)

    partition = Partition(
        train=np.arange(0, train_end),
        val=np.arange(train_end, val_end),
        test=np.arange(val_end, row_count),
    )

    logger.info(
        f"Train/Val/Test split: {len(partition.train)} train, "
        f"{len(partition.val)} validation, {len(partition.test)} test samples"
    )

    return partition
