"""
Data Loader Module
==================

Handles configuration, ingestion of the (y, X) pair and the in-memory
DataStore that holds the currently imported series.

Functions:
    - load_config: Load YAML configuration merged over the defaults
    - load_data: Read `y` and `X` from a .mat or .npz file
    - validate_data: Check shapes and alignment of y and X
    - get_data_summary: Generate basic statistics
"""

import copy
import zipfile
import logging
from pathlib import Path
from typing import Dict, Any, Optional, Tuple, Union

import numpy as np
import pandas as pd
import yaml
from scipy.io import loadmat
from scipy.io.matlab import MatReadError

from .exceptions import (
    DataImportError,
    DataValidationError,
    EmptyError,
    MissingFieldError,
    NoFileSelectedError,
    UnsupportedFormatError,
)

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = ('.mat', '.npz')

DEFAULT_CONFIG: Dict[str, Any] = {
    'defaults': {
        'lag_order': 1,
        'hidden_units': 10,
    },
    'split': {
        'train_fraction': 0.8,
        'val_fraction': 0.1,
    },
    'model': {
        'activation': 'tanh',
        'learning_rate_init': 0.01,
        'max_epochs': 1000,
        'max_fail': 6,
        'random_state': 42,
    },
    'output': {
        'reports_path': 'reports/',
    },
    'logging': {
        'level': 'INFO',
    },
}


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(config_path: str = "config/config.yaml") -> Dict[str, Any]:
    """
    Load configuration from YAML file and merge it over DEFAULT_CONFIG.

    Args:
        config_path: Path to the configuration file

    Returns:
        Dictionary containing configuration parameters

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If config file is malformed
    """
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, 'r') as f:
        user_config = yaml.safe_load(f) or {}

    logger.info(f"Loaded configuration from {config_path}")
    return _merge(DEFAULT_CONFIG, user_config)


def _read_container(file_path: Path) -> Dict[str, Any]:
    suffix = file_path.suffix.lower()
    if suffix == '.mat':
        try:
            return loadmat(str(file_path))
        except NotImplementedError as e:
            # scipy raises this for HDF5-based MATLAB v7.3 files
            raise UnsupportedFormatError(
                f"{file_path.name} is a MATLAB v7.3 file, which is not supported. "
                "Re-save it in MATLAB with save(..., '-v7')."
            ) from e
    if suffix == '.npz':
        with np.load(file_path, allow_pickle=False) as archive:
            return {name: archive[name] for name in archive.files}
    raise UnsupportedFormatError(
        f"Unsupported file type '{file_path.suffix}'. "
        f"Expected one of: {', '.join(SUPPORTED_EXTENSIONS)}"
    )


def validate_data(y: Any, X: Any) -> Tuple[np.ndarray, np.ndarray]:
    """
    Coerce y to a float vector and X to a float matrix aligned with y.

    Column and row vectors for y are flattened. A 1-D X, or a row vector
    whose length matches y, is turned into a single column.

    Returns:
        Tuple of (y, X) as float arrays of shape (N,) and (N, K)

    Raises:
        DataValidationError: If the arrays are not numeric or not aligned
    """
    try:
        y = np.asarray(y, dtype=float)
        X = np.asarray(X, dtype=float)
    except (TypeError, ValueError) as e:
        raise DataValidationError(f"Variables 'y' and 'X' must be numeric: {e}") from e

    if y.ndim == 2 and 1 in y.shape:
        y = y.ravel()
    if y.ndim != 1:
        raise DataValidationError(f"'y' must be a vector, got shape {y.shape}")
    if len(y) == 0:
        raise DataValidationError("'y' contains no observations")

    n_samples = len(y)
    if X.ndim == 1:
        X = X.reshape(-1, 1)
    elif X.ndim == 2 and X.shape[0] == 1 and X.shape[1] == n_samples and n_samples != 1:
        X = X.T
    if X.ndim != 2:
        raise DataValidationError(f"'X' must be a matrix, got shape {X.shape}")

    if X.shape[0] != n_samples:
        raise DataValidationError(
            f"'X' must have the same number of observations as 'y': "
            f"{X.shape[0]} rows vs {n_samples} observations"
        )

    # NaN marks a missing value; infinities are not allowed
    if np.isinf(y).any() or np.isinf(X).any():
        raise DataValidationError("Variables 'y' and 'X' must not contain infinite values")

    return y, X


def load_data(file_path: Optional[Union[str, Path]]) -> Tuple[np.ndarray, np.ndarray]:
    """
    Load the time series `y` and the regressor matrix `X` from a file.

    Args:
        file_path: Path to a .mat or .npz file; None or "" means the
            user cancelled the selection

    Returns:
        Tuple of (y, X) with shapes (N,) and (N, K)

    Raises:
        NoFileSelectedError: If no path was given
        DataImportError: If the file doesn't exist or can't be read
        MissingFieldError: If `y` or `X` is absent
    """
    if not file_path:
        raise NoFileSelectedError("No file selected")

    file_path = Path(file_path)

    if not file_path.exists():
        raise DataImportError(f"Data file not found: {file_path}")

    try:
        contents = _read_container(file_path)
    except DataImportError:
        raise
    except (OSError, ValueError, EOFError, zipfile.BadZipFile, MatReadError) as e:
        raise DataImportError(f"Could not read {file_path}: {e}") from e

    missing = [name for name in ('y', 'X') if name not in contents]
    if missing:
        raise MissingFieldError(
            'The file must contain variables "y" and "X" '
            f"(missing: {', '.join(missing)})"
        )

    y, X = validate_data(contents['y'], contents['X'])
    logger.info(f"Loaded data from {file_path}: {len(y)} observations × {X.shape[1]} regressors")

    return y, X


def get_data_summary(y: np.ndarray, X: np.ndarray) -> Dict[str, Any]:
    """
    Generate summary statistics for the imported series.

    Args:
        y: Time series vector
        X: Regressor matrix

    Returns:
        Dictionary containing summary statistics
    """
    df = pd.DataFrame(X, columns=[f"x{i + 1}" for i in range(X.shape[1])])
    df.insert(0, 'y', y)

    summary = {
        "n_observations": int(len(y)),
        "n_regressors": int(X.shape[1]),
        "missing_values": int(df.isnull().sum().sum()),
        "statistics": {}
    }

    for col in df.columns:
        summary["statistics"][col] = {
            "mean": float(df[col].mean()),
            "std": float(df[col].std()),
            "min": float(df[col].min()),
            "max": float(df[col].max()),
        }

    return summary


def print_data_summary(y: np.ndarray, X: np.ndarray) -> None:
    """
    Print a formatted summary of the dataset to console.

    Args:
        y: Time series vector
        X: Regressor matrix
    """
    summary = get_data_summary(y, X)

    print("\n" + "=" * 60)
    print("DATASET SUMMARY")
    print("=" * 60)
    print(f"Observations: {summary['n_observations']}")
    print(f"Regressors:   {summary['n_regressors']}")
    print(f"Missing:      {summary['missing_values']}")
    print("\nBasic Statistics:")
    print("-" * 40)
    for col, stats in summary["statistics"].items():
        print(f"  {col:<6} mean={stats['mean']:.4f} std={stats['std']:.4f} "
              f"min={stats['min']:.4f} max={stats['max']:.4f}")
    print("=" * 60 + "\n")


class DataStore:
    """
    Holds the currently imported `y` and `X`.

    State is replaced wholesale on each successful import and is only read
    while training.
    """

    def __init__(self):
        self._y: Optional[np.ndarray] = None
        self._X: Optional[np.ndarray] = None
        self.source: Optional[Path] = None

    @property
    def is_loaded(self) -> bool:
        return self._y is not None

    def import_file(self, file_path: Optional[Union[str, Path]]) -> Tuple[np.ndarray, np.ndarray]:
        """
        Load a file and replace the held data. A failed import leaves the
        previous data untouched.
        """
        y, X = load_data(file_path)

        self._y, self._X = y, X
        self.source = Path(file_path)
        logger.info(f"DataStore now holds {self.source.name}")

        return y, X

    def current(self) -> Tuple[np.ndarray, np.ndarray]:
        if not self.is_loaded:
            raise EmptyError("Please load the data first.")
        return self._y, self._X

    def clear(self) -> None:
        self._y = None
        self._X = None
        self.source = None
        logger.info("DataStore cleared")
