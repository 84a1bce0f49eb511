"""
Training Pipeline
=================

Ties the loader, featurizer, splitter, trainer and evaluator together.

Phases of one run:
    1. Validate lag order, hidden units and the data
    2. Build the lagged dataset
    3. Split rows into train/validation/test
    4. Fit the network and predict every row
    5. Score each partition
"""

import logging
from typing import Any, Callable, Dict, Optional, Union

import numpy as np

from .data_loader import DEFAULT_CONFIG, DataStore, get_data_summary, validate_data
from .evaluation import calculate_metrics, evaluate_partitions
from .exceptions import EmptyPartitionError, InsufficientDataError, InvalidParameterError
from .model import train_network
from .preprocessing import LagFeaturizer, Partition, split_indices

logger = logging.getLogger(__name__)

# trainer(features, targets, hidden_units, partition, config) -> object with predict(features)
Trainer = Callable[[np.ndarray, np.ndarray, int, Partition, Dict[str, Any]], Any]


def parse_positive_int(value: Union[str, int, float], name: str) -> int:
    """
    Parse a form field into a positive integer.

    Accepts ints and integral strings/floats such as "3" or "3.0".

    Raises:
        InvalidParameterError: For non-numeric, fractional or non-positive input
    """
    message = f"{name} must be a positive integer."

    if isinstance(value, bool):
        raise InvalidParameterError(message)

    if isinstance(value, str):
        value = value.strip()
        if not value:
            raise InvalidParameterError(message)
        try:
            value = float(value)
        except ValueError:
            raise InvalidParameterError(message) from None

    if isinstance(value, (int, np.integer)):
        number = int(value)
    elif isinstance(value, (float, np.floating)):
        if not np.isfinite(value) or not float(value).is_integer():
            raise InvalidParameterError(message)
        number = int(value)
    else:
        raise InvalidParameterError(message)

    if number <= 0:
        raise InvalidParameterError(message)

    return number


def run_training(
    y: np.ndarray,
    X: np.ndarray,
    lag_order: Union[str, int],
    hidden_units: Union[str, int],
    config: Optional[Dict[str, Any]] = None,
    trainer: Optional[Trainer] = None
) -> Dict[str, Any]:
    """
    Train and evaluate a NARX network on (y, X).

    Args:
        y: Time series
        X: Regressors aligned with y
        lag_order: Number of past steps used as inputs
        hidden_units: Hidden layer size
        config: Configuration dictionary
        trainer: Training capability; defaults to model.train_network

    Returns:
        Dictionary containing MSE per partition, targets, predictions,
        partition, fitted model and metrics
    """
    config = config or DEFAULT_CONFIG
    trainer = trainer or train_network

    lag_order = parse_positive_int(lag_order, "Lag Order")
    hidden_units = parse_positive_int(hidden_units, "Number of Hidden Neurons")
    y, X = validate_data(y, X)

    logger.info("=" * 60)
    logger.info(f"STARTING TRAINING RUN (lag order {lag_order}, {hidden_units} hidden neurons)")
    logger.info("=" * 60)

    featurizer = LagFeaturizer(lag_order)
    features, targets = featurizer.build(y, X)

    if len(targets) == 0:
        raise InsufficientDataError(
            f"Lag order {lag_order} leaves no complete rows out of {len(np.ravel(y))} observations. "
            "Reduce the lag order or load a longer series."
        )

    split_config = config.get('split', {})
    partition = split_indices(
        len(targets),
        train_fraction=split_config.get('train_fraction', 0.8),
        val_fraction=split_config.get('val_fraction', 0.1)
    )

    empty = [name for name, idx in partition._asdict().items() if len(idx) == 0]
    if empty:
        raise EmptyPartitionError(
            f"Only {len(targets)} usable rows: the {', '.join(empty)} partition(s) would be empty. "
            "Reduce the lag order or load a longer series."
        )

    model = trainer(features, targets, hidden_units, partition, config)
    predictions = np.asarray(model.predict(features), dtype=float).ravel()

    mse_train, mse_val, mse_test = evaluate_partitions(targets, predictions, partition)

    logger.info(f"Training MSE: {mse_train:.4f}")
    logger.info(f"Validation MSE: {mse_val:.4f}")
    logger.info(f"Testing MSE: {mse_test:.4f}")

    return {
        'mse_train': mse_train,
        'mse_val': mse_val,
        'mse_test': mse_test,
        'targets': targets,
        'predictions': predictions,
        'partition': partition,
        'model': model,
        'metrics': calculate_metrics(targets, predictions, partition),
        'feature_names': featurizer.get_feature_names(X.shape[1]),
        'lag_order': lag_order,
        'hidden_units': hidden_units,
    }


class ForecastSession:
    """
    State owned by the interface layer: the DataStore, the configuration
    and the outcome of the latest training run.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None, trainer: Optional[Trainer] = None):
        self.config = config or DEFAULT_CONFIG
        self.trainer = trainer
        self.store = DataStore()
        self.last_result: Optional[Dict[str, Any]] = None

    @property
    def default_lag_order(self) -> int:
        return self.config.get('defaults', {}).get('lag_order', 1)

    @property
    def default_hidden_units(self) -> int:
        return self.config.get('defaults', {}).get('hidden_units', 10)

    def import_file(self, file_path) -> Dict[str, Any]:
        """Import a data file and return its summary."""
        y, X = self.store.import_file(file_path)
        return get_data_summary(y, X)

    def train(self, lag_order: Union[str, int], hidden_units: Union[str, int]) -> Dict[str, Any]:
        """Run a training session on the held data; the previous model is discarded."""
        y, X = self.store.current()
        self.last_result = None
        self.last_result = run_training(y, X, lag_order, hidden_units, self.config, self.trainer)
        return self.last_result
