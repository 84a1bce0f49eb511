"""
Model Training Module
=====================

Feedforward network used as the NARX function approximator.

Features:
    - One hidden layer of tanh units with a linear output (MLPRegressor)
    - Inputs and target min-max scaled to [-1, 1] on the training rows
    - Epoch-wise training with early stopping on the validation partition
    - Model persistence (save/load)
"""

import copy
import logging
from pathlib import Path
from typing import Dict, Any, Optional
from datetime import datetime

import numpy as np
import joblib
from sklearn.metrics import mean_squared_error
from sklearn.neural_network import MLPRegressor
from sklearn.preprocessing import MinMaxScaler

from .exceptions import EmptyPartitionError, InvalidParameterError
from .preprocessing import Partition

logger = logging.getLogger(__name__)


class NarxNetwork:
    """
    Single-hidden-layer regression network trained on a fixed partition.

    The validation rows drive early stopping: training halts after
    `max_fail` consecutive epochs without a new best validation MSE and the
    best weights are kept.
    """

    def __init__(
        self,
        hidden_units: int = 10,
        activation: str = 'tanh',
        learning_rate_init: float = 0.01,
        max_epochs: int = 1000,
        max_fail: int = 6,
        random_state: Optional[int] = 42
    ):
        """
        Initialize the network with hyperparameters.

        Args:
            hidden_units: Number of neurons in the hidden layer
            activation: Hidden layer activation ('tanh', 'logistic', 'relu', 'identity')
            learning_rate_init: Initial Adam learning rate
            max_epochs: Upper bound on training epochs
            max_fail: Epochs without validation improvement before stopping
            random_state: Random seed for reproducibility
        """
        if isinstance(hidden_units, bool) or not isinstance(hidden_units, (int, np.integer)) or hidden_units <= 0:
            raise InvalidParameterError("Number of Hidden Neurons must be a positive integer.")
        for name, value in (('max_epochs', max_epochs), ('max_fail', max_fail)):
            if isinstance(value, bool) or not isinstance(value, (int, np.integer)) or value < 1:
                raise InvalidParameterError(f"model.{name} must be an integer >= 1, got {value!r}")

        self.hidden_units = int(hidden_units)
        self.activation = activation
        self.learning_rate_init = learning_rate_init
        self.max_epochs = max_epochs
        self.max_fail = max_fail
        self.random_state = random_state

        self.estimator: Optional[MLPRegressor] = None
        self.x_scaler: Optional[MinMaxScaler] = None
        self.y_scaler: Optional[MinMaxScaler] = None
        self.n_features_in_: Optional[int] = None
        self.training_info: Dict[str, Any] = {}
        self._is_fitted = False

    def _create_estimator(self) -> MLPRegressor:
        return MLPRegressor(
            hidden_layer_sizes=(self.hidden_units,),
            activation=self.activation,
            solver='adam',
            learning_rate_init=self.learning_rate_init,
            random_state=self.random_state
        )

    def fit(
        self,
        features: np.ndarray,
        targets: np.ndarray,
        partition: Partition
    ) -> 'NarxNetwork':
        """
        Train on the training rows, early-stopping on the validation rows.

        Args:
            features: Feature array of shape (n_samples, n_features)
            targets: Target array of shape (n_samples,)
            partition: Row indices for train/val/test

        Returns:
            Self for method chaining
        """
        if len(partition.train) == 0:
            raise EmptyPartitionError("The training partition is empty.")

        start_time = datetime.now()
        targets = np.asarray(targets, dtype=float).ravel()

        logger.info(
            f"Training network: {features.shape[1]} inputs, {self.hidden_units} hidden units, "
            f"{len(partition.train)} train / {len(partition.val)} validation samples"
        )

        self.n_features_in_ = features.shape[1]
        self.x_scaler = MinMaxScaler(feature_range=(-1, 1)).fit(features[partition.train])
        self.y_scaler = MinMaxScaler(feature_range=(-1, 1)).fit(targets[partition.train].reshape(-1, 1))

        X_train = self.x_scaler.transform(features[partition.train])
        y_train = self._scale_targets(targets[partition.train])
        has_validation = len(partition.val) > 0
        if has_validation:
            X_val = self.x_scaler.transform(features[partition.val])
            y_val = self._scale_targets(targets[partition.val])

        estimator = self._create_estimator()
        best_estimator = None
        best_val_loss = np.inf
        best_epoch = 0
        fails = 0
        epoch = 0
        stop_reason = 'max_epochs'

        for epoch in range(1, self.max_epochs + 1):
            estimator.partial_fit(X_train, y_train)

            if not has_validation:
                continue

            val_loss = mean_squared_error(y_val, estimator.predict(X_val))
            if val_loss < best_val_loss:
                best_val_loss = val_loss
                best_estimator = copy.deepcopy(estimator)
                best_epoch = epoch
                fails = 0
            else:
                fails += 1
                if fails >= self.max_fail:
                    stop_reason = 'validation_stop'
                    logger.debug(f"Validation MSE did not improve for {fails} epochs, stopping")
                    break

        self.estimator = best_estimator if best_estimator is not None else estimator
        self._is_fitted = True

        training_duration = (datetime.now() - start_time).total_seconds()
        self.training_info = {
            'training_duration_seconds': training_duration,
            'epochs': epoch,
            'best_epoch': best_epoch if has_validation else epoch,
            'best_val_mse_scaled': float(best_val_loss) if has_validation else None,
            'stop_reason': stop_reason,
            'n_samples': int(features.shape[0]),
            'n_features': int(features.shape[1]),
            'trained_at': datetime.now().isoformat(),
        }

        logger.info(
            f"Training finished after {epoch} epochs ({stop_reason}), "
            f"best epoch {self.training_info['best_epoch']}, {training_duration:.2f}s"
        )

        return self

    def _scale_targets(self, targets: np.ndarray) -> np.ndarray:
        return self.y_scaler.transform(targets.reshape(-1, 1)).ravel()

    def predict(self, features: np.ndarray) -> np.ndarray:
        """
        Make predictions in the original scale of y.

        Args:
            features: Feature array of shape (n_samples, n_features)

        Returns:
            Predictions array of shape (n_samples,)
        """
        if not self._is_fitted:
            raise ValueError("Model must be trained before prediction. Call fit() first.")

        if features.shape[1] != self.n_features_in_:
            raise ValueError(
                f"Expected {self.n_features_in_} features, but got {features.shape[1]}"
            )

        scaled = self.estimator.predict(self.x_scaler.transform(features))
        return self.y_scaler.inverse_transform(np.reshape(scaled, (-1, 1))).ravel()

    def save(self, filepath: str) -> None:
        """
        Save the trained network to disk.

        Args:
            filepath: Path to save the model
        """
        if not self._is_fitted:
            raise ValueError("Cannot save untrained model.")

        state = {
            'estimator': self.estimator,
            'x_scaler': self.x_scaler,
            'y_scaler': self.y_scaler,
            'hyperparameters': {
                'hidden_units': self.hidden_units,
                'activation': self.activation,
                'learning_rate_init': self.learning_rate_init,
                'max_epochs': self.max_epochs,
                'max_fail': self.max_fail,
                'random_state': self.random_state
            },
            'n_features_in_': self.n_features_in_,
            'training_info': self.training_info,
            '_is_fitted': self._is_fitted
        }

        Path(filepath).parent.mkdir(parents=True, exist_ok=True)
        joblib.dump(state, filepath)
        logger.info(f"Model saved to {filepath}")

    @classmethod
    def load(cls, filepath: str) -> 'NarxNetwork':
        """
        Load a trained network from disk.

        Args:
            filepath: Path to the saved model

        Returns:
            Loaded NarxNetwork instance
        """
        state = joblib.load(filepath)

        model = cls(**state['hyperparameters'])
        model.estimator = state['estimator']
        model.x_scaler = state['x_scaler']
        model.y_scaler = state['y_scaler']
        model.n_features_in_ = state['n_features_in_']
        model.training_info = state['training_info']
        model._is_fitted = state['_is_fitted']

        logger.info(f"Model loaded from {filepath}")
        return model


def train_network(
    features: np.ndarray,
    targets: np.ndarray,
    hidden_units: int,
    partition: Partition,
    config: Optional[Dict[str, Any]] = None
) -> NarxNetwork:
    """
    Train a network using configuration parameters.

    Args:
        features: Lagged feature matrix
        targets: One-step-ahead targets
        hidden_units: Number of hidden neurons
        partition: Train/validation/test row indices
        config: Configuration dictionary (uses its 'model' section)

    Returns:
        Trained NarxNetwork
    """
    model_config = (config or {}).get('model', {})

    model = NarxNetwork(
        hidden_units=hidden_units,
        activation=model_config.get('activation', 'tanh'),
        learning_rate_init=model_config.get('learning_rate_init', 0.01),
        max_epochs=model_config.get('max_epochs', 1000),
        max_fail=model_config.get('max_fail', 6),
        random_state=model_config.get('random_state', 42)
    )

    return model.fit(features, targets, partition)


def print_model_summary(model: NarxNetwork) -> None:
    """
    Print a summary of the trained network.

    Args:
        model: Trained model instance
    """
    print("\n" + "=" * 50)
    print("MODEL SUMMARY")
    print("=" * 50)
    print(f"Model Type: MLPRegressor ({model.activation} hidden layer, linear output)")
    print(f"Number of input features: {model.n_features_in_}")
    print(f"Hidden neurons: {model.hidden_units}")
    print(f"\nHyperparameters:")
    print(f"  - learning_rate_init: {model.learning_rate_init}")
    print(f"  - max_epochs: {model.max_epochs}")
    print(f"  - max_fail: {model.max_fail}")

    if model.training_info:
        print(f"\nTraining Info:")
        print(f"  - Duration: {model.training_info['training_duration_seconds']:.2f}s")
        print(f"  - Epochs: {model.training_info['epochs']} (best: {model.training_info['best_epoch']})")
        print(f"  - Stop reason: {model.training_info['stop_reason']}")

    print("=" * 50 + "\n")
