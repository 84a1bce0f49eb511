"""
Test Suite for Model Module
============================

Tests for the NarxNetwork trainer.
"""

import os
import tempfile

import pytest
import numpy as np

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from narx_forecast.exceptions import EmptyPartitionError, InvalidParameterError
from narx_forecast.model import NarxNetwork, train_network
from narx_forecast.preprocessing import Partition, build_lagged_dataset, split_indices


@pytest.fixture
def lagged_data():
    """Series driven by its own lag and a sinusoidal regressor."""
    np.random.seed(42)
    n_samples = 200
    x = np.sin(np.arange(n_samples) / 5.0)
    y = np.zeros(n_samples)
    for t in range(1, n_samples):
        y[t] = 0.5 * y[t - 1] + x[t - 1] + np.random.randn() * 0.05
    features, targets = build_lagged_dataset(y, x.reshape(-1, 1), lag_order=2)
    return features, targets, split_indices(len(targets))


class TestNarxNetwork:

    def test_init(self):
        model = NarxNetwork(hidden_units=5)

        assert model.hidden_units == 5
        assert model.activation == 'tanh'
        assert model.max_fail == 6
        assert model._is_fitted == False

    @pytest.mark.parametrize("hidden", [0, -3, 2.5, True])
    def test_invalid_hidden_units(self, hidden):
        with pytest.raises(InvalidParameterError):
            NarxNetwork(hidden_units=hidden)

    @pytest.mark.parametrize("kwargs", [
        {'max_epochs': 0}, {'max_epochs': -5}, {'max_epochs': 2.5}, {'max_epochs': True},
        {'max_fail': 0}, {'max_fail': None}, {'max_fail': False},
    ])
    def test_invalid_stopping_parameters(self, kwargs):
        name = next(iter(kwargs))
        with pytest.raises(InvalidParameterError, match=f"model.{name}"):
            NarxNetwork(**kwargs)

    def test_fit_predict(self, lagged_data):
        features, targets, partition = lagged_data
        model = NarxNetwork(hidden_units=8, max_epochs=300, max_fail=50)

        model.fit(features, targets, partition)
        predictions = model.predict(features)

        assert predictions.shape == targets.shape
        train_mse = np.mean((predictions[partition.train] - targets[partition.train]) ** 2)
        assert train_mse < np.var(targets)

    def test_training_info(self, lagged_data):
        features, targets, partition = lagged_data
        model = NarxNetwork(hidden_units=4, max_epochs=40).fit(features, targets, partition)

        info = model.training_info
        assert 1 <= info['epochs'] <= 40
        assert 1 <= info['best_epoch'] <= info['epochs']
        assert info['stop_reason'] in ('max_epochs', 'validation_stop')
        assert info['n_features'] == features.shape[1]

    def test_without_validation_runs_all_epochs(self, lagged_data):
        features, targets, _ = lagged_data
        partition = Partition(np.arange(len(targets)), np.array([], dtype=int), np.array([], dtype=int))

        model = NarxNetwork(hidden_units=3, max_epochs=5).fit(features, targets, partition)

        assert model.training_info['epochs'] == 5
        assert model.training_info['stop_reason'] == 'max_epochs'
        assert model.training_info['best_val_mse_scaled'] is None

    def test_empty_training_partition(self, lagged_data):
        features, targets, _ = lagged_data
        partition = Partition(np.array([], dtype=int), np.arange(5), np.arange(5, 10))

        with pytest.raises(EmptyPartitionError):
            NarxNetwork().fit(features, targets, partition)

    def test_predict_before_fit(self, lagged_data):
        with pytest.raises(ValueError, match="must be trained"):
            NarxNetwork().predict(lagged_data[0])

    def test_predict_wrong_width(self, lagged_data):
        features, targets, partition = lagged_data
        model = NarxNetwork(hidden_units=3, max_epochs=5).fit(features, targets, partition)

        with pytest.raises(ValueError, match="Expected 4 features"):
            model.predict(features[:, :2])

    def test_reproducible(self, lagged_data):
        features, targets, partition = lagged_data
        first = NarxNetwork(hidden_units=4, max_epochs=20).fit(features, targets, partition)
        second = NarxNetwork(hidden_units=4, max_epochs=20).fit(features, targets, partition)

        np.testing.assert_array_almost_equal(first.predict(features), second.predict(features))

    def test_save_load(self, lagged_data):
        features, targets, partition = lagged_data
        model = NarxNetwork(hidden_units=4, max_epochs=20).fit(features, targets, partition)

        with tempfile.NamedTemporaryFile(suffix='.joblib', delete=False) as f:
            temp_path = f.name

        try:
            model.save(temp_path)
            loaded = NarxNetwork.load(temp_path)

            assert loaded.hidden_units == 4
            assert loaded._is_fitted == True
            np.testing.assert_array_almost_equal(loaded.predict(features), model.predict(features))
        finally:
            os.unlink(temp_path)

    def test_save_untrained(self, tmp_path):
        with pytest.raises(ValueError, match="untrained"):
            NarxNetwork().save(str(tmp_path / "model.joblib"))


class TestTrainNetwork:

    def test_uses_model_config(self, lagged_data):
        features, targets, partition = lagged_data
        config = {'model': {'max_epochs': 7, 'max_fail': 100, 'learning_rate_init': 0.005}}

        model = train_network(features, targets, 6, partition, config)

        assert model.hidden_units == 6
        assert model.learning_rate_init == 0.005
        assert model.training_info['epochs'] == 7

    def test_zero_epochs_in_config(self, lagged_data):
        features, targets, partition = lagged_data

        with pytest.raises(InvalidParameterError, match="max_epochs"):
            train_network(features, targets, 6, partition, {'model': {'max_epochs': 0}})


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
