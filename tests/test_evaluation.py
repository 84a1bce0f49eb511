"""
Test Suite for Evaluation Module
=================================

Tests for per-partition scoring, result formatting and report export.
"""

import json

import pytest
import numpy as np
import pandas as pd
import matplotlib.pyplot as plt

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from narx_forecast.evaluation import (
    calculate_metrics, evaluate_partitions, format_results, partition_mse,
    plot_actual_vs_predicted, plot_residuals, save_report
)
from narx_forecast.exceptions import EmptyPartitionError
from narx_forecast.preprocessing import Partition, split_indices


@pytest.fixture
def run_data():
    targets = np.arange(20, dtype=float)
    predictions = targets + np.where(np.arange(20) % 2 == 0, 1.0, -2.0)
    return targets, predictions, split_indices(20)


class TestPartitionMSE:

    def test_value(self):
        targets = np.array([1.0, 2.0, 3.0, 4.0])
        predictions = np.array([1.0, 3.0, 5.0, 4.0])

        assert partition_mse(targets, predictions, [1, 2]) == pytest.approx(2.5)
        assert partition_mse(targets, predictions, [0, 3]) == 0.0

    def test_order_independent(self, run_data):
        targets, predictions, _ = run_data
        idx = np.array([3, 7, 11, 12, 19])

        expected = partition_mse(targets, predictions, idx)
        for seed in range(5):
            shuffled = np.random.RandomState(seed).permutation(idx)
            assert partition_mse(targets, predictions, shuffled) == pytest.approx(expected)

    def test_membership_matters(self, run_data):
        targets, predictions, _ = run_data
        assert partition_mse(targets, predictions, [0, 2]) != partition_mse(targets, predictions, [0, 1])

    def test_empty_partition_raises(self, run_data):
        targets, predictions, _ = run_data
        with pytest.raises(EmptyPartitionError, match="validation"):
            partition_mse(targets, predictions, np.array([], dtype=int), name='validation')


class TestEvaluatePartitions:

    def test_three_values(self, run_data):
        targets, predictions, partition = run_data

        mse_train, mse_val, mse_test = evaluate_partitions(targets, predictions, partition)

        # train 0..15: eight errors of 1 and eight of 4
        assert mse_train == pytest.approx(2.5)
        # val 16, 17 and test 18, 19
        assert mse_val == pytest.approx(2.5)
        assert mse_test == pytest.approx(2.5)

    def test_empty_validation(self):
        partition = split_indices(3)
        with pytest.raises(EmptyPartitionError):
            evaluate_partitions(np.ones(3), np.ones(3), partition)

    def test_metrics(self, run_data):
        targets, predictions, partition = run_data
        metrics = calculate_metrics(targets, predictions, partition)

        assert set(metrics) == {'train', 'val', 'test', 'overall'}
        assert metrics['train']['n_samples'] == 16
        assert metrics['overall']['n_samples'] == 20
        assert metrics['train']['rmse'] == pytest.approx(np.sqrt(2.5))
        assert metrics['val']['mae'] == pytest.approx(1.5)

    def test_metrics_empty_partition(self):
        partition = Partition(np.arange(2), np.array([], dtype=int), np.array([2]))
        metrics = calculate_metrics(np.arange(3.0), np.arange(3.0), partition)

        assert metrics['val']['n_samples'] == 0
        assert np.isnan(metrics['val']['mse'])
        assert np.isnan(metrics['test']['r2'])
        assert metrics['test']['mse'] == 0.0


class TestPresentation:

    def test_format_results(self):
        text = format_results({'mse_train': 0.123456, 'mse_val': 2.0, 'mse_test': 10.55556})

        assert text == "Training MSE: 0.1235\nValidation MSE: 2.0000\nTesting MSE: 10.5556"

    def test_plot_actual_vs_predicted(self, run_data):
        targets, predictions, partition = run_data
        fig = plot_actual_vs_predicted(targets, predictions, partition)

        ax = fig.axes[0]
        assert ax.get_title() == 'Actual vs Predicted Values'
        assert len(ax.lines) == 2
        np.testing.assert_array_equal(ax.lines[0].get_ydata(), targets)
        np.testing.assert_array_equal(ax.lines[1].get_ydata(), predictions)
        plt.close(fig)

    def test_plot_residuals(self, run_data, tmp_path):
        targets, predictions, _ = run_data
        path = tmp_path / "residuals.png"

        fig = plot_residuals(targets, predictions, save_path=str(path))

        assert path.exists()
        plt.close(fig)

    def test_save_report(self, run_data, tmp_path):
        targets, predictions, partition = run_data
        result = {
            'targets': targets,
            'predictions': predictions,
            'partition': partition,
            'metrics': calculate_metrics(targets, predictions, partition),
        }

        paths = save_report(result, str(tmp_path / "reports"))

        for path in paths.values():
            assert Path(path).exists()

        with open(paths['metrics']) as f:
            saved = json.load(f)
        assert saved['train']['n_samples'] == 16

        df = pd.read_csv(paths['predictions'], index_col='time_step')
        assert len(df) == 20
        assert df['partition'].tolist() == ['train'] * 16 + ['val'] * 2 + ['test'] * 2


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
