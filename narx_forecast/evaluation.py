"""
Model Evaluation Module
=======================

Scores a training run per partition and draws the result charts.

Features:
    - MSE per train/validation/test partition
    - RMSE, MAE, R² per partition for the saved report
    - Actual vs Predicted line chart with partition shading
    - Residual distribution plot
    - Report export (JSON metrics, CSV predictions, PNG figures)
"""

import logging
import json
from pathlib import Path
from typing import Dict, Any, Optional, Tuple

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
import seaborn as sns
from sklearn.metrics import mean_squared_error, mean_absolute_error, r2_score

from .exceptions import EmptyPartitionError
from .preprocessing import Partition

logger = logging.getLogger(__name__)

sns.set_style("whitegrid")

PARTITION_LABELS = {
    'train': 'Training',
    'val': 'Validation',
    'test': 'Testing',
}

PARTITION_COLORS = {
    'train': 'tab:green',
    'val': 'tab:orange',
    'test': 'tab:purple',
}


def partition_mse(
    targets: np.ndarray,
    predictions: np.ndarray,
    idx: np.ndarray,
    name: str = 'selected'
) -> float:
    """
    Mean squared error over the rows in `idx`.

    Raises:
        EmptyPartitionError: If `idx` is empty; an MSE over zero rows
            is undefined
    """
    idx = np.asarray(idx, dtype=int)
    if idx.size == 0:
        raise EmptyPartitionError(f"Cannot score the {name} partition: it has no rows.")

    targets = np.asarray(targets, dtype=float).ravel()
    predictions = np.asarray(predictions, dtype=float).ravel()

    return float(mean_squared_error(targets[idx], predictions[idx]))


def evaluate_partitions(
    targets: np.ndarray,
    predictions: np.ndarray,
    partition: Partition
) -> Tuple[float, float, float]:
    """Return (mse_train, mse_val, mse_test)."""
    return tuple(
        partition_mse(targets, predictions, getattr(partition, name), name=PARTITION_LABELS[name].lower())
        for name in ('train', 'val', 'test')
    )


def calculate_metrics(
    targets: np.ndarray,
    predictions: np.ndarray,
    partition: Partition
) -> Dict[str, Any]:
    """
    Calculate evaluation metrics for each partition.

    Empty partitions are reported with n_samples 0 and NaN metrics; R² is
    NaN below two samples.

    Returns:
        Dictionary keyed by 'train', 'val', 'test' and 'overall'
    """
    targets = np.asarray(targets, dtype=float).ravel()
    predictions = np.asarray(predictions, dtype=float).ravel()

    metrics = {}
    for name, idx in list(partition._asdict().items()) + [('overall', np.arange(len(targets)))]:
        true_part = targets[idx]
        pred_part = predictions[idx]
        n_samples = len(idx)

        if n_samples == 0:
            metrics[name] = {'mse': float('nan'), 'rmse': float('nan'), 'mae': float('nan'),
                             'r2': float('nan'), 'n_samples': 0}
            continue

        mse = mean_squared_error(true_part, pred_part)
        metrics[name] = {
            'mse': float(mse),
            'rmse': float(np.sqrt(mse)),
            'mae': float(mean_absolute_error(true_part, pred_part)),
            'r2': float(r2_score(true_part, pred_part)) if n_samples > 1 else float('nan'),
            'n_samples': int(n_samples)
        }

    return metrics


def format_results(result: Dict[str, Any]) -> str:
    """Results message with the three MSE values to 4 decimal places."""
    return (
        f"Training MSE: {result['mse_train']:.4f}\n"
        f"Validation MSE: {result['mse_val']:.4f}\n"
        f"Testing MSE: {result['mse_test']:.4f}"
    )


def plot_actual_vs_predicted(
    targets: np.ndarray,
    predictions: np.ndarray,
    partition: Optional[Partition] = None,
    figsize: Tuple[int, int] = (10, 5),
    save_path: Optional[str] = None
) -> plt.Figure:
    """
    Plot actual and predicted values against the time-step index.

    Args:
        targets: Ground truth values
        predictions: Predicted values
        partition: If given, the train/val/test regions are shaded
        figsize: Figure size
        save_path: Path to save the figure

    Returns:
        Matplotlib Figure object
    """
    fig, ax = plt.subplots(figsize=figsize)

    x = np.arange(1, len(targets) + 1)
    ax.plot(x, targets, 'b-', linewidth=1.5, label='Actual')
    ax.plot(x, predictions, 'r-', linewidth=1.2, label='Predicted')

    if partition is not None:
        for name, idx in partition._asdict().items():
            if len(idx) == 0:
                continue
            ax.axvspan(idx[0] + 0.5, idx[-1] + 1.5, color=PARTITION_COLORS[name],
                       alpha=0.08, label=PARTITION_LABELS[name])

    ax.set_title('Actual vs Predicted Values', fontsize=12, fontweight='bold')
    ax.set_xlabel('Time')
    ax.set_ylabel('Output')
    ax.grid(True)
    ax.legend(loc='upper left', fontsize=8)
    fig.tight_layout()

    if save_path:
        fig.savefig(save_path, dpi=150, bbox_inches='tight')
        logger.info(f"Actual vs Predicted plot saved to {save_path}")

    return fig


def plot_residuals(
    targets: np.ndarray,
    predictions: np.ndarray,
    figsize: Tuple[int, int] = (8, 5),
    save_path: Optional[str] = None
) -> plt.Figure:
    """
    Residual distribution plot for model diagnostics.

    Returns:
        Matplotlib Figure object
    """
    residuals = np.asarray(targets, dtype=float) - np.asarray(predictions, dtype=float)

    fig, ax = plt.subplots(figsize=figsize)
    sns.histplot(residuals, kde=len(residuals) > 1, ax=ax, bins=min(50, max(len(residuals), 1)), alpha=0.7)

    ax.axvline(0, color='red', linestyle='--', linewidth=2, label='Zero')
    ax.axvline(np.mean(residuals), color='green', linestyle='--',
               linewidth=2, label=f'Mean: {np.mean(residuals):.4f}')

    ax.set_xlabel('Residual (Actual - Predicted)')
    ax.set_ylabel('Frequency')
    ax.set_title(f'Residuals (Std: {np.std(residuals):.4f})', fontsize=10, fontweight='bold')
    ax.legend(fontsize=8)
    fig.tight_layout()

    if save_path:
        fig.savefig(save_path, dpi=150, bbox_inches='tight')
        logger.info(f"Residuals plot saved to {save_path}")

    return fig


def save_metrics(metrics: Dict[str, Any], output_path: str) -> str:
    """Write the metrics dictionary as JSON; NaN is stored as null."""
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    def _clean(value):
        if isinstance(value, dict):
            return {k: _clean(v) for k, v in value.items()}
        if isinstance(value, float) and np.isnan(value):
            return None
        return value

    with open(output_path, 'w') as f:
        json.dump(_clean(metrics), f, indent=2)

    logger.info(f"Metrics saved to {output_path}")
    return str(output_path)


def export_predictions(
    targets: np.ndarray,
    predictions: np.ndarray,
    partition: Partition,
    output_path: str
) -> str:
    """
    Export actual and predicted values, one row per time step, to CSV.

    Returns:
        Path to the saved file
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    labels = np.empty(len(targets), dtype=object)
    for name, idx in partition._asdict().items():
        labels[idx] = name

    df = pd.DataFrame({
        'actual': targets,
        'predicted': predictions,
        'partition': labels,
    })
    df.index.name = 'time_step'
    df.to_csv(output_path)

    logger.info(f"Predictions exported to {output_path}")
    return str(output_path)


def save_report(result: Dict[str, Any], output_dir: str = "reports/") -> Dict[str, str]:
    """
    Write metrics, predictions and figures of a training run.

    Args:
        result: Result dictionary from pipeline.run_training
        output_dir: Directory for output files

    Returns:
        Mapping of artefact name to file path
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    paths = {
        'metrics': save_metrics(result['metrics'], str(output_dir / "metrics.json")),
        'predictions': export_predictions(
            result['targets'], result['predictions'], result['partition'],
            str(output_dir / "predictions.csv")
        ),
    }

    fig1 = plot_actual_vs_predicted(
        result['targets'], result['predictions'], result['partition'],
        save_path=str(output_dir / "actual_vs_predicted.png")
    )
    paths['actual_vs_predicted'] = str(output_dir / "actual_vs_predicted.png")

    fig2 = plot_residuals(
        result['targets'], result['predictions'],
        save_path=str(output_dir / "residuals.png")
    )
    paths['residuals'] = str(output_dir / "residuals.png")

    plt.close(fig1)
    plt.close(fig2)

    return paths


def print_evaluation_report(result: Dict[str, Any]) -> None:
    """
    Print a formatted evaluation report to console.

    Args:
        result: Result dictionary from pipeline.run_training
    """
    print("\n" + "=" * 60)
    print("MODEL EVALUATION REPORT")
    print("=" * 60)
    print(f"{'Partition':<12} {'Samples':<9} {'MSE':<12} {'RMSE':<12} {'R²':<12}")
    print("-" * 60)

    for name, label in PARTITION_LABELS.items():
        m = result['metrics'][name]
        print(f"{label:<12} {m['n_samples']:<9} {m['mse']:<12.4f} {m['rmse']:<12.4f} {m['r2']:<12.4f}")

    print("-" * 60)
    print(format_results(result))
    print("=" * 60 + "\n")
