#!/usr/bin/env python3
"""
NARX Forecaster - Entry Point
=============================

Opens the desktop tool, or runs a single training session headless.

Usage:
    # Open the GUI
    python main.py

    # Train once from a file and write the report
    python main.py --data data/series.mat --lag 2 --hidden 10

    # Run with custom config
    python main.py --config config/custom.yaml
"""

import argparse
import logging
import sys
from pathlib import Path
from datetime import datetime
from typing import Dict, Any, Optional

from narx_forecast.data_loader import DEFAULT_CONFIG, load_config, print_data_summary
from narx_forecast.evaluation import print_evaluation_report, save_report
from narx_forecast.exceptions import NarxError
from narx_forecast.model import print_model_summary
from narx_forecast.pipeline import ForecastSession


def setup_logging(level: str = "INFO", log_file: bool = False) -> None:
    """Configure logging for the application."""
    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(
            logging.FileHandler(f'narx_{datetime.now().strftime("%Y%m%d_%H%M%S")}.log')
        )

    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers
    )


def resolve_config(config_path: str) -> Dict[str, Any]:
    """Load the YAML config, falling back to the built-in defaults."""
    try:
        return load_config(config_path)
    except FileNotFoundError:
        logging.getLogger(__name__).warning(
            f"Config file not found: {config_path}. Using built-in defaults."
        )
        return DEFAULT_CONFIG


def run_headless(
    data_path: str,
    config: Dict[str, Any],
    lag_order: Optional[int] = None,
    hidden_units: Optional[int] = None,
    output_dir: Optional[str] = None,
    model_path: Optional[str] = None
) -> Dict[str, Any]:
    """
    Import a file, train once and write the report.

    Args:
        data_path: Path to the .mat/.npz file
        config: Configuration dictionary
        lag_order: Lag order (default from config)
        hidden_units: Hidden neurons (default from config)
        output_dir: Report directory (default from config)
        model_path: If given, the fitted network is saved there

    Returns:
        Result dictionary from the training run
    """
    session = ForecastSession(config)

    session.import_file(data_path)
    print_data_summary(*session.store.current())

    result = session.train(
        lag_order if lag_order is not None else session.default_lag_order,
        hidden_units if hidden_units is not None else session.default_hidden_units
    )

    print_model_summary(result['model'])
    print_evaluation_report(result)

    output_dir = output_dir or config.get('output', {}).get('reports_path', 'reports/')
    paths = save_report(result, output_dir)
    for name, path in paths.items():
        print(f"  • {name}: {path}")

    if model_path:
        result['model'].save(model_path)

    return result


def main() -> int:
    """Main entry point with argument parsing."""
    parser = argparse.ArgumentParser(
        description="NARX neural network forecaster for a series y with regressors X",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py
  python main.py --data data/series.mat --lag 2 --hidden 10
  python main.py --config config/custom.yaml
        """
    )

    parser.add_argument(
        '--config', '-c',
        type=str,
        default='config/config.yaml',
        help='Path to configuration file (default: config/config.yaml)'
    )

    parser.add_argument(
        '--data', '-d',
        type=str,
        help='Train once on this .mat/.npz file instead of opening the GUI'
    )

    parser.add_argument('--lag', type=int, help='Lag order for --data runs')
    parser.add_argument('--hidden', type=int, help='Hidden neurons for --data runs')
    parser.add_argument('--output', '-o', type=str, help='Report directory for --data runs')
    parser.add_argument('--save-model', type=str, help='Save the fitted network (joblib) to this path')

    parser.add_argument(
        '--log-file',
        action='store_true',
        help='Also write the log to a timestamped file'
    )

    args = parser.parse_args()

    config = resolve_config(args.config)
    setup_logging(config.get('logging', {}).get('level', 'INFO'), log_file=args.log_file)

    if not args.data:
        from narx_forecast.gui import run_app
        return run_app(config)

    if not Path(args.data).exists():
        print(f"Error: Data file not found: {args.data}")
        print("\nExpected a .mat or .npz file with variables 'y' and 'X'.")
        return 1

    try:
        run_headless(args.data, config, args.lag, args.hidden, args.output, args.save_model)
        return 0

    except NarxError as e:
        logging.error(f"Training failed: {e}")
        print(f"\n❌ Training failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
