"""
NARX Forecaster
===============

Desktop tool for forecasting a time series from its own lags and the lags
of exogenous regressors with a single-hidden-layer neural network.

Modules:
    - data_loader: .mat/.npz ingestion, validation and the DataStore
    - preprocessing: Lagged feature construction and train/val/test splitting
    - model: Feedforward network trainer with validation early stopping
    - evaluation: Per-partition MSE, metrics and actual vs predicted plots
    - pipeline: Training orchestration and the interactive session
    - gui: PyQt5 front-end
"""

__version__ = "1.0.0"
__author__ = "NARX Forecaster Developers"
