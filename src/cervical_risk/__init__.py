"""
Cervical Cancer Risk Factors — Model Comparison Pipeline

This package loads the risk-factor dataset, splits and standardizes it,
scores classifiers with repeated stratified cross-validation, rebalances the
training set with ADASYN-style oversampling and evaluates every model on the
held-out partition.

Modules:
    config              — Load YAML configuration safely.
    data_loader         — Read CSV, coerce to numeric, impute medians.
    splitter            — Stratified train/test split and standardization.
    cross_validator     — Repeated stratified k-fold accuracy.
    models              — Logistic / random forest / boosting adapters.
    resampler           — ADASYN-style minority oversampling.
    evaluator           — Confusion-matrix metrics and ROC curves.
    pipeline            — Orchestrates all components.
    exceptions          — Pipeline error types.
    utils.logger        — Unified timestamped console logger.
"""

from .config import Config
from .data_loader import DataLoader
from .splitter import Splitter, standardize
from .cross_validator import CrossValidator, FoldAssignment
from .models import BoostingModel, LogisticModel, RandomForestModel, build_models
from .resampler import Resampler
from .evaluator import Evaluator, Metrics, metrics_table
from .pipeline import PipelineResult, PipelineRunner

__all__ = [
    "Config",
    "DataLoader",
    "Splitter",
    "standardize",
    "CrossValidator",
    "FoldAssignment",
    "LogisticModel",
    "RandomForestModel",
    "BoostingModel",
    "build_models",
    "Resampler",
    "Evaluator",
    "Metrics",
    "metrics_table",
    "PipelineResult",
    "PipelineRunner",
]
