import warnings
from dataclasses import dataclass, field
from textwrap import indent
from typing import Dict

import pandas as pd

from .config import Config
from .cross_validator import CrossValidator
from .data_loader import DataLoader
from .evaluator import Evaluator, Metrics, metrics_table
from .exceptions import ModelFitError
from .models import build_models
from .resampler import Resampler
from .splitter import Splitter
from .utils.logger import get_logger


@dataclass
class PipelineResult:
    cv_accuracy: Dict[str, float]
    metrics: Dict[str, Metrics]
    table: pd.DataFrame
    n_train: int
    n_train_resampled: int
    n_test: int
    failures: Dict[str, str] = field(default_factory=dict)


class PipelineRunner:
    """End-to-end cervical cancer risk-factor model comparison.

    Steps:
      1. Load the CSV, impute medians, relabel the target
      2. Stratified train/test split with per-partition standardization
      3. Repeated stratified k-fold accuracy of every model on Train
      4. Optionally rebalance Train with ADASYN-style oversampling
      5. Fit every model on Train and evaluate it on Test (metrics, ROC)"""

    def __init__(self, config_path: str):
        self.config = Config.from_yaml(config_path)
        self.logger = get_logger(self.__class__.__name__)
        warnings.filterwarnings("ignore", category=UserWarning, module="lightgbm")
        warnings.filterwarnings(
            "ignore",
            message="The least populated class in y has only",
            category=UserWarning,
            module="sklearn",
        )

    def run(self) -> PipelineResult:
        cfg = self.config
        target_col = cfg.data.get("target_col", "Dx")
        self.logger.info("Starting cervical cancer risk pipeline")

        loader = DataLoader(
            cfg.data["path"],
            target_col=target_col,
            drop_cols=cfg.data.get("drop_cols", ["Dx:Cancer"]),
            missing_marker=cfg.data.get("missing_marker", "?"),
        )
        df = loader.load()
        self.logger.info(f"Class counts: {loader.class_counts(df).to_dict()}")

        splitter = Splitter(
            train_fraction=cfg.split.get("train_fraction", 0.7),
            seed=cfg.split.get("seed", 42),
            target_col=target_col,
            scaling=cfg.split.get("scaling", "per_partition"),
        )
        train, test = splitter.split(df)

        models = build_models(cfg.models, target_col=target_col)

        validator = CrossValidator(
            folds=cfg.validation.get("folds", 5),
            repeats=cfg.validation.get("repeats", 5),
            seed=cfg.validation.get("seed", 42),
            target_col=target_col,
        )
        cv_accuracy: Dict[str, float] = {}
        for model in models:
            try:
                cv_accuracy[model.name] = validator.cv_accuracy(model, train)
            except ModelFitError as exc:
                self.logger.error(f"Cross-validation aborted for {exc}")
                cv_accuracy[model.name] = float("nan")

        fit_train = train
        if cfg.resampling.get("enabled", True):
            resampler = Resampler(
                beta=cfg.resampling.get("beta", 1.0),
                n_neighbors=cfg.resampling.get("n_neighbors", 5),
                random_state=cfg.resampling.get("seed", 42),
                target_col=target_col,
            )
            fit_train = resampler.balance(train)
        else:
            self.logger.info("Resampling disabled")

        evaluator = Evaluator(target_col=target_col)
        metrics = evaluator.evaluate(models, fit_train, test)

        # models that failed evaluation keep a row with their CV accuracy
        table = metrics_table(metrics).reindex(list(cv_accuracy))
        table.insert(0, "CV_Accuracy", pd.Series(cv_accuracy))
        self.logger.info(f"Model comparison:\n{indent(table.to_string(float_format='{:.4f}'.format), ' ' * 4)}")
        self.logger.info("Pipeline finished")

        return PipelineResult(
            cv_accuracy=cv_accuracy,
            metrics=metrics,
            table=table,
            n_train=len(train),
            n_train_resampled=len(fit_train),
            n_test=len(test),
            failures=dict(evaluator.failures_),
        )
