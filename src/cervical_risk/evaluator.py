from dataclasses import dataclass
from typing import Dict, Iterable, Optional

import numpy as np
import pandas as pd
from sklearn.metrics import (
    accuracy_score,
    auc,
    confusion_matrix,
    f1_score,
    precision_score,
    recall_score,
    roc_curve,
)

from .exceptions import ModelFitError
from .models import NEGATIVE, POSITIVE
from .utils.logger import get_logger

LABELS = [NEGATIVE, POSITIVE]


@dataclass
class Metrics:
    """Held-out performance of one model."""
    confusion: np.ndarray
    accuracy: float
    precision: float
    recall: float
    f1: float
    fpr: np.ndarray
    tpr: np.ndarray
    thresholds: np.ndarray
    roc_auc: Optional[float]

    def as_row(self) -> Dict[str, float]:
        return {
            "Accuracy": self.accuracy,
            "Precision": self.precision,
            "Recall": self.recall,
            "F1": self.f1,
            "ROC_AUC": np.nan if self.roc_auc is None else self.roc_auc,
        }


def metrics_table(results: Dict[str, Metrics]) -> pd.DataFrame:
    """One row of scalar metrics per model."""
    return pd.DataFrame({name: m.as_row() for name, m in results.items()}).T


class Evaluator:
    """Fit each model on train, score it on test and collect confusion-matrix metrics and ROC curves."""

    def __init__(self, target_col: str = "Dx", verbose: bool = True):
        self.target_col = target_col
        self.verbose = verbose
        self.logger = get_logger(self.__class__.__name__)
        self.failures_: Dict[str, str] = {}

    def score(self, y_true: np.ndarray, y_pred: np.ndarray, y_score: np.ndarray) -> Metrics:
        y_true = np.asarray(y_true)
        y_pred = np.asarray(y_pred)
        y_score = np.asarray(y_score, dtype=float)

        cm = confusion_matrix(y_true, y_pred, labels=LABELS)
        kw = dict(pos_label=POSITIVE, zero_division=0)

        y_bin = (y_true == POSITIVE).astype(int)
        if len(np.unique(y_bin)) == 2:
            fpr, tpr, thresholds = roc_curve(y_bin, y_score)
            roc_auc: Optional[float] = float(auc(fpr, tpr))
        else:
            fpr = tpr = thresholds = np.array([])
            roc_auc = None

        return Metrics(
            confusion=cm,
            accuracy=float(accuracy_score(y_true, y_pred)),
            precision=float(precision_score(y_true, y_pred, **kw)),
            recall=float(recall_score(y_true, y_pred, **kw)),
            f1=float(f1_score(y_true, y_pred, **kw)),
            fpr=fpr,
            tpr=tpr,
            thresholds=thresholds,
            roc_auc=roc_auc,
        )

    def evaluate(self, models: Iterable, train: pd.DataFrame, test: pd.DataFrame) -> Dict[str, Metrics]:
        """Return ``{model.name: Metrics}``; a model whose fit fails is skipped and logged."""
        y_true = test[self.target_col].to_numpy()
        results: Dict[str, Metrics] = {}
        self.failures_ = {}

        for model in models:
            try:
                y_score = model.fit_score(train, test)
            except ModelFitError as exc:
                self.logger.error(str(exc))
                self.failures_[model.name] = str(exc)
                continue

            # same threshold the adapter applies in fit_predict, without refitting
            y_pred = np.where(y_score > model.threshold, POSITIVE, NEGATIVE)
            results[model.name] = self.score(y_true, y_pred, y_score)

            if self.verbose:
                m = results[model.name]
                auc_str = "n/a" if m.roc_auc is None else f"{m.roc_auc:.4f}"
                self.logger.info(
                    f"{model.name}: accuracy={m.accuracy:.4f} f1={m.f1:.4f} roc_auc={auc_str}"
                )

        return results
