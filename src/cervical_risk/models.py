import warnings
from typing import Any, Dict, List, Optional, Tuple

import lightgbm as lgb
import numpy as np
import pandas as pd
from lightgbm import LGBMClassifier
from lightgbm.basic import LightGBMError
from sklearn.ensemble import RandomForestClassifier
from sklearn.exceptions import ConvergenceWarning
from sklearn.linear_model import LogisticRegression

from .exceptions import ModelFitError
from .utils.logger import get_logger

POSITIVE = "Cancer"
NEGATIVE = "No Cancer"


class _BinaryModel:
    """
    Shared plumbing for the adapters.

    Subclasses implement ``_fit_score(X_train, y_train, X_test)`` returning the
    score of the positive class for each test row; ``fit_predict`` thresholds it.
    Every call fits a fresh estimator, nothing is kept between calls.
    """

    name = "model"
    threshold = 0.5

    def __init__(self, target_col: str = "Dx"):
        self.target_col = target_col
        self.logger = get_logger(self.__class__.__name__)

    def _xy(self, train: pd.DataFrame, test: pd.DataFrame) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        X_train_df = train.drop(columns=[self.target_col])
        X_test_df = test.drop(columns=[self.target_col], errors="ignore")[X_train_df.columns]
        y_train = (train[self.target_col] == POSITIVE).astype(int).to_numpy()
        return (
            X_train_df.to_numpy(dtype=float),
            y_train,
            X_test_df.to_numpy(dtype=float),
        )

    def _fit_score(self, X_train: np.ndarray, y_train: np.ndarray, X_test: np.ndarray) -> np.ndarray:
        raise NotImplementedError

    def fit_score(self, train: pd.DataFrame, test: pd.DataFrame) -> np.ndarray:
        """Fit on ``train`` and return the positive-class score for each row of ``test``."""
        X_train, y_train, X_test = self._xy(train, test)
        try:
            with warnings.catch_warnings():
                warnings.simplefilter("error", category=ConvergenceWarning)
                return np.asarray(self._fit_score(X_train, y_train, X_test), dtype=float)
        except (ValueError, ConvergenceWarning, LightGBMError) as exc:
            raise ModelFitError(self.name, exc) from exc

    def fit_predict(self, train: pd.DataFrame, test: pd.DataFrame) -> np.ndarray:
        """Fit on ``train`` and return labels aligned positionally with ``test``."""
        scores = self.fit_score(train, test)
        return np.where(scores > self.threshold, POSITIVE, NEGATIVE)


class LogisticModel(_BinaryModel):
    name = "Logistic"

    def __init__(self, target_col: str = "Dx", **params: Any):
        super().__init__(target_col)
        self.params = {"max_iter": 1000, **params}

    def _fit_score(self, X_train, y_train, X_test):
        model = LogisticRegression(**self.params)
        model.fit(X_train, y_train)
        return model.predict_proba(X_test)[:, 1]


class RandomForestModel(_BinaryModel):
    """Bagged trees; the score is the share of trees voting for the positive class."""

    name = "RandomForest"

    def __init__(self, target_col: str = "Dx", **params: Any):
        super().__init__(target_col)
        self.params = {"n_estimators": 500, "random_state": 42, **params}

    def _fit_score(self, X_train, y_train, X_test):
        model = RandomForestClassifier(**self.params)
        model.fit(X_train, y_train)
        if len(model.classes_) < 2:
            return np.full(len(X_test), float(model.classes_[0]))
        # trees predict encoded class indices; classes_ is [0, 1]
        votes = np.stack([tree.predict(X_test) for tree in model.estimators_])
        return votes.mean(axis=0)


class BoostingModel(_BinaryModel):
    """
    Gradient boosted shallow trees with the round count chosen by internal CV.

    ``lightgbm.cv`` runs up to ``num_boost_round`` rounds with early stopping;
    the number of rounds it keeps is then used to fit on the whole training set.
    """

    name = "Boosting"

    def __init__(
        self,
        target_col: str = "Dx",
        num_boost_round: int = 5000,
        cv_folds: int = 5,
        early_stopping_rounds: int = 100,
        seed: int = 42,
        params: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(target_col)
        self.num_boost_round = num_boost_round
        self.cv_folds = cv_folds
        self.early_stopping_rounds = early_stopping_rounds
        self.seed = seed
        # the round count is chosen by internal CV, never taken from params
        self.params = {k: v for k, v in (params or {}).items() if k != "n_estimators"}
        self.best_rounds_: Optional[int] = None

    def _best_rounds(self, X: np.ndarray, y: np.ndarray) -> int:
        nfold = min(self.cv_folds, int(np.bincount(y, minlength=2).min()))
        if nfold < 2:
            self.logger.warning(
                f"Too few minority rows for internal CV; using {self.num_boost_round} rounds"
            )
            return self.num_boost_round

        params = {"objective": "binary", "verbosity": -1, "seed": self.seed, **self.params}
        results = lgb.cv(
            params,
            lgb.Dataset(X, label=y),
            num_boost_round=self.num_boost_round,
            nfold=nfold,
            stratified=True,
            seed=self.seed,
            callbacks=[lgb.early_stopping(self.early_stopping_rounds, verbose=False)],
        )
        # every metric history is truncated to the best iteration
        return len(next(iter(results.values())))

    def _fit_score(self, X_train, y_train, X_test):
        self.best_rounds_ = self._best_rounds(X_train, y_train)

        params = {"objective": "binary", "random_state": self.seed, "verbosity": -1, **self.params}
        model = LGBMClassifier(n_estimators=self.best_rounds_, **params)
        model.fit(X_train, y_train)
        if len(model.classes_) < 2:
            return np.full(len(X_test), float(model.classes_[0]))
        return model.predict_proba(X_test)[:, 1]


MODEL_REGISTRY = {
    "logistic": LogisticModel,
    "random_forest": RandomForestModel,
    "boosting": BoostingModel,
}


def build_models(model_cfg: Dict[str, Any], target_col: str = "Dx") -> List[_BinaryModel]:
    """Instantiate the adapters listed under ``enabled`` with their YAML parameters."""
    enabled = model_cfg.get("enabled", list(MODEL_REGISTRY))
    models = []
    for key in enabled:
        if key not in MODEL_REGISTRY:
            raise ValueError(f"Unknown model: {key}")
        models.append(MODEL_REGISTRY[key](target_col=target_col, **(model_cfg.get(key) or {})))
    return models
