import logging

import numpy as np
import pandas as pd
from imblearn.over_sampling.base import BaseOverSampler
from sklearn.neighbors import NearestNeighbors
from sklearn.utils import check_random_state

from .exceptions import DataError, InsufficientNeighborsError
from .utils.logger import get_logger


def _neighbors_excluding_self(X_fit: np.ndarray, X_query: np.ndarray, own: np.ndarray, k: int) -> np.ndarray:
    """
    Indices into ``X_fit`` of the ``k`` nearest neighbours of each query row,
    with the query row itself (position ``own`` in ``X_fit``) left out.
    """
    nn = NearestNeighbors(n_neighbors=k + 1).fit(X_fit)
    _, idx = nn.kneighbors(X_query)
    # duplicates can push a row's own index out of first place
    return np.array([row[row != o][:k] for row, o in zip(idx, own)])


def _largest_remainder(weights: np.ndarray, total: int) -> np.ndarray:
    """Integer allocation proportional to ``weights`` that sums to exactly ``total``."""
    raw = weights * total
    alloc = np.floor(raw).astype(int)
    short = total - int(alloc.sum())
    if short > 0:
        order = np.argsort(-(raw - alloc), kind="stable")
        alloc[order[:short]] += 1
    return alloc


class Resampler(BaseOverSampler):
    """
    ADASYN-style adaptive synthetic oversampling of the minority class.

    Minority records with more majority-class rows among their ``n_neighbors``
    nearest neighbours receive proportionally more synthetic siblings. The
    number of synthetic rows is ``beta * (n_majority - n_minority)`` rounded
    half up, so ``beta=1`` fully balances the classes and ``beta=0`` is a no-op.

    Usable as an imblearn sampler via ``fit_resample(X, y)``, or directly on a
    frame holding the target column via ``balance(train)``.

    Example:
        resampler = Resampler(beta=1.0, n_neighbors=5)
        train_bal = resampler.balance(train)
    """

    def __init__(
        self,
        sampling_strategy="auto",
        beta: float = 1.0,
        n_neighbors: int = 5,
        random_state=42,
        target_col: str = "Dx",
    ):
        super().__init__(sampling_strategy=sampling_strategy)
        self.beta = beta
        self.n_neighbors = n_neighbors
        self.random_state = random_state
        self.target_col = target_col

    @property
    def logger(self) -> logging.Logger:
        return get_logger(self.__class__.__name__)

    def _minority_neighbor_count(self, n_same_class: int) -> int:
        available = n_same_class - 1
        if available < self.n_neighbors:
            raise InsufficientNeighborsError(self.n_neighbors, available)
        return self.n_neighbors

    def _difficulty(self, X: np.ndarray, y: np.ndarray, class_sample, min_idx: np.ndarray) -> np.ndarray:
        k = min(self.n_neighbors, len(X) - 1)
        nn = _neighbors_excluding_self(X, X[min_idx], min_idx, k)
        ratio = (y[nn] != class_sample).mean(axis=1)

        if ratio.sum() == 0:
            self.logger.warning(
                "No minority record has majority-class neighbours; weighting uniformly"
            )
            return np.full(len(min_idx), 1.0 / len(min_idx))
        return ratio / ratio.sum()

    def _generate(self, X, y, class_sample, n_samples, random_state) -> np.ndarray:
        min_idx = np.flatnonzero(y == class_sample)
        X_min = X[min_idx]

        weights = self._difficulty(X, y, class_sample, min_idx)
        alloc = _largest_remainder(weights, n_samples)
        rows = np.repeat(np.arange(len(X_min)), alloc)

        try:
            k = self._minority_neighbor_count(len(X_min))
        except InsufficientNeighborsError as exc:
            self.logger.warning(f"{exc}; using {exc.available} neighbours")
            k = exc.available

        if k == 0:
            return X_min[rows].copy()

        nn_min = _neighbors_excluding_self(X_min, X_min, np.arange(len(X_min)), k)
        partners = nn_min[rows, random_state.randint(0, k, size=len(rows))]
        steps = random_state.uniform(size=(len(rows), 1))
        return X_min[rows] + steps * (X_min[partners] - X_min[rows])

    def _fit_resample(self, X, y):
        if self.beta < 0:
            raise ValueError(f"beta must be non-negative, got {self.beta}")
        if self.n_neighbors < 1:
            raise ValueError(f"n_neighbors must be at least 1, got {self.n_neighbors}")

        random_state = check_random_state(self.random_state)
        X_resampled = [X.copy()]
        y_resampled = [y.copy()]

        for class_sample, n_gap in self.sampling_strategy_.items():
            n_samples = int(np.floor(self.beta * n_gap + 0.5))
            if n_samples == 0:
                continue
            X_resampled.append(self._generate(X, y, class_sample, n_samples, random_state))
            y_resampled.append(np.full(n_samples, class_sample, dtype=y.dtype))

        return np.vstack(X_resampled), np.hstack(y_resampled)

    def balance(self, train: pd.DataFrame) -> pd.DataFrame:
        """Return ``train`` followed by the synthetic minority rows."""
        y = train[self.target_col]
        if y.nunique() < 2:
            raise DataError("Resampling needs both classes present in the training set")

        X = train.drop(columns=[self.target_col]).astype(float)
        X_res, y_res = self.fit_resample(X, y)

        n_synthetic = len(X_res) - len(train)
        if n_synthetic == 0:
            self.logger.info("No synthetic records generated")
            return train.copy()

        synthetic = pd.DataFrame(np.asarray(X_res)[len(train):], columns=X.columns)
        synthetic[self.target_col] = np.asarray(y_res)[len(train):]
        start = int(train.index.max()) + 1
        synthetic.index = pd.RangeIndex(start, start + n_synthetic)

        counts = pd.Series(np.asarray(y_res)).value_counts().to_dict()
        self.logger.info(f"Generated {n_synthetic} synthetic records; class counts now {counts}")
        return pd.concat([train, synthetic[train.columns]])
