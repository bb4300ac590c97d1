from typing import List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from sklearn.preprocessing import StandardScaler

from .exceptions import DataError
from .utils.logger import get_logger

SCALING_STRATEGIES = ("per_partition", "train_reference")


def standardize(
    partition: pd.DataFrame,
    feature_cols: Sequence[str],
    scaler: Optional[StandardScaler] = None,
) -> Tuple[pd.DataFrame, StandardScaler]:
    """
    Standardize ``feature_cols`` of a partition.

    With ``scaler=None`` a new scaler is fitted on the partition itself;
    otherwise the given (already fitted) scaler is reused. Returns the scaled
    copy and the scaler that produced it.
    """
    cols = list(feature_cols)
    out = partition.copy()
    if scaler is None:
        scaler = StandardScaler().fit(out[cols].to_numpy(dtype=float))
    out[cols] = scaler.transform(out[cols].to_numpy(dtype=float))
    return out, scaler


class Splitter:
    """
    Stratified train/test partition followed by per-partition standardization.

    Within each target class a ``train_fraction`` share (rounded half up) goes
    to Train. By default Train and Test are each scaled with their own
    statistics; ``scaling="train_reference"`` scales Test with Train's instead.
    """

    def __init__(
        self,
        train_fraction: float = 0.7,
        seed: int = 42,
        target_col: str = "Dx",
        scaling: str = "per_partition",
    ):
        if not 0.0 < train_fraction < 1.0:
            raise ValueError(f"train_fraction must be in (0, 1), got {train_fraction}")
        if scaling not in SCALING_STRATEGIES:
            raise ValueError(f"Unknown scaling strategy: {scaling}")

        self.train_fraction = train_fraction
        self.seed = seed
        self.target_col = target_col
        self.scaling = scaling
        self.logger = get_logger(self.__class__.__name__)
        self.train_scaler_: Optional[StandardScaler] = None
        self.test_scaler_: Optional[StandardScaler] = None

    def partition_index(self, df: pd.DataFrame) -> Tuple[pd.Index, pd.Index]:
        """Return the (train, test) index labels of a stratified split."""
        rng = np.random.RandomState(self.seed)
        train_labels: List = []
        test_labels: List = []

        for cls in sorted(df[self.target_col].unique()):
            members = df.index[df[self.target_col] == cls].to_numpy()
            members = members[rng.permutation(len(members))]
            n_train = int(np.floor(round(len(members) * self.train_fraction, 9) + 0.5))

            if n_train == 0 or n_train == len(members):
                raise DataError(
                    f"Class '{cls}' has {len(members)} records; cannot place it in "
                    f"both partitions with train_fraction={self.train_fraction}"
                )
            train_labels.extend(members[:n_train])
            test_labels.extend(members[n_train:])

        # keep the dataset's original row order inside each partition
        train_idx = df.index[df.index.isin(train_labels)]
        test_idx = df.index[df.index.isin(test_labels)]
        return train_idx, test_idx

    def feature_columns(self, df: pd.DataFrame) -> List[str]:
        numeric = df.select_dtypes(include=["number", "bool"]).columns
        return [c for c in numeric if c != self.target_col]

    def split(self, df: pd.DataFrame) -> Tuple[pd.DataFrame, pd.DataFrame]:
        train_idx, test_idx = self.partition_index(df)
        train, test = df.loc[train_idx], df.loc[test_idx]
        cols = self.feature_columns(df)

        train, self.train_scaler_ = standardize(train, cols)
        if self.scaling == "per_partition":
            test, self.test_scaler_ = standardize(test, cols)
        else:
            test, self.test_scaler_ = standardize(test, cols, scaler=self.train_scaler_)

        self.logger.info(
            f"Split {len(df):,} records into train={len(train):,} / test={len(test):,} "
            f"(scaling={self.scaling})"
        )
        return train, test
