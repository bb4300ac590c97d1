from typing import Dict, Optional, Sequence

import pandas as pd

from .exceptions import DataError, SchemaError
from .utils.logger import get_logger

DEFAULT_LABELS = {0: "No Cancer", 1: "Cancer"}


class DataLoader:
    """Loads the risk-factor CSV, imputes medians and relabels the target."""

    def __init__(
        self,
        path: str,
        target_col: str = "Dx",
        drop_cols: Sequence[str] = ("Dx:Cancer",),
        missing_marker: str = "?",
        labels: Optional[Dict[int, str]] = None,
    ):
        self.path = path
        self.target_col = target_col
        self.drop_cols = list(drop_cols)
        self.missing_marker = missing_marker
        self.labels = dict(labels or DEFAULT_LABELS)
        self.logger = get_logger(self.__class__.__name__)
        self.medians_: Dict[str, float] = {}

    def load(self) -> pd.DataFrame:
        df = pd.read_csv(
            self.path,
            na_values=[self.missing_marker],
            keep_default_na=True,
            skipinitialspace=True,
        )
        df = self._coerce_numeric(df)
        # medians use every observed feature value, including rows later dropped for a missing target
        df = self._impute_medians(df)
        df = self._clean_target(df)

        df = df.drop(columns=[c for c in self.drop_cols if c in df.columns])
        df[self.target_col] = df[self.target_col].astype(int).map(self.labels)

        self.logger.info(f"Loaded dataset: {df.shape[0]:,} rows x {df.shape[1]} cols")
        return df.reset_index(drop=True)

    @staticmethod
    def _coerce_numeric(df: pd.DataFrame) -> pd.DataFrame:
        out = df.copy()
        for col in out.columns:
            try:
                out[col] = pd.to_numeric(out[col], errors="raise")
            except (ValueError, TypeError) as exc:
                raise SchemaError(col, str(exc)) from exc
        return out

    def _clean_target(self, df: pd.DataFrame) -> pd.DataFrame:
        if self.target_col not in df.columns:
            raise DataError(f"Target column '{self.target_col}' not found")

        target = df[self.target_col]
        if target.isna().all():
            raise DataError(f"Target column '{self.target_col}' is entirely missing")

        n_missing = int(target.isna().sum())
        if n_missing:
            self.logger.warning(f"Dropping {n_missing} rows with missing '{self.target_col}'")
            df = df[target.notna()]

        unknown = set(df[self.target_col].unique()) - set(self.labels)
        if unknown:
            raise DataError(
                f"Unexpected codes in '{self.target_col}': {sorted(unknown)}"
            )
        return df

    def _impute_medians(self, df: pd.DataFrame) -> pd.DataFrame:
        out = df.copy()
        features = [c for c in out.columns if c != self.target_col]

        empty = [c for c in features if out[c].isna().all()]
        if empty:
            self.logger.warning(f"Dropping columns with no observed values: {empty}")
            out = out.drop(columns=empty)
            features = [c for c in features if c not in empty]

        self.medians_ = {c: float(out[c].median()) for c in features}
        out[features] = out[features].fillna(self.medians_)

        n_filled = int(df[features].isna().sum().sum())
        if n_filled:
            self.logger.info(f"Imputed {n_filled:,} missing values with column medians")
        return out

    def class_counts(self, df: pd.DataFrame) -> pd.Series:
        """Number of records per target class."""
        return df[self.target_col].value_counts().sort_index()
