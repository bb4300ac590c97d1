from dataclasses import dataclass
from typing import List, Tuple

import numpy as np
import pandas as pd
from sklearn.model_selection import RepeatedStratifiedKFold

from .exceptions import DataError
from .utils.logger import get_logger


@dataclass(frozen=True)
class FoldAssignment:
    """Index labels held out in one fold of one repeat."""
    repeat: int
    fold: int
    held_out: Tuple


class CrossValidator:
    """
    Repeated stratified k-fold accuracy for any model exposing ``fit_predict``.

    Fold membership depends only on (data, folds, repeats, seed), so two
    models scored with the same validator see identical folds.
    """

    def __init__(self, folds: int = 5, repeats: int = 5, seed: int = 42, target_col: str = "Dx"):
        self.folds = folds
        self.repeats = repeats
        self.seed = seed
        self.target_col = target_col
        self.logger = get_logger(self.__class__.__name__)
        self.fold_accuracies_: List[float] = []

    def _check_class_sizes(self, y: pd.Series) -> None:
        counts = y.value_counts()
        if (counts < self.folds).all():
            raise DataError(
                f"Every class has fewer than folds={self.folds} records: {counts.to_dict()}"
            )
        if (counts < self.folds).any():
            self.logger.warning(
                f"Class sizes {counts.to_dict()} below folds={self.folds}; "
                "some folds hold out no record of the smaller class"
            )

    def fold_assignments(self, train: pd.DataFrame) -> List[FoldAssignment]:
        y = train[self.target_col]
        self._check_class_sizes(y)

        rskf = RepeatedStratifiedKFold(
            n_splits=self.folds, n_repeats=self.repeats, random_state=self.seed
        )
        assignments = []
        for i, (_, held_pos) in enumerate(rskf.split(np.zeros(len(y)), y)):
            repeat, fold = divmod(i, self.folds)
            assignments.append(
                FoldAssignment(repeat, fold, tuple(train.index[np.sort(held_pos)]))
            )
        return assignments

    def cv_accuracy(self, model, train: pd.DataFrame) -> float:
        """Mean held-out accuracy of ``model`` over all folds and repeats."""
        self.fold_accuracies_ = []

        for fa in self.fold_assignments(train):
            held = train.loc[list(fa.held_out)]
            fit_part = train.drop(index=list(fa.held_out))

            predicted = np.asarray(model.fit_predict(fit_part, held))
            acc = float(np.mean(predicted == held[self.target_col].to_numpy()))
            self.fold_accuracies_.append(acc)

        mean_acc = float(np.mean(self.fold_accuracies_))
        self.logger.info(
            f"{getattr(model, 'name', type(model).__name__)}: CV accuracy {mean_acc:.4f} "
            f"({self.folds} folds x {self.repeats} repeats)"
        )
        return mean_acc
