from collections import Counter

import numpy as np
import pandas as pd
import pytest

from cervical_risk.cross_validator import CrossValidator
from cervical_risk.exceptions import DataError


def _make_train(n_neg=20, n_pos=10, seed=0):
    rng = np.random.RandomState(seed)
    n = n_neg + n_pos
    return pd.DataFrame(
        {
            "x": rng.normal(size=n),
            "Dx": ["No Cancer"] * n_neg + ["Cancer"] * n_pos,
        },
        index=np.arange(100, 100 + n),  # non-default labels on purpose
    )


class _MajorityModel:
    """Predicts the most common training label; records what it was fitted on."""

    name = "Majority"

    def __init__(self):
        self.calls = []

    def fit_predict(self, train, test):
        self.calls.append((set(train.index), set(test.index)))
        label = train["Dx"].mode()[0]
        return np.array([label] * len(test))


def test_fold_assignments_are_deterministic():
    train = _make_train()
    a = CrossValidator(folds=5, repeats=3, seed=11).fold_assignments(train)
    b = CrossValidator(folds=5, repeats=3, seed=11).fold_assignments(train)
    assert a == b


def test_each_record_held_out_once_per_repeat():
    train = _make_train()
    assignments = CrossValidator(folds=5, repeats=4, seed=0).fold_assignments(train)

    assert len(assignments) == 20
    for repeat in range(4):
        held = [i for fa in assignments if fa.repeat == repeat for i in fa.held_out]
        assert sorted(held) == sorted(train.index)

    totals = Counter(i for fa in assignments for i in fa.held_out)
    assert set(totals.values()) == {4}


def test_fold_assignments_are_stratified():
    train = _make_train(n_neg=20, n_pos=10)
    for fa in CrossValidator(folds=5, repeats=1, seed=0).fold_assignments(train):
        counts = train.loc[list(fa.held_out), "Dx"].value_counts().to_dict()
        assert counts == {"No Cancer": 4, "Cancer": 2}


def test_toy_train_with_fewer_minority_records_than_folds():
    # 5 "No Cancer" + 2 "Cancer": every fold holds out exactly one "No Cancer" record
    train = _make_train(n_neg=5, n_pos=2)
    assignments = CrossValidator(folds=5, repeats=1, seed=1).fold_assignments(train)

    assert len(assignments) == 5
    for fa in assignments:
        labels = train.loc[list(fa.held_out), "Dx"]
        assert (labels == "No Cancer").sum() == 1
    held = [i for fa in assignments for i in fa.held_out]
    assert sorted(held) == sorted(train.index)


def test_cv_raises_when_every_class_is_smaller_than_folds():
    train = _make_train(n_neg=3, n_pos=2)
    with pytest.raises(DataError):
        CrossValidator(folds=5, repeats=1).fold_assignments(train)


def test_cv_accuracy_is_mean_of_fold_accuracies_and_never_trains_on_held_out():
    train = _make_train(n_neg=20, n_pos=10)
    model = _MajorityModel()
    cv = CrossValidator(folds=5, repeats=2, seed=3)

    acc = cv.cv_accuracy(model, train)

    # majority model always predicts "No Cancer": 4 of 6 held-out rows are right
    assert acc == pytest.approx(4 / 6)
    assert len(cv.fold_accuracies_) == 10
    assert acc == pytest.approx(np.mean(cv.fold_accuracies_))
    for fit_idx, held_idx in model.calls:
        assert fit_idx.isdisjoint(held_idx)
        assert fit_idx | held_idx == set(train.index)
