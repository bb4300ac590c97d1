import numpy as np
import pandas as pd
import pytest

from cervical_risk.evaluator import Evaluator, metrics_table
from cervical_risk.exceptions import ModelFitError
from cervical_risk.models import LogisticModel


class _BrokenModel:
    name = "Broken"
    threshold = 0.5

    def fit_score(self, train, test):
        raise ModelFitError(self.name, ValueError("did not converge"))


def _make_frames(seed=0):
    rng = np.random.RandomState(seed)
    y = np.array(["No Cancer"] * 30 + ["Cancer"] * 30)
    df = pd.DataFrame(
        {
            "x1": rng.normal(size=60) + np.where(y == "Cancer", 3.0, 0.0),
            "Dx": y,
        }
    ).sample(frac=1.0, random_state=seed)
    return df.iloc[:40], df.iloc[40:]


def test_score_computes_confusion_matrix_metrics():
    y_true = np.array(["No Cancer", "No Cancer", "Cancer", "Cancer"])
    y_pred = np.array(["No Cancer", "Cancer", "Cancer", "No Cancer"])
    y_score = np.array([0.1, 0.6, 0.8, 0.4])

    m = Evaluator(verbose=False).score(y_true, y_pred, y_score)

    np.testing.assert_array_equal(m.confusion, [[1, 1], [1, 1]])
    assert m.accuracy == pytest.approx(0.5)
    assert m.precision == pytest.approx(0.5)
    assert m.recall == pytest.approx(0.5)
    assert m.f1 == pytest.approx(0.5)
    assert m.roc_auc == pytest.approx(0.75)
    assert m.fpr[0] == 0.0 and m.tpr[-1] == 1.0


def test_score_without_positive_class_has_no_roc_curve():
    y_true = np.array(["No Cancer"] * 3)
    y_pred = np.array(["No Cancer", "Cancer", "No Cancer"])
    m = Evaluator(verbose=False).score(y_true, y_pred, np.array([0.2, 0.7, 0.1]))

    assert m.roc_auc is None
    assert m.fpr.size == 0
    assert m.precision == 0.0
    assert np.isnan(m.as_row()["ROC_AUC"])


def test_evaluate_isolates_failing_models():
    train, test = _make_frames()
    evaluator = Evaluator()

    results = evaluator.evaluate([_BrokenModel(), LogisticModel()], train, test)

    assert list(results) == ["Logistic"]
    assert "Broken" in evaluator.failures_
    assert results["Logistic"].accuracy >= 0.8
    assert results["Logistic"].confusion.sum() == len(test)


def test_evaluate_predictions_match_fit_predict():
    train, test = _make_frames(seed=1)
    model = LogisticModel()

    m = Evaluator(verbose=False).evaluate([model], train, test)["Logistic"]
    labels = model.fit_predict(train, test)
    expected_acc = np.mean(labels == test["Dx"].to_numpy())
    assert m.accuracy == pytest.approx(expected_acc)


def test_metrics_table_has_one_row_per_model():
    train, test = _make_frames()
    results = Evaluator(verbose=False).evaluate([LogisticModel()], train, test)
    table = metrics_table(results)

    assert list(table.index) == ["Logistic"]
    assert {"Accuracy", "Precision", "Recall", "F1", "ROC_AUC"} <= set(table.columns)
