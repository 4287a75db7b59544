"""Evaluation helpers shared by every forest engine."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Sequence

import numpy as np
import pandas as pd
from sklearn.metrics import accuracy_score, cohen_kappa_score, confusion_matrix


@dataclass
class ClassificationReport:
    """Predictions and scores of one model on one table."""

    label: str
    y_pred: np.ndarray
    accuracy: float
    confusion: pd.DataFrame
    kappa: float
    sensitivity: float
    specificity: float
    probabilities: Optional[pd.DataFrame] = None

    def to_dict(self) -> Dict[str, float]:
        return {
            "accuracy": float(self.accuracy),
            "kappa": float(self.kappa),
            "sensitivity": float(self.sensitivity),
            "specificity": float(self.specificity),
        }


def accuracy(y_true: Iterable, y_pred: Iterable) -> float:
    """Share of predictions equal to the true label."""
    y_true = np.asarray(list(y_true), dtype=object)
    y_pred = np.asarray(list(y_pred), dtype=object)
    if len(y_true) == 0:
        raise ValueError("Cannot score an empty set of predictions.")
    if len(y_true) != len(y_pred):
        raise ValueError(f"Length mismatch: {len(y_true)} labels vs {len(y_pred)} predictions.")
    return float(accuracy_score(y_true, y_pred))


def confusion_table(y_true: Iterable, y_pred: Iterable, labels: Sequence[str]) -> pd.DataFrame:
    """Counts per (true, predicted) label pair; rows are true labels."""
    matrix = confusion_matrix(list(y_true), list(y_pred), labels=list(labels))
    return pd.DataFrame(
        matrix,
        index=pd.Index(list(labels), name="true"),
        columns=pd.Index(list(labels), name="predicted"),
    )


def _rate(numerator: float, denominator: float) -> float:
    return float(numerator / denominator) if denominator else float("nan")


def evaluate_classifier(
    model,
    X: pd.DataFrame,
    y_true: pd.Series,
    label: str,
    *,
    labels: Sequence[str] = ("no", "yes"),
    positive_level: str = "yes",
) -> ClassificationReport:
    """Predict with a fitted model and score the predictions against ``y_true``."""
    y_true = pd.Series(y_true).astype(str).to_numpy()
    y_pred = np.asarray(model.predict(X)).astype(str)

    probabilities = None
    if hasattr(model, "predict_proba"):
        probabilities = model.predict_proba(X)
        if not isinstance(probabilities, pd.DataFrame):
            classes = getattr(model, "classes_", labels)
            probabilities = pd.DataFrame(
                probabilities, columns=[str(c) for c in classes], index=getattr(X, "index", None)
            )

    confusion = confusion_table(y_true, y_pred, labels)
    negatives = [lvl for lvl in labels if lvl != positive_level]
    tp = confusion.loc[positive_level, positive_level]
    fn = confusion.loc[positive_level].sum() - tp
    tn = confusion.loc[negatives, negatives].to_numpy().sum()
    fp = confusion.loc[negatives, positive_level].sum()

    return ClassificationReport(
        label=label,
        y_pred=y_pred,
        accuracy=accuracy(y_true, y_pred),
        confusion=confusion,
        kappa=float(cohen_kappa_score(y_true, y_pred, labels=list(labels))),
        sensitivity=_rate(tp, tp + fn),
        specificity=_rate(tn, tn + fp),
        probabilities=probabilities,
    )


def print_report(report: ClassificationReport) -> None:
    print(f"[INFO] Confusion matrix — {report.label}")
    print(report.confusion)
    print(f"   Accuracy   : {report.accuracy:.4f}")
    print(f"   Kappa      : {report.kappa:.4f}")
    print(f"   Sensitivity: {report.sensitivity:.4f}")
    print(f"   Specificity: {report.specificity:.4f}")


def compare_accuracies(reports: Iterable[ClassificationReport]) -> pd.DataFrame:
    """Tabulate accuracy per model, best first."""
    summary = pd.DataFrame(
        [{"model": r.label, "accuracy": r.accuracy, "kappa": r.kappa} for r in reports],
        columns=["model", "accuracy", "kappa"],
    )
    return summary.sort_values("accuracy", ascending=False, kind="stable").reset_index(drop=True)
