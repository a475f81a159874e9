"""Evaluation Metrics Module.

Calculates confusion counts, accuracy, precision, recall, specificity,
F1 and ROC/AUC for readmission predictions. A ratio whose denominator
is zero is reported as NaN (undefined), never as 0.
"""

import math
from dataclasses import dataclass, field
from typing import Optional, Sequence

import numpy as np
import pandas as pd
from sklearn.metrics import auc, roc_curve

UNDEFINED = float("nan")

METRIC_NAMES = ("Accuracy", "Precision", "Recall", "Specificity", "F1", "AUC")


def _ratio(numerator: float, denominator: float) -> float:
    if denominator == 0:
        return UNDEFINED
    return numerator / denominator


def _fmt(value: float, pct: bool = True) -> str:
    if math.isnan(value):
        return "undefined"
    return f"{value:.4f} ({value:.1%})" if pct else f"{value:.4f}"


@dataclass
class SkippedRecord:
    """A batch record that could not be encoded."""

    index: int
    error_type: str
    message: str


@dataclass
class EvaluationResults:
    """Container for evaluation metrics of one model on one batch."""

    true_positives: int
    false_positives: int
    true_negatives: int
    false_negatives: int
    accuracy: float
    precision: float
    recall: float
    specificity: float
    f1_score: float
    auc: float
    threshold: float = 0.5
    model_id: str = ""
    roc_thresholds: np.ndarray = field(default_factory=lambda: np.empty(0))
    roc_fpr: np.ndarray = field(default_factory=lambda: np.empty(0))
    roc_tpr: np.ndarray = field(default_factory=lambda: np.empty(0))
    skipped: list[SkippedRecord] = field(default_factory=list)

    @property
    def n_records(self) -> int:
        """Number of records that were scored."""
        return (
            self.true_positives + self.false_positives
            + self.true_negatives + self.false_negatives
        )

    @property
    def n_skipped(self) -> int:
        return len(self.skipped)

    def metric_values(self) -> dict[str, float]:
        return {
            "Accuracy": self.accuracy,
            "Precision": self.precision,
            "Recall": self.recall,
            "Specificity": self.specificity,
            "F1": self.f1_score,
            "AUC": self.auc,
        }

    def to_frame(self) -> pd.DataFrame:
        """
        Metrics table with Metric, Value and Percentage columns.

        Undefined metrics keep NaN in Value and "undefined" in Percentage.
        """
        rows = []
        for name, value in self.metric_values().items():
            rows.append({
                "Metric": name,
                "Value": round(value, 4) if not math.isnan(value) else UNDEFINED,
                "Percentage": "undefined" if math.isnan(value) else f"{value * 100:.2f}%",
            })
        return pd.DataFrame(rows, columns=["Metric", "Value", "Percentage"])

    def roc_frame(self) -> pd.DataFrame:
        """ROC points with threshold, fpr and tpr columns."""
        return pd.DataFrame({
            "threshold": self.roc_thresholds,
            "fpr": self.roc_fpr,
            "tpr": self.roc_tpr,
        })

    def skipped_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            [vars(s) for s in self.skipped],
            columns=["index", "error_type", "message"],
        )

    def confusion_matrix(self) -> np.ndarray:
        """
        Confusion matrix.

        Returns:
            2x2 numpy array [[TN, FP], [FN, TP]]
        """
        return np.array([
            [self.true_negatives, self.false_positives],
            [self.false_negatives, self.true_positives],
        ])

    def __str__(self) -> str:
        header = f"Evaluation Results ({self.model_id}):" if self.model_id else "Evaluation Results:"
        return (
            f"{header}\n"
            f"  True Positives:  {self.true_positives}\n"
            f"  False Positives: {self.false_positives}\n"
            f"  True Negatives:  {self.true_negatives}\n"
            f"  False Negatives: {self.false_negatives}\n"
            f"  Skipped:         {self.n_skipped}\n"
            f"  --------------------------------\n"
            f"  Accuracy:        {_fmt(self.accuracy)}\n"
            f"  Precision:       {_fmt(self.precision)}\n"
            f"  Recall:          {_fmt(self.recall)}\n"
            f"  Specificity:     {_fmt(self.specificity)}\n"
            f"  F1-Score:        {_fmt(self.f1_score)}\n"
            f"  AUC:             {_fmt(self.auc, pct=False)}"
        )


class ClassificationMetrics:
    """
    Evaluates readmission predictions against true outcomes.

    A record is predicted positive when its probability is strictly
    greater than the threshold.
    """

    def __init__(self, threshold: float = 0.5):
        """
        Initialize the metrics calculator.

        Args:
            threshold: Decision threshold applied to probabilities.
        """
        if not 0 <= threshold <= 1:
            raise ValueError("Threshold must be between 0 and 1")
        self.threshold = threshold
        self._results: Optional[EvaluationResults] = None

    @staticmethod
    def calculate_precision(tp: int, fp: int) -> float:
        """
        Calculate precision: TP / (TP + FP)

        Of all encounters flagged as readmissions, what fraction were?
        """
        return _ratio(tp, tp + fp)

    @staticmethod
    def calculate_recall(tp: int, fn: int) -> float:
        """
        Calculate recall (sensitivity): TP / (TP + FN)

        Of all actual readmissions, what fraction were flagged?
        """
        return _ratio(tp, tp + fn)

    @staticmethod
    def calculate_specificity(tn: int, fp: int) -> float:
        """Calculate specificity: TN / (TN + FP)"""
        return _ratio(tn, tn + fp)

    @staticmethod
    def calculate_f1(precision: float, recall: float) -> float:
        """
        Calculate F1-Score: 2 * (precision * recall) / (precision + recall)

        Undefined when either input is undefined or both are zero.
        """
        if math.isnan(precision) or math.isnan(recall):
            return UNDEFINED
        return _ratio(2 * precision * recall, precision + recall)

    @staticmethod
    def calculate_accuracy(tp: int, tn: int, fp: int, fn: int) -> float:
        """Calculate accuracy: (TP + TN) / Total"""
        return _ratio(tp + tn, tp + tn + fp + fn)

    @staticmethod
    def roc(y_true: np.ndarray, probabilities: np.ndarray) -> tuple[np.ndarray, np.ndarray, np.ndarray, float]:
        """
        ROC curve over every distinct probability, plus its area.

        Returns:
            (thresholds, fpr, tpr, auc); empty arrays and NaN AUC when
            only one class is present.
        """
        if len(np.unique(y_true)) < 2:
            empty = np.empty(0)
            return empty, empty, empty, UNDEFINED
        fpr, tpr, thresholds = roc_curve(y_true, probabilities, drop_intermediate=False)
        # The first point sits above every score (inf or max + 1); cap it at 1.0
        thresholds = np.minimum(thresholds, 1.0)
        return thresholds, fpr, tpr, float(auc(fpr, tpr))

    def evaluate(
        self,
        y_true: Sequence[int],
        probabilities: Sequence[float],
        model_id: str = "",
        skipped: Optional[list[SkippedRecord]] = None,
    ) -> EvaluationResults:
        """
        Evaluate probabilities against true labels.

        Args:
            y_true: Binary labels, 1 = readmitted.
            probabilities: Predicted probability of readmission per record.
            model_id: Id of the model that produced the probabilities.
            skipped: Records left out of scoring.

        Returns:
            EvaluationResults with all metrics.
        """
        y_true = np.asarray(y_true, dtype=int)
        probabilities = np.asarray(probabilities, dtype=float)
        if y_true.shape != probabilities.shape:
            raise ValueError("Labels and probabilities must have the same length")

        y_pred = probabilities > self.threshold
        actual = y_true == 1

        tp = int((actual & y_pred).sum())
        fp = int((~actual & y_pred).sum())
        tn = int((~actual & ~y_pred).sum())
        fn = int((actual & ~y_pred).sum())

        precision = self.calculate_precision(tp, fp)
        recall = self.calculate_recall(tp, fn)
        thresholds, fpr, tpr, area = self.roc(y_true, probabilities)

        self._results = EvaluationResults(
            true_positives=tp,
            false_positives=fp,
            true_negatives=tn,
            false_negatives=fn,
            accuracy=self.calculate_accuracy(tp, tn, fp, fn),
            precision=precision,
            recall=recall,
            specificity=self.calculate_specificity(tn, fp),
            f1_score=self.calculate_f1(precision, recall),
            auc=area,
            threshold=self.threshold,
            model_id=model_id,
            roc_thresholds=thresholds,
            roc_fpr=fpr,
            roc_tpr=tpr,
            skipped=list(skipped or []),
        )
        return self._results

    def get_confusion_matrix(self) -> np.ndarray:
        """Confusion matrix of the last evaluation."""
        if self._results is None:
            raise ValueError("No evaluation has been performed yet")
        return self._results.confusion_matrix()

    def get_detailed_report(self, results: Optional[EvaluationResults] = None) -> str:
        """
        Generate a detailed evaluation report.

        Args:
            results: Results to report; defaults to the last evaluation.

        Returns:
            Formatted report string.
        """
        results = results or self._results
        if results is None:
            raise ValueError("No evaluation has been performed yet")

        actual_positive = results.true_positives + results.false_negatives
        predicted_positive = results.true_positives + results.false_positives

        report = f"""
{'=' * 60}
READMISSION MODEL EVALUATION REPORT{f' - {results.model_id}' if results.model_id else ''}
{'=' * 60}

Dataset Statistics:
  Scored Records:       {results.n_records}
  Skipped Records:      {results.n_skipped}
  Actual Readmissions:  {actual_positive}
  Predicted Readmitted: {predicted_positive}
  Threshold:            {results.threshold}

Confusion Matrix:
                    Predicted
                    Neg     Pos
  Actual  Neg       {results.true_negatives:<7} {results.false_positives}
          Pos       {results.false_negatives:<7} {results.true_positives}

Performance Metrics:
  Accuracy:     {_fmt(results.accuracy)}
  Precision:    {_fmt(results.precision)}
                -> Of flagged encounters, how many were readmitted
  Recall:       {_fmt(results.recall)}
                -> Of readmissions, how many were flagged
  Specificity:  {_fmt(results.specificity)}
  F1-Score:     {_fmt(results.f1_score)}
  AUC:          {_fmt(results.auc, pct=False)}
{'=' * 60}
"""
        return report


def comparison_table(results: Sequence[EvaluationResults], names: Optional[dict[str, str]] = None) -> pd.DataFrame:
    """
    Side-by-side metrics of several evaluations.

    Args:
        results: One EvaluationResults per model.
        names: Optional mapping of model id to display name.

    Returns:
        DataFrame with a Metric column, one column per model and a
        Best_Model column naming the model with the highest value
        (empty when every model's value is undefined).
    """
    names = names or {}
    columns = [names.get(r.model_id, r.model_id) for r in results]
    rows = []
    for metric in METRIC_NAMES:
        row: dict[str, object] = {"Metric": metric}
        values = {}
        for column, result in zip(columns, results):
            value = result.metric_values()[metric]
            row[column] = round(value, 4) if not math.isnan(value) else UNDEFINED
            if not math.isnan(value):
                values[column] = value
        row["Best_Model"] = max(values, key=values.get) if values else ""
        rows.append(row)
    return pd.DataFrame(rows, columns=["Metric"] + columns + ["Best_Model"])
