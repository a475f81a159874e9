"""Evaluation metrics for readmission models."""

from .metrics import (
    METRIC_NAMES,
    ClassificationMetrics,
    EvaluationResults,
    SkippedRecord,
    comparison_table,
)

__all__ = [
    "METRIC_NAMES",
    "ClassificationMetrics",
    "EvaluationResults",
    "SkippedRecord",
    "comparison_table",
]
