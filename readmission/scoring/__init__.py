"""Scoring services for batch evaluation and interactive prediction.

This package provides:
- EvaluationService: Score labelled batches and compute metrics per model
- InteractivePredictor: Score one encounter with every model and assign a risk tier

Usage:
    from readmission.models import ModelRegistry
    from readmission.scoring import EvaluationService, InteractivePredictor

    registry = ModelRegistry.from_directory("artifacts/")
    service = EvaluationService(registry.store, registry)
    print(service.compare(["linear", "tree", "ensemble"], records))

    predictor = InteractivePredictor(registry.store, registry)
    result = predictor.predict(form_values)
"""

from .batch import EvaluationService, frame_records, is_positive_label
from .interactive import InteractivePrediction, InteractivePredictor, RiskTier, risk_tier

__all__ = [
    "EvaluationService",
    "frame_records",
    "is_positive_label",
    "InteractivePrediction",
    "InteractivePredictor",
    "RiskTier",
    "risk_tier",
]
