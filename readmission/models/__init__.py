"""Models package for readmission classifiers."""
from .base import BaseClassifier, TreeFormClassifier
from .logistic import LogisticModel
from .cart import CARTModel
from .forest import RandomForestModel
from .registry import (
    ARTIFACT_NAMES,
    DISPLAY_NAMES,
    MODEL_FORMS,
    MODEL_IDS,
    ModelRegistry,
)

__all__ = [
    # Base classes
    "BaseClassifier",
    "TreeFormClassifier",
    # Classifiers
    "LogisticModel",
    "CARTModel",
    "RandomForestModel",
    # Registry
    "ModelRegistry",
    "MODEL_IDS",
    "MODEL_FORMS",
    "DISPLAY_NAMES",
    "ARTIFACT_NAMES",
]
