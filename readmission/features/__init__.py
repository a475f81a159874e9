"""Shared feature library: vocabulary, derived features and encoders."""

from .records import (
    AFFIRMATIVE_TOKEN,
    CATEGORICAL_FIELDS,
    NUMERIC_FIELDS,
    OUTCOME_LEVELS,
    POSITIVE_OUTCOME,
    RawInput,
)
from .derived import DerivedFeatures, compute
from .store import CategoryVocabulary, ColumnSchema, FeatureStore, TREE_COLUMNS
from .encoders import (
    LINEAR,
    TREE,
    EncodedVector,
    encode,
    encode_linear,
    encode_tree,
    stack_encoded,
)

__all__ = [
    # Records
    "RawInput",
    "AFFIRMATIVE_TOKEN",
    "CATEGORICAL_FIELDS",
    "NUMERIC_FIELDS",
    "OUTCOME_LEVELS",
    "POSITIVE_OUTCOME",
    # Derived features
    "DerivedFeatures",
    "compute",
    # Feature store
    "CategoryVocabulary",
    "ColumnSchema",
    "FeatureStore",
    "TREE_COLUMNS",
    # Encoders
    "LINEAR",
    "TREE",
    "EncodedVector",
    "encode",
    "encode_linear",
    "encode_tree",
    "stack_encoded",
]
