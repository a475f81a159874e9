"""
Model Input Encoders.

Turns a RawInput into the exact layout each fitted model was trained on.
Training, batch evaluation and interactive prediction all encode through
these functions; there is no second implementation.

Two forms exist:
- linear: one-hot indicators + 0/1 flags + numeric passthrough, in the
  fixed ColumnSchema order (logistic regression).
- tree: categorical fields kept as categoricals constrained to the
  vocabulary, plus the outcome placeholder column (CART, random forest).
"""

from dataclasses import dataclass
from typing import Any, Optional, Sequence

import pandas as pd

from ..exceptions import SchemaMismatchError, UnknownCategoryError
from .derived import compute
from .records import (
    AFFIRMATIVE_TOKEN,
    BINARY_FIELDS,
    CATEGORICAL_FIELDS,
    NUMERIC_FIELDS,
    ONE_HOT_PREFIXES,
    OUTCOME_FIELD,
    RawInput,
)
from .store import ORDERED_FIELDS, TREE_COLUMNS, CategoryVocabulary, ColumnSchema, FeatureStore

LINEAR = "linear"
TREE = "tree"
FORMS = (LINEAR, TREE)


@dataclass(frozen=True)
class EncodedVector:
    """A single encoded record in one of the two model input forms."""

    form: str
    columns: tuple[str, ...]
    values: tuple[Any, ...]
    # (field, levels) pairs for categorical columns; tree form only
    categories: tuple[tuple[str, tuple[str, ...]], ...] = ()

    def as_dict(self) -> dict[str, Any]:
        return dict(zip(self.columns, self.values))

    def to_frame(self) -> pd.DataFrame:
        """Single-row DataFrame in the model's column layout."""
        return stack_encoded([self])


def encode_linear(
    raw: RawInput,
    vocab: CategoryVocabulary,
    schema: ColumnSchema,
) -> EncodedVector:
    """
    Encode a record for the logistic regression model.

    Args:
        raw: Encounter record.
        vocab: Training-time vocabulary.
        schema: Training-time column schema.

    Returns:
        EncodedVector whose columns equal schema exactly, in schema order.

    Raises:
        UnknownCategoryError: If a one-hot or binary field value is not in
            vocab.
        SchemaMismatchError: If the encoding produces columns the schema
            does not know, i.e. vocab and schema come from different
            training runs.
    """
    produced: dict[str, float] = {name: float(getattr(raw, name)) for name in NUMERIC_FIELDS}
    produced.update(compute(raw).to_dict())

    # Resolved against the vocabulary; 1 only for the affirmative level
    for field in BINARY_FIELDS:
        level = vocab.resolve(field, getattr(raw, field))
        flag = 1.0 if level == AFFIRMATIVE_TOKEN else 0.0
        produced[ColumnSchema.binary_column(field)] = flag

    for field in CATEGORICAL_FIELDS:
        if field not in ONE_HOT_PREFIXES:
            continue
        level = vocab.resolve(field, getattr(raw, field))
        for candidate in vocab.levels(field):
            produced[ColumnSchema.indicator_column(field, candidate)] = (
                1.0 if candidate == level else 0.0
            )

    unknown = [column for column in produced if column not in schema]
    if unknown:
        raise SchemaMismatchError(
            f"Encoding produced columns absent from the training schema: {unknown}"
        )

    # Schema columns the encoding did not produce stay 0
    values = tuple(produced.get(column, 0.0) for column in schema.columns)
    return EncodedVector(form=LINEAR, columns=schema.columns, values=values)


def encode_tree(
    raw: RawInput,
    vocab: CategoryVocabulary,
    outcome: Optional[str] = None,
) -> EncodedVector:
    """
    Encode a record for the tree-based models.

    The outcome column is structurally part of the layout the tree models
    were fit on. At scoring time it holds a placeholder (the first outcome
    level by default) that the models drop before predicting, so its value
    never affects a probability.

    Args:
        raw: Encounter record.
        vocab: Training-time vocabulary.
        outcome: Outcome level to store; the true label during training,
            None for the placeholder at scoring time.

    Raises:
        UnknownCategoryError: If a categorical value (or the outcome) is
            not in vocab.
    """
    if outcome is None:
        outcome = vocab.outcome_levels[0]
    elif outcome not in vocab.outcome_levels:
        raise UnknownCategoryError(OUTCOME_FIELD, outcome, vocab.outcome_levels)

    derived = compute(raw).to_dict()
    values: dict[str, Any] = {OUTCOME_FIELD: outcome}
    for name in NUMERIC_FIELDS:
        values[name] = float(getattr(raw, name))
    values.update(derived)
    for field in CATEGORICAL_FIELDS:
        values[field] = vocab.resolve(field, getattr(raw, field))

    categories = ((OUTCOME_FIELD, vocab.outcome_levels),) + tuple(
        (field, vocab.levels(field)) for field in CATEGORICAL_FIELDS
    )
    return EncodedVector(
        form=TREE,
        columns=TREE_COLUMNS,
        values=tuple(values[column] for column in TREE_COLUMNS),
        categories=categories,
    )


def encode(
    raw: RawInput,
    store: FeatureStore,
    form: str,
    outcome: Optional[str] = None,
) -> EncodedVector:
    """Encode a record in the given form using a feature store."""
    if form == LINEAR:
        return encode_linear(raw, store.vocabulary, store.linear_schema)
    if form == TREE:
        return encode_tree(raw, store.vocabulary, outcome=outcome)
    raise ValueError(f"Unknown encoding form '{form}'. Choose from {FORMS}")


def stack_encoded(vectors: Sequence[EncodedVector]) -> pd.DataFrame:
    """
    Combine encoded vectors into one DataFrame.

    Args:
        vectors: Non-empty sequence of vectors of the same form and layout.

    Returns:
        DataFrame with one row per vector; tree-form categorical columns
        carry a CategoricalDtype built from the vocabulary levels.

    Raises:
        SchemaMismatchError: If the vectors do not share form and layout.
    """
    if not vectors:
        raise ValueError("No encoded vectors to stack")

    first = vectors[0]
    for vector in vectors[1:]:
        if (
            vector.form != first.form
            or vector.columns != first.columns
            or vector.categories != first.categories
        ):
            raise SchemaMismatchError("Cannot stack encoded vectors with different layouts")

    frame = pd.DataFrame([vector.values for vector in vectors], columns=list(first.columns))

    if first.form == LINEAR:
        return frame.astype(float)

    for field, levels in first.categories:
        dtype = pd.CategoricalDtype(categories=list(levels), ordered=field in ORDERED_FIELDS)
        frame[field] = frame[field].astype(dtype)
    return frame
