"""
Feature Store Module.

Holds the category vocabulary and column layouts captured once from the
training corpus. Every encoder, model and scoring service reads the same
frozen FeatureStore; its fingerprint ties fitted models to the exact
vocabulary they were trained with.
"""

import hashlib
import json
import re
from pathlib import Path
from types import MappingProxyType
from typing import Any, Iterator, Mapping, Optional, Sequence

import pandas as pd

from ..exceptions import UnknownCategoryError
from .derived import DERIVED_FIELDS
from .records import (
    BINARY_FIELDS,
    CATEGORICAL_FIELDS,
    MISSING_LEVEL,
    NUMERIC_FIELDS,
    ONE_HOT_PREFIXES,
    OUTCOME_FIELD,
    OUTCOME_LEVELS,
)

# Categorical fields whose levels carry an order
ORDERED_FIELDS = ("age",)

_BRACKET_RE = re.compile(r"^\[(\d+)-")


def _level_sort_key(level: str) -> tuple:
    """Sort age brackets like "[40-50)" numerically, everything else lexically."""
    match = _BRACKET_RE.match(level)
    if match:
        return (0, int(match.group(1)), level)
    return (1, 0, level)


class CategoryVocabulary:
    """
    Closed, ordered set of allowed levels per categorical field.

    Immutable once built. Two vocabularies derived from the same corpus
    compare equal, levels and order included.
    """

    def __init__(
        self,
        levels: Mapping[str, Sequence[str]],
        outcome_levels: Sequence[str] = OUTCOME_LEVELS,
    ):
        missing = [f for f in CATEGORICAL_FIELDS if f not in levels]
        if missing:
            raise ValueError(f"Vocabulary is missing fields: {missing}")
        for field, values in levels.items():
            if not values:
                raise ValueError(f"Vocabulary field '{field}' has no levels")
            if len(set(values)) != len(values):
                raise ValueError(f"Vocabulary field '{field}' has duplicate levels")
        self._levels = MappingProxyType(
            {field: tuple(str(v) for v in levels[field]) for field in CATEGORICAL_FIELDS}
        )
        self._outcome_levels = tuple(outcome_levels)

    @classmethod
    def from_corpus(cls, df: pd.DataFrame) -> "CategoryVocabulary":
        """
        Derive the vocabulary from a cleaned training corpus.

        Args:
            df: DataFrame containing every categorical field.

        Returns:
            CategoryVocabulary with levels sorted deterministically.
        """
        levels = {}
        for field in CATEGORICAL_FIELDS:
            if field not in df.columns:
                raise ValueError(f"Training corpus has no column '{field}'")
            values = {str(v) for v in df[field].dropna().unique()}
            levels[field] = sorted(values, key=_level_sort_key)
        return cls(levels)

    @property
    def fields(self) -> tuple[str, ...]:
        return tuple(self._levels)

    @property
    def outcome_levels(self) -> tuple[str, ...]:
        return self._outcome_levels

    def levels(self, field: str) -> tuple[str, ...]:
        """Ordered levels of a categorical field."""
        if field not in self._levels:
            raise KeyError(f"'{field}' is not a categorical field")
        return self._levels[field]

    def is_ordered(self, field: str) -> bool:
        return field in ORDERED_FIELDS

    def resolve(self, field: str, value: Optional[str]) -> str:
        """
        Map an input value onto its vocabulary level.

        An empty value resolves to the explicit "Missing" level when the
        field has one.

        Raises:
            UnknownCategoryError: If the value is not a level of the field.
        """
        allowed = self.levels(field)
        if value is None or (isinstance(value, str) and not value.strip()):
            if MISSING_LEVEL in allowed:
                return MISSING_LEVEL
            raise UnknownCategoryError(field, value, allowed)
        value = str(value)
        if value not in allowed:
            raise UnknownCategoryError(field, value, allowed)
        return value

    def to_dict(self) -> dict[str, Any]:
        return {
            "levels": {field: list(values) for field, values in self._levels.items()},
            "outcome_levels": list(self._outcome_levels),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CategoryVocabulary":
        return cls(data["levels"], data.get("outcome_levels", OUTCOME_LEVELS))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CategoryVocabulary):
            return NotImplemented
        return dict(self._levels) == dict(other._levels) and (
            self._outcome_levels == other._outcome_levels
        )

    def __hash__(self) -> int:
        return hash((tuple(self._levels.items()), self._outcome_levels))

    def __repr__(self) -> str:
        sizes = ", ".join(f"{f}={len(v)}" for f, v in self._levels.items())
        return f"CategoryVocabulary({sizes})"


class ColumnSchema:
    """Fixed column order of the linear (one-hot) encoding."""

    def __init__(self, columns: Sequence[str]):
        columns = tuple(columns)
        if len(set(columns)) != len(columns):
            raise ValueError("Column schema contains duplicate columns")
        self._columns = columns

    @staticmethod
    def indicator_column(field: str, level: str) -> str:
        """Name of the one-hot column for a field level, e.g. "medspec_Cardiology"."""
        return f"{ONE_HOT_PREFIXES[field]}_{level}"

    @staticmethod
    def binary_column(field: str) -> str:
        return f"{field}_binary"

    @classmethod
    def from_vocabulary(cls, vocab: CategoryVocabulary) -> "ColumnSchema":
        """Build the linear layout: numeric, derived, binary flags, then indicators."""
        columns = list(NUMERIC_FIELDS) + list(DERIVED_FIELDS)
        columns += [cls.binary_column(field) for field in BINARY_FIELDS]
        for field in CATEGORICAL_FIELDS:
            if field in ONE_HOT_PREFIXES:
                columns += [cls.indicator_column(field, level) for level in vocab.levels(field)]
        return cls(columns)

    @property
    def columns(self) -> tuple[str, ...]:
        return self._columns

    def __iter__(self) -> Iterator[str]:
        return iter(self._columns)

    def __len__(self) -> int:
        return len(self._columns)

    def __contains__(self, column: object) -> bool:
        return column in self._columns

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ColumnSchema):
            return NotImplemented
        return self._columns == other._columns

    def __hash__(self) -> int:
        return hash(self._columns)

    def __repr__(self) -> str:
        return f"ColumnSchema({len(self._columns)} columns)"


# Tree-form layout: outcome placeholder, numeric, derived, categorical
TREE_COLUMNS = (OUTCOME_FIELD,) + NUMERIC_FIELDS + DERIVED_FIELDS + CATEGORICAL_FIELDS


class FeatureStore:
    """
    Training-time feature artifacts shared by every prediction path.

    Bundles the vocabulary, the linear column schema and the tree column
    layout. Saved as one JSON artifact next to the fitted models.
    """

    ARTIFACT_NAME = "feature_store.json"

    def __init__(
        self,
        vocabulary: CategoryVocabulary,
        linear_schema: Optional[ColumnSchema] = None,
        tree_columns: Sequence[str] = TREE_COLUMNS,
    ):
        self.vocabulary = vocabulary
        self.linear_schema = linear_schema or ColumnSchema.from_vocabulary(vocabulary)
        self.tree_columns = tuple(tree_columns)
        self._fingerprint = self._compute_fingerprint()

    @classmethod
    def from_corpus(cls, df: pd.DataFrame) -> "FeatureStore":
        """Capture the store from the finalized training corpus."""
        return cls(CategoryVocabulary.from_corpus(df))

    @property
    def fingerprint(self) -> str:
        """Content hash identifying this vocabulary/schema version."""
        return self._fingerprint

    def to_dict(self) -> dict[str, Any]:
        return {
            "vocabulary": self.vocabulary.to_dict(),
            "linear_schema": list(self.linear_schema.columns),
            "tree_columns": list(self.tree_columns),
        }

    def _compute_fingerprint(self) -> str:
        payload = json.dumps(self.to_dict(), sort_keys=True).encode("utf-8")
        return hashlib.sha256(payload).hexdigest()[:16]

    def save(self, path: str | Path) -> Path:
        """
        Write the store as JSON.

        Args:
            path: Target file, or a directory to write ARTIFACT_NAME into.

        Returns:
            Path of the written file.
        """
        path = Path(path)
        if path.suffix != ".json":
            path = path / self.ARTIFACT_NAME
        path.parent.mkdir(parents=True, exist_ok=True)
        data = self.to_dict()
        data["fingerprint"] = self.fingerprint
        with open(path, "w") as f:
            json.dump(data, f, indent=2)
        return path

    @classmethod
    def load(cls, path: str | Path) -> "FeatureStore":
        """
        Read a store written by save().

        Raises:
            FileNotFoundError: If the artifact does not exist.
            ValueError: If the artifact is corrupt or its fingerprint does
                not match its content.
        """
        path = Path(path)
        if path.suffix != ".json":
            path = path / cls.ARTIFACT_NAME
        if not path.exists():
            raise FileNotFoundError(f"Feature store not found at {path}")
        try:
            with open(path, "r") as f:
                data = json.load(f)
            store = cls(
                CategoryVocabulary.from_dict(data["vocabulary"]),
                ColumnSchema(data["linear_schema"]),
                data["tree_columns"],
            )
        except (json.JSONDecodeError, KeyError, TypeError) as e:
            raise ValueError(f"Corrupt feature store at {path}: {e}") from e

        recorded = data.get("fingerprint")
        if recorded is not None and recorded != store.fingerprint:
            raise ValueError(
                f"Feature store at {path} was modified after it was written "
                f"(fingerprint {recorded} != {store.fingerprint})"
            )
        return store

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FeatureStore):
            return NotImplemented
        return self.fingerprint == other.fingerprint

    def __hash__(self) -> int:
        return hash(self.fingerprint)

    def __repr__(self) -> str:
        return (
            f"FeatureStore(fingerprint='{self.fingerprint}', "
            f"linear_columns={len(self.linear_schema)}, tree_columns={len(self.tree_columns)})"
        )
