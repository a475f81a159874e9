"""Unit tests for the linear and tree encoders."""

import random

import pandas as pd
import pytest

from readmission.exceptions import SchemaMismatchError, UnknownCategoryError
from readmission.features.encoders import (
    LINEAR,
    TREE,
    encode,
    encode_linear,
    encode_tree,
    stack_encoded,
)
from readmission.features.records import CATEGORICAL_FIELDS, NUMERIC_FIELDS, RawInput
from readmission.features.store import TREE_COLUMNS, ColumnSchema


def random_form(vocab, rng: random.Random) -> dict:
    form = {name: rng.randint(0, 30) for name in NUMERIC_FIELDS}
    for field in CATEGORICAL_FIELDS:
        form[field] = rng.choice(vocab.levels(field))
    return form


class TestLinearEncoding:
    """Tests for the one-hot encoding used by logistic regression."""

    def test_columns_match_schema(self, feature_store):
        """Test random valid inputs always encode to the schema layout."""
        vocab = feature_store.vocabulary
        rng = random.Random(11)
        for _ in range(50):
            raw = RawInput.from_mapping(random_form(vocab, rng))
            vector = encode_linear(raw, vocab, feature_store.linear_schema)
            assert vector.columns == feature_store.linear_schema.columns
            assert len(vector.values) == len(feature_store.linear_schema)

            values = vector.as_dict()
            for field, prefix in (("age", "age_"), ("diag_1", "diag1_")):
                block = [v for c, v in values.items() if c.startswith(prefix)]
                assert sum(block) == 1.0
                assert len(block) == len(vocab.levels(field))

    def test_indicator_set_for_level(self, feature_store, default_raw):
        """Test the indicator of the chosen level is set."""
        values = encode(default_raw, feature_store, LINEAR).as_dict()
        assert values["age_[70-80)"] == 1.0
        assert values["medspec_Missing"] == 1.0
        assert values["change_binary"] == 0.0

    def test_binary_flags(self, feature_store, default_form):
        """Test only the affirmative level sets a binary flag."""
        raw = RawInput.from_mapping({**default_form, "diabetes_med": "yes", "change": "no"})
        values = encode(raw, feature_store, LINEAR).as_dict()
        assert values["diabetes_med_binary"] == 1.0
        assert values["change_binary"] == 0.0

    @pytest.mark.parametrize("form", [LINEAR, TREE])
    def test_binary_value_outside_vocabulary(self, feature_store, default_form, form):
        """Test both encoders reject a binary value that is not a vocabulary level."""
        raw = RawInput.from_mapping({**default_form, "change": "Yes"})
        with pytest.raises(UnknownCategoryError) as exc_info:
            encode(raw, feature_store, form)
        assert exc_info.value.field == "change"

    def test_numeric_passthrough(self, feature_store, default_form):
        """Test numeric fields and derived features are carried over."""
        raw = RawInput.from_mapping({**default_form, "time_in_hospital": 4, "n_medications": 16})
        values = encode(raw, feature_store, LINEAR).as_dict()
        assert values["n_medications"] == 16.0
        assert values["medications_per_day"] == pytest.approx(4.0)

    def test_unknown_category(self, feature_store, default_form):
        """Test an unknown level is rejected with the offending field."""
        raw = RawInput.from_mapping({**default_form, "medical_specialty": "Astrology"})
        with pytest.raises(UnknownCategoryError) as exc_info:
            encode(raw, feature_store, LINEAR)
        assert exc_info.value.field == "medical_specialty"

    def test_schema_missing_column(self, feature_store, default_raw):
        """Test a schema lacking a produced column is a schema mismatch."""
        columns = [c for c in feature_store.linear_schema if c != "age_[70-80)"]
        with pytest.raises(SchemaMismatchError):
            encode_linear(default_raw, feature_store.vocabulary, ColumnSchema(columns))

    def test_schema_extra_column_zero_filled(self, feature_store, default_raw):
        """Test a schema column the encoding does not produce is zero."""
        schema = ColumnSchema(list(feature_store.linear_schema) + ["diag1_Neoplasms"])
        vector = encode_linear(default_raw, feature_store.vocabulary, schema)
        assert vector.columns == schema.columns
        assert vector.as_dict()["diag1_Neoplasms"] == 0.0


class TestTreeEncoding:
    """Tests for the categorical encoding used by the tree models."""

    def test_layout(self, feature_store, default_raw):
        """Test the tree layout starts with the outcome placeholder."""
        vector = encode(default_raw, feature_store, TREE)
        assert vector.columns == TREE_COLUMNS
        assert vector.as_dict()["readmitted"] == feature_store.vocabulary.outcome_levels[0]
        assert vector.as_dict()["medical_specialty"] == "Missing"

    def test_training_outcome(self, feature_store, default_raw):
        """Test the true outcome is stored when given."""
        vector = encode_tree(default_raw, feature_store.vocabulary, outcome="Readmitted")
        assert vector.as_dict()["readmitted"] == "Readmitted"

    def test_unknown_outcome(self, feature_store, default_raw):
        """Test an outcome outside the outcome levels is rejected."""
        with pytest.raises(UnknownCategoryError):
            encode_tree(default_raw, feature_store.vocabulary, outcome="maybe")

    def test_unknown_category(self, feature_store, default_form):
        """Test an unknown level is rejected in the tree form too."""
        raw = RawInput.from_mapping({**default_form, "age": "[10-20)"})
        with pytest.raises(UnknownCategoryError) as exc_info:
            encode(raw, feature_store, TREE)
        assert exc_info.value.field == "age"

    def test_stack_categorical_dtypes(self, feature_store, default_raw):
        """Test stacked tree vectors carry the vocabulary categories."""
        frame = stack_encoded([encode(default_raw, feature_store, TREE)] * 2)
        assert len(frame) == 2
        assert isinstance(frame["age"].dtype, pd.CategoricalDtype)
        assert frame["age"].dtype.ordered
        assert list(frame["diag_1"].cat.categories) == list(
            feature_store.vocabulary.levels("diag_1")
        )


class TestEncode:
    """Tests for the form dispatcher and stacking."""

    def test_unknown_form(self, feature_store, default_raw):
        """Test an unknown form is rejected."""
        with pytest.raises(ValueError):
            encode(default_raw, feature_store, "sparse")

    def test_stack_mixed_forms(self, feature_store, default_raw):
        """Test vectors of different forms cannot be stacked."""
        vectors = [
            encode(default_raw, feature_store, LINEAR),
            encode(default_raw, feature_store, TREE),
        ]
        with pytest.raises(SchemaMismatchError):
            stack_encoded(vectors)

    def test_stack_empty(self):
        """Test stacking nothing is an error."""
        with pytest.raises(ValueError):
            stack_encoded([])

    def test_encoding_is_deterministic(self, feature_store, default_raw):
        """Test encoding the same record twice gives identical vectors."""
        assert encode(default_raw, feature_store, LINEAR) == encode(default_raw, feature_store, LINEAR)
        assert encode(default_raw, feature_store, TREE) == encode(default_raw, feature_store, TREE)
