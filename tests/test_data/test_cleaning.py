"""Unit tests for dataset loading, cleaning and synthetic generation."""

import pandas as pd
import pytest

from readmission.data.cleaning import (
    LABEL_COLUMN,
    RAW_COLUMNS,
    clean_dataset,
    load_dataset,
    quality_summary,
    split_dataset,
)
from readmission.data.generator import ReadmissionDataGenerator


def make_raw(**overrides) -> dict:
    row = {
        "age": "[70-80)",
        "time_in_hospital": 4,
        "n_lab_procedures": 40,
        "n_procedures": 1,
        "n_medications": 16,
        "n_outpatient": 2,
        "n_inpatient": 1,
        "n_emergency": 3,
        "medical_specialty": "Cardiology",
        "diag_1": "Circulatory",
        "diag_2": "Respiratory",
        "diag_3": "Other",
        "glucose_test": "no",
        "A1Ctest": "no",
        "change": "no",
        "diabetes_med": "yes",
        "readmitted": "yes",
    }
    row.update(overrides)
    return row


class TestCleanDataset:
    """Tests for the training-time cleaning rules."""

    def test_binary_outcome(self):
        """Test readmitted 'yes' becomes 1 and anything else 0."""
        df = pd.DataFrame([make_raw(), make_raw(readmitted="no")])
        clean = clean_dataset(df)
        assert clean[LABEL_COLUMN].tolist() == [1, 0]

    def test_missing_primary_diagnosis_dropped(self):
        """Test rows with diag_1 == 'Missing' are removed."""
        df = pd.DataFrame([make_raw(), make_raw(diag_1="Missing"), make_raw()])
        clean = clean_dataset(df)
        assert len(clean) == 2
        assert "Missing" not in clean["diag_1"].tolist()
        assert clean.index.tolist() == [0, 1]

    def test_n_diagnoses(self):
        """Test n_diagnoses counts the non-missing diagnoses."""
        df = pd.DataFrame([
            make_raw(),
            make_raw(diag_2="Missing"),
            make_raw(diag_2="Missing", diag_3="Missing"),
        ])
        assert clean_dataset(df)["n_diagnoses"].tolist() == [3, 2, 1]

    def test_blank_specialty_becomes_missing(self):
        """Test blank medical_specialty is kept as the 'Missing' level."""
        df = pd.DataFrame([make_raw(medical_specialty=None)])
        assert clean_dataset(df)["medical_specialty"].iloc[0] == "Missing"

    def test_derived_columns(self):
        """Test derived features are added with the shared formulas."""
        df = pd.DataFrame([make_raw(), make_raw(time_in_hospital=0)])
        clean = clean_dataset(df)
        assert clean["medications_per_day"].tolist() == [4.0, 16.0]
        assert clean["total_previous_visits"].tolist() == [6, 6]

    def test_input_not_modified(self):
        """Test cleaning works on a copy."""
        df = pd.DataFrame([make_raw(diag_1="Missing")])
        clean_dataset(df)
        assert len(df) == 1
        assert LABEL_COLUMN not in df.columns


class TestQualitySummary:
    """Tests for the cleaning quality summary."""

    def test_counts(self):
        """Test row counts, rates and duplicates are reported."""
        df = pd.DataFrame([
            make_raw(),
            make_raw(),
            make_raw(diag_1="Missing", readmitted="no"),
            make_raw(readmitted="no", medical_specialty="Missing"),
        ])
        summary = quality_summary(df, clean_dataset(df))
        assert summary["rows_before"] == 4
        assert summary["rows_after"] == 3
        assert summary["rows_dropped"] == 1
        assert summary["readmission_rate_before"] == pytest.approx(0.5)
        assert summary["readmission_rate_after"] == pytest.approx(2 / 3)
        assert summary["duplicate_rows"] == 1
        assert summary["missing_levels"] == {"medical_specialty": 1}


class TestLoadDataset:
    """Tests for reading the encounter CSV."""

    def test_missing_file(self, tmp_path):
        """Test a missing file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            load_dataset(tmp_path / "absent.csv")

    def test_missing_columns(self, tmp_path):
        """Test a CSV without the required columns is rejected."""
        path = tmp_path / "bad.csv"
        pd.DataFrame({"age": ["[40-50)"]}).to_csv(path, index=False)
        with pytest.raises(ValueError):
            load_dataset(path)

    def test_missing_level_kept_as_string(self, tmp_path):
        """Test 'Missing' survives the CSV round trip as a level."""
        path = tmp_path / "encounters.csv"
        pd.DataFrame([make_raw(medical_specialty="Missing")]).to_csv(path, index=False)
        df = load_dataset(path)
        assert list(df.columns) == list(RAW_COLUMNS)
        assert df["medical_specialty"].iloc[0] == "Missing"


class TestSplitDataset:
    """Tests for the train/test split."""

    def test_split_sizes_and_stratification(self, clean_corpus):
        """Test a 70/30 split keeping the readmission rate."""
        train, test = split_dataset(clean_corpus, test_size=0.3, random_state=123)
        assert len(train) + len(test) == len(clean_corpus)
        assert len(test) == pytest.approx(0.3 * len(clean_corpus), abs=1)
        assert train[LABEL_COLUMN].mean() == pytest.approx(
            test[LABEL_COLUMN].mean(), abs=0.02
        )

    def test_split_is_seeded(self, clean_corpus):
        """Test the same seed gives the same split."""
        first, _ = split_dataset(clean_corpus, random_state=123)
        second, _ = split_dataset(clean_corpus, random_state=123)
        pd.testing.assert_frame_equal(first, second)


class TestReadmissionDataGenerator:
    """Tests for the synthetic encounter generator."""

    def test_layout(self):
        """Test generated frames carry exactly the raw columns."""
        df = ReadmissionDataGenerator(seed=1).generate_dataframe(20)
        assert list(df.columns) == list(RAW_COLUMNS)
        assert len(df) == 20

    def test_seeded_generation(self):
        """Test the same seed reproduces the same records."""
        first = ReadmissionDataGenerator(seed=3).generate_dataframe(30)
        second = ReadmissionDataGenerator(seed=3).generate_dataframe(30)
        pd.testing.assert_frame_equal(first, second)

    def test_value_ranges(self, raw_corpus):
        """Test counts stay in range and both outcomes occur."""
        assert raw_corpus["time_in_hospital"].between(1, 14).all()
        assert (raw_corpus["n_medications"] >= 1).all()
        assert set(raw_corpus["readmitted"]) == {"yes", "no"}

    def test_full_vocabulary_present(self, raw_corpus):
        """Test a few hundred records contain every age bracket."""
        assert raw_corpus["age"].nunique() == 6
        assert raw_corpus["medical_specialty"].nunique() == 7
