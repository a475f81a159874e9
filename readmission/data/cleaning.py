"""Dataset Loading and Cleaning.

Reads the hospital encounter CSV, applies the cleaning rules the models
are trained under, and splits the result into train and test sets.
"""

from pathlib import Path
from typing import Any, Optional

import pandas as pd
from sklearn.model_selection import train_test_split

from ..features.derived import add_derived_columns
from ..features.records import AFFIRMATIVE_TOKEN, MISSING_LEVEL, OUTCOME_FIELD

# Columns of the raw encounter dataset, in file order
RAW_COLUMNS = (
    "age",
    "time_in_hospital",
    "n_lab_procedures",
    "n_procedures",
    "n_medications",
    "n_outpatient",
    "n_inpatient",
    "n_emergency",
    "medical_specialty",
    "diag_1",
    "diag_2",
    "diag_3",
    "glucose_test",
    "A1Ctest",
    "change",
    "diabetes_med",
    OUTCOME_FIELD,
)

DIAGNOSIS_COLUMNS = ("diag_1", "diag_2", "diag_3")

# Fields where "Missing" is a level of its own rather than a dropped row
MISSING_AS_LEVEL = ("medical_specialty", "diag_2", "diag_3")

LABEL_COLUMN = "readmitted_binary"


def load_dataset(path: str | Path) -> pd.DataFrame:
    """
    Load the raw encounter dataset.

    Args:
        path: CSV file in the hospital_readmissions layout.

    Returns:
        DataFrame with every raw column.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If required columns are absent.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Dataset not found at {path}")

    # "Missing" is a real level in this dataset, not a null marker
    df = pd.read_csv(path, keep_default_na=False, na_values=[""])

    missing = [column for column in RAW_COLUMNS if column not in df.columns]
    if missing:
        raise ValueError(f"Dataset is missing required columns: {missing}")
    return df


def clean_dataset(df: pd.DataFrame) -> pd.DataFrame:
    """
    Apply the training-time cleaning rules.

    - readmitted_binary = 1 where readmitted is "yes"
    - rows without a primary diagnosis (diag_1 == "Missing") are dropped
    - blank medical_specialty/diag_2/diag_3 become "Missing"
    - n_diagnoses = 3 minus the number of "Missing" diagnoses
    - medications_per_day and total_previous_visits are added

    Args:
        df: Raw dataset.

    Returns:
        Cleaned copy with a fresh index.
    """
    out = df.copy()
    out[LABEL_COLUMN] = (out[OUTCOME_FIELD] == AFFIRMATIVE_TOKEN).astype(int)

    for column in MISSING_AS_LEVEL:
        out[column] = out[column].fillna(MISSING_LEVEL)

    out = out[out["diag_1"].fillna(MISSING_LEVEL) != MISSING_LEVEL].reset_index(drop=True)

    missing_diagnoses = sum((out[column] == MISSING_LEVEL).astype(int) for column in DIAGNOSIS_COLUMNS)
    out["n_diagnoses"] = 3 - missing_diagnoses

    return add_derived_columns(out)


def quality_summary(raw: pd.DataFrame, clean: pd.DataFrame) -> dict[str, Any]:
    """
    Summarize what cleaning changed.

    Returns:
        Dict with row counts before/after, rows dropped, readmission rate
        before/after, exact duplicate rows (reported, not removed) and
        "Missing" counts per column after cleaning.
    """
    rate_before = float((raw[OUTCOME_FIELD] == AFFIRMATIVE_TOKEN).mean()) if len(raw) else float("nan")
    rate_after = float(clean[LABEL_COLUMN].mean()) if len(clean) else float("nan")

    missing_levels = {
        column: int((clean[column] == MISSING_LEVEL).sum())
        for column in clean.columns
        if not pd.api.types.is_numeric_dtype(clean[column])
        and (clean[column] == MISSING_LEVEL).any()
    }

    return {
        "rows_before": int(len(raw)),
        "rows_after": int(len(clean)),
        "rows_dropped": int(len(raw) - len(clean)),
        "readmission_rate_before": rate_before,
        "readmission_rate_after": rate_after,
        "duplicate_rows": int(raw.duplicated().sum()),
        "missing_levels": missing_levels,
    }


def split_dataset(
    df: pd.DataFrame,
    test_size: float = 0.3,
    random_state: Optional[int] = 123,
    stratify: bool = True,
) -> tuple[pd.DataFrame, pd.DataFrame]:
    """
    Split a cleaned dataset into train and test sets.

    Args:
        df: Cleaned dataset carrying readmitted_binary.
        test_size: Fraction of records held out.
        random_state: Seed for the shuffle.
        stratify: Preserve the readmission rate in both parts.

    Returns:
        (train, test) DataFrames with fresh indexes.
    """
    train, test = train_test_split(
        df,
        test_size=test_size,
        random_state=random_state,
        stratify=df[LABEL_COLUMN] if stratify else None,
    )
    return train.reset_index(drop=True), test.reset_index(drop=True)
