"""
Raw Patient-Encounter Records.

Defines the input record accepted by both prediction paths and the
field groups every encoder is built from.
"""

import math
from dataclasses import asdict, dataclass, fields
from typing import Any, Mapping

import pandas as pd

from ..exceptions import InvalidRecordError

# Token marking the affirmative answer in the raw dataset ("yes"/"no" columns)
AFFIRMATIVE_TOKEN = "yes"

# Level used by the raw dataset for an absent categorical value
MISSING_LEVEL = "Missing"

# Outcome column and its levels, negative first
OUTCOME_FIELD = "readmitted"
NEGATIVE_OUTCOME = "Not_Readmitted"
POSITIVE_OUTCOME = "Readmitted"
OUTCOME_LEVELS = (NEGATIVE_OUTCOME, POSITIVE_OUTCOME)

NUMERIC_FIELDS = (
    "time_in_hospital",
    "n_lab_procedures",
    "n_procedures",
    "n_medications",
    "n_outpatient",
    "n_inpatient",
    "n_emergency",
    "n_diagnoses",
)

CATEGORICAL_FIELDS = (
    "age",
    "medical_specialty",
    "diag_1",
    "change",
    "diabetes_med",
    "glucose_test",
    "A1Ctest",
)

# Yes/no fields collapsed to a single 0/1 column in the linear encoding
BINARY_FIELDS = ("change", "diabetes_med")

# Fields expanded one indicator per level in the linear encoding
ONE_HOT_PREFIXES = {
    "age": "age",
    "medical_specialty": "medspec",
    "diag_1": "diag1",
    "glucose_test": "glucose",
    "A1Ctest": "a1c",
}


@dataclass(frozen=True)
class RawInput:
    """One patient encounter as a form or a dataset row supplies it."""

    time_in_hospital: float
    n_lab_procedures: float
    n_procedures: float
    n_medications: float
    n_outpatient: float
    n_inpatient: float
    n_emergency: float
    n_diagnoses: float
    age: str
    medical_specialty: str
    diag_1: str
    change: str
    diabetes_med: str
    glucose_test: str
    A1Ctest: str

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | pd.Series) -> "RawInput":
        """
        Build a record from a dict or a DataFrame row.

        Extra keys (for example the outcome column) are ignored.

        Raises:
            InvalidRecordError: If a field is absent or a count is not numeric.
        """
        values: dict[str, Any] = {}
        for name in NUMERIC_FIELDS:
            if name not in data:
                raise InvalidRecordError(f"Missing numeric field '{name}'")
            values[name] = _as_number(name, data[name])
        for name in CATEGORICAL_FIELDS:
            if name not in data:
                raise InvalidRecordError(f"Missing categorical field '{name}'")
            value = data[name]
            values[name] = None if _is_blank(value) else str(value)
        return cls(**values)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a plain dictionary."""
        return asdict(self)

    @classmethod
    def field_names(cls) -> tuple[str, ...]:
        return tuple(f.name for f in fields(cls))


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return isinstance(value, str) and not value.strip()


def _as_number(name: str, value: Any) -> float:
    if isinstance(value, bool) or _is_blank(value):
        raise InvalidRecordError(f"Field '{name}' must be a number, got {value!r}")
    try:
        number = float(value)
    except (TypeError, ValueError) as e:
        raise InvalidRecordError(f"Field '{name}' must be a number, got {value!r}") from e
    if not math.isfinite(number):
        raise InvalidRecordError(f"Field '{name}' must be finite, got {value!r}")
    return number
