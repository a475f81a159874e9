"""Engineered numeric features computed from a raw encounter."""

from dataclasses import dataclass

import pandas as pd

from .records import RawInput

DERIVED_FIELDS = ("medications_per_day", "total_previous_visits")


@dataclass(frozen=True)
class DerivedFeatures:
    """Features derived deterministically from a RawInput."""

    medications_per_day: float
    total_previous_visits: float

    def to_dict(self) -> dict[str, float]:
        return {
            "medications_per_day": self.medications_per_day,
            "total_previous_visits": self.total_previous_visits,
        }


def medications_per_day(n_medications: float, time_in_hospital: float) -> float:
    """Medication count per day of stay; a zero-day stay keeps the raw count."""
    if time_in_hospital > 0:
        return n_medications / time_in_hospital
    return n_medications


def compute(raw: RawInput) -> DerivedFeatures:
    """
    Compute the engineered features for one encounter.

    Args:
        raw: The encounter record.

    Returns:
        DerivedFeatures with medication intensity and total prior visits.
    """
    return DerivedFeatures(
        medications_per_day=medications_per_day(raw.n_medications, raw.time_in_hospital),
        total_previous_visits=raw.n_outpatient + raw.n_inpatient + raw.n_emergency,
    )


def add_derived_columns(df: pd.DataFrame) -> pd.DataFrame:
    """
    Add the derived feature columns to a dataset.

    Applies the same formulas as compute() row by row so dataset-level
    and record-level values cannot diverge.
    """
    out = df.copy()
    out["medications_per_day"] = [
        medications_per_day(meds, days)
        for meds, days in zip(out["n_medications"], out["time_in_hospital"])
    ]
    out["total_previous_visits"] = out["n_outpatient"] + out["n_inpatient"] + out["n_emergency"]
    return out
