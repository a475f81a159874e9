"""Synthetic Encounter Data Generator.

Generates hospital encounter records in the hospital_readmissions.csv
layout using the Faker library, so the pipeline can run end to end
without the real dataset. Readmission is drawn from a logistic function
of the record's fields, giving the models a real signal to learn.
"""

import math
from collections import OrderedDict
from dataclasses import asdict, dataclass
from typing import Optional

import pandas as pd
from faker import Faker

from ..features.records import AFFIRMATIVE_TOKEN, MISSING_LEVEL

AGE_LEVELS = OrderedDict([
    ("[40-50)", 0.10),
    ("[50-60)", 0.17),
    ("[60-70)", 0.22),
    ("[70-80)", 0.27),
    ("[80-90)", 0.17),
    ("[90-100)", 0.07),
])

SPECIALTY_LEVELS = OrderedDict([
    (MISSING_LEVEL, 0.45),
    ("InternalMedicine", 0.15),
    ("Other", 0.10),
    ("Emergency/Trauma", 0.08),
    ("Family/GeneralPractice", 0.08),
    ("Cardiology", 0.08),
    ("Surgery", 0.06),
])

DIAGNOSIS_LEVELS = OrderedDict([
    ("Circulatory", 0.30),
    ("Other", 0.22),
    ("Respiratory", 0.13),
    ("Digestive", 0.09),
    ("Diabetes", 0.09),
    ("Injury", 0.07),
    ("Musculoskeletal", 0.06),
    (MISSING_LEVEL, 0.04),
])

TEST_RESULT_LEVELS = OrderedDict([
    ("no", 0.80),
    ("normal", 0.10),
    ("high", 0.10),
])

YES_NO = OrderedDict([
    ("no", 0.55),
    (AFFIRMATIVE_TOKEN, 0.45),
])

# Prior visit counts are heavily zero-inflated in the real data
VISIT_COUNTS = OrderedDict([
    (0, 0.70),
    (1, 0.15),
    (2, 0.07),
    (3, 0.04),
    (4, 0.02),
    (5, 0.02),
])


@dataclass
class EncounterRecord:
    """One hospital encounter in the raw dataset layout."""

    age: str
    time_in_hospital: int
    n_lab_procedures: int
    n_procedures: int
    n_medications: int
    n_outpatient: int
    n_inpatient: int
    n_emergency: int
    medical_specialty: str
    diag_1: str
    diag_2: str
    diag_3: str
    glucose_test: str
    A1Ctest: str
    change: str
    diabetes_med: str
    readmitted: str


class ReadmissionDataGenerator:
    """
    Generates synthetic hospital encounters for pipeline testing.

    Every categorical level is drawn with a weight of at least a few
    percent so that small corpora still contain the full vocabulary.
    """

    def __init__(self, seed: Optional[int] = None, locale: str = "en_US"):
        """
        Initialize the data generator.

        Args:
            seed: Random seed for reproducibility.
            locale: Faker locale.
        """
        self.seed = seed
        self.locale = locale
        self.faker = Faker(locale)
        if seed is not None:
            self.faker.seed_instance(seed)

    def _readmission_probability(self, record: dict) -> float:
        logit = (
            -0.55
            + 0.35 * record["n_inpatient"]
            + 0.20 * record["n_emergency"]
            + 0.08 * record["n_outpatient"]
            + 0.04 * (record["time_in_hospital"] - 4)
            + 0.01 * (record["n_medications"] - 16)
            + 0.20 * (record["diabetes_med"] == AFFIRMATIVE_TOKEN)
            + 0.10 * (record["change"] == AFFIRMATIVE_TOKEN)
            + 0.25 * (record["age"] in ("[70-80)", "[80-90)", "[90-100)"))
            + 0.20 * (record["diag_1"] in ("Diabetes", "Circulatory"))
            - 0.20 * (record["diag_1"] in ("Musculoskeletal", "Injury"))
            + 0.15 * (record["A1Ctest"] == "high")
        )
        return 1.0 / (1.0 + math.exp(-logit))

    def generate_single_record(self) -> EncounterRecord:
        """
        Generate one encounter.

        Returns:
            EncounterRecord with every raw column populated.
        """
        time_in_hospital = self.faker.random_int(1, 14)
        record = {
            "age": self.faker.random_element(AGE_LEVELS),
            "time_in_hospital": time_in_hospital,
            "n_lab_procedures": self.faker.random_int(1, 113),
            "n_procedures": self.faker.random_int(0, 6),
            "n_medications": self.faker.random_int(1, 20 + 3 * time_in_hospital),
            "n_outpatient": self.faker.random_element(VISIT_COUNTS),
            "n_inpatient": self.faker.random_element(VISIT_COUNTS),
            "n_emergency": self.faker.random_element(VISIT_COUNTS),
            "medical_specialty": self.faker.random_element(SPECIALTY_LEVELS),
            "diag_1": self.faker.random_element(DIAGNOSIS_LEVELS),
            "diag_2": self.faker.random_element(DIAGNOSIS_LEVELS),
            "diag_3": self.faker.random_element(DIAGNOSIS_LEVELS),
            "glucose_test": self.faker.random_element(TEST_RESULT_LEVELS),
            "A1Ctest": self.faker.random_element(TEST_RESULT_LEVELS),
            "change": self.faker.random_element(YES_NO),
            "diabetes_med": self.faker.random_element(YES_NO),
        }
        readmitted = self.faker.random.random() < self._readmission_probability(record)
        record["readmitted"] = AFFIRMATIVE_TOKEN if readmitted else "no"
        return EncounterRecord(**record)

    def generate_records(self, count: int) -> list[EncounterRecord]:
        """Generate multiple encounters."""
        return [self.generate_single_record() for _ in range(count)]

    def to_dataframe(self, records: list[EncounterRecord]) -> pd.DataFrame:
        """
        Convert encounter records to a DataFrame in the raw dataset layout.

        Args:
            records: List of EncounterRecord objects.

        Returns:
            DataFrame with one row per encounter.
        """
        return pd.DataFrame([asdict(record) for record in records])

    def generate_dataframe(self, count: int) -> pd.DataFrame:
        return self.to_dataframe(self.generate_records(count))
