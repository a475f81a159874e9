"""Pytest configuration and fixtures for readmission pipeline tests."""

import pandas as pd
import pytest

from readmission.config import CARTConfig, ForestConfig, TrainingConfig
from readmission.data.cleaning import clean_dataset, split_dataset
from readmission.data.generator import ReadmissionDataGenerator
from readmission.features.records import RawInput
from readmission.features.store import FeatureStore
from readmission.models import ModelRegistry
from readmission.train import fit_models


@pytest.fixture(scope="session")
def raw_corpus() -> pd.DataFrame:
    """Synthetic raw encounters in the hospital_readmissions layout."""
    return ReadmissionDataGenerator(seed=7).generate_dataframe(600)


@pytest.fixture(scope="session")
def clean_corpus(raw_corpus) -> pd.DataFrame:
    return clean_dataset(raw_corpus)


@pytest.fixture(scope="session")
def feature_store(clean_corpus) -> FeatureStore:
    return FeatureStore.from_corpus(clean_corpus)


@pytest.fixture(scope="session")
def train_test(clean_corpus) -> tuple[pd.DataFrame, pd.DataFrame]:
    return split_dataset(clean_corpus, test_size=0.3, random_state=123)


@pytest.fixture(scope="session")
def small_training_config() -> TrainingConfig:
    """Hyperparameters small enough for a fast test run."""
    return TrainingConfig(
        cart=CARTConfig(cv_folds=3, max_alphas=8),
        forest=ForestConfig(n_estimators=25, n_jobs=1),
    )


@pytest.fixture(scope="session")
def fitted_models(train_test, feature_store, small_training_config) -> dict:
    """The three classifiers fitted on the training split."""
    train_df, _ = train_test
    return fit_models(train_df, feature_store, small_training_config)


@pytest.fixture(scope="session")
def registry(feature_store, fitted_models) -> ModelRegistry:
    """Registry holding all three fitted classifiers."""
    registry = ModelRegistry(feature_store)
    for model_id, model in fitted_models.items():
        registry.register(model_id, model)
    return registry


@pytest.fixture
def default_form(feature_store) -> dict:
    """Form values of the reference encounter.

    Returns:
        Dict with the dashboard defaults; diag_1 is the first
        vocabulary level.
    """
    return {
        "time_in_hospital": 3,
        "n_lab_procedures": 43,
        "n_procedures": 0,
        "n_medications": 16,
        "n_outpatient": 0,
        "n_inpatient": 0,
        "n_emergency": 0,
        "n_diagnoses": 3,
        "age": "[70-80)",
        "medical_specialty": "Missing",
        "diag_1": feature_store.vocabulary.levels("diag_1")[0],
        "change": "no",
        "diabetes_med": "no",
        "glucose_test": "no",
        "A1Ctest": "no",
    }


@pytest.fixture
def default_raw(default_form) -> RawInput:
    return RawInput.from_mapping(default_form)
