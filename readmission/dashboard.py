"""
Readmission risk dashboard.

Form front end for the interactive predictor. Dropdowns are filled from
the feature store vocabulary, so only valid levels can be chosen.

Run with:
    streamlit run readmission/dashboard.py
"""

import streamlit as st

from readmission.config import load_config
from readmission.features.records import CATEGORICAL_FIELDS
from readmission.models import ModelRegistry
from readmission.scoring.interactive import InteractivePredictor, RiskTier

FIELD_LABELS = {
    "time_in_hospital": "Time in Hospital (days)",
    "n_lab_procedures": "Number of Lab Procedures",
    "n_procedures": "Number of Procedures",
    "n_medications": "Number of Medications",
    "n_outpatient": "Previous Outpatient Visits",
    "n_inpatient": "Previous Inpatient Visits",
    "n_emergency": "Previous Emergency Visits",
    "n_diagnoses": "Number of Diagnoses",
    "age": "Age Group",
    "medical_specialty": "Medical Specialty",
    "diag_1": "Primary Diagnosis",
    "change": "Change in Medication",
    "diabetes_med": "Diabetes Medication",
    "glucose_test": "Glucose Test",
    "A1Ctest": "A1C Test",
}

NUMERIC_LIMITS = {
    "time_in_hospital": (1, 14),
    "n_lab_procedures": (0, 132),
    "n_procedures": (0, 6),
    "n_medications": (1, 81),
    "n_outpatient": (0, 42),
    "n_inpatient": (0, 21),
    "n_emergency": (0, 76),
    "n_diagnoses": (1, 16),
}


@st.cache_resource
def load_predictor() -> InteractivePredictor:
    config = load_config()
    registry = ModelRegistry.from_directory(config.paths.artifacts_dir)
    return InteractivePredictor(
        registry.store,
        registry,
        low=config.scoring.low_risk_below,
        high=config.scoring.high_risk_from,
    )


def main() -> None:
    st.set_page_config(page_title="30-Day Readmission Risk", layout="wide")
    st.title("30-Day Readmission Risk")

    try:
        predictor = load_predictor()
    except (FileNotFoundError, RuntimeError, ValueError) as e:
        st.error(f"Could not load models: {e}. Run `python -m readmission.train` first.")
        return

    defaults = predictor.default_record()
    choices = predictor.choices()
    record = {}

    with st.sidebar:
        st.header("Patient Information")
        for name, (low, high) in NUMERIC_LIMITS.items():
            record[name] = st.number_input(
                FIELD_LABELS[name],
                min_value=low,
                max_value=high,
                value=int(defaults[name]),
                step=1,
            )
        for name in CATEGORICAL_FIELDS:
            options = list(choices[name])
            record[name] = st.selectbox(
                FIELD_LABELS[name],
                options,
                index=options.index(defaults[name]),
            )

    result = predictor.predict(record)
    if not result.ok:
        st.error(result.error)
        return

    columns = st.columns(len(result.probabilities) + 1)
    for column, (model_id, probability) in zip(columns, result.probabilities.items()):
        column.metric(predictor.display_name(model_id), f"{probability:.1%}")
    columns[-1].metric("Average", f"{result.average_probability:.1%}")

    message = f"Risk tier: {result.risk_tier.value.upper()}"
    if result.risk_tier == RiskTier.HIGH:
        st.error(message)
    elif result.risk_tier == RiskTier.MODERATE:
        st.warning(message)
    else:
        st.success(message)


main()
