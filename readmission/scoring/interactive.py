"""Interactive single-record readmission prediction.

Scores one encounter with every registered model, averages the
probabilities and maps the average onto a risk tier. Invalid input
yields an error state instead of a probability.

Example:
    registry = ModelRegistry.from_directory("artifacts/")
    predictor = InteractivePredictor(registry.store, registry)
    result = predictor.predict(predictor.default_record())
    if result.ok and result.risk_tier == RiskTier.HIGH:
        schedule_follow_up(result)
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Optional

from ..exceptions import InvalidRecordError, ModelNotLoadedError, UnknownCategoryError
from ..features.encoders import encode
from ..features.records import CATEGORICAL_FIELDS, MISSING_LEVEL, RawInput
from ..features.store import FeatureStore
from ..models.registry import DISPLAY_NAMES, ModelRegistry
from ..utils.logging import PipelineLogger


class RiskTier(Enum):
    """Risk tiers for an averaged readmission probability."""
    LOW = "low"              # < 0.30
    MODERATE = "moderate"    # 0.30 - 0.60
    HIGH = "high"            # >= 0.60


# Form values shown before the user changes anything
DEFAULT_NUMERIC_INPUTS = {
    "time_in_hospital": 3,
    "n_lab_procedures": 43,
    "n_procedures": 0,
    "n_medications": 16,
    "n_outpatient": 0,
    "n_inpatient": 0,
    "n_emergency": 0,
    "n_diagnoses": 3,
}

DEFAULT_CATEGORICAL_INPUTS = {
    "age": "[70-80)",
    "medical_specialty": MISSING_LEVEL,
    "change": "no",
    "diabetes_med": "no",
    "glucose_test": "no",
    "A1Ctest": "no",
}


def risk_tier(probability: float, low: float = 0.30, high: float = 0.60) -> RiskTier:
    """Map a probability onto a tier: below low, from high, or between."""
    if probability >= high:
        return RiskTier.HIGH
    if probability >= low:
        return RiskTier.MODERATE
    return RiskTier.LOW


@dataclass
class InteractivePrediction:
    """Result of scoring one encounter with all registered models."""

    probabilities: dict[str, float] = field(default_factory=dict)
    average_probability: Optional[float] = None
    risk_tier: Optional[RiskTier] = None
    error: Optional[str] = None
    error_field: Optional[str] = None
    scoring_time_ms: float = 0.0

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "ok": self.ok,
            "probabilities": dict(self.probabilities),
            "average_probability": self.average_probability,
            "risk_tier": self.risk_tier.value if self.risk_tier else None,
            "error": self.error,
            "error_field": self.error_field,
            "scoring_time_ms": self.scoring_time_ms,
        }


class InteractivePredictor:
    """
    Scores single encounters for the form-driven prediction path.

    Uses the same encoders and registry as batch evaluation. Unknown
    categories and malformed counts become an error state; a schema
    mismatch or a missing model propagates.
    """

    def __init__(
        self,
        store: FeatureStore,
        registry: ModelRegistry,
        low: float = 0.30,
        high: float = 0.60,
        logger: Optional[PipelineLogger] = None,
    ):
        """
        Initialize the predictor.

        Args:
            store: Feature store used for encoding.
            registry: Registry holding the fitted models.
            low: Average probability below which risk is low.
            high: Average probability from which risk is high.
            logger: Optional structured logger.
        """
        if not 0 <= low < high <= 1:
            raise ValueError("Tier cut points must satisfy 0 <= low < high <= 1")
        if store.fingerprint != registry.store.fingerprint:
            raise ValueError("Store and registry were built from different feature stores")
        self.store = store
        self.registry = registry
        self.low = low
        self.high = high
        self.logger = logger

    def predict(self, raw: RawInput | Mapping[str, Any]) -> InteractivePrediction:
        """
        Score one encounter with every registered model.

        Args:
            raw: RawInput or a mapping of its fields (form values).

        Returns:
            InteractivePrediction with per-model and averaged probability
            and the risk tier, or an error state.

        Raises:
            ModelNotLoadedError: If the registry holds no models.
            SchemaMismatchError: If encoded data does not fit a model.
        """
        start = time.perf_counter()
        model_ids = self.registry.loaded_ids
        if not model_ids:
            raise ModelNotLoadedError("any", "the registry holds no models")

        try:
            record = raw if isinstance(raw, RawInput) else RawInput.from_mapping(raw)
            vectors = {
                form: encode(record, self.store, form)
                for form in {self.registry.form(model_id) for model_id in model_ids}
            }
        except UnknownCategoryError as e:
            if self.logger:
                self.logger.warning("Prediction rejected", field=e.field, reason=str(e))
            return InteractivePrediction(
                error=str(e),
                error_field=e.field,
                scoring_time_ms=(time.perf_counter() - start) * 1000,
            )
        except InvalidRecordError as e:
            if self.logger:
                self.logger.warning("Prediction rejected", reason=str(e))
            return InteractivePrediction(
                error=str(e),
                scoring_time_ms=(time.perf_counter() - start) * 1000,
            )

        probabilities = {
            model_id: self.registry.score(model_id, vectors[self.registry.form(model_id)])
            for model_id in model_ids
        }
        average = sum(probabilities.values()) / len(probabilities)

        return InteractivePrediction(
            probabilities=probabilities,
            average_probability=average,
            risk_tier=risk_tier(average, self.low, self.high),
            scoring_time_ms=(time.perf_counter() - start) * 1000,
        )

    def choices(self) -> dict[str, tuple[str, ...]]:
        """Allowed dropdown values per categorical field."""
        vocab = self.store.vocabulary
        return {field_name: vocab.levels(field_name) for field_name in CATEGORICAL_FIELDS}

    def default_record(self) -> dict[str, Any]:
        """
        Form values for a fresh prediction.

        Categorical defaults fall back to the first vocabulary level
        when the preferred value is not a level.
        """
        record: dict[str, Any] = dict(DEFAULT_NUMERIC_INPUTS)
        for field_name, levels in self.choices().items():
            preferred = DEFAULT_CATEGORICAL_INPUTS.get(field_name)
            record[field_name] = preferred if preferred in levels else levels[0]
        return record

    @staticmethod
    def display_name(model_id: str) -> str:
        return DISPLAY_NAMES.get(model_id, model_id)

    def describe(self, result: InteractivePrediction) -> str:
        """Plain-text summary of a prediction."""
        if not result.ok:
            return f"Prediction unavailable: {result.error}"
        lines = [
            f"  {self.display_name(model_id):<20} {probability:.1%}"
            for model_id, probability in result.probabilities.items()
        ]
        lines.append(f"  {'Average':<20} {result.average_probability:.1%}")
        lines.append(f"  Risk tier: {result.risk_tier.value.upper()}")
        return "\n".join(lines)
