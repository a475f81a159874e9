"""Batch evaluation of the registered models.

Encodes each (record, label) pair through the shared encoders, scores
every record that encodes cleanly in one model call, and computes the
classification metrics. Records with an unknown category or a malformed
count are skipped and counted; a schema mismatch stops the batch.

Example:
    registry = ModelRegistry.from_directory("artifacts/")
    service = EvaluationService(registry.store, registry)
    results = service.evaluate_frame("linear", test_df)
    print(results)
"""

import numbers
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional, Sequence

import numpy as np
import pandas as pd
from joblib import Parallel, delayed

from ..evaluation.metrics import (
    ClassificationMetrics,
    EvaluationResults,
    SkippedRecord,
    comparison_table,
)
from ..exceptions import InvalidRecordError, UnknownCategoryError
from ..features.encoders import EncodedVector, encode
from ..features.records import (
    AFFIRMATIVE_TOKEN,
    NEGATIVE_OUTCOME,
    OUTCOME_FIELD,
    POSITIVE_OUTCOME,
    RawInput,
)
from ..features.store import FeatureStore
from ..models.registry import DISPLAY_NAMES, ModelRegistry
from ..utils.logging import PipelineLogger

POSITIVE_LABELS = {POSITIVE_OUTCOME, AFFIRMATIVE_TOKEN, "1", "true"}
NEGATIVE_LABELS = {NEGATIVE_OUTCOME, "no", "0", "false"}


def is_positive_label(label: Any) -> bool:
    """
    Interpret a true outcome label.

    Accepts 1/0, booleans, "yes"/"no" and "Readmitted"/"Not_Readmitted".

    Raises:
        InvalidRecordError: If the label is none of those.
    """
    if isinstance(label, (bool, np.bool_)):
        return bool(label)
    if isinstance(label, numbers.Real) and label in (0, 1):
        return label == 1
    if isinstance(label, str):
        token = label.strip()
        if token in POSITIVE_LABELS or token.lower() in POSITIVE_LABELS:
            return True
        if token in NEGATIVE_LABELS or token.lower() in NEGATIVE_LABELS:
            return False
    raise InvalidRecordError(f"Unrecognized outcome label {label!r}")


@dataclass
class _EncodedRecord:
    index: int
    vector: Optional[EncodedVector] = None
    label: int = 0
    skipped: Optional[SkippedRecord] = None


class EvaluationService:
    """
    Scores labelled records with a registered model and computes metrics.

    The store and registry are injected; the service holds no state of
    its own between calls.
    """

    def __init__(
        self,
        store: FeatureStore,
        registry: ModelRegistry,
        threshold: float = 0.5,
        n_jobs: int = 1,
        logger: Optional[PipelineLogger] = None,
    ):
        """
        Initialize the service.

        Args:
            store: Feature store used for encoding.
            registry: Registry holding the fitted models.
            threshold: Probability above which a record is predicted positive.
            n_jobs: Threads used to encode records; 1 encodes inline.
            logger: Optional structured logger.
        """
        if store.fingerprint != registry.store.fingerprint:
            raise ValueError("Store and registry were built from different feature stores")
        self.store = store
        self.registry = registry
        self.metrics = ClassificationMetrics(threshold=threshold)
        self.n_jobs = n_jobs
        self.logger = logger

    @property
    def threshold(self) -> float:
        return self.metrics.threshold

    def _encode_one(self, index: int, raw: Any, label: Any, form: str) -> _EncodedRecord:
        try:
            record = raw if isinstance(raw, RawInput) else RawInput.from_mapping(raw)
            positive = is_positive_label(label)
            vector = encode(record, self.store, form)
        except (UnknownCategoryError, InvalidRecordError) as e:
            return _EncodedRecord(
                index=index,
                skipped=SkippedRecord(index=index, error_type=type(e).__name__, message=str(e)),
            )
        return _EncodedRecord(index=index, vector=vector, label=int(positive))

    def encode_records(
        self,
        records: Sequence[tuple[Any, Any]],
        form: str,
    ) -> list[_EncodedRecord]:
        """Encode (record, label) pairs in input order."""
        if self.n_jobs == 1:
            return [self._encode_one(i, raw, label, form) for i, (raw, label) in enumerate(records)]
        return Parallel(n_jobs=self.n_jobs, prefer="threads")(
            delayed(self._encode_one)(i, raw, label, form) for i, (raw, label) in enumerate(records)
        )

    def evaluate(self, model_id: str, records: Iterable[tuple[Any, Any]]) -> EvaluationResults:
        """
        Evaluate one model on labelled records.

        Args:
            model_id: Registered model id.
            records: (record, true_label) pairs; a record is a RawInput or
                any mapping of its fields.

        Returns:
            EvaluationResults over the records that encoded cleanly, with
            the skipped ones listed.

        Raises:
            ModelNotLoadedError: If model_id was never loaded.
            SchemaMismatchError: If encoded data does not fit the model.
        """
        form = self.registry.form(model_id)
        records = list(records)

        encoded = self.encode_records(records, form)
        scored = [r for r in encoded if r.vector is not None]
        skipped = [r.skipped for r in encoded if r.skipped is not None]

        if self.logger:
            for entry in skipped:
                self.logger.log_skipped_record(entry.index, f"{entry.error_type}: {entry.message}")

        probabilities = self.registry.score_batch(model_id, [r.vector for r in scored])
        results = self.metrics.evaluate(
            [r.label for r in scored],
            probabilities,
            model_id=model_id,
            skipped=skipped,
        )

        if self.logger:
            self.logger.log_evaluation_result(
                model_id=model_id,
                n_records=results.n_records,
                skipped=results.n_skipped,
                accuracy=results.accuracy,
                auc=results.auc,
            )
        return results

    def evaluate_frame(
        self,
        model_id: str,
        df: pd.DataFrame,
        label_col: str = OUTCOME_FIELD,
    ) -> EvaluationResults:
        """Evaluate one model on a DataFrame holding the label in label_col."""
        return self.evaluate(model_id, frame_records(df, label_col))

    def evaluate_all(
        self,
        records: Iterable[tuple[Any, Any]],
        model_ids: Optional[Sequence[str]] = None,
    ) -> dict[str, EvaluationResults]:
        """Evaluate several models on the same records, keyed by model id."""
        records = list(records)
        model_ids = model_ids or self.registry.loaded_ids
        return {model_id: self.evaluate(model_id, records) for model_id in model_ids}

    def compare(
        self,
        model_ids: Sequence[str],
        records: Iterable[tuple[Any, Any]],
    ) -> pd.DataFrame:
        """
        Side-by-side metrics of several models on the same records.

        Returns:
            DataFrame with one row per metric, one column per model (by
            display name) and the best model per metric.
        """
        results = self.evaluate_all(records, model_ids)
        return comparison_table(list(results.values()), names=DISPLAY_NAMES)


def frame_records(df: pd.DataFrame, label_col: str = OUTCOME_FIELD) -> list[tuple[Mapping[str, Any], Any]]:
    """Split a labelled DataFrame into (record, label) pairs."""
    if label_col not in df.columns:
        raise ValueError(f"Label column '{label_col}' not found")
    rows = df.drop(columns=[label_col]).to_dict(orient="records")
    return list(zip(rows, df[label_col].tolist()))
