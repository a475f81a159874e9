"""
Model Registry.

Holds the fitted classifiers by id and scores encoded vectors against
them. A registry is bound to one FeatureStore; every model it accepts
must have been trained against that store's fingerprint.
"""

from pathlib import Path
from typing import Optional, Sequence

import numpy as np

from ..exceptions import ModelNotLoadedError, SchemaMismatchError
from ..features.encoders import LINEAR, TREE, EncodedVector, stack_encoded
from ..features.store import FeatureStore
from ..utils.logging import PipelineLogger
from .base import BaseClassifier

MODEL_IDS = ("linear", "tree", "ensemble")

MODEL_FORMS = {
    "linear": LINEAR,
    "tree": TREE,
    "ensemble": TREE,
}

DISPLAY_NAMES = {
    "linear": "Logistic Regression",
    "tree": "CART",
    "ensemble": "Random Forest",
}

ARTIFACT_NAMES = {model_id: f"model_{model_id}.joblib" for model_id in MODEL_IDS}


class ModelRegistry:
    """
    Registry of fitted readmission classifiers.

    Loading is idempotent: loading the same artifact path twice is a
    no-op. Scoring never mutates a registered model.
    """

    def __init__(self, store: FeatureStore, logger: Optional[PipelineLogger] = None):
        """
        Initialize an empty registry.

        Args:
            store: Feature store the registered models must match.
            logger: Optional structured logger.
        """
        self.store = store
        self.logger = logger
        self._models: dict[str, BaseClassifier] = {}
        self._sources: dict[str, Path] = {}

    def register(self, model_id: str, model: BaseClassifier) -> None:
        """
        Add an in-memory fitted model under an id.

        Raises:
            ValueError: If the id is unknown or already holds another model.
            SchemaMismatchError: If the model was fit against a different
                feature store or consumes the wrong encoding form.
        """
        if model_id not in MODEL_IDS:
            raise ValueError(f"Unknown model id '{model_id}'. Choose from {MODEL_IDS}")
        if not model.is_fitted:
            raise ValueError(f"Model for '{model_id}' is not fitted")

        current = self._models.get(model_id)
        if current is model:
            return
        if current is not None:
            raise ValueError(f"Model id '{model_id}' is already registered")

        if model.form != MODEL_FORMS[model_id]:
            raise SchemaMismatchError(
                f"'{model_id}' expects {MODEL_FORMS[model_id]}-form models, "
                f"got {model.__class__.__name__} ({model.form})"
            )
        if model.store_fingerprint != self.store.fingerprint:
            raise SchemaMismatchError(
                f"Model '{model_id}' was trained with feature store "
                f"{model.store_fingerprint}, registry uses {self.store.fingerprint}"
            )

        self._models[model_id] = model
        if self.logger:
            self.logger.info("Model registered", model_id=model_id, model=model.name)

    def load(self, model_id: str, path: str | Path) -> BaseClassifier:
        """
        Load a model artifact into the registry.

        Args:
            model_id: One of MODEL_IDS.
            path: Artifact file written by BaseClassifier.save().

        Returns:
            The registered model.

        Raises:
            ModelNotLoadedError: If the artifact file does not exist.
            SchemaMismatchError: If the artifact was trained with a different
                feature store.
        """
        path = Path(path).resolve()
        if self._sources.get(model_id) == path:
            return self._models[model_id]

        try:
            model = BaseClassifier.load(path)
        except FileNotFoundError as e:
            raise ModelNotLoadedError(model_id, str(e)) from e

        self.register(model_id, model)
        self._sources[model_id] = path
        return model

    @classmethod
    def from_directory(
        cls,
        directory: str | Path,
        model_ids: Sequence[str] = MODEL_IDS,
        logger: Optional[PipelineLogger] = None,
    ) -> "ModelRegistry":
        """
        Build a registry from an artifacts directory.

        Reads the feature store first, then each requested model artifact.
        Any missing or corrupt artifact is fatal.
        """
        directory = Path(directory)
        store = FeatureStore.load(directory)
        registry = cls(store, logger=logger)
        for model_id in model_ids:
            registry.load(model_id, directory / ARTIFACT_NAMES[model_id])
        if logger:
            logger.info(
                "Registry ready",
                directory=str(directory),
                models=",".join(registry.loaded_ids),
                fingerprint=store.fingerprint,
            )
        return registry

    def get(self, model_id: str) -> BaseClassifier:
        """Return the model registered under an id."""
        try:
            return self._models[model_id]
        except KeyError:
            raise ModelNotLoadedError(model_id) from None

    def form(self, model_id: str) -> str:
        """Encoding form the model registered under an id consumes."""
        return self.get(model_id).form

    def score(self, model_id: str, encoded: EncodedVector) -> float:
        """
        Probability of readmission for one encoded record.

        Raises:
            ModelNotLoadedError: If the id was never loaded.
            SchemaMismatchError: If the vector's form or layout does not
                match the model.
        """
        return float(self.score_batch(model_id, [encoded])[0])

    def score_batch(self, model_id: str, vectors: Sequence[EncodedVector]) -> np.ndarray:
        """
        Probabilities for many encoded records in one model call.

        Results equal scoring each vector on its own.
        """
        model = self.get(model_id)
        if not vectors:
            return np.empty(0, dtype=float)
        for vector in vectors:
            if vector.form != model.form:
                raise SchemaMismatchError(
                    f"Model '{model_id}' consumes {model.form}-form vectors, got {vector.form}"
                )
        return model.predict_proba(stack_encoded(vectors))

    @property
    def loaded_ids(self) -> tuple[str, ...]:
        """Registered ids in canonical order."""
        return tuple(model_id for model_id in MODEL_IDS if model_id in self._models)

    def __contains__(self, model_id: object) -> bool:
        return model_id in self._models

    def __len__(self) -> int:
        return len(self._models)

    def __repr__(self) -> str:
        return f"ModelRegistry(models={list(self.loaded_ids)}, fingerprint='{self.store.fingerprint}')"
