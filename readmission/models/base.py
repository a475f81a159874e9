"""
Base Classifier Interface Module.

Defines the abstract base class all readmission classifiers implement,
plus the shared input handling of the tree-form models. A fitted
classifier is read-only: scoring never changes its state.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Sequence

import joblib
import numpy as np
import pandas as pd

from ..exceptions import SchemaMismatchError, UnknownCategoryError
from ..features.encoders import LINEAR, TREE
from ..features.records import OUTCOME_FIELD


class BaseClassifier(ABC):
    """
    Abstract base class for the readmission classifiers.

    Each classifier:
    1. Learns from an encoded training frame (fit)
    2. Returns the probability of readmission per row (predict_proba)
    3. Applies its decision threshold (predict)
    4. Reports what drives it (importance)
    """

    # Encoding form this classifier consumes
    form: str = LINEAR

    def __init__(self, name: str = "BaseClassifier"):
        """
        Initialize the classifier.

        Args:
            name: Human-readable name for the classifier.
        """
        self.name = name
        self._is_fitted = False
        self._threshold = 0.5
        self._fit_columns: tuple[str, ...] = ()
        self._store_fingerprint: Optional[str] = None

    @abstractmethod
    def fit(
        self,
        X: pd.DataFrame,
        y: Sequence[int],
        store_fingerprint: Optional[str] = None,
    ) -> "BaseClassifier":
        """
        Fit the classifier on an encoded training frame.

        Args:
            X: Encoded frame in this classifier's form.
            y: Binary labels, 1 = readmitted.
            store_fingerprint: Fingerprint of the FeatureStore X was
                encoded with.

        Returns:
            self: The fitted classifier.
        """

    @abstractmethod
    def _positive_proba(self, X: pd.DataFrame) -> np.ndarray:
        """Probability of the positive class for a validated frame."""

    @abstractmethod
    def importance(self) -> pd.DataFrame:
        """Table describing the fitted model's drivers."""

    def predict_proba(self, X: pd.DataFrame) -> np.ndarray:
        """
        Probability of readmission for each row.

        Args:
            X: Encoded frame in this classifier's form.

        Returns:
            Array of probabilities in [0, 1].
        """
        if not self._is_fitted:
            raise RuntimeError(f"{self.name} must be fitted before prediction")
        self._check_columns(X)
        return np.clip(self._positive_proba(X), 0.0, 1.0)

    def predict(self, X: pd.DataFrame) -> pd.DataFrame:
        """
        Predict readmission for each row.

        Returns:
            DataFrame with 'probability' and 'readmitted' columns.
        """
        probabilities = self.predict_proba(X)
        return pd.DataFrame({
            "probability": probabilities,
            "readmitted": probabilities > self._threshold,
        }, index=X.index)

    def _check_columns(self, X: pd.DataFrame) -> None:
        columns = tuple(X.columns)
        if columns != self._fit_columns:
            missing = [c for c in self._fit_columns if c not in columns]
            extra = [c for c in columns if c not in self._fit_columns]
            raise SchemaMismatchError(
                f"{self.name} was fit on a different column layout "
                f"(missing={missing}, extra={extra}, same_order={not missing and not extra})"
            )

    def _record_fit(self, X: pd.DataFrame, store_fingerprint: Optional[str]) -> None:
        self._fit_columns = tuple(X.columns)
        self._store_fingerprint = store_fingerprint
        self._is_fitted = True

    def set_threshold(self, threshold: float) -> None:
        """
        Set the decision threshold for predict().

        Args:
            threshold: Probability above which a record is predicted readmitted.
        """
        if not 0 <= threshold <= 1:
            raise ValueError("Threshold must be between 0 and 1")
        self._threshold = threshold

    def get_threshold(self) -> float:
        """Get the current decision threshold."""
        return self._threshold

    @property
    def is_fitted(self) -> bool:
        """Check if the classifier has been fitted."""
        return self._is_fitted

    @property
    def fit_columns(self) -> tuple[str, ...]:
        return self._fit_columns

    @property
    def store_fingerprint(self) -> Optional[str]:
        """Fingerprint of the FeatureStore the classifier was trained with."""
        return self._store_fingerprint

    def save(self, path: str | Path) -> Path:
        """Persist the fitted classifier with joblib."""
        if not self._is_fitted:
            raise RuntimeError(f"Cannot save unfitted {self.name}")
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        joblib.dump(self, path)
        return path

    @staticmethod
    def load(path: str | Path) -> "BaseClassifier":
        """
        Load a classifier written by save().

        Raises:
            FileNotFoundError: If the artifact does not exist.
            ValueError: If the file does not hold a fitted classifier.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Model artifact not found at {path}")
        model = joblib.load(path)
        if not isinstance(model, BaseClassifier) or not model.is_fitted:
            raise ValueError(f"{path} does not contain a fitted readmission classifier")
        return model

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name='{self.name}', fitted={self._is_fitted})"


class TreeFormClassifier(BaseClassifier):
    """
    Base for classifiers consuming the tree encoding.

    The tree frame carries the outcome column as a structural placeholder;
    it is checked as part of the layout and then dropped, so its value
    never reaches the estimator. Categorical columns become their level
    codes in vocabulary order.
    """

    form = TREE

    def __init__(self, name: str = "TreeFormClassifier"):
        super().__init__(name=name)
        self._categories: dict[str, tuple[str, ...]] = {}
        self._feature_names: list[str] = []

    def _to_matrix(self, X: pd.DataFrame, fitting: bool = False) -> np.ndarray:
        if OUTCOME_FIELD not in X.columns:
            raise SchemaMismatchError(
                f"Tree-form input must carry the '{OUTCOME_FIELD}' placeholder column"
            )
        features = X.drop(columns=[OUTCOME_FIELD])

        if fitting:
            self._feature_names = list(features.columns)
            self._categories = {
                column: tuple(str(c) for c in features[column].cat.categories)
                for column in features.columns
                if isinstance(features[column].dtype, pd.CategoricalDtype)
            }

        matrix = pd.DataFrame(index=features.index)
        for column in features.columns:
            if column in self._categories:
                matrix[column] = self._category_codes(features[column], column)
            else:
                matrix[column] = features[column].astype(float)
        return matrix.to_numpy(dtype=float)

    def _category_codes(self, series: pd.Series, column: str) -> pd.Series:
        levels = self._categories[column]
        original = series
        if isinstance(series.dtype, pd.CategoricalDtype):
            if tuple(str(c) for c in series.cat.categories) != levels:
                raise SchemaMismatchError(
                    f"Levels of '{column}' differ from those {self.name} was fit on"
                )
        else:
            series = series.astype(pd.CategoricalDtype(categories=list(levels)))
        codes = series.cat.codes
        unknown = codes < 0
        if unknown.any():
            raise UnknownCategoryError(column, original[unknown].iloc[0], levels)
        return codes.astype(float)

    @property
    def feature_names(self) -> list[str]:
        """Columns the estimator sees (placeholder excluded)."""
        return list(self._feature_names)
