"""Random forest classifier on the tree encoding."""

from typing import Optional, Sequence

import numpy as np
import pandas as pd
from sklearn.ensemble import RandomForestClassifier

from .base import TreeFormClassifier


class RandomForestModel(TreeFormClassifier):
    """
    Readmission classifier using bootstrap-aggregated trees.

    Each split considers sqrt(n_features) candidate columns.
    """

    def __init__(
        self,
        n_estimators: int = 500,
        max_features: str | int | float = "sqrt",
        min_samples_leaf: int = 1,
        random_state: Optional[int] = None,
        n_jobs: Optional[int] = None,
        name: str = "Random Forest",
    ):
        """
        Initialize the random forest classifier.

        Args:
            n_estimators: Number of trees in the forest.
            max_features: Features considered per split.
            min_samples_leaf: Minimum samples in any leaf.
            random_state: Random seed for reproducibility.
            n_jobs: Parallel jobs for fitting and scoring.
            name: Human-readable name.
        """
        super().__init__(name=name)
        self.n_estimators = n_estimators
        self.max_features = max_features
        self.min_samples_leaf = min_samples_leaf
        self.random_state = random_state
        self.n_jobs = n_jobs

        self._model: Optional[RandomForestClassifier] = None
        self._positive_index = 1

    def fit(
        self,
        X: pd.DataFrame,
        y: Sequence[int],
        store_fingerprint: Optional[str] = None,
    ) -> "RandomForestModel":
        y = np.asarray(y, dtype=int)
        if len(np.unique(y)) < 2:
            raise ValueError("Training labels must contain both classes")

        X_mat = self._to_matrix(X, fitting=True)
        self._model = RandomForestClassifier(
            n_estimators=self.n_estimators,
            max_features=self.max_features,
            min_samples_leaf=self.min_samples_leaf,
            oob_score=True,
            random_state=self.random_state,
            n_jobs=self.n_jobs,
        )
        self._model.fit(X_mat, y)
        self._positive_index = list(self._model.classes_).index(1)

        self._record_fit(X, store_fingerprint)
        return self

    def _positive_proba(self, X: pd.DataFrame) -> np.ndarray:
        return self._model.predict_proba(self._to_matrix(X))[:, self._positive_index]

    def importance(self) -> pd.DataFrame:
        """
        Mean impurity decrease per variable.

        Returns:
            DataFrame with Variable, Importance and Importance_Percent columns,
            most important first.
        """
        if not self._is_fitted:
            raise RuntimeError(f"{self.name} must be fitted first")
        importances = self._model.feature_importances_
        table = pd.DataFrame({
            "Variable": self._feature_names,
            "Importance": importances,
            "Importance_Percent": importances / importances.sum() * 100,
        })
        return table.sort_values("Importance", ascending=False).reset_index(drop=True)

    @property
    def oob_error(self) -> float:
        """Out-of-bag misclassification rate."""
        if self._model is None:
            return float("nan")
        return 1.0 - float(self._model.oob_score_)

    @property
    def model(self) -> Optional[RandomForestClassifier]:
        """Access the underlying sklearn model."""
        return self._model
