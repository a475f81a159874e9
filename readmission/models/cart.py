"""
CART Decision Tree Classifier.

Grows a gini classification tree and prunes it by minimal cost-complexity,
choosing the pruning strength with the one-standard-error rule over
cross-validated error.
"""

from typing import Optional, Sequence

import numpy as np
import pandas as pd
from sklearn.model_selection import StratifiedKFold, cross_val_score
from sklearn.tree import DecisionTreeClassifier, export_text

from .base import TreeFormClassifier


class CARTModel(TreeFormClassifier):
    """
    Readmission classifier using a single pruned decision tree.

    Pruning picks the largest complexity penalty whose cross-validated
    error is within one standard error of the minimum, favouring the
    simplest tree that performs about as well as the best one.
    """

    def __init__(
        self,
        min_samples_split: int = 20,
        min_samples_leaf: int = 7,
        max_depth: int = 10,
        prune: bool = True,
        cv_folds: int = 10,
        max_alphas: int = 30,
        random_state: Optional[int] = None,
        name: str = "CART",
    ):
        """
        Initialize the CART classifier.

        Args:
            min_samples_split: Minimum samples in a node to attempt a split.
            min_samples_leaf: Minimum samples in any leaf.
            max_depth: Maximum depth of the grown tree.
            prune: Apply cost-complexity pruning after growing.
            cv_folds: Folds used to estimate error per pruning strength.
            max_alphas: Cap on candidate pruning strengths evaluated.
            random_state: Random seed for fold assignment and tie-breaking.
            name: Human-readable name.
        """
        super().__init__(name=name)
        self.min_samples_split = min_samples_split
        self.min_samples_leaf = min_samples_leaf
        self.max_depth = max_depth
        self.prune = prune
        self.cv_folds = cv_folds
        self.max_alphas = max_alphas
        self.random_state = random_state

        self._model: Optional[DecisionTreeClassifier] = None
        self._positive_index = 1
        self.ccp_alpha_: float = 0.0
        self.cv_results_: Optional[pd.DataFrame] = None

    def _make_tree(self, ccp_alpha: float = 0.0) -> DecisionTreeClassifier:
        return DecisionTreeClassifier(
            criterion="gini",
            min_samples_split=self.min_samples_split,
            min_samples_leaf=self.min_samples_leaf,
            max_depth=self.max_depth,
            ccp_alpha=ccp_alpha,
            random_state=self.random_state,
        )

    def fit(
        self,
        X: pd.DataFrame,
        y: Sequence[int],
        store_fingerprint: Optional[str] = None,
    ) -> "CARTModel":
        y = np.asarray(y, dtype=int)
        if len(np.unique(y)) < 2:
            raise ValueError("Training labels must contain both classes")

        X_mat = self._to_matrix(X, fitting=True)

        self.ccp_alpha_ = self._select_alpha(X_mat, y) if self.prune else 0.0
        self._model = self._make_tree(self.ccp_alpha_)
        self._model.fit(X_mat, y)
        self._positive_index = list(self._model.classes_).index(1)

        self._record_fit(X, store_fingerprint)
        return self

    def _candidate_alphas(self, X_mat: np.ndarray, y: np.ndarray) -> np.ndarray:
        path = self._make_tree().cost_complexity_pruning_path(X_mat, y)
        alphas = np.unique(np.clip(path.ccp_alphas, 0.0, None))
        if len(alphas) > self.max_alphas:
            picks = np.unique(np.linspace(0, len(alphas) - 1, self.max_alphas).round().astype(int))
            alphas = alphas[picks]
        return alphas

    def _select_alpha(self, X_mat: np.ndarray, y: np.ndarray) -> float:
        """Choose ccp_alpha with the one-standard-error rule."""
        folds = min(self.cv_folds, int(np.bincount(y).min()))
        if folds < 2:
            return 0.0

        cv = StratifiedKFold(n_splits=folds, shuffle=True, random_state=self.random_state)
        alphas = self._candidate_alphas(X_mat, y)

        rows = []
        for alpha in alphas:
            scores = cross_val_score(self._make_tree(alpha), X_mat, y, cv=cv, scoring="accuracy")
            errors = 1.0 - scores
            rows.append({
                "ccp_alpha": float(alpha),
                "xerror": float(errors.mean()),
                "xstd": float(errors.std(ddof=1) / np.sqrt(len(errors))),
            })
        self.cv_results_ = pd.DataFrame(rows)

        best = int(self.cv_results_["xerror"].idxmin())
        limit = self.cv_results_.loc[best, "xerror"] + self.cv_results_.loc[best, "xstd"]
        within = self.cv_results_[self.cv_results_["xerror"] <= limit]
        return float(within["ccp_alpha"].max())

    def _positive_proba(self, X: pd.DataFrame) -> np.ndarray:
        return self._model.predict_proba(self._to_matrix(X))[:, self._positive_index]

    def importance(self) -> pd.DataFrame:
        """
        Impurity-based variable importance.

        Returns:
            DataFrame with Variable, Importance and Importance_Percent columns,
            most important first.
        """
        if not self._is_fitted:
            raise RuntimeError(f"{self.name} must be fitted first")
        importances = self._model.feature_importances_
        total = importances.sum()
        table = pd.DataFrame({
            "Variable": self._feature_names,
            "Importance": importances,
            "Importance_Percent": importances / total * 100 if total > 0 else np.zeros_like(importances),
        })
        return table.sort_values("Importance", ascending=False).reset_index(drop=True)

    def rules(self) -> str:
        """Text rendering of the fitted tree."""
        if not self._is_fitted:
            raise RuntimeError(f"{self.name} must be fitted first")
        return export_text(self._model, feature_names=self._feature_names)

    @property
    def n_leaves(self) -> int:
        return int(self._model.get_n_leaves()) if self._model is not None else 0

    @property
    def model(self) -> Optional[DecisionTreeClassifier]:
        """Access the underlying sklearn model."""
        return self._model
