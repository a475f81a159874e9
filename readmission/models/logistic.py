"""
Logistic Regression Classifier.

Maximum-likelihood logistic regression on the one-hot (linear) encoding.
The default C of infinity fits without a penalty, matching an ordinary
binomial GLM.
"""

from typing import Optional, Sequence

import numpy as np
import pandas as pd
from sklearn.linear_model import LogisticRegression

from .base import BaseClassifier


class LogisticModel(BaseClassifier):
    """
    Readmission classifier using logistic regression.

    Coefficients are kept on the original feature scale (no
    standardization) so odds ratios read directly per unit of each
    encoded column.
    """

    def __init__(
        self,
        C: float = np.inf,
        max_iter: int = 2000,
        random_state: Optional[int] = None,
        name: str = "Logistic Regression",
    ):
        """
        Initialize the logistic regression classifier.

        Args:
            C: Inverse regularization strength; infinity disables the penalty.
            max_iter: Maximum solver iterations.
            random_state: Random seed for the solver.
            name: Human-readable name.
        """
        super().__init__(name=name)
        self.C = C
        self.max_iter = max_iter
        self.random_state = random_state
        self._model: Optional[LogisticRegression] = None
        self._positive_index = 1

    def fit(
        self,
        X: pd.DataFrame,
        y: Sequence[int],
        store_fingerprint: Optional[str] = None,
    ) -> "LogisticModel":
        y = np.asarray(y, dtype=int)
        if len(np.unique(y)) < 2:
            raise ValueError("Training labels must contain both classes")

        self._model = LogisticRegression(
            C=self.C,
            max_iter=self.max_iter,
            random_state=self.random_state,
        )
        self._model.fit(X.to_numpy(dtype=float), y)
        self._positive_index = list(self._model.classes_).index(1)

        self._record_fit(X, store_fingerprint)
        return self

    def _positive_proba(self, X: pd.DataFrame) -> np.ndarray:
        return self._model.predict_proba(X.to_numpy(dtype=float))[:, self._positive_index]

    def importance(self) -> pd.DataFrame:
        """
        Coefficients and odds ratios, strongest risk factors first.

        Returns:
            DataFrame with Variable, Coefficient and Odds_Ratio columns.
        """
        if not self._is_fitted:
            raise RuntimeError(f"{self.name} must be fitted first")
        coefficients = self._model.coef_[0]
        table = pd.DataFrame({
            "Variable": ["(Intercept)"] + list(self._fit_columns),
            "Coefficient": np.concatenate([self._model.intercept_, coefficients]),
        })
        table["Odds_Ratio"] = np.exp(table["Coefficient"])
        return table.sort_values("Odds_Ratio", ascending=False).reset_index(drop=True)

    @property
    def model(self) -> Optional[LogisticRegression]:
        """Access the underlying sklearn model."""
        return self._model
