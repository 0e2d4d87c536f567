"""
Rating Models - Linear and decision-tree models of chocolate-bar ratings

Thin adapters over scikit-learn estimators that take the cleaned ratings
table, build a design matrix from the configured predictors (company
location one-hot encoded) and report fit statistics:
- Linear regression with incrementally added predictors
- Decision-tree regression with importances per original predictor
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import numpy as np
import pandas as pd
from sklearn.linear_model import LinearRegression
from sklearn.metrics import mean_squared_error, r2_score
from sklearn.tree import DecisionTreeRegressor

from ..utils.constants import CATEGORICAL_PREDICTORS, MODEL_PREDICTORS, MODEL_RESPONSE

logger = logging.getLogger(__name__)

_DUMMY_SEP = '='


@dataclass
class ModelStep:
    """Fit statistics of one linear model in a selection sequence"""
    predictors: List[str]
    r_squared: float
    adjusted_r_squared: float
    rmse: float
    n_observations: int
    n_features: int
    coefficients: Dict[str, float] = field(default_factory=dict)
    intercept: float = 0.0


@dataclass
class TreeModelResult:
    """Fit statistics of a decision-tree rating model"""
    predictors: List[str]
    r_squared: float
    rmse: float
    depth: int
    n_leaves: int
    n_observations: int
    feature_importances: Dict[str, float]
    model: Optional[DecisionTreeRegressor] = None


def build_model_frame(
    records: pd.DataFrame,
    predictors: Optional[List[str]] = None,
    response: str = MODEL_RESPONSE
) -> pd.DataFrame:
    """
    Select predictors and response from cleaned records

    Args:
        records: Cleaned ratings table
        predictors: Predictor columns (default cocoa percent, review year, location)
        response: Response column

    Returns:
        DataFrame with predictor and response columns, incomplete rows dropped
    """
    predictors = list(predictors or MODEL_PREDICTORS)
    columns = predictors + [response]
    missing = [col for col in columns if col not in records.columns]
    if missing:
        raise ValueError(f"Records are missing model columns: {missing}")

    frame = records[columns].dropna().reset_index(drop=True)
    dropped = len(records) - len(frame)
    if dropped:
        logger.info("Dropped %d incomplete rows from model frame", dropped)
    return frame


def adjusted_r_squared(r_squared: float, n_observations: int, n_features: int) -> float:
    """Adjusted R-squared, NaN when there are no residual degrees of freedom"""
    dof = n_observations - n_features - 1
    if dof <= 0:
        return np.nan
    return 1 - (1 - r_squared) * (n_observations - 1) / dof


class RatingModeler:
    """
    Fit rating models on a cleaned ratings table

    Attributes:
        frame (pd.DataFrame): Complete-case model frame
        predictors (List[str]): Candidate predictors
        response (str): Response column
    """

    def __init__(
        self,
        records: pd.DataFrame,
        predictors: Optional[List[str]] = None,
        response: str = MODEL_RESPONSE,
        random_state: int = 42
    ):
        self.predictors = list(predictors or MODEL_PREDICTORS)
        self.response = response
        self.random_state = random_state
        self.frame = build_model_frame(records, self.predictors, response)

        if len(self.frame) < 2:
            raise ValueError(f"Need at least 2 complete records to fit a model, got {len(self.frame)}")

        self.model_history = []

    def design_matrix(self, predictors: List[str], drop_first: bool = True) -> pd.DataFrame:
        """
        Numeric design matrix for the given predictors

        Categorical predictors are one-hot encoded as ``name=value`` columns;
        ``drop_first`` drops the reference level for linear models.
        """
        unknown = [p for p in predictors if p not in self.predictors]
        if unknown:
            raise ValueError(f"Unknown predictors: {unknown}")

        categorical = [p for p in predictors if p in CATEGORICAL_PREDICTORS]
        if not categorical:
            return self.frame[predictors].astype(float)

        matrix = pd.get_dummies(
            self.frame[predictors],
            columns=categorical,
            prefix=categorical,
            prefix_sep=_DUMMY_SEP,
            drop_first=drop_first,
        )
        return matrix.astype(float)

    def fit_linear(self, predictors: List[str]) -> ModelStep:
        """
        Fit an ordinary least squares model of the response

        Args:
            predictors: Predictors to include

        Returns:
            ModelStep with fit statistics and coefficients
        """
        X = self.design_matrix(predictors, drop_first=True)
        y = self.frame[self.response].astype(float)

        model = LinearRegression()
        model.fit(X, y)
        fitted = model.predict(X)

        r_squared = float(r2_score(y, fitted))
        step = ModelStep(
            predictors=list(predictors),
            r_squared=r_squared,
            adjusted_r_squared=float(adjusted_r_squared(r_squared, len(y), X.shape[1])),
            rmse=float(np.sqrt(mean_squared_error(y, fitted))),
            n_observations=len(y),
            n_features=X.shape[1],
            coefficients=dict(zip(X.columns, map(float, model.coef_))),
            intercept=float(model.intercept_),
        )
        self.model_history.append(step)
        logger.debug("Linear model %s: R2=%.4f", predictors, r_squared)
        return step

    def forward_selection(
        self,
        candidates: Optional[List[str]] = None,
        greedy: bool = False
    ) -> List[ModelStep]:
        """
        Fit linear models on an incrementally growing predictor set

        Args:
            candidates: Predictors to add (default: all configured predictors)
            greedy: If True, add at each step the candidate giving the best
                adjusted R-squared; otherwise add them in the given order

        Returns:
            One ModelStep per step, the last including every candidate
        """
        remaining = list(candidates or self.predictors)
        selected = []
        steps = []

        while remaining:
            if greedy:
                trials = [(self.fit_linear(selected + [p]), p) for p in remaining]
                best, chosen = max(
                    trials,
                    key=lambda t: -np.inf if np.isnan(t[0].adjusted_r_squared) else t[0].adjusted_r_squared
                )
            else:
                chosen = remaining[0]
                best = self.fit_linear(selected + [chosen])

            selected.append(chosen)
            remaining.remove(chosen)
            steps.append(best)

        return steps

    def fit_decision_tree(
        self,
        max_depth: Optional[int] = 4,
        min_samples_leaf: int = 20,
        predictors: Optional[List[str]] = None
    ) -> TreeModelResult:
        """
        Fit a regression tree of the response

        Locations of any cardinality are one-hot encoded without dropping a
        level; importances are summed back to the original predictors.

        Args:
            max_depth: Maximum tree depth (None for unlimited)
            min_samples_leaf: Minimum records per leaf
            predictors: Predictors to include (default: all configured)

        Returns:
            TreeModelResult with fit statistics and the fitted estimator
        """
        predictors = list(predictors or self.predictors)
        X = self.design_matrix(predictors, drop_first=False)
        y = self.frame[self.response].astype(float)

        model = DecisionTreeRegressor(
            max_depth=max_depth,
            min_samples_leaf=min(min_samples_leaf, max(1, len(y) // 2)),
            random_state=self.random_state,
        )
        model.fit(X, y)
        fitted = model.predict(X)

        importances = {p: 0.0 for p in predictors}
        for column, importance in zip(X.columns, model.feature_importances_):
            importances[column.split(_DUMMY_SEP, 1)[0]] += float(importance)

        return TreeModelResult(
            predictors=predictors,
            r_squared=float(r2_score(y, fitted)),
            rmse=float(np.sqrt(mean_squared_error(y, fitted))),
            depth=int(model.get_depth()),
            n_leaves=int(model.get_n_leaves()),
            n_observations=len(y),
            feature_importances=importances,
            model=model,
        )
