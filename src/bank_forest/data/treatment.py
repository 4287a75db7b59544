from typing import Iterable, Optional, Sequence

import numpy as np
import pandas as pd
from pandas.api.types import is_numeric_dtype
from sklearn.base import BaseEstimator, TransformerMixin
from sklearn.compose import ColumnTransformer
from sklearn.impute import SimpleImputer
from sklearn.preprocessing import OneHotEncoder, TargetEncoder
from sklearn.utils.validation import check_is_fitted


class TreatmentPlan(BaseEstimator, TransformerMixin):
    """
    Categorical-outcome variable treatment.

    Fitted once on the design subset and then applied, read-only, to the
    training and validation rows. Produces three families of columns:

    - ``lev__<var>_<level>``: indicators for levels seen in at least
      ``min_fraction`` of design rows (rarer levels are pooled, unseen ones
      encode as all zeros).
    - ``catB__<var>``: impact (target) coding of each categorical against
      ``positive_level``.
    - ``clean__<var>``: numeric columns with mean imputation, plus
      ``clean__missingindicator_<var>`` where the design rows had gaps.

    The target column is carried through with its original labels.
    """

    def __init__(
        self,
        informative_vars: Optional[Iterable[str]] = None,
        target_var: str = "Class",
        positive_level: str = "yes",
        min_fraction: float = 0.02,
        impact_coding: bool = True,
    ):
        self.informative_vars = informative_vars
        self.target_var = target_var
        self.positive_level = positive_level
        self.min_fraction = min_fraction
        self.impact_coding = impact_coding

    def fit(self, X: pd.DataFrame, y=None):
        if hasattr(self, "transformer_"):
            raise RuntimeError("[ERROR] Treatment plan is already fitted; design a new plan instead.")

        variables = self._variables(X)
        self._validate_columns(X, variables + [self.target_var])
        outcome = (X[self.target_var].astype(str) == str(self.positive_level)).astype(int)
        if outcome.sum() == 0:
            raise ValueError(
                f"[ERROR] Level '{self.positive_level}' not present in '{self.target_var}' of the design rows."
            )

        self.categorical_vars_ = [c for c in variables if not is_numeric_dtype(X[c])]
        self.numeric_vars_ = [c for c in variables if is_numeric_dtype(X[c])]

        self.transformer_ = self._build_transformer().set_output(transform="pandas")
        self.transformer_.fit(X[variables], outcome)
        self.feature_names_ = list(self.transformer_.get_feature_names_out())
        self.n_design_rows_ = len(X)
        return self

    def transform(self, X: pd.DataFrame) -> pd.DataFrame:
        check_is_fitted(self, "transformer_")
        self._validate_columns(X, self.categorical_vars_ + self.numeric_vars_)

        treated = self.transformer_.transform(X[self.categorical_vars_ + self.numeric_vars_])
        treated = treated.astype(np.float64)
        treated.index = X.index
        if self.target_var in X.columns:
            treated[self.target_var] = X[self.target_var].to_numpy()
        return treated

    # vtreat-style name for applying the plan
    prepare = transform

    def get_feature_names_out(self, input_features=None):
        check_is_fitted(self, "transformer_")
        return np.asarray(self.feature_names_)

    def _variables(self, X: pd.DataFrame) -> list[str]:
        if self.informative_vars is not None:
            return [c for c in list(self.informative_vars) if c != self.target_var]
        return [c for c in X.columns if c != self.target_var]

    @staticmethod
    def _validate_columns(X: pd.DataFrame, required: Sequence[str]):
        missing = sorted(set(required) - set(X.columns))
        if missing:
            raise KeyError(f"[ERROR] Columns missing from the input: {missing}")

    def _build_transformer(self) -> ColumnTransformer:
        encoder_kwargs = {"handle_unknown": "ignore", "min_frequency": self.min_fraction, "sparse_output": False}

        transformers = []
        if self.categorical_vars_:
            transformers.append(("lev", OneHotEncoder(**encoder_kwargs), self.categorical_vars_))
            if self.impact_coding:
                transformers.append(
                    (
                        "catB",
                        TargetEncoder(target_type="binary"),
                        self.categorical_vars_,
                    )
                )
        if self.numeric_vars_:
            transformers.append(
                ("clean", SimpleImputer(strategy="mean", add_indicator=True), self.numeric_vars_)
            )

        if not transformers:
            raise ValueError("[ERROR] No informative variables to treat.")
        return ColumnTransformer(transformers=transformers, remainder="drop")


def design_treatment(
    design_df: pd.DataFrame,
    informative_vars: Sequence[str],
    target_var: str,
    positive_level: str,
    **kwargs,
) -> TreatmentPlan:
    """Design a categorical-outcome treatment plan on the design rows."""
    print(f"[INFO] Designing treatment plan on {len(design_df)} rows...")
    plan = TreatmentPlan(
        informative_vars=informative_vars,
        target_var=target_var,
        positive_level=positive_level,
        **kwargs,
    ).fit(design_df)
    print(f"[INFO] Treatment plan produces {len(plan.feature_names_)} columns.")
    return plan


def split_treated(treated: pd.DataFrame, target_var: str):
    """Split a treated table into its feature matrix and label series."""
    if target_var not in treated.columns:
        raise KeyError(f"[ERROR] Target '{target_var}' not present in treated table.")
    return treated.drop(columns=[target_var]), treated[target_var]
