import warnings

import numpy as np
import pandas as pd
from sklearn.ensemble import RandomForestClassifier

from bank_forest.models.base import BaseForestTrainer
from bank_forest.utils.plots import plot_error_rate_curve
from .config import MODEL_CONFIG, TRAINING_CONFIG


class ModelTrainer(BaseForestTrainer):
    """
    Trains, evaluates, and validates a Random Forest classifier.
    """

    model_family = "random_forest"
    display_name = "Random Forest"

    @classmethod
    def default_model_params(cls) -> dict:
        return MODEL_CONFIG

    @classmethod
    def default_training_params(cls) -> dict:
        return TRAINING_CONFIG

    def build_model(self):
        return RandomForestClassifier(**self.model_params)

    def _tree_grid(self):
        n_trees = self.model.get_params()["n_estimators"]
        points = min(n_trees, self.training_params.get("oob_curve_points", 50))
        return np.unique(np.linspace(1, n_trees, points).astype(int))

    def oob_error_curve(self, X, y, tree_grid=None) -> pd.DataFrame:
        """
        Out-of-bag error by forest size: one ``OOB`` column plus one column
        per class with the error rate among rows of that class.
        """
        tree_grid = self._tree_grid() if tree_grid is None else np.unique(np.asarray(tree_grid, dtype=int))
        y = np.asarray(y).astype(str)

        params = {**self.model.get_params(), "warm_start": True, "oob_score": True, "bootstrap": True}
        forest = RandomForestClassifier(**params)

        rows = []
        with warnings.catch_warnings():
            # Small forests leave some rows without any out-of-bag tree.
            warnings.simplefilter("ignore", UserWarning)
            warnings.simplefilter("ignore", RuntimeWarning)
            for n_trees in tree_grid:
                forest.set_params(n_estimators=int(n_trees))
                forest.fit(X, y)
                decision = np.nan_to_num(forest.oob_decision_function_)
                scored = decision.sum(axis=1) > 0
                predicted = forest.classes_[np.argmax(decision, axis=1)]
                wrong = predicted != y

                row = {"trees": int(n_trees), "OOB": wrong[scored].mean() if scored.any() else np.nan}
                for cls in self.labels:
                    mask = scored & (y == cls)
                    row[cls] = wrong[mask].mean() if mask.any() else np.nan
                rows.append(row)

        return pd.DataFrame(rows).set_index("trees")

    def plot_diagnostics(self, X_train, y_train, model_type: str) -> list[str]:
        figures = super().plot_diagnostics(X_train, y_train, model_type)
        out_path = f"reports/figures/error_rate_{model_type}.png"
        plot_error_rate_curve(
            self.oob_error_curve(X_train, y_train),
            title=f"{self.display_name} - error rate by number of trees",
            out_path=out_path,
        )
        return figures + [out_path]
