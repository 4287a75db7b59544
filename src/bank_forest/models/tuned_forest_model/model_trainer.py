# src/bank_forest/models/tuned_forest_model/model_trainer.py
import pandas as pd
from sklearn.ensemble import RandomForestClassifier
from sklearn.metrics import cohen_kappa_score, make_scorer
from sklearn.model_selection import GridSearchCV, StratifiedKFold

from bank_forest.models.base import BaseForestTrainer
from .config import MODEL_CONFIG, TRAINING_CONFIG

SCORING = {
    "accuracy": "accuracy",
    "kappa": make_scorer(cohen_kappa_score),
}


class ModelTrainer(BaseForestTrainer):
    """
    Random Forest fitted through a resampled grid search: every candidate
    in ``param_grid`` is scored by stratified k-fold accuracy and Kappa,
    then the best one is refit on the whole training table.
    """

    model_family = "tuned_forest"
    display_name = "Tuned Random Forest"

    @classmethod
    def default_model_params(cls) -> dict:
        return MODEL_CONFIG

    @classmethod
    def default_training_params(cls) -> dict:
        return TRAINING_CONFIG

    def build_model(self):
        cv = StratifiedKFold(
            n_splits=self.training_params.get("cv_folds", 5),
            shuffle=True,
            random_state=self.model_params.get("random_state"),
        )
        return GridSearchCV(
            estimator=RandomForestClassifier(**self.model_params),
            param_grid=self.training_params.get("param_grid", {"max_features": [1]}),
            scoring=SCORING,
            refit="accuracy",
            cv=cv,
            n_jobs=None,
        )

    @property
    def estimator(self):
        return self.model.best_estimator_

    def train(self, X_train, y_train):
        super().train(X_train, y_train)
        print("[INFO] Resampling results:")
        print(self.resampling_results().to_string(index=False))
        print(f"[INFO] Selected parameters: {self.model.best_params_}")
        return self.model

    def resampling_results(self) -> pd.DataFrame:
        """Mean and spread of the cross-validated scores per candidate."""
        results = self.model.cv_results_
        frame = pd.DataFrame(list(results["params"]))
        for metric in SCORING:
            frame[metric] = results[f"mean_test_{metric}"]
            frame[f"{metric}_sd"] = results[f"std_test_{metric}"]
        return frame
