# src/bank_forest/models/xgboost_model/model_trainer.py
import math

import numpy as np
import xgboost as xgb
from sklearn.preprocessing import LabelEncoder

from bank_forest.models.base import BaseForestTrainer
from .config import MODEL_CONFIG, TRAINING_CONFIG


def _resolve_colsample(value, n_features: int) -> float:
    if value == "sqrt":
        return max(1, math.floor(math.sqrt(n_features))) / n_features
    return float(value)


class ModelTrainer(BaseForestTrainer):
    """
    Trains, evaluates, and validates a random forest grown by XGBoost's
    parallel histogram engine (``XGBRFClassifier``).
    """

    model_family = "xgboost_forest"
    display_name = "XGBoost Random Forest"

    @classmethod
    def default_model_params(cls) -> dict:
        return MODEL_CONFIG

    @classmethod
    def default_training_params(cls) -> dict:
        return TRAINING_CONFIG

    def build_model(self):
        params = {k: v for k, v in self.model_params.items() if k != "colsample_bynode"}
        self.label_encoder = LabelEncoder()
        return xgb.XGBRFClassifier(**params)

    def train(self, X_train, y_train):
        """
        Train the forest; string labels are encoded for XGBoost and decoded on predict.
        """
        print(f"[INFO] Training {self.display_name} model...")
        n_features = X_train.shape[1]
        colsample = _resolve_colsample(self.model_params.get("colsample_bynode", 0.8), n_features)
        self.model.set_params(colsample_bynode=colsample)

        y_encoded = self.label_encoder.fit_transform(np.asarray(y_train).astype(str))
        self.model.fit(X_train, y_encoded)
        print("[INFO] Training complete.")
        return self.model

    def predict(self, X):
        return self.label_encoder.inverse_transform(self.model.predict(X).astype(int))

    @property
    def classes_(self):
        return self.label_encoder.classes_
