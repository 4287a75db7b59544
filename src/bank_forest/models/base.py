"""Training, evaluation and tracking shared by the forest engines."""

import datetime
import json
import os
from pathlib import Path
from tempfile import TemporaryDirectory

import joblib
import numpy as np
import pandas as pd

os.environ.setdefault("MLFLOW_ENABLE_LOGGED_MODELS", "false")

import mlflow
import mlflow.sklearn

from bank_forest.pipelines.experiment_pipelines import (
    ClassificationReport,
    evaluate_classifier,
    print_report,
)
from bank_forest.utils.plots import plot_variable_importance


class BaseForestTrainer:
    """
    Trains one classifier, scores it on training and validation tables and
    optionally records the run in MLflow. Subclasses provide ``build_model``.
    """

    model_family = "forest"
    display_name = "Forest"

    def __init__(self, model_params=None, training_params=None,
                 use_mlflow: bool = False,
                 mlflow_experiment: str | None = None,
                 mlflow_tracking_uri: str | None = None,
                 tags: dict | None = None):
        self.model_params = dict(model_params or self.default_model_params())
        self.training_params = dict(training_params or self.default_training_params())
        self.labels = list(self.training_params.get("labels", ["no", "yes"]))
        self.positive_level = self.training_params.get("positive_level", "yes")
        self.model = self.build_model()

        self.use_mlflow = bool(use_mlflow)
        self.mlflow_experiment = (
            mlflow_experiment
            or os.getenv("EXPERIMENT_NAME")
            or os.getenv("MLFLOW_EXPERIMENT_NAME", "bank-forest")
        )
        self.mlflow_tracking_uri = mlflow_tracking_uri or os.getenv("MLFLOW_TRACKING_URI")
        self.tags = tags or {"model_family": self.model_family}

        if self.use_mlflow and self.mlflow_tracking_uri:
            mlflow.set_tracking_uri(self.mlflow_tracking_uri)

    @classmethod
    def default_model_params(cls) -> dict:
        raise NotImplementedError

    @classmethod
    def default_training_params(cls) -> dict:
        raise NotImplementedError

    def build_model(self):
        raise NotImplementedError

    @property
    def estimator(self):
        """The fitted estimator that owns the trees."""
        return self.model

    # ---------------------- MLflow helpers ----------------------
    def _mlflow_start(self, run_name: str | None = None):
        """Start a run and return it, or None when mlflow is off or a caller's run is active."""
        if not self.use_mlflow:
            return None
        if mlflow.active_run() is not None:
            return None
        mlflow.set_experiment(self.mlflow_experiment)
        return mlflow.start_run(run_name=run_name)

    def _mlflow_log_params(self):
        if not self.use_mlflow:
            return
        mlflow.set_tags(self.tags)
        mlflow.log_params({f"model__{k}": v for k, v in self.model_params.items()})
        mlflow.log_params({f"train__{k}": v for k, v in self.training_params.items()})

    def _mlflow_log_metrics(self, metrics: dict):
        if not self.use_mlflow:
            return
        mlflow.log_metrics({k: float(v) for k, v in metrics.items() if np.isfinite(v)})

    def _mlflow_log_artifact(self, path: str):
        if self.use_mlflow:
            mlflow.log_artifact(path)

    def _mlflow_log_model(self, model_type: str):
        if not self.use_mlflow:
            return
        with TemporaryDirectory() as tmp:
            local_dir = Path(tmp) / f"{model_type}_mlflow_model"
            mlflow.sklearn.save_model(self.estimator, path=str(local_dir))
            mlflow.log_artifacts(str(local_dir), artifact_path="model")

    # ---------------------- training / scoring ----------------------
    def train(self, X_train, y_train):
        print(f"[INFO] Training {self.display_name} model...")
        self.model.fit(X_train, np.asarray(y_train).astype(str))
        print("[INFO] Training complete.")
        return self.model

    def predict(self, X):
        return self.model.predict(X)

    def predict_proba(self, X) -> pd.DataFrame:
        return pd.DataFrame(
            self.model.predict_proba(X),
            columns=[str(c) for c in self.classes_],
            index=getattr(X, "index", None),
        )

    @property
    def classes_(self):
        return self.model.classes_

    def score(self, X, y, label: str) -> ClassificationReport:
        return evaluate_classifier(
            self, X, y, label, labels=self.labels, positive_level=self.positive_level
        )

    def evaluate(self, X_train, X_valid, y_train, y_valid, label: str | None = None):
        """
        Score the fitted model on the training and validation tables.
        """
        label = label or self.display_name
        print("[INFO] Evaluating model performance...")
        reports = {
            "train": self.score(X_train, y_train, f"{label} (train)"),
            "validation": self.score(X_valid, y_valid, f"{label} (validation)"),
        }
        for report in reports.values():
            print_report(report)
        return reports

    @staticmethod
    def metrics_from_reports(reports: dict) -> dict:
        metrics = {}
        for split, report in reports.items():
            for key, value in report.to_dict().items():
                metrics[f"{key}_{split}"] = value
        return metrics

    def feature_importances(self, feature_names=None) -> pd.Series:
        estimator = self.estimator
        names = feature_names
        if names is None:
            names = getattr(estimator, "feature_names_in_", None)
        if names is None:
            names = [f"x{i}" for i in range(len(estimator.feature_importances_))]
        return pd.Series(estimator.feature_importances_, index=list(names), name="importance")

    def save_model(self, model_type: str | None = None, timestamp=None):
        """
        Save model artifact under a unique versioned filename only.
        """
        model_type = model_type or self.model_family
        if timestamp is None:
            timestamp = datetime.datetime.now().strftime("%Y%m%d_%H%M%S")

        versioned_dir = f"models/{model_type}/artifacts"
        os.makedirs(versioned_dir, exist_ok=True)
        versioned_model_path = os.path.join(versioned_dir, f"model_{timestamp}.pkl")
        joblib.dump(self.model, versioned_model_path)

        print(f"[INFO] Saved versioned model to: {versioned_model_path}")
        return versioned_model_path

    def plot_diagnostics(self, X_train, y_train, model_type: str) -> list[str]:
        """Write the importance chart; engines with more diagnostics extend this."""
        out_path = f"reports/figures/importance_{model_type}.png"
        plot_variable_importance(
            self.feature_importances(list(X_train.columns)),
            title=f"{self.display_name} - variable importance",
            out_path=out_path,
        )
        return [out_path]

    def run(self, X_train, X_valid, y_train, y_valid, model_type: str | None = None,
            label: str | None = None, plots: bool = True, save: bool = False, timestamp=None):
        """
        Full training + evaluation pipeline. Writes metrics to
        ``reports/metrics_<model_type>.json`` and returns them.
        """
        model_type = model_type or self.model_family
        print(f"[INFO] Starting {self.display_name} training pipeline...")

        run_ctx = self._mlflow_start(run_name=f"{model_type}_run")
        try:
            self._mlflow_log_params()

            self.train(X_train, y_train)
            reports = self.evaluate(X_train, X_valid, y_train, y_valid, label=label)
            metrics = self.metrics_from_reports(reports)
            self._mlflow_log_metrics(metrics)

            if plots:
                for figure in self.plot_diagnostics(X_train, y_train, model_type):
                    self._mlflow_log_artifact(figure)

            os.makedirs("reports", exist_ok=True)
            metrics_path = f"reports/metrics_{model_type}.json"
            with open(metrics_path, "w") as f:
                json.dump(metrics, f, indent=2)
            self._mlflow_log_artifact(metrics_path)

            if save:
                self._mlflow_log_artifact(self.save_model(model_type=model_type, timestamp=timestamp))
            self._mlflow_log_model(model_type)

            print(f"[INFO] {self.display_name} training pipeline complete.\n")
            return metrics, reports
        finally:
            # only end the run opened above
            if run_ctx is not None:
                mlflow.end_run()
