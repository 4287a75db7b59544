import sys
import types
from pathlib import Path

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pandas as pd
import pytest

# Ensure /src is on sys.path for imports like `bank_forest.*`
PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = PROJECT_ROOT / "src"
for path in (PROJECT_ROOT, SRC_DIR):
    str_path = str(path)
    if str_path not in sys.path:
        sys.path.insert(0, str_path)

MONTHS = ["jan", "feb", "mar", "apr", "may", "jun", "jul", "aug", "sep", "oct", "nov", "dec"]


def make_bank_frame(n_rows: int = 1000, seed: int = 0) -> pd.DataFrame:
    """Synthetic bank-marketing table: 16 predictors, label `Class` in column 17."""
    rng = np.random.RandomState(seed)
    duration = rng.gamma(2.0, 150.0, n_rows).round()
    poutcome = rng.choice(["unknown", "failure", "success", "other"], n_rows, p=[0.7, 0.15, 0.1, 0.05])
    signal = (duration - 300) / 120 + np.where(poutcome == "success", 2.0, 0.0)
    prob_yes = 1 / (1 + np.exp(-signal))
    return pd.DataFrame(
        {
            "age": rng.randint(18, 90, n_rows),
            "job": rng.choice(["admin.", "blue-collar", "technician", "services", "management", "retired"], n_rows),
            "marital": rng.choice(["married", "single", "divorced"], n_rows),
            "education": rng.choice(["primary", "secondary", "tertiary", "unknown"], n_rows),
            "default": rng.choice(["no", "yes"], n_rows, p=[0.97, 0.03]),
            "balance": rng.normal(1500, 3000, n_rows).round(),
            "housing": rng.choice(["no", "yes"], n_rows),
            "loan": rng.choice(["no", "yes"], n_rows, p=[0.85, 0.15]),
            "contact": rng.choice(["cellular", "telephone", "unknown"], n_rows),
            "day": rng.randint(1, 32, n_rows),
            "month": rng.choice(MONTHS, n_rows),
            "duration": duration,
            "campaign": rng.randint(1, 10, n_rows),
            "pdays": rng.choice([-1, 30, 90, 180], n_rows),
            "previous": rng.randint(0, 5, n_rows),
            "poutcome": poutcome,
            "Class": np.where(rng.rand(n_rows) < prob_yes, "yes", "no"),
        }
    )


@pytest.fixture
def bank_frame():
    return make_bank_frame()


@pytest.fixture
def bank_csv(tmp_path, bank_frame):
    path = tmp_path / "bank.csv"
    bank_frame.to_csv(path, index=False)
    return path


@pytest.fixture
def treated_tables(bank_frame):
    from bank_forest.data.treatment import design_treatment, split_treated
    from bank_forest.pipelines.data_setup import DEFAULT_SCHEMA, partition_dataset, take

    partition = partition_dataset(bank_frame)
    plan = design_treatment(
        take(bank_frame, partition.design),
        DEFAULT_SCHEMA.predictors,
        DEFAULT_SCHEMA.target,
        DEFAULT_SCHEMA.positive_level,
    )
    X_train, y_train = split_treated(plan.prepare(take(bank_frame, partition.train)), "Class")
    X_valid, y_valid = split_treated(plan.prepare(take(bank_frame, partition.validation)), "Class")
    return X_train, X_valid, y_train, y_valid


@pytest.fixture
def stub_mlflow(monkeypatch, tmp_path):
    import mlflow

    state = {"uri": f"file://{tmp_path}", "experiment": None, "active": None}

    class DummyRun:
        def __init__(self, run_id="run-123"):
            self.info = types.SimpleNamespace(run_id=run_id)
        def __enter__(self):
            return self
        def __exit__(self, exc_type, exc, tb):
            state["active"] = None

    def start_run(run_name=None):
        state["active"] = DummyRun()
        state["run_name"] = run_name
        return state["active"]

    def active_run():
        return state.get("active")

    def end_run():
        state["active"] = None
        state["ended"] = state.get("ended", 0) + 1

    def set_tracking_uri(uri):
        state["uri"] = uri

    def set_experiment(name):
        state["experiment"] = name

    def set_tags(tags):
        state["tags"] = tags

    def log_params(params):
        state.setdefault("params", {}).update(params)

    def log_metrics(metrics):
        state["metrics"] = metrics

    def log_artifact(path, artifact_path=None):
        state.setdefault("artifacts", []).append(Path(path))

    def log_artifacts(path, artifact_path=None):
        state.setdefault("artifacts", []).append(Path(path))

    sklearn_ns = types.SimpleNamespace(
        save_model=lambda sk_model, path: Path(path).mkdir(parents=True, exist_ok=True),
    )

    monkeypatch.setattr(mlflow, "start_run", start_run)
    monkeypatch.setattr(mlflow, "active_run", active_run)
    monkeypatch.setattr(mlflow, "end_run", end_run)
    monkeypatch.setattr(mlflow, "set_tracking_uri", set_tracking_uri)
    monkeypatch.setattr(mlflow, "set_experiment", set_experiment)
    monkeypatch.setattr(mlflow, "set_tags", set_tags)
    monkeypatch.setattr(mlflow, "log_params", log_params)
    monkeypatch.setattr(mlflow, "log_metrics", log_metrics)
    monkeypatch.setattr(mlflow, "log_artifact", log_artifact)
    monkeypatch.setattr(mlflow, "log_artifacts", log_artifacts)
    monkeypatch.setattr(mlflow, "sklearn", sklearn_ns, raising=False)

    return state
