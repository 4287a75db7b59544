import json
from pathlib import Path

import joblib
import numpy as np
import pytest
from sklearn.ensemble import RandomForestClassifier

from bank_forest.models.random_forest_model.model_trainer import ModelTrainer as RandomForestTrainer
from bank_forest.models.tuned_forest_model.model_trainer import ModelTrainer as TunedForestTrainer
from bank_forest.models.xgboost_model import model_trainer as xgb_mod
from bank_forest.models.xgboost_model.model_trainer import ModelTrainer as XGBForestTrainer

RF_PARAMS = {"n_estimators": 20, "max_features": 1, "random_state": 0, "n_jobs": 1}
TUNED_PARAMS = {"n_estimators": 3, "random_state": 0, "n_jobs": 1}
XGB_PARAMS = {
    "n_estimators": 10,
    "subsample": 0.632,
    "colsample_bynode": "sqrt",
    "max_depth": 4,
    "learning_rate": 1.0,
    "tree_method": "hist",
    "importance_type": "total_gain",
    "random_state": 0,
    "n_jobs": 1,
}


def assert_reports_consistent(reports, y_train, y_valid):
    for split, y_true in (("train", y_train), ("validation", y_valid)):
        report = reports[split]
        assert 0.0 <= report.accuracy <= 1.0
        assert report.accuracy == np.mean(report.y_pred == np.asarray(y_true))
        assert report.confusion.to_numpy().sum() == len(y_true)


def test_random_forest_trainer_train_and_evaluate(treated_tables):
    X_train, X_valid, y_train, y_valid = treated_tables
    trainer = RandomForestTrainer(model_params=RF_PARAMS)

    model = trainer.train(X_train, y_train)
    reports = trainer.evaluate(X_train, X_valid, y_train, y_valid, label="rf")

    assert isinstance(model, RandomForestClassifier)
    assert set(trainer.predict(X_valid)) <= {"no", "yes"}
    assert_reports_consistent(reports, y_train, y_valid)
    proba = trainer.predict_proba(X_valid)
    assert list(proba.columns) == ["no", "yes"]
    assert np.allclose(proba.sum(axis=1), 1.0)


def test_random_forest_feature_importances_are_named(treated_tables):
    X_train, _, y_train, _ = treated_tables
    trainer = RandomForestTrainer(model_params=RF_PARAMS)
    trainer.train(X_train, y_train)

    importances = trainer.feature_importances(list(X_train.columns))
    assert list(importances.index) == list(X_train.columns)
    assert importances.sum() == pytest.approx(1.0)


def test_random_forest_oob_error_curve(treated_tables):
    X_train, _, y_train, _ = treated_tables
    trainer = RandomForestTrainer(model_params=RF_PARAMS)

    curve = trainer.oob_error_curve(X_train, y_train, tree_grid=[5, 10, 20])

    assert list(curve.index) == [5, 10, 20]
    assert list(curve.columns) == ["OOB", "no", "yes"]
    assert ((curve >= 0) & (curve <= 1)).all().all()


def test_random_forest_default_tree_grid_covers_forest():
    trainer = RandomForestTrainer(model_params={**RF_PARAMS, "n_estimators": 3})
    assert trainer._tree_grid().tolist() == [1, 2, 3]


def test_three_tree_forest_is_reproducible():
    from conftest import make_bank_frame
    from bank_forest.data.treatment import design_treatment, split_treated
    from bank_forest.pipelines.data_setup import DEFAULT_SCHEMA, partition_dataset, take

    def train_accuracy():
        df = make_bank_frame(1000, seed=0)
        partition = partition_dataset(df, design_seed=2022, split_seed=1234)
        plan = design_treatment(take(df, partition.design), DEFAULT_SCHEMA.predictors, "Class", "yes")
        X, y = split_treated(plan.prepare(take(df, partition.train)), "Class")
        trainer = RandomForestTrainer(model_params={"n_estimators": 3, "max_features": 1, "random_state": 2022, "n_jobs": 1})
        trainer.train(X, y)
        return trainer.score(X, y, "three trees").accuracy

    assert train_accuracy() == train_accuracy()


def test_tuned_forest_trainer_uses_resampled_grid(treated_tables):
    X_train, X_valid, y_train, y_valid = treated_tables
    trainer = TunedForestTrainer(
        model_params=TUNED_PARAMS,
        training_params={"param_grid": {"max_features": [1, 2]}, "cv_folds": 3},
    )

    trainer.train(X_train, y_train)
    reports = trainer.evaluate(X_train, X_valid, y_train, y_valid)

    results = trainer.resampling_results()
    assert list(results.columns) == ["max_features", "accuracy", "accuracy_sd", "kappa", "kappa_sd"]
    assert len(results) == 2
    assert trainer.estimator.n_estimators == 3
    assert trainer.model.best_params_["max_features"] in (1, 2)
    assert_reports_consistent(reports, y_train, y_valid)


def test_xgb_forest_trainer_decodes_labels(treated_tables):
    X_train, X_valid, y_train, y_valid = treated_tables
    trainer = XGBForestTrainer(model_params=XGB_PARAMS)

    trainer.train(X_train, y_train)
    reports = trainer.evaluate(X_train, X_valid, y_train, y_valid)

    assert set(trainer.predict(X_valid)) <= {"no", "yes"}
    assert list(trainer.classes_) == ["no", "yes"]
    assert_reports_consistent(reports, y_train, y_valid)
    assert trainer.model.get_params()["colsample_bynode"] == pytest.approx(
        int(np.sqrt(X_train.shape[1])) / X_train.shape[1]
    )


def test_resolve_colsample():
    assert xgb_mod._resolve_colsample("sqrt", 16) == 0.25
    assert xgb_mod._resolve_colsample(0.5, 16) == 0.5


def test_save_model_writes_versioned_artifact(tmp_path, monkeypatch, treated_tables):
    X_train, _, y_train, _ = treated_tables
    monkeypatch.chdir(tmp_path)

    trainer = RandomForestTrainer(model_params=RF_PARAMS)
    trainer.train(X_train, y_train)
    path = trainer.save_model(model_type="five_hundred_trees", timestamp="20250325")

    expected = tmp_path / "models" / "five_hundred_trees" / "artifacts" / "model_20250325.pkl"
    assert Path(path).resolve() == expected
    assert isinstance(joblib.load(path), RandomForestClassifier)


def test_run_without_mlflow_writes_metrics_and_figures(tmp_path, monkeypatch, treated_tables):
    X_train, X_valid, y_train, y_valid = treated_tables
    monkeypatch.chdir(tmp_path)

    trainer = RandomForestTrainer(model_params=RF_PARAMS, use_mlflow=False)
    metrics, reports = trainer.run(X_train, X_valid, y_train, y_valid, model_type="rf_small", plots=True)

    assert metrics["accuracy_validation"] == reports["validation"].accuracy
    saved = json.loads((tmp_path / "reports" / "metrics_rf_small.json").read_text())
    assert saved["accuracy_train"] == pytest.approx(metrics["accuracy_train"])
    assert (tmp_path / "reports" / "figures" / "importance_rf_small.png").exists()
    assert (tmp_path / "reports" / "figures" / "error_rate_rf_small.png").exists()


def test_run_logs_to_stubbed_mlflow(tmp_path, monkeypatch, treated_tables, stub_mlflow):
    X_train, X_valid, y_train, y_valid = treated_tables
    monkeypatch.chdir(tmp_path)

    trainer = XGBForestTrainer(model_params=XGB_PARAMS, use_mlflow=True, mlflow_experiment="exp")
    metrics, _ = trainer.run(
        X_train, X_valid, y_train, y_valid, model_type="xgboost_forest", plots=False, save=True, timestamp="20250101"
    )

    assert stub_mlflow["experiment"] == "exp"
    assert stub_mlflow["run_name"] == "xgboost_forest_run"
    assert stub_mlflow["tags"] == {"model_family": "xgboost_forest"}
    assert stub_mlflow["params"]["model__n_estimators"] == 10
    assert set(stub_mlflow["metrics"]) <= set(metrics)
    assert "accuracy_validation" in stub_mlflow["metrics"]
    assert stub_mlflow["ended"] == 1
    assert stub_mlflow["active"] is None
    assert (tmp_path / "models" / "xgboost_forest" / "artifacts" / "model_20250101.pkl").exists()


def test_run_leaves_caller_mlflow_run_open(tmp_path, monkeypatch, treated_tables, stub_mlflow):
    import types

    X_train, X_valid, y_train, y_valid = treated_tables
    monkeypatch.chdir(tmp_path)
    outer = types.SimpleNamespace(info=types.SimpleNamespace(run_id="outer"))
    stub_mlflow["active"] = outer

    trainer = RandomForestTrainer(model_params=RF_PARAMS, use_mlflow=True, mlflow_experiment="exp")
    trainer.run(X_train, X_valid, y_train, y_valid, model_type="rf_nested", plots=False)

    assert stub_mlflow["active"] is outer
    assert "ended" not in stub_mlflow
    assert "run_name" not in stub_mlflow
    assert "accuracy_validation" in stub_mlflow["metrics"]
