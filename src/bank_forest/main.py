# src/bank_forest/main.py
import argparse

import pandas as pd
import yaml

from bank_forest.data.data_loader import explore
from bank_forest.data.treatment import design_treatment, split_treated
from bank_forest.pipelines.data_setup import (
    DEFAULT_SCHEMA,
    DatasetSchema,
    load_dataframe,
    partition_dataset,
    take,
)
from bank_forest.pipelines.experiment_pipelines import compare_accuracies
from bank_forest.utils.env import DEFAULT_DATA_URL, load_env
from bank_forest.utils.seeds import set_global_seed

# Import trainers (lightweight registry)
from bank_forest.models.random_forest_model import ModelTrainer as RFTrainer
from bank_forest.models.tuned_forest_model import ModelTrainer as TunedRFTrainer
from bank_forest.models.xgboost_model import ModelTrainer as XGBRFTrainer

MODEL_REGISTRY = {
    "tuned_forest": TunedRFTrainer,
    "random_forest": RFTrainer,
    "xgboost": XGBRFTrainer,
}

DEFAULT_MODELS = [
    {"name": "three_trees", "engine": "tuned_forest", "params": {"n_estimators": 3}},
    {"name": "five_hundred_trees", "engine": "random_forest", "params": {"n_estimators": 500, "max_features": 1}},
    {"name": "one_hundred_trees", "engine": "random_forest", "params": {"n_estimators": 100, "max_features": 1}},
    {"name": "xgboost_forest", "engine": "xgboost", "params": {"n_estimators": 500}},
]


def banner(title):
    print("=" * 70); print(f"[INFO] {title}"); print("=" * 70)


def load_cfg(path="params.yaml"):
    with open(path, "r") as f:
        return yaml.safe_load(f) or {}


def schema_from_cfg(cfg) -> DatasetSchema:
    data_cfg = cfg.get("data", {})
    return DatasetSchema(
        predictors=list(data_cfg.get("predictors") or DEFAULT_SCHEMA.predictors),
        target=data_cfg.get("target", DEFAULT_SCHEMA.target),
        positive_level=data_cfg.get("positive_level", DEFAULT_SCHEMA.positive_level),
        negative_level=data_cfg.get("negative_level", DEFAULT_SCHEMA.negative_level),
        target_position=data_cfg.get("target_position", DEFAULT_SCHEMA.target_position),
    )


def run_data_loader(cfg, source, schema):
    banner("STEP 1: Loading data")
    df = load_dataframe(source, schema, strict_order=cfg.get("data", {}).get("strict_order", False))
    explore(df)
    return df


def run_partition(cfg, df):
    banner("STEP 2: Partitioning rows")
    split_cfg = cfg.get("split", {})
    return partition_dataset(
        df,
        design_fraction=split_cfg.get("design_fraction", 0.1),
        train_fraction=split_cfg.get("train_fraction", 0.8),
        design_seed=split_cfg.get("design_seed", 2022),
        split_seed=split_cfg.get("split_seed", 1234),
    )


def run_treatment(cfg, df, partition, schema):
    banner("STEP 3: Variable treatment")
    treat_cfg = cfg.get("treatment", {})
    plan = design_treatment(
        take(df, partition.design),
        schema.predictors,
        schema.target,
        schema.positive_level,
        min_fraction=treat_cfg.get("min_fraction", 0.02),
        impact_coding=treat_cfg.get("impact_coding", True),
    )
    treated_train = plan.prepare(take(df, partition.train))
    treated_valid = plan.prepare(take(df, partition.validation))
    print(f"[INFO] Treated train {treated_train.shape} | treated validation {treated_valid.shape}")
    return plan, treated_train, treated_valid


def build_trainer(model_spec, schema, use_mlflow=False):
    engine = model_spec["engine"]
    if engine not in MODEL_REGISTRY:
        raise ValueError(f"Unsupported engine '{engine}'. "
                         f"Use one of: {list(MODEL_REGISTRY.keys())}")

    trainer_cls = MODEL_REGISTRY[engine]
    model_params = {**trainer_cls.default_model_params(), **(model_spec.get("params") or {})}
    training_params = {
        **trainer_cls.default_training_params(),
        **(model_spec.get("training") or {}),
        "labels": schema.levels,
        "positive_level": schema.positive_level,
    }
    return trainer_cls(model_params=model_params, training_params=training_params, use_mlflow=use_mlflow)


def run_training(cfg, treated_train, treated_valid, schema, plots=True):
    banner("STEP 4: Training forests")
    train_cfg = cfg.get("train", {})
    X_train, y_train = split_treated(treated_train, schema.target)
    X_valid, y_valid = split_treated(treated_valid, schema.target)

    results = {}
    for model_spec in train_cfg.get("models") or DEFAULT_MODELS:
        name = model_spec["name"]
        trainer = build_trainer(model_spec, schema, use_mlflow=train_cfg.get("use_mlflow", False))
        metrics, reports = trainer.run(
            X_train, X_valid, y_train, y_valid,
            model_type=name,
            label=name,
            plots=plots and train_cfg.get("plots", True),
            save=train_cfg.get("save_models", False),
        )
        results[name] = {"trainer": trainer, "metrics": metrics, "reports": reports}
    return results


def run_pipeline(cfg, source=None, plots=True) -> pd.DataFrame:
    env_vars = load_env()
    set_global_seed(cfg.get("seed", env_vars["SEED"]))
    schema = schema_from_cfg(cfg)
    # --data, then BANK_DATA_URL, then params.yaml
    source = source or env_vars["BANK_DATA_URL"] or cfg.get("data", {}).get("url") or DEFAULT_DATA_URL

    df = run_data_loader(cfg, source, schema)
    partition = run_partition(cfg, df)
    _, treated_train, treated_valid = run_treatment(cfg, df, partition, schema)
    results = run_training(cfg, treated_train, treated_valid, schema, plots=plots)

    banner("STEP 5: Validation accuracy comparison")
    summary = compare_accuracies(r["reports"]["validation"] for r in results.values())
    print(summary.to_string(index=False))
    print("\n[INFO] Full pipeline executed successfully!")
    return summary


def main(argv=None):
    parser = argparse.ArgumentParser(description="Compare random forest engines on the bank marketing data.")
    parser.add_argument("--params", type=str, default="params.yaml")
    parser.add_argument("--data", type=str, default=None, help="CSV path or URL overriding params.yaml.")
    parser.add_argument("--no-plots", action="store_true")
    args = parser.parse_args(argv)

    cfg = load_cfg(args.params)  # reads params.yaml
    run_pipeline(cfg, source=args.data, plots=not args.no_plots)


if __name__ == "__main__":
    main()
