# src/bank_forest/models/xgboost_model/config.py

MODEL_CONFIG = {
    "n_estimators": 500,
    "subsample": 0.632,            # rows per tree, drawn without replacement
    "colsample_bynode": "sqrt",    # resolved to sqrt(p) / p at fit time
    "max_depth": 12,
    "learning_rate": 1.0,
    "reg_lambda": 1e-5,
    "tree_method": "hist",
    "importance_type": "total_gain",
    "random_state": 2022,
    "n_jobs": -1
}

TRAINING_CONFIG = {
    "labels": ["no", "yes"],
    "positive_level": "yes",
}
