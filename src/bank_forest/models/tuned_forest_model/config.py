# src/bank_forest/models/tuned_forest_model/config.py

MODEL_CONFIG = {
    "n_estimators": 3,
    "random_state": 2022,
    "n_jobs": -1
}

TRAINING_CONFIG = {
    "param_grid": {"max_features": [1]},
    "cv_folds": 5,
    "labels": ["no", "yes"],
    "positive_level": "yes",
}
