MODEL_CONFIG = {
    "n_estimators": 500,
    "max_features": 1,   # mtry: candidate variables per split
    "max_depth": None,
    "min_samples_leaf": 1,
    "bootstrap": True,
    "random_state": 2022,
    "n_jobs": -1
}

TRAINING_CONFIG = {
    "labels": ["no", "yes"],
    "positive_level": "yes",
    "oob_curve_points": 50,
}
