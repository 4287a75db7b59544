# src/bank_forest/utils/env.py
from dotenv import load_dotenv
from pathlib import Path
import os

DEFAULT_DATA_URL = (
    "https://raw.githubusercontent.com/kwartler/Harvard_DataMining_Business_Student/"
    "refs/heads/master/Lessons/H_Log_Reg_Tree_RF/data/bank-downSampled.csv"
)


def load_env():
    """
    Load variables from the .env file (if present) and return the
    settings the pipeline reads.
    """
    dotenv_path = Path(".") / ".env"
    if dotenv_path.exists():
        load_dotenv(dotenv_path)
        print("[INFO] Loaded .env file.")
    else:
        print("[WARN] No .env found, using system environment variables.")

    return {
        "ENV": os.getenv("ENV", "local"),
        "EXPERIMENT_NAME": os.getenv("EXPERIMENT_NAME", "bank-forest"),
        "MLFLOW_TRACKING_URI": os.getenv("MLFLOW_TRACKING_URI"),
        "BANK_DATA_URL": os.getenv("BANK_DATA_URL"),
        "SEED": int(os.getenv("SEED", 2022)),
    }
