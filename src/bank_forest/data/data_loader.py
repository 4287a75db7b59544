import os
from typing import Optional, Sequence

import pandas as pd

BANK_COLUMNS = [
    "age",
    "job",
    "marital",
    "education",
    "default",
    "balance",
    "housing",
    "loan",
    "contact",
    "day",
    "month",
    "duration",
    "campaign",
    "pdays",
    "previous",
    "poutcome",
    "Class",
]


class DataUnavailableError(IOError):
    """Raised when the marketing CSV cannot be fetched or parsed."""


def _is_remote(source: str) -> bool:
    return str(source).startswith(("http://", "https://", "ftp://"))


class DataLoader:
    """
    Handles loading and column validation of the bank marketing dataset.
    """

    def __init__(self, source: str, expected_columns: Optional[Sequence[str]] = None):
        """
        Initialize DataLoader with a CSV path or URL and the columns it must carry.
        """
        self.source = str(source)
        self.expected_columns = list(expected_columns) if expected_columns is not None else list(BANK_COLUMNS)

    def read_csv(self) -> pd.DataFrame:
        if not _is_remote(self.source) and not os.path.exists(self.source):
            raise DataUnavailableError(f"File not found: {self.source}")

        try:
            df = pd.read_csv(self.source)
        except (OSError, pd.errors.EmptyDataError, pd.errors.ParserError, UnicodeDecodeError) as e:
            raise DataUnavailableError(f"Could not read dataset from {self.source}: {e}") from e

        if df.empty:
            raise DataUnavailableError(f"Dataset at {self.source} has no rows.")
        return df

    def load_data(self) -> pd.DataFrame:
        """
        Load dataset from CSV and perform basic validation.
        """
        df = self.read_csv()
        print(f"[INFO] Loaded dataset — Rows: {df.shape[0]}, Columns: {df.shape[1]}")

        missing_cols = [c for c in self.expected_columns if c not in df.columns]
        if missing_cols:
            raise ValueError(f"Missing expected columns: {missing_cols}")

        print("[INFO] Column validation passed.")
        return df


def explore(df: pd.DataFrame) -> None:
    """Print column names, the first rows and a summary of the dataset."""
    print("[INFO] Columns:")
    print(list(df.columns))
    print("\n[INFO] First rows:")
    print(df.head())
    print("\n[INFO] Summary:")
    print(df.describe(include="all").T)
