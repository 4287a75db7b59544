"""Utilities to load the marketing dataset and carve it into seeded partitions."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Tuple

import numpy as np
import pandas as pd

from bank_forest.data.data_loader import BANK_COLUMNS, DataLoader
from bank_forest.utils.seeds import make_rng

DESIGN_FRACTION = 0.1
TRAIN_FRACTION = 0.8
DESIGN_SEED = 2022
SPLIT_SEED = 1234


@dataclass(frozen=True)
class DatasetSchema:
    """Names the predictor columns and the binary label of the dataset."""

    predictors: list[str]
    target: str = "Class"
    positive_level: str = "yes"
    negative_level: str = "no"
    target_position: int = 17

    @property
    def columns(self) -> list[str]:
        return self.predictors + [self.target]

    @property
    def levels(self) -> list[str]:
        return [self.negative_level, self.positive_level]


DEFAULT_SCHEMA = DatasetSchema(predictors=BANK_COLUMNS[:16])


@dataclass(frozen=True)
class Partition:
    """Positional row indices of every subset, relative to the loaded table."""

    design: np.ndarray
    modeling: np.ndarray
    train: np.ndarray
    validation: np.ndarray

    def sizes(self) -> Dict[str, int]:
        return {
            "design": len(self.design),
            "modeling": len(self.modeling),
            "train": len(self.train),
            "validation": len(self.validation),
        }


def validate_schema(
    df: pd.DataFrame,
    schema: DatasetSchema = DEFAULT_SCHEMA,
    *,
    strict_order: bool = False,
) -> None:
    """Check the columns by name and the label levels; raise ValueError on mismatch."""
    missing = sorted(set(schema.columns) - set(df.columns))
    if missing:
        raise ValueError(f"Missing columns in dataframe: {missing}")

    if strict_order:
        position = list(df.columns).index(schema.target) + 1
        if position != schema.target_position:
            raise ValueError(
                f"Target '{schema.target}' found at column {position}, "
                f"expected column {schema.target_position}."
            )

    unexpected = sorted(set(df[schema.target].dropna().astype(str)) - set(schema.levels))
    if unexpected:
        raise ValueError(f"Unexpected levels in '{schema.target}': {unexpected}")


def load_dataframe(
    source: str,
    schema: DatasetSchema = DEFAULT_SCHEMA,
    *,
    strict_order: bool = False,
) -> pd.DataFrame:
    """Load the CSV and validate it against the schema."""
    df = DataLoader(source, expected_columns=schema.columns).load_data()
    validate_schema(df, schema, strict_order=strict_order)
    return df


def sample_indices(n_rows: int, fraction: float, seed: int) -> np.ndarray:
    """Draw floor(fraction * n_rows) distinct row positions with a seeded generator."""
    if not 0 < fraction < 1:
        raise ValueError(f"Fraction must lie strictly between 0 and 1, got {fraction}")
    size = int(np.floor(fraction * n_rows))
    if size == 0:
        raise ValueError(f"Sampling {fraction} of {n_rows} rows selects nothing.")
    return make_rng(seed).choice(n_rows, size=size, replace=False)


def _complement(n_rows: int, selected: np.ndarray) -> np.ndarray:
    mask = np.ones(n_rows, dtype=bool)
    mask[selected] = False
    return np.flatnonzero(mask)


def split_design_and_modeling(
    df: pd.DataFrame,
    *,
    design_fraction: float = DESIGN_FRACTION,
    seed: int = DESIGN_SEED,
) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """Separate the rows used to design the treatment from the modeling rows."""
    idx = sample_indices(len(df), design_fraction, seed)
    return df.iloc[idx], df.iloc[_complement(len(df), idx)]


def split_train_validation(
    df: pd.DataFrame,
    *,
    train_fraction: float = TRAIN_FRACTION,
    seed: int = SPLIT_SEED,
) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """Partition the modeling rows to keep a held-out validation set."""
    idx = sample_indices(len(df), train_fraction, seed)
    return df.iloc[idx], df.iloc[_complement(len(df), idx)]


def partition_dataset(
    df: pd.DataFrame,
    *,
    design_fraction: float = DESIGN_FRACTION,
    train_fraction: float = TRAIN_FRACTION,
    design_seed: int = DESIGN_SEED,
    split_seed: int = SPLIT_SEED,
) -> Partition:
    """Compute both split levels and return the indices of every subset."""
    n_rows = len(df)
    design = sample_indices(n_rows, design_fraction, design_seed)
    modeling = _complement(n_rows, design)

    train_pos = sample_indices(len(modeling), train_fraction, split_seed)
    validation_pos = _complement(len(modeling), train_pos)

    partition = Partition(
        design=design,
        modeling=modeling,
        train=modeling[train_pos],
        validation=modeling[validation_pos],
    )
    print(f"[INFO] Partition sizes: {partition.sizes()}")
    return partition


def take(df: pd.DataFrame, indices: np.ndarray, *, copy: bool = True) -> pd.DataFrame:
    subset = df.iloc[indices]
    return subset.copy() if copy else subset
