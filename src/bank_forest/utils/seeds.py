# src/bank_forest/utils/seeds.py

"""
Helpers to pin the random generators so that partitions and forests are
reproducible between runs.
"""

import os
import random
import numpy as np

DEFAULT_SEED = int(os.getenv("SEED", 2022))


def set_global_seed(seed: int = DEFAULT_SEED) -> int:
    """
    Seed the random number generators used in the project.

    Parameters
    ----------
    seed : int
        Seed value.

    Returns
    -------
    int
        The seed actually used (so it can be logged to MLflow).
    """
    random.seed(seed)
    np.random.seed(seed)
    return seed


def make_rng(seed: int) -> np.random.RandomState:
    """Return an isolated generator; sampling never touches the global state."""
    return np.random.RandomState(seed)
