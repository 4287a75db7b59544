# src/bank_forest/utils/plots.py
from pathlib import Path
from typing import Optional

import matplotlib.pyplot as plt
import pandas as pd


def _finish(fig, out_path: Optional[str]):
    if out_path is not None:
        Path(out_path).parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(out_path, dpi=150, bbox_inches="tight")
        plt.close(fig)
    return fig


def plot_error_rate_curve(curve: pd.DataFrame, title: str, out_path: Optional[str] = None, log_y: bool = True):
    """
    Error rate versus number of trees, one line per column of ``curve``
    (OOB plus one per class), with the legend in a side panel.
    """
    fig, (ax, legend_ax) = plt.subplots(1, 2, figsize=(9, 4.5), gridspec_kw={"width_ratios": [4, 1]})
    for column in curve.columns:
        ax.plot(curve.index, curve[column], label=str(column))
    if log_y and (curve.to_numpy() > 0).all():
        ax.set_yscale("log")
    ax.set_xlabel("trees")
    ax.set_ylabel("Error")
    ax.set_title(title)

    legend_ax.axis("off")
    handles, labels = ax.get_legend_handles_labels()
    legend_ax.legend(handles, labels, loc="upper center", fontsize=8)
    return _finish(fig, out_path)


def plot_variable_importance(importances: pd.Series, title: str, out_path: Optional[str] = None, top: int = 20):
    """Horizontal bars of the ``top`` most important variables, largest on top."""
    ranked = importances.sort_values(ascending=False).head(top).iloc[::-1]
    fig, ax = plt.subplots(figsize=(7, max(3.0, 0.3 * len(ranked))))
    ax.barh(ranked.index.astype(str), ranked.to_numpy())
    ax.set_xlabel("Importance")
    ax.set_title(title)
    return _finish(fig, out_path)
