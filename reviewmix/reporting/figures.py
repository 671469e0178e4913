from __future__ import annotations

import os
import tempfile
from pathlib import Path

import numpy as np
import pandas as pd

# Matplotlib must be configured before importing pyplot.
_mpl_cache_dir = Path(tempfile.gettempdir()) / "matplotlib"
_mpl_cache_dir.mkdir(parents=True, exist_ok=True)
os.environ.setdefault("MPLCONFIGDIR", str(_mpl_cache_dir))

import matplotlib  # noqa: E402

matplotlib.use("Agg")
import matplotlib.pyplot as plt  # noqa: E402


def save_figure(fig, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(path, dpi=300, bbox_inches="tight")
    plt.close(fig)


def plot_genre_trends(lines: pd.DataFrame, path: Path) -> None:
    """Fitted score by year per genre, with pointwise confidence bands."""

    fig, ax = plt.subplots(figsize=(9, 6))
    for genre, g in lines.groupby("genre", sort=False):
        line = ax.plot(g["publication_year"], g["fitted"], linewidth=2, label=genre)[0]
        ax.fill_between(g["publication_year"], g["ci_low"], g["ci_high"], color=line.get_color(), alpha=0.15)
    model_id = lines["model_id"].iloc[0] if len(lines) else ""
    ax.set_title(f"Fitted Score by Year and Genre ({model_id})")
    ax.set_xlabel("Publication year")
    ax.set_ylabel("Fitted score")
    ax.legend(fontsize=8, ncol=2)
    fig.tight_layout()
    save_figure(fig, path)


def plot_genre_mix(mix: pd.DataFrame, path: Path) -> None:
    wide = mix.pivot(index="publication_year", columns="genre", values="share_pct").fillna(0.0)
    fig, ax = plt.subplots(figsize=(10, 6))
    ax.stackplot(wide.index.to_numpy(), wide.to_numpy().T, labels=list(wide.columns))
    ax.set_title("Genre Mix of Reviews by Year")
    ax.set_xlabel("Publication year")
    ax.set_ylabel("Share of reviews (%)")
    ax.set_ylim(0, 100)
    ax.legend(fontsize=8, loc="upper left", bbox_to_anchor=(1.0, 1.0))
    fig.tight_layout()
    save_figure(fig, path)


def plot_low_score_rate(rate: pd.DataFrame, threshold: float, path: Path) -> None:
    fig, ax = plt.subplots(figsize=(8, 5))
    ax.plot(rate["publication_year"], rate["percent_low"], marker="o", linewidth=2)
    ax.set_title(f"Reviews Scoring Below {threshold:g} by Year")
    ax.set_xlabel("Publication year")
    ax.set_ylabel("Percent of reviews")
    ax.set_ylim(bottom=0)
    fig.tight_layout()
    save_figure(fig, path)


def plot_model_comparison(ranking: pd.DataFrame, path: Path) -> None:
    finite = ranking.loc[np.isfinite(ranking["delta_aicc"].astype(float))]
    fig, ax = plt.subplots(figsize=(8, 5))
    ax.barh(finite["model_id"], finite["delta_aicc"])
    ax.invert_yaxis()
    ax.set_title("Model Comparison (delta AICc from best)")
    ax.set_xlabel("delta AICc")
    fig.tight_layout()
    save_figure(fig, path)
