from __future__ import annotations

from pathlib import Path
from typing import Dict

from reviewmix.models.comparison import ComparisonReport
from reviewmix.utils.logging import write_json


def write_comparison_tables(report: ComparisonReport, tables_dir: Path) -> Dict[str, Path]:
    """Write the ranked model table and per-genre coefficient tables as CSV."""

    tables_dir.mkdir(parents=True, exist_ok=True)
    paths = {
        "model_ranking": tables_dir / "model_ranking.csv",
        "model_table": tables_dir / "model_table.csv",
        "genre_trends_selected": tables_dir / "genre_trends_selected.csv",
    }
    report.ranking.to_csv(paths["model_ranking"], index=False)
    report.model_table().to_csv(paths["model_table"], index=False)
    report.genre_trends.to_csv(paths["genre_trends_selected"], index=False)

    if not report.interaction_trends.empty:
        paths["genre_trends_interaction"] = tables_dir / "genre_trends_interaction.csv"
        report.interaction_trends.to_csv(paths["genre_trends_interaction"], index=False)

    return paths


def write_comparison_summary(report: ComparisonReport, path: Path) -> Path:
    write_json(path, report.summary())
    return path
