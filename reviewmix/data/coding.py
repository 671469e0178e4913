from __future__ import annotations

import re
from typing import Dict, Mapping

import numpy as np
import pandas as pd


_NORMALIZE_RE = re.compile(r"[^0-9a-zA-Z]+")

_TRUE_VALUES = {"1", "true", "t", "yes", "y"}
_FALSE_VALUES = {"0", "false", "f", "no", "n"}


def _normalize_name(name: str) -> str:
    return _NORMALIZE_RE.sub("_", name).strip("_").lower()


def normalize_column_names(df: pd.DataFrame) -> Dict[str, str]:
    """Return a normalized-name -> exact-name mapping for df columns.

    This does not modify the DataFrame. It exists to support resilient lookups
    across dataset exports where column casing/spacing might differ.
    """

    mapping: Dict[str, str] = {}
    collisions: Dict[str, list[str]] = {}

    for col in df.columns.astype(str).tolist():
        norm = _normalize_name(col)
        if norm in mapping and mapping[norm] != col:
            collisions.setdefault(norm, sorted({mapping[norm], col}))
        mapping[norm] = col

    if collisions:
        raise ValueError(f"Normalized column name collisions: {collisions}")

    return mapping


def canonicalize_columns(df: pd.DataFrame, aliases: Mapping[str, str]) -> pd.DataFrame:
    """Rename columns to normalized snake_case, then apply ``aliases``.

    ``aliases`` maps a normalized source name (e.g. ``pub_year``) to the
    analysis name (e.g. ``publication_year``).
    """

    mapping = normalize_column_names(df)
    renames = {exact: aliases.get(norm, norm) for norm, exact in mapping.items()}
    targets = list(renames.values())
    dupes = sorted({t for t in targets if targets.count(t) > 1})
    if dupes:
        raise ValueError(f"Column aliases collide on: {dupes}")
    return df.rename(columns=renames)


def coerce_bool_flag(series: pd.Series) -> pd.Series:
    """Recode 0/1 or true/false spellings to pandas nullable boolean.

    NaN stays NA. Raises ValueError if unexpected non-missing values are observed.
    """

    s = series
    out = pd.Series(pd.NA, index=s.index, dtype="boolean")

    labels = s.map(_flag_label)

    is_true = labels.isin(_TRUE_VALUES)
    is_false = labels.isin(_FALSE_VALUES)
    is_na = s.isna()

    out.loc[is_true] = True
    out.loc[is_false] = False

    unexpected = s.loc[~(is_true | is_false | is_na)].unique()
    if len(unexpected) > 0:
        raise ValueError(
            "Unexpected values in boolean flag. "
            f"Observed unexpected values: {sorted(map(str, unexpected))}; "
            f"expected one of {sorted(_TRUE_VALUES | _FALSE_VALUES)}."
        )

    return out


def _flag_label(value):
    if pd.isna(value):
        return value
    if isinstance(value, (bool, np.bool_)):
        return "1" if value else "0"
    label = str(value).strip().lower()
    # Numeric exports sometimes arrive as "1.0"/"0.0".
    try:
        fv = float(label)
    except ValueError:
        return label
    if fv.is_integer():
        return str(int(fv))
    return label


def coerce_categorical(series: pd.Series) -> pd.Series:
    """Convert a Series to pandas categorical dtype with sorted string categories.

    Sorted categories make the first level (the treatment-coding reference)
    independent of row order.
    """

    s = series.astype("string").str.strip()
    s = s.replace("", pd.NA)
    levels = sorted(s.dropna().unique().tolist())
    values = s.astype(object).where(s.notna(), None)
    return pd.Series(pd.Categorical(values, categories=levels), index=series.index, name=series.name)


def summarize_missingness(df: pd.DataFrame) -> pd.DataFrame:
    """Return per-column missingness summary in stable column order."""

    n = len(df)
    rows = []
    for col in df.columns.astype(str).tolist():
        n_missing = int(df[col].isna().sum())
        missing_rate = round(n_missing / n, 6) if n else np.nan
        rows.append({"column": col, "n": n, "n_missing": n_missing, "missing_rate": missing_rate})
    return pd.DataFrame(rows)
