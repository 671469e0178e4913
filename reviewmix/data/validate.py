from typing import Iterable


def assert_required_columns(df, required: Iterable[str]) -> None:
    missing = [c for c in required if c not in df.columns]
    if missing:
        raise ValueError(f"Missing required columns: {missing}")


def assert_non_empty(df, what: str = "input") -> None:
    if len(df) == 0:
        raise ValueError(f"Empty {what}: at least one row is required.")
