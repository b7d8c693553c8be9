from __future__ import annotations

"""Smoothing utilities (EWMA by session)."""

import pandas as pd


def ewma_by_session(
    df: pd.DataFrame,
    value_col: str,
    span: int,
    group_cols: list[str] | None = None,
) -> pd.DataFrame:
    """EWMA of `value_col` per group over session order.

    Returns a copy sorted by session_idx with a new column f"{value_col}_smooth".
    """
    g = df.sort_values("session_idx").copy()
    if not group_cols:
        g[f"{value_col}_smooth"] = g[value_col].ewm(span=span).mean().astype("float32").values
        return g
    smooth = g.groupby(group_cols, observed=True)[value_col].transform(lambda s: s.ewm(span=span).mean())
    g[f"{value_col}_smooth"] = smooth.astype("float32")
    return g
