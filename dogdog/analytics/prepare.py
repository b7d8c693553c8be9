from __future__ import annotations

"""Load the session history and compute derived metrics and summaries."""

from pathlib import Path
from typing import Any, Dict

import pandas as pd

from ..stats.history import load_history
from .config import AnalyticsConfig
from .metrics import compute_metrics
from .smoothing import ewma_by_session


def load_and_prepare(data_dir: Path, cfg: AnalyticsConfig) -> pd.DataFrame:
    """Read the history table, compute metrics, and add a stable session index 'session_idx'."""
    df = load_history(data_dir)
    df = df.sort_values(["session_start", "session_id"], kind="stable")
    df = compute_metrics(df, cfg)
    df["session_idx"] = pd.factorize(df["session_id"])[0]
    return df


def path_summary(df: pd.DataFrame, cfg: AnalyticsConfig) -> Dict[str, Dict[str, Any]]:
    """Per-path overview for a parent-facing report.

    Keys: sessions, questions, accuracy, mastery (latest smoothed value),
    trend (latest smoothed minus first smoothed), furthest checkpoint.
    """
    if df.empty:
        return {}
    for col in ("mastery", "acc"):
        df = ewma_by_session(df, value_col=col, span=cfg.smoothing_span, group_cols=["path"])
    out: Dict[str, Dict[str, Any]] = {}
    for path, g in df.groupby("path", observed=True):
        g = g.sort_values("session_idx")
        questions = int(g["questions"].sum())
        correct = int(g["correct"].sum())
        reached = g["checkpoint"].dropna()
        out[str(path)] = {
            "sessions": int(len(g)),
            "questions": questions,
            "accuracy": round(correct / questions, 3) if questions else 0.0,
            "mastery": round(float(g["mastery_smooth"].iloc[-1]), 3),
            "trend": round(float(g["mastery_smooth"].iloc[-1] - g["mastery_smooth"].iloc[0]), 3),
            "checkpoint": str(reached.iloc[-1]) if not reached.empty else None,
        }
    return out
