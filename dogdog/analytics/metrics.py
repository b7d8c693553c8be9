from __future__ import annotations

"""Metric computations for per-session analytics."""

import numpy as np
import pandas as pd

from .config import AnalyticsConfig


def compute_metrics(df: pd.DataFrame, cfg: AnalyticsConfig) -> pd.DataFrame:
    """Compute accuracy, pace, factors, and a composite mastery score.

    Returns a copy with added columns:
    - acc, pace_s, pace_factor, assist_factor, mastery
    """
    out = df.copy()
    q = out["questions"].astype("float32").where(out["questions"] > 0, other=1.0)
    out["acc"] = (out["correct"].astype("float32") / q).astype("float32")
    out["pace_s"] = (out["time_spent_s"].astype("float32") / q).astype("float32")

    # Pace factor: exp(-alpha * pace/pace_ref), 1.0 for instant answers
    out["pace_factor"] = np.exp(-float(cfg.alpha) * (out["pace_s"] / float(cfg.pace_ref_s))).astype("float32")

    # Assistance factor: 1/(1 + per-question power-up and lost-life penalties)
    weights = np.array([cfg.power_up_weight, cfg.lives_weight], dtype="float32")
    per_q = out[["power_ups_used", "lives_lost"]].astype("float32").to_numpy(copy=True) / q.to_numpy()[:, None]
    pen = (per_q * weights).sum(axis=1, dtype="float32")
    out["assist_factor"] = (1.0 / (1.0 + pen)).astype("float32")

    out["mastery"] = (out["acc"] * out["pace_factor"] * out["assist_factor"]).clip(0, 1).astype("float32")
    return out
