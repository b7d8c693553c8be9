from __future__ import annotations

"""Analytics configuration (hyperparameters) using Pydantic."""

from pydantic import BaseModel, Field


class AnalyticsConfig(BaseModel):
    """Hyperparameters for session metrics and smoothing.

    - alpha: pace penalty scale (>0)
    - pace_ref_s: reference seconds per question (>0)
    - power_up_weight: penalty per power-up used per question (>=0)
    - lives_weight: penalty per life lost per question (>=0)
    - smoothing_span: EWMA span in sessions (>1)
    """

    alpha: float = Field(0.5, gt=0)
    pace_ref_s: float = Field(20.0, gt=0)
    power_up_weight: float = Field(0.25, ge=0)
    lives_weight: float = Field(0.5, ge=0)
    smoothing_span: int = Field(5, gt=1)

    @classmethod
    def from_config(cls, cfg) -> "AnalyticsConfig":
        stats = dict(cfg.get("stats", {}) or {})
        return cls(smoothing_span=int(stats.get("smoothing_span", 5)))
