from .config import AnalyticsConfig
from .metrics import compute_metrics
from .prepare import load_and_prepare, path_summary
from .smoothing import ewma_by_session

__all__ = ["AnalyticsConfig", "compute_metrics", "load_and_prepare", "path_summary", "ewma_by_session"]
