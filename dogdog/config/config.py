from __future__ import annotations

"""Configuration loading and validation for DogDog.

This module loads YAML configuration, applies defaults, and validates
enum-like values and checkpoint tables.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from ..models.enums import Checkpoint, PathType, parse_enum

logger = logging.getLogger(__name__)

ALLOWED_BACKENDS = {"json", "memory"}
ALLOWED_LOCALES = {"de", "en", "es"}
ALLOWED_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}

DEFAULT_PATH = Path(__file__).with_name("defaults.yml")


def _load_yaml(path: Path) -> Dict[str, Any]:
    with path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def load_config(path: Optional[str] = None) -> Dict[str, Any]:
    """Load configuration from YAML or defaults.

    Args:
        path: Optional path to a YAML config. If None, use package defaults.

    Returns:
        A dictionary with configuration values.

    Raises:
        FileNotFoundError: if an explicit `path` does not exist.
    """
    if path:
        p = Path(path)
        if not p.exists():
            raise FileNotFoundError(f"Config file not found: {p}")
        return _load_yaml(p)
    return _load_yaml(DEFAULT_PATH)


def _validate_thresholds(raw: Any, where: str) -> Optional[Dict[str, int]]:
    """Normalize a checkpoint -> threshold table; None (with a warning) if unusable."""
    if not isinstance(raw, dict) or not raw:
        logger.warning("Ignoring empty checkpoint table at %s", where)
        return None
    try:
        pairs = sorted(
            ((parse_enum(Checkpoint, k), int(v)) for k, v in raw.items()),
            key=lambda p: p[0].order,
        )
    except (TypeError, ValueError) as e:
        logger.warning("Ignoring checkpoint table at %s: %s", where, e)
        return None
    prev = 0
    for cp, threshold in pairs:
        if threshold <= prev:
            logger.warning("Ignoring checkpoint table at %s: thresholds must increase (%s)", where, cp.value)
            return None
        prev = threshold
    return {cp.value: threshold for cp, threshold in pairs}


def validate_config(cfg: Dict[str, Any]) -> Dict[str, Any]:
    """Apply defaults and validate configuration values.

    Unknown enum-like values fall back to their defaults with a warning.

    Args:
        cfg: The raw configuration dictionary.

    Returns:
        The validated and merged configuration dictionary.
    """
    # Shallow defaults for missing sections
    for section in ("game", "difficulty", "rewards", "checkpoints", "content", "storage", "stats", "logging"):
        if not isinstance(cfg.get(section), dict):
            cfg[section] = {}

    game = cfg["game"]
    difficulty = cfg["difficulty"]
    rewards = cfg["rewards"]
    checkpoints = cfg["checkpoints"]
    storage = cfg["storage"]
    stats = cfg["stats"]
    log_cfg = cfg["logging"]

    game.setdefault("batch_size", 10)
    game.setdefault("default_locale", "de")
    game.setdefault("extra_time_seconds", 10)

    difficulty.setdefault("questions_per_level", 10)
    difficulty.setdefault("max_level", 5)
    difficulty.setdefault("streak_block", 3)
    difficulty.setdefault("streak_step", 0.1)
    difficulty.setdefault("mistake_step", 0.15)
    difficulty.setdefault("max_shift", 0.5)

    rewards.setdefault("bonus_accuracy_threshold", 0.8)

    checkpoints.setdefault("default", None)
    checkpoints.setdefault("paths", {})

    cfg["content"].setdefault("questions_path", None)

    storage.setdefault("backend", "json")
    storage.setdefault("data_path", "./dogdog_data/progress.json")

    stats.setdefault("history_dir", "./dogdog_data/history")
    stats.setdefault("smoothing_span", 5)

    log_cfg.setdefault("level", "WARNING")

    # Enum validations
    if storage.get("backend") not in ALLOWED_BACKENDS:
        logger.warning("Unsupported storage backend '%s', using 'json'.", storage.get("backend"))
        storage["backend"] = "json"

    if game.get("default_locale") not in ALLOWED_LOCALES:
        logger.warning("Unsupported locale '%s', using 'de'.", game.get("default_locale"))
        game["default_locale"] = "de"

    level = str(log_cfg.get("level", "WARNING")).upper()
    if level not in ALLOWED_LOG_LEVELS:
        logger.warning("Unsupported log level '%s', using 'WARNING'.", log_cfg.get("level"))
        level = "WARNING"
    log_cfg["level"] = level

    if int(game.get("batch_size", 10)) < 1:
        logger.warning("batch_size must be >= 1; using 10.")
        game["batch_size"] = 10

    if int(difficulty.get("questions_per_level", 10)) < 1:
        logger.warning("questions_per_level must be >= 1; using 10.")
        difficulty["questions_per_level"] = 10

    threshold = float(rewards.get("bonus_accuracy_threshold", 0.8))
    if not 0.0 <= threshold <= 1.0:
        logger.warning("bonus_accuracy_threshold must be in [0, 1]; using 0.8.")
        threshold = 0.8
    rewards["bonus_accuracy_threshold"] = threshold

    # Checkpoint tables
    if checkpoints.get("default") is not None:
        checkpoints["default"] = _validate_thresholds(checkpoints["default"], "checkpoints.default")
    paths: Dict[str, Dict[str, int]] = {}
    for key, table in dict(checkpoints.get("paths") or {}).items():
        try:
            path = parse_enum(PathType, key)
        except ValueError:
            logger.warning("Ignoring checkpoints for unknown path '%s'.", key)
            continue
        valid = _validate_thresholds(table, f"checkpoints.paths.{key}")
        if valid is not None:
            paths[path.value] = valid
    checkpoints["paths"] = paths

    return cfg
