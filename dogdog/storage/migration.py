from __future__ import annotations

"""One-time upgrade of legacy save data to the current document schema.

Older saves used enum strings like ``PathType.dogBreeds`` (in keys and
values), epoch-millisecond timestamps, percentage accuracies, and had no
``completedCheckpoints`` or ``trackPosition``. Each document is upgraded and
re-validated; anything that still fails validation is dropped.
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from pydantic import ValidationError

from ..models.enums import Checkpoint, PathType, PowerUpType, parse_enum
from ..policy.checkpoints import DEFAULT_THRESHOLDS
from .backends import KeyValueBackend
from .schema import DATA_VERSION, GameSessionRecord, GlobalStatsRecord, PathProgressRecord

logger = logging.getLogger(__name__)

PATH_PROGRESS_PREFIX = "path_progress_"
CURRENT_SESSION_KEY = "current_session"
GLOBAL_STATS_KEY = "global_stats"
DATA_VERSION_KEY = "data_version"
MIGRATION_FLAG_KEY = "checkpoint_migration_v1"

_PLAY_COUNT_PREFIX = "pathPlayCount_"

ThresholdLookup = Callable[[PathType], Sequence[Tuple[Checkpoint, int]]]


@dataclass
class MigrationReport:
    skipped: bool = False
    migrated: List[str] = field(default_factory=list)
    dropped: List[str] = field(default_factory=list)


def path_progress_key(path: PathType) -> str:
    return f"{PATH_PROGRESS_PREFIX}{path.value}"


def _timestamp(value: Any) -> Any:
    # epoch millis from older saves; unrepresentable values count as missing
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return datetime.fromtimestamp(value / 1000.0, tz=timezone.utc).isoformat()
        except (OverflowError, OSError, ValueError):
            logger.warning("Ignoring unreadable legacy timestamp %r", value)
            return None
    return value


def _ratio(value: Any) -> float:
    v = float(value or 0.0)
    return v / 100.0 if v > 1.0 else v


def _optional_enum(enum_cls, value):
    if value in (None, "", "null"):
        return None
    try:
        return parse_enum(enum_cls, value).value
    except ValueError:
        return None


def _power_up_counts(raw: Any) -> Dict[str, int]:
    out: Dict[str, int] = {}
    for key, count in dict(raw or {}).items():
        try:
            out[parse_enum(PowerUpType, key).value] = int(count)
        except ValueError:
            logger.warning("Dropping unknown power-up %r from legacy save", key)
    return out


def upgrade_path_progress(
    data: Dict[str, Any],
    path: PathType,
    thresholds: Sequence[Tuple[Checkpoint, int]] = DEFAULT_THRESHOLDS,
) -> Dict[str, Any]:
    """Return a current-format PathProgress document for `data`. Current documents pass through."""
    out = dict(data)
    out["pathType"] = path.value
    out["powerUpInventory"] = _power_up_counts(data.get("powerUpInventory"))
    out["lastPlayed"] = _timestamp(data.get("lastPlayed")) or datetime.now(timezone.utc).isoformat()
    out["bestAccuracy"] = _ratio(data.get("bestAccuracy"))
    correct = int(data.get("correctAnswers", 0) or 0)

    if "completedCheckpoints" in data:
        completed = [parse_enum(Checkpoint, c).value for c in data.get("completedCheckpoints") or []]
        current = _optional_enum(Checkpoint, data.get("currentCheckpoint"))
    else:
        # legacy saves always carried a current checkpoint; derive from answers instead
        reached = [cp for cp, threshold in thresholds if correct >= threshold]
        completed = [cp.value for cp in reached]
        current = reached[-1].value if reached else None
    out["completedCheckpoints"] = completed
    out["currentCheckpoint"] = current
    out.setdefault("trackPosition", correct)
    return out


def upgrade_session(data: Dict[str, Any]) -> Dict[str, Any]:
    out = dict(data)
    raw_path = data.get("pathType", data.get("currentPath"))
    out.pop("currentPath", None)
    out["pathType"] = _optional_enum(PathType, raw_path)
    out["powerUpsUsed"] = _power_up_counts(data.get("powerUpsUsed"))
    out["sessionStart"] = _timestamp(data.get("sessionStart")) or datetime.now(timezone.utc).isoformat()
    return out


def upgrade_global_stats(data: Dict[str, Any]) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    counts: Dict[str, int] = {}
    for key, value in data.items():
        if key.startswith(_PLAY_COUNT_PREFIX):
            path = _optional_enum(PathType, key[len(_PLAY_COUNT_PREFIX):])
            if path is not None:
                counts[path] = counts.get(path, 0) + int(value or 0)
        else:
            out[key] = value
    for path, value in dict(data.get("pathPlayCounts") or {}).items():
        parsed = _optional_enum(PathType, path)
        if parsed is not None:
            counts[parsed] = counts.get(parsed, 0) + int(value or 0)
    out["pathPlayCounts"] = counts
    out["favoritePathType"] = _optional_enum(PathType, data.get("favoritePathType"))
    out["bestOverallAccuracy"] = _ratio(data.get("bestOverallAccuracy"))
    if data.get("lastPlayDate") is not None:
        out["lastPlayDate"] = _timestamp(data.get("lastPlayDate"))
    return out


def _decode(raw: Optional[str]) -> Dict[str, Any]:
    data = json.loads(raw or "")
    if not isinstance(data, dict):
        raise ValueError("document is not a JSON object")
    return data


def migrate_backend(
    backend: KeyValueBackend,
    thresholds_for: Optional[ThresholdLookup] = None,
) -> MigrationReport:
    """Upgrade every legacy document in `backend` once; later calls are no-ops."""
    if backend.get(MIGRATION_FLAG_KEY) == "true":
        return MigrationReport(skipped=True)
    lookup = thresholds_for or (lambda _path: DEFAULT_THRESHOLDS)
    report = MigrationReport()

    keys = backend.keys()
    # canonical keys first so they win over legacy duplicates
    progress_keys = sorted(
        (k for k in keys if k.startswith(PATH_PROGRESS_PREFIX)),
        key=lambda k: "." in k,
    )
    written: set = set()
    for key in progress_keys:
        suffix = key[len(PATH_PROGRESS_PREFIX):]
        try:
            path = parse_enum(PathType, suffix)
            target = path_progress_key(path)
            if target in written:
                raise ValueError(f"superseded by {target}")
            doc = upgrade_path_progress(_decode(backend.get(key)), path, lookup(path))
            record = PathProgressRecord.model_validate(doc)
        except (ValueError, TypeError, OverflowError, RecursionError, ValidationError) as e:
            logger.warning("Dropping unreadable save entry %s: %s", key, e)
            backend.delete(key)
            report.dropped.append(key)
            continue
        backend.set(target, record.to_json())
        written.add(target)
        if target != key:
            backend.delete(key)
        report.migrated.append(key)

    for key, upgrade, model in (
        (CURRENT_SESSION_KEY, upgrade_session, GameSessionRecord),
        (GLOBAL_STATS_KEY, upgrade_global_stats, GlobalStatsRecord),
    ):
        raw = backend.get(key)
        if raw is None:
            continue
        try:
            record = model.model_validate(upgrade(_decode(raw)))
        except (ValueError, TypeError, OverflowError, RecursionError, ValidationError) as e:
            logger.warning("Dropping unreadable save entry %s: %s", key, e)
            backend.delete(key)
            report.dropped.append(key)
            continue
        backend.set(key, record.to_json())
        report.migrated.append(key)

    backend.set(DATA_VERSION_KEY, str(DATA_VERSION))
    backend.set(MIGRATION_FLAG_KEY, "true")
    logger.info("Save data migrated (%d upgraded, %d dropped)", len(report.migrated), len(report.dropped))
    return report
