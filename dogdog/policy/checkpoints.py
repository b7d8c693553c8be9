from __future__ import annotations

"""Checkpoint track: ordered checkpoints per path and which are completed."""

from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from ..models.enums import Checkpoint, PathType, parse_enum
from ..models.progress import PathProgress

DEFAULT_THRESHOLDS: Tuple[Tuple[Checkpoint, int], ...] = (
    (Checkpoint.CHIHUAHUA, 10),
    (Checkpoint.PUG, 25),
    (Checkpoint.COCKER_SPANIEL, 50),
    (Checkpoint.GERMAN_SHEPHERD, 75),
    (Checkpoint.GREAT_DANE, 100),
)


def thresholds_from_config(cfg: Mapping[str, Any], path: PathType) -> Tuple[Tuple[Checkpoint, int], ...]:
    """Resolve the (checkpoint, threshold) pairs for `path` from the `checkpoints` config section."""
    section = dict(cfg.get("checkpoints", {}) or {})
    paths = section.get("paths", {}) or {}
    raw = paths.get(path.value) or section.get("default")
    if not raw:
        return DEFAULT_THRESHOLDS
    pairs = [(parse_enum(Checkpoint, k), int(v)) for k, v in dict(raw).items()]
    pairs.sort(key=lambda p: p[0].order)
    return tuple(pairs)


class CheckpointTrack:
    """State machine over one path's checkpoints.

    The completed set never shrinks. `current` only moves forward: completing
    an earlier checkpoint after a later one is recorded but leaves `current`
    where it is.
    """

    def __init__(self, thresholds: Sequence[Tuple[Checkpoint, int]] = DEFAULT_THRESHOLDS) -> None:
        pairs = list(thresholds)
        if not pairs:
            raise ValueError("A checkpoint track needs at least one checkpoint")
        prev_cp: Optional[Checkpoint] = None
        prev_threshold = 0
        for cp, threshold in pairs:
            if threshold <= prev_threshold:
                raise ValueError(f"Thresholds must be positive and strictly increasing (at {cp.value}: {threshold})")
            if prev_cp is not None and cp.order <= prev_cp.order:
                raise ValueError(f"Checkpoints must follow path order ({prev_cp.value} before {cp.value})")
            prev_cp, prev_threshold = cp, threshold
        self._pairs: List[Tuple[Checkpoint, int]] = pairs
        self._thresholds: Dict[Checkpoint, int] = dict(pairs)
        self._completed: set = set()
        self._current: Optional[Checkpoint] = None

    @classmethod
    def from_progress(
        cls,
        progress: PathProgress,
        thresholds: Sequence[Tuple[Checkpoint, int]] = DEFAULT_THRESHOLDS,
    ) -> "CheckpointTrack":
        track = cls(thresholds)
        for cp in sorted(progress.completed_checkpoints, key=lambda c: c.order):
            if cp in track._thresholds:
                track.complete_checkpoint(cp)
        return track

    # --- read-only views ---

    @property
    def checkpoints(self) -> List[Checkpoint]:
        return [cp for cp, _ in self._pairs]

    @property
    def final_checkpoint(self) -> Checkpoint:
        return self._pairs[-1][0]

    @property
    def completed(self) -> frozenset:
        return frozenset(self._completed)

    @property
    def current(self) -> Optional[Checkpoint]:
        return self._current

    @property
    def last_completed(self) -> Optional[Checkpoint]:
        done = [cp for cp in self.checkpoints if cp in self._completed]
        return done[-1] if done else None

    @property
    def is_complete(self) -> bool:
        return len(self._completed) == len(self._pairs) and self._current == self.final_checkpoint

    def __contains__(self, checkpoint: object) -> bool:
        return checkpoint in self._thresholds

    def threshold_for(self, checkpoint: Checkpoint) -> int:
        try:
            return self._thresholds[checkpoint]
        except KeyError:
            raise ValueError(f"{checkpoint.value} is not on this track") from None

    def next_checkpoint(self, answered_count: int) -> Optional[Checkpoint]:
        for cp, threshold in self._pairs:
            if threshold > answered_count:
                return cp
        return None

    def questions_remaining(self, answered_count: int) -> int:
        nxt = self.next_checkpoint(answered_count)
        if nxt is None:
            return 0
        return max(0, self._thresholds[nxt] - answered_count)

    def progress_to_next(self, answered_count: int) -> float:
        nxt = self.next_checkpoint(answered_count)
        if nxt is None:
            return 1.0
        index = self.checkpoints.index(nxt)
        start = self._pairs[index - 1][1] if index > 0 else 0
        span = self._thresholds[nxt] - start
        return max(0.0, min(1.0, (answered_count - start) / span))

    def due_checkpoints(self, answered_count: int) -> List[Checkpoint]:
        return [cp for cp, threshold in self._pairs if threshold <= answered_count and cp not in self._completed]

    # --- transitions ---

    def complete_checkpoint(self, checkpoint: Checkpoint) -> None:
        if checkpoint not in self._thresholds:
            raise ValueError(f"{checkpoint.value} is not on this track")
        self._completed.add(checkpoint)
        if self._current is None or checkpoint.order >= self._current.order:
            self._current = checkpoint

    def segment_display(self, answered_count: int) -> str:
        nxt = self.next_checkpoint(answered_count)
        if nxt is None:
            return "Path Completed!"
        index = self.checkpoints.index(nxt)
        start = self._pairs[index - 1][1] if index > 0 else 0
        return f"{answered_count - start}/{self._thresholds[nxt] - start} questions to {nxt.display_name}"
