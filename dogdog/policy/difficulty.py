from __future__ import annotations

"""Difficulty progression: question count and performance -> tier weights."""

from dataclasses import dataclass
from typing import Any, Dict, Mapping

from ..models.enums import Checkpoint, Difficulty, require_exhaustive

TIERS = list(Difficulty)

# Base tier weights per level (easy, medium, hard, expert); levels >= 5 use the last row.
LEVEL_DISTRIBUTIONS: Dict[int, tuple] = {
    1: (0.8, 0.2, 0.0, 0.0),
    2: (0.6, 0.3, 0.1, 0.0),
    3: (0.4, 0.4, 0.15, 0.05),
    4: (0.3, 0.35, 0.25, 0.1),
    5: (0.2, 0.3, 0.35, 0.15),
}

CHECKPOINT_LEVELS = {
    Checkpoint.CHIHUAHUA: 1,
    Checkpoint.PUG: 2,
    Checkpoint.COCKER_SPANIEL: 3,
    Checkpoint.GERMAN_SHEPHERD: 4,
    Checkpoint.GREAT_DANE: 5,
    Checkpoint.DEUTSCHE_DOGGE: 6,
}
require_exhaustive(CHECKPOINT_LEVELS, Checkpoint, "CHECKPOINT_LEVELS")


def _normalize(weights: Dict[Difficulty, float]) -> Dict[Difficulty, float]:
    s = sum(max(0.0, w) for w in weights.values())
    if s <= 0:
        # fallback: uniform
        return {k: 1.0 / len(weights) for k in weights}
    return {k: max(0.0, w) / s for k, w in weights.items()}


def _shift(weights: Dict[Difficulty, float], amount: float) -> Dict[Difficulty, float]:
    """Move `abs(amount)` of each tier's mass to its neighbour.

    Positive amounts move mass toward harder tiers, negative toward easier ones.
    The boundary tier in the direction of the shift keeps its own mass.
    """
    if amount == 0:
        return dict(weights)
    values = [weights[t] for t in TIERS]
    out = list(values)
    frac = abs(amount)
    step = 1 if amount > 0 else -1
    for i, v in enumerate(values):
        j = i + step
        if 0 <= j < len(values):
            moved = v * frac
            out[i] -= moved
            out[j] += moved
    return dict(zip(TIERS, out))


@dataclass(frozen=True)
class DifficultyProgression:
    """Pure mapping from progress and performance signals to tier weights."""

    questions_per_level: int = 10
    max_level: int = 5
    streak_block: int = 3
    streak_step: float = 0.1
    mistake_step: float = 0.15
    max_shift: float = 0.5

    @classmethod
    def from_config(cls, cfg: Mapping[str, Any]) -> "DifficultyProgression":
        d = dict(cfg.get("difficulty", {}) or {})
        return cls(
            questions_per_level=int(d.get("questions_per_level", 10)),
            max_level=int(d.get("max_level", 5)),
            streak_block=int(d.get("streak_block", 3)),
            streak_step=float(d.get("streak_step", 0.1)),
            mistake_step=float(d.get("mistake_step", 0.15)),
            max_shift=float(d.get("max_shift", 0.5)),
        )

    def level_for_question_count(self, n: int) -> int:
        if n <= 0:
            return 1
        return min(self.max_level, 1 + (int(n) - 1) // self.questions_per_level)

    def level_for_checkpoint(self, checkpoint: Checkpoint) -> int:
        return min(self.max_level, CHECKPOINT_LEVELS[checkpoint])

    def base_distribution(self, level: int) -> Dict[Difficulty, float]:
        row = LEVEL_DISTRIBUTIONS[max(1, min(int(level), max(LEVEL_DISTRIBUTIONS)))]
        return dict(zip(TIERS, row))

    def target_distribution(self, level: int, streak: int = 0, recent_mistakes: int = 0) -> Dict[Difficulty, float]:
        """Base weights for `level`, tilted by the current streak and recent mistakes.

        Weights are non-negative and sum to 1.
        """
        harder = (max(0, int(streak)) // self.streak_block) * self.streak_step if self.streak_block > 0 else 0.0
        easier = max(0, int(recent_mistakes)) * self.mistake_step
        amount = max(-self.max_shift, min(self.max_shift, harder - easier))
        return _normalize(_shift(self.base_distribution(level), amount))
