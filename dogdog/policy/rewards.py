from __future__ import annotations

"""Power-up rewards granted when a checkpoint is completed."""

import math
from typing import Dict, Iterable, Optional

from ..models.enums import Checkpoint, PowerUpType, require_exhaustive
from ..models.rewards import RewardBundle

BONUS_ACCURACY_THRESHOLD = 0.8

_F, _H, _E, _S, _C = (
    PowerUpType.FIFTY_FIFTY,
    PowerUpType.HINT,
    PowerUpType.EXTRA_TIME,
    PowerUpType.SKIP,
    PowerUpType.SECOND_CHANCE,
)

# Guaranteed rewards per checkpoint. skip and secondChance are introduced later
# along the path; once a count is non-zero it never decreases.
BASE_REWARDS: Dict[Checkpoint, RewardBundle] = {
    Checkpoint.CHIHUAHUA: RewardBundle({_F: 2, _H: 2, _E: 1, _S: 0, _C: 0}),
    Checkpoint.PUG: RewardBundle({_F: 2, _H: 2, _E: 1, _S: 1, _C: 0}),
    Checkpoint.COCKER_SPANIEL: RewardBundle({_F: 2, _H: 2, _E: 2, _S: 1, _C: 0}),
    Checkpoint.GERMAN_SHEPHERD: RewardBundle({_F: 2, _H: 2, _E: 2, _S: 2, _C: 1}),
    Checkpoint.GREAT_DANE: RewardBundle({_F: 3, _H: 3, _E: 3, _S: 3, _C: 3}),
    Checkpoint.DEUTSCHE_DOGGE: RewardBundle({_F: 4, _H: 4, _E: 4, _S: 4, _C: 4}),
}
require_exhaustive(BASE_REWARDS, Checkpoint, "BASE_REWARDS")


def _clamp_accuracy(accuracy: float) -> float:
    value = float(accuracy)
    if math.isnan(value):
        return 0.0
    return max(0.0, min(1.0, value))


class RewardTable:
    """Pure lookup from (checkpoint, accuracy) to a RewardBundle.

    Accuracy is a ratio in [0, 1]. Reaching `bonus_threshold` adds a flat +1 of
    every power-up type; higher accuracy earns nothing more.
    """

    def __init__(self, bonus_threshold: float = BONUS_ACCURACY_THRESHOLD) -> None:
        self.bonus_threshold = float(bonus_threshold)

    @classmethod
    def from_config(cls, cfg) -> "RewardTable":
        rewards = dict(cfg.get("rewards", {}) or {})
        return cls(bonus_threshold=float(rewards.get("bonus_accuracy_threshold", BONUS_ACCURACY_THRESHOLD)))

    def base_rewards(self, checkpoint: Checkpoint) -> RewardBundle:
        return BASE_REWARDS[checkpoint]

    def bonus_rewards(self, accuracy: float) -> RewardBundle:
        if _clamp_accuracy(accuracy) >= self.bonus_threshold:
            return RewardBundle.uniform(1)
        return RewardBundle.empty()

    def rewards_for(self, checkpoint: Checkpoint, accuracy: float) -> RewardBundle:
        return self.base_rewards(checkpoint) + self.bonus_rewards(accuracy)

    def total_reward_count(self, checkpoint: Checkpoint, accuracy: float) -> int:
        return self.rewards_for(checkpoint, accuracy).total

    def preview_bundles(self, checkpoint: Checkpoint) -> Dict[str, RewardBundle]:
        """Base rewards and the bonus a high-accuracy run would add, for display."""
        return {
            "base": self.base_rewards(checkpoint),
            "bonus": self.bonus_rewards(self.bonus_threshold),
        }

    def validate_distribution(self, order: Optional[Iterable[Checkpoint]] = None) -> bool:
        """Check the monotonic-introduction and final-checkpoint invariants along `order`."""
        checkpoints = list(order) if order is not None else list(Checkpoint)
        if not checkpoints:
            return False
        final = self.base_rewards(checkpoints[-1])
        if any(final[t] <= 0 for t in PowerUpType):
            return False
        for prev, cur in zip(checkpoints, checkpoints[1:]):
            before, after = self.base_rewards(prev), self.base_rewards(cur)
            for t in PowerUpType:
                if after[t] < before[t]:
                    return False
        return True
