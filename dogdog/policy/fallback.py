from __future__ import annotations

"""Checkpoint fallback when a player runs out of lives."""

import logging
from dataclasses import dataclass, field
from typing import Any, Collection, Dict, List, Optional

from ..models.enums import Checkpoint, FallbackAction, PathType, PowerUpType, require_exhaustive
from ..models.question import Question
from ..models.rewards import RewardBundle
from ..models.session import MAX_LIVES
from ..samplers.question_pool import QuestionPool
from .checkpoints import CheckpointTrack
from .difficulty import DifficultyProgression

logger = logging.getLogger(__name__)

# Granted on every checkpoint reset, independent of RewardTable and accuracy.
CONSOLATION_BUNDLE = RewardBundle({t: 1 for t in PowerUpType})

_CHECKPOINT_MESSAGES = {
    Checkpoint.CHIHUAHUA: "Don't worry! You've been reset to the Chihuahua checkpoint. "
    "Your progress and power-ups have been restored. Keep going!",
    Checkpoint.PUG: "You've been reset to the Pug checkpoint. "
    "Your earned power-ups are still with you. Keep pushing forward!",
    Checkpoint.COCKER_SPANIEL: "You've been reset to the Cocker Spaniel checkpoint. "
    "Your earned power-ups are still with you. Try again!",
    Checkpoint.GERMAN_SHEPHERD: "Back to the German Shepherd checkpoint! "
    "You've kept all your earned power-ups. You can do this!",
    Checkpoint.GREAT_DANE: "Reset to the Great Dane checkpoint. "
    "You're so close to the end! Use your power-ups wisely.",
    Checkpoint.DEUTSCHE_DOGGE: "You've reached the final checkpoint! "
    "All your power-ups are restored. One more push to victory!",
}
require_exhaustive(_CHECKPOINT_MESSAGES, Checkpoint, "fallback messages")

ERROR_MESSAGE = "An error occurred. Please restart the game."


@dataclass(frozen=True)
class FallbackResult:
    action: FallbackAction
    restored_lives: int
    message: str
    checkpoint: Optional[Checkpoint] = None
    awarded_power_ups: RewardBundle = field(default_factory=RewardBundle.empty)

    @classmethod
    def reset_to_checkpoint(cls, checkpoint: Checkpoint, awarded: RewardBundle) -> "FallbackResult":
        return cls(
            action=FallbackAction.RESET_TO_CHECKPOINT,
            checkpoint=checkpoint,
            restored_lives=MAX_LIVES,
            awarded_power_ups=awarded,
            message=_CHECKPOINT_MESSAGES[checkpoint],
        )

    @classmethod
    def restart_from_beginning(cls, path: PathType) -> "FallbackResult":
        return cls(
            action=FallbackAction.RESTART_FROM_BEGINNING,
            restored_lives=MAX_LIVES,
            message=(
                f"Starting fresh on the {path.display_name} path. "
                "You haven't reached any checkpoints yet, but every expert started here. "
                "Good luck on your treasure hunt!"
            ),
        )

    @classmethod
    def error(cls, message: str = ERROR_MESSAGE) -> "FallbackResult":
        return cls(action=FallbackAction.ERROR, restored_lives=MAX_LIVES, message=message)

    def to_json(self) -> Dict[str, Any]:
        return {
            "action": self.action.value,
            "checkpoint": self.checkpoint.value if self.checkpoint else None,
            "restoredLives": self.restored_lives,
            "awardedPowerUps": self.awarded_power_ups.to_json(),
            "message": self.message,
        }


class FallbackPolicy:
    """Decides between resuming at the last completed checkpoint and restarting the path.

    Holds only its injected collaborators, so a decision is a function of the
    arguments at call time.
    """

    def __init__(self, pool: QuestionPool, progression: Optional[DifficultyProgression] = None) -> None:
        self.pool = pool
        self.progression = progression or pool.progression

    def can_perform_checkpoint_fallback(self, track: Optional[CheckpointTrack]) -> bool:
        return track is not None and track.last_completed is not None

    def handle_game_over(self, path: Optional[PathType], track: Optional[CheckpointTrack]) -> FallbackResult:
        if path is None or track is None:
            logger.warning("Game over without an initialized path (path=%s)", path)
            return FallbackResult.error()
        last = track.last_completed
        if last is not None:
            return FallbackResult.reset_to_checkpoint(last, CONSOLATION_BUNDLE)
        return FallbackResult.restart_from_beginning(path)

    def has_enough_questions_for_restart(
        self, path: PathType, exclude_ids: Collection[str], required_count: int
    ) -> bool:
        return self.pool.has_enough(path, exclude_ids, required_count)

    def restart_level(self, result: FallbackResult) -> int:
        if result.checkpoint is None:
            return 1
        return self.progression.level_for_checkpoint(result.checkpoint)

    def questions_for_restart(
        self,
        path: PathType,
        result: FallbackResult,
        exclude_ids: Collection[str],
        count: int,
    ) -> List[Question]:
        """Fresh batch after a fallback; repeats questions only when the path is exhausted."""
        level = self.restart_level(result)
        if self.has_enough_questions_for_restart(path, exclude_ids, count):
            return self.pool.sample(path, exclude_ids, count, level)
        logger.info(
            "Only %d fresh questions left on %s; allowing repeats",
            self.pool.available_count(path, exclude_ids),
            path.value,
        )
        return self.pool.sample_for_restart(path, exclude_ids, count, level)

    def statistics(self, result: FallbackResult, track: Optional[CheckpointTrack], answered_count: int) -> Dict[str, Any]:
        return {
            "action": result.action.value,
            "checkpoint": result.checkpoint.display_name if result.checkpoint else None,
            "completedCheckpoints": len(track.completed) if track is not None else 0,
            "questionsAnswered": answered_count,
            "restoredLives": result.restored_lives,
            "awardedPowerUps": result.awarded_power_ups.total,
            "message": result.message,
        }
