from __future__ import annotations

"""Per-path progress record and its state transitions."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Mapping, Optional

from .enums import Checkpoint, PathType, PowerUpType


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _empty_inventory() -> Dict[PowerUpType, int]:
    return {t: 0 for t in PowerUpType}


@dataclass
class PathProgress:
    """Progress on one path; created on first play and mutated after every answer.

    `track_position` counts the correct answers that move the player along the
    checkpoint track. Fallbacks reposition it, while `correct_answers` and
    `total_questions` stay lifetime counters. `segment_*` count answers since
    the last checkpoint and feed the reward accuracy.
    """

    path_type: PathType
    current_checkpoint: Optional[Checkpoint] = None
    completed_checkpoints: List[Checkpoint] = field(default_factory=list)
    answered_question_ids: List[str] = field(default_factory=list)
    power_up_inventory: Dict[PowerUpType, int] = field(default_factory=_empty_inventory)
    correct_answers: int = 0
    total_questions: int = 0
    track_position: int = 0
    segment_correct: int = 0
    segment_total: int = 0
    best_accuracy: float = 0.0
    total_time_spent: int = 0
    fallback_count: int = 0
    last_played: datetime = field(default_factory=utcnow)
    is_completed: bool = False

    def __post_init__(self) -> None:
        inventory = _empty_inventory()
        inventory.update(self.power_up_inventory)
        self.power_up_inventory = inventory

    # --- derived ---

    @property
    def current_accuracy(self) -> float:
        if self.total_questions == 0:
            return 0.0
        return self.correct_answers / self.total_questions

    @property
    def segment_accuracy(self) -> float:
        if self.segment_total == 0:
            return 0.0
        return self.segment_correct / self.segment_total

    @property
    def answered_ids(self) -> frozenset:
        return frozenset(self.answered_question_ids)

    def has_answered(self, question_id: str) -> bool:
        return question_id in self.answered_question_ids

    def power_up_count(self, power_up: PowerUpType) -> int:
        return self.power_up_inventory.get(power_up, 0)

    # --- transitions ---

    def add_answered_question(self, question_id: str) -> None:
        if question_id not in self.answered_question_ids:
            self.answered_question_ids.append(question_id)

    def record_answer(self, question_id: str, correct: bool) -> None:
        self.add_answered_question(question_id)
        self.total_questions += 1
        self.segment_total += 1
        if correct:
            self.correct_answers += 1
            self.segment_correct += 1
            self.track_position += 1
        self.last_played = utcnow()

    def add_power_ups(self, bundle: Mapping[PowerUpType, int]) -> None:
        for power_up, count in bundle.items():
            self.power_up_inventory[power_up] = self.power_up_inventory.get(power_up, 0) + int(count)

    def use_power_up(self, power_up: PowerUpType) -> bool:
        """Decrement the inventory; False when none are left."""
        count = self.power_up_inventory.get(power_up, 0)
        if count <= 0:
            return False
        self.power_up_inventory[power_up] = count - 1
        return True

    def mark_checkpoint(self, checkpoint: Checkpoint, *, final: bool) -> None:
        if checkpoint not in self.completed_checkpoints:
            self.completed_checkpoints.append(checkpoint)
            self.completed_checkpoints.sort(key=lambda c: c.order)
        if self.current_checkpoint is None or checkpoint.order >= self.current_checkpoint.order:
            self.current_checkpoint = checkpoint
        self.segment_correct = 0
        self.segment_total = 0
        if final:
            self.is_completed = True
        self.last_played = utcnow()

    def reset_to_checkpoint(self, threshold: int) -> None:
        self.track_position = threshold
        self.segment_correct = 0
        self.segment_total = 0
        self.fallback_count += 1
        self.last_played = utcnow()

    def restart(self) -> None:
        self.track_position = 0
        self.segment_correct = 0
        self.segment_total = 0
        self.fallback_count += 1
        self.last_played = utcnow()

    def add_time(self, seconds: int) -> None:
        self.total_time_spent += max(0, int(seconds))

    def close_session(self, correct: int, total: int) -> None:
        """Fold one finished session's accuracy into `best_accuracy`."""
        if total > 0:
            self.best_accuracy = max(self.best_accuracy, correct / total)
        self.last_played = utcnow()
