from __future__ import annotations

"""Ephemeral game-session record."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from .enums import PathType, PowerUpType
from .progress import utcnow

MAX_LIVES = 3


def _clamp_lives(value: int) -> int:
    return max(0, min(MAX_LIVES, int(value)))


@dataclass
class GameSession:
    path_type: Optional[PathType] = None
    lives_remaining: int = MAX_LIVES
    current_question_id: Optional[str] = None
    session_question_ids: List[str] = field(default_factory=list)
    power_ups_used: Dict[PowerUpType, int] = field(default_factory=dict)
    session_start: datetime = field(default_factory=utcnow)
    current_streak: int = 0
    best_streak: int = 0
    recent_mistakes: int = 0
    correct_in_session: int = 0
    is_paused: bool = False
    session_time_spent: int = 0

    def __post_init__(self) -> None:
        self.lives_remaining = _clamp_lives(self.lives_remaining)

    @classmethod
    def start(cls, path_type: PathType) -> "GameSession":
        return cls(path_type=path_type)

    @property
    def is_game_over(self) -> bool:
        return self.lives_remaining <= 0

    def add_session_question(self, question_id: str) -> None:
        self.current_question_id = question_id

    def record_answer(self, question_id: str, correct: bool) -> None:
        self.session_question_ids.append(question_id)
        if correct:
            self.current_streak += 1
            self.best_streak = max(self.best_streak, self.current_streak)
            self.correct_in_session += 1
            self.recent_mistakes = 0
        else:
            self.current_streak = 0
            self.recent_mistakes += 1

    def lose_life(self) -> None:
        self.lives_remaining = _clamp_lives(self.lives_remaining - 1)

    def gain_life(self) -> None:
        self.lives_remaining = _clamp_lives(self.lives_remaining + 1)

    def restore_lives(self, lives: int = MAX_LIVES) -> None:
        self.lives_remaining = _clamp_lives(lives)
        self.current_streak = 0
        self.recent_mistakes = 0

    def use_power_up(self, power_up: PowerUpType) -> None:
        self.power_ups_used[power_up] = self.power_ups_used.get(power_up, 0) + 1

    def set_paused(self, paused: bool) -> None:
        self.is_paused = bool(paused)

    def add_time(self, seconds: int) -> None:
        self.session_time_spent += max(0, int(seconds))

    def stats(self) -> Dict[str, Any]:
        return {
            "questionsAnswered": len(self.session_question_ids),
            "correctAnswers": self.correct_in_session,
            "currentStreak": self.current_streak,
            "bestStreak": self.best_streak,
            "powerUpsUsed": sum(self.power_ups_used.values()),
            "timeSpent": self.session_time_spent,
            "livesRemaining": self.lives_remaining,
        }
