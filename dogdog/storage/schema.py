from __future__ import annotations

"""Pydantic models for persisted progress, session and global stats documents.

Documents are stored as camelCase JSON; field names stay snake_case.
"""

from datetime import datetime, timezone
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, NonNegativeInt, field_validator, model_validator
from pydantic.alias_generators import to_camel

from ..models.enums import Checkpoint, PathType, PowerUpType
from ..models.progress import PathProgress, utcnow
from ..models.session import MAX_LIVES, GameSession

DATA_VERSION = 2


def _ensure_utc(v: datetime) -> datetime:
    if v.tzinfo is None:
        return v.replace(tzinfo=timezone.utc)
    return v.astimezone(timezone.utc)


class _Document(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)


class PathProgressRecord(_Document):
    path_type: PathType
    current_checkpoint: Optional[Checkpoint] = None
    completed_checkpoints: List[Checkpoint] = Field(default_factory=list)
    answered_question_ids: List[str] = Field(default_factory=list)
    power_up_inventory: Dict[PowerUpType, NonNegativeInt] = Field(default_factory=dict)
    correct_answers: NonNegativeInt = 0
    total_questions: NonNegativeInt = 0
    track_position: NonNegativeInt = 0
    segment_correct: NonNegativeInt = 0
    segment_total: NonNegativeInt = 0
    best_accuracy: float = Field(0.0, ge=0.0, le=1.0)
    total_time_spent: NonNegativeInt = 0
    fallback_count: NonNegativeInt = 0
    last_played: datetime = Field(default_factory=utcnow)
    is_completed: bool = False

    @field_validator("last_played")
    @classmethod
    def _utc(cls, v: datetime) -> datetime:
        return _ensure_utc(v)

    @model_validator(mode="after")
    def _counts_consistent(self) -> "PathProgressRecord":
        if self.correct_answers > self.total_questions:
            raise ValueError("correctAnswers must be <= totalQuestions")
        if self.segment_correct > self.segment_total:
            raise ValueError("segmentCorrect must be <= segmentTotal")
        return self

    @classmethod
    def from_domain(cls, p: PathProgress) -> "PathProgressRecord":
        return cls(
            path_type=p.path_type,
            current_checkpoint=p.current_checkpoint,
            completed_checkpoints=list(p.completed_checkpoints),
            answered_question_ids=list(p.answered_question_ids),
            power_up_inventory=dict(p.power_up_inventory),
            correct_answers=p.correct_answers,
            total_questions=p.total_questions,
            track_position=p.track_position,
            segment_correct=p.segment_correct,
            segment_total=p.segment_total,
            best_accuracy=p.best_accuracy,
            total_time_spent=p.total_time_spent,
            fallback_count=p.fallback_count,
            last_played=p.last_played,
            is_completed=p.is_completed,
        )

    def to_domain(self) -> PathProgress:
        return PathProgress(
            path_type=self.path_type,
            current_checkpoint=self.current_checkpoint,
            completed_checkpoints=sorted(set(self.completed_checkpoints), key=lambda c: c.order),
            answered_question_ids=list(dict.fromkeys(self.answered_question_ids)),
            power_up_inventory=dict(self.power_up_inventory),
            correct_answers=self.correct_answers,
            total_questions=self.total_questions,
            track_position=self.track_position,
            segment_correct=self.segment_correct,
            segment_total=self.segment_total,
            best_accuracy=self.best_accuracy,
            total_time_spent=self.total_time_spent,
            fallback_count=self.fallback_count,
            last_played=self.last_played,
            is_completed=self.is_completed,
        )


class GameSessionRecord(_Document):
    path_type: Optional[PathType] = None
    lives_remaining: int = Field(MAX_LIVES, ge=0, le=MAX_LIVES)
    current_question_id: Optional[str] = None
    session_question_ids: List[str] = Field(default_factory=list)
    power_ups_used: Dict[PowerUpType, NonNegativeInt] = Field(default_factory=dict)
    session_start: datetime = Field(default_factory=utcnow)
    current_streak: NonNegativeInt = 0
    best_streak: NonNegativeInt = 0
    recent_mistakes: NonNegativeInt = 0
    correct_in_session: NonNegativeInt = 0
    is_paused: bool = False
    session_time_spent: NonNegativeInt = 0

    @field_validator("session_start")
    @classmethod
    def _utc(cls, v: datetime) -> datetime:
        return _ensure_utc(v)

    @classmethod
    def from_domain(cls, s: GameSession) -> "GameSessionRecord":
        return cls(
            path_type=s.path_type,
            lives_remaining=s.lives_remaining,
            current_question_id=s.current_question_id,
            session_question_ids=list(s.session_question_ids),
            power_ups_used=dict(s.power_ups_used),
            session_start=s.session_start,
            current_streak=s.current_streak,
            best_streak=s.best_streak,
            recent_mistakes=s.recent_mistakes,
            correct_in_session=s.correct_in_session,
            is_paused=s.is_paused,
            session_time_spent=s.session_time_spent,
        )

    def to_domain(self) -> GameSession:
        return GameSession(
            path_type=self.path_type,
            lives_remaining=self.lives_remaining,
            current_question_id=self.current_question_id,
            session_question_ids=list(self.session_question_ids),
            power_ups_used=dict(self.power_ups_used),
            session_start=self.session_start,
            current_streak=self.current_streak,
            best_streak=self.best_streak,
            recent_mistakes=self.recent_mistakes,
            correct_in_session=self.correct_in_session,
            is_paused=self.is_paused,
            session_time_spent=self.session_time_spent,
        )


class GlobalStatsRecord(_Document):
    """Totals across every path and session."""

    total_questions_answered: NonNegativeInt = 0
    total_correct_answers: NonNegativeInt = 0
    total_time_spent: NonNegativeInt = 0
    total_game_sessions: NonNegativeInt = 0
    paths_completed: NonNegativeInt = 0
    best_overall_accuracy: float = Field(0.0, ge=0.0, le=1.0)
    longest_streak: NonNegativeInt = 0
    favorite_path_type: Optional[PathType] = None
    path_play_counts: Dict[PathType, NonNegativeInt] = Field(default_factory=dict)
    last_play_date: Optional[datetime] = None

    @field_validator("last_play_date")
    @classmethod
    def _utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _ensure_utc(v) if v is not None else None

    @property
    def overall_accuracy(self) -> float:
        if self.total_questions_answered == 0:
            return 0.0
        return self.total_correct_answers / self.total_questions_answered
