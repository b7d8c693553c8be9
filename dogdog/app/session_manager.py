from __future__ import annotations

"""Session Manager: orchestrates the pool, policies, and persistence.

The in-memory PathProgress, CheckpointTrack and GameSession are the source of
truth while a session runs; the store mirrors them after every answer,
checkpoint and fallback. Front-ends drive it through the async methods below
and may subscribe to the EventBus for milestones.
"""

import asyncio
import logging
import random
from collections import deque
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Deque, Dict, List, Optional, Tuple
from uuid import uuid4

from ..content.loader import load_questions
from ..errors import NotInitializedError, SessionError
from ..models.enums import Checkpoint, PathType, PowerUpType
from ..models.progress import PathProgress
from ..models.question import Question
from ..models.rewards import RewardBundle
from ..models.session import MAX_LIVES, GameSession
from ..policy.checkpoints import CheckpointTrack, thresholds_from_config
from ..policy.difficulty import DifficultyProgression
from ..policy.fallback import FallbackPolicy, FallbackResult
from ..policy.rewards import RewardTable
from ..samplers.question_pool import QuestionPool
from ..stats.history import SessionHistoryRow, append_session_rows, validate_rows
from ..storage.backends import JsonFileBackend, MemoryBackend
from ..storage.store import ProgressStore
from ..util.randomness import make_rng
from . import events
from .events import EventBus
from .explain import trace as xtrace
from .transitions import apply_answer, apply_fallback, award_checkpoints

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionSnapshot:
    path: PathType
    lives_remaining: int
    current_question: Optional[Question]
    current_checkpoint: Optional[Checkpoint]
    next_checkpoint: Optional[Checkpoint]
    questions_to_next: int
    progress_to_next: float
    segment_display: str
    difficulty_level: int
    power_ups: Dict[PowerUpType, int]
    score: int
    current_streak: int
    best_streak: int
    is_paused: bool
    is_completed: bool


@dataclass(frozen=True)
class AnswerOutcome:
    correct: bool
    points: int
    correct_answer_index: int
    current_streak: int
    lives_remaining: int
    checkpoints_reached: Tuple[Tuple[Checkpoint, RewardBundle], ...] = ()
    path_completed: bool = False
    game_over: bool = False
    next_question: Optional[Question] = None
    fun_fact: Optional[str] = None

    @property
    def checkpoint_reached(self) -> Optional[Checkpoint]:
        return self.checkpoints_reached[-1][0] if self.checkpoints_reached else None

    @property
    def rewards(self) -> RewardBundle:
        total = RewardBundle.empty()
        for _, bundle in self.checkpoints_reached:
            total = total + bundle
        return total


@dataclass(frozen=True)
class PowerUpOutcome:
    power_up: PowerUpType
    success: bool
    remaining: int
    message: str = ""
    removed_answer_indices: Tuple[int, ...] = ()
    hint: Optional[str] = None
    extra_seconds: int = 0
    lives_remaining: int = MAX_LIVES
    next_question: Optional[Question] = None


@dataclass
class _Running:
    session_id: str
    progress: PathProgress
    track: CheckpointTrack
    session: GameSession
    queue: Deque[Question] = field(default_factory=deque)
    score: int = 0
    lives_lost: int = 0
    fallbacks: int = 0
    completed_path: bool = False


class SessionManager:
    def __init__(
        self,
        cfg: Dict[str, Any],
        pool: QuestionPool,
        store: ProgressStore,
        progression: Optional[DifficultyProgression] = None,
        rewards: Optional[RewardTable] = None,
        fallback: Optional[FallbackPolicy] = None,
        *,
        bus: Optional[EventBus] = None,
        history_dir: Optional[Path] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.cfg = cfg
        self.pool = pool
        self.store = store
        self.progression = progression or pool.progression
        self.rewards = rewards or RewardTable.from_config(cfg)
        self.fallback = fallback or FallbackPolicy(pool, self.progression)
        self.bus = bus or EventBus()
        self.history_dir = Path(history_dir) if history_dir is not None else None
        self._rng = rng or random.Random()
        game = cfg.get("game", {}) or {}
        self.batch_size = int(game.get("batch_size", 10))
        self.locale = str(game.get("default_locale", "de"))
        self.extra_time_seconds = int(game.get("extra_time_seconds", 10))
        self._initialized = False
        self._run: Optional[_Running] = None

    # --- lifecycle ---

    async def initialize(self) -> None:
        if not self.pool.is_loaded:
            raise NotInitializedError("QuestionPool must be loaded before initialize()")
        report = await self.store.migrate(lambda p: thresholds_from_config(self.cfg, p))
        if not report.skipped:
            xtrace("save_migrated", {"migrated": report.migrated, "dropped": report.dropped})
        self._initialized = True

    def _require_initialized(self) -> None:
        if not self._initialized:
            raise NotInitializedError("SessionManager.initialize() has not run")

    def _require_session(self) -> _Running:
        if self._run is None:
            raise SessionError("No active session; call start_session() first")
        return self._run

    @property
    def has_session(self) -> bool:
        return self._run is not None

    def _track_for(self, progress: PathProgress) -> CheckpointTrack:
        return CheckpointTrack.from_progress(progress, thresholds_from_config(self.cfg, progress.path_type))

    async def start_session(self, path: PathType) -> SessionSnapshot:
        self._require_initialized()
        progress = await self.store.get_or_create(path)
        self._run = _Running(
            session_id=str(uuid4()),
            progress=progress,
            track=self._track_for(progress),
            session=GameSession.start(path),
        )
        self._advance()
        await self._save()
        xtrace(
            "session_started",
            {"path": path.value, "position": progress.track_position, "checkpoint": _value(progress.current_checkpoint)},
        )
        logger.info("Session started on %s", path.value)
        return self.snapshot()

    async def resume_session(self) -> Optional[SessionSnapshot]:
        """Restore an interrupted session from the store; None when there is nothing to resume."""
        self._require_initialized()
        session = await self.store.load_session()
        if session is None or session.path_type is None:
            return None
        progress = await self.store.get_or_create(session.path_type)
        self._run = _Running(
            session_id=str(uuid4()),
            progress=progress,
            track=self._track_for(progress),
            session=session,
        )
        current = self.pool.get(session.current_question_id) if session.current_question_id else None
        if current is None or session.is_game_over:
            session.current_question_id = None
            if not session.is_game_over:
                self._advance()
        xtrace("session_resumed", {"path": session.path_type.value, "lives": session.lives_remaining})
        return self.snapshot()

    # --- questions ---

    def _exclusions(self, run: _Running) -> set:
        excluded = set(run.progress.answered_question_ids)
        excluded.update(q.id for q in run.queue)
        if run.session.current_question_id:
            excluded.add(run.session.current_question_id)
        return excluded

    def _difficulty_level(self, run: _Running) -> int:
        return self.progression.level_for_question_count(run.progress.track_position)

    def _refill(self, run: _Running) -> None:
        level = self._difficulty_level(run)
        weights = self.progression.target_distribution(
            level, run.session.current_streak, run.session.recent_mistakes
        )
        batch = self.pool.sample(
            run.progress.path_type, self._exclusions(run), self.batch_size, level, weights=weights
        )
        if not batch:
            logger.info("No unanswered questions left on %s", run.progress.path_type.value)
        run.queue.extend(batch)

    def _advance(self) -> Optional[Question]:
        run = self._require_session()
        run.session.current_question_id = None
        if not run.queue:
            self._refill(run)
        if not run.queue:
            return None
        q = run.queue.popleft()
        run.session.add_session_question(q.id)
        return q

    def current_question(self) -> Optional[Question]:
        run = self._require_session()
        qid = run.session.current_question_id
        return self.pool.get(qid) if qid else None

    # --- answers ---

    async def submit_answer(self, question_id: str, selected_index: int) -> AnswerOutcome:
        run = self._require_session()
        if run.session.is_game_over:
            raise SessionError("No lives left; call on_lives_exhausted() first")
        if question_id != run.session.current_question_id:
            raise SessionError(f"Question {question_id} is not the current question")
        q = self.pool.get(question_id)
        if q is None:
            raise SessionError(f"Unknown question {question_id}")

        correct = q.is_correct(selected_index)
        apply_answer(run.progress, run.session, q.id, correct)
        points = q.points if correct else 0
        run.score += points
        if not correct:
            run.lives_lost += 1

        reached = award_checkpoints(run.progress, run.track, self.rewards)
        for cp, bundle in reached:
            payload = {
                "path": run.progress.path_type.value,
                "checkpoint": cp.value,
                "rewards": bundle.to_json(),
                "final": cp == run.track.final_checkpoint,
            }
            xtrace("checkpoint_reached", payload)
            logger.info("Checkpoint %s reached on %s", cp.value, run.progress.path_type.value)
            self.bus.emit(events.CHECKPOINT_REACHED, payload)

        game_over = run.session.is_game_over
        next_q: Optional[Question] = None
        if game_over:
            run.session.current_question_id = None
            self.bus.emit(events.GAME_OVER, {"path": run.progress.path_type.value})
            xtrace("game_over", {"path": run.progress.path_type.value, "position": run.progress.track_position})
        else:
            next_q = self._advance()
        completed = any(cp == run.track.final_checkpoint for cp, _ in reached)
        run.completed_path = run.completed_path or completed
        await self._save()

        return AnswerOutcome(
            correct=correct,
            points=points,
            correct_answer_index=q.correct_answer_index,
            current_streak=run.session.current_streak,
            lives_remaining=run.session.lives_remaining,
            checkpoints_reached=tuple(reached),
            path_completed=completed,
            game_over=game_over,
            next_question=next_q,
            fun_fact=q.fun_fact_for(self.locale),
        )

    # --- power-ups ---

    async def use_power_up(self, power_up: PowerUpType) -> PowerUpOutcome:
        run = self._require_session()
        q = self.current_question()

        def fail(message: str) -> PowerUpOutcome:
            return PowerUpOutcome(
                power_up=power_up,
                success=False,
                remaining=run.progress.power_up_count(power_up),
                message=message,
                lives_remaining=run.session.lives_remaining,
            )

        if run.session.is_game_over:
            return fail("No lives left; the game is over")
        if run.progress.power_up_count(power_up) <= 0:
            return fail("No power-ups of this type left")
        if q is None and power_up in (PowerUpType.FIFTY_FIFTY, PowerUpType.HINT, PowerUpType.SKIP):
            return fail("No question to use this power-up on")
        if power_up is PowerUpType.FIFTY_FIFTY and q is not None and q.answer_count < 3:
            return fail("Not enough answers to remove")
        if power_up is PowerUpType.SECOND_CHANCE and run.session.lives_remaining >= MAX_LIVES:
            return fail("Lives are already full")

        run.progress.use_power_up(power_up)
        run.session.use_power_up(power_up)
        removed: Tuple[int, ...] = ()
        hint: Optional[str] = None
        extra = 0
        next_q: Optional[Question] = None
        if power_up is PowerUpType.FIFTY_FIFTY and q is not None:
            wrong = [i for i in range(q.answer_count) if i != q.correct_answer_index]
            removed = tuple(sorted(self._rng.sample(wrong, 2)))
        elif power_up is PowerUpType.HINT and q is not None:
            hint = q.hint_for(self.locale)
        elif power_up is PowerUpType.EXTRA_TIME:
            extra = self.extra_time_seconds
        elif power_up is PowerUpType.SKIP and q is not None:
            # skipped questions are not asked again on this path
            run.progress.add_answered_question(q.id)
            next_q = self._advance()
        elif power_up is PowerUpType.SECOND_CHANCE:
            run.session.gain_life()
        await self._save()
        xtrace("power_up_used", {"type": power_up.value, "remaining": run.progress.power_up_count(power_up)})

        return PowerUpOutcome(
            power_up=power_up,
            success=True,
            remaining=run.progress.power_up_count(power_up),
            removed_answer_indices=removed,
            hint=hint,
            extra_seconds=extra,
            lives_remaining=run.session.lives_remaining,
            next_question=next_q,
        )

    # --- game over ---

    async def on_lives_exhausted(self) -> FallbackResult:
        run = self._require_session()
        if not run.session.is_game_over:
            raise SessionError("Lives remain; nothing to fall back from")
        path = run.progress.path_type
        result = self.fallback.handle_game_over(path, run.track)
        apply_fallback(run.progress, run.session, run.track, result)
        run.fallbacks += 1

        run.queue.clear()
        run.session.current_question_id = None
        # repeats answered questions only when the path has too few fresh ones
        run.queue.extend(
            self.fallback.questions_for_restart(path, result, run.progress.answered_ids, self.batch_size)
        )
        self._advance()
        await self._save()

        stats = self.fallback.statistics(result, run.track, len(run.progress.answered_question_ids))
        xtrace("fallback_applied", stats)
        logger.info("Fallback on %s: %s", path.value, result.action.value)
        self.bus.emit(events.FALLBACK_APPLIED, stats)
        return result

    # --- clock ---

    def pause(self) -> None:
        self._require_session().session.set_paused(True)

    def resume(self) -> None:
        self._require_session().session.set_paused(False)

    def tick(self, seconds: int) -> None:
        run = self._require_session()
        if run.session.is_paused:
            return
        run.session.add_time(seconds)
        run.progress.add_time(seconds)

    # --- views ---

    def snapshot(self) -> SessionSnapshot:
        run = self._require_session()
        position = run.progress.track_position
        return SessionSnapshot(
            path=run.progress.path_type,
            lives_remaining=run.session.lives_remaining,
            current_question=self.current_question(),
            current_checkpoint=run.track.current,
            next_checkpoint=run.track.next_checkpoint(position),
            questions_to_next=run.track.questions_remaining(position),
            progress_to_next=run.track.progress_to_next(position),
            segment_display=run.track.segment_display(position),
            difficulty_level=self._difficulty_level(run),
            power_ups=dict(run.progress.power_up_inventory),
            score=run.score,
            current_streak=run.session.current_streak,
            best_streak=run.session.best_streak,
            is_paused=run.session.is_paused,
            is_completed=run.progress.is_completed,
        )

    # --- end ---

    async def end_session(self) -> Dict[str, Any]:
        """Close the session: fold stats, append a history row, clear the saved session."""
        run = self._require_session()
        session, progress = run.session, run.progress
        answered = len(session.session_question_ids)
        progress.close_session(session.correct_in_session, answered)
        await self.store.save(progress)
        await self.store.update_global_stats(
            questions_answered=answered,
            correct_answers=session.correct_in_session,
            time_spent=session.session_time_spent,
            best_streak=session.best_streak,
            path_played=progress.path_type,
            path_completed=run.completed_path,
        )
        if self.history_dir is not None and answered > 0:
            row = SessionHistoryRow(
                session_id=run.session_id,
                session_start=session.session_start,
                path=progress.path_type.value,
                questions=answered,
                correct=session.correct_in_session,
                time_spent_s=session.session_time_spent,
                best_streak=session.best_streak,
                power_ups_used=sum(session.power_ups_used.values()),
                lives_lost=run.lives_lost,
                fallbacks=run.fallbacks,
                checkpoint=_value(progress.current_checkpoint),
                path_completed=progress.is_completed,
            )
            await asyncio.to_thread(append_session_rows, validate_rows([row]), self.history_dir)
        await self.store.clear_session()

        summary = dict(session.stats())
        summary.update(
            {
                "path": progress.path_type.value,
                "score": run.score,
                "checkpoint": _value(progress.current_checkpoint),
                "pathCompleted": progress.is_completed,
                "fallbacks": run.fallbacks,
            }
        )
        self._run = None
        xtrace("session_ended", summary)
        logger.info("Session ended on %s", progress.path_type.value)
        self.bus.emit(events.SESSION_ENDED, summary)
        return summary

    async def _save(self) -> None:
        run = self._require_session()
        await self.store.save(run.progress)
        await self.store.save_session(run.session)


def _value(member) -> Optional[str]:
    return member.value if member is not None else None


def build_session_manager(
    cfg: Dict[str, Any],
    *,
    bus: Optional[EventBus] = None,
    seed: Optional[int] = None,
    questions: Optional[List[Question]] = None,
) -> SessionManager:
    """Wire the default collaborators from a validated config."""
    rng = make_rng(seed)
    progression = DifficultyProgression.from_config(cfg)
    pool = QuestionPool(progression, rng)
    pool.load(questions if questions is not None else load_questions(cfg.get("content", {}).get("questions_path")))

    storage = cfg.get("storage", {}) or {}
    if storage.get("backend") == "memory":
        store = ProgressStore(MemoryBackend())
        history_dir = None
    else:
        store = ProgressStore(JsonFileBackend(Path(storage.get("data_path", "./dogdog_data/progress.json"))))
        history_dir = Path(cfg.get("stats", {}).get("history_dir", "./dogdog_data/history"))

    return SessionManager(
        cfg,
        pool,
        store,
        progression,
        RewardTable.from_config(cfg),
        FallbackPolicy(pool, progression),
        bus=bus,
        history_dir=history_dir,
        rng=rng,
    )
