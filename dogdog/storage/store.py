from __future__ import annotations

"""Async progress store over a synchronous key-value backend.

Each value is one camelCase JSON document validated with the pydantic models
in `schema`. A value that fails to parse or validate is logged and treated as
missing. Writes to the same key are serialized and shielded from
cancellation, so an in-flight save always lands.
"""

import asyncio
import json
import logging
from typing import Any, Dict, Mapping, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from ..models.enums import PathType
from ..models.progress import PathProgress, utcnow
from ..models.session import GameSession
from .backends import KeyValueBackend, MemoryBackend
from .migration import (
    CURRENT_SESSION_KEY,
    GLOBAL_STATS_KEY,
    MigrationReport,
    ThresholdLookup,
    migrate_backend,
    path_progress_key,
)
from .schema import GameSessionRecord, GlobalStatsRecord, PathProgressRecord

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


class ProgressStore:
    def __init__(self, backend: Optional[KeyValueBackend] = None) -> None:
        self.backend: KeyValueBackend = backend if backend is not None else MemoryBackend()
        self._locks: Dict[str, asyncio.Lock] = {}

    # --- plumbing ---

    def _lock(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock

    async def _write(self, key: str, value: Optional[str]) -> None:
        async with self._lock(key):
            if value is None:
                await asyncio.to_thread(self.backend.delete, key)
            else:
                await asyncio.to_thread(self.backend.set, key, value)

    async def _put(self, key: str, value: Optional[str]) -> None:
        await asyncio.shield(self._write(key, value))

    async def _get(self, key: str, model: Type[M]) -> Optional[M]:
        raw = await asyncio.to_thread(self.backend.get, key)
        if raw is None:
            return None
        try:
            return model.model_validate(json.loads(raw))
        except (ValueError, TypeError, OverflowError, RecursionError, ValidationError) as e:
            logger.warning("Ignoring corrupted %s entry: %s", key, e)
            return None

    # --- path progress ---

    async def save(self, progress: PathProgress) -> None:
        record = PathProgressRecord.from_domain(progress)
        await self._put(path_progress_key(progress.path_type), record.to_json())

    async def load(self, path: PathType) -> Optional[PathProgress]:
        record = await self._get(path_progress_key(path), PathProgressRecord)
        if record is None:
            return None
        if record.path_type != path:
            logger.warning("Stored progress for %s claims path %s; ignoring", path.value, record.path_type.value)
            return None
        return record.to_domain()

    async def load_all(self) -> Dict[PathType, PathProgress]:
        out: Dict[PathType, PathProgress] = {}
        for path in PathType:
            progress = await self.load(path)
            if progress is not None:
                out[path] = progress
        return out

    async def get_or_create(self, path: PathType) -> PathProgress:
        existing = await self.load(path)
        if existing is not None:
            return existing
        progress = PathProgress(path_type=path)
        await self.save(progress)
        return progress

    # --- current session ---

    async def save_session(self, session: GameSession) -> None:
        await self._put(CURRENT_SESSION_KEY, GameSessionRecord.from_domain(session).to_json())

    async def load_session(self) -> Optional[GameSession]:
        record = await self._get(CURRENT_SESSION_KEY, GameSessionRecord)
        return record.to_domain() if record is not None else None

    async def clear_session(self) -> None:
        await self._put(CURRENT_SESSION_KEY, None)

    # --- global stats ---

    async def save_global_stats(self, stats: GlobalStatsRecord | Mapping[str, Any]) -> None:
        record = stats if isinstance(stats, GlobalStatsRecord) else GlobalStatsRecord.model_validate(dict(stats))
        await self._put(GLOBAL_STATS_KEY, record.to_json())

    async def load_global_stats(self) -> GlobalStatsRecord:
        """Stored totals, or defaults when nothing valid is stored."""
        return await self._get(GLOBAL_STATS_KEY, GlobalStatsRecord) or GlobalStatsRecord()

    async def update_global_stats(
        self,
        *,
        questions_answered: int,
        correct_answers: int,
        time_spent: int,
        best_streak: int,
        path_played: PathType,
        path_completed: bool = False,
    ) -> GlobalStatsRecord:
        """Fold one finished session into the global totals and persist them."""
        async with self._lock(GLOBAL_STATS_KEY + ":update"):
            stats = await self.load_global_stats()
            stats.total_questions_answered += max(0, int(questions_answered))
            stats.total_correct_answers += max(0, int(correct_answers))
            stats.total_time_spent += max(0, int(time_spent))
            stats.total_game_sessions += 1
            if path_completed:
                stats.paths_completed += 1
            stats.best_overall_accuracy = max(stats.best_overall_accuracy, stats.overall_accuracy)
            stats.longest_streak = max(stats.longest_streak, int(best_streak))
            stats.path_play_counts[path_played] = stats.path_play_counts.get(path_played, 0) + 1
            # ties keep the earlier path in enum order
            stats.favorite_path_type = max(
                (p for p in PathType if stats.path_play_counts.get(p, 0) > 0),
                key=lambda p: (stats.path_play_counts[p], -list(PathType).index(p)),
            )
            stats.last_play_date = utcnow()
            await self.save_global_stats(stats)
            return stats

    # --- maintenance ---

    async def clear_all(self) -> None:
        async def _clear() -> None:
            await asyncio.to_thread(self.backend.clear)

        await asyncio.shield(_clear())

    async def migrate(
        self,
        thresholds_for: Optional[ThresholdLookup] = None,
    ) -> MigrationReport:
        return await asyncio.shield(asyncio.to_thread(migrate_backend, self.backend, thresholds_for))
