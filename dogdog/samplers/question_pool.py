from __future__ import annotations

"""Question pool with exclusion-aware, difficulty-weighted sampling."""

import random
from typing import Collection, Dict, Iterable, List, Mapping, Optional

from ..errors import NotInitializedError
from ..models.enums import Difficulty, PathType
from ..models.question import Question
from ..policy.difficulty import TIERS, DifficultyProgression


def _choose_weighted(rng: random.Random, weights: Mapping[Difficulty, float]) -> Difficulty:
    positive = [t for t in TIERS if weights.get(t, 0.0) > 0]
    if not positive:
        return TIERS[0]
    r = rng.random() * sum(weights[t] for t in positive)
    acc = 0.0
    for tier in positive:
        acc += weights[tier]
        if r < acc:
            return tier
    # float rounding at the top end
    return positive[-1]


def _closest_available(tier: Difficulty, buckets: Mapping[Difficulty, List[Question]]) -> Optional[Difficulty]:
    """Nearest tier by rank that still has questions; ties go to the easier tier."""
    candidates = [t for t in TIERS if buckets.get(t)]
    if not candidates:
        return None
    return min(candidates, key=lambda t: (abs(t.rank - tier.rank), t.rank))


class QuestionPool:
    """All trivia questions, indexed by path and difficulty.

    The pool is empty until `load` is called; every accessor used before that
    raises NotInitializedError.
    """

    def __init__(
        self,
        progression: Optional[DifficultyProgression] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.progression = progression or DifficultyProgression()
        self._rng = rng or random.Random()
        self._by_id: Dict[str, Question] = {}
        self._by_path: Dict[PathType, List[Question]] = {}
        self._loaded = False

    # --- lifecycle ---

    def load(self, questions: Iterable[Question]) -> None:
        by_id: Dict[str, Question] = {}
        for q in questions:
            if q.id in by_id:
                raise ValueError(f"Duplicate question id: {q.id}")
            by_id[q.id] = q
        by_path: Dict[PathType, List[Question]] = {p: [] for p in PathType}
        for q in by_id.values():
            by_path[q.category].append(q)
        self._by_id = by_id
        self._by_path = by_path
        self._loaded = True

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    def _require_loaded(self) -> None:
        if not self._loaded:
            raise NotInitializedError("QuestionPool used before load()")

    # --- lookups ---

    def __len__(self) -> int:
        self._require_loaded()
        return len(self._by_id)

    def __contains__(self, question_id: object) -> bool:
        self._require_loaded()
        return question_id in self._by_id

    def get(self, question_id: str) -> Optional[Question]:
        self._require_loaded()
        return self._by_id.get(question_id)

    def questions_for(self, path: PathType) -> List[Question]:
        self._require_loaded()
        return list(self._by_path.get(path, []))

    def available_count(self, path: PathType, exclude_ids: Collection[str] = ()) -> int:
        self._require_loaded()
        excluded = set(exclude_ids)
        return sum(1 for q in self._by_path.get(path, []) if q.id not in excluded)

    def has_enough(self, path: PathType, exclude_ids: Collection[str], required_count: int) -> bool:
        return self.available_count(path, exclude_ids) >= required_count

    # --- sampling ---

    def sample(
        self,
        path: PathType,
        exclude_ids: Collection[str],
        count: int,
        difficulty_level: int,
        weights: Optional[Mapping[Difficulty, float]] = None,
    ) -> List[Question]:
        """Draw up to `count` distinct questions not in `exclude_ids`.

        Each draw picks a tier by weight (`weights`, or the base distribution
        for `difficulty_level`); an exhausted tier falls back to the closest
        tier that still has questions. Returns fewer than `count` questions
        when the path runs out.
        """
        self._require_loaded()
        excluded = set(exclude_ids)
        buckets: Dict[Difficulty, List[Question]] = {t: [] for t in TIERS}
        for q in self._by_path.get(path, []):
            if q.id not in excluded:
                buckets[q.difficulty].append(q)
        for bucket in buckets.values():
            self._rng.shuffle(bucket)

        tier_weights = dict(weights) if weights is not None else self.progression.base_distribution(difficulty_level)
        picked: List[Question] = []
        for _ in range(max(0, int(count))):
            tier = _closest_available(_choose_weighted(self._rng, tier_weights), buckets)
            if tier is None:
                break
            picked.append(buckets[tier].pop())
        return picked

    def sample_for_restart(
        self,
        path: PathType,
        exclude_ids: Collection[str],
        count: int,
        difficulty_level: int,
    ) -> List[Question]:
        """Like `sample`, but tops up with excluded questions when the path runs short.

        Only checkpoint restarts may repeat questions; a batch never contains
        the same question twice.
        """
        picked = self.sample(path, exclude_ids, count, difficulty_level)
        missing = max(0, int(count)) - len(picked)
        if missing > 0:
            taken = {q.id for q in picked}
            repeats = [q for q in self._by_path.get(path, []) if q.id not in taken]
            self._rng.shuffle(repeats)
            picked.extend(repeats[:missing])
        self._rng.shuffle(picked)
        return picked
