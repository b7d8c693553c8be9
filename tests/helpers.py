from __future__ import annotations

import random
from typing import Dict, List

from dogdog.models import Difficulty, PathType, Question
from dogdog.policy.difficulty import DifficultyProgression
from dogdog.samplers.question_pool import QuestionPool


def make_question(qid: str, path: PathType = PathType.DOG_BREEDS, difficulty: Difficulty = Difficulty.EASY, correct: int = 0) -> Question:
    return Question(
        id=qid,
        category=path,
        difficulty=difficulty,
        text={"de": f"Frage {qid}", "en": f"Question {qid}"},
        answers={"de": ["A", "B", "C", "D"], "en": ["a", "b", "c", "d"]},
        correct_answer_index=correct,
        hint={"de": "Tipp", "en": "Hint"},
        fun_fact={"en": "Fun"},
    )


def make_questions(path: PathType = PathType.DOG_BREEDS, per_tier: Dict[Difficulty, int] | None = None) -> List[Question]:
    per_tier = per_tier or {d: 10 for d in Difficulty}
    out: List[Question] = []
    for difficulty, n in per_tier.items():
        for i in range(n):
            out.append(make_question(f"{path.value}-{difficulty.value}-{i}", path, difficulty))
    return out


def make_pool(questions: List[Question] | None = None, seed: int = 7) -> QuestionPool:
    pool = QuestionPool(DifficultyProgression(), random.Random(seed))
    pool.load(questions if questions is not None else make_questions())
    return pool
