from __future__ import annotations

"""Localized trivia question record."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple

from .enums import Difficulty, PathType, parse_enum

DEFAULT_LOCALE = "de"

# Difficulty labels found in older datasets
_LEGACY_DIFFICULTIES = {"easy+": Difficulty.EASY}


def _localized(values: Dict[str, Any], locale: str) -> Any:
    if locale in values:
        return values[locale]
    if DEFAULT_LOCALE in values:
        return values[DEFAULT_LOCALE]
    if values:
        return next(iter(values.values()))
    return None


@dataclass(frozen=True)
class Question:
    id: str
    category: PathType
    difficulty: Difficulty
    text: Dict[str, str]
    answers: Dict[str, List[str]]
    correct_answer_index: int
    hint: Dict[str, str] = field(default_factory=dict)
    fun_fact: Dict[str, str] = field(default_factory=dict)
    age_range: str = "8-12"
    tags: Tuple[str, ...] = ()

    @property
    def points(self) -> int:
        return self.difficulty.points

    def text_for(self, locale: str) -> str:
        return _localized(self.text, locale) or ""

    def answers_for(self, locale: str) -> List[str]:
        return list(_localized(self.answers, locale) or [])

    def hint_for(self, locale: str) -> str | None:
        return _localized(self.hint, locale)

    def fun_fact_for(self, locale: str) -> str | None:
        return _localized(self.fun_fact, locale)

    def correct_answer_for(self, locale: str) -> str:
        return self.answers_for(locale)[self.correct_answer_index]

    @property
    def answer_count(self) -> int:
        return len(_localized(self.answers, DEFAULT_LOCALE) or [])

    def is_correct(self, selected_index: int) -> bool:
        return int(selected_index) == self.correct_answer_index

    def __hash__(self) -> int:
        return hash(self.id)

    def to_json(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "category": self.category.value,
            "difficulty": self.difficulty.value,
            "text": dict(self.text),
            "answers": {k: list(v) for k, v in self.answers.items()},
            "correctAnswerIndex": self.correct_answer_index,
            "hint": dict(self.hint),
            "funFact": dict(self.fun_fact),
            "ageRange": self.age_range,
            "tags": list(self.tags),
        }

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "Question":
        raw_difficulty = str(data.get("difficulty", "easy")).lower()
        difficulty = _LEGACY_DIFFICULTIES.get(raw_difficulty) or parse_enum(Difficulty, raw_difficulty)
        answers = data["answers"]
        if isinstance(answers, list):
            # single-locale datasets
            answers = {DEFAULT_LOCALE: answers}
        text = data["text"]
        if isinstance(text, str):
            text = {DEFAULT_LOCALE: text}
        return cls(
            id=str(data["id"]),
            category=parse_enum(PathType, data["category"]),
            difficulty=difficulty,
            text={str(k): str(v) for k, v in text.items()},
            answers={str(k): [str(a) for a in v] for k, v in answers.items()},
            correct_answer_index=int(data["correctAnswerIndex"]),
            hint={str(k): str(v) for k, v in (data.get("hint") or {}).items()},
            fun_fact={str(k): str(v) for k, v in (data.get("funFact") or {}).items()},
            age_range=str(data.get("ageRange", "8-12")),
            tags=tuple(str(t) for t in (data.get("tags") or [])),
        )
