from __future__ import annotations

"""Question dataset loading (YAML or JSON) into Question records."""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

import yaml

from ..errors import ContentError
from ..models.question import Question

logger = logging.getLogger(__name__)

SAMPLE_DATASET = Path(__file__).with_name("questions.yml")


def _read(path: Path) -> Any:
    with path.open("r", encoding="utf-8") as f:
        if path.suffix.lower() == ".json":
            return json.load(f)
        return yaml.safe_load(f)


def check_question(q: Question) -> None:
    """Raise ContentError if `q` cannot be asked in every locale it provides."""
    if not q.text:
        raise ContentError(f"Question {q.id} has no text")
    sizes = {locale: len(answers) for locale, answers in q.answers.items()}
    if not sizes:
        raise ContentError(f"Question {q.id} has no answers")
    if len(set(sizes.values())) != 1:
        raise ContentError(f"Question {q.id} has different answer counts per locale: {sizes}")
    count = next(iter(sizes.values()))
    if count < 2:
        raise ContentError(f"Question {q.id} needs at least two answers")
    if not 0 <= q.correct_answer_index < count:
        raise ContentError(f"Question {q.id} has correctAnswerIndex {q.correct_answer_index} outside 0..{count - 1}")


def parse_questions(items: Iterable[Dict[str, Any]]) -> List[Question]:
    out: List[Question] = []
    seen: set = set()
    for i, item in enumerate(items):
        try:
            q = Question.from_json(item)
        except (KeyError, TypeError, ValueError) as e:
            raise ContentError(f"Malformed question #{i} ({item.get('id', '?') if isinstance(item, dict) else item!r}): {e}") from e
        check_question(q)
        if q.id in seen:
            raise ContentError(f"Duplicate question id: {q.id}")
        seen.add(q.id)
        out.append(q)
    return out


def load_questions(path: Optional[str | Path] = None) -> List[Question]:
    """Load questions from `path` (YAML or JSON), or the packaged sample dataset.

    The document is either a list of questions or a mapping with a `questions` list.
    """
    p = Path(path) if path else SAMPLE_DATASET
    data = _read(p)
    if isinstance(data, dict):
        data = data.get("questions")
    if not isinstance(data, list):
        raise ContentError(f"{p} does not contain a list of questions")
    questions = parse_questions(data)
    logger.info("Loaded %d questions from %s", len(questions), p)
    return questions
