from __future__ import annotations

"""Closed variant types shared across the progression core.

Values are the camelCase identifiers used in persisted data. Every table
keyed by one of these enums is checked with `require_exhaustive` at import
time, so adding a member without extending its tables fails loudly.
"""

from enum import Enum
from typing import Iterable, Mapping


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"
    EXPERT = "expert"

    @property
    def rank(self) -> int:
        return _DIFFICULTY_ORDER.index(self)

    @property
    def points(self) -> int:
        return _DIFFICULTY_POINTS[self]


class PowerUpType(str, Enum):
    FIFTY_FIFTY = "fiftyFifty"
    HINT = "hint"
    EXTRA_TIME = "extraTime"
    SKIP = "skip"
    SECOND_CHANCE = "secondChance"


class PathType(str, Enum):
    """A question category track with its own checkpoints and question pool."""

    DOG_TRAINING = "dogTraining"
    DOG_BREEDS = "dogBreeds"
    DOG_BEHAVIOR = "dogBehavior"
    DOG_HEALTH = "dogHealth"
    DOG_HISTORY = "dogHistory"

    @property
    def display_name(self) -> str:
        return _PATH_NAMES[self]


class Checkpoint(str, Enum):
    """Milestones along a path. Declaration order is path order."""

    CHIHUAHUA = "chihuahua"
    PUG = "pug"
    COCKER_SPANIEL = "cockerSpaniel"
    GERMAN_SHEPHERD = "germanShepherd"
    GREAT_DANE = "greatDane"
    DEUTSCHE_DOGGE = "deutscheDogge"

    @property
    def order(self) -> int:
        return _CHECKPOINT_ORDER.index(self)

    @property
    def display_name(self) -> str:
        return _CHECKPOINT_NAMES[self]


class FallbackAction(str, Enum):
    RESET_TO_CHECKPOINT = "resetToCheckpoint"
    RESTART_FROM_BEGINNING = "restartFromBeginning"
    ERROR = "error"


def require_exhaustive(table: Mapping, members: Iterable[Enum], name: str) -> None:
    """Raise if `table` is missing an entry for any of `members`."""
    missing = [m.value for m in members if m not in table]
    if missing:
        raise RuntimeError(f"{name} has no entry for: {', '.join(missing)}")


def parse_enum(enum_cls, value):
    """Parse an enum from its value, its member name, or a legacy 'Type.value' string.

    Raises ValueError for anything else.
    """
    if isinstance(value, enum_cls):
        return value
    text = str(value)
    if "." in text:
        text = text.rsplit(".", 1)[1]
    for member in enum_cls:
        if text == member.value or text == member.name:
            return member
    raise ValueError(f"Unknown {enum_cls.__name__}: {value!r}")


_DIFFICULTY_ORDER = list(Difficulty)
_CHECKPOINT_ORDER = list(Checkpoint)

_DIFFICULTY_POINTS = {
    Difficulty.EASY: 10,
    Difficulty.MEDIUM: 15,
    Difficulty.HARD: 20,
    Difficulty.EXPERT: 25,
}

_PATH_NAMES = {
    PathType.DOG_TRAINING: "Dog Training",
    PathType.DOG_BREEDS: "Dog Breeds",
    PathType.DOG_BEHAVIOR: "Dog Behavior",
    PathType.DOG_HEALTH: "Dog Health",
    PathType.DOG_HISTORY: "Dog History",
}

_CHECKPOINT_NAMES = {
    Checkpoint.CHIHUAHUA: "Chihuahua",
    Checkpoint.PUG: "Pug",
    Checkpoint.COCKER_SPANIEL: "Cocker Spaniel",
    Checkpoint.GERMAN_SHEPHERD: "German Shepherd",
    Checkpoint.GREAT_DANE: "Great Dane",
    Checkpoint.DEUTSCHE_DOGGE: "Deutsche Dogge",
}

require_exhaustive(_DIFFICULTY_POINTS, Difficulty, "Difficulty.points")
require_exhaustive(_PATH_NAMES, PathType, "PathType.display_name")
require_exhaustive(_CHECKPOINT_NAMES, Checkpoint, "Checkpoint.display_name")
