from __future__ import annotations

"""Power-up grant bundle."""

from typing import Any, Dict, Iterator, Mapping

from .enums import PowerUpType, parse_enum


class RewardBundle(Mapping[PowerUpType, int]):
    """Immutable mapping PowerUpType -> count that always lists every power-up type.

    Counts are non-negative; missing types are zero.
    """

    __slots__ = ("_counts",)

    def __init__(self, counts: Mapping[PowerUpType, int] | None = None) -> None:
        merged: Dict[PowerUpType, int] = {t: 0 for t in PowerUpType}
        for key, value in (counts or {}).items():
            count = int(value)
            if count < 0:
                raise ValueError(f"Negative count for {key}: {count}")
            merged[parse_enum(PowerUpType, key)] = count
        self._counts = merged

    @classmethod
    def empty(cls) -> "RewardBundle":
        return cls()

    @classmethod
    def uniform(cls, count: int) -> "RewardBundle":
        return cls({t: count for t in PowerUpType})

    def __getitem__(self, key: PowerUpType) -> int:
        return self._counts[key]

    def __iter__(self) -> Iterator[PowerUpType]:
        return iter(self._counts)

    def __len__(self) -> int:
        return len(self._counts)

    def __add__(self, other: Mapping[PowerUpType, int]) -> "RewardBundle":
        if not isinstance(other, Mapping):
            return NotImplemented
        return RewardBundle({t: self._counts[t] + int(other.get(t, 0)) for t in PowerUpType})

    def __eq__(self, other: object) -> bool:
        if isinstance(other, RewardBundle):
            return self._counts == other._counts
        if isinstance(other, Mapping):
            return self == RewardBundle(other)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(tuple(self._counts[t] for t in PowerUpType))

    def __repr__(self) -> str:
        inner = ", ".join(f"{t.value}={n}" for t, n in self._counts.items())
        return f"RewardBundle({inner})"

    @property
    def total(self) -> int:
        return sum(self._counts.values())

    @property
    def is_empty(self) -> bool:
        return self.total == 0

    def to_json(self) -> Dict[str, int]:
        return {t.value: n for t, n in self._counts.items()}

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> "RewardBundle":
        return cls({parse_enum(PowerUpType, k): int(v) for k, v in (data or {}).items()})
