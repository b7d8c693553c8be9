from __future__ import annotations

"""Randomness helpers for seeding and injectable RNGs."""

import os
import random
from typing import Optional

import numpy as np


def seed_from_env() -> Optional[int]:
    seed = os.environ.get("SEED")
    if seed is None:
        return None
    try:
        return int(seed)
    except ValueError:
        return None


def seed_if_needed(seed: Optional[int] = None) -> Optional[int]:
    """Seed global RNGs from `seed` or the SEED env var; return the seed used."""
    s = seed if seed is not None else seed_from_env()
    if s is not None:
        random.seed(s)
        np.random.seed(s)
    return s


def make_rng(seed: Optional[int] = None) -> random.Random:
    """A dedicated Random for sampling; seeded from `seed` or SEED when given."""
    s = seed if seed is not None else seed_from_env()
    return random.Random(s)
