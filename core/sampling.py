"""
core/sampling.py -- Random audit sampling.

Given a population of N numbered elements (1..N) and a percentage p in
(0, 100], the sample size is ceil(N * p / 100) and that many distinct element
numbers are drawn at random and returned in ascending order.

The random source is injectable so callers (and tests) can pass a seeded
random.Random.

Usage:
    sample = draw_sample(250, 10)
    sample.size        # 25
    sample.elements    # (4, 17, 31, ...)
"""

import math
import random
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Callable, Optional

from .config import utc_now

MAX_POPULATION = 1_000_000


@dataclass(frozen=True)
class Sample:
    population: int
    percentage: float
    size: int
    elements: tuple[int, ...]
    calculated_at: datetime


def sample_size(population: int, percentage: float) -> int:
    """ceil(population * percentage / 100), after range checks.

    Raises ValueError when population is not in 1..MAX_POPULATION or
    percentage is not in (0, 100].
    """
    if isinstance(population, bool) or not isinstance(population, int):
        raise ValueError("population must be a whole number")
    if not 1 <= population <= MAX_POPULATION:
        raise ValueError(f"population must be between 1 and {MAX_POPULATION}")
    if not 0 < percentage <= 100:
        raise ValueError("percentage must be greater than 0 and at most 100")
    # Decimal arithmetic: float error must not push an exact result up to the next integer.
    return math.ceil(Decimal(population) * Decimal(str(percentage)) / 100)


def draw_sample(
    population: int,
    percentage: float,
    rng: Optional[random.Random] = None,
    clock: Callable[[], datetime] = utc_now,
) -> Sample:
    """Draw a sorted sample of distinct element numbers from 1..population."""
    size = sample_size(population, percentage)
    source = rng if rng is not None else random.SystemRandom()
    elements = tuple(sorted(source.sample(range(1, population + 1), size)))
    return Sample(
        population=population,
        percentage=percentage,
        size=size,
        elements=elements,
        calculated_at=clock(),
    )
