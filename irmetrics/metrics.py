"""Weighted precision metrics.

Precision@k and rank-biased precision are both a weighted inner product of a
weight sequence with (transformed) relevance grades.  They only differ in
the weights, so both are built on top of :class:`WeightedPrecision`.
"""

from __future__ import annotations

import itertools
import math
from collections.abc import Sized
from typing import Callable, Iterator, Sequence

RelevanceTransform = Callable[[int], float]


def identity(relevance: int) -> int:
    """Pass graded relevance through unchanged."""
    return relevance


def binary(relevance: int) -> int:
    """Collapse graded relevance to 1 (relevant) or 0."""
    return 1 if relevance > 0 else 0


class Series:
    """Infinite, lazily evaluated weight sequence.

    ``series[n]`` calls ``f(n)`` every time; nothing is cached, so the same
    series can be shared by any number of evaluations.
    """

    def __init__(self, f: Callable[[int], float]) -> None:
        self._f = f

    def __getitem__(self, n: int) -> float:
        if n < 0:
            raise IndexError(f"series index must be non-negative, got {n}")
        return self._f(n)

    def __iter__(self) -> Iterator[float]:
        return map(self._f, itertools.count())

    def __repr__(self) -> str:
        return f"Series({self._f!r})"


WeightSequence = Sequence[float] | Series


class WeightedPrecision:
    """Sum of ``weights[i] * relevance_transform(relevance[i])``.

    The sum runs over the first ``min(cutoff, len(relevance), len(weights))``
    ranks; an infinite :class:`Series` never limits it.
    """

    __slots__ = ("_weights", "_cutoff", "_relevance_transform")

    def __init__(
        self,
        weights: WeightSequence,
        cutoff: int | float = math.inf,
        relevance_transform: RelevanceTransform = identity,
    ) -> None:
        if cutoff < 0:
            raise ValueError(f"cutoff must be non-negative, got {cutoff}")
        self._weights = weights
        self._cutoff = cutoff
        self._relevance_transform = relevance_transform

    @property
    def weights(self) -> WeightSequence:
        return self._weights

    @property
    def cutoff(self) -> int | float:
        return self._cutoff

    @property
    def relevance_transform(self) -> RelevanceTransform:
        return self._relevance_transform

    def _weights_size(self) -> int | float:
        if isinstance(self._weights, Sized):
            return len(self._weights)
        return math.inf

    def __call__(self, relevance: Sequence[int]) -> float:
        # len(relevance) bounds the cutoff, so it is always finite.
        cutoff = min(self._cutoff, len(relevance), self._weights_size())
        transform = self._relevance_transform
        total = 0.0
        for n in range(int(cutoff)):
            total += self._weights[n] * transform(relevance[n])
        return total

    def __repr__(self) -> str:
        return (
            f"WeightedPrecision(weights={self._weights!r}, cutoff={self._cutoff!r}, "
            f"relevance_transform={getattr(self._relevance_transform, '__name__', self._relevance_transform)})"
        )


def precision_at(k: int) -> WeightedPrecision:
    """Fraction of relevant documents among the top *k*.

    Always divides by *k*, so a list shorter than *k* is penalized for the
    missing ranks.
    """
    if k < 0:
        raise ValueError(f"k must be non-negative, got {k}")
    weights = (1.0 / k,) * k if k else ()
    return WeightedPrecision(weights, k, binary)


def rank_biased_precision(persistence: float) -> WeightedPrecision:
    """Rank-biased precision (Moffat & Zobel) with the given persistence.

    The weight of rank ``n`` (0-based) is ``(1 - p) * p ** n``.
    """

    def weight(n: int) -> float:
        return (1.0 - persistence) * persistence ** n

    return WeightedPrecision(Series(weight), math.inf, binary)
