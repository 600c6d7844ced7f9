"""Metric names such as ``P@10`` or ``RBP:95`` and the metrics they denote."""

from __future__ import annotations

import logging
import re
from typing import Iterable

from irmetrics.metrics import WeightedPrecision, precision_at, rank_biased_precision

logger = logging.getLogger(__name__)

_INTEGER = re.compile(r"-?[0-9]+")


class MetricSpecError(ValueError):
    """A metric name cannot be turned into a metric."""


def _parse_integer(value: str) -> int | None:
    if not _INTEGER.fullmatch(value):
        return None
    return int(value)


def parse_precision_at(k: str) -> WeightedPrecision:
    parsed_k = _parse_integer(k)
    if parsed_k is None:
        raise MetricSpecError(f"Failed to parse P@{k}")
    if parsed_k < 0:
        raise MetricSpecError(f"Failed to parse P@{k} (k must be non-negative)")
    return precision_at(parsed_k)


def parse_rbp(p: str) -> WeightedPrecision:
    """``p`` is the persistence as an integer percentage."""
    parsed_p = _parse_integer(p)
    if parsed_p is None:
        raise MetricSpecError(f"Failed to parse RBP:{p}")
    if parsed_p < 0 or parsed_p > 100:
        raise MetricSpecError(f"Failed to parse RBP:{p} (p must be in [0, 100]%)")
    return rank_biased_precision(parsed_p / 100.0)


def parse_metric(name: str) -> WeightedPrecision:
    if name.startswith("P@"):
        return parse_precision_at(name[2:])
    if name.startswith("RBP:"):
        return parse_rbp(name[4:])
    raise MetricSpecError(f"Unrecognized metric: {name}")


def parse_metrics(names: Iterable[str]) -> list[tuple[str, WeightedPrecision]]:
    """Parse *names* in order, failing on the first bad one."""
    metrics = [(name, parse_metric(name)) for name in names]
    logger.info("Evaluating %d metric(s): %s", len(metrics), ", ".join(n for n, _ in metrics))
    return metrics
