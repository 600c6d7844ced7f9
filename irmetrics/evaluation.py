"""Average metric values per run and iteration."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Sequence

from irmetrics.trec import Grouped, TrecResult

logger = logging.getLogger(__name__)

Metric = Callable[[Sequence[int]], float]


@dataclass
class MetricAverage:
    """Mean of one metric over all queries of a run iteration."""

    run_id: str
    iteration: str
    metric: str
    value: float
    num_queries: int

    def to_row(self, float_format: str = "g") -> str:
        return "\t".join(
            (self.run_id, self.iteration, self.metric, format(self.value, float_format))
        )


def relevance_vector(results: Iterable[TrecResult]) -> list[int]:
    return [result.relevance for result in results]


def evaluate(
    annotated: Grouped,
    metrics: Sequence[tuple[str, Metric]],
) -> list[MetricAverage]:
    """Score every query with every metric and average per run iteration.

    Rows come out in the order of *annotated* (runs, then iterations) and,
    within an iteration, in the order of *metrics*.
    """
    averages: list[MetricAverage] = []
    for run_id, by_iteration in annotated.items():
        for iteration, by_query in by_iteration.items():
            relevance = [relevance_vector(results) for results in by_query.values()]
            logger.info(
                "Scoring run %s, iteration %s: %d query(ies)",
                run_id,
                iteration,
                len(relevance),
            )
            for name, metric in metrics:
                values = [metric(vector) for vector in relevance]
                averages.append(
                    MetricAverage(
                        run_id=run_id,
                        iteration=iteration,
                        metric=name,
                        value=sum(values) / len(values),
                        num_queries=len(values),
                    )
                )
    return averages
