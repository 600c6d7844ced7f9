"""TREC results and qrels: record parsing, grouping and relevance annotation."""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, TypeVar

logger = logging.getLogger(__name__)

R = TypeVar("R")

Grouped = dict[str, dict[str, dict[str, list["TrecResult"]]]]


class TrecFormatError(ValueError):
    """A line does not follow the TREC results or qrels format."""

    def __init__(
        self,
        reason: str,
        *,
        path: str | Path | None = None,
        line_number: int | None = None,
    ) -> None:
        self.reason = reason
        self.path = path
        self.line_number = line_number
        message = f"Error reading TREC format: {reason}"
        if line_number is not None:
            location = f"{path}:{line_number}" if path is not None else f"line {line_number}"
            message = f"{message} ({location})"
        super().__init__(message)


def _parse_int(token: str, name: str) -> int:
    try:
        return int(token)
    except ValueError:
        raise TrecFormatError(f"cannot parse {name}") from None


def _parse_float(token: str, name: str) -> float:
    try:
        return float(token)
    except ValueError:
        raise TrecFormatError(f"cannot parse {name}") from None


def _scan(line: str, fields: tuple[tuple[str, Callable[[str, str], object] | None], ...]) -> dict:
    """Assign whitespace-separated tokens of *line* to *fields* by position.

    A field error is raised as soon as its token is seen; a missing-field
    error only once the whole line has been consumed.
    """
    values: dict[str, object] = {}
    for position, token in enumerate(line.split()):
        if position >= len(fields):
            raise TrecFormatError("too many fields")
        name, convert = fields[position]
        values[name] = convert(token, name) if convert else token
    if len(values) < len(fields):
        raise TrecFormatError("too few fields")
    return values


@dataclass
class TrecResult:
    """One line of a run file: ``query_id iteration document_id rank score run_id``.

    ``relevance`` is not part of the line; it is filled in by :func:`annotate`.
    """

    query_id: str
    iteration: str
    document_id: str
    rank: int
    score: float
    run_id: str
    relevance: int = 0

    FIELDS = (
        ("query_id", None),
        ("iteration", None),
        ("document_id", None),
        ("rank", _parse_int),
        ("score", _parse_float),
        ("run_id", None),
    )

    @classmethod
    def from_line(cls, line: str) -> TrecResult:
        return cls(**_scan(line, cls.FIELDS))

    def to_line(self) -> str:
        return (
            f"{self.query_id} {self.iteration} {self.document_id} "
            f"{self.rank} {self.score!r} {self.run_id}"
        )


@dataclass
class TrecRel:
    """One line of a qrels file: ``query_id iteration document_id relevance``."""

    query_id: str
    iteration: str
    document_id: str
    relevance: int

    FIELDS = (
        ("query_id", None),
        ("iteration", None),
        ("document_id", None),
        ("relevance", _parse_int),
    )

    @classmethod
    def from_line(cls, line: str) -> TrecRel:
        return cls(**_scan(line, cls.FIELDS))

    def to_line(self) -> str:
        return f"{self.query_id} {self.iteration} {self.document_id} {self.relevance}"


# ----------------------------------------------------------------------
# Reading
# ----------------------------------------------------------------------

def _parse_lines(
    lines: Iterable[str],
    parse: Callable[[str], R],
    path: str | Path | None = None,
) -> list[R]:
    records: list[R] = []
    for line_number, line in enumerate(lines, start=1):
        if not line.strip():
            continue
        try:
            records.append(parse(line))
        except TrecFormatError as exc:
            raise TrecFormatError(exc.reason, path=path, line_number=line_number) from exc
    return records


def parse_trec_results(lines: Iterable[str], path: str | Path | None = None) -> list[TrecResult]:
    """Parse every non-blank line as a :class:`TrecResult`."""
    return _parse_lines(lines, TrecResult.from_line, path)


def parse_trec_rels(lines: Iterable[str], path: str | Path | None = None) -> list[TrecRel]:
    """Parse every non-blank line as a :class:`TrecRel`."""
    return _parse_lines(lines, TrecRel.from_line, path)


def read_trec_results(path: str | Path) -> list[TrecResult]:
    """Read a run file.  Bytes that are not UTF-8 survive as surrogate escapes."""
    with open(path, "r", encoding="utf-8", errors="surrogateescape") as f:
        results = parse_trec_results(f, path)
    logger.info("Read %d results from %s", len(results), path)
    return results


def read_trec_rels(path: str | Path) -> list[TrecRel]:
    with open(path, "r", encoding="utf-8", errors="surrogateescape") as f:
        rels = parse_trec_rels(f, path)
    logger.info("Read %d relevance judgments from %s", len(rels), path)
    return rels


# ----------------------------------------------------------------------
# Grouping and annotation
# ----------------------------------------------------------------------

def group_by_query(records: Iterable[R]) -> dict[str, list[R]]:
    """Bucket records by ``query_id``, keeping input order inside each bucket."""
    groups: dict[str, list[R]] = defaultdict(list)
    for record in records:
        groups[record.query_id].append(record)
    return dict(groups)


def group(results: Iterable[TrecResult]) -> Grouped:
    """Nest results as ``run_id -> iteration -> query_id -> [results]``.

    Keys are sorted at every level; each innermost list keeps the input
    order of its results.
    """
    nested: dict[str, dict[str, dict[str, list[TrecResult]]]] = defaultdict(
        lambda: defaultdict(lambda: defaultdict(list))
    )
    for result in results:
        nested[result.run_id][result.iteration][result.query_id].append(result)
    return {
        run_id: {
            iteration: {query_id: by_query[query_id] for query_id in sorted(by_query)}
            for iteration, by_query in sorted(by_iteration.items())
        }
        for run_id, by_iteration in sorted(nested.items())
    }


def relevance_map(rels: Iterable[TrecRel]) -> dict[str, int]:
    """Map document id to relevance; a later judgment replaces an earlier one."""
    mapping: dict[str, int] = {}
    for rel in rels:
        if rel.document_id in mapping:
            logger.debug(
                "Duplicate judgment for %s in query %s: %d replaces %d",
                rel.document_id,
                rel.query_id,
                rel.relevance,
                mapping[rel.document_id],
            )
        mapping[rel.document_id] = rel.relevance
    return mapping


def annotate_single(results: Iterable[TrecResult], relevance: dict[str, int]) -> None:
    """Set ``relevance`` on *results* of one query; unjudged documents get 0."""
    for result in results:
        result.relevance = relevance.get(result.document_id, 0)


def annotate(results: Iterable[TrecResult], rels: Iterable[TrecRel]) -> Grouped:
    """Group *results* and attach relevance judgments from *rels*.

    Judgments are joined on query id and document id; their iteration field
    is not used.  The results are mutated in place and returned inside the
    nested mapping of :func:`group`.
    """
    relevance_by_query = {
        query_id: relevance_map(query_rels)
        for query_id, query_rels in group_by_query(rels).items()
    }
    grouped = group(results)
    for by_iteration in grouped.values():
        for by_query in by_iteration.values():
            for query_id, query_results in by_query.items():
                annotate_single(query_results, relevance_by_query.get(query_id, {}))
    logger.info(
        "Annotated %d run(s) against judgments for %d query(ies)",
        len(grouped),
        len(relevance_by_query),
    )
    return grouped
