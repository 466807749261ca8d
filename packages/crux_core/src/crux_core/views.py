"""Derived view engine: rows, per-metric summary, and metric universe.

Every function here is pure: the same results, filter and sort always give
structurally equal output, and inputs are never mutated. Callers re-run them
on every filter, threshold or sort change.

Values are exposed on a 0-100 scale: the upstream p75 is read as a fraction
and multiplied by VALUE_SCALE. Thresholds use the same scale.

The summary honours the origin filter and the threshold but not the metric
selection; use ``visible_summary`` to narrow it for display.
"""

from __future__ import annotations

import math
import statistics
import unicodedata
from collections.abc import Callable, Sequence
from functools import cmp_to_key
from typing import Any, NamedTuple

from crux_core.models import (
    DerivedViews,
    FilterState,
    HistogramBucket,
    MetricStats,
    MetricSummary,
    OriginResult,
    Row,
    SortState,
)
from crux_core.normalizer import metric_universe
from crux_core.types import SortDirection, SortKey

VALUE_SCALE = 100.0
VALUE_PRECISION = 9


class _Candidate(NamedTuple):
    index: int
    origin: str
    metric: str
    value: float
    histogram: list[HistogramBucket]


def compute_rows(
    results: Sequence[OriginResult],
    filter: FilterState,
    sort: SortState,
) -> list[Row]:
    """Flat (origin, metric) rows surviving all three filters, in sort order."""
    candidates = [c for c in _candidates(results, filter) if filter.admits_metric(c.metric)]
    return _sorted_rows(candidates, sort)


def compute_summary(
    results: Sequence[OriginResult],
    filter: FilterState,
) -> dict[str, MetricSummary]:
    """Average/min/max/count per metric over origin- and threshold-filtered values.

    Metrics without any surviving value are left out. Keys follow the order
    of the batch's metric universe.
    """
    return _summarize(_candidates(results, filter), metric_universe(results))


def compute_views(
    results: Sequence[OriginResult],
    filter: FilterState,
    sort: SortState,
) -> DerivedViews:
    """All three views from a single extraction pass."""
    candidates = _candidates(results, filter)
    universe = metric_universe(results)
    return DerivedViews(
        rows=_sorted_rows([c for c in candidates if filter.admits_metric(c.metric)], sort),
        summary=_summarize(candidates, universe),
        metric_universe=universe,
    )


def visible_summary(
    summary: dict[str, MetricSummary],
    filter: FilterState,
) -> dict[str, MetricSummary]:
    """Narrow a summary to the selected metrics (empty selection shows everything)."""
    return {name: stats for name, stats in summary.items() if filter.admits_metric(name)}


def scaled_value(stats: MetricStats) -> float | None:
    """The p75 value on the 0-100 scale, or None when absent or not a finite number."""
    raw = stats.percentiles.p75
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, str):
        try:
            number = float(raw.strip())
        except ValueError:
            return None
    else:
        number = float(raw)

    value = number * VALUE_SCALE
    if not math.isfinite(value):
        return None
    # Drop binary float noise so 0.29 scales to exactly 29.0
    return round(value, VALUE_PRECISION)


# ---------------------------------------------------------------------------
# Internals
# ---------------------------------------------------------------------------


def _candidates(results: Sequence[OriginResult], filter: FilterState) -> list[_Candidate]:
    """Values passing the origin filter and threshold. The metric filter is not applied."""
    candidates: list[_Candidate] = []
    for result in results:
        if not result.is_ok or not filter.admits_origin(result.origin):
            continue
        for metric, stats in result.metrics.items():
            value = scaled_value(stats)
            if value is None or value < filter.threshold:
                continue
            candidates.append(
                _Candidate(len(candidates), result.origin, metric, value, stats.histogram)
            )
    return candidates


def _summarize(candidates: list[_Candidate], universe: list[str]) -> dict[str, MetricSummary]:
    grouped: dict[str, list[float]] = {name: [] for name in universe}
    for candidate in candidates:
        grouped.setdefault(candidate.metric, []).append(candidate.value)

    return {
        name: MetricSummary(
            metric=name,
            average=statistics.mean(values),
            min=min(values),
            max=max(values),
            count=len(values),
        )
        for name, values in grouped.items()
        if values
    }


def _sorted_rows(candidates: list[_Candidate], sort: SortState) -> list[Row]:
    ordered = sorted(candidates, key=cmp_to_key(_comparator(sort)))
    return [
        Row(origin=c.origin, metric=c.metric, value=c.value, histogram=c.histogram)
        for c in ordered
    ]


def _comparator(sort: SortState) -> Callable[[_Candidate, _Candidate], int]:
    """Build a total order: direction flips the primary key only, ties stay ascending."""
    primary: Callable[[_Candidate], Any]
    if sort.key == SortKey.VALUE:
        primary = lambda c: c.value  # noqa: E731
    elif sort.key == SortKey.ORIGIN:
        primary = lambda c: _collation_key(c.origin)  # noqa: E731
    elif sort.key == SortKey.METRIC:
        primary = lambda c: _collation_key(c.metric)  # noqa: E731
    else:
        raise ValueError(f"Unknown sort key: {sort.key!r}")

    sign = -1 if sort.direction == SortDirection.DESC else 1

    def compare(a: _Candidate, b: _Candidate) -> int:
        result = _cmp(primary(a), primary(b)) * sign
        if result:
            return result
        return _cmp(_tiebreak(a), _tiebreak(b))

    return compare


def _tiebreak(c: _Candidate) -> tuple:
    return _collation_key(c.origin), _collation_key(c.metric), c.index


def _collation_key(text: str) -> tuple[str, str]:
    """Case- and accent-insensitive ordering, raw text as the final decider."""
    folded = unicodedata.normalize("NFKD", text).casefold()
    return "".join(ch for ch in folded if not unicodedata.combining(ch)), text


def _cmp(a: Any, b: Any) -> int:
    return (a > b) - (a < b)
