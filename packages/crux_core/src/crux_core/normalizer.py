"""Record normalizer: raw CrUX responses into uniform per-origin results.

The upstream ``records:queryRecord`` payload looks like::

    {"record": {"key": {...},
                "metrics": {"largest_contentful_paint": {
                    "histogram": [{"start": 0, "end": 2500, "density": 0.81}, ...],
                    "percentiles": {"p75": 1907}}}}}

Failures arrive as ``{"error": {"code": 404, "message": "...", "status": "NOT_FOUND"}}``
from the API, or ``{"error": "..."}`` from the proxy. Neither shape is raised:
every input entry becomes exactly one OriginResult.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from crux_core.models import (
    HistogramBucket,
    MetricsRecord,
    MetricStats,
    OriginResult,
    Percentiles,
    RawResponse,
)

logger = logging.getLogger("crux_core.normalizer")

_UNKNOWN_FAILURE = "No metrics record in response"


def normalize(
    raw_responses: Iterable[RawResponse | Mapping[str, Any]],
) -> tuple[list[OriginResult], list[str]]:
    """Classify each raw response and collect the batch's metric universe.

    Returns the results in input order and the metric names in first-seen order.
    """
    results = [_normalize_one(entry) for entry in raw_responses]
    return results, metric_universe(results)


def metric_universe(results: Sequence[OriginResult]) -> list[str]:
    """Union of metric names across OK results, deduplicated in first-seen order."""
    seen: dict[str, None] = {}
    for result in results:
        if not result.is_ok:
            continue
        for name in result.metrics:
            seen.setdefault(name, None)
    return list(seen)


def _normalize_one(entry: RawResponse | Mapping[str, Any]) -> OriginResult:
    if isinstance(entry, RawResponse):
        origin, body = entry.origin, entry.raw_body
    else:
        origin, body = str(entry.get("origin", "")), entry.get("raw_body")

    metrics = _extract_metrics(body)
    if metrics is None:
        reason = _failure_reason(body)
        logger.debug("No metrics for %s: %s", origin, reason)
        return OriginResult.from_error(origin, reason)

    return OriginResult.from_record(origin, metrics)


def _extract_metrics(body: Any) -> MetricsRecord | None:
    if not isinstance(body, Mapping):
        return None
    record = body.get("record")
    if not isinstance(record, Mapping):
        return None
    raw_metrics = record.get("metrics")
    if not isinstance(raw_metrics, Mapping):
        return None
    return {str(name): _metric_stats(raw) for name, raw in raw_metrics.items()}


def _metric_stats(raw: Any) -> MetricStats:
    # A malformed entry still names a metric; it just contributes no value
    if not isinstance(raw, Mapping):
        return MetricStats()

    buckets: list[HistogramBucket] = []
    histogram = raw.get("histogram")
    if isinstance(histogram, list):
        for bucket in histogram:
            if isinstance(bucket, Mapping):
                buckets.append(
                    HistogramBucket(
                        range_start=_scalar(bucket.get("start")),
                        range_end=_scalar(bucket.get("end")),
                        proportion=_number(bucket.get("density")),
                    )
                )

    percentiles = raw.get("percentiles")
    p75 = _scalar(percentiles.get("p75")) if isinstance(percentiles, Mapping) else None

    return MetricStats(histogram=buckets, percentiles=Percentiles(p75=p75))


def _scalar(value: Any) -> float | str | None:
    """Keep numbers and strings as delivered; anything else counts as absent."""
    if isinstance(value, str):
        return value
    return _number(value)


def _number(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        return float(value)
    except OverflowError:
        # JSON integers are unbounded; one past float range is absent
        return None


def _failure_reason(body: Any) -> str:
    if isinstance(body, Mapping):
        error = body.get("error")
        if isinstance(error, Mapping) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str) and error:
            return error
    return _UNKNOWN_FAILURE
