"""CrUX dashboard data models: origin results, filter/sort state, derived views."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from crux_core.types import ResultStatus, SortDirection, SortKey

# ---------------------------------------------------------------------------
# Normalized per-origin records
# ---------------------------------------------------------------------------


class HistogramBucket(BaseModel):
    # CLS reports bucket bounds as strings ("0.10"), the timing metrics as ints
    range_start: float | str | None = None
    range_end: float | str | None = None
    proportion: float | None = None

    model_config = {"frozen": True}


class Percentiles(BaseModel):
    p75: float | str | None = None


class MetricStats(BaseModel):
    histogram: list[HistogramBucket] = Field(default_factory=list)
    percentiles: Percentiles = Field(default_factory=Percentiles)


MetricsRecord = dict[str, MetricStats]


class OriginResult(BaseModel):
    """Outcome of one origin lookup within a batch.

    ``metrics`` is set for OK results, ``error`` for FAILED ones.
    """

    origin: str
    status: ResultStatus
    metrics: MetricsRecord | None = None
    error: str | None = None

    @classmethod
    def from_record(cls, origin: str, metrics: MetricsRecord) -> OriginResult:
        return cls(origin=origin, status=ResultStatus.OK, metrics=metrics)

    @classmethod
    def from_error(cls, origin: str, reason: str) -> OriginResult:
        return cls(origin=origin, status=ResultStatus.FAILED, error=reason)

    @property
    def is_ok(self) -> bool:
        return self.status == ResultStatus.OK and self.metrics is not None


class RawResponse(BaseModel):
    """One entry handed over by the retrieval layer: the origin and whatever came back."""

    origin: str
    raw_body: Any = None


# ---------------------------------------------------------------------------
# Filter / sort state
# ---------------------------------------------------------------------------


class FilterState(BaseModel):
    """Current selection. An empty origin or metric set means "all"."""

    selected_origins: frozenset[str] = frozenset()
    selected_metrics: frozenset[str] = frozenset()
    threshold: float = Field(default=0.0, allow_inf_nan=False)

    model_config = {"frozen": True}

    def admits_origin(self, origin: str) -> bool:
        return not self.selected_origins or origin in self.selected_origins

    def admits_metric(self, metric: str) -> bool:
        return not self.selected_metrics or metric in self.selected_metrics


class SortState(BaseModel):
    key: SortKey = SortKey.METRIC
    direction: SortDirection = SortDirection.ASC

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Derived views
# ---------------------------------------------------------------------------


class Row(BaseModel):
    origin: str
    metric: str
    value: float
    histogram: list[HistogramBucket] = Field(default_factory=list)


class MetricSummary(BaseModel):
    metric: str
    average: float
    min: float
    max: float
    count: int


class DerivedViews(BaseModel):
    rows: list[Row] = Field(default_factory=list)
    summary: dict[str, MetricSummary] = Field(default_factory=dict)
    metric_universe: list[str] = Field(default_factory=list)
