"""Immutable dashboard state and its transitions.

A DashboardState is a snapshot: the current batch plus filter and sort
settings. Transitions return a new snapshot and leave the old one untouched,
so the views can always be recomputed from scratch.
"""

from __future__ import annotations

import math
from collections.abc import Iterable

from pydantic import BaseModel, Field

from crux_core.models import DerivedViews, FilterState, OriginResult, SortState
from crux_core.types import SortDirection, SortKey
from crux_core.views import compute_views


class DashboardState(BaseModel):
    results: tuple[OriginResult, ...] = ()
    filter: FilterState = Field(default_factory=FilterState)
    sort: SortState = Field(default_factory=SortState)

    model_config = {"frozen": True}

    @property
    def origins(self) -> list[str]:
        """Origins of the current batch in request order, duplicates included."""
        return [result.origin for result in self.results]

    def with_batch(self, results: Iterable[OriginResult]) -> DashboardState:
        """Replace the batch wholesale and select every origin in it.

        Metric selection, threshold and sort carry over to the new batch.
        """
        batch = tuple(results)
        new_filter = self.filter.model_copy(
            update={"selected_origins": frozenset(r.origin for r in batch)}
        )
        return self.model_copy(update={"results": batch, "filter": new_filter})

    def with_filter(
        self,
        *,
        selected_origins: Iterable[str] | None = None,
        selected_metrics: Iterable[str] | None = None,
        threshold: float | None = None,
    ) -> DashboardState:
        """Update any subset of the filter fields; omitted fields are kept."""
        update: dict[str, object] = {}
        if selected_origins is not None:
            update["selected_origins"] = frozenset(selected_origins)
        if selected_metrics is not None:
            update["selected_metrics"] = frozenset(selected_metrics)
        if threshold is not None:
            update["threshold"] = threshold
        # Validate rather than model_copy so a NaN threshold is rejected
        new_filter = FilterState.model_validate({**self.filter.model_dump(), **update})
        return self.model_copy(update={"filter": new_filter})

    def request_sort(self, key: SortKey | str) -> DashboardState:
        """Column-header click: the active ascending key flips, anything else sorts ascending."""
        key = SortKey(key)
        if self.sort.key == key and self.sort.direction == SortDirection.ASC:
            direction = SortDirection.DESC
        else:
            direction = SortDirection.ASC
        return self.model_copy(update={"sort": SortState(key=key, direction=direction)})

    def with_sort(self, sort: SortState) -> DashboardState:
        return self.model_copy(update={"sort": sort})

    def reset_filters(self) -> DashboardState:
        return self.model_copy(update={"filter": FilterState()})

    def views(self) -> DerivedViews:
        return compute_views(self.results, self.filter, self.sort)


def parse_threshold(text: str | None) -> float:
    """Parse threshold input; blank, unparseable or non-finite input means 0."""
    if text is None:
        return 0.0
    try:
        value = float(text.strip())
    except ValueError:
        return 0.0
    return value if math.isfinite(value) else 0.0
