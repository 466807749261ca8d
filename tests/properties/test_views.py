"""Property tests for the derived view engine.

Rows:
- Every row's origin is selected, its metric is selected, its value clears the threshold
- Raising the threshold never adds rows
- Consecutive rows respect the active sort key and direction
- Flipping the direction reorders rows without changing them

Summary:
- With no metric selection, counts match the rows per metric
- Averages lie within [min, max]; metrics with no surviving value are absent

Determinism and metric universe.
"""

from collections import Counter

from hypothesis import given, settings
from hypothesis import strategies as st

from crux_core.models import FilterState, OriginResult, SortState
from crux_core.types import SortDirection, SortKey
from crux_core.views import _collation_key, compute_rows, compute_summary, compute_views

from .strategies import batches, filter_states, sort_states


def _row_keys(rows) -> Counter:
    return Counter((r.origin, r.metric, r.value) for r in rows)


# =============================================================================
# ROW FILTERING
# =============================================================================


@given(batch=batches, filter=filter_states(), sort=sort_states())
@settings(max_examples=300)
def test_rows_respect_every_filter(batch: list[OriginResult], filter: FilterState, sort):
    """Property: every row passes the origin, metric and threshold filters."""
    for row in compute_rows(batch, filter, sort):
        assert filter.admits_origin(row.origin)
        assert filter.admits_metric(row.metric)
        assert row.value >= filter.threshold


@given(batch=batches, filter=filter_states(), extra=st.floats(min_value=0, max_value=100))
@settings(max_examples=200)
def test_higher_threshold_never_adds_rows(batch, filter: FilterState, extra: float):
    """Property: rows at a higher threshold are a sub-multiset of rows at a lower one."""
    stricter = filter.model_copy(update={"threshold": filter.threshold + extra})

    loose = _row_keys(compute_rows(batch, filter, SortState()))
    strict = _row_keys(compute_rows(batch, stricter, SortState()))

    assert not strict - loose


@given(batch=batches)
@settings(max_examples=200)
def test_failed_results_never_produce_rows(batch):
    """Property: only OK results contribute rows."""
    ok_origins = {r.origin for r in batch if r.is_ok}
    for row in compute_rows(batch, FilterState(), SortState()):
        assert row.origin in ok_origins


# =============================================================================
# ROW ORDERING
# =============================================================================


@given(batch=batches, filter=filter_states(), sort=sort_states())
@settings(max_examples=300)
def test_rows_follow_sort_key(batch, filter: FilterState, sort: SortState):
    """Property: consecutive rows never violate the primary sort order."""
    rows = compute_rows(batch, filter, sort)

    def primary(row):
        if sort.key == SortKey.VALUE:
            return row.value
        if sort.key == SortKey.ORIGIN:
            return _collation_key(row.origin)
        return _collation_key(row.metric)

    for a, b in zip(rows, rows[1:]):
        if sort.direction == SortDirection.ASC:
            assert primary(a) <= primary(b)
        else:
            assert primary(a) >= primary(b)


@given(batch=batches, filter=filter_states(), sort=sort_states())
@settings(max_examples=200)
def test_direction_flip_keeps_the_same_rows(batch, filter: FilterState, sort: SortState):
    """Property: ascending and descending hold the same multiset of rows."""
    flipped = sort.model_copy(update={"direction": sort.direction.flipped()})

    assert _row_keys(compute_rows(batch, filter, sort)) == _row_keys(
        compute_rows(batch, filter, flipped)
    )


# =============================================================================
# SUMMARY
# =============================================================================


@given(batch=batches, filter=filter_states())
@settings(max_examples=300)
def test_summary_counts_match_rows(batch, filter: FilterState):
    """Property: without a metric selection, summary counts equal rows per metric."""
    unselected = filter.model_copy(update={"selected_metrics": frozenset()})
    rows = compute_rows(batch, unselected, SortState())
    per_metric = Counter(row.metric for row in rows)

    summary = compute_summary(batch, filter)

    assert {name: stats.count for name, stats in summary.items()} == dict(per_metric)


@given(batch=batches, filter=filter_states())
@settings(max_examples=300)
def test_summary_average_within_bounds(batch, filter: FilterState):
    """Property: min <= average <= max, and every listed metric has a value."""
    for name, stats in compute_summary(batch, filter).items():
        assert stats.metric == name
        assert stats.count >= 1
        tolerance = 1e-9 * max(1.0, abs(stats.max))
        assert stats.min - tolerance <= stats.average <= stats.max + tolerance
        assert stats.min >= filter.threshold


# =============================================================================
# DETERMINISM AND METRIC UNIVERSE
# =============================================================================


@given(batch=batches, filter=filter_states(), sort=sort_states())
@settings(max_examples=200)
def test_views_are_deterministic(batch, filter: FilterState, sort: SortState):
    """Property: same inputs always produce equal views."""
    assert compute_views(batch, filter, sort) == compute_views(batch, filter, sort)


@given(batch=batches, filter=filter_states(), sort=sort_states())
@settings(max_examples=200)
def test_metric_universe_is_union_of_ok_metric_names(batch, filter: FilterState, sort):
    """Property: the universe lists each reported metric name exactly once, filters aside."""
    universe = compute_views(batch, filter, sort).metric_universe
    expected = {name for r in batch if r.is_ok for name in r.metrics}

    assert len(universe) == len(set(universe))
    assert set(universe) == expected
