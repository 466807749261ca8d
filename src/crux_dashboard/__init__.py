"""CrUX Dashboard - Chrome UX Report metrics for a set of origins.

Quick Start:
    from crux_core.normalizer import normalize
    from crux_core.models import FilterState, SortState
    from crux_core.views import compute_views
    from crux_dashboard.client import CruxClient

    async with CruxClient() as client:
        batch = await client.fetch_batch(["https://web.dev", "https://example.com"])

    results, metric_names = normalize(batch)
    views = compute_views(results, FilterState(threshold=50), SortState(key="value"))
"""

__version__ = "0.1.0"
