"""Pytest configuration and fixtures for the CrUX dashboard tests."""

import pytest


@pytest.fixture
def anyio_backend() -> str:
    """The client is built on asyncio primitives; run async tests on asyncio only."""
    return "asyncio"


def _histogram(good: float, needs_improvement: float, poor: float) -> list[dict]:
    return [
        {"start": 0, "end": 2500, "density": good},
        {"start": 2500, "end": 4000, "density": needs_improvement},
        {"start": 4000, "density": poor},
    ]


@pytest.fixture
def make_payload():
    """Build a queryRecord-shaped body from a {metric: p75} mapping."""

    def _make(origin: str, metrics: dict) -> dict:
        return {
            "record": {
                "key": {"formFactor": "PHONE", "origin": origin},
                "metrics": {
                    name: {
                        "histogram": _histogram(0.8, 0.12, 0.08),
                        "percentiles": {"p75": p75},
                    }
                    for name, p75 in metrics.items()
                },
            }
        }

    return _make


@pytest.fixture
def crux_payload() -> dict:
    """A full CrUX response with a string-valued CLS percentile."""
    return {
        "record": {
            "key": {"formFactor": "PHONE", "origin": "https://web.dev"},
            "metrics": {
                "largest_contentful_paint": {
                    "histogram": _histogram(0.81, 0.12, 0.07),
                    "percentiles": {"p75": 0.81},
                },
                "cumulative_layout_shift": {
                    "histogram": [
                        {"start": "0.00", "end": "0.10", "density": 0.92},
                        {"start": "0.10", "end": "0.25", "density": 0.05},
                        {"start": "0.25", "density": 0.03},
                    ],
                    "percentiles": {"p75": "0.92"},
                },
                "interaction_to_next_paint": {
                    "histogram": _histogram(0.7, 0.2, 0.1),
                    "percentiles": {"p75": 0.7},
                },
            },
        },
        "urlNormalizationDetails": {"originalUrl": "web.dev", "normalizedUrl": "https://web.dev"},
    }


@pytest.fixture
def not_found_payload() -> dict:
    """The API's answer for an origin without enough traffic."""
    return {
        "error": {
            "code": 404,
            "message": "chrome ux report data not found",
            "status": "NOT_FOUND",
        }
    }
