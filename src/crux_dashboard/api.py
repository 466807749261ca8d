"""FastAPI proxy for the Chrome UX Report API.

Endpoints:
  GET    /api/health   liveness check
  POST   /api/crux     forward {url} to CrUX and return its JSON verbatim
  POST   /api/views    compute rows/summary/metric universe for an already-fetched batch

The proxy keeps the API key server-side; browsers talk only to this service.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import APIRouter, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from crux_core.models import DerivedViews, FilterState, OriginResult, RawResponse, SortState
from crux_core.normalizer import normalize
from crux_core.views import compute_views
from crux_dashboard.client import CruxApiError, CruxClient
from crux_dashboard.config import DashboardConfig

logger = logging.getLogger("crux_dashboard.api")

router = APIRouter(prefix="/api", tags=["crux"])

# Set at startup by create_app's lifespan, or directly by tests
_client: CruxClient | None = None


def configure_crux_router(*, client: CruxClient | None) -> None:
    """Inject the CrUX client used by the proxy endpoint."""
    global _client
    _client = client


def _get_client() -> CruxClient:
    if _client is None:
        raise HTTPException(status_code=503, detail="CrUX client not configured")
    return _client


# ---------------------------------------------------------------------------
# Request/response models
# ---------------------------------------------------------------------------


class HealthResponse(BaseModel):
    message: str


class CruxRequest(BaseModel):
    url: str | None = None


class ViewsRequest(BaseModel):
    responses: list[RawResponse] = Field(default_factory=list)
    filter: FilterState = Field(default_factory=FilterState)
    sort: SortState = Field(default_factory=SortState)


class ViewsResponse(BaseModel):
    views: DerivedViews
    failed: list[OriginResult] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.get("/health")
async def health() -> HealthResponse:
    return HealthResponse(message="Server is up and running!")


@router.post("/crux")
async def query_crux(request: CruxRequest | None = None) -> dict:
    """Return the upstream CrUX record for one origin, unmodified."""
    url = request.url.strip() if request and request.url else ""
    if not url:
        raise HTTPException(status_code=400, detail="URL is required")

    client = _get_client()
    try:
        return await client.query_record(url)
    except CruxApiError as exc:
        logger.error("CrUX API error for %s: %s", url, exc.message)
        raise HTTPException(status_code=500, detail="Failed to fetch CrUX data") from exc


@router.post("/views")
async def derive_views(request: ViewsRequest) -> ViewsResponse:
    """Normalize a fetched batch and compute its derived views under the given filter/sort."""
    results, _ = normalize(request.responses)
    try:
        views = compute_views(results, request.filter, request.sort)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return ViewsResponse(views=views, failed=[r for r in results if not r.is_ok])


# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------


def create_app(config: DashboardConfig | None = None) -> FastAPI:
    """Build the proxy app; the CrUX client lives for the app's lifespan."""
    config = config or DashboardConfig()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if not config.google_api_key:
            logger.warning("No CrUX API key configured; upstream requests will be rejected")
        async with CruxClient(config) as client:
            configure_crux_router(client=client)
            try:
                yield
            finally:
                configure_crux_router(client=None)

    app = FastAPI(
        title="CrUX Dashboard Proxy",
        description="Pass-through to the Chrome UX Report API plus derived dashboard views.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,  # type: ignore[arg-type]  # Starlette middleware typing
        allow_origins=config.cors_origins,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )
    app.include_router(router)
    return app
