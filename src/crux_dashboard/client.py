"""Chrome UX Report API client.

Issues one ``records:queryRecord`` POST per origin. ``query_record`` raises
CruxApiError on any failure; ``fetch_batch`` never raises and turns failures
into error payloads, so a batch always holds one entry per requested origin,
in request order.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from typing import Any

import httpx

from crux_core.models import RawResponse
from crux_dashboard.config import DashboardConfig

logger = logging.getLogger("crux_dashboard.client")


class CruxApiError(Exception):
    """An origin lookup failed: transport error, non-2xx status, or unusable body."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    def as_payload(self) -> dict[str, Any]:
        """Error body in the same shape the CrUX API uses."""
        error: dict[str, Any] = {"message": self.message}
        if self.status_code is not None:
            error["code"] = self.status_code
        return {"error": error}


def clean_origins(origins: Iterable[str]) -> list[str]:
    """Strip whitespace and drop blank entries. Order and duplicates are kept."""
    return [origin.strip() for origin in origins if origin and origin.strip()]


class CruxClient:
    """Async CrUX API client.

    Use as an async context manager. An injected ``http_client`` is used as-is
    and left open on exit.
    """

    def __init__(
        self,
        config: DashboardConfig | None = None,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._config = config or DashboardConfig()
        self._http = http_client
        self._owns_http = http_client is None

    async def __aenter__(self) -> CruxClient:
        if self._http is None:
            self._http = httpx.AsyncClient(timeout=self._config.request_timeout_sec)
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_http and self._http is not None:
            await self._http.aclose()
            self._http = None

    async def query_record(self, origin: str) -> dict[str, Any]:
        """Fetch the raw CrUX record for one origin."""
        if self._http is None:
            raise RuntimeError("CruxClient must be used inside 'async with'")

        params = {"key": self._config.google_api_key} if self._config.google_api_key else None
        try:
            resp = await self._http.post(
                self._config.api_endpoint,
                params=params,
                json={"formFactor": self._config.form_factor, "origin": origin},
                timeout=self._config.request_timeout_sec,
            )
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPStatusError as exc:
            logger.warning(
                "CrUX HTTP %d for %s: %s",
                exc.response.status_code,
                origin,
                exc.response.text[:200],
            )
            raise CruxApiError(
                _upstream_message(exc.response), status_code=exc.response.status_code
            ) from exc
        except httpx.HTTPError as exc:
            logger.warning("CrUX request failed for %s: %s", origin, exc)
            raise CruxApiError(f"Request failed: {exc}") from exc
        except ValueError as exc:
            logger.warning("CrUX returned a non-JSON body for %s", origin)
            raise CruxApiError("Malformed response from CrUX API") from exc

        if not isinstance(data, dict):
            raise CruxApiError("Unexpected response shape from CrUX API")
        return data

    async def fetch_batch(self, origins: Iterable[str]) -> list[RawResponse]:
        """Query every non-blank origin concurrently; one RawResponse per origin."""
        cleaned = clean_origins(origins)
        semaphore = asyncio.Semaphore(self._config.max_concurrency)

        async def fetch_one(origin: str) -> RawResponse:
            async with semaphore:
                try:
                    body: Any = await self.query_record(origin)
                except CruxApiError as exc:
                    body = exc.as_payload()
            return RawResponse(origin=origin, raw_body=body)

        responses = await asyncio.gather(*(fetch_one(origin) for origin in cleaned))

        failed = sum(1 for r in responses if "error" in r.raw_body)
        logger.info("Fetched %d origins: %d failed", len(responses), failed)
        return list(responses)


def _upstream_message(response: httpx.Response) -> str:
    """Prefer the API's own error message over the bare status line."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
    return f"HTTP {response.status_code} from CrUX API"
