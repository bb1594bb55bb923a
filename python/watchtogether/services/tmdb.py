"""HTTP client for The Movie Database (TMDB) v3 API.

The client wraps a shared httpx.Client (created in the app lifespan) and
turns every transport failure, timeout, non-2xx status or undecodable body
into a retryable UpstreamError.
"""

from typing import Any

import httpx

from watchtogether.config import Settings
from watchtogether.errors import UpstreamError
from watchtogether.logging import get_logger

logger = get_logger(__name__)


class TMDBClient:
    """Catalog client for search, detail and watch-provider lookups."""

    def __init__(
        self,
        http_client: httpx.Client,
        api_key: str,
        base_url: str = "https://api.themoviedb.org/3",
        timeout_s: float = 10.0,
    ):
        self._client = http_client
        self._api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout_s = timeout_s

    @classmethod
    def from_settings(cls, settings: Settings, http_client: httpx.Client) -> "TMDBClient":
        return cls(
            http_client,
            api_key=settings.tmdb_api_key or "",
            base_url=settings.tmdb_base_url,
            timeout_s=settings.tmdb_timeout_s,
        )

    def _get(self, path: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        url = f"{self.base_url}{path}"
        query = {"api_key": self._api_key, **(params or {})}
        try:
            response = self._client.get(url, params=query, timeout=self.timeout_s)
        except httpx.TimeoutException as e:
            logger.warning("tmdb_timeout", path=path)
            raise UpstreamError("Catalog request timed out") from e
        except httpx.HTTPError as e:
            logger.warning("tmdb_transport_error", path=path, error=str(e))
            raise UpstreamError("Catalog service unreachable") from e

        if response.status_code < 200 or response.status_code >= 300:
            logger.warning("tmdb_bad_status", path=path, status_code=response.status_code)
            raise UpstreamError(
                f"Catalog service returned {response.status_code}",
                upstream_status=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            logger.warning("tmdb_invalid_json", path=path)
            raise UpstreamError("Catalog service returned an invalid response") from e

        # Every endpoint used here answers with a JSON object
        if not isinstance(data, dict):
            logger.warning("tmdb_unexpected_body", path=path, body_type=type(data).__name__)
            raise UpstreamError("Catalog service returned an invalid response")
        return data

    def search_multi(self, query: str) -> list[dict[str, Any]]:
        """Search movies, TV shows and people in one call."""
        data = self._get("/search/multi", {"query": query, "include_adult": "false"})
        results = data.get("results") or []
        if not isinstance(results, list):
            logger.warning(
                "tmdb_unexpected_body", path="/search/multi", body_type=type(results).__name__
            )
            raise UpstreamError("Catalog service returned an invalid response")
        return [hit for hit in results if isinstance(hit, dict)]

    def fetch_detail(self, catalog_id: int, kind: str) -> dict[str, Any]:
        return self._get(f"/{kind}/{catalog_id}")

    def fetch_watch_providers(self, catalog_id: int, kind: str) -> dict[str, Any]:
        return self._get(f"/{kind}/{catalog_id}/watch/providers")
