"""Cached, retrying HTTP client for the annotation web services."""

import logging
import time
from pathlib import Path
from typing import Any

import requests
import requests_cache
from requests.exceptions import ConnectionError, HTTPError, Timeout
from tenacity import (
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from sparsenet_pipeline.config.schema import PipelineConfig

logger = logging.getLogger(__name__)

CACHE_NAME = "api_cache"
RETRYABLE_ERRORS = (HTTPError, Timeout, ConnectionError)


class CachedAPIClient:
    """
    HTTP client shared by the hallmarks service and BioMart lookups.

    Responses are stored in a SQLite cache, so asking twice for the same gene
    list is answered locally. Transient failures are retried with exponential
    backoff; only responses that actually hit the network are throttled.
    """

    def __init__(
        self,
        cache_dir: Path,
        rate_limit: int = 5,
        max_retries: int = 5,
        cache_ttl: int = 86400,
        timeout: int = 30,
    ):
        """
        Args:
            cache_dir: Directory holding the SQLite response cache
            rate_limit: Maximum non-cached requests per second
            max_retries: Attempts per request before giving up
            cache_ttl: Seconds a cached response stays valid (0 = forever)
            timeout: Per-request timeout in seconds
        """
        self.cache_dir = Path(cache_dir)
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        self.rate_limit = rate_limit
        self.max_retries = max_retries
        self.timeout = timeout

        self.session = requests_cache.CachedSession(
            cache_name=str(self.cache_dir / CACHE_NAME),
            backend="sqlite",
            expire_after=cache_ttl if cache_ttl > 0 else None,
        )

    @classmethod
    def from_config(cls, config: PipelineConfig) -> "CachedAPIClient":
        """Build a client from the ``api`` section and ``cache_dir``."""
        return cls(
            cache_dir=config.cache_dir,
            rate_limit=config.api.rate_limit_per_second,
            max_retries=config.api.max_retries,
            cache_ttl=config.api.cache_ttl_seconds,
            timeout=config.api.timeout_seconds,
        )

    def _retrying(self) -> Retrying:
        return Retrying(
            stop=stop_after_attempt(self.max_retries),
            wait=wait_exponential(multiplier=1, min=2, max=60),
            retry=retry_if_exception_type(RETRYABLE_ERRORS),
            reraise=True,
        )

    def _fetch_once(self, url: str, params: dict[str, Any] | None, **kwargs) -> requests.Response:
        response = self.session.get(url, params=params, timeout=self.timeout, **kwargs)
        if response.status_code == 429:
            logger.warning(f"Rate limited (429) by {url}; backing off")
        response.raise_for_status()
        return response

    def get(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        **kwargs,
    ) -> requests.Response:
        """
        GET ``url``, retrying transient failures.

        Args:
            url: Request URL
            params: Query parameters (list values become repeated keys)
            **kwargs: Passed through to the session

        Returns:
            Response object

        Raises:
            HTTPError, Timeout, ConnectionError: Once all attempts have failed
        """
        response = self._retrying()(self._fetch_once, url, params, **kwargs)

        if not getattr(response, "from_cache", False):
            time.sleep(1 / self.rate_limit)

        return response

    def get_text(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        **kwargs,
    ) -> str:
        """GET ``url`` and return the body as text (both services answer TSV)."""
        return self.get(url, params=params, **kwargs).text

    def clear_cache(self) -> None:
        """Drop every cached response."""
        self.session.cache.clear()
        logger.info(f"Cleared API cache in {self.cache_dir}")

    def cache_stats(self) -> dict[str, Any]:
        """Describe the on-disk cache: path, whether it exists, size in bytes."""
        cache_path = self.cache_dir / f"{CACHE_NAME}.sqlite"
        exists = cache_path.exists()
        return {
            "cache_path": str(cache_path),
            "cache_exists": exists,
            "cache_size_bytes": cache_path.stat().st_size if exists else 0,
        }
