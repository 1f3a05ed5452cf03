"""
Brave Search service implementation.
"""

import time
from typing import Optional

import httpx

from src.config import get_settings
from src.services.search.base import SearchService
from src.services.search.models import (
    SearchOptions,
    SearchResult,
    SuggestOptions,
    SuggestResponse,
)
from src.services.search.normalizer import normalize_search_response, parse_suggest_response
from src.services.search.params import build_search_url, build_suggest_url
from src.utils.exceptions import (
    SearchConnectionError,
    SearchError,
    SearchTimeoutError,
    UpstreamStatusError,
)
from src.utils.logging import get_logger
from src.utils.retry import RetryConfig, retry_async

logger = get_logger(__name__)

PROVIDER = "Brave"


class BraveSearchService(SearchService):
    """
    Brave Web Search and Suggest client.

    Timeouts and connection failures are retried with exponential backoff;
    upstream status errors are not.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        suggest_api_key: Optional[str] = None,
        search_endpoint: Optional[str] = None,
        suggest_endpoint: Optional[str] = None,
        timeout: Optional[float] = None,
        max_attempts: Optional[int] = None,
        retry_base_delay: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        settings = get_settings()
        self.api_key = api_key if api_key is not None else settings.brave.api_key
        self.suggest_api_key = (
            suggest_api_key
            or settings.brave.suggest_api_key
            or self.api_key
        )
        self.search_endpoint = search_endpoint or settings.brave.search_endpoint
        self.suggest_endpoint = suggest_endpoint or settings.brave.suggest_endpoint
        self.timeout = timeout or settings.brave.timeout
        self._verify_ssl = settings.brave.verify_ssl
        self._transport = transport

        self._retry_config = RetryConfig(
            max_attempts=max_attempts if max_attempts is not None else settings.brave.max_attempts,
            base_delay=retry_base_delay if retry_base_delay is not None else settings.brave.retry_base_delay,
            exceptions=(SearchTimeoutError, SearchConnectionError),
        )

        if not self.api_key:
            logger.warning("No Brave API key configured; upstream calls will be rejected")

        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                headers={
                    "Accept": "application/json",
                    "Accept-Encoding": "gzip",
                },
                verify=self._verify_ssl,
                transport=self._transport,
            )
        return self._client

    async def close(self):
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _fetch(self, url: httpx.URL, api_key: str, query: str) -> httpx.Response:
        """One GET against an upstream endpoint, with httpx errors mapped."""
        client = await self._get_client()
        try:
            response = await client.get(url, headers={"X-Subscription-Token": api_key})
        except httpx.TimeoutException as e:
            logger.error(f"{PROVIDER} timeout for query: {query}")
            raise SearchTimeoutError(query, self.timeout) from e
        except httpx.TransportError as e:
            logger.error(f"Cannot connect to {PROVIDER} at {url.host}")
            raise SearchConnectionError(PROVIDER, str(e)) from e

        if not response.is_success:
            logger.error(f"{PROVIDER} HTTP error: {response.status_code}")
            raise UpstreamStatusError(PROVIDER, response.status_code, response.text)

        return response

    async def search(self, query: str, options: SearchOptions) -> SearchResult:
        """Execute a web search against Brave and normalize the response."""
        start_time = time.time()

        url = build_search_url(self.search_endpoint, query, options)
        logger.debug(f"Brave search URL: {url}")

        response = await retry_async(self._fetch, url, self.api_key, query, config=self._retry_config)
        result = normalize_search_response(response.content)

        logger.info(
            f"Search complete: '{query}' -> {result.total_results} web results "
            f"in {time.time() - start_time:.2f}s"
        )
        return result

    async def suggest(self, query: str, options: SuggestOptions) -> SuggestResponse:
        """Fetch suggestions; any upstream or parse failure yields no suggestions."""
        url = build_suggest_url(self.suggest_endpoint, query, options)
        logger.debug(f"Brave suggest URL: {url}")

        try:
            response = await retry_async(
                self._fetch, url, self.suggest_api_key, query, config=self._retry_config
            )
            suggestions = parse_suggest_response(response.content, query)
        except SearchError as e:
            logger.warning(f"Suggest failed for '{query}', continuing without suggestions: {e.message}")
            return SuggestResponse.empty(query)

        logger.info(f"Suggest complete: '{query}' -> {len(suggestions.results)} suggestions")
        return suggestions

    async def health_check(self) -> bool:
        """Check that Brave accepts our key, using a one-result suggest call."""
        if not self.suggest_api_key:
            return False
        try:
            client = await self._get_client()
            url = build_suggest_url(self.suggest_endpoint, "health", SuggestOptions(count=1))
            response = await client.get(url, headers={"X-Subscription-Token": self.suggest_api_key})
            return response.status_code == 200
        except httpx.HTTPError as e:
            logger.warning(f"{PROVIDER} health check failed: {e}")
            return False
