"""
Abstract base class for search services.
"""

from abc import ABC, abstractmethod

from src.services.search.models import SearchOptions, SearchResult, SuggestOptions, SuggestResponse


class SearchService(ABC):
    """
    Abstract interface for search providers.

    Options passed in are already canonical; implementations send them as-is
    and never fill in defaults.
    """

    @abstractmethod
    async def search(self, query: str, options: SearchOptions) -> SearchResult:
        """
        Execute a web search query.

        Args:
            query: Search query string
            options: Canonical search options

        Returns:
            Normalized SearchResult

        Raises:
            TransportError: If the upstream call fails
            NormalizationError: If the response body is not a JSON object
        """
        pass

    @abstractmethod
    async def suggest(self, query: str, options: SuggestOptions) -> SuggestResponse:
        """
        Fetch query suggestions.

        Never raises for upstream failures; returns an empty response instead.
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """
        Check if the search service is available.

        Returns:
            True if service is healthy
        """
        pass

    async def close(self) -> None:
        """Release any held connections."""
        return None
