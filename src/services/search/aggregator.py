"""
Multi-query aggregation.

Optimized search widens a query with upstream suggestions, searches every
variant concurrently and merges the normalized results into one. Merging is
identity-based deduplication plus concatenation in query order; nothing is
re-ranked.
"""

import asyncio
from dataclasses import replace
from typing import Optional, Sequence

from src.config import get_settings
from src.services.search.base import SearchService
from src.services.search.models import (
    RESULT_SECTIONS,
    AggregatedResult,
    SearchOptions,
    SearchResult,
    SuggestOptions,
)
from src.utils.exceptions import EmptyMergeInputError, SearchError
from src.utils.logging import get_logger

logger = get_logger(__name__)


def merge_results(results: Sequence[SearchResult], queries: Sequence[str]) -> AggregatedResult:
    """
    Merge per-query results in order.

    The first result seeds the merge. Later results contribute only items whose
    identity key (``url``, or ``id`` for locations) has not been seen in that
    section. ``total_results`` is recomputed from the merged web results.

    Args:
        results: One normalized result per query, in query order
        queries: The query strings that produced ``results``

    Raises:
        EmptyMergeInputError: ``results`` is empty
    """
    if not results:
        raise EmptyMergeInputError()

    first = results[0]
    merged = AggregatedResult(
        query=first.query,
        altered_query=first.altered_query,
        infobox=first.infobox,
        summary=first.summary,
        sources=[queries[0]] if queries else [first.query],
        **{name: list(getattr(first, name)) for name in RESULT_SECTIONS},
    )

    seen: dict[str, set[str]] = {
        name: {item.identity_key for item in getattr(merged, name)}
        for name in RESULT_SECTIONS
    }

    for index, result in enumerate(results[1:], start=1):
        merged.sources.append(queries[index] if index < len(queries) else result.query)

        for name in RESULT_SECTIONS:
            section = getattr(merged, name)
            section_seen = seen[name]
            for item in getattr(result, name):
                key = item.identity_key
                if key in section_seen:
                    continue
                section_seen.add(key)
                section.append(item)

    merged.total_results = len(merged.web_results)
    return merged


class MultiQueryAggregator:
    """
    Runs the optimized search flow against a search service.

    Args:
        search_service: Provider of ``search`` and ``suggest``
        max_concurrency: Cap on simultaneous upstream searches; 0 or None is unbounded
        default_suggest_count: Suggestions requested when the caller gives no count
    """

    def __init__(
        self,
        search_service: SearchService,
        max_concurrency: Optional[int] = None,
        default_suggest_count: Optional[int] = None,
    ):
        settings = get_settings()
        self.search_service = search_service

        if max_concurrency is None:
            max_concurrency = settings.agent.max_concurrent_searches
        self.max_concurrency = max_concurrency
        self.default_suggest_count = default_suggest_count or settings.agent.default_suggest_count

    def _suggest_options_for(
        self,
        search_options: SearchOptions,
        suggest_options: Optional[SuggestOptions],
    ) -> SuggestOptions:
        options = suggest_options or SuggestOptions()
        return replace(
            options,
            count=options.count if options.count is not None else self.default_suggest_count,
            country=options.country if options.country is not None else search_options.country,
            lang=options.lang if options.lang is not None else search_options.search_lang,
        )

    async def resolve_queries(
        self,
        primary_query: str,
        search_options: SearchOptions,
        suggest_options: Optional[SuggestOptions] = None,
    ) -> list[str]:
        """The primary query followed by its suggested alternates."""
        options = self._suggest_options_for(search_options, suggest_options)
        try:
            suggestions = await self.search_service.suggest(primary_query, options)
        except SearchError as e:
            logger.warning(f"Suggestions unavailable for '{primary_query}': {e.message}")
            return [primary_query]

        return [primary_query, *suggestions.queries]

    async def _search_all(self, queries: list[str], options: SearchOptions) -> list[SearchResult]:
        semaphore = asyncio.Semaphore(self.max_concurrency) if self.max_concurrency else None

        async def run(query: str) -> SearchResult:
            if semaphore is None:
                return await self.search_service.search(query, options)
            async with semaphore:
                return await self.search_service.search(query, options)

        outcomes = await asyncio.gather(*(run(q) for q in queries), return_exceptions=True)

        first_error: Optional[BaseException] = None
        for query, outcome in zip(queries, outcomes):
            if isinstance(outcome, BaseException):
                logger.error(f"Search failed for query '{query}': {outcome}")
                if first_error is None:
                    first_error = outcome

        if first_error is not None:
            raise first_error
        return list(outcomes)

    async def aggregate(
        self,
        primary_query: str,
        search_options: SearchOptions,
        suggest_options: Optional[SuggestOptions] = None,
    ) -> AggregatedResult:
        """
        Search the primary query and its suggestions, then merge.

        Raises:
            TransportError: Any per-query search failed
        """
        queries = await self.resolve_queries(primary_query, search_options, suggest_options)
        logger.info(f"Executing {len(queries)} searches: {queries}")

        results = await self._search_all(queries, search_options)
        merged = merge_results(results, queries)

        logger.info(
            f"Combined search complete: {len(queries)} queries -> "
            f"{merged.total_results} unique web results"
        )
        return merged
