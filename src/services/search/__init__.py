"""Search Service - Brave web search, suggestions and multi-query aggregation."""
from .base import SearchService
from .brave import BraveSearchService
from .aggregator import MultiQueryAggregator, merge_results
from .models import (
    AggregatedResult,
    Preferences,
    SearchOptions,
    SearchResult,
    SuggestOptions,
    SuggestResponse,
)
from .normalizer import normalize_search_response, parse_suggest_response
from .params import OptionsKind, normalize_options, normalize_search_options, normalize_suggest_options

__all__ = [
    "SearchService",
    "BraveSearchService",
    "MultiQueryAggregator",
    "merge_results",
    "AggregatedResult",
    "Preferences",
    "SearchOptions",
    "SearchResult",
    "SuggestOptions",
    "SuggestResponse",
    "normalize_search_response",
    "parse_suggest_response",
    "OptionsKind",
    "normalize_options",
    "normalize_search_options",
    "normalize_suggest_options",
]
