"""
Shared fixtures.

Settings are read from the environment on first use, so the test environment
is set before anything from ``src`` is imported.
"""

import asyncio
import os

os.environ.setdefault("SCOUT_ENVIRONMENT", "test")
os.environ.setdefault("SCOUT_SESSION_PROVIDER", "memory")
os.environ.setdefault("SCOUT_BRAVE_API_KEY", "test-key")
os.environ.setdefault("SCOUT_BRAVE_RETRY_BASE_DELAY", "0")

from typing import Optional

import pytest

from src.config import clear_settings_cache
from src.core.state import SessionStateTracker
from src.services.llm.base import LLMService
from src.services.llm.models import GenerationResult, ToolCall
from src.services.search.base import SearchService
from src.services.search.models import (
    NewsResult,
    SearchOptions,
    SearchResult,
    SuggestOptions,
    SuggestResponse,
    SuggestResult,
    WebResult,
)
from src.storage.memory import InMemoryStateStore
from src.utils.exceptions import SearchConnectionError


# =============================================================================
# BUILDERS
# =============================================================================

def web(url: str, title: str = "") -> WebResult:
    host = url.split("/")[2]
    return WebResult(title=title or url, url=url, description="", source=host)


def news(url: str) -> NewsResult:
    host = url.split("/")[2]
    return NewsResult(title=url, url=url, description="", source=host)


def result(query: str, web_urls: list[str], news_urls: Optional[list[str]] = None) -> SearchResult:
    web_results = [web(u) for u in web_urls]
    return SearchResult(
        query=query,
        total_results=len(web_results),
        web_results=web_results,
        news_results=[news(u) for u in news_urls or []],
    )


def raw_web_item(url: str, title: str = "A page", **extra) -> dict:
    item = {"title": title, "url": url, "description": f"About {title}"}
    item.update(extra)
    return item


def raw_payload(query: str, web_items: Optional[list[dict]] = None, **sections) -> dict:
    """A Brave web search response body."""
    payload = {"type": "search", "query": {"original": query}}
    if web_items is not None:
        payload["web"] = {"type": "search", "results": web_items}
    for name, items in sections.items():
        payload[name] = {"results": items}
    return payload


def suggest_payload(query: str, suggestions: list[str]) -> dict:
    """A Brave suggest response body."""
    return {
        "type": "suggest",
        "query": {"original": query},
        "results": [{"query": s, "is_entity": False} for s in suggestions],
    }


# =============================================================================
# FAKE SERVICES
# =============================================================================

class FakeSearchService(SearchService):
    """Answers from canned results and records every call."""

    def __init__(self):
        self.results: dict[str, SearchResult] = {}
        self.suggestions: list[str] = []
        self.failing: set[str] = set()
        self.search_calls: list[tuple[str, SearchOptions]] = []
        self.suggest_calls: list[tuple[str, SuggestOptions]] = []
        self.delays: dict[str, float] = {}
        self.completed: list[str] = []
        self.healthy = True

    async def search(self, query: str, options: SearchOptions) -> SearchResult:
        self.search_calls.append((query, options))
        if query in self.delays:
            await asyncio.sleep(self.delays[query])
        self.completed.append(query)
        if query in self.failing:
            raise SearchConnectionError("Fake", f"refused for {query}")
        return self.results.get(query, SearchResult(query=query))

    async def suggest(self, query: str, options: SuggestOptions) -> SuggestResponse:
        self.suggest_calls.append((query, options))
        return SuggestResponse(
            original_query=query,
            results=[SuggestResult(query=s) for s in self.suggestions],
        )

    async def health_check(self) -> bool:
        return self.healthy


class ScriptedLLMService(LLMService):
    """Replays a fixed sequence of responses and records what it was sent."""

    def __init__(self, responses: Optional[list[GenerationResult]] = None):
        self.responses = list(responses or [])
        self.calls: list[list] = []

    async def chat(self, messages, tools=None, config=None) -> GenerationResult:
        self.calls.append(list(messages))
        if not self.responses:
            return GenerationResult(content="done", model="fake")
        return self.responses.pop(0)

    async def list_models(self) -> list[str]:
        return ["llama3.1:8b"]

    async def health_check(self) -> bool:
        return True


def tool_call_response(name: str, **arguments) -> GenerationResult:
    return GenerationResult(content="", model="fake", tool_calls=[ToolCall(name=name, arguments=arguments)])


def text_response(text: str) -> GenerationResult:
    return GenerationResult(content=text, model="fake")


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture(autouse=True)
def _fresh_settings():
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def search_service() -> FakeSearchService:
    return FakeSearchService()


@pytest.fixture
def state_store() -> InMemoryStateStore:
    return InMemoryStateStore()


@pytest.fixture
def tracker(state_store) -> SessionStateTracker:
    return SessionStateTracker(state_store)
