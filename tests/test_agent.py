"""
Tests for the search agent with fake search and LLM services.
"""

import json

import pytest

from src.core.agent import SearchAgent
from src.core.tools import BRAVE_SEARCH_TOOL, BRAVE_SUGGEST_TOOL
from src.services.llm.models import LLMRole
from src.services.search.models import SuggestResponse
from src.utils.exceptions import EmptyQueryError, SearchConnectionError, SearchTimeoutError

from conftest import ScriptedLLMService, result, text_response, tool_call_response


@pytest.fixture
def agent(search_service, tracker):
    return SearchAgent(search_service, tracker)


def agent_with_llm(search_service, tracker, *responses) -> tuple[SearchAgent, ScriptedLLMService]:
    llm = ScriptedLLMService(list(responses))
    return SearchAgent(search_service, tracker, llm_service=llm), llm


class TestDirectSearch:
    """Single upstream search."""

    @pytest.mark.asyncio
    async def test_uses_session_preferences(self, agent, search_service):
        await agent.update_preferences("s1", {"safesearch": "strict", "count": 5})

        await agent.direct_search("s1", "python", {"count": "3"})

        _, options = search_service.search_calls[0]
        assert options.safesearch == "strict"
        assert options.count == 3
        assert options.country == "US"

    @pytest.mark.asyncio
    async def test_query_is_recorded(self, agent):
        await agent.direct_search("s1", "  python  ")

        state = await agent.get_state("s1")

        assert [r.query for r in state.recent_searches] == ["python"]
        assert state.conversation_history[0].content == "python"

    @pytest.mark.asyncio
    async def test_failed_search_is_still_recorded(self, agent, search_service):
        search_service.failing = {"python"}

        with pytest.raises(SearchConnectionError):
            await agent.direct_search("s1", "python")

        state = await agent.get_state("s1")
        assert [r.query for r in state.recent_searches] == ["python"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("query", [None, "", "   "])
    async def test_empty_query(self, agent, search_service, query):
        with pytest.raises(EmptyQueryError):
            await agent.direct_search("s1", query)

        assert search_service.search_calls == []
        assert (await agent.get_state("s1")).recent_searches == ()


class TestOptimizedSearch:
    """Query plus suggestions."""

    @pytest.mark.asyncio
    async def test_merges_suggestions(self, agent, search_service):
        search_service.suggestions = ["python tutorial"]
        search_service.results = {
            "python": result("python", ["https://a.com/1"]),
            "python tutorial": result("python tutorial", ["https://a.com/1", "https://b.com/1"]),
        }

        merged = await agent.optimized_search("s1", "python")

        assert merged.sources == ["python", "python tutorial"]
        assert merged.total_results == 2

    @pytest.mark.asyncio
    async def test_records_only_the_primary_query(self, agent, search_service):
        search_service.suggestions = ["a", "b"]

        await agent.optimized_search("s1", "python")

        state = await agent.get_state("s1")
        assert [r.query for r in state.recent_searches] == ["python"]

    @pytest.mark.asyncio
    async def test_suggest_options_follow_search_options(self, agent, search_service):
        await agent.optimized_search("s1", "python", {"country": "FR", "search_lang": "fr"}, {"count": 2})

        _, options = search_service.suggest_calls[0]
        assert (options.country, options.lang, options.count) == ("FR", "fr", 2)


class TestSuggestions:
    """Suggestions never fail."""

    @pytest.mark.asyncio
    async def test_returns_suggestions(self, agent, search_service):
        search_service.suggestions = ["python", "pytorch"]

        response = await agent.get_suggestions("s1", "py")

        assert response.queries == ["python", "pytorch"]
        _, options = search_service.suggest_calls[0]
        assert options.country == "US"

    @pytest.mark.asyncio
    async def test_upstream_failure_is_empty(self, agent, search_service):
        async def broken(query, options):
            raise SearchTimeoutError(query, 1.0)

        search_service.suggest = broken

        response = await agent.get_suggestions("s1", "py")

        assert isinstance(response, SuggestResponse)
        assert response.results == []

    @pytest.mark.asyncio
    async def test_records_turn_but_not_search(self, agent):
        await agent.get_suggestions("s1", "py")

        state = await agent.get_state("s1")

        assert state.recent_searches == ()
        assert state.conversation_history[0].content == "py"


class TestAgenticSearch:
    """LLM tool loop."""

    @pytest.mark.asyncio
    async def test_answer_without_tools(self, search_service, tracker):
        agent, llm = agent_with_llm(search_service, tracker, text_response("Paris."))

        answer = await agent.agentic_search("s1", "capital of France?")

        assert answer == "Paris."
        roles = [m.role for m in llm.calls[0]]
        assert roles == [LLMRole.SYSTEM, LLMRole.USER]
        assert "capital of France?" in llm.calls[0][1].content

    @pytest.mark.asyncio
    async def test_tool_call_round(self, search_service, tracker):
        search_service.results = {"france capital": result("france capital", ["https://a.com/paris"])}
        agent, llm = agent_with_llm(
            search_service,
            tracker,
            tool_call_response(BRAVE_SEARCH_TOOL, query="france capital", count="3"),
            text_response("Paris [https://a.com/paris]"),
        )

        answer = await agent.agentic_search("s1", "capital of France?")

        assert answer == "Paris [https://a.com/paris]"
        query, options = search_service.search_calls[0]
        assert query == "france capital"
        assert options.count == 3
        assert options.safesearch == "moderate"

        second_round = llm.calls[1]
        assert second_round[-2].role == LLMRole.ASSISTANT
        tool_message = second_round[-1]
        assert tool_message.role == LLMRole.TOOL
        assert tool_message.tool_name == BRAVE_SEARCH_TOOL
        assert json.loads(tool_message.content)["web_results"][0]["url"] == "https://a.com/paris"

    @pytest.mark.asyncio
    async def test_suggest_tool(self, search_service, tracker):
        search_service.suggestions = ["python"]
        agent, llm = agent_with_llm(
            search_service,
            tracker,
            tool_call_response(BRAVE_SUGGEST_TOOL, query="pyth"),
            text_response("python"),
        )

        await agent.agentic_search("s1", "complete pyth")

        payload = json.loads(llm.calls[1][-1].content)
        assert payload["results"] == [{"query": "python", "is_entity": False}]

    @pytest.mark.asyncio
    async def test_bad_tool_calls_are_reported_to_the_model(self, search_service, tracker):
        agent, llm = agent_with_llm(
            search_service,
            tracker,
            tool_call_response("webFetch", url="https://a.com"),
            tool_call_response(BRAVE_SEARCH_TOOL, count=3),
            text_response("gave up"),
        )

        answer = await agent.agentic_search("s1", "q")

        assert answer == "gave up"
        assert "Unknown tool" in json.loads(llm.calls[1][-1].content)["error"]
        assert "Invalid arguments" in json.loads(llm.calls[2][-1].content)["error"]
        assert search_service.search_calls == []

    @pytest.mark.asyncio
    async def test_conversation_is_recorded(self, search_service, tracker):
        agent, _ = agent_with_llm(search_service, tracker, text_response("Paris."))

        await agent.agentic_search("s1", "capital of France?")

        history = (await agent.get_state("s1")).conversation_history
        assert [(t.role.value, t.content) for t in history] == [
            ("assistant", "Paris."),
            ("user", "capital of France?"),
        ]

    @pytest.mark.asyncio
    async def test_preferences_are_applied_first(self, search_service, tracker):
        agent, _ = agent_with_llm(
            search_service,
            tracker,
            tool_call_response(BRAVE_SEARCH_TOOL, query="q"),
            text_response("ok"),
        )

        await agent.agentic_search("s1", "q", {"safesearch": "off"})

        _, options = search_service.search_calls[0]
        assert options.safesearch == "off"
        assert (await agent.get_state("s1")).preferences.safesearch == "off"

    @pytest.mark.asyncio
    async def test_tool_failure_becomes_apology(self, search_service, tracker):
        search_service.failing = {"q"}
        agent, _ = agent_with_llm(
            search_service,
            tracker,
            tool_call_response(BRAVE_SEARCH_TOOL, query="q"),
        )

        answer = await agent.agentic_search("s1", "q")

        assert answer == "Sorry, I encountered an error while searching: Cannot connect to search provider: Fake"
        history = (await agent.get_state("s1")).conversation_history
        assert [t.role.value for t in history] == ["user"]

    @pytest.mark.asyncio
    async def test_without_llm(self, agent):
        answer = await agent.agentic_search("s1", "q")
        assert answer.startswith("Sorry, I encountered an error while searching: ")

    @pytest.mark.asyncio
    async def test_step_limit(self, search_service, tracker, monkeypatch):
        monkeypatch.setenv("SCOUT_LLM_MAX_STEPS", "2")
        from src.config import clear_settings_cache, get_settings
        clear_settings_cache()

        llm = ScriptedLLMService([
            tool_call_response(BRAVE_SUGGEST_TOOL, query="a"),
            tool_call_response(BRAVE_SUGGEST_TOOL, query="b"),
            text_response("never reached"),
        ])
        agent = SearchAgent(search_service, tracker, llm_service=llm, settings=get_settings())

        answer = await agent.agentic_search("s1", "q")

        assert len(llm.calls) == 2
        assert answer == ""

    @pytest.mark.asyncio
    async def test_empty_query_raises(self, search_service, tracker):
        agent, llm = agent_with_llm(search_service, tracker)

        with pytest.raises(EmptyQueryError):
            await agent.agentic_search("s1", " ")
        assert llm.calls == []
