"""
Search Agent.

Session-addressed entry point for every user-facing operation: direct search,
optimized (multi-query) search, suggestions, LLM-driven agentic search and
preference management. Request handlers and the CLI talk only to this class.
"""

import time
from collections.abc import Mapping
from typing import Any, Optional

from pydantic import ValidationError as ArgumentsError

from src.config import Settings, get_settings
from src.core.prompts import AGENTIC_SEARCH_ERROR, AGENTIC_SEARCH_USER, SEARCH_AGENT_SYSTEM
from src.core.state import ConversationRole, SessionState, SessionStateTracker
from src.core.tools import (
    BRAVE_SEARCH_TOOL,
    BRAVE_SUGGEST_TOOL,
    TOOL_SPECS,
    BraveSearchToolArgs,
    BraveSuggestToolArgs,
    format_tool_result,
)
from src.services.llm.base import LLMService
from src.services.llm.models import GenerationConfig, LLMMessage, LLMRole, ToolCall
from src.services.search.aggregator import MultiQueryAggregator
from src.services.search.base import SearchService
from src.services.search.models import (
    AggregatedResult,
    Preferences,
    SearchResult,
    SuggestResponse,
)
from src.services.search.params import (
    OptionsInput,
    normalize_search_options,
    normalize_suggest_options,
)
from src.utils.exceptions import EmptyQueryError, LLMError, ScoutError, SearchError
from src.utils.logging import LogContext, get_logger

logger = get_logger(__name__)


def _require_query(query: Optional[str]) -> str:
    if not query or not query.strip():
        raise EmptyQueryError()
    return query.strip()


class SearchAgent:
    """
    Orchestrates search operations for many independent sessions.

    Args:
        search_service: Upstream search provider
        state_tracker: Session state over a store
        llm_service: Required only for agentic search
        aggregator: Defaults to a MultiQueryAggregator over ``search_service``
    """

    def __init__(
        self,
        search_service: SearchService,
        state_tracker: SessionStateTracker,
        llm_service: Optional[LLMService] = None,
        aggregator: Optional[MultiQueryAggregator] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.search_service = search_service
        self.state = state_tracker
        self.llm_service = llm_service
        self.aggregator = aggregator or MultiQueryAggregator(
            search_service,
            max_concurrency=self.settings.agent.max_concurrent_searches,
            default_suggest_count=self.settings.agent.default_suggest_count,
        )

    async def close(self):
        """Close upstream clients."""
        await self.search_service.close()
        if self.llm_service is not None:
            await self.llm_service.close()

    # =========================================================================
    # SEARCH OPERATIONS
    # =========================================================================

    async def direct_search(
        self,
        session_id: str,
        query: str,
        options: OptionsInput = None,
    ) -> SearchResult:
        """
        One upstream search with session preferences as option defaults.

        The query is recorded before the upstream call, so failed searches
        are remembered too.
        """
        query = _require_query(query)
        with LogContext(logger, session_id=session_id, operation="direct_search"):
            start_time = time.time()
            state = await self.state.record_search(session_id, query)
            search_options = normalize_search_options(options, state.preferences)

            result = await self.search_service.search(query, search_options)

            logger.info(
                f"Direct search '{query}': {len(result.web_results)} web results "
                f"in {time.time() - start_time:.2f}s"
            )
            return result

    async def optimized_search(
        self,
        session_id: str,
        query: str,
        search_options: OptionsInput = None,
        suggest_options: OptionsInput = None,
    ) -> AggregatedResult:
        """Search the query plus its upstream suggestions and merge the results."""
        query = _require_query(query)
        with LogContext(logger, session_id=session_id, operation="optimized_search"):
            start_time = time.time()
            state = await self.state.record_search(session_id, query)

            normalized_search = normalize_search_options(search_options, state.preferences)
            # Suggest defaults come from the search options inside the aggregator
            normalized_suggest = normalize_suggest_options(suggest_options)

            result = await self.aggregator.aggregate(query, normalized_search, normalized_suggest)

            logger.info(
                f"Optimized search '{query}': {len(result.sources)} queries, "
                f"{result.total_results} web results in {time.time() - start_time:.2f}s"
            )
            return result

    async def get_suggestions(
        self,
        session_id: str,
        query: str,
        options: OptionsInput = None,
    ) -> SuggestResponse:
        """Query suggestions. Upstream failures yield an empty result list."""
        query = _require_query(query)
        with LogContext(logger, session_id=session_id, operation="suggest"):
            state = await self.state.record_turn(session_id, ConversationRole.USER, query)
            suggest_options = normalize_suggest_options(options, state.preferences)

            try:
                return await self.search_service.suggest(query, suggest_options)
            except SearchError as e:
                logger.warning(f"Suggest failed for '{query}': {e.message}")
                return SuggestResponse.empty(query)

    # =========================================================================
    # AGENTIC SEARCH
    # =========================================================================

    async def _execute_tool(self, call: ToolCall, preferences: Preferences) -> str:
        """Run one tool call and return the ``tool`` message content."""
        if call.name == BRAVE_SEARCH_TOOL:
            args_model = BraveSearchToolArgs
        elif call.name == BRAVE_SUGGEST_TOOL:
            args_model = BraveSuggestToolArgs
        else:
            logger.warning(f"LLM requested unknown tool: {call.name}")
            return format_tool_result({"error": f"Unknown tool: {call.name}"})

        try:
            args = args_model.model_validate(call.arguments)
        except ArgumentsError as e:
            logger.warning(f"Invalid {call.name} arguments: {e}")
            return format_tool_result({"error": f"Invalid arguments: {e.errors()}"})

        logger.info(f"Tool {call.name} called with query: '{args.query}'")

        if call.name == BRAVE_SEARCH_TOOL:
            options = normalize_search_options(args.options(), preferences)
            result = await self.search_service.search(args.query, options)
            return format_tool_result(result.to_dict())

        options = normalize_suggest_options(args.options(), preferences)
        suggestions = await self.search_service.suggest(args.query, options)
        return format_tool_result(suggestions.to_dict())

    async def _run_tool_loop(self, query: str, preferences: Preferences) -> str:
        if self.llm_service is None:
            raise LLMError("No LLM service configured", code="LLM_NOT_CONFIGURED")

        config = GenerationConfig(
            model=self.settings.llm.model,
            temperature=self.settings.llm.temperature,
            max_tokens=self.settings.llm.max_tokens,
        )
        messages = [
            LLMMessage(role=LLMRole.SYSTEM, content=SEARCH_AGENT_SYSTEM),
            LLMMessage(role=LLMRole.USER, content=AGENTIC_SEARCH_USER.format(query=query)),
        ]

        text = ""
        for step in range(self.settings.llm.max_steps):
            result = await self.llm_service.chat(messages, tools=TOOL_SPECS, config=config)
            text = result.content
            if not result.has_tool_calls:
                return text

            logger.debug(f"Step {step + 1}: {len(result.tool_calls)} tool calls")
            messages.append(result.to_message())
            for call in result.tool_calls:
                content = await self._execute_tool(call, preferences)
                messages.append(LLMMessage(role=LLMRole.TOOL, content=content, tool_name=call.name))

        logger.warning(f"Agentic search stopped after {self.settings.llm.max_steps} steps")
        return text

    async def agentic_search(
        self,
        session_id: str,
        query: str,
        preferences: Optional[Mapping[str, Any]] = None,
    ) -> str:
        """
        Answer a query with an LLM that calls the search tools.

        Args:
            session_id: Session to record the exchange in
            query: The user's question
            preferences: Partial preferences merged into the session first

        Returns:
            The answer text, or an apology naming the error. Never raises for
            upstream, LLM or storage failures.
        """
        query = _require_query(query)
        with LogContext(logger, session_id=session_id, operation="agentic_search"):
            start_time = time.time()
            try:
                if preferences:
                    await self.state.update_preferences(session_id, preferences)
                state = await self.state.record_search(session_id, query)

                text = await self._run_tool_loop(query, state.preferences)

                await self.state.record_turn(session_id, ConversationRole.ASSISTANT, text)
                logger.info(f"Agentic search '{query}' answered in {time.time() - start_time:.2f}s")
                return text

            except ScoutError as e:
                logger.error(f"Agentic search failed after {time.time() - start_time:.2f}s: {e}")
                return AGENTIC_SEARCH_ERROR.format(message=e.message)

    # =========================================================================
    # SESSION STATE
    # =========================================================================

    async def update_preferences(self, session_id: str, partial: Mapping[str, Any]) -> Preferences:
        state = await self.state.update_preferences(session_id, partial)
        return state.preferences

    async def clear_history(self, session_id: str) -> SessionState:
        return await self.state.clear_history(session_id)

    async def get_state(self, session_id: str) -> SessionState:
        return await self.state.get_state(session_id)


def create_search_agent(settings: Optional[Settings] = None) -> SearchAgent:
    """Build an agent wired to Brave, Ollama and the configured state store."""
    from src.services.llm.ollama import OllamaService
    from src.services.search.brave import BraveSearchService
    from src.storage import create_state_store

    settings = settings or get_settings()
    return SearchAgent(
        search_service=BraveSearchService(),
        state_tracker=SessionStateTracker(create_state_store(settings), settings),
        llm_service=OllamaService(),
        settings=settings,
    )
