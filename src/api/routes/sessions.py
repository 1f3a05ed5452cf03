"""
Session Routes.

Session-addressed search endpoints and the WebSocket channel. Each route is a
thin shell over :class:`SearchAgent`; errors propagate to the app's exception
handlers.
"""

import json
from typing import Any

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from src.api.metrics import track_search
from src.api.schemas import (
    AgenticSearchRequest,
    OptimizedSearchRequest,
    PreferencesResponse,
    PreferencesUpdate,
    QueryResponse,
    SearchRequest,
    SessionStateResponse,
    SuccessResponse,
    SuggestRequest,
)
from src.core.agent import SearchAgent, create_search_agent
from src.utils.exceptions import ScoutError
from src.utils.logging import get_logger


logger = get_logger(__name__)
router = APIRouter(prefix="/sessions/{session_id}", tags=["sessions"])

WS_ERROR_MESSAGE = "Error processing your request"

_agent: SearchAgent | None = None


def get_agent() -> SearchAgent:
    """Get or lazily create the shared agent."""
    global _agent
    if _agent is None:
        _agent = create_search_agent()
    return _agent


async def close_agent() -> None:
    """Close the shared agent's upstream clients, if one was created."""
    global _agent
    if _agent is not None:
        await _agent.close()
        _agent = None


# =============================================================================
# HTTP ENDPOINTS
# =============================================================================

@router.post("/search", response_model=QueryResponse)
async def direct_search(
    session_id: str,
    request: SearchRequest,
    agent: SearchAgent = Depends(get_agent),
):
    """Run one upstream search."""
    with track_search("direct"):
        result = await agent.direct_search(session_id, request.query, request.options)
    return QueryResponse(query=result.query or request.query, response=result.to_dict())


@router.post("/optimized-search", response_model=QueryResponse)
async def optimized_search(
    session_id: str,
    request: OptimizedSearchRequest,
    agent: SearchAgent = Depends(get_agent),
):
    """Search the query and its suggestions, merged and deduplicated."""
    with track_search("optimized"):
        result = await agent.optimized_search(
            session_id,
            request.query,
            request.search_options,
            request.suggest_options,
        )
    return QueryResponse(query=request.query, response=result.to_dict())


@router.post("/agentic-search", response_model=QueryResponse)
async def agentic_search(
    session_id: str,
    request: AgenticSearchRequest,
    agent: SearchAgent = Depends(get_agent),
):
    """Answer the query with the LLM tool loop."""
    with track_search("agentic"):
        text = await agent.agentic_search(session_id, request.query, request.preference_updates())
    return QueryResponse(query=request.query, response=text)


@router.post("/suggest", response_model=QueryResponse)
async def suggest(
    session_id: str,
    request: SuggestRequest,
    agent: SearchAgent = Depends(get_agent),
):
    """Query suggestions. Never fails because of the upstream."""
    with track_search("suggest"):
        suggestions = await agent.get_suggestions(session_id, request.query, request.options)
    return QueryResponse(query=request.query, response=suggestions.to_dict())


@router.get("/state", response_model=SessionStateResponse)
async def get_state(session_id: str, agent: SearchAgent = Depends(get_agent)):
    """Current session state, created with defaults on first access."""
    state = await agent.get_state(session_id)
    return state.to_dict()


@router.post("/preferences", response_model=PreferencesResponse)
async def update_preferences(
    session_id: str,
    update: PreferencesUpdate,
    agent: SearchAgent = Depends(get_agent),
):
    """Merge the given preferences into the session."""
    preferences = await agent.update_preferences(session_id, update.partial())
    return PreferencesResponse(preferences=preferences.to_dict())


@router.post("/clear-history", response_model=SuccessResponse)
async def clear_history(session_id: str, agent: SearchAgent = Depends(get_agent)):
    """Forget recent searches and conversation; preferences are kept."""
    await agent.clear_history(session_id)
    return SuccessResponse()


# =============================================================================
# WEBSOCKET
# =============================================================================

async def handle_message(agent: SearchAgent, session_id: str, data: dict[str, Any]) -> dict[str, Any]:
    """
    Dispatch one WebSocket message and build its reply.

    Message fields are validated with the same schemas as the HTTP bodies, so
    a badly typed field raises ``pydantic.ValidationError`` (a ``ValueError``)
    before the agent is called.
    """
    message_type = data.get("type")

    if message_type == "search_request":
        request = SearchRequest.model_validate(data)
        with track_search("direct"):
            result = await agent.direct_search(session_id, request.query, request.options)
        return {"type": "search_response", "query": request.query, "response": result.to_dict()}

    if message_type == "optimized_search_request":
        request = OptimizedSearchRequest.model_validate(data)
        with track_search("optimized"):
            result = await agent.optimized_search(
                session_id, request.query, request.search_options, request.suggest_options
            )
        return {"type": "optimized_search_response", "query": request.query, "response": result.to_dict()}

    if message_type == "agentic_search_request":
        request = AgenticSearchRequest.model_validate(data)
        with track_search("agentic"):
            text = await agent.agentic_search(session_id, request.query, request.preference_updates())
        return {"type": "agentic_search_response", "query": request.query, "response": text}

    if message_type == "suggest_request":
        request = SuggestRequest.model_validate(data)
        with track_search("suggest"):
            suggestions = await agent.get_suggestions(session_id, request.query, request.options)
        return {"type": "suggest_response", "query": request.query, "response": suggestions.to_dict()}

    if message_type == "update_preferences":
        update = PreferencesUpdate.model_validate(data.get("preferences") or {})
        preferences = await agent.update_preferences(session_id, update.partial())
        return {"type": "preferences_updated", "preferences": preferences.to_dict()}

    if message_type == "clear_history":
        await agent.clear_history(session_id)
        return {"type": "history_cleared"}

    raise ValueError(f"Unknown message type: {message_type!r}")


@router.websocket("/ws")
async def session_socket(
    websocket: WebSocket,
    session_id: str,
    agent: SearchAgent = Depends(get_agent),
):
    """
    Typed JSON message channel for one session.

    Failures are reported as ``{"type": "error"}`` messages and never close
    the connection.
    """
    await websocket.accept()
    logger.info(f"WebSocket connected for session {session_id}")

    try:
        while True:
            raw = await websocket.receive_text()
            try:
                data = json.loads(raw)
                if not isinstance(data, dict):
                    raise ValueError("Message must be a JSON object")
                reply = await handle_message(agent, session_id, data)
            except (ScoutError, ValueError, TypeError) as e:
                logger.error(f"Error handling WebSocket message: {e}")
                reply = {"type": "error", "message": WS_ERROR_MESSAGE}
            await websocket.send_json(reply)
    except WebSocketDisconnect:
        logger.info(f"WebSocket disconnected for session {session_id}")
