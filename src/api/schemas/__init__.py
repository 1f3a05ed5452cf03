"""API Schemas."""
from src.api.schemas.health import HealthResponse, ServiceHealth
from src.api.schemas.sessions import (
    AgenticSearchRequest,
    ConversationTurnSchema,
    OptimizedSearchRequest,
    PreferencesResponse,
    PreferencesUpdate,
    QueryResponse,
    SearchRecordSchema,
    SearchRequest,
    SessionStateResponse,
    SuccessResponse,
    SuggestRequest,
)

__all__ = [
    "HealthResponse",
    "ServiceHealth",
    "AgenticSearchRequest",
    "ConversationTurnSchema",
    "OptimizedSearchRequest",
    "PreferencesResponse",
    "PreferencesUpdate",
    "QueryResponse",
    "SearchRecordSchema",
    "SearchRequest",
    "SessionStateResponse",
    "SuccessResponse",
    "SuggestRequest",
]
