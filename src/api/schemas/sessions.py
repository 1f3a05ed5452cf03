"""
Session API Schemas.

Request bodies and response envelopes for the session-addressed search
endpoints. Option bags stay loosely typed here: the parameter normalizer owns
coercion and default filling.
"""

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# REQUEST SCHEMAS
# =============================================================================

class SearchRequest(BaseModel):
    """Direct search request."""
    query: Optional[str] = Field(default=None, description="The search query")
    options: Optional[dict[str, Any]] = Field(
        default=None,
        description="Search options; absent fields fall back to session preferences",
    )

    model_config = {
        "json_schema_extra": {
            "examples": [
                {"query": "climate change", "options": {"count": 5, "freshness": "pw"}}
            ]
        }
    }


class OptimizedSearchRequest(BaseModel):
    """Multi-query search request."""
    query: Optional[str] = None
    search_options: Optional[dict[str, Any]] = None
    suggest_options: Optional[dict[str, Any]] = None


class SuggestRequest(BaseModel):
    """Query suggestion request."""
    query: Optional[str] = None
    options: Optional[dict[str, Any]] = None


class PreferencesUpdate(BaseModel):
    """Partial preferences. Only fields present in the body are changed."""
    model_config = ConfigDict(extra="allow")

    safesearch: Optional[Literal["off", "moderate", "strict"]] = None
    count: Optional[int] = Field(default=None, ge=1, le=20)
    country: Optional[str] = None
    text_decorations: Optional[bool] = None
    spellcheck: Optional[bool] = None
    units: Optional[Literal["metric", "imperial"]] = None
    extra_snippets: Optional[bool] = None
    summary: Optional[bool] = None
    result_filter: Optional[str] = None

    def partial(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class AgenticSearchRequest(BaseModel):
    """LLM-driven search request."""
    query: Optional[str] = None
    preferences: Optional[PreferencesUpdate] = Field(
        default=None,
        description="Preferences merged into the session before searching",
    )

    def preference_updates(self) -> Optional[dict[str, Any]]:
        return self.preferences.partial() if self.preferences is not None else None


# =============================================================================
# RESPONSE SCHEMAS
# =============================================================================

class QueryResponse(BaseModel):
    """Envelope for every query operation."""
    query: str
    response: Any


class PreferencesResponse(BaseModel):
    success: bool = True
    preferences: dict[str, Any]


class SuccessResponse(BaseModel):
    success: bool = True


class SearchRecordSchema(BaseModel):
    query: str
    timestamp: datetime


class ConversationTurnSchema(BaseModel):
    role: Literal["user", "assistant"]
    content: str
    timestamp: datetime


class SessionStateResponse(BaseModel):
    """Session state as stored: most-recent-first sequences plus preferences."""
    recent_searches: list[SearchRecordSchema]
    conversation_history: list[ConversationTurnSchema]
    preferences: dict[str, Any]
