"""
LLM tool definitions.

Argument models are deliberately loose: models emit numbers as strings and
booleans as ``"true"``, and the parameter normalizer coerces both. The models
exist to give the LLM a JSON schema and to reject arguments that are not an
object with a query.
"""

import json
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from src.core.prompts import BRAVE_SEARCH_TOOL_DESCRIPTION, BRAVE_SUGGEST_TOOL_DESCRIPTION
from src.services.llm.models import ToolSpec

BRAVE_SEARCH_TOOL = "braveSearch"
BRAVE_SUGGEST_TOOL = "braveSuggest"


class BraveSearchToolArgs(BaseModel):
    model_config = ConfigDict(extra="ignore")

    query: str = Field(..., description="The search query. At most 400 characters and 50 words.")
    count: Optional[Union[int, str]] = Field(None, description="Number of results (1-20).")
    offset: Optional[Union[int, str]] = Field(None, description="Zero-based page offset (0-9).")
    country: Optional[str] = Field(None, description="2-letter country code, e.g. US, GB, DE.")
    search_lang: Optional[str] = Field(None, description="Search language, e.g. en, fr.")
    ui_lang: Optional[str] = Field(None, description="Response UI language, e.g. en-US.")
    safesearch: Optional[str] = Field(None, description="off, moderate or strict.")
    freshness: Optional[str] = Field(None, description="pd, pw, pm, py or YYYY-MM-DDtoYYYY-MM-DD.")
    text_decorations: Optional[Union[bool, str]] = Field(None, description="Include highlight markers in snippets.")
    spellcheck: Optional[Union[bool, str]] = Field(None, description="Apply spelling correction.")
    result_filter: Optional[Union[str, list[str]]] = Field(None, description="Comma-separated result types to include.")
    goggles_id: Optional[str] = Field(None, description="Deprecated Goggle URL; use goggles.")
    goggles: Optional[Union[list[str], str]] = Field(None, description="Goggle URLs or inline definitions.")
    units: Optional[str] = Field(None, description="metric or imperial.")
    extra_snippets: Optional[Union[bool, str]] = Field(None, description="Include up to 5 extra excerpts per result.")
    summary: Optional[Union[bool, str]] = Field(None, description="Request an AI summary key.")

    def options(self) -> dict[str, Any]:
        return self.model_dump(exclude={"query"}, exclude_none=True)


class BraveSuggestToolArgs(BaseModel):
    model_config = ConfigDict(extra="ignore")

    query: str = Field(..., description="The partial query to complete.")
    country: Optional[str] = Field(None, description="2-letter country code.")
    lang: Optional[str] = Field(None, description="Suggestion language, e.g. en.")
    count: Optional[Union[int, str]] = Field(None, description="Number of suggestions (at most 20).")
    rich: Optional[Union[bool, str]] = Field(None, description="Enrich entity suggestions.")

    def options(self) -> dict[str, Any]:
        return self.model_dump(exclude={"query"}, exclude_none=True)


TOOL_SPECS: list[ToolSpec] = [
    ToolSpec(
        name=BRAVE_SEARCH_TOOL,
        description=BRAVE_SEARCH_TOOL_DESCRIPTION,
        parameters=BraveSearchToolArgs.model_json_schema(),
    ),
    ToolSpec(
        name=BRAVE_SUGGEST_TOOL,
        description=BRAVE_SUGGEST_TOOL_DESCRIPTION,
        parameters=BraveSuggestToolArgs.model_json_schema(),
    ),
]


def format_tool_result(data: dict) -> str:
    """Serialize a tool result for a ``tool`` message."""
    return json.dumps(data, default=str, ensure_ascii=False)
