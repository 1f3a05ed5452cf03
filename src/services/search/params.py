"""
Request parameter handling.

Two steps, kept apart so each can be tested alone:

1. Normalization: a loosely-typed options bag (query-string values, LLM tool
   arguments, JSON bodies) plus the session's preferences becomes a canonical
   :class:`SearchOptions` / :class:`SuggestOptions`. Precedence is
   explicit value > session preference > upstream default.
2. URL building: a canonical options record becomes the upstream request URL.
   No defaults are filled in at this step.
"""

import json
import re
from collections.abc import Mapping
from enum import Enum
from typing import Any, Optional, Union

import httpx

from src.services.search.models import Preferences, SearchOptions, SuggestOptions
from src.utils.logging import get_logger

logger = get_logger(__name__)


class OptionsKind(str, Enum):
    """Which upstream operation an options bag is meant for."""
    SEARCH = "search"
    SUGGEST = "suggest"


BOOLEAN_FIELDS = frozenset({"text_decorations", "spellcheck", "extra_snippets", "summary", "rich"})
INTEGER_FIELDS = frozenset({"count", "offset"})

# Preference fields that may default each suggest option
SUGGEST_DEFAULTABLE = frozenset({"country"})

_INTEGER_RE = re.compile(r"[+-]?\d+")

OptionsInput = Union[Mapping[str, Any], SearchOptions, SuggestOptions, None]


# =============================================================================
# NORMALIZATION
# =============================================================================

def _coerce_integer(value: Any) -> Any:
    if isinstance(value, str) and _INTEGER_RE.fullmatch(value.strip()):
        return int(value.strip())
    return value


def _coerce_boolean(value: Any) -> Any:
    if value == "true":
        return True
    if value == "false":
        return False
    return value


def _coerce_goggles(value: Any) -> Any:
    """Accept a JSON array string, a comma-separated string, or a sequence."""
    if isinstance(value, str):
        try:
            decoded = json.loads(value)
        except json.JSONDecodeError:
            decoded = None
        if isinstance(decoded, list):
            return [str(item) for item in decoded]
        if isinstance(decoded, str):
            return [decoded]
        return [part for part in value.split(",") if part]
    if isinstance(value, (list, tuple)):
        return [str(item) for item in value]
    return value


def _coerce(name: str, value: Any) -> Any:
    if name in INTEGER_FIELDS:
        return _coerce_integer(value)
    if name in BOOLEAN_FIELDS:
        return _coerce_boolean(value)
    if name == "goggles":
        return _coerce_goggles(value)
    if name == "units" and value == "":
        return None
    if name == "result_filter" and isinstance(value, (list, tuple, set, frozenset)):
        return ",".join(str(item) for item in value)
    return value


def _as_mapping(raw: OptionsInput) -> Mapping[str, Any]:
    if raw is None:
        return {}
    if isinstance(raw, (SearchOptions, SuggestOptions)):
        return raw.to_dict()
    return raw


def _preference_values(preferences: Optional[Preferences]) -> dict[str, Any]:
    if preferences is None:
        return {}
    return {k: v for k, v in preferences.to_dict().items() if v is not None}


def _collect(
    raw: OptionsInput,
    allowed: tuple[str, ...],
    defaults: dict[str, Any],
) -> dict[str, Any]:
    source = _as_mapping(raw)

    unknown = [key for key in source if key not in allowed]
    if unknown:
        logger.debug(f"Dropping unsupported option keys: {sorted(unknown)}")

    values: dict[str, Any] = {}
    for name in allowed:
        value = source.get(name)
        if value is not None:
            value = _coerce(name, value)
        if value is None and name in defaults:
            value = defaults[name]
        if value is not None:
            values[name] = value
    return values


def normalize_search_options(
    raw: OptionsInput,
    preferences: Optional[Preferences] = None,
) -> SearchOptions:
    """
    Build canonical web search options.

    Args:
        raw: Options bag; string numbers and ``"true"``/``"false"`` are coerced
        preferences: Point-in-time session preferences used for absent fields

    Returns:
        A new SearchOptions; ``raw`` is not modified
    """
    defaults = _preference_values(preferences)
    return SearchOptions(**_collect(raw, SearchOptions.field_names(), defaults))


def normalize_suggest_options(
    raw: OptionsInput,
    preferences: Optional[Preferences] = None,
) -> SuggestOptions:
    """Build canonical suggest options. Only ``country`` defaults from preferences."""
    defaults = {
        k: v for k, v in _preference_values(preferences).items()
        if k in SUGGEST_DEFAULTABLE
    }
    return SuggestOptions(**_collect(raw, SuggestOptions.field_names(), defaults))


def normalize_options(
    raw: OptionsInput,
    defaults: Optional[Preferences],
    kind: OptionsKind,
) -> Union[SearchOptions, SuggestOptions]:
    """Dispatch to the normalizer for ``kind``."""
    if kind == OptionsKind.SEARCH:
        return normalize_search_options(raw, defaults)
    return normalize_suggest_options(raw, defaults)


# =============================================================================
# URL BUILDING
# =============================================================================

def _serialize(value: Any) -> list[str]:
    """Query-string values for one option; empty list means omit."""
    if value is None:
        return []
    if isinstance(value, bool):
        return ["1" if value else "0"]
    if isinstance(value, (list, tuple)):
        return [_scalar(item) for item in value]
    text = _scalar(value)
    return [text] if text != "" else []


def _scalar(value: Any) -> str:
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)


def build_url(
    endpoint: str,
    query: str,
    options: Union[SearchOptions, SuggestOptions],
) -> httpx.URL:
    """
    Build the upstream request URL.

    ``q`` comes first, then options in declared field order. Booleans become
    ``1``/``0``, sequences become repeated parameters, ``None`` and empty
    strings are left out.
    """
    params: list[tuple[str, str]] = [("q", query)]

    for name in type(options).field_names():
        value = getattr(options, name)
        # Upstream rejects anything but a valid URL here, so never send it blank
        if name == "goggles_id" and not value:
            continue
        for item in _serialize(value):
            params.append((name, item))

    return httpx.URL(endpoint, params=params)


def build_search_url(endpoint: str, query: str, options: SearchOptions) -> httpx.URL:
    return build_url(endpoint, query, options)


def build_suggest_url(endpoint: str, query: str, options: SuggestOptions) -> httpx.URL:
    return build_url(endpoint, query, options)
