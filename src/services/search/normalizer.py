"""
Upstream response normalization.

Maps loosely-typed Brave JSON into the canonical result schema. Sections are
decoded independently so a malformed ``news`` block never costs the caller the
``web`` results, and a bad item never costs the rest of its section.
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional, Union

import httpx

from src.services.search.models import (
    Coordinates,
    DiscussionResult,
    FaqResult,
    InfoboxResult,
    LocationResult,
    NewsResult,
    SearchResult,
    SuggestResponse,
    SuggestResult,
    SummaryResult,
    VideoResult,
    WebResult,
)
from src.utils.exceptions import (
    ItemNormalizationError,
    MalformedUpstreamPayloadError,
    NormalizationError,
)
from src.utils.logging import get_logger

logger = get_logger(__name__)

Payload = Union[dict, str, bytes]


class SectionStatus(str, Enum):
    PRESENT = "present"
    ABSENT = "absent"
    MALFORMED = "malformed"


@dataclass(frozen=True)
class Section:
    """One decoded payload section: its items, or why there are none."""

    status: SectionStatus
    items: list = field(default_factory=list)
    reason: Optional[str] = None

    @classmethod
    def decode(cls, payload: dict, name: str) -> "Section":
        block = payload.get(name)
        if block is None:
            return cls(SectionStatus.ABSENT)
        if not isinstance(block, dict):
            return cls(SectionStatus.MALFORMED, reason=f"'{name}' is {type(block).__name__}, not an object")

        results = block.get("results")
        if results is None:
            return cls(SectionStatus.ABSENT)
        if not isinstance(results, list):
            return cls(SectionStatus.MALFORMED, reason=f"'{name}.results' is {type(results).__name__}, not a list")

        return cls(SectionStatus.PRESENT, items=results)


# =============================================================================
# FIELD HELPERS
# =============================================================================

def _get(obj: Any, *path: str) -> Any:
    """Nested lookup that yields None on any missing or non-object step."""
    for key in path:
        if not isinstance(obj, dict):
            return None
        obj = obj.get(key)
    return obj


def _text(value: Any, default: str = "") -> str:
    return value if isinstance(value, str) else default


def _require_url(item: dict, section: str) -> str:
    url = item.get("url")
    if not isinstance(url, str) or not url:
        raise ItemNormalizationError(section, "missing url")
    return url


def _hostname(item: dict, url: str, section: str, *preferred: Any) -> str:
    """Explicit provider hostname first, then the host parsed from ``url``."""
    for candidate in (*preferred, _get(item, "meta_url", "hostname")):
        if isinstance(candidate, str) and candidate:
            return candidate

    try:
        host = httpx.URL(url).host
    except (httpx.InvalidURL, TypeError, ValueError) as e:
        raise ItemNormalizationError(section, f"unparseable url {url!r}: {e}") from e

    if not host:
        raise ItemNormalizationError(section, f"no hostname in url {url!r}")
    return host


# =============================================================================
# ITEM DECODERS
# =============================================================================

def _web(item: dict) -> WebResult:
    url = _require_url(item, "web")
    snippets = item.get("extra_snippets")
    return WebResult(
        title=_text(item.get("title")),
        url=url,
        description=_text(item.get("description")),
        source=_hostname(item, url, "web"),
        extra_snippets=[s for s in snippets if isinstance(s, str)] if isinstance(snippets, list) else [],
        age=item.get("age") or None,
    )


def _news(item: dict) -> NewsResult:
    url = _require_url(item, "news")
    return NewsResult(
        title=_text(item.get("title")),
        url=url,
        description=_text(item.get("description")),
        source=_hostname(item, url, "news", item.get("source")),
        age=item.get("age") or None,
        is_breaking=bool(item.get("breaking")),
    )


def _video(item: dict) -> VideoResult:
    url = _require_url(item, "videos")
    return VideoResult(
        title=_text(item.get("title")),
        url=url,
        description=_text(item.get("description")),
        source=_hostname(item, url, "videos"),
        duration=_get(item, "video", "duration") or None,
        thumbnail=_get(item, "thumbnail", "src") or None,
    )


def _faq(item: dict) -> FaqResult:
    url = _require_url(item, "faq")
    return FaqResult(
        question=_text(item.get("question")),
        answer=_text(item.get("answer")),
        title=_text(item.get("title")),
        url=url,
        source=_hostname(item, url, "faq"),
    )


def _discussion(item: dict) -> DiscussionResult:
    url = _require_url(item, "discussions")
    # Discussion sources are never shown, but the url must still be usable
    _hostname(item, url, "discussions")
    data = item.get("data") if isinstance(item.get("data"), dict) else {}
    return DiscussionResult(
        title=_text(item.get("title")),
        url=url,
        description=_text(item.get("description")),
        forum_name=data.get("forum_name") or None,
        num_answers=data.get("num_answers") or 0,
        score=data.get("score") or None,
        question=data.get("question") or None,
        top_comment=data.get("top_comment") or None,
    )


def _coordinates(value: Any) -> Optional[Coordinates]:
    if isinstance(value, (list, tuple)) and len(value) == 2:
        return Coordinates(lat=value[0], lng=value[1])
    if isinstance(value, dict):
        lat = value.get("lat", value.get("latitude"))
        lng = value.get("lng", value.get("longitude"))
        if lat is not None and lng is not None:
            return Coordinates(lat=lat, lng=lng)
    return None


def _location(item: dict) -> LocationResult:
    location_id = item.get("id")
    if location_id is None or location_id == "":
        raise ItemNormalizationError("locations", "missing id")

    distance = item.get("distance")
    if isinstance(distance, dict) and distance.get("value") is not None:
        distance_text = f"{distance.get('value')} {distance.get('units', '')}".strip()
    else:
        distance_text = None

    categories = item.get("categories")
    return LocationResult(
        title=_text(item.get("title")),
        id=str(location_id),
        coordinates=_coordinates(item.get("coordinates")),
        address=_get(item, "postal_address", "displayAddress") or None,
        categories=list(categories) if isinstance(categories, list) else [],
        rating=_get(item, "rating", "ratingValue") or None,
        review_count=_get(item, "rating", "reviewCount") or None,
        distance=distance_text,
    )


# payload key -> (SearchResult attribute, item decoder)
SECTION_DECODERS: dict[str, tuple[str, Callable[[dict], Any]]] = {
    "web": ("web_results", _web),
    "news": ("news_results", _news),
    "videos": ("video_results", _video),
    "faq": ("faq_results", _faq),
    "discussions": ("discussion_results", _discussion),
    "locations": ("location_results", _location),
}


def _decode_items(section: Section, name: str, decoder: Callable[[dict], Any]) -> list:
    decoded = []
    for item in section.items:
        try:
            if not isinstance(item, dict):
                raise ItemNormalizationError(name, f"item is {type(item).__name__}, not an object")
            decoded.append(decoder(item))
        except ItemNormalizationError as e:
            logger.warning(e.message)
    return decoded


def _infobox(payload: dict) -> Optional[InfoboxResult]:
    results = _get(payload, "infobox", "results")
    if isinstance(results, list):
        results = next((r for r in results if isinstance(r, dict)), None)
    if not isinstance(results, dict):
        return None

    attributes = results.get("attributes")
    return InfoboxResult(
        type=results.get("subtype") or "generic",
        title=_text(results.get("title") or results.get("label")),
        description=_text(results.get("long_desc")),
        attributes=list(attributes) if isinstance(attributes, list) else [],
        thumbnail=_get(results, "thumbnail", "src") or None,
    )


def _decode_json(payload: Payload) -> Any:
    if isinstance(payload, (str, bytes, bytearray)):
        return json.loads(payload)
    return payload


# =============================================================================
# PUBLIC API
# =============================================================================

def normalize_search_response(payload: Payload) -> SearchResult:
    """
    Normalize one upstream web search response.

    Args:
        payload: Decoded JSON object, or the raw JSON body

    Returns:
        Canonical SearchResult with ``total_results == len(web_results)``

    Raises:
        NormalizationError: The payload is not a JSON object
    """
    try:
        data = _decode_json(payload)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise NormalizationError(f"invalid JSON: {e}") from e

    if not isinstance(data, dict):
        raise NormalizationError(f"expected a JSON object, got {type(data).__name__}")

    result = SearchResult(
        query=_text(_get(data, "query", "original")),
        altered_query=_get(data, "query", "altered") or None,
    )

    for name, (attr, decoder) in SECTION_DECODERS.items():
        section = Section.decode(data, name)
        if section.status == SectionStatus.MALFORMED:
            logger.warning(f"Ignoring malformed section: {section.reason}")
            continue
        setattr(result, attr, _decode_items(section, name, decoder))

    result.infobox = _infobox(data)

    summary_key = _get(data, "summarizer", "key")
    if summary_key:
        result.summary = SummaryResult(key=str(summary_key))

    result.total_results = len(result.web_results)
    return result


def parse_suggest_response(payload: Payload, query: str) -> SuggestResponse:
    """
    Parse a suggest response body.

    Raises:
        MalformedUpstreamPayloadError: Body is not JSON, or lacks ``type``,
            ``query`` or a ``results`` list
    """
    try:
        data = _decode_json(payload)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise MalformedUpstreamPayloadError(f"invalid JSON: {e}") from e

    if not isinstance(data, dict):
        raise MalformedUpstreamPayloadError(f"expected a JSON object, got {type(data).__name__}")
    if not data.get("type") or not data.get("query") or not isinstance(data.get("results"), list):
        raise MalformedUpstreamPayloadError("missing type, query or results")

    results = []
    for item in data["results"]:
        if not isinstance(item, dict) or not isinstance(item.get("query"), str):
            logger.debug(f"Skipping suggestion without a query: {item!r}")
            continue
        results.append(SuggestResult(
            query=item["query"],
            is_entity=bool(item.get("is_entity")),
            title=item.get("title"),
            description=item.get("description"),
            img=item.get("img"),
        ))

    original = _get(data, "query", "original")
    return SuggestResponse(
        original_query=original if isinstance(original, str) else query,
        results=results,
        type=str(data["type"]),
    )
