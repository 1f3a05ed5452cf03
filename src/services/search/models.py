"""
Search service models.

Canonical request options and the normalized result schema shared by the
HTTP API, the LLM tool layer and the aggregator.
"""

from dataclasses import dataclass, field, fields, asdict
from enum import Enum
from typing import Any, Optional, Union


class SafeSearch(str, Enum):
    """Upstream content filtering level."""
    OFF = "off"
    MODERATE = "moderate"
    STRICT = "strict"


class Freshness(str, Enum):
    """Relative discovery-time windows. Explicit ranges use ``YYYY-MM-DDtoYYYY-MM-DD``."""
    PAST_DAY = "pd"
    PAST_WEEK = "pw"
    PAST_MONTH = "pm"
    PAST_YEAR = "py"


class ResultType(str, Enum):
    """Named result categories accepted by ``result_filter``."""
    DISCUSSIONS = "discussions"
    FAQ = "faq"
    INFOBOX = "infobox"
    NEWS = "news"
    QUERY = "query"
    SUMMARIZER = "summarizer"
    VIDEOS = "videos"
    WEB = "web"
    LOCATIONS = "locations"


# =============================================================================
# REQUEST OPTIONS
# =============================================================================

@dataclass(frozen=True)
class SearchOptions:
    """
    Canonical web search parameters.

    ``None`` means absent: the upstream default applies. Field declaration
    order is the query-string serialization order.
    """

    count: Optional[int] = None  # 1-20
    offset: Optional[int] = None  # 0-9
    country: Optional[str] = None
    search_lang: Optional[str] = None
    ui_lang: Optional[str] = None
    safesearch: Optional[str] = None
    freshness: Optional[str] = None
    text_decorations: Optional[bool] = None
    spellcheck: Optional[bool] = None
    result_filter: Optional[str] = None
    goggles_id: Optional[str] = None  # Deprecated, use goggles
    goggles: Optional[list[str]] = None
    units: Optional[str] = None
    extra_snippets: Optional[bool] = None
    summary: Optional[bool] = None

    @classmethod
    def field_names(cls) -> tuple[str, ...]:
        return tuple(f.name for f in fields(cls))

    def to_dict(self) -> dict:
        """Defined fields only."""
        return {k: v for k, v in asdict(self).items() if v is not None}


@dataclass(frozen=True)
class SuggestOptions:
    """Canonical suggest parameters."""

    country: Optional[str] = None
    lang: Optional[str] = None
    count: Optional[int] = None  # <= 20
    rich: Optional[bool] = None

    @classmethod
    def field_names(cls) -> tuple[str, ...]:
        return tuple(f.name for f in fields(cls))

    def to_dict(self) -> dict:
        return {k: v for k, v in asdict(self).items() if v is not None}


@dataclass(frozen=True)
class Preferences:
    """
    Per-session defaults for the defaultable search fields.

    A ``None`` preference is undefined and never substituted.
    """

    safesearch: Optional[str] = None
    count: Optional[int] = None
    country: Optional[str] = None
    text_decorations: Optional[bool] = None
    spellcheck: Optional[bool] = None
    units: Optional[str] = None
    extra_snippets: Optional[bool] = None
    summary: Optional[bool] = None
    result_filter: Optional[str] = None

    @classmethod
    def field_names(cls) -> tuple[str, ...]:
        return tuple(f.name for f in fields(cls))

    @classmethod
    def from_dict(cls, data: dict) -> "Preferences":
        names = cls.field_names()
        return cls(**{k: v for k, v in data.items() if k in names})

    def to_dict(self) -> dict:
        return asdict(self)


# =============================================================================
# RESULT ITEMS
# =============================================================================

@dataclass
class WebResult:
    """A web page hit."""

    title: str
    url: str
    description: str
    source: str
    extra_snippets: list[str] = field(default_factory=list)
    age: Optional[str] = None

    @property
    def identity_key(self) -> str:
        return self.url


@dataclass
class NewsResult:
    """A news article."""

    title: str
    url: str
    description: str
    source: str
    age: Optional[str] = None
    is_breaking: bool = False

    @property
    def identity_key(self) -> str:
        return self.url


@dataclass
class VideoResult:
    """A video hit."""

    title: str
    url: str
    description: str
    source: str
    duration: Optional[str] = None
    thumbnail: Optional[str] = None

    @property
    def identity_key(self) -> str:
        return self.url


@dataclass
class FaqResult:
    """A question/answer pair."""

    question: str
    answer: str
    title: str
    url: str
    source: str

    @property
    def identity_key(self) -> str:
        return self.url


@dataclass
class DiscussionResult:
    """A forum thread."""

    title: str
    url: str
    description: str
    forum_name: Optional[str] = None
    num_answers: int = 0
    score: Optional[Union[float, str]] = None
    question: Optional[str] = None
    top_comment: Optional[str] = None

    @property
    def identity_key(self) -> str:
        return self.url


@dataclass
class Coordinates:
    lat: float
    lng: float


@dataclass
class LocationResult:
    """A place. Identified by upstream id, not URL."""

    title: str
    id: str
    coordinates: Optional[Coordinates] = None
    address: Optional[str] = None
    categories: list[str] = field(default_factory=list)
    rating: Optional[float] = None
    review_count: Optional[int] = None
    distance: Optional[str] = None

    @property
    def identity_key(self) -> str:
        return self.id


@dataclass
class InfoboxResult:
    """Knowledge panel summary."""

    type: str
    title: str
    description: str
    attributes: list[Any] = field(default_factory=list)
    thumbnail: Optional[str] = None


@dataclass
class SummaryResult:
    """Reference to an upstream AI summary."""

    key: str


# =============================================================================
# RESULTS
# =============================================================================

# Attribute names of the six mergeable result sequences, in output order
RESULT_SECTIONS: tuple[str, ...] = (
    "web_results",
    "news_results",
    "video_results",
    "faq_results",
    "discussion_results",
    "location_results",
)


@dataclass
class SearchResult:
    """Normalized response of one upstream search call."""

    query: str
    altered_query: Optional[str] = None
    total_results: int = 0
    web_results: list[WebResult] = field(default_factory=list)
    news_results: list[NewsResult] = field(default_factory=list)
    video_results: list[VideoResult] = field(default_factory=list)
    faq_results: list[FaqResult] = field(default_factory=list)
    discussion_results: list[DiscussionResult] = field(default_factory=list)
    location_results: list[LocationResult] = field(default_factory=list)
    infobox: Optional[InfoboxResult] = None
    summary: Optional[SummaryResult] = None

    @property
    def has_results(self) -> bool:
        return any(getattr(self, name) for name in RESULT_SECTIONS)

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class AggregatedResult(SearchResult):
    """A merged result with provenance: ``sources[0]`` is the primary query."""

    sources: list[str] = field(default_factory=list)


@dataclass
class SuggestResult:
    """One suggested query."""

    query: str
    is_entity: bool = False
    title: Optional[str] = None
    description: Optional[str] = None
    img: Optional[str] = None

    def to_dict(self) -> dict:
        data = {"query": self.query, "is_entity": self.is_entity}
        for key in ("title", "description", "img"):
            value = getattr(self, key)
            if value is not None:
                data[key] = value
        return data


@dataclass
class SuggestResponse:
    """Suggest API response. An empty ``results`` list is a valid answer."""

    original_query: str
    results: list[SuggestResult] = field(default_factory=list)
    type: str = "suggest"

    @classmethod
    def empty(cls, query: str) -> "SuggestResponse":
        return cls(original_query=query, results=[])

    @property
    def queries(self) -> list[str]:
        return [r.query for r in self.results]

    def to_dict(self) -> dict:
        return {
            "type": self.type,
            "query": {"original": self.original_query},
            "results": [r.to_dict() for r in self.results],
        }
