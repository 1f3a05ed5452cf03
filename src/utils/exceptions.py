"""
Custom exceptions for Scout.

All application-specific exceptions inherit from ScoutError.
"""

from typing import Optional


class ScoutError(Exception):
    """Base exception for all Scout errors."""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[str] = None,
        recoverable: bool = False,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__.upper()
        self.details = details
        self.recoverable = recoverable

    def to_dict(self, safe: bool = False) -> dict:
        """Convert exception to dictionary for API responses.

        Args:
            safe: If True, omit internal details (use in production).
        """
        result = {
            "error": {
                "code": self.code,
                "message": self.message,
                "recoverable": self.recoverable,
            }
        }
        if not safe and self.details:
            result["error"]["details"] = self.details
        return result


# --- Search Errors ---

class SearchError(ScoutError):
    """Errors related to search operations."""
    pass


class TransportError(SearchError):
    """The outbound call to an upstream endpoint failed."""
    pass


class SearchTimeoutError(TransportError):
    """Search request timed out."""

    def __init__(self, query: str, timeout: float):
        super().__init__(
            message=f"Search timed out after {timeout}s",
            code="SEARCH_TIMEOUT",
            details=f"Query: {query}",
            recoverable=True,
        )


class SearchConnectionError(TransportError):
    """Cannot connect to search provider."""

    def __init__(self, provider: str, details: Optional[str] = None):
        super().__init__(
            message=f"Cannot connect to search provider: {provider}",
            code="SEARCH_CONNECTION_ERROR",
            details=details,
            recoverable=True,
        )


class UpstreamStatusError(TransportError):
    """Upstream answered with a non-2xx status."""

    def __init__(self, provider: str, status_code: int, body: str = ""):
        super().__init__(
            message=f"{provider} returned {status_code}",
            code="SEARCH_HTTP_ERROR",
            details=body[:200] or None,
            recoverable=False,
        )
        self.status_code = status_code


class MalformedUpstreamPayloadError(SearchError):
    """Upstream body is not JSON or lacks the expected shape."""

    def __init__(self, reason: str):
        super().__init__(
            message=f"Malformed upstream payload: {reason}",
            code="MALFORMED_UPSTREAM_PAYLOAD",
            recoverable=True,
        )


class NormalizationError(SearchError):
    """Upstream search payload cannot be normalized at all."""

    def __init__(self, reason: str):
        super().__init__(
            message=f"Cannot normalize search payload: {reason}",
            code="NORMALIZATION_ERROR",
            recoverable=False,
        )


class ItemNormalizationError(NormalizationError):
    """A single result item cannot be normalized."""

    def __init__(self, section: str, reason: str):
        SearchError.__init__(
            self,
            message=f"Skipped {section} item: {reason}",
            code="ITEM_NORMALIZATION_ERROR",
            recoverable=True,
        )
        self.section = section


class EmptyMergeInputError(SearchError):
    """Aggregation was asked to merge zero results."""

    def __init__(self):
        super().__init__(
            message="No search results to merge",
            code="EMPTY_MERGE_INPUT",
            recoverable=False,
        )


# --- LLM Errors ---

class LLMError(ScoutError):
    """Errors related to LLM operations."""
    pass


class LLMTimeoutError(LLMError):
    """LLM inference timed out."""

    def __init__(self, model: str, timeout: float):
        super().__init__(
            message=f"LLM inference timed out after {timeout}s",
            code="LLM_TIMEOUT",
            details=f"Model: {model}",
            recoverable=True,
        )


class LLMConnectionError(LLMError):
    """Cannot connect to LLM provider."""

    def __init__(self, provider: str, details: Optional[str] = None):
        super().__init__(
            message=f"Cannot connect to LLM provider: {provider}",
            code="LLM_CONNECTION_ERROR",
            details=details,
            recoverable=True,
        )


class LLMModelNotFoundError(LLMError):
    """Requested model not available."""

    def __init__(self, model: str):
        super().__init__(
            message=f"Model not found: {model}",
            code="LLM_MODEL_NOT_FOUND",
            details=f"Please pull the model using 'ollama pull {model}'",
            recoverable=False,
        )


class LLMGenerationError(LLMError):
    """Error during text generation."""

    def __init__(self, model: str, reason: str):
        super().__init__(
            message=f"Generation failed: {reason}",
            code="LLM_GENERATION_ERROR",
            details=f"Model: {model}",
            recoverable=True,
        )


# --- Session Errors ---

class SessionError(ScoutError):
    """Errors related to session state storage."""
    pass


# --- Config Errors ---

class ConfigError(ScoutError):
    """Errors related to configuration."""

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(
            message=message,
            code="CONFIG_ERROR",
            details=details,
            recoverable=False,
        )


# --- Validation Errors ---

class ValidationError(ScoutError):
    """Input validation errors."""

    def __init__(self, field: str, message: str):
        super().__init__(
            message=message,
            code="VALIDATION_ERROR",
            details=f"Field: {field}",
            recoverable=False,
        )


class EmptyQueryError(ValidationError):
    """Query is missing, empty or whitespace only."""

    def __init__(self):
        super().__init__(
            field="query",
            message="Query is required",
        )
