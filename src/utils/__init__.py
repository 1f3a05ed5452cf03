"""Utility modules."""
from .logging import get_logger, setup_logging, LogContext
from .retry import retry_async, RetryConfig

__all__ = [
    "get_logger",
    "setup_logging",
    "LogContext",
    "retry_async",
    "RetryConfig",
]
