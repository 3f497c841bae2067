"""
Infrastructure Module - Cross-cutting concerns.

This module provides:
- Logging: color or JSON output with per-chat context
- Rate Limiting: API rate limiting with SlowAPI
- Retry: Retry utilities with exponential backoff
"""

from .logging import setup_logging, chat_context, LoggerMixin
from .rate_limiter import limiter, setup_rate_limiter, limit_chat
from .retry import execute_with_retry, RetryConfig

__all__ = [
    # Logging
    "setup_logging",
    "chat_context",
    "LoggerMixin",
    # Rate limiting
    "limiter",
    "setup_rate_limiter",
    "limit_chat",
    # Retry
    "execute_with_retry",
    "RetryConfig",
]
