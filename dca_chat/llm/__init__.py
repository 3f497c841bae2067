"""
LLM Module - Multi-provider LLM abstraction layer.

This module provides:
- LLMFactory: Create LLM instances for multiple providers (OpenAI, Google, Anthropic)
- Exceptions shared by LLM-backed components
"""

from .factory import LLMFactory, detect_provider, resolve_api_key, MODEL_PROVIDERS
from .exceptions import (
    LLMError,
    LLMProviderError,
    LLMRateLimitError,
    LLMInvalidModelError,
    is_rate_limit_error,
)

__all__ = [
    # Factory
    "LLMFactory",
    "detect_provider",
    "resolve_api_key",
    "MODEL_PROVIDERS",
    # Exceptions
    "LLMError",
    "LLMProviderError",
    "LLMRateLimitError",
    "LLMInvalidModelError",
    "is_rate_limit_error",
]
