"""
LLM Factory - Multi-provider LLM abstraction.

Supports:
- OpenAI (GPT)
- Google (Gemini)
- Anthropic (Claude)
"""

import os
from typing import Literal

from langchain_core.language_models import BaseChatModel

from .exceptions import LLMInvalidModelError, LLMProviderError

Provider = Literal["openai", "google", "anthropic"]

MODEL_PROVIDERS: dict[Provider, list[str]] = {
    "openai": [
        "gpt-4o-mini",
        "gpt-4o",
        "gpt-4-turbo",
        "gpt-3.5-turbo",
    ],
    "google": [
        "gemini-2.5-flash",
        "gemini-2.5-pro",
        "gemini-2.0-flash",
    ],
    "anthropic": [
        "claude-sonnet-4-20250514",
        "claude-3-5-haiku-20241022",
    ],
}

# Environment variable holding each provider's credential
API_KEY_ENV: dict[Provider, str] = {
    "openai": "OPENAI_API_KEY",
    "google": "GEMINI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
}

ALL_MODELS: set[str] = {model for models in MODEL_PROVIDERS.values() for model in models}


def detect_provider(model: str) -> Provider:
    """
    Detect the provider based on model name.

    Raises:
        LLMInvalidModelError: If the model is not recognized
    """
    model_lower = model.lower()

    if model_lower.startswith("gpt"):
        return "openai"
    if model_lower.startswith("gemini"):
        return "google"
    if model_lower.startswith("claude"):
        return "anthropic"

    for provider, models in MODEL_PROVIDERS.items():
        if model in models:
            return provider

    raise LLMInvalidModelError(model, sorted(ALL_MODELS))


def resolve_api_key(model: str, api_key: str | None = None) -> str | None:
    """Return the explicit key or the provider's key from the environment."""
    if api_key:
        return api_key
    return os.getenv(API_KEY_ENV[detect_provider(model)]) or None


class LLMFactory:
    """Factory for creating LLM instances across multiple providers."""

    # Cache for LLM instances (singleton per model+config)
    _instances: dict[str, BaseChatModel] = {}

    @classmethod
    def create(
        cls,
        model: str,
        temperature: float = 0.1,
        max_retries: int = 0,
        timeout: int = 30,
        api_key: str | None = None,
        use_cache: bool = True,
        **kwargs,
    ) -> BaseChatModel:
        """
        Create an LLM instance for the specified model.

        Args:
            model: Model name (e.g., 'gpt-4o-mini', 'gemini-2.5-flash')
            temperature: Sampling temperature (0.0 to 1.0)
            max_retries: Provider-level retries; extraction falls back to rules instead
            timeout: Request timeout in seconds
            api_key: Optional API key (defaults to environment variable)
            use_cache: Whether to use cached instances
            **kwargs: Additional provider-specific arguments

        Raises:
            LLMInvalidModelError: If model is not recognized
            LLMProviderError: If provider initialization fails
        """
        cache_key = f"{model}:{temperature}:{timeout}"
        if use_cache and cache_key in cls._instances:
            return cls._instances[cache_key]

        provider = detect_provider(model)

        try:
            llm = cls._create_for_provider(
                provider=provider,
                model=model,
                temperature=temperature,
                max_retries=max_retries,
                timeout=timeout,
                api_key=resolve_api_key(model, api_key),
                **kwargs,
            )
        except ImportError as e:
            raise LLMProviderError(
                f"Provider '{provider}' dependencies not installed: {e}",
                provider=provider,
                model=model,
            ) from e
        except Exception as e:
            raise LLMProviderError(
                f"Failed to create LLM for '{model}': {e}",
                provider=provider,
                model=model,
            ) from e

        if use_cache:
            cls._instances[cache_key] = llm
        return llm

    @classmethod
    def _create_for_provider(
        cls,
        provider: Provider,
        model: str,
        temperature: float,
        max_retries: int,
        timeout: int,
        api_key: str | None,
        **kwargs,
    ) -> BaseChatModel:
        """Create LLM instance for a specific provider."""
        match provider:
            case "openai":
                from langchain_openai import ChatOpenAI

                return ChatOpenAI(
                    model=model,
                    temperature=temperature,
                    max_retries=max_retries,
                    timeout=timeout,
                    api_key=api_key,
                    **kwargs,
                )
            case "google":
                from langchain_google_genai import ChatGoogleGenerativeAI

                return ChatGoogleGenerativeAI(
                    model=model,
                    temperature=temperature,
                    max_retries=max_retries,
                    timeout=timeout,
                    google_api_key=api_key,
                    **kwargs,
                )
            case "anthropic":
                from langchain_anthropic import ChatAnthropic

                return ChatAnthropic(
                    model=model,
                    temperature=temperature,
                    max_retries=max_retries,
                    timeout=timeout,
                    api_key=api_key,
                    **kwargs,
                )

    @classmethod
    def clear_cache(cls) -> None:
        """Clear the LLM instance cache."""
        cls._instances.clear()
