"""
Core infrastructure for the Satire Engine.

Shared configuration, enums, errors, utilities, retry and LLM providers.
"""

from satire_engine.core.config import (
    LLMSettings,
    Settings,
    get_default_model,
)
from satire_engine.core.enums import (
    AngleType,
    CircuitState,
    CreativeStrategyStatus,
    ErrorType,
    PersonaType,
    ProjectStatus,
    Provider,
    SatiricalContextType,
    SatiricalFormat,
    SatiricalTone,
    TargetAudience,
)
from satire_engine.core.errors import (
    AuthenticationError,
    ConfigurationError,
    DuplicateError,
    NotFoundError,
    ProviderError,
    SatireEngineError,
    ValidationError,
)
from satire_engine.core.llm import (
    AnthropicProvider,
    ChatMessage,
    GeminiProvider,
    LLMProvider,
    LLMResponse,
    LocalProvider,
    OpenAIProvider,
    create_provider,
    create_provider_from_model,
)
from satire_engine.core.retry import RetryConfig, call_with_retry

__all__ = [
    "LLMSettings",
    "Settings",
    "get_default_model",
    "AngleType",
    "CircuitState",
    "CreativeStrategyStatus",
    "ErrorType",
    "PersonaType",
    "ProjectStatus",
    "Provider",
    "SatiricalContextType",
    "SatiricalFormat",
    "SatiricalTone",
    "TargetAudience",
    "AuthenticationError",
    "ConfigurationError",
    "DuplicateError",
    "NotFoundError",
    "ProviderError",
    "SatireEngineError",
    "ValidationError",
    "AnthropicProvider",
    "ChatMessage",
    "GeminiProvider",
    "LLMProvider",
    "LLMResponse",
    "LocalProvider",
    "OpenAIProvider",
    "create_provider",
    "create_provider_from_model",
    "RetryConfig",
    "call_with_retry",
]
