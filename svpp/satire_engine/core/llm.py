"""
LLM Provider abstraction for multi-LLM support.

Every provider speaks the same chat interface (a list of role/content
messages in, text out). Structured output is layered on top by asking for
JSON, stripping markdown fences and validating with a Pydantic schema.
"""

import json
import logging
from abc import ABC, abstractmethod
from typing import Dict, List, Literal, Optional, Protocol, Type, TypeVar

import requests
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from satire_engine.core.config import DEFAULT_LOCAL_BASE_URL, api_key_from_env
from satire_engine.core.enums import Provider
from satire_engine.core.errors import ConfigurationError, ProviderError
from satire_engine.core.utils import strip_code_fences

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)


class ChatMessage(BaseModel):
    """A single chat turn."""

    role: Literal["system", "user", "assistant"]
    content: str


class TokenUsage(BaseModel):
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class LLMResponse(BaseModel):
    """Text reply from a provider."""

    text: str = Field(..., description="Assistant reply text")
    model: str = Field(..., description="Model that produced the reply")
    usage: Optional[TokenUsage] = None


class LLMProvider(Protocol):
    """Protocol defining the interface for LLM providers."""

    model_name: str

    def chat(
        self,
        messages: List[ChatMessage],
        temperature: float = 0.7,
        max_tokens: int = 1000,
    ) -> LLMResponse:
        """
        Send a conversation to the model and return its reply.

        Args:
            messages: Ordered chat history, optionally starting with a system message
            temperature: Sampling temperature (0.0-2.0)
            max_tokens: Maximum tokens in the reply

        Returns:
            LLMResponse with the reply text and token usage when reported
        """
        ...

    def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        output_schema: Type[T],
        temperature: float = 0.7,
    ) -> T:
        ...


class BaseLLMProvider(ABC):
    """Abstract base class for LLM providers."""

    provider_name: str = "base"

    def __init__(self, model_name: str, api_key: Optional[str] = None):
        """
        Initialize the LLM provider.

        Args:
            model_name: Name of the model to use
            api_key: API key for authentication (if required)
        """
        if not model_name:
            raise ConfigurationError(f"A model name is required for {self.provider_name}")
        self.model_name = model_name
        self.api_key = api_key

    @abstractmethod
    def chat(
        self,
        messages: List[ChatMessage],
        temperature: float = 0.7,
        max_tokens: int = 1000,
    ) -> LLMResponse:
        """Send a conversation to the model and return its reply."""
        pass

    def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        output_schema: Type[T],
        temperature: float = 0.7,
    ) -> T:
        """
        Generate structured output by asking for JSON matching a schema.

        Args:
            system_prompt: System instruction prompt
            user_prompt: User input prompt
            output_schema: Pydantic model class for structured output
            temperature: Sampling temperature

        Returns:
            Instance of output_schema parsed from the reply

        Raises:
            ProviderError: If the reply is not valid JSON for the schema
        """
        json_schema = output_schema.model_json_schema()
        enhanced_prompt = (
            user_prompt
            + "\n\nOutput valid JSON matching this schema:\n"
            + json.dumps(json_schema, indent=2)
        )
        response = self.chat(
            [
                ChatMessage(role="system", content=system_prompt),
                ChatMessage(role="user", content=enhanced_prompt),
            ],
            temperature=temperature,
            max_tokens=4096,
        )
        return parse_structured(response.text, output_schema, self.provider_name)


def parse_structured(text: str, output_schema: Type[T], provider_name: str = "llm") -> T:
    """
    Parse an LLM reply into a Pydantic model.

    Args:
        text: Raw reply, possibly wrapped in a markdown code block
        output_schema: Target Pydantic model
        provider_name: Provider label for error messages

    Returns:
        Parsed instance of output_schema
    """
    cleaned = strip_code_fences(text or "")
    try:
        data = json.loads(cleaned)
        return output_schema(**data)
    except (json.JSONDecodeError, TypeError, PydanticValidationError) as e:
        raise ProviderError(
            provider_name,
            f"Failed to parse structured output as {output_schema.__name__}: {e}",
            {"raw": cleaned[:200]},
        ) from e


def _timeout_kwargs(timeout: Optional[float]) -> Dict[str, float]:
    return {"timeout": timeout} if timeout else {}


class OpenAIProvider(BaseLLMProvider):
    """OpenAI API provider implementation."""

    provider_name = Provider.OPENAI.value

    def __init__(self, model_name: str = "gpt-4", api_key: Optional[str] = None, timeout: Optional[float] = None):
        """
        Initialize OpenAI provider.

        Args:
            model_name: OpenAI model name (e.g., "gpt-4", "gpt-4-turbo")
            api_key: OpenAI API key (defaults to OPENAI_API_KEY env var)
            timeout: Request timeout in seconds (SDK default when None)

        Raises:
            ConfigurationError: If API key is not provided
        """
        api_key = api_key or api_key_from_env(self.provider_name)
        if not api_key:
            raise ConfigurationError(
                "OpenAI API key is required. "
                "Set OPENAI_API_KEY environment variable or pass api_key parameter."
            )
        super().__init__(model_name, api_key)
        try:
            from openai import OpenAI
            self.client = OpenAI(api_key=self.api_key, **_timeout_kwargs(timeout))
        except ImportError:
            raise ImportError("openai package is required. Install with: pip install openai")

    def chat(
        self,
        messages: List[ChatMessage],
        temperature: float = 0.7,
        max_tokens: int = 1000,
    ) -> LLMResponse:
        """Send the conversation to the chat completions endpoint."""
        try:
            response = self.client.chat.completions.create(
                model=self.model_name,
                messages=[m.model_dump() for m in messages],
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except Exception as e:
            raise ProviderError(self.provider_name, str(e)) from e

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise ProviderError(self.provider_name, "No response content received from OpenAI")

        usage = None
        if response.usage:
            usage = TokenUsage(
                prompt_tokens=response.usage.prompt_tokens,
                completion_tokens=response.usage.completion_tokens,
                total_tokens=response.usage.total_tokens,
            )
        return LLMResponse(text=content, model=self.model_name, usage=usage)


class AnthropicProvider(BaseLLMProvider):
    """Anthropic Claude API provider implementation."""

    provider_name = Provider.ANTHROPIC.value

    def __init__(
        self,
        model_name: str = "claude-3-5-sonnet-20241022",
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        """
        Initialize Anthropic provider.

        Args:
            model_name: Anthropic model name (e.g., "claude-3-5-sonnet-20241022")
            api_key: Anthropic API key (defaults to ANTHROPIC_API_KEY env var)
            timeout: Request timeout in seconds (SDK default when None)

        Raises:
            ConfigurationError: If API key is not provided
        """
        api_key = api_key or api_key_from_env(self.provider_name)
        if not api_key:
            raise ConfigurationError(
                "Anthropic API key is required. "
                "Set ANTHROPIC_API_KEY environment variable or pass api_key parameter."
            )
        super().__init__(model_name, api_key)
        try:
            from anthropic import Anthropic
            self.client = Anthropic(api_key=self.api_key, **_timeout_kwargs(timeout))
        except ImportError:
            raise ImportError("anthropic package is required. Install with: pip install anthropic")

    def chat(
        self,
        messages: List[ChatMessage],
        temperature: float = 0.7,
        max_tokens: int = 1000,
    ) -> LLMResponse:
        """Send the conversation to the messages API with a separate system prompt."""
        system_prompt = "\n\n".join(m.content for m in messages if m.role == "system")
        conversation = [
            {"role": m.role, "content": m.content} for m in messages if m.role != "system"
        ]

        kwargs = {
            "model": self.model_name,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": conversation,
        }
        if system_prompt:
            kwargs["system"] = system_prompt

        try:
            response = self.client.messages.create(**kwargs)
        except Exception as e:
            raise ProviderError(self.provider_name, str(e)) from e

        text = "".join(
            block.text for block in (response.content or []) if hasattr(block, "text")
        )
        if not text:
            raise ProviderError(self.provider_name, "No response content received from Anthropic")

        usage = None
        if getattr(response, "usage", None):
            usage = TokenUsage(
                prompt_tokens=response.usage.input_tokens,
                completion_tokens=response.usage.output_tokens,
                total_tokens=response.usage.input_tokens + response.usage.output_tokens,
            )
        return LLMResponse(text=text, model=self.model_name, usage=usage)


class GeminiProvider(BaseLLMProvider):
    """Google Gemini API provider implementation."""

    provider_name = Provider.GEMINI.value

    def __init__(self, model_name: str = "gemini-1.5-pro", api_key: Optional[str] = None, timeout: Optional[float] = None):
        """
        Initialize Gemini provider.

        Args:
            model_name: Gemini model name (e.g., "gemini-1.5-pro", "gemini-1.5-flash")
            api_key: Google API key (defaults to GEMINI_API_KEY or GOOGLE_API_KEY env var)
            timeout: Request timeout in seconds (SDK default when None)

        Raises:
            ConfigurationError: If API key is not provided
        """
        api_key = api_key or api_key_from_env(self.provider_name)
        if not api_key:
            raise ConfigurationError(
                "Gemini API key is required. "
                "Set GEMINI_API_KEY environment variable or pass api_key parameter."
            )
        super().__init__(model_name, api_key)
        try:
            from google import genai
            from google.genai import types
            http_options = types.HttpOptions(timeout=int(timeout * 1000)) if timeout else None
            self.client = genai.Client(api_key=self.api_key, http_options=http_options)
            self.types = types
        except ImportError:
            raise ImportError("google-genai package is required. Install with: pip install google-genai")

    def chat(
        self,
        messages: List[ChatMessage],
        temperature: float = 0.7,
        max_tokens: int = 1000,
    ) -> LLMResponse:
        """Send the conversation to generateContent, mapping assistant turns to the model role."""
        system_prompt = "\n\n".join(m.content for m in messages if m.role == "system")
        contents = [
            self.types.Content(
                role="model" if m.role == "assistant" else "user",
                parts=[self.types.Part(text=m.content)],
            )
            for m in messages
            if m.role != "system"
        ]
        config = self.types.GenerateContentConfig(
            system_instruction=system_prompt or None,
            temperature=temperature,
            max_output_tokens=max_tokens,
        )

        try:
            response = self.client.models.generate_content(
                model=self.model_name,
                contents=contents,
                config=config,
            )
        except Exception as e:
            raise ProviderError(self.provider_name, str(e)) from e

        if not response.text:
            raise ProviderError(self.provider_name, "No response content received from Gemini")

        usage = None
        metadata = getattr(response, "usage_metadata", None)
        if metadata:
            usage = TokenUsage(
                prompt_tokens=metadata.prompt_token_count or 0,
                completion_tokens=metadata.candidates_token_count or 0,
                total_tokens=metadata.total_token_count or 0,
            )
        return LLMResponse(text=response.text, model=self.model_name, usage=usage)


class LocalProvider(BaseLLMProvider):
    """Local Ollama server provider implementation."""

    provider_name = Provider.LOCAL.value

    def __init__(
        self,
        model_name: str = "llama2",
        base_url: Optional[str] = None,
        timeout: float = 120.0,
    ):
        """
        Initialize a local provider.

        Args:
            model_name: Ollama model tag (e.g., "llama2", "mistral")
            base_url: Ollama server URL (defaults to http://localhost:11434)
            timeout: HTTP timeout in seconds
        """
        super().__init__(model_name, None)
        self.base_url = (base_url or DEFAULT_LOCAL_BASE_URL).rstrip("/")
        self.timeout = timeout

    def chat(
        self,
        messages: List[ChatMessage],
        temperature: float = 0.7,
        max_tokens: int = 1000,
    ) -> LLMResponse:
        """POST the conversation to ``/api/chat`` with streaming disabled."""
        payload = {
            "model": self.model_name,
            "messages": [m.model_dump() for m in messages],
            "stream": False,
            "options": {"temperature": temperature, "num_predict": max_tokens},
        }
        try:
            response = requests.post(
                f"{self.base_url}/api/chat", json=payload, timeout=self.timeout
            )
        except requests.RequestException as e:
            raise ProviderError(self.provider_name, f"Local LLM call failed: {e}") from e

        try:
            data = response.json()
        except ValueError:
            data = {}

        if not response.ok:
            raise ProviderError(self.provider_name, data.get("error") or "Local LLM error")

        content = (data.get("message") or {}).get("content")
        if not content:
            raise ProviderError(self.provider_name, "No response content received from local LLM")

        usage = None
        if "prompt_eval_count" in data or "eval_count" in data:
            prompt_tokens = data.get("prompt_eval_count", 0)
            completion_tokens = data.get("eval_count", 0)
            usage = TokenUsage(
                prompt_tokens=prompt_tokens,
                completion_tokens=completion_tokens,
                total_tokens=prompt_tokens + completion_tokens,
            )
        return LLMResponse(text=content, model=self.model_name, usage=usage)


def create_provider(
    provider: str,
    model: str,
    api_key: Optional[str] = None,
    base_url: Optional[str] = None,
    timeout: Optional[float] = None,
) -> BaseLLMProvider:
    """
    Create a provider from an explicit provider name.

    Args:
        provider: One of "openai", "anthropic", "gemini", "local"
        model: Model name
        api_key: Optional API key (falls back to environment variables)
        base_url: Server URL for the local provider
        timeout: Request timeout in seconds (client default when None)

    Returns:
        Provider instance

    Raises:
        ConfigurationError: If the provider is unknown or lacks credentials
    """
    if provider == Provider.OPENAI.value:
        return OpenAIProvider(model_name=model, api_key=api_key, timeout=timeout)
    elif provider == Provider.ANTHROPIC.value:
        return AnthropicProvider(model_name=model, api_key=api_key, timeout=timeout)
    elif provider == Provider.GEMINI.value:
        return GeminiProvider(model_name=model, api_key=api_key, timeout=timeout)
    elif provider == Provider.LOCAL.value:
        return LocalProvider(model_name=model, base_url=base_url, **_timeout_kwargs(timeout))
    raise ConfigurationError(f"Unsupported provider: {provider}")


def create_provider_from_model(model: str, api_key: Optional[str] = None) -> BaseLLMProvider:
    """
    Automatically create the appropriate LLM provider based on model name.

    Args:
        model: Model name (e.g., "gpt-4", "claude-3-5-sonnet-20241022", "gemini-1.5-pro")
        api_key: Optional API key (if not provided, uses environment variables)

    Returns:
        Appropriate provider instance

    Raises:
        ConfigurationError: If model name doesn't match any known provider pattern
    """
    model_lower = model.lower()

    # OpenAI models: gpt-*, o1-*
    if model_lower.startswith("gpt-") or model_lower.startswith("o1-"):
        return OpenAIProvider(model_name=model, api_key=api_key)

    # Anthropic models: claude-*
    elif model_lower.startswith("claude-"):
        return AnthropicProvider(model_name=model, api_key=api_key)

    # Gemini models: gemini-*
    elif model_lower.startswith("gemini-"):
        return GeminiProvider(model_name=model, api_key=api_key)

    else:
        raise ConfigurationError(
            f"Unknown model: {model}. "
            "Supported model prefixes: 'gpt-', 'o1-' (OpenAI), 'claude-' (Anthropic), 'gemini-' (Google)"
        )
