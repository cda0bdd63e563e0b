"""
Configuration for the Satire Engine.

Settings are plain dataclasses validated in ``__post_init__`` and built
from environment variables by ``Settings.from_env``.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional

from satire_engine.core.enums import Provider

DEFAULT_MODELS: Dict[str, str] = {
    Provider.OPENAI.value: "gpt-4",
    Provider.ANTHROPIC.value: "claude-3-5-sonnet-20241022",
    Provider.GEMINI.value: "gemini-1.5-pro",
    Provider.LOCAL.value: "llama2",
}

DEFAULT_LOCAL_BASE_URL = "http://localhost:11434"
DEFAULT_JWT_SECRET = "svpp-development-secret-key"

# Storyboard shots are produced for 8 second video generation windows.
MAX_SHOT_SECONDS = 8


def get_default_model(provider: str) -> str:
    """Default model for a provider, falling back to the OpenAI default."""
    return DEFAULT_MODELS.get(provider, DEFAULT_MODELS[Provider.OPENAI.value])


def api_key_from_env(provider: str) -> Optional[str]:
    """Look up the environment API key for a provider (None for local)."""
    if provider == Provider.OPENAI.value:
        return os.getenv("OPENAI_API_KEY")
    if provider == Provider.ANTHROPIC.value:
        return os.getenv("ANTHROPIC_API_KEY")
    if provider == Provider.GEMINI.value:
        return os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY")
    return None


@dataclass
class LLMSettings:
    """Sampling and retry parameters for chat completions."""

    temperature: float = 0.7
    max_tokens: int = 1000
    max_retries: int = 2
    retry_base_delay: float = 1.0
    request_timeout: float = 30.0

    def __post_init__(self):
        """Validate parameter values."""
        if not 0.0 <= self.temperature <= 2.0:
            raise ValueError("temperature should be between 0.0 and 2.0")
        if self.max_tokens < 1:
            raise ValueError("max_tokens must be at least 1")
        if self.max_retries < 0:
            raise ValueError("max_retries cannot be negative")
        if self.retry_base_delay < 0:
            raise ValueError("retry_base_delay cannot be negative")
        if self.request_timeout <= 0:
            raise ValueError("request_timeout must be positive")


@dataclass
class Settings:
    """Runtime configuration for storage, auth and the default LLM."""

    data_dir: Path = field(default_factory=lambda: Path.home() / ".satirical-video-platform")
    data_file_name: str = "mock-database.json"
    agent_settings_file_name: str = "agent-settings.json"
    llm_provider: str = Provider.OPENAI.value
    llm_model: Optional[str] = None
    llm_base_url: Optional[str] = None
    jwt_secret: str = DEFAULT_JWT_SECRET
    token_lifetime_days: int = 7
    bcrypt_rounds: int = 12
    llm: LLMSettings = field(default_factory=LLMSettings)

    def __post_init__(self):
        """Validate configuration values."""
        self.data_dir = Path(self.data_dir).expanduser()
        valid_providers = {p.value for p in Provider}
        if self.llm_provider not in valid_providers:
            raise ValueError(
                f"llm_provider must be one of {sorted(valid_providers)}, got '{self.llm_provider}'"
            )
        if not self.llm_model:
            self.llm_model = get_default_model(self.llm_provider)
        if self.token_lifetime_days < 1:
            raise ValueError("token_lifetime_days must be at least 1")
        if not 4 <= self.bcrypt_rounds <= 31:
            raise ValueError("bcrypt_rounds must be between 4 and 31")
        if not self.jwt_secret:
            raise ValueError("jwt_secret cannot be empty")

    @property
    def data_file(self) -> Path:
        return self.data_dir / self.data_file_name

    @property
    def agent_settings_file(self) -> Path:
        return self.data_dir / self.agent_settings_file_name

    @classmethod
    def from_env(cls) -> "Settings":
        """
        Build settings from environment variables.

        Recognised variables: SVPP_DATA_DIR, SVPP_DATA_FILE,
        SVPP_AGENT_SETTINGS_FILE, LLM_PROVIDER, LLM_MODEL, LLM_BASE_URL,
        LLM_TEMPERATURE, LLM_MAX_TOKENS, LLM_MAX_RETRIES, LLM_REQUEST_TIMEOUT,
        JWT_SECRET.

        Returns:
            Validated Settings instance
        """
        kwargs = {}
        if os.getenv("SVPP_DATA_DIR"):
            kwargs["data_dir"] = Path(os.environ["SVPP_DATA_DIR"])
        if os.getenv("SVPP_DATA_FILE"):
            kwargs["data_file_name"] = os.environ["SVPP_DATA_FILE"]
        if os.getenv("SVPP_AGENT_SETTINGS_FILE"):
            kwargs["agent_settings_file_name"] = os.environ["SVPP_AGENT_SETTINGS_FILE"]

        llm = LLMSettings(
            temperature=float(os.getenv("LLM_TEMPERATURE", "0.7")),
            max_tokens=int(os.getenv("LLM_MAX_TOKENS", "1000")),
            max_retries=int(os.getenv("LLM_MAX_RETRIES", "2")),
            request_timeout=float(os.getenv("LLM_REQUEST_TIMEOUT", "30")),
        )

        return cls(
            llm_provider=os.getenv("LLM_PROVIDER", Provider.OPENAI.value),
            llm_model=os.getenv("LLM_MODEL"),
            llm_base_url=os.getenv("LLM_BASE_URL"),
            jwt_secret=os.getenv("JWT_SECRET", DEFAULT_JWT_SECRET),
            llm=llm,
            **kwargs,
        )
