"""
Model availability - which models each provider currently offers.

Live lists come from each provider's REST API and are cached for 30
minutes per provider and authentication state. When a provider cannot be
reached the known-model tables are used instead.
"""

import logging
import re
import time
from datetime import datetime
from typing import Callable, Dict, List, Optional, Tuple

import requests
from pydantic import BaseModel, Field

from satire_engine.core.config import DEFAULT_LOCAL_BASE_URL
from satire_engine.core.enums import Provider
from satire_engine.core.utils import utc_now

logger = logging.getLogger(__name__)

CACHE_DURATION_SECONDS = 30 * 60
REQUEST_TIMEOUT = 10

OPENAI_MODELS_URL = "https://api.openai.com/v1/models"
ANTHROPIC_MESSAGES_URL = "https://api.anthropic.com/v1/messages"
GEMINI_MODELS_URL = "https://generativelanguage.googleapis.com/v1beta/models"


class ModelInfo(BaseModel):
    id: str
    name: str
    display_name: str
    description: Optional[str] = None
    deprecated: bool = False


class ModelAvailabilityResult(BaseModel):
    success: bool
    models: List[ModelInfo] = Field(default_factory=list)
    error: Optional[str] = None
    last_checked: datetime = Field(default_factory=utc_now)


class ModelValidation(BaseModel):
    is_valid: bool
    is_deprecated: bool = False
    suggested_replacement: Optional[str] = None
    error: Optional[str] = None


def _known(model_id: str, display_name: str, description: str) -> ModelInfo:
    return ModelInfo(id=model_id, name=model_id, display_name=display_name, description=description)


ANTHROPIC_KNOWN_MODELS = [
    _known("claude-3-5-sonnet-20241022", "Claude 3.5 Sonnet (Latest)", "Most capable Claude model"),
    _known("claude-3-5-sonnet-20240620", "Claude 3.5 Sonnet (Previous)", "Previous version of Claude 3.5 Sonnet"),
    _known("claude-3-opus-20240229", "Claude 3 Opus", "Most powerful Claude 3 model"),
    _known("claude-3-sonnet-20240229", "Claude 3 Sonnet", "Balanced Claude 3 model"),
    _known("claude-3-haiku-20240307", "Claude 3 Haiku", "Fastest Claude 3 model"),
]

GEMINI_KNOWN_MODELS = [
    _known("gemini-1.5-pro", "Gemini 1.5 Pro", "Most capable Gemini model"),
    _known("gemini-1.5-flash", "Gemini 1.5 Flash", "Fast and efficient Gemini model"),
    _known("gemini-pro", "Gemini Pro", "Standard Gemini Pro model"),
]

LOCAL_DEFAULT_MODELS = [
    _known("llama2", "Llama 2", "Meta Llama 2 model"),
    _known("mistral", "Mistral", "Mistral AI model"),
    _known("codellama", "Code Llama", "Meta Code Llama model"),
    _known("neural-chat", "Neural Chat", "Intel Neural Chat model"),
]


def format_model_name(model_id: str) -> str:
    """Turn a model id such as ``gpt-4-turbo`` into ``GPT 4 Turbo``."""
    name = re.sub(r"[-_]", " ", model_id)
    name = re.sub(r"\b\w", lambda m: m.group(0).upper(), name)
    return name.replace("Gpt", "GPT").replace("Api", "API").replace("Ai", "AI")


class ModelAvailabilityService:
    """Checks and caches the models available from each provider."""

    def __init__(
        self,
        local_base_url: str = DEFAULT_LOCAL_BASE_URL,
        cache_duration: float = CACHE_DURATION_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.local_base_url = local_base_url.rstrip("/")
        self.cache_duration = cache_duration
        self._clock = clock
        self._cache: Dict[str, Tuple[ModelAvailabilityResult, float]] = {}

    def check_available_models(self, provider: str, api_key: Optional[str] = None) -> ModelAvailabilityResult:
        """
        List the models a provider offers, using the cache when fresh.

        Args:
            provider: Provider name ("openai", "anthropic", "gemini", "local")
            api_key: API key, when the provider needs one

        Returns:
            ModelAvailabilityResult (never raises for network failures)
        """
        cache_key = f"{provider}-{'authenticated' if api_key else 'public'}"
        cached = self._cache.get(cache_key)
        if cached and self._clock() < cached[1]:
            return cached[0]

        try:
            if provider == Provider.OPENAI.value:
                result = self._check_openai(api_key)
            elif provider == Provider.ANTHROPIC.value:
                result = self._check_anthropic(api_key)
            elif provider == Provider.GEMINI.value:
                result = self._check_gemini(api_key)
            elif provider == Provider.LOCAL.value:
                result = self._check_local()
            else:
                result = ModelAvailabilityResult(success=False, error=f"Unknown provider: {provider}")
        except (requests.RequestException, ValueError, KeyError) as e:
            logger.warning("Model check for %s failed: %s", provider, e)
            return ModelAvailabilityResult(success=False, error=f"Failed to check models: {e}")

        self._cache[cache_key] = (result, self._clock() + self.cache_duration)
        logger.info("Model check for %s: %d model(s), success=%s", provider, len(result.models), result.success)
        return result

    def validate_model(self, provider: str, model_id: str, api_key: Optional[str] = None) -> ModelValidation:
        """Check that a model is offered, suggesting a replacement when it is not."""
        available = self.check_available_models(provider, api_key)
        if not available.success:
            return ModelValidation(is_valid=False, error=available.error)

        model = next((m for m in available.models if model_id in (m.id, m.name)), None)
        if model is None:
            return ModelValidation(
                is_valid=False,
                error="Model not found in available models",
                suggested_replacement=self.suggest_replacement(provider, model_id, available.models),
            )
        return ModelValidation(is_valid=True, is_deprecated=model.deprecated)

    @staticmethod
    def suggest_replacement(provider: str, old_model_id: str, available: List[ModelInfo]) -> Optional[str]:
        if provider == Provider.OPENAI.value:
            if "gpt-3.5" in old_model_id:
                return "gpt-4"
            if "gpt-4" in old_model_id:
                match = next((m.id for m in available if "gpt-4" in m.id), None)
                if match:
                    return match
        elif provider == Provider.ANTHROPIC.value:
            if "claude-3" in old_model_id:
                return "claude-3-5-sonnet-20241022"
        elif provider == Provider.GEMINI.value:
            if "gemini-pro" in old_model_id:
                return "gemini-1.5-pro"
        return available[0].id if available else None

    def clear_cache(self) -> None:
        self._cache.clear()
        logger.info("Model availability cache cleared")

    def get_cache_status(self) -> Dict[str, Dict[str, float]]:
        now = self._clock()
        return {
            key: {"expiresIn": max(0.0, expiry - now), "modelCount": len(result.models)}
            for key, (result, expiry) in self._cache.items()
        }

    # --- provider checks ---

    def _check_openai(self, api_key: Optional[str]) -> ModelAvailabilityResult:
        if not api_key:
            return ModelAvailabilityResult(
                success=False, error="OpenAI API key required to check available models"
            )
        response = requests.get(
            OPENAI_MODELS_URL,
            headers={"Authorization": f"Bearer {api_key}", "Content-Type": "application/json"},
            timeout=REQUEST_TIMEOUT,
        )
        if not response.ok:
            return ModelAvailabilityResult(success=False, error=f"OpenAI API error: {response.status_code}")

        models = [
            ModelInfo(
                id=item["id"],
                name=item["id"],
                display_name=format_model_name(item["id"]),
                description=f"OpenAI {format_model_name(item['id'])}",
            )
            for item in response.json().get("data", [])
            if item.get("id", "").startswith("gpt-")
        ]
        models.sort(key=lambda m: m.display_name)
        return ModelAvailabilityResult(success=True, models=models)

    def _check_anthropic(self, api_key: Optional[str]) -> ModelAvailabilityResult:
        known = [m.model_copy() for m in ANTHROPIC_KNOWN_MODELS]
        if not api_key:
            return ModelAvailabilityResult(success=True, models=known)

        # No public listing endpoint; a 1-token request validates the key.
        try:
            response = requests.post(
                ANTHROPIC_MESSAGES_URL,
                headers={
                    "Content-Type": "application/json",
                    "x-api-key": api_key,
                    "anthropic-version": "2023-06-01",
                },
                json={
                    "model": ANTHROPIC_KNOWN_MODELS[0].id,
                    "max_tokens": 1,
                    "messages": [{"role": "user", "content": "test"}],
                },
                timeout=REQUEST_TIMEOUT,
            )
        except requests.RequestException as e:
            logger.warning("Anthropic key check failed, returning unverified models: %s", e)
            for model in known:
                model.description = f"{model.description} (unverified)"
            return ModelAvailabilityResult(success=True, models=known)

        try:
            error = (response.json() or {}).get("error") or {}
        except ValueError:
            error = {}
        if not response.ok and error.get("type") == "authentication_error":
            return ModelAvailabilityResult(success=False, error="Invalid Anthropic API key")
        return ModelAvailabilityResult(success=True, models=known)

    def _check_gemini(self, api_key: Optional[str]) -> ModelAvailabilityResult:
        known = [m.model_copy() for m in GEMINI_KNOWN_MODELS]
        if not api_key:
            return ModelAvailabilityResult(success=True, models=known)

        try:
            response = requests.get(GEMINI_MODELS_URL, params={"key": api_key}, timeout=REQUEST_TIMEOUT)
        except requests.RequestException as e:
            return ModelAvailabilityResult(
                success=True, models=known, error=f"Could not verify Gemini models: {e}"
            )
        if not response.ok:
            return ModelAvailabilityResult(success=False, error=f"Gemini API error: {response.status_code}")

        models = []
        for item in response.json().get("models", []):
            name = item.get("name", "")
            if "gemini" not in name or "generateContent" not in item.get("supportedGenerationMethods", []):
                continue
            model_id = name.replace("models/", "")
            display_name = item.get("displayName") or format_model_name(model_id)
            models.append(
                ModelInfo(
                    id=model_id,
                    name=model_id,
                    display_name=display_name,
                    description=item.get("description") or f"Google {display_name}",
                )
            )
        return ModelAvailabilityResult(success=True, models=models or known)

    def _check_local(self) -> ModelAvailabilityResult:
        defaults = [m.model_copy() for m in LOCAL_DEFAULT_MODELS]
        try:
            response = requests.get(f"{self.local_base_url}/api/tags", timeout=REQUEST_TIMEOUT)
        except requests.RequestException as e:
            return ModelAvailabilityResult(
                success=False, models=defaults, error=f"Failed to connect to local LLM server: {e}"
            )
        if not response.ok:
            return ModelAvailabilityResult(success=False, models=defaults, error="Local LLM server not available")

        models = [
            ModelInfo(
                id=item["name"],
                name=item["name"],
                display_name=format_model_name(item["name"]),
                description=f"Local model: {item['name']}",
            )
            for item in response.json().get("models", [])
        ]
        return ModelAvailabilityResult(success=True, models=models or defaults)
