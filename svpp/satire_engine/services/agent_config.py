"""
Per-persona provider/model configuration.

Selections are kept in a small JSON settings file with three sections:
``agent-configurations`` (persona -> provider/model), ``global-api-settings``
(API keys and the local server URL) and ``llm-settings`` (the default
provider used to fill in unconfigured personas).
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from satire_engine.core.config import DEFAULT_LOCAL_BASE_URL
from satire_engine.core.enums import PersonaType, Provider
from satire_engine.core.errors import ValidationError
from satire_engine.services.model_availability import ModelAvailabilityService

logger = logging.getLogger(__name__)

AGENT_CONFIGURATIONS_KEY = "agent-configurations"
GLOBAL_API_SETTINGS_KEY = "global-api-settings"
LLM_SETTINGS_KEY = "llm-settings"

# Global settings key holding the credential (or server URL) for each provider.
PROVIDER_SETTING_KEYS = {
    Provider.OPENAI.value: "openai_api_key",
    Provider.ANTHROPIC.value: "anthropic_api_key",
    Provider.GEMINI.value: "gemini_api_key",
    Provider.LOCAL.value: "local_base_url",
}

STATIC_MODELS: Dict[str, List[Dict[str, str]]] = {
    Provider.OPENAI.value: [
        {"value": "gpt-4", "label": "GPT-4 (Recommended)"},
        {"value": "gpt-4-turbo", "label": "GPT-4 Turbo"},
        {"value": "gpt-3.5-turbo", "label": "GPT-3.5 Turbo"},
    ],
    Provider.ANTHROPIC.value: [
        {"value": "claude-3-5-sonnet-20241022", "label": "Claude 3.5 Sonnet (Latest)"},
        {"value": "claude-3-5-sonnet-20240620", "label": "Claude 3.5 Sonnet (Previous)"},
        {"value": "claude-3-sonnet-20240229", "label": "Claude 3 Sonnet"},
        {"value": "claude-3-haiku-20240307", "label": "Claude 3 Haiku"},
        {"value": "claude-3-opus-20240229", "label": "Claude 3 Opus"},
    ],
    Provider.GEMINI.value: [
        {"value": "gemini-1.5-pro", "label": "Gemini 1.5 Pro (Recommended)"},
        {"value": "gemini-1.5-flash", "label": "Gemini 1.5 Flash"},
        {"value": "gemini-pro", "label": "Gemini Pro"},
    ],
    Provider.LOCAL.value: [
        {"value": "llama2", "label": "Llama 2"},
        {"value": "mistral", "label": "Mistral"},
        {"value": "codellama", "label": "Code Llama"},
        {"value": "neural-chat", "label": "Neural Chat"},
    ],
}


class AgentConfig(BaseModel):
    """Resolved LLM configuration for one persona."""

    persona: PersonaType
    provider: Provider
    model: str = Field(..., min_length=1)
    api_key: Optional[str] = None
    base_url: Optional[str] = None


class ConfigSuggestion(BaseModel):
    action: str = Field(..., description="configure, setup-api, update-model or reconfigure")
    description: str
    data: Dict[str, Any] = Field(default_factory=dict)


class AgentValidation(BaseModel):
    is_valid: bool
    issues: List[str] = Field(default_factory=list)
    suggestions: List[ConfigSuggestion] = Field(default_factory=list)


class AutoFixResult(BaseModel):
    success: bool
    changes: List[str] = Field(default_factory=list)
    error: Optional[str] = None


class AgentSettingsStore:
    """JSON-file key/value store for agent settings; in memory when no path is given."""

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path else None
        self._data: Dict[str, Any] = {}
        if self.path and self.path.exists():
            with open(self.path, "r", encoding="utf-8") as f:
                self._data = json.load(f)

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value
        self._flush()

    def remove(self, key: str) -> None:
        self._data.pop(key, None)
        self._flush()

    def _flush(self) -> None:
        if not self.path:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(self._data, f, indent=2, ensure_ascii=False)


class AgentConfigService:
    """Reads, validates and repairs per-persona LLM configuration."""

    def __init__(self, store: AgentSettingsStore, availability: ModelAvailabilityService):
        self.store = store
        self.availability = availability

    # --- stored configuration ---

    def get_agent_config(self, persona: PersonaType) -> Optional[AgentConfig]:
        """Stored provider/model for a persona joined with the global credential."""
        stored = self._stored_configs().get(PersonaType(persona).value)
        if not stored or not stored.get("provider") or not stored.get("model"):
            return None

        provider = stored["provider"]
        credential = self.get_global_api_key(provider)
        if provider == Provider.LOCAL.value:
            return AgentConfig(
                persona=persona,
                provider=provider,
                model=stored["model"],
                base_url=credential or DEFAULT_LOCAL_BASE_URL,
            )
        return AgentConfig(persona=persona, provider=provider, model=stored["model"], api_key=credential)

    def save_agent_config(self, persona: PersonaType, provider: str, model: str) -> None:
        provider = Provider(provider)
        if not model:
            raise ValidationError("A model is required")
        configs = self._stored_configs()
        configs[PersonaType(persona).value] = {"provider": provider.value, "model": model}
        self.store.set(AGENT_CONFIGURATIONS_KEY, configs)
        logger.info("Saved %s config: %s/%s", persona, provider, model)

    def get_all_agent_configs(self) -> Dict[str, Dict[str, str]]:
        return self._stored_configs()

    def reset_all_configs(self) -> None:
        self.store.remove(AGENT_CONFIGURATIONS_KEY)

    def is_agent_configured(self, persona: PersonaType) -> bool:
        config = self.get_agent_config(persona)
        if config is None:
            return False
        return config.provider == Provider.LOCAL or bool(config.api_key)

    # --- global settings ---

    def get_global_api_settings(self) -> Dict[str, str]:
        return dict(self.store.get(GLOBAL_API_SETTINGS_KEY, {}))

    def save_global_api_settings(self, settings: Dict[str, str]) -> None:
        unknown = set(settings) - set(PROVIDER_SETTING_KEYS.values())
        if unknown:
            raise ValidationError(f"Unknown global API settings: {sorted(unknown)}")
        merged = self.get_global_api_settings()
        merged.update(settings)
        self.store.set(GLOBAL_API_SETTINGS_KEY, merged)

    def get_global_api_key(self, provider: str) -> Optional[str]:
        key = PROVIDER_SETTING_KEYS.get(provider)
        if key is None:
            return None
        return self.get_global_api_settings().get(key) or None

    def save_llm_settings(self, provider: str, model: str, api_key: Optional[str] = None,
                          base_url: Optional[str] = None) -> None:
        self.store.set(
            LLM_SETTINGS_KEY,
            {"provider": Provider(provider).value, "model": model, "apiKey": api_key, "baseUrl": base_url},
        )

    def get_default_config(self) -> Optional[AgentConfig]:
        """Default configuration from the ``llm-settings`` section, if present."""
        settings = self.store.get(LLM_SETTINGS_KEY)
        if not settings or not settings.get("provider") or not settings.get("model"):
            return None
        return AgentConfig(
            persona=PersonaType.CREATIVE_STRATEGIST,
            provider=settings["provider"],
            model=settings["model"],
            api_key=settings.get("apiKey"),
            base_url=settings.get("baseUrl"),
        )

    def apply_global_settings_to_all(self) -> List[PersonaType]:
        """Give every unconfigured persona the default provider/model."""
        default = self.get_default_config()
        if default is None:
            return []
        updated = []
        for persona in PersonaType:
            if not self.is_agent_configured(persona):
                self.save_agent_config(persona, default.provider.value, default.model)
                updated.append(persona)
        return updated

    # --- model lists ---

    @staticmethod
    def get_models_for_provider(provider: str) -> List[Dict[str, str]]:
        return [dict(model) for model in STATIC_MODELS.get(provider, [])]

    def get_models_for_provider_dynamic(self, provider: str, api_key: Optional[str] = None) -> List[Dict[str, Any]]:
        """Live model list, or the static table flagged as unverified."""
        result = self.availability.check_available_models(provider, api_key)
        if result.success:
            return [
                {
                    "value": model.id,
                    "label": model.display_name + (" (deprecated)" if model.deprecated else ""),
                    "deprecated": model.deprecated,
                }
                for model in result.models
            ]
        logger.warning("Falling back to static models for %s: %s", provider, result.error)
        return [
            {**model, "error": "Could not verify availability"}
            for model in self.get_models_for_provider(provider)
        ]

    # --- validation ---

    def validate_agent_config(self, persona: PersonaType) -> AgentValidation:
        """
        Check a persona's configuration against the provider's model list.

        Returns:
            AgentValidation whose suggestions use the actions ``configure``,
            ``setup-api``, ``update-model`` or ``reconfigure``
        """
        config = self.get_agent_config(persona)
        if config is None:
            return AgentValidation(
                is_valid=False,
                issues=["No configuration found for this agent"],
                suggestions=[ConfigSuggestion(
                    action="configure",
                    description="Configure this agent with a provider and model",
                )],
            )

        validation = AgentValidation(is_valid=True)
        is_local = config.provider == Provider.LOCAL
        if not config.api_key and not is_local:
            validation.issues.append(f"No API key found for {config.provider.value}")
            validation.suggestions.append(ConfigSuggestion(
                action="setup-api",
                description=f"Configure {config.provider.value} API key in global settings",
            ))

        if config.api_key or is_local:
            model_check = self.availability.validate_model(config.provider.value, config.model, config.api_key)
            if not model_check.is_valid:
                validation.issues.append(f'Model "{config.model}" is not available')
                if model_check.suggested_replacement:
                    validation.suggestions.append(ConfigSuggestion(
                        action="update-model",
                        description=f"Update to suggested model: {model_check.suggested_replacement}",
                        data={"newModel": model_check.suggested_replacement},
                    ))
            elif model_check.is_deprecated:
                validation.issues.append(f'Model "{config.model}" is deprecated')
                validation.suggestions.append(ConfigSuggestion(
                    action="update-model",
                    description="Consider updating to a newer model version",
                ))

        validation.is_valid = not validation.issues
        return validation

    def auto_fix_agent_config(self, persona: PersonaType) -> AutoFixResult:
        """Apply every ``update-model`` suggestion that names a replacement."""
        validation = self.validate_agent_config(persona)
        if validation.is_valid:
            return AutoFixResult(success=True, changes=["No fixes needed"])

        changes = []
        for suggestion in validation.suggestions:
            new_model = suggestion.data.get("newModel")
            if suggestion.action == "update-model" and new_model:
                current = self.get_agent_config(persona)
                if current:
                    self.save_agent_config(persona, current.provider.value, new_model)
                    changes.append(f"Updated model to {new_model}")
        return AutoFixResult(success=True, changes=changes)

    def validate_all_agents(self) -> Dict[str, Dict[str, Any]]:
        results = {}
        for persona in PersonaType:
            validation = self.validate_agent_config(persona)
            results[persona.value] = {
                "persona": persona.value,
                "isValid": validation.is_valid,
                "issues": validation.issues,
                "needsAttention": not validation.is_valid
                or any(s.action == "update-model" for s in validation.suggestions),
            }
        return results

    def _stored_configs(self) -> Dict[str, Dict[str, str]]:
        return dict(self.store.get(AGENT_CONFIGURATIONS_KEY, {}))
