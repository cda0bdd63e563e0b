"""
Channel table for front ends.

Every operation the desktop shell used to reach over IPC is registered here
under its original channel name. ``ChannelRegistry.invoke`` never raises:
results and failures alike come back as an ``APIResponse`` envelope.
"""

import dataclasses
import json
import logging
import platform
import sys
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from satire_engine import __version__
from satire_engine.core.enums import ErrorType, PersonaType, SatiricalContextType
from satire_engine.core.errors import SatireEngineError
from satire_engine.core.utils import fetch_article, generate_id, sanitize_input, utc_now, validate_shot_duration
from satire_engine.engine import SatireEngine
from satire_engine.services.agent_config import AgentConfig
from satire_engine.services.satirical_context import get_context_by_type
from satire_engine.storage.models import (
    CreativeStrategy,
    DirectorNotes,
    Script,
    Shot,
    SoundNotes,
    VideoPrompt,
)

logger = logging.getLogger(__name__)

Handler = Callable[..., Any]


class APIResponse(BaseModel):
    """Response envelope returned for every channel call."""

    success: bool
    data: Any = None
    error: Optional[str] = None
    error_type: Optional[str] = Field(None, description="Exception class name when success is false")
    timestamp: datetime = Field(default_factory=utc_now)

    @classmethod
    def ok(cls, data: Any = None) -> "APIResponse":
        return cls(success=True, data=to_jsonable(data))

    @classmethod
    def fail(cls, error: Exception) -> "APIResponse":
        return cls(success=False, error=str(error), error_type=type(error).__name__)


class StructuredPayload(BaseModel):
    """Free-form JSON object returned by ad hoc structured generation."""

    model_config = ConfigDict(extra="allow")


def to_jsonable(value: Any) -> Any:
    """Convert models, dataclasses and containers into plain JSON data."""
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return to_jsonable(dataclasses.asdict(value))
    if isinstance(value, dict):
        return {str(key): to_jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [to_jsonable(item) for item in value]
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    return value


class ChannelRegistry:
    """
    Maps channel names to engine operations.

    Args:
        engine: Wired engine whose services back the channels
    """

    def __init__(self, engine: SatireEngine):
        self.engine = engine
        self._handlers: Dict[str, Handler] = {}
        self._register_defaults()

    def register(self, channel: str, handler: Handler) -> None:
        self._handlers[channel] = handler

    @property
    def channels(self) -> List[str]:
        return sorted(self._handlers)

    def invoke(self, channel: str, *args: Any) -> APIResponse:
        """Run a channel handler and wrap its result or error in an envelope."""
        handler = self._handlers.get(channel)
        if handler is None:
            logger.warning("Unknown channel: %s", channel)
            return APIResponse(success=False, error=f"Unknown channel: {channel}", error_type="UnknownChannel")

        try:
            return APIResponse.ok(handler(*args))
        except (SatireEngineError, PydanticValidationError) as e:
            logger.warning("Channel %s failed: %s", channel, e)
            return APIResponse.fail(e)
        except Exception as e:
            logger.error("Channel %s raised an unexpected error", channel, exc_info=True)
            return APIResponse.fail(e)

    # --- registration ---

    def _register_defaults(self) -> None:
        engine = self.engine
        store = engine.datastore

        handlers: Dict[str, Handler] = {
            # auth
            "auth-register": lambda data: engine.auth.register(
                data.get("name", ""), data.get("email", ""), data.get("password", ""),
                PersonaType(data.get("role", PersonaType.CREATIVE_STRATEGIST.value)),
            ),
            "auth-login": self._login,
            "auth-verify-token": engine.auth.verify_token,
            "auth-refresh-token": engine.auth.refresh_token,
            "auth-get-current-user": engine.auth.get_current_user,
            "auth-logout": engine.session.clear,
            # users
            "db-create-user": lambda data: store.create_user(
                data["name"], data["email"], PersonaType(data["role"])
            ),
            "db-authenticate-user": self._login,
            "db-get-user": store.get_user,
            # projects
            "db-create-project": lambda data: store.create_project(**data),
            "db-get-projects": store.get_projects_for_user,
            "db-get-project": store.get_project,
            "db-update-project": store.update_project,
            "db-update-project-format": store.update_project_format,
            "db-update-project-context": self._update_project_context,
            "db-delete-project": engine.delete_project,
            "db-get-project-stats": store.get_project_stats,
            # articles
            "db-create-article": lambda data: store.create_article(**data),
            "db-upload-article-file": lambda data: store.upload_article_file(**data),
            "db-import-article-url": self._import_article_url,
            "db-get-articles-by-project": store.get_articles_by_project,
            "db-get-article": store.get_article,
            "db-update-news-article": store.update_article,
            "db-delete-article": store.delete_article,
            # strategy and director notes
            "db-create-creative-strategy": lambda data: store.create_creative_strategy(CreativeStrategy(**data)),
            "db-get-creative-strategy": store.get_creative_strategy,
            "db-update-creative-strategy": store.update_creative_strategy,
            "db-generate-creative-strategy": engine.strategy.generate_creative_strategy,
            "db-create-director-notes": lambda data: store.create_director_notes(DirectorNotes(**data)),
            "db-get-director-notes": store.get_director_notes,
            "db-update-director-notes": store.update_director_notes,
            "db-generate-director-notes": engine.strategy.generate_director_notes,
            # production
            "db-create-script": lambda data: store.create_script(Script(**data)),
            "db-get-scripts-by-project": store.get_scripts_by_project,
            "db-update-script": store.update_script,
            "db-create-shot": lambda data: store.create_shot(Shot(**data)),
            "db-get-shots-for-script": store.get_shots_for_script,
            "db-create-sound-notes": lambda data: store.create_sound_notes(SoundNotes(**data)),
            "db-create-prompt": lambda data: store.create_prompt(VideoPrompt(**data)),
            "db-build-shot-brief": engine.strategy.build_shot_brief,
            "db-test-connection": store.test_connection,
            # conversations
            "llm-generate-response": self._generate_response,
            "llm-clear-conversation": engine.llm.clear_conversation,
            "llm-get-conversation-summary": engine.llm.get_conversation_summary,
            "llm-generate-structured": self._generate_structured,
            "llm-create-conversation": lambda project_id, personas: store.create_conversation(
                project_id, [PersonaType(p) for p in personas]
            ),
            "llm-add-message": lambda conversation_id, message: store.add_message(conversation_id, **message),
            "llm-get-conversation": store.get_conversation_messages,
            # error recovery
            "llm-error-statistics": lambda persona=None: engine.recovery.get_error_statistics(
                PersonaType(persona) if persona else None
            ),
            "llm-recovery-suggestions": lambda persona, error_type: engine.recovery.get_recovery_suggestions(
                PersonaType(persona), ErrorType(error_type)
            ),
            "llm-reset-circuit-breaker": lambda persona: engine.recovery.reset_circuit_breaker(PersonaType(persona)),
            # models and agents
            "model-check-availability": engine.availability.check_available_models,
            "model-validate": engine.availability.validate_model,
            "model-clear-cache": engine.availability.clear_cache,
            "agent-get-config": lambda persona: engine.agent_configs.get_agent_config(PersonaType(persona)),
            "agent-save-config": lambda persona, provider, model: engine.agent_configs.save_agent_config(
                PersonaType(persona), provider, model
            ),
            "agent-get-all-configs": engine.agent_configs.get_all_agent_configs,
            "agent-save-global-settings": engine.agent_configs.save_global_api_settings,
            "agent-apply-global-settings": engine.agent_configs.apply_global_settings_to_all,
            "agent-validate": lambda persona: engine.agent_configs.validate_agent_config(PersonaType(persona)),
            "agent-validate-all": engine.agent_configs.validate_all_agents,
            "agent-auto-fix": lambda persona: engine.agent_configs.auto_fix_agent_config(PersonaType(persona)),
            "agent-get-models-dynamic": engine.agent_configs.get_models_for_provider_dynamic,
            # project director
            "project-director-initialize": self._director_initialize,
            "project-director-health-check": self._director_health_check,
            "project-director-strategic-guidance": engine.director.get_strategic_guidance,
            "project-director-monitor-conversation": lambda persona, user_message, response: (
                engine.director.monitor_agent_conversation(PersonaType(persona), user_message, response)
            ),
            # utilities
            "util-generate-id": generate_id,
            "util-validate-duration": validate_shot_duration,
            "util-sanitize": sanitize_input,
            "file-save": self._file_save,
            "file-read": lambda filepath: Path(filepath).read_text(encoding="utf-8"),
            "test-ipc": lambda message: f"Echo: {message}",
            "app-version": lambda: __version__,
            "platform-info": lambda: {
                "platform": sys.platform,
                "arch": platform.machine(),
                "python": platform.python_version(),
            },
        }
        for channel, handler in handlers.items():
            self.register(channel, handler)

    # --- handlers needing more than a direct call ---

    def _login(self, email: str, password: str):
        result = self.engine.auth.login(email, password)
        self.engine.session.set_current_user(result.user, result.token)
        return result

    def _import_article_url(self, url: str, project_id: str, uploaded_by: str):
        """Fetch an article page and store its extracted text under the project."""
        page = fetch_article(url)
        return self.engine.datastore.create_article(
            title=page["title"],
            content=page["content"],
            project_id=project_id,
            uploaded_by=uploaded_by,
            source=page["source"],
            url=page["url"],
        )

    def _update_project_context(self, project_id: str, context_type: Optional[str]):
        context = get_context_by_type(SatiricalContextType(context_type)) if context_type else None
        return self.engine.datastore.update_project_context(project_id, context)

    def _generate_response(
        self,
        conversation_id: str,
        persona: str,
        user_message: str,
        context: Optional[Dict[str, Any]] = None,
        agent_config: Optional[Dict[str, Any]] = None,
    ):
        """Chat turn; a ``project_id`` in the context is expanded from the datastore."""
        context = dict(context or {})
        project_id = context.get("project_id")
        if project_id:
            store = self.engine.datastore
            context.setdefault("project", store.get_project(project_id))
            context.setdefault("articles", store.get_articles_by_project(project_id))
            context.setdefault("existing_strategy", store.get_creative_strategy(project_id))
        config = AgentConfig(**agent_config) if agent_config else None
        return self.engine.llm.generate_response(
            conversation_id, PersonaType(persona), user_message, context, config
        )

    def _generate_structured(self, persona: str, prompt: str, schema: Dict[str, Any]):
        user_prompt = f"{prompt}\n\nThe JSON object must follow this JSON schema:\n{json.dumps(schema, indent=2)}"
        payload = self.engine.llm.generate_structured(
            PersonaType(persona),
            "You produce structured data for a satirical video production team.",
            user_prompt,
            StructuredPayload,
        )
        return payload.model_dump()

    def _director_initialize(self, project_id: str):
        self.engine.director.initialize_for_project(project_id)
        return {"initialized": True, "projectId": project_id}

    def _director_health_check(self, project_id: str):
        self.engine.director.initialize_for_project(project_id)
        return self.engine.director.perform_health_check()

    @staticmethod
    def _file_save(filepath: str, content: str) -> str:
        path = Path(filepath)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return str(path)
