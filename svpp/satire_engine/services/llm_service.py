"""
LLM Service - persona chat on top of the provider layer.

Resolves which provider/model a persona should use, assembles the persona
system prompt, keeps per-conversation history and calls the provider behind
a per-persona circuit breaker with bounded retries. Provider failures come back as unsuccessful ``LLMResult``
objects rather than exceptions.
"""

import logging
import os
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional, Type, TypeVar

from pydantic import BaseModel

from satire_engine.core.config import DEFAULT_MODELS, Settings, api_key_from_env
from satire_engine.core.enums import PersonaType, Provider
from satire_engine.core.errors import ConfigurationError, ProviderError
from satire_engine.core.llm import BaseLLMProvider, ChatMessage, TokenUsage, create_provider
from satire_engine.core.retry import RetryConfig
from satire_engine.core.utils import utc_now
from satire_engine.services.agent_config import AgentConfig, AgentConfigService
from satire_engine.services.context_manager import ContextManager, ContextTransferPackage
from satire_engine.services.error_recovery import ErrorRecoveryService
from satire_engine.services.personas import (
    format_guidance,
    get_persona_definition,
    has_completion_signal,
    has_guidance_request,
    next_workflow_stage,
    persona_description,
)
from satire_engine.services.satirical_context import generate_context_prompt
from satire_engine.storage.models import CreativeStrategy, NewsArticle, Project

if TYPE_CHECKING:
    from satire_engine.services.project_director import ProjectDirectorService, QualityIssue

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

ProviderFactory = Callable[..., BaseLLMProvider]

# Environment keys tried, in order, when a persona has no stored configuration.
ENV_FALLBACK_ORDER = [
    (Provider.OPENAI.value, "OPENAI_API_KEY"),
    (Provider.ANTHROPIC.value, "ANTHROPIC_API_KEY"),
    (Provider.GEMINI.value, "GEMINI_API_KEY"),
]

CONCISE_REPLY_RULE = (
    "\n\nIMPORTANT: Keep responses concise (2-3 sentences max), ask one clear question at a time, "
    "and maintain the persona's specific voice and expertise. Be collaborative and build on the user's ideas."
)

FIRST_CONVERSATION_APPROACH = """

FIRST CONVERSATION APPROACH:
Start by briefly summarizing the main topics in the articles (1-2 sentences), then identify the most satirical opportunity. Ask one specific strategic question about what satirical angle interests them most. Use this pattern:

"I've reviewed your [X] articles about [main topic]. The most satirical angle I see is [specific contradiction/absurdity]. What aspect of this situation do you find most ridiculous - [option A] or [option B]?"

This helps focus the conversation and gets them thinking strategically from the start."""

DIRECTOR_INTEGRATION_TEMPLATE = """

## PROJECT DIRECTOR INTEGRATION
You are working within an AI-powered project management system with a Project Director orchestrator that monitors workflow quality and provides strategic guidance. This system:

• **Monitors your interactions** for format consistency and quality assurance
• **Detects format drift** if your responses don't align with the project's satirical format
• **Provides health checks** on overall project progress
• **Offers strategic guidance** to help maintain project direction

**IMPORTANT INTEGRATION POINTS:**
1. **Format Consistency**: Always ensure your responses align with the project's satirical format ({satirical_format})
2. **Quality Awareness**: Your responses are monitored for quality issues - maintain high standards
3. **Handoff Signals**: When you complete a significant task, mention completion status (e.g., "Creative strategy complete and ready for next stage")
4. **Request Guidance**: If uncertain about direction, you can suggest the user consult the Project Director: "For strategic guidance on this approach, consider asking the Project Director"

**COLLABORATION PROTOCOL:**
- Stay aligned with the selected satirical format throughout your responses
- Signal when your work phase is complete for smooth workflow handoffs
- If you detect potential quality issues or format misalignment, acknowledge and self-correct"""


@dataclass
class LLMConfig:
    """Provider settings for one call."""

    provider: str
    model: Optional[str] = None
    api_key: Optional[str] = None
    base_url: Optional[str] = None

    def is_valid(self) -> bool:
        """Local providers need a model; hosted providers need a key and a model."""
        if not self.provider:
            return False
        if self.provider == Provider.LOCAL.value:
            return bool(self.model)
        return bool(self.api_key and self.model)

    @classmethod
    def from_settings(cls, settings: Settings) -> "LLMConfig":
        return cls(
            provider=settings.llm_provider,
            model=settings.llm_model,
            api_key=api_key_from_env(settings.llm_provider),
            base_url=settings.llm_base_url,
        )


@dataclass
class HandoffEvent:
    """Raised when a persona's reply signals its stage is complete."""

    persona: PersonaType
    stage: str
    message: str
    next_persona: Optional[PersonaType] = None
    transfer: Optional[ContextTransferPackage] = None
    timestamp: datetime = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "persona": self.persona.value,
            "stage": self.stage,
            "message": self.message,
            "nextPersona": self.next_persona.value if self.next_persona else None,
            "transferSummary": self.transfer.render() if self.transfer else None,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class LLMResult:
    """Outcome of a persona chat turn."""

    success: bool
    response: Optional[str] = None
    error: Optional[str] = None
    usage: Optional[TokenUsage] = None
    handoff: Optional[HandoffEvent] = None
    guidance_requested: bool = False
    quality_issues: List["QualityIssue"] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "response": self.response,
            "error": self.error,
            "usage": self.usage.model_dump() if self.usage else None,
            "handoff": self.handoff.to_dict() if self.handoff else None,
            "guidanceRequested": self.guidance_requested,
            "qualityIssues": [issue.to_dict() for issue in self.quality_issues],
        }


def normalize_context(context: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Copy of a chat context with plain JSON records turned into models.

    Front ends send the project, articles and strategy as dicts; required
    fields they leave out are filled with empty values.
    """
    context = dict(context or {})
    project_id = context.get("project_id") or ""

    project = context.get("project")
    if isinstance(project, dict):
        context["project"] = Project.model_validate({"created_by": "", **project})

    articles = context.get("articles") or []
    context["articles"] = [
        NewsArticle.model_validate({"project_id": project_id, "uploaded_by": "", "content": "", **article})
        if isinstance(article, dict) else article
        for article in articles
    ]

    strategy = context.get("existing_strategy")
    if isinstance(strategy, dict):
        context["existing_strategy"] = CreativeStrategy.model_validate(
            {"project_id": project_id, "created_by": "", "creative_concept": "", **strategy}
        )
    return context


class LLMService:
    """
    Persona chat service.

    Args:
        settings: Runtime settings (default provider, sampling, retries)
        context_manager: Shared context manager used to enrich prompts
        agent_configs: Stored per-persona configuration
        provider_factory: Callable ``(provider, model, api_key, base_url, timeout=...)``
            returning a provider; injectable for tests
        director: Project Director used to monitor replies
        error_recovery: Circuit breakers and failure statistics for persona calls
        sleep: Sleep function used between retries
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        context_manager: Optional[ContextManager] = None,
        agent_configs: Optional[AgentConfigService] = None,
        provider_factory: ProviderFactory = create_provider,
        director: Optional["ProjectDirectorService"] = None,
        error_recovery: Optional[ErrorRecoveryService] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.settings = settings or Settings()
        self.config = LLMConfig.from_settings(self.settings)
        self.context_manager = context_manager
        self.agent_configs = agent_configs
        self.director = director
        self.error_recovery = error_recovery or ErrorRecoveryService()
        self._provider_factory = provider_factory
        self._sleep = sleep
        self._histories: Dict[str, List[ChatMessage]] = {}
        self._conversation_projects: Dict[str, str] = {}
        self.retry_config = RetryConfig(
            max_retries=self.settings.llm.max_retries,
            base_delay=self.settings.llm.retry_base_delay,
            retryable_exceptions=(ProviderError,),
        )

    # --- configuration ---

    def resolve_config(self, persona: PersonaType, agent_config: Optional[AgentConfig] = None) -> LLMConfig:
        """
        Pick the configuration for a persona.

        Order: explicit agent config, stored agent config, environment
        fallback, then the service default.
        """
        if agent_config is None and self.agent_configs is not None:
            agent_config = self.agent_configs.get_agent_config(persona)

        if agent_config is not None:
            return LLMConfig(
                provider=agent_config.provider.value,
                model=agent_config.model,
                api_key=agent_config.api_key or self.config.api_key,
                base_url=agent_config.base_url or self.config.base_url,
            )

        fallback = self._fallback_config()
        if fallback is not None:
            return fallback
        return self.config

    @staticmethod
    def _fallback_config() -> Optional[LLMConfig]:
        for provider, env_var in ENV_FALLBACK_ORDER:
            api_key = os.getenv(env_var)
            if api_key:
                return LLMConfig(provider=provider, model=DEFAULT_MODELS[provider], api_key=api_key)
        return None

    def _create_provider(self, config: LLMConfig) -> BaseLLMProvider:
        return self._provider_factory(
            config.provider, config.model, config.api_key, config.base_url,
            timeout=self.settings.llm.request_timeout,
        )

    # --- chat ---

    def generate_response(
        self,
        conversation_id: str,
        persona: PersonaType,
        user_message: str,
        context: Optional[Dict[str, Any]] = None,
        agent_config: Optional[AgentConfig] = None,
    ) -> LLMResult:
        """
        Run one chat turn for a persona.

        Args:
            conversation_id: Conversation whose history to continue
            persona: Persona answering
            user_message: The user's message
            context: Optional ``project_id``, ``project``, ``articles`` and
                ``existing_strategy`` entries
            agent_config: Configuration overriding the stored one

        Returns:
            LLMResult; unsuccessful (never raised) on configuration or provider failure
        """
        persona = PersonaType(persona)
        context = normalize_context(context)
        config = self.resolve_config(persona, agent_config)
        if not config.is_valid():
            return LLMResult(
                success=False,
                error=(
                    f"{persona.value} agent is not properly configured. "
                    "Please configure API key and model in Global API Settings."
                ),
            )

        try:
            provider = self._create_provider(config)
        except (ConfigurationError, ImportError) as e:
            logger.error("Could not create %s provider for %s: %s", config.provider, persona.value, e)
            return LLMResult(success=False, error=str(e))

        messages = self._histories.setdefault(conversation_id, [])
        if context.get("project_id"):
            self._conversation_projects[conversation_id] = context["project_id"]
        if not messages:
            messages.append(ChatMessage(
                role="system",
                content=self.build_system_prompt(persona, context, conversation_id),
            ))
        messages.append(ChatMessage(role="user", content=user_message))

        attempts = 0

        def call():
            nonlocal attempts
            attempts += 1
            return provider.chat(
                list(messages),
                temperature=self.settings.llm.temperature,
                max_tokens=self.settings.llm.max_tokens,
            )

        try:
            reply = self.error_recovery.execute(
                persona, call, self.retry_config, f"{persona.value} chat", sleep=self._sleep
            )
        except ProviderError as e:
            messages.pop()
            return LLMResult(success=False, error=f"Failed after {attempts} attempts: {e}")

        messages.append(ChatMessage(role="assistant", content=reply.text))
        result = LLMResult(success=True, response=reply.text, usage=reply.usage)
        self._after_reply(persona, user_message, reply.text, context, conversation_id, result)
        return result

    def _director_watches(self, project_id: Optional[str]) -> bool:
        """True when the Project Director is initialised for this very project."""
        director = self.director
        return bool(
            project_id
            and director is not None
            and director.is_initialized
            and director.snapshot.project.id == project_id
        )

    def _after_reply(self, persona: PersonaType, user_message: str, reply: str,
                     context: Dict[str, Any], conversation_id: str, result: LLMResult) -> None:
        project_id = context.get("project_id")
        project = context.get("project")
        satirical_format = project.satirical_format if project is not None else None
        if project_id and self.context_manager is not None:
            self.context_manager.update_context_after_interaction(
                project_id, persona, user_message, reply, conversation_id,
                satirical_format=satirical_format,
            )

        if self._director_watches(project_id):
            try:
                result.quality_issues = self.director.monitor_agent_conversation(persona, user_message, reply)
            except Exception:
                logger.warning("Project Director monitoring failed for %s", persona.value, exc_info=True)
            if result.quality_issues:
                logger.info("Project Director flagged %d issue(s) for %s", len(result.quality_issues), persona.value)

        result.handoff = self.detect_handoff(persona, reply)
        if result.handoff and result.handoff.next_persona and project_id and self.context_manager is not None:
            result.handoff.transfer = self.context_manager.prepare_context_transfer(
                project_id, persona, result.handoff.next_persona, reply, satirical_format=satirical_format,
            )
        result.guidance_requested = has_guidance_request(reply)
        if result.guidance_requested:
            logger.info("%s is requesting Project Director guidance", persona.value)

    def generate_structured(
        self,
        persona: PersonaType,
        system_prompt: str,
        user_prompt: str,
        output_schema: Type[T],
        agent_config: Optional[AgentConfig] = None,
    ) -> T:
        """
        One-shot structured generation outside any conversation.

        Raises:
            ConfigurationError: If no valid configuration is available
            ProviderError: If the call or parsing fails after retries
        """
        config = self.resolve_config(persona, agent_config)
        if not config.is_valid():
            raise ConfigurationError(f"{PersonaType(persona).value} agent is not properly configured")
        provider = self._create_provider(config)
        return self.error_recovery.execute(
            persona,
            lambda: provider.generate(system_prompt, user_prompt, output_schema,
                                      temperature=self.settings.llm.temperature),
            self.retry_config,
            f"{PersonaType(persona).value} structured generation",
            sleep=self._sleep,
        )

    # --- prompt assembly ---

    def build_system_prompt(
        self,
        persona: PersonaType,
        context: Optional[Dict[str, Any]] = None,
        conversation_id: Optional[str] = None,
    ) -> str:
        """Assemble the persona system prompt from the project context."""
        context = normalize_context(context)
        persona = PersonaType(persona)
        project = context.get("project")
        articles = context.get("articles") or []
        strategy = context.get("existing_strategy")
        satirical_format = project.satirical_format if project is not None else None

        prompt = persona_description(persona)

        if project is not None and project.satirical_context is not None:
            prompt += generate_context_prompt(project.satirical_context)

        if strategy is not None:
            themes = ", ".join(strategy.key_themes) or "None specified"
            strategy_format = strategy.satirical_format.value if strategy.satirical_format else "Not specified"
            prompt += (
                "\n\nCONTEXT: The user has an existing creative strategy that they want to refine. "
                "Current strategy details:\n"
                f"- Creative Concept: {strategy.creative_concept}\n"
                f"- Target Audience: {strategy.target_audience.value}\n"
                f"- Tone: {strategy.tone.value}\n"
                f"- Satirical Format: {strategy_format}\n"
                f"- Key Themes: {themes}\n"
                f"- Number of Characters: {len(strategy.character_archetypes)}\n\n"
                "Focus on helping them improve and refine these existing elements rather than starting from scratch."
            )

        if satirical_format:
            prompt += (
                f'\n\nFORMAT GUIDANCE: This project uses the "{satirical_format.value}" video format. '
                f"{format_guidance(satirical_format)} All content should be designed for this format."
            )

        if persona == PersonaType.CREATIVE_STRATEGIST and articles and strategy is None:
            prompt += FIRST_CONVERSATION_APPROACH

        if articles:
            prompt += (
                f"\n\nThe user has uploaded {len(articles)} news articles for this project. "
                "Use these articles as the foundation for developing satirical content:\n\n"
            )
            for index, article in enumerate(articles, 1):
                preview = article.content[:200] + "..." if article.content else "No content preview"
                prompt += (
                    f'Article {index}: "{article.title}"\n'
                    f"Source: {article.source or 'Unknown'}\n"
                    f"Preview: {preview}\n\n"
                )
            prompt += "Focus on these articles when suggesting satirical angles, themes, and creative concepts."

        prompt += DIRECTOR_INTEGRATION_TEMPLATE.format(
            satirical_format=satirical_format.value if satirical_format else "format to be determined"
        )

        project_id = context.get("project_id")
        if project_id and self.context_manager is not None:
            enhanced = self.context_manager.create_enhanced_context(
                project_id, persona, context,
                conversation_id or f"{persona.value}_{int(time.time() * 1000)}",
            )
            prompt += self.context_manager.generate_context_prompt_additions(persona, enhanced)

        return prompt + CONCISE_REPLY_RULE

    # --- workflow signals ---

    @staticmethod
    def detect_handoff(persona: PersonaType, text: str) -> Optional[HandoffEvent]:
        """Handoff event when the reply contains one of the persona's completion phrases."""
        if not has_completion_signal(persona, text):
            return None
        persona = PersonaType(persona)
        logger.info("%s signaled completion: workflow handoff detected", persona.value)
        return HandoffEvent(
            persona=persona,
            stage=next_workflow_stage(persona),
            message=f"{persona.value} has completed their work and is ready for the next stage",
            next_persona=get_persona_definition(persona).next_persona,
        )

    @staticmethod
    def next_workflow_stage(persona: PersonaType) -> str:
        return next_workflow_stage(persona)

    # --- history ---

    def clear_conversation(self, conversation_id: str) -> None:
        self._histories.pop(conversation_id, None)
        self._conversation_projects.pop(conversation_id, None)

    def clear_project(self, project_id: str) -> List[str]:
        """Forget every conversation held for a project; returns their ids."""
        conversation_ids = [cid for cid, pid in self._conversation_projects.items() if pid == project_id]
        for conversation_id in conversation_ids:
            self.clear_conversation(conversation_id)
        return conversation_ids

    def get_conversation_summary(self, conversation_id: str) -> List[str]:
        return [
            f"{message.role}: {message.content}"
            for message in self._histories.get(conversation_id, [])
            if message.role != "system"
        ]

    def get_history(self, conversation_id: str) -> List[ChatMessage]:
        return list(self._histories.get(conversation_id, []))
