"""
Satire Engine - wires the datastore and services together.

One SatireEngine instance holds everything a front end needs:
- storage: JSON datastore of users, projects, articles and production data
- auth: registration, login and JWT sessions
- agents: per-persona LLM configuration and model availability
- llm: persona chat with shared context and Project Director monitoring
- recovery: per-persona circuit breakers and failure statistics
- strategy: creative strategy, director notes and shot briefs
"""

import logging
from typing import Optional

from satire_engine.core.config import DEFAULT_LOCAL_BASE_URL, Settings
from satire_engine.core.llm import create_provider
from satire_engine.services.agent_config import AgentConfigService, AgentSettingsStore
from satire_engine.services.auth import AuthService, SessionManager
from satire_engine.services.context_manager import ContextManager
from satire_engine.services.error_recovery import ErrorRecoveryService
from satire_engine.services.llm_service import LLMService, ProviderFactory
from satire_engine.services.model_availability import ModelAvailabilityService
from satire_engine.services.project_director import ProjectDirectorService
from satire_engine.services.strategy import CreativeStrategyService
from satire_engine.storage.datastore import JsonDatastore

logger = logging.getLogger(__name__)


class SatireEngine:
    """Satirical video production engine."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        persist: bool = True,
        provider_factory: ProviderFactory = create_provider,
        availability: Optional[ModelAvailabilityService] = None,
    ):
        """
        Initialize the engine.

        Args:
            settings: Runtime settings; read from the environment when omitted
            persist: Mirror the datastore and agent settings to disk under
                ``settings.data_dir``; False keeps everything in memory
            provider_factory: Factory used to build LLM providers
            availability: Model availability service (injectable for tests)
        """
        self.settings = settings or Settings.from_env()

        self.datastore = JsonDatastore(self.settings.data_file if persist else None)
        self.auth = AuthService(self.datastore, self.settings)
        self.session = SessionManager()

        self.availability = availability or ModelAvailabilityService(
            local_base_url=self.settings.llm_base_url or DEFAULT_LOCAL_BASE_URL
        )
        self.agent_configs = AgentConfigService(
            AgentSettingsStore(self.settings.agent_settings_file if persist else None),
            self.availability,
        )

        self.context_manager = ContextManager()
        self.recovery = ErrorRecoveryService()
        self.director = ProjectDirectorService(self.datastore)
        self.llm = LLMService(
            settings=self.settings,
            context_manager=self.context_manager,
            agent_configs=self.agent_configs,
            provider_factory=provider_factory,
            director=self.director,
            error_recovery=self.recovery,
        )
        self.director.llm_service = self.llm
        self.strategy = CreativeStrategyService(self.datastore, self.llm)

        logger.info(
            "Satire Engine ready (data: %s, default provider: %s)",
            self.datastore.data_file or "in-memory",
            self.settings.llm_provider,
        )

    def delete_project(self, project_id: str):
        """Delete a project with its dependent data and forget its shared context and chats."""
        removed = self.datastore.delete_project(project_id)
        self.context_manager.clear_project(project_id)
        self.llm.clear_project(project_id)
        if self.director.snapshot and self.director.snapshot.project.id == project_id:
            self.director.snapshot = None
        return removed
