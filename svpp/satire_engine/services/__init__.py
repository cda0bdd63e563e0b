"""
Application services: auth, agent configuration, personas, shared context,
persona chat, creative strategy and project direction.
"""

from satire_engine.services.agent_config import (
    AgentConfig,
    AgentConfigService,
    AgentSettingsStore,
    AgentValidation,
    AutoFixResult,
)
from satire_engine.services.auth import AuthService, LoginResult, SessionManager
from satire_engine.services.context_manager import (
    ContextManager,
    ContextTransferPackage,
    assess_response_quality,
)
from satire_engine.services.error_recovery import (
    CircuitBreaker,
    CircuitOpenError,
    ErrorRecoveryService,
    ErrorStatistics,
    classify_error,
)
from satire_engine.services.llm_service import HandoffEvent, LLMConfig, LLMResult, LLMService
from satire_engine.services.model_availability import (
    ModelAvailabilityResult,
    ModelAvailabilityService,
    ModelInfo,
    ModelValidation,
)
from satire_engine.services.project_director import (
    ProjectDirectorService,
    ProjectHealthCheck,
    QualityIssue,
    WorkflowStage,
)
from satire_engine.services.strategy import CreativeStrategyService, GeneratedStrategy, ShotBrief

__all__ = [
    # Agent configuration
    "AgentConfig",
    "AgentConfigService",
    "AgentSettingsStore",
    "AgentValidation",
    "AutoFixResult",
    "ModelAvailabilityResult",
    "ModelAvailabilityService",
    "ModelInfo",
    "ModelValidation",
    # Auth
    "AuthService",
    "LoginResult",
    "SessionManager",
    # Conversation
    "ContextManager",
    "ContextTransferPackage",
    "assess_response_quality",
    "HandoffEvent",
    "LLMConfig",
    "LLMResult",
    "LLMService",
    # Error recovery
    "CircuitBreaker",
    "CircuitOpenError",
    "ErrorRecoveryService",
    "ErrorStatistics",
    "classify_error",
    # Production
    "CreativeStrategyService",
    "GeneratedStrategy",
    "ShotBrief",
    "ProjectDirectorService",
    "ProjectHealthCheck",
    "QualityIssue",
    "WorkflowStage",
]
