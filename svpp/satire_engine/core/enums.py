"""
Enumerations shared across the Satire Engine.
"""

from enum import Enum


class PersonaType(str, Enum):
    """AI roles that scope LLM conversations."""

    PROJECT_DIRECTOR = "PROJECT_DIRECTOR"
    CREATIVE_STRATEGIST = "CREATIVE_STRATEGIST"
    BAFFLING_BROADCASTER = "BAFFLING_BROADCASTER"
    SATIRICAL_SCREENWRITER = "SATIRICAL_SCREENWRITER"
    CINEMATIC_STORYBOARDER = "CINEMATIC_STORYBOARDER"
    SOUNDSCAPE_ARCHITECT = "SOUNDSCAPE_ARCHITECT"
    VIDEO_PROMPT_ENGINEER = "VIDEO_PROMPT_ENGINEER"


class ProjectStatus(str, Enum):
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    ARCHIVED = "ARCHIVED"


class SatiricalContextType(str, Enum):
    """Ethical lens applied to a project."""

    ANIMAL_LIBERATION = "ANIMAL_LIBERATION"
    ENVIRONMENTAL = "ENVIRONMENTAL"
    GENERAL = "GENERAL"
    CUSTOM = "CUSTOM"


class SatiricalFormat(str, Enum):
    """Video style a project is produced in."""

    NEWS_PARODY = "NEWS_PARODY"
    VOX_POP = "VOX_POP"
    MORNING_TV_INTERVIEW = "MORNING_TV_INTERVIEW"
    MOCKUMENTARY = "MOCKUMENTARY"
    SOCIAL_MEDIA = "SOCIAL_MEDIA"
    SKETCH_COMEDY = "SKETCH_COMEDY"
    SATIRICAL_ARTICLE = "SATIRICAL_ARTICLE"
    PANEL_SHOW = "PANEL_SHOW"
    COMMERCIAL_PARODY = "COMMERCIAL_PARODY"
    REALITY_TV_PARODY = "REALITY_TV_PARODY"


class CreativeStrategyStatus(str, Enum):
    DRAFT = "DRAFT"
    IN_REVIEW = "IN_REVIEW"
    APPROVED = "APPROVED"
    NEEDS_REVISION = "NEEDS_REVISION"


class SatiricalTone(str, Enum):
    SUBTLE = "SUBTLE"
    OVERT = "OVERT"
    ABSURDIST = "ABSURDIST"
    DRY_WIT = "DRY_WIT"
    SATIRICAL_NEWS = "SATIRICAL_NEWS"


class TargetAudience(str, Enum):
    GENERAL = "GENERAL"
    POLITICAL_SATIRE = "POLITICAL_SATIRE"
    SOCIAL_COMMENTARY = "SOCIAL_COMMENTARY"
    MILLENNIAL = "MILLENNIAL"
    GEN_Z = "GEN_Z"


class AngleType(str, Enum):
    IRONY = "IRONY"
    EXAGGERATION = "EXAGGERATION"
    PARODY = "PARODY"
    SUBVERSION = "SUBVERSION"


class Provider(str, Enum):
    """Supported LLM backends."""

    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GEMINI = "gemini"
    LOCAL = "local"


class ErrorType(str, Enum):
    """Classification of a failed provider call."""

    API_TIMEOUT = "api_timeout"
    API_RATE_LIMIT = "api_rate_limit"
    API_INVALID_RESPONSE = "api_invalid_response"
    FORMAT_VALIDATION_FAILED = "format_validation_failed"
    QUALITY_CHECK_FAILED = "quality_check_failed"
    CHARACTER_INCONSISTENCY = "character_inconsistency"
    CONTEXT_CORRUPTION = "context_corruption"
    NETWORK_ERROR = "network_error"
    AUTHENTICATION_ERROR = "authentication_error"
    UNKNOWN_ERROR = "unknown_error"


class CircuitState(str, Enum):
    CLOSED = "CLOSED"
    OPEN = "OPEN"
    HALF_OPEN = "HALF_OPEN"
