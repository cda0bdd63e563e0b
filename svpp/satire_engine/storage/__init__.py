"""
Storage layer: entity models and the JSON datastore.
"""

from satire_engine.storage.datastore import JsonDatastore, decode_article_file
from satire_engine.storage.models import (
    CharacterArchetype,
    Conversation,
    CreativeStrategy,
    DirectorNotes,
    Message,
    NewsArticle,
    Project,
    SatiricalAngle,
    SatiricalContext,
    Script,
    Shot,
    SoundNotes,
    TerminologyGuidance,
    UnifiedShotBrief,
    User,
    ValidationCriteria,
    VideoPrompt,
    VisualStyleGuide,
)

__all__ = [
    "JsonDatastore",
    "decode_article_file",
    "CharacterArchetype",
    "Conversation",
    "CreativeStrategy",
    "DirectorNotes",
    "Message",
    "NewsArticle",
    "Project",
    "SatiricalAngle",
    "SatiricalContext",
    "Script",
    "Shot",
    "SoundNotes",
    "TerminologyGuidance",
    "UnifiedShotBrief",
    "User",
    "ValidationCriteria",
    "VideoPrompt",
    "VisualStyleGuide",
]
