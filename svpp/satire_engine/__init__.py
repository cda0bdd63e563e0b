"""
Satire Engine - persona-driven production of satirical videos from news
articles: creative strategy, scripts, storyboards, sound design and Veo3
video prompts.
"""

__version__ = "0.3.0"

from satire_engine.engine import SatireEngine
from satire_engine.core import (
    PersonaType,
    Provider,
    SatiricalFormat,
    Settings,
    SatireEngineError,
)
from satire_engine.storage import JsonDatastore

__all__ = [
    "__version__",
    "SatireEngine",
    "PersonaType",
    "Provider",
    "SatiricalFormat",
    "Settings",
    "SatireEngineError",
    "JsonDatastore",
]
