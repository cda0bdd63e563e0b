"""
Data models for stored entities.

All relations are plain string ids resolved at read time; the datastore
does not enforce referential integrity.
"""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field

from satire_engine.core.config import MAX_SHOT_SECONDS
from satire_engine.core.enums import (
    AngleType,
    CreativeStrategyStatus,
    PersonaType,
    ProjectStatus,
    SatiricalContextType,
    SatiricalFormat,
    SatiricalTone,
    TargetAudience,
)
from satire_engine.core.utils import generate_id, utc_now


class Entity(BaseModel):
    """Fields shared by every stored record."""

    id: str = Field(default_factory=generate_id)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: Optional[datetime] = None


# --- Users & projects ---

class User(Entity):
    name: str = Field(..., min_length=1)
    email: str
    password_hash: Optional[str] = Field(None, description="bcrypt hash; never returned to callers")
    role: PersonaType

    def public(self) -> "User":
        """Copy of the user without the password hash."""
        return self.model_copy(update={"password_hash": None})


class TerminologyGuidance(BaseModel):
    avoid: str
    prefer: str
    reason: str


class SatiricalContext(BaseModel):
    """Ethical lens that frames a project's satire."""

    type: SatiricalContextType
    name: str
    description: str
    ethical_framework: str
    key_principles: List[str] = Field(default_factory=list)
    common_targets: List[str] = Field(default_factory=list)
    preferred_terminology: List[TerminologyGuidance] = Field(default_factory=list)
    satirical_approaches: List[str] = Field(default_factory=list)


class Project(Entity):
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    status: ProjectStatus = ProjectStatus.ACTIVE
    created_by: str
    assigned_personas: List[PersonaType] = Field(default_factory=list)
    satirical_context: Optional[SatiricalContext] = None
    satirical_format: Optional[SatiricalFormat] = None


class NewsArticle(Entity):
    title: str = Field(..., min_length=1)
    content: str
    project_id: str
    uploaded_by: str
    source: Optional[str] = None
    url: Optional[str] = None
    processing_notes: Optional[str] = None
    file_name: Optional[str] = None
    file_type: Optional[str] = None


# --- Creative strategy ---

class SatiricalAngle(BaseModel):
    angle_type: AngleType = Field(..., description="IRONY, EXAGGERATION, PARODY or SUBVERSION")
    description: str = Field(..., description="Description of this satirical approach")
    key_elements: List[str] = Field(default_factory=list)


class CharacterArchetype(BaseModel):
    name: str = Field(..., description="Character name")
    role: str = Field(..., description="Their role in the video")
    satirical_traits: List[str] = Field(default_factory=list)
    visual_description: Optional[str] = Field(None, description="Physical appearance and style")


class VisualStyleGuide(BaseModel):
    color_palette: Optional[str] = None
    cinematography_notes: Optional[str] = None
    overall_aesthetic: Optional[str] = None


class ValidationCriteria(BaseModel):
    theme_consistency: bool = True
    character_coherence: bool = True
    satirical_effectiveness: bool = True
    technical_feasibility: bool = True


class CreativeStrategy(Entity):
    project_id: str
    director_notes_id: Optional[str] = None
    creative_concept: str
    satirical_angles: List[SatiricalAngle] = Field(default_factory=list)
    target_audience: TargetAudience = TargetAudience.GENERAL
    tone: SatiricalTone = SatiricalTone.SATIRICAL_NEWS
    satirical_format: Optional[SatiricalFormat] = None
    key_themes: List[str] = Field(default_factory=list)
    character_archetypes: List[CharacterArchetype] = Field(default_factory=list)
    visual_style_guide: VisualStyleGuide = Field(default_factory=VisualStyleGuide)
    validation_criteria: ValidationCriteria = Field(default_factory=ValidationCriteria)
    status: CreativeStrategyStatus = CreativeStrategyStatus.DRAFT
    version: int = Field(1, ge=1)
    generated_by_persona: Optional[PersonaType] = None
    created_by: str
    approved_by: Optional[str] = None


class DirectorNotes(Entity):
    project_id: str
    creative_strategy_id: Optional[str] = None
    summary: str
    satirical_hook: str
    characters: str
    visual_concepts: str
    status: Literal["DRAFT", "APPROVED"] = "DRAFT"
    version: int = Field(1, ge=1)


# --- Production ---

class Script(Entity):
    project_id: str
    director_notes_id: str
    outline: Optional[str] = None
    content: str
    status: Literal["DRAFT", "APPROVED"] = "DRAFT"
    version: int = Field(1, ge=1)
    ai_generated: bool = False
    persona_source: Optional[str] = None


class Shot(Entity):
    """A storyboard panel; shots longer than 8 seconds are allowed but flagged."""

    script_id: str
    panel_number: int = Field(..., ge=1)
    length_seconds: float = Field(..., gt=0)
    camera_angle: str
    character_action: str
    lighting_mood: str
    dialogue_narration: Optional[str] = None
    visual_style: str

    @property
    def exceeds_duration_limit(self) -> bool:
        return self.length_seconds > MAX_SHOT_SECONDS


class SoundNotes(Entity):
    shot_id: str
    ambient_foley: Optional[str] = None
    specific_sfx: Optional[str] = None
    broadcast_audio: Optional[str] = None


class VideoPrompt(Entity):
    shot_id: str
    generated_prompt_text: str
    ai_model: str = "Veo3"
    generated_video_url: Optional[str] = None


# --- Conversations ---

class Conversation(Entity):
    project_id: str
    participant_personas: List[PersonaType] = Field(default_factory=list)
    status: Literal["ACTIVE", "COMPLETED"] = "ACTIVE"


class Message(Entity):
    conversation_id: str
    sender_persona: Union[PersonaType, Literal["USER"]]
    message_content: str
    message_type: Literal["TEXT", "STRUCTURED_OUTPUT"] = "TEXT"
    metadata: Dict[str, Any] = Field(default_factory=dict)


class UnifiedShotBrief(BaseModel):
    """Everything a prompt engineer needs to render one shot."""

    shot: Shot
    sound_notes: Optional[SoundNotes] = None
    dialogue: str = ""
    narrative_context: str = ""
    character_descriptions: Dict[str, str] = Field(default_factory=dict)
    visual_continuity_notes: str = ""
    duration_seconds: float
    visual_style: str
    camera_specifications: str
