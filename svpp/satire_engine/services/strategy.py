"""
Creative strategy workflow.

Turns uploaded news articles into a structured creative strategy with the
Creative Strategist persona, derives director notes from that strategy, and
assembles the per-shot brief handed to the prompt engineer.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from satire_engine.core.enums import (
    AngleType,
    CreativeStrategyStatus,
    PersonaType,
    SatiricalTone,
    TargetAudience,
)
from satire_engine.core.errors import ConfigurationError, ProviderError, ValidationError
from satire_engine.core.utils import generate_veo3_prompt, truncate_text
from satire_engine.services.llm_service import LLMService
from satire_engine.services.personas import persona_description
from satire_engine.services.satirical_context import generate_context_prompt
from satire_engine.storage.datastore import JsonDatastore
from satire_engine.storage.models import (
    CharacterArchetype,
    CreativeStrategy,
    DirectorNotes,
    NewsArticle,
    Project,
    SatiricalAngle,
    Shot,
    UnifiedShotBrief,
    VisualStyleGuide,
)

logger = logging.getLogger(__name__)

STRATEGY_AUTHOR = "ai-creative-strategist"
ARTICLE_EXCERPT_LENGTH = 1000
NO_ARTICLES_MESSAGE = "No articles found for project. Upload articles first to generate strategy."
PARSE_FAILURE_MESSAGE = "Failed to parse AI-generated strategy. Please try again."

STRATEGY_SYSTEM_SUFFIX = """
You are producing a creative strategy document, not chatting. Reply with a
single JSON object and nothing else.
"""

STRATEGY_USER_PROMPT = """Based on these news articles, create a comprehensive creative strategy for a satirical video.

PROJECT: {name}
{description}

NEWS ARTICLES:
{articles}

Create a creative strategy with this JSON structure:
{{
  "creative_concept": "A compelling 2-3 sentence concept for the satirical video",
  "target_audience": "GENERAL" | "POLITICAL_SATIRE" | "SOCIAL_COMMENTARY" | "MILLENNIAL" | "GEN_Z",
  "tone": "SUBTLE" | "OVERT" | "ABSURDIST" | "DRY_WIT" | "SATIRICAL_NEWS",
  "key_themes": ["theme1", "theme2", "theme3"],
  "satirical_angles": [
    {{"angle_type": "IRONY" | "EXAGGERATION" | "PARODY" | "SUBVERSION",
      "description": "How this angle will be used",
      "key_elements": ["element1", "element2"]}}
  ],
  "character_archetypes": [
    {{"name": "Character Name", "role": "Their role in the video",
      "satirical_traits": ["trait1", "trait2"],
      "visual_description": "Physical appearance and style"}}
  ],
  "visual_style_guide": {{
    "color_palette": "Description of color scheme",
    "cinematography_notes": "Camera work and visual approach",
    "overall_aesthetic": "Overall visual style"
  }}
}}

Focus on creating satirical content that is insightful, entertaining, and thought-provoking. Ensure the strategy is specific to the news content provided."""


class GeneratedStrategy(BaseModel):
    """Strategy fields the Creative Strategist is asked to produce."""

    creative_concept: str = Field(..., min_length=1, description="2-3 sentence concept for the video")
    target_audience: TargetAudience = Field(TargetAudience.GENERAL, description="Primary audience")
    tone: SatiricalTone = Field(SatiricalTone.SATIRICAL_NEWS, description="Overall satirical tone")
    key_themes: List[str] = Field(default_factory=list, description="Central themes")
    satirical_angles: List[SatiricalAngle] = Field(default_factory=list)
    character_archetypes: List[CharacterArchetype] = Field(default_factory=list)
    visual_style_guide: VisualStyleGuide = Field(default_factory=VisualStyleGuide)


@dataclass
class ShotBrief:
    """A unified shot brief together with its rendered Veo3 prompt."""

    brief: UnifiedShotBrief
    veo3_prompt: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "brief": self.brief.model_dump(mode="json"),
            "veo3Prompt": self.veo3_prompt,
        }


def format_article_excerpts(articles: List[NewsArticle]) -> str:
    """Render articles as the excerpt block used in the strategy prompt."""
    excerpts = []
    for article in articles:
        excerpts.append(
            f"Title: {article.title}\n"
            f"Source: {article.source or 'Unknown'}\n"
            f"Content: {article.content[:ARTICLE_EXCERPT_LENGTH]}..."
        )
    return "\n\n---\n\n".join(excerpts)


def build_strategy_prompt(project: Project, articles: List[NewsArticle]) -> str:
    description = f"DESCRIPTION: {project.description}" if project.description else ""
    return STRATEGY_USER_PROMPT.format(
        name=project.name,
        description=description,
        articles=format_article_excerpts(articles),
    )


class CreativeStrategyService:
    """
    Creative strategy, director notes and shot brief generation.

    Args:
        datastore: Project datastore
        llm_service: LLM service used for the Creative Strategist call
    """

    def __init__(self, datastore: JsonDatastore, llm_service: Optional[LLMService] = None):
        self.datastore = datastore
        self.llm_service = llm_service

    def generate_creative_strategy(self, project_id: str) -> CreativeStrategy:
        """
        Generate and store a DRAFT creative strategy from the project's articles.

        Raises:
            NotFoundError: If the project does not exist
            ValidationError: If there are no articles or the reply cannot be parsed
            ConfigurationError: If no LLM service or agent configuration is available
            ProviderError: If the provider call fails after retries
        """
        project = self.datastore.get_project(project_id)
        articles = self.datastore.get_articles_by_project(project_id)
        if not articles:
            raise ValidationError(NO_ARTICLES_MESSAGE)
        if self.llm_service is None:
            raise ConfigurationError("No LLM service available for strategy generation")

        logger.info("Generating creative strategy for project %s from %d article(s)", project_id, len(articles))
        system_prompt = persona_description(PersonaType.CREATIVE_STRATEGIST)
        if project.satirical_context:
            system_prompt += "\n\n" + generate_context_prompt(project.satirical_context)
        system_prompt += STRATEGY_SYSTEM_SUFFIX

        try:
            generated = self.llm_service.generate_structured(
                PersonaType.CREATIVE_STRATEGIST,
                system_prompt,
                build_strategy_prompt(project, articles),
                GeneratedStrategy,
            )
        except ProviderError as e:
            if "raw" in e.details:
                logger.error("Could not parse generated strategy for project %s: %s", project_id, e)
                raise ValidationError(PARSE_FAILURE_MESSAGE) from e
            raise

        strategy = self.datastore.create_creative_strategy(CreativeStrategy(
            project_id=project_id,
            creative_concept=generated.creative_concept,
            satirical_angles=generated.satirical_angles,
            target_audience=generated.target_audience,
            tone=generated.tone,
            satirical_format=project.satirical_format,
            key_themes=generated.key_themes,
            character_archetypes=generated.character_archetypes,
            visual_style_guide=generated.visual_style_guide,
            status=CreativeStrategyStatus.DRAFT,
            generated_by_persona=PersonaType.CREATIVE_STRATEGIST,
            created_by=STRATEGY_AUTHOR,
        ))
        logger.info("Stored creative strategy %s for project %s", strategy.id, project_id)
        return strategy

    def generate_director_notes(self, strategy_id: str) -> DirectorNotes:
        """Derive DRAFT director notes from a creative strategy."""
        strategy = self.datastore.get_creative_strategy_by_id(strategy_id)
        notes = self.datastore.create_director_notes(DirectorNotes(
            project_id=strategy.project_id,
            creative_strategy_id=strategy.id,
            summary=strategy.creative_concept,
            satirical_hook=_satirical_hook(strategy),
            characters=_describe_characters(strategy.character_archetypes),
            visual_concepts=_describe_visuals(strategy.visual_style_guide),
        ))
        self.datastore.update_creative_strategy(strategy.id, {"director_notes_id": notes.id})
        return notes

    def build_shot_brief(self, shot_id: str) -> ShotBrief:
        """Collect script, sound and character context for one shot."""
        shot = self.datastore.get_shot(shot_id)
        script = self.datastore.get_script(shot.script_id)
        strategy = self.datastore.get_creative_strategy(script.project_id)
        sound_notes = self.datastore.get_sound_notes_for_shot(shot_id)

        characters: Dict[str, str] = {}
        if strategy:
            for archetype in strategy.character_archetypes:
                characters[archetype.name] = archetype.visual_description or archetype.role

        previous = _previous_shot(self.datastore.get_shots_for_script(script.id), shot)
        continuity = ""
        if previous:
            continuity = (
                f"Follows panel {previous.panel_number}: {previous.character_action} "
                f"({previous.visual_style}, {previous.lighting_mood})"
            )

        brief = UnifiedShotBrief(
            shot=shot,
            sound_notes=sound_notes,
            dialogue=shot.dialogue_narration or "",
            narrative_context=script.outline or truncate_text(script.content, 300),
            character_descriptions=characters,
            visual_continuity_notes=continuity,
            duration_seconds=shot.length_seconds,
            visual_style=shot.visual_style,
            camera_specifications=shot.camera_angle,
        )
        if shot.exceeds_duration_limit:
            logger.warning("Shot %s runs %.1fs, longer than a single Veo3 clip", shot.id, shot.length_seconds)

        subject = next(iter(characters), "the scene")
        mood = strategy.tone.value.replace("_", " ").lower() if strategy else shot.lighting_mood
        prompt = generate_veo3_prompt(
            shot_type=f"Panel {shot.panel_number}",
            subject=subject,
            action=shot.character_action,
            camera_angle=shot.camera_angle,
            lighting=shot.lighting_mood,
            mood=mood,
            style=shot.visual_style,
            duration=shot.length_seconds,
        )
        return ShotBrief(brief=brief, veo3_prompt=prompt)


def _satirical_hook(strategy: CreativeStrategy) -> str:
    if not strategy.satirical_angles:
        return strategy.creative_concept
    angle = strategy.satirical_angles[0]
    if angle.angle_type == AngleType.IRONY:
        return angle.description
    return f"{angle.angle_type.value.title()}: {angle.description}"


def _describe_characters(archetypes: List[CharacterArchetype]) -> str:
    if not archetypes:
        return "No characters defined yet."
    lines = []
    for archetype in archetypes:
        line = f"{archetype.name} - {archetype.role}"
        if archetype.satirical_traits:
            line += f" ({', '.join(archetype.satirical_traits)})"
        if archetype.visual_description:
            line += f". Look: {archetype.visual_description}"
        lines.append(line)
    return "\n".join(lines)


def _describe_visuals(guide: VisualStyleGuide) -> str:
    parts = [
        ("Aesthetic", guide.overall_aesthetic),
        ("Palette", guide.color_palette),
        ("Camera", guide.cinematography_notes),
    ]
    described = [f"{label}: {value}" for label, value in parts if value]
    return "\n".join(described) or "No visual style defined yet."


def _previous_shot(shots: List[Shot], shot: Shot) -> Optional[Shot]:
    earlier = [s for s in shots if s.panel_number < shot.panel_number]
    return max(earlier, key=lambda s: s.panel_number) if earlier else None
