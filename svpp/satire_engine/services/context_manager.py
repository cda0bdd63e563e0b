"""
Context Manager - shared memory that keeps persona conversations consistent.

Before each LLM call the manager enriches the caller's context with character
profiles, format constraints, recent decisions and quality requirements.
After each reply it scans the text for markers, scores it and records a
snapshot for the project.

The marker extraction and quality score are keyword heuristics. The score
follows a fixed rubric (see ``assess_response_quality``) and is an indicator
of structure and format awareness, not a measure of comedic quality.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from satire_engine.core.enums import PersonaType, SatiricalFormat
from satire_engine.core.utils import generate_id, truncate_text, utc_now
from satire_engine.services.personas import PERSONA_REGISTRY

logger = logging.getLogger(__name__)

MAX_HISTORY = 50
HISTORY_KEEP = 30
MAX_SNAPSHOTS = 20
SNAPSHOTS_KEEP = 10
RECENT_DECISION_COUNT = 5

CHARACTER_PATTERN = re.compile(r"\b([A-Z][a-z]+(?:\s+[A-Z][a-z]+)?)\b")
REFERENCE_PATTERNS = [
    re.compile(r"(?:from|in) the (\w+(?:\s+\w+)*)", re.IGNORECASE),
    re.compile(r"as mentioned (?:in|by) (\w+(?:\s+\w+)*)", re.IGNORECASE),
    re.compile(r"building on (\w+(?:\s+\w+)*)", re.IGNORECASE),
]
DECISION_PATTERN = re.compile(
    r"[^.!?\n]*\b(?:we(?:'ll| will) (?:go with|use)|let's go with|decided|final choice|agreed)\b[^.!?\n]*[.!?]?",
    re.IGNORECASE,
)

FORMAT_TERMS = ["news anchor", "reporter", "presenter", "host", "interviewer"]
THEME_KEYWORDS = ["character", "audience", "visual", "tone", "satire", "audio", "script"]
QUALITY_FORMAT_TERMS = ["format", "style", "approach", "satirical"]

# Capitalised words that start sentences or name roles rather than characters.
NON_CHARACTER_WORDS = {
    "The", "This", "That", "These", "Those", "What", "When", "Where", "Which", "While",
    "We", "You", "Your", "Our", "They", "It", "If", "For", "And", "But", "Or", "So",
    "Here", "There", "Let", "Would", "Could", "Should", "Think", "Option", "Scene",
    "Shot", "Panel", "Article", "Format", "Project", "Director", "Creative", "Strategy",
}
NON_CHARACTER_NAMES = {definition.display_name for definition in PERSONA_REGISTRY.values()}

FORMAT_CONSTRAINTS: Dict[SatiricalFormat, List[str]] = {
    SatiricalFormat.NEWS_PARODY: [
        "Authoritative presenter tone",
        "Professional news studio setup",
        "Serious graphics and lower thirds",
        "News-style pacing and delivery",
    ],
    SatiricalFormat.VOX_POP: [
        "Street interview setting",
        "Diverse public participants",
        "Handheld camera aesthetic",
        "Quick cuts between responses",
    ],
    SatiricalFormat.MORNING_TV_INTERVIEW: [
        "Bright breakfast TV studio",
        "Sofa interview arrangement",
        "Chirpy presenter personality",
        "Upbeat morning energy",
    ],
}

FORMAT_EXAMPLES: Dict[SatiricalFormat, List[str]] = {
    SatiricalFormat.NEWS_PARODY: ["The Day Today", "Brass Eye", "Clarke and Dawe"],
    SatiricalFormat.VOX_POP: ["The Chaser vox pops", "Private Eye street interviews"],
    SatiricalFormat.MORNING_TV_INTERVIEW: ["The Day Today morning segments", "Brass Eye interviews"],
}

FORMAT_TECHNICAL_SPECS = {
    "aspectRatio": "16:9",
    "duration": "Variable",
    "shotLimit": "8 seconds maximum",
    "audioRequirements": "Format-specific",
}

COMMON_QUALITY_REQUIREMENTS = [
    "Maintain format consistency throughout response",
    "Ensure character consistency if characters are mentioned",
    "Provide clear, actionable guidance",
    "Reference project context appropriately",
]

PERSONA_QUALITY_REQUIREMENTS: Dict[PersonaType, List[str]] = {
    PersonaType.CREATIVE_STRATEGIST: [
        "Identify specific satirical opportunities",
        "Provide concrete creative direction",
        "Suggest format-appropriate approaches",
    ],
    PersonaType.BAFFLING_BROADCASTER: [
        "Maintain consistent broadcaster persona",
        "Create format-appropriate voiceover style",
        "Show oblivious disconnect from reality",
    ],
    PersonaType.SATIRICAL_SCREENWRITER: [
        "Follow proper script formatting",
        "Develop consistent character voices",
        "Maintain narrative coherence",
    ],
    PersonaType.CINEMATIC_STORYBOARDER: [
        "Respect 8-second shot limitations",
        "Provide detailed visual descriptions",
        "Consider technical production constraints",
    ],
    PersonaType.SOUNDSCAPE_ARCHITECT: [
        "Specify audio for each visual element",
        "Maintain audio style consistency",
        "Consider format-specific audio requirements",
    ],
    PersonaType.VIDEO_PROMPT_ENGINEER: [
        "Optimize for AI video generation",
        "Ensure character visual consistency",
        "Include all necessary prompt elements",
    ],
    PersonaType.PROJECT_DIRECTOR: [
        "Provide strategic oversight",
        "Maintain project coherence",
        "Guide quality standards",
    ],
}

COLLABORATION_INSTRUCTIONS = [
    "Signal clearly when your stage is complete",
    "Reference previous stage work appropriately",
    "Maintain format consistency with chosen style",
    "Prepare work for smooth handoff to next stage",
]

CHARACTER_CONSISTENCY_REMINDERS = [
    "Use exact character names and descriptions from previous stages",
    "Maintain visual consistency for character appearance",
    "Keep personality traits consistent across all interactions",
    "Reference established character relationships and dynamics",
]

HANDOFF_PREPARATION: Dict[PersonaType, List[str]] = {
    PersonaType.CREATIVE_STRATEGIST: [
        "Ensure creative strategy is complete and approved",
        "Provide clear direction for script development",
        "Establish character foundations for consistency",
    ],
    PersonaType.BAFFLING_BROADCASTER: [
        "Complete voiceover style and tone guidance",
        "Provide integration points for script development",
        "Establish presenter character consistency",
    ],
    PersonaType.SATIRICAL_SCREENWRITER: [
        "Deliver complete script with scene breakdowns",
        "Establish shot-by-shot structure for storyboarding",
        "Confirm character development and dialogue",
    ],
    PersonaType.CINEMATIC_STORYBOARDER: [
        "Provide detailed visual specifications",
        "Confirm all shots meet 8-second constraint",
        "Prepare visual elements for sound design integration",
    ],
    PersonaType.SOUNDSCAPE_ARCHITECT: [
        "Complete audio specifications for all shots",
        "Provide integration guidance for final prompts",
        "Ensure audio complements visual elements",
    ],
    PersonaType.VIDEO_PROMPT_ENGINEER: [
        "Generate optimized prompts for all shots",
        "Ensure character and format consistency",
        "Prepare prompts for AI video generation",
    ],
    PersonaType.PROJECT_DIRECTOR: [],
}


@dataclass
class QualityMetrics:
    """0-100 consistency indicators attached to a snapshot."""

    format_consistency: int = 100
    character_consistency: int = 100
    tone_consistency: int = 100
    overall_quality: int = 100
    issue_count: int = 0


@dataclass
class CharacterProfile:
    name: str
    description: str = ""
    visual_description: str = ""
    personality: str = ""
    role: str = ""
    id: str = field(default_factory=generate_id)


@dataclass
class KeyDecision:
    decision: str
    reasoning: str
    persona: Optional[PersonaType] = None
    timestamp: datetime = field(default_factory=utc_now)


@dataclass
class UserPreference:
    preference: str
    category: str
    timestamp: datetime = field(default_factory=utc_now)


@dataclass
class SharedMemory:
    """Project-wide memory shared by every persona."""

    key_decisions: List[KeyDecision] = field(default_factory=list)
    running_themes: List[str] = field(default_factory=list)
    user_preferences: List[UserPreference] = field(default_factory=list)
    tone_and_style: str = ""
    context_summary: str = ""


@dataclass
class ContextMessage:
    persona: str
    content: str
    context_markers: List[str] = field(default_factory=list)
    references: List[str] = field(default_factory=list)
    quality_score: Optional[int] = None
    id: str = field(default_factory=generate_id)
    timestamp: datetime = field(default_factory=utc_now)


@dataclass
class ConversationContext:
    conversation_id: str
    project_id: Optional[str] = None
    participant_personas: List[str] = field(default_factory=list)
    message_history: List[ContextMessage] = field(default_factory=list)
    shared_state: Dict[str, Any] = field(default_factory=dict)
    last_activity: datetime = field(default_factory=utc_now)


@dataclass
class ContextSnapshot:
    """Point-in-time bundle of project state used to enrich later prompts."""

    project_id: str
    conversation_summary: str
    context: Dict[str, Any] = field(default_factory=dict)
    character_names: List[str] = field(default_factory=list)
    quality_metrics: QualityMetrics = field(default_factory=QualityMetrics)
    id: str = field(default_factory=generate_id)
    timestamp: datetime = field(default_factory=utc_now)


@dataclass
class ContextTransferPackage:
    """Everything the receiving persona needs when work is handed over."""

    from_persona: PersonaType
    to_persona: PersonaType
    transferred_context: Any
    context_summary: str
    continuity_instructions: List[str]
    quality_requirements: List[str]
    format_reminders: List[str]

    def render(self) -> str:
        """Human-readable handoff summary."""
        lines = [self.context_summary, "", "Continuity instructions:"]
        lines += [f"- {item}" for item in self.continuity_instructions]
        lines += ["", "Quality requirements:"]
        lines += [f"- {item}" for item in self.quality_requirements]
        if self.format_reminders:
            lines += ["", "Format reminders:"]
            lines += [f"- {item}" for item in self.format_reminders]
        return "\n".join(lines)


def assess_response_quality(response: str) -> int:
    """
    Score a reply on a fixed 0-100 rubric.

    Rubric: base 50; +10 if longer than 100 characters; +10 more if longer
    than 300; +5 if it spans several lines; +10 if it contains a numbered
    list item; +5 for each of "format", "style", "approach", "satirical".

    Args:
        response: Reply text

    Returns:
        Integer score clamped to [0, 100]
    """
    score = 50
    if len(response) > 100:
        score += 10
    if len(response) > 300:
        score += 10
    if "\n" in response:
        score += 5
    if re.search(r"\d+\.", response):
        score += 10
    lowered = response.lower()
    score += sum(5 for term in QUALITY_FORMAT_TERMS if term in lowered)
    return max(0, min(score, 100))


def extract_context_markers(response: str) -> List[str]:
    """Tag candidate character names, format roles and themes (first occurrence order)."""
    markers = [f"character:{match}" for match in CHARACTER_PATTERN.findall(response)]
    lowered = response.lower()
    markers += [f"format:{term}" for term in FORMAT_TERMS if term in lowered]
    markers += [f"theme:{word}" for word in THEME_KEYWORDS if word in lowered]
    return list(dict.fromkeys(markers))


def extract_references(response: str) -> List[str]:
    references = []
    for pattern in REFERENCE_PATTERNS:
        references.extend(pattern.findall(response))
    return list(dict.fromkeys(references))


def extract_character_names(response: str) -> List[str]:
    """Two-word capitalised names that are not sentence openers or role titles."""
    names = []
    for candidate in CHARACTER_PATTERN.findall(response):
        parts = candidate.split()
        if len(parts) != 2 or candidate in NON_CHARACTER_NAMES:
            continue
        if any(part in NON_CHARACTER_WORDS for part in parts):
            continue
        names.append(candidate)
    return list(dict.fromkeys(names))


def _project_format(base_context: Optional[Dict[str, Any]]) -> Optional[SatiricalFormat]:
    project = (base_context or {}).get("project")
    if project is None:
        return None
    if isinstance(project, dict):
        value = project.get("satirical_format")
    else:
        value = getattr(project, "satirical_format", None)
    return SatiricalFormat(value) if value else None


class ContextManager:
    """
    Per-project shared context for persona conversations.

    Character profiles, shared memory and snapshots are all keyed by
    project id; conversation histories are keyed by conversation id.
    """

    def __init__(self):
        self._snapshots: Dict[str, List[ContextSnapshot]] = {}
        self._conversations: Dict[str, ConversationContext] = {}
        self._characters: Dict[str, Dict[str, CharacterProfile]] = {}
        self._memory: Dict[str, SharedMemory] = {}

    # --- enrichment ---

    def create_enhanced_context(
        self,
        project_id: str,
        persona: PersonaType,
        base_context: Optional[Dict[str, Any]] = None,
        conversation_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Merge the caller's context with the project's stored context.

        Args:
            project_id: Project the conversation belongs to
            persona: Persona about to answer
            base_context: Caller context (``project``, ``articles``, ...)
            conversation_id: Conversation whose shared state to include

        Returns:
            The enriched context; the unmodified base context on any error
        """
        base_context = base_context or {}
        try:
            snapshot = self.get_latest_snapshot(project_id)
            conversation = self._conversations.get(conversation_id) if conversation_id else None
            satirical_format = _project_format(base_context)
            memory = self.get_conversation_memory(project_id)

            enhanced = dict(base_context)
            enhanced.update({
                "workflow_state": snapshot.context if snapshot else base_context,
                "previous_stage_outputs": (
                    "Previous stages completed successfully with approved outputs."
                    if snapshot else "No previous stage outputs available."
                ),
                "character_profiles": self.get_character_profiles(project_id),
                "character_consistency": list(CHARACTER_CONSISTENCY_REMINDERS),
                "format_constraints": self.get_format_constraints(satirical_format),
                "format_guidelines": self.get_format_guidelines(satirical_format),
                "conversation_memory": dict(conversation.shared_state) if conversation else {},
                "recent_decisions": self.get_recent_decisions(project_id, RECENT_DECISION_COUNT),
                "quality_metrics": snapshot.quality_metrics if snapshot else QualityMetrics(),
                "quality_requirements": self.get_quality_requirements(persona),
                "collaboration_instructions": list(COLLABORATION_INSTRUCTIONS),
                "handoff_preparation": list(HANDOFF_PREPARATION.get(PersonaType(persona), [])),
                "context_summary": (
                    snapshot.conversation_summary if snapshot
                    else "New project starting with initial context."
                ),
                "running_themes": list(memory.running_themes),
                "user_preferences": list(memory.user_preferences),
            })
            logger.debug(
                "Enhanced context for %s: %d character(s), %d constraint(s), %d decision(s)",
                persona, len(enhanced["character_profiles"]),
                len(enhanced["format_constraints"]), len(enhanced["recent_decisions"]),
            )
            return enhanced
        except Exception:
            logger.error("Failed to create enhanced context for project %s", project_id, exc_info=True)
            return base_context

    def update_context_after_interaction(
        self,
        project_id: str,
        persona: PersonaType,
        user_message: str,
        agent_response: str,
        conversation_id: str,
        satirical_format: Optional[SatiricalFormat] = None,
    ) -> None:
        """Record a persona reply: markers, score, characters, decisions and a snapshot."""
        try:
            markers = extract_context_markers(agent_response)
            score = assess_response_quality(agent_response)
            self._append_message(project_id, conversation_id, ContextMessage(
                persona=PersonaType(persona).value,
                content=agent_response,
                context_markers=markers,
                references=extract_references(agent_response),
                quality_score=score,
            ))
            self._update_characters(project_id, agent_response)
            self._update_shared_memory(project_id, persona, agent_response, markers)
            self._create_snapshot(project_id, persona, score, satirical_format)
            logger.info("Context updated after %s interaction (quality %d)", persona, score)
        except Exception:
            logger.error("Failed to update context for project %s", project_id, exc_info=True)

    def prepare_context_transfer(
        self,
        project_id: str,
        from_persona: PersonaType,
        to_persona: PersonaType,
        transferred_output: Any,
        satirical_format: Optional[SatiricalFormat] = None,
    ) -> ContextTransferPackage:
        """Build the handoff package from one persona to the next."""
        if satirical_format is None:
            snapshot = self.get_latest_snapshot(project_id)
            stored = snapshot.context.get("satirical_format") if snapshot else None
            satirical_format = SatiricalFormat(stored) if stored else None

        from_value = PersonaType(from_persona).value
        to_value = PersonaType(to_persona).value
        package = ContextTransferPackage(
            from_persona=PersonaType(from_persona),
            to_persona=PersonaType(to_persona),
            transferred_context=transferred_output,
            context_summary=(
                f"{from_value} completed their work and is transferring to {to_value}. "
                f"Output: {_summarize_output(transferred_output)}"
            ),
            continuity_instructions=[
                f"Build upon the work completed by {from_value}",
                "Maintain character and format consistency",
                "Reference established project elements appropriately",
                "Prepare output for next stage requirements",
            ],
            quality_requirements=self.get_quality_requirements(to_persona),
            format_reminders=self.get_format_reminders(satirical_format),
        )
        logger.info("Context transfer prepared: %s -> %s", from_value, to_value)
        return package

    def generate_context_prompt_additions(self, persona: PersonaType, enhanced_context: Dict[str, Any]) -> str:
        """Render an enhanced context as system prompt sections."""
        prompt = "\n\n## ENHANCED CONTEXT AWARENESS\n"

        profiles = enhanced_context.get("character_profiles") or []
        if profiles:
            prompt += "\n### CHARACTER CONSISTENCY\n"
            for profile in profiles:
                prompt += f"• **{profile.name}**: {profile.description} (Visual: {profile.visual_description})\n"
            prompt += "\nCRITICAL: Maintain exact character descriptions and visual consistency across all responses.\n"

        if enhanced_context.get("previous_stage_outputs"):
            prompt += "\n### WORKFLOW CONTINUITY\n"
            prompt += f"Previous stage outputs: {enhanced_context['previous_stage_outputs']}\n"
            prompt += "Build upon previous work while maintaining consistency.\n"

        constraints = enhanced_context.get("format_constraints") or []
        if constraints:
            prompt += "\n### FORMAT COMPLIANCE\n"
            prompt += "".join(f"• {constraint}\n" for constraint in constraints)
            prompt += "\nEnsure all suggestions strictly adhere to format requirements.\n"

        requirements = enhanced_context.get("quality_requirements")
        if requirements:
            prompt += "\n### QUALITY STANDARDS\n"
            prompt += "".join(f"• {requirement}\n" for requirement in requirements)
            prompt += "\nMaintain high quality standards in all outputs.\n"

        decisions = enhanced_context.get("recent_decisions") or []
        if decisions:
            prompt += "\n### RECENT PROJECT DECISIONS\n"
            prompt += "".join(f"• {d.decision} ({d.reasoning})\n" for d in decisions[:3])
            prompt += "\nConsider recent decisions in your recommendations.\n"

        preferences = enhanced_context.get("user_preferences") or []
        if preferences:
            prompt += "\n### USER PREFERENCES\n"
            prompt += "".join(f"• {p.preference} ({p.category})\n" for p in preferences)
            prompt += "\nRespect established user preferences.\n"

        if enhanced_context.get("context_summary"):
            prompt += "\n### PROJECT CONTEXT SUMMARY\n"
            prompt += f"{enhanced_context['context_summary']}\n"

        return prompt

    # --- memory ---

    def record_key_decision(self, project_id: str, decision: str, reasoning: str,
                            persona: Optional[PersonaType] = None) -> KeyDecision:
        entry = KeyDecision(decision=decision, reasoning=reasoning, persona=persona)
        self._project_memory(project_id).key_decisions.append(entry)
        return entry

    def record_user_preference(self, project_id: str, preference: str, category: str) -> UserPreference:
        entry = UserPreference(preference=preference, category=category)
        self._project_memory(project_id).user_preferences.append(entry)
        return entry

    def get_conversation_memory(self, project_id: str) -> SharedMemory:
        return self._memory.get(project_id) or SharedMemory()

    def get_recent_decisions(self, project_id: str, count: int = RECENT_DECISION_COUNT) -> List[KeyDecision]:
        decisions = self.get_conversation_memory(project_id).key_decisions
        return sorted(decisions, key=lambda d: d.timestamp, reverse=True)[:count]

    def get_conversation_history(self, conversation_id: str) -> List[ContextMessage]:
        conversation = self._conversations.get(conversation_id)
        return list(conversation.message_history) if conversation else []

    def get_latest_snapshot(self, project_id: str) -> Optional[ContextSnapshot]:
        snapshots = self._snapshots.get(project_id)
        return snapshots[-1] if snapshots else None

    def get_snapshots(self, project_id: str) -> List[ContextSnapshot]:
        return list(self._snapshots.get(project_id, []))

    def get_character_profiles(self, project_id: str) -> List[CharacterProfile]:
        return list(self._characters.get(project_id, {}).values())

    def upsert_character_profile(self, project_id: str, profile: CharacterProfile) -> CharacterProfile:
        """Store an explicit profile, replacing any auto-detected one of the same name."""
        self._characters.setdefault(project_id, {})[profile.name] = profile
        return profile

    def clear_project(self, project_id: str) -> None:
        """Drop snapshots, characters, shared memory and conversations of a project."""
        self._snapshots.pop(project_id, None)
        self._characters.pop(project_id, None)
        self._memory.pop(project_id, None)
        for conversation_id in [
            cid for cid, conversation in self._conversations.items() if conversation.project_id == project_id
        ]:
            del self._conversations[conversation_id]

    # --- static lookups ---

    @staticmethod
    def get_format_constraints(satirical_format: Optional[SatiricalFormat]) -> List[str]:
        if not satirical_format:
            return []
        return list(FORMAT_CONSTRAINTS.get(SatiricalFormat(satirical_format), []))

    @staticmethod
    def get_format_guidelines(satirical_format: Optional[SatiricalFormat]) -> Optional[Dict[str, Any]]:
        if not satirical_format:
            return None
        satirical_format = SatiricalFormat(satirical_format)
        return {
            "format": satirical_format.value,
            "specificRequirements": list(FORMAT_CONSTRAINTS.get(satirical_format, [])),
            "examples": list(FORMAT_EXAMPLES.get(satirical_format, [])),
            "technicalSpecs": dict(FORMAT_TECHNICAL_SPECS),
        }

    @staticmethod
    def get_quality_requirements(persona: PersonaType) -> List[str]:
        return COMMON_QUALITY_REQUIREMENTS + PERSONA_QUALITY_REQUIREMENTS.get(PersonaType(persona), [])

    @staticmethod
    def get_format_reminders(satirical_format: Optional[SatiricalFormat]) -> List[str]:
        if not satirical_format:
            return []
        return [
            f"Ensure all content aligns with {SatiricalFormat(satirical_format).value} format",
            "Maintain visual and audio style consistency",
            "Reference format-specific examples and conventions",
            "Consider technical constraints for this format",
        ]

    # --- internals ---

    def _project_memory(self, project_id: str) -> SharedMemory:
        return self._memory.setdefault(project_id, SharedMemory())

    def _append_message(self, project_id: str, conversation_id: str, message: ContextMessage) -> None:
        conversation = self._conversations.get(conversation_id)
        if conversation is None:
            conversation = ConversationContext(conversation_id=conversation_id, project_id=project_id)
            self._conversations[conversation_id] = conversation
        if message.persona not in conversation.participant_personas:
            conversation.participant_personas.append(message.persona)

        conversation.message_history.append(message)
        conversation.last_activity = utc_now()
        if len(conversation.message_history) > MAX_HISTORY:
            conversation.message_history = conversation.message_history[-HISTORY_KEEP:]

    def _update_characters(self, project_id: str, response: str) -> None:
        profiles = self._characters.setdefault(project_id, {})
        for name in extract_character_names(response):
            if name not in profiles:
                profiles[name] = CharacterProfile(name=name)
                logger.debug("New character profile in project %s: %s", project_id, name)

    def _update_shared_memory(self, project_id: str, persona: PersonaType, response: str,
                              markers: List[str]) -> None:
        memory = self._project_memory(project_id)
        for marker in markers:
            if marker.startswith("theme:"):
                theme = marker.split(":", 1)[1]
                if theme not in memory.running_themes:
                    memory.running_themes.append(theme)

        persona_value = PersonaType(persona).value
        for match in DECISION_PATTERN.finditer(response):
            decision = match.group(0).strip()
            if decision:
                memory.key_decisions.append(KeyDecision(
                    decision=truncate_text(decision, 200),
                    reasoning=f"Proposed by {persona_value}",
                    persona=PersonaType(persona),
                ))

    def _create_snapshot(self, project_id: str, persona: PersonaType, score: int,
                         satirical_format: Optional[SatiricalFormat]) -> None:
        snapshot = ContextSnapshot(
            project_id=project_id,
            conversation_summary=f"{PersonaType(persona).value} interaction completed",
            context={
                "persona": PersonaType(persona).value,
                "satirical_format": SatiricalFormat(satirical_format).value if satirical_format else None,
            },
            character_names=[p.name for p in self.get_character_profiles(project_id)],
            quality_metrics=QualityMetrics(overall_quality=score),
        )
        snapshots = self._snapshots.setdefault(project_id, [])
        snapshots.append(snapshot)
        if len(snapshots) > MAX_SNAPSHOTS:
            self._snapshots[project_id] = snapshots[-SNAPSHOTS_KEEP:]


def _summarize_output(output: Any) -> str:
    if isinstance(output, str):
        return output[:100] + "..." if len(output) > 100 else output
    try:
        text = json.dumps(output, default=str)
    except (TypeError, ValueError):
        text = str(output)
    return text[:100] + "..."

