"""
Satirical contexts - ethical lenses that frame what agents satirise and how.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from satire_engine.core.enums import SatiricalContextType
from satire_engine.storage.models import SatiricalContext, TerminologyGuidance

PREDEFINED_CONTEXTS: Dict[SatiricalContextType, SatiricalContext] = {
    SatiricalContextType.ANIMAL_LIBERATION: SatiricalContext(
        type=SatiricalContextType.ANIMAL_LIBERATION,
        name="Animal Liberation & Vegan Ethics",
        description="Strong anti-anthropocentric perspective focused on animal liberation, rights, and vegan ethics",
        ethical_framework="Animal liberation philosophy with strong vegan ethics, rejecting speciesism and anthropocentrism",
        key_principles=[
            "Animals are sentient beings with inherent worth, not property or resources",
            'All animal use is exploitation - reject "humane" or "welfare" approaches as inadequate',
            "Veganism is the baseline ethical position, not an extreme view",
            "Speciesism is a form of discrimination as serious as racism or sexism",
            "The animal perspective must be centered, not human convenience",
            'Animal "welfare" reforms perpetuate the exploitation system',
            "True animal wellbeing requires liberation from human use entirely",
        ],
        common_targets=[
            'Animal agriculture industry propaganda ("humane meat", "cage-free", "grass-fed")',
            "Speciesist language normalizing animal exploitation",
            "False environmentalism that ignores animal agriculture impact",
            "Carnist cognitive dissonance and moral inconsistency",
            "Anthropocentric worldviews that treat animals as resources",
            "Welfare organizations that legitimize animal use",
            "Cultural traditions that involve animal exploitation",
            "Scientific institutions using animals as test subjects",
            "Entertainment industries exploiting animals",
        ],
        preferred_terminology=[
            TerminologyGuidance(
                avoid="animal welfare",
                prefer="animal wellbeing or animal liberation",
                reason="Welfare implies animals can be used humanely; wellbeing focuses on their actual interests",
            ),
            TerminologyGuidance(
                avoid="humane meat",
                prefer="less cruel animal products (still exploitation)",
                reason="No animal exploitation can be truly humane - it's a marketing myth",
            ),
            TerminologyGuidance(
                avoid="livestock",
                prefer="farmed animals or imprisoned animals",
                reason="Livestock reduces animals to economic units rather than individuals",
            ),
            TerminologyGuidance(
                avoid="meat industry",
                prefer="animal agriculture or animal exploitation industry",
                reason="Emphasizes what's actually happening to the animals",
            ),
            TerminologyGuidance(
                avoid="animal products",
                prefer="animal-derived products or products of exploitation",
                reason="Makes clear these come from suffering beings, not inanimate resources",
            ),
        ],
        satirical_approaches=[
            'Expose the absurdity of "loving animals" while paying for their exploitation',
            "Highlight carnist cognitive dissonance and moral inconsistencies",
            "Satirize industry propaganda and euphemistic language",
            "Mock anthropocentric justifications for animal exploitation",
            "Reveal the violence hidden behind sanitized marketing",
            "Lampoon appeals to tradition, nature, or necessity as excuses",
            "Expose the environmental hypocrisy of non-vegan environmentalists",
            'Satirize the "humane washing" of inherently cruel practices',
        ],
    ),
    SatiricalContextType.ENVIRONMENTAL: SatiricalContext(
        type=SatiricalContextType.ENVIRONMENTAL,
        name="Environmental Justice & Climate Action",
        description="Focus on environmental destruction, climate change, and corporate greenwashing",
        ethical_framework="Environmental justice perspective emphasizing systemic change over individual action",
        key_principles=[
            "Climate change is primarily caused by corporate interests, not individual choices",
            "Environmental destruction disproportionately affects marginalized communities",
            "Greenwashing is a deliberate strategy to avoid systemic change",
            "Capitalism and endless growth are incompatible with environmental sustainability",
            "Indigenous knowledge and land rights are crucial for environmental protection",
        ],
        common_targets=[
            "Corporate greenwashing campaigns",
            "Individual responsibility narratives that ignore systemic issues",
            "Fossil fuel industry propaganda",
            "Politicians who prioritize economy over environment",
            "Consumer culture and planned obsolescence",
            "Environmental racism and injustice",
        ],
        preferred_terminology=[
            TerminologyGuidance(
                avoid="clean coal",
                prefer="less dirty coal (still polluting)",
                reason="Coal can never be truly clean - it's industry marketing",
            ),
            TerminologyGuidance(
                avoid="carbon neutral",
                prefer="carbon accounting tricks",
                reason="Most carbon neutral claims rely on questionable offsets",
            ),
        ],
        satirical_approaches=[
            "Expose greenwashing through exaggerated corporate environmental claims",
            "Mock individual responsibility narratives while corporations pollute freely",
            "Satirize climate denial and delay tactics",
            "Highlight environmental hypocrisy of wealthy elites",
        ],
    ),
    SatiricalContextType.GENERAL: SatiricalContext(
        type=SatiricalContextType.GENERAL,
        name="General Satirical Perspective",
        description="Broad satirical approach without specific ethical framework",
        ethical_framework="General satirical perspective focused on exposing hypocrisy and absurdity",
        key_principles=[
            "Question authority and conventional wisdom",
            "Expose hypocrisy and contradiction",
            "Challenge power structures",
            "Use humor to make serious points accessible",
        ],
        common_targets=[
            "Political hypocrisy",
            "Corporate doublespeak",
            "Social media culture",
            "Celebrity worship",
            "Media manipulation",
        ],
        preferred_terminology=[],
        satirical_approaches=[
            "Use irony to expose contradictions",
            "Exaggerate absurd situations to highlight problems",
            "Employ deadpan delivery for serious topics",
            "Create absurd scenarios that mirror real-world issues",
        ],
    ),
}


@dataclass
class AlignmentReport:
    """Result of checking text against a satirical context."""

    issues: List[str] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)

    @property
    def is_aligned(self) -> bool:
        return not self.issues


def get_predefined_contexts() -> List[SatiricalContext]:
    return [context.model_copy(deep=True) for context in PREDEFINED_CONTEXTS.values()]


def get_context_by_type(context_type: SatiricalContextType) -> Optional[SatiricalContext]:
    """Predefined context for a type; CUSTOM and unknown types return None."""
    try:
        context = PREDEFINED_CONTEXTS.get(SatiricalContextType(context_type))
    except ValueError:
        return None
    return context.model_copy(deep=True) if context else None


def generate_context_prompt(context: SatiricalContext) -> str:
    """Render a context as a system prompt block."""
    prompt = f"\n\n=== SATIRICAL CONTEXT: {context.name.upper()} ===\n"
    prompt += f"{context.description}\n\n"
    prompt += f"ETHICAL FRAMEWORK: {context.ethical_framework}\n\n"

    prompt += "KEY PRINCIPLES TO UPHOLD:\n"
    for index, principle in enumerate(context.key_principles, 1):
        prompt += f"{index}. {principle}\n"

    if context.common_targets:
        prompt += "\nCOMMON SATIRICAL TARGETS:\n"
        for target in context.common_targets:
            prompt += f"• {target}\n"

    if context.preferred_terminology:
        prompt += "\nTERMINOLOGY GUIDANCE:\n"
        for term in context.preferred_terminology:
            prompt += f'• AVOID: "{term.avoid}" → PREFER: "{term.prefer}"\n  Reason: {term.reason}\n'

    prompt += "\nSATIRICAL APPROACHES:\n"
    for approach in context.satirical_approaches:
        prompt += f"• {approach}\n"

    prompt += (
        "\nIMPORTANT: All responses must align with this ethical framework and perspective. "
        "Challenge ideas that contradict these principles through satirical means.\n"
    )
    return prompt


def validate_alignment(content: str, context: SatiricalContext) -> AlignmentReport:
    """
    Check text for discouraged terminology and lens-specific framing.

    Args:
        content: Text to check (typically an agent reply or script)
        context: Satirical context to check against

    Returns:
        AlignmentReport with issues and matching suggestions
    """
    report = AlignmentReport()
    lowered = content.lower()

    for term in context.preferred_terminology:
        if term.avoid.lower() in lowered:
            report.issues.append(f'Uses discouraged term: "{term.avoid}"')
            report.suggestions.append(f'Replace "{term.avoid}" with "{term.prefer}" - {term.reason}')

    if context.type == SatiricalContextType.ANIMAL_LIBERATION:
        if "humane" in lowered and "meat" in lowered:
            report.issues.append('Appears to endorse "humane meat" concept')
            report.suggestions.append(
                'Challenge the "humane meat" myth - no exploitation can be truly humane'
            )
        if "welfare" in lowered and "animal" in lowered:
            report.issues.append("Uses animal welfare framing")
            report.suggestions.append(
                "Focus on animal wellbeing and liberation rather than welfare reforms"
            )

    return report
