"""
Tests for satirical contexts and personas.

Tests for satire_engine/services/satirical_context.py and satire_engine/services/personas.py
"""

import pytest

from satire_engine.core.enums import PersonaType, SatiricalContextType, SatiricalFormat
from satire_engine.services.personas import (
    DEFAULT_FORMAT_GUIDANCE,
    PERSONA_REGISTRY,
    format_guidance,
    get_persona_definition,
    has_completion_signal,
    has_guidance_request,
    next_workflow_stage,
    persona_description,
    persona_display_name,
)
from satire_engine.services.satirical_context import (
    generate_context_prompt,
    get_context_by_type,
    get_predefined_contexts,
    validate_alignment,
)


class TestPredefinedContexts:
    """Tests for the built-in satirical lenses."""

    def test_three_predefined_contexts(self):
        types = [context.type for context in get_predefined_contexts()]
        assert types == [
            SatiricalContextType.ANIMAL_LIBERATION,
            SatiricalContextType.ENVIRONMENTAL,
            SatiricalContextType.GENERAL,
        ]

    def test_custom_has_no_template(self):
        assert get_context_by_type(SatiricalContextType.CUSTOM) is None
        assert get_context_by_type("NOT_A_TYPE") is None

    def test_returned_contexts_are_copies(self):
        """Editing a returned context never changes the built-in one."""
        context = get_context_by_type(SatiricalContextType.GENERAL)
        context.key_principles.append("Be nice")
        assert "Be nice" not in get_context_by_type(SatiricalContextType.GENERAL).key_principles


class TestContextPrompt:
    """Tests for rendering a context into a prompt."""

    def test_prompt_sections(self):
        prompt = generate_context_prompt(get_context_by_type(SatiricalContextType.ANIMAL_LIBERATION))
        assert "=== SATIRICAL CONTEXT: ANIMAL LIBERATION & VEGAN ETHICS ===" in prompt
        assert "1. Animals are sentient beings" in prompt
        assert 'AVOID: "humane meat"' in prompt
        assert prompt.rstrip().endswith("through satirical means.")

    def test_general_prompt_has_no_terminology(self):
        prompt = generate_context_prompt(get_context_by_type(SatiricalContextType.GENERAL))
        assert "TERMINOLOGY GUIDANCE" not in prompt
        assert "• Political hypocrisy" in prompt


class TestAlignment:
    """Tests for checking text against a lens."""

    def test_discouraged_terms_flagged(self):
        context = get_context_by_type(SatiricalContextType.ENVIRONMENTAL)
        report = validate_alignment("Our mascot loves Clean Coal.", context)
        assert not report.is_aligned
        assert report.issues == ['Uses discouraged term: "clean coal"']

    def test_animal_liberation_framing(self):
        context = get_context_by_type(SatiricalContextType.ANIMAL_LIBERATION)
        report = validate_alignment("The farm sells humane meat.", context)
        assert 'Appears to endorse "humane meat" concept' in report.issues

    def test_aligned_text(self):
        context = get_context_by_type(SatiricalContextType.GENERAL)
        assert validate_alignment("The minister cuts the ribbon on an empty hospital.", context).is_aligned


class TestPersonas:
    """Tests for the persona registry."""

    def test_every_persona_registered(self):
        assert set(PERSONA_REGISTRY) == set(PersonaType)

    def test_handoff_chain(self):
        chain = []
        persona = PersonaType.CREATIVE_STRATEGIST
        while persona is not None:
            chain.append(persona)
            persona = get_persona_definition(persona).next_persona
        assert chain == [
            PersonaType.CREATIVE_STRATEGIST,
            PersonaType.SATIRICAL_SCREENWRITER,
            PersonaType.CINEMATIC_STORYBOARDER,
            PersonaType.SOUNDSCAPE_ARCHITECT,
            PersonaType.VIDEO_PROMPT_ENGINEER,
            PersonaType.PROJECT_DIRECTOR,
        ]

    def test_unknown_persona_fallbacks(self):
        assert persona_display_name("GHOST") == "GHOST"
        assert persona_description("GHOST") == persona_description(PersonaType.CREATIVE_STRATEGIST)
        assert next_workflow_stage("GHOST") == "Next Stage"
        assert not has_completion_signal("GHOST", "creative strategy complete")

    @pytest.mark.parametrize("persona,text", [
        (PersonaType.CREATIVE_STRATEGIST, "Creative Strategy Complete!"),
        (PersonaType.CINEMATIC_STORYBOARDER, "The storyboard complete, ready for sound design."),
        (PersonaType.VIDEO_PROMPT_ENGINEER, "Prompts complete and ready for video generation."),
    ])
    def test_completion_signals_case_insensitive(self, persona, text):
        assert has_completion_signal(persona, text)

    def test_signals_are_persona_specific(self):
        assert not has_completion_signal(PersonaType.SOUNDSCAPE_ARCHITECT, "Storyboard complete.")

    def test_guidance_request(self):
        assert has_guidance_request("You may want to Ask the Project Director about tone.")
        assert not has_guidance_request("The director yelled cut.")

    def test_format_guidance(self):
        assert format_guidance(SatiricalFormat.VOX_POP).startswith("Create street interview segments")
        assert format_guidance(None) == DEFAULT_FORMAT_GUIDANCE
