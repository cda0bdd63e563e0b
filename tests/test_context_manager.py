"""
Tests for the Context Manager.

Tests for satire_engine/services/context_manager.py
"""

import pytest

from satire_engine.core.enums import PersonaType, SatiricalFormat
from satire_engine.services.context_manager import (
    HISTORY_KEEP,
    MAX_HISTORY,
    MAX_SNAPSHOTS,
    SNAPSHOTS_KEEP,
    CharacterProfile,
    ContextManager,
    assess_response_quality,
    extract_character_names,
    extract_context_markers,
)


@pytest.fixture
def manager() -> ContextManager:
    return ContextManager()


def interact(manager, project_id="p1", persona=PersonaType.CREATIVE_STRATEGIST,
             response="Default reply.", conversation_id="c1"):
    manager.update_context_after_interaction(project_id, persona, "user message", response, conversation_id)


class TestQualityScore:
    """Tests for the response quality rubric."""

    @pytest.mark.parametrize("text,expected", [
        ("", 50),
        ("Short reply.", 50),
        ("x" * 101, 60),
        ("x" * 301, 70),
        ("line one\nline two", 55),
        ("Options: 1. a news desk", 60),
        ("A satirical format with a deadpan style and approach", 70),
    ])
    def test_rubric_points(self, text, expected):
        """Each rubric criterion adds its fixed number of points."""
        assert assess_response_quality(text) == expected

    def test_score_clamped_to_100(self):
        """A reply hitting every criterion never exceeds 100."""
        text = ("1. Satirical format, style and approach.\n" * 20)
        assert assess_response_quality(text) == 100

    @pytest.mark.parametrize("text", ["", "a", "\n" * 500, "1." * 1000, "satirical " * 300])
    def test_score_always_in_range(self, text):
        assert 0 <= assess_response_quality(text) <= 100


class TestMarkers:
    """Tests for marker and character extraction."""

    def test_markers_cover_characters_formats_and_themes(self):
        markers = extract_context_markers("Brenda Smith is our news anchor; the audience will love the tone.")
        assert "character:Brenda Smith" in markers
        assert "format:news anchor" in markers
        assert "theme:audience" in markers
        assert "theme:tone" in markers

    def test_character_names_skip_sentence_openers_and_personas(self):
        """Only two-word names that are not role titles or openers count as characters."""
        text = (
            "The Minister arrives. Creative Strategist suggests Gary Nuttall as the anchor. "
            "This Week we meet Sandra Pike."
        )
        assert extract_character_names(text) == ["Gary Nuttall", "Sandra Pike"]


class TestUpdateAfterInteraction:
    """Tests for recording a persona reply."""

    def test_history_and_snapshot_recorded(self, manager):
        interact(manager, response="Gary Nuttall reads the news with a satirical style.")
        history = manager.get_conversation_history("c1")
        assert len(history) == 1
        assert history[0].persona == "CREATIVE_STRATEGIST"
        assert history[0].quality_score == assess_response_quality(history[0].content)
        snapshot = manager.get_latest_snapshot("p1")
        assert snapshot.character_names == ["Gary Nuttall"]

    def test_history_trimmed_to_last_30_when_over_50(self, manager):
        for i in range(MAX_HISTORY + 1):
            interact(manager, response=f"reply {i}")
        history = manager.get_conversation_history("c1")
        assert len(history) == HISTORY_KEEP
        assert history[-1].content == f"reply {MAX_HISTORY}"

    def test_snapshots_trimmed_to_last_10_when_over_20(self, manager):
        for i in range(MAX_SNAPSHOTS + 1):
            interact(manager, response=f"reply {i}")
        assert len(manager.get_snapshots("p1")) == SNAPSHOTS_KEEP

    def test_character_profiles_are_per_project(self, manager):
        """Characters found in one project never leak into another."""
        interact(manager, project_id="p1", response="Gary Nuttall hosts the show.")
        interact(manager, project_id="p2", response="Sandra Pike hosts the show.", conversation_id="c2")
        assert [p.name for p in manager.get_character_profiles("p1")] == ["Gary Nuttall"]
        assert [p.name for p in manager.get_character_profiles("p2")] == ["Sandra Pike"]

    def test_key_decisions_detected(self, manager):
        interact(manager, response="After some thought, we'll go with the game show framing. It fits.")
        decisions = manager.get_recent_decisions("p1")
        assert len(decisions) == 1
        assert "game show framing" in decisions[0].decision
        assert decisions[0].persona == PersonaType.CREATIVE_STRATEGIST

    def test_running_themes_accumulate(self, manager):
        interact(manager, response="The audience needs a clear visual gag.")
        interact(manager, response="The audience will get the tone.")
        assert manager.get_conversation_memory("p1").running_themes == ["audience", "visual", "tone"]

    def test_errors_are_swallowed(self, manager, monkeypatch, caplog):
        """A failure while updating is logged, not raised."""
        def boom(*args, **kwargs):
            raise RuntimeError("boom")
        monkeypatch.setattr(manager, "_create_snapshot", boom)
        interact(manager)
        assert "Failed to update context" in caplog.text


class TestEnhancedContext:
    """Tests for context enrichment."""

    def test_defaults_without_snapshot(self, manager, sample_project):
        enhanced = manager.create_enhanced_context(
            sample_project.id, PersonaType.SATIRICAL_SCREENWRITER, {"project": sample_project}
        )
        assert enhanced["project"] is sample_project
        assert enhanced["quality_metrics"].overall_quality == 100
        assert enhanced["context_summary"] == "New project starting with initial context."
        assert "Authoritative presenter tone" in enhanced["format_constraints"]
        assert enhanced["format_guidelines"]["format"] == "NEWS_PARODY"
        assert enhanced["handoff_preparation"]

    def test_includes_project_state(self, manager):
        manager.record_user_preference("p1", "Keep it under a minute", "length")
        manager.upsert_character_profile("p1", CharacterProfile(name="Gary Nuttall", description="Anchor"))
        interact(manager, response="We decided to open on the weather desk.")
        enhanced = manager.create_enhanced_context("p1", PersonaType.CINEMATIC_STORYBOARDER, {})
        assert enhanced["context_summary"] == "CREATIVE_STRATEGIST interaction completed"
        assert [p.name for p in enhanced["character_profiles"]] == ["Gary Nuttall"]
        assert enhanced["user_preferences"][0].preference == "Keep it under a minute"
        assert enhanced["recent_decisions"]

    def test_returns_base_context_on_error(self, manager, monkeypatch):
        base = {"project_id": "p1"}
        monkeypatch.setattr(manager, "get_latest_snapshot", lambda project_id: 1 / 0)
        assert manager.create_enhanced_context("p1", PersonaType.CREATIVE_STRATEGIST, base) is base

    def test_prompt_additions_render_sections(self, manager):
        manager.upsert_character_profile("p1", CharacterProfile(name="Gary Nuttall", description="Anchor"))
        manager.record_key_decision("p1", "Open on the weather desk", "Strongest visual")
        enhanced = manager.create_enhanced_context(
            "p1", PersonaType.SATIRICAL_SCREENWRITER, {"project": {"satirical_format": "VOX_POP"}}
        )
        prompt = manager.generate_context_prompt_additions(PersonaType.SATIRICAL_SCREENWRITER, enhanced)
        assert "### CHARACTER CONSISTENCY" in prompt
        assert "**Gary Nuttall**" in prompt
        assert "### FORMAT COMPLIANCE" in prompt
        assert "Open on the weather desk (Strongest visual)" in prompt


class TestContextTransfer:
    """Tests for handoff packages."""

    def test_transfer_package(self, manager):
        package = manager.prepare_context_transfer(
            "p1", PersonaType.CREATIVE_STRATEGIST, PersonaType.SATIRICAL_SCREENWRITER,
            {"concept": "Budget game show"}, satirical_format=SatiricalFormat.NEWS_PARODY,
        )
        assert package.context_summary.startswith(
            "CREATIVE_STRATEGIST completed their work and is transferring to SATIRICAL_SCREENWRITER."
        )
        assert package.format_reminders[0] == "Ensure all content aligns with NEWS_PARODY format"
        rendered = package.render()
        assert "Continuity instructions:" in rendered
        assert "Build upon the work completed by CREATIVE_STRATEGIST" in rendered

    def test_transfer_uses_snapshot_format(self, manager):
        manager.update_context_after_interaction(
            "p1", PersonaType.CREATIVE_STRATEGIST, "hi", "reply", "c1", satirical_format=SatiricalFormat.VOX_POP
        )
        package = manager.prepare_context_transfer(
            "p1", PersonaType.CREATIVE_STRATEGIST, PersonaType.SATIRICAL_SCREENWRITER, "done"
        )
        assert "VOX_POP" in package.format_reminders[0]

    def test_clear_project(self, manager):
        interact(manager, response="Gary Nuttall arrives.")
        manager.clear_project("p1")
        assert manager.get_character_profiles("p1") == []
        assert manager.get_latest_snapshot("p1") is None

    def test_clear_project_drops_its_conversations(self, manager):
        interact(manager, project_id="p1", conversation_id="c1")
        interact(manager, project_id="p2", conversation_id="c2")
        manager.clear_project("p1")
        assert manager.get_conversation_history("c1") == []
        assert len(manager.get_conversation_history("c2")) == 1
