"""
Tests for the LLM Service.

Tests for satire_engine/services/llm_service.py
"""

import pytest
from pydantic import BaseModel

from satire_engine.core.config import Settings
from satire_engine.core.enums import PersonaType, Provider
from satire_engine.core.errors import ConfigurationError, ProviderError
from satire_engine.services.agent_config import AgentConfig
from satire_engine.services.context_manager import ContextManager
from satire_engine.services.llm_service import (
    CONCISE_REPLY_RULE,
    LLMConfig,
    LLMService,
)
from satire_engine.storage.models import CreativeStrategy


class Headline(BaseModel):
    headline: str


@pytest.fixture
def service(settings, provider_factory) -> LLMService:
    return LLMService(settings=settings, provider_factory=provider_factory, sleep=lambda seconds: None)


def project_context(project, articles=(), strategy=None):
    return {
        "project_id": project.id,
        "project": project,
        "articles": list(articles),
        "existing_strategy": strategy,
    }


class TestConfiguration:
    """Tests for choosing a provider and model."""

    def test_local_needs_only_a_model(self):
        assert LLMConfig(provider="local", model="llama2").is_valid()
        assert not LLMConfig(provider="openai", model="gpt-4").is_valid()
        assert LLMConfig(provider="openai", model="gpt-4", api_key="sk-test").is_valid()

    def test_unconfigured_persona_fails_without_raising(self, temp_dir, provider_factory, fake_provider):
        service = LLMService(
            settings=Settings(data_dir=temp_dir, llm_provider="openai"), provider_factory=provider_factory
        )
        result = service.generate_response("c1", PersonaType.CREATIVE_STRATEGIST, "Hello")
        assert not result.success
        assert "CREATIVE_STRATEGIST agent is not properly configured" in result.error
        assert fake_provider.calls == []

    def test_env_key_used_as_fallback(self, service, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant-test")
        config = service.resolve_config(PersonaType.SATIRICAL_SCREENWRITER)
        assert config.provider == "anthropic"
        assert config.model == "claude-3-5-sonnet-20241022"

    def test_explicit_agent_config_wins(self, service, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        agent_config = AgentConfig(
            persona=PersonaType.SOUNDSCAPE_ARCHITECT, provider=Provider.LOCAL, model="mistral"
        )
        config = service.resolve_config(PersonaType.SOUNDSCAPE_ARCHITECT, agent_config)
        assert (config.provider, config.model) == ("local", "mistral")

    def test_factory_failure_reported(self, settings):
        def broken_factory(provider, model, api_key=None, base_url=None, timeout=None):
            raise ConfigurationError("Unsupported provider: local")
        service = LLMService(settings=settings, provider_factory=broken_factory)
        result = service.generate_response("c1", PersonaType.CREATIVE_STRATEGIST, "Hello")
        assert not result.success
        assert result.error == "Unsupported provider: local"


class TestGenerateResponse:
    """Tests for persona chat turns."""

    def test_reply_appended_to_history(self, service, fake_provider):
        fake_provider.replies = ["What angle do you like?"]
        result = service.generate_response("c1", PersonaType.CREATIVE_STRATEGIST, "Hi")

        assert result.success
        assert result.response == "What angle do you like?"
        assert result.usage.total_tokens == 15
        assert [m.role for m in service.get_history("c1")] == ["system", "user", "assistant"]
        assert service.get_conversation_summary("c1") == ["user: Hi", "assistant: What angle do you like?"]

    def test_system_prompt_sent_once(self, service, fake_provider):
        service.generate_response("c1", PersonaType.CREATIVE_STRATEGIST, "One")
        service.generate_response("c1", PersonaType.CREATIVE_STRATEGIST, "Two")
        second_call = fake_provider.calls[1]
        assert [m.role for m in second_call] == ["system", "user", "assistant", "user"]

    def test_transient_failure_retried(self, service, fake_provider, provider_error):
        fake_provider.replies = [provider_error, "Recovered reply"]
        result = service.generate_response("c1", PersonaType.CREATIVE_STRATEGIST, "Hi")
        assert result.success
        assert len(fake_provider.calls) == 2

    def test_exhausted_retries_drop_user_message(self, service, fake_provider, provider_error):
        """A failed turn leaves the history as it was before the message."""
        fake_provider.replies = [provider_error] * 3
        result = service.generate_response("c1", PersonaType.CREATIVE_STRATEGIST, "Hi")
        assert not result.success
        assert result.error.startswith("Failed after 3 attempts")
        assert [m.role for m in service.get_history("c1")] == ["system"]

    def test_clear_conversation(self, service):
        service.generate_response("c1", PersonaType.CREATIVE_STRATEGIST, "Hi")
        service.clear_conversation("c1")
        assert service.get_history("c1") == []
        assert service.get_conversation_summary("c1") == []


class TestWorkflowSignals:
    """Tests for handoff and guidance detection."""

    def test_handoff_detected(self, service, fake_provider):
        fake_provider.replies = ["Creative strategy complete and ready for screenwriter."]
        result = service.generate_response("c1", PersonaType.CREATIVE_STRATEGIST, "Wrap it up")
        assert result.handoff.stage == "Script Development"
        assert result.handoff.next_persona == PersonaType.SATIRICAL_SCREENWRITER
        assert result.handoff.transfer is None

    def test_handoff_carries_transfer_package(self, settings, provider_factory, fake_provider, sample_project):
        service = LLMService(settings=settings, provider_factory=provider_factory, context_manager=ContextManager())
        fake_provider.replies = ["Script development complete and ready for storyboard work."]
        result = service.generate_response(
            "c1", PersonaType.SATIRICAL_SCREENWRITER, "Done?", project_context(sample_project)
        )
        transfer = result.handoff.transfer
        assert transfer.from_persona == PersonaType.SATIRICAL_SCREENWRITER
        assert transfer.to_persona == PersonaType.CINEMATIC_STORYBOARDER
        assert result.to_dict()["handoff"]["nextPersona"] == "CINEMATIC_STORYBOARDER"

    def test_project_director_has_no_next_persona(self):
        event = LLMService.detect_handoff(PersonaType.PROJECT_DIRECTOR, "Review complete.")
        assert event.next_persona is None
        assert LLMService.detect_handoff(PersonaType.PROJECT_DIRECTOR, "Still thinking.") is None

    def test_guidance_request_flagged(self, service, fake_provider):
        fake_provider.replies = ["For strategic guidance on tone, consult the Project Director."]
        result = service.generate_response("c1", PersonaType.SATIRICAL_SCREENWRITER, "Hmm")
        assert result.guidance_requested
        assert result.handoff is None

    def test_director_monitors_replies(self, engine, fake_provider):
        user = engine.datastore.create_user("Ann", "ann@example.com", PersonaType.PROJECT_DIRECTOR)
        project = engine.datastore.create_project(
            name="Monitored", created_by=user.id, satirical_format="NEWS_PARODY"
        )
        engine.director.initialize_for_project(project.id)
        fake_provider.replies = ["Nice."]
        result = engine.llm.generate_response(
            "c1", PersonaType.CREATIVE_STRATEGIST, "Hi", {"project_id": project.id, "project": project}
        )
        assert [issue.type for issue in result.quality_issues] == ["format_drift", "quality_concern"]

    def test_interaction_recorded_in_shared_context(self, engine, fake_provider):
        user = engine.datastore.create_user("Ann", "ann@example.com", PersonaType.PROJECT_DIRECTOR)
        project = engine.datastore.create_project(name="Remembered", created_by=user.id)
        fake_provider.replies = ["Gary Nuttall should anchor the bulletin."]
        engine.llm.generate_response(
            "c1", PersonaType.CREATIVE_STRATEGIST, "Who hosts?", {"project_id": project.id, "project": project}
        )
        assert [p.name for p in engine.context_manager.get_character_profiles(project.id)] == ["Gary Nuttall"]


class TestSystemPrompt:
    """Tests for persona system prompt assembly."""

    def test_first_conversation_prompt(self, service, sample_project, sample_article):
        prompt = service.build_system_prompt(
            PersonaType.CREATIVE_STRATEGIST, project_context(sample_project, [sample_article])
        )
        assert prompt.startswith("You are a comedy-focused Creative Strategist")
        assert "FIRST CONVERSATION APPROACH" in prompt
        assert 'Article 1: "Government Announces Budget Cuts"' in prompt
        assert "Source: Daily Ledger" in prompt
        assert 'This project uses the "NEWS_PARODY" video format' in prompt
        assert "satirical format (NEWS_PARODY)" in prompt
        assert prompt.endswith(CONCISE_REPLY_RULE)

    def test_existing_strategy_prompt(self, service, sample_project, sample_article):
        strategy = CreativeStrategy(
            project_id=sample_project.id, creative_concept="Budget game show",
            key_themes=["austerity"], created_by="tester",
        )
        prompt = service.build_system_prompt(
            PersonaType.CREATIVE_STRATEGIST, project_context(sample_project, [sample_article], strategy)
        )
        assert "existing creative strategy" in prompt
        assert "- Creative Concept: Budget game show" in prompt
        assert "- Key Themes: austerity" in prompt
        assert "FIRST CONVERSATION APPROACH" not in prompt

    def test_prompt_without_project(self, service):
        prompt = service.build_system_prompt(PersonaType.SOUNDSCAPE_ARCHITECT)
        assert "satirical format (format to be determined)" in prompt
        assert "FORMAT GUIDANCE" not in prompt


class TestGenerateStructured:
    """Tests for one-shot structured generation."""

    def test_parses_fenced_json(self, service, fake_provider):
        fake_provider.replies = ['```json\n{"headline": "Minister finds money down sofa"}\n```']
        result = service.generate_structured(PersonaType.CREATIVE_STRATEGIST, "system", "user", Headline)
        assert result.headline == "Minister finds money down sofa"

    def test_unparseable_reply_raises_after_retries(self, service, fake_provider):
        fake_provider.replies = ["not json"] * 3
        with pytest.raises(ProviderError) as exc_info:
            service.generate_structured(PersonaType.CREATIVE_STRATEGIST, "system", "user", Headline)
        assert exc_info.value.details["raw"] == "not json"
        assert len(fake_provider.calls) == 3

    def test_unconfigured_raises(self, temp_dir, provider_factory):
        service = LLMService(
            settings=Settings(data_dir=temp_dir, llm_provider="gemini"), provider_factory=provider_factory
        )
        with pytest.raises(ConfigurationError):
            service.generate_structured(PersonaType.CREATIVE_STRATEGIST, "system", "user", Headline)


class TestPlainContext:
    """Tests for contexts sent as plain JSON objects."""

    def test_dict_project_accepted(self, service, fake_provider):
        result = service.generate_response(
            "c1", PersonaType.CREATIVE_STRATEGIST, "Hi",
            {"project": {"name": "P", "satirical_format": "VOX_POP"}},
        )
        assert result.success
        system_prompt = service.get_history("c1")[0].content
        assert 'This project uses the "VOX_POP" video format' in system_prompt

    def test_dict_articles_and_strategy_in_prompt(self, service):
        prompt = service.build_system_prompt(PersonaType.CREATIVE_STRATEGIST, {
            "project_id": "p1",
            "project": {"name": "P"},
            "articles": [{"title": "Minister resigns", "content": "He left.", "source": "Gazette"}],
            "existing_strategy": {"creative_concept": "Resignation roulette", "key_themes": ["exits"]},
        })
        assert 'Article 1: "Minister resigns"' in prompt
        assert "- Creative Concept: Resignation roulette" in prompt


class TestDirectorScope:
    """Tests that monitoring only covers the project the director watches."""

    def test_other_project_not_monitored(self, engine, fake_provider):
        user = engine.datastore.create_user("Ann", "ann@example.com", PersonaType.PROJECT_DIRECTOR)
        watched = engine.datastore.create_project(
            name="Watched", created_by=user.id, satirical_format="NEWS_PARODY"
        )
        other = engine.datastore.create_project(
            name="Street", created_by=user.id, satirical_format="VOX_POP"
        )
        engine.director.initialize_for_project(watched.id)
        fake_provider.replies = [
            "A street interview gathering public opinion on the budget from confused shoppers in the rain."
        ]
        result = engine.llm.generate_response(
            "c1", PersonaType.CREATIVE_STRATEGIST, "Ideas?", {"project_id": other.id, "project": other}
        )
        assert result.success
        assert result.quality_issues == []


class TestErrorRecovery:
    """Tests for circuit breaking around persona calls."""

    def test_breaker_opens_after_repeated_failures(self, service, fake_provider, provider_error):
        fake_provider.replies = [provider_error] * 6
        service.generate_response("c1", PersonaType.CREATIVE_STRATEGIST, "One")
        service.generate_response("c1", PersonaType.CREATIVE_STRATEGIST, "Two")

        result = service.generate_response("c1", PersonaType.CREATIVE_STRATEGIST, "Three")
        assert not result.success
        assert result.error.startswith("Failed after 0 attempts")
        assert "Circuit breaker is open" in result.error
        assert len(fake_provider.calls) == 6
        assert [m.role for m in service.get_history("c1")] == ["system"]

    def test_breaker_is_per_persona(self, service, fake_provider, provider_error):
        fake_provider.replies = [provider_error] * 6
        service.generate_response("c1", PersonaType.CREATIVE_STRATEGIST, "One")
        service.generate_response("c1", PersonaType.CREATIVE_STRATEGIST, "Two")
        assert service.generate_response("c2", PersonaType.SATIRICAL_SCREENWRITER, "Hi").success

    def test_reset_restores_calls(self, service, fake_provider, provider_error):
        fake_provider.replies = [provider_error] * 6 + ["Back online"]
        service.generate_response("c1", PersonaType.CREATIVE_STRATEGIST, "One")
        service.generate_response("c1", PersonaType.CREATIVE_STRATEGIST, "Two")

        service.error_recovery.reset_circuit_breaker(PersonaType.CREATIVE_STRATEGIST)
        result = service.generate_response("c1", PersonaType.CREATIVE_STRATEGIST, "Three")
        assert result.success
        assert result.response == "Back online"

    def test_authentication_error_not_retried(self, service, fake_provider):
        fake_provider.replies = [ProviderError("fake", "401 Unauthorized")]
        result = service.generate_response("c1", PersonaType.CREATIVE_STRATEGIST, "Hi")
        assert not result.success
        assert result.error.startswith("Failed after 1 attempts")
        assert len(fake_provider.calls) == 1

    def test_statistics_recorded(self, service, fake_provider, provider_error):
        fake_provider.replies = [provider_error, "Recovered reply"]
        service.generate_response("c1", PersonaType.CREATIVE_STRATEGIST, "Hi")
        stats = service.error_recovery.get_error_statistics(PersonaType.CREATIVE_STRATEGIST)
        assert stats.total_attempts == 2
        assert stats.failure_rate == 50.0
        assert stats.average_retries == 2.0
        assert stats.circuit_breaker_state == "CLOSED"

    def test_request_timeout_passed_to_factory(self, settings):
        seen = {}

        def recording_factory(provider, model, api_key=None, base_url=None, timeout=None):
            seen["timeout"] = timeout
            raise ConfigurationError("stop here")

        LLMService(settings=settings, provider_factory=recording_factory).generate_response(
            "c1", PersonaType.CREATIVE_STRATEGIST, "Hi"
        )
        assert seen["timeout"] == settings.llm.request_timeout == 30.0


class TestClearProject:
    """Tests for dropping a project's conversations."""

    def test_only_project_conversations_cleared(self, service, sample_project):
        service.generate_response("c1", PersonaType.CREATIVE_STRATEGIST, "Hi", project_context(sample_project))
        service.generate_response("c2", PersonaType.CREATIVE_STRATEGIST, "Hi")
        assert service.clear_project(sample_project.id) == ["c1"]
        assert service.get_history("c1") == []
        assert service.get_history("c2") != []
