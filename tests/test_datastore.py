"""
Tests for the JSON datastore.

Tests for satire_engine/storage/datastore.py
"""

import base64
from datetime import datetime

import pytest

from satire_engine.core.enums import CreativeStrategyStatus, PersonaType, SatiricalFormat
from satire_engine.core.errors import DuplicateError, NotFoundError, ValidationError
from satire_engine.storage.datastore import JsonDatastore, decode_article_file
from satire_engine.storage.models import (
    CreativeStrategy,
    DirectorNotes,
    Script,
    Shot,
    SoundNotes,
    VideoPrompt,
)


def make_strategy(project_id: str, **overrides) -> CreativeStrategy:
    data = {
        "project_id": project_id,
        "creative_concept": "Budget cuts reported as a game show",
        "key_themes": ["austerity", "spin"],
        "created_by": "tester",
    }
    data.update(overrides)
    return CreativeStrategy(**data)


def add_shot(datastore, project_id, panel=1, length=6.0):
    notes = datastore.create_director_notes(DirectorNotes(
        project_id=project_id, summary="s", satirical_hook="h", characters="c", visual_concepts="v",
    ))
    script = datastore.create_script(Script(project_id=project_id, director_notes_id=notes.id, content="INT. STUDIO"))
    shot = datastore.create_shot(Shot(
        script_id=script.id, panel_number=panel, length_seconds=length, camera_angle="Wide",
        character_action="Anchor shuffles papers", lighting_mood="Bright studio", visual_style="Broadcast",
    ))
    return script, shot


class TestUsers:
    """Tests for user records."""

    def test_create_user_lowercases_email(self, datastore):
        """Emails are stored lower-cased."""
        user = datastore.create_user("Ann", "Ann@Example.COM", PersonaType.CREATIVE_STRATEGIST)
        assert user.email == "ann@example.com"

    def test_duplicate_email_rejected(self, datastore, sample_user):
        """A second account with the same email is refused."""
        with pytest.raises(DuplicateError):
            datastore.create_user("Other", "DIRECTOR@example.com", PersonaType.PROJECT_DIRECTOR)

    def test_password_hash_hidden_by_default(self, datastore):
        """Lookups strip the password hash unless explicitly requested."""
        datastore.create_user("Ann", "ann@example.com", PersonaType.CREATIVE_STRATEGIST, password_hash="hash")
        assert datastore.get_user_by_email("ann@example.com").password_hash is None
        assert datastore.get_user_by_email("ann@example.com", include_password=True).password_hash == "hash"


class TestProjects:
    """Tests for project CRUD."""

    def test_create_then_get_returns_same_fields(self, datastore, sample_project):
        """A fetched project matches the created one."""
        fetched = datastore.get_project(sample_project.id)
        assert fetched == sample_project
        assert fetched.satirical_format == SatiricalFormat.NEWS_PARODY

    def test_get_missing_project_raises(self, datastore):
        """Unknown ids raise NotFoundError."""
        with pytest.raises(NotFoundError):
            datastore.get_project("missing")

    def test_update_project_sets_updated_at(self, datastore, sample_project):
        """Updates are applied and stamped."""
        updated = datastore.update_project(sample_project.id, {"name": "Renamed"})
        assert updated.name == "Renamed"
        assert updated.updated_at is not None
        assert updated.id == sample_project.id

    def test_update_rejects_unknown_fields(self, datastore, sample_project):
        """Fields that do not exist on the model are rejected."""
        with pytest.raises(ValidationError):
            datastore.update_project(sample_project.id, {"colour": "red"})

    def test_update_project_format(self, datastore, sample_project):
        """Format can be changed and cleared."""
        assert datastore.update_project_format(sample_project.id, "VOX_POP").satirical_format == SatiricalFormat.VOX_POP
        assert datastore.update_project_format(sample_project.id, None).satirical_format is None

    def test_projects_for_user(self, datastore, sample_user, sample_project):
        """Only the creator's projects are listed."""
        datastore.create_project(name="Someone else's", created_by="other")
        projects = datastore.get_projects_for_user(sample_user.id)
        assert [p.id for p in projects] == [sample_project.id]

    def test_delete_project_leaves_no_orphans(self, datastore, sample_project, sample_article):
        """Deleting a project removes every record that hangs off it."""
        strategy = datastore.create_creative_strategy(make_strategy(sample_project.id))
        script, shot = add_shot(datastore, sample_project.id)
        datastore.create_sound_notes(SoundNotes(shot_id=shot.id, ambient_foley="Studio hum"))
        datastore.create_prompt(VideoPrompt(shot_id=shot.id, generated_prompt_text="For Veo3: ..."))
        conversation = datastore.create_conversation(sample_project.id, [PersonaType.CREATIVE_STRATEGIST])
        datastore.add_message(conversation.id, "USER", "Hello")

        other = datastore.create_project(name="Keep me", created_by="someone")
        datastore.create_article(title="Other", content="x", project_id=other.id, uploaded_by="someone")

        removed = datastore.delete_project(sample_project.id)

        assert removed["projects"] == 1
        assert removed["shots"] == 1
        assert datastore.get_articles_by_project(sample_project.id) == []
        assert datastore.get_creative_strategy(sample_project.id) is None
        assert datastore.get_director_notes(sample_project.id) is None
        assert datastore.get_scripts_by_project(sample_project.id) == []
        assert datastore.get_shots_for_script(script.id) == []
        assert datastore.get_sound_notes_for_shot(shot.id) is None
        assert datastore.get_prompts_for_shot(shot.id) == []
        assert datastore.get_conversation_messages(conversation.id) == []
        with pytest.raises(NotFoundError):
            datastore.get_creative_strategy_by_id(strategy.id)
        assert len(datastore.get_articles_by_project(other.id)) == 1


class TestCreativeStrategies:
    """Tests for strategy versioning."""

    def test_create_forces_version_one(self, datastore, sample_project):
        """New strategies always start as a version 1 draft."""
        strategy = datastore.create_creative_strategy(
            make_strategy(sample_project.id, version=5, status=CreativeStrategyStatus.APPROVED)
        )
        assert strategy.version == 1
        assert strategy.status == CreativeStrategyStatus.DRAFT
        assert datastore.get_creative_strategy(sample_project.id).status == CreativeStrategyStatus.DRAFT

    def test_version_increments_by_one_per_update(self, datastore, sample_project):
        """Each update bumps the version by exactly one, even if a version is supplied."""
        strategy = datastore.create_creative_strategy(make_strategy(sample_project.id))
        first = datastore.update_creative_strategy(strategy.id, {"creative_concept": "New concept"})
        second = datastore.update_creative_strategy(strategy.id, {"version": 42, "key_themes": ["greed"]})
        assert first.version == 2
        assert second.version == 3
        assert second.creative_concept == "New concept"

    def test_set_status_records_approver(self, datastore, sample_project):
        """Approval stores the approver and bumps the version."""
        strategy = datastore.create_creative_strategy(make_strategy(sample_project.id))
        approved = datastore.set_strategy_status(strategy.id, "APPROVED", approved_by="director")
        assert approved.status == CreativeStrategyStatus.APPROVED
        assert approved.approved_by == "director"
        assert approved.version == 2


class TestShots:
    """Tests for storyboard shots."""

    def test_long_shot_accepted_with_warning(self, datastore, sample_project, caplog):
        """Shots over 8 seconds are stored but logged."""
        _, shot = add_shot(datastore, sample_project.id, length=12)
        assert datastore.get_shot(shot.id).length_seconds == 12
        assert shot.exceeds_duration_limit
        assert any("longer than" in record.message for record in caplog.records)

    def test_shots_sorted_by_panel(self, datastore, sample_project):
        """Shots come back in panel order."""
        script, _ = add_shot(datastore, sample_project.id, panel=2)
        datastore.create_shot(Shot(
            script_id=script.id, panel_number=1, length_seconds=4, camera_angle="Close-up",
            character_action="Smile", lighting_mood="Warm", visual_style="Broadcast",
        ))
        panels = [s.panel_number for s in datastore.get_shots_for_script(script.id)]
        assert panels == [1, 2]


class TestPersistence:
    """Tests for save/load round trips."""

    def test_reload_rehydrates_datetimes(self, temp_dir):
        """Records loaded from disk have datetime fields, not strings."""
        path = temp_dir / "db.json"
        store = JsonDatastore(path)
        user = store.create_user("Ann", "ann@example.com", PersonaType.PROJECT_DIRECTOR)
        project = store.create_project(name="Persisted", created_by=user.id)
        store.update_project(project.id, {"description": "updated"})
        strategy = store.create_creative_strategy(make_strategy(project.id))

        reloaded = JsonDatastore(path)
        loaded_project = reloaded.get_project(project.id)
        assert isinstance(loaded_project.created_at, datetime)
        assert isinstance(loaded_project.updated_at, datetime)
        assert loaded_project.description == "updated"
        assert reloaded.get_creative_strategy_by_id(strategy.id).key_themes == ["austerity", "spin"]
        assert reloaded.get_user(user.id).email == "ann@example.com"
        assert isinstance(reloaded.last_saved, datetime)

    def test_in_memory_store_writes_nothing(self, temp_dir, datastore):
        """Without a data file nothing touches disk."""
        datastore.create_project(name="Ephemeral", created_by="me")
        assert list(temp_dir.iterdir()) == []


class TestArticleFiles:
    """Tests for uploaded article decoding."""

    def test_plain_text_decoded(self):
        payload = base64.b64encode("Breaking news".encode()).decode()
        assert decode_article_file("a.txt", payload, "text/plain") == "Breaking news"

    def test_html_reduced_to_text(self):
        html = "<html><body><script>x()</script><p>Minister resigns</p></body></html>"
        payload = base64.b64encode(html.encode()).decode()
        text = decode_article_file("a.html", payload, "text/html")
        assert "Minister resigns" in text
        assert "x()" not in text

    def test_pdf_gets_placeholder(self):
        text = decode_article_file("report.pdf", "ignored", "application/pdf")
        assert text.startswith("[Processed content from report.pdf]")

    def test_bad_base64_rejected(self):
        with pytest.raises(ValidationError):
            decode_article_file("a.txt", "not base64!!", "text/plain")

    def test_upload_creates_article(self, datastore, sample_project, sample_user):
        payload = base64.b64encode(b"Story body").decode()
        article = datastore.upload_article_file(
            title="Uploaded", project_id=sample_project.id, uploaded_by=sample_user.id,
            file_name="story.txt", file_data=payload, file_type="text/plain",
        )
        assert article.content == "Story body"
        assert article.file_name == "story.txt"


class TestStats:
    """Tests for diagnostics."""

    def test_project_stats_totals_duration(self, datastore, sample_project, sample_article):
        add_shot(datastore, sample_project.id, length=5)
        stats = datastore.get_project_stats(sample_project.id)
        assert stats["articles"] == 1
        assert stats["shots"] == 1

    def test_test_connection_counts(self, datastore, sample_project, sample_article):
        counts = datastore.test_connection()
        assert counts["projectCount"] == 1
        assert counts["articlesCount"] == 1
