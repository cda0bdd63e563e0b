"""
JSON datastore - in-memory collections mirrored to a single JSON file.

Every mutation rewrites the whole file. There is no locking: the last
writer wins.
"""

import base64
import binascii
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Type, TypeVar

from satire_engine.core.config import MAX_SHOT_SECONDS
from satire_engine.core.enums import (
    CreativeStrategyStatus,
    PersonaType,
    ProjectStatus,
    SatiricalFormat,
)
from satire_engine.core.errors import DuplicateError, NotFoundError, ValidationError
from satire_engine.core.utils import extract_text_from_html, utc_now
from satire_engine.storage.models import (
    Conversation,
    CreativeStrategy,
    DirectorNotes,
    Entity,
    Message,
    NewsArticle,
    Project,
    SatiricalContext,
    Script,
    Shot,
    SoundNotes,
    User,
    VideoPrompt,
)

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=Entity)

# Collection name in the JSON file -> model used to re-hydrate its records.
COLLECTIONS: Dict[str, Type[Entity]] = {
    "users": User,
    "projects": Project,
    "newsArticles": NewsArticle,
    "creativeStrategies": CreativeStrategy,
    "directorNotes": DirectorNotes,
    "scripts": Script,
    "shots": Shot,
    "soundNotes": SoundNotes,
    "prompts": VideoPrompt,
    "conversations": Conversation,
    "messages": Message,
}

# Fields that callers may never overwrite through an update.
IMMUTABLE_FIELDS = {"id", "created_at"}


class JsonDatastore:
    """
    In-memory CRUD store with optional whole-file JSON persistence.

    Collections are plain lists. When ``data_file`` is given the store loads
    it on construction and rewrites it after every mutation.
    """

    def __init__(self, data_file: Optional[Path] = None):
        """
        Initialize the datastore.

        Args:
            data_file: JSON file to mirror to; None keeps everything in memory
        """
        self.data_file = Path(data_file) if data_file else None
        self._collections: Dict[str, List[Entity]] = {name: [] for name in COLLECTIONS}
        self.last_saved = None
        if self.data_file and self.data_file.exists():
            self.load_data()

    # --- persistence ---

    def save_data(self) -> None:
        """Serialize the entire datastore to ``data_file``."""
        if not self.data_file:
            return
        self.data_file.parent.mkdir(parents=True, exist_ok=True)
        self.last_saved = utc_now()
        payload: Dict[str, Any] = {
            name: [record.model_dump(mode="json") for record in records]
            for name, records in self._collections.items()
        }
        payload["lastSaved"] = self.last_saved.isoformat()

        with open(self.data_file, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2, ensure_ascii=False)
        logger.debug("Datastore saved to %s", self.data_file)

    def load_data(self) -> None:
        """
        Load ``data_file`` and re-hydrate every record through its model.

        Datetime fields come back as datetimes for every entity type, not
        as ISO strings.
        """
        if not self.data_file or not self.data_file.exists():
            return
        with open(self.data_file, "r", encoding="utf-8") as f:
            payload = json.load(f)

        for name, model in COLLECTIONS.items():
            self._collections[name] = [model.model_validate(raw) for raw in payload.get(name, [])]

        last_saved = payload.get("lastSaved")
        self.last_saved = datetime.fromisoformat(last_saved) if last_saved else None
        logger.info(
            "Loaded datastore from %s (%d users, %d projects, %d articles)",
            self.data_file,
            len(self._collections["users"]),
            len(self._collections["projects"]),
            len(self._collections["newsArticles"]),
        )

    # --- generic helpers ---

    def _insert(self, collection: str, record: E) -> E:
        self._collections[collection].append(record)
        self.save_data()
        return record

    def _find(self, collection: str, entity_id: str) -> Optional[Entity]:
        return next((r for r in self._collections[collection] if r.id == entity_id), None)

    def _require(self, collection: str, entity_id: str, label: str) -> Entity:
        record = self._find(collection, entity_id)
        if record is None:
            raise NotFoundError(label, entity_id)
        return record

    def _filter(self, collection: str, predicate: Callable[[Any], bool]) -> List[Any]:
        return [r for r in self._collections[collection] if predicate(r)]

    def _update(self, collection: str, entity_id: str, label: str, updates: Dict[str, Any],
                bump_version: bool = False) -> Entity:
        record = self._require(collection, entity_id, label)
        changes = {k: v for k, v in updates.items() if k not in IMMUTABLE_FIELDS and k != "version"}
        unknown = set(changes) - set(type(record).model_fields)
        if unknown:
            raise ValidationError(f"Unknown {label} fields: {sorted(unknown)}")

        data = record.model_dump()
        data.update(changes)
        data["updated_at"] = utc_now()
        if bump_version:
            data["version"] = record.version + 1
        updated = type(record).model_validate(data)

        records = self._collections[collection]
        records[records.index(record)] = updated
        self.save_data()
        return updated

    def _remove(self, collection: str, predicate: Callable[[Any], bool]) -> int:
        before = len(self._collections[collection])
        self._collections[collection] = [r for r in self._collections[collection] if not predicate(r)]
        return before - len(self._collections[collection])

    # --- users ---

    def create_user(self, name: str, email: str, role: PersonaType,
                    password_hash: Optional[str] = None) -> User:
        """Create a user; the stored email is lower-cased and must be unique."""
        email = email.strip().lower()
        if self.get_user_by_email(email, include_password=False):
            raise DuplicateError("Email already exists", {"email": email})
        user = self._insert("users", User(name=name, email=email, role=role, password_hash=password_hash))
        logger.info("Created user %s (%s)", user.id, user.role.value)
        return user.public()

    def get_user(self, user_id: str) -> User:
        return self._require("users", user_id, "User").public()

    def get_user_by_email(self, email: str, include_password: bool = False) -> Optional[User]:
        """Find a user by email; the password hash is only kept for auth checks."""
        email = email.strip().lower()
        user = next((u for u in self._collections["users"] if u.email == email), None)
        if user is None:
            return None
        return user if include_password else user.public()

    # --- projects ---

    def create_project(
        self,
        name: str,
        created_by: str,
        description: Optional[str] = None,
        assigned_personas: Optional[List[PersonaType]] = None,
        satirical_context: Optional[SatiricalContext] = None,
        satirical_format: Optional[SatiricalFormat] = None,
    ) -> Project:
        project = Project(
            name=name,
            created_by=created_by,
            description=description,
            assigned_personas=assigned_personas or [],
            satirical_context=satirical_context,
            satirical_format=satirical_format,
        )
        self._insert("projects", project)
        logger.info("Created project %s '%s'", project.id, project.name)
        return project

    def get_project(self, project_id: str) -> Project:
        return self._require("projects", project_id, "Project")

    def get_projects_for_user(self, user_id: str) -> List[Project]:
        """Projects created by the user, newest first."""
        projects = self._filter("projects", lambda p: p.created_by == user_id)
        return sorted(projects, key=lambda p: p.created_at, reverse=True)

    def update_project(self, project_id: str, updates: Dict[str, Any]) -> Project:
        return self._update("projects", project_id, "Project", updates)

    def update_project_status(self, project_id: str, status: ProjectStatus) -> Project:
        return self.update_project(project_id, {"status": ProjectStatus(status)})

    def update_project_format(self, project_id: str, satirical_format: Optional[SatiricalFormat]) -> Project:
        value = SatiricalFormat(satirical_format) if satirical_format else None
        return self.update_project(project_id, {"satirical_format": value})

    def update_project_context(self, project_id: str, satirical_context: Optional[SatiricalContext]) -> Project:
        return self.update_project(project_id, {"satirical_context": satirical_context})

    def delete_project(self, project_id: str) -> Dict[str, int]:
        """
        Delete a project and everything that hangs off it.

        Removes articles, strategies, director notes, scripts, the shots of
        those scripts with their sound notes and prompts, and the project's
        conversations with their messages.

        Returns:
            Count of removed records per collection
        """
        self._require("projects", project_id, "Project")

        script_ids = {s.id for s in self._filter("scripts", lambda s: s.project_id == project_id)}
        shot_ids = {s.id for s in self._filter("shots", lambda s: s.script_id in script_ids)}
        conversation_ids = {
            c.id for c in self._filter("conversations", lambda c: c.project_id == project_id)
        }

        removed = {
            "projects": self._remove("projects", lambda p: p.id == project_id),
            "newsArticles": self._remove("newsArticles", lambda a: a.project_id == project_id),
            "creativeStrategies": self._remove("creativeStrategies", lambda s: s.project_id == project_id),
            "directorNotes": self._remove("directorNotes", lambda n: n.project_id == project_id),
            "scripts": self._remove("scripts", lambda s: s.id in script_ids),
            "shots": self._remove("shots", lambda s: s.id in shot_ids),
            "soundNotes": self._remove("soundNotes", lambda n: n.shot_id in shot_ids),
            "prompts": self._remove("prompts", lambda p: p.shot_id in shot_ids),
            "conversations": self._remove("conversations", lambda c: c.id in conversation_ids),
            "messages": self._remove("messages", lambda m: m.conversation_id in conversation_ids),
        }
        self.save_data()
        logger.info("Deleted project %s: %s", project_id, removed)
        return removed

    # --- news articles ---

    def create_article(
        self,
        title: str,
        content: str,
        project_id: str,
        uploaded_by: str,
        source: Optional[str] = None,
        url: Optional[str] = None,
        processing_notes: Optional[str] = None,
        file_name: Optional[str] = None,
        file_type: Optional[str] = None,
    ) -> NewsArticle:
        article = NewsArticle(
            title=title,
            content=content,
            project_id=project_id,
            uploaded_by=uploaded_by,
            source=source,
            url=url,
            processing_notes=processing_notes,
            file_name=file_name,
            file_type=file_type,
        )
        return self._insert("newsArticles", article)

    def upload_article_file(
        self,
        title: str,
        project_id: str,
        uploaded_by: str,
        file_name: str,
        file_data: str,
        file_type: str,
        source: Optional[str] = None,
        url: Optional[str] = None,
        processing_notes: Optional[str] = None,
    ) -> NewsArticle:
        """
        Store an uploaded article file.

        Plain text and HTML are decoded from base64 (HTML is reduced to its
        readable text). PDF and Word documents get a placeholder body, as
        does any other type.
        """
        content = decode_article_file(file_name, file_data, file_type)
        return self.create_article(
            title=title,
            content=content,
            project_id=project_id,
            uploaded_by=uploaded_by,
            source=source,
            url=url,
            processing_notes=processing_notes,
            file_name=file_name,
            file_type=file_type,
        )

    def get_articles_by_project(self, project_id: str) -> List[NewsArticle]:
        return self._filter("newsArticles", lambda a: a.project_id == project_id)

    def get_article(self, article_id: str) -> NewsArticle:
        return self._require("newsArticles", article_id, "News article")

    def update_article(self, article_id: str, updates: Dict[str, Any]) -> NewsArticle:
        return self._update("newsArticles", article_id, "News article", updates)

    def delete_article(self, article_id: str) -> None:
        self._require("newsArticles", article_id, "News article")
        self._remove("newsArticles", lambda a: a.id == article_id)
        self.save_data()

    # --- creative strategy ---

    def create_creative_strategy(self, strategy: CreativeStrategy) -> CreativeStrategy:
        """Store a strategy as a fresh DRAFT at version 1."""
        strategy = strategy.model_copy(update={"version": 1, "status": CreativeStrategyStatus.DRAFT})
        return self._insert("creativeStrategies", strategy)

    def get_creative_strategy(self, project_id: str) -> Optional[CreativeStrategy]:
        """Latest strategy for a project, or None."""
        strategies = self._filter("creativeStrategies", lambda s: s.project_id == project_id)
        if not strategies:
            return None
        return max(strategies, key=lambda s: (s.updated_at or s.created_at, s.version))

    def get_creative_strategy_by_id(self, strategy_id: str) -> CreativeStrategy:
        return self._require("creativeStrategies", strategy_id, "Creative strategy")

    def update_creative_strategy(self, strategy_id: str, updates: Dict[str, Any]) -> CreativeStrategy:
        """Apply updates; ``version`` always increments by exactly one."""
        strategy = self._update(
            "creativeStrategies", strategy_id, "Creative strategy", updates, bump_version=True
        )
        logger.info("Creative strategy %s updated to version %d", strategy.id, strategy.version)
        return strategy

    def set_strategy_status(self, strategy_id: str, status: CreativeStrategyStatus,
                            approved_by: Optional[str] = None) -> CreativeStrategy:
        updates: Dict[str, Any] = {"status": CreativeStrategyStatus(status)}
        if approved_by:
            updates["approved_by"] = approved_by
        return self.update_creative_strategy(strategy_id, updates)

    # --- director notes ---

    def create_director_notes(self, notes: DirectorNotes) -> DirectorNotes:
        return self._insert("directorNotes", notes.model_copy(update={"version": 1}))

    def get_director_notes(self, project_id: str) -> Optional[DirectorNotes]:
        """Latest director notes for a project, or None."""
        notes = self._filter("directorNotes", lambda n: n.project_id == project_id)
        if not notes:
            return None
        return max(notes, key=lambda n: (n.updated_at or n.created_at, n.version))

    def update_director_notes(self, notes_id: str, updates: Dict[str, Any]) -> DirectorNotes:
        return self._update("directorNotes", notes_id, "Director notes", updates, bump_version=True)

    # --- scripts, shots, sound, prompts ---

    def create_script(self, script: Script) -> Script:
        return self._insert("scripts", script)

    def get_script(self, script_id: str) -> Script:
        return self._require("scripts", script_id, "Script")

    def get_scripts_by_project(self, project_id: str) -> List[Script]:
        return self._filter("scripts", lambda s: s.project_id == project_id)

    def update_script(self, script_id: str, updates: Dict[str, Any]) -> Script:
        return self._update("scripts", script_id, "Script", updates, bump_version=True)

    def create_shot(self, shot: Shot) -> Shot:
        """Store a shot. Shots over 8 seconds are accepted with a warning."""
        if shot.exceeds_duration_limit:
            logger.warning(
                "Shot %s (panel %d) is %.1fs, longer than the %ds generation window",
                shot.id, shot.panel_number, shot.length_seconds, MAX_SHOT_SECONDS,
            )
        return self._insert("shots", shot)

    def get_shot(self, shot_id: str) -> Shot:
        return self._require("shots", shot_id, "Shot")

    def get_shots_for_script(self, script_id: str) -> List[Shot]:
        shots = self._filter("shots", lambda s: s.script_id == script_id)
        return sorted(shots, key=lambda s: s.panel_number)

    def create_sound_notes(self, notes: SoundNotes) -> SoundNotes:
        return self._insert("soundNotes", notes)

    def get_sound_notes_for_shot(self, shot_id: str) -> Optional[SoundNotes]:
        notes = self._filter("soundNotes", lambda n: n.shot_id == shot_id)
        return notes[-1] if notes else None

    def create_prompt(self, prompt: VideoPrompt) -> VideoPrompt:
        return self._insert("prompts", prompt)

    def get_prompts_for_shot(self, shot_id: str) -> List[VideoPrompt]:
        return self._filter("prompts", lambda p: p.shot_id == shot_id)

    # --- conversations ---

    def create_conversation(self, project_id: str, participant_personas: List[PersonaType]) -> Conversation:
        conversation = Conversation(project_id=project_id, participant_personas=participant_personas)
        return self._insert("conversations", conversation)

    def get_conversation(self, conversation_id: str) -> Conversation:
        return self._require("conversations", conversation_id, "Conversation")

    def close_conversation(self, conversation_id: str) -> Conversation:
        return self._update("conversations", conversation_id, "Conversation", {"status": "COMPLETED"})

    def add_message(
        self,
        conversation_id: str,
        sender_persona: str,
        message_content: str,
        message_type: str = "TEXT",
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Message:
        self._require("conversations", conversation_id, "Conversation")
        message = Message(
            conversation_id=conversation_id,
            sender_persona=sender_persona,
            message_content=message_content,
            message_type=message_type,
            metadata=metadata or {},
        )
        return self._insert("messages", message)

    def get_conversation_messages(self, conversation_id: str) -> List[Message]:
        messages = self._filter("messages", lambda m: m.conversation_id == conversation_id)
        return sorted(messages, key=lambda m: m.created_at)

    # --- diagnostics ---

    def test_connection(self) -> Dict[str, int]:
        return {
            "userCount": len(self._collections["users"]),
            "projectCount": len(self._collections["projects"]),
            "articlesCount": len(self._collections["newsArticles"]),
        }

    def get_stats(self) -> Dict[str, Any]:
        stats: Dict[str, Any] = {name: len(records) for name, records in self._collections.items()}
        stats["dataFile"] = str(self.data_file) if self.data_file else None
        return stats

    def get_project_stats(self, project_id: str) -> Dict[str, Any]:
        """Per-project record counts plus total storyboard duration."""
        self._require("projects", project_id, "Project")
        scripts = self.get_scripts_by_project(project_id)
        script_ids = {s.id for s in scripts}
        shots = self._filter("shots", lambda s: s.script_id in script_ids)
        conversation_ids = {
            c.id for c in self._filter("conversations", lambda c: c.project_id == project_id)
        }
        return {
            "articles": len(self.get_articles_by_project(project_id)),
            "directorNotes": len(self._filter("directorNotes", lambda n: n.project_id == project_id)),
            "scripts": len(scripts),
            "shots": len(shots),
            "totalDurationSeconds": sum(s.length_seconds for s in shots),
            "conversations": len(conversation_ids),
            "messages": len(self._filter("messages", lambda m: m.conversation_id in conversation_ids)),
        }


def decode_article_file(file_name: str, file_data: str, file_type: str) -> str:
    """
    Turn an uploaded file payload into article text.

    Args:
        file_name: Original file name
        file_data: Base64 encoded file content
        file_type: MIME type reported by the uploader

    Returns:
        Article body text

    Raises:
        ValidationError: If a text payload is not valid base64 / UTF-8
    """
    file_type = (file_type or "").lower()
    if "text/plain" in file_type or "text/html" in file_type:
        try:
            text = base64.b64decode(file_data, validate=True).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError) as e:
            raise ValidationError(f"Could not decode {file_name}: {e}")
        return extract_text_from_html(text) if "html" in file_type else text
    if "pdf" in file_type or "doc" in file_type:
        return (
            f"[Processed content from {file_name}]\n\n"
            f"Text extraction for {file_type} files is not available; "
            "paste the article text to use it for generation."
        )
    return f"[File content from {file_name}]"
