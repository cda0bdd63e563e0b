"""
Project Director - workflow monitoring, health checks and strategic guidance.

The health check walks six fixed production stages, derives completion from
the records in the datastore, collects quality issues and rolls everything
up into an overall health rating.
"""

import logging
import time
from dataclasses import asdict, dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Literal, Optional

from satire_engine.core.config import MAX_SHOT_SECONDS
from satire_engine.core.enums import PersonaType, SatiricalFormat
from satire_engine.core.errors import ConfigurationError
from satire_engine.storage.datastore import JsonDatastore
from satire_engine.storage.models import (
    CreativeStrategy,
    NewsArticle,
    Project,
    Script,
    Shot,
    SoundNotes,
    VideoPrompt,
)

if TYPE_CHECKING:
    from satire_engine.services.llm_service import LLMService

logger = logging.getLogger(__name__)

Severity = Literal["low", "medium", "high"]
IssueType = Literal["format_drift", "consistency_error", "workflow_gap", "quality_concern"]
StageQuality = Literal["excellent", "good", "needs_work", "not_started"]
OverallHealth = Literal["excellent", "good", "needs_attention", "critical"]

MIN_RESPONSE_LENGTH = 50
MAX_RECOMMENDATIONS = 5

FORMAT_KEYWORDS: Dict[SatiricalFormat, List[str]] = {
    SatiricalFormat.NEWS_PARODY: ["news", "anchor", "breaking", "report"],
    SatiricalFormat.VOX_POP: ["street", "interview", "public", "opinion"],
    SatiricalFormat.MORNING_TV_INTERVIEW: ["breakfast", "morning", "guest", "sofa"],
    SatiricalFormat.PANEL_SHOW: ["panel", "comedians", "host", "discussion"],
    SatiricalFormat.MOCKUMENTARY: ["documentary", "talking head", "camera crew", "interview"],
    SatiricalFormat.SOCIAL_MEDIA: ["viral", "tiktok", "vertical", "trending"],
    SatiricalFormat.SKETCH_COMEDY: ["sketch", "character", "scene", "punchline"],
    SatiricalFormat.SATIRICAL_ARTICLE: ["headline", "byline", "article", "column"],
    SatiricalFormat.COMMERCIAL_PARODY: ["advert", "product", "jingle", "spokesperson"],
    SatiricalFormat.REALITY_TV_PARODY: ["reality", "confessional", "contestant", "drama"],
}

UNAVAILABLE_MESSAGE = "Project Director unavailable. Please ensure proper initialization."
NO_GUIDANCE_MESSAGE = "Unable to provide guidance at this time."
GUIDANCE_ERROR_MESSAGE = "Error generating strategic guidance. Please try again."


@dataclass
class QualityIssue:
    type: IssueType
    severity: Severity
    description: str
    suggested_fix: str
    affected_section: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class WorkflowStage:
    name: str
    completed: bool
    quality: StageQuality
    recommendations: List[str] = field(default_factory=list)


@dataclass
class ProjectHealthCheck:
    overall_health: OverallHealth
    format_consistency: bool
    workflow_progress: int
    recommendations: List[str] = field(default_factory=list)
    next_steps: List[str] = field(default_factory=list)
    quality_issues: List[QualityIssue] = field(default_factory=list)
    stages: List[WorkflowStage] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ProjectSnapshot:
    """Everything the director reads about one project."""

    project: Project
    articles: List[NewsArticle] = field(default_factory=list)
    strategy: Optional[CreativeStrategy] = None
    scripts: List[Script] = field(default_factory=list)
    shots: List[Shot] = field(default_factory=list)
    sound_notes: Dict[str, SoundNotes] = field(default_factory=dict)
    prompts: Dict[str, List[VideoPrompt]] = field(default_factory=dict)


class ProjectDirectorService:
    """Monitors one project at a time."""

    def __init__(self, datastore: JsonDatastore, llm_service: Optional["LLMService"] = None):
        self.datastore = datastore
        self.llm_service = llm_service
        self.snapshot: Optional[ProjectSnapshot] = None

    @property
    def is_initialized(self) -> bool:
        return self.snapshot is not None

    def initialize_for_project(self, project_id: str) -> ProjectSnapshot:
        """
        Load a project and its production records for monitoring.

        Raises:
            NotFoundError: If the project does not exist
        """
        project = self.datastore.get_project(project_id)
        scripts = self.datastore.get_scripts_by_project(project_id)
        shots = [shot for script in scripts for shot in self.datastore.get_shots_for_script(script.id)]

        sound_notes = {}
        prompts = {}
        for shot in shots:
            notes = self.datastore.get_sound_notes_for_shot(shot.id)
            if notes is not None:
                sound_notes[shot.id] = notes
            shot_prompts = self.datastore.get_prompts_for_shot(shot.id)
            if shot_prompts:
                prompts[shot.id] = shot_prompts

        self.snapshot = ProjectSnapshot(
            project=project,
            articles=self.datastore.get_articles_by_project(project_id),
            strategy=self.datastore.get_creative_strategy(project_id),
            scripts=scripts,
            shots=shots,
            sound_notes=sound_notes,
            prompts=prompts,
        )
        logger.info("Project Director initialized for project: %s", project_id)
        return self.snapshot

    def refresh(self) -> ProjectSnapshot:
        if not self.is_initialized:
            raise ConfigurationError("Project Director not initialized")
        return self.initialize_for_project(self.snapshot.project.id)

    # --- health check ---

    def perform_health_check(self) -> ProjectHealthCheck:
        """
        Assess the monitored project.

        Returns:
            ProjectHealthCheck; a critical fallback report if assessment fails

        Raises:
            ConfigurationError: If no project has been initialised
        """
        if not self.is_initialized:
            raise ConfigurationError("Project Director not initialized")

        try:
            stages = self.analyze_workflow_progress()
            format_consistency = self.check_format_consistency()
            issues = self.identify_quality_issues()
            progress = calculate_progress(stages)
            return ProjectHealthCheck(
                overall_health=determine_overall_health(progress, format_consistency, issues),
                format_consistency=format_consistency,
                workflow_progress=progress,
                recommendations=self.generate_recommendations(stages, issues),
                next_steps=generate_next_steps(stages),
                quality_issues=issues,
                stages=stages,
            )
        except Exception:
            logger.error("Project Director health check failed", exc_info=True)
            return ProjectHealthCheck(
                overall_health="critical",
                format_consistency=False,
                workflow_progress=0,
                recommendations=["Unable to assess project health. Please check system configuration."],
                next_steps=["Resolve technical issues before proceeding."],
            )

    def analyze_workflow_progress(self) -> List[WorkflowStage]:
        snapshot = self.snapshot
        article_count = len(snapshot.articles)
        shots = snapshot.shots
        long_shots = [s for s in shots if s.length_seconds > MAX_SHOT_SECONDS]
        shots_with_audio = [s for s in shots if s.id in snapshot.sound_notes]
        shots_with_prompts = [s for s in shots if s.id in snapshot.prompts]

        if article_count == 0:
            article_recommendation = "Upload news articles to begin satirical content creation"
        elif article_count < 3:
            article_recommendation = "Consider adding more articles for richer satirical material"
        else:
            article_recommendation = "Good selection of source material"

        return [
            WorkflowStage(
                name="News Articles",
                completed=article_count > 0,
                quality=_articles_quality(article_count),
                recommendations=[article_recommendation],
            ),
            WorkflowStage(
                name="Creative Strategy",
                completed=snapshot.strategy is not None,
                quality="good" if snapshot.strategy is not None else "not_started",
                recommendations=[
                    "Creative Strategy completed" if snapshot.strategy is not None
                    else "Create Creative Strategy to guide video production"
                ],
            ),
            WorkflowStage(
                name="Script Development",
                completed=bool(snapshot.scripts),
                quality="good" if snapshot.scripts else "not_started",
                recommendations=[
                    f"{len(snapshot.scripts)} script(s) developed" if snapshot.scripts
                    else "Scripts not yet developed"
                ],
            ),
            WorkflowStage(
                name="Visual Storyboard",
                completed=bool(shots),
                quality="not_started" if not shots else "needs_work" if long_shots else "good",
                recommendations=[
                    "Storyboards not yet created" if not shots
                    else f"Trim {len(long_shots)} shot(s) to {MAX_SHOT_SECONDS} seconds or less" if long_shots
                    else f"{len(shots)} shot(s) storyboarded"
                ],
            ),
            WorkflowStage(
                name="Audio Design",
                completed=bool(shots) and len(shots_with_audio) == len(shots),
                quality=_coverage_quality(len(shots), len(shots_with_audio)),
                recommendations=[
                    "Audio design not yet planned" if not shots_with_audio
                    else f"Sound notes cover {len(shots_with_audio)} of {len(shots)} shot(s)"
                ],
            ),
            WorkflowStage(
                name="Video Prompts",
                completed=bool(shots) and len(shots_with_prompts) == len(shots),
                quality=_coverage_quality(len(shots), len(shots_with_prompts)),
                recommendations=[
                    "Video generation prompts not yet created" if not shots_with_prompts
                    else f"Prompts cover {len(shots_with_prompts)} of {len(shots)} shot(s)"
                ],
            ),
        ]

    def check_format_consistency(self) -> bool:
        """False when no format is set or the strategy names a different format."""
        project = self.snapshot.project
        if not project.satirical_format:
            return False
        strategy = self.snapshot.strategy
        if strategy is not None and strategy.satirical_format:
            return strategy.satirical_format == project.satirical_format
        return True

    def identify_quality_issues(self) -> List[QualityIssue]:
        snapshot = self.snapshot
        project = snapshot.project
        issues = []

        if not project.satirical_format:
            issues.append(QualityIssue(
                type="workflow_gap",
                severity="high",
                description="No satirical format selected for project",
                suggested_fix="Select a satirical format in Project Dashboard to guide all AI agents",
                affected_section="Project Setup",
            ))

        if not project.satirical_context:
            issues.append(QualityIssue(
                type="workflow_gap",
                severity="medium",
                description="No satirical lens/perspective selected",
                suggested_fix="Select a satirical lens in Project Dashboard for focused satirical approach",
                affected_section="Project Setup",
            ))

        if not snapshot.articles:
            issues.append(QualityIssue(
                type="workflow_gap",
                severity="high",
                description="No news articles uploaded",
                suggested_fix="Upload news articles to provide source material for satirical content",
                affected_section="Content Sources",
            ))

        strategy = snapshot.strategy
        if (
            strategy is not None
            and strategy.satirical_format
            and project.satirical_format
            and strategy.satirical_format != project.satirical_format
        ):
            issues.append(QualityIssue(
                type="consistency_error",
                severity="medium",
                description=(
                    f"Creative strategy uses {strategy.satirical_format.value} but the project "
                    f"format is {project.satirical_format.value}"
                ),
                suggested_fix="Update the creative strategy or project so both use the same format",
                affected_section="Creative Strategy",
            ))

        long_shots = [s for s in snapshot.shots if s.length_seconds > MAX_SHOT_SECONDS]
        if long_shots:
            issues.append(QualityIssue(
                type="quality_concern",
                severity="low",
                description=f"{len(long_shots)} shot(s) exceed the {MAX_SHOT_SECONDS}-second limit",
                suggested_fix=f"Split or trim shots to {MAX_SHOT_SECONDS} seconds or less",
                affected_section="Visual Storyboard",
            ))

        return issues

    def generate_recommendations(self, stages: List[WorkflowStage], issues: List[QualityIssue]) -> List[str]:
        recommendations = [issue.suggested_fix for issue in issues if issue.severity == "high"]

        next_stage = next((stage for stage in stages if not stage.completed), None)
        if next_stage is not None:
            recommendations.append(f"Focus on {next_stage.name}: {next_stage.recommendations[0]}")

        satirical_format = self.snapshot.project.satirical_format
        if satirical_format:
            recommendations.append(f"Ensure all content aligns with {satirical_format.value} format")

        return recommendations[:MAX_RECOMMENDATIONS]

    # --- monitoring ---

    def monitor_agent_conversation(self, persona: PersonaType, user_message: str,
                                   agent_response: str) -> List[QualityIssue]:
        """
        Check one agent reply for format drift and brevity.

        Returns:
            Detected issues; empty when the director is not initialised
        """
        if not self.is_initialized:
            return []

        persona_value = PersonaType(persona).value
        issues = []
        satirical_format = self.snapshot.project.satirical_format
        if satirical_format and not response_matches_format(agent_response, satirical_format):
            issues.append(QualityIssue(
                type="format_drift",
                severity="medium",
                description=f"{persona_value} response doesn't align with {satirical_format.value} format",
                suggested_fix=f"Ensure response aligns with {satirical_format.value} format conventions",
                affected_section=persona_value,
            ))

        if len(agent_response) < MIN_RESPONSE_LENGTH:
            issues.append(QualityIssue(
                type="quality_concern",
                severity="low",
                description=f"{persona_value} response seems too brief",
                suggested_fix="Encourage more detailed responses from AI agents",
                affected_section=persona_value,
            ))

        for issue in issues:
            logger.info("Quality issue for %s: %s", persona_value, issue.description)
        return issues

    # --- guidance ---

    def get_strategic_guidance(self, query: str) -> str:
        """Ask the Project Director persona for advice on the current project."""
        if self.llm_service is None or not self.is_initialized:
            return UNAVAILABLE_MESSAGE

        try:
            snapshot = self.snapshot
            health = self.perform_health_check()
            context = {
                "project_id": snapshot.project.id,
                "project": snapshot.project,
                "articles": snapshot.articles,
                "existing_strategy": snapshot.strategy,
                "current_health_check": health,
                "user_query": query,
            }
            message = (
                f'The user is asking for strategic guidance: "{query}". Please provide specific, '
                "actionable advice based on the current project state and health check."
                f"\n\n{summarize_health(health)}"
            )
            result = self.llm_service.generate_response(
                f"project_director_{int(time.time() * 1000)}",
                PersonaType.PROJECT_DIRECTOR,
                message,
                context,
            )
        except Exception:
            logger.error("Error getting strategic guidance", exc_info=True)
            return GUIDANCE_ERROR_MESSAGE

        return result.response if result.success else NO_GUIDANCE_MESSAGE


def summarize_health(health: ProjectHealthCheck) -> str:
    """Plain-text health report used in prompts and on the command line."""
    lines = [
        f"Project health: {health.overall_health} ({health.workflow_progress}% complete)",
        f"Format consistency: {'yes' if health.format_consistency else 'no'}",
    ]
    for stage in health.stages:
        lines.append(f"- {stage.name}: {'done' if stage.completed else stage.quality}")
    if health.quality_issues:
        lines.append("Issues:")
        lines += [f"- [{issue.severity}] {issue.description}" for issue in health.quality_issues]
    if health.recommendations:
        lines.append("Recommendations:")
        lines += [f"- {item}" for item in health.recommendations]
    if health.next_steps:
        lines.append("Next steps:")
        lines += [f"- {item}" for item in health.next_steps]
    return "\n".join(lines)


def response_matches_format(response: str, satirical_format: SatiricalFormat) -> bool:
    lowered = response.lower()
    return any(keyword in lowered for keyword in FORMAT_KEYWORDS.get(SatiricalFormat(satirical_format), []))


def calculate_progress(stages: List[WorkflowStage]) -> int:
    if not stages:
        return 0
    completed = sum(1 for stage in stages if stage.completed)
    return round(completed / len(stages) * 100)


def determine_overall_health(progress: int, format_consistency: bool,
                             issues: List[QualityIssue]) -> OverallHealth:
    if any(issue.severity == "high" for issue in issues):
        return "critical"
    if progress < 25 or not format_consistency:
        return "needs_attention"
    if progress < 75 or len(issues) > 2:
        return "good"
    return "excellent"


def generate_next_steps(stages: List[WorkflowStage]) -> List[str]:
    incomplete = [stage for stage in stages if not stage.completed]
    if not incomplete:
        return ["Review and refine all completed work", "Prepare for video generation"]
    steps = [f"Complete {incomplete[0].name}"]
    if len(incomplete) > 1:
        steps.append(f"Prepare for {incomplete[1].name}")
    return steps


def _articles_quality(count: int) -> StageQuality:
    if count >= 3:
        return "excellent"
    if count >= 2:
        return "good"
    if count >= 1:
        return "needs_work"
    return "not_started"


def _coverage_quality(total: int, covered: int) -> StageQuality:
    if total == 0 or covered == 0:
        return "not_started"
    return "good" if covered == total else "needs_work"
