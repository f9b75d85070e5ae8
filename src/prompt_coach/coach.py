# ABOUTME: Wires scorer, progress store, achievements and guidance into one submission flow.
# ABOUTME: Returns every derived value and event explicitly for the UI layer to render.

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional

from .achievements import AchievementEngine, load_definitions
from .adaptive_guidance import AdaptiveGuidance
from .config import EngineConfig
from .events import EngineEvent, EventType
from .progress_store import ProgressStore, utc_now
from .quality_scoring import QualityScorer
from .schemas import (
    Achievement,
    Attempt,
    GuidanceResult,
    PromptAnalysis,
    SessionContext,
    SuccessCriteria,
)
from .vocabulary import DEFAULT_VOCABULARY, load_vocabulary


@dataclass(frozen=True)
class SubmissionResult:
    analysis: PromptAnalysis
    attempt: Attempt
    events: List[EngineEvent]
    new_achievements: List[Achievement]
    guidance: Optional[GuidanceResult] = None


class LearningCoach:
    """One engine instance: owns its store and unlocked sets for its lifetime."""

    def __init__(self, config: Optional[EngineConfig] = None, clock: Callable[[], datetime] = utc_now):
        self.config = config or EngineConfig()
        vocabulary = (
            load_vocabulary(self.config.vocabulary_path) if self.config.vocabulary_path else DEFAULT_VOCABULARY
        )
        definitions = load_definitions(self.config.achievements_path) if self.config.achievements_path else None

        self.scorer = QualityScorer(vocabulary)
        self.store = ProgressStore(self.config, clock=clock)
        self.guidance = AdaptiveGuidance(self.config, clock=clock)
        self.achievements = AchievementEngine(definitions, vocabulary=vocabulary, clock=clock)

    def submit(
        self,
        user_id: str,
        template_id: str,
        stage_id: str,
        text: str,
        time_spent_seconds: float,
        criteria: Optional[SuccessCriteria] = None,
        session_context: Optional[SessionContext] = None,
    ) -> SubmissionResult:
        """Score, record, check achievements and, given a context, adapt guidance."""

        # Creates the session on the first submission only.
        self.store.start_session(user_id, template_id, stage_id)
        analysis = self.scorer.analyze(text, self.config.max_suggestions)
        attempt = self.store.record_attempt(
            user_id, template_id, stage_id, text, analysis.score, time_spent_seconds, criteria
        )

        new_achievements = self.achievements.check_achievements(
            user_id,
            self.store.get_skill_progress(user_id, template_id),
            self.store.get_attempts(user_id),
            self.store.completed_templates(user_id),
            now=attempt.timestamp,
        )

        events = self.store.drain_events(user_id, template_id)
        events.extend(
            EngineEvent(
                type=EventType.ACHIEVEMENT_UNLOCKED,
                user_id=user_id,
                template_id=template_id,
                timestamp=achievement.unlocked_at,
                data={"achievement_id": achievement.id, "title": achievement.title, "rarity": achievement.rarity},
            )
            for achievement in new_achievements
        )

        guidance = None
        if session_context is not None:
            guidance = self.guidance.generate_guidance(
                user_id,
                session_context,
                self.store.get_user_level(user_id),
                self.store.get_attempts(user_id, template_id),
            )

        return SubmissionResult(
            analysis=analysis,
            attempt=attempt,
            events=events,
            new_achievements=new_achievements,
            guidance=guidance,
        )
