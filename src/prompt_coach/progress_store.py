# ABOUTME: Tracks learning sessions, attempt history and smoothed skill levels.
# ABOUTME: Owns per-(user, template) progress and queues notification events.

from __future__ import annotations

import logging
import threading
import uuid
from collections import defaultdict, deque
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Tuple

import numpy as np

from .config import EngineConfig
from .errors import SessionNotFoundError
from .events import EngineEvent, EventType
from .schemas import (
    Attempt,
    Progress,
    QualityScore,
    SkillProgress,
    SuccessCriteria,
    UserLevel,
)

logger = logging.getLogger(__name__)

ProgressKey = Tuple[str, str]

LEARNING_STYLE_BY_DIMENSION = {
    "visual": "visual",
    "emotion": "auditory",
    "detail": "kinesthetic",
}
MIN_ATTEMPTS_FOR_STYLE = 5


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def smooth_level(previous_level: float, raw_score: float, factor: float = 0.3) -> float:
    """Exponential moving average step: ``factor`` weight on the new observation."""
    return previous_level * (1 - factor) + raw_score * factor


class ProgressStore:
    """
    In-memory progress for every (user, template) pair.

    The store is an ordinary object: create one per process or per test.
    Nothing is persisted, so history is lost when the store is discarded.
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.config = config or EngineConfig()
        self._clock = clock
        self._progress: Dict[ProgressKey, Progress] = {}
        self._locks: Dict[ProgressKey, threading.Lock] = defaultdict(threading.Lock)
        self._locks_guard = threading.Lock()
        self._events: List[EngineEvent] = []
        self._events_guard = threading.Lock()

    # ----- sessions and attempts -----

    def start_session(self, user_id: str, template_id: str, initial_stage_id: str) -> Progress:
        """Return the existing progress for the key, creating an empty one if needed."""

        key = (user_id, template_id)
        with self._lock_for(key):
            now = self._clock()
            progress = self._progress.get(key)
            if progress is None:
                progress = Progress(
                    user_id=user_id,
                    template_id=template_id,
                    current_stage=initial_stage_id,
                    started_at=now,
                    last_active_at=now,
                )
                self._progress[key] = progress
                logger.info("Started learning session user=%s template=%s", user_id, template_id)
                self._emit(EventType.TEMPLATE_STARTED, progress, now, {"stage_id": initial_stage_id})
            progress.last_active_at = now
        return progress

    def record_attempt(
        self,
        user_id: str,
        template_id: str,
        stage_id: str,
        text: str,
        score: QualityScore,
        time_spent_seconds: float,
        criteria: Optional[SuccessCriteria] = None,
    ) -> Attempt:
        key = (user_id, template_id)
        if key not in self._progress:
            raise SessionNotFoundError(user_id, template_id)

        criteria = criteria or SuccessCriteria(minimum_score=self.config.mastery_threshold)
        with self._lock_for(key):
            progress = self._progress[key]
            now = self._clock()
            attempt = Attempt(
                id=f"attempt_{uuid.uuid4().hex[:12]}",
                stage_id=stage_id,
                timestamp=now,
                prompt_text=text,
                score=score,
                time_spent_seconds=float(time_spent_seconds),
                completed=criteria.is_met(score),
            )

            progress.attempts.append(attempt)
            progress.total_time_spent += attempt.time_spent_seconds
            progress.current_stage = stage_id
            progress.last_active_at = now

            self._update_skills(progress, score, now)

            if attempt.completed and stage_id not in progress.completed_stages:
                progress.completed_stages.append(stage_id)
                logger.info(
                    "Stage completed user=%s template=%s stage=%s score=%d",
                    user_id,
                    template_id,
                    stage_id,
                    score.overall,
                )
                self._emit(
                    EventType.STAGE_COMPLETED,
                    progress,
                    now,
                    {"stage_id": stage_id, "score": score.overall, "time_spent": progress.total_time_spent},
                )
        return attempt

    def _update_skills(self, progress: Progress, score: QualityScore, now: datetime) -> None:
        cfg = self.config
        for skill, raw in score.dimensions.items():
            raw = float(np.clip(raw, 0.0, 100.0))
            skill_progress = progress.skill_progress.get(skill)
            if skill_progress is None:
                skill_progress = SkillProgress(
                    skill=skill,
                    current_level=cfg.initial_skill_level,
                    trend_window=deque(maxlen=cfg.trend_window),
                )
                progress.skill_progress[skill] = skill_progress

            previous_level = skill_progress.current_level
            new_level = float(np.clip(smooth_level(previous_level, raw, cfg.smoothing_factor), 0.0, 100.0))
            # Baseline is the oldest raw score still in the window.
            baseline = skill_progress.trend_window[0] if skill_progress.trend_window else previous_level
            improvement = new_level - baseline

            skill_progress.current_level = new_level
            skill_progress.improvement = improvement
            skill_progress.practice_count += 1
            skill_progress.last_practiced_at = now
            skill_progress.trend_window.append(raw)

            if improvement > cfg.skill_improved_threshold:
                logger.info(
                    "Skill improved user=%s skill=%s %.1f -> %.1f",
                    progress.user_id,
                    skill,
                    previous_level,
                    new_level,
                )
                self._emit(
                    EventType.SKILL_IMPROVED,
                    progress,
                    now,
                    {
                        "skill": skill,
                        "previous_level": previous_level,
                        "new_level": new_level,
                        "improvement": improvement,
                    },
                )

    # ----- queries -----

    def get_progress(self, user_id: str, template_id: str) -> Optional[Progress]:
        return self._progress.get((user_id, template_id))

    def user_progresses(self, user_id: str) -> List[Progress]:
        return [p for (uid, _), p in self._progress.items() if uid == user_id]

    def user_ids(self) -> List[str]:
        return sorted({uid for uid, _ in self._progress})

    def get_attempts(self, user_id: str, template_id: Optional[str] = None) -> List[Attempt]:
        """Attempts for one template, or across all of the user's templates, oldest first."""
        if template_id is not None:
            progress = self.get_progress(user_id, template_id)
            return list(progress.attempts) if progress else []
        attempts = [a for p in self.user_progresses(user_id) for a in p.attempts]
        return sorted(attempts, key=lambda a: a.timestamp)

    def get_skill_progress(self, user_id: str, template_id: str) -> List[SkillProgress]:
        progress = self.get_progress(user_id, template_id)
        return list(progress.skill_progress.values()) if progress else []

    def is_template_completed(self, progress: Progress) -> bool:
        return len(progress.completed_stages) >= self.config.template_completion_stages

    def completed_templates(self, user_id: str) -> List[str]:
        return [p.template_id for p in self.user_progresses(user_id) if self.is_template_completed(p)]

    def get_user_level(self, user_id: str) -> UserLevel:
        """Aggregate smoothed skill levels across every template the user practiced."""

        progresses = self.user_progresses(user_id)
        if not progresses:
            return UserLevel(
                overall=0.0,
                skills={},
                confidence=50.0,
                engagement=50.0,
                parent_support=50.0,
                learning_style="mixed",
            )

        levels: Dict[str, List[float]] = defaultdict(list)
        total_attempts = 0
        for progress in progresses:
            total_attempts += len(progress.attempts)
            for skill in progress.skill_progress.values():
                levels[skill.skill].append(skill.current_level)

        skills = {skill: float(np.mean(values)) for skill, values in levels.items()}
        overall = float(np.mean(list(skills.values()))) if skills else 0.0

        return UserLevel(
            overall=overall,
            skills=skills,
            confidence=min(100.0, overall + total_attempts * 2),
            engagement=min(100.0, 50.0 + total_attempts * 3),
            parent_support=70.0,
            learning_style=self._learning_style(progresses),
        )

    @staticmethod
    def _learning_style(progresses: List[Progress]) -> str:
        # Coarse proxy: the strongest historical dimension picks the style.
        attempts = [a for p in progresses for a in p.attempts]
        if len(attempts) < MIN_ATTEMPTS_FOR_STYLE:
            return "mixed"

        by_dimension: Dict[str, List[float]] = defaultdict(list)
        for attempt in attempts:
            for dimension, value in attempt.score.dimensions.items():
                by_dimension[dimension].append(value)

        strongest = max(by_dimension.items(), key=lambda kv: np.mean(kv[1]))[0]
        return LEARNING_STYLE_BY_DIMENSION.get(strongest, "mixed")

    # ----- events -----

    def drain_events(self, user_id: Optional[str] = None, template_id: Optional[str] = None) -> List[EngineEvent]:
        """
        Return and clear queued events, oldest first.

        With ``user_id`` only that user's events are taken (narrowed to one
        template when ``template_id`` is also given); other users' events
        stay queued for their own callers.
        """

        def wanted(event: EngineEvent) -> bool:
            if user_id is None:
                return True
            return event.user_id == user_id and (template_id is None or event.template_id == template_id)

        with self._events_guard:
            taken = [e for e in self._events if wanted(e)]
            self._events = [e for e in self._events if not wanted(e)]
        return taken

    def _emit(self, event_type: EventType, progress: Progress, timestamp: datetime, data: dict) -> None:
        event = EngineEvent(
            type=event_type,
            user_id=progress.user_id,
            template_id=progress.template_id,
            timestamp=timestamp,
            data=data,
        )
        with self._events_guard:
            self._events.append(event)

    def _lock_for(self, key: ProgressKey) -> threading.Lock:
        with self._locks_guard:
            return self._locks[key]
