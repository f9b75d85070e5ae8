# ABOUTME: Derives session signals (trend, frustration, engagement) from recent attempts.
# ABOUTME: Adapts the user's level, difficulty and coaching tone without touching stored progress.

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Callable, Dict, List, Mapping, Optional, Sequence

import numpy as np

from .config import EngineConfig
from .progress_store import utc_now
from .schemas import (
    DIMENSION_WEIGHTS,
    Attempt,
    DifficultyConfig,
    GuidanceResult,
    LearningPreferences,
    SessionAnalytics,
    SessionContext,
    UserLevel,
)

logger = logging.getLogger(__name__)

TREND_LIMIT = 10.0
DEFAULT_DIFFICULTY = 60.0
VARIANCE_TRIGGER = 400.0  # sigma > 20 across the last three scores
HISTORY_LIMIT = 50
HISTORY_KEEP = 30


@dataclass
class LearningHistoryEntry:
    timestamp: datetime
    overall_level: float
    skill_levels: Mapping[str, float]
    performance: List[int]


@dataclass
class AdaptationHistoryEntry:
    timestamp: datetime
    trigger: str
    adjustments: Mapping[str, float]
    effectiveness: float


@dataclass
class StabilityFactors:
    mood_consistency: float = 0.7
    performance_variability: float = 0.5
    engagement_reliability: float = 0.6


@dataclass
class AdaptiveProfile:
    """Rolling per-user state used to bias recomputation; not a source of truth."""

    user_id: str
    baseline_level: UserLevel
    preferences: LearningPreferences = field(default_factory=LearningPreferences)
    stability: StabilityFactors = field(default_factory=StabilityFactors)
    learning_history: List[LearningHistoryEntry] = field(default_factory=list)
    adaptation_history: List[AdaptationHistoryEntry] = field(default_factory=list)
    last_updated: Optional[datetime] = None


# ----- pure signal helpers -----


def linear_trend(values: Sequence[float]) -> float:
    """Ordinary least-squares slope of ``values`` against their index."""
    if len(values) < 2:
        return 0.0
    x = np.arange(len(values), dtype=float)
    y = np.asarray(values, dtype=float)
    denom = len(x) * np.sum(x * x) - np.sum(x) ** 2
    if denom == 0:
        return 0.0
    return float((len(x) * np.sum(x * y) - np.sum(x) * np.sum(y)) / denom)


def recent_vs_early(values: Sequence[float], recent: int = 3) -> float:
    """Mean of the last ``recent`` values minus the mean of the earlier ones."""
    if len(values) < 2:
        return 0.0
    early = values[: max(1, len(values) - recent)]
    return float(np.mean(values[-recent:]) - np.mean(early))


def trailing_failures(attempts: Sequence[Attempt]) -> int:
    count = 0
    for attempt in reversed(attempts):
        if attempt.completed:
            break
        count += 1
    return count


def score_variance(attempts: Sequence[Attempt]) -> float:
    if not attempts:
        return 0.0
    return float(np.var([a.overall for a in attempts]))


def _clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return float(max(low, min(high, value)))


class AdaptiveGuidance:
    """
    Produces an adapted view of a learner for the next stage.

    Results are derived from the caller-supplied baseline, attempts and
    session context; calling repeatedly and discarding results is safe.
    """

    def __init__(self, config: Optional[EngineConfig] = None, clock: Callable[[], datetime] = utc_now):
        self.config = config or EngineConfig()
        self._clock = clock
        self._profiles: Dict[str, AdaptiveProfile] = {}

    def get_profile(self, user_id: str) -> Optional[AdaptiveProfile]:
        return self._profiles.get(user_id)

    def generate_guidance(
        self,
        user_id: str,
        session_context: SessionContext,
        baseline_user_level: UserLevel,
        recent_attempts: Sequence[Attempt],
    ) -> GuidanceResult:
        attempts = list(recent_attempts)
        profile = self._update_profile(user_id, baseline_user_level, attempts)
        analytics = self.analyze_session(user_id, session_context, attempts)

        if analytics.adaptation_needed:
            logger.info(
                "Adaptation triggered user=%s trigger=%s trend=%.2f frustration=%.1f",
                user_id,
                analytics.adaptation_trigger,
                analytics.performance_trend,
                analytics.frustration_level,
            )

        result = GuidanceResult(
            adapted_user_level=self._adapted_user_level(profile, baseline_user_level, analytics),
            difficulty_config=self.difficulty_config(analytics),
            learning_preferences=self._learning_preferences(profile, analytics),
            session_analytics=analytics,
        )
        logger.debug("Generated guidance for user=%s: %s", user_id, result.difficulty_config)
        return result

    # ----- session analysis -----

    def analyze_session(
        self, user_id: str, context: SessionContext, attempts: Sequence[Attempt]
    ) -> SessionAnalytics:
        return SessionAnalytics(
            user_id=user_id,
            context=context,
            performance_trend=self.performance_trend(attempts),
            skill_trends=self.skill_trends(attempts),
            engagement_level=self.engagement_level(attempts, context),
            frustration_level=self.frustration_level(attempts),
            optimal_difficulty=self.optimal_difficulty(attempts),
            recommended_pace=self.recommended_pace(context, attempts),
            adaptation_needed=self.adaptation_needed(attempts),
            adaptation_trigger=self.adaptation_trigger(attempts),
        )

    def performance_trend(self, attempts: Sequence[Attempt]) -> float:
        window = attempts[-self.config.performance_window :]
        slope = linear_trend([a.overall for a in window])
        return _clamp(slope, -TREND_LIMIT, TREND_LIMIT)

    @staticmethod
    def skill_trends(attempts: Sequence[Attempt]) -> Dict[str, float]:
        if len(attempts) < 2:
            return {}
        series: Dict[str, List[float]] = defaultdict(list)
        for attempt in attempts:
            for skill, value in attempt.score.dimensions.items():
                series[skill].append(value)
        return {skill: recent_vs_early(values) for skill, values in series.items() if len(values) >= 2}

    @staticmethod
    def engagement_level(attempts: Sequence[Attempt], context: SessionContext) -> float:
        engagement = 50.0
        if attempts:
            avg_time = float(np.mean([a.time_spent_seconds for a in attempts]))
            if avg_time > 120:
                engagement += 10
            elif avg_time < 30:
                engagement -= 10

        if context.energy_level == "high":
            engagement += 15
        elif context.energy_level == "low":
            engagement -= 10

        if context.parent_presence:
            engagement += 10
        return _clamp(engagement)

    @staticmethod
    def frustration_level(attempts: Sequence[Attempt]) -> float:
        if not attempts:
            return 0.0
        recent = list(attempts[-3:])
        frustration = trailing_failures(recent) * 20.0

        if len(recent) >= 2:
            trend = recent_vs_early([a.overall for a in recent])
            if trend < -5:
                frustration += abs(trend) * 2

        # Very short attempts read as rushing.
        if float(np.mean([a.time_spent_seconds for a in recent])) < 15:
            frustration += 15
        return _clamp(frustration)

    def optimal_difficulty(self, attempts: Sequence[Attempt]) -> float:
        if not attempts:
            return DEFAULT_DIFFICULTY
        window = attempts[-self.config.performance_window :]
        avg_score = float(np.mean([a.overall for a in window]))
        success_rate = sum(1 for a in window if a.completed) / len(window)

        if avg_score > 85 and success_rate > 0.8:
            return min(90.0, avg_score + 5)
        if avg_score < 60 or success_rate < 0.4:
            return max(40.0, avg_score - 10)
        return avg_score

    @staticmethod
    def recommended_pace(context: SessionContext, attempts: Sequence[Attempt]) -> str:
        if context.energy_level == "low" or context.session_length == "short":
            return "slow"
        if context.energy_level == "high" and context.session_length == "long":
            return "fast"
        if attempts:
            avg_score = float(np.mean([a.overall for a in attempts]))
            if avg_score > 80:
                return "fast"
            if avg_score < 60:
                return "slow"
        return "normal"

    def adaptation_needed(self, attempts: Sequence[Attempt]) -> bool:
        if len(attempts) < self.config.min_data_points:
            return False
        recent = attempts[-3:]
        return trailing_failures(recent) >= 2 or score_variance(recent) > VARIANCE_TRIGGER

    @staticmethod
    def adaptation_trigger(attempts: Sequence[Attempt]) -> str:
        if trailing_failures(attempts) >= 2:
            return "consecutive_failures"
        if score_variance(attempts[-3:]) > VARIANCE_TRIGGER:
            return "high_variability"
        return "routine_adjustment"

    # ----- difficulty -----

    def difficulty_config(self, analytics: SessionAnalytics) -> DifficultyConfig:
        return DifficultyConfig(
            adaptive_level=analytics.optimal_difficulty,
            skill_weights=self.skill_weights(analytics.skill_trends),
            hint_frequency=self.hint_frequency(analytics),
            example_complexity=self.example_complexity(analytics.optimal_difficulty),
            evaluation_strict=self.evaluation_strictness(analytics),
        )

    @staticmethod
    def skill_weights(skill_trends: Mapping[str, float]) -> Dict[str, float]:
        """Boost skills that are slipping, then renormalise to sum to one."""
        weights = dict(DIMENSION_WEIGHTS)
        for skill, trend in skill_trends.items():
            if trend < -5 and skill in weights:
                weights[skill] = min(0.4, weights[skill] + 0.1)
        total = sum(weights.values())
        return {skill: weight / total for skill, weight in weights.items()}

    @staticmethod
    def hint_frequency(analytics: SessionAnalytics) -> str:
        if analytics.frustration_level > 50 or analytics.performance_trend < -5:
            return "frequent"
        if analytics.engagement_level > 80 and analytics.performance_trend > 0:
            return "minimal"
        return "normal"

    @staticmethod
    def example_complexity(level: float) -> str:
        if level < 50:
            return "simple"
        if level > 75:
            return "complex"
        return "moderate"

    @staticmethod
    def evaluation_strictness(analytics: SessionAnalytics) -> float:
        strictness = 0.7
        if analytics.frustration_level > 50:
            strictness -= 0.2
        if analytics.performance_trend > 5:
            strictness += 0.1
        return _clamp(strictness, 0.4, 0.9)

    # ----- adapted level and preferences -----

    def _adapted_user_level(
        self, profile: AdaptiveProfile, baseline: UserLevel, analytics: SessionAnalytics
    ) -> UserLevel:
        confidence_adjustment = (profile.stability.performance_variability - 0.5) * 10
        context_adjustment = {"high": 5.0, "low": -5.0}.get(analytics.context.energy_level, 0.0)

        skills = {}
        for skill, base in baseline.skills.items():
            trend = analytics.skill_trends.get(skill, 0.0)
            total = trend * 0.4 + confidence_adjustment * 0.3 + context_adjustment * 0.3
            skills[skill] = _clamp(base + total)

        overall = float(np.mean(list(skills.values()))) if skills else baseline.overall
        confidence = _clamp(
            50
            + analytics.performance_trend * 2
            - analytics.frustration_level * 0.3
            + (analytics.engagement_level - 50) * 0.5
        )
        return replace(
            baseline,
            overall=overall,
            skills=skills,
            confidence=confidence,
            engagement=analytics.engagement_level,
        )

    @staticmethod
    def _learning_preferences(profile: AdaptiveProfile, analytics: SessionAnalytics) -> LearningPreferences:
        prefs = profile.preferences
        pace, feedback, encouragement = prefs.pace, prefs.feedback, prefs.encouragement

        if analytics.frustration_level > 60:
            pace = "slow"
        elif analytics.engagement_level > 80 and analytics.performance_trend > 0:
            pace = "fast"

        if analytics.context.energy_level == "low":
            feedback = "summary"
        elif analytics.engagement_level > 70:
            feedback = "immediate"

        if analytics.frustration_level > 40:
            encouragement = "gentle"
        elif analytics.performance_trend > 5:
            encouragement = "enthusiastic"

        return LearningPreferences(
            pace=pace, feedback=feedback, encouragement=encouragement, complexity=prefs.complexity
        )

    # ----- profile -----

    def _update_profile(
        self, user_id: str, baseline: UserLevel, attempts: Sequence[Attempt]
    ) -> AdaptiveProfile:
        now = self._clock()
        profile = self._profiles.get(user_id)
        if profile is None:
            profile = AdaptiveProfile(user_id=user_id, baseline_level=baseline)
            self._profiles[user_id] = profile

        profile.learning_history.append(
            LearningHistoryEntry(
                timestamp=now,
                overall_level=baseline.overall,
                skill_levels=dict(baseline.skills),
                performance=[a.overall for a in attempts[-3:]],
            )
        )
        if len(profile.learning_history) > HISTORY_LIMIT:
            profile.learning_history = profile.learning_history[-HISTORY_KEEP:]

        profile.adaptation_history.append(
            AdaptationHistoryEntry(
                timestamp=now,
                trigger=self.adaptation_trigger(attempts),
                adjustments=self._necessary_adjustments(attempts),
                effectiveness=self._last_adaptation_effectiveness(profile),
            )
        )
        if len(profile.adaptation_history) > HISTORY_LIMIT:
            profile.adaptation_history = profile.adaptation_history[-HISTORY_KEEP:]
        profile.last_updated = now
        return profile

    @staticmethod
    def _necessary_adjustments(attempts: Sequence[Attempt]) -> Dict[str, float]:
        if not attempts:
            return {"difficulty_adjustment": 0.0, "pace_adjustment": 0.0}
        avg_score = float(np.mean([a.overall for a in attempts]))
        if avg_score < 60:
            difficulty = -10.0
        elif avg_score > 85:
            difficulty = 5.0
        else:
            difficulty = 0.0
        pace = -1.0 if trailing_failures(attempts) >= 2 else 0.0
        return {"difficulty_adjustment": difficulty, "pace_adjustment": pace}

    @staticmethod
    def _last_adaptation_effectiveness(profile: AdaptiveProfile) -> float:
        """Compare overall level before and after the latest adaptations, mapped to [0, 1]."""
        if len(profile.adaptation_history) < 2:
            return 0.5
        recent = profile.learning_history[-5:]
        if len(recent) < 3:
            return 0.5
        before = np.mean([h.overall_level for h in recent[:2]])
        after = np.mean([h.overall_level for h in recent[-2:]])
        return _clamp((after - before + 20) / 40, 0.0, 1.0)
