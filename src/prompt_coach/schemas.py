# ABOUTME: Defines the value objects exchanged between the engine components.
# ABOUTME: Centralizes score, attempt, skill, session and achievement schemas.

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Deque, Dict, List, Mapping, Optional, Tuple

DIMENSIONS: Tuple[str, ...] = ("clarity", "detail", "emotion", "visual", "structure")

DIMENSION_WEIGHTS: Mapping[str, float] = {
    "clarity": 0.25,
    "detail": 0.2,
    "emotion": 0.2,
    "visual": 0.2,
    "structure": 0.15,
}

IMPROVEMENT_CUTOFF = 60
STRENGTH_CUTOFF = 80


@dataclass(frozen=True)
class Dimensions:
    """Per-dimension prompt quality, each in [0, 100]."""

    clarity: float
    detail: float
    emotion: float
    visual: float
    structure: float

    def as_dict(self) -> Dict[str, float]:
        return {name: getattr(self, name) for name in DIMENSIONS}

    def items(self) -> List[Tuple[str, float]]:
        return [(name, getattr(self, name)) for name in DIMENSIONS]

    def get(self, name: str, default: Optional[float] = None) -> Optional[float]:
        if name in DIMENSIONS:
            return getattr(self, name)
        return default


@dataclass(frozen=True)
class QualityScore:
    """Scored prompt. ``overall`` is the weighted sum of ``dimensions``."""

    overall: int
    dimensions: Dimensions
    improvement_areas: Tuple[str, ...]
    strengths: Tuple[str, ...]
    confidence: float


class Priority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        return {"high": 3, "medium": 2, "low": 1}[self.value]


@dataclass(frozen=True)
class Suggestion:
    kind: str  # add / modify / remove / restructure
    priority: Priority
    category: str
    suggested_text: str
    explanation: str
    example: Optional[str] = None


@dataclass(frozen=True)
class PromptAnalysis:
    """Score plus coaching hints for one prompt."""

    text: str
    score: QualityScore
    suggestions: Tuple[Suggestion, ...]
    child_level: str
    weakest_dimension: str
    estimated_video_quality: int


@dataclass(frozen=True)
class SuccessCriteria:
    """Pass rule for a stage, supplied by the template content system."""

    minimum_score: float = 80
    required_dimensions: Tuple[str, ...] = ()
    skill_thresholds: Mapping[str, float] = field(default_factory=dict)

    def is_met(self, score: QualityScore) -> bool:
        if score.overall < self.minimum_score:
            return False
        for dimension in self.required_dimensions:
            threshold = self.skill_thresholds.get(dimension)
            if threshold is None:
                continue
            value = score.dimensions.get(dimension)
            if value is None or value < threshold:
                return False
        return True


@dataclass(frozen=True)
class Attempt:
    """One scored submission; never mutated after creation."""

    id: str
    stage_id: str
    timestamp: datetime
    prompt_text: str
    score: QualityScore
    time_spent_seconds: float
    completed: bool

    @property
    def overall(self) -> int:
        return self.score.overall


@dataclass
class SkillProgress:
    skill: str
    current_level: float
    improvement: float = 0.0
    practice_count: int = 0
    last_practiced_at: Optional[datetime] = None
    trend_window: Deque[float] = field(default_factory=lambda: deque(maxlen=10))


@dataclass
class Progress:
    """Learning session state for one (user, template) key."""

    user_id: str
    template_id: str
    current_stage: str
    started_at: datetime
    last_active_at: datetime
    completed_stages: List[str] = field(default_factory=list)
    skill_progress: Dict[str, SkillProgress] = field(default_factory=dict)
    attempts: List[Attempt] = field(default_factory=list)
    total_time_spent: float = 0.0


@dataclass(frozen=True)
class UserLevel:
    overall: float
    skills: Mapping[str, float]
    confidence: float
    engagement: float
    parent_support: float
    learning_style: str  # visual / auditory / kinesthetic / mixed


@dataclass(frozen=True)
class SessionContext:
    """Situational signal supplied by the caller for a session."""

    time_of_day: str = "afternoon"  # morning / afternoon / evening
    session_length: str = "medium"  # short / medium / long
    energy_level: str = "medium"  # low / medium / high
    previous_performance: float = 0.0
    parent_presence: bool = False


@dataclass(frozen=True)
class SessionAnalytics:
    user_id: str
    context: SessionContext
    performance_trend: float
    skill_trends: Mapping[str, float]
    engagement_level: float
    frustration_level: float
    optimal_difficulty: float
    recommended_pace: str
    adaptation_needed: bool
    adaptation_trigger: str


@dataclass(frozen=True)
class DifficultyConfig:
    adaptive_level: float
    skill_weights: Mapping[str, float]
    hint_frequency: str  # minimal / normal / frequent
    example_complexity: str  # simple / moderate / complex
    evaluation_strict: float


@dataclass(frozen=True)
class LearningPreferences:
    pace: str = "normal"  # slow / normal / fast
    feedback: str = "immediate"  # immediate / delayed / summary
    encouragement: str = "balanced"  # gentle / enthusiastic / balanced
    complexity: str = "adaptive"  # gradual / challenge / adaptive


@dataclass(frozen=True)
class GuidanceResult:
    adapted_user_level: UserLevel
    difficulty_config: DifficultyConfig
    learning_preferences: LearningPreferences
    session_analytics: SessionAnalytics


@dataclass(frozen=True)
class Achievement:
    """An unlocked achievement instance; never revoked."""

    id: str
    unlocked_at: datetime
    title: str = ""
    rarity: str = "common"


@dataclass(frozen=True)
class AchievementProgress:
    achievement_id: str
    current: float
    target: float
    percentage: float
