# ABOUTME: Exposes the adaptive learning-analytics engine for the prompt-writing tutor.
# ABOUTME: Re-exports the scorer, progress store, guidance, achievements and coach facade.

from .achievements import AchievementDefinition, AchievementEngine, Requirement, RequirementKind
from .adaptive_guidance import AdaptiveGuidance
from .coach import LearningCoach, SubmissionResult
from .config import EngineConfig, load_engine_config
from .errors import LearningEngineError, NoProgressError, SessionNotFoundError
from .events import EngineEvent, EventType
from .progress_store import ProgressStore
from .quality_scoring import QualityScorer
from .schemas import Attempt, QualityScore, SessionContext, SkillProgress, SuccessCriteria, UserLevel
from .vocabulary import DEFAULT_VOCABULARY, Vocabulary, load_vocabulary

__all__ = [
    "AchievementDefinition",
    "AchievementEngine",
    "AdaptiveGuidance",
    "Attempt",
    "DEFAULT_VOCABULARY",
    "EngineConfig",
    "EngineEvent",
    "EventType",
    "LearningCoach",
    "LearningEngineError",
    "NoProgressError",
    "ProgressStore",
    "QualityScore",
    "QualityScorer",
    "Requirement",
    "RequirementKind",
    "SessionContext",
    "SessionNotFoundError",
    "SkillProgress",
    "SubmissionResult",
    "SuccessCriteria",
    "UserLevel",
    "Vocabulary",
    "load_engine_config",
    "load_vocabulary",
]
