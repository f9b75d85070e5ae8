# ABOUTME: Evaluates declarative achievement definitions against a learner's history.
# ABOUTME: Keeps an append-only unlocked set per user and reports progress toward locked ones.

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

import numpy as np
import yaml

from .progress_store import utc_now
from .schemas import Achievement, AchievementProgress, Attempt, SkillProgress
from .vocabulary import DEFAULT_VOCABULARY, Vocabulary

logger = logging.getLogger(__name__)

ANY_TEMPLATE = "any"
COLLABORATION_SECONDS = 180


class RequirementKind(str, Enum):
    SKILL_LEVEL = "skill-level"
    TOTAL_ATTEMPTS = "total-attempts"
    CONSECUTIVE_DAYS = "consecutive-days"
    ATTEMPTS_PER_WEEK = "attempts-per-week"
    SCORE_IMPROVEMENT = "score-improvement"
    CONSECUTIVE_HIGH_SCORES = "consecutive-high-scores"
    OVERALL_IMPROVEMENT = "overall-improvement"
    TEMPLATE_COMPLETION = "template-completion"
    CREATIVE_ELEMENTS = "creative-elements"
    COLOR_DIVERSITY = "color-diversity"
    PARENT_COLLABORATION = "parent-collaboration"
    HELP_OTHERS = "help-others"


@dataclass(frozen=True)
class Requirement:
    """
    One atomic condition. ``kind`` is kept as a plain string so definitions
    loaded from files may name kinds this engine does not know; those
    evaluate to False.
    """

    kind: str
    threshold: float = 0.0
    skill: Optional[str] = None
    templates: Tuple[str, ...] = ()
    min_score: float = 90.0


@dataclass(frozen=True)
class AchievementDefinition:
    id: str
    requirements: Tuple[Requirement, ...]
    rarity: str = "common"  # common / rare / epic / legendary
    category: str = "milestone"
    title: str = ""
    description: str = ""
    rewards: Tuple[str, ...] = ()


@dataclass(frozen=True)
class EvaluationContext:
    skill_progress: Mapping[str, SkillProgress]
    attempts: Sequence[Attempt]
    completed_templates: Sequence[str]
    now: datetime
    vocabulary: Vocabulary = DEFAULT_VOCABULARY


# A measure returns (current, target); current is None when the condition
# cannot be assessed yet (e.g. the skill was never practiced).
Measure = Callable[[Requirement, EvaluationContext], Tuple[Optional[float], float]]


def longest_daily_streak(timestamps: Iterable[datetime]) -> int:
    days = sorted({ts.date() for ts in timestamps})
    if not days:
        return 0
    longest = current = 1
    for prev, curr in zip(days, days[1:]):
        current = current + 1 if curr - prev == timedelta(days=1) else 1
        longest = max(longest, current)
    return longest


def _skill_level(req: Requirement, ctx: EvaluationContext):
    skill = ctx.skill_progress.get(req.skill or "")
    return (skill.current_level if skill else None), req.threshold


def _total_attempts(req: Requirement, ctx: EvaluationContext):
    return float(len(ctx.attempts)), req.threshold


def _consecutive_days(req: Requirement, ctx: EvaluationContext):
    return float(longest_daily_streak(a.timestamp for a in ctx.attempts)), req.threshold


def _attempts_per_week(req: Requirement, ctx: EvaluationContext):
    window_start = ctx.now - timedelta(days=7)
    return float(sum(1 for a in ctx.attempts if a.timestamp >= window_start)), req.threshold


def _score_improvement(req: Requirement, ctx: EvaluationContext):
    if len(ctx.attempts) < 2:
        return None, req.threshold
    scores = np.array([a.overall for a in ctx.attempts], dtype=float)
    return float(np.max(np.diff(scores))), req.threshold


def _consecutive_high_scores(req: Requirement, ctx: EvaluationContext):
    count = int(req.threshold)
    recent = ctx.attempts[-count:] if count > 0 else []
    return float(sum(1 for a in recent if a.overall >= req.min_score)), float(count)


def _overall_improvement(req: Requirement, ctx: EvaluationContext):
    if len(ctx.attempts) < 2:
        return None, req.threshold
    first = np.mean([a.overall for a in ctx.attempts[:3]])
    last = np.mean([a.overall for a in ctx.attempts[-3:]])
    return float(last - first), req.threshold


def _template_completion(req: Requirement, ctx: EvaluationContext):
    completed = set(ctx.completed_templates)
    if ANY_TEMPLATE in req.templates:
        return (1.0 if completed else 0.0), 1.0
    if not req.templates:
        # Nothing required, so the condition already holds.
        return 1.0, 1.0
    return float(sum(1 for t in req.templates if t in completed)), float(len(req.templates))


def _creative_elements(req: Requirement, ctx: EvaluationContext):
    total = sum(ctx.vocabulary.count("creative_keywords", a.prompt_text) for a in ctx.attempts)
    return float(total), req.threshold


def _color_diversity(req: Requirement, ctx: EvaluationContext):
    seen: Set[str] = set()
    for attempt in ctx.attempts:
        seen.update(ctx.vocabulary.matches("color_names", attempt.prompt_text))
    return float(len(seen)), req.threshold


def _parent_collaboration(req: Requirement, ctx: EvaluationContext):
    # Long sessions stand in for parent involvement; there is no direct signal.
    long_sessions = sum(1 for a in ctx.attempts if a.time_spent_seconds > COLLABORATION_SECONDS)
    return float(long_sessions), req.threshold


def _help_others(req: Requirement, ctx: EvaluationContext):
    # No peer-help data is collected, so this never unlocks.
    return None, req.threshold


MEASURES: Dict[RequirementKind, Measure] = {
    RequirementKind.SKILL_LEVEL: _skill_level,
    RequirementKind.TOTAL_ATTEMPTS: _total_attempts,
    RequirementKind.CONSECUTIVE_DAYS: _consecutive_days,
    RequirementKind.ATTEMPTS_PER_WEEK: _attempts_per_week,
    RequirementKind.SCORE_IMPROVEMENT: _score_improvement,
    RequirementKind.CONSECUTIVE_HIGH_SCORES: _consecutive_high_scores,
    RequirementKind.OVERALL_IMPROVEMENT: _overall_improvement,
    RequirementKind.TEMPLATE_COMPLETION: _template_completion,
    RequirementKind.CREATIVE_ELEMENTS: _creative_elements,
    RequirementKind.COLOR_DIVERSITY: _color_diversity,
    RequirementKind.PARENT_COLLABORATION: _parent_collaboration,
    RequirementKind.HELP_OTHERS: _help_others,
}


def _lookup_measure(kind: str) -> Optional[Measure]:
    try:
        return MEASURES.get(RequirementKind(kind))
    except ValueError:
        return None


def evaluate_requirement(requirement: Requirement, ctx: EvaluationContext) -> bool:
    measure = _lookup_measure(requirement.kind)
    if measure is None:
        logger.debug("Unknown requirement kind '%s' evaluates to False", requirement.kind)
        return False
    current, target = measure(requirement, ctx)
    return current is not None and current >= target


def requirement_progress(requirement: Requirement, ctx: EvaluationContext) -> Tuple[float, float, float]:
    """(current, target, percentage) for a single requirement."""
    measure = _lookup_measure(requirement.kind)
    if measure is None:
        return 0.0, 1.0, 0.0
    current, target = measure(requirement, ctx)
    current = 0.0 if current is None else max(0.0, current)
    percentage = min(100.0, current / target * 100) if target > 0 else 0.0
    return current, target, percentage


class AchievementEngine:
    """
    Stateless rule evaluation plus the per-user unlocked set.

    Unlocks are permanent: once recorded an id is never removed or returned
    again, even if the underlying statistics later regress.
    """

    def __init__(
        self,
        definitions: Optional[Iterable[AchievementDefinition]] = None,
        vocabulary: Vocabulary = DEFAULT_VOCABULARY,
        clock: Callable[[], datetime] = utc_now,
    ):
        defs = list(DEFAULT_DEFINITIONS if definitions is None else definitions)
        self._definitions: Dict[str, AchievementDefinition] = {d.id: d for d in defs}
        if len(self._definitions) != len(defs):
            raise ValueError("Achievement definition ids must be unique.")
        self.vocabulary = vocabulary
        self._clock = clock
        self._unlocked: Dict[str, List[Achievement]] = defaultdict(list)

    @property
    def definitions(self) -> List[AchievementDefinition]:
        return list(self._definitions.values())

    def get_definition(self, achievement_id: str) -> Optional[AchievementDefinition]:
        return self._definitions.get(achievement_id)

    def definitions_by_rarity(self, rarity: str) -> List[AchievementDefinition]:
        return [d for d in self._definitions.values() if d.rarity == rarity]

    def get_user_achievements(self, user_id: str) -> List[Achievement]:
        return list(self._unlocked.get(user_id, []))

    def _context(self, skill_progress, attempts, completed_templates, now) -> EvaluationContext:
        if not isinstance(skill_progress, Mapping):
            skill_progress = {sp.skill: sp for sp in skill_progress}
        return EvaluationContext(
            skill_progress=skill_progress,
            attempts=list(attempts),
            completed_templates=list(completed_templates),
            now=now or self._clock(),
            vocabulary=self.vocabulary,
        )

    def check_achievements(
        self,
        user_id: str,
        skill_progress: Iterable[SkillProgress],
        attempts: Sequence[Attempt],
        completed_templates: Sequence[str],
        now: Optional[datetime] = None,
    ) -> List[Achievement]:
        """Return achievements newly satisfied by this history; each id at most once per user."""

        ctx = self._context(skill_progress, attempts, completed_templates, now)
        unlocked_ids = {a.id for a in self._unlocked.get(user_id, [])}

        new_achievements: List[Achievement] = []
        for definition in self._definitions.values():
            if definition.id in unlocked_ids:
                continue
            if definition.requirements and all(evaluate_requirement(r, ctx) for r in definition.requirements):
                new_achievements.append(
                    Achievement(
                        id=definition.id,
                        unlocked_at=ctx.now,
                        title=definition.title,
                        rarity=definition.rarity,
                    )
                )

        if new_achievements:
            self._unlocked[user_id].extend(new_achievements)
            logger.info("User %s unlocked %s", user_id, ", ".join(a.id for a in new_achievements))
        return new_achievements

    def get_progress(
        self,
        user_id: str,
        skill_progress: Iterable[SkillProgress],
        attempts: Sequence[Attempt],
        completed_templates: Sequence[str],
        now: Optional[datetime] = None,
    ) -> List[AchievementProgress]:
        """
        Progress toward every locked definition, highest percentage first.

        Only the first requirement of each definition is measured; use
        ``requirement_breakdown`` for the per-requirement vector.
        """

        ctx = self._context(skill_progress, attempts, completed_templates, now)
        unlocked_ids = {a.id for a in self._unlocked.get(user_id, [])}

        progress: List[AchievementProgress] = []
        for definition in self._definitions.values():
            if definition.id in unlocked_ids:
                continue
            if definition.requirements:
                current, target, percentage = requirement_progress(definition.requirements[0], ctx)
            else:
                current, target, percentage = 0.0, 1.0, 0.0
            progress.append(
                AchievementProgress(
                    achievement_id=definition.id, current=current, target=target, percentage=percentage
                )
            )
        return sorted(progress, key=lambda p: p.percentage, reverse=True)

    def requirement_breakdown(
        self,
        achievement_id: str,
        skill_progress: Iterable[SkillProgress],
        attempts: Sequence[Attempt],
        completed_templates: Sequence[str],
        now: Optional[datetime] = None,
    ) -> List[AchievementProgress]:
        definition = self._definitions.get(achievement_id)
        if definition is None:
            raise KeyError(achievement_id)
        ctx = self._context(skill_progress, attempts, completed_templates, now)
        out = []
        for requirement in definition.requirements:
            current, target, percentage = requirement_progress(requirement, ctx)
            out.append(
                AchievementProgress(
                    achievement_id=achievement_id, current=current, target=target, percentage=percentage
                )
            )
        return out


def _requirement_from_dict(raw: Mapping) -> Requirement:
    if "kind" not in raw and "type" not in raw:
        raise ValueError(f"Requirement is missing a kind: {raw}")
    return Requirement(
        kind=str(raw.get("kind", raw.get("type"))),
        threshold=float(raw.get("threshold", 0)),
        skill=raw.get("skill"),
        templates=tuple(raw.get("templates", ())),
        min_score=float(raw.get("min_score", 90)),
    )


def load_definitions(path: Path) -> List[AchievementDefinition]:
    """Read achievement definitions from a YAML list under ``achievements``."""

    with open(path, encoding="utf-8") as f:
        cfg = yaml.safe_load(f) or {}

    definitions = []
    for raw in cfg.get("achievements", []):
        if "id" not in raw:
            raise ValueError(f"Achievement definition without id in {path}")
        definitions.append(
            AchievementDefinition(
                id=str(raw["id"]),
                requirements=tuple(_requirement_from_dict(r) for r in raw.get("requirements", [])),
                rarity=raw.get("rarity", "common"),
                category=raw.get("category", "milestone"),
                title=raw.get("title", ""),
                description=raw.get("description", ""),
                rewards=tuple(raw.get("rewards", ())),
            )
        )
    return definitions


def _skill(skill: str, threshold: float) -> Tuple[Requirement, ...]:
    return (Requirement(kind=RequirementKind.SKILL_LEVEL.value, skill=skill, threshold=threshold),)


def _single(kind: RequirementKind, threshold: float = 0.0, **extra) -> Tuple[Requirement, ...]:
    return (Requirement(kind=kind.value, threshold=threshold, **extra),)


DEFAULT_DEFINITIONS: Tuple[AchievementDefinition, ...] = (
    AchievementDefinition("clarity-master", _skill("clarity", 80), "common", "skill-mastery",
                          "Clear Speaker", "Reach 80 in clarity"),
    AchievementDefinition("detail-master", _skill("detail", 85), "rare", "skill-mastery",
                          "Detail Expert", "Reach 85 in detail"),
    AchievementDefinition("emotion-master", _skill("emotion", 90), "epic", "skill-mastery",
                          "Feelings Artist", "Reach 90 in emotion"),
    AchievementDefinition("visual-master", _skill("visual", 88), "rare", "skill-mastery",
                          "Picture Painter", "Reach 88 in visual description"),
    AchievementDefinition("structure-master", _skill("structure", 85), "rare", "skill-mastery",
                          "Story Builder", "Reach 85 in structure"),
    AchievementDefinition("daily-creator", _single(RequirementKind.CONSECUTIVE_DAYS, 3), "common",
                          "consistency", "Daily Creator", "Create on 3 days in a row"),
    AchievementDefinition("weekly-warrior", _single(RequirementKind.ATTEMPTS_PER_WEEK, 10), "rare",
                          "consistency", "Weekly Warrior", "Create 10 prompts within a week"),
    AchievementDefinition("persistent-creator", _single(RequirementKind.CONSECUTIVE_DAYS, 7), "epic",
                          "consistency", "Never Give Up", "Practice 7 days in a row"),
    AchievementDefinition("rapid-improver", _single(RequirementKind.SCORE_IMPROVEMENT, 30), "common",
                          "improvement", "Rapid Improver", "Raise your score by 30 in one try"),
    AchievementDefinition("perfectionist", _single(RequirementKind.CONSECUTIVE_HIGH_SCORES, 3, min_score=90),
                          "legendary", "improvement", "Perfectionist", "Score 90+ three times in a row"),
    AchievementDefinition("steady-climber", _single(RequirementKind.OVERALL_IMPROVEMENT, 50), "rare",
                          "improvement", "Steady Climber", "Improve your average score by 50"),
    AchievementDefinition("imagination-master", _single(RequirementKind.CREATIVE_ELEMENTS, 10), "epic",
                          "creativity", "Imagination Master", "Use 10 creative elements"),
    AchievementDefinition("storyteller",
                          _single(RequirementKind.TEMPLATE_COMPLETION,
                                  templates=("adventure-template", "animal-friend-template")),
                          "legendary", "creativity", "Storyteller", "Complete every story template"),
    AchievementDefinition("color-artist", _single(RequirementKind.COLOR_DIVERSITY, 20), "rare",
                          "creativity", "Color Artist", "Use 20 different colors"),
    AchievementDefinition("family-team", _single(RequirementKind.PARENT_COLLABORATION, 10), "rare",
                          "collaboration", "Family Team", "Create 10 prompts together with a parent"),
    AchievementDefinition("mentor", _single(RequirementKind.HELP_OTHERS, 5), "epic",
                          "collaboration", "Little Mentor", "Help other learners improve"),
    AchievementDefinition("first-steps", _single(RequirementKind.TEMPLATE_COMPLETION, templates=(ANY_TEMPLATE,)),
                          "common", "milestone", "First Steps", "Complete your first template"),
    AchievementDefinition("template-explorer",
                          _single(RequirementKind.TEMPLATE_COMPLETION,
                                  templates=("daily-life-template", "adventure-template", "animal-friend-template")),
                          "legendary", "milestone", "Template Explorer", "Complete all three base templates"),
    AchievementDefinition("master-creator", _single(RequirementKind.TOTAL_ATTEMPTS, 100), "legendary",
                          "milestone", "Master Creator", "Create 100 prompts"),
)
