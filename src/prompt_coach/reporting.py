# ABOUTME: Turns stored attempt history into tabular frames and learning reports.
# ABOUTME: Summarizes trend, skill development and recommendations per user.

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, List, Optional

import numpy as np
import pandas as pd

from .adaptive_guidance import linear_trend
from .errors import NoProgressError
from .progress_store import ProgressStore, utc_now
from .schemas import DIMENSIONS, Attempt, Progress, SkillProgress

ATTEMPT_COLUMNS = [
    "attempt_id",
    "stage_id",
    "timestamp",
    "overall",
    *DIMENSIONS,
    "confidence",
    "time_spent_seconds",
    "completed",
]


@dataclass(frozen=True)
class ImprovementTrend:
    direction: str  # improving / declining / stable
    rate: float  # score points per day, absolute
    confidence: float


@dataclass(frozen=True)
class SkillAnalysis:
    strongest: Optional[SkillProgress]
    weakest: Optional[SkillProgress]
    most_improved: Optional[SkillProgress]
    needs_attention: List[SkillProgress]


@dataclass(frozen=True)
class LearningReport:
    user_id: str
    template_id: str
    report_date: datetime
    total_attempts: int
    total_time_spent: float
    completed_templates: int
    average_score: float
    improvement_trend: ImprovementTrend
    skill_analysis: SkillAnalysis
    recommendations: List[str]
    attempts: pd.DataFrame


def attempts_frame(attempts: Iterable[Attempt]) -> pd.DataFrame:
    """One row per attempt with a column per quality dimension."""

    rows = []
    for attempt in attempts:
        row = {
            "attempt_id": attempt.id,
            "stage_id": attempt.stage_id,
            "timestamp": attempt.timestamp,
            "overall": attempt.overall,
            "confidence": attempt.score.confidence,
            "time_spent_seconds": attempt.time_spent_seconds,
            "completed": attempt.completed,
        }
        row.update(attempt.score.dimensions.as_dict())
        rows.append(row)

    if not rows:
        return pd.DataFrame(columns=ATTEMPT_COLUMNS)

    df = pd.DataFrame(rows, columns=ATTEMPT_COLUMNS)
    if not pd.api.types.is_datetime64_any_dtype(df["timestamp"]):
        df["timestamp"] = pd.to_datetime(df["timestamp"], utc=True, errors="coerce")
    return df.sort_values("timestamp", kind="mergesort").reset_index(drop=True)


def improvement_trend(frame: pd.DataFrame) -> ImprovementTrend:
    """OLS slope over attempt order, rescaled to points per day of elapsed time."""

    n = len(frame)
    if n < 2:
        return ImprovementTrend(direction="stable", rate=0.0, confidence=0.0)

    slope = linear_trend(frame["overall"].astype(float).tolist())
    timespan = frame["timestamp"].iloc[-1] - frame["timestamp"].iloc[0]
    days = timespan / pd.Timedelta(days=1)
    rate = slope / days if days > 0 else 0.0

    if rate > 0.5:
        direction = "improving"
    elif rate < -0.5:
        direction = "declining"
    else:
        direction = "stable"
    return ImprovementTrend(direction=direction, rate=abs(float(rate)), confidence=float(min(100, n * 10)))


def analyze_skills(progresses: Iterable[Progress]) -> SkillAnalysis:
    best: dict = {}
    for progress in progresses:
        for skill in progress.skill_progress.values():
            existing = best.get(skill.skill)
            if existing is None or skill.current_level > existing.current_level:
                best[skill.skill] = skill

    skills = list(best.values())
    if not skills:
        return SkillAnalysis(strongest=None, weakest=None, most_improved=None, needs_attention=[])

    needs_attention = [
        s
        for s in skills
        if s.current_level < 60 or all(score < 70 for score in list(s.trend_window)[-3:])
    ]
    return SkillAnalysis(
        strongest=max(skills, key=lambda s: s.current_level),
        weakest=min(skills, key=lambda s: s.current_level),
        most_improved=max(skills, key=lambda s: s.improvement),
        needs_attention=needs_attention,
    )


def build_recommendations(store: ProgressStore, user_id: str, progresses: List[Progress], now: datetime) -> List[str]:
    recommendations: List[str] = []
    level = store.get_user_level(user_id)

    if level.overall < 60:
        recommendations.append("Practice the basics more, starting with clear descriptions.")
    elif level.overall > 80:
        recommendations.append("Try more challenging themes and let your creativity shine.")

    if level.skills:
        strongest = max(level.skills.items(), key=lambda kv: kv[1])
        weakest = min(level.skills.items(), key=lambda kv: kv[1])
        if strongest[1] - weakest[1] > 20:
            recommendations.append(f"Build on your {strongest[0]} strength while working on {weakest[0]}.")

    if not any(now - p.last_active_at < timedelta(days=3) for p in progresses):
        recommendations.append("Regular practice keeps skills sharp: aim for 2-3 sessions a week.")
    return recommendations


def build_learning_report(
    store: ProgressStore,
    user_id: str,
    template_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> LearningReport:
    """Summarize one template, or all of a user's templates when ``template_id`` is None."""

    now = now or utc_now()
    if template_id is None:
        progresses = store.user_progresses(user_id)
    else:
        progress = store.get_progress(user_id, template_id)
        progresses = [progress] if progress else []
    if not progresses:
        raise NoProgressError(user_id)

    frame = attempts_frame(a for p in progresses for a in p.attempts)
    average = float(frame["overall"].mean()) if not frame.empty else 0.0

    return LearningReport(
        user_id=user_id,
        template_id=template_id or "all",
        report_date=now,
        total_attempts=len(frame),
        total_time_spent=float(sum(p.total_time_spent for p in progresses)),
        completed_templates=sum(1 for p in progresses if store.is_template_completed(p)),
        average_score=float(np.round(average, 2)),
        improvement_trend=improvement_trend(frame),
        skill_analysis=analyze_skills(progresses),
        recommendations=build_recommendations(store, user_id, progresses, now),
        attempts=frame,
    )
