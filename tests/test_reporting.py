# ABOUTME: Tests attempt frames and learning reports built from stored progress.
# ABOUTME: Checks trend direction, skill analysis and the no-history error.

from datetime import timedelta

import pandas as pd
import pytest

from src.prompt_coach.errors import NoProgressError
from src.prompt_coach.progress_store import ProgressStore
from src.prompt_coach.reporting import ATTEMPT_COLUMNS, attempts_frame, build_learning_report, improvement_trend

from tests.factories import START, StepClock, build_attempt


def test_attempts_frame_empty_has_columns():
    frame = attempts_frame([])
    assert list(frame.columns) == ATTEMPT_COLUMNS
    assert frame.empty


def test_attempts_frame_sorted_with_dimension_columns():
    attempts = [build_attempt(1, 70, clarity=80), build_attempt(0, 60, clarity=40)]
    frame = attempts_frame(attempts)

    assert list(frame["attempt_id"]) == ["a0", "a1"]
    assert list(frame["clarity"]) == [40, 80]
    assert pd.api.types.is_datetime64_any_dtype(frame["timestamp"])


def test_improvement_trend_directions():
    days = [START + timedelta(days=d) for d in range(3)]
    rising = attempts_frame([build_attempt(i, s, timestamp=t) for i, (s, t) in enumerate(zip([40, 60, 80], days))])
    falling = attempts_frame([build_attempt(i, s, timestamp=t) for i, (s, t) in enumerate(zip([80, 60, 40], days))])

    up = improvement_trend(rising)
    assert up.direction == "improving"
    assert up.rate == pytest.approx(10.0)
    assert up.confidence == 30
    assert improvement_trend(falling).direction == "declining"
    assert improvement_trend(attempts_frame([build_attempt(0)])).direction == "stable"


def test_report_requires_progress():
    with pytest.raises(NoProgressError):
        build_learning_report(ProgressStore(), "nobody")


def test_report_summarizes_user(make_score):
    store = ProgressStore(clock=StepClock(step=timedelta(hours=12)))
    store.start_session("u1", "t", "s1")
    for stage, overall in (("s1", 85), ("s2", 90), ("s3", 95)):
        store.record_attempt("u1", "t", stage, "x", make_score(overall=overall, clarity=95, emotion=20), 30)

    report = build_learning_report(store, "u1", now=START + timedelta(days=2))

    assert report.total_attempts == 3
    assert report.total_time_spent == pytest.approx(90.0)
    assert report.completed_templates == 1
    assert report.average_score == pytest.approx(90.0)
    assert report.improvement_trend.direction == "improving"
    assert report.skill_analysis.strongest.skill == "clarity"
    assert report.skill_analysis.weakest.skill == "emotion"
    assert any("clarity" in line and "emotion" in line for line in report.recommendations)
    assert len(report.attempts) == 3
