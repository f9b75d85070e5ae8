# ABOUTME: Tests session signals and the adapted guidance derived from recent attempts.
# ABOUTME: Checks frustration, trend clamping, difficulty and coaching tone decisions.

import unittest

import pytest

from src.prompt_coach.adaptive_guidance import AdaptiveGuidance, linear_trend, recent_vs_early, trailing_failures
from src.prompt_coach.schemas import SessionContext, UserLevel

from tests.factories import StepClock, build_attempt


def make_attempts(scores, completed=None, time_spent=60.0):
    completed = completed if completed is not None else [s >= 80 for s in scores]
    return [
        build_attempt(i, overall=s, time_spent=time_spent, completed=done,
                      clarity=s, detail=s, emotion=s, visual=s, structure=s)
        for i, (s, done) in enumerate(zip(scores, completed))
    ]


BASELINE = UserLevel(
    overall=60.0,
    skills={"clarity": 60.0, "detail": 60.0},
    confidence=60.0,
    engagement=50.0,
    parent_support=70.0,
    learning_style="mixed",
)


def test_linear_trend_matches_ols_slope():
    assert linear_trend([50, 60, 70]) == pytest.approx(10.0)
    assert linear_trend([70]) == 0.0
    assert linear_trend([]) == 0.0


def test_recent_vs_early_compares_means():
    assert recent_vs_early([10, 20, 40, 50, 60]) == pytest.approx(35.0)
    assert recent_vs_early([5]) == 0.0


def test_trailing_failures_stops_at_first_success():
    attempts = make_attempts([90, 40, 30])
    assert trailing_failures(attempts) == 2


class TestSessionSignals(unittest.TestCase):
    def setUp(self):
        self.guidance = AdaptiveGuidance(clock=StepClock())
        self.context = SessionContext()

    def test_three_failures_raise_frustration_and_hints(self):
        attempts = make_attempts([40, 35, 30])
        result = self.guidance.generate_guidance("u1", self.context, BASELINE, attempts)
        analytics = result.session_analytics

        self.assertGreaterEqual(analytics.frustration_level, 40)
        self.assertTrue(analytics.adaptation_needed)
        self.assertEqual(analytics.adaptation_trigger, "consecutive_failures")
        self.assertEqual(result.difficulty_config.hint_frequency, "frequent")
        self.assertEqual(result.learning_preferences.encouragement, "gentle")
        self.assertAlmostEqual(result.difficulty_config.evaluation_strict, 0.5)

    def test_rushed_attempts_add_frustration(self):
        slow = self.guidance.frustration_level(make_attempts([90, 90, 90]))
        rushed = self.guidance.frustration_level(make_attempts([90, 90, 90], time_spent=5.0))
        self.assertEqual(slow, 0.0)
        self.assertEqual(rushed, 15.0)

    def test_trend_is_clamped(self):
        self.assertEqual(self.guidance.performance_trend(make_attempts([10, 40, 70, 100])), 10.0)
        self.assertEqual(self.guidance.performance_trend(make_attempts([100, 70, 40, 10])), -10.0)
        self.assertAlmostEqual(self.guidance.performance_trend(make_attempts([60, 62, 64])), 2.0)

    def test_trend_uses_only_recent_window(self):
        # Only the last five attempts count; the early collapse is ignored.
        attempts = make_attempts([100, 0, 50, 50, 50, 50, 50])
        self.assertEqual(self.guidance.performance_trend(attempts), 0.0)

    def test_empty_history_uses_defaults(self):
        analytics = self.guidance.analyze_session("u1", self.context, [])
        self.assertEqual(analytics.performance_trend, 0.0)
        self.assertEqual(analytics.frustration_level, 0.0)
        self.assertEqual(analytics.optimal_difficulty, 60.0)
        self.assertFalse(analytics.adaptation_needed)
        self.assertEqual(analytics.adaptation_trigger, "routine_adjustment")

    def test_adaptation_waits_for_minimum_data_points(self):
        self.assertFalse(self.guidance.adaptation_needed(make_attempts([30, 20])))

    def test_high_variability_triggers_adaptation(self):
        attempts = make_attempts([95, 40, 90], completed=[True, False, True])
        self.assertTrue(self.guidance.adaptation_needed(attempts))
        self.assertEqual(self.guidance.adaptation_trigger(attempts), "high_variability")

    def test_engagement_reflects_context(self):
        lively = SessionContext(energy_level="high", parent_presence=True)
        tired = SessionContext(energy_level="low")
        self.assertEqual(self.guidance.engagement_level([], lively), 75.0)
        self.assertEqual(self.guidance.engagement_level([], tired), 40.0)

    def test_recommended_pace(self):
        self.assertEqual(self.guidance.recommended_pace(SessionContext(session_length="short"), []), "slow")
        self.assertEqual(
            self.guidance.recommended_pace(SessionContext(energy_level="high", session_length="long"), []),
            "fast",
        )
        self.assertEqual(self.guidance.recommended_pace(self.context, make_attempts([90, 85])), "fast")


class TestDifficulty(unittest.TestCase):
    def setUp(self):
        self.guidance = AdaptiveGuidance(clock=StepClock())

    def test_struggling_learner_gets_easier_level(self):
        self.assertEqual(self.guidance.optimal_difficulty(make_attempts([40, 35, 30])), 40.0)
        self.assertEqual(self.guidance.example_complexity(40.0), "simple")

    def test_strong_learner_gets_harder_level(self):
        level = self.guidance.optimal_difficulty(make_attempts([90, 92, 94, 96, 98]))
        self.assertEqual(level, 90.0)
        self.assertEqual(self.guidance.example_complexity(level), "complex")

    def test_skill_weights_boost_slipping_skills_and_sum_to_one(self):
        weights = self.guidance.skill_weights({"emotion": -10.0, "clarity": 3.0})
        self.assertAlmostEqual(sum(weights.values()), 1.0)
        self.assertGreater(weights["emotion"], weights["detail"])


def test_adapted_level_applies_context_without_mutating_baseline():
    guidance = AdaptiveGuidance(clock=StepClock())
    result = guidance.generate_guidance("u1", SessionContext(energy_level="high"), BASELINE, [])

    assert result.adapted_user_level.skills["clarity"] == pytest.approx(61.5)
    assert BASELINE.skills["clarity"] == 60.0


def test_profile_history_is_bounded():
    guidance = AdaptiveGuidance(clock=StepClock())
    attempts = make_attempts([70, 75, 80])
    for _ in range(1000):
        guidance.generate_guidance("u1", SessionContext(), BASELINE, attempts)

    profile = guidance.get_profile("u1")
    assert len(profile.learning_history) <= 50
    assert 2 <= len(profile.adaptation_history) <= 50
    assert 0.0 <= profile.adaptation_history[-1].effectiveness <= 1.0
