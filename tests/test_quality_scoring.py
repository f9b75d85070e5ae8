# ABOUTME: Tests the keyword-heuristic prompt scorer and its suggestions.
# ABOUTME: Covers determinism, score bounds, empty prompts and suggestion ordering.

from pathlib import Path

import pytest

from src.prompt_coach.quality_scoring import QualityScorer
from src.prompt_coach.schemas import DIMENSION_WEIGHTS, DIMENSIONS, Priority
from src.prompt_coach.vocabulary import load_vocabulary

CONFIG_DIR = Path(__file__).resolve().parents[1] / "configs"

RICH_PROMPT = "小朋友在公園裡開心地跑和玩，陽光很溫暖，還有紅色的大花。"


@pytest.fixture
def scorer():
    return QualityScorer()


@pytest.fixture
def english_scorer():
    return QualityScorer(load_vocabulary(CONFIG_DIR / "vocabulary_en.yaml"))


def test_scoring_is_deterministic(scorer):
    assert scorer.score(RICH_PROMPT) == scorer.score(RICH_PROMPT)


@pytest.mark.parametrize(
    "text",
    ["", "貓", RICH_PROMPT, "東西什麼那個一些很多" * 40, "紅藍綠黃紫橙白黑粉金大小巨微高矮" * 30],
)
def test_scores_stay_within_bounds(scorer, text):
    result = scorer.score(text)
    assert 0 <= result.overall <= 100
    for _, value in result.dimensions.items():
        assert 0 <= value <= 100
    assert 0.0 <= result.confidence <= 1.0


def test_empty_prompt_scores_low_with_every_dimension_flagged(scorer):
    result = scorer.score("")

    assert result.dimensions.as_dict() == {
        "clarity": 30,
        "detail": 40,
        "emotion": 30,
        "visual": 35,
        "structure": 40,
    }
    assert result.overall == 35
    assert 20 <= result.overall <= 40
    assert set(result.improvement_areas) == set(DIMENSIONS)
    assert result.strengths == ()


def test_overall_is_weighted_sum_rounded_half_up(scorer):
    result = scorer.score(RICH_PROMPT)
    weighted = sum(value * DIMENSION_WEIGHTS[name] for name, value in result.dimensions.items())
    assert result.overall == int(weighted + 0.5)


def test_rich_prompt_beats_sparse_prompt(scorer):
    assert scorer.score(RICH_PROMPT).overall > scorer.score("貓").overall


def test_vague_words_lower_clarity(scorer):
    plain = scorer.score("小朋友在房子旁邊畫畫。")
    vague = scorer.score("小朋友在那個東西旁邊畫畫。")
    assert vague.dimensions.clarity < plain.dimensions.clarity


def test_adjective_bonus_is_capped(scorer):
    # Eight adjectives would be worth 40 points uncapped; the rule stops at 25.
    many = scorer.score("美麗可愛大小紅藍快樂溫暖")
    detail_from_other_rules = 8 * 2 + 6 * 2  # 紅/藍 as colors, 大/小 as sizes
    assert many.dimensions.detail == min(100, 40 + 25 + detail_from_other_rules)


def test_english_vocabulary_scores_english_prompt(english_scorer):
    result = english_scorer.score("A happy kid runs in the park and laughs under the bright sunlight.")

    assert "structure" in result.strengths
    assert "clarity" in result.strengths
    assert result.dimensions.emotion > 30


def test_suggestions_are_sorted_by_priority_and_limited(scorer):
    result = scorer.score("")
    suggestions = scorer.suggest("", result, max_suggestions=5)

    assert len(suggestions) == 5
    ranks = [s.priority.rank for s in suggestions]
    assert ranks == sorted(ranks, reverse=True)
    assert [s.category for s in suggestions] == ["clarity", "emotion", "structure", "structure", "detail"]
    assert suggestions[0].priority is Priority.HIGH


def test_no_suggestions_for_strong_dimensions(english_scorer):
    text = "A happy kid runs in the park and laughs under the bright sunlight."
    result = english_scorer.score(text)
    categories = {s.category for s in english_scorer.suggest(text, result, max_suggestions=10)}
    assert "structure" not in categories
    assert "clarity" not in categories


def test_analyze_reports_level_and_weakest_dimension(scorer):
    analysis = scorer.analyze("")

    assert analysis.child_level == "beginner"
    assert analysis.weakest_dimension in {"clarity", "emotion"}
    assert analysis.estimated_video_quality == 48  # 35 * 0.8 + 20
    assert len(analysis.suggestions) <= 5
