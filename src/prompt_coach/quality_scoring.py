# ABOUTME: Scores free-text prompts on five quality dimensions with keyword heuristics.
# ABOUTME: Produces improvement suggestions and a compact analysis for coaching.

from __future__ import annotations

import logging
import math
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import numpy as np

from .schemas import (
    DIMENSION_WEIGHTS,
    DIMENSIONS,
    IMPROVEMENT_CUTOFF,
    STRENGTH_CUTOFF,
    Dimensions,
    Priority,
    PromptAnalysis,
    QualityScore,
    Suggestion,
)
from .vocabulary import DEFAULT_VOCABULARY, Vocabulary

logger = logging.getLogger(__name__)

IDEAL_MIN_LENGTH = 10
IDEAL_MAX_LENGTH = 200
OVERLONG_LENGTH = 300
SUGGESTION_CUTOFF = 70

# (table, points per keyword found, cap on the rule's contribution or None)
KeywordRule = Tuple[str, int, Optional[int]]

DETAIL_RULES: Sequence[KeywordRule] = (
    ("adjectives", 5, 25),
    ("colors", 8, None),
    ("sizes", 6, None),
    ("materials", 7, None),
)
EMOTION_RULES: Sequence[KeywordRule] = (
    ("emotion_words", 10, None),
    ("action_verbs", 8, None),
    ("sensory_words", 12, None),
)
VISUAL_RULES: Sequence[KeywordRule] = (
    ("scenes", 10, None),
    ("lighting", 12, None),
    ("movements", 8, None),
    ("composition", 9, None),
)


def _clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class QualityScorer:
    """
    Deterministic prompt scorer.

    Each dimension starts at a base score and moves by additive rules:
    length bands, keyword presence counts (capped per rule) and structural
    checks. The result never depends on anything but the text and the
    injected vocabulary.
    """

    BASE_SCORES = {"clarity": 50, "detail": 40, "emotion": 30, "visual": 35, "structure": 40}

    def __init__(self, vocabulary: Vocabulary = DEFAULT_VOCABULARY):
        self.vocabulary = vocabulary
        self._suggestion_rules: Dict[str, Callable[[str], List[Suggestion]]] = {
            "clarity": self._clarity_suggestions,
            "detail": self._detail_suggestions,
            "emotion": self._emotion_suggestions,
            "visual": self._visual_suggestions,
            "structure": self._structure_suggestions,
        }

    # ----- scoring -----

    def score(self, text: str) -> QualityScore:
        text = text if isinstance(text, str) else str(text)
        dimensions = Dimensions(
            clarity=self._clarity(text),
            detail=self._keyword_dimension("detail", text, DETAIL_RULES),
            emotion=self._keyword_dimension("emotion", text, EMOTION_RULES),
            visual=self._keyword_dimension("visual", text, VISUAL_RULES),
            structure=self._structure(text),
        )
        overall = _round_half_up(sum(value * DIMENSION_WEIGHTS[name] for name, value in dimensions.items()))

        improvement_areas = tuple(name for name, value in dimensions.items() if value < IMPROVEMENT_CUTOFF)
        strengths = tuple(name for name, value in dimensions.items() if value >= STRENGTH_CUTOFF)
        confidence = self._confidence(text, dimensions)

        logger.debug("Scored prompt of length %d: overall=%d dims=%s", len(text), overall, dimensions.as_dict())
        return QualityScore(
            overall=int(_clamp(overall)),
            dimensions=dimensions,
            improvement_areas=improvement_areas,
            strengths=strengths,
            confidence=confidence,
        )

    def _clarity(self, text: str) -> float:
        vocab = self.vocabulary
        score = self.BASE_SCORES["clarity"]
        length = len(text)
        if IDEAL_MIN_LENGTH <= length <= IDEAL_MAX_LENGTH:
            score += 20
        elif length < IDEAL_MIN_LENGTH:
            score -= 20
        elif length > OVERLONG_LENGTH:
            score -= 10

        if self._has_complete_sentence(text):
            score += 15
        score -= vocab.count("vague_words", text) * 5
        score += min(vocab.count("concrete_nouns", text) * 3, 15)
        return _clamp(score)

    def _keyword_dimension(self, name: str, text: str, rules: Sequence[KeywordRule]) -> float:
        score = self.BASE_SCORES[name]
        for table, points, cap in rules:
            gained = self.vocabulary.count(table, text) * points
            score += gained if cap is None else min(gained, cap)
        return _clamp(score)

    def _structure(self, text: str) -> float:
        vocab = self.vocabulary
        score = self.BASE_SCORES["structure"]
        if vocab.has_any("subjects", text):
            score += 20
        if vocab.has_any("actions", text):
            score += 20
        if vocab.has_any("settings", text):
            score += 15
        score += min(vocab.count("connectors", text) * 3, 15)
        return _clamp(score)

    def _has_complete_sentence(self, text: str) -> bool:
        return any(mark in text for mark in self.vocabulary.sentence_terminators) or len(text) > 15

    @staticmethod
    def _confidence(text: str, dimensions: Dimensions) -> float:
        """Blend of a length factor and how evenly the dimensions agree."""
        length_factor = min(len(text) / 50, 1.0)
        variance = float(np.var(list(dimensions.as_dict().values())))
        consistency = max(0.0, 1.0 - variance / 1000)
        return float(_clamp(length_factor * 0.4 + consistency * 0.6, 0.0, 1.0))

    # ----- suggestions -----

    def suggest(self, text: str, score: QualityScore, max_suggestions: int = 5) -> List[Suggestion]:
        """Suggestions for dimensions below 70, highest priority first."""

        suggestions: List[Suggestion] = []
        for name in DIMENSIONS:
            if score.dimensions.get(name) < SUGGESTION_CUTOFF:
                suggestions.extend(self._suggestion_rules[name](text))

        suggestions.sort(key=lambda s: s.priority.rank, reverse=True)
        return suggestions[: max(0, max_suggestions)]

    def _clarity_suggestions(self, text: str) -> List[Suggestion]:
        out: List[Suggestion] = []
        if len(text) < IDEAL_MIN_LENGTH:
            out.append(
                Suggestion(
                    kind="add",
                    priority=Priority.HIGH,
                    category="clarity",
                    suggested_text="Add more concrete description",
                    explanation="The description is too short for the AI to picture your idea.",
                    example='"a kid" -> "a cute kid wearing a red shirt"',
                )
            )
        if self.vocabulary.has_any("vague_words", text):
            out.append(
                Suggestion(
                    kind="modify",
                    priority=Priority.MEDIUM,
                    category="clarity",
                    suggested_text="Replace vague words with specific ones",
                    explanation="Words like 'thing' or 'something' leave too much to guess.",
                    example='"some animal" -> "a kitten" or "a puppy"',
                )
            )
        return out

    def _detail_suggestions(self, text: str) -> List[Suggestion]:
        out: List[Suggestion] = []
        if not self.vocabulary.has_any("colors", text):
            out.append(
                Suggestion(
                    kind="add",
                    priority=Priority.MEDIUM,
                    category="detail",
                    suggested_text="Describe the colors",
                    explanation="Colors make the picture vivid and easy to imagine.",
                    example='"flowers" -> "pink flowers"',
                )
            )
        if not self.vocabulary.has_any("sizes", text):
            out.append(
                Suggestion(
                    kind="add",
                    priority=Priority.MEDIUM,
                    category="detail",
                    suggested_text="Describe how big or small things are",
                    explanation="Sizes give the scene a sense of scale.",
                    example='"a house" -> "a tiny house"',
                )
            )
        return out

    def _emotion_suggestions(self, text: str) -> List[Suggestion]:
        if self.vocabulary.has_any("emotion_words", text):
            return []
        return [
            Suggestion(
                kind="add",
                priority=Priority.HIGH,
                category="emotion",
                suggested_text="Add feeling words",
                explanation="Feelings make the story warm and fun to watch.",
                example='"kids play" -> "kids play happily"',
            )
        ]

    def _visual_suggestions(self, text: str) -> List[Suggestion]:
        if self.vocabulary.has_any("location_markers", text):
            return []
        return [
            Suggestion(
                kind="add",
                priority=Priority.MEDIUM,
                category="visual",
                suggested_text="Describe where it happens",
                explanation="A setting gives the story a complete world.",
                example='add "in the park" or "in the bedroom"',
            )
        ]

    def _structure_suggestions(self, text: str) -> List[Suggestion]:
        out: List[Suggestion] = []
        if not self.vocabulary.has_any("subjects", text):
            out.append(
                Suggestion(
                    kind="add",
                    priority=Priority.HIGH,
                    category="structure",
                    suggested_text="Say who the main character is",
                    explanation="Who is the story about?",
                    example='"a little girl", "a puppy", "mom"',
                )
            )
        if not self.vocabulary.has_any("actions", text):
            out.append(
                Suggestion(
                    kind="add",
                    priority=Priority.HIGH,
                    category="structure",
                    suggested_text="Describe what they are doing",
                    explanation="What is the main character doing?",
                    example='"running", "drawing", "eating"',
                )
            )
        return out

    # ----- analysis -----

    def analyze(self, text: str, max_suggestions: int = 5) -> PromptAnalysis:
        score = self.score(text)
        if score.overall >= 70:
            child_level = "advanced"
        elif score.overall >= 50:
            child_level = "intermediate"
        else:
            child_level = "beginner"
        weakest = min(score.dimensions.items(), key=lambda kv: kv[1])[0]

        return PromptAnalysis(
            text=text,
            score=score,
            suggestions=tuple(self.suggest(text, score, max_suggestions)),
            child_level=child_level,
            weakest_dimension=weakest,
            estimated_video_quality=_round_half_up(score.overall * 0.8 + 20),
        )
