"""Quiz scoring and knowledge-gap analysis."""

from __future__ import annotations

import math
import re
from typing import Dict, Iterable, List, Sequence

from .models import (
    AdjustedSkillLevel,
    KnowledgeGap,
    QuizAnalysis,
    QuizQuestion,
    QuizResponse,
)

STRENGTH_THRESHOLD = 70.0
SHORT_ANSWER_CHARS = 50
SHORT_ANSWER_SHARE = 0.3
MAX_KEYWORDS_CHECKED = 5
SELF_ASSESSMENT_TOLERANCE = 1.0
SELF_REPORT_WEIGHT = 0.3
MIN_LEVEL = 1.0
MAX_LEVEL = 5.0

TOPIC_KEYWORDS: Dict[str, List[str]] = {
    "fundamentals": ["concept", "basic", "principle", "foundation", "essential"],
    "practical": ["implementation", "example", "use case", "application", "practice"],
    "advanced": ["optimization", "architecture", "strategy", "complex", "advanced"],
}

_SENTENCE_SPLIT = re.compile(r"[.!?]+")
_PUNCTUATION = re.compile(r"[^\w\s]")


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def keywords_for_topic(category: str, skill_area: str = "") -> List[str]:
    for key in (category, skill_area):
        keywords = TOPIC_KEYWORDS.get(key.strip().lower())
        if keywords:
            return keywords
    return []


def _keyword_score(answer: str, category: str, skill_area: str) -> float:
    keywords = keywords_for_topic(category, skill_area)[:MAX_KEYWORDS_CHECKED]
    if not keywords:
        return 0.0
    matched = [keyword for keyword in keywords if keyword.lower() in answer]
    return len(matched) / len(keywords)


def _structure_score(answer: str) -> float:
    sentences = [part for part in _SENTENCE_SPLIT.split(answer) if part.strip()]
    score = 0.0
    if len(sentences) >= 2:
        score += 0.4
    if len(answer) >= 100:
        score += 0.3
    if "\n" in answer:
        score += 0.3
    return score


def _relevance_score(answer: str, question_text: str) -> float:
    terms = [term for term in _PUNCTUATION.sub("", question_text.lower()).split() if len(term) > 3]
    if not terms:
        return 0.0
    addressed = [term for term in terms if term in answer]
    return len(addressed) / len(terms)


def evaluate_answer(question: QuizQuestion, response: QuizResponse) -> float:
    """Points earned by ``response`` against ``question``."""
    if question.type == "multiple_choice":
        given = response.answer.strip().lower()
        expected = question.correct_answer.strip().lower()
        return question.points if given == expected else 0

    answer = response.answer.strip().lower()
    if len(answer) < SHORT_ANSWER_CHARS:
        return math.floor(question.points * SHORT_ANSWER_SHARE)

    composite = (
        _keyword_score(answer, question.category, question.skill_area)
        + _structure_score(answer)
        + _relevance_score(answer, question.text)
    ) / 3
    return round_half_up(question.points * composite)


def score_quiz_responses(
    questions: Sequence[QuizQuestion],
    responses: Iterable[QuizResponse],
) -> List[QuizResponse]:
    """Return copies of ``responses`` with ``isCorrect`` and ``points`` filled in."""
    lookup = {question.id: question for question in questions}
    scored: List[QuizResponse] = []
    for response in responses:
        question = lookup.get(response.question_id)
        if question is None:
            scored.append(response.model_copy())
            continue
        points = evaluate_answer(question, response)
        scored.append(
            response.model_copy(update={"points": points, "is_correct": points >= question.points})
        )
    return scored


def _clamp_level(value: float) -> float:
    return max(MIN_LEVEL, min(MAX_LEVEL, value))


def analyze_quiz_responses(
    questions: Sequence[QuizQuestion],
    responses: Iterable[QuizResponse],
    self_reported_skill_level: float,
) -> QuizAnalysis:
    lookup = {question.id: question for question in questions}
    total_earned = 0.0
    total_possible = 0.0
    earned_by_area: Dict[str, float] = {}
    possible_by_area: Dict[str, float] = {}
    missed_by_area: Dict[str, Dict[str, None]] = {}

    for response in responses:
        question = lookup.get(response.question_id)
        if question is None:
            continue
        area = question.skill_area
        earned_by_area.setdefault(area, 0.0)
        possible_by_area.setdefault(area, 0.0)
        missed_by_area.setdefault(area, {})

        points = evaluate_answer(question, response)
        total_earned += points
        total_possible += question.points
        earned_by_area[area] += points
        possible_by_area[area] += question.points
        if points < question.points:
            missed_by_area[area][question.category] = None

    strengths: List[str] = []
    improvements: List[str] = []
    by_area: Dict[str, int] = {}
    gaps: List[KnowledgeGap] = []
    for area, possible in possible_by_area.items():
        percentage = earned_by_area[area] / possible * 100
        level = round_half_up(percentage / 100 * 5)
        by_area[area] = level
        if percentage >= STRENGTH_THRESHOLD:
            strengths.append(area)
        else:
            improvements.append(area)
            gaps.append(
                KnowledgeGap(area=area, concepts=list(missed_by_area[area]), current_level=level)
            )

    if total_possible > 0:
        measured = total_earned / total_possible * 5
        if abs(self_reported_skill_level - measured) > SELF_ASSESSMENT_TOLERANCE:
            overall: float = measured
        else:
            overall = round_half_up(
                self_reported_skill_level * SELF_REPORT_WEIGHT + measured * (1 - SELF_REPORT_WEIGHT)
            )
    else:
        overall = self_reported_skill_level

    return QuizAnalysis(
        total_score=total_earned,
        max_possible_score=total_possible,
        strength_areas=strengths,
        improvement_areas=improvements,
        adjusted_skill_level=AdjustedSkillLevel(overall=_clamp_level(overall), by_area=by_area),
        knowledge_gaps=gaps,
    )


__all__ = [
    "TOPIC_KEYWORDS",
    "analyze_quiz_responses",
    "evaluate_answer",
    "keywords_for_topic",
    "round_half_up",
    "score_quiz_responses",
]
