"""Prompt builders for quiz and roadmap generation."""

from __future__ import annotations

import json
import math
from typing import Sequence, Tuple

from .models import GenerationRequest, difficulty_for_level
from .validators import QuizPolicy

QUIZ_SYSTEM_PROMPT = (
    "You are an expert educational assessment system designed to create adaptive learning quizzes. "
    "Your goal is to accurately evaluate a learner's knowledge and capabilities."
)
ROADMAP_SYSTEM_PROMPT = (
    "You are an expert learning path designer with deep knowledge of educational psychology "
    "and modern learning methodologies. Your goal is to create personalised, effective learning journeys."
)

_QUESTION_SHAPE = (
    '{"id": "q1", "text": "...", "type": "multiple_choice" | "open_ended", "category": "...", '
    '"skillArea": "...", "difficulty": "beginner" | "intermediate" | "advanced", "points": 10, '
    '"options": ["a", "b", "c", "d"] (multiple_choice only), "correctAnswer": "...", "explanation": "..."}'
)


def _question_mix(policy: QuizPolicy) -> str:
    return (
        f"Include {policy.multiple_choice_count} multiple-choice and {policy.open_ended_count} open-ended questions. "
        "Multiple-choice questions must have EXACTLY 4 options and correctAnswer must be one of them. "
    )


def quiz_prompt(request: GenerationRequest, policy: QuizPolicy) -> Tuple[str, str]:
    focus = ", ".join(request.focus_areas) or request.goal
    user = (
        f"Generate a skill assessment quiz about {request.goal}. "
        f"Focus on these areas: {focus}. "
        f"The learner rates themselves {request.skill_level:g}/5 ({request.difficulty}). "
        + _question_mix(policy)
        + "Use each focus area as the skillArea of at least one question. Points should be between 10 and 20. "
        + f'Return ONLY a JSON object of the form {{"questions": [{_QUESTION_SHAPE}]}}.'
    )
    return QUIZ_SYSTEM_PROMPT, user


def _weekly_structure(hours: float) -> str:
    if hours <= 5:
        return "1-2 core topics, 2-3 focused resources and 1 small practical exercise per week"
    if hours <= 10:
        return "2-3 topics, 3-4 balanced resources and 1 medium project per week"
    return "3-4 topics, 4-5 comprehensive resources and 1 major project per week"


def _performance_summary(request: GenerationRequest) -> str:
    analysis = request.quiz_performance
    if analysis is None:
        return ""
    gaps = ", ".join(f"{gap.area} (level {gap.current_level}/5)" for gap in analysis.knowledge_gaps)
    return (
        f"Assessment results: strengths {', '.join(analysis.strength_areas) or 'none'}; "
        f"areas to improve {', '.join(analysis.improvement_areas) or 'none'}; "
        f"knowledge gaps {gaps or 'none'}; adjusted level {analysis.adjusted_skill_level.overall:g}/5. "
    )


def roadmap_prompt(
    request: GenerationRequest,
    *,
    start_week: int,
    end_week: int,
    total_weeks: int,
) -> Tuple[str, str]:
    hours = request.time_commitment
    level = request.adjusted_skill_level or request.skill_level
    metadata = {
        "totalWeeks": total_weeks,
        "weeklyCommitment": hours,
        "difficulty": difficulty_for_level(level),
        "focusAreas": list(request.focus_areas),
    }
    week_shape = (
        '{"week": number, "theme": "...", "topics": ["..."], '
        '"resources": [{"type": "video" | "article" | "course", "title": "...", "url": "https://...", '
        f'"duration": "{max(1, math.floor(hours / 3))} hours", "difficulty": "beginner" | "intermediate" | "advanced", '
        '"category": "..."}], '
        f'"project": {{"title": "...", "description": "...", "estimatedHours": {math.ceil(hours * 0.4)}}}, '
        f'"weeklyHours": {hours:g}}}'
    )
    user = (
        f"Create weeks {start_week} to {end_week} of a {total_weeks}-week learning roadmap for {request.goal}, "
        f"optimised for {hours:g} hours/week. "
        f"Skill level: {level:g}/5. Focus areas: {', '.join(request.focus_areas) or 'core concepts'}. "
        + _performance_summary(request)
        + f"Plan {_weekly_structure(hours)}. Number the weeks consecutively starting at {start_week}. "
        + f'Return ONLY a JSON object of the form {{"weeks": [{week_shape}], "metadata": {json.dumps(metadata)}}}.'
    )
    return ROADMAP_SYSTEM_PROMPT, user


def weekly_quiz_prompt(topics: Sequence[str], week_number: int, difficulty: str) -> Tuple[str, str]:
    topic_lines = "\n".join(f"- {topic}" for topic in topics)
    user = (
        f"Generate a quiz at {difficulty} difficulty for week {week_number} about these topics:\n{topic_lines}\n"
        "Generate 5 multiple-choice questions, each with EXACTLY 4 options and a correctAnswer taken from them. "
        f'Return ONLY a JSON object of the form {{"questions": [{_QUESTION_SHAPE}]}}.'
    )
    return QUIZ_SYSTEM_PROMPT, user


__all__ = [
    "QUIZ_SYSTEM_PROMPT",
    "ROADMAP_SYSTEM_PROMPT",
    "quiz_prompt",
    "roadmap_prompt",
    "weekly_quiz_prompt",
]
