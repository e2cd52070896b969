"""Structural validators for provider-generated quizzes and roadmaps.

These predicates are the only gate between parsed provider text and data the
rest of the system trusts or caches. They never mutate their input and never
raise; a failure is logged with the offending location and reported as
``False``.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Optional
from urllib.parse import urlparse

if TYPE_CHECKING:  # pragma: no cover
    from .config import Settings

logger = logging.getLogger(__name__)

QUESTION_TYPES = frozenset({"multiple_choice", "open_ended"})
RESOURCE_TYPES = frozenset({"video", "article", "course"})
DIFFICULTIES = frozenset({"beginner", "intermediate", "advanced"})
MULTIPLE_CHOICE_OPTION_COUNT = 4

_DURATION_PATTERN = re.compile(r"^\d+\s*(min|mins|hour|hours|week|weeks)$", re.IGNORECASE)


@dataclass(frozen=True)
class QuizPolicy:
    """Product rules layered on top of the structural quiz checks."""

    require_both_types: bool = True
    require_exact_counts: bool = False
    multiple_choice_count: int = 3
    open_ended_count: int = 2
    strict_options: bool = True

    @classmethod
    def from_settings(cls, settings: "Settings") -> "QuizPolicy":
        return cls(
            require_exact_counts=settings.quiz_exact_counts,
            multiple_choice_count=settings.quiz_multiple_choice_count,
            open_ended_count=settings.quiz_open_ended_count,
            strict_options=settings.quiz_strict_options,
        )


DEFAULT_QUIZ_POLICY = QuizPolicy()
WEEKLY_QUIZ_POLICY = QuizPolicy(require_both_types=False)


def _is_sequence(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes))


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _non_empty_string(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def _question_problem(question: Any, policy: QuizPolicy) -> Optional[str]:
    if not isinstance(question, Mapping):
        return "question is not an object"
    if not _non_empty_string(question.get("text")):
        return "text is missing or empty"
    question_type = question.get("type")
    if question_type not in QUESTION_TYPES:
        return f"unrecognised type {question_type!r}"
    points = question.get("points")
    if points is not None and not (_is_number(points) and points > 0):
        return f"points must be a positive number, got {points!r}"
    if question_type == "multiple_choice":
        options = question.get("options")
        if not _is_sequence(options) or not options:
            return "multiple_choice question has no options"
        if not all(isinstance(option, str) for option in options):
            return "options must be strings"
        if policy.strict_options:
            if len(options) != MULTIPLE_CHOICE_OPTION_COUNT:
                return f"expected {MULTIPLE_CHOICE_OPTION_COUNT} options, got {len(options)}"
            if question.get("correctAnswer") not in options:
                return "correctAnswer is not one of the options"
    return None


def validate_quiz_structure(candidate: Any, policy: Optional[QuizPolicy] = None) -> bool:
    policy = policy or DEFAULT_QUIZ_POLICY
    if not isinstance(candidate, Mapping):
        logger.warning("Quiz validation: payload is not an object")
        return False
    questions = candidate.get("questions")
    if not _is_sequence(questions):
        logger.warning("Quiz validation: missing questions array")
        return False

    counts = {question_type: 0 for question_type in QUESTION_TYPES}
    for index, question in enumerate(questions):
        problem = _question_problem(question, policy)
        if problem:
            logger.warning("Quiz validation: question %s invalid (%s)", index + 1, problem)
            return False
        counts[question["type"]] += 1

    if policy.require_both_types and (not counts["multiple_choice"] or not counts["open_ended"]):
        logger.warning("Quiz validation: need multiple_choice and open_ended questions, got %s", counts)
        return False
    if policy.require_exact_counts and (
        counts["multiple_choice"] != policy.multiple_choice_count
        or counts["open_ended"] != policy.open_ended_count
    ):
        logger.warning(
            "Quiz validation: expected %s multiple_choice and %s open_ended questions, got %s",
            policy.multiple_choice_count,
            policy.open_ended_count,
            counts,
        )
        return False
    if not questions:
        logger.warning("Quiz validation: questions array is empty")
        return False
    return True


def _resource_problem(resource: Any) -> Optional[str]:
    if not isinstance(resource, Mapping):
        return "resource is not an object"
    if resource.get("type") not in RESOURCE_TYPES:
        return f"unrecognised type {resource.get('type')!r}"
    if not _non_empty_string(resource.get("title")):
        return "title is missing or empty"
    if not _non_empty_string(resource.get("url")):
        return "url is missing or empty"
    difficulty = resource.get("difficulty")
    if difficulty is not None and difficulty not in DIFFICULTIES:
        return f"unrecognised difficulty {difficulty!r}"
    duration = resource.get("duration")
    if duration is not None and not isinstance(duration, str):
        return "duration must be a string"
    return None


def _week_problem(week: Any) -> Optional[str]:
    if not isinstance(week, Mapping):
        return "week is not an object"
    if not _is_number(week.get("week")):
        return "week number is missing"
    topics = week.get("topics")
    if not _is_sequence(topics) or not topics:
        return "topics must be a non-empty array"
    resources = week.get("resources")
    if not _is_sequence(resources):
        return "resources must be an array"
    for index, resource in enumerate(resources):
        problem = _resource_problem(resource)
        if problem:
            return f"resource {index + 1}: {problem}"
    return None


def validate_roadmap_structure(candidate: Any, *, first_week: Optional[int] = None) -> bool:
    """Check a roadmap payload; with ``first_week`` also require contiguous numbering."""
    if not isinstance(candidate, Mapping):
        logger.warning("Roadmap validation: payload is not an object")
        return False
    weeks = candidate.get("weeks")
    if not _is_sequence(weeks):
        logger.warning("Roadmap validation: weeks array missing")
        return False

    for index, week in enumerate(weeks):
        problem = _week_problem(week)
        if problem:
            logger.warning("Roadmap validation: week %s invalid (%s)", index + 1, problem)
            return False

    if first_week is not None:
        numbers = [week["week"] for week in weeks]
        expected = list(range(first_week, first_week + len(weeks)))
        if numbers != expected:
            logger.warning("Roadmap validation: weeks %s are not contiguous from %s", numbers, first_week)
            return False
    return True


def is_valid_url(url: Any) -> bool:
    if not isinstance(url, str):
        return False
    parsed = urlparse(url.strip())
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def is_valid_duration(duration: Any) -> bool:
    return isinstance(duration, str) and bool(_DURATION_PATTERN.match(duration.strip()))


__all__ = [
    "DEFAULT_QUIZ_POLICY",
    "QuizPolicy",
    "WEEKLY_QUIZ_POLICY",
    "is_valid_duration",
    "is_valid_url",
    "validate_quiz_structure",
    "validate_roadmap_structure",
]
