"""Deterministic cache key derivation for generation requests.

Keys follow ``<kind>-<goal>-<skillLevel>-<timeCommitment>-<focusAreas>...``.
Every request field that changes the generated content is part of the key, as
is the model identifier, so content produced by a retired model is never
served as current.
"""

from __future__ import annotations

import hashlib
import json
from typing import TYPE_CHECKING, Iterable, Optional

if TYPE_CHECKING:  # pragma: no cover
    from ..models import GenerationRequest, QuizAnalysis


def _normalize(value: str) -> str:
    return " ".join(value.strip().lower().split())


def _number(value: float) -> str:
    return f"{float(value):g}"


def _focus(areas: Iterable[str]) -> str:
    normalized = sorted({_normalize(area) for area in areas if area and area.strip()})
    return ",".join(normalized)


def _performance_digest(analysis: "QuizAnalysis") -> str:
    """Short stable hash of the assessment details a roadmap prompt is built from."""
    summary = {
        "strengths": sorted(_normalize(area) for area in analysis.strength_areas),
        "improvements": sorted(_normalize(area) for area in analysis.improvement_areas),
        "gaps": sorted(
            [_normalize(gap.area), gap.current_level, sorted(_normalize(concept) for concept in gap.concepts)]
            for gap in analysis.knowledge_gaps
        ),
    }
    encoded = json.dumps(summary, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(encoded.encode("utf-8")).hexdigest()[:16]


def build_cache_key(kind: str, *parts: object) -> str:
    rendered = []
    for part in parts:
        if isinstance(part, bool):
            rendered.append(str(part).lower())
        elif isinstance(part, (int, float)):
            rendered.append(_number(part))
        else:
            rendered.append(_normalize(str(part)))
    return "-".join([kind, *rendered])


def quiz_cache_key(request: "GenerationRequest", *, model: str) -> str:
    return build_cache_key(
        "quiz",
        request.goal,
        request.skill_level,
        request.time_commitment,
        _focus(request.focus_areas),
        model,
    )


def roadmap_cache_key(
    request: "GenerationRequest",
    *,
    model: str,
    adjusted_skill_level: Optional[float] = None,
    start_week: Optional[int] = None,
    end_week: Optional[int] = None,
) -> str:
    parts: list[object] = [
        request.goal,
        request.skill_level,
        request.time_commitment,
        _focus(request.focus_areas),
        adjusted_skill_level if adjusted_skill_level is not None else "self",
    ]
    if request.quiz_performance is not None:
        parts.append(f"perf{_performance_digest(request.quiz_performance)}")
    if start_week is not None and end_week is not None:
        parts.append(f"weeks{start_week}to{end_week}")
    parts.append(model)
    return build_cache_key("roadmap", *parts)


def weekly_quiz_cache_key(request: "GenerationRequest", week: int, topics: Iterable[str], *, model: str) -> str:
    return build_cache_key(
        "weekly-quiz",
        request.goal,
        request.skill_level,
        _effective_level_part(request),
        f"week{week}",
        _focus(topics),
        model,
    )


def _effective_level_part(request: "GenerationRequest") -> object:
    adjusted = request.adjusted_skill_level
    return adjusted if adjusted is not None else "self"


def courses_cache_key(topic: str) -> str:
    return build_cache_key("freeCourses", topic)


def goal_tag(goal: str) -> str:
    return f"goal:{_normalize(goal)}"


__all__ = [
    "build_cache_key",
    "courses_cache_key",
    "goal_tag",
    "quiz_cache_key",
    "roadmap_cache_key",
    "weekly_quiz_cache_key",
]
