from __future__ import annotations

from learnpath.cache import (
    build_cache_key,
    courses_cache_key,
    goal_tag,
    quiz_cache_key,
    roadmap_cache_key,
    weekly_quiz_cache_key,
)
from learnpath.models import GenerationRequest


def _request(**overrides) -> GenerationRequest:
    fields = {
        "goal": "Web Development",
        "skillLevel": 3,
        "focusAreas": ["HTML/CSS", "JavaScript"],
        "timeCommitment": 10,
    }
    fields.update(overrides)
    return GenerationRequest.model_validate(fields)


def test_quiz_key_is_deterministic_and_normalised() -> None:
    first = quiz_cache_key(_request(), model="gpt-4o-mini")
    second = quiz_cache_key(
        _request(goal="  web   development ", focusAreas=["javascript", "HTML/CSS", "JavaScript"]),
        model="gpt-4o-mini",
    )
    assert first == second
    assert first == "quiz-web development-3-10-html/css,javascript-gpt-4o-mini"


def test_quiz_key_changes_with_content_inputs() -> None:
    base = quiz_cache_key(_request(), model="gpt-4o-mini")
    assert quiz_cache_key(_request(skillLevel=4), model="gpt-4o-mini") != base
    assert quiz_cache_key(_request(timeCommitment=5), model="gpt-4o-mini") != base
    assert quiz_cache_key(_request(focusAreas=["React"]), model="gpt-4o-mini") != base
    assert quiz_cache_key(_request(), model="gpt-4.1") != base


def test_roadmap_key_includes_adjusted_level_and_range() -> None:
    request = _request()
    self_reported = roadmap_cache_key(request, model="m")
    adjusted = roadmap_cache_key(request, model="m", adjusted_skill_level=4.5)
    chunk = roadmap_cache_key(request, model="m", start_week=1, end_week=4)

    assert self_reported == "roadmap-web development-3-10-html/css,javascript-self-m"
    assert adjusted == "roadmap-web development-3-10-html/css,javascript-4.5-m"
    assert chunk.endswith("-weeks1to4-m")
    assert roadmap_cache_key(request, model="m", start_week=5, end_week=8) != chunk


def test_other_keys() -> None:
    assert weekly_quiz_cache_key(_request(), 2, ["Flexbox", "Grid"], model="m") == (
        "weekly-quiz-web development-3-self-week2-flexbox,grid-m"
    )
    assert courses_cache_key("Python") == "freeCourses-python"
    assert build_cache_key("x", True, 2.50, " A  b ") == "x-true-2.5-a b"
    assert goal_tag(" Data  Science") == "goal:data science"


def _analysis(overall: float, gaps: list, strengths: tuple = ("Syntax",)) -> dict:
    return {
        "strengthAreas": list(strengths),
        "improvementAreas": [gap["area"] for gap in gaps],
        "adjustedSkillLevel": {"overall": overall, "byArea": {}},
        "knowledgeGaps": gaps,
    }


def test_roadmap_key_tracks_assessment_details() -> None:
    syntax_gap = [{"area": "Syntax", "concepts": ["fundamentals"], "currentLevel": 2}]
    testing_gap = [{"area": "Testing", "concepts": ["practical"], "currentLevel": 2}]
    first = _request(quizPerformance=_analysis(3, syntax_gap))
    second = _request(quizPerformance=_analysis(3, testing_gap))
    reordered = _request(
        quizPerformance=_analysis(3, list(reversed(syntax_gap + testing_gap)), strengths=("b", "a"))
    )
    same_again = _request(
        quizPerformance=_analysis(3, syntax_gap + testing_gap, strengths=("a", "b"))
    )

    key = roadmap_cache_key(first, model="m", adjusted_skill_level=3)
    assert key != roadmap_cache_key(second, model="m", adjusted_skill_level=3)
    assert roadmap_cache_key(reordered, model="m", adjusted_skill_level=3) == roadmap_cache_key(
        same_again, model="m", adjusted_skill_level=3
    )
    assert "-perf" in key
    assert "-perf" not in roadmap_cache_key(_request(), model="m")


def test_weekly_quiz_key_tracks_adjusted_level() -> None:
    novice = _request(quizPerformance=_analysis(1, []))
    expert = _request(quizPerformance=_analysis(5, []))

    assert weekly_quiz_cache_key(novice, 2, ["Grid"], model="m") != weekly_quiz_cache_key(
        expert, 2, ["Grid"], model="m"
    )
    assert "-1-week2-" in weekly_quiz_cache_key(novice, 2, ["Grid"], model="m")
