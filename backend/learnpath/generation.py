"""Generation facade: cache lookup, provider call, validation, cache write.

The facade is the only writer of generated content into the cache. Content is
cached only after it has passed structural validation and parsed into the
domain models, so a malformed provider response can never poison later reads
for the same key.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from typing import Any, Awaitable, Callable, List, Optional, Protocol, Sequence, Type, TypeVar

from pydantic import BaseModel, ValidationError

from .cache import AdvancedCache, goal_tag, quiz_cache_key, roadmap_cache_key, weekly_quiz_cache_key
from .config import Settings, get_settings
from .errors import (
    GenerationError,
    ProviderError,
    QuizValidationError,
    ResponseParseError,
    RoadmapValidationError,
)
from .models import (
    GenerationRequest,
    LearningResource,
    QuizData,
    QuizQuestion,
    RoadmapData,
    RoadmapMetadata,
    RoadmapWeek,
    WeeklyQuizData,
    WeeklyQuizMetadata,
    difficulty_for_level,
)
from .prompts import quiz_prompt, roadmap_prompt, weekly_quiz_prompt
from .provider import GenerationConfig, GenerationProvider
from .retry import RetryOptions, retry_async
from .telemetry import emit_event
from .validators import QuizPolicy, validate_quiz_structure, validate_roadmap_structure

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

QUIZ_CONFIG = GenerationConfig(temperature=0.3, top_p=0.8, max_output_tokens=2048)
ROADMAP_CONFIG = GenerationConfig(temperature=0.7, top_p=0.95, max_output_tokens=4096)

QUIZ_TAG = "quiz"
ROADMAP_TAG = "roadmap"
WEEKLY_QUIZ_TAG = "weekly-quiz"

_FENCE = re.compile(r"```(?:json)?", re.IGNORECASE)
_JSON_START = re.compile(r"[{\[]")
_DECODER = json.JSONDecoder()


class ResourceFinder(Protocol):
    async def find_resource(self, topic: str, resource_type: str) -> Optional[LearningResource]:  # pragma: no cover
        ...


def clean_json_response(text: str) -> str:
    """Strip Markdown fences and return the first complete JSON document in the text.

    Each `{` or `[` is tried in order and decoded up to its matching close, so
    bracketed prose that is not JSON and anything after the payload are
    skipped. When nothing decodes, the fence-stripped text is returned as is.
    """
    cleaned = _FENCE.sub("", text).strip()
    for match in _JSON_START.finditer(cleaned):
        try:
            _, end = _DECODER.raw_decode(cleaned, match.start())
        except json.JSONDecodeError:
            continue
        return cleaned[match.start() : end]
    return cleaned


def parse_json_response(text: str) -> Any:
    try:
        return json.loads(clean_json_response(text))
    except json.JSONDecodeError as exc:
        raise ResponseParseError(f"Provider returned malformed JSON: {exc}") from exc


def fallback_quiz(request: GenerationRequest) -> QuizData:
    """A generic placeholder quiz used when generation fails and the caller opts in."""
    goal = request.goal
    areas = list(request.focus_areas) or [goal]
    difficulty = request.difficulty

    def area(index: int) -> str:
        return areas[index % len(areas)]

    multiple_choice = [
        (
            f"Which approach is most effective when starting to learn {goal}?",
            [
                "Build small projects while studying the fundamentals",
                "Memorise reference material before practising",
                "Skip the basics and start with advanced topics",
                "Watch tutorials without practising",
            ],
        ),
        (
            f"What should you do first when you get stuck on a {area(1)} problem?",
            [
                "Break the problem into smaller parts and test each one",
                "Start the whole task again from scratch",
                "Move on and never revisit it",
                "Copy a solution without reading it",
            ],
        ),
        (
            f"How can you best confirm that you understood a new {area(2)} concept?",
            [
                "Explain it in your own words and apply it to an example",
                "Re-read the same page several times",
                "Highlight the key terms",
                "Move on once it looks familiar",
            ],
        ),
    ]
    questions: List[QuizQuestion] = [
        QuizQuestion(
            id=f"fallback-{index + 1}",
            text=text,
            type="multiple_choice",
            category="fundamentals",
            skill_area=area(index),
            difficulty=difficulty,
            options=options,
            correct_answer=options[0],
            explanation="Active, incremental practice builds durable understanding.",
            points=10,
        )
        for index, (text, options) in enumerate(multiple_choice)
    ]
    questions.append(
        QuizQuestion(
            id="fallback-4",
            text=f"Describe a project you would like to build with {goal} and the skills it requires.",
            type="open_ended",
            category="practical",
            skill_area=area(0),
            difficulty=difficulty,
            explanation="A strong answer names concrete features and the skills behind them.",
            points=15,
        )
    )
    questions.append(
        QuizQuestion(
            id="fallback-5",
            text=f"Explain the most important {area(1)} concept you already know and how you applied it.",
            type="open_ended",
            category="fundamentals",
            skill_area=area(1),
            difficulty=difficulty,
            explanation="A strong answer defines the concept and gives a real example.",
            points=15,
        )
    )
    return QuizData(questions=questions)


def placeholder_week(week: int, weekly_hours: Optional[float] = None) -> RoadmapWeek:
    return RoadmapWeek(week=week, weekly_hours=weekly_hours, is_loaded=False)


def merge_weeks(roadmap: RoadmapData, weeks: Sequence[RoadmapWeek]) -> RoadmapData:
    """Return a new roadmap with ``weeks`` replacing the entries of the same number."""
    replacements = {week.week: week for week in weeks}
    merged = [replacements.pop(existing.week, existing) for existing in roadmap.weeks]
    merged.extend(sorted(replacements.values(), key=lambda week: week.week))
    return roadmap.model_copy(update={"weeks": merged})


class LearningPathGenerator:
    """Produces quizzes and roadmaps, consulting the cache before the provider."""

    def __init__(
        self,
        provider: GenerationProvider,
        cache: AdvancedCache,
        *,
        settings: Optional[Settings] = None,
        quiz_policy: Optional[QuizPolicy] = None,
        retry_options: Optional[RetryOptions] = None,
        resource_finder: Optional[ResourceFinder] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.settings = settings or get_settings()
        self.provider = provider
        self.cache = cache
        self.quiz_policy = quiz_policy or QuizPolicy.from_settings(self.settings)
        self.weekly_quiz_policy = QuizPolicy(
            require_both_types=False,
            strict_options=self.quiz_policy.strict_options,
        )
        self.retry_options = retry_options or RetryOptions.from_settings(self.settings)
        self.resource_finder = resource_finder
        self._sleep = sleep

    # ------------------------------------------------------------------
    # Quizzes
    # ------------------------------------------------------------------
    async def generate_quiz(self, request: GenerationRequest, *, allow_fallback: bool = False) -> QuizData:
        key = quiz_cache_key(request, model=self.provider.model)
        cached = self._cached(key, QuizData)
        if cached is not None:
            return cached

        system, user = quiz_prompt(request, self.quiz_policy)
        try:
            payload = await self._request_json(system, user, QUIZ_CONFIG, kind="quiz")
            if not validate_quiz_structure(payload, self.quiz_policy):
                raise QuizValidationError("Generated quiz does not meet requirements")
            quiz = self._parse(payload, QuizData, QuizValidationError)
        except GenerationError as exc:
            emit_event("generation_failed", kind="quiz", error=type(exc).__name__)
            if not allow_fallback:
                raise
            logger.warning("Quiz generation failed for %s; using fallback quiz", request.goal)
            emit_event("generation_fallback_used", kind="quiz")
            return fallback_quiz(request)

        self.cache.set(key, quiz.to_wire(), tags=[QUIZ_TAG, goal_tag(request.goal)])
        return quiz

    async def generate_weekly_quiz(self, request: GenerationRequest, week: RoadmapWeek) -> WeeklyQuizData:
        key = weekly_quiz_cache_key(request, week.week, week.topics, model=self.provider.model)
        cached = self._cached(key, WeeklyQuizData)
        if cached is not None:
            return cached

        level = request.adjusted_skill_level or request.skill_level
        difficulty = difficulty_for_level(level)
        system, user = weekly_quiz_prompt(week.topics or [week.theme or request.goal], week.week, difficulty)
        try:
            payload = await self._request_json(system, user, QUIZ_CONFIG, kind="weekly_quiz")
            if not validate_quiz_structure(payload, self.weekly_quiz_policy):
                raise QuizValidationError(f"Generated quiz for week {week.week} does not meet requirements")
            quiz = self._parse(payload, QuizData, QuizValidationError)
        except GenerationError as exc:
            emit_event("generation_failed", kind="weekly_quiz", week=week.week, error=type(exc).__name__)
            raise

        weekly = WeeklyQuizData(
            questions=quiz.questions,
            metadata=WeeklyQuizMetadata(difficulty=difficulty, adaptive_level=level),
            week_number=week.week,
        )
        self.cache.set(key, weekly.to_wire(), tags=[WEEKLY_QUIZ_TAG, goal_tag(request.goal)])
        return weekly

    # ------------------------------------------------------------------
    # Roadmaps
    # ------------------------------------------------------------------
    def roadmap_outline(self, request: GenerationRequest) -> RoadmapData:
        total = self.settings.roadmap_total_weeks
        return RoadmapData(
            weeks=[placeholder_week(number, request.time_commitment) for number in range(1, total + 1)],
            metadata=self._metadata(request),
        )

    async def generate_roadmap(self, request: GenerationRequest) -> RoadmapData:
        return await self._roadmap_range(request, 1, self.settings.roadmap_total_weeks)

    async def generate_roadmap_chunk(
        self, request: GenerationRequest, start_week: int, end_week: int
    ) -> List[RoadmapWeek]:
        roadmap = await self._roadmap_range(request, start_week, end_week)
        return list(roadmap.weeks)

    async def load_weeks(
        self, roadmap: RoadmapData, request: GenerationRequest, start_week: int, end_week: int
    ) -> RoadmapData:
        weeks = await self.generate_roadmap_chunk(request, start_week, end_week)
        return merge_weeks(roadmap, weeks)

    async def _roadmap_range(self, request: GenerationRequest, start_week: int, end_week: int) -> RoadmapData:
        if start_week < 1 or end_week < start_week:
            raise ValueError(f"Invalid week range {start_week}-{end_week}")

        key = roadmap_cache_key(
            request,
            model=self.provider.model,
            adjusted_skill_level=request.adjusted_skill_level,
            start_week=start_week,
            end_week=end_week,
        )
        cached = self._cached(key, RoadmapData)
        if cached is not None:
            return cached

        system, user = roadmap_prompt(
            request,
            start_week=start_week,
            end_week=end_week,
            total_weeks=max(self.settings.roadmap_total_weeks, end_week),
        )
        expected = end_week - start_week + 1
        try:
            payload = await self._request_json(system, user, ROADMAP_CONFIG, kind="roadmap")
            if not validate_roadmap_structure(payload, first_week=start_week):
                raise RoadmapValidationError("Invalid roadmap structure")
            if len(payload["weeks"]) != expected:
                raise RoadmapValidationError(
                    f"Expected {expected} weeks starting at {start_week}, got {len(payload['weeks'])}"
                )
            roadmap = self._parse(payload, RoadmapData, RoadmapValidationError)
        except GenerationError as exc:
            emit_event("generation_failed", kind="roadmap", error=type(exc).__name__)
            raise

        weeks = [week.model_copy(update={"is_loaded": True}) for week in roadmap.weeks]
        weeks = await self._fill_missing_resources(weeks)
        roadmap = roadmap.model_copy(update={"weeks": weeks, "metadata": roadmap.metadata or self._metadata(request)})
        self.cache.set(key, roadmap.to_wire(), tags=[ROADMAP_TAG, goal_tag(request.goal)])
        return roadmap

    async def _fill_missing_resources(self, weeks: List[RoadmapWeek]) -> List[RoadmapWeek]:
        if self.resource_finder is None:
            return weeks
        finder = self.resource_finder
        missing = [index for index, week in enumerate(weeks) if not week.resources and week.topics]
        if not missing:
            return weeks

        found = await asyncio.gather(
            *(finder.find_resource(weeks[index].topics[0], "course") for index in missing),
            return_exceptions=True,
        )
        filled = list(weeks)
        for index, resource in zip(missing, found):
            if isinstance(resource, BaseException):
                logger.warning("Resource lookup failed for week %s: %s", weeks[index].week, resource)
                continue
            if resource is not None:
                filled[index] = weeks[index].model_copy(update={"resources": [resource]})
        return filled

    def _metadata(self, request: GenerationRequest) -> RoadmapMetadata:
        level = request.adjusted_skill_level or request.skill_level
        return RoadmapMetadata(
            total_weeks=self.settings.roadmap_total_weeks,
            weekly_commitment=request.time_commitment,
            difficulty=difficulty_for_level(level),
            focus_areas=list(request.focus_areas),
        )

    # ------------------------------------------------------------------
    # Invalidation
    # ------------------------------------------------------------------
    def invalidate(self, kind: str) -> int:
        """Drop every cached item of one kind (``quiz``, ``roadmap`` or ``weekly-quiz``)."""
        return self.cache.clear_by_tags([kind])

    def invalidate_goal(self, goal: str) -> int:
        return self.cache.clear_by_tags([goal_tag(goal)])

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    async def _request_json(
        self, system: str, user: str, config: GenerationConfig, *, kind: str
    ) -> Any:
        async def attempt() -> Any:
            text = await self.provider.generate(system, user, config)
            return parse_json_response(text)

        try:
            return await retry_async(
                attempt,
                self.retry_options,
                retry_on=(ProviderError, ResponseParseError),
                sleep=self._sleep,
            )
        except ResponseParseError:
            logger.exception("Provider never returned parseable JSON for %s", kind)
            raise
        except ProviderError as exc:
            logger.exception("Provider failed for %s", kind)
            raise GenerationError(f"Failed to generate {kind.replace('_', ' ')}. Please try again.") from exc

    def _cached(self, key: str, model: Type[ModelT]) -> Optional[ModelT]:
        payload = self.cache.get(key)
        if payload is None:
            return None
        try:
            result = model.model_validate(payload)
        except ValidationError as exc:
            logger.warning("Cached %s for %s no longer matches the schema: %s", model.__name__, key, exc)
            self.cache.invalidate(key)
            return None
        emit_event("generation_cache_hit", key=key)
        return result

    @staticmethod
    def _parse(payload: Any, model: Type[ModelT], error: Type[GenerationError]) -> ModelT:
        try:
            return model.model_validate(payload)
        except ValidationError as exc:
            raise error(f"Generated {model.__name__} failed schema checks: {exc}") from exc


__all__ = [
    "LearningPathGenerator",
    "ResourceFinder",
    "clean_json_response",
    "fallback_quiz",
    "merge_weeks",
    "parse_json_response",
    "placeholder_week",
]
