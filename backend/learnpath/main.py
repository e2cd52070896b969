import logging
from contextlib import asynccontextmanager
from dataclasses import asdict
from typing import Any, AsyncIterator, Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ConfigDict, Field

from .cache import AdvancedCache, build_cache
from .config import Settings, get_settings
from .course_lookup import CourseAggregator
from .db.session import dispose_engine
from .errors import GenerationError
from .generation import LearningPathGenerator
from .learning_paths import focus_areas_for_goal, is_custom_goal
from .logging_config import configure_logging
from .models import GenerationRequest, QuizQuestion, QuizResponse, RoadmapWeek
from .provider import OpenAIProvider
from .quiz_analysis import analyze_quiz_responses


configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    yield
    await release_resources()


app = FastAPI(title="Learnpath Backend", version="0.1.0", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

settings_snapshot = get_settings()
logger.info("Backend starting with model %s and %s cache", settings_snapshot.generation_model, settings_snapshot.cache_backend)
logger.info("OpenAI API key configured: %s", bool(settings_snapshot.openai_api_key))


_cache: Optional[AdvancedCache] = None
_aggregator: Optional[CourseAggregator] = None
_generator: Optional[LearningPathGenerator] = None


def get_cache() -> AdvancedCache:
    global _cache
    if _cache is None:
        _cache = build_cache(get_settings())
    return _cache


def get_aggregator() -> CourseAggregator:
    global _aggregator
    if _aggregator is None:
        _aggregator = CourseAggregator(get_cache(), get_settings())
    return _aggregator


def get_generator() -> LearningPathGenerator:
    global _generator
    if _generator is None:
        settings = get_settings()
        _generator = LearningPathGenerator(
            OpenAIProvider(settings),
            get_cache(),
            settings=settings,
            resource_finder=get_aggregator(),
        )
    return _generator


async def release_resources() -> None:
    """Close the course lookup HTTP client and the cache database engine."""
    global _aggregator, _generator
    if _aggregator is not None:
        await _aggregator.aclose()
        logger.info("Closed course lookup client")
    _aggregator = None
    _generator = None
    dispose_engine()


class QuizAnalysisRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    questions: List[QuizQuestion]
    responses: List[QuizResponse]
    skill_level: float = Field(ge=1, le=5, alias="skillLevel")


class WeeklyQuizRequest(BaseModel):
    request: GenerationRequest
    week: RoadmapWeek


def _parse_week(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


@app.get("/healthz")
def health(settings: Settings = Depends(get_settings)) -> Dict[str, str]:
    return {"status": "ok", "cache_backend": settings.cache_backend}


@app.get("/api/focus-areas")
def focus_areas(goal: str = Query(..., min_length=1)) -> Dict[str, Any]:
    return {
        "goal": goal,
        "focusAreas": focus_areas_for_goal(goal),
        "isCustomGoal": is_custom_goal(goal),
    }


@app.post("/api/quiz")
async def create_quiz(
    request: GenerationRequest,
    allow_fallback: bool = Query(False, alias="allowFallback"),
    generator: LearningPathGenerator = Depends(get_generator),
) -> Dict[str, Any]:
    try:
        quiz = await generator.generate_quiz(request, allow_fallback=allow_fallback)
    except GenerationError as exc:
        logger.error("Quiz generation failed: %s", exc)
        raise HTTPException(status_code=502, detail="Failed to generate quiz. Please try again.") from exc
    return quiz.to_wire()


@app.post("/api/quiz/analysis")
def analyse_quiz(payload: QuizAnalysisRequest) -> Dict[str, Any]:
    analysis = analyze_quiz_responses(payload.questions, payload.responses, payload.skill_level)
    return analysis.to_wire()


@app.post("/api/roadmap")
async def create_roadmap(
    request: GenerationRequest,
    start: Optional[str] = Query(None),
    end: Optional[str] = Query(None),
    generator: LearningPathGenerator = Depends(get_generator),
) -> List[Dict[str, Any]]:
    if start is None or end is None:
        raise HTTPException(status_code=400, detail="Missing start or end week parameters")
    start_week, end_week = _parse_week(start), _parse_week(end)
    if start_week is None or end_week is None or start_week < 1 or end_week < start_week:
        raise HTTPException(status_code=400, detail="Invalid start or end week parameters")
    try:
        weeks = await generator.generate_roadmap_chunk(request, start_week, end_week)
    except GenerationError as exc:
        logger.error("Roadmap generation failed: %s", exc)
        raise HTTPException(status_code=502, detail="Failed to generate roadmap. Please try again.") from exc
    return [week.to_wire() for week in weeks]


@app.post("/api/roadmap/weekly-quiz")
async def create_weekly_quiz(
    payload: WeeklyQuizRequest,
    generator: LearningPathGenerator = Depends(get_generator),
) -> Dict[str, Any]:
    try:
        quiz = await generator.generate_weekly_quiz(payload.request, payload.week)
    except GenerationError as exc:
        logger.error("Weekly quiz generation failed: %s", exc)
        raise HTTPException(status_code=502, detail="Failed to generate quiz. Please try again.") from exc
    return quiz.to_wire()


@app.get("/api/courses")
async def courses(
    topic: str = Query(..., min_length=1),
    aggregator: CourseAggregator = Depends(get_aggregator),
) -> List[Dict[str, Any]]:
    results = await aggregator.aggregate_free_courses(topic)
    return [course.model_dump(mode="json", exclude_none=True) for course in results]


@app.get("/api/cache/stats")
def cache_stats(cache: AdvancedCache = Depends(get_cache)) -> Dict[str, Any]:
    return asdict(cache.get_stats())


@app.delete("/api/cache")
def clear_cache(
    tags: Optional[List[str]] = Query(None),
    cache: AdvancedCache = Depends(get_cache),
) -> Dict[str, int]:
    removed = cache.clear_by_tags(tags) if tags else cache.clear()
    return {"removed": removed}
