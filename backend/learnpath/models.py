"""Data models for quizzes, roadmaps and quiz analysis.

Field names are snake_case in Python and camelCase on the wire, matching the
JSON the generation provider is asked to return.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

Difficulty = Literal["beginner", "intermediate", "advanced"]
QuestionType = Literal["multiple_choice", "open_ended"]
ResourceType = Literal["video", "article", "course"]


class WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class QuizQuestion(WireModel):
    id: str
    text: str
    type: QuestionType
    category: str = ""
    skill_area: str = Field("", alias="skillArea")
    difficulty: Difficulty = "intermediate"
    options: Optional[List[str]] = None
    correct_answer: str = Field("", alias="correctAnswer")
    explanation: str = ""
    points: float = Field(10, gt=0)


class QuizData(WireModel):
    questions: List[QuizQuestion] = Field(default_factory=list)


class QuizResponse(WireModel):
    question_id: str = Field(alias="questionId")
    answer: str
    is_correct: Optional[bool] = Field(None, alias="isCorrect")
    points: Optional[float] = None


class KnowledgeGap(WireModel):
    area: str
    concepts: List[str] = Field(default_factory=list)
    current_level: int = Field(alias="currentLevel")


class AdjustedSkillLevel(WireModel):
    overall: float
    by_area: Dict[str, int] = Field(default_factory=dict, alias="byArea")


class QuizAnalysis(WireModel):
    total_score: float = Field(0, alias="totalScore")
    max_possible_score: float = Field(0, alias="maxPossibleScore")
    strength_areas: List[str] = Field(default_factory=list, alias="strengthAreas")
    improvement_areas: List[str] = Field(default_factory=list, alias="improvementAreas")
    adjusted_skill_level: AdjustedSkillLevel = Field(alias="adjustedSkillLevel")
    knowledge_gaps: List[KnowledgeGap] = Field(default_factory=list, alias="knowledgeGaps")


class LearningResource(WireModel):
    type: ResourceType
    title: str
    url: str
    duration: Optional[str] = None
    difficulty: Optional[Difficulty] = None
    category: Optional[str] = None
    description: Optional[str] = None


class RoadmapProject(WireModel):
    title: str
    description: str = ""
    estimated_hours: Optional[float] = Field(None, alias="estimatedHours")
    type: Optional[str] = None


class WeeklyQuizMetadata(WireModel):
    generated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), alias="generatedAt")
    difficulty: Difficulty = "intermediate"
    adaptive_level: float = Field(3, alias="adaptiveLevel")


class WeeklyQuizData(WireModel):
    questions: List[QuizQuestion] = Field(default_factory=list)
    metadata: WeeklyQuizMetadata = Field(default_factory=WeeklyQuizMetadata)
    purpose: Literal["adaptive_learning"] = "adaptive_learning"
    week_number: int = Field(ge=1, alias="weekNumber")


class RoadmapWeek(WireModel):
    week: int = Field(ge=1)
    theme: str = ""
    topics: List[str] = Field(default_factory=list)
    resources: List[LearningResource] = Field(default_factory=list)
    project: Optional[RoadmapProject] = None
    weekly_hours: Optional[float] = Field(None, alias="weeklyHours")
    quiz: Optional[WeeklyQuizData] = None
    is_loaded: bool = Field(True, alias="isLoaded")
    completed: Optional[bool] = None
    quiz_passed: Optional[bool] = Field(None, alias="quizPassed")
    adaptive_level: Optional[float] = Field(None, alias="adaptiveLevel")


class RoadmapMetadata(WireModel):
    total_weeks: int = Field(alias="totalWeeks")
    weekly_commitment: float = Field(alias="weeklyCommitment")
    difficulty: str = "intermediate"
    focus_areas: List[str] = Field(default_factory=list, alias="focusAreas")


class RoadmapData(WireModel):
    weeks: List[RoadmapWeek] = Field(default_factory=list)
    metadata: Optional[RoadmapMetadata] = None


class GenerationRequest(WireModel):
    """Structured input handed to the generation facade."""

    goal: str = Field(min_length=1)
    skill_level: float = Field(ge=1, le=5, alias="skillLevel")
    focus_areas: List[str] = Field(default_factory=list, alias="focusAreas")
    time_commitment: float = Field(gt=0, alias="timeCommitment")
    learning_style: Optional[str] = Field(None, alias="learningStyle")
    quiz_performance: Optional[QuizAnalysis] = Field(None, alias="quizPerformance")

    @property
    def difficulty(self) -> Difficulty:
        return difficulty_for_level(self.skill_level)

    @property
    def adjusted_skill_level(self) -> Optional[float]:
        if self.quiz_performance is None:
            return None
        return self.quiz_performance.adjusted_skill_level.overall


class AssessmentData(WireModel):
    """Everything the guided assessment collects about one learner."""

    goal: str
    skill_level: float = Field(ge=1, le=5, alias="skillLevel")
    focus_areas: List[str] = Field(default_factory=list, alias="focusAreas")
    learning_preferences: List[str] = Field(default_factory=list, alias="learningPreferences")
    time_commitment: float = Field(5, gt=0, alias="timeCommitment")
    learning_style: str = Field("visual", alias="learningStyle")
    additional_context: Optional[str] = Field(None, alias="additionalContext")
    quiz_responses: List[QuizResponse] = Field(default_factory=list, alias="quizResponses")
    generated_quiz: Optional[QuizData] = Field(None, alias="generatedQuiz")
    roadmap: Optional[RoadmapData] = None
    is_custom_goal: bool = Field(False, alias="isCustomGoal")
    quiz_analysis: Optional[QuizAnalysis] = Field(None, alias="quizAnalysis")

    def to_generation_request(self) -> GenerationRequest:
        return GenerationRequest(
            goal=self.goal,
            skill_level=self.skill_level,
            focus_areas=list(self.focus_areas),
            time_commitment=self.time_commitment,
            learning_style=self.learning_style,
            quiz_performance=self.quiz_analysis,
        )


def difficulty_for_level(skill_level: float) -> Difficulty:
    if skill_level <= 2:
        return "beginner"
    if skill_level <= 4:
        return "intermediate"
    return "advanced"


__all__ = [
    "AdjustedSkillLevel",
    "AssessmentData",
    "Difficulty",
    "GenerationRequest",
    "KnowledgeGap",
    "LearningResource",
    "QuestionType",
    "QuizAnalysis",
    "QuizData",
    "QuizQuestion",
    "QuizResponse",
    "ResourceType",
    "RoadmapData",
    "RoadmapMetadata",
    "RoadmapProject",
    "RoadmapWeek",
    "WeeklyQuizData",
    "WeeklyQuizMetadata",
    "difficulty_for_level",
]
