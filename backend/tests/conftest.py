from __future__ import annotations

import copy
from typing import Any, Dict, List, Optional, Union

import pytest

from learnpath.cache import AdvancedCache, MemoryKeyValueStore
from learnpath.config import Settings
from learnpath.telemetry import TelemetryEvent, register_listener

START_MS = 1_700_000_000_000
DAY_MS = 24 * 60 * 60 * 1000


class FakeClock:
    def __init__(self, start: int = START_MS) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class FakeProvider:
    """Replays canned provider responses; exceptions in the script are raised."""

    model = "fake-model"

    def __init__(self, *responses: Union[str, Exception]) -> None:
        self.responses: List[Union[str, Exception]] = list(responses)
        self.calls: List[Dict[str, Any]] = []

    async def generate(self, system_prompt: str, user_prompt: str, config: Optional[Any] = None) -> str:
        self.calls.append({"system": system_prompt, "user": user_prompt, "config": config})
        if not self.responses:
            raise AssertionError("FakeProvider ran out of scripted responses")
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


async def no_sleep(_: float) -> None:
    return None


QUIZ_PAYLOAD: Dict[str, Any] = {
    "questions": [
        {
            "id": "q1",
            "text": "Which keyword defines a function in Python?",
            "type": "multiple_choice",
            "category": "fundamentals",
            "skillArea": "Syntax",
            "difficulty": "beginner",
            "options": ["def", "func", "lambda", "fn"],
            "correctAnswer": "def",
            "explanation": "Functions are declared with def.",
            "points": 10,
        },
        {
            "id": "q2",
            "text": "Which type is immutable?",
            "type": "multiple_choice",
            "category": "fundamentals",
            "skillArea": "Data Structures",
            "difficulty": "beginner",
            "options": ["list", "dict", "tuple", "set"],
            "correctAnswer": "tuple",
            "explanation": "Tuples cannot be changed after creation.",
            "points": 10,
        },
        {
            "id": "q3",
            "text": "What does len([1, 2, 3]) return?",
            "type": "multiple_choice",
            "category": "practical",
            "skillArea": "Syntax",
            "difficulty": "beginner",
            "options": ["2", "3", "4", "An error"],
            "correctAnswer": "3",
            "explanation": "The list has three items.",
            "points": 10,
        },
        {
            "id": "q4",
            "text": "Describe how you would structure a small command line application.",
            "type": "open_ended",
            "category": "practical",
            "skillArea": "Design",
            "difficulty": "intermediate",
            "correctAnswer": "",
            "explanation": "Look for modules, entry point and argument parsing.",
            "points": 20,
        },
        {
            "id": "q5",
            "text": "Explain the difference between a list and a generator.",
            "type": "open_ended",
            "category": "fundamentals",
            "skillArea": "Data Structures",
            "difficulty": "intermediate",
            "correctAnswer": "",
            "explanation": "Generators are lazy.",
            "points": 20,
        },
    ]
}


def quiz_payload() -> Dict[str, Any]:
    return copy.deepcopy(QUIZ_PAYLOAD)


def roadmap_payload(start: int = 1, end: int = 2, *, with_resources: bool = True) -> Dict[str, Any]:
    weeks = []
    for number in range(start, end + 1):
        resources = []
        if with_resources:
            resources.append(
                {
                    "type": "article",
                    "title": f"Week {number} reading",
                    "url": f"https://example.com/week-{number}",
                    "duration": "2 hours",
                    "difficulty": "beginner",
                    "category": "Python",
                }
            )
        weeks.append(
            {
                "week": number,
                "theme": f"Theme {number}",
                "topics": [f"Topic {number}"],
                "resources": resources,
                "project": {"title": f"Project {number}", "description": "Build it", "estimatedHours": 2},
                "weeklyHours": 5,
            }
        )
    return {
        "weeks": weeks,
        "metadata": {"totalWeeks": end, "weeklyCommitment": 5, "difficulty": "beginner", "focusAreas": ["Syntax"]},
    }


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> MemoryKeyValueStore:
    return MemoryKeyValueStore(capacity_bytes=64 * 1024)


@pytest.fixture
def cache(store: MemoryKeyValueStore, clock: FakeClock) -> AdvancedCache:
    return AdvancedCache(store, version="1.0.0", namespace="test:", clock=clock)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,  # type: ignore[call-arg]
        generation_model="fake-model",
        roadmap_total_weeks=2,
        generation_retry_delay_ms=0,
    )


@pytest.fixture
def events():
    collected: List[TelemetryEvent] = []
    unsubscribe = register_listener(collected.append)
    yield collected
    unsubscribe()
