from __future__ import annotations

import asyncio
from typing import List

import httpx
import pytest

from learnpath.cache import AdvancedCache, courses_cache_key
from learnpath.config import Settings
from learnpath.course_lookup import Course, CourseAggregator


@pytest.fixture
def lookup_settings() -> Settings:
    return Settings(
        _env_file=None,  # type: ignore[call-arg]
        youtube_api_key="yt-key",
        udemy_client_id="udemy-id",
        udemy_client_secret="udemy-secret",
        edx_client_id="edx-id",
        edx_client_secret="edx-secret",
    )


class Catalogue:
    """Serves canned provider responses and answers HEAD checks."""

    def __init__(self) -> None:
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.method == "HEAD":
            return httpx.Response(404 if "broken" in str(request.url) else 200)
        host = request.url.host
        if host == "www.udemy.com":
            return httpx.Response(
                200,
                json={
                    "results": [
                        {
                            "title": "Python for Everybody",
                            "url": "/course/python-free/",
                            "rating": 4.6,
                            "instructional_level": "Beginner",
                            "headline": "Start here",
                            "estimated_content_length": 3,
                        }
                    ]
                },
            )
        if host == "api.edx.org":
            return httpx.Response(
                200,
                json={
                    "results": [
                        {"title": "CS50P", "url": "https://www.edx.org/cs50p", "level": "Intermediate"},
                        {"title": "Mirror", "url": "https://www.udemy.com/course/python-free/"},
                        {"title": "Gone", "url": "https://www.edx.org/broken"},
                    ]
                },
            )
        if host == "www.googleapis.com":
            return httpx.Response(
                200,
                json={"items": [{"id": {"videoId": "abc"}, "snippet": {"title": "Python video", "description": "d"}}]},
            )
        return httpx.Response(500)

    def calls(self, method: str) -> int:
        return sum(1 for request in self.requests if request.method == method)


def test_aggregate_validates_dedupes_and_caches(cache: AdvancedCache, lookup_settings: Settings) -> None:
    catalogue = Catalogue()

    async def scenario() -> tuple[List[Course], List[Course]]:
        async with httpx.AsyncClient(transport=httpx.MockTransport(catalogue)) as client:
            aggregator = CourseAggregator(cache, lookup_settings, client=client)
            first = await aggregator.aggregate_free_courses("Python")
            second = await aggregator.aggregate_free_courses("Python")
            return first, second

    first, second = asyncio.run(scenario())

    assert [(course.source, course.url) for course in first] == [
        ("udemy", "https://www.udemy.com/course/python-free/"),
        ("edx", "https://www.edx.org/cs50p"),
        ("youtube", "https://www.youtube.com/watch?v=abc"),
    ]
    assert first[0].duration == "3 hours"
    assert second == first
    assert catalogue.calls("GET") == 3
    cached = cache.get(courses_cache_key("Python"))
    assert cached["metadata"]["topic"] == "Python"
    assert cache.get_stats().items_by_tag == {"Python": 1, "freeCourses": 1}


def test_missing_credentials_skip_sources(cache: AdvancedCache, settings: Settings) -> None:
    catalogue = Catalogue()

    async def scenario() -> List[Course]:
        async with httpx.AsyncClient(transport=httpx.MockTransport(catalogue)) as client:
            return await CourseAggregator(cache, settings, client=client).aggregate_free_courses("Go")

    assert asyncio.run(scenario()) == []
    assert catalogue.requests == []


def test_failing_source_does_not_break_aggregation(cache: AdvancedCache, lookup_settings: Settings) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "api.edx.org":
            raise httpx.ConnectError("unreachable", request=request)
        if request.url.host == "www.udemy.com":
            return httpx.Response(200, json={"unexpected": True})
        return Catalogue()(request)

    async def scenario() -> List[Course]:
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await CourseAggregator(cache, lookup_settings, client=client).aggregate_free_courses("Rust")

    assert [course.source for course in asyncio.run(scenario())] == ["youtube"]


def test_find_resource_prefers_source_for_type(cache: AdvancedCache, lookup_settings: Settings) -> None:
    catalogue = Catalogue()

    async def scenario():
        async with httpx.AsyncClient(transport=httpx.MockTransport(catalogue)) as client:
            aggregator = CourseAggregator(cache, lookup_settings, client=client)
            return (
                await aggregator.find_resource("Python", "video"),
                await aggregator.find_resource("Python", "course"),
                await aggregator.find_resource("Python", "article"),
            )

    video, course, article = asyncio.run(scenario())

    assert video is not None and video.type == "video"
    assert video.url == "https://www.youtube.com/watch?v=abc"
    assert course is not None and course.category == "udemy"
    assert course.difficulty == "beginner"
    assert article is None


def test_videos_are_never_returned_as_courses(cache: AdvancedCache) -> None:
    video_only = Settings(_env_file=None, youtube_api_key="yt-key")  # type: ignore[call-arg]
    catalogue = Catalogue()

    async def scenario():
        async with httpx.AsyncClient(transport=httpx.MockTransport(catalogue)) as client:
            aggregator = CourseAggregator(cache, video_only, client=client)
            return (
                await aggregator.find_resource("Python", "course"),
                await aggregator.find_resource("Python", "video"),
            )

    course, video = asyncio.run(scenario())

    assert course is None
    assert video is not None and video.type == "video"
    assert video.category == "youtube"
