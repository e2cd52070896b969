"""Free course discovery across Udemy, edX and YouTube."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional

import httpx
from pydantic import BaseModel, ValidationError

from .cache import AdvancedCache, courses_cache_key
from .config import Settings
from .models import LearningResource

logger = logging.getLogger(__name__)

CourseSource = Literal["udemy", "edx", "youtube"]

UDEMY_ENDPOINT = "https://www.udemy.com/api-2.0/courses/"
EDX_ENDPOINT = "https://api.edx.org/catalog/v1/courses"
YOUTUBE_ENDPOINT = "https://www.googleapis.com/youtube/v3/search"

_SOURCES_BY_TYPE: Dict[str, tuple[CourseSource, ...]] = {
    "video": ("youtube",),
    "course": ("udemy", "edx"),
    "article": (),
}


class Course(BaseModel):
    title: str
    url: str
    source: CourseSource
    rating: Optional[float] = None
    level: Optional[str] = None
    description: Optional[str] = None
    duration: Optional[str] = None

    def to_resource(self, resource_type: str) -> LearningResource:
        level = (self.level or "").lower()
        return LearningResource(
            type=resource_type,  # type: ignore[arg-type]
            title=self.title,
            url=self.url,
            duration=self.duration,
            difficulty=level if level in ("beginner", "intermediate", "advanced") else None,  # type: ignore[arg-type]
            category=self.source,
            description=self.description,
        )


class CourseAggregator:
    """Looks up free courses for a topic and caches the validated results."""

    def __init__(
        self,
        cache: AdvancedCache,
        settings: Settings,
        *,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.cache = cache
        self.settings = settings
        self._client = client or httpx.AsyncClient(
            timeout=settings.lookup_timeout_ms / 1000,
            follow_redirects=True,
        )
        self._owns_client = client is None

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def fetch_udemy(self, topic: str) -> List[Course]:
        if not (self.settings.udemy_client_id and self.settings.udemy_client_secret):
            return []
        try:
            response = await self._client.get(
                UDEMY_ENDPOINT,
                params={"price": "price-free", "search": topic},
                auth=(self.settings.udemy_client_id, self.settings.udemy_client_secret),
            )
            response.raise_for_status()
            results = response.json().get("results", [])
            return [
                Course(
                    title=item["title"],
                    url=item["url"] if item["url"].startswith("http") else f"https://www.udemy.com{item['url']}",
                    source="udemy",
                    rating=item.get("rating"),
                    level=item.get("instructional_level"),
                    description=item.get("headline"),
                    duration=(
                        f"{item['estimated_content_length']} hours"
                        if item.get("estimated_content_length")
                        else None
                    ),
                )
                for item in results
            ]
        except (httpx.HTTPError, ValueError, KeyError, TypeError, AttributeError, ValidationError) as exc:
            logger.warning("Udemy course lookup failed for %s: %s", topic, exc)
            return []

    async def fetch_edx(self, topic: str) -> List[Course]:
        if not (self.settings.edx_client_id and self.settings.edx_client_secret):
            return []
        try:
            response = await self._client.get(
                EDX_ENDPOINT,
                params={"availability": "Free", "search": topic},
                auth=(self.settings.edx_client_id, self.settings.edx_client_secret),
            )
            response.raise_for_status()
            results = response.json().get("results", [])
            return [
                Course(
                    title=item["title"],
                    url=item["url"],
                    source="edx",
                    rating=item.get("rating"),
                    level=item.get("level"),
                    description=item.get("short_description"),
                    duration=item.get("duration"),
                )
                for item in results
            ]
        except (httpx.HTTPError, ValueError, KeyError, TypeError, AttributeError, ValidationError) as exc:
            logger.warning("edX course lookup failed for %s: %s", topic, exc)
            return []

    async def fetch_youtube(self, topic: str) -> List[Course]:
        if not self.settings.youtube_api_key:
            return []
        try:
            response = await self._client.get(
                YOUTUBE_ENDPOINT,
                params={
                    "part": "snippet",
                    "q": f"{topic} free course",
                    "type": "video",
                    "key": self.settings.youtube_api_key,
                },
            )
            response.raise_for_status()
            items = response.json().get("items", [])
            return [
                Course(
                    title=item["snippet"]["title"],
                    url=f"https://www.youtube.com/watch?v={item['id']['videoId']}",
                    source="youtube",
                    description=item["snippet"].get("description"),
                )
                for item in items
            ]
        except (httpx.HTTPError, ValueError, KeyError, TypeError, AttributeError, ValidationError) as exc:
            logger.warning("YouTube course lookup failed for %s: %s", topic, exc)
            return []

    async def validate_url(self, url: str) -> bool:
        try:
            response = await self._client.head(url)
            return response.is_success
        except httpx.HTTPError as exc:
            logger.debug("URL check failed for %s: %s", url, exc)
            return False

    async def aggregate_free_courses(self, topic: str) -> List[Course]:
        key = courses_cache_key(topic)
        cached = self.cache.get(key)
        if isinstance(cached, dict):
            try:
                return [Course.model_validate(item) for item in cached.get("data", [])]
            except ValidationError as exc:
                logger.warning("Cached courses for %s are unreadable: %s", topic, exc)
                self.cache.invalidate(key)

        batches = await asyncio.gather(
            self.fetch_udemy(topic),
            self.fetch_edx(topic),
            self.fetch_youtube(topic),
        )
        candidates = [course for batch in batches for course in batch]
        checks = await asyncio.gather(*(self.validate_url(course.url) for course in candidates))

        unique: Dict[str, Course] = {}
        for course, valid in zip(candidates, checks):
            if not valid:
                logger.info("Dropping course with unreachable URL: %s (%s)", course.title, course.url)
                continue
            unique.setdefault(course.url, course)
        courses = list(unique.values())

        self.cache.set(
            key,
            {
                "data": [course.model_dump(mode="json") for course in courses],
                "metadata": {"generatedAt": datetime.now(timezone.utc).isoformat(), "topic": topic},
            },
            tags=["freeCourses", topic],
        )
        return courses

    async def find_resource(self, topic: str, resource_type: str) -> Optional[LearningResource]:
        """Return at most one resource of ``resource_type`` for ``topic``."""
        sources = _SOURCES_BY_TYPE.get(resource_type, ())
        if not sources:
            return None
        try:
            courses = await self.aggregate_free_courses(topic)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Resource lookup failed for %s: %s", topic, exc)
            return None
        for source in sources:
            for course in courses:
                if course.source == source:
                    return course.to_resource(resource_type)
        return None


__all__ = ["Course", "CourseAggregator", "CourseSource"]
