"""Test configuration for path setup and shared fixtures.

Ensures the `src` directory is on sys.path so the `ebook_studio` package
can be imported without installing the project in editable mode.
"""

import sys
from pathlib import Path
from typing import Dict, List, Optional

import mongomock
import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from ebook_studio.context import StudioContext  # noqa: E402
from ebook_studio.models import ChapterOutline, GeneratedContent  # noqa: E402
from ebook_studio.services.storage import ProjectStore  # noqa: E402


class FakeAIService:
    """Deterministic stand-in for AIService recording every call."""

    def __init__(
        self,
        outline: Optional[List[ChapterOutline]] = None,
        topic: str = "The Viral Keto Breakfast Bowl Guide 2025",
        fail_on_chapter: Optional[str] = None,
        image_prompts: bool = True,
    ):
        self.topic = topic
        self.outline = outline if outline is not None else [
            ChapterOutline(title=f"Chapter {n}", description=f"About part {n}", keywords=["k"])
            for n in range(1, 4)
        ]
        self.fail_on_chapter = fail_on_chapter
        self.image_prompts = image_prompts
        self.calls: Dict[str, list] = {
            "analyze_trends": [],
            "generate_outline": [],
            "generate_chapter_content": [],
            "check_grammar": [],
            "humanize_content": [],
            "generate_image": [],
            "translate_content": [],
            "generate_marketing_mockup": [],
        }

    async def analyze_trends(self, user_id, style):
        self.calls["analyze_trends"].append((user_id, style))
        return self.topic

    async def generate_outline(self, user_id, title, style, language="en"):
        self.calls["generate_outline"].append((user_id, title, style, language))
        return list(self.outline)

    async def generate_chapter_content(self, user_id, title, description, style, language="en"):
        self.calls["generate_chapter_content"].append((user_id, title, description, style, language))
        if title == self.fail_on_chapter:
            raise RuntimeError(f"content generation failed for {title}")
        return GeneratedContent(
            title=title,
            content=f"<p>{description}</p>",
            image_prompt=f"photo of {title}" if self.image_prompts else None,
        )

    async def check_grammar(self, user_id, html, language="en"):
        self.calls["check_grammar"].append(html)
        return html

    async def humanize_content(self, user_id, html, language="en"):
        self.calls["humanize_content"].append(html)
        return html

    async def generate_image(self, user_id, prompt, chapter_index=0):
        self.calls["generate_image"].append((prompt, chapter_index))
        return f"data:image/png;base64,IMG{chapter_index}"

    async def translate_content(self, user_id, html, target_language):
        self.calls["translate_content"].append((html, target_language))
        return f"<p>[{target_language}]</p>{html}"

    async def generate_marketing_mockup(self, user_id, book_title, cover_image_url, mockup_type):
        self.calls["generate_marketing_mockup"].append((book_title, cover_image_url, mockup_type))
        return f"data:image/png;base64,{mockup_type.value}"


@pytest.fixture
def mongo_db():
    """Fresh in-memory Mongo database."""
    return mongomock.MongoClient()["ebook_studio_test"]


@pytest.fixture
def store(mongo_db):
    return ProjectStore(mongo_db)


@pytest.fixture
def fake_ai():
    return FakeAIService()


@pytest.fixture
def studio_context():
    """Context with fake credentials and no retry delays."""
    return StudioContext(
        openai_api_key="sk-test-openai",
        gemini_api_key="gemini-test-key",
        image_retry_attempts=4,
        image_retry_min_delay=0,
        image_retry_max_delay=0,
    )


@pytest.fixture
def make_ai():
    """Factory for fake AI services with custom behaviour."""
    return FakeAIService
