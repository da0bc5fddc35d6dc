"""Unit tests for the entity models."""

import pytest
from pydantic import ValidationError

from ebook_studio.models import (
    BookStyle,
    Chapter,
    ChapterOutline,
    MockupType,
    Project,
    ProjectMode,
    ProjectStatus,
)


class TestChapterOutline:
    """Test outline stub coercion."""

    def test_keywords_from_comma_string(self):
        stub = ChapterOutline(title="Breakfast", keywords="eggs, bacon ,  ,toast")
        assert stub.keywords == ["eggs", "bacon", "toast"]

    def test_keywords_none_becomes_empty(self):
        stub = ChapterOutline.model_validate({"title": "Lunch", "keywords": None})
        assert stub.keywords == []
        assert stub.description == ""

    def test_empty_title_rejected(self):
        with pytest.raises(ValidationError):
            ChapterOutline(title="")


class TestProject:
    """Test project defaults and serialisation."""

    def test_defaults(self):
        project = Project(id="p1", user_id="u1", title="Generating...", style=BookStyle.VIBRANT)
        assert project.mode == ProjectMode.AUTOPILOT
        assert project.status == ProjectStatus.PENDING
        assert project.generation_progress == 0
        assert project.primary_language == "en"
        assert project.target_languages == []

    def test_progress_bounds(self):
        with pytest.raises(ValidationError):
            Project(id="p1", user_id="u1", title="t", style="minimalist", generation_progress=101)

    def test_camel_case_dump(self):
        project = Project(id="p1", user_id="u1", title="t", style="recipe_book", current_step="Topic selected")
        data = project.model_dump(by_alias=True, mode="json")
        assert data["userId"] == "u1"
        assert data["currentStep"] == "Topic selected"
        assert data["generationProgress"] == 0
        assert data["style"] == "recipe_book"

    def test_accepts_camel_case_input(self):
        project = Project.model_validate(
            {"id": "p1", "userId": "u1", "title": "t", "style": "modern_mag", "primaryLanguage": "es"}
        )
        assert project.user_id == "u1"
        assert project.primary_language == "es"


class TestChapter:
    def test_chapter_number_is_one_based(self):
        with pytest.raises(ValidationError):
            Chapter(id="c", project_id="p", chapter_number=0, title="t", html_content="<p>x</p>")


def test_mockup_type_values():
    assert MockupType.THREE_D.value == "3d"
    assert {m.value for m in MockupType} == {
        "3d", "mobile", "desktop", "tablet_office", "book_3d", "multi_device"
    }
