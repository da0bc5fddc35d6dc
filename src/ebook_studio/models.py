"""Data models for ebook projects and the generation pipeline."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


def now_utc() -> datetime:
    """Return the current timezone-aware UTC timestamp."""

    return datetime.now(timezone.utc)


class BookStyle(str, Enum):
    """Visual styles an ebook can be generated in."""
    MODERN_MAG = "modern_mag"
    RECIPE_BOOK = "recipe_book"
    MINIMALIST = "minimalist"
    VIBRANT = "vibrant"


class ProjectMode(str, Enum):
    """How the chapters of a project are produced."""
    AUTOPILOT = "autopilot"
    MANUAL = "manual"


class ProjectStatus(str, Enum):
    """Lifecycle states of a project."""
    PENDING = "pending"
    DRAFT = "draft"
    GENERATING = "generating"
    COMPLETED = "completed"
    FAILED = "failed"


class InstructionStatus(str, Enum):
    """Lifecycle states of a manual chapter instruction."""
    DRAFT = "draft"
    GENERATING = "generating"
    GENERATED = "generated"
    FAILED = "failed"


class MockupType(str, Enum):
    """Kinds of marketing mockups."""
    THREE_D = "3d"
    MOBILE = "mobile"
    DESKTOP = "desktop"
    TABLET_OFFICE = "tablet_office"
    BOOK_3D = "book_3d"
    MULTI_DEVICE = "multi_device"


class ExportFormat(str, Enum):
    """Labels of downloadable artifacts."""
    EPUB = "epub"
    PDF = "pdf"
    ZIP = "zip"


class CapabilityType(str, Enum):
    """AI capabilities a user can bind to a provider configuration."""
    REASONING = "reasoning"
    TEXT_GENERATION = "text_generation"
    IMAGE_GENERATION = "image_generation"
    TRANSLATION = "translation"


class CamelModel(BaseModel):
    """Base model serialising to camelCase while accepting both spellings."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


class ChapterOutline(CamelModel):
    """One chapter stub of a generated outline."""
    title: str = Field(min_length=1, description="Chapter title")
    description: str = Field(default="", description="Short chapter synopsis")
    keywords: List[str] = Field(default_factory=list, description="Topical keywords")

    @field_validator("keywords", mode="before")
    @classmethod
    def _coerce_keywords(cls, value: Any) -> List[str]:
        if value is None:
            return []
        if isinstance(value, str):
            return [part.strip() for part in value.split(",") if part.strip()]
        return [str(item) for item in value]


class GeneratedContent(CamelModel):
    """Raw chapter content returned by the text capability."""
    title: str
    content: str = ""
    image_prompt: Optional[str] = None


class CapabilityConfig(CamelModel):
    """Resolved provider settings used for one capability call."""
    provider: str
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    model: Optional[str] = None


class ApiConfig(CamelModel):
    """A user's stored configuration for one capability type."""
    id: str
    user_id: str
    name: str
    type: CapabilityType
    provider: Optional[str] = None
    api_key: str
    base_url: Optional[str] = None
    model: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    is_active: bool = True
    created_at: datetime = Field(default_factory=now_utc)
    updated_at: datetime = Field(default_factory=now_utc)


class Project(CamelModel):
    """The unit of work: one ebook being generated."""
    id: str
    user_id: str
    title: str
    style: BookStyle
    mode: ProjectMode = ProjectMode.AUTOPILOT
    status: ProjectStatus = ProjectStatus.PENDING
    generation_progress: int = Field(default=0, ge=0, le=100)
    current_step: Optional[str] = None
    primary_language: str = "en"
    target_languages: List[str] = Field(default_factory=list)
    outline: List[ChapterOutline] = Field(default_factory=list)
    content: List[Dict[str, Any]] = Field(default_factory=list)
    images: List[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=now_utc)
    updated_at: datetime = Field(default_factory=now_utc)


class Chapter(CamelModel):
    """A finished chapter ready to render."""
    id: str
    project_id: str
    chapter_number: int = Field(ge=1)
    title: str
    html_content: str
    image_url: Optional[str] = None
    language: str = "en"
    created_at: datetime = Field(default_factory=now_utc)


class ChapterInstruction(CamelModel):
    """A user-authored chapter request awaiting expansion (manual mode)."""
    id: str
    project_id: str
    chapter_number: int = Field(ge=1)
    title: str
    instructions: str = ""
    status: InstructionStatus = InstructionStatus.DRAFT
    created_at: datetime = Field(default_factory=now_utc)
    updated_at: datetime = Field(default_factory=now_utc)


class Translation(CamelModel):
    """A chapter rendered in one of the project's target languages."""
    id: str
    project_id: str
    language: str
    chapter_id: str
    translated_content: str
    created_at: datetime = Field(default_factory=now_utc)


class Mockup(CamelModel):
    """A marketing image for a project."""
    id: str
    project_id: str
    type: MockupType
    image_url: str
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=now_utc)


class Export(CamelModel):
    """A downloadable packaged artifact."""
    id: str
    project_id: str
    format: ExportFormat
    language: str = "en"
    file_url: str
    file_name: str
    file_size: Optional[int] = None
    created_at: datetime = Field(default_factory=now_utc)
