"""Web-specific Pydantic models for the FastAPI application."""

from typing import Any, Dict, List, Optional

from pydantic import Field, field_validator, model_validator

from ebook_studio.models import (
    ApiConfig,
    BookStyle,
    CamelModel,
    CapabilityType,
    Chapter,
    ChapterInstruction,
    Export,
    Mockup,
    Project,
    ProjectStatus,
    Translation,
)


class GenerateProjectRequest(CamelModel):
    """Request model for starting an autopilot project."""
    user_id: str = Field(min_length=1)
    style: BookStyle
    primary_language: str = Field(default="en", min_length=2, max_length=10)
    target_languages: List[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _dedupe_targets(self):
        seen = {self.primary_language}
        targets = []
        for language in self.target_languages:
            language = language.strip()
            if language and language not in seen:
                seen.add(language)
                targets.append(language)
        self.target_languages = targets
        return self


class ManualChapterRequest(CamelModel):
    """One chapter of a manual project."""
    chapter_number: int = Field(ge=1)
    title: str = Field(min_length=1, max_length=200)
    instructions: Optional[str] = ""


class ManualProjectRequest(CamelModel):
    """Request model for creating a manual project."""
    user_id: str = Field(min_length=1)
    title: str = Field(min_length=1, max_length=200)
    style: BookStyle
    primary_language: str = Field(default="en", min_length=2, max_length=10)
    chapters: List[ManualChapterRequest] = Field(min_length=1)

    @field_validator("chapters")
    @classmethod
    def _unique_numbers(cls, chapters: List[ManualChapterRequest]) -> List[ManualChapterRequest]:
        numbers = [chapter.chapter_number for chapter in chapters]
        if len(numbers) != len(set(numbers)):
            raise ValueError("Chapter numbers must be unique")
        return chapters


class GenerateChapterRequest(CamelModel):
    """Request model to generate one manual chapter."""
    chapter_instruction_id: str = Field(min_length=1)


class ProjectStatusResponse(CamelModel):
    """Poller payload for a project's progress."""
    status: ProjectStatus
    progress: int
    current_step: Optional[str] = None


class ProjectDetailResponse(Project):
    """Project hydrated with every entity it owns."""
    chapters: List[Chapter] = Field(default_factory=list)
    mockups: List[Mockup] = Field(default_factory=list)
    exports: List[Export] = Field(default_factory=list)
    translations: List[Translation] = Field(default_factory=list)
    chapter_instructions: List[ChapterInstruction] = Field(default_factory=list)

    @classmethod
    def from_bundle(cls, bundle: Dict[str, Any]) -> "ProjectDetailResponse":
        project: Project = bundle["project"]
        return cls(
            **project.model_dump(),
            chapters=bundle["chapters"],
            mockups=bundle["mockups"],
            exports=bundle["exports"],
            translations=bundle["translations"],
            chapter_instructions=bundle["chapter_instructions"],
        )


class RegenerateResponse(CamelModel):
    """Response model for a regeneration request."""
    message: str
    project_id: str


class MockupsResponse(CamelModel):
    """Response model for on-demand marketing mockups."""
    success: bool = True
    message: str
    mockups: List[Mockup] = Field(default_factory=list)


class SuccessResponse(CamelModel):
    """Generic success response."""
    success: bool = True
    message: str


class ApiConfigCreateRequest(CamelModel):
    """Request model for storing a capability configuration."""
    user_id: str = Field(min_length=1)
    name: str = Field(min_length=1, max_length=100)
    type: CapabilityType
    provider: Optional[str] = None
    api_key: str = Field(min_length=1)
    base_url: Optional[str] = None
    model: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    is_active: bool = True


class ApiConfigUpdateRequest(CamelModel):
    """Partial update of a capability configuration."""
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    provider: Optional[str] = None
    api_key: Optional[str] = Field(default=None, min_length=1)
    base_url: Optional[str] = None
    model: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None
    is_active: Optional[bool] = None


def mask_secret(secret: str) -> str:
    if len(secret) <= 8:
        return "*" * len(secret)
    return f"{secret[:3]}...{secret[-4:]}"


class ApiConfigResponse(ApiConfig):
    """Stored configuration with its API key masked."""

    @classmethod
    def from_config(cls, config: ApiConfig) -> "ApiConfigResponse":
        data = config.model_dump()
        data["api_key"] = mask_secret(config.api_key)
        return cls(**data)
