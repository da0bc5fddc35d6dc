"""Persistence gateway for projects and their generated artifacts."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from pydantic import BaseModel
from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.collection import Collection
from pymongo.database import Database

from ..db_config import ensure_indexes, get_mongo_database
from ..db_models import (
    API_CONFIGS_COLLECTION,
    CHAPTER_INSTRUCTIONS_COLLECTION,
    CHAPTERS_COLLECTION,
    EXPORTS_COLLECTION,
    GENERATED_ARTIFACT_COLLECTIONS,
    MOCKUPS_COLLECTION,
    PROJECT_CHILD_COLLECTIONS,
    PROJECTS_COLLECTION,
    TRANSLATIONS_COLLECTION,
    new_document_id,
    to_record,
)
from ..error_handling import ProjectNotFoundError
from ..models import (
    ApiConfig,
    BookStyle,
    CapabilityType,
    Chapter,
    ChapterInstruction,
    ChapterOutline,
    Export,
    ExportFormat,
    InstructionStatus,
    Mockup,
    MockupType,
    Project,
    ProjectMode,
    ProjectStatus,
    Translation,
    now_utc,
)

logger = logging.getLogger(__name__)


def _plain(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, list):
        return [_plain(item) for item in value]
    if isinstance(value, dict):
        return {key: _plain(item) for key, item in value.items()}
    return value


def _to_document(model: BaseModel) -> Dict[str, Any]:
    """Serialise an entity into a Mongo document keyed by ``_id``."""

    document = _plain(model.model_dump())
    document["_id"] = document.pop("id")
    return document


class ProjectStore:
    """CRUD per entity plus the ordered composite reads the pipeline relies on."""

    def __init__(self, db: Optional[Database] = None):
        """Initialise the store with an optional Mongo database instance."""

        self.db: Database = db if db is not None else get_mongo_database()
        self.projects: Collection = self.db[PROJECTS_COLLECTION]
        self.chapters: Collection = self.db[CHAPTERS_COLLECTION]
        self.instructions: Collection = self.db[CHAPTER_INSTRUCTIONS_COLLECTION]
        self.translations: Collection = self.db[TRANSLATIONS_COLLECTION]
        self.mockups: Collection = self.db[MOCKUPS_COLLECTION]
        self.exports: Collection = self.db[EXPORTS_COLLECTION]
        self.api_configs: Collection = self.db[API_CONFIGS_COLLECTION]

    def ensure_indexes(self) -> None:
        ensure_indexes(self.db)

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------
    def create_project(
        self,
        *,
        user_id: str,
        title: str,
        style: BookStyle,
        mode: ProjectMode = ProjectMode.AUTOPILOT,
        status: ProjectStatus = ProjectStatus.PENDING,
        primary_language: str = "en",
        target_languages: Optional[Iterable[str]] = None,
        current_step: Optional[str] = None,
    ) -> Project:
        project = Project(
            id=new_document_id(),
            user_id=user_id,
            title=title,
            style=style,
            mode=mode,
            status=status,
            primary_language=primary_language,
            target_languages=list(target_languages or []),
            current_step=current_step,
        )
        self.projects.insert_one(_to_document(project))
        logger.info("Created %s project %s for user %s", project.mode.value, project.id, user_id)
        return project

    def get_project(self, project_id: str) -> Optional[Project]:
        document = self.projects.find_one({"_id": project_id})
        return Project.model_validate(to_record(document)) if document else None

    def require_project(self, project_id: str) -> Project:
        project = self.get_project(project_id)
        if project is None:
            raise ProjectNotFoundError(project_id)
        return project

    def list_projects(self, user_id: str) -> List[Project]:
        """Return a user's projects, newest first."""

        cursor = self.projects.find({"user_id": user_id}).sort("created_at", DESCENDING)
        return [Project.model_validate(to_record(doc)) for doc in cursor]

    def update_project(self, project_id: str, **fields: Any) -> Optional[Project]:
        """Apply a partial update in a single write and return the new state."""

        updates = _plain(fields)
        if "outline" in updates:
            updates["outline"] = [
                _plain(item.model_dump()) if isinstance(item, ChapterOutline) else item
                for item in fields["outline"]
            ]
        updates["updated_at"] = now_utc()
        document = self.projects.find_one_and_update(
            {"_id": project_id},
            {"$set": updates},
            return_document=ReturnDocument.AFTER,
        )
        return Project.model_validate(to_record(document)) if document else None

    def set_progress(
        self,
        project_id: str,
        status: ProjectStatus,
        progress: int,
        current_step: str,
        **extra: Any,
    ) -> Optional[Project]:
        """Write status, progress and step together."""

        return self.update_project(
            project_id,
            status=status,
            generation_progress=progress,
            current_step=current_step,
            **extra,
        )

    def mark_project_failed(self, project_id: str, message: str) -> Optional[Project]:
        """Fail a project, leaving its progress at the last checkpoint."""

        return self.update_project(project_id, status=ProjectStatus.FAILED, current_step=message)

    def claim_finalization(self, project_id: str, progress: int, current_step: str) -> bool:
        """Compare-and-set the ``finalizing`` marker while the project keeps generating.

        Returns False when another writer already claimed or completed it.
        """

        document = self.projects.find_one_and_update(
            {
                "_id": project_id,
                "status": {"$ne": ProjectStatus.COMPLETED.value},
                "finalizing": {"$ne": True},
            },
            {
                "$set": {
                    "status": ProjectStatus.GENERATING.value,
                    "generation_progress": progress,
                    "current_step": current_step,
                    "finalizing": True,
                    "updated_at": now_utc(),
                }
            },
        )
        return document is not None

    def update_progress_unless_completed(
        self,
        project_id: str,
        status: ProjectStatus,
        progress: int,
        current_step: str,
    ) -> bool:
        result = self.projects.update_one(
            {
                "_id": project_id,
                "status": {"$ne": ProjectStatus.COMPLETED.value},
                "finalizing": {"$ne": True},
            },
            {
                "$set": {
                    "status": status.value,
                    "generation_progress": progress,
                    "current_step": current_step,
                    "updated_at": now_utc(),
                }
            },
        )
        return result.modified_count > 0

    def delete_generated_artifacts(self, project_id: str) -> None:
        """Remove chapters, translations, mockups and exports of a project."""

        for name in GENERATED_ARTIFACT_COLLECTIONS:
            self.db[name].delete_many({"project_id": project_id})

    def delete_project(self, project_id: str) -> bool:
        """Delete a project and every entity it owns."""

        for name in PROJECT_CHILD_COLLECTIONS:
            self.db[name].delete_many({"project_id": project_id})
        result = self.projects.delete_one({"_id": project_id})
        if result.deleted_count:
            logger.info("Deleted project %s", project_id)
        return result.deleted_count > 0

    # ------------------------------------------------------------------
    # Chapters
    # ------------------------------------------------------------------
    def create_chapter(
        self,
        *,
        project_id: str,
        chapter_number: int,
        title: str,
        html_content: str,
        image_url: Optional[str] = None,
        language: str = "en",
    ) -> Chapter:
        chapter = Chapter(
            id=new_document_id(),
            project_id=project_id,
            chapter_number=chapter_number,
            title=title,
            html_content=html_content,
            image_url=image_url,
            language=language,
        )
        self.chapters.insert_one(_to_document(chapter))
        return chapter

    def list_chapters(self, project_id: str, language: Optional[str] = None) -> List[Chapter]:
        """Chapters of a project ordered by chapter number."""

        query: Dict[str, Any] = {"project_id": project_id}
        if language:
            query["language"] = language
        cursor = self.chapters.find(query).sort("chapter_number", ASCENDING)
        return [Chapter.model_validate(to_record(doc)) for doc in cursor]

    # ------------------------------------------------------------------
    # Chapter instructions
    # ------------------------------------------------------------------
    def create_instruction(
        self,
        *,
        project_id: str,
        chapter_number: int,
        title: str,
        instructions: str = "",
    ) -> ChapterInstruction:
        instruction = ChapterInstruction(
            id=new_document_id(),
            project_id=project_id,
            chapter_number=chapter_number,
            title=title,
            instructions=instructions,
        )
        self.instructions.insert_one(_to_document(instruction))
        return instruction

    def get_instruction(self, instruction_id: str) -> Optional[ChapterInstruction]:
        document = self.instructions.find_one({"_id": instruction_id})
        return ChapterInstruction.model_validate(to_record(document)) if document else None

    def list_instructions(self, project_id: str) -> List[ChapterInstruction]:
        """Instructions of a project ordered by chapter number."""

        cursor = self.instructions.find({"project_id": project_id}).sort("chapter_number", ASCENDING)
        return [ChapterInstruction.model_validate(to_record(doc)) for doc in cursor]

    def update_instruction_status(
        self, instruction_id: str, status: InstructionStatus
    ) -> Optional[ChapterInstruction]:
        document = self.instructions.find_one_and_update(
            {"_id": instruction_id},
            {"$set": {"status": status.value, "updated_at": now_utc()}},
            return_document=ReturnDocument.AFTER,
        )
        return ChapterInstruction.model_validate(to_record(document)) if document else None

    # ------------------------------------------------------------------
    # Translations, mockups and exports
    # ------------------------------------------------------------------
    def create_translation(
        self, *, project_id: str, language: str, chapter_id: str, translated_content: str
    ) -> Translation:
        translation = Translation(
            id=new_document_id(),
            project_id=project_id,
            language=language,
            chapter_id=chapter_id,
            translated_content=translated_content,
        )
        self.translations.insert_one(_to_document(translation))
        return translation

    def list_translations(self, project_id: str, language: Optional[str] = None) -> List[Translation]:
        query: Dict[str, Any] = {"project_id": project_id}
        if language:
            query["language"] = language
        cursor = self.translations.find(query).sort("created_at", ASCENDING)
        return [Translation.model_validate(to_record(doc)) for doc in cursor]

    def create_mockup(
        self,
        *,
        project_id: str,
        type: MockupType,
        image_url: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Mockup:
        mockup = Mockup(
            id=new_document_id(),
            project_id=project_id,
            type=type,
            image_url=image_url,
            metadata=metadata or {},
        )
        self.mockups.insert_one(_to_document(mockup))
        return mockup

    def list_mockups(self, project_id: str) -> List[Mockup]:
        cursor = self.mockups.find({"project_id": project_id}).sort("created_at", ASCENDING)
        return [Mockup.model_validate(to_record(doc)) for doc in cursor]

    def create_export(
        self,
        *,
        project_id: str,
        format: ExportFormat,
        language: str,
        file_url: str,
        file_name: str,
        file_size: Optional[int] = None,
    ) -> Export:
        export = Export(
            id=new_document_id(),
            project_id=project_id,
            format=format,
            language=language,
            file_url=file_url,
            file_name=file_name,
            file_size=file_size,
        )
        self.exports.insert_one(_to_document(export))
        return export

    def list_exports(self, project_id: str) -> List[Export]:
        cursor = self.exports.find({"project_id": project_id}).sort("created_at", ASCENDING)
        return [Export.model_validate(to_record(doc)) for doc in cursor]

    # ------------------------------------------------------------------
    # API configurations
    # ------------------------------------------------------------------
    def create_api_config(
        self,
        *,
        user_id: str,
        name: str,
        type: CapabilityType,
        api_key: str,
        provider: Optional[str] = None,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        is_active: bool = True,
    ) -> ApiConfig:
        config = ApiConfig(
            id=new_document_id(),
            user_id=user_id,
            name=name,
            type=type,
            provider=provider,
            api_key=api_key,
            base_url=base_url,
            model=model,
            metadata=metadata or {},
            is_active=is_active,
        )
        self.api_configs.insert_one(_to_document(config))
        return config

    def get_api_config(self, config_id: str) -> Optional[ApiConfig]:
        document = self.api_configs.find_one({"_id": config_id})
        return ApiConfig.model_validate(to_record(document)) if document else None

    def list_api_configs(self, user_id: str) -> List[ApiConfig]:
        cursor = self.api_configs.find({"user_id": user_id}).sort("created_at", ASCENDING)
        return [ApiConfig.model_validate(to_record(doc)) for doc in cursor]

    def get_active_api_config(self, user_id: str, config_type: CapabilityType) -> Optional[ApiConfig]:
        """Most recently updated active configuration of a type for a user."""

        cursor = (
            self.api_configs.find(
                {"user_id": user_id, "type": CapabilityType(config_type).value, "is_active": True}
            )
            .sort("updated_at", DESCENDING)
            .limit(1)
        )
        for document in cursor:
            return ApiConfig.model_validate(to_record(document))
        return None

    def update_api_config(self, config_id: str, user_id: str, **fields: Any) -> Optional[ApiConfig]:
        """Update a configuration owned by ``user_id``; None when not found."""

        updates = {key: value for key, value in _plain(fields).items() if value is not None}
        updates["updated_at"] = now_utc()
        document = self.api_configs.find_one_and_update(
            {"_id": config_id, "user_id": user_id},
            {"$set": updates},
            return_document=ReturnDocument.AFTER,
        )
        return ApiConfig.model_validate(to_record(document)) if document else None

    def delete_api_config(self, config_id: str, user_id: str) -> bool:
        result = self.api_configs.delete_one({"_id": config_id, "user_id": user_id})
        return result.deleted_count > 0

    # ------------------------------------------------------------------
    # Composite reads
    # ------------------------------------------------------------------
    def get_project_bundle(self, project_id: str) -> Dict[str, Any]:
        """Project with every owned entity, as returned by the project detail view."""

        project = self.require_project(project_id)
        return {
            "project": project,
            "chapters": self.list_chapters(project_id),
            "mockups": self.list_mockups(project_id),
            "exports": self.list_exports(project_id),
            "translations": self.list_translations(project_id),
            "chapter_instructions": self.list_instructions(project_id),
        }
