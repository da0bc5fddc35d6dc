"""API routes for ebook projects and their generation runs."""

import logging
from typing import List

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, status

from ebook_studio.error_handling import (
    InvalidStateError,
    MissingCoverImageError,
    NotFoundError,
    ProjectNotFoundError,
)
from ebook_studio.models import Project
from ebook_studio.services.orchestrator import GenerationOrchestrator
from ebook_studio.services.storage import ProjectStore
from ebook_studio.web.dependencies import get_orchestrator, get_store
from ebook_studio.web.models.web_models import (
    GenerateChapterRequest,
    GenerateProjectRequest,
    ManualProjectRequest,
    MockupsResponse,
    ProjectDetailResponse,
    ProjectStatusResponse,
    RegenerateResponse,
    SuccessResponse,
)

router = APIRouter()

logger = logging.getLogger(__name__)


def _not_found(exc: NotFoundError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))


def _detail(store: ProjectStore, project_id: str) -> ProjectDetailResponse:
    try:
        return ProjectDetailResponse.from_bundle(store.get_project_bundle(project_id))
    except ProjectNotFoundError as exc:
        raise _not_found(exc)


@router.post("/generate", response_model=Project)
async def generate_project(
    request: GenerateProjectRequest,
    background_tasks: BackgroundTasks,
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
):
    """Create an autopilot project and start its pipeline in the background."""
    project = orchestrator.create_autopilot_project(
        request.user_id,
        request.style,
        request.primary_language,
        request.target_languages,
    )
    background_tasks.add_task(
        orchestrator.run_autopilot,
        project.id,
        project.user_id,
        project.style,
        project.primary_language,
        project.target_languages,
    )
    logger.info("Started autopilot generation for project %s", project.id)
    return project


@router.post("/manual", response_model=Project)
async def create_manual_project(
    request: ManualProjectRequest,
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
):
    """Create a draft project with one instruction per chapter."""
    return orchestrator.create_manual_project(
        request.user_id,
        request.title,
        request.style,
        request.primary_language,
        [chapter.model_dump() for chapter in request.chapters],
    )


@router.post("/{project_id}/manual/generate-chapter", response_model=ProjectDetailResponse)
async def generate_manual_chapter(
    project_id: str,
    request: GenerateChapterRequest,
    background_tasks: BackgroundTasks,
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
    store: ProjectStore = Depends(get_store),
):
    """Generate one draft chapter of a manual project in the background."""
    try:
        project = store.require_project(project_id)
        instruction = orchestrator.start_manual_chapter(project_id, request.chapter_instruction_id)
    except NotFoundError as exc:
        raise _not_found(exc)
    except InvalidStateError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))

    background_tasks.add_task(
        orchestrator.run_manual_chapter_detached,
        project.id,
        project.user_id,
        instruction,
        project.style,
        project.primary_language,
    )
    return _detail(store, project_id)


@router.get("/{project_id}/status", response_model=ProjectStatusResponse)
async def get_project_status(project_id: str, store: ProjectStore = Depends(get_store)):
    """Return the progress of a project for pollers."""
    project = store.get_project(project_id)
    if project is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Project not found")
    return ProjectStatusResponse(
        status=project.status,
        progress=project.generation_progress,
        current_step=project.current_step,
    )


@router.get("", response_model=List[Project])
async def list_projects(user_id: str = Query(..., alias="userId", min_length=1), store: ProjectStore = Depends(get_store)):
    """List a user's projects, newest first."""
    return store.list_projects(user_id)


@router.get("/{project_id}", response_model=ProjectDetailResponse)
async def get_project(project_id: str, store: ProjectStore = Depends(get_store)):
    """Get a project with its chapters, mockups, exports, translations and instructions."""
    return _detail(store, project_id)


@router.post("/{project_id}/regenerate", response_model=RegenerateResponse)
async def regenerate_project(
    project_id: str,
    background_tasks: BackgroundTasks,
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
):
    """Discard generated content and rerun the autopilot pipeline."""
    try:
        project = orchestrator.reset_for_regeneration(project_id)
    except ProjectNotFoundError as exc:
        raise _not_found(exc)

    background_tasks.add_task(
        orchestrator.run_autopilot,
        project.id,
        project.user_id,
        project.style,
        project.primary_language,
        project.target_languages,
    )
    return RegenerateResponse(message="Regeneration started", project_id=project.id)


@router.post("/{project_id}/mockups", response_model=MockupsResponse)
async def generate_mockups(
    project_id: str,
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
    store: ProjectStore = Depends(get_store),
):
    """Generate marketing mockups from the first chapter's image."""
    project = store.get_project(project_id)
    if project is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Project not found")

    try:
        mockups = await orchestrator.assembler.generate_marketing_mockups(project)
    except MissingCoverImageError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))

    return MockupsResponse(message=f"Generated {len(mockups)} marketing mockups", mockups=mockups)


@router.delete("/{project_id}", response_model=SuccessResponse)
async def delete_project(project_id: str, store: ProjectStore = Depends(get_store)):
    """Delete a project and everything it owns."""
    if not store.delete_project(project_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Project not found")
    return SuccessResponse(message="Project deleted")
