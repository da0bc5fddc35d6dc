"""Generation pipeline: autopilot runs, manual chapters, regeneration and finalization."""

from __future__ import annotations

import logging
import math
from typing import Iterable, List, Optional, Sequence

from ..error_handling import InstructionNotFoundError, InvalidStateError, OutlineGenerationError
from ..models import (
    BookStyle,
    Chapter,
    ChapterInstruction,
    InstructionStatus,
    Project,
    ProjectMode,
    ProjectStatus,
)
from .assembler import ExportAssembler
from .storage import ProjectStore

logger = logging.getLogger(__name__)

PLACEHOLDER_TITLE = "Generating..."


def checkpoint(value: float) -> int:
    """Round a progress value half up."""
    return int(math.floor(value + 0.5))


def unique_languages(primary_language: str, target_languages: Iterable[str]) -> List[str]:
    """Target languages without duplicates or the primary language, order kept."""
    seen = {primary_language}
    result: List[str] = []
    for language in target_languages:
        if language and language not in seen:
            seen.add(language)
            result.append(language)
    return result


class GenerationOrchestrator:
    """Sequences AI capability calls and persists a checkpoint after every stage.

    Every ``run_*`` entrypoint is meant to be scheduled detached (for example
    through FastAPI ``BackgroundTasks``) and owns its error boundary.
    """

    def __init__(self, store: ProjectStore, ai_service, assembler: Optional[ExportAssembler] = None):
        self.store = store
        self.ai = ai_service
        self.assembler = assembler or ExportAssembler(store, ai_service)

    # ------------------------------------------------------------------
    # Project creation
    # ------------------------------------------------------------------
    def create_autopilot_project(
        self,
        user_id: str,
        style: BookStyle,
        primary_language: str = "en",
        target_languages: Sequence[str] = (),
    ) -> Project:
        return self.store.create_project(
            user_id=user_id,
            title=PLACEHOLDER_TITLE,
            style=style,
            mode=ProjectMode.AUTOPILOT,
            status=ProjectStatus.PENDING,
            primary_language=primary_language,
            target_languages=unique_languages(primary_language, target_languages),
        )

    def create_manual_project(
        self,
        user_id: str,
        title: str,
        style: BookStyle,
        primary_language: str,
        chapters: Sequence[dict],
    ) -> Project:
        """Create a draft project with one instruction per requested chapter."""

        project = self.store.create_project(
            user_id=user_id,
            title=title,
            style=style,
            mode=ProjectMode.MANUAL,
            status=ProjectStatus.DRAFT,
            primary_language=primary_language,
        )
        for chapter in chapters:
            self.store.create_instruction(
                project_id=project.id,
                chapter_number=chapter["chapter_number"],
                title=chapter["title"],
                instructions=chapter.get("instructions") or "",
            )
        return project

    # ------------------------------------------------------------------
    # Autopilot
    # ------------------------------------------------------------------
    async def run_autopilot(
        self,
        project_id: str,
        user_id: str,
        style: BookStyle,
        primary_language: str = "en",
        target_languages: Sequence[str] = (),
    ) -> None:
        """Run the full pipeline; failures mark the project ``failed`` and never escape."""

        try:
            await self._run_autopilot(project_id, user_id, BookStyle(style), primary_language, list(target_languages))
        except Exception as exc:
            logger.exception("Generation failed for project %s", project_id)
            try:
                self.store.mark_project_failed(project_id, str(exc) or type(exc).__name__)
            except Exception:
                logger.exception("Could not record failure for project %s", project_id)

    async def _run_autopilot(
        self,
        project_id: str,
        user_id: str,
        style: BookStyle,
        primary_language: str,
        target_languages: List[str],
    ) -> None:
        store = self.store
        generating = ProjectStatus.GENERATING

        store.set_progress(project_id, generating, 5, "Analyzing market trends...")
        title = await self.ai.analyze_trends(user_id, style)
        store.update_project(project_id, title=title)
        store.set_progress(project_id, generating, 15, "Topic selected")

        store.set_progress(project_id, generating, 20, "Creating outline...")
        outline = await self.ai.generate_outline(user_id, title, style, primary_language)
        if not outline:
            raise OutlineGenerationError("Outline generation returned no chapters")
        store.update_project(project_id, outline=outline)
        store.set_progress(project_id, generating, 30, "Outline complete")

        store.set_progress(project_id, generating, 35, "Generating content...")
        chapters: List[Chapter] = []
        images: List[str] = []
        total = len(outline)
        for index, stub in enumerate(outline):
            logger.info("Chapter %d/%d: %s", index + 1, total, stub.title)
            chapter = await self._produce_chapter(
                project_id,
                user_id,
                style,
                primary_language,
                title=stub.title,
                description=stub.description,
                chapter_number=index + 1,
                image_index=index,
            )
            chapters.append(chapter)
            if chapter.image_url:
                images.append(chapter.image_url)
            store.set_progress(
                project_id, generating, checkpoint(35 + (index + 1) / total * 25), f"Chapter {index + 1}/{total}"
            )

        store.update_project(
            project_id,
            content=[{"title": c.title, "content": c.html_content} for c in chapters],
            images=images,
        )
        store.set_progress(project_id, generating, 60, "Content generated")

        if target_languages:
            store.set_progress(project_id, generating, 65, "Translating...")
            for index, language in enumerate(target_languages):
                for chapter in chapters:
                    translated = await self.ai.translate_content(user_id, chapter.html_content, language)
                    store.create_translation(
                        project_id=project_id,
                        language=language,
                        chapter_id=chapter.id,
                        translated_content=translated,
                    )
                store.set_progress(
                    project_id,
                    generating,
                    checkpoint(65 + (index + 1) / len(target_languages) * 15),
                    f"Translated to {language}",
                )
        store.set_progress(project_id, generating, 80, "Translation complete")

        store.set_progress(project_id, generating, 85, "Creating mockups & exports...")
        project = store.require_project(project_id)
        self.assembler.package_languages(project, [primary_language, *target_languages])
        store.set_progress(project_id, generating, 95, "Exports ready")

        self.assembler.create_placeholder_mockups(project, images)
        store.set_progress(project_id, ProjectStatus.COMPLETED, 100, "Generation complete")
        logger.info("Project %s completed with %d chapters", project_id, len(chapters))

    async def _produce_chapter(
        self,
        project_id: str,
        user_id: str,
        style: BookStyle,
        language: str,
        *,
        title: str,
        description: str,
        chapter_number: int,
        image_index: int,
    ) -> Chapter:
        """Write, polish and illustrate one chapter, then persist it."""

        content = await self.ai.generate_chapter_content(user_id, title, description, style, language)
        html_content = await self.ai.check_grammar(user_id, content.content or "", language)
        html_content = await self.ai.humanize_content(user_id, html_content, language)

        image_url = None
        if content.image_prompt:
            image_url = await self.ai.generate_image(user_id, content.image_prompt, image_index) or None

        return self.store.create_chapter(
            project_id=project_id,
            chapter_number=chapter_number,
            title=title,
            html_content=html_content,
            image_url=image_url,
            language=language,
        )

    # ------------------------------------------------------------------
    # Regeneration
    # ------------------------------------------------------------------
    def reset_for_regeneration(self, project_id: str) -> Project:
        """Drop generated artifacts and reset the project to ``pending``/0."""

        self.store.require_project(project_id)
        self.store.delete_generated_artifacts(project_id)
        project = self.store.set_progress(
            project_id,
            ProjectStatus.PENDING,
            0,
            "Starting regeneration...",
            outline=[],
            content=[],
            images=[],
            finalizing=False,
        )
        logger.info("Reset project %s for regeneration", project_id)
        return project

    async def regenerate(self, project_id: str) -> None:
        project = self.reset_for_regeneration(project_id)
        await self.run_autopilot(
            project.id,
            project.user_id,
            project.style,
            project.primary_language,
            project.target_languages,
        )

    # ------------------------------------------------------------------
    # Manual mode
    # ------------------------------------------------------------------
    def start_manual_chapter(self, project_id: str, instruction_id: str) -> ChapterInstruction:
        """Validate a trigger request and mark the instruction ``generating``."""

        self.store.require_project(project_id)
        instruction = self.store.get_instruction(instruction_id)
        if instruction is None or instruction.project_id != project_id:
            raise InstructionNotFoundError(instruction_id)
        if instruction.status != InstructionStatus.DRAFT:
            raise InvalidStateError(
                f"Chapter {instruction.chapter_number} is {instruction.status.value}; only draft chapters can be generated"
            )
        return self.store.update_instruction_status(instruction.id, InstructionStatus.GENERATING)

    async def run_manual_chapter(
        self,
        project_id: str,
        user_id: str,
        instruction: ChapterInstruction,
        style: BookStyle,
        language: str = "en",
    ) -> None:
        """Generate one instructed chapter; marks the instruction ``failed`` and re-raises on error."""

        try:
            await self._produce_chapter(
                project_id,
                user_id,
                BookStyle(style),
                language,
                title=instruction.title,
                description=instruction.instructions or f"Write a comprehensive chapter about {instruction.title}",
                chapter_number=instruction.chapter_number,
                image_index=instruction.chapter_number,
            )
            self.store.update_instruction_status(instruction.id, InstructionStatus.GENERATED)
            logger.info("Manual chapter %d of project %s generated", instruction.chapter_number, project_id)
        except Exception:
            self.store.update_instruction_status(instruction.id, InstructionStatus.FAILED)
            raise

        await self._after_manual_chapter(project_id, language)

    async def run_manual_chapter_detached(
        self,
        project_id: str,
        user_id: str,
        instruction: ChapterInstruction,
        style: BookStyle,
        language: str = "en",
    ) -> None:
        try:
            await self.run_manual_chapter(project_id, user_id, instruction, style, language)
        except Exception:
            logger.exception(
                "Manual chapter %d of project %s failed", instruction.chapter_number, project_id
            )

    async def _after_manual_chapter(self, project_id: str, language: str) -> None:
        instructions = self.store.list_instructions(project_id)
        total = len(instructions)
        generated = sum(1 for item in instructions if item.status == InstructionStatus.GENERATED)

        if total and generated == total:
            await self.finalize_manual_project(project_id, language)
            return

        self.store.update_progress_unless_completed(
            project_id,
            ProjectStatus.GENERATING,
            checkpoint(generated / total * 100) if total else 0,
            f"Generated {generated}/{total} chapters",
        )

    async def finalize_manual_project(self, project_id: str, language: str) -> bool:
        """Package a manual project once.

        Returns False when another run already claimed finalization or when
        packaging fails, in which case the project is marked ``failed``.
        """

        if not self.store.claim_finalization(project_id, 95, "Creating exports..."):
            logger.info("Project %s already finalized", project_id)
            return False

        try:
            project = self.store.require_project(project_id)
            chapters = self.store.list_chapters(project_id)
            self.assembler.package_language(project, language)
            self.assembler.create_placeholder_mockups(project, [chapter.image_url for chapter in chapters])
        except Exception as exc:
            logger.exception("Packaging failed for project %s", project_id)
            self.store.mark_project_failed(project_id, str(exc) or type(exc).__name__)
            return False

        self.store.set_progress(project_id, ProjectStatus.COMPLETED, 100, "All chapters generated")
        logger.info("Manual project %s completed", project_id)
        return True
