"""Packaging of finished chapters into downloadable documents and mockups."""

from __future__ import annotations

import asyncio
import html
import logging
from typing import Iterable, List, Optional, Sequence, Tuple
from urllib.parse import quote

from ..content_processing import format_html
from ..error_handling import MissingCoverImageError
from ..models import Export, ExportFormat, Mockup, MockupType, Project, now_utc
from ..utils.validation_helpers import slugify_title
from .storage import ProjectStore

logger = logging.getLogger(__name__)

PLACEHOLDER_MOCKUPS: Tuple[Tuple[MockupType, str], ...] = (
    (MockupType.THREE_D, "/placeholder-3d.jpg"),
    (MockupType.MOBILE, "/placeholder-mobile.jpg"),
    (MockupType.DESKTOP, "/placeholder-desktop.jpg"),
)

MARKETING_MOCKUP_TYPES: Tuple[MockupType, ...] = (
    MockupType.TABLET_OFFICE,
    MockupType.BOOK_3D,
    MockupType.MULTI_DEVICE,
)

# (format, file name suffix); all three share one document.
EXPORT_VARIANTS: Tuple[Tuple[ExportFormat, str], ...] = (
    (ExportFormat.EPUB, ""),
    (ExportFormat.PDF, "-print"),
    (ExportFormat.ZIP, "-complete"),
)

PRINT_STYLESHEET = """
    * { margin: 0; padding: 0; box-sizing: border-box; }
    body { font-family: 'Georgia', 'Times New Roman', serif; max-width: 800px; margin: 40px auto; padding: 20px; line-height: 1.8; color: #333; background: #fff; }
    h1 { font-size: 2.5em; margin-bottom: 0.5em; color: #000; border-bottom: 3px solid #333; padding-bottom: 0.3em; }
    h2 { font-size: 1.8em; margin-top: 2em; margin-bottom: 0.5em; color: #222; }
    h3 { font-size: 1.3em; margin-top: 1.5em; margin-bottom: 0.3em; color: #333; }
    p { margin: 1em 0; text-align: justify; }
    strong { color: #000; font-weight: 600; }
    em { font-style: italic; color: #444; }
    ul, ol { margin: 1em 0; padding-left: 2em; }
    li { margin: 0.5em 0; }
    blockquote { border-left: 4px solid #ddd; margin: 1.5em 0; padding-left: 1em; color: #666; font-style: italic; background: #f9f9f9; padding: 1em; }
    .chapter { page-break-after: always; margin-bottom: 3em; }
    .content { margin-top: 1em; }
    @media print { body { margin: 0; padding: 20mm; } .chapter { page-break-after: always; } }
"""


def render_document(title: str, language: str, sections: Iterable[Tuple[str, str]]) -> str:
    """Render ``(chapter title, chapter html)`` pairs into one printable page."""

    safe_title = html.escape(title)
    body = "\n".join(
        f'<div class="chapter"><h2>{html.escape(section_title)}</h2>'
        f'<div class="content">{format_html(section_html or "")}</div></div>'
        for section_title, section_html in sections
    )
    return (
        "<!DOCTYPE html>\n"
        f'<html lang="{html.escape(language)}">\n'
        "<head>\n"
        '  <meta charset="utf-8">\n'
        '  <meta name="viewport" content="width=device-width, initial-scale=1">\n'
        f"  <title>{safe_title}</title>\n"
        f"  <style>{PRINT_STYLESHEET}  </style>\n"
        "</head>\n"
        "<body>\n"
        f"  <h1>{safe_title}</h1>\n"
        f"  {body}\n"
        "</body>\n"
        "</html>"
    )


def to_html_data_url(document: str) -> str:
    # Same escaping rules as JavaScript's encodeURIComponent.
    return "data:text/html;charset=utf-8," + quote(document, safe="-_.!~*'()")


class ExportAssembler:
    """Builds Export and Mockup rows for a project."""

    def __init__(self, store: ProjectStore, ai_service=None):
        self.store = store
        self.ai_service = ai_service

    def _sections(self, project: Project, language: str) -> List[Tuple[str, str]]:
        if language == project.primary_language:
            return [(chapter.title, chapter.html_content) for chapter in self.store.list_chapters(project.id, language)]

        # Translations carry no title or number; take both from the source chapter.
        chapters = {chapter.id: chapter for chapter in self.store.list_chapters(project.id)}
        translations = [
            t for t in self.store.list_translations(project.id, language) if t.chapter_id in chapters
        ]
        translations.sort(key=lambda t: chapters[t.chapter_id].chapter_number)
        return [(chapters[t.chapter_id].title, t.translated_content) for t in translations]

    def package_language(self, project: Project, language: str) -> List[Export]:
        """Assemble one language's document and register its three exports."""

        document = render_document(project.title, language, self._sections(project, language))
        file_url = to_html_data_url(document)
        file_size = len(document.encode("utf-8"))
        slug = slugify_title(project.title)

        exports = [
            self.store.create_export(
                project_id=project.id,
                format=export_format,
                language=language,
                file_url=file_url,
                file_name=f"{slug}-{language}{suffix}.html",
                file_size=file_size,
            )
            for export_format, suffix in EXPORT_VARIANTS
        ]
        logger.info("Packaged %s export for project %s", language, project.id)
        return exports

    def package_languages(self, project: Project, languages: Sequence[str]) -> List[Export]:
        exports: List[Export] = []
        for language in languages:
            exports.extend(self.package_language(project, language))
        return exports

    def create_placeholder_mockups(self, project: Project, images: Sequence[Optional[str]]) -> List[Mockup]:
        """One mockup per device type from the first three images."""

        usable = [image for image in images if image]
        metadata = {"title": project.title, "style": project.style.value}
        return [
            self.store.create_mockup(
                project_id=project.id,
                type=mockup_type,
                image_url=usable[index] if index < len(usable) else placeholder,
                metadata=dict(metadata),
            )
            for index, (mockup_type, placeholder) in enumerate(PLACEHOLDER_MOCKUPS)
        ]

    async def generate_marketing_mockups(self, project: Project) -> List[Mockup]:
        """Generate the marketing scenes from the first chapter's image."""

        if self.ai_service is None:
            raise RuntimeError("Marketing mockups need an AI service")

        chapters = self.store.list_chapters(project.id)
        cover = chapters[0].image_url if chapters else None
        if not cover:
            raise MissingCoverImageError("No cover image available for mockup generation")

        logger.info("Generating marketing mockups for '%s'", project.title)
        images = await asyncio.gather(
            *(
                self.ai_service.generate_marketing_mockup(project.user_id, project.title, cover, mockup_type)
                for mockup_type in MARKETING_MOCKUP_TYPES
            )
        )

        generated = now_utc().isoformat()
        return [
            self.store.create_mockup(
                project_id=project.id,
                type=mockup_type,
                image_url=image_url,
                metadata={"title": project.title, "style": project.style.value, "generated": generated},
            )
            for mockup_type, image_url in zip(MARKETING_MOCKUP_TYPES, images)
        ]
