"""Post-processing of generated chapter HTML."""

from __future__ import annotations

import logging
import re
from typing import Any

from ebook_studio.llm_factory import generate_text
from ebook_studio.prompt_engineering import (
    GRAMMAR_SYSTEM_PROMPT,
    HUMANIZE_SYSTEM_PROMPT,
    build_grammar_prompt,
    build_humanize_prompt,
)

logger = logging.getLogger(__name__)

_TAG_PATTERN = re.compile(r"</?[a-zA-Z][^<>]*>")
_FENCE_PATTERN = re.compile(r"^```(?:html|HTML)?\s*|\s*```\s*$")

# Inline styles merged into each tag type, in application order.
INLINE_STYLES = (
    ("p", "text-align: justify; margin: 1em 0"),
    ("ul", "margin: 1em 0; padding-left: 2em; list-style: disc"),
    ("ol", "margin: 1em 0; padding-left: 2em"),
    ("li", "margin: 0.5em 0"),
    ("blockquote", "border-left: 4px solid #ddd; margin: 1.5em 0; padding: 1em; background: #f9f9f9; font-style: italic; color: #666"),
    ("h3", "font-size: 1.3em; margin-top: 1.5em; margin-bottom: 0.5em; color: #333"),
)

_STYLE_ATTR = re.compile(r"""style\s*=\s*["']([^"']*)["']""", re.IGNORECASE)


def count_tags(html: str) -> int:
    """Number of opening and closing HTML tags in ``html``."""
    return len(_TAG_PATTERN.findall(html or ""))


def _strip_fences(text: str) -> str:
    return _FENCE_PATTERN.sub("", text.strip())


def preserves_structure(original: str, candidate: str) -> bool:
    """A rewrite is usable only if it is still HTML with the same tag count."""
    if "<" not in candidate or ">" not in candidate:
        return False
    return count_tags(candidate) == count_tags(original)


async def _rewrite(llm: Any, html: str, prompt: str, system_prompt: str, label: str) -> str:
    try:
        result = await generate_text(llm, prompt, system_prompt)
    except Exception as exc:
        logger.warning("%s failed, keeping original content: %s", label, exc)
        return html

    result = _strip_fences(result)
    if not preserves_structure(html, result):
        logger.warning("%s altered the HTML structure, keeping original content", label)
        return html
    return result


async def fix_grammar(llm: Any, html: str, language: str = "en") -> str:
    """Correct grammar, spelling and punctuation without touching markup."""
    if not html:
        return html
    return await _rewrite(llm, html, build_grammar_prompt(html, language), GRAMMAR_SYSTEM_PROMPT, "Grammar check")


async def humanize(llm: Any, html: str, language: str = "en") -> str:
    """Rewrite text to read more naturally, best effort."""
    if not html:
        return html
    return await _rewrite(llm, html, build_humanize_prompt(html, language), HUMANIZE_SYSTEM_PROMPT, "Humanize")


def _add_styles(html: str, tag: str, new_styles: str) -> str:
    pattern = re.compile(rf"<{tag}(\s[^>]*)?>", re.IGNORECASE)

    def _merge(match: re.Match) -> str:
        attrs = match.group(1) or ""
        existing = _STYLE_ATTR.search(attrs)
        if existing:
            merged = re.sub(r";+", ";", f"{existing.group(1)}; {new_styles}").strip()
            attrs = _STYLE_ATTR.sub(lambda _: f'style="{merged}"', attrs, count=1)
            return f"<{tag}{attrs}>"
        return f'<{tag}{attrs} style="{new_styles}">'

    return pattern.sub(_merge, html)


def format_html(html: str) -> str:
    """Merge the reading styles into block tags, keeping existing style attributes."""
    formatted = html or ""
    for tag, styles in INLINE_STYLES:
        formatted = _add_styles(formatted, tag, styles)
    return formatted
