"""AI capability calls sequenced by the generation pipeline."""

from __future__ import annotations

import logging
from typing import Any, List, Optional

from pydantic import ValidationError

from ..capabilities import CapabilityResolver
from ..content_processing import fix_grammar, humanize
from ..context import StudioContext
from ..error_handling import ImageGenerationError, RetryPolicy, resilient_async
from ..llm_factory import generate_json, generate_text
from ..models import BookStyle, CapabilityType, ChapterOutline, GeneratedContent, MockupType
from ..prompt_engineering import (
    build_chapter_prompt,
    build_image_prompt,
    build_mockup_prompt,
    build_outline_prompt,
    build_translation_prompt,
    build_trend_prompt,
    fallback_topic,
    stock_image_url,
)
from ..providers import is_data_url

logger = logging.getLogger(__name__)


def to_data_url(result: dict) -> str:
    mime_type = result.get('mime_type') or "image/png"
    return f"data:{mime_type};base64,{result['image_data']}"


class AIService:
    """Text, image and translation capabilities resolved per user."""

    def __init__(self, resolver: CapabilityResolver, context: Optional[StudioContext] = None):
        self.resolver = resolver
        self.context = context or resolver.context
        self.retry_policy = RetryPolicy(
            max_attempts=self.context.image_retry_attempts,
            min_delay=self.context.image_retry_min_delay,
            max_delay=self.context.image_retry_max_delay,
        )

    def _chat(self, user_id: str, capability: CapabilityType, *, model: str, temperature: float,
              json_mode: bool = False) -> Any:
        return self.resolver.chat_model(
            user_id, capability, model=model, temperature=temperature, json_mode=json_mode
        )

    async def analyze_trends(self, user_id: str, style: BookStyle) -> str:
        """Pick one commercial topic for a style."""

        llm = self._chat(user_id, CapabilityType.REASONING, model=self.context.fast_text_model, temperature=0.8)
        answer = await generate_text(llm, build_trend_prompt(style))
        topic = fallback_topic(answer)
        logger.info("Selected topic: %s", topic)
        return topic

    async def generate_outline(
        self, user_id: str, title: str, style: BookStyle, language: str = "en"
    ) -> List[ChapterOutline]:
        llm = self._chat(
            user_id,
            CapabilityType.TEXT_GENERATION,
            model=self.context.fast_text_model,
            temperature=0.7,
            json_mode=True,
        )
        data = await generate_json(llm, build_outline_prompt(title, style, language))

        items = data.get("chapters") if isinstance(data, dict) else data
        outline: List[ChapterOutline] = []
        for item in items or []:
            try:
                outline.append(ChapterOutline.model_validate(item))
            except ValidationError as exc:
                logger.warning("Skipping malformed outline entry %r: %s", item, exc)
        logger.info("Outline for '%s' has %d chapters", title, len(outline))
        return outline

    async def generate_chapter_content(
        self,
        user_id: str,
        title: str,
        description: str,
        style: BookStyle,
        language: str = "en",
    ) -> GeneratedContent:
        llm = self._chat(
            user_id,
            CapabilityType.TEXT_GENERATION,
            model=self.context.text_model,
            temperature=0.8,
            json_mode=True,
        )
        data = await generate_json(llm, build_chapter_prompt(title, description, style, language))
        if not isinstance(data, dict):
            data = {}
        return GeneratedContent(
            title=title,
            content=str(data.get("content") or ""),
            image_prompt=data.get("imagePrompt") or data.get("image_prompt") or None,
        )

    async def check_grammar(self, user_id: str, html: str, language: str = "en") -> str:
        try:
            llm = self._chat(user_id, CapabilityType.TEXT_GENERATION, model=self.context.fast_text_model, temperature=0.2)
        except Exception as exc:
            logger.warning("Grammar check unavailable: %s", exc)
            return html
        return await fix_grammar(llm, html, language)

    async def humanize_content(self, user_id: str, html: str, language: str = "en") -> str:
        try:
            llm = self._chat(user_id, CapabilityType.TEXT_GENERATION, model=self.context.text_model, temperature=0.8)
        except Exception as exc:
            logger.warning("Humanize unavailable: %s", exc)
            return html
        return await humanize(llm, html, language)

    async def _generate_with_retry(self, user_id: str, prompt: str, reference_image: Optional[str] = None) -> str:
        provider = self.resolver.image_provider(user_id)

        @resilient_async(policy=self.retry_policy, context={"user_id": user_id, "reference": bool(reference_image)})
        async def generate_image_attempt() -> str:
            result = await provider.generate_image(prompt, reference_image=reference_image)
            if not result.get('success') or not result.get('image_data'):
                raise ImageGenerationError(result.get('error') or "No image data in response")
            return to_data_url(result)

        return await generate_image_attempt()

    async def generate_image(self, user_id: str, prompt: str, chapter_index: int = 0) -> str:
        """Generate a chapter illustration; never raises.

        Falls back to the stock photo for ``chapter_index`` once retries are spent.
        """

        enhanced = build_image_prompt(prompt, chapter_index)
        logger.info("Generating image %d: %.100s...", chapter_index + 1, enhanced)
        try:
            return await self._generate_with_retry(user_id, enhanced)
        except Exception as exc:
            fallback = stock_image_url(chapter_index)
            logger.warning("Image generation failed for chapter %d, using stock image: %s", chapter_index + 1, exc)
            return fallback

    async def generate_marketing_mockup(
        self, user_id: str, book_title: str, cover_image_url: str, mockup_type: MockupType
    ) -> str:
        """Render the cover into a marketing scene; returns the cover itself on failure."""

        if not is_data_url(cover_image_url):
            logger.warning("Cover for '%s' is not a data URL, using it as the %s mockup", book_title, mockup_type.value)
            return cover_image_url

        try:
            return await self._generate_with_retry(
                user_id,
                build_mockup_prompt(book_title, mockup_type),
                reference_image=cover_image_url,
            )
        except Exception as exc:
            logger.warning("Failed to generate %s mockup: %s", mockup_type.value, exc)
            return cover_image_url

    async def translate_content(self, user_id: str, html: str, target_language: str) -> str:
        llm = self._chat(user_id, CapabilityType.TRANSLATION, model=self.context.text_model, temperature=0.3)
        translated = await generate_text(llm, build_translation_prompt(html, target_language))
        return translated or html
