"""Unit tests for the AI capability service."""

import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from ebook_studio.error_handling import CapabilityError
from ebook_studio.models import BookStyle, CapabilityType, MockupType
from ebook_studio.prompt_engineering import IMAGE_STYLE_VARIATIONS, stock_image_url
from ebook_studio.services.ai_service import AIService


@pytest.fixture
def resolver(studio_context):
    resolver = MagicMock()
    resolver.context = studio_context
    return resolver


@pytest.fixture
def service(resolver, studio_context):
    return AIService(resolver, studio_context)


def _provider(*results):
    provider = MagicMock()
    provider.generate_image = AsyncMock(side_effect=list(results))
    return provider


class TestTextCapabilities:
    @pytest.mark.asyncio
    async def test_analyze_trends(self, service, resolver):
        with patch("ebook_studio.services.ai_service.generate_text", new=AsyncMock(return_value='"Air Fryer Bible"')):
            topic = await service.analyze_trends("u", BookStyle.RECIPE_BOOK)

        assert topic == "Air Fryer Bible"
        resolver.chat_model.assert_called_once_with(
            "u", CapabilityType.REASONING, model="gpt-4o-mini", temperature=0.8, json_mode=False
        )

    @pytest.mark.asyncio
    async def test_analyze_trends_empty_answer(self, service):
        with patch("ebook_studio.services.ai_service.generate_text", new=AsyncMock(return_value="")):
            assert await service.analyze_trends("u", BookStyle.VIBRANT) == "Trending Guide 2025"

    @pytest.mark.asyncio
    async def test_generate_outline_skips_invalid_entries(self, service, resolver):
        data = {"chapters": [
            {"title": "Morning Oats", "description": "Overnight oats", "keywords": "oats, breakfast"},
            {"description": "missing title"},
        ]}
        with patch("ebook_studio.services.ai_service.generate_json", new=AsyncMock(return_value=data)):
            outline = await service.generate_outline("u", "Keto", BookStyle.RECIPE_BOOK)

        assert [stub.title for stub in outline] == ["Morning Oats"]
        assert outline[0].keywords == ["oats", "breakfast"]
        assert resolver.chat_model.call_args.kwargs["json_mode"] is True

    @pytest.mark.asyncio
    async def test_generate_outline_accepts_bare_list(self, service):
        data = [{"title": "One"}, {"title": "Two"}]
        with patch("ebook_studio.services.ai_service.generate_json", new=AsyncMock(return_value=data)):
            outline = await service.generate_outline("u", "Keto", BookStyle.MINIMALIST)
        assert len(outline) == 2

    @pytest.mark.asyncio
    async def test_generate_chapter_content(self, service):
        data = {"content": "<p>Oats</p>", "imagePrompt": "bowl of oats"}
        with patch("ebook_studio.services.ai_service.generate_json", new=AsyncMock(return_value=data)):
            content = await service.generate_chapter_content("u", "Oats", "desc", BookStyle.RECIPE_BOOK)

        assert content.title == "Oats"
        assert content.content == "<p>Oats</p>"
        assert content.image_prompt == "bowl of oats"

    @pytest.mark.asyncio
    async def test_grammar_check_without_model_returns_input(self, service, resolver):
        resolver.chat_model.side_effect = CapabilityError("No API key")
        assert await service.check_grammar("u", "<p>Hi</p>") == "<p>Hi</p>"

    @pytest.mark.asyncio
    async def test_translate_falls_back_to_source(self, service, resolver):
        with patch("ebook_studio.services.ai_service.generate_text", new=AsyncMock(return_value="")):
            assert await service.translate_content("u", "<p>Hi</p>", "es") == "<p>Hi</p>"
        assert resolver.chat_model.call_args[0][1] == CapabilityType.TRANSLATION
        assert resolver.chat_model.call_args.kwargs["temperature"] == 0.3


class TestImageGeneration:
    @pytest.mark.asyncio
    async def test_success_returns_data_url(self, service, resolver):
        provider = _provider({"success": True, "image_data": "QUJD", "mime_type": "image/png"})
        resolver.image_provider.return_value = provider

        url = await service.generate_image("u", "bowl of oats", chapter_index=2)

        assert url == "data:image/png;base64,QUJD"
        prompt = provider.generate_image.await_args[0][0]
        assert "bowl of oats" in prompt
        assert IMAGE_STYLE_VARIATIONS[2] in prompt

    @pytest.mark.asyncio
    async def test_retries_transient_failures(self, service, resolver):
        provider = _provider(
            {"success": False, "error": "HTTP 503: busy"},
            {"success": True, "image_data": "QUJD", "mime_type": "image/webp"},
        )
        resolver.image_provider.return_value = provider

        assert await service.generate_image("u", "oats") == "data:image/webp;base64,QUJD"
        assert provider.generate_image.await_count == 2

    @pytest.mark.asyncio
    async def test_exhausted_retries_fall_back_to_stock(self, service, resolver):
        failure = {"success": False, "error": "HTTP 503: busy"}
        provider = _provider(*[failure] * 8)
        resolver.image_provider.return_value = provider

        first = await service.generate_image("u", "oats", chapter_index=17)
        second = await service.generate_image("u", "oats", chapter_index=17)

        assert first == second == stock_image_url(2)
        assert provider.generate_image.await_count == 8

    @pytest.mark.asyncio
    async def test_authentication_failure_is_not_retried(self, service, resolver):
        provider = _provider({"success": False, "error": "HTTP 401: Incorrect API key provided"})
        resolver.image_provider.return_value = provider

        assert await service.generate_image("u", "oats", chapter_index=0) == stock_image_url(0)
        assert provider.generate_image.await_count == 1

    @pytest.mark.asyncio
    async def test_missing_provider_falls_back(self, service, resolver):
        resolver.image_provider.side_effect = CapabilityError("No API key configured")
        assert await service.generate_image("u", "oats", chapter_index=4) == stock_image_url(4)


class TestMarketingMockups:
    @pytest.mark.asyncio
    async def test_non_data_cover_is_returned(self, service, resolver):
        cover = stock_image_url(0)
        assert await service.generate_marketing_mockup("u", "Keto", cover, MockupType.BOOK_3D) == cover
        resolver.image_provider.assert_not_called()

    @pytest.mark.asyncio
    async def test_cover_sent_as_reference(self, service, resolver):
        provider = _provider({"success": True, "image_data": "TU9DSw==", "mime_type": "image/png"})
        resolver.image_provider.return_value = provider
        cover = "data:image/png;base64,Q09WRVI="

        url = await service.generate_marketing_mockup("u", "Keto", cover, MockupType.TABLET_OFFICE)

        assert url == "data:image/png;base64,TU9DSw=="
        assert provider.generate_image.await_args.kwargs["reference_image"] == cover
        assert 'for "Keto"' in provider.generate_image.await_args[0][0]

    @pytest.mark.asyncio
    async def test_failure_returns_cover(self, service, resolver):
        provider = _provider(*[{"success": False, "error": "No image data in response"}] * 4)
        resolver.image_provider.return_value = provider
        cover = "data:image/png;base64,Q09WRVI="

        assert await service.generate_marketing_mockup("u", "Keto", cover, MockupType.MULTI_DEVICE) == cover
