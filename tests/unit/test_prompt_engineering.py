"""Unit tests for prompt builders and lookup tables."""

from ebook_studio.models import BookStyle, MockupType
from ebook_studio.prompt_engineering import (
    IMAGE_COLOR_PALETTES,
    IMAGE_STYLE_VARIATIONS,
    STOCK_PHOTO_IDS,
    build_chapter_prompt,
    build_image_prompt,
    build_mockup_prompt,
    build_outline_prompt,
    build_translation_prompt,
    build_trend_prompt,
    fallback_topic,
    language_name,
    stock_image_url,
)


class TestLookupTables:
    def test_table_sizes(self):
        assert len(IMAGE_STYLE_VARIATIONS) == 8
        assert len(IMAGE_COLOR_PALETTES) == 8
        assert len(STOCK_PHOTO_IDS) == 15

    def test_stock_image_wraps_around(self):
        assert stock_image_url(0) == stock_image_url(15)
        assert stock_image_url(1) != stock_image_url(2)
        assert stock_image_url(0) == (
            "https://images.pexels.com/photos/1640777/pexels-photo-1640777.jpeg"
            "?auto=compress&cs=tinysrgb&w=1200&h=800&fit=crop"
        )

    def test_image_prompt_variation_is_deterministic(self):
        first = build_image_prompt("bowl of oats", 3)
        assert first == build_image_prompt("bowl of oats", 11)
        assert IMAGE_STYLE_VARIATIONS[3] in first
        assert IMAGE_COLOR_PALETTES[3] in first
        assert "bowl of oats" in first

    def test_language_names(self):
        assert language_name("es") == "Spanish"
        assert language_name("ja") == "ja"


class TestPromptBuilders:
    def test_trend_prompt_uses_style_focus(self):
        assert "viral food trends" in build_trend_prompt(BookStyle.RECIPE_BOOK)
        assert "productivity hacks" in build_trend_prompt("minimalist")

    def test_trend_prompt_unknown_style_defaults(self):
        assert "lifestyle and wellness" in build_trend_prompt("unknown")

    def test_outline_prompt(self):
        prompt = build_outline_prompt("Keto Bowls", BookStyle.RECIPE_BOOK, "fr")
        assert '"Keto Bowls"' in prompt
        assert "6-8 recipes" in prompt
        assert "Language: fr" in prompt
        assert '"chapters"' in prompt

    def test_chapter_prompt(self):
        prompt = build_chapter_prompt("Morning Oats", "Creamy overnight oats", BookStyle.VIBRANT, "en")
        assert "**Chapter:** Morning Oats" in prompt
        assert "**Description:** Creamy overnight oats" in prompt
        assert "HIGH ENERGY" in prompt
        assert '"imagePrompt"' in prompt

    def test_translation_prompt_names_language(self):
        prompt = build_translation_prompt("<p>Hola</p>", "de")
        assert "to German" in prompt
        assert "<p>Hola</p>" in prompt

    def test_mockup_prompt(self):
        prompt = build_mockup_prompt("Keto Bowls", MockupType.BOOK_3D)
        assert "hardcover book" in prompt
        assert 'for "Keto Bowls"' in prompt


class TestFallbackTopic:
    def test_empty_answer(self):
        assert fallback_topic("") == "Trending Guide 2025"
        assert fallback_topic(None) == "Trending Guide 2025"
        assert fallback_topic('  ""  ') == "Trending Guide 2025"

    def test_strips_quotes(self):
        assert fallback_topic('"The Air Fryer Bible"\n') == "The Air Fryer Bible"
