"""Unit tests for grammar fixing, humanizing and HTML formatting."""

import pytest
from unittest.mock import AsyncMock, MagicMock

from langchain_core.messages import AIMessage

from ebook_studio.content_processing import (
    count_tags,
    fix_grammar,
    format_html,
    humanize,
    preserves_structure,
)


SOURCE_HTML = "<p>Thiss is <strong>grate</strong>.</p><ul><li>one</li></ul>"


def _llm_returning(text):
    llm = MagicMock()
    llm.ainvoke = AsyncMock(return_value=AIMessage(content=text))
    return llm


class TestTagCounting:
    def test_counts_open_and_close_tags(self):
        assert count_tags(SOURCE_HTML) == 8

    def test_ignores_plain_angle_brackets(self):
        assert count_tags("<p>3 < 4 and 5 > 2</p>") == 2

    def test_preserves_structure_requires_same_tag_count(self):
        assert preserves_structure("<p>a</p>", "<p>b</p>")
        assert not preserves_structure("<p>a</p>", "<p>b</p><p>c</p>")
        assert not preserves_structure("<p>a</p>", "plain text")


class TestFixGrammar:
    @pytest.mark.asyncio
    async def test_returns_corrected_html(self):
        corrected = "<p>This is <strong>great</strong>.</p><ul><li>one</li></ul>"
        llm = _llm_returning(corrected)

        result = await fix_grammar(llm, SOURCE_HTML, "en")

        assert result == corrected
        messages = llm.ainvoke.call_args[0][0]
        assert "Language: en" in messages[-1].content
        assert SOURCE_HTML in messages[-1].content

    @pytest.mark.asyncio
    async def test_strips_code_fences(self):
        corrected = "<p>This is <strong>great</strong>.</p><ul><li>one</li></ul>"
        llm = _llm_returning(f"```html\n{corrected}\n```")
        assert await fix_grammar(llm, SOURCE_HTML) == corrected

    @pytest.mark.asyncio
    async def test_markdown_result_returns_input(self):
        llm = _llm_returning("This is **great**.\n- one")
        assert await fix_grammar(llm, SOURCE_HTML) == SOURCE_HTML

    @pytest.mark.asyncio
    async def test_tag_count_change_returns_input(self):
        llm = _llm_returning("<p>This is great.</p><ul><li>one</li></ul>")
        assert await fix_grammar(llm, SOURCE_HTML) == SOURCE_HTML

    @pytest.mark.asyncio
    async def test_capability_error_returns_input(self):
        llm = MagicMock()
        llm.ainvoke = AsyncMock(side_effect=RuntimeError("rate limit exceeded"))
        assert await fix_grammar(llm, SOURCE_HTML) == SOURCE_HTML


class TestHumanize:
    @pytest.mark.asyncio
    async def test_tag_count_preserved_exactly(self):
        rewritten = "<p>It's <strong>great</strong>, honestly.</p><ul><li>one</li></ul>"
        result = await humanize(_llm_returning(rewritten), SOURCE_HTML, "en")
        assert result == rewritten
        assert count_tags(result) == count_tags(SOURCE_HTML)

    @pytest.mark.asyncio
    async def test_dropped_tags_return_input(self):
        result = await humanize(_llm_returning("<p>It's great, honestly.</p>"), SOURCE_HTML)
        assert result == SOURCE_HTML

    @pytest.mark.asyncio
    async def test_empty_input_skips_model(self):
        llm = _llm_returning("<p>x</p>")
        assert await humanize(llm, "") == ""
        llm.ainvoke.assert_not_called()


class TestFormatHtml:
    def test_adds_styles_to_bare_tags(self):
        result = format_html("<p>Hello</p><h3>Tip</h3>")
        assert '<p style="text-align: justify; margin: 1em 0">' in result
        assert '<h3 style="font-size: 1.3em; margin-top: 1.5em; margin-bottom: 0.5em; color: #333">' in result

    def test_merges_existing_style(self):
        result = format_html('<p class="lead" style="color: red;">Hi</p>')
        assert result == '<p class="lead" style="color: red; text-align: justify; margin: 1em 0">Hi</p>'

    def test_list_and_blockquote_styles(self):
        result = format_html("<ul><li>a</li></ul><ol><li>b</li></ol><blockquote>tip</blockquote>")
        assert '<ul style="margin: 1em 0; padding-left: 2em; list-style: disc">' in result
        assert '<ol style="margin: 1em 0; padding-left: 2em">' in result
        assert result.count('<li style="margin: 0.5em 0">') == 2
        assert "border-left: 4px solid #ddd" in result

    def test_does_not_touch_similar_tag_names(self):
        result = format_html("<pre>code</pre><p>x</p>")
        assert result.startswith("<pre>code</pre>")

    def test_closing_tags_untouched(self):
        result = format_html("<p>x</p>")
        assert result.endswith("</p>")
        assert count_tags(result) == 2
