"""Utility functions for the ebook studio."""

from .validation_helpers import (
    extract_json_from_text,
    parse_llm_json,
    slugify_title,
)

__all__ = [
    'extract_json_from_text',
    'parse_llm_json',
    'slugify_title',
]
