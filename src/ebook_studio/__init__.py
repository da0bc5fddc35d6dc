"""Ebook Studio - AI pipeline for drafting, illustrating and packaging commercial ebooks."""

__version__ = "0.1.0"
