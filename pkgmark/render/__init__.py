"""Markdown rendering pipeline for untrusted README and changelog content."""

from .context import RenderContext, build_id_prefix, slugify
from .engine import ReadmeRenderer, default_renderer, render
from .highlighter import Highlighter, HighlighterLoader, PygmentsHighlighter
from .lazy_headings import normalize_lazy_headings
from .playground import extract_playground_links
from .sanitizer import ReadmeSanitizer
from .url_resolver import resolve_url

__all__ = [
    "Highlighter",
    "HighlighterLoader",
    "PygmentsHighlighter",
    "ReadmeRenderer",
    "ReadmeSanitizer",
    "RenderContext",
    "build_id_prefix",
    "default_renderer",
    "extract_playground_links",
    "normalize_lazy_headings",
    "render",
    "resolve_url",
    "slugify",
]
