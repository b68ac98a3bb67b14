"""Syntax highlighting for README code blocks.

The renderer talks to a :class:`Highlighter` capability. The default
implementation uses Pygments; it is created once per process by
:class:`HighlighterLoader`, and concurrent renders wait on the same
initialization instead of racing to build their own.
"""

from __future__ import annotations

import logging
import threading
import typing as typ
from concurrent.futures import Future
from html import escape

from pygments import highlight
from pygments.formatters.html import HtmlFormatter
from pygments.lexers import get_lexer_by_name
from pygments.util import ClassNotFound

from pkgmark._constants import DEFAULT_PYGMENTS_STYLE

logger = logging.getLogger(__name__)

COPY_BUTTON = (
    '<button type="button" class="readme-copy-button" aria-label="Copy code" '
    "data-copy>"
    '<span class="readme-copy-icon" aria-hidden="true"></span>'
    '<span class="sr-only">Copy code</span>'
    "</button>"
)


class Highlighter(typ.Protocol):
    """Capability turning source code into highlighted HTML."""

    def highlight(self, code: str, language: str | None) -> str:
        """Return highlighted HTML for ``code``."""
        ...


class PygmentsHighlighter:
    """Highlight code with Pygments using the ``codehilite`` CSS class."""

    def __init__(self, style: str = DEFAULT_PYGMENTS_STYLE) -> None:
        self.style = style
        self._formatter = HtmlFormatter(style=style, cssclass="codehilite")

    @property
    def stylesheet(self) -> str:
        """Return the CSS used for highlighted code blocks."""
        return self._formatter.get_style_defs(".codehilite")

    def highlight(self, code: str, language: str | None) -> str:
        """Render ``code`` into highlighted HTML with a ``data-language`` attribute.

        Parameters
        ----------
        code : str
            Source snippet to highlight.
        language : str, optional
            Pygments lexer name; unknown or missing names fall back to
            ``"text"``.

        Returns
        -------
        str
            HTML of the highlighted block.
        """
        lang = language or "text"
        try:
            lexer = get_lexer_by_name(lang)
        except ClassNotFound:
            lexer = get_lexer_by_name("text")
        html = highlight(code, lexer, self._formatter)
        safe_lang = escape(lang, quote=True)
        return html.replace(
            '<div class="codehilite">',
            f'<div class="codehilite" data-language="{safe_lang}">',
            1,
        )


class HighlighterLoader:
    """Create a highlighter once and share it between threads.

    Parameters
    ----------
    factory : Callable[[], Highlighter]
        Builds the highlighter. Called at most once per successful load; a
        failed load is retried by the next caller.
    """

    def __init__(self, factory: typ.Callable[[], Highlighter]) -> None:
        self._factory = factory
        self._lock = threading.Lock()
        self._future: Future[Highlighter] | None = None

    def get(self) -> Highlighter:
        """Return the shared highlighter, initializing it on first use.

        Raises
        ------
        Exception
            Whatever the factory raised, for every caller waiting on the
            failed initialization.
        """
        with self._lock:
            future = self._future
            owner = future is None
            if future is None:
                future = Future()
                self._future = future
        if owner:
            try:
                future.set_result(self._factory())
            except Exception as exc:
                future.set_exception(exc)
                with self._lock:
                    self._future = None
        return future.result()


_default_loaders: dict[str, HighlighterLoader] = {}
_default_lock = threading.Lock()


def default_loader(style: str = DEFAULT_PYGMENTS_STYLE) -> HighlighterLoader:
    """Return the process-wide Pygments loader for ``style``."""
    with _default_lock:
        loader = _default_loaders.get(style)
        if loader is None:
            loader = HighlighterLoader(lambda: PygmentsHighlighter(style))
            _default_loaders[style] = loader
        return loader


def plain_code_block(code: str, language: str | None) -> str:
    """Return an unhighlighted, escaped code block."""
    lang_attr = (
        f' class="language-{escape(language, quote=True)}"' if language else ""
    )
    return f"<pre><code{lang_attr}>{escape(code)}</code></pre>"


def render_code_block(
    loader: HighlighterLoader | None, code: str, language: str | None
) -> str:
    """Highlight ``code`` and wrap it in the copy-button container.

    Highlighter failures are logged and degrade to :func:`plain_code_block`.
    """
    body: str | None = None
    if loader is not None:
        try:
            body = loader.get().highlight(code, language)
        except Exception:
            logger.warning(
                "highlighting failed for language %r; rendering plain code",
                language,
                exc_info=True,
            )
    if body is None:
        body = plain_code_block(code, language)
    return f'<div class="readme-code-block">{COPY_BUTTON}{body}</div>'


__all__ = [
    "Highlighter",
    "HighlighterLoader",
    "PygmentsHighlighter",
    "default_loader",
    "plain_code_block",
    "render_code_block",
]
