"""Standalone HTML preview pages for rendered READMEs."""

from __future__ import annotations

import datetime as dt
import typing as typ
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape

from pkgmark.render.highlighter import PygmentsHighlighter

if typ.TYPE_CHECKING:
    from pkgmark.models import RenderResult


class PreviewPageBuilder:
    """Wrap a :class:`RenderResult` in a self-contained HTML page.

    The page lists the table of contents and playground links next to the
    rendered document and inlines the Pygments stylesheet, which makes it
    handy for eyeballing how a README will look.
    """

    def __init__(
        self,
        *,
        pygments_style: str = "monokai",
        templates_dir: Path | None = None,
    ) -> None:
        self.templates_dir = templates_dir or Path(__file__).parent / "templates"
        self.env = Environment(
            loader=FileSystemLoader(self.templates_dir),
            autoescape=select_autoescape(["html", "xml", "jinja"]),
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self.template = self.env.get_template("readme_preview.jinja")
        self.stylesheet = PygmentsHighlighter(pygments_style).stylesheet

    def render(self, result: RenderResult, *, title: str) -> str:
        """Return the preview page HTML for ``result``."""
        html = self.template.render(
            title=title,
            body=result.html,
            toc=result.toc,
            playground_links=result.playground_links,
            stylesheet=self.stylesheet,
            generated_at=dt.datetime.now(dt.UTC),
        )
        if not html.endswith("\n"):
            html += "\n"
        return html

    def write(self, result: RenderResult, output_path: Path, *, title: str) -> Path:
        """Render the preview and write it to ``output_path``."""
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(self.render(result, title=title), encoding="utf-8")
        return output_path


__all__ = ["PreviewPageBuilder"]
