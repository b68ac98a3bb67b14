"""Render untrusted package READMEs and changelogs into safe HTML.

This package exposes the rendering pipeline used for package pages together
with the CLI entry points used to render files locally and serve the image
proxy.

Exports
-------
- ``ReadmeRenderer``: Renderer bound to explicit settings.
- ``app``: Cyclopts application entry for subcommands.
- ``main``: Convenience function that invokes the Cyclopts app.

Examples
--------
>>> from pkgmark import ReadmeRenderer
>>> from pkgmark.config import RendererSettings
>>> ReadmeRenderer(RendererSettings(image_proxy_secret="s")).render("", "pkg").md_exists
False
"""

from __future__ import annotations

from .cli import app, main
from .models import RenderResult, RepositoryInfo, RepositoryProvider
from .render.engine import ReadmeRenderer

__all__ = [
    "ReadmeRenderer",
    "RenderResult",
    "RepositoryInfo",
    "RepositoryProvider",
    "app",
    "main",
]
