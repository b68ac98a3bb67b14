"""Render README and release-note markdown into safe HTML.

Example
-------
>>> from pkgmark.config import RendererSettings
>>> from pkgmark.render.engine import ReadmeRenderer
>>> renderer = ReadmeRenderer(RendererSettings(image_proxy_secret="s3cret"))
>>> result = renderer.render("# Title", "pkg")
>>> [entry.id for entry in result.toc]
['user-content-title']
"""

from __future__ import annotations

import functools
import logging
import typing as typ

from markdown import Markdown

from pkgmark.config import SettingsError, load_settings
from pkgmark.image_proxy.signer import ImageProxySigner
from pkgmark.models import RenderResult
from pkgmark.render.context import RenderContext, build_id_prefix
from pkgmark.render.highlighter import default_loader
from pkgmark.render.markdown_hooks import ReadmeExtension
from pkgmark.render.playground import extract_playground_links
from pkgmark.render.sanitizer import ReadmeSanitizer

if typ.TYPE_CHECKING:
    from pkgmark.config import RendererSettings
    from pkgmark.models import RepositoryInfo
    from pkgmark.render.highlighter import HighlighterLoader

logger = logging.getLogger(__name__)


class ReadmeRenderer:
    """Turn untrusted markdown into sanitized HTML plus document metadata.

    The renderer holds only immutable configuration; every call to
    :meth:`render` builds its own :class:`RenderContext` and Markdown
    instance, so one renderer can serve concurrent requests.

    Parameters
    ----------
    settings : RendererSettings
        Proxy secret, endpoints and heading base level.
    highlighter_loader : HighlighterLoader, optional
        Shared highlighter initialization. Defaults to the process-wide
        Pygments loader for ``settings.pygments_style``.
    """

    def __init__(
        self,
        settings: RendererSettings,
        *,
        highlighter_loader: HighlighterLoader | None = None,
    ) -> None:
        self.settings = settings
        self.signer = ImageProxySigner.from_settings(settings)
        self.highlighter_loader = highlighter_loader or default_loader(
            settings.pygments_style
        )

    def render(
        self,
        content: str | None,
        package_name: str,
        repo_info: RepositoryInfo | None = None,
        release_id: str | int | None = None,
    ) -> RenderResult:
        """Render ``content`` for ``package_name``.

        Parameters
        ----------
        content : str | None
            Markdown source. ``None`` or blank content yields
            :meth:`RenderResult.empty`.
        package_name : str
            Package the document belongs to; used for CDN fallbacks.
        repo_info : RepositoryInfo, optional
            Hosting context for relative links and images.
        release_id : str | int, optional
            Release identifier appended to the id prefix so several rendered
            releases can share one page.

        Returns
        -------
        RenderResult
            Sanitized HTML, TOC, and playground links. Unexpected failures are
            logged and produce the empty result.
        """
        if content is None or not content.strip():
            return RenderResult.empty()
        try:
            return self._render(content, package_name, repo_info, release_id)
        except Exception:
            logger.exception("failed to render markdown for package %s", package_name)
            return RenderResult.empty()

    def _render(
        self,
        content: str,
        package_name: str,
        repo_info: RepositoryInfo | None,
        release_id: str | int | None,
    ) -> RenderResult:
        context = RenderContext(
            build_id_prefix(release_id), self.settings.heading_base_level
        )
        md = Markdown(
            extensions=[
                ReadmeExtension(context, self.highlighter_loader),
                "tables",
                "sane_lists",
            ]
        )
        rendered = md.convert(content)
        sanitizer = ReadmeSanitizer(
            context,
            package_name=package_name,
            signer=self.signer,
            repo_info=repo_info,
            cdn_base=self.settings.cdn_base,
        )
        html = sanitizer.sanitize(rendered)
        # Headings removed by sanitizing take no entry; order follows the output.
        records = {entry.id: entry for entry in context.toc}
        return RenderResult(
            html=html,
            toc=[records[key] for key in sanitizer.heading_ids if key in records],
            playground_links=extract_playground_links(html),
            md_exists=True,
        )


@functools.cache
def default_renderer() -> ReadmeRenderer:
    """Return a renderer configured from the environment."""
    return ReadmeRenderer(load_settings())


def render(
    content: str | None,
    package_name: str,
    repo_info: RepositoryInfo | None = None,
    release_id: str | int | None = None,
) -> RenderResult:
    """Render with :func:`default_renderer`; see :meth:`ReadmeRenderer.render`.

    Missing or invalid settings are logged and yield the empty result.
    """
    if content is None or not content.strip():
        return RenderResult.empty()
    try:
        renderer = default_renderer()
    except SettingsError:
        logger.exception("cannot render markdown for package %s", package_name)
        return RenderResult.empty()
    return renderer.render(content, package_name, repo_info, release_id)


__all__ = ["ReadmeRenderer", "default_renderer", "render"]
