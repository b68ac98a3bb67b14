"""Cyclopts CLI entrypoint for rendering READMEs and serving the image proxy.

The ``pkgmark`` console script renders a local markdown file (or GitHub
release notes) through the same pipeline the site uses, signs image URLs for
debugging, and runs the image proxy route on a local WSGI server.

Examples
--------
Render a README to JSON on stdout:

>>> from pkgmark.cli import app
>>> app(["render", "README.md", "--package", "left-pad"])  # doctest: +SKIP

Write an HTML preview page:

>>> app(
...     ["render", "README.md", "--package", "left-pad", "--format", "preview",
...      "--output", "dist/readme.html"]
... )  # doctest: +SKIP
"""

from __future__ import annotations

import logging
import os
import sys
import typing as typ
from pathlib import Path
from wsgiref.simple_server import make_server

import msgspec.json
from cyclopts import App, Parameter

from .changelog import (
    ChangelogKind,
    detect_changelog,
    render_changelog,
    render_releases,
)
from .config import load_settings
from .image_proxy import ImageProxy, ImageProxySigner, make_wsgi_app
from .models import RepositoryInfo, RepositoryProvider
from .preview import PreviewPageBuilder
from .releases import GitHubReleaseClient
from .render.engine import ReadmeRenderer

if typ.TYPE_CHECKING:
    from .config import RendererSettings
    from .models import RenderResult

OutputFormat = typ.Literal["json", "html", "preview"]

app = App(name="pkgmark", help="Render untrusted package READMEs into safe HTML.")

logger = logging.getLogger(__name__)


def _format_path(path: Path) -> str:
    """Return a cwd-relative path when possible, otherwise the absolute path."""
    if path.is_absolute():
        try:
            return str(path.relative_to(Path.cwd()))
        except ValueError:  # pragma: no cover - fallback for different roots
            return str(path)
    return str(path)


def _settings(config: Path | None) -> RendererSettings:
    return load_settings(config)


def _repo_info(
    provider: RepositoryProvider | None,
    owner: str | None,
    repo: str | None,
    *,
    ref: str,
    directory: str | None,
) -> RepositoryInfo | None:
    if provider is None and owner is None and repo is None:
        return None
    if not owner or not repo:
        msg = "--owner and --repo are both required when describing a repository."
        raise ValueError(msg)
    return RepositoryInfo.for_provider(
        provider or RepositoryProvider.GITHUB,
        owner,
        repo,
        ref=ref,
        directory=directory,
    )


def _emit(text: str, output: Path | None) -> None:
    if output is None:
        sys.stdout.write(text)
        if not text.endswith("\n"):
            sys.stdout.write("\n")
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(text, encoding="utf-8")
    print(f"wrote {_format_path(output)}")


def _encode(payload: object) -> str:
    return msgspec.json.format(msgspec.json.encode(payload), indent=2).decode("utf-8")


def _format_result(
    result: RenderResult, output_format: OutputFormat, *, title: str, style: str
) -> str:
    match output_format:
        case "json":
            return _encode(result)
        case "html":
            return result.html
        case "preview":
            return PreviewPageBuilder(pygments_style=style).render(result, title=title)


@app.command(help="Render a markdown file into sanitized HTML.")
def render(
    source: typ.Annotated[Path, Parameter(help="Markdown file to render")],
    *,
    package: typ.Annotated[str, Parameter(help="Package name")],
    provider: typ.Annotated[
        RepositoryProvider | None, Parameter(help="Repository hosting provider")
    ] = None,
    owner: typ.Annotated[str | None, Parameter(help="Repository owner")] = None,
    repo: typ.Annotated[str | None, Parameter(help="Repository name")] = None,
    ref: typ.Annotated[str, Parameter(help="Branch, tag or commit")] = "HEAD",
    directory: typ.Annotated[
        str | None, Parameter(help="Package directory inside a monorepo")
    ] = None,
    release_id: typ.Annotated[
        str | None, Parameter(help="Release id used to namespace heading ids")
    ] = None,
    output_format: typ.Annotated[
        OutputFormat, Parameter(name="--format", help="Output format")
    ] = "json",
    output: typ.Annotated[
        Path | None, Parameter(help="Write to this file instead of stdout")
    ] = None,
    config: typ.Annotated[
        Path | None, Parameter(help="Path to renderer config", env_var="PKGMARK_CONFIG")
    ] = None,
) -> None:
    """Render ``source`` and print or write the result.

    Parameters
    ----------
    source : Path
        Markdown file to render.
    package : str
        Package name used for CDN fallbacks.
    provider, owner, repo, ref, directory : optional
        Hosting context for relative links. Omit all of them to render
        without repository information.
    release_id : str, optional
        Release identifier appended to the heading id prefix.
    output_format : {"json", "html", "preview"}
        ``json`` prints the full result, ``html`` only the document,
        ``preview`` a standalone page.
    output : Path, optional
        Destination file; stdout when omitted.
    config : Path, optional
        YAML configuration file.
    """
    settings = _settings(config)
    renderer = ReadmeRenderer(settings)
    repo_info = _repo_info(provider, owner, repo, ref=ref, directory=directory)
    content = source.read_text(encoding="utf-8")
    result = renderer.render(content, package, repo_info, release_id)
    _emit(
        _format_result(
            result, output_format, title=package, style=settings.pygments_style
        ),
        output,
    )


@app.command(help="Render the GitHub changelog or release notes of a repository.")
def changelog(
    repository: typ.Annotated[str, Parameter(help="Repository as owner/name")],
    *,
    package: typ.Annotated[str, Parameter(help="Package name")],
    ref: typ.Annotated[str, Parameter(help="Branch, tag or commit")] = "HEAD",
    directory: typ.Annotated[
        str | None, Parameter(help="Package directory inside a monorepo")
    ] = None,
    github_token: typ.Annotated[
        str | None,
        Parameter(
            help="Optional GitHub token (falls back to GITHUB_TOKEN)",
            env_var="PKGMARK_GITHUB_TOKEN",
        ),
    ] = None,
    output: typ.Annotated[
        Path | None, Parameter(help="Write JSON to this file instead of stdout")
    ] = None,
    config: typ.Annotated[
        Path | None, Parameter(help="Path to renderer config", env_var="PKGMARK_CONFIG")
    ] = None,
) -> None:
    """Detect and render the change history of ``repository`` as JSON."""
    owner, _, name = repository.strip().partition("/")
    repo_info = RepositoryInfo.for_provider(
        RepositoryProvider.GITHUB, owner, name, ref=ref, directory=directory
    )
    token = github_token or os.getenv("GITHUB_TOKEN") or os.getenv("GH_TOKEN")
    client = GitHubReleaseClient(token=token)
    renderer = ReadmeRenderer(_settings(config))

    source = detect_changelog(client, repo_info, ref=ref)
    if source is None:
        print(f"{repository}: no releases or changelog found")
        return

    payload: dict[str, typ.Any] = {"source": source}
    if source.kind is ChangelogKind.RELEASES:
        releases = client.fetch_releases(source.repo)
        payload["releases"] = render_releases(renderer, releases, package, repo_info)
    else:
        payload["changelog"] = render_changelog(
            renderer, client, source, package, repo_info, ref=ref
        )
    _emit(_encode(payload), output)


@app.command(help="Print the proxied form of an image URL.")
def sign(
    url: typ.Annotated[str, Parameter(help="Absolute image URL")],
    *,
    config: typ.Annotated[
        Path | None, Parameter(help="Path to renderer config", env_var="PKGMARK_CONFIG")
    ] = None,
) -> None:
    """Print the signed proxy URL for ``url`` (or ``url`` itself if trusted)."""
    signer = ImageProxySigner.from_settings(_settings(config))
    print(signer.proxy_url(url))


@app.command(help="Serve the image proxy route on a local WSGI server.")
def proxy(
    *,
    host: typ.Annotated[str, Parameter(help="Interface to bind")] = "127.0.0.1",
    port: typ.Annotated[int, Parameter(help="Port to listen on")] = 8787,
    config: typ.Annotated[
        Path | None, Parameter(help="Path to renderer config", env_var="PKGMARK_CONFIG")
    ] = None,
) -> None:
    """Run :class:`~pkgmark.image_proxy.ImageProxy` until interrupted."""
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    signer = ImageProxySigner.from_settings(_settings(config))
    wsgi_app = make_wsgi_app(ImageProxy(signer))
    with make_server(host, port, wsgi_app) as server:  # pragma: no cover - blocking
        logger.info("image proxy listening on http://%s:%d", host, port)
        server.serve_forever()


def main() -> None:
    """Invoke the Cyclopts application behind the ``pkgmark`` console command.

    Examples
    --------
    >>> main()  # doctest: +SKIP
    """
    app()


if __name__ == "__main__":  # pragma: no cover - manual invocation helper
    main()
