"""Locate and render a package's changelog or GitHub release notes.

A repository either publishes GitHub releases or keeps a changelog file.
:func:`detect_changelog` decides which, following a ``CHANGELOG.md`` link in
the latest release notes when present, and the ``render_*`` helpers run the
result through :class:`~pkgmark.render.engine.ReadmeRenderer`. Each release
is rendered with its release id as the id namespace so headings from
different releases never collide on one page.
"""

from __future__ import annotations

import dataclasses as dc
import enum
import logging
import re
import typing as typ

from pkgmark.models import RepositoryProvider

if typ.TYPE_CHECKING:
    from pkgmark.models import RenderResult, RepositoryInfo
    from pkgmark.releases import GitHubReleaseClient, ReleaseInfo
    from pkgmark.render.engine import ReadmeRenderer

logger = logging.getLogger(__name__)

_CHANGELOG_STEMS = ("changelog", "releases", "changes", "history", "news")
CHANGELOG_FILENAMES: tuple[str, ...] = tuple(
    name
    for stem in _CHANGELOG_STEMS
    for ext in (".md", "")
    for name in (f"{stem.upper()}{ext}", f"{stem}{ext}")
)
CHANGELOG_LINK = re.compile(
    r"\[[^\]]*?(?:changelog|releases|changes|history|news)\.md[^\]]*?\]\((?P<url>[^)]*)\)",
    re.IGNORECASE,
)
_BLOB_PREFIX = re.compile(r"^.*?/blob/[^/]+/", re.IGNORECASE)


class ChangelogKind(enum.Enum):
    """Where a repository keeps its change history."""

    RELEASES = "release"
    MARKDOWN = "md"


@dc.dataclass(frozen=True, slots=True)
class ChangelogSource:
    """Result of :func:`detect_changelog`.

    Attributes
    ----------
    kind : ChangelogKind
        Release notes or a markdown file.
    repo : str
        ``owner/name`` of the repository.
    link : str
        Page a visitor can open for the full history.
    path : str | None
        Repository path of the changelog file for markdown sources.
    """

    kind: ChangelogKind
    repo: str
    link: str
    path: str | None = None


@dc.dataclass(slots=True)
class RenderedRelease:
    """A release paired with its rendered notes."""

    release: ReleaseInfo
    result: RenderResult


def find_changelog_file(names: typ.Iterable[str]) -> str | None:
    """Return the preferred changelog file among ``names``.

    Examples
    --------
    >>> find_changelog_file(["README.md", "history.md", "CHANGELOG.md"])
    'CHANGELOG.md'
    >>> find_changelog_file(["README.md"]) is None
    True
    """
    available = set(names)
    return next((name for name in CHANGELOG_FILENAMES if name in available), None)


def changelog_link_from_release(markdown: str | None) -> str | None:
    """Return the changelog blob URL linked from release notes, if any."""
    if not markdown:
        return None
    match = CHANGELOG_LINK.search(markdown)
    if match is None:
        return None
    url = match.group("url").strip()
    return url if "/blob/" in url else None


def changelog_path_from_release(markdown: str | None) -> str | None:
    """Return the repository path of a changelog linked from release notes.

    Examples
    --------
    >>> notes = "See [CHANGELOG.md](https://github.com/o/r/blob/main/docs/CHANGELOG.md)"
    >>> changelog_path_from_release(notes)
    'docs/CHANGELOG.md'
    """
    link = changelog_link_from_release(markdown)
    if link is None:
        return None
    return _BLOB_PREFIX.sub("", link) or None


def detect_changelog(
    client: GitHubReleaseClient, repo_info: RepositoryInfo, *, ref: str = "HEAD"
) -> ChangelogSource | None:
    """Decide whether ``repo_info`` publishes releases or a changelog file.

    Only GitHub repositories are supported; other providers yield ``None``.
    Release notes that link to a changelog file redirect to that file.
    """
    if repo_info.provider is not RepositoryProvider.GITHUB:
        return None
    repo = f"{repo_info.owner}/{repo_info.repo}"

    latest = client.fetch_latest(repo)
    if latest is not None:
        link = changelog_link_from_release(latest.body)
        path = changelog_path_from_release(latest.body)
        if link and path:
            return ChangelogSource(ChangelogKind.MARKDOWN, repo, link, path)
        return ChangelogSource(
            ChangelogKind.RELEASES, repo, f"https://github.com/{repo}/releases"
        )

    for name in CHANGELOG_FILENAMES:
        if client.fetch_file(repo, name, ref) is not None:
            return ChangelogSource(
                ChangelogKind.MARKDOWN, repo, f"{repo_info.blob_base_url}/{name}", name
            )
    logger.info("no releases or changelog file found for %s", repo)
    return None


def render_releases(
    renderer: ReadmeRenderer,
    releases: typ.Iterable[ReleaseInfo],
    package_name: str,
    repo_info: RepositoryInfo | None = None,
) -> list[RenderedRelease]:
    """Render the notes of every release, namespacing ids by release id."""
    return [
        RenderedRelease(
            release=release,
            result=renderer.render(
                release.body, package_name, repo_info, release_id=release.id
            ),
        )
        for release in releases
    ]


def render_changelog(
    renderer: ReadmeRenderer,
    client: GitHubReleaseClient,
    source: ChangelogSource,
    package_name: str,
    repo_info: RepositoryInfo | None = None,
    *,
    ref: str = "HEAD",
) -> RenderResult:
    """Fetch and render the changelog file described by ``source``."""
    if source.kind is not ChangelogKind.MARKDOWN or source.path is None:
        msg = "render_changelog requires a markdown changelog source"
        raise ValueError(msg)
    content = client.fetch_file(source.repo, source.path, ref)
    return renderer.render(content, package_name, repo_info)


__all__ = [
    "CHANGELOG_FILENAMES",
    "ChangelogKind",
    "ChangelogSource",
    "RenderedRelease",
    "changelog_link_from_release",
    "changelog_path_from_release",
    "detect_changelog",
    "find_changelog_file",
    "render_changelog",
    "render_releases",
]
