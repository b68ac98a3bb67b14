"""Shared dataclasses and enums used by the README rendering pipeline."""

from __future__ import annotations

import dataclasses as dc
import enum


class RepositoryProvider(enum.Enum):
    """Source hosting providers that can serve raw and rendered files."""

    GITHUB = "github"
    GITLAB = "gitlab"
    BITBUCKET = "bitbucket"
    CODEBERG = "codeberg"
    GITEE = "gitee"
    SOURCEHUT = "sourcehut"


@dc.dataclass(frozen=True, slots=True)
class RepositoryInfo:
    """Hosting context used to resolve relative links and images.

    Attributes
    ----------
    provider : RepositoryProvider
        Hosting provider serving the repository.
    owner : str
        Repository owner or namespace.
    repo : str
        Repository name.
    raw_base_url : str
        Base URL serving raw file bytes (images, JSON, ...), without a
        trailing slash.
    blob_base_url : str
        Base URL serving rendered files (markdown documents), without a
        trailing slash.
    directory : str | None
        Package directory inside a monorepo, relative to the repository root.
    """

    provider: RepositoryProvider
    owner: str
    repo: str
    raw_base_url: str
    blob_base_url: str
    directory: str | None = None

    @classmethod
    def for_provider(
        cls,
        provider: RepositoryProvider,
        owner: str,
        repo: str,
        *,
        ref: str = "HEAD",
        host: str | None = None,
        directory: str | None = None,
    ) -> RepositoryInfo:
        """Build repository info with the provider's raw and blob URL layout.

        Parameters
        ----------
        provider : RepositoryProvider
            Hosting provider.
        owner : str
            Repository owner or namespace.
        repo : str
            Repository name.
        ref : str, optional
            Branch, tag, or commit to link against. Defaults to ``"HEAD"``.
        host : str, optional
            Override for self-hosted instances (GitLab, Codeberg-compatible
            Forgejo/Gitea installs).
        directory : str, optional
            Monorepo package directory.

        Returns
        -------
        RepositoryInfo
            Fully populated hosting context.
        """
        match provider:
            case RepositoryProvider.GITHUB:
                raw = f"https://raw.githubusercontent.com/{owner}/{repo}/{ref}"
                blob = f"https://{host or 'github.com'}/{owner}/{repo}/blob/{ref}"
            case RepositoryProvider.GITLAB:
                base = f"https://{host or 'gitlab.com'}/{owner}/{repo}/-"
                raw = f"{base}/raw/{ref}"
                blob = f"{base}/blob/{ref}"
            case RepositoryProvider.BITBUCKET:
                base = f"https://{host or 'bitbucket.org'}/{owner}/{repo}"
                raw = f"{base}/raw/{ref}"
                blob = f"{base}/src/{ref}"
            case RepositoryProvider.CODEBERG:
                base = f"https://{host or 'codeberg.org'}/{owner}/{repo}"
                raw = f"{base}/raw/branch/{ref}"
                blob = f"{base}/src/branch/{ref}"
            case RepositoryProvider.GITEE:
                base = f"https://{host or 'gitee.com'}/{owner}/{repo}"
                raw = f"{base}/raw/{ref}"
                blob = f"{base}/blob/{ref}"
            case RepositoryProvider.SOURCEHUT:
                base = f"https://{host or 'git.sr.ht'}/~{owner.lstrip('~')}/{repo}"
                raw = f"{base}/blob/{ref}"
                blob = f"{base}/tree/{ref}/item"
        normalized_dir = directory.strip("/") if directory else None
        return cls(
            provider=provider,
            owner=owner,
            repo=repo,
            raw_base_url=raw,
            blob_base_url=blob,
            directory=normalized_dir or None,
        )


@dc.dataclass(slots=True)
class HeadingRecord:
    """One table-of-contents entry.

    Attributes
    ----------
    text : str
        Plain heading text with HTML stripped and emoji shortcodes expanded.
    id : str
        Namespaced, unique element id of the heading.
    depth : int
        Heading depth as written in the source (1-6).
    """

    text: str
    id: str
    depth: int


class PlaygroundProvider(enum.Enum):
    """Interactive demo sites detected in rendered links."""

    STACKBLITZ = "stackblitz"
    CODESANDBOX = "codesandbox"
    CODEPEN = "codepen"
    REPLIT = "replit"
    GITPOD = "gitpod"

    @property
    def display_name(self) -> str:
        """Return the human-readable provider name."""
        match self:
            case PlaygroundProvider.STACKBLITZ:
                return "StackBlitz"
            case PlaygroundProvider.CODESANDBOX:
                return "CodeSandbox"
            case PlaygroundProvider.CODEPEN:
                return "CodePen"
            case PlaygroundProvider.REPLIT:
                return "Replit"
            case PlaygroundProvider.GITPOD:
                return "Gitpod"


@dc.dataclass(slots=True)
class PlaygroundLink:
    """An "open in playground" link found in the rendered document."""

    provider: PlaygroundProvider
    provider_name: str
    label: str
    url: str


@dc.dataclass(slots=True)
class RenderResult:
    """Final output of a render call.

    Attributes
    ----------
    html : str
        Sanitized HTML.
    toc : list[HeadingRecord]
        Headings in document order.
    playground_links : list[PlaygroundLink]
        Unique playground links in first-occurrence order.
    md_exists : bool
        ``True`` when there was markdown to render.
    """

    html: str
    toc: list[HeadingRecord] = dc.field(default_factory=list)
    playground_links: list[PlaygroundLink] = dc.field(default_factory=list)
    md_exists: bool = True

    @classmethod
    def empty(cls) -> RenderResult:
        """Return the result used for empty or unrenderable content."""
        return cls(html="", toc=[], playground_links=[], md_exists=False)


__all__ = [
    "HeadingRecord",
    "PlaygroundLink",
    "PlaygroundProvider",
    "RenderResult",
    "RepositoryInfo",
    "RepositoryProvider",
]
