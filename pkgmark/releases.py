r"""Fetch GitHub releases and repository files for changelog rendering.

This module wraps the parts of the GitHub REST API needed to show release
notes next to a package README: listing releases, fetching the latest one,
and downloading a raw file such as ``CHANGELOG.md``. Payloads are normalised
into :class:`ReleaseInfo` dataclasses.

Example
-------
>>> from pkgmark.releases import GitHubReleaseClient
>>> client = GitHubReleaseClient(token="ghp_example", timeout=5)  # doctest: +SKIP
>>> releases = client.fetch_releases("psf/requests")  # doctest: +SKIP
>>> releases[0].tag_name  # doctest: +SKIP
'v2.32.3'
"""

from __future__ import annotations

import dataclasses as dc
import json
import logging
import typing as typ
from http import HTTPStatus
from urllib.parse import quote

import requests

from pkgmark._http import build_retry_session

DEFAULT_API_BASE = "https://api.github.com"
_ACCEPT_JSON = "application/vnd.github+json"
_ACCEPT_RAW = "application/vnd.github.raw"
_USER_AGENT = "pkgmark/0.1"

logger = logging.getLogger(__name__)


class GitHubReleaseError(RuntimeError):
    """Raised when the GitHub API returns an unexpected error response."""


@dc.dataclass(slots=True)
class ReleaseInfo:
    """Metadata captured from a GitHub release object.

    Attributes
    ----------
    id : int
        Numeric release id; used to namespace rendered heading ids.
    tag_name : str
        Git tag associated with the release.
    name : str | None
        Human-friendly release title if provided.
    body : str | None
        Markdown release notes.
    html_url : str | None
        URL to the release page.
    published_at : str | None
        ISO8601 timestamp indicating when the release was published.
    prerelease : bool
        Whether GitHub flags the release as a pre-release.
    draft : bool
        Whether the release is an unpublished draft.
    """

    id: int
    tag_name: str
    name: str | None = None
    body: str | None = None
    html_url: str | None = None
    published_at: str | None = None
    prerelease: bool = False
    draft: bool = False

    @classmethod
    def from_payload(cls, payload: typ.Mapping[str, typ.Any]) -> ReleaseInfo | None:
        """Build a release from a GitHub JSON object, or ``None`` if incomplete."""
        tag_name = _coerce_str(payload.get("tag_name"))
        release_id = payload.get("id")
        if not tag_name or not isinstance(release_id, int):
            return None
        return cls(
            id=release_id,
            tag_name=tag_name,
            name=_coerce_str(payload.get("name")),
            body=_coerce_str(payload.get("body")),
            html_url=_coerce_str(payload.get("html_url")),
            published_at=_coerce_str(payload.get("published_at")),
            prerelease=bool(payload.get("prerelease")),
            draft=bool(payload.get("draft")),
        )


class GitHubReleaseClient:
    """Thin wrapper around GitHub release and contents endpoints.

    The client centralises authentication, timeouts, retries and error
    handling. It is safe to reuse across threads when the provided session is.
    """

    default_api_base = DEFAULT_API_BASE

    def __init__(
        self,
        *,
        token: str | None = None,
        api_base: str = DEFAULT_API_BASE,
        session: requests.Session | None = None,
        timeout: float = 10.0,
    ) -> None:
        """Initialise the client with optional authentication and transport.

        Parameters
        ----------
        token : str | None, optional
            Personal access token; enables higher rate limits when provided.
        api_base : str, optional
            Base URL for the GitHub API; override for GitHub Enterprise.
        session : requests.Session, optional
            Preconfigured session. Defaults to a session retrying 5xx
            responses.
        timeout : float, optional
            Per-request timeout in seconds. Defaults to ``10.0``.
        """
        self._api_base = api_base.rstrip("/") or DEFAULT_API_BASE
        self._session = session or build_retry_session()
        self.timeout = timeout
        self._headers = {"Accept": _ACCEPT_JSON, "User-Agent": _USER_AGENT}
        if token:
            self._headers["Authorization"] = f"Bearer {token}"

    def fetch_latest(self, repo: str) -> ReleaseInfo | None:
        """Return the latest non-draft release for ``owner/repo``.

        Returns ``None`` when the repository has no releases (GitHub answers
        HTTP 404 in that case).
        """
        normalized = _normalize_repo(repo)
        response = self._get(f"/repos/{normalized}/releases/latest", normalized)
        if response is None:
            return None
        payload = _decode_json(response, normalized)
        if not isinstance(payload, dict):
            return None
        return ReleaseInfo.from_payload(payload)

    def fetch_releases(self, repo: str, *, per_page: int = 30) -> list[ReleaseInfo]:
        """Return published releases for ``owner/repo``, newest first."""
        normalized = _normalize_repo(repo)
        response = self._get(
            f"/repos/{normalized}/releases?per_page={per_page}", normalized
        )
        if response is None:
            return []
        payload = _decode_json(response, normalized)
        if not isinstance(payload, list):
            msg = f"GitHub releases for '{normalized}' were not a JSON list"
            raise GitHubReleaseError(msg)
        releases = [ReleaseInfo.from_payload(item) for item in payload]
        return [release for release in releases if release and not release.draft]

    def fetch_file(self, repo: str, path: str, ref: str = "HEAD") -> str | None:
        """Return the text of ``path`` at ``ref``, or ``None`` if it is missing."""
        normalized = _normalize_repo(repo)
        encoded = quote(path.strip("/"))
        response = self._get(
            f"/repos/{normalized}/contents/{encoded}?ref={quote(ref)}",
            normalized,
            accept=_ACCEPT_RAW,
        )
        return None if response is None else response.text

    def _get(
        self, endpoint: str, repo: str, *, accept: str | None = None
    ) -> requests.Response | None:
        headers = dict(self._headers)
        if accept:
            headers["Accept"] = accept
        url = f"{self._api_base}{endpoint}"
        try:
            response = self._session.get(url, headers=headers, timeout=self.timeout)
        except requests.RequestException as exc:
            msg = f"Failed to reach GitHub for '{repo}': {exc}"
            raise GitHubReleaseError(msg) from exc

        if response.status_code == HTTPStatus.NOT_FOUND:
            logger.debug("GitHub returned 404 for %s", url)
            return None
        if response.status_code >= HTTPStatus.BAD_REQUEST:
            snippet = response.text[:200]
            msg = (
                f"GitHub lookup for '{repo}' failed with "
                f"status {response.status_code}: {snippet}"
            )
            raise GitHubReleaseError(msg)
        return response


def _normalize_repo(repo: str) -> str:
    normalized = repo.strip().strip("/")
    if normalized.count("/") != 1:
        msg = f"Repository must be in 'owner/name' form, got {repo!r}"
        raise ValueError(msg)
    return normalized


def _decode_json(response: requests.Response, repo: str) -> typ.Any:  # noqa: ANN401
    try:
        return response.json()
    except json.JSONDecodeError as exc:
        msg = f"GitHub response for '{repo}' was not valid JSON"
        raise GitHubReleaseError(msg) from exc


def _coerce_str(value: object) -> str | None:
    """Return the string representation of ``value`` or None."""
    if value is None:
        return None
    if isinstance(value, str):
        return value
    return str(value)


__all__ = ["GitHubReleaseClient", "GitHubReleaseError", "ReleaseInfo"]
