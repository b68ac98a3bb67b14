"""Unit tests for the GitHub release client."""

from __future__ import annotations

import typing as typ

import pytest
import requests

from pkgmark.releases import GitHubReleaseClient, GitHubReleaseError, ReleaseInfo

if typ.TYPE_CHECKING:
    from pytest_mock import MockerFixture


def _response(
    mocker: MockerFixture, status: int = 200, payload: object = None, text: str = ""
) -> typ.Any:  # noqa: ANN401
    response = mocker.Mock()
    response.status_code = status
    response.json.return_value = payload
    response.text = text
    return response


def test_github_release_client_fetches_release_and_uses_token(
    mocker: MockerFixture,
) -> None:
    """The GitHub client should pass auth headers and parse release payloads."""
    session = mocker.Mock(spec=requests.Session)
    session.get.return_value = _response(
        mocker,
        payload={
            "id": 101,
            "tag_name": "v1.2.3",
            "name": "Release",
            "body": "## Fixes",
            "html_url": "https://example.invalid/releases/1",
            "published_at": "2025-11-01T00:00:00Z",
        },
    )

    client = GitHubReleaseClient(
        token="secret-token", api_base="https://example.invalid", session=session
    )
    release = client.fetch_latest("owner/repo")

    assert release is not None, "expected ReleaseInfo when GitHub returns 200"
    assert release.tag_name == "v1.2.3", (
        f"expected tag_name 'v1.2.3', got {release.tag_name!r}"
    )
    assert release.id == 101
    session.get.assert_called_once()
    called_url = session.get.call_args.args[0]
    assert called_url == "https://example.invalid/repos/owner/repo/releases/latest", (
        f"expected latest releases endpoint to be requested, got {called_url!r}"
    )
    headers = session.get.call_args.kwargs["headers"]
    assert headers["Authorization"] == "Bearer secret-token", (
        "expected Authorization header to include Bearer token"
    )


def test_github_release_client_returns_none_for_missing_release(
    mocker: MockerFixture,
) -> None:
    """GitHub returns HTTP 404 when no releases exist; treat that as None."""
    session = mocker.Mock(spec=requests.Session)
    session.get.return_value = _response(mocker, status=404)

    client = GitHubReleaseClient(session=session)
    assert client.fetch_latest("owner/missing") is None, (
        "expected None for repositories without releases (HTTP 404)"
    )


def test_fetch_releases_skips_drafts_and_incomplete_entries(
    mocker: MockerFixture,
) -> None:
    """Drafts and payloads without an id or tag are ignored."""
    session = mocker.Mock(spec=requests.Session)
    session.get.return_value = _response(
        mocker,
        payload=[
            {"id": 3, "tag_name": "v3.0.0", "body": "new"},
            {"id": 2, "tag_name": "v2.1.0", "draft": True},
            {"tag_name": "v2.0.0"},
            {"id": 1, "tag_name": "v1.0.0", "prerelease": True},
        ],
    )

    releases = GitHubReleaseClient(session=session).fetch_releases(
        "owner/repo", per_page=5
    )

    assert [release.tag_name for release in releases] == ["v3.0.0", "v1.0.0"]
    assert releases[1].prerelease is True
    assert session.get.call_args.args[0].endswith("/releases?per_page=5")


def test_fetch_releases_rejects_non_list_payload(mocker: MockerFixture) -> None:
    """A malformed listing is an error rather than an empty history."""
    session = mocker.Mock(spec=requests.Session)
    session.get.return_value = _response(mocker, payload={"message": "nope"})

    with pytest.raises(GitHubReleaseError, match="JSON list"):
        GitHubReleaseClient(session=session).fetch_releases("owner/repo")


def test_fetch_file_requests_raw_content(mocker: MockerFixture) -> None:
    """Files are fetched through the contents API with the raw media type."""
    session = mocker.Mock(spec=requests.Session)
    session.get.return_value = _response(mocker, text="# Changelog\n")

    text = GitHubReleaseClient(session=session).fetch_file(
        "owner/repo", "docs/CHANGELOG.md", ref="v1.0.0"
    )

    assert text == "# Changelog\n"
    url = session.get.call_args.args[0]
    assert url == (
        "https://api.github.com/repos/owner/repo/contents/docs/CHANGELOG.md?ref=v1.0.0"
    ), url
    assert session.get.call_args.kwargs["headers"]["Accept"] == (
        "application/vnd.github.raw"
    )


def test_server_errors_raise(mocker: MockerFixture) -> None:
    """Non-404 error statuses surface as GitHubReleaseError."""
    session = mocker.Mock(spec=requests.Session)
    session.get.return_value = _response(mocker, status=403, text="rate limited")

    with pytest.raises(GitHubReleaseError, match="status 403"):
        GitHubReleaseClient(session=session).fetch_latest("owner/repo")


def test_network_errors_raise(mocker: MockerFixture) -> None:
    """Transport failures surface as GitHubReleaseError."""
    session = mocker.Mock(spec=requests.Session)
    session.get.side_effect = requests.ConnectionError("offline")

    with pytest.raises(GitHubReleaseError, match="Failed to reach GitHub"):
        GitHubReleaseClient(session=session).fetch_latest("owner/repo")


def test_repository_must_be_owner_and_name() -> None:
    """Malformed repository strings are rejected before any request."""
    with pytest.raises(ValueError, match="owner/name"):
        GitHubReleaseClient(session=requests.Session()).fetch_latest("just-a-name")


def test_release_payload_requires_id_and_tag() -> None:
    """Incomplete payloads do not become releases."""
    assert ReleaseInfo.from_payload({"id": 1}) is None
    assert ReleaseInfo.from_payload({"tag_name": "v1"}) is None
    release = ReleaseInfo.from_payload({"id": 1, "tag_name": "v1", "name": 7})
    assert release is not None and release.name == "7"
