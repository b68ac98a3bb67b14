"""Tests for playground link extraction."""

from __future__ import annotations

import typing as typ

import pytest

from pkgmark.models import PlaygroundProvider
from pkgmark.render.playground import extract_playground_links, provider_for_url

if typ.TYPE_CHECKING:
    from pkgmark.render import ReadmeRenderer


@pytest.mark.parametrize(
    ("url", "provider"),
    [
        ("https://stackblitz.com/edit/demo", PlaygroundProvider.STACKBLITZ),
        ("https://abc.stackblitz.com/", PlaygroundProvider.STACKBLITZ),
        ("https://codesandbox.io/s/demo", PlaygroundProvider.CODESANDBOX),
        ("https://githubbox.com/owner/repo", PlaygroundProvider.CODESANDBOX),
        ("https://codepen.io/user/pen/abc", PlaygroundProvider.CODEPEN),
        ("https://replit.com/@user/demo", PlaygroundProvider.REPLIT),
        ("https://gitpod.io/#https://github.com/o/r", PlaygroundProvider.GITPOD),
        ("https://github.com/owner/repo", None),
        ("/package/test-pkg", None),
    ],
)
def test_provider_for_url(url: str, provider: PlaygroundProvider | None) -> None:
    """Providers are recognized by registrable domain."""
    assert provider_for_url(url) is provider, f"unexpected provider for {url!r}"


def test_links_from_markdown_and_raw_html(renderer: ReadmeRenderer) -> None:
    """Links are collected whatever syntax produced them, in document order."""
    markdown = "\n\n".join(
        [
            "# My Package",
            '<a href="https://stackblitz.com/edit/my-demo">Open in StackBlitz</a>',
            "Some text with a [CodeSandbox link](https://codesandbox.io/s/example)",
            "[Repo](https://github.com/owner/repo)",
        ]
    )
    result = renderer.render(markdown, "test-pkg")

    summary = [(link.provider, link.label) for link in result.playground_links]
    assert summary == [
        (PlaygroundProvider.STACKBLITZ, "Open in StackBlitz"),
        (PlaygroundProvider.CODESANDBOX, "CodeSandbox link"),
    ], f"unexpected playground links {summary!r}"
    assert result.playground_links[0].provider_name == "StackBlitz"


def test_duplicate_urls_collapse(renderer: ReadmeRenderer) -> None:
    """The same playground URL is reported once."""
    markdown = (
        "[Demo](https://stackblitz.com/edit/demo)\n\n"
        "[Demo again](https://stackblitz.com/edit/demo)"
    )
    result = renderer.render(markdown, "test-pkg")

    assert len(result.playground_links) == 1, result.playground_links
    assert result.playground_links[0].label == "Demo"


def test_badge_image_alt_is_the_label(renderer: ReadmeRenderer) -> None:
    """A link wrapping only a badge image is labelled by the image's alt text."""
    markdown = (
        "[![Open in StackBlitz](https://developer.stackblitz.com/img/open.svg)]"
        "(https://stackblitz.com/edit/demo)"
    )
    result = renderer.render(markdown, "test-pkg")

    assert len(result.playground_links) == 1, result.playground_links
    link = result.playground_links[0]
    assert link.label == "Open in StackBlitz", f"unexpected label {link.label!r}"
    assert link.url == "https://stackblitz.com/edit/demo"


def test_empty_label_falls_back_to_provider_name() -> None:
    """Anchors without text or alt use the provider's display name."""
    links = extract_playground_links('<a href="https://replit.com/@u/demo"></a>')

    assert [link.label for link in links] == ["Replit"], links


def test_markdown_and_raw_anchor_to_same_url_collapse(renderer: ReadmeRenderer) -> None:
    """One entry per URL even across syntaxes; a badge's alt text labels it."""
    markdown = "\n\n".join(
        [
            '<p><a href="https://codesandbox.io/s/demo">'
            '<img src="https://codesandbox.io/static/img/play.svg" alt="Edit on CodeSandbox">'
            "</a></p>",
            "[sandbox](https://codesandbox.io/s/demo)",
        ]
    )
    result = renderer.render(markdown, "test-pkg")

    labels = [link.label for link in result.playground_links]
    assert labels == ["Edit on CodeSandbox"], f"unexpected links {labels!r}"
