"""Tests for the markdown hooks: callouts, links, and code blocks."""

from __future__ import annotations

import threading
import typing as typ

import pytest
from bs4 import BeautifulSoup

from pkgmark._constants import SECRET_ENV_VAR
from pkgmark.models import RenderResult
from pkgmark.render import (
    HighlighterLoader,
    PygmentsHighlighter,
    ReadmeRenderer,
    engine,
)
from pkgmark.render.highlighter import render_code_block

if typ.TYPE_CHECKING:
    from pytest_mock import MockerFixture

    from pkgmark.config import RendererSettings


def _soup(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "html.parser")


@pytest.mark.parametrize(
    ("marker", "kind"),
    [
        ("[!NOTE]", "note"),
        ("[!tip]", "tip"),
        ("[!Important]", "important"),
        ("[!WARNING]", "warning"),
        ("[!CAUTION]", "caution"),
    ],
)
def test_callouts_are_tagged_and_marker_removed(
    renderer: ReadmeRenderer, marker: str, kind: str
) -> None:
    """GitHub alert blockquotes carry their kind and drop the marker text."""
    result = renderer.render(f"> {marker}\n> Useful information.", "test-pkg")
    quote = _soup(result.html).find("blockquote")

    assert quote is not None, f"expected a blockquote in {result.html!r}"
    assert quote["data-callout"] == kind, f"expected {kind!r}, got {quote.attrs!r}"
    assert marker not in result.html, "expected the marker to be removed"
    assert quote.get_text(strip=True) == "Useful information."


def test_plain_blockquote_is_untouched(renderer: ReadmeRenderer) -> None:
    """Ordinary quotes and unknown markers are not callouts."""
    result = renderer.render("> [!FOO] just a quote", "test-pkg")
    quote = _soup(result.html).find("blockquote")

    assert quote is not None
    assert not quote.has_attr("data-callout"), quote.attrs
    assert "[!FOO]" in result.html


def test_mailto_link_with_non_email_text_is_unwrapped(
    renderer: ReadmeRenderer,
) -> None:
    """``[Email me](mailto:...)`` renders as text so the address is not exposed."""
    result = renderer.render(
        "Write: [Email me](mailto:dev@example.com) or "
        "[dev@example.com](mailto:dev@example.com)",
        "test-pkg",
    )
    anchors = _soup(result.html).find_all("a")

    assert "Email me" in result.html, result.html
    assert len(anchors) == 1, f"expected only the email-text link, got {anchors!r}"
    assert anchors[0]["href"] == "mailto:dev@example.com"


def test_links_get_title_and_new_tab(renderer: ReadmeRenderer) -> None:
    """Content links open in a new tab and carry their text as title."""
    result = renderer.render("[Docs](https://docs.example.com/) and [Up](#top)", "t")
    external, internal = _soup(result.html).find_all("a")

    assert external["title"] == "Docs"
    assert external["target"] == "_blank"
    assert internal["title"] == "Up"
    assert not internal.has_attr("target"), internal.attrs


def test_fenced_code_is_highlighted_with_copy_button(renderer: ReadmeRenderer) -> None:
    """Fenced blocks are highlighted and wrapped with a copy button."""
    result = renderer.render("```python\nprint('hi')\n```", "test-pkg")
    soup = _soup(result.html)
    block = soup.find("div", class_="readme-code-block")

    assert block is not None, f"expected code block wrapper in {result.html!r}"
    assert block.find("button", class_="readme-copy-button") is not None
    highlighted = block.find("div", class_="codehilite")
    assert highlighted is not None, "expected Pygments output"
    assert highlighted["data-language"] == "python"
    assert "print" in highlighted.get_text()


def test_fence_info_string_uses_first_word(renderer: ReadmeRenderer) -> None:
    """``rust,no_run`` style info strings select the leading language."""
    result = renderer.render("~~~rust,no_run\nfn main() {}\n~~~", "test-pkg")
    highlighted = _soup(result.html).find("div", class_="codehilite")

    assert highlighted is not None
    assert highlighted["data-language"] == "rust", highlighted.attrs


def test_indented_code_block_is_wrapped(renderer: ReadmeRenderer) -> None:
    """Four-space indented code gets the same container as fenced code."""
    result = renderer.render("Example:\n\n    x = 1 < 2\n", "test-pkg")
    block = _soup(result.html).find("div", class_="readme-code-block")

    assert block is not None, f"expected wrapped indented code in {result.html!r}"
    assert "x = 1 < 2" in block.get_text(), block


def test_unknown_language_falls_back_to_text(renderer: ReadmeRenderer) -> None:
    """Unknown languages still render as highlighted plain text."""
    result = renderer.render("```nosuchlang\n<b>not html</b>\n```", "test-pkg")

    assert "<b>" not in result.html, "code content must stay escaped"
    assert "&lt;b&gt;not html&lt;/b&gt;" in result.html, result.html


def test_highlighter_failure_degrades_to_plain_code(
    settings: RendererSettings,
) -> None:
    """A broken highlighter yields escaped, unhighlighted code."""

    def broken() -> PygmentsHighlighter:
        msg = "highlighter unavailable"
        raise RuntimeError(msg)

    renderer = ReadmeRenderer(settings, highlighter_loader=HighlighterLoader(broken))
    result = renderer.render("```js\nif (a < b) {}\n```", "test-pkg")

    assert result.md_exists, "rendering must still succeed"
    code = _soup(result.html).find("code")
    assert code is not None and code["class"] == ["language-js"], result.html
    assert code.get_text() == "if (a < b) {}\n"


def test_render_code_block_without_loader() -> None:
    """No highlighter at all renders plain code."""
    html = render_code_block(None, "a & b", None)

    assert html.endswith("<pre><code>a &amp; b</code></pre></div>"), html


def test_highlighter_loader_initializes_once(mocker: MockerFixture) -> None:
    """Concurrent callers share a single highlighter instance."""
    factory = mocker.Mock(side_effect=lambda: PygmentsHighlighter())
    loader = HighlighterLoader(factory)
    results: list[object] = []

    threads = [
        threading.Thread(target=lambda: results.append(loader.get())) for _ in range(8)
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert factory.call_count == 1, f"factory called {factory.call_count} times"
    assert len({id(result) for result in results}) == 1, "expected one shared instance"


def test_highlighter_loader_retries_after_failure(mocker: MockerFixture) -> None:
    """A failed initialization is not cached."""
    highlighter = PygmentsHighlighter()
    factory = mocker.Mock(side_effect=[RuntimeError("boom"), highlighter])
    loader = HighlighterLoader(factory)

    with pytest.raises(RuntimeError, match="boom"):
        loader.get()
    assert loader.get() is highlighter, "expected the second attempt to succeed"


def test_empty_content_yields_empty_result(renderer: ReadmeRenderer) -> None:
    """Blank input produces the empty result without rendering."""
    for content in (None, "", "   \n\t"):
        result = renderer.render(content, "test-pkg")
        assert result.html == ""
        assert result.toc == []
        assert result.playground_links == []
        assert result.md_exists is False


def test_render_failure_is_logged_and_empty(
    renderer: ReadmeRenderer,
    mocker: MockerFixture,
    caplog: pytest.LogCaptureFixture,
) -> None:
    """Unexpected errors are logged and produce the empty result."""
    mocker.patch(
        "pkgmark.render.engine.ReadmeSanitizer.sanitize",
        side_effect=RuntimeError("parser exploded"),
    )

    with caplog.at_level("ERROR", logger="pkgmark.render.engine"):
        result = renderer.render("# Title", "test-pkg")

    assert result.md_exists is False
    assert "failed to render markdown" in caplog.text, caplog.text


def test_full_document_shape(renderer: ReadmeRenderer) -> None:
    """The result carries html, toc and playground links together."""
    result = renderer.render("# Title\n\nSome **bold** text.", "test-pkg")

    assert result.md_exists is True
    assert "<strong>bold</strong>" in result.html
    assert result.playground_links == []
    assert [entry.text for entry in result.toc] == ["Title"]


def test_fence_nested_in_list_stays_in_item(renderer: ReadmeRenderer) -> None:
    """An indented fence under a list item renders inside that item."""
    content = "- item\n\n  ```js\n  const a = 1;\n  ```\n\n- next"
    result = renderer.render(content, "test-pkg")
    soup = _soup(result.html)
    items = soup.find_all("li")

    assert len(items) == 2, result.html
    block = items[0].find("div", class_="readme-code-block")
    assert block is not None, f"expected the code inside the item in {result.html!r}"
    highlighted = block.find("div", class_="codehilite")
    assert highlighted is not None
    assert highlighted["data-language"] == "js", highlighted.attrs
    assert "const a = 1;" in highlighted.get_text()
    assert "readme-code-block" not in result.html.split("</ul>")[-1]


def test_top_level_fence_after_list_leaves_list(renderer: ReadmeRenderer) -> None:
    """A fence at column zero closes the preceding list."""
    result = renderer.render("- item\n\n```py\nx = 1\n```", "test-pkg")
    soup = _soup(result.html)
    item = soup.find("li")

    assert item is not None
    assert item.find("div", class_="readme-code-block") is None, result.html
    assert "readme-code-block" in result.html.split("</ul>")[-1]


def test_module_render_without_secret_is_logged_and_empty(
    monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
) -> None:
    """Missing settings make the default renderer return the empty result."""
    monkeypatch.delenv(SECRET_ENV_VAR, raising=False)
    engine.default_renderer.cache_clear()
    try:
        with caplog.at_level("ERROR", logger="pkgmark.render.engine"):
            result = engine.render("# Hi", "test-pkg")
    finally:
        engine.default_renderer.cache_clear()

    assert result == RenderResult.empty()
    assert "cannot render markdown" in caplog.text, caplog.text
