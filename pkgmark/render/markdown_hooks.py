"""Python-Markdown extension implementing the README rendering hooks.

:class:`ReadmeExtension` wires four processors into a ``markdown.Markdown``
instance:

* :class:`~pkgmark.render.lazy_headings.LazyHeadingPreprocessor` fixes
  ``#Heading`` lines;
* :class:`FencedCodePreprocessor` highlights fenced code and stashes the
  result;
* :class:`~pkgmark.render.raw_html.HtmlBlockPreprocessor` stashes raw HTML
  blocks, leaving markdown between them to the parser;
* :class:`ReadmeTreeprocessor` walks the parsed tree once, in document order,
  applying the heading, link, blockquote and code hooks. Raw HTML that
  Python-Markdown stashed is adapted when the walk reaches its placeholder, so
  headings written as ``<h2>`` are numbered by the same
  :class:`~pkgmark.render.context.RenderContext` as ``##`` headings.
"""

from __future__ import annotations

import enum
import html
import re
import typing as typ
import xml.etree.ElementTree as ET

from markdown import util
from markdown.extensions import Extension
from markdown.preprocessors import Preprocessor
from markdown.treeprocessors import Treeprocessor

from pkgmark.render.context import strip_html
from pkgmark.render.highlighter import render_code_block
from pkgmark.render.lazy_headings import LazyHeadingPreprocessor
from pkgmark.render.raw_html import (
    HEADING_ANCHOR_CLASS,
    HEADING_TAGS,
    HtmlBlockPreprocessor,
    RawHtmlAdapter,
)

if typ.TYPE_CHECKING:
    from markdown import Markdown

    from pkgmark.render.context import HeadingClaim, RenderContext
    from pkgmark.render.highlighter import HighlighterLoader
else:  # pragma: no cover - type-checking fallback
    Markdown = typ.Any

EMAIL_PATTERN = re.compile(r"^[\w+\-.]+@[\w\-.]+\.[a-z]+$", re.IGNORECASE)
CALLOUT_PATTERN = re.compile(
    r"^\[!(NOTE|TIP|IMPORTANT|WARNING|CAUTION)\][ \t]*\n?", re.IGNORECASE
)
FENCE_OPEN = re.compile(r"^(?P<indent> *)(?P<fence>`{3,}|~{3,})(?P<info>.*)$")
FENCE_LANGUAGE = re.compile(r"^([A-Za-z0-9_+#.-]+)")
LIST_ITEM = re.compile(r"^ {0,3}(?:[-*+]|\d{1,9}[.)])(?:[ \t]|$)")
ESCAPED_CHAR = re.compile(util.STX + r"([0-9]+)" + util.ETX)
MAX_FENCE_INDENT = 3
LIST_CONTENT_INDENT = 4


class CalloutKind(enum.Enum):
    """GitHub-style blockquote callouts (``> [!NOTE]``)."""

    NOTE = "note"
    TIP = "tip"
    IMPORTANT = "important"
    WARNING = "warning"
    CAUTION = "caution"

    @classmethod
    def from_marker(cls, keyword: str) -> CalloutKind:
        """Return the kind for a ``[!KEYWORD]`` marker, ignoring case."""
        return cls(keyword.lower())


def _stash(md: Markdown, fragment: str, trusted: set[int]) -> str:
    """Store trusted HTML and return its placeholder."""
    placeholder = md.htmlStash.store(fragment)
    match = util.HTML_PLACEHOLDER_RE.fullmatch(placeholder)
    if match is not None:
        trusted.add(int(match.group(1)))
    return placeholder


def _fence_language(info: str) -> str | None:
    match = FENCE_LANGUAGE.match(info.strip())
    return match.group(1) if match else None


class FencedCodePreprocessor(Preprocessor):
    """Replace fenced code blocks with highlighted, stashed HTML.

    A fence closes on a line holding the same fence character repeated at
    least as many times; an unclosed fence runs to the end of the document.
    The first word of the info string selects the language, so
    ```` ```rust,no_run ```` highlights as ``rust``. An indented fence that
    follows a list item keeps its placeholder inside that item.
    """

    def __init__(
        self, md: Markdown, loader: HighlighterLoader | None, trusted: set[int]
    ) -> None:
        super().__init__(md)
        self.loader = loader
        self.trusted = trusted

    def run(self, lines: list[str]) -> list[str]:
        """Return ``lines`` with every fenced block swapped for a placeholder."""
        output: list[str] = []
        in_list = False
        previous_blank = True
        index = 0
        while index < len(lines):
            line = lines[index]
            opening = FENCE_OPEN.match(line)
            indent = len(opening.group("indent")) if opening else 0
            max_indent = MAX_FENCE_INDENT + (LIST_CONTENT_INDENT if in_list else 0)
            if (
                opening is None
                or indent > max_indent
                or (opening.group("fence")[0] == "`" and "`" in opening.group("info"))
            ):
                if LIST_ITEM.match(line):
                    in_list = True
                elif line.strip() and previous_blank and not line.startswith(" "):
                    in_list = False
                previous_blank = not line.strip()
                output.append(line)
                index += 1
                continue

            fence = opening.group("fence")
            body: list[str] = []
            index += 1
            while index < len(lines):
                line = lines[index]
                stripped = line.strip()
                if (
                    stripped.startswith(fence)
                    and not stripped.strip(fence[0])
                    and len(line) - len(line.lstrip(" ")) <= indent + MAX_FENCE_INDENT
                ):
                    index += 1
                    break
                body.append(_dedent(line, indent))
                index += 1

            code = "\n".join(body)
            if body:
                code += "\n"
            rendered = render_code_block(
                self.loader, code, _fence_language(opening.group("info"))
            )
            placeholder = _stash(self.md, rendered, self.trusted)
            if in_list and indent:
                placeholder = " " * LIST_CONTENT_INDENT + placeholder
            output.extend(["", placeholder, ""])
            previous_blank = True
            if not indent:
                in_list = False
        return output


def _dedent(line: str, width: int) -> str:
    removable = len(line) - len(line.lstrip(" "))
    return line[min(removable, width) :]


class ReadmeTreeprocessor(Treeprocessor):
    """Apply the README hooks in a single document-order walk.

    Parameters
    ----------
    md : Markdown
        Owning Markdown instance.
    context : RenderContext
        Per-render state shared with the sanitizer.
    loader : HighlighterLoader, optional
        Highlighter used for indented code blocks.
    trusted : set[int]
        Stash indexes holding HTML this extension generated itself.
    """

    def __init__(
        self,
        md: Markdown,
        context: RenderContext,
        loader: HighlighterLoader | None,
        trusted: set[int],
    ) -> None:
        super().__init__(md)
        self.context = context
        self.loader = loader
        self.trusted = trusted
        self._adapted: set[int] = set()
        self.raw_html = RawHtmlAdapter(context, [])

    def run(self, root: ET.Element) -> None:
        """Walk ``root`` and every stashed raw HTML block in document order."""
        self._adapted = set()
        self.raw_html = RawHtmlAdapter(self.context, self.md.htmlStash.rawHtmlBlocks)
        self._visit(root)
        self.raw_html.flush()

    def _visit(self, element: ET.Element, depth: int = 0) -> None:
        tag = element.tag if isinstance(element.tag, str) else ""
        claim: HeadingClaim | None = None
        if tag in HEADING_TAGS:
            claim = self._heading(element)
        elif tag == "a":
            self._link(element)
        elif tag == "blockquote":
            self._blockquote(element)

        self.raw_html.depth = depth
        self._feed(element.text)
        index = 0
        while index < len(element):
            child = element[index]
            self._visit(child, depth + 1)
            self.raw_html.depth = depth
            self._feed(child.tail)
            if child.tag == "a" and child.get("data-unwrap") is not None:
                index += _unwrap(element, index)
            elif child.tag == "pre" and len(child) and child[0].tag == "code":
                element[index] = self._code_block(child)
                index += 1
            else:
                index += 1

        self.raw_html.leave(depth)
        if claim is not None:
            _append_anchor(element, claim.id)

    # Hooks -------------------------------------------------------------

    def _heading(self, element: ET.Element) -> HeadingClaim | None:
        raw_depth = int(element.tag[1])
        text = self._plain_text(element)
        claim = self.raw_html.claim(raw_depth, html.escape(text))
        if claim is None:
            return None
        element.tag = f"h{claim.level}"
        element.set("id", claim.id)
        element.set("data-level", str(raw_depth))
        return claim

    def _link(self, element: ET.Element) -> None:
        if HEADING_ANCHOR_CLASS in (element.get("class") or "").split():
            return
        href = self._decode(element.get("href") or "").strip()
        text = self._plain_text(element).strip()
        if href.lower().startswith("mailto:") and not EMAIL_PATTERN.match(text):
            element.set("data-unwrap", "")
            return
        if not href.startswith("#"):
            element.set("target", "_blank")
        if not element.get("title") and text:
            element.set("title", text)

    def _blockquote(self, element: ET.Element) -> None:
        if not len(element) or element[0].tag != "p":
            return
        first = element[0]
        match = CALLOUT_PATTERN.match(first.text or "")
        if match is None:
            return
        kind = CalloutKind.from_marker(match.group(1))
        element.set("data-callout", kind.value)
        remainder = (first.text or "")[match.end() :]
        if not remainder.strip() and len(first) and first[0].tag == "br":
            remainder = (first[0].tail or "").lstrip()
            first.remove(first[0])
        first.text = remainder.lstrip()
        if not first.text and not len(first):
            element.remove(first)

    def _code_block(self, pre: ET.Element) -> ET.Element:
        code = html.unescape(pre[0].text or "")
        rendered = render_code_block(self.loader, code, None)
        replacement = ET.Element("p")
        replacement.text = _stash(self.md, rendered, self.trusted)
        replacement.tail = pre.tail
        return replacement

    # Raw HTML adapter --------------------------------------------------

    def _feed(self, text: str | None) -> None:
        """Pass ``text`` and the raw fragments it references to the adapter."""
        if not text:
            return
        blocks = self.md.htmlStash.rawHtmlBlocks
        position = 0
        for match in util.HTML_PLACEHOLDER_RE.finditer(text):
            self._collect(text[position : match.start()])
            position = match.end()
            key = int(match.group(1))
            if key in self.trusted or key in self._adapted or key >= len(blocks):
                continue
            self._adapted.add(key)
            fragment = blocks[key]
            if isinstance(fragment, str):
                self.raw_html.adapt(key, fragment)
        self._collect(text[position:])

    def _collect(self, text: str) -> None:
        if text and self.raw_html.collecting:
            self.raw_html.add_text(html.escape(self._decode(text)))

    # Text helpers ------------------------------------------------------

    def _decode(self, text: str) -> str:
        """Undo Python-Markdown's internal escaping of ``text``."""
        text = util.HTML_PLACEHOLDER_RE.sub(self._stashed_text, text)
        text = text.replace(util.AMP_SUBSTITUTE, "&")
        text = ESCAPED_CHAR.sub(lambda match: chr(int(match.group(1))), text)
        return html.unescape(text)

    def _stashed_text(self, match: re.Match[str]) -> str:
        blocks = self.md.htmlStash.rawHtmlBlocks
        key = int(match.group(1))
        fragment = blocks[key] if key < len(blocks) else ""
        return html.escape(strip_html(fragment)) if isinstance(fragment, str) else ""

    def _plain_text(self, element: ET.Element) -> str:
        return self._decode("".join(element.itertext()))


def _append_anchor(element: ET.Element, heading_id: str) -> None:
    anchor = ET.SubElement(
        element,
        "a",
        {
            "href": f"#{heading_id}",
            "class": HEADING_ANCHOR_CLASS,
            "aria-label": "Permalink",
        },
    )
    ET.SubElement(
        anchor, "span", {"class": "heading-anchor-icon", "aria-hidden": "true"}
    )


def _unwrap(parent: ET.Element, index: int) -> int:
    """Replace ``parent[index]`` with its content; return the nodes inserted."""
    child = parent[index]
    leading = child.text or ""
    if index == 0:
        parent.text = (parent.text or "") + leading
    else:
        previous = parent[index - 1]
        previous.tail = (previous.tail or "") + leading
    grandchildren = list(child)
    parent.remove(child)
    for offset, grandchild in enumerate(grandchildren):
        parent.insert(index + offset, grandchild)
    trailing = child.tail or ""
    if grandchildren:
        last = grandchildren[-1]
        last.tail = (last.tail or "") + trailing
    elif index == 0:
        parent.text = (parent.text or "") + trailing
    else:
        previous = parent[index - 1]
        previous.tail = (previous.tail or "") + trailing
    return len(grandchildren)


class ReadmeExtension(Extension):
    """Register the README preprocessors and treeprocessor.

    Parameters
    ----------
    context : RenderContext
        Per-render slug, depth and TOC state.
    loader : HighlighterLoader, optional
        Highlighter capability; ``None`` renders plain code blocks.
    """

    def __init__(
        self, context: RenderContext, loader: HighlighterLoader | None = None
    ) -> None:
        super().__init__()
        self.context = context
        self.loader = loader

    def extendMarkdown(self, md: Markdown) -> None:  # type: ignore[override]  # noqa: N802
        """Register the README processors on the Markdown instance."""
        trusted: set[int] = set()
        md.preprocessors.register(
            LazyHeadingPreprocessor(md), "pkgmark_lazy_headings", 28
        )
        md.preprocessors.register(
            FencedCodePreprocessor(md, self.loader, trusted), "pkgmark_fenced_code", 26
        )
        md.preprocessors.register(HtmlBlockPreprocessor(md), "html_block", 20)
        md.treeprocessors.register(
            ReadmeTreeprocessor(md, self.context, self.loader, trusted),
            "pkgmark_readme",
            15,
        )


__all__ = [
    "CalloutKind",
    "FencedCodePreprocessor",
    "ReadmeExtension",
    "ReadmeTreeprocessor",
]
