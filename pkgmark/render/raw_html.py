"""Raw HTML handling for the README markdown extension.

Python-Markdown stashes raw HTML and leaves a placeholder in the text. Two
pieces here decide what gets stashed and what happens to it afterwards:

* :class:`HtmlBlockPreprocessor` replaces the stock ``html_block``
  preprocessor. An HTML block ends at the first blank line, as in CommonMark,
  so the markdown between ``<div align="center">`` and ``</div>`` is parsed.
* :class:`RawHtmlAdapter` visits stashed fragments in document order and
  numbers their ``<h1>``-``<h6>`` headings through the render context. A
  heading whose tags were stashed separately (``text <h2>API</h2>``) is
  claimed when its closing tag arrives. Headings inside comments or inside
  elements the sanitizer removes are never claimed.
"""

from __future__ import annotations

import dataclasses as dc
import html
import re
import typing as typ

from markdown.preprocessors import Preprocessor

if typ.TYPE_CHECKING:
    from pkgmark.render.context import HeadingClaim, RenderContext

HEADING_TAGS = frozenset({"h1", "h2", "h3", "h4", "h5", "h6"})
HEADING_ANCHOR_CLASS = "heading-anchor"

DROPPED_TAGS = frozenset(
    {
        "applet",
        "audio",
        "base",
        "canvas",
        "embed",
        "form",
        "frame",
        "frameset",
        "head",
        "iframe",
        "input",
        "link",
        "math",
        "meta",
        "noembed",
        "noframes",
        "noscript",
        "object",
        "option",
        "plaintext",
        "script",
        "select",
        "style",
        "svg",
        "template",
        "textarea",
        "title",
        "video",
        "xmp",
    }
)
# Content runs to the matching end tag without being parsed as markup.
RAW_TEXT_TAGS = frozenset({"script", "style", "textarea", "title", "xmp"})
VOID_TAGS = frozenset(
    {
        "area",
        "base",
        "br",
        "col",
        "embed",
        "hr",
        "img",
        "input",
        "link",
        "meta",
        "param",
        "source",
        "track",
        "wbr",
    }
)

BLOCK_TAG_NAMES = frozenset(
    {
        *HEADING_TAGS,
        "address",
        "article",
        "aside",
        "base",
        "basefont",
        "blockquote",
        "body",
        "caption",
        "center",
        "col",
        "colgroup",
        "dd",
        "details",
        "dialog",
        "dir",
        "div",
        "dl",
        "dt",
        "fieldset",
        "figcaption",
        "figure",
        "footer",
        "form",
        "frame",
        "frameset",
        "head",
        "header",
        "hr",
        "html",
        "iframe",
        "legend",
        "li",
        "link",
        "main",
        "menu",
        "menuitem",
        "nav",
        "noframes",
        "ol",
        "optgroup",
        "option",
        "p",
        "param",
        "search",
        "section",
        "summary",
        "table",
        "tbody",
        "td",
        "tfoot",
        "th",
        "thead",
        "title",
        "tr",
        "track",
        "ul",
    }
)

_ATTRIBUTE = r"""\s+[A-Za-z_:][\w.:-]*(?:\s*=\s*(?:"[^"]*"|'[^']*'|[^\s"'=<>`]+))?"""
_TAG_LINE = re.compile(
    rf"^ {{0,3}}(?:<(?P<open>[A-Za-z][A-Za-z0-9-]*)(?:{_ATTRIBUTE})*\s*/?>"
    r"|</(?P<close>[A-Za-z][A-Za-z0-9-]*)\s*>)\s*$"
)
_LITERAL_BLOCK_NAMES = frozenset({"pre", "script", "style", "textarea"})

# (start, end) pairs; a ``None`` end closes the block at the next blank line.
BLOCK_CONDITIONS: tuple[tuple[re.Pattern[str], re.Pattern[str] | None], ...] = (
    (
        re.compile(r"^ {0,3}<(?:pre|script|style|textarea)(?:\s|>|$)", re.IGNORECASE),
        re.compile(r"</(?:pre|script|style|textarea)>", re.IGNORECASE),
    ),
    (re.compile(r"^ {0,3}<!--"), re.compile(r"-->")),
    (re.compile(r"^ {0,3}<\?"), re.compile(r"\?>")),
    (re.compile(r"^ {0,3}<![A-Za-z]"), re.compile(r">")),
    (re.compile(r"^ {0,3}<!\[CDATA\["), re.compile(r"\]\]>")),
    (
        re.compile(
            r"^ {0,3}</?(?:" + "|".join(sorted(BLOCK_TAG_NAMES)) + r")(?:\s|/?>|$)",
            re.IGNORECASE,
        ),
        None,
    ),
)

TOKEN = re.compile(
    r"<!--.*?-->"
    r"|<(?P<close>/)?(?P<name>[A-Za-z][A-Za-z0-9-]*)"
    r"""(?P<attrs>(?:\s+[^\s"'>/=]+(?:\s*=\s*(?:"[^"]*"|'[^']*'|[^\s"'>]+))?)*)"""
    r"\s*(?P<self_closing>/)?>",
    re.DOTALL,
)
HEADING_ID_ATTRIBUTES = re.compile(
    r"""\s+(?:id|data-level)(?:\s*=\s*(?:"[^"]*"|'[^']*'|[^\s"'>]+))?(?=\s|$)""",
    re.IGNORECASE,
)


def _block_start(
    line: str, *, in_paragraph: bool
) -> tuple[re.Match[str], re.Pattern[str] | None] | None:
    """Return the start match and end pattern if ``line`` opens an HTML block."""
    for start, end in BLOCK_CONDITIONS:
        match = start.match(line)
        if match is not None:
            return match, end
    if in_paragraph:
        return None
    match = _TAG_LINE.match(line)
    if match is None:
        return None
    name = (match.group("open") or match.group("close")).lower()
    if name in _LITERAL_BLOCK_NAMES:
        return None
    return match, None


class HtmlBlockPreprocessor(Preprocessor):
    """Stash raw HTML blocks, ending each one at the first blank line.

    The blocks and their end conditions follow CommonMark: ``<pre>``,
    ``<script>``, ``<style>``, ``<textarea>``, comments, processing
    instructions, declarations and CDATA run to their closing marker; block
    level tags and lone complete tags run to the next blank line. A lone tag
    on a line cannot interrupt a paragraph.
    """

    def run(self, lines: list[str]) -> list[str]:
        """Return ``lines`` with each HTML block swapped for a placeholder."""
        output: list[str] = []
        in_paragraph = False
        index = 0
        while index < len(lines):
            line = lines[index]
            start = _block_start(line, in_paragraph=in_paragraph)
            if start is None:
                output.append(line)
                in_paragraph = bool(line.strip())
                index += 1
                continue

            match, end = start
            block = [line]
            index += 1
            if end is not None:
                closed = end.search(line, match.end()) is not None
                while not closed and index < len(lines):
                    block.append(lines[index])
                    closed = end.search(lines[index]) is not None
                    index += 1
            else:
                while index < len(lines) and lines[index].strip():
                    block.append(lines[index])
                    index += 1
            output.extend(["", self.md.htmlStash.store("\n".join(block)), ""])
            in_paragraph = False
        return output


def permalink_html(heading_id: str) -> str:
    """Return the permalink markup appended to every numbered heading."""
    target = html.escape(f"#{heading_id}")
    return (
        f'<a href="{target}" class="{HEADING_ANCHOR_CLASS}" aria-label="Permalink">'
        '<span class="heading-anchor-icon" aria-hidden="true"></span></a>'
    )


@dc.dataclass(slots=True)
class _OpenHeading:
    key: int
    pieces: list[str]
    index: int
    depth: int
    attrs: str
    text: list[str] = dc.field(default_factory=list)


class RawHtmlAdapter:
    """Number raw HTML headings in the order the tree walk reaches them.

    Parameters
    ----------
    context : RenderContext
        Numbering state shared with the markdown heading hook.
    blocks : list
        ``md.htmlStash.rawHtmlBlocks``; adapted fragments are written back.
    """

    def __init__(self, context: RenderContext, blocks: list[typ.Any]) -> None:
        self.context = context
        self.blocks = blocks
        self._heading: _OpenHeading | None = None
        self._raw_text: str | None = None
        self._dropped: str | None = None
        self._dropped_depth = 0
        self._dropped_at = 0
        self.depth = 0

    @property
    def suppressed(self) -> bool:
        """Whether the walk is inside a raw-text element the sanitizer drops."""
        return self._raw_text is not None

    @property
    def collecting(self) -> bool:
        """Whether text met now belongs to an open raw heading."""
        return self._heading is not None and not self.suppressed

    def add_text(self, markup: str) -> None:
        """Record heading text found between stashed fragments."""
        if self._heading is not None and not self.suppressed:
            self._heading.text.append(markup)

    def claim(self, raw_depth: int, text: str) -> HeadingClaim | None:
        """Claim a markdown heading; ``None`` if the sanitizer will remove it."""
        self.flush()
        if self.suppressed:
            return None
        return self.context.claim_heading(raw_depth, text)

    def flush(self) -> None:
        """Claim a raw heading whose closing tag has not been seen."""
        if self._heading is not None:
            self._close_heading(self._heading)

    def leave(self, depth: int) -> None:
        """Note that the walk finished an element at ``depth``.

        An unclosed non raw-text element that is dropped ends with the
        element holding it, as it does when BeautifulSoup parses the output.
        """
        if self._dropped is not None and self._dropped_at >= depth:
            self._dropped, self._dropped_depth = None, 0

    def adapt(self, key: int, fragment: str) -> None:
        """Number the headings of stash entry ``key`` and write it back."""
        pieces: list[str] = []
        position = 0
        while position < len(fragment):
            if self._raw_text is not None:
                end = re.compile(rf"</{self._raw_text}\s*>", re.IGNORECASE).search(
                    fragment, position
                )
                stop = len(fragment) if end is None else end.end()
                pieces.append(fragment[position:stop])
                position = stop
                if end is not None:
                    self._raw_text = None
                continue

            match = TOKEN.search(fragment, position)
            stop = len(fragment) if match is None else match.start()
            text = fragment[position:stop]
            if self._dropped is None:
                self.add_text(text)
            pieces.append(text)
            if match is None:
                break
            pieces.append(self._token(match, key, pieces))
            position = match.end()

        self.blocks[key] = "".join(pieces)

    def _token(self, match: re.Match[str], key: int, pieces: list[str]) -> str:
        token = match.group(0)
        name = (match.group("name") or "").lower()
        if not name:
            return token
        closing = match.group("close") is not None
        self_closing = match.group("self_closing") is not None or name in VOID_TAGS

        if self._dropped is not None:
            if name == self._dropped and not self_closing:
                self._dropped_depth += -1 if closing else 1
                if self._dropped_depth == 0:
                    self._dropped = None
            return token

        if closing:
            heading = self._heading
            if heading is not None and name == f"h{heading.depth}":
                claim = self._close_heading(heading)
                return f"{permalink_html(claim.id)}</h{claim.level}>"
            return token
        if self_closing:
            return token

        if name in RAW_TEXT_TAGS:
            self._raw_text = name
        elif name in DROPPED_TAGS:
            self._dropped, self._dropped_depth = name, 1
            self._dropped_at = self.depth
        elif name in HEADING_TAGS:
            self.flush()
            self._heading = _OpenHeading(
                key=key,
                pieces=pieces,
                index=len(pieces),
                depth=int(name[1]),
                attrs=HEADING_ID_ATTRIBUTES.sub("", match.group("attrs") or ""),
            )
        return token

    def _close_heading(self, heading: _OpenHeading) -> HeadingClaim:
        self._heading = None
        claim = self.context.claim_heading(heading.depth, "".join(heading.text))
        heading.pieces[heading.index] = (
            f'<h{claim.level} id="{html.escape(claim.id)}" '
            f'data-level="{claim.raw_depth}"{heading.attrs}>'
        )
        self.blocks[heading.key] = "".join(heading.pieces)
        return claim


__all__ = [
    "DROPPED_TAGS",
    "HEADING_ANCHOR_CLASS",
    "HEADING_TAGS",
    "HtmlBlockPreprocessor",
    "RawHtmlAdapter",
    "permalink_html",
]
