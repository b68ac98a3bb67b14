"""Legalize "lazy" ATX headings before markdown parsing.

README authors frequently write ``#Title`` without the space CommonMark
requires. This pre-pass inserts the space outside fenced code, leaves already
valid headings alone, and escapes lines that must stay literal so
Python-Markdown does not turn them into headings.
"""

from __future__ import annotations

import dataclasses as dc
import re
import typing as typ

from markdown.preprocessors import Preprocessor

if typ.TYPE_CHECKING:
    from markdown import Markdown
else:  # pragma: no cover - type-checking fallback
    Markdown = typ.Any

FENCE_PATTERN = re.compile(r"^ {0,3}(?P<fence>`{3,}|~{3,})")
HEADING_PATTERN = re.compile(r"^(?P<indent> {0,3})(?P<hashes>#{1,6})(?!#)(?P<rest>.*)$")
NOT_A_HEADING_PATTERN = re.compile(r"^ {0,3}#{7,}")
CLOSING_SEQUENCE = re.compile(r"\s+#+\s*$")
UNESCAPED_TRAILING_HASH = re.compile(r"(?<!\\)#$")


@dc.dataclass(slots=True)
class _FenceState:
    char: str = ""
    length: int = 0

    @property
    def open(self) -> bool:
        return self.length > 0

    def update(self, line: str) -> bool:
        """Advance the fence state; return ``True`` if ``line`` is fenced."""
        match = FENCE_PATTERN.match(line)
        if not self.open:
            if match is None:
                return False
            fence = match.group("fence")
            self.char, self.length = fence[0], len(fence)
            return True
        if match is not None:
            fence = match.group("fence")
            closes = (
                fence[0] == self.char
                and len(fence) >= self.length
                and not line[match.end() :].strip()
            )
            if closes:
                self.char, self.length = "", 0
        return True


def _strip_closing_sequence(content: str) -> str:
    """Drop a trailing ``#`` run preceded by whitespace; escape a glued one."""
    stripped = CLOSING_SEQUENCE.sub("", content)
    if stripped != content:
        return stripped.rstrip()
    return UNESCAPED_TRAILING_HASH.sub(r"\\#", content)


def normalize_heading_line(line: str) -> str:
    """Return ``line`` rewritten so Python-Markdown parses it as intended.

    Examples
    --------
    >>> normalize_heading_line("#Title")
    '# Title'
    >>> normalize_heading_line("## Already fine")
    '## Already fine'
    >>> normalize_heading_line("#######seven")
    '\\\\#######seven'
    """
    if NOT_A_HEADING_PATTERN.match(line):
        return "\\" + line.lstrip(" ")

    match = HEADING_PATTERN.match(line)
    if match is None:
        return line
    hashes = match.group("hashes")
    rest = match.group("rest")
    if not rest.strip():
        return line

    content = _strip_closing_sequence(rest.strip())
    rewritten = f"{hashes} {content}"
    if rest[0].isspace() and not match.group("indent") and rewritten == line.rstrip():
        return line
    return rewritten


def normalize_lazy_headings(lines: typ.Iterable[str]) -> list[str]:
    """Normalize every heading line outside fenced code blocks."""
    fence = _FenceState()
    result: list[str] = []
    for line in lines:
        if fence.update(line):
            result.append(line)
            continue
        result.append(normalize_heading_line(line))
    return result


class LazyHeadingPreprocessor(Preprocessor):
    """Run :func:`normalize_lazy_headings` over the source lines."""

    def __init__(self, md: Markdown | None = None) -> None:
        super().__init__(md)

    def run(self, lines: list[str]) -> list[str]:
        """Return the normalized source lines."""
        return normalize_lazy_headings(lines)


__all__ = [
    "LazyHeadingPreprocessor",
    "normalize_heading_line",
    "normalize_lazy_headings",
]
