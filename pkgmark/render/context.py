"""Per-render document-order state shared by every heading producer.

Markdown headings and raw HTML headings are numbered by the same
:class:`RenderContext`, so slug suffixes, semantic levels, and table-of-contents
entries follow the order in which headings appear in the document regardless
of the syntax they were written in.

Example
-------
>>> from pkgmark.render.context import RenderContext
>>> ctx = RenderContext("user-content", base_level=2)
>>> ctx.claim_heading(2, "API").id
'user-content-api'
>>> ctx.claim_heading(2, "API").id
'user-content-api-1'
"""

from __future__ import annotations

import dataclasses as dc
import re
import unicodedata

from bs4 import BeautifulSoup

from pkgmark._constants import ID_PREFIX
from pkgmark.models import HeadingRecord

MAX_HEADING_LEVEL = 6
SLUG_FALLBACK = "heading"

_SLUG_STRIP = re.compile(r"[^\w\- ]", re.UNICODE)
_SLUG_SEPARATORS = re.compile(r"[\s-]+")
_NBSP = re.compile(r"&nbsp;?|\u00a0")
EMOJI_SHORTCODE = re.compile(r":([a-z0-9_+\-]+):")

EMOJI_ALIASES: dict[str, str] = {
    "+1": "\U0001f44d",
    "-1": "\U0001f44e",
    "thumbsup": "\U0001f44d",
    "thumbsdown": "\U0001f44e",
    "tada": "\U0001f389",
    "sparkles": "✨",
    "rocket": "\U0001f680",
    "fire": "\U0001f525",
    "bug": "\U0001f41b",
    "boom": "\U0001f4a5",
    "zap": "⚡",
    "star": "⭐",
    "heart": "❤️",
    "warning": "⚠️",
    "memo": "\U0001f4dd",
    "package": "\U0001f4e6",
    "wrench": "\U0001f527",
    "hammer": "\U0001f528",
    "lock": "\U0001f512",
    "bulb": "\U0001f4a1",
    "book": "\U0001f4d6",
    "books": "\U0001f4da",
    "construction": "\U0001f6a7",
    "recycle": "♻️",
    "art": "\U0001f3a8",
    "lipstick": "\U0001f484",
    "white_check_mark": "✅",
    "heavy_check_mark": "✔️",
    "x": "❌",
    "question": "❓",
    "exclamation": "❗",
    "information_source": "ℹ️",
    "arrow_right": "➡️",
    "arrow_up": "⬆️",
    "arrow_down": "⬇️",
    "link": "\U0001f517",
    "smile": "\U0001f604",
    "wave": "\U0001f44b",
    "eyes": "\U0001f440",
    "100": "\U0001f4af",
    "heavy_plus_sign": "➕",
    "heavy_minus_sign": "➖",
    "arrow_up_small": "\U0001f53c",
    "new": "\U0001f195",
    "gear": "⚙️",
    "globe_with_meridians": "\U0001f310",
    "mag": "\U0001f50d",
    "pushpin": "\U0001f4cc",
    "rotating_light": "\U0001f6a8",
    "checkered_flag": "\U0001f3c1",
    "coffee": "☕",
    "computer": "\U0001f4bb",
    "heart_eyes": "\U0001f60d",
    "pray": "\U0001f64f",
    "clap": "\U0001f44f",
    "muscle": "\U0001f4aa",
    "hourglass": "⌛",
    "calendar": "\U0001f4c6",
    "chart_with_upwards_trend": "\U0001f4c8",
    "triangular_flag_on_post": "\U0001f6a9",
    "no_entry": "⛔",
    "stop_sign": "\U0001f6d1",
    "moneybag": "\U0001f4b0",
    "speech_balloon": "\U0001f4ac",
    "electric_plug": "\U0001f50c",
    "card_file_box": "\U0001f5c3️",
    "alien": "\U0001f47d",
    "ambulance": "\U0001f691",
    "pencil2": "✏️",
    "truck": "\U0001f69a",
    "green_heart": "\U0001f49a",
    "arrow_heading_up": "⤴️",
    "robot": "\U0001f916",
}


@dc.dataclass(frozen=True, slots=True)
class HeadingClaim:
    """Identity and level handed out for one heading.

    Attributes
    ----------
    id : str
        Namespaced, unique element id.
    level : int
        Semantic heading level to emit (``h{level}``).
    raw_depth : int
        Heading depth as written in the source.
    """

    id: str
    level: int
    raw_depth: int


def build_id_prefix(release_id: str | int | None = None) -> str:
    """Return the id namespace for a render call.

    Examples
    --------
    >>> build_id_prefix()
    'user-content'
    >>> build_id_prefix(42)
    'user-content-42'
    """
    if release_id is None or release_id == "":
        return ID_PREFIX
    return f"{ID_PREFIX}-{release_id}"


def calculate_semantic_depth(raw_depth: int, last_level: int, base_level: int) -> int:
    """Return the level a heading renders at.

    The target is ``raw_depth + base_level``, capped so the document never
    skips more than one level downwards from the previous heading.
    """
    target = min(raw_depth + base_level, MAX_HEADING_LEVEL)
    return max(1, min(target, last_level + 1))


def slugify(text: str) -> str:
    """Convert heading text into a lowercase hyphen-separated slug.

    Examples
    --------
    >>> slugify("First (markdown)")
    'first-markdown'
    >>> slugify("  Getting   Started! ")
    'getting-started'
    """
    value = _NBSP.sub(" ", text).strip().lower()
    value = _SLUG_STRIP.sub("", value)
    return _SLUG_SEPARATORS.sub("-", value).strip("-")


def strip_html(value: str) -> str:
    """Return the text content of an HTML fragment."""
    if "<" not in value and "&" not in value:
        return value
    return BeautifulSoup(value, "html.parser").get_text()


def expand_emoji(text: str) -> str:
    """Replace GitHub ``:shortcode:`` emoji with their unicode characters."""
    if ":" not in text:
        return text
    return EMOJI_SHORTCODE.sub(_emoji_for_match, text)


def _emoji_for_match(match: re.Match[str]) -> str:
    name = match.group(1)
    alias = EMOJI_ALIASES.get(name)
    if alias:
        return alias
    try:
        char = unicodedata.lookup(name.replace("_", " ").upper())
    except KeyError:
        return match.group(0)
    # Only pictographic code points; short names can collide with letters.
    if ord(char) < 0x2000:  # noqa: PLR2004
        return match.group(0)
    return char


def toc_text(plain: str) -> str:
    """Return the TOC label for already plain heading text."""
    return _NBSP.sub("", expand_emoji(plain)).strip()


class RenderContext:
    """Mutable state for one render call: slugs, depth tracking, and TOC.

    Parameters
    ----------
    id_prefix : str
        Namespace prepended to every heading id (``user-content`` or
        ``user-content-<release>``).
    base_level : int
        Heading levels already used by the host page.
    """

    def __init__(self, id_prefix: str, base_level: int) -> None:
        self.id_prefix = id_prefix
        self.base_level = base_level
        self.slug_counts: dict[str, int] = {}
        self.last_assigned_depth = base_level
        self.toc: list[HeadingRecord] = []

    def claim_heading(self, raw_depth: int, text: str) -> HeadingClaim:
        """Allocate the level and unique id for the next heading in document order.

        Parameters
        ----------
        raw_depth : int
            Depth of the heading in the source (``#`` count or ``hN``).
        text : str
            Heading content as HTML; tags are stripped and entities decoded.

        Returns
        -------
        HeadingClaim
            The id and semantic level to emit. The matching TOC record is
            appended before returning.
        """
        depth = min(max(raw_depth, 1), MAX_HEADING_LEVEL)
        level = calculate_semantic_depth(
            depth, self.last_assigned_depth, self.base_level
        )
        self.last_assigned_depth = level

        plain = strip_html(text)
        base = slugify(plain) or SLUG_FALLBACK
        count = self.slug_counts.get(base, 0)
        self.slug_counts[base] = count + 1
        slug = base if count == 0 else f"{base}-{count}"
        heading_id = f"{self.id_prefix}-{slug}"

        self.toc.append(HeadingRecord(text=toc_text(plain), id=heading_id, depth=depth))
        return HeadingClaim(id=heading_id, level=level, raw_depth=depth)

    def namespaced_id(self, value: str) -> str:
        """Prefix an element id unless it already lives in the user namespace."""
        if value.startswith(f"{ID_PREFIX}-"):
            return value
        return f"{self.id_prefix}-{value}"


__all__ = [
    "EMOJI_ALIASES",
    "HeadingClaim",
    "RenderContext",
    "build_id_prefix",
    "calculate_semantic_depth",
    "expand_emoji",
    "slugify",
    "strip_html",
    "toc_text",
]
