"""Sanitize rendered README HTML and resolve its links in one walk.

The input interleaves markup produced by the markdown hooks with raw HTML the
author embedded. :class:`ReadmeSanitizer` visits every node in document order
and, per element:

* drops dangerous elements with their content and unwraps unknown ones;
* filters attributes against a per-tag allow-list and URL schemes against
  ``http``/``https``/``mailto``;
* numbers raw headings the markdown hooks left without ``data-level`` from
  the same render context and records the id of every heading it keeps, so
  the table of contents follows the emitted order;
* namespaces ``id``/``name`` attributes;
* resolves ``href``/``src``/``srcset`` and routes untrusted images through
  the signed image proxy.
"""

from __future__ import annotations

import re
import typing as typ

from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.element import PreformattedString

from pkgmark._constants import DEFAULT_CDN_BASE
from pkgmark.image_proxy.signer import rewrite_srcset
from pkgmark.render.context import expand_emoji
from pkgmark.render.raw_html import DROPPED_TAGS, HEADING_TAGS, permalink_html
from pkgmark.render.url_resolver import SCHEME_PATTERN, resolve_url

if typ.TYPE_CHECKING:
    from pkgmark.image_proxy.signer import ImageProxySigner
    from pkgmark.models import RepositoryInfo
    from pkgmark.render.context import RenderContext

ALLOWED_TAGS = frozenset(
    {
        *HEADING_TAGS,
        "a",
        "abbr",
        "article",
        "b",
        "blockquote",
        "br",
        "button",
        "caption",
        "center",
        "cite",
        "code",
        "col",
        "colgroup",
        "dd",
        "del",
        "details",
        "div",
        "dl",
        "dt",
        "em",
        "figcaption",
        "figure",
        "hr",
        "i",
        "img",
        "ins",
        "kbd",
        "li",
        "mark",
        "ol",
        "p",
        "picture",
        "pre",
        "q",
        "rp",
        "rt",
        "ruby",
        "s",
        "samp",
        "section",
        "small",
        "source",
        "span",
        "strike",
        "strong",
        "sub",
        "summary",
        "sup",
        "table",
        "tbody",
        "td",
        "tfoot",
        "th",
        "thead",
        "tr",
        "tt",
        "u",
        "ul",
        "var",
        "wbr",
    }
)

GLOBAL_ATTRIBUTES = frozenset(
    {"align", "aria-hidden", "aria-label", "class", "dir", "id", "lang", "title"}
)
TAG_ATTRIBUTES: dict[str, frozenset[str]] = {
    "a": frozenset({"href", "name", "target", "rel"}),
    "img": frozenset({"src", "srcset", "alt", "width", "height", "loading"}),
    "source": frozenset({"src", "srcset", "media", "type", "width", "height"}),
    "blockquote": frozenset({"data-callout"}),
    "div": frozenset({"data-language"}),
    "button": frozenset({"type", "data-copy"}),
    "td": frozenset({"colspan", "rowspan", "valign"}),
    "th": frozenset({"colspan", "rowspan", "valign", "scope"}),
    "col": frozenset({"span", "width"}),
    "colgroup": frozenset({"span", "width"}),
    "ol": frozenset({"start", "type", "reversed"}),
    "li": frozenset({"value"}),
    "details": frozenset({"open"}),
    "table": frozenset({"width"}),
    **{heading: frozenset({"data-level"}) for heading in HEADING_TAGS},
}

ALLOWED_SCHEMES = frozenset({"http", "https", "mailto"})
EXTERNAL_REL = "nofollow noreferrer noopener"
_URL_NOISE = re.compile(r"[\x00-\x20\x7f]+")
_RAW_TEXT_PARENTS = ["code", "pre"]


def is_safe_url(value: str) -> bool:
    """Return ``True`` if ``value`` is relative or uses an allowed scheme.

    Examples
    --------
    >>> is_safe_url("https://example.com")
    True
    >>> is_safe_url("java\\tscript:alert(1)")
    False
    """
    compact = _URL_NOISE.sub("", value)
    match = SCHEME_PATTERN.match(compact)
    if match is None:
        return True
    return match.group(0)[:-1].lower() in ALLOWED_SCHEMES


def _is_absolute(url: str) -> bool:
    return url.startswith("//") or url.lower().startswith(("http://", "https://"))


class ReadmeSanitizer:
    """Allow-list sanitizer that also resolves links and signs images.

    Parameters
    ----------
    context : RenderContext
        State shared with the markdown hooks of the same render call.
    package_name : str
        Package used for CDN fallbacks.
    repo_info : RepositoryInfo, optional
        Hosting context for relative links.
    signer : ImageProxySigner
        Signs untrusted image URLs.
    cdn_base : str, optional
        Package CDN root.

    Attributes
    ----------
    heading_ids : list[str]
        Ids of the headings left in the output, in document order.
    """

    def __init__(
        self,
        context: RenderContext,
        *,
        package_name: str,
        signer: ImageProxySigner,
        repo_info: RepositoryInfo | None = None,
        cdn_base: str = DEFAULT_CDN_BASE,
    ) -> None:
        self.context = context
        self.package_name = package_name
        self.repo_info = repo_info
        self.signer = signer
        self.cdn_base = cdn_base
        self.heading_ids: list[str] = []

    def sanitize(self, fragment: str) -> str:
        """Return the sanitized form of the HTML ``fragment``."""
        soup = BeautifulSoup(fragment, "html.parser")
        self._walk(soup)
        return str(soup)

    def _walk(self, node: Tag) -> None:
        for child in list(node.children):
            if isinstance(child, PreformattedString):
                child.extract()
            elif isinstance(child, NavigableString):
                self._text(child)
            elif isinstance(child, Tag):
                name = child.name.lower()
                if name in DROPPED_TAGS:
                    child.decompose()
                elif name not in ALLOWED_TAGS:
                    self._walk(child)
                    child.unwrap()
                else:
                    self._element(child, name)
                    self._walk(child)
                    if name in HEADING_TAGS:
                        self._heading(child, name)

    def _text(self, node: NavigableString) -> None:
        text = str(node)
        if ":" not in text or node.find_parent(_RAW_TEXT_PARENTS) is not None:
            return
        expanded = expand_emoji(text)
        if expanded != text:
            node.replace_with(NavigableString(expanded))

    def _element(self, tag: Tag, name: str) -> None:
        allowed = GLOBAL_ATTRIBUTES | TAG_ATTRIBUTES.get(name, frozenset())
        for attribute in list(tag.attrs):
            if attribute.lower() not in allowed:
                del tag[attribute]

        for attribute in ("id", "name"):
            value = tag.get(attribute)
            if isinstance(value, str) and value:
                tag[attribute] = self.context.namespaced_id(value)

        match name:
            case "a":
                self._anchor(tag)
            case "img" | "source":
                self._image(tag)

    def _heading(self, tag: Tag, name: str) -> None:
        if not tag.has_attr("data-level"):
            claim = self.context.claim_heading(int(name[1]), tag.decode_contents())
            tag.name = f"h{claim.level}"
            tag["id"] = claim.id
            tag["data-level"] = str(claim.raw_depth)
            tag.append(BeautifulSoup(permalink_html(claim.id), "html.parser").a)
        heading_id = tag.get("id")
        if isinstance(heading_id, str) and heading_id:
            self.heading_ids.append(heading_id)

    def _resolve(self, value: str) -> str:
        return resolve_url(
            value,
            self.repo_info,
            package_name=self.package_name,
            id_prefix=self.context.id_prefix,
            cdn_base=self.cdn_base,
        )

    def _anchor(self, tag: Tag) -> None:
        if tag.get("target") != "_blank":
            tag.attrs.pop("target", None)
        tag.attrs.pop("rel", None)

        href = tag.get("href")
        if not isinstance(href, str):
            return
        resolved = self._resolve(href) if is_safe_url(href) else ""
        if not resolved or not is_safe_url(resolved):
            del tag["href"]
            tag.attrs.pop("target", None)
            return
        tag["href"] = resolved
        if _is_absolute(resolved):
            tag["rel"] = EXTERNAL_REL
            tag["target"] = "_blank"
        elif tag.get("target") == "_blank":
            tag["rel"] = "noopener noreferrer"

    def _image_url(self, value: str) -> str:
        if not is_safe_url(value):
            return ""
        resolved = self._resolve(value)
        if not is_safe_url(resolved):
            return ""
        if resolved.startswith("//"):
            resolved = f"https:{resolved}"
        return self.signer.proxy_url(resolved)

    def _image(self, tag: Tag) -> None:
        src = tag.get("src")
        if isinstance(src, str):
            proxied = self._image_url(src)
            if proxied:
                tag["src"] = proxied
            else:
                del tag["src"]

        srcset = tag.get("srcset")
        if isinstance(srcset, str):
            rewritten = rewrite_srcset(srcset, self._image_url)
            if rewritten:
                tag["srcset"] = rewritten
            else:
                del tag["srcset"]


__all__ = [
    "ALLOWED_TAGS",
    "DROPPED_TAGS",
    "ReadmeSanitizer",
    "is_safe_url",
]
