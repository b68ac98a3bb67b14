"""Find "open in playground" links in rendered README HTML."""

from __future__ import annotations

from urllib.parse import urlsplit

from bs4 import BeautifulSoup, NavigableString, Tag

from pkgmark.models import PlaygroundLink, PlaygroundProvider


def provider_for_url(url: str) -> PlaygroundProvider | None:
    """Return the playground provider hosting ``url``, if any.

    Subdomains count, so ``https://abc.stackblitz.com`` is StackBlitz.

    Examples
    --------
    >>> provider_for_url("https://codesandbox.io/s/demo")
    <PlaygroundProvider.CODESANDBOX: 'codesandbox'>
    >>> provider_for_url("https://example.com") is None
    True
    """
    hostname = (urlsplit(url).hostname or "").lower()
    domain = ".".join(hostname.split(".")[-2:])
    match domain:
        case "stackblitz.com":
            return PlaygroundProvider.STACKBLITZ
        case "codesandbox.io" | "githubbox.com":
            return PlaygroundProvider.CODESANDBOX
        case "codepen.io":
            return PlaygroundProvider.CODEPEN
        case "replit.com":
            return PlaygroundProvider.REPLIT
        case "gitpod.io":
            return PlaygroundProvider.GITPOD
        case _:
            return None


def _label(anchor: Tag) -> str:
    children = [
        child
        for child in anchor.contents
        if not (isinstance(child, NavigableString) and not child.strip())
    ]
    if len(children) == 1 and isinstance(children[0], Tag) and children[0].name == "img":
        alt = children[0].get("alt")
        if isinstance(alt, str) and alt.strip():
            return alt.strip()
    return anchor.get_text(" ", strip=True)


def extract_playground_links(html: str) -> list[PlaygroundLink]:
    """Collect playground links from ``html`` in first-occurrence order.

    Parameters
    ----------
    html : str
        Final, sanitized README HTML.

    Returns
    -------
    list[PlaygroundLink]
        One entry per distinct URL. The label is the anchor text, or the alt
        text of an image that is the anchor's only content.
    """
    if "href" not in html:
        return []
    soup = BeautifulSoup(html, "html.parser")
    seen: set[str] = set()
    links: list[PlaygroundLink] = []
    for anchor in soup.find_all("a", href=True):
        url = anchor["href"]
        if not isinstance(url, str) or url in seen:
            continue
        provider = provider_for_url(url)
        if provider is None:
            continue
        seen.add(url)
        links.append(
            PlaygroundLink(
                provider=provider,
                provider_name=provider.display_name,
                label=_label(anchor) or provider.display_name,
                url=url,
            )
        )
    return links


__all__ = ["extract_playground_links", "provider_for_url"]
