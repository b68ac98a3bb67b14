"""Resolve README link and image targets against the hosting context."""

from __future__ import annotations

import re
import typing as typ
from urllib.parse import unquote, urljoin, urlsplit

from pkgmark._constants import (
    DEFAULT_CDN_BASE,
    ID_PREFIX,
    NPM_EXCEPTION_PATHS,
    NPM_HOSTS,
)
from pkgmark.render.context import slugify

if typ.TYPE_CHECKING:
    from pkgmark.models import RepositoryInfo

SCHEME_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*:")


def resolve_fragment(fragment: str, id_prefix: str = ID_PREFIX) -> str:
    """Return the in-page anchor for ``fragment`` inside the user namespace.

    Examples
    --------
    >>> resolve_fragment("Foo")
    '#user-content-foo'
    >>> resolve_fragment("user-content-bar")
    '#user-content-bar'
    """
    if fragment.startswith(ID_PREFIX):
        return f"#{fragment}"
    slug = slugify(unquote(fragment)) or fragment
    return f"#{id_prefix}-{slug}"


def _is_npm_exception(path: str) -> bool:
    return any(
        path == prefix or path.startswith(f"{prefix}/") for prefix in NPM_EXCEPTION_PATHS
    )


def redirect_npm_url(url: str) -> str:
    """Rewrite an npmjs.com package URL to the site's own relative route.

    Non-npm URLs, the bare npm homepage, and marketing pages on the exception
    list are returned unchanged.
    """
    parts = urlsplit(url)
    host = (parts.hostname or "").lower()
    if host not in NPM_HOSTS:
        return url
    path = parts.path.rstrip("/")
    if not path or _is_npm_exception(path):
        return url
    route = path
    if parts.query:
        route = f"{route}?{parts.query}"
    if parts.fragment:
        route = f"{route}#{parts.fragment}"
    return route


def _join_within(base: str, directory: str | None, target: str) -> str:
    """Join ``target`` onto ``base``, falling back to ``base`` on escape."""
    base = base.rstrip("/")
    if target.startswith("/"):
        resolved = urljoin(f"{base}/", target.lstrip("/"))
    else:
        root = f"{base}/{directory}/" if directory else f"{base}/"
        resolved = urljoin(root, target)
    if resolved != base and not resolved.startswith(f"{base}/"):
        return base
    return resolved


def resolve_url(
    value: str,
    repo_info: RepositoryInfo | None = None,
    *,
    package_name: str,
    id_prefix: str = ID_PREFIX,
    cdn_base: str = DEFAULT_CDN_BASE,
) -> str:
    """Resolve a link or image target found in rendered README content.

    Parameters
    ----------
    value : str
        Raw ``href``/``src`` value written by the author.
    repo_info : RepositoryInfo, optional
        Hosting context. Markdown documents resolve against its blob base,
        everything else against its raw base, below ``directory`` when set.
    package_name : str
        Package name used for the CDN fallback when ``repo_info`` is missing.
    id_prefix : str, optional
        Namespace applied to in-page fragments.
    cdn_base : str, optional
        Package CDN root used for relative assets without repository info.

    Returns
    -------
    str
        The resolved URL. Paths that would escape the chosen base resolve to
        the base itself.

    Examples
    --------
    >>> resolve_url("#Usage", package_name="pkg")
    '#user-content-usage'
    >>> resolve_url("./schema.json", package_name="pkg")
    'https://cdn.jsdelivr.net/npm/pkg/schema.json'
    >>> resolve_url("https://www.npmjs.com/package/foo", package_name="pkg")
    '/package/foo'
    """
    url = value.strip()
    if not url:
        return url
    if url.startswith("#"):
        return resolve_fragment(url[1:], id_prefix)
    if url.startswith("//"):
        return url
    if url.lower().startswith(("http://", "https://")):
        return redirect_npm_url(url)
    if SCHEME_PATTERN.match(url):
        # Scheme filtering happens in the sanitizer.
        return url

    is_markdown = urlsplit(url).path.lower().endswith(".md")
    if repo_info is None:
        if is_markdown:
            return url
        return _join_within(f"{cdn_base.rstrip('/')}/{package_name}", None, url)

    base = repo_info.blob_base_url if is_markdown else repo_info.raw_base_url
    return _join_within(base, repo_info.directory, url)


__all__ = ["redirect_npm_url", "resolve_fragment", "resolve_url"]
