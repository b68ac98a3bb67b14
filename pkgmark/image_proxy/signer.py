"""Sign untrusted image URLs so they load through the image proxy.

Browsers viewing a README would otherwise fetch every third-party image
directly, leaking the visitor's IP address and User-Agent to whoever hosts the
badge or screenshot. Images on trusted hosts are left alone; everything else
is rewritten to ``{endpoint}?url=<encoded>&sig=<hmac>``. The proxy route
recomputes the signature before fetching, so it cannot be used as an open
relay.

Example
-------
>>> from pkgmark.image_proxy.signer import ImageProxySigner
>>> signer = ImageProxySigner("s3cret")
>>> signer.proxy_url("https://img.shields.io/badge/x-y-green")
'https://img.shields.io/badge/x-y-green'
>>> signer.proxy_url("https://example.com/a.png").startswith(
...     "/api/registry/image-proxy?url=https%3A%2F%2Fexample.com%2Fa.png&sig="
... )
True
"""

from __future__ import annotations

import hashlib
import hmac
import typing as typ
from urllib.parse import quote, urlsplit

from pkgmark._constants import DEFAULT_FIRST_PARTY_HOST, DEFAULT_PROXY_ENDPOINT

if typ.TYPE_CHECKING:
    from pkgmark.config import RendererSettings

TRUSTED_IMAGE_DOMAINS: tuple[str, ...] = (
    # GitHub serves user content through its own camo proxy.
    "raw.githubusercontent.com",
    "github.com",
    "user-images.githubusercontent.com",
    "avatars.githubusercontent.com",
    "repository-images.githubusercontent.com",
    "github.githubassets.com",
    "objects.githubusercontent.com",
    "gitlab.com",
    "cdn.jsdelivr.net",
    "unpkg.com",
    # Badges
    "img.shields.io",
    "shields.io",
    "badge.fury.io",
    "badgen.net",
    "flat.badgen.net",
    "codecov.io",
    "coveralls.io",
    "david-dm.org",
    "snyk.io",
    "app.fossa.com",
    "api.codeclimate.com",
    "bundlephobia.com",
    "packagephobia.com",
)

# encodeURIComponent leaves these unescaped.
_URI_COMPONENT_SAFE = "-_.!~*'()"


def _is_http_url(url: str) -> bool:
    scheme = urlsplit(url).scheme.lower()
    return scheme in {"http", "https"}


def rewrite_srcset(value: str, transform: typ.Callable[[str], str]) -> str:
    """Apply ``transform`` to every URL of a ``srcset`` value.

    Descriptors such as ``2x`` or ``640w`` are preserved; candidates whose
    transformed URL is empty are dropped.

    Examples
    --------
    >>> rewrite_srcset("a.png 1x, b.png 2x", str.upper)
    'A.PNG 1x, B.PNG 2x'
    """
    entries: list[str] = []
    for candidate in value.split(","):
        parts = candidate.strip().split(maxsplit=1)
        if not parts:
            continue
        url = transform(parts[0])
        if not url:
            continue
        entries.append(f"{url} {parts[1]}" if len(parts) > 1 else url)
    return ", ".join(entries)


class ImageProxySigner:
    """Produce and verify HMAC-signed image proxy URLs.

    Parameters
    ----------
    secret : str
        HMAC-SHA256 key shared with the proxy route.
    endpoint : str, optional
        Path (or absolute URL) of the proxy route.
    first_party_host : str, optional
        The site's own host; its images are never proxied.
    trusted_domains : Sequence[str], optional
        Hosts whose images load directly. Subdomains are trusted too.
    """

    def __init__(
        self,
        secret: str,
        *,
        endpoint: str = DEFAULT_PROXY_ENDPOINT,
        first_party_host: str = DEFAULT_FIRST_PARTY_HOST,
        trusted_domains: typ.Sequence[str] = TRUSTED_IMAGE_DOMAINS,
    ) -> None:
        if not secret:
            msg = "Image proxy secret cannot be empty"
            raise ValueError(msg)
        self._key = secret.encode("utf-8")
        self.endpoint = endpoint
        self.trusted_domains = tuple(
            domain.lower() for domain in (first_party_host, *trusted_domains) if domain
        )

    @classmethod
    def from_settings(cls, settings: RendererSettings) -> ImageProxySigner:
        """Build a signer from renderer settings."""
        return cls(
            settings.image_proxy_secret,
            endpoint=settings.proxy_endpoint,
            first_party_host=settings.first_party_host,
        )

    def sign(self, url: str) -> str:
        """Return the hex HMAC-SHA256 signature of ``url``."""
        return hmac.new(self._key, url.encode("utf-8"), hashlib.sha256).hexdigest()

    def verify(self, url: str, signature: str) -> bool:
        """Return ``True`` when ``signature`` matches ``url`` (constant time)."""
        if not signature:
            return False
        return hmac.compare_digest(self.sign(url), signature.strip().lower())

    def is_trusted(self, url: str) -> bool:
        """Return ``True`` if ``url`` is hosted on a trusted image domain."""
        hostname = (urlsplit(url).hostname or "").lower()
        if not hostname:
            return False
        return any(
            hostname == domain or hostname.endswith(f".{domain}")
            for domain in self.trusted_domains
        )

    def proxy_url(self, url: str) -> str:
        """Return the proxied form of ``url``, or ``url`` if no proxy is needed.

        Fragments, ``data:`` URIs, relative and non-http(s) URLs, and images on
        trusted domains are returned unchanged.
        """
        if not url or url.startswith(("#", "data:")):
            return url
        if not _is_http_url(url) or self.is_trusted(url):
            return url
        encoded = quote(url, safe=_URI_COMPONENT_SAFE)
        return f"{self.endpoint}?url={encoded}&sig={self.sign(url)}"


__all__ = ["TRUSTED_IMAGE_DOMAINS", "ImageProxySigner", "rewrite_srcset"]
