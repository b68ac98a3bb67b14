"""Typed dataclasses describing pkgmark renderer settings."""

from __future__ import annotations

import dataclasses as dc

from pkgmark._constants import (
    DEFAULT_CDN_BASE,
    DEFAULT_FIRST_PARTY_HOST,
    DEFAULT_HEADING_BASE_LEVEL,
    DEFAULT_PROXY_ENDPOINT,
    DEFAULT_PYGMENTS_STYLE,
)


class SettingsError(ValueError):
    """Raised when the renderer settings are invalid or incomplete."""


@dc.dataclass(frozen=True, slots=True)
class RendererSettings:
    """Runtime settings shared by the renderer and the image proxy.

    Attributes
    ----------
    image_proxy_secret : str
        HMAC key used to sign and verify proxied image URLs.
    proxy_endpoint : str
        Path (or absolute URL) of the image proxy route.
    cdn_base : str
        Package CDN used for relative assets when no repository is known.
    first_party_host : str
        Host of the site itself; its images are never proxied.
    heading_base_level : int
        Number of heading levels already used by the host page; markdown
        ``#`` headings render one level below it.
    pygments_style : str
        Pygments style used by the default highlighter and preview pages.
    """

    image_proxy_secret: str
    proxy_endpoint: str = DEFAULT_PROXY_ENDPOINT
    cdn_base: str = DEFAULT_CDN_BASE
    first_party_host: str = DEFAULT_FIRST_PARTY_HOST
    heading_base_level: int = DEFAULT_HEADING_BASE_LEVEL
    pygments_style: str = DEFAULT_PYGMENTS_STYLE

    def __post_init__(self) -> None:
        if not self.image_proxy_secret:
            msg = "An image proxy secret is required to sign image URLs."
            raise SettingsError(msg)
        if not 0 <= self.heading_base_level <= 5:  # noqa: PLR2004
            msg = (
                "heading_base_level must be between 0 and 5, "
                f"got {self.heading_base_level!r}"
            )
            raise SettingsError(msg)


__all__ = ["RendererSettings", "SettingsError"]
