"""Load and validate renderer settings for pkgmark.

Settings come from an optional YAML file (a ``renderer`` mapping) merged with
defaults, while the image proxy HMAC secret is normally injected through the
``PKGMARK_IMAGE_PROXY_SECRET`` environment variable. The primary entry point is
:func:`load_settings`, which returns a frozen :class:`RendererSettings`.

Examples
--------
>>> from pathlib import Path
>>> from pkgmark.config import load_settings
>>> settings = load_settings(Path("config/pkgmark.yaml"))  # doctest: +SKIP
>>> settings.proxy_endpoint  # doctest: +SKIP
'/api/registry/image-proxy'
"""

from .loader import load_settings
from .models import RendererSettings, SettingsError

__all__ = ["RendererSettings", "SettingsError", "load_settings"]
