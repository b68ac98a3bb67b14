"""Privacy-preserving image proxy: URL signing and the fetch route."""

from .handler import (
    ImageProxy,
    ImageProxyError,
    ProxyResponse,
    is_allowed_image_url,
    make_wsgi_app,
)
from .signer import TRUSTED_IMAGE_DOMAINS, ImageProxySigner, rewrite_srcset

__all__ = [
    "TRUSTED_IMAGE_DOMAINS",
    "ImageProxy",
    "ImageProxyError",
    "ImageProxySigner",
    "ProxyResponse",
    "is_allowed_image_url",
    "make_wsgi_app",
    "rewrite_srcset",
]
