"""Common literal values used across pkgmark.

These constants keep id prefixes, endpoints, and host lists centralized so
the renderer, the image proxy, and tests import the same values without
drifting. Intended for internal use within the pkgmark package.

Examples
--------
>>> from pkgmark import _constants
>>> _constants.ID_PREFIX
'user-content'
>>> _constants.DEFAULT_PROXY_ENDPOINT.endswith("image-proxy")
True
"""

ID_PREFIX = "user-content"
DEFAULT_PROXY_ENDPOINT = "/api/registry/image-proxy"
DEFAULT_CDN_BASE = "https://cdn.jsdelivr.net/npm"
DEFAULT_FIRST_PARTY_HOST = "npmx.dev"
DEFAULT_HEADING_BASE_LEVEL = 2
DEFAULT_PYGMENTS_STYLE = "monokai"
SECRET_ENV_VAR = "PKGMARK_IMAGE_PROXY_SECRET"

NPM_HOSTS = frozenset({"npmjs.com", "www.npmjs.com", "npmjs.org", "www.npmjs.org"})
NPM_EXCEPTION_PATHS = (
    "/products",
    "/pricing",
    "/about",
    "/policies",
    "/support",
    "/signup",
    "/login",
    "/features",
    "/enterprise",
    "/npm-enterprise",
    "/advisories",
)
