"""HTTP route that fetches signed images on behalf of README visitors.

:class:`ImageProxy` validates the ``url``/``sig`` query pair produced by
:class:`~pkgmark.image_proxy.signer.ImageProxySigner`, refuses private or
non-http(s) targets, and relays the upstream image with hardened response
headers. Every failure becomes a :class:`ProxyResponse` with an error status;
nothing is raised to the caller.
"""

from __future__ import annotations

import dataclasses as dc
import ipaddress
import logging
import re
import typing as typ
from http import HTTPStatus
from urllib.parse import parse_qs, urlsplit

import requests

from pkgmark._http import build_retry_session

if typ.TYPE_CHECKING:
    from pkgmark.image_proxy.signer import ImageProxySigner

logger = logging.getLogger(__name__)

MAX_IMAGE_BYTES = 10 * 1024 * 1024
CACHE_MAX_AGE_ONE_DAY = 60 * 60 * 24
CHUNK_SIZE = 64 * 1024
USER_AGENT = "npmx-image-proxy/1.0"
CONTENT_SECURITY_POLICY = "default-src 'none'; style-src 'unsafe-inline'"

_PRIVATE_172 = re.compile(r"^172\.(1[6-9]|2\d|3[01])\.")
_BLOCKED_PREFIXES = ("10.", "192.168.", "169.254.")
_BLOCKED_IPV6_PREFIXES = ("fe80:", "fc", "fd", "::ffff:")
_BLOCKED_HOSTS = frozenset({"localhost", "127.0.0.1", "0.0.0.0", "::1"})  # noqa: S104


class ImageProxyError(RuntimeError):
    """Raised inside the proxy when a request must be answered with an error."""

    def __init__(self, status: HTTPStatus, message: str) -> None:
        super().__init__(message)
        self.status = status


@dc.dataclass(slots=True)
class ProxyResponse:
    """Status, headers, and body returned by :meth:`ImageProxy.handle`."""

    status: HTTPStatus
    headers: dict[str, str] = dc.field(default_factory=dict)
    body: bytes = b""

    @classmethod
    def error(cls, exc: ImageProxyError) -> ProxyResponse:
        """Return a plain-text error response for ``exc``."""
        return cls(
            status=exc.status,
            headers={
                "Content-Type": "text/plain; charset=utf-8",
                "X-Content-Type-Options": "nosniff",
            },
            body=str(exc).encode("utf-8"),
        )


def _hostname(url: str) -> str:
    parts = urlsplit(url)
    # urlsplit drops IPv6 brackets.
    return (parts.hostname or "").lower().strip("[]")


def _is_private_address(hostname: str) -> bool:
    try:
        address = ipaddress.ip_address(hostname)
    except ValueError:
        return False
    mapped = getattr(address, "ipv4_mapped", None)
    if mapped is not None:
        address = mapped
    return (
        address.is_private
        or address.is_loopback
        or address.is_link_local
        or address.is_unspecified
    )


def is_allowed_image_url(url: str) -> bool:
    """Return ``True`` if ``url`` may be fetched by the proxy.

    Only http(s) URLs are allowed; loopback, private, link-local and
    ``.local``/``.internal`` hosts are rejected to prevent SSRF.

    Examples
    --------
    >>> is_allowed_image_url("https://example.com/logo.png")
    True
    >>> is_allowed_image_url("http://169.254.169.254/latest/meta-data")
    False
    """
    try:
        parts = urlsplit(url)
    except ValueError:
        return False
    if parts.scheme.lower() not in {"http", "https"}:
        return False
    hostname = _hostname(url)
    if not hostname:
        return False
    blocked = (
        hostname in _BLOCKED_HOSTS
        or hostname.startswith(_BLOCKED_PREFIXES)
        or (":" in hostname and hostname.startswith(_BLOCKED_IPV6_PREFIXES))
        or _PRIVATE_172.match(hostname) is not None
        or hostname.endswith((".local", ".internal"))
        or _is_private_address(hostname)
    )
    return not blocked


class ImageProxy:
    """Validate signed image requests and relay the upstream bytes.

    Parameters
    ----------
    signer : ImageProxySigner
        Signer holding the shared HMAC secret.
    session : requests.Session, optional
        HTTP session used for upstream fetches. Defaults to a retrying
        session.
    timeout : float, optional
        Per-request timeout in seconds.
    max_bytes : int, optional
        Largest image relayed; larger bodies yield HTTP 413.
    """

    def __init__(
        self,
        signer: ImageProxySigner,
        *,
        session: requests.Session | None = None,
        timeout: float = 15.0,
        max_bytes: int = MAX_IMAGE_BYTES,
    ) -> None:
        self.signer = signer
        self._session = session or build_retry_session(total=2)
        self.timeout = timeout
        self.max_bytes = max_bytes

    def handle(self, query: typ.Mapping[str, str | list[str]]) -> ProxyResponse:
        """Answer one proxy request described by its query parameters."""
        try:
            url = self._validated_target(query)
            return self._relay(url)
        except ImageProxyError as exc:
            logger.warning("image proxy rejected request: %s (%s)", exc, exc.status)
            return ProxyResponse.error(exc)

    def _validated_target(self, query: typ.Mapping[str, str | list[str]]) -> str:
        url = _first(query.get("url"))
        signature = _first(query.get("sig"))
        if not url:
            msg = 'Missing required "url" query parameter.'
            raise ImageProxyError(HTTPStatus.BAD_REQUEST, msg)
        if not signature or not self.signer.verify(url, signature):
            msg = "Invalid signature."
            raise ImageProxyError(HTTPStatus.BAD_REQUEST, msg)
        if not is_allowed_image_url(url):
            msg = "Invalid or disallowed image URL."
            raise ImageProxyError(HTTPStatus.BAD_REQUEST, msg)
        return url

    def _relay(self, url: str) -> ProxyResponse:
        try:
            response = self._session.get(
                url,
                headers={"User-Agent": USER_AGENT, "Accept": "image/*"},
                timeout=self.timeout,
                stream=True,
                allow_redirects=True,
            )
        except requests.RequestException as exc:
            msg = f"Failed to proxy image: {exc}"
            raise ImageProxyError(HTTPStatus.BAD_GATEWAY, msg) from exc

        try:
            content_type = self._check_upstream(url, response)
            body = self._read_limited(response)
        finally:
            response.close()

        return ProxyResponse(
            status=HTTPStatus.OK,
            headers={
                "Content-Type": content_type,
                "Cache-Control": (
                    f"public, max-age={CACHE_MAX_AGE_ONE_DAY}, "
                    f"s-maxage={CACHE_MAX_AGE_ONE_DAY}"
                ),
                "X-Content-Type-Options": "nosniff",
                "Content-Security-Policy": CONTENT_SECURITY_POLICY,
                "Content-Length": str(len(body)),
            },
            body=body,
        )

    def _check_upstream(self, url: str, response: requests.Response) -> str:
        """Return the upstream content type or raise for unusable responses."""
        final_url = response.url or url
        if final_url != url and not is_allowed_image_url(final_url):
            msg = "Redirect to disallowed URL."
            raise ImageProxyError(HTTPStatus.BAD_REQUEST, msg)

        if not response.ok:
            status = (
                HTTPStatus.NOT_FOUND
                if response.status_code == HTTPStatus.NOT_FOUND
                else HTTPStatus.BAD_GATEWAY
            )
            msg = f"Failed to fetch image: {response.status_code}"
            raise ImageProxyError(status, msg)

        content_type = response.headers.get("Content-Type") or "application/octet-stream"
        if not content_type.lower().startswith("image/"):
            msg = "URL does not point to an image."
            raise ImageProxyError(HTTPStatus.BAD_REQUEST, msg)

        declared = response.headers.get("Content-Length")
        if declared and declared.isdigit() and int(declared) > self.max_bytes:
            msg = "Image too large."
            raise ImageProxyError(HTTPStatus.REQUEST_ENTITY_TOO_LARGE, msg)
        return content_type

    def _read_limited(self, response: requests.Response) -> bytes:
        """Read the body in chunks, aborting once it exceeds ``max_bytes``."""
        chunks: list[bytes] = []
        received = 0
        try:
            for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                received += len(chunk)
                if received > self.max_bytes:
                    msg = "Image too large."
                    raise ImageProxyError(HTTPStatus.REQUEST_ENTITY_TOO_LARGE, msg)
                chunks.append(chunk)
        except requests.RequestException as exc:
            msg = f"Failed to proxy image: {exc}"
            raise ImageProxyError(HTTPStatus.BAD_GATEWAY, msg) from exc
        return b"".join(chunks)


def _first(value: str | list[str] | None) -> str | None:
    if isinstance(value, list):
        return value[0] if value else None
    return value


def make_wsgi_app(proxy: ImageProxy) -> typ.Callable[..., typ.Iterable[bytes]]:
    """Expose ``proxy`` as a WSGI application answering ``GET`` requests."""

    def app(
        environ: dict[str, typ.Any], start_response: typ.Callable[..., typ.Any]
    ) -> typ.Iterable[bytes]:
        if environ.get("REQUEST_METHOD", "GET").upper() not in {"GET", "HEAD"}:
            result = ProxyResponse.error(
                ImageProxyError(HTTPStatus.METHOD_NOT_ALLOWED, "Method not allowed.")
            )
        else:
            query = parse_qs(environ.get("QUERY_STRING", ""), keep_blank_values=True)
            result = proxy.handle(query)
        status = f"{result.status.value} {result.status.phrase}"
        start_response(status, list(result.headers.items()))
        return [result.body]

    return app


__all__ = [
    "MAX_IMAGE_BYTES",
    "ImageProxy",
    "ImageProxyError",
    "ProxyResponse",
    "is_allowed_image_url",
    "make_wsgi_app",
]
