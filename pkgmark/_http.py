"""Shared HTTP session construction."""

from __future__ import annotations

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry


def build_retry_session(
    headers: dict[str, str] | None = None, *, total: int = 5
) -> requests.Session:
    """Return a session that retries idempotent requests on 5xx responses."""
    session = requests.Session()
    retry = Retry(
        total=total,
        read=total,
        connect=3,
        backoff_factor=0.5,
        status_forcelist=(500, 502, 503, 504),
        allowed_methods=("GET", "HEAD"),
    )
    adapter = HTTPAdapter(max_retries=retry)
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    if headers:
        session.headers.update(headers)
    return session


__all__ = ["build_retry_session"]
